"""Poll Commands - /poll and the buttons of published polls

- /poll create | modify | preview | send | close | discard
- /poll input create | discard
"""
from typing import Optional

import discord
from discord import app_commands

from .. import polls
from ..dispatcher import Request
from ..errors import InvalidRouting, PreconditionFailed
from ..polls import (
    BUTTON_CHOICE,
    BUTTON_LAST,
    BUTTON_NEXT,
    BUTTON_RAFFLE,
    BUTTON_REMOVE,
    BUTTON_RESPONSE,
    BUTTON_RESULTS,
    MAX_HOURS,
    MIN_HOURS,
    MODAL_SUBMIT,
    NAME,
    Kind,
    PollContent,
)
from ..registry import Feature
from ..ui_components import notice_embed, success_embed

KIND_CHOICES = [app_commands.Choice(name=str(kind), value=ordinal) for ordinal, kind in enumerate(Kind)]

Title = app_commands.Range[str, 1, 256]
Description = app_commands.Range[str, 1, 512]
Hours = app_commands.Range[int, MIN_HOURS, MAX_HOURS]
Label = app_commands.Range[str, 1, 45]

CONTENT_DESCRIPTIONS = {
    "title": "The title of the poll",
    "description": "The description of the poll",
    "hours": "The duration of the poll in hours",
    "image_link": "The poll's image link; does not support GIFs",
    "hidden_members": "Whether the poll's member replies are anonymous",
    "hidden_results": "Whether the poll's results are only visible to you",
}

group = app_commands.Group(
    name=NAME,
    description="Create or manage polls",
    guild_only=True,
    default_permissions=discord.Permissions(send_messages=True),
)
input_group = app_commands.Group(name="input", description="Create or manage poll inputs", parent=group)


def _single_line(text):
    if text is None:
        return None
    return " ".join(text.replace("\r", " ").replace("\n", " ").replace("\t", " ").split())

# ============================================================================
# SLASH COMMANDS
# ============================================================================

@group.command(name="create", description="Creates a new poll")
@app_commands.describe(kind="The type of poll", **CONTENT_DESCRIPTIONS)
@app_commands.choices(kind=KIND_CHOICES)
async def create_command(
    interaction: discord.Interaction,
    kind: app_commands.Choice[int],
    title: Title,
    description: Description,
    hours: Hours,
    image_link: Optional[str] = None,
    hidden_members: bool = False,
    hidden_results: bool = False,
):
    request = Request.for_command(interaction, "poll create")
    content = PollContent(
        title=title,
        description=_single_line(description),
        hours=polls.check_hours(hours),
        image=image_link,
        hide_members=hidden_members,
        hide_results=hidden_results,
    )

    await polls.create(request.guild_id, request.user_id, Kind.from_ordinal(kind.value), content)
    await request.respond(embed=success_embed("Created new poll!", "Add inputs with `/poll input create`, then `/poll send`."))


@group.command(name="discard", description="Discards your poll")
@app_commands.describe(force="Whether the poll should be discarded even if it has been sent")
async def discard_command(interaction: discord.Interaction, force: bool = False):
    request = Request.for_command(interaction, "poll discard")
    await polls.discard(request.client, request.guild_id, request.user_id, force=force)
    await request.respond(embed=success_embed("Discarded your poll!"))


@group.command(name="modify", description="Modifies your poll's content")
@app_commands.describe(kind="The type of poll; this will remove all existing inputs", **CONTENT_DESCRIPTIONS)
@app_commands.choices(kind=KIND_CHOICES)
async def modify_command(
    interaction: discord.Interaction,
    kind: Optional[app_commands.Choice[int]] = None,
    title: Optional[Title] = None,
    description: Optional[Description] = None,
    hours: Optional[Hours] = None,
    image_link: Optional[str] = None,
    hidden_members: Optional[bool] = None,
    hidden_results: Optional[bool] = None,
):
    request = Request.for_command(interaction, "poll modify")
    await polls.modify(
        request.guild_id,
        request.user_id,
        kind=Kind.from_ordinal(kind.value) if kind is not None else None,
        title=title,
        description=_single_line(description),
        hours=hours,
        image=image_link,
        hide_members=hidden_members,
        hide_results=hidden_results,
    )
    await request.respond(embed=success_embed("Modified poll content!"))


@group.command(name="preview", description="Previews your poll")
async def preview_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "poll preview")
    poll = polls.read_poll(request.guild_id, request.user_id)
    polls.require_draft(poll)
    await request.respond(embed=await polls.poll_embed(request.client, poll), view=polls.poll_view(poll, disabled=True))


@group.command(name="send", description="Sends your poll")
async def send_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "poll send")
    await polls.send(request.client, request.guild_id, request.user_id, interaction.channel_id)
    await request.respond(embed=success_embed("Your poll has been published!"))


@group.command(name="close", description="Closes your poll")
async def close_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "poll close")
    await polls.close(request.client, request.guild_id, request.user_id)
    await request.respond(embed=success_embed("Your poll has been closed!"))


@input_group.command(name="create", description="Creates a new poll input; does not work with Raffle polls")
@app_commands.describe(
    label="The label of the poll input",
    emoji="The emoji of the poll button; only works for Choice polls, and invalid values will be ignored",
    placeholder="The placeholder text of the poll field; only works for Response polls",
)
async def input_create_command(
    interaction: discord.Interaction,
    label: Label,
    emoji: Optional[str] = None,
    placeholder: Optional[Label] = None,
):
    request = Request.for_command(interaction, "poll input create")
    await polls.add_input(request.guild_id, request.user_id, label, emoji=emoji, placeholder=placeholder)
    await request.respond(embed=success_embed(f"Added input '{label}'!"))


@input_group.command(name="discard", description="Discards poll inputs; does not work with Raffle polls")
async def input_discard_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "poll input discard")
    poll = polls.read_poll(request.guild_id, request.user_id)
    polls.require_draft(poll)
    if not poll.inputs:
        raise PreconditionFailed("Your poll does not have any inputs")
    await request.respond(embed=notice_embed("Remove Inputs"), view=polls.remove_inputs_view(poll))

# ============================================================================
# BUTTONS
# ============================================================================

async def remove_button(request: Request):
    owner = request.int_arg(0, "user")
    index = request.int_arg(1, "input")
    if owner != request.user_id:
        raise PreconditionFailed("You cannot modify another user's poll")

    poll = await polls.remove_input(request.guild_id, owner, index)
    if poll.inputs:
        await request.edit_origin(embed=notice_embed("Remove Inputs"), view=polls.remove_inputs_view(poll))
    else:
        await request.edit_origin(embed=success_embed("All inputs removed!"), view=None)


async def choice_button(request: Request):
    recorded = await polls.reply_choice(
        request.guild_id,
        request.int_arg(0, "user"),
        request.user_id,
        request.int_arg(1, "input"),
    )
    title = "Your response has been recorded!" if recorded else "Your response has been removed!"
    await request.respond(embed=success_embed(title))


async def raffle_button(request: Request):
    entered = await polls.toggle_raffle(request.guild_id, request.int_arg(0, "user"), request.user_id)
    title = "You have been added to the raffle" if entered else "You have been removed from the raffle"
    await request.respond(embed=success_embed(title))


async def response_button(request: Request):
    poll = polls.read_poll(request.guild_id, request.int_arg(0, "user"), missing="This poll is not open")
    polls.check_can_reply(poll, request.user_id, Kind.RESPONSE)
    await request.send_modal(polls.response_modal(poll))


async def results_button(request: Request):
    owner = request.int_arg(0, "user")
    poll = polls.read_archive(request.guild_id, owner, request.int_arg(1, "message"))
    polls.check_can_view_results(poll, request.user_id)

    if request.name == BUTTON_RESULTS:
        embed, page = await polls.results_embed(request.client, poll, 1)
        await request.respond(embed=embed, view=polls.results_view(poll, page))
    else:
        embed, page = await polls.results_embed(request.client, poll, request.int_arg(2, "page"))
        await request.edit_origin(embed=embed, view=polls.results_view(poll, page))


BUTTONS = {
    BUTTON_REMOVE: remove_button,
    BUTTON_CHOICE: choice_button,
    BUTTON_RAFFLE: raffle_button,
    BUTTON_RESPONSE: response_button,
    BUTTON_RESULTS: results_button,
    BUTTON_LAST: results_button,
    BUTTON_NEXT: results_button,
}


async def run_component(request: Request):
    handler = BUTTONS.get(request.name)
    if handler is None:
        raise InvalidRouting(request.kind, request.name)
    await handler(request)


async def run_modal(request: Request):
    if request.name != MODAL_SUBMIT:
        raise InvalidRouting(request.kind, request.name)

    fields = request.fields
    answers = [fields.get(str(index)) for index in range(Kind.RESPONSE.max_inputs)]
    await polls.submit_response(request.guild_id, request.int_arg(0, "user"), request.user_id, answers)
    await request.respond(embed=success_embed("Your response has been recorded!"))


def feature() -> Feature:
    return Feature(NAME, group, component=run_component, modal=run_modal)
