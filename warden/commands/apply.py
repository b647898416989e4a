"""Application Commands - /apply and its buttons and modals

- /apply config - Configure applications and post the application card
- /apply modify - Change parts of the configuration
- /apply update - Accept, deny or ask a member to resend
- /apply remove - Delete a member's application and revoke the role
"""
from typing import Optional

import discord
from discord import app_commands

from .. import applications
from ..applications import (
    BUTTON_ABOUT,
    BUTTON_ACCEPT,
    BUTTON_DENY,
    BUTTON_MODAL,
    BUTTON_RESEND,
    FIELD_REASON,
    MODAL_SUBMIT,
    MODAL_UPDATE,
    NAME,
    ApplicationConfig,
    ApplicationContent,
    Status,
)
from ..config import logger
from ..dispatcher import Request
from ..errors import InvalidRouting
from ..member_helpers import get_member, has_role
from ..registry import Feature
from ..ui_components import notice_embed, success_embed

STATUS_BUTTONS = {
    BUTTON_ACCEPT: Status.ACCEPTED,
    BUTTON_DENY: Status.DENIED,
    BUTTON_RESEND: Status.RESEND,
}

STATUS_CHOICES = [app_commands.Choice(name=str(status), value=status.value) for status in STATUS_BUTTONS.values()]

Title = app_commands.Range[str, 1, 256]
Description = app_commands.Range[str, 1, 4096]
Question = app_commands.Range[str, 1, 45]

CONTENT_DESCRIPTIONS = {
    "title": "The title of the guild application embed",
    "description": "The description of the guild application embed",
    "output_channel": "The output channel for submitted forms",
    "acceptance_role": "The role given to members that are accepted",
    "thumbnail_link": "The thumbnail link of the guild application embed",
    "question_1": "The first question on the application",
    "question_2": "The second question on the application",
    "question_3": "The third question on the application",
    "question_4": "The fourth question on the application",
    "question_5": "The fifth question on the application",
}

group = app_commands.Group(
    name=NAME,
    description="Manage guild applications",
    guild_only=True,
    default_permissions=discord.Permissions(moderate_members=True),
)

# ============================================================================
# SLASH COMMANDS
# ============================================================================

@group.command(name="config", description="Configure guild applications")
@app_commands.describe(**CONTENT_DESCRIPTIONS)
async def config_command(
    interaction: discord.Interaction,
    title: Title,
    description: Description,
    output_channel: discord.TextChannel,
    acceptance_role: discord.Role,
    question_1: Question,
    thumbnail_link: Optional[str] = None,
    question_2: Optional[Question] = None,
    question_3: Optional[Question] = None,
    question_4: Optional[Question] = None,
    question_5: Optional[Question] = None,
):
    request = Request.for_command(interaction, "apply config")
    questions = [question_1, question_2, question_3, question_4, question_5]
    config = ApplicationConfig(
        guild=request.guild_id,
        channel=output_channel.id,
        role=acceptance_role.id,
        content=ApplicationContent(
            title=title,
            description=description.replace("\\n", "\n"),
            thumbnail=thumbnail_link,
            questions=[question for question in questions if question],
        ),
    )

    await applications.configure(request.client, config, interaction.channel_id)
    await request.respond(embed=success_embed("Configured applications!"))


@group.command(name="modify", description="Modify the guild application configuration")
@app_commands.describe(**CONTENT_DESCRIPTIONS)
async def modify_command(
    interaction: discord.Interaction,
    title: Optional[Title] = None,
    description: Optional[Description] = None,
    output_channel: Optional[discord.TextChannel] = None,
    acceptance_role: Optional[discord.Role] = None,
    thumbnail_link: Optional[str] = None,
    question_1: Optional[Question] = None,
    question_2: Optional[Question] = None,
    question_3: Optional[Question] = None,
    question_4: Optional[Question] = None,
    question_5: Optional[Question] = None,
):
    request = Request.for_command(interaction, "apply modify")
    questions = [question_1, question_2, question_3, question_4, question_5]

    await applications.modify(
        request.client,
        request.guild_id,
        interaction.channel_id,
        channel=output_channel.id if output_channel else None,
        role=acceptance_role.id if acceptance_role else None,
        questions={index: question for index, question in enumerate(questions) if question is not None},
        title=title,
        description=description.replace("\\n", "\n") if description else None,
        thumbnail=thumbnail_link,
    )
    await request.respond(embed=success_embed("Updated application configuration!"))


@group.command(name="update", description="Update a member's submitted application")
@app_commands.describe(
    user="The guild member that submitted the application",
    status="The new status of the application",
    reason="The reason for the update",
    overwrite="Whether to overwrite a finalized application (default false)",
)
@app_commands.choices(status=STATUS_CHOICES)
async def update_command(
    interaction: discord.Interaction,
    user: discord.User,
    status: app_commands.Choice[int],
    reason: Optional[app_commands.Range[str, 1, 256]] = None,
    overwrite: bool = False,
):
    request = Request.for_command(interaction, "apply update")
    await applications.update(
        request.client,
        request.guild_id,
        user.id,
        Status.parse(status.value),
        reason=reason,
        overwrite=overwrite,
    )
    await request.respond(embed=success_embed("Updated user application!"))


@group.command(name="remove", description="Remove a member's submitted application")
@app_commands.describe(user="The guild member that submitted the application")
async def remove_command(interaction: discord.Interaction, user: discord.User):
    request = Request.for_command(interaction, "apply remove")
    guild = request.guild_id
    config = applications.read_config(guild)

    await applications.remove(request.client, guild, user.id)

    # Removing a form never touches roles, so the command revokes it here
    try:
        member = await get_member(request.client, guild, user.id)
    except discord.NotFound:
        logger.info(f"Member {user.id} already left guild {guild}, no role to revoke")
    else:
        if has_role(member, config.role):
            await member.remove_roles(discord.Object(id=config.role), reason="Application removed")

    await request.respond(embed=success_embed("Removed user application!"))

# ============================================================================
# BUTTONS & MODALS
# ============================================================================

async def run_component(request: Request):
    guild = request.guild_id

    if request.name == BUTTON_MODAL:
        applications.check_can_submit(guild, request.user_id)
        config = applications.read_config(guild)
        await request.send_modal(applications.question_modal(config))

    elif request.name == BUTTON_ABOUT:
        embed = notice_embed("About Guild Applications", applications.ABOUT_TEXT)
        if request.client.user:
            embed.set_author(name=str(request.client.user), icon_url=request.client.user.display_avatar.url)
        await request.respond(embed=embed)

    elif request.name in STATUS_BUTTONS:
        user = request.int_arg(0, "user")
        applications.read_form(guild, user)
        await request.send_modal(applications.reason_modal(user, STATUS_BUTTONS[request.name]))

    else:
        raise InvalidRouting(request.kind, request.name)


async def run_modal(request: Request):
    guild = request.guild_id

    if request.name == MODAL_SUBMIT:
        config = applications.read_config(guild)
        fields = request.fields
        answers = [fields.get(str(index)) or "" for index in range(len(config.content.questions))]

        await applications.submit(request.client, guild, request.user_id, answers)
        await request.respond(
            embed=success_embed("Application submitted!", "You will receive a direct message once it has been reviewed.")
        )

    elif request.name == MODAL_UPDATE:
        user = request.int_arg(0, "user")
        status = Status.parse(request.arg(1, "status"))

        await applications.update(request.client, guild, user, status, reason=request.fields.get(FIELD_REASON))
        await request.respond(embed=success_embed("Updated user application!"))

    else:
        raise InvalidRouting(request.kind, request.name)


def feature() -> Feature:
    return Feature(NAME, group, component=run_component, modal=run_modal)
