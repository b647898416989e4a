"""Guild Applications - configuration, forms and their review lifecycle

A guild posts an application card (``/apply config``). Members press
"Apply", answer up to five questions and their form is posted to the
configured review channel with Accept / Deny / Resend buttons.

Form lifecycle::

    Pending -> Accepted | Denied | Resend
    Resend  -> Pending   (only by submitting again)

Accepted and Denied are final unless a moderator overwrites them.
"""
import random
from enum import IntEnum
from typing import Dict, List, Optional

import discord
from pydantic import BaseModel, Field

from .anchor import Anchor
from .config import BOT_COLOR, logger
from .custom_id import CustomId
from .errors import InvalidField, PreconditionFailed, RecordNotFound
from .member_helpers import avatar_url, get_guild, get_member, get_user, has_role
from .storage import Record, Req
from .ui_components import button, static_modal, static_view, text_input
from utils.discord_formatter import quote, timestamp, truncate

NAME = "apply"

BUTTON_MODAL = f"{NAME}_modal"
BUTTON_ABOUT = f"{NAME}_about"
BUTTON_ACCEPT = f"{NAME}_accept"
BUTTON_DENY = f"{NAME}_deny"
BUTTON_RESEND = f"{NAME}_resend"

MODAL_SUBMIT = f"{NAME}_submit"
MODAL_UPDATE = f"{NAME}_update"

FIELD_REASON = "reason"

MAX_QUESTIONS = 5

TOAST = [
    "I spot a new member!",
    "A wild user appeared!",
    "Oh no, there's *another* one...",
    "This one seems... suspicious...",
    "Careful, they might bite!",
    "I'd keep an eye on this one.",
    "Aww, they didn't bring pizza!",
    "Who let *this* one in..?",
]

ABOUT_TEXT = (
    "Guild applications let moderators get to know new members before they "
    "are given access to the rest of the server.\n\n"
    "Press **Apply to Guild** and answer the questions. Your answers are "
    "posted to a private review channel. You will receive a direct message "
    "once a moderator has reviewed your application, so keep your DMs open "
    "for members of this server.\n\n"
    "If you are asked to resend your application you may submit it again."
)

# ============================================================================
# MODELS
# ============================================================================

class Status(IntEnum):
    PENDING = 0
    ACCEPTED = 1
    DENIED = 2
    RESEND = 3

    @property
    def icon(self) -> str:
        return {0: "🤔", 1: "👍", 2: "👎", 3: "🤷"}[self.value]

    @property
    def label(self) -> str:
        return self.name.title()

    def __str__(self) -> str:
        return f"{self.icon} {self.label}"

    @classmethod
    def parse(cls, value) -> "Status":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise InvalidField("status", value) from None


# Shown to a member who presses "Apply" while their form blocks a new one
SUBMIT_BLOCKED = {
    Status.PENDING: "Your application is pending",
    Status.ACCEPTED: "Your application was accepted",
    Status.DENIED: "Your application was denied",
}

NOTIFY_TITLE = {
    Status.ACCEPTED: "Your application has been accepted!",
    Status.DENIED: "Your application has been denied.",
    Status.RESEND: "You have been asked to resubmit your application.",
}

NOTIFY_TEXT = {
    Status.ACCEPTED: "Welcome aboard! You now have access to the rest of the server.",
    Status.DENIED: "Thank you for your interest. Your application was not accepted.",
    Status.RESEND: "A moderator would like you to fill out the application again.",
}


class ApplicationContent(BaseModel):
    title: str
    description: str
    thumbnail: Optional[str] = None
    questions: List[str] = Field(min_length=1, max_length=MAX_QUESTIONS)


class ApplicationConfig(Record):
    """Per-guild application setup and the card members apply from."""

    guild: int
    channel: int
    role: int
    content: ApplicationContent
    anchor: Optional[Anchor] = None

    @classmethod
    def key_for(cls, guild: int) -> Req["ApplicationConfig"]:
        return Req(cls, f"{NAME}/{guild}", "config")

    def as_req(self) -> Req["ApplicationConfig"]:
        return self.key_for(self.guild)


class ApplicationForm(Record):
    """One member's submitted answers and their review status."""

    guild: int
    user: int
    status: Status = Status.PENDING
    reason: Optional[str] = None
    answers: List[str] = []
    anchor: Optional[Anchor] = None

    @classmethod
    def key_for(cls, guild: int, user: int) -> Req["ApplicationForm"]:
        return Req(cls, f"{NAME}/{guild}", str(user))

    def as_req(self) -> Req["ApplicationForm"]:
        return self.key_for(self.guild, self.user)


def read_config(guild: int) -> ApplicationConfig:
    try:
        return ApplicationConfig.read(guild)
    except RecordNotFound:
        raise PreconditionFailed("Applications have not been configured in this guild") from None


def read_form(guild: int, user: int) -> ApplicationForm:
    try:
        return ApplicationForm.read(guild, user)
    except RecordNotFound:
        raise PreconditionFailed("That member has not submitted an application") from None

# ============================================================================
# RENDERING
# ============================================================================

async def config_embed(client: discord.Client, config: ApplicationConfig) -> discord.Embed:
    guild = await get_guild(client, config.guild)
    embed = discord.Embed(
        title=config.content.title,
        description=config.content.description,
        color=BOT_COLOR,
    )
    embed.set_author(name=guild.name, icon_url=guild.icon.url if guild.icon else None)
    if config.content.thumbnail:
        embed.set_thumbnail(url=config.content.thumbnail)
    embed.set_footer(text=f"Questions: {len(config.content.questions)}")
    return embed


def config_view(disabled: bool = False) -> discord.ui.View:
    return static_view(
        [
            button(BUTTON_MODAL, "Apply to Guild", discord.ButtonStyle.primary, emoji="👋"),
            button(BUTTON_ABOUT, "About Applications", emoji="ℹ️"),
        ],
        disabled=disabled,
    )


def question_modal(config: ApplicationConfig) -> discord.ui.Modal:
    inputs = [
        text_input(str(index), question, paragraph=True, max_length=1024)
        for index, question in enumerate(config.content.questions)
    ]
    return static_modal(MODAL_SUBMIT, "Apply to Guild", inputs)


async def form_embed(client: discord.Client, form: ApplicationForm, config: ApplicationConfig) -> discord.Embed:
    user = await get_user(client, form.user)
    received = timestamp(form.anchor.created_at) if form.anchor else "just now"

    description = f"**Profile:** <@{form.user}>\n"
    description += f"**Received:** {received}\n"
    description += f"**Status:** {form.status}\n"
    if form.reason:
        description += f"**Reason:** {form.reason}"

    embed = discord.Embed(title=random.choice(TOAST), description=description, color=BOT_COLOR)
    embed.set_author(name=str(user), icon_url=avatar_url(user))
    embed.set_thumbnail(url=avatar_url(user))

    for index, question in enumerate(config.content.questions):
        answer = form.answers[index] if index < len(form.answers) else None
        embed.add_field(name=question, value=quote(truncate(answer, 1000)) if answer else "N/A", inline=False)
    return embed


def form_view(form: ApplicationForm) -> discord.ui.View:
    """Review buttons; disabled once the form has left Pending."""
    return static_view(
        [
            button(CustomId.new(BUTTON_ACCEPT).arg(form.user), "Accept", discord.ButtonStyle.success, emoji="👍"),
            button(CustomId.new(BUTTON_DENY).arg(form.user), "Deny", discord.ButtonStyle.danger, emoji="👎"),
            button(CustomId.new(BUTTON_RESEND).arg(form.user), "Resend", emoji="🤷"),
        ],
        disabled=form.status is not Status.PENDING,
    )


def reason_modal(user: int, status: Status) -> discord.ui.Modal:
    custom_id = CustomId.new(MODAL_UPDATE).arg(user).arg(int(status))
    reason = text_input(FIELD_REASON, "Reason (optional)", required=False, max_length=256)
    return static_modal(custom_id, "Update Application", [reason])

# ============================================================================
# OPERATIONS
# ============================================================================

async def _post_card(client: discord.Client, config: ApplicationConfig, channel_id: int):
    if config.anchor:
        await config.anchor.delete_message(client, missing_ok=True)

    channel = client.get_partial_messageable(channel_id, guild_id=config.guild)
    message = await channel.send(embed=await config_embed(client, config), view=config_view())

    config.anchor = Anchor.from_message(config.guild, message)
    config.write()
    logger.info(f"📋 Posted application card for guild {config.guild} at {config.anchor}")


async def configure(client: discord.Client, config: ApplicationConfig, channel_id: int) -> ApplicationConfig:
    """Store a new configuration and post its card in ``channel_id``.

    The card of a previous configuration is deleted.
    """
    async with ApplicationConfig.lock(config.guild):
        if ApplicationConfig.exists(config.guild):
            config.anchor = ApplicationConfig.read(config.guild).anchor
        await _post_card(client, config, channel_id)
    return config


async def modify(
    client: discord.Client,
    guild: int,
    channel_id: int,
    channel: Optional[int] = None,
    role: Optional[int] = None,
    questions: Optional[Dict[int, str]] = None,
    **content,
) -> ApplicationConfig:
    """Partially update the configuration.

    Changes to the card (title, description, thumbnail, questions) re-post it
    in ``channel_id``; channel and role changes are only stored.

    Args:
        client: The Discord client
        guild: Guild ID
        channel_id: Where a re-posted card goes
        channel: New review channel
        role: New acceptance role
        questions: Replacement questions by 0-based position
        **content: New title, description or thumbnail

    """
    async with ApplicationConfig.lock(guild):
        config = read_config(guild)

        updates = {key: value for key, value in content.items() if value is not None}
        card_changed = bool(updates)
        if updates:
            config.content = config.content.model_copy(update=updates)

        for index, question in sorted((questions or {}).items()):
            if index < len(config.content.questions):
                config.content.questions[index] = question
            elif len(config.content.questions) < MAX_QUESTIONS:
                config.content.questions.append(question)
            else:
                raise InvalidField(f"question_{index + 1}", question)
            card_changed = True

        if channel is not None:
            config.channel = channel
        if role is not None:
            config.role = role

        if card_changed:
            await _post_card(client, config, channel_id)
        else:
            config.write()
    return config


def check_can_submit(guild: int, user: int):
    """Reject a new submission unless the member has none or was asked to resend.

    Raises:
        PreconditionFailed: naming the status of the blocking form
    """
    if not ApplicationForm.exists(guild, user):
        return
    form = ApplicationForm.read(guild, user)
    if form.status is not Status.RESEND:
        raise PreconditionFailed(SUBMIT_BLOCKED[form.status])


async def submit(client: discord.Client, guild: int, user: int, answers: List[str]) -> ApplicationForm:
    """Create a Pending form and post it to the review channel."""
    async with ApplicationForm.lock(guild, user):
        check_can_submit(guild, user)
        config = read_config(guild)

        form = ApplicationForm(guild=guild, user=user, answers=answers)
        channel = client.get_partial_messageable(config.channel, guild_id=guild)
        message = await channel.send(embed=await form_embed(client, form, config), view=form_view(form))

        form.anchor = Anchor.from_message(guild, message)
        form.write()

    logger.info(f"📨 Application submitted by {user} in guild {guild}")
    return form


async def update(
    client: discord.Client,
    guild: int,
    user: int,
    status: Status,
    reason: Optional[str] = None,
    overwrite: bool = False,
) -> ApplicationForm:
    """Move a form to ``status``, sync the acceptance role and notify the member.

    Args:
        client: The Discord client
        guild: Guild ID
        user: Applicant's user ID
        status: New status (Accepted, Denied or Resend)
        reason: Optional reason shown on the card and in the DM
        overwrite: Allow changing an already finalized form

    Raises:
        PreconditionFailed: same status, or finalized without ``overwrite``

    """
    if status is Status.PENDING:
        raise InvalidField("status", status.label)

    async with ApplicationForm.lock(guild, user):
        config = read_config(guild)
        form = read_form(guild, user)

        if form.status is status:
            raise PreconditionFailed("The application already has this status")
        if not overwrite and form.status is not Status.PENDING:
            raise PreconditionFailed("The user's application is already finalized")

        member = await get_member(client, guild, user)

        form.status = status
        form.reason = reason
        form.write()

        role = discord.Object(id=config.role)
        if status is Status.ACCEPTED:
            await member.add_roles(role, reason="Application accepted")
        elif has_role(member, config.role):
            await member.remove_roles(role, reason=f"Application {status.label.lower()}")

        if form.anchor:
            await form.anchor.message_of(client).edit(embed=await form_embed(client, form, config), view=form_view(form))

    logger.info(f"📝 Application of {user} in guild {guild} set to {status.label}")
    await notify(client, form)
    return form


async def notify(client: discord.Client, form: ApplicationForm):
    """DM the applicant about their new status. Failures are only logged."""
    try:
        guild = await get_guild(client, form.guild)
        user = await get_user(client, form.user)

        description = NOTIFY_TEXT[form.status]
        if form.reason:
            description += f"\n\n{quote(form.reason)}"

        embed = discord.Embed(title=NOTIFY_TITLE[form.status], description=description, color=BOT_COLOR)
        embed.set_author(name=guild.name, icon_url=guild.icon.url if guild.icon else None)
        await user.send(embed=embed)
    except discord.HTTPException as e:
        logger.warning(f"📭 Could not DM {form.user} about their application: {e}")


async def remove(client: discord.Client, guild: int, user: int) -> ApplicationForm:
    """Delete a form and its review card. Roles are left untouched."""
    async with ApplicationForm.lock(guild, user):
        form = read_form(guild, user)
        if form.anchor:
            await form.anchor.delete_message(client, missing_ok=True)
        form.remove()

    logger.info(f"🗑️ Removed application of {user} in guild {guild}")
    return form
