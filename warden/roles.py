"""Role Selectors - self-assignable role buttons

A moderator drafts a selector with ``/role create`` (one toggle per role),
previews it with ``/role list`` and posts it with ``/role send``, which
deletes the draft. Posted buttons carry only the role id, so they keep
working without any stored state.
"""
from typing import List

import discord
from pydantic import BaseModel

from .config import BOT_COLOR, logger
from .custom_id import CustomId
from .errors import InvalidField, PreconditionFailed, RecordNotFound
from .member_helpers import has_role
from .storage import Record, Req
from .ui_components import button, parse_emoji, static_view

NAME = "role"

BUTTON_TOGGLE = f"{NAME}_toggle"

MAX_TOGGLES = 25


class Toggle(BaseModel):
    role: int
    label: str
    icon: str


class Selector(Record):
    """A moderator's unsent role selector."""

    guild: int
    user: int
    roles: List[Toggle] = []

    @classmethod
    def key_for(cls, guild: int, user: int) -> Req["Selector"]:
        return Req(cls, f"{NAME}/{guild}", str(user))

    def as_req(self) -> Req["Selector"]:
        return self.key_for(self.guild, self.user)

    @classmethod
    def load(cls, guild: int, user: int) -> "Selector":
        try:
            return cls.read(guild, user)
        except RecordNotFound:
            return cls(guild=guild, user=user)


def selector_view(selector: Selector, disabled: bool = False) -> discord.ui.View:
    return static_view(
        [
            button(CustomId.new(BUTTON_TOGGLE).arg(toggle.role), toggle.label, emoji=toggle.icon)
            for toggle in selector.roles
        ],
        disabled=disabled,
    )


async def add_toggle(guild: int, user: int, role: int, label: str, icon: str) -> Selector:
    """Add a role to the draft.

    Raises:
        InvalidField: if ``icon`` is not an emoji
        PreconditionFailed: if the role is already listed or the draft is full
    """
    emoji = parse_emoji(icon)
    if emoji is None:
        raise InvalidField("icon", icon)

    async with Selector.lock(guild, user):
        selector = Selector.load(guild, user)
        if any(toggle.role == role for toggle in selector.roles):
            raise PreconditionFailed(f"A selector for \"{label}\" already exists")
        if len(selector.roles) >= MAX_TOGGLES:
            raise PreconditionFailed(f"A role selector holds at most {MAX_TOGGLES} roles")

        selector.roles.append(Toggle(role=role, label=label, icon=str(emoji)))
        selector.write()
    return selector


async def remove_toggle(guild: int, user: int, role: int) -> Selector:
    async with Selector.lock(guild, user):
        selector = Selector.load(guild, user)
        if not any(toggle.role == role for toggle in selector.roles):
            raise PreconditionFailed("That role has no selector")

        selector.roles = [toggle for toggle in selector.roles if toggle.role != role]
        selector.write()
    return selector


async def send(client: discord.Client, guild: int, user: int, channel_id: int, text: str) -> discord.Message:
    """Post the drafted buttons under an embed titled ``text`` and delete the draft."""
    async with Selector.lock(guild, user):
        selector = Selector.load(guild, user)
        if not selector.roles:
            raise PreconditionFailed("No selectors have been created")

        embed = discord.Embed(title=text, color=BOT_COLOR)
        channel = client.get_partial_messageable(channel_id, guild_id=guild)
        message = await channel.send(embed=embed, view=selector_view(selector))
        selector.remove()

    logger.info(f"🎭 Role selector with {len(selector.roles)} roles sent in guild {guild}")
    return message


async def toggle_role(member: discord.Member, role: int) -> bool:
    """Give ``member`` the role, or take it away if they already have it.

    Returns:
        True if the role was added
    """
    target = discord.Object(id=role)
    if has_role(member, role):
        await member.remove_roles(target, reason="Role selector")
        return False
    await member.add_roles(target, reason="Role selector")
    return True
