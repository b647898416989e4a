"""Shared test fixtures.

All Discord objects are faked - no real Discord connection required.
"""
import itertools
import weakref
from datetime import datetime
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord import app_commands

from warden import storage
from warden.commands import build_registry
from warden.dispatcher import Dispatcher

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222
OWNER_ID = 333333333333333333

COMMAND = discord.InteractionType.application_command
COMPONENT = discord.InteractionType.component
MODAL = discord.InteractionType.modal_submit

_sequence = itertools.count(1)


def snowflake(moment: Optional[datetime] = None) -> int:
    """A unique snowflake whose timestamp is ``moment`` (default now)."""
    return discord.utils.time_snowflake(moment or discord.utils.utcnow()) + next(_sequence)

# ---------------------------------------------------------------------------
# Fake Discord objects
# ---------------------------------------------------------------------------


class FakeMessage:
    def __init__(self, message_id: int, channel: "FakeChannel"):
        self.id = message_id
        self.channel = channel
        self.edit = AsyncMock()
        self.delete = AsyncMock()


class FakeChannel:
    """Partial messageable that records what was sent to it."""

    def __init__(self, channel_id: int):
        self.id = channel_id
        self.sent = []
        self.messages = {}
        self.send = AsyncMock(side_effect=self._send)

    def _send(self, **kwargs):
        message = FakeMessage(snowflake(), self)
        self.sent.append(kwargs)
        self.messages[message.id] = message
        return message

    def get_partial_message(self, message_id: int) -> FakeMessage:
        return self.messages.setdefault(message_id, FakeMessage(message_id, self))


def make_member(user_id: int, role_ids=(), bot: bool = False) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.name = f"user{user_id}"
    member.bot = bot
    member.accent_color = None
    member.roles = [MagicMock(id=role_id) for role_id in role_ids]
    member.display_avatar = MagicMock()
    member.display_avatar.url = f"https://cdn.discordapp.com/avatars/{user_id}.png"
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    member.send = AsyncMock()
    member.__str__ = MagicMock(return_value=member.name)
    return member


def make_role(role_id: int, name: str) -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.id = role_id
    role.name = name
    return role


def make_text_channel(channel_id: int) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    return channel


class FakeClient:
    """Just enough of discord.Client for the handlers."""

    def __init__(self):
        self.channels = {}
        self.members = {}
        self.latency = 0.042
        self.user = make_member(999, bot=True)

        self.guild = MagicMock()
        self.guild.id = GUILD_ID
        self.guild.name = "Test Guild"
        self.guild.icon = None
        self.guild.get_member = MagicMock(side_effect=self.member)
        self.guild.fetch_member = AsyncMock(side_effect=self.member)

    def member(self, user_id: int) -> MagicMock:
        return self.members.setdefault(user_id, make_member(user_id))

    def channel(self, channel_id: int = CHANNEL_ID) -> FakeChannel:
        return self.channels.setdefault(channel_id, FakeChannel(channel_id))

    def get_partial_messageable(self, channel_id: int, guild_id: Optional[int] = None) -> FakeChannel:
        return self.channel(channel_id)

    def get_user(self, user_id: int):
        return self.member(user_id)

    async def fetch_user(self, user_id: int):
        return self.member(user_id)

    def get_guild(self, guild_id: int):
        return self.guild

    async def fetch_guild(self, guild_id: int):
        return self.guild


def make_response() -> MagicMock:
    """Interaction response that remembers whether it was used."""
    response = MagicMock()
    state = {"done": False}

    def answer(*args, **kwargs):
        state["done"] = True

    response.is_done = MagicMock(side_effect=lambda: state["done"])
    for name in ("send_message", "send_modal", "defer", "edit_message"):
        setattr(response, name, AsyncMock(side_effect=answer))
    return response


def make_interaction(
    kind: discord.InteractionType,
    data: dict,
    user_id: int = OWNER_ID,
    guild_id: Optional[int] = GUILD_ID,
    channel_id: int = CHANNEL_ID,
    member: Optional[MagicMock] = None,
) -> MagicMock:
    interaction = MagicMock()
    interaction.type = kind
    interaction.data = data
    interaction.guild_id = guild_id
    interaction.channel_id = channel_id
    interaction.user = member or make_member(user_id)
    interaction.response = make_response()
    interaction.followup = AsyncMock()
    return interaction

# ---------------------------------------------------------------------------
# Interaction payloads
# ---------------------------------------------------------------------------


def component_data(custom_id) -> dict:
    return {"custom_id": str(custom_id), "component_type": 2}


def modal_data(custom_id, fields: dict) -> dict:
    return {
        "custom_id": str(custom_id),
        "components": [
            {"type": 1, "components": [{"type": 4, "custom_id": key, "value": value}]}
            for key, value in fields.items()
        ],
    }


def sent_embed(interaction) -> discord.Embed:
    """The embed of the interaction's initial response."""
    return interaction.response.send_message.await_args.kwargs["embed"]

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def data_root(tmp_path, monkeypatch):
    """Every test gets an empty record store."""
    monkeypatch.setattr(storage, "DATA_ROOT", tmp_path)
    monkeypatch.setattr(storage, "_locks", weakref.WeakValueDictionary())
    return tmp_path


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def dispatcher(client) -> Dispatcher:
    return Dispatcher(client, build_registry())


@pytest.fixture
def run(dispatcher):
    """Dispatch a fake button or modal interaction and hand it back for assertions."""

    async def _run(kind, data, **kwargs):
        interaction = make_interaction(kind, data, **kwargs)
        await dispatcher.dispatch(interaction)
        return interaction

    return _run


@pytest.fixture
def invoke(client, dispatcher):
    """Run a slash command the way the command tree does.

    ``path`` is the qualified command name (``"poll input create"``) and
    ``params`` are the already transformed option values. Failures are
    wrapped in ``CommandInvokeError`` and handed to the tree's error hook.
    """

    async def _invoke(path: str, *, interaction=None, **params):
        command = dispatcher.registry.find_command(path)
        interaction = interaction or make_interaction(COMMAND, {"name": path.split()[0]})
        interaction.client = client
        interaction.command = command
        try:
            await command.callback(interaction, **params)
        except Exception as error:
            await dispatcher.on_command_error(interaction, app_commands.CommandInvokeError(command, error))
        return interaction

    return _invoke
