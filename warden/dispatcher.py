"""Interaction Dispatcher - the lifecycle of one interaction

classify -> resolve routing key -> look up handler -> invoke -> report.

Buttons and modals are routed here by the base of their custom id. Slash
commands are routed by name through the ``app_commands.CommandTree`` the
registry's commands are installed on, and the tree hands their failures
back through ``on_command_error``.

Handlers answer the interaction themselves. When a handler fails, the
dispatcher answers for it with a single ephemeral error embed: through the
initial response if nothing has been sent yet, otherwise through the
follow-up webhook.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import discord
from discord import app_commands

from .config import logger
from .custom_id import CustomId, decode
from .errors import InvalidField, InvalidRouting, MissingField, PlatformError, PreconditionFailed, WardenError
from .options import ModalFields
from .registry import InteractionKind, Registry
from .ui_components import error_embed

KIND_BY_TYPE = {
    discord.InteractionType.application_command: InteractionKind.COMMAND,
    discord.InteractionType.component: InteractionKind.COMPONENT,
    discord.InteractionType.modal_submit: InteractionKind.MODAL,
}

UNEXPECTED_ERROR = "Something went wrong while handling this interaction."


def classify(interaction: discord.Interaction) -> Optional[InteractionKind]:
    """Map an interaction onto a handler table, or None for ignored kinds."""
    return KIND_BY_TYPE.get(interaction.type)


def routing_key(kind: InteractionKind, interaction: discord.Interaction) -> Tuple[str, Optional[CustomId]]:
    """Return the registry key of a button or modal and its decoded custom id."""
    custom_id = decode((interaction.data or {}).get("custom_id", ""))
    return custom_id.base, custom_id


def command_failure(error: app_commands.AppCommandError) -> Exception:
    """The error a failed slash command is reported as."""
    if isinstance(error, app_commands.CommandInvokeError):
        return error.original
    if isinstance(error, app_commands.CommandNotFound):
        return InvalidRouting(InteractionKind.COMMAND, " ".join([*error.parents, error.name]))
    if isinstance(error, app_commands.TransformerError):
        return InvalidField(error.type.name, error.value)
    if isinstance(error, app_commands.NoPrivateMessage):
        return MissingField("guild")
    if isinstance(error, app_commands.CheckFailure):
        return PreconditionFailed(str(error))
    return error

# ============================================================================
# REQUEST CONTEXT
# ============================================================================

@dataclass
class Request:
    """Everything a handler needs to serve one interaction."""

    client: discord.Client
    interaction: discord.Interaction
    kind: InteractionKind
    key: str
    custom_id: Optional[CustomId] = None
    registry: Optional[Registry] = None

    @classmethod
    def for_command(cls, interaction: discord.Interaction, key: str) -> "Request":
        """Request for a slash command callback invoked by the command tree."""
        logger.info(f"📥 Received command '{key}' from {interaction.user} (guild {interaction.guild_id})")
        return cls(interaction.client, interaction, InteractionKind.COMMAND, key)

    @property
    def guild_id(self) -> int:
        """The guild the interaction happened in.

        Raises:
            MissingField: when used from a DM
        """
        if self.interaction.guild_id is None:
            raise MissingField("guild")
        return self.interaction.guild_id

    @property
    def user_id(self) -> int:
        return self.interaction.user.id

    @property
    def name(self) -> str:
        """Full component name (``poll_choice``), or the command name."""
        return self.custom_id.name if self.custom_id else self.key

    @property
    def fields(self) -> ModalFields:
        return ModalFields.from_interaction(self.interaction)

    def arg(self, index: int, name: str) -> str:
        """Positional custom id argument."""
        args = self.custom_id.args if self.custom_id else []
        if index >= len(args) or args[index] == "":
            raise MissingField(name)
        return args[index]

    def int_arg(self, index: int, name: str) -> int:
        value = self.arg(index, name)
        try:
            return int(value)
        except ValueError:
            raise InvalidField(name, value) from None

    async def respond(self, content: Optional[str] = None, *, embed=None, embeds=None, view=None, ephemeral: bool = True):
        """Send the reply, or a follow-up if the interaction was already answered."""
        kwargs = {"ephemeral": ephemeral}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        if embeds is not None:
            kwargs["embeds"] = embeds
        if view is not None:
            kwargs["view"] = view

        if self.interaction.response.is_done():
            await self.interaction.followup.send(**kwargs)
        else:
            await self.interaction.response.send_message(**kwargs)

    async def send_modal(self, modal: discord.ui.Modal):
        await self.interaction.response.send_modal(modal)

    async def edit_origin(self, **kwargs):
        """Edit the message the clicked button is attached to."""
        await self.interaction.response.edit_message(**kwargs)

# ============================================================================
# DISPATCHER
# ============================================================================

class Dispatcher:
    """Routes interactions to the handlers of a ``Registry``."""

    def __init__(self, client: discord.Client, registry: Registry):
        self.client = client
        self.registry = registry

    def install(self, tree: app_commands.CommandTree):
        """Add the registry's slash commands to ``tree`` and report their failures."""
        for command in self.registry.commands():
            tree.add_command(command)
        tree.error(self.on_command_error)

    async def dispatch(self, interaction: discord.Interaction):
        kind = classify(interaction)
        # Slash commands are invoked by the command tree
        if kind is None or kind is InteractionKind.COMMAND:
            return

        key = "?"
        try:
            key, custom_id = routing_key(kind, interaction)
            logger.info(f"📥 Received {kind} '{key}' from {interaction.user} (guild {interaction.guild_id})")

            handler = self.registry.resolve(kind, key)
            await handler(Request(
                client=self.client,
                interaction=interaction,
                kind=kind,
                key=key,
                custom_id=custom_id,
                registry=self.registry,
            ))
        except Exception as error:
            await self.fail(interaction, kind, key, error)
        else:
            logger.info(f"✅ Success {kind} '{key}' from {interaction.user}")

    async def on_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Error hook of the command tree."""
        command = interaction.command
        key = command.qualified_name if command else (interaction.data or {}).get("name", "?")
        await self.fail(interaction, InteractionKind.COMMAND, key, command_failure(error))

    async def fail(self, interaction: discord.Interaction, kind: InteractionKind, key: str, error: Exception):
        """Log a failed interaction and report it to the user."""
        if isinstance(error, discord.HTTPException):
            error = PlatformError(f"Discord rejected the request ({error.status}): {error.text or error}")

        if isinstance(error, WardenError):
            logger.warning(f"❌ Failed {kind} '{key}' from {interaction.user}: {error}")
            await self.report(interaction, error)
        else:
            logger.error(f"💥 Unexpected error in {kind} '{key}': {error}", exc_info=error)
            await self.report(interaction, UNEXPECTED_ERROR)

    async def report(self, interaction: discord.Interaction, error):
        """Tell the user their interaction failed; give up quietly if that fails too."""
        embed = error_embed(error)
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.DiscordException as e:
            logger.error(f"⚠️ Unable to inform {interaction.user} of the error: {e}")
