"""Tests for the interaction lifecycle: routing, requests and error reporting."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord import app_commands

from tests.conftest import (
    COMMAND,
    COMPONENT,
    GUILD_ID,
    MODAL,
    OWNER_ID,
    component_data,
    make_interaction,
    modal_data,
    sent_embed,
)
from warden.commands.general import ping_command
from warden.dispatcher import UNEXPECTED_ERROR, Dispatcher, Request, classify, command_failure, routing_key
from warden.errors import InvalidField, InvalidRouting, MissingField, PreconditionFailed
from warden.registry import Feature, InteractionKind, Registry


def make_dispatcher(client, handler) -> Dispatcher:
    return Dispatcher(client, Registry([Feature("test", component=handler)]))


def followup_embed(interaction) -> discord.Embed:
    return interaction.followup.send.await_args.kwargs["embed"]


def command_interaction(**kwargs):
    interaction = make_interaction(COMMAND, {"name": "ping"}, **kwargs)
    interaction.command = ping_command
    return interaction


class TestRouting:
    def test_classify(self) -> None:
        assert classify(make_interaction(COMMAND, {})) is InteractionKind.COMMAND
        assert classify(make_interaction(COMPONENT, {})) is InteractionKind.COMPONENT
        assert classify(make_interaction(MODAL, {})) is InteractionKind.MODAL
        assert classify(make_interaction(discord.InteractionType.ping, {})) is None

    def test_component_key(self) -> None:
        interaction = make_interaction(COMPONENT, component_data("poll_choice;1;2"))
        key, custom_id = routing_key(InteractionKind.COMPONENT, interaction)
        assert key == "poll"
        assert custom_id.args == ["1", "2"]

    def test_modal_key(self) -> None:
        interaction = make_interaction(MODAL, modal_data("apply_update;5;1", {}))
        key, custom_id = routing_key(InteractionKind.MODAL, interaction)
        assert key == "apply"
        assert custom_id.name == "apply_update"


class TestDispatch:
    async def test_handler_receives_request(self, client) -> None:
        seen = []

        async def handler(request: Request) -> None:
            seen.append(request)
            await request.respond("hi")

        interaction = make_interaction(COMPONENT, component_data("test_button;3"))
        await make_dispatcher(client, handler).dispatch(interaction)

        request = seen[0]
        assert request.key == "test"
        assert request.name == "test_button"
        assert request.guild_id == GUILD_ID
        assert request.user_id == OWNER_ID
        assert request.int_arg(0, "count") == 3
        interaction.response.send_message.assert_awaited_once_with(content="hi", ephemeral=True)

    async def test_slash_commands_are_left_to_the_tree(self, client) -> None:
        handler = AsyncMock()
        interaction = make_interaction(COMMAND, {"name": "test"})
        await make_dispatcher(client, handler).dispatch(interaction)

        handler.assert_not_awaited()
        interaction.response.send_message.assert_not_awaited()

    async def test_unknown_route_reports_once(self, run, data_root) -> None:
        interaction = await run(COMPONENT, component_data("nothing_here;1"))

        interaction.response.send_message.assert_awaited_once()
        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True
        assert "Unknown component: 'nothing'" in sent_embed(interaction).description
        interaction.followup.send.assert_not_awaited()
        assert list(data_root.rglob("*")) == []

    async def test_malformed_custom_id(self, run) -> None:
        interaction = await run(MODAL, modal_data("_broken", {}))
        assert "Invalid value for custom id" in sent_embed(interaction).description

    async def test_ignored_interaction_type(self, dispatcher) -> None:
        interaction = make_interaction(discord.InteractionType.autocomplete, {"name": "poll"})
        await dispatcher.dispatch(interaction)
        interaction.response.send_message.assert_not_awaited()

    async def test_error_after_reply_uses_followup(self, client) -> None:
        async def handler(request: Request) -> None:
            await request.respond("working on it")
            raise PreconditionFailed("That did not work")

        interaction = make_interaction(COMPONENT, component_data("test"))
        await make_dispatcher(client, handler).dispatch(interaction)

        interaction.response.send_message.assert_awaited_once()
        interaction.followup.send.assert_awaited_once()
        assert interaction.followup.send.await_args.kwargs["ephemeral"] is True
        assert followup_embed(interaction).description == "> That did not work"

    async def test_discord_rejection_becomes_platform_error(self, client) -> None:
        async def handler(request: Request) -> None:
            raise discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Access")

        interaction = make_interaction(COMPONENT, component_data("test"))
        await make_dispatcher(client, handler).dispatch(interaction)

        assert sent_embed(interaction).description == "> Discord rejected the request (403): Missing Access"

    async def test_unexpected_error_is_masked(self, client) -> None:
        async def handler(request: Request) -> None:
            raise KeyError("secret internals")

        interaction = make_interaction(COMPONENT, component_data("test"))
        await make_dispatcher(client, handler).dispatch(interaction)

        assert sent_embed(interaction).description == f"> {UNEXPECTED_ERROR}"

    async def test_failed_report_is_logged(self, client) -> None:
        async def handler(request: Request) -> None:
            raise PreconditionFailed("nope")

        interaction = make_interaction(COMPONENT, component_data("test"))
        interaction.response.send_message = AsyncMock(
            side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown interaction")
        )
        await make_dispatcher(client, handler).dispatch(interaction)

        interaction.response.send_message.assert_awaited_once()

    async def test_guild_only_operation_in_dm(self, client) -> None:
        async def handler(request: Request) -> None:
            await request.respond(f"guild {request.guild_id}")

        interaction = make_interaction(COMPONENT, component_data("test"), guild_id=None)
        await make_dispatcher(client, handler).dispatch(interaction)

        assert sent_embed(interaction).description == "> Missing value: guild"


class TestCommandErrors:
    def test_invoke_error_is_unwrapped(self) -> None:
        original = PreconditionFailed("nope")
        assert command_failure(app_commands.CommandInvokeError(ping_command, original)) is original

    def test_unknown_command(self) -> None:
        error = command_failure(app_commands.CommandNotFound("send", ["poll"]))
        assert isinstance(error, InvalidRouting)
        assert str(error) == "Unknown command: 'poll send'"

    def test_option_that_does_not_convert(self) -> None:
        error = command_failure(app_commands.TransformerError("abc", discord.AppCommandOptionType.integer, MagicMock()))
        assert isinstance(error, InvalidField)
        assert str(error) == "Invalid value for integer: 'abc'"

    def test_guild_only_command_in_dm(self) -> None:
        error = command_failure(app_commands.NoPrivateMessage())
        assert isinstance(error, MissingField)

    def test_failed_check(self) -> None:
        error = command_failure(app_commands.MissingPermissions(["manage_roles"]))
        assert isinstance(error, PreconditionFailed)

    async def test_tree_errors_are_reported(self, dispatcher) -> None:
        interaction = command_interaction()
        forbidden = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Access")

        await dispatcher.on_command_error(interaction, app_commands.CommandInvokeError(ping_command, forbidden))

        assert sent_embed(interaction).description == "> Discord rejected the request (403): Missing Access"
        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True

    async def test_unexpected_command_error_is_masked(self, dispatcher) -> None:
        interaction = command_interaction()

        await dispatcher.on_command_error(interaction, app_commands.CommandInvokeError(ping_command, KeyError("x")))

        assert sent_embed(interaction).description == f"> {UNEXPECTED_ERROR}"

    async def test_error_without_command_uses_payload_name(self, dispatcher) -> None:
        interaction = make_interaction(COMMAND, {"name": "gone"})
        interaction.command = None

        await dispatcher.on_command_error(interaction, app_commands.CommandNotFound("gone", []))

        assert sent_embed(interaction).description == "> Unknown command: 'gone'"


class TestInstall:
    def test_install_adds_commands_and_error_hook(self, dispatcher) -> None:
        tree = MagicMock()
        dispatcher.install(tree)

        added = [call.args[0] for call in tree.add_command.call_args_list]
        assert added == dispatcher.registry.commands()
        tree.error.assert_called_once_with(dispatcher.on_command_error)


class TestRequest:
    def make_request(self, client, custom_id: str) -> Request:
        interaction = make_interaction(COMPONENT, component_data(custom_id))
        key, decoded = routing_key(InteractionKind.COMPONENT, interaction)
        return Request(client, interaction, InteractionKind.COMPONENT, key, decoded)

    def test_arguments(self, client) -> None:
        request = self.make_request(client, "poll_next;5;6;7")
        assert request.name == "poll_next"
        assert request.int_arg(2, "page") == 7

    def test_missing_argument(self, client) -> None:
        with pytest.raises(MissingField):
            self.make_request(client, "poll_next;5").arg(1, "message")

    def test_non_numeric_argument(self, client) -> None:
        with pytest.raises(InvalidField):
            self.make_request(client, "poll_next;abc").int_arg(0, "user")

    def test_command_request(self, client) -> None:
        interaction = command_interaction()
        interaction.client = client
        request = Request.for_command(interaction, "ping")

        assert request.client is client
        assert request.kind is InteractionKind.COMMAND
        assert request.name == "ping"
        assert request.custom_id is None

    async def test_respond_after_answer_uses_followup(self, client) -> None:
        request = self.make_request(client, "poll_next;5")
        await request.respond("first")
        await request.respond("second", ephemeral=False)

        request.interaction.response.send_message.assert_awaited_once_with(content="first", ephemeral=True)
        request.interaction.followup.send.assert_awaited_once_with(content="second", ephemeral=False)
