"""Tests for guild applications: configuration, submission and review."""

from unittest.mock import MagicMock

import discord
import pytest
from discord import app_commands
from pydantic import ValidationError

from tests.conftest import (
    CHANNEL_ID,
    COMPONENT,
    GUILD_ID,
    MODAL,
    component_data,
    make_member,
    make_role,
    make_text_channel,
    modal_data,
    sent_embed,
)
from warden import applications
from warden.applications import ApplicationConfig, ApplicationContent, ApplicationForm, Status
from warden.errors import InvalidField, PreconditionFailed

REVIEW_CHANNEL = 666666666666666666
ROLE_ID = 777777777777777777
APPLICANT = 888888888888888888


def make_config(questions=("Why do you want to join?", "How did you find us?")) -> ApplicationConfig:
    return ApplicationConfig(
        guild=GUILD_ID,
        channel=REVIEW_CHANNEL,
        role=ROLE_ID,
        content=ApplicationContent(title="Join us", description="Apply below", questions=list(questions)),
    )


@pytest.fixture
async def configured(client) -> ApplicationConfig:
    return await applications.configure(client, make_config(), CHANNEL_ID)


@pytest.fixture
async def submitted(client, configured) -> ApplicationForm:
    return await applications.submit(client, GUILD_ID, APPLICANT, ["Fun", "A friend"])


def error_of(interaction) -> str:
    return interaction.response.send_message.await_args.kwargs["embed"].description


class TestStatus:
    def test_parse(self) -> None:
        assert Status.parse("3") is Status.RESEND

    @pytest.mark.parametrize("value", ["accepted", 9])
    def test_parse_rejects(self, value) -> None:
        with pytest.raises(InvalidField):
            Status.parse(value)

    def test_display(self) -> None:
        assert str(Status.ACCEPTED) == "👍 Accepted"


class TestConfiguration:
    def test_question_limits(self) -> None:
        with pytest.raises(ValidationError):
            make_config(questions=())
        with pytest.raises(ValidationError):
            make_config(questions=[f"Q{number}" for number in range(6)])

    async def test_configure_posts_card(self, client, configured) -> None:
        stored = ApplicationConfig.read(GUILD_ID)
        assert stored.anchor.channel == CHANNEL_ID
        sent = client.channel(CHANNEL_ID).sent[-1]
        assert sent["embed"].title == "Join us"
        assert [item.custom_id for item in sent["view"].children] == ["apply_modal", "apply_about"]

    async def test_reconfigure_replaces_card(self, client, configured) -> None:
        await applications.configure(client, make_config(), CHANNEL_ID)

        old = client.channel(CHANNEL_ID).messages[configured.anchor.message]
        old.delete.assert_awaited_once()
        assert ApplicationConfig.read(GUILD_ID).anchor.message != configured.anchor.message

    async def test_modify_role_only_keeps_card(self, client, configured) -> None:
        config = await applications.modify(client, GUILD_ID, CHANNEL_ID, role=1234)

        assert config.role == 1234
        assert config.anchor == configured.anchor
        assert len(client.channel(CHANNEL_ID).sent) == 1

    async def test_modify_questions_reposts_card(self, client, configured) -> None:
        config = await applications.modify(client, GUILD_ID, CHANNEL_ID, questions={0: "Who are you?", 2: "Anything else?"})

        assert config.content.questions == ["Who are you?", "How did you find us?", "Anything else?"]
        assert config.anchor != configured.anchor

    async def test_modify_before_configure(self, client) -> None:
        with pytest.raises(PreconditionFailed):
            await applications.modify(client, GUILD_ID, CHANNEL_ID, title="Hello")

    async def test_config_command(self, invoke, client) -> None:
        interaction = await invoke(
            "apply config",
            title="Join us",
            description="Line one\\nLine two",
            output_channel=make_text_channel(REVIEW_CHANNEL),
            acceptance_role=make_role(ROLE_ID, "Member"),
            question_1="Why?",
            question_3="How?",
        )

        assert sent_embed(interaction).title == "✅ Configured applications!"
        config = ApplicationConfig.read(GUILD_ID)
        assert config.channel == REVIEW_CHANNEL
        assert config.role == ROLE_ID
        assert config.content.description == "Line one\nLine two"
        assert config.content.questions == ["Why?", "How?"]


class TestSubmission:
    async def test_submit_posts_form(self, client, submitted) -> None:
        assert submitted.status is Status.PENDING
        assert submitted.anchor.channel == REVIEW_CHANNEL

        view = client.channel(REVIEW_CHANNEL).sent[-1]["view"]
        assert [item.custom_id for item in view.children] == [
            f"apply_accept;{APPLICANT}",
            f"apply_deny;{APPLICANT}",
            f"apply_resend;{APPLICANT}",
        ]
        assert not any(item.disabled for item in view.children)

    async def test_submit_without_config(self, client) -> None:
        with pytest.raises(PreconditionFailed):
            await applications.submit(client, GUILD_ID, APPLICANT, ["Fun"])

    async def test_pending_form_blocks_submission(self, client, submitted) -> None:
        with pytest.raises(PreconditionFailed) as info:
            await applications.submit(client, GUILD_ID, APPLICANT, ["Again"])
        assert str(info.value) == "Your application is pending"

    async def test_resend_allows_submission(self, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.RESEND)
        form = await applications.submit(client, GUILD_ID, APPLICANT, ["Second try", ""])
        assert form.status is Status.PENDING
        assert form.answers == ["Second try", ""]

    async def test_apply_button_opens_questions(self, run, configured) -> None:
        interaction = await run(COMPONENT, component_data("apply_modal"), user_id=APPLICANT)

        modal = interaction.response.send_modal.await_args.args[0]
        assert modal.custom_id == "apply_submit"
        assert [item.label for item in modal.children] == configured.content.questions

    async def test_apply_button_when_pending(self, run, submitted) -> None:
        interaction = await run(COMPONENT, component_data("apply_modal"), user_id=APPLICANT)

        interaction.response.send_modal.assert_not_awaited()
        assert error_of(interaction) == "> Your application is pending"

    async def test_submit_modal(self, run, client, configured) -> None:
        await run(MODAL, modal_data("apply_submit", {"0": "Fun"}), user_id=APPLICANT)

        form = ApplicationForm.read(GUILD_ID, APPLICANT)
        assert form.answers == ["Fun", ""]

    async def test_about_button(self, run) -> None:
        interaction = await run(COMPONENT, component_data("apply_about"))
        assert sent_embed(interaction).title == "About Guild Applications"


class TestReview:
    async def test_accept_grants_role_and_notifies(self, client, submitted) -> None:
        form = await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED, reason="Welcome!")

        member = client.member(APPLICANT)
        member.add_roles.assert_awaited_once()
        assert member.add_roles.await_args.args[0].id == ROLE_ID
        member.send.assert_awaited_once()
        assert "Welcome!" in member.send.await_args.kwargs["embed"].description

        assert ApplicationForm.read(GUILD_ID, APPLICANT) == form
        card = client.channel(REVIEW_CHANNEL).messages[submitted.anchor.message]
        view = card.edit.await_args.kwargs["view"]
        assert all(item.disabled for item in view.children)

    async def test_deny_revokes_role(self, client, submitted) -> None:
        member = client.member(APPLICANT)
        member.roles = [MagicMock(id=ROLE_ID)]

        await applications.update(client, GUILD_ID, APPLICANT, Status.DENIED)

        member.remove_roles.assert_awaited_once()
        member.add_roles.assert_not_awaited()

    async def test_same_status_rejected(self, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED)
        with pytest.raises(PreconditionFailed) as info:
            await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED, overwrite=True)
        assert str(info.value) == "The application already has this status"

    async def test_finalized_needs_overwrite(self, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED)
        client.member(APPLICANT).roles = [MagicMock(id=ROLE_ID)]

        with pytest.raises(PreconditionFailed):
            await applications.update(client, GUILD_ID, APPLICANT, Status.DENIED)

        form = await applications.update(client, GUILD_ID, APPLICANT, Status.DENIED, overwrite=True)
        assert form.status is Status.DENIED
        client.member(APPLICANT).remove_roles.assert_awaited_once()

    async def test_pending_is_not_a_review_status(self, client, submitted) -> None:
        with pytest.raises(InvalidField):
            await applications.update(client, GUILD_ID, APPLICANT, Status.PENDING)

    async def test_update_unknown_form(self, client, configured) -> None:
        with pytest.raises(PreconditionFailed):
            await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED)

    async def test_closed_dms_do_not_fail_review(self, client, submitted) -> None:
        client.member(APPLICANT).send.side_effect = discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user"
        )
        form = await applications.update(client, GUILD_ID, APPLICANT, Status.RESEND)
        assert form.status is Status.RESEND

    async def test_status_button_asks_for_reason(self, run, submitted) -> None:
        interaction = await run(COMPONENT, component_data(f"apply_deny;{APPLICANT}"))
        modal = interaction.response.send_modal.await_args.args[0]
        assert modal.custom_id == f"apply_update;{APPLICANT};2"

    async def test_reason_modal_updates_form(self, run, client, submitted) -> None:
        interaction = await run(MODAL, modal_data(f"apply_update;{APPLICANT};1", {"reason": "Great answers"}))

        assert sent_embed(interaction).title == "✅ Updated user application!"
        form = ApplicationForm.read(GUILD_ID, APPLICANT)
        assert form.status is Status.ACCEPTED
        assert form.reason == "Great answers"

    async def test_reason_modal_on_finalized_form(self, run, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.DENIED)
        interaction = await run(MODAL, modal_data(f"apply_update;{APPLICANT};1", {"reason": ""}))

        assert error_of(interaction) == "> The user's application is already finalized"
        assert ApplicationForm.read(GUILD_ID, APPLICANT).status is Status.DENIED

    async def test_update_command(self, invoke, client, submitted) -> None:
        await invoke(
            "apply update",
            user=make_member(APPLICANT),
            status=app_commands.Choice(name=str(Status.DENIED), value=Status.DENIED.value),
            reason="Not this time",
        )

        form = ApplicationForm.read(GUILD_ID, APPLICANT)
        assert form.status is Status.DENIED
        assert form.reason == "Not this time"

    async def test_update_command_reports_precondition(self, invoke, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.DENIED)

        interaction = await invoke(
            "apply update",
            user=make_member(APPLICANT),
            status=app_commands.Choice(name=str(Status.ACCEPTED), value=Status.ACCEPTED.value),
        )

        assert error_of(interaction) == "> The user's application is already finalized"
        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True


class TestRemoval:
    async def test_remove_keeps_roles(self, client, submitted) -> None:
        await applications.update(client, GUILD_ID, APPLICANT, Status.ACCEPTED)
        member = client.member(APPLICANT)
        member.roles = [MagicMock(id=ROLE_ID)]

        await applications.remove(client, GUILD_ID, APPLICANT)

        assert not ApplicationForm.exists(GUILD_ID, APPLICANT)
        member.remove_roles.assert_not_awaited()
        client.channel(REVIEW_CHANNEL).messages[submitted.anchor.message].delete.assert_awaited_once()

    async def test_remove_command_revokes_role(self, invoke, client, submitted) -> None:
        member = client.member(APPLICANT)
        member.roles = [MagicMock(id=ROLE_ID)]

        await invoke("apply remove", user=make_member(APPLICANT))

        assert not ApplicationForm.exists(GUILD_ID, APPLICANT)
        member.remove_roles.assert_awaited_once()
        assert member.remove_roles.await_args.args[0].id == ROLE_ID

    async def test_remove_command_member_left(self, invoke, client, submitted) -> None:
        client.guild.get_member.side_effect = None
        client.guild.get_member.return_value = None
        client.guild.fetch_member.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member")

        interaction = await invoke("apply remove", user=make_member(APPLICANT))

        assert sent_embed(interaction).title == "✅ Removed user application!"
        assert not ApplicationForm.exists(GUILD_ID, APPLICANT)

    async def test_remove_unknown_form(self, client, configured) -> None:
        with pytest.raises(PreconditionFailed):
            await applications.remove(client, GUILD_ID, APPLICANT)
