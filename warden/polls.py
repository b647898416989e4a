"""Polls - drafting, publishing, replying and closing

Poll lifecycle::

    Draft  (stored, no anchor)
    Active (anchor set, listed in the active index)
    Closed (output computed once, moved to the archive key)

Three kinds of poll exist. Choice polls take one vote per member out of up
to ten buttons, Response polls collect answers to up to five questions
through a modal, and Raffle polls draw a random winner among entrants.

Lock order is always poll first, then the active index.
"""
import random
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Dict, List, Literal, NamedTuple, Optional, Set, Tuple, Union

import discord
from pydantic import BaseModel, Field, model_validator

from .anchor import Anchor
from .config import BOT_COLOR, logger
from .custom_id import CustomId
from .errors import InvalidField, PreconditionFailed, RecordNotFound, StoreError, WardenError
from .member_helpers import avatar_url, get_user
from .storage import Record, Req
from .ui_components import button, parse_emoji, static_modal, static_view, text_input
from utils.discord_formatter import format_percent, timestamp, truncate, vote_bar

NAME = "poll"

BUTTON_CHOICE = f"{NAME}_choice"
BUTTON_RESPONSE = f"{NAME}_response"
BUTTON_RAFFLE = f"{NAME}_raffle"
BUTTON_REMOVE = f"{NAME}_remove"
BUTTON_RESULTS = f"{NAME}_results"
BUTTON_LAST = f"{NAME}_last"
BUTTON_NEXT = f"{NAME}_next"

MODAL_SUBMIT = f"{NAME}_submit"

MIN_HOURS = 1
MAX_HOURS = 240

NO_ANSWER = "N/A"

# ============================================================================
# MODELS
# ============================================================================

class Kind(str, Enum):
    CHOICE = "choice"
    RESPONSE = "response"
    RAFFLE = "raffle"

    @property
    def icon(self) -> str:
        return {"choice": "🔢", "response": "📝", "raffle": "🎲"}[self.value]

    @property
    def max_inputs(self) -> int:
        return {"choice": 10, "response": 5, "raffle": 0}[self.value]

    def __str__(self) -> str:
        return f"{self.icon} {self.value.title()}"

    @classmethod
    def from_ordinal(cls, value) -> "Kind":
        """Map a command choice value (0, 1, 2) onto a kind."""
        kinds = list(cls)
        try:
            index = int(value)
        except (TypeError, ValueError):
            raise InvalidField("kind", value) from None
        if not 0 <= index < len(kinds):
            raise InvalidField("kind", value)
        return kinds[index]


class PollContent(BaseModel):
    title: str
    description: str
    hours: int = Field(ge=MIN_HOURS, le=MAX_HOURS)
    image: Optional[str] = None
    hide_members: bool = False
    hide_results: bool = False


class ChoiceInput(BaseModel):
    kind: Literal["choice"] = "choice"
    label: str
    emoji: Optional[str] = None


class ResponseInput(BaseModel):
    kind: Literal["response"] = "response"
    label: str
    placeholder: Optional[str] = None


Input = Annotated[Union[ChoiceInput, ResponseInput], Field(discriminator="kind")]


class ChoiceReply(BaseModel):
    kind: Literal["choice"] = "choice"
    index: int


class ResponseReply(BaseModel):
    kind: Literal["response"] = "response"
    answers: List[str]


class RaffleReply(BaseModel):
    kind: Literal["raffle"] = "raffle"


Reply = Annotated[Union[ChoiceReply, ResponseReply, RaffleReply], Field(discriminator="kind")]


class ChoiceEntry(BaseModel):
    index: int
    votes: int
    users: List[int]


class ChoiceOutput(BaseModel):
    kind: Literal["choice"] = "choice"
    total: int
    entries: List[ChoiceEntry]

    def percent(self, entry: ChoiceEntry) -> float:
        return entry.votes / self.total if self.total else 0.0

    @property
    def pages(self) -> int:
        return len(self.entries) + 1


class RaffleOutput(BaseModel):
    kind: Literal["raffle"] = "raffle"
    winner: Optional[int] = None
    users: List[int]

    @property
    def pages(self) -> int:
        return 1


class ResponseOutput(BaseModel):
    kind: Literal["response"] = "response"
    total: int
    answers: Dict[int, List[str]]

    @property
    def pages(self) -> int:
        return len(self.answers) + 1


Output = Annotated[Union[ChoiceOutput, RaffleOutput, ResponseOutput], Field(discriminator="kind")]


class Poll(Record):
    """A member's poll. Drafts and open polls live under the owner's key,
    closed polls under the key of the message they were posted as."""

    guild: int
    user: int
    kind: Kind
    content: PollContent
    inputs: List[Input] = []
    replies: Dict[int, Reply] = {}
    anchor: Optional[Anchor] = None
    output: Optional[Output] = None

    @model_validator(mode="after")
    def check_variants(self):
        if len(self.inputs) > self.kind.max_inputs:
            raise ValueError(f"{self.kind.value} polls take at most {self.kind.max_inputs} inputs")
        for item in [*self.inputs, *self.replies.values()]:
            if item.kind != self.kind:
                raise ValueError(f"{item.kind} entry in a {self.kind.value} poll")
        if self.output is not None and self.output.kind != self.kind:
            raise ValueError(f"{self.output.kind} output in a {self.kind.value} poll")
        return self

    @classmethod
    def key_for(cls, guild: int, user: int, message: Optional[int] = None) -> Req["Poll"]:
        if message is None:
            return Req(cls, f"{NAME}/{guild}", str(user))
        return Req(cls, f"{NAME}/{guild}/{user}", str(message))

    def as_req(self) -> Req["Poll"]:
        if self.is_closed:
            return self.key_for(self.guild, self.user, self.anchor.message)
        return self.key_for(self.guild, self.user)

    @property
    def is_sent(self) -> bool:
        return self.anchor is not None

    @property
    def is_closed(self) -> bool:
        return self.output is not None

    @property
    def closes_at(self) -> datetime:
        start = self.anchor.created_at if self.anchor else discord.utils.utcnow()
        return start + timedelta(hours=self.content.hours)


class ActiveIndex(Record):
    """(guild, user) pairs of every published poll that is still open."""

    entries: Set[Tuple[int, int]] = set()

    @classmethod
    def key_for(cls) -> Req["ActiveIndex"]:
        return Req(cls, NAME, "active")

    def as_req(self) -> Req["ActiveIndex"]:
        return self.key_for()

    @classmethod
    def load(cls) -> "ActiveIndex":
        return cls.read() if cls.exists() else cls()


async def index_add(guild: int, user: int):
    async with ActiveIndex.lock():
        index = ActiveIndex.load()
        index.entries.add((guild, user))
        index.write()


async def index_discard(*keys: Tuple[int, int]):
    async with ActiveIndex.lock():
        index = ActiveIndex.load()
        index.entries.difference_update(keys)
        index.write()

# ============================================================================
# VALIDATION
# ============================================================================

def check_hours(hours: int) -> int:
    if not MIN_HOURS <= hours <= MAX_HOURS:
        raise InvalidField("hours", hours)
    return hours


def read_poll(guild: int, user: int, missing: str = "You do not have a poll") -> Poll:
    try:
        return Poll.read(guild, user)
    except RecordNotFound:
        raise PreconditionFailed(missing) from None


def read_archive(guild: int, user: int, message: int) -> Poll:
    try:
        return Poll.read(guild, user, message)
    except RecordNotFound:
        raise PreconditionFailed("These poll results no longer exist") from None


def require_draft(poll: Poll):
    if poll.is_sent:
        raise PreconditionFailed("Your poll has already been sent")


def check_inputs(poll: Poll):
    """Minimum inputs needed before a poll may be published."""
    if poll.kind is not Kind.RAFFLE and not poll.inputs:
        raise PreconditionFailed("Your poll does not have any inputs")
    if poll.kind is Kind.CHOICE and len(poll.inputs) <= 1:
        raise PreconditionFailed("Your poll must have more than one input")


def check_can_reply(poll: Poll, user: int, kind: Kind):
    if not poll.is_sent or poll.is_closed:
        raise PreconditionFailed("This poll is not open")
    if poll.user == user:
        raise PreconditionFailed("You cannot respond to your own poll")
    if poll.kind is not kind:
        raise PreconditionFailed(f"This is a {poll.kind.value} poll")


def check_can_view_results(poll: Poll, user: int):
    if poll.content.hide_results and poll.user != user:
        raise PreconditionFailed("The results of this poll are private")

# ============================================================================
# DRAFTING
# ============================================================================

async def create(guild: int, user: int, kind: Kind, content: PollContent) -> Poll:
    async with Poll.lock(guild, user):
        if Poll.exists(guild, user):
            raise PreconditionFailed("You already have a poll")
        check_hours(content.hours)

        poll = Poll(guild=guild, user=user, kind=kind, content=content)
        poll.write()

    logger.info(f"🗳️ Poll created by {user} in guild {guild} ({kind.value})")
    return poll


async def modify(guild: int, user: int, kind: Optional[Kind] = None, **changes) -> Poll:
    """Change a draft's kind or content. Options left as None are kept.

    Changing the kind removes every input.
    """
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        require_draft(poll)

        if kind is not None and kind is not poll.kind:
            poll.kind = kind
            poll.inputs = []

        updates = {key: value for key, value in changes.items() if value is not None}
        if "hours" in updates:
            check_hours(updates["hours"])
        poll.content = poll.content.model_copy(update=updates)
        poll.write()
    return poll


async def add_input(
    guild: int,
    user: int,
    label: str,
    emoji: Optional[str] = None,
    placeholder: Optional[str] = None,
) -> Poll:
    """Append an input to a draft. Invalid emoji are ignored."""
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        require_draft(poll)

        if poll.kind is Kind.RAFFLE:
            raise PreconditionFailed("Raffle polls do not support inputs")
        if len(poll.inputs) >= poll.kind.max_inputs:
            raise PreconditionFailed("No more inputs may be added")
        if any(item.label == label for item in poll.inputs):
            raise PreconditionFailed("The given input already exists")

        if poll.kind is Kind.CHOICE:
            parsed = parse_emoji(emoji)
            poll.inputs.append(ChoiceInput(label=label, emoji=str(parsed) if parsed else None))
        else:
            poll.inputs.append(ResponseInput(label=label, placeholder=placeholder))
        poll.write()
    return poll


async def remove_input(guild: int, user: int, index: int) -> Poll:
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        require_draft(poll)

        if not 0 <= index < len(poll.inputs):
            raise InvalidField("input", index)
        del poll.inputs[index]
        poll.write()
    return poll


async def discard(client: discord.Client, guild: int, user: int, force: bool = False) -> Poll:
    """Delete a draft. A published poll needs ``force`` and loses its message too."""
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        if poll.is_sent and not force:
            raise PreconditionFailed("Your poll has already been sent")

        if poll.anchor:
            await poll.anchor.delete_message(client, missing_ok=True)
            await index_discard((guild, user))
        poll.remove()

    logger.info(f"🗑️ Poll of {user} in guild {guild} discarded")
    return poll

# ============================================================================
# PUBLISHING
# ============================================================================

async def send(client: discord.Client, guild: int, user: int, channel_id: int, force: bool = False) -> Poll:
    """Publish a draft in ``channel_id`` and start its countdown.

    Args:
        client: The Discord client
        guild: Guild ID
        user: Poll owner
        channel_id: Where the poll is posted
        force: Re-send an already published poll, deleting the old message

    """
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        if poll.is_sent and not force:
            raise PreconditionFailed("Your poll has already been sent")
        check_inputs(poll)

        if poll.anchor:
            await poll.anchor.delete_message(client, missing_ok=True)

        channel = client.get_partial_messageable(channel_id, guild_id=guild)
        message = await channel.send(embed=await poll_embed(client, poll), view=poll_view(poll))

        poll.anchor = Anchor.from_message(guild, message)
        poll.write()
        await index_add(guild, user)

    logger.info(f"📣 Poll of {user} published at {poll.anchor}")
    return poll


def compute_output(poll: Poll, rng: random.Random = None) -> Union[ChoiceOutput, RaffleOutput, ResponseOutput]:
    """Tally the replies of ``poll``."""
    if poll.kind is Kind.CHOICE:
        voters: List[List[int]] = [[] for _ in poll.inputs]
        for user, reply in poll.replies.items():
            if 0 <= reply.index < len(voters):
                voters[reply.index].append(user)

        entries = [ChoiceEntry(index=index, votes=len(users), users=users) for index, users in enumerate(voters)]
        entries.sort(key=lambda entry: entry.votes, reverse=True)
        return ChoiceOutput(total=sum(entry.votes for entry in entries), entries=entries)

    if poll.kind is Kind.RAFFLE:
        users = list(poll.replies)
        winner = (rng or random).choice(users) if users else None
        return RaffleOutput(winner=winner, users=users)

    answers = {user: reply.answers for user, reply in poll.replies.items()}
    return ResponseOutput(total=len(answers), answers=answers)


async def close(client: discord.Client, guild: int, user: int) -> Poll:
    """Close an open poll, post its results and archive it."""
    async with Poll.lock(guild, user):
        poll = read_poll(guild, user)
        if poll.anchor is None:
            raise PreconditionFailed("Your poll has not been sent")
        if poll.is_closed:
            raise PreconditionFailed("Your poll has already been closed")

        try:
            await poll.anchor.message_of(client).edit(view=poll_view(poll, disabled=True))
        except discord.NotFound:
            logger.warning(f"Poll message {poll.anchor} was deleted before closing")

        poll.output = compute_output(poll)
        try:
            await poll.anchor.channel_of(client).send(embed=await results_notice_embed(client, poll), view=results_view(poll))
        except discord.NotFound:
            # A deleted channel never comes back, so the poll is archived without its results post
            logger.warning(f"Channel of poll {poll.anchor} no longer exists, results were not posted")

        Poll.key_for(guild, user, poll.anchor.message).write(poll)
        Poll.key_for(guild, user).remove()
        # An open poll stays indexed until its archive is written
        await index_discard((guild, user))

    logger.info(f"🏁 Poll of {user} in guild {guild} closed")
    return poll

# ============================================================================
# REPLIES
# ============================================================================

async def reply_choice(guild: int, owner: int, user: int, index: int) -> bool:
    """Vote for input ``index``; voting for the same input again retracts.

    Returns:
        True if the vote was recorded, False if it was removed
    """
    async with Poll.lock(guild, owner):
        poll = read_poll(guild, owner, missing="This poll is not open")
        check_can_reply(poll, user, Kind.CHOICE)
        if not 0 <= index < len(poll.inputs):
            raise InvalidField("input", index)

        current = poll.replies.get(user)
        recorded = not (isinstance(current, ChoiceReply) and current.index == index)
        if recorded:
            poll.replies[user] = ChoiceReply(index=index)
        else:
            del poll.replies[user]
        poll.write()
    return recorded


async def toggle_raffle(guild: int, owner: int, user: int) -> bool:
    """Enter or leave a raffle.

    Returns:
        True if the member is now entered
    """
    async with Poll.lock(guild, owner):
        poll = read_poll(guild, owner, missing="This poll is not open")
        check_can_reply(poll, user, Kind.RAFFLE)

        entered = user not in poll.replies
        if entered:
            poll.replies[user] = RaffleReply()
        else:
            del poll.replies[user]
        poll.write()
    return entered


async def submit_response(guild: int, owner: int, user: int, answers: List[Optional[str]]) -> ResponseReply:
    """Store a member's answers, replacing any previous ones."""
    async with Poll.lock(guild, owner):
        poll = read_poll(guild, owner, missing="This poll is not open")
        check_can_reply(poll, user, Kind.RESPONSE)

        padded = [
            (answers[index] if index < len(answers) else None) or NO_ANSWER
            for index in range(len(poll.inputs))
        ]
        reply = ResponseReply(answers=padded)
        poll.replies[user] = reply
        poll.write()
    return reply

# ============================================================================
# EXPIRY SWEEP
# ============================================================================

class SweepResult(NamedTuple):
    closed: List[Tuple[int, int]]
    pruned: List[Tuple[int, int]]
    failed: List[Tuple[int, int]]


async def sweep_active_polls(client: discord.Client, now: Optional[datetime] = None) -> SweepResult:
    """Close every expired poll and drop index entries that point nowhere.

    A poll that fails to close is logged and retried on the next sweep.
    """
    now = now or discord.utils.utcnow()
    result = SweepResult([], [], [])

    for guild, user in sorted(ActiveIndex.load().entries):
        try:
            poll = Poll.read(guild, user)
        except RecordNotFound:
            result.pruned.append((guild, user))
            continue
        except StoreError as e:
            logger.error(f"Skipping poll of {user} in guild {guild}: {e}")
            result.failed.append((guild, user))
            continue

        if poll.anchor is None or poll.is_closed:
            result.pruned.append((guild, user))
            continue
        if now < poll.closes_at:
            continue

        try:
            await close(client, guild, user)
            result.closed.append((guild, user))
        except (WardenError, discord.HTTPException) as e:
            logger.error(f"❌ Failed to close poll of {user} in guild {guild}: {e}")
            result.failed.append((guild, user))

    if result.pruned:
        await index_discard(*result.pruned)
        logger.info(f"🧹 Pruned {len(result.pruned)} stale active poll entries")
    if result.closed:
        logger.info(f"⏰ Closed {len(result.closed)} expired polls")
    return result

# ============================================================================
# RENDERING
# ============================================================================

async def poll_embed(client: discord.Client, poll: Poll) -> discord.Embed:
    user = await get_user(client, poll.user)

    members = "*Members are hidden*" if poll.content.hide_members else "*Members are shown*"
    results = "*Results are hidden*" if poll.content.hide_results else "*Results are shown*"

    description = f"**Type:** {poll.kind}\n"
    description += f"**Closes:** {timestamp(poll.closes_at)}\n\n"
    description += f"{members}\n{results}\n\n> {poll.content.description}"

    embed = discord.Embed(title=poll.content.title, description=description, color=BOT_COLOR)
    embed.set_author(name=str(user), icon_url=avatar_url(user))
    embed.set_thumbnail(url=avatar_url(user))
    if poll.content.image:
        embed.set_image(url=poll.content.image)
    return embed


def poll_view(poll: Poll, disabled: bool = False) -> discord.ui.View:
    if poll.kind is Kind.CHOICE:
        buttons = [
            button(CustomId.new(BUTTON_CHOICE).arg(poll.user).arg(index), item.label, emoji=item.emoji)
            for index, item in enumerate(poll.inputs)
        ]
    elif poll.kind is Kind.RESPONSE:
        buttons = [
            button(CustomId.new(BUTTON_RESPONSE).arg(poll.user), "Submit Response", discord.ButtonStyle.primary, emoji="📩")
        ]
    else:
        buttons = [
            button(CustomId.new(BUTTON_RAFFLE).arg(poll.user), "Enter Raffle", discord.ButtonStyle.primary, emoji="🎲")
        ]
    return static_view(buttons, disabled=disabled)


def remove_inputs_view(poll: Poll) -> discord.ui.View:
    return static_view(
        button(CustomId.new(BUTTON_REMOVE).arg(poll.user).arg(index), item.label, discord.ButtonStyle.danger)
        for index, item in enumerate(poll.inputs)
    )


def response_modal(poll: Poll) -> discord.ui.Modal:
    if not poll.inputs:
        raise PreconditionFailed("This poll does not have any questions")

    inputs = [
        text_input(str(index), item.label, paragraph=True, required=False, placeholder=item.placeholder, max_length=1024)
        for index, item in enumerate(poll.inputs)
    ]
    return static_modal(CustomId.new(MODAL_SUBMIT).arg(poll.user), "Submit Response", inputs)


def results_view(poll: Poll, page: Optional[int] = None) -> discord.ui.View:
    """Results button of the closing message, or paging buttons when ``page`` is given."""
    base = (poll.user, poll.anchor.message)
    if page is None:
        custom_id = CustomId.new(BUTTON_RESULTS).arg(base[0]).arg(base[1])
        return static_view([button(custom_id, "View Results", discord.ButtonStyle.primary, emoji="📊")])

    last = CustomId.new(BUTTON_LAST).arg(base[0]).arg(base[1]).arg(page - 1)
    following = CustomId.new(BUTTON_NEXT).arg(base[0]).arg(base[1]).arg(page + 1)
    return static_view([button(last, emoji="⬅️"), button(following, emoji="➡️")])


async def results_notice_embed(client: discord.Client, poll: Poll) -> discord.Embed:
    user = await get_user(client, poll.user)
    embed = discord.Embed(title="Poll Results", description=f"**{poll.content.title}**", color=BOT_COLOR, url=poll.anchor.url)
    embed.set_author(name=str(user), icon_url=avatar_url(user))
    if poll.content.hide_results:
        embed.set_footer(text="Results are only visible to the poll author!")
    return embed


def normalize_page(page: int, pages: int) -> int:
    """Wrap ``page`` around the 1-based range ``1..pages``."""
    if page < 1:
        return pages
    if page > pages:
        return 1
    return page


def _mentions(users: List[int], hidden: bool) -> str:
    if hidden:
        return "*Users are hidden*"
    if not users:
        return "*Nobody*"
    return truncate("\n".join(f"<@{user}>" for user in users), 3500)


async def results_embed(client: discord.Client, poll: Poll, page: int) -> Tuple[discord.Embed, int]:
    """Render one page of a closed poll's results.

    Returns:
        The embed and the (wrapped) page number it shows
    """
    output = poll.output
    page = normalize_page(page, output.pages)
    owner = await get_user(client, poll.user)

    embed = discord.Embed(title="Poll Results: Overview", color=BOT_COLOR, url=poll.anchor.url)
    embed.set_author(name=str(owner), icon_url=avatar_url(owner))
    embed.set_thumbnail(url=avatar_url(owner))
    embed.set_footer(text=f"Page: {page} / {output.pages}")

    if isinstance(output, ChoiceOutput):
        if page == 1:
            lines = [f"**Total Votes:** {output.total}\n"]
            for entry in output.entries:
                percent = output.percent(entry)
                label = poll.inputs[entry.index].label
                lines.append(f"{vote_bar(percent)} {label} - {entry.votes} votes ({format_percent(percent)})")
            embed.description = "\n".join(lines)
        else:
            entry = output.entries[page - 2]
            percent = output.percent(entry)
            embed.title = f"Poll Results: {poll.inputs[entry.index].label}"
            embed.description = (
                f"**Total Votes:** {entry.votes} ({format_percent(percent)})\n"
                f"{vote_bar(percent, large=True)}\n\n**Users:**\n"
                f"{_mentions(entry.users, poll.content.hide_members)}"
            )

    elif isinstance(output, RaffleOutput):
        winner = f"<@{output.winner}>" if output.winner is not None else "*No entries*"
        embed.description = (
            f"**Total Entries:** {len(output.users)}\n**Winner:** {winner}\n\n**Users:**\n"
            f"{_mentions(output.users, poll.content.hide_members)}"
        )

    elif page == 1:
        embed.description = f"**Total Responses:** {output.total}"
    else:
        respondent, answers = list(output.answers.items())[page - 2]
        if poll.content.hide_members:
            embed.title = f"Poll Results: User {page - 1}"
            embed.set_author(name="Anonymous User")
            embed.set_thumbnail(url=None)
        else:
            member = await get_user(client, respondent)
            embed.title = f"Poll Results: {member.name}"
            embed.set_author(name=str(member), icon_url=avatar_url(member))
            embed.set_thumbnail(url=avatar_url(member))
        for index, answer in enumerate(answers):
            label = poll.inputs[index].label if index < len(poll.inputs) else f"Question {index + 1}"
            embed.add_field(name=label, value=truncate(answer, 1024), inline=False)

    return embed, page
