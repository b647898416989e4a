"""Fun Commands - Community & social commands

- /embed - Build an embedded message from its parts
- /offer - Post a trade offer that expires
- /oracle - Ask the Oracle a yes/no question
- /quote - Quote something another member said
"""
import random
from datetime import timedelta
from enum import Enum
from typing import NamedTuple, Optional

import discord
from discord import app_commands

from utils.discord_formatter import quote, timestamp

from ..config import BOT_COLOR
from ..dispatcher import Request
from ..errors import PreconditionFailed
from ..member_helpers import avatar_url
from ..registry import Feature

MAX_EMBED_LENGTH = 6000

MIN_OFFER_MINUTES = 5
MAX_OFFER_MINUTES = 14400  # 10 days

USER_COLOR = "user"

COLOR_CHOICES = {
    "Default": BOT_COLOR,
    "User": None,
    "Red": discord.Color.red(),
    "Orange": discord.Color.orange(),
    "Yellow": discord.Color.gold(),
    "Green": discord.Color.green(),
    "Teal": discord.Color.teal(),
    "Blue": discord.Color.blue(),
    "Purple": discord.Color.purple(),
    "Pink": discord.Color.magenta(),
    "Dark Red": discord.Color.dark_red(),
    "Dark Orange": discord.Color.dark_orange(),
    "Dark Yellow": discord.Color.dark_gold(),
    "Dark Green": discord.Color.dark_green(),
    "Dark Teal": discord.Color.dark_teal(),
    "Dark Blue": discord.Color.dark_blue(),
    "Dark Purple": discord.Color.dark_purple(),
    "Dark Pink": discord.Color.dark_magenta(),
    "White": discord.Color.lighter_grey(),
    "Gray": discord.Color.light_grey(),
    "Dark Gray": discord.Color.dark_grey(),
    "Black": discord.Color.darker_grey(),
}


async def profile_color(client: discord.Client, user_id: int) -> discord.Color:
    """The user's profile accent colour, or the bot colour if they have none.

    Only users fetched from the API carry their accent colour.
    """
    user = await client.fetch_user(user_id)
    return user.accent_color or BOT_COLOR

# ============================================================================
# EMBED COMMAND
# ============================================================================

def build_embed(
    color: Optional[discord.Color] = None,
    author_name: Optional[str] = None,
    author_icon: Optional[str] = None,
    author_link: Optional[str] = None,
    title_text: Optional[str] = None,
    title_link: Optional[str] = None,
    description: Optional[str] = None,
    footer_text: Optional[str] = None,
    footer_icon: Optional[str] = None,
    image_link: Optional[str] = None,
    thumbnail_link: Optional[str] = None,
) -> discord.Embed:
    """Assemble an embed from optional parts.

    Icons and links only apply when the part they belong to (author, title,
    footer) is given.

    Raises:
        PreconditionFailed: if nothing visible was given, or the text is too long
    """
    embed = discord.Embed(color=color)
    length = 0
    visible = False

    if author_name:
        embed.set_author(name=author_name, url=author_link, icon_url=author_icon)
        length += len(author_name)
        visible = True

    if description:
        description = description.replace("\\n", "\n").strip()
        embed.description = description
        length += len(description)
        visible = True

    if footer_text:
        embed.set_footer(text=footer_text, icon_url=footer_icon)
        length += len(footer_text)
        visible = True

    if image_link:
        embed.set_image(url=image_link)
        visible = True

    if thumbnail_link:
        embed.set_thumbnail(url=thumbnail_link)
        visible = True

    if title_text:
        embed.title = title_text
        embed.url = title_link
        length += len(title_text)
        visible = True

    if not visible:
        raise PreconditionFailed("A visible element must be provided")
    if length > MAX_EMBED_LENGTH:
        raise PreconditionFailed(f"Content must have at most {MAX_EMBED_LENGTH} characters")
    return embed


@app_commands.command(name="embed", description="Creates an embedded message")
@app_commands.guild_only()
@app_commands.default_permissions(embed_links=True)
@app_commands.describe(
    author_icon="The embed author's icon link",
    author_link="The embed author's link",
    author_name="The embed author's name",
    color="The embed's color",
    description="The embed's description (supports newline and markdown)",
    footer_icon="The embed footer's icon link",
    footer_text="The embed footer's text",
    image_link="The embed's image link",
    thumbnail_link="The embed's thumbnail link",
    title_link="The embed title's link",
    title_text="The embed title's text",
    ephemeral="Whether the embed is ephemeral (only visible to you)",
)
@app_commands.choices(color=[
    app_commands.Choice(name=name, value=USER_COLOR if value is None else f"{value.value:06x}")
    for name, value in COLOR_CHOICES.items()
])
async def embed_command(
    interaction: discord.Interaction,
    author_icon: Optional[str] = None,
    author_link: Optional[str] = None,
    author_name: Optional[app_commands.Range[str, 1, 256]] = None,
    color: Optional[app_commands.Choice[str]] = None,
    description: Optional[app_commands.Range[str, 1, 4096]] = None,
    footer_icon: Optional[str] = None,
    footer_text: Optional[app_commands.Range[str, 1, 2048]] = None,
    image_link: Optional[str] = None,
    thumbnail_link: Optional[str] = None,
    title_link: Optional[str] = None,
    title_text: Optional[app_commands.Range[str, 1, 256]] = None,
    ephemeral: bool = False,
):
    request = Request.for_command(interaction, "embed")

    embed_color = None
    if color is not None:
        if color.value == USER_COLOR:
            embed_color = await profile_color(request.client, request.user_id)
        else:
            embed_color = discord.Color(int(color.value, 16))

    embed = build_embed(
        color=embed_color,
        author_name=author_name,
        author_icon=author_icon,
        author_link=author_link,
        title_text=title_text,
        title_link=title_link,
        description=description,
        footer_text=footer_text,
        footer_icon=footer_icon,
        image_link=image_link,
        thumbnail_link=thumbnail_link,
    )
    await request.respond(embed=embed, ephemeral=ephemeral)

# ============================================================================
# OFFER COMMAND
# ============================================================================

@app_commands.command(name="offer", description="Create a new trade offer")
@app_commands.guild_only()
@app_commands.default_permissions(send_messages=True)
@app_commands.describe(
    offer="What are you giving away?",
    price="What do you want in return?",
    minutes="For how long is this valid?",
)
async def offer_command(
    interaction: discord.Interaction,
    offer: app_commands.Range[str, 1, 256],
    price: app_commands.Range[str, 1, 256],
    minutes: app_commands.Range[int, MIN_OFFER_MINUTES, MAX_OFFER_MINUTES],
):
    request = Request.for_command(interaction, "offer")
    user = interaction.user
    expires = discord.utils.utcnow() + timedelta(minutes=minutes)

    embed = discord.Embed(
        description=f"**Expires:** {timestamp(expires)}",
        color=await profile_color(request.client, user.id),
    )
    embed.set_author(name=str(user), icon_url=avatar_url(user))
    embed.add_field(name="Offer", value=offer, inline=False)
    embed.add_field(name="Price", value=price, inline=False)
    embed.set_thumbnail(url=avatar_url(user))

    await request.respond(embed=embed, ephemeral=False)

# ============================================================================
# ORACLE COMMAND
# ============================================================================

class Mood(Enum):
    GOOD = "good"
    UNSURE = "unsure"
    BAD = "bad"

    @property
    def color(self) -> discord.Color:
        return {
            "good": discord.Color.green(),
            "unsure": discord.Color.light_grey(),
            "bad": discord.Color.red(),
        }[self.value]


class Answer(NamedTuple):
    mood: Mood
    text: str


ANSWERS = [
    Answer(Mood.GOOD, "It is certain."),
    Answer(Mood.GOOD, "It is decidedly so."),
    Answer(Mood.GOOD, "Without a doubt."),
    Answer(Mood.GOOD, "Yes, definitely."),
    Answer(Mood.GOOD, "You may rely on it."),
    Answer(Mood.GOOD, "As I see it, yes."),
    Answer(Mood.GOOD, "Most likely."),
    Answer(Mood.GOOD, "Outlook good."),
    Answer(Mood.GOOD, "Yes."),
    Answer(Mood.GOOD, "Signs point to yes."),
    Answer(Mood.UNSURE, "Reply hazy, try again."),
    Answer(Mood.UNSURE, "Ask again later."),
    Answer(Mood.UNSURE, "Better not tell you now."),
    Answer(Mood.UNSURE, "Cannot predict now."),
    Answer(Mood.UNSURE, "Concentrate and ask again."),
    Answer(Mood.BAD, "Don't count on it."),
    Answer(Mood.BAD, "My reply is no."),
    Answer(Mood.BAD, "My sources say no."),
    Answer(Mood.BAD, "Outlook not so good."),
    Answer(Mood.BAD, "Very doubtful."),
]


def oracle_embed(name: str, question: str, answer: Answer) -> discord.Embed:
    embed = discord.Embed(
        description=f"**{name} asked...**\n{quote(question)}\n\n*{answer.text}*",
        color=answer.mood.color,
    )
    embed.set_author(name="The Oracle")
    return embed


@app_commands.command(name="oracle", description="Asks the Oracle a question")
@app_commands.guild_only()
@app_commands.default_permissions(send_messages=True)
@app_commands.describe(question="What would you like to ask?")
async def oracle_command(interaction: discord.Interaction, question: app_commands.Range[str, 1, 512]):
    request = Request.for_command(interaction, "oracle")
    answer = random.choice(ANSWERS)
    await request.respond(embed=oracle_embed(str(interaction.user), question, answer), ephemeral=False)

# ============================================================================
# QUOTE COMMAND
# ============================================================================

@app_commands.command(name="quote", description="Quote something that a user said!")
@app_commands.guild_only()
@app_commands.default_permissions(send_messages=True)
@app_commands.describe(user="Who said it?", text="What did they say?")
async def quote_command(interaction: discord.Interaction, user: discord.User, text: app_commands.Range[str, 1, 256]):
    request = Request.for_command(interaction, "quote")
    if user.id == request.user_id:
        raise PreconditionFailed("You cannot quote yourself")
    if user.bot:
        raise PreconditionFailed("You cannot quote a bot")

    embed = discord.Embed(description=quote(text), color=await profile_color(request.client, user.id))
    embed.set_author(name=str(user), icon_url=avatar_url(user))
    await request.respond(embed=embed, ephemeral=False)


def features():
    return [Feature(command.name, command) for command in (embed_command, offer_command, oracle_command, quote_command)]
