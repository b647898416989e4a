"""General Commands - /ping, /help and /data"""
import discord
from discord import app_commands

from .. import __version__
from ..dispatcher import Request
from ..registry import Feature
from ..ui_components import notice_embed
from . import build_registry

DATA_TEXT = (
    "Warden only stores what its features need to work:\n\n"
    "- **Applications:** your answers, their review status and the reason "
    "given by a moderator.\n"
    "- **Polls:** the polls you create and your votes, raffle entries or "
    "written responses to other members' polls.\n"
    "- **Role selectors:** the roles a moderator is preparing to post.\n\n"
    "Records are kept per server as files on the bot host and are never "
    "shared. Drafts are deleted when they are sent or discarded. Ask a server "
    "moderator to remove your application, or discard your own polls with "
    "`/poll discard`."
)


@app_commands.command(name="ping", description="Check the bot's response time")
async def ping_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "ping")
    latency = request.client.latency * 1000
    await request.respond(embed=notice_embed("🏓 Pong!", f"Gateway latency: **{latency:.0f} ms**"))


@app_commands.command(name="help", description="List the bot's commands")
async def help_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "help")
    lines = [f"`/{command.name}` - {command.description}" for command in build_registry().commands()]
    embed = notice_embed("📖 Commands", "\n".join(lines))
    embed.set_footer(text=f"Warden v{__version__}")
    await request.respond(embed=embed)


@app_commands.command(name="data", description="How the bot uses your data")
async def data_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "data")
    await request.respond(embed=notice_embed("🔒 Data Usage", DATA_TEXT))


def features():
    return [Feature(command.name, command) for command in (ping_command, help_command, data_command)]
