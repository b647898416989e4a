"""Event handlers for Warden

This module contains all Discord event handlers:
- on_ready: Command sync, presence and the poll expiry loop
- on_interaction: Every button and modal (slash commands run on the tree)
- on_app_command_completion: Success log of slash commands
- on_disconnect, on_resumed: Connection lifecycle
"""
import discord
from discord import app_commands
from discord.ext import commands, tasks

from .commands import build_registry
from .config import DEV_GUILD_ID, SWEEP_INTERVAL_MINUTES, intents, logger
from .dispatcher import Dispatcher
from .errors import WardenError
from .polls import sweep_active_polls
from .registry import Registry


def create_client() -> commands.Bot:
    """Create the bot. Slash commands live on its command tree."""
    return commands.Bot(command_prefix=commands.when_mentioned, intents=intents)


async def sync_commands(bot: commands.Bot):
    """Register the tree's slash commands with Discord.

    Commands go to the development guild when DEV_GUILD_ID is set (instant),
    otherwise they are registered globally.
    """
    try:
        if DEV_GUILD_ID:
            guild = discord.Object(id=DEV_GUILD_ID)
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
            logger.info(f"🔄 Synced {len(synced)} slash commands to guild {DEV_GUILD_ID}")
        else:
            synced = await bot.tree.sync()
            logger.info(f"🔄 Synced {len(synced)} slash commands globally")
    except discord.DiscordException as e:
        logger.error(f"Failed to sync commands: {e}")


def register_events(bot: commands.Bot, registry: Registry = None) -> Dispatcher:
    """Register all event handlers with the bot.

    Args:
        bot: The Discord bot instance
        registry: Routing table (defaults to every shipped feature)

    Returns:
        The dispatcher serving the bot's interactions
    """
    registry = registry or build_registry()
    dispatcher = Dispatcher(bot, registry)
    dispatcher.install(bot.tree)

    @tasks.loop(minutes=SWEEP_INTERVAL_MINUTES)
    async def sweep_polls():
        try:
            await sweep_active_polls(bot)
        except WardenError as e:
            logger.error(f"❌ Poll sweep failed: {e}")

    @sweep_polls.before_loop
    async def before_sweep():
        await bot.wait_until_ready()

    @bot.event
    async def on_ready():
        """Bot startup handler."""
        logger.info(f"✅ Logged in as {bot.user}!")
        logger.info(f"🏰 Serving {len(bot.guilds)} guilds")

        await sync_commands(bot)
        await bot.change_presence(activity=discord.Game(name="/help"))

        if not sweep_polls.is_running():
            sweep_polls.start()
            logger.info(f"⏰ Checking poll expiry every {SWEEP_INTERVAL_MINUTES:g} minutes")

    @bot.event
    async def on_interaction(interaction: discord.Interaction):
        await dispatcher.dispatch(interaction)

    @bot.event
    async def on_app_command_completion(interaction: discord.Interaction, command: app_commands.Command):
        logger.info(f"✅ Success command '{command.qualified_name}' from {interaction.user}")

    @bot.event
    async def on_disconnect():
        """Handle disconnection from Discord."""
        logger.warning("⚠️ Bot disconnected from Discord! Will attempt to reconnect...")

    @bot.event
    async def on_resumed():
        """Handle reconnection to Discord."""
        logger.info("✅ Bot reconnected to Discord successfully!")

    return dispatcher
