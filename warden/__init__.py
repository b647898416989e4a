"""Warden - Guild Management Discord Bot

This package contains the core bot functionality split into logical modules.

Structure:
- config.py: Configuration and initialization
- errors.py: Error taxonomy shared by every handler
- custom_id.py: Button/modal custom id encoding
- storage.py: File-per-record persistence and per-record locks
- anchor.py: Links a record to the message it was posted as
- options.py: Modal field access
- registry.py: Slash commands and the component/modal routing table
- dispatcher.py: Interaction lifecycle (route, invoke, report)
- applications.py / polls.py / roles.py: Feature state machines
- ui_components.py: Discord UI (embeds, buttons, modals)
- member_helpers.py: Cached user, guild and member lookups
- event_handlers.py: Discord event handlers
- commands/: Slash commands (app_commands groups) and their buttons

Usage:
    from warden.config import logger, BOT_TOKEN, intents
    from warden.event_handlers import create_client, register_events

    bot = create_client()
    register_events(bot)
    bot.run(BOT_TOKEN)
"""

__version__ = "1.0.0"
__author__ = "Warden Contributors"
