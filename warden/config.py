"""Configuration and initialization for Warden

Loads settings from:
1. Environment variables (.env)
2. config.toml file
3. Default values

This module should be imported first by all other modules.
"""
import logging
import os
import time
from pathlib import Path
from typing import Optional

import discord
import toml
from dotenv import load_dotenv

# ============================================================================
# ENVIRONMENT & CONFIG LOADING
# ============================================================================

# Load environment variables
load_dotenv()
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Load config from toml file
config = toml.load("config.toml") if Path("config.toml").exists() else {}

# ============================================================================
# CONFIGURATION PARSING HELPERS
# ============================================================================

def get_setting(env_var_name: str, config_key: str, default=None):
    """Read a setting from env var, then config.toml, then the default."""
    env_value = os.getenv(env_var_name)
    if env_value is not None and env_value.strip() != "":
        return env_value.strip()
    return config.get(config_key, default)


def parse_optional_id(env_var_name: str, config_key: str) -> Optional[int]:
    """Parse a single snowflake ID from env var or config file."""
    value = get_setting(env_var_name, config_key)
    if value is None:
        return None
    value = str(value).strip()
    if not value.isdigit():
        return None
    return int(value)


def parse_color(value) -> discord.Color:
    """Parse a color given as "#ac5a6e", "0xac5a6e" or an integer."""
    if isinstance(value, int):
        return discord.Color(value)
    text = str(value).strip().lower()
    if text.startswith("#"):
        text = text[1:]
    elif text.startswith("0x"):
        text = text[2:]
    return discord.Color(int(text, 16))

# ============================================================================
# DISCORD CONFIGURATION
# ============================================================================

# Commands are synced to this guild only when set (fast iteration while developing)
DEV_GUILD_ID = parse_optional_id("DEV_GUILD_ID", "DEV_GUILD_ID")

BOT_COLOR = parse_color(get_setting("BOT_COLOR", "BOT_COLOR", "#ac5a6e"))

# ============================================================================
# STORAGE CONFIGURATION
# ============================================================================

DATA_DIR = Path(get_setting("DATA_DIR", "DATA_DIR", "data"))

# How often open polls are checked for expiry
SWEEP_INTERVAL_MINUTES = float(get_setting("SWEEP_INTERVAL_MINUTES", "SWEEP_INTERVAL_MINUTES", 5))

# ============================================================================
# LOGGING SETUP
# ============================================================================

LOG_LEVEL = str(get_setting("LOG_LEVEL", "LOG_LEVEL", "INFO")).upper()
# Empty string disables the log file
LOG_DIR = get_setting("LOG_DIR", "LOG_DIR", "logs")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("Warden")


def enable_file_logging(log_dir=LOG_DIR) -> Optional[Path]:
    """Mirror log output into a timestamped file under ``log_dir``.

    Returns:
        Path of the log file, or None when file logging is disabled

    """
    if not log_dir:
        return None

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{time.strftime('%Y%m%d-%H%M%S')}.log"

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    return path

# ============================================================================
# DISCORD BOT INTENTS
# ============================================================================

intents = discord.Intents.default()
intents.members = True  # Needed to grant and revoke roles
intents.guilds = True
