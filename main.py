#!/usr/bin/env python3
"""Warden - Main Entry Point

A Discord bot for guild applications, polls and self-assignable roles.
"""
import asyncio

import discord

from warden.config import BOT_TOKEN, enable_file_logging, logger
from warden.event_handlers import create_client, register_events


def main():
    """Main entry point for the bot."""
    if not BOT_TOKEN:
        logger.error("❌ BOT_TOKEN not found in .env file!")
        return

    log_path = enable_file_logging()
    if log_path:
        logger.info(f"📝 Logging to {log_path}")

    logger.info("🚀 Starting Warden...")

    # Add retry logic with EXPONENTIAL BACKOFF to prevent Cloudflare rate limiting
    max_retries = 5
    retry_count = 0

    while retry_count < max_retries:
        # A closed bot cannot be restarted, so every attempt gets a fresh one
        bot = create_client()
        register_events(bot)

        try:
            bot.run(BOT_TOKEN, reconnect=True, log_handler=None)
            break  # Exit loop if bot stops gracefully
        except discord.LoginFailure:
            logger.error("❌ INVALID TOKEN - Bot token may be banned or revoked!")
            break  # Don't retry on auth failures
        except discord.HTTPException as e:
            retry_count += 1
            if retry_count >= max_retries:
                logger.error(f"❌ Failed after {max_retries} retries: {e}")
                break

            # Rate limits (429 or Cloudflare block) back off exponentially: 2, 4, 8, 16 seconds
            if e.status == 429 or "cloudflare" in str(e).lower():
                wait_time = 2 ** retry_count
                logger.warning(
                    f"⚠️ Rate limited by Discord/Cloudflare! Retry {retry_count}/{max_retries} in {wait_time}s..."
                )
            else:
                wait_time = 5
                logger.error(f"⚠️ HTTP Error: {e} - Retrying {retry_count}/{max_retries}...")
            asyncio.run(asyncio.sleep(wait_time))


if __name__ == "__main__":
    main()
