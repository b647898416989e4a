"""Anchors - where a record's card lives on Discord.

An anchor is set once a record has been posted as a message. It is only
replaced by re-sending the record (delete the old message, post a new one).
"""
from datetime import datetime

import discord
from pydantic import BaseModel, ConfigDict

from .config import logger

MESSAGE_URL = "https://discord.com/channels"


class Anchor(BaseModel):
    """The (guild, channel, message) triple of a posted record."""

    model_config = ConfigDict(frozen=True)

    guild: int
    channel: int
    message: int

    @classmethod
    def from_message(cls, guild_id: int, message: discord.Message) -> "Anchor":
        return cls(guild=guild_id, channel=message.channel.id, message=message.id)

    @property
    def created_at(self) -> datetime:
        """When the anchored message was posted (read from its snowflake)."""
        return discord.utils.snowflake_time(self.message)

    @property
    def url(self) -> str:
        return f"{MESSAGE_URL}/{self.guild}/{self.channel}/{self.message}"

    def __str__(self) -> str:
        return self.url

    def channel_of(self, client: discord.Client):
        return client.get_partial_messageable(self.channel, guild_id=self.guild)

    def message_of(self, client: discord.Client) -> discord.PartialMessage:
        return self.channel_of(client).get_partial_message(self.message)

    async def delete_message(self, client: discord.Client, missing_ok: bool = False):
        """Delete the anchored message.

        Args:
            client: The Discord client
            missing_ok: Treat an already-deleted message as success

        """
        try:
            await self.message_of(client).delete()
        except discord.NotFound:
            if not missing_ok:
                raise
            logger.info(f"Anchored message {self.url} was already deleted")
