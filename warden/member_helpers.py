"""Member Helpers - cache-first lookups of users, guilds and members

Each lookup tries the client's cache first and falls back to the API.
"""
import discord


async def get_user(client: discord.Client, user_id: int) -> discord.User:
    return client.get_user(user_id) or await client.fetch_user(user_id)


async def get_guild(client: discord.Client, guild_id: int) -> discord.Guild:
    return client.get_guild(guild_id) or await client.fetch_guild(guild_id)


async def get_member(client: discord.Client, guild_id: int, user_id: int) -> discord.Member:
    """Look up a guild member.

    Raises:
        discord.NotFound: if the user is not (or no longer) in the guild
    """
    guild = await get_guild(client, guild_id)
    return guild.get_member(user_id) or await guild.fetch_member(user_id)


def has_role(member: discord.Member, role_id: int) -> bool:
    return any(role.id == role_id for role in member.roles)


def avatar_url(user) -> str:
    return str(user.display_avatar.url)
