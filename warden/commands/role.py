"""Role Selector Commands - /role and the role toggle buttons

- /role create - Add a role button to your draft selector
- /role remove - Remove a role button from the draft
- /role list - Preview the draft
- /role send - Post the selector in this channel
"""
import discord
from discord import app_commands

from .. import roles
from ..dispatcher import Request
from ..errors import InvalidRouting
from ..member_helpers import get_member
from ..registry import Feature
from ..roles import BUTTON_TOGGLE, NAME, Selector
from ..ui_components import notice_embed, success_embed

group = app_commands.Group(
    name=NAME,
    description="Create or manage role selectors",
    guild_only=True,
    default_permissions=discord.Permissions(manage_roles=True),
)


@group.command(name="create", description="Creates a new role selector")
@app_commands.describe(role="The selector's linked role", icon="The selector's icon")
async def create_command(interaction: discord.Interaction, role: discord.Role, icon: str):
    request = Request.for_command(interaction, "role create")
    await roles.add_toggle(request.guild_id, request.user_id, role.id, role.name, icon)
    await request.respond(embed=success_embed(f"Created \"{role.name}\" selector!"))


@group.command(name="remove", description="Deletes a role selector")
@app_commands.describe(role="The selector's linked role")
async def remove_command(interaction: discord.Interaction, role: discord.Role):
    request = Request.for_command(interaction, "role remove")
    await roles.remove_toggle(request.guild_id, request.user_id, role.id)
    await request.respond(embed=success_embed(f"Removed \"{role.name}\" selector!"))


@group.command(name="list", description="Lists all current role selectors")
async def list_command(interaction: discord.Interaction):
    request = Request.for_command(interaction, "role list")
    selector = Selector.load(request.guild_id, request.user_id)
    description = None if selector.roles else "*No selectors have been created*"
    await request.respond(embed=notice_embed("All selectors", description), view=roles.selector_view(selector, disabled=True))


@group.command(name="send", description="Sends the current roles selectors")
@app_commands.describe(text="The title of the role selector's embed")
async def send_command(interaction: discord.Interaction, text: app_commands.Range[str, 1, 256]):
    request = Request.for_command(interaction, "role send")
    await roles.send(request.client, request.guild_id, request.user_id, interaction.channel_id, text)
    await request.respond(embed=success_embed("Sent selectors!"))


async def run_component(request: Request):
    if request.name != BUTTON_TOGGLE:
        raise InvalidRouting(request.kind, request.name)

    role = request.int_arg(0, "role")
    member = request.interaction.user
    if not isinstance(member, discord.Member):
        member = await get_member(request.client, request.guild_id, request.user_id)

    added = await roles.toggle_role(member, role)
    message = f"Added <@&{role}> to your roles!" if added else f"Removed <@&{role}> from your roles!"
    await request.respond(embed=notice_embed("🎭 Roles updated", message))


def feature() -> Feature:
    return Feature(NAME, group, component=run_component)
