"""UI Components - Discord Embeds, Buttons and Modals

Every button and modal the bot sends is "static": it carries a custom id
that is routed by the dispatcher, so no view or modal is kept in memory
after it has been sent. Views and modals are stopped before sending, which
keeps discord.py from storing them.

Views and modals must be built inside a running event loop.
"""
from typing import Iterable, Optional

import discord

from .config import BOT_COLOR

ERROR_COLOR = discord.Color.red()
SUCCESS_COLOR = discord.Color.green()

# ============================================================================
# EMBEDS
# ============================================================================

def error_embed(error) -> discord.Embed:
    """Embed shown when an interaction fails."""
    return discord.Embed(
        title="An error occurred!",
        description=f"> {error}",
        color=ERROR_COLOR,
    )


def notice_embed(title: str, description: Optional[str] = None, color: discord.Color = BOT_COLOR) -> discord.Embed:
    return discord.Embed(title=title, description=description, color=color)


def success_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return notice_embed(f"✅ {title}", description, SUCCESS_COLOR)

# ============================================================================
# BUTTONS
# ============================================================================

def button(
    custom_id,
    label: Optional[str] = None,
    style: discord.ButtonStyle = discord.ButtonStyle.secondary,
    emoji=None,
    disabled: bool = False,
    row: Optional[int] = None,
) -> discord.ui.Button:
    """Button routed through the dispatcher by ``custom_id``."""
    return discord.ui.Button(
        style=style,
        label=label,
        custom_id=str(custom_id),
        emoji=emoji,
        disabled=disabled,
        row=row,
    )


def parse_emoji(text: Optional[str]) -> Optional[discord.PartialEmoji]:
    """Parse a unicode emoji or a custom ``<:name:id>`` emoji, None if invalid."""
    text = (text or "").strip()
    if not text:
        return None
    emoji = discord.PartialEmoji.from_str(text)
    if emoji.is_custom_emoji():
        return emoji
    # from_str accepts any text as a unicode emoji name
    if all(ord(char) > 127 for char in text):
        return emoji
    return None


def static_view(buttons: Iterable[discord.ui.Button], disabled: bool = False) -> discord.ui.View:
    """Wrap ``buttons`` in a view that is never stored by discord.py.

    Args:
        buttons: Buttons in display order (five per row)
        disabled: Disable every non-link button

    """
    view = discord.ui.View(timeout=None)
    for item in buttons:
        if disabled and item.style is not discord.ButtonStyle.link:
            item.disabled = True
        view.add_item(item)
    view.stop()
    return view

# ============================================================================
# MODALS
# ============================================================================

def text_input(
    custom_id: str,
    label: str,
    paragraph: bool = False,
    required: bool = True,
    placeholder: Optional[str] = None,
    default: Optional[str] = None,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> discord.ui.TextInput:
    return discord.ui.TextInput(
        label=label[:45],
        custom_id=custom_id,
        style=discord.TextStyle.paragraph if paragraph else discord.TextStyle.short,
        required=required,
        placeholder=placeholder[:100] if placeholder else None,
        default=default,
        min_length=min_length,
        max_length=max_length,
    )


def static_modal(custom_id, title: str, inputs: Iterable[discord.ui.TextInput]) -> discord.ui.Modal:
    """Modal whose submission is routed through the dispatcher by ``custom_id``."""
    modal = discord.ui.Modal(title=title[:45], custom_id=str(custom_id))
    for item in inputs:
        modal.add_item(item)
    modal.stop()
    return modal
