"""Discord text formatting helpers (timestamps, vote bars, truncation)"""
from datetime import datetime
from typing import Optional

BAR_FILL = "█"
BAR_WIDTH_SMALL = 10
BAR_WIDTH_LARGE = 32


def timestamp(moment: datetime, style: str = "R") -> str:
    """Render ``moment`` as a Discord timestamp tag.

    Args:
        moment: Timezone-aware datetime
        style: Discord format flag ("R" relative, "f" full date, ...)

    Returns:
        A string like ``<t:1700000000:R>`` that every client renders locally
    """
    return f"<t:{int(moment.timestamp())}:{style}>"


def format_percent(fraction: float) -> str:
    """Format a 0..1 fraction with two decimals, e.g. ``66.67%``."""
    return f"{fraction * 100:.2f}%"


def vote_bar(fraction: float, large: bool = False) -> str:
    """Horizontal bar proportional to ``fraction`` (clamped to 0..1)."""
    width = BAR_WIDTH_LARGE if large else BAR_WIDTH_SMALL
    fraction = min(max(fraction, 0.0), 1.0)
    filled = round(fraction * width)
    return f"`{BAR_FILL * filled}{' ' * (width - filled)}`"


def truncate(text: Optional[str], limit: int, suffix: str = "...") -> str:
    """Cut ``text`` down to ``limit`` characters (embed fields cap at 1024)."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[: limit - len(suffix)] + suffix


def quote(text: str) -> str:
    """Prefix every line with Discord's block quote marker."""
    return "\n".join(f"> {line}" for line in text.splitlines() or [""])
