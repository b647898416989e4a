"""Modal Fields - text inputs of a submitted modal

Modals are sent stopped (see ``ui_components.static_modal``), so their
submissions are not parsed by a ``discord.ui.Modal`` instance. The values
are read from the raw payload instead: action rows of text inputs, each
keyed by its custom id.
"""
from typing import Dict, Optional

import discord


class ModalFields:
    """Text input values of a submitted modal, keyed by input custom id."""

    def __init__(self, components=None):
        self._values: Dict[str, str] = {}
        for row in components or []:
            for component in row.get("components", []):
                if "custom_id" in component:
                    self._values[component["custom_id"]] = component.get("value") or ""

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction) -> "ModalFields":
        data = interaction.data or {}
        return cls(data.get("components"))

    def __contains__(self, custom_id: str) -> bool:
        return custom_id in self._values

    def get(self, custom_id: str) -> Optional[str]:
        """Return the submitted text, or None when the input was left empty."""
        value = self._values.get(custom_id)
        return value if value else None
