"""Command Registry - static routing table

Each feature registers once at startup with its slash command (an
``app_commands`` command or group) and up to two handlers: one for its
buttons and one for its modals. Buttons and modals are routed by the base of
their custom id, which is the feature name. Slash commands are routed by the
command tree they are installed on.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

from discord import app_commands

from .errors import InvalidRouting

Handler = Callable[..., Awaitable[None]]
SlashCommand = Union[app_commands.Command, app_commands.Group]


class InteractionKind(str, Enum):
    COMMAND = "command"
    COMPONENT = "component"
    MODAL = "modal"

    def __str__(self) -> str:
        return self.value


@dataclass
class Feature:
    """A slash command together with the components it owns."""

    name: str
    command: Optional[SlashCommand] = None
    component: Optional[Handler] = None
    modal: Optional[Handler] = None

    @property
    def description(self) -> str:
        return self.command.description if self.command else ""


class Registry:
    """Lookup tables built from a fixed list of features."""

    def __init__(self, features: Iterable[Feature]):
        self.features: List[Feature] = list(features)
        self._tables: Dict[InteractionKind, Dict[str, Union[Handler, SlashCommand]]] = {
            kind: {} for kind in InteractionKind
        }

        for feature in self.features:
            for kind, handler in (
                (InteractionKind.COMMAND, feature.command),
                (InteractionKind.COMPONENT, feature.component),
                (InteractionKind.MODAL, feature.modal),
            ):
                if handler is None:
                    continue
                key = handler.name if kind is InteractionKind.COMMAND else feature.name
                table = self._tables[kind]
                if key in table:
                    raise ValueError(f"Duplicate {kind} handler for '{key}'")
                table[key] = handler

    def resolve(self, kind: InteractionKind, key: str):
        """Return the handler (or slash command) registered under ``key``.

        Raises:
            InvalidRouting: if nothing is registered under ``key``

        """
        handler = self._tables[kind].get(key)
        if handler is None:
            raise InvalidRouting(kind, key)
        return handler

    def commands(self) -> List[SlashCommand]:
        """Every slash command, in registration order."""
        return list(self._tables[InteractionKind.COMMAND].values())

    def find_command(self, path: str) -> app_commands.Command:
        """Look up a command by its qualified name, e.g. ``"poll input create"``.

        Raises:
            InvalidRouting: if no command has that name

        """
        root, *names = path.split()
        command = self.resolve(InteractionKind.COMMAND, root)
        for name in names:
            child = command.get_command(name) if isinstance(command, app_commands.Group) else None
            if child is None:
                raise InvalidRouting(InteractionKind.COMMAND, path)
            command = child
        return command
