"""Custom ID codec for buttons, selects and modals.

A custom id looks like ``apply_accept;1234;1``: the first segment is the
component name, the remaining ``;``-separated segments are its arguments.
The part of the name before the first ``_`` is the base, which names the
feature that owns the component.

There is no escaping. Only primitive identifiers (snowflakes, enum ordinals,
small indices) may be used as arguments.
"""
from dataclasses import dataclass, field
from typing import List

from .errors import InvalidEnvelope

SEPARATOR = ";"
BASE_SEPARATOR = "_"


@dataclass(frozen=True)
class CustomId:
    """Decoded custom id."""

    base: str
    name: str
    args: List[str] = field(default_factory=list)

    @classmethod
    def new(cls, name: str) -> "CustomId":
        """Start a custom id for ``name`` with no arguments."""
        base = name.split(BASE_SEPARATOR, 1)[0]
        if not base:
            raise InvalidEnvelope(name)
        return cls(base=base, name=name, args=[])

    def arg(self, value) -> "CustomId":
        """Return a copy with ``value`` appended to the arguments."""
        return CustomId(base=self.base, name=self.name, args=[*self.args, str(value)])

    def __str__(self) -> str:
        return encode(self.name, self.args)


def encode(name: str, args=()) -> str:
    """Join a component name and its arguments into a custom id string."""
    return SEPARATOR.join([name, *(str(arg) for arg in args)])


def decode(value: str) -> CustomId:
    """Parse a custom id string.

    Raises:
        InvalidEnvelope: if the string is empty or has no base segment

    """
    if not value:
        raise InvalidEnvelope(value)

    name, *args = value.split(SEPARATOR)
    base = name.split(BASE_SEPARATOR, 1)[0]
    if not base:
        raise InvalidEnvelope(value)

    return CustomId(base=base, name=name, args=args)
