"""Error taxonomy for interaction handlers.

Every error is terminal for the interaction that raised it. The message of
each error is written so it can be logged and shown to the user as-is.
"""


class WardenError(Exception):
    """Base class for all errors surfaced to the dispatcher."""


class InvalidRouting(WardenError):
    """No handler is registered for an interaction's routing key."""

    def __init__(self, kind, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind}: '{key}'")


class MissingField(WardenError):
    """A required input (option, argument, guild context) was not provided."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing value: {name}")


class InvalidField(WardenError):
    """An input was provided but could not be interpreted."""

    def __init__(self, name: str, value):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for {name}: '{value}'")


class InvalidEnvelope(InvalidField):
    """A button or modal custom id could not be decoded."""

    def __init__(self, value: str):
        super().__init__("custom id", value)


class PreconditionFailed(WardenError):
    """A domain rule rejected the operation (wrong status, poll already sent, ...)."""


class StoreError(WardenError):
    """Reading, writing or removing a persisted record failed."""


class RecordNotFound(StoreError):
    """The requested record does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"No stored record at {path}")


class PlatformError(WardenError):
    """Discord rejected an API call (missing permissions, unknown channel, ...)."""
