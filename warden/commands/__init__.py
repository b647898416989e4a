"""Command modules for Warden

Each module publishes one or more ``Feature``s: an ``app_commands`` command
or group plus the handlers for the buttons and modals it owns.

Categories:
- apply.py: Guild applications
- poll.py: Polls, raffles and their results
- role.py: Self-assignable role selectors
- general.py: /ping, /help, /data
- fun.py: /embed, /offer, /oracle, /quote
"""
from ..registry import Registry


def build_registry() -> Registry:
    """Build the routing table of every feature the bot ships."""
    from .apply import feature as apply_feature
    from .fun import features as fun_features
    from .general import features as general_features
    from .poll import feature as poll_feature
    from .role import feature as role_feature

    return Registry([
        apply_feature(),
        poll_feature(),
        role_feature(),
        *general_features(),
        *fun_features(),
    ])
