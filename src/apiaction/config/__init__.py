"""Configuration management for apiaction."""

from apiaction.config.settings import INVALIDATION_POLICIES, ActionSettings, load_config

__all__ = [
    "ActionSettings",
    "INVALIDATION_POLICIES",
    "load_config",
]
