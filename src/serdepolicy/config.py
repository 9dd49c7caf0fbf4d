"""
Framework configuration for serdepolicy.

Holds the process-wide PolicySettings used by the metadata cache, the
predicate resolver, the emptiness classifier and the deserializer.

Settings are plain module state: set them once at startup, or override
them temporarily with the policy_settings() context manager (tests).
"""

import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicySettings:
    """
    Behavior switches for field policy resolution.

    Attributes:
        cache_metadata: Cache FieldMetadata per (type, field name)
        cache_predicates: Cache predicate handles resolved against an explicit custom_class
        fail_on_resolution_error: Propagate resolution errors out of the deserializer.
            When False, the offending field is logged and left untouched.
        empty_method_name: Zero-argument method probed by the emptiness fallback
    """
    cache_metadata: bool = True
    cache_predicates: bool = True
    fail_on_resolution_error: bool = True
    empty_method_name: str = "is_empty"


_DEFAULT_SETTINGS = PolicySettings()
_settings: PolicySettings = _DEFAULT_SETTINGS


def get_policy_settings() -> PolicySettings:
    """Get the active settings."""
    return _settings


def set_policy_settings(settings: PolicySettings) -> None:
    """Replace the active settings."""
    global _settings
    if not isinstance(settings, PolicySettings):
        raise TypeError(f"Expected PolicySettings, got {type(settings).__name__}")
    _settings = settings
    logger.debug(f"Policy settings set to {settings}")


def reset_policy_settings() -> None:
    """Restore the default settings."""
    set_policy_settings(_DEFAULT_SETTINGS)


@contextmanager
def policy_settings(**overrides) -> Iterator[PolicySettings]:
    """
    Temporarily override individual settings.

    Example:
        with policy_settings(fail_on_resolution_error=False):
            deserializer.deserialize_fields(config, obj)
    """
    previous = get_policy_settings()
    updated = dataclasses.replace(previous, **overrides)
    set_policy_settings(updated)
    try:
        yield updated
    finally:
        set_policy_settings(previous)
