"""
Logical emptiness of raw configuration values.

Used by the IS_EMPTY skip condition and the IS_EMPTY default trigger.
Classification is best effort: a value that cannot be classified is
treated as not empty, and this module never raises.
"""

import logging
from collections.abc import Collection
from typing import Any, Optional

from serdepolicy.config import get_policy_settings
from serdepolicy.raw_value import MISSING

logger = logging.getLogger(__name__)

_CHARACTER_TYPES = (str, bytes, bytearray)


def is_empty(value: Any) -> bool:
    """
    Decide whether a raw value is logically empty.

    Categories, first match wins:
    1. MISSING or None
    2. str / bytes / bytearray: zero length
    3. collections (sequences, sets, mappings, ConfigTree): zero length
    4. objects exposing a zero-argument ``is_empty()`` returning a bool
    5. anything else is not empty
    """
    if value is MISSING or value is None:
        return True

    if isinstance(value, _CHARACTER_TYPES):
        return len(value) == 0

    if isinstance(value, Collection):
        try:
            return len(value) == 0
        except TypeError:
            # e.g. 0-d arrays: __len__ exists but is unusable
            pass

    probed = probe_empty_method(value)
    return probed if probed is not None else False


def probe_empty_method(value: Any) -> Optional[bool]:
    """
    Invoke the value's empty-check method if it has a usable one.

    Returns:
        The method's result, or None if the method is absent, not callable
        without arguments, raises, or does not return a bool.
    """
    method_name = get_policy_settings().empty_method_name
    try:
        method = getattr(value, method_name)
    except Exception:
        return None
    if not callable(method):
        return None

    try:
        result = method()
    except Exception as e:
        logger.debug(f"{type(value).__name__}.{method_name}() failed, treating as not empty: {e}")
        return None

    if not isinstance(result, bool):
        logger.debug(f"{type(value).__name__}.{method_name}() returned {type(result).__name__}, not bool")
        return None
    return result
