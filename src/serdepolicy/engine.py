"""
Field policy engine.

For one (field, raw value) pair, decides what the deserializer does:

    SKIP        -> leave the field as it is
    USE_DEFAULT -> assign a computed default
    PROCEED     -> assign the raw value

Skip conditions are checked first: a field whose skip rule matches is left
untouched even when its default rule would also be active.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from serdepolicy.conditions import should_skip
from serdepolicy.metadata import FieldMetadata

logger = logging.getLogger(__name__)


class DecisionKind(Enum):
    PROCEED = "proceed"
    SKIP = "skip"
    USE_DEFAULT = "use_default"


@dataclass(frozen=True)
class Decision:
    """Outcome of policy evaluation for one field. `value` is only meaningful for USE_DEFAULT."""
    kind: DecisionKind
    value: Any = None

    @classmethod
    def proceed(cls) -> 'Decision':
        return cls(DecisionKind.PROCEED)

    @classmethod
    def skip(cls) -> 'Decision':
        return cls(DecisionKind.SKIP)

    @classmethod
    def use_default(cls, value: Any) -> 'Decision':
        return cls(DecisionKind.USE_DEFAULT, value)

    @property
    def is_skip(self) -> bool:
        return self.kind is DecisionKind.SKIP

    @property
    def is_default(self) -> bool:
        return self.kind is DecisionKind.USE_DEFAULT


def decide(metadata: FieldMetadata, raw_value: Any, current_instance: Any) -> Decision:
    """
    Decide how to deserialize one field.

    Args:
        metadata: The field's FieldMetadata
        raw_value: Raw config value at the field's path (MISSING if absent)
        current_instance: Object being deserialized

    Returns:
        Decision

    Raises:
        PredicateResolutionError: A custom skip predicate could not be resolved
        SupplierResolutionError: The default provider could not be resolved
    """
    field_name = metadata.field_name

    if metadata.skip_conditions and should_skip(
        metadata.skip_conditions, raw_value, current_instance,
        field_name=field_name, declaring_type=metadata.declaring_type,
    ):
        logger.debug(f"{metadata.declaring_type.__name__}.{field_name}: skip")
        return Decision.skip()

    rule = metadata.default_rule
    if rule is not None and rule.is_active(raw_value):
        value = rule.compute_default(
            current_instance, field_name=field_name, declaring_type=metadata.declaring_type
        )
        logger.debug(f"{metadata.declaring_type.__name__}.{field_name}: use default")
        return Decision.use_default(value)

    return Decision.proceed()
