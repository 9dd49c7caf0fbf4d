"""
Skip-condition aggregation.

A field's skip rule is an ordered sequence of SkipCondition values. The
field is skipped if ANY condition holds. Conditions are evaluated in
declaration order and evaluation stops at the first true condition, so a
custom predicate declared after a condition that already matched is never
resolved nor invoked.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from serdepolicy.annotations import CURRENT_TYPE, SkipDeIf
from serdepolicy.emptiness import is_empty
from serdepolicy.errors import AnnotationError
from serdepolicy.raw_value import MISSING
from serdepolicy.resolver import resolve_predicate

logger = logging.getLogger(__name__)


def current_type_of(current_instance: Any, declaring_type: Optional[type]) -> type:
    """Type searched for CURRENT_TYPE members."""
    if current_instance is None and declaring_type is not None:
        return declaring_type
    return type(current_instance)


@dataclass(frozen=True)
class SkipCondition:
    """One normalized skip condition: a predefined kind or a named custom predicate."""
    kind: SkipDeIf
    custom_class: type = CURRENT_TYPE
    custom_check: str = ""

    def __post_init__(self):
        if self.kind is SkipDeIf.CUSTOM and not self.custom_check:
            raise AnnotationError("SkipDeIf.CUSTOM requires a custom_check member name")

    @classmethod
    def custom(cls, custom_check: str, custom_class: type = CURRENT_TYPE) -> 'SkipCondition':
        return cls(SkipDeIf.CUSTOM, custom_class, custom_check)


IS_MISSING = SkipCondition(SkipDeIf.IS_MISSING)
IS_NULL = SkipCondition(SkipDeIf.IS_NULL)
IS_EMPTY = SkipCondition(SkipDeIf.IS_EMPTY)


def evaluate_condition(
    condition: SkipCondition,
    raw_value: Any,
    current_instance: Any,
    *,
    field_name: Optional[str] = None,
    declaring_type: Optional[type] = None,
) -> bool:
    """
    Evaluate a single skip condition against a raw value.

    Custom predicates are looked up on the type of current_instance, or on
    declaring_type when there is no instance.
    """
    kind = condition.kind
    if kind is SkipDeIf.IS_MISSING:
        return raw_value is MISSING
    if kind is SkipDeIf.IS_NULL:
        return raw_value is None
    if kind is SkipDeIf.IS_EMPTY:
        return is_empty(raw_value)

    handle = resolve_predicate(
        condition.custom_class,
        condition.custom_check,
        current_type_of(current_instance, declaring_type),
        current_instance,
        field_name=field_name,
    )
    return handle(raw_value)


def should_skip(
    conditions: Iterable[SkipCondition],
    raw_value: Any,
    current_instance: Any,
    *,
    field_name: Optional[str] = None,
    declaring_type: Optional[type] = None,
) -> bool:
    """
    Decide whether a field should be skipped.

    Args:
        conditions: Ordered skip conditions of the field
        raw_value: Raw config value (MISSING if absent, None if explicitly null)
        current_instance: Object being deserialized (binds instance predicates)
        field_name: Field name, for error messages
        declaring_type: Type declaring the field, used when current_instance is None

    Returns:
        True if any condition holds; False for an empty sequence

    Raises:
        PredicateResolutionError: A custom predicate that had to be evaluated
            could not be resolved
    """
    for condition in conditions:
        if evaluate_condition(
            condition, raw_value, current_instance, field_name=field_name, declaring_type=declaring_type
        ):
            logger.debug(f"Skip condition {condition.kind.name} matched for field '{field_name}'")
            return True
    return False
