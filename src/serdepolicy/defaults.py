"""
Default-value rules.

A DefaultRule is derived from a SerdeDefault declaration. The policy engine
only asks it two things: whether it is active for a raw value, and (when it
is) to compute the default. Providers are resolved with the same member
rules as skip predicates (see serdepolicy.resolver).
"""

import logging
import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Optional, Tuple, Union, get_args, get_origin

from serdepolicy.annotations import CURRENT_TYPE, SerdeDefault, WhenValue
from serdepolicy.emptiness import is_empty
from serdepolicy.raw_value import MISSING
from serdepolicy.conditions import current_type_of
from serdepolicy.resolver import resolve_supplier

logger = logging.getLogger(__name__)


def runtime_type(annotation: Any) -> Optional[type]:
    """
    Best-effort runtime class for an annotation.

    List[str] -> list, Annotated[int, ...] -> int, Optional[int] -> None
    (unions, Any, type variables and string annotations have no single class).
    """
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    if annotation is Any:
        return None
    origin = get_origin(annotation)
    if origin is None:
        return annotation if isinstance(annotation, type) else None
    if origin is Union or origin is types.UnionType:
        return None
    return origin if isinstance(origin, type) else None


def is_invalid_for(raw_value: Any, field_type: Any) -> bool:
    """True if a present, non-null raw value cannot populate a field of field_type."""
    if raw_value is MISSING or raw_value is None:
        return False
    expected = runtime_type(field_type)
    if expected is None or expected is object:
        return False
    if isinstance(raw_value, bool):
        return expected in (int, float)
    if isinstance(raw_value, expected):
        return False
    if expected is float and isinstance(raw_value, int):
        return False
    if isinstance(raw_value, Mapping) and issubclass(expected, Mapping):
        # Sub-tables are converted to plain dicts
        return False
    if isinstance(raw_value, Mapping) and expected.__module__ != 'builtins':
        # Structured objects are filled from sub-tables
        return False
    return True


@dataclass(frozen=True)
class DefaultRule:
    """
    When and how to replace a config value with a default.

    Attributes:
        provider: Member supplying the default
        custom_class: Type owning the provider (CURRENT_TYPE = object's own type)
        when: Activating conditions, any of which suffices
        field_type: Declared type of the field, used by WhenValue.IS_INVALID
    """
    provider: str
    custom_class: type = CURRENT_TYPE
    when: Tuple[WhenValue, ...] = (WhenValue.IS_MISSING,)
    field_type: Any = Any

    @classmethod
    def from_declaration(cls, declaration: SerdeDefault, field_type: Any = Any) -> 'DefaultRule':
        return cls(
            provider=declaration.provider,
            custom_class=declaration.custom_class,
            when=tuple(declaration.when),
            field_type=field_type,
        )

    def is_active(self, raw_value: Any) -> bool:
        """True if any `when` condition holds for raw_value."""
        for condition in self.when:
            if condition is WhenValue.IS_MISSING and raw_value is MISSING:
                return True
            if condition is WhenValue.IS_NULL and raw_value is None:
                return True
            if condition is WhenValue.IS_EMPTY and is_empty(raw_value):
                return True
            if condition is WhenValue.IS_INVALID and is_invalid_for(raw_value, self.field_type):
                return True
        return False

    def compute_default(
        self,
        current_instance: Any,
        *,
        field_name: Optional[str] = None,
        declaring_type: Optional[type] = None,
    ) -> Any:
        """
        Resolve the provider and return the default value.

        CURRENT_TYPE providers are looked up on declaring_type when current_instance is None.

        Raises:
            SupplierResolutionError: The provider could not be resolved
        """
        supplier = resolve_supplier(
            self.custom_class,
            self.provider,
            current_type_of(current_instance, declaring_type),
            current_instance,
            field_name=field_name,
        )
        value = supplier()
        logger.debug(f"Default for field '{field_name}' computed by {self.provider}: {value!r}")
        return value
