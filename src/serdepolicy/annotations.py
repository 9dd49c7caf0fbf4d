"""
Declarative serde markers for object fields.

Markers are attached to a field in one of two ways:

    @dataclass
    class ServerConfig:
        # typing.Annotated
        name: Annotated[str, SkipDeserializingIf(SkipDeIf.IS_MISSING, SkipDeIf.IS_NULL)] = "main"

        # dataclass field metadata
        hosts: List[str] = serde_field(SkipDeserializingIf(SkipDeIf.IS_EMPTY), default_factory=list)

Custom predicates are looked up by name on the object being deserialized,
or on custom_class when it is given:

    @dataclass
    class ServerConfig:
        name: Annotated[str, SkipDeserializingIf(SkipDeIf.CUSTOM, custom_check="skip_name")] = "main"

        def skip_name(self, raw: Any) -> bool:
            return raw == "skip me"

    class Checks:
        @staticmethod
        def skip_port(raw):
            return raw == -1

    @dataclass
    class ServerConfig:
        port: Annotated[int, SkipDeserializingIf(SkipDeIf.CUSTOM, custom_class=Checks, custom_check="skip_port")] = 80

Methods found on custom_class must be static (staticmethod or classmethod).
A predicate may also be a field holding a one-argument callable.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple

from serdepolicy.errors import AnnotationError

# Key under which markers are stored in dataclasses.field(metadata=...)
SERDE_METADATA_KEY = 'serdepolicy'

# Sentinel for custom_class: "use the type of the object being deserialized"
CURRENT_TYPE = object


class SkipDeIf(Enum):
    """A condition under which a field is left untouched during deserialization."""
    # Skip if the config entry is missing
    IS_MISSING = "is_missing"
    # Skip if the config value is null
    IS_NULL = "is_null"
    # Skip if the config value is logically empty (see serdepolicy.emptiness)
    IS_EMPTY = "is_empty"
    # Skip if the custom predicate named by custom_check returns True
    CUSTOM = "custom"


class WhenValue(Enum):
    """A condition under which a default value replaces the config value."""
    IS_MISSING = "is_missing"
    IS_NULL = "is_null"
    IS_EMPTY = "is_empty"
    # Value present but not an instance of the field's type.
    # int is accepted for float; bool is rejected for int and float.
    IS_INVALID = "is_invalid"


class SerdePhase(Enum):
    """Which direction of (de)serialization a declaration applies to."""
    SERIALIZING = "serializing"
    DESERIALIZING = "deserializing"
    BOTH = "both"

    def applies_to_deserialization(self) -> bool:
        return self in (SerdePhase.DESERIALIZING, SerdePhase.BOTH)


def _check_custom_class(custom_class: Any) -> None:
    if not isinstance(custom_class, type):
        raise AnnotationError(f"custom_class must be a type, got {custom_class!r}")


@dataclass(frozen=True, init=False)
class SkipDeserializingIf:
    """Don't deserialize the field if any of the given conditions holds."""
    value: Tuple[SkipDeIf, ...]
    custom_class: type = CURRENT_TYPE
    custom_check: str = ""

    def __init__(self, *value: SkipDeIf, custom_class: type = CURRENT_TYPE, custom_check: str = ""):
        if not value:
            raise AnnotationError("SkipDeserializingIf requires at least one condition")
        for condition in value:
            if not isinstance(condition, SkipDeIf):
                raise AnnotationError(f"Expected SkipDeIf condition, got {condition!r}")
        _check_custom_class(custom_class)
        if SkipDeIf.CUSTOM in value and not custom_check:
            raise AnnotationError("SkipDeIf.CUSTOM requires a custom_check member name")
        object.__setattr__(self, 'value', tuple(value))
        object.__setattr__(self, 'custom_class', custom_class)
        object.__setattr__(self, 'custom_check', custom_check)


@dataclass(frozen=True)
class SkipDeserializingIfContainer:
    """Several SkipDeserializingIf declarations grouped as one marker."""
    value: Tuple[SkipDeserializingIf, ...]


@dataclass(frozen=True)
class SerdeDefault:
    """
    Replace the config value with a default when one of the `when` conditions holds.

    Attributes:
        provider: Name of the member supplying the default: a zero-argument
            method, a field holding a zero-argument callable, or a field
            holding the default value itself
        custom_class: Type to look the provider up on (CURRENT_TYPE = the object's type)
        when: Conditions that activate the default
        phase: Direction this declaration applies to
    """
    provider: str
    custom_class: type = CURRENT_TYPE
    when: Tuple[WhenValue, ...] = (WhenValue.IS_MISSING,)
    phase: SerdePhase = SerdePhase.BOTH

    def __post_init__(self):
        if not self.provider or not isinstance(self.provider, str):
            raise AnnotationError(f"SerdeDefault.provider must be a member name, got {self.provider!r}")
        _check_custom_class(self.custom_class)
        if isinstance(self.when, WhenValue):
            object.__setattr__(self, 'when', (self.when,))
        if not self.when:
            raise AnnotationError("SerdeDefault requires at least one WhenValue")
        for condition in self.when:
            if not isinstance(condition, WhenValue):
                raise AnnotationError(f"Expected WhenValue condition, got {condition!r}")


@dataclass(frozen=True)
class SerdeDefaultsContainer:
    """Several SerdeDefault declarations grouped as one marker."""
    value: Tuple[SerdeDefault, ...]


SERDE_MARKER_TYPES = (
    SkipDeserializingIf,
    SkipDeserializingIfContainer,
    SerdeDefault,
    SerdeDefaultsContainer,
)


def is_serde_marker(obj: Any) -> bool:
    """True if obj is one of the serde marker types."""
    return isinstance(obj, SERDE_MARKER_TYPES)


def serde_field(*markers, metadata=None, **field_kwargs):
    """
    dataclasses.field() carrying serde markers in its metadata.

    Example:
        hosts: List[str] = serde_field(SkipDeserializingIf(SkipDeIf.IS_EMPTY), default_factory=list)
    """
    for marker in markers:
        if not is_serde_marker(marker):
            raise AnnotationError(f"Not a serde marker: {marker!r}")
    merged = dict(metadata) if metadata else {}
    merged[SERDE_METADATA_KEY] = tuple(merged.get(SERDE_METADATA_KEY, ())) + tuple(markers)
    return dataclasses.field(metadata=merged, **field_kwargs)
