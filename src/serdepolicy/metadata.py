"""
Field metadata derivation.

Turns the serde markers declared on a class into immutable FieldMetadata
values, one per field. Derivation runs once per (type, field name) and the
result is cached process-wide: markers never change at runtime, so
concurrent derivations produce equal values and the last write simply wins.

Sources, in order:
  1. typing.Annotated extras on the field's annotation
  2. dataclasses.field(metadata={SERDE_METADATA_KEY: (...)})

Repeated declarations (and container markers) are flattened into a single
ordered tuple of SkipCondition values.
"""

import dataclasses
import inspect
import logging
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, get_args, get_origin, get_type_hints

from serdepolicy.annotations import (
    CURRENT_TYPE,
    SERDE_METADATA_KEY,
    SerdeDefault,
    SerdeDefaultsContainer,
    SkipDeIf,
    SkipDeserializingIf,
    SkipDeserializingIfContainer,
    is_serde_marker,
)
from serdepolicy.conditions import SkipCondition
from serdepolicy.config import get_policy_settings
from serdepolicy.defaults import DefaultRule
from serdepolicy.errors import AnnotationError

logger = logging.getLogger(__name__)

# Key: (declaring type, field name) -> FieldMetadata
_field_metadata_cache: Dict[Tuple[type, str], 'FieldMetadata'] = {}

# Key: declaring type -> all FieldMetadata in declaration order
_type_metadata_cache: Dict[type, Tuple['FieldMetadata', ...]] = {}


@dataclass(frozen=True)
class FieldMetadata:
    """Everything the policy engine needs to know about one declared field."""
    declaring_type: type
    field_name: str
    field_type: Any = Any
    skip_conditions: Tuple[SkipCondition, ...] = ()
    default_rule: Optional[DefaultRule] = None

    @property
    def has_policy(self) -> bool:
        return bool(self.skip_conditions) or self.default_rule is not None


def clear_metadata_cache() -> None:
    """Forget all derived metadata."""
    _field_metadata_cache.clear()
    _type_metadata_cache.clear()


def _type_hints(cls: type) -> Dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except Exception as e:
        # Unresolvable forward references: use raw annotations
        logger.debug(f"get_type_hints failed for {cls.__name__}, using raw annotations: {e}")
        hints: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            hints.update(inspect.get_annotations(klass))
        return hints


def _is_class_var(annotation: Any) -> bool:
    if get_origin(annotation) is ClassVar or annotation is ClassVar:
        return True
    return isinstance(annotation, str) and annotation.startswith(('ClassVar', 'typing.ClassVar'))


def declared_fields(cls: type) -> List[Tuple[str, Any, Tuple[Any, ...]]]:
    """
    List (name, annotation, metadata markers) for every deserializable field of cls.

    Dataclasses use dataclasses.fields(); other classes use their annotations,
    ClassVar excluded.
    """
    hints = _type_hints(cls)
    result = []
    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            markers = tuple(f.metadata.get(SERDE_METADATA_KEY, ())) if f.metadata else ()
            result.append((f.name, hints.get(f.name, f.type), markers))
        return result

    for name, annotation in hints.items():
        if _is_class_var(annotation):
            continue
        result.append((name, annotation, ()))
    return result


def _split_annotated(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        return base, tuple(extra for extra in extras if is_serde_marker(extra))
    return annotation, ()


def _flatten_skip(declaration: SkipDeserializingIf) -> List[SkipCondition]:
    conditions = []
    for kind in declaration.value:
        if kind is SkipDeIf.CUSTOM:
            conditions.append(SkipCondition(kind, declaration.custom_class, declaration.custom_check))
        else:
            conditions.append(SkipCondition(kind, CURRENT_TYPE, ""))
    return conditions


def _collect(markers: Tuple[Any, ...]) -> Tuple[List[SkipCondition], List[SerdeDefault]]:
    skip_conditions: List[SkipCondition] = []
    defaults: List[SerdeDefault] = []
    for marker in markers:
        if isinstance(marker, SkipDeserializingIf):
            skip_conditions.extend(_flatten_skip(marker))
        elif isinstance(marker, SkipDeserializingIfContainer):
            for declaration in marker.value:
                skip_conditions.extend(_flatten_skip(declaration))
        elif isinstance(marker, SerdeDefault):
            defaults.append(marker)
        elif isinstance(marker, SerdeDefaultsContainer):
            defaults.extend(marker.value)
        else:
            raise AnnotationError(f"Not a serde marker: {marker!r}")
    return skip_conditions, defaults


def derive_field_metadata(
    declaring_type: type,
    field_name: str,
    annotation: Any,
    field_markers: Tuple[Any, ...] = (),
) -> FieldMetadata:
    """Build FieldMetadata from a field's annotation and its dataclass metadata markers."""
    field_type, annotated_markers = _split_annotated(annotation)
    skip_conditions, defaults = _collect(annotated_markers + tuple(field_markers))

    applicable = [d for d in defaults if d.phase.applies_to_deserialization()]
    if len(applicable) > 1:
        raise AnnotationError(
            f"Field '{field_name}' of {declaring_type.__qualname__} declares "
            f"{len(applicable)} defaults for deserialization, at most one is allowed"
        )
    default_rule = DefaultRule.from_declaration(applicable[0], field_type) if applicable else None

    return FieldMetadata(
        declaring_type=declaring_type,
        field_name=field_name,
        field_type=field_type,
        skip_conditions=tuple(skip_conditions),
        default_rule=default_rule,
    )


def get_type_metadata(cls: type) -> Tuple[FieldMetadata, ...]:
    """All FieldMetadata of cls, in field declaration order."""
    use_cache = get_policy_settings().cache_metadata
    if use_cache and cls in _type_metadata_cache:
        return _type_metadata_cache[cls]

    metadata = tuple(
        derive_field_metadata(cls, name, annotation, markers)
        for name, annotation, markers in declared_fields(cls)
    )
    logger.debug(f"Derived metadata for {cls.__name__}: {len(metadata)} fields")

    if use_cache:
        _type_metadata_cache[cls] = metadata
        for entry in metadata:
            _field_metadata_cache[(cls, entry.field_name)] = entry
    return metadata


def get_field_metadata(cls: type, field_name: str) -> FieldMetadata:
    """
    FieldMetadata for a single field.

    Raises:
        AttributeError: cls declares no such field
    """
    key = (cls, field_name)
    if get_policy_settings().cache_metadata and key in _field_metadata_cache:
        return _field_metadata_cache[key]
    for entry in get_type_metadata(cls):
        if entry.field_name == field_name:
            return entry
    raise AttributeError(f"{cls.__qualname__} has no deserializable field '{field_name}'")
