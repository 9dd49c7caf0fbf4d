"""
Resolution of named members into callable handles.

A skip predicate (SkipDeIf.CUSTOM) or a default provider (SerdeDefault) is
referenced by name. This module turns (declaring type, member name) into a
handle that downstream code calls without caring what kind of member it
came from.

ALGORITHM:
  1. Pick the type to search:
       custom_class is CURRENT_TYPE -> type of the object being deserialized
       otherwise                    -> custom_class (members must be static)
  2. Look for a FIELD member: a name declared in the type's annotations,
     present in the instance __dict__, or a non-method class attribute.
  3. Look for a METHOD member: a def-defined function, staticmethod or
     classmethod with that name.
  4. Exactly one of the two must exist.
  5. Check the member's shape and bind it:
       field  -> its current value
       method -> bound to the instance, to the class (classmethod), or unbound (staticmethod)

Handles resolved against an explicit custom_class never depend on an
instance and are cached process-wide by (custom_class, member_name).
Instance-bound handles are resolved again for every object.
"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Callable, ClassVar, Dict, Optional, Tuple, Type, get_args, get_origin
import collections.abc

from serdepolicy.annotations import CURRENT_TYPE
from serdepolicy.config import get_policy_settings
from serdepolicy.errors import (
    MemberResolutionError,
    PredicateResolutionError,
    ResolutionErrorKind,
    SupplierResolutionError,
)
from serdepolicy.raw_value import MISSING

logger = logging.getLogger(__name__)

# Key: (custom_class, member_name) -> handle. Only static handles are stored.
_predicate_cache: Dict[Tuple[type, str], 'PredicateHandle'] = {}
_supplier_cache: Dict[Tuple[type, str], 'SupplierHandle'] = {}

_ANY_VALUE_ANNOTATIONS = (Any, object, 'Any', 'typing.Any', 'object')


class HandleKind(Enum):
    """Shape of the member a handle was resolved from."""
    FIELD_VALUE = "field_value"
    BOUND_METHOD = "bound_method"
    STATIC_METHOD = "static_method"


@dataclass(frozen=True)
class PredicateHandle:
    """A resolved boolean test over a raw config value."""
    declaring_type: type
    member_name: str
    kind: HandleKind
    instance_bound: bool
    function: Callable[[Any], Any] = field(repr=False, compare=False)

    def __call__(self, raw_value: Any) -> bool:
        return bool(self.function(raw_value))


@dataclass(frozen=True)
class SupplierHandle:
    """A resolved provider of a default value."""
    declaring_type: type
    member_name: str
    kind: HandleKind
    instance_bound: bool
    function: Callable[[], Any] = field(repr=False, compare=False)

    def __call__(self) -> Any:
        return self.function()


@dataclass(frozen=True)
class _Member:
    """What a name refers to on a type, before shape checks."""
    owner: type
    name: str
    is_field: bool
    annotation: Any = None
    value: Any = MISSING
    value_from_instance: bool = False
    method: Any = None


def clear_resolution_cache() -> None:
    """Forget all cached static handles."""
    _predicate_cache.clear()
    _supplier_cache.clear()


# =============================================================================
# MEMBER LOOKUP
# =============================================================================

def _search_mro(klass: type) -> tuple:
    return tuple(k for k in klass.__mro__ if k is not object)


def _own_annotations(klass: type) -> Dict[str, Any]:
    try:
        return inspect.get_annotations(klass, eval_str=True)
    except Exception:
        # Unresolvable forward references: fall back to raw strings
        return inspect.get_annotations(klass)


def _declared_annotation(klass: type, name: str) -> Any:
    for k in _search_mro(klass):
        annotations = _own_annotations(k)
        if name in annotations:
            return annotations[name]
    return MISSING


def _class_attribute(klass: type, name: str) -> Optional[Tuple[type, Any]]:
    """Nearest (owner, raw attribute) in the MRO, without invoking descriptors."""
    for k in _search_mro(klass):
        if name in k.__dict__:
            return k, k.__dict__[name]
    return None


def _is_method_definition(raw: Any, name: str) -> bool:
    if isinstance(raw, (staticmethod, classmethod)):
        return True
    # A lambda stored in a class attribute is a field value, not a method
    return inspect.isfunction(raw) and raw.__name__ == name


def _field_value(klass: type, name: str, instance: Any) -> Tuple[Any, bool]:
    """Return (value, came_from_instance) for a field member."""
    if instance is not None:
        instance_dict = getattr(instance, '__dict__', None)
        if instance_dict is not None and name in instance_dict:
            return instance_dict[name], True
    found = _class_attribute(klass, name)
    if found is None:
        return MISSING, False
    raw = found[1]
    if instance is not None and inspect.isdatadescriptor(raw):
        # __slots__ members and properties hold per-instance values
        try:
            return object.__getattribute__(instance, name), True
        except AttributeError:
            return MISSING, True
    return raw, False


def _locate(
    klass: type,
    name: str,
    instance: Any,
    error_cls: Type[MemberResolutionError],
    field_name: Optional[str],
) -> _Member:
    annotation = _declared_annotation(klass, name)
    in_instance = instance is not None and name in getattr(instance, '__dict__', {})
    found = _class_attribute(klass, name)

    method = None
    owner = klass
    if found is not None:
        owner, raw = found
        if _is_method_definition(raw, name):
            method = raw

    is_field = (
        annotation is not MISSING
        or in_instance
        or (found is not None and method is None)
    )

    if is_field and method is not None:
        raise error_cls(
            ResolutionErrorKind.AMBIGUOUS, klass, name,
            "both a field and a method have this name", field_name,
        )
    if not is_field and method is None:
        raise error_cls(
            ResolutionErrorKind.NOT_FOUND, klass, name,
            "no field or method with this name", field_name,
        )

    if method is not None:
        return _Member(owner=owner, name=name, is_field=False, method=method)

    value, from_instance = _field_value(klass, name, instance)
    return _Member(
        owner=owner,
        name=name,
        is_field=True,
        annotation=None if annotation is MISSING else annotation,
        value=value,
        value_from_instance=from_instance,
    )


def _bind_method(
    member: _Member,
    klass: type,
    instance: Any,
    require_static: bool,
    error_cls: Type[MemberResolutionError],
    field_name: Optional[str],
) -> Tuple[Callable, HandleKind, bool]:
    raw = member.method
    if isinstance(raw, staticmethod):
        return raw.__func__, HandleKind.STATIC_METHOD, False
    if isinstance(raw, classmethod):
        return raw.__get__(None, klass), HandleKind.STATIC_METHOD, False
    if require_static:
        raise error_cls(
            ResolutionErrorKind.NOT_STATIC, klass, member.name,
            "methods referenced through custom_class must be static", field_name,
        )
    if instance is None:
        raise error_cls(
            ResolutionErrorKind.UNBOUND, klass, member.name,
            "instance method needs the object being deserialized", field_name,
        )
    return raw.__get__(instance, type(instance)), HandleKind.BOUND_METHOD, True


def _parameters(func: Callable) -> Optional[list]:
    try:
        return list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError, NameError):
        # Builtins without signature metadata, or unresolvable annotations
        return None


def _accepts_single_value(func: Callable) -> Tuple[bool, str]:
    params = _parameters(func)
    if params is None:
        return True, ""
    if len(params) != 1:
        return False, f"expected exactly one parameter, found {len(params)}"
    param = params[0]
    if param.kind not in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
        return False, f"parameter '{param.name}' must be positional"
    if param.annotation is not inspect.Parameter.empty and param.annotation not in _ANY_VALUE_ANNOTATIONS:
        return False, f"parameter '{param.name}' must accept any value, annotated {param.annotation!r}"
    return True, ""


def _takes_no_arguments(func: Callable) -> Tuple[bool, str]:
    params = _parameters(func)
    if params is None:
        return True, ""
    required = [
        p for p in params
        if p.default is inspect.Parameter.empty
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if required:
        return False, f"expected no parameters, found {len(required)}"
    return True, ""


def _check_predicate_annotation(annotation: Any) -> Tuple[bool, str]:
    """Validate a field annotation as Callable[[Any], bool]. Unknown forms pass."""
    if annotation is None or isinstance(annotation, str):
        return True, ""
    if get_origin(annotation) is ClassVar:
        args = get_args(annotation)
        if not args:
            return True, ""
        annotation = args[0]
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    if annotation is collections.abc.Callable or annotation is Callable:
        return True, ""
    if get_origin(annotation) is not collections.abc.Callable:
        return False, f"field is annotated {annotation!r}, not a predicate"
    params, returns = get_args(annotation)
    if params is Ellipsis:
        return True, ""
    if len(params) != 1:
        return False, f"predicate field must take exactly one argument, annotated {annotation!r}"
    if params[0] not in _ANY_VALUE_ANNOTATIONS:
        return False, f"predicate field must accept any value, annotated {annotation!r}"
    if returns not in (bool, Any):
        return False, f"predicate field must return bool, annotated {annotation!r}"
    return True, ""


def _field_value_or_raise(
    member: _Member,
    klass: type,
    instance: Any,
    require_static: bool,
    error_cls: Type[MemberResolutionError],
    field_name: Optional[str],
) -> Any:
    if member.value is not MISSING:
        return member.value
    if require_static:
        raise error_cls(
            ResolutionErrorKind.NOT_STATIC, klass, member.name,
            "fields referenced through custom_class need a class-level value", field_name,
        )
    if instance is None:
        raise error_cls(
            ResolutionErrorKind.UNBOUND, klass, member.name,
            "instance field needs the object being deserialized", field_name,
        )
    raise error_cls(
        ResolutionErrorKind.WRONG_SHAPE, klass, member.name,
        "field is declared but has no value", field_name,
    )


# =============================================================================
# PUBLIC RESOLUTION
# =============================================================================

def _search_target(declaring_type_hint: type, current_type: type, current_instance: Any):
    use_current = declaring_type_hint is CURRENT_TYPE
    klass = current_type if use_current else declaring_type_hint
    instance = current_instance if use_current else None
    return use_current, klass, instance


def resolve_predicate(
    declaring_type_hint: type,
    member_name: str,
    current_type: type,
    current_instance: Any,
    *,
    field_name: Optional[str] = None,
) -> PredicateHandle:
    """
    Resolve a custom skip predicate.

    Args:
        declaring_type_hint: custom_class from the declaration (CURRENT_TYPE to use current_type)
        member_name: custom_check from the declaration
        current_type: Type of the object being deserialized
        current_instance: The object being deserialized (binds instance members)
        field_name: Field the declaration belongs to, for error messages

    Returns:
        PredicateHandle

    Raises:
        PredicateResolutionError: No member, ambiguous member, wrong shape, or
            a non-static method referenced through custom_class
    """
    use_current, klass, instance = _search_target(declaring_type_hint, current_type, current_instance)
    cache_key = (klass, member_name)
    use_cache = not use_current and get_policy_settings().cache_predicates
    if use_cache and cache_key in _predicate_cache:
        return _predicate_cache[cache_key]

    error_cls = PredicateResolutionError
    member = _locate(klass, member_name, instance, error_cls, field_name)

    if member.is_field:
        ok, detail = _check_predicate_annotation(member.annotation)
        if not ok:
            raise error_cls(ResolutionErrorKind.WRONG_SHAPE, klass, member_name, detail, field_name)
        value = _field_value_or_raise(member, klass, instance, not use_current, error_cls, field_name)
        if not callable(value):
            raise error_cls(
                ResolutionErrorKind.WRONG_SHAPE, klass, member_name,
                f"field holds {type(value).__name__}, not a predicate", field_name,
            )
        if member.annotation is None or isinstance(member.annotation, str):
            ok, detail = _accepts_single_value(value)
            if not ok:
                raise error_cls(ResolutionErrorKind.WRONG_SHAPE, klass, member_name, detail, field_name)
        handle = PredicateHandle(
            declaring_type=member.owner,
            member_name=member_name,
            kind=HandleKind.FIELD_VALUE,
            instance_bound=member.value_from_instance,
            function=value,
        )
    else:
        function, kind, bound = _bind_method(member, klass, instance, not use_current, error_cls, field_name)
        ok, detail = _accepts_single_value(function)
        if not ok:
            raise error_cls(ResolutionErrorKind.WRONG_SHAPE, klass, member_name, detail, field_name)
        handle = PredicateHandle(
            declaring_type=member.owner,
            member_name=member_name,
            kind=kind,
            instance_bound=bound,
            function=function,
        )

    logger.debug(f"Resolved skip predicate {klass.__name__}.{member_name} as {handle.kind.value}")
    if use_cache and not handle.instance_bound:
        _predicate_cache[cache_key] = handle
    return handle


def resolve_supplier(
    declaring_type_hint: type,
    member_name: str,
    current_type: type,
    current_instance: Any,
    *,
    field_name: Optional[str] = None,
) -> SupplierHandle:
    """
    Resolve a default-value provider.

    Same lookup rules as resolve_predicate(), but the member must be a
    zero-argument method, a field holding a zero-argument callable, or a
    field holding the default value itself.

    Raises:
        SupplierResolutionError
    """
    use_current, klass, instance = _search_target(declaring_type_hint, current_type, current_instance)
    cache_key = (klass, member_name)
    use_cache = not use_current and get_policy_settings().cache_predicates
    if use_cache and cache_key in _supplier_cache:
        return _supplier_cache[cache_key]

    error_cls = SupplierResolutionError
    member = _locate(klass, member_name, instance, error_cls, field_name)

    if member.is_field:
        value = _field_value_or_raise(member, klass, instance, not use_current, error_cls, field_name)
        if callable(value):
            ok, detail = _takes_no_arguments(value)
            if not ok:
                raise error_cls(ResolutionErrorKind.WRONG_SHAPE, klass, member_name, detail, field_name)
            function = value
        else:
            function = lambda: value  # noqa: E731
        handle = SupplierHandle(
            declaring_type=member.owner,
            member_name=member_name,
            kind=HandleKind.FIELD_VALUE,
            instance_bound=member.value_from_instance,
            function=function,
        )
    else:
        function, kind, bound = _bind_method(member, klass, instance, not use_current, error_cls, field_name)
        ok, detail = _takes_no_arguments(function)
        if not ok:
            raise error_cls(ResolutionErrorKind.WRONG_SHAPE, klass, member_name, detail, field_name)
        handle = SupplierHandle(
            declaring_type=member.owner,
            member_name=member_name,
            kind=kind,
            instance_bound=bound,
            function=function,
        )

    logger.debug(f"Resolved default provider {klass.__name__}.{member_name} as {handle.kind.value}")
    if use_cache and not handle.instance_bound:
        _supplier_cache[cache_key] = handle
    return handle
