"""
Object-graph deserializer driven by field policies.

Walks the declared fields of a target object, fetches the raw config value
for each one, asks the policy engine for a Decision and applies it:

    SKIP        -> field untouched
    USE_DEFAULT -> field = computed default
    PROCEED     -> field = raw value (a MISSING raw value leaves the field untouched)

Structured fields (dataclasses and annotated classes) that receive a
sub-table are filled recursively, reusing the object already in the field
when there is one.

Example:
    @dataclass
    class ServerConfig:
        host: Annotated[str, SkipDeserializingIf(SkipDeIf.IS_MISSING)] = "localhost"
        port: Annotated[int, SerdeDefault("default_port", when=(WhenValue.IS_NULL,))] = 80

        def default_port(self):
            return 8080

    server = ObjectDeserializer().deserialize({"port": None}, ServerConfig)
    # server.host == "localhost", server.port == 8080
"""

import dataclasses
import logging
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Optional, Type, TypeVar, Union, get_args, get_origin

from serdepolicy.config import PolicySettings, get_policy_settings, policy_settings
from serdepolicy.defaults import runtime_type
from serdepolicy.engine import Decision, DecisionKind, decide
from serdepolicy.errors import MemberResolutionError
from serdepolicy.metadata import FieldMetadata, declared_fields, get_type_metadata
from serdepolicy.raw_value import MISSING, ConfigTree

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class DeserializationReport:
    """Decisions taken for the fields of one object."""
    target_type: type
    decisions: Dict[str, Decision] = field(default_factory=dict)
    errors: Dict[str, MemberResolutionError] = field(default_factory=dict)

    def fields_with(self, kind: DecisionKind) -> list:
        return [name for name, decision in self.decisions.items() if decision.kind is kind]

    @property
    def skipped(self) -> list:
        return self.fields_with(DecisionKind.SKIP)

    @property
    def defaulted(self) -> list:
        return self.fields_with(DecisionKind.USE_DEFAULT)


def _is_structured(cls: Optional[type]) -> bool:
    if cls is None:
        return False
    if dataclasses.is_dataclass(cls):
        return True
    return cls.__module__ != 'builtins' and bool(declared_fields(cls))


def structured_type(field_type: Any) -> Optional[type]:
    """
    Class to fill recursively for a field, or None.

    Optional[Sub] and Sub | None resolve to Sub when exactly one union arm is structured.
    """
    if get_origin(field_type) is Annotated:
        field_type = get_args(field_type)[0]
    origin = get_origin(field_type)
    if origin is Union or origin is types.UnionType:
        candidates = [
            runtime_type(arm) for arm in get_args(field_type)
            if arm is not type(None) and _is_structured(runtime_type(arm))
        ]
        return candidates[0] if len(candidates) == 1 else None
    cls = runtime_type(field_type)
    return cls if _is_structured(cls) else None


def _assign(instance: Any, name: str, value: Any) -> None:
    params = getattr(type(instance), '__dataclass_params__', None)
    if params is not None and params.frozen:
        object.__setattr__(instance, name, value)
    else:
        setattr(instance, name, value)


class ObjectDeserializer:
    """
    Fills objects from a config tree according to their field policies.

    Args:
        settings: Settings to use instead of the process-wide ones
    """

    def __init__(self, settings: Optional[PolicySettings] = None):
        self._settings = settings

    @property
    def settings(self) -> PolicySettings:
        return self._settings if self._settings is not None else get_policy_settings()

    def deserialize(self, config: Mapping, cls: Type[T]) -> T:
        """Create cls() and fill it from config."""
        instance = cls()
        self.deserialize_fields(config, instance)
        return instance

    def deserialize_fields(self, config: Mapping, instance: Any) -> DeserializationReport:
        """
        Fill the declared fields of an existing object from config.

        Raises:
            MemberResolutionError: A custom predicate or default provider could
                not be resolved and fail_on_resolution_error is set
        """
        if self._settings is not None and get_policy_settings() is not self._settings:
            with policy_settings(**dataclasses.asdict(self._settings)):
                return self._fill(config, instance)
        return self._fill(config, instance)

    def _fill(self, config: Mapping, instance: Any) -> DeserializationReport:
        tree = config if isinstance(config, ConfigTree) else ConfigTree(config)
        report = DeserializationReport(type(instance))

        for metadata in get_type_metadata(type(instance)):
            name = metadata.field_name
            raw_value = tree.get_raw([name])
            try:
                decision = decide(metadata, raw_value, instance)
            except MemberResolutionError as e:
                if self.settings.fail_on_resolution_error:
                    raise
                logger.warning(f"Leaving {type(instance).__name__}.{name} untouched: {e}")
                report.errors[name] = e
                continue

            report.decisions[name] = decision
            self._apply(instance, metadata, decision, raw_value)

        return report

    def _apply(self, instance: Any, metadata: FieldMetadata, decision: Decision, raw_value: Any) -> None:
        name = metadata.field_name
        if decision.kind is DecisionKind.SKIP:
            return
        if decision.kind is DecisionKind.USE_DEFAULT:
            _assign(instance, name, decision.value)
            return
        if raw_value is MISSING:
            return
        _assign(instance, name, self._convert(instance, metadata, raw_value))

    def _convert(self, instance: Any, metadata: FieldMetadata, raw_value: Any) -> Any:
        if not isinstance(raw_value, Mapping):
            return raw_value

        target_type = structured_type(metadata.field_type)
        if target_type is None:
            return raw_value.to_dict() if isinstance(raw_value, ConfigTree) else raw_value

        current = getattr(instance, metadata.field_name, None)
        target = current if isinstance(current, target_type) else target_type()
        logger.debug(f"Filling nested {target_type.__name__} for field '{metadata.field_name}'")
        self._fill(raw_value, target)
        return target
