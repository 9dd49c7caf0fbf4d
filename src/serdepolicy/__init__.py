"""
Annotation-driven field policies for object deserialization.

Given a configuration tree and a target object whose fields carry serde
markers, serdepolicy decides, per field, whether to skip it, to substitute
a default value, or to assign the config value normally.

Key Features:
- Skip conditions: IS_MISSING, IS_NULL, IS_EMPTY and CUSTOM predicates
- Custom predicates resolved by name, as a method or a predicate field,
  on the object itself or (static only) on another class
- Default values with configurable activation (missing, null, empty, invalid)
- Logical emptiness for strings, collections and objects with is_empty()
- Immutable, cached field metadata

Quick Start:
    >>> from dataclasses import dataclass
    >>> from typing import Annotated, List
    >>> from serdepolicy import ObjectDeserializer, SkipDeserializingIf, SkipDeIf
    >>>
    >>> @dataclass
    ... class ServerConfig:
    ...     name: Annotated[str, SkipDeserializingIf(SkipDeIf.IS_MISSING, SkipDeIf.IS_NULL)] = "main"
    ...     hosts: Annotated[List[str], SkipDeserializingIf(SkipDeIf.IS_EMPTY)] = None
    >>>
    >>> server = ObjectDeserializer().deserialize({"name": None, "hosts": []}, ServerConfig)
    >>> server.name, server.hosts
    ('main', None)

Architecture:
    object walker -> raw value at field path -> decide(metadata, raw, obj) -> Decision

    decide():
        1. skip conditions (OR, declaration order, short-circuit) -> SKIP
        2. default rule active                                      -> USE_DEFAULT(value)
        3. otherwise                                                -> PROCEED

Modules:
    - annotations: Serde markers (SkipDeserializingIf, SerdeDefault, containers)
    - raw_value: MISSING sentinel and the read-only ConfigTree
    - emptiness: Logical emptiness classifier
    - resolver: Resolution of custom predicates and default providers
    - conditions: Skip-condition aggregation
    - defaults: Default-value rules
    - metadata: FieldMetadata derivation and caching
    - engine: Field policy engine
    - deserializer: Object-graph deserializer
    - config: Framework settings
    - errors: Error taxonomy
"""

# Markers
from serdepolicy.annotations import (
    CURRENT_TYPE,
    SERDE_METADATA_KEY,
    SkipDeIf,
    WhenValue,
    SerdePhase,
    SkipDeserializingIf,
    SkipDeserializingIfContainer,
    SerdeDefault,
    SerdeDefaultsContainer,
    serde_field,
)

# Raw values
from serdepolicy.raw_value import MISSING, ConfigTree, is_missing, is_null

# Emptiness
from serdepolicy.emptiness import is_empty

# Resolver
from serdepolicy.resolver import (
    HandleKind,
    PredicateHandle,
    SupplierHandle,
    resolve_predicate,
    resolve_supplier,
    clear_resolution_cache,
)

# Conditions
from serdepolicy.conditions import SkipCondition, should_skip, evaluate_condition

# Defaults
from serdepolicy.defaults import DefaultRule

# Metadata
from serdepolicy.metadata import (
    FieldMetadata,
    get_field_metadata,
    get_type_metadata,
    clear_metadata_cache,
)

# Engine
from serdepolicy.engine import Decision, DecisionKind, decide

# Deserializer
from serdepolicy.deserializer import ObjectDeserializer, DeserializationReport

# Configuration
from serdepolicy.config import (
    PolicySettings,
    get_policy_settings,
    set_policy_settings,
    reset_policy_settings,
    policy_settings,
)

# Errors
from serdepolicy.errors import (
    SerdeError,
    AnnotationError,
    ResolutionErrorKind,
    MemberResolutionError,
    PredicateResolutionError,
    SupplierResolutionError,
)

__all__ = [
    # Markers
    'CURRENT_TYPE',
    'SERDE_METADATA_KEY',
    'SkipDeIf',
    'WhenValue',
    'SerdePhase',
    'SkipDeserializingIf',
    'SkipDeserializingIfContainer',
    'SerdeDefault',
    'SerdeDefaultsContainer',
    'serde_field',
    # Raw values
    'MISSING',
    'ConfigTree',
    'is_missing',
    'is_null',
    # Emptiness
    'is_empty',
    # Resolver
    'HandleKind',
    'PredicateHandle',
    'SupplierHandle',
    'resolve_predicate',
    'resolve_supplier',
    'clear_resolution_cache',
    # Conditions
    'SkipCondition',
    'should_skip',
    'evaluate_condition',
    # Defaults
    'DefaultRule',
    # Metadata
    'FieldMetadata',
    'get_field_metadata',
    'get_type_metadata',
    'clear_metadata_cache',
    # Engine
    'Decision',
    'DecisionKind',
    'decide',
    # Deserializer
    'ObjectDeserializer',
    'DeserializationReport',
    # Configuration
    'PolicySettings',
    'get_policy_settings',
    'set_policy_settings',
    'reset_policy_settings',
    'policy_settings',
    # Errors
    'SerdeError',
    'AnnotationError',
    'ResolutionErrorKind',
    'MemberResolutionError',
    'PredicateResolutionError',
    'SupplierResolutionError',
]

__version__ = '1.0.0'
__description__ = 'Annotation-driven field policies for object deserialization'
