"""Tests for the field policy engine."""
import pytest
from dataclasses import dataclass
from typing import Annotated, Any

from serdepolicy import (
    MISSING,
    Decision,
    DecisionKind,
    DefaultRule,
    FieldMetadata,
    PredicateResolutionError,
    ResolutionErrorKind,
    SerdeDefault,
    SkipCondition,
    SkipDeIf,
    SkipDeserializingIf,
    SupplierResolutionError,
    WhenValue,
    decide,
    get_field_metadata,
)
from serdepolicy.conditions import IS_MISSING, IS_NULL

from conftest import Checks, ServerConfig


class Owner:
    """Provides defaults and predicates for hand-built metadata."""

    def fallback(self):
        return "fallback"

    def exploding_default(self):
        raise AssertionError("default must not be computed")


def metadata_for(skip_conditions=(), default_rule=None, field_type=Any):
    return FieldMetadata(
        declaring_type=Owner,
        field_name="value",
        field_type=field_type,
        skip_conditions=tuple(skip_conditions),
        default_rule=default_rule,
    )


class TestDecisionConstruction:
    """Decision value object."""

    def test_constructors(self):
        assert Decision.proceed().kind is DecisionKind.PROCEED
        assert Decision.skip().is_skip
        default = Decision.use_default(5)
        assert default.is_default
        assert default.value == 5

    def test_equality(self):
        assert Decision.use_default([1]) == Decision.use_default([1])
        assert Decision.skip() != Decision.proceed()


class TestDecide:
    """Skip, default and proceed decisions."""

    def test_proceed_without_policy(self):
        assert decide(metadata_for(), "x", Owner()) == Decision.proceed()
        assert decide(metadata_for(), MISSING, Owner()) == Decision.proceed()

    def test_skip(self):
        assert decide(metadata_for([IS_MISSING]), MISSING, Owner()) == Decision.skip()
        assert decide(metadata_for([IS_MISSING]), None, Owner()) == Decision.proceed()

    def test_default_when_missing(self):
        metadata = metadata_for(default_rule=DefaultRule("fallback"))
        assert decide(metadata, MISSING, Owner()) == Decision.use_default("fallback")
        assert decide(metadata, "present", Owner()) == Decision.proceed()

    def test_skip_takes_precedence_over_default(self):
        metadata = metadata_for([IS_MISSING], DefaultRule("exploding_default"))
        assert decide(metadata, MISSING, Owner()) == Decision.skip()

    def test_default_applies_when_skip_does_not(self):
        metadata = metadata_for([IS_NULL], DefaultRule("fallback"))
        assert decide(metadata, MISSING, Owner()) == Decision.use_default("fallback")

    @pytest.mark.parametrize("when,raw,active", [
        (WhenValue.IS_NULL, None, True),
        (WhenValue.IS_NULL, MISSING, False),
        (WhenValue.IS_EMPTY, [], True),
        (WhenValue.IS_EMPTY, [1], False),
        (WhenValue.IS_INVALID, "8080", True),
        (WhenValue.IS_INVALID, 8080, False),
        (WhenValue.IS_INVALID, None, False),
    ])
    def test_activation(self, when, raw, active):
        metadata = metadata_for(default_rule=DefaultRule("fallback", when=(when,), field_type=int))
        expected = Decision.use_default("fallback") if active else Decision.proceed()
        assert decide(metadata, raw, Owner()) == expected

    def test_inputs_are_not_mutated(self):
        raw = {"a": [1, 2]}
        metadata = metadata_for([SkipCondition(SkipDeIf.IS_EMPTY)], DefaultRule("fallback"))
        before = (metadata, {"a": [1, 2]})
        decide(metadata, raw, Owner())
        assert (metadata, raw) == before

    def test_resolution_errors_propagate(self):
        with pytest.raises(PredicateResolutionError):
            decide(metadata_for([SkipCondition.custom("missing_predicate")]), "x", Owner())
        with pytest.raises(SupplierResolutionError):
            decide(metadata_for(default_rule=DefaultRule("missing_provider")), MISSING, Owner())


class TestDecideWithDerivedMetadata:
    """decide() over metadata derived from markers."""

    def test_server_config_fields(self, server):
        def decision(name, raw):
            return decide(get_field_metadata(ServerConfig, name), raw, server)

        assert decision("name", None).is_skip
        assert decision("name", "edge").kind is DecisionKind.PROCEED
        assert decision("hosts", []).is_skip
        assert decision("port", "http") == Decision.use_default(8080)
        assert decision("port", 9000).kind is DecisionKind.PROCEED
        assert decision("owner", "nobody").is_skip
        assert decision("retries", -1).is_skip
        assert decision("retries", 2).kind is DecisionKind.PROCEED

    def test_instance_predicate_sees_each_instance(self):
        @dataclass
        class Limited:
            limit: int = 0
            value: Annotated[int, SkipDeserializingIf(SkipDeIf.CUSTOM, custom_check="over_limit")] = 0

            def over_limit(self, raw: Any) -> bool:
                return raw > self.limit

        metadata = get_field_metadata(Limited, "value")
        assert decide(metadata, 5, Limited(limit=1)).is_skip
        assert decide(metadata, 5, Limited(limit=10)).kind is DecisionKind.PROCEED

    def test_default_from_custom_class(self):
        @dataclass
        class Hosts:
            hosts: Annotated[list, SerdeDefault("default_hosts", custom_class=Checks)] = None

        metadata = get_field_metadata(Hosts, "hosts")
        assert decide(metadata, MISSING, Hosts()) == Decision.use_default(["localhost"])


class TestDecideWithoutInstance:
    """Members named for the current type are looked up on the declaring type."""

    def test_instance_predicate_is_unbound(self):
        metadata = get_field_metadata(ServerConfig, "owner")

        with pytest.raises(PredicateResolutionError) as exc_info:
            decide(metadata, "nobody", None)

        assert exc_info.value.kind is ResolutionErrorKind.UNBOUND
        assert exc_info.value.declaring_type is ServerConfig
        assert exc_info.value.field_name == "owner"

    def test_instance_provider_is_unbound(self):
        metadata = get_field_metadata(ServerConfig, "port")

        with pytest.raises(SupplierResolutionError) as exc_info:
            decide(metadata, None, None)

        assert exc_info.value.kind is ResolutionErrorKind.UNBOUND
        assert exc_info.value.declaring_type is ServerConfig

    def test_static_members_need_no_instance(self):
        @dataclass
        class Stateless:
            value: Annotated[
                int,
                SkipDeserializingIf(SkipDeIf.CUSTOM, custom_check="negative"),
                SerdeDefault("zero"),
            ] = 1

            @staticmethod
            def negative(raw: Any) -> bool:
                return raw is not MISSING and raw < 0

            @classmethod
            def zero(cls):
                return 0

        metadata = get_field_metadata(Stateless, "value")
        assert decide(metadata, -1, None).is_skip
        assert decide(metadata, MISSING, None) == Decision.use_default(0)
