"""Tests for predicate and default-provider resolution."""
import pytest
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar

from serdepolicy import (
    CURRENT_TYPE,
    HandleKind,
    PredicateResolutionError,
    ResolutionErrorKind,
    SupplierResolutionError,
    policy_settings,
    resolve_predicate,
    resolve_supplier,
)
import serdepolicy.resolver as resolver_module

from conftest import Checks


def resolve_on(instance, member_name, custom_class=CURRENT_TYPE, field_name=None):
    return resolve_predicate(custom_class, member_name, type(instance), instance, field_name=field_name)


@dataclass
class Target:
    limit: int = 10
    skip_field: Callable[[Any], bool] = field(default=lambda raw: raw == "field", repr=False)

    def skip_method(self, raw):
        return raw == self.limit

    @staticmethod
    def skip_static(raw):
        return raw is None

    @classmethod
    def skip_class(cls, raw: Any) -> bool:
        return raw == cls.__name__


class TestCurrentTypeResolution:
    """custom_class left to CURRENT_TYPE."""

    def test_instance_method_is_bound(self):
        target = Target(limit=5)
        handle = resolve_on(target, "skip_method")

        assert handle.kind is HandleKind.BOUND_METHOD
        assert handle.instance_bound is True
        assert handle(5) is True
        assert handle(10) is False

    def test_bound_method_follows_its_instance(self):
        assert resolve_on(Target(limit=1), "skip_method")(1) is True
        assert resolve_on(Target(limit=2), "skip_method")(1) is False

    def test_static_and_class_methods(self):
        target = Target()
        static_handle = resolve_on(target, "skip_static")
        class_handle = resolve_on(target, "skip_class")

        assert static_handle.kind is HandleKind.STATIC_METHOD
        assert static_handle(None) is True
        assert class_handle.kind is HandleKind.STATIC_METHOD
        assert class_handle("Target") is True

    def test_predicate_field(self):
        handle = resolve_on(Target(), "skip_field")

        assert handle.kind is HandleKind.FIELD_VALUE
        assert handle.instance_bound is True
        assert handle("field") is True
        assert handle("other") is False

    def test_predicate_field_set_per_instance(self):
        target = Target(skip_field=lambda raw: True)
        assert resolve_on(target, "skip_field")("anything") is True

    def test_result_is_coerced_to_bool(self):
        class Truthy:
            def check(self, raw):
                return raw

        handle = resolve_on(Truthy(), "check")
        assert handle([1]) is True
        assert handle([]) is False

    def test_inherited_method(self):
        class Child(Target):
            pass

        assert resolve_on(Child(limit=3), "skip_method")(3) is True


class TestCustomClassResolution:
    """custom_class set to another type."""

    def test_static_method(self):
        handle = resolve_on(Target(), "skip_negative", Checks)

        assert handle.kind is HandleKind.STATIC_METHOD
        assert handle.instance_bound is False
        assert handle(-1) is True
        assert handle(1) is False

    def test_class_method(self):
        assert resolve_on(Target(), "skip_rejected", Checks)("skip me") is True

    def test_predicate_field(self):
        handle = resolve_on(Target(), "skip_placeholder", Checks)

        assert handle.kind is HandleKind.FIELD_VALUE
        assert handle("<unset>") is True

    def test_non_static_method_is_rejected(self):
        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "not_static", Checks, field_name="owner")

        error = exc_info.value
        assert error.kind is ResolutionErrorKind.NOT_STATIC
        assert error.declaring_type is Checks
        assert error.member_name == "not_static"
        assert error.field_name == "owner"
        assert "Checks" in str(error)
        assert "not_static" in str(error)
        assert "owner" in str(error)

    def test_instance_field_without_class_value_is_rejected(self):
        @dataclass
        class Holder:
            check: Callable[[Any], bool] = field(default_factory=lambda: (lambda raw: True))

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "check", Holder)
        assert exc_info.value.kind is ResolutionErrorKind.NOT_STATIC

    def test_static_handles_are_cached(self):
        first = resolve_on(Target(), "skip_negative", Checks)
        second = resolve_on(Target(limit=1), "skip_negative", Checks)

        assert first is second
        assert (Checks, "skip_negative") in resolver_module._predicate_cache

    def test_cache_can_be_disabled(self):
        with policy_settings(cache_predicates=False):
            resolve_on(Target(), "skip_negative", Checks)
        assert (Checks, "skip_negative") not in resolver_module._predicate_cache

    def test_instance_bound_handles_are_not_cached(self):
        resolve_on(Target(), "skip_method")
        assert not resolver_module._predicate_cache


class TestResolutionErrors:
    """Missing, ambiguous and malformed members."""

    def test_not_found(self):
        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "nope", field_name="name")
        assert exc_info.value.kind is ResolutionErrorKind.NOT_FOUND

    def test_field_and_method_with_same_name_is_ambiguous(self):
        class Ambiguous:
            check: Callable[[Any], bool]

            def check(self, raw):
                return True

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Ambiguous(), "check")
        assert exc_info.value.kind is ResolutionErrorKind.AMBIGUOUS

    def test_instance_attribute_shadowing_method_is_ambiguous(self):
        target = Target()
        target.__dict__["skip_method"] = lambda raw: True

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(target, "skip_method")
        assert exc_info.value.kind is ResolutionErrorKind.AMBIGUOUS

    def test_field_of_wrong_type(self):
        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "limit")
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE

    def test_predicate_field_with_wrong_arity(self):
        class TwoArgs:
            check: ClassVar[Callable[[Any, Any], bool]] = lambda a, b: True

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "check", TwoArgs)
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE

    def test_predicate_field_with_narrow_parameter(self):
        class Narrow:
            check: ClassVar[Callable[[int], bool]] = lambda raw: True

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "check", Narrow)
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE

    def test_unannotated_non_callable_field(self):
        class Constant:
            check = 42

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(Target(), "check", Constant)
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE

    @pytest.mark.parametrize("member_name", ["no_args", "two_args", "typed_arg"])
    def test_method_with_wrong_signature(self, member_name):
        class BadMethods:
            def no_args(self):
                return True

            def two_args(self, raw, other):
                return True

            def typed_arg(self, raw: str) -> bool:
                return True

        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_on(BadMethods(), member_name)
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE

    def test_instance_method_without_instance(self):
        with pytest.raises(PredicateResolutionError) as exc_info:
            resolve_predicate(CURRENT_TYPE, "skip_method", Target, None)
        assert exc_info.value.kind is ResolutionErrorKind.UNBOUND


class TestSupplierResolution:
    """Default providers."""

    def test_zero_argument_method(self):
        class Provider:
            base = 4

            def make(self):
                return self.base * 2

        handle = resolve_supplier(CURRENT_TYPE, "make", Provider, Provider())
        assert handle.kind is HandleKind.BOUND_METHOD
        assert handle() == 8

    def test_static_provider_on_custom_class(self):
        handle = resolve_supplier(Checks, "default_hosts", Target, Target())
        assert handle() == ["localhost"]
        assert handle() is not handle()

    def test_constant_field(self):
        class Constants:
            port = 8080

        assert resolve_supplier(Constants, "port", Target, Target())() == 8080

    def test_factory_field(self):
        class Factories:
            hosts = list

        assert resolve_supplier(Factories, "hosts", Target, Target())() == []

    def test_provider_taking_arguments(self):
        with pytest.raises(SupplierResolutionError) as exc_info:
            resolve_supplier(Checks, "skip_negative", Target, Target(), field_name="port")
        assert exc_info.value.kind is ResolutionErrorKind.WRONG_SHAPE
        assert "default provider" in str(exc_info.value)

    def test_non_static_provider_on_custom_class(self):
        with pytest.raises(SupplierResolutionError) as exc_info:
            resolve_supplier(Checks, "not_static", Target, Target())
        assert exc_info.value.kind is ResolutionErrorKind.NOT_STATIC
