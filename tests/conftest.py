"""Pytest configuration and shared fixtures."""
import pytest
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, List

import serdepolicy.config as config_module
import serdepolicy.metadata as metadata_module
import serdepolicy.resolver as resolver_module
from serdepolicy import SkipDeIf, SkipDeserializingIf, SerdeDefault, WhenValue


class Checks:
    """Predicates and providers defined outside the target classes."""

    rejected_names = ("skip me",)

    # Predicate stored in a field
    skip_placeholder: Callable[[Any], bool] = lambda raw: raw == "<unset>"

    @staticmethod
    def skip_negative(raw: Any) -> bool:
        return isinstance(raw, int) and raw < 0

    @classmethod
    def skip_rejected(cls, raw):
        return raw in cls.rejected_names

    def not_static(self, raw):
        return True

    @staticmethod
    def default_hosts():
        return ["localhost"]


@dataclass
class ServerConfig:
    """Target type covering every marker kind."""
    name: Annotated[str, SkipDeserializingIf(SkipDeIf.IS_MISSING, SkipDeIf.IS_NULL)] = "main"
    hosts: Annotated[List[str], SkipDeserializingIf(SkipDeIf.IS_EMPTY)] = field(default_factory=lambda: ["primary"])
    port: Annotated[int, SerdeDefault("default_port", when=(WhenValue.IS_NULL, WhenValue.IS_INVALID))] = 80
    owner: Annotated[str, SkipDeserializingIf(SkipDeIf.CUSTOM, custom_check="skip_owner")] = "ops"
    retries: Annotated[int, SkipDeserializingIf(SkipDeIf.CUSTOM, custom_class=Checks, custom_check="skip_negative")] = 3
    description: str = ""

    def default_port(self) -> int:
        return 8080

    def skip_owner(self, raw: Any) -> bool:
        return raw == "nobody"


@pytest.fixture(autouse=True)
def reset_policy_state():
    """Restore settings and clear caches around each test."""
    original_settings = config_module._settings
    metadata_module.clear_metadata_cache()
    resolver_module.clear_resolution_cache()

    yield

    config_module._settings = original_settings
    metadata_module.clear_metadata_cache()
    resolver_module.clear_resolution_cache()


@pytest.fixture
def server():
    """Provide a fresh server config instance."""
    return ServerConfig()
