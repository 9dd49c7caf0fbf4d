"""
Error taxonomy for field policy resolution.

Resolution errors describe configuration-authoring mistakes (a misspelled
predicate name, a non-static method referenced from another class, ...).
They are raised for the field being processed and propagated to the caller.

Emptiness checks never raise: see serdepolicy.emptiness.
"""

from enum import Enum
from typing import Optional


class SerdeError(Exception):
    """Base class for all serdepolicy errors."""


class AnnotationError(SerdeError):
    """A field carries a malformed or conflicting serde declaration."""


class ResolutionErrorKind(Enum):
    """Why a member could not be turned into a callable handle."""
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    WRONG_SHAPE = "wrong_shape"
    NOT_STATIC = "not_static"
    UNBOUND = "unbound"


class MemberResolutionError(SerdeError):
    """
    A named member (field or method) could not be resolved.

    Attributes:
        kind: The ResolutionErrorKind
        declaring_type: Type that was searched
        member_name: Name of the member that was looked up
        field_name: Field whose declaration referenced the member, if known
    """

    member_role = "member"

    def __init__(
        self,
        kind: ResolutionErrorKind,
        declaring_type: type,
        member_name: str,
        detail: str,
        field_name: Optional[str] = None,
    ):
        self.kind = kind
        self.declaring_type = declaring_type
        self.member_name = member_name
        self.field_name = field_name
        self.detail = detail
        super().__init__(self._format())

    def _format(self) -> str:
        type_name = getattr(self.declaring_type, '__qualname__', repr(self.declaring_type))
        message = f"Cannot resolve {self.member_role} '{self.member_name}' on {type_name}: {self.detail}"
        if self.field_name is not None:
            message += f" (declared for field '{self.field_name}')"
        return message


class PredicateResolutionError(MemberResolutionError):
    """A custom skip predicate could not be resolved."""
    member_role = "skip predicate"


class SupplierResolutionError(MemberResolutionError):
    """A default-value provider could not be resolved."""
    member_role = "default provider"
