"""
CatTrack Backend: Mutation Results
===================================

What:  Explicit outcome of an authorization-gated mutation.
How:   Services return MutationResult instead of raising or silently doing
       nothing; routes call unwrap() which returns the record or raises the
       matching CatTrackError, so every request gets a response.

Outcomes:
    UPDATED / DELETED  → record holds the response model
    NOT_FOUND          → no row matched (missing id OR owned by someone else)
    FORBIDDEN          → role gate failed; the database was not touched
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from cattrack.exceptions import ForbiddenError, NotFoundError

T = TypeVar("T")


class MutationOutcome(str, Enum):
    UPDATED = "updated"
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    outcome: MutationOutcome
    record: Optional[T] = None

    @classmethod
    def updated(cls, record: T) -> "MutationResult[T]":
        return cls(MutationOutcome.UPDATED, record)

    @classmethod
    def deleted(cls, record: T) -> "MutationResult[T]":
        return cls(MutationOutcome.DELETED, record)

    @classmethod
    def not_found(cls) -> "MutationResult[T]":
        return cls(MutationOutcome.NOT_FOUND)

    @classmethod
    def forbidden(cls) -> "MutationResult[T]":
        return cls(MutationOutcome.FORBIDDEN)

    @property
    def succeeded(self) -> bool:
        return self.outcome in (MutationOutcome.UPDATED, MutationOutcome.DELETED)

    def unwrap(self, resource: str, resource_id: Optional[str] = None) -> T:
        """
        Return the record, or raise the error matching the outcome.

        Raises:
            NotFoundError:  outcome is NOT_FOUND (→ 404)
            ForbiddenError: outcome is FORBIDDEN (→ 403)
        """
        if self.outcome is MutationOutcome.NOT_FOUND:
            raise NotFoundError(resource=resource, resource_id=resource_id)
        if self.outcome is MutationOutcome.FORBIDDEN:
            raise ForbiddenError(message="Admin only")
        return self.record
