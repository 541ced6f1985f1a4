"""Explicit outcome of a federation lookup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.federation.core.errors import FederationError, NotFound
from src.federation.core.models.user import CanonicalUserRecord


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult:
    """One of Found(record), NotFound, or Failed(error).

    "Not found" covers both a missing account and one outside the configured
    tenant; callers cannot tell them apart.
    """

    status: LookupStatus
    record: CanonicalUserRecord | None = None
    error: FederationError | None = None

    @classmethod
    def found(cls, record: CanonicalUserRecord) -> LookupResult:
        return cls(LookupStatus.FOUND, record=record)

    @classmethod
    def not_found(cls) -> LookupResult:
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: FederationError) -> LookupResult:
        return cls(LookupStatus.FAILED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.status is LookupStatus.NOT_FOUND

    @property
    def is_failed(self) -> bool:
        return self.status is LookupStatus.FAILED

    def record_or_none(self) -> CanonicalUserRecord | None:
        """Return the record, None when not found, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.record

    def unwrap(self) -> CanonicalUserRecord:
        """Return the record or raise ``NotFound`` / the carried error."""
        record = self.record_or_none()
        if record is None:
            raise NotFound("No matching user in the configured tenant")
        return record
