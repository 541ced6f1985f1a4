"""Tenant scope filter applied to every record leaving the directory client."""

from collections.abc import Iterable

from loguru import logger

from src.federation.core.models.user import CanonicalUserRecord


class TenantScopeFilter:
    """Discard records whose tenant tag differs from the configured scope.

    Applied even when the upstream query already filtered by tenant; upstream
    filtering is not trusted.
    """

    def __init__(self, tenant_scope: str) -> None:
        if not tenant_scope:
            raise ValueError("tenant_scope must not be empty")
        self._scope = tenant_scope

    @property
    def scope(self) -> str:
        return self._scope

    def admits(self, record: CanonicalUserRecord, *, source: str = "lookup") -> bool:
        if record.tenant_tag == self._scope:
            return True
        logger.info(
            "Tenant scope rejected user {external_id}",
            external_id=record.external_id,
            username=record.username,
            record_tenant=record.tenant_tag,
            expected_tenant=self._scope,
            source=source,
        )
        return False

    def apply(
        self, record: CanonicalUserRecord | None, *, source: str = "lookup"
    ) -> CanonicalUserRecord | None:
        """Return the record when in scope, otherwise None."""
        if record is None:
            return None
        return record if self.admits(record, source=source) else None

    def filter(
        self, records: Iterable[CanonicalUserRecord], *, source: str = "list"
    ) -> list[CanonicalUserRecord]:
        """Keep in-scope records, preserving their order."""
        return [record for record in records if self.admits(record, source=source)]
