"""Read-only view of a remote user for the host platform.

The remote account API is the single source of truth. Every mutator is accepted
so generic host update flows keep working, but it only logs the attempt and
leaves the record untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from loguru import logger

from src.federation.core.errors import RecordDiscardedError, RecordIntegrityError
from src.federation.core.models.user import CanonicalUserRecord

STORAGE_ID_PREFIX = "f"
PASSWORD_CREDENTIAL = "password"


def storage_id(component_id: str, external_id: str) -> str:
    """Namespaced federation id, derived from the external id only."""
    return f"{STORAGE_ID_PREFIX}:{component_id}:{external_id}"


def external_id_from_storage_id(value: str, component_id: str | None = None) -> str | None:
    """Strip the ``f:{component}:`` namespace; bare ids are returned unchanged.

    With ``component_id`` an id namespaced to a different component yields None.
    """
    if value.startswith(f"{STORAGE_ID_PREFIX}:"):
        parts = value.split(":", 2)
        if len(parts) == 3:
            if component_id is not None and parts[1] != component_id:
                return None
            return parts[2]
    return value


class AdapterState(str, Enum):
    EXPOSED = "exposed"
    DISCARDED = "discarded"


class ReadOnlyUserAdapter:
    """Host-facing user backed by a ``CanonicalUserRecord``."""

    def __init__(self, record: CanonicalUserRecord | None, component_id: str) -> None:
        if record is None or not record.external_id:
            username = getattr(record, "username", None)
            raise RecordIntegrityError(f"External id is missing for user: {username}")
        self._record = record
        self._id = storage_id(component_id, record.external_id)
        self._state = AdapterState.EXPOSED
        logger.debug(
            "Federated user exposed",
            storage_id=self._id,
            username=record.username,
        )

    def __enter__(self) -> ReadOnlyUserAdapter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.discard()

    def __repr__(self) -> str:
        return f"ReadOnlyUserAdapter[id={self._id}, username={self._record.username}]"

    # Lifecycle

    @property
    def state(self) -> AdapterState:
        return self._state

    def discard(self) -> None:
        """End of request; the adapter must not be read afterwards."""
        self._state = AdapterState.DISCARDED

    def _view(self) -> CanonicalUserRecord:
        if self._state is AdapterState.DISCARDED:
            raise RecordDiscardedError(f"User {self._id} was read after its request ended")
        return self._record

    # Read accessors

    @property
    def id(self) -> str:
        self._view()
        return self._id

    @property
    def external_id(self) -> str:
        return self._view().external_id

    @property
    def username(self) -> str:
        return self._view().username

    @property
    def email(self) -> str | None:
        return self._view().email

    @property
    def first_name(self) -> str | None:
        return self._view().first_name

    @property
    def last_name(self) -> str | None:
        return self._view().last_name

    @property
    def tenant_tag(self) -> str | None:
        return self._view().tenant_tag

    @property
    def email_verified(self) -> bool:
        return self._view().validated

    @property
    def enabled(self) -> bool:
        return self._view().validated

    @property
    def credential_types(self) -> tuple[str, ...]:
        """Credentials the remote API can verify for this user."""
        self._view()
        return (PASSWORD_CREDENTIAL,)

    def get_attributes(self) -> dict[str, list[str]]:
        """Profile attributes taken from the remote record only."""
        record = self._view()
        values = {
            "firstName": record.first_name,
            "lastName": record.last_name,
            "email": record.email,
            "username": record.username,
            "provider": record.tenant_tag,
            "validated": str(record.validated).lower(),
        }
        return {name: [value] for name, value in values.items() if value is not None}

    def get_attribute(self, name: str) -> list[str]:
        return self.get_attributes().get(name, [])

    def get_first_attribute(self, name: str) -> str | None:
        values = self.get_attribute(name)
        return values[0] if values else None

    # Rejected writes

    def _reject(self, operation: str, **details: Any) -> None:
        logger.warning(
            "Rejected {operation} for user {username}: record is read-only",
            operation=operation,
            username=self._record.username,
            storage_id=self._id,
            **details,
        )

    def set_username(self, username: str) -> None:
        self._reject("set_username")

    def set_email(self, email: str | None) -> None:
        self._reject("set_email")

    def set_first_name(self, first_name: str | None) -> None:
        self._reject("set_first_name")

    def set_last_name(self, last_name: str | None) -> None:
        self._reject("set_last_name")

    def set_email_verified(self, verified: bool) -> None:
        self._reject("set_email_verified")

    def set_enabled(self, enabled: bool) -> None:
        self._reject("set_enabled")

    def set_single_attribute(self, name: str, value: str) -> None:
        self._reject("set_single_attribute", attribute=name)

    def set_attribute(self, name: str, values: list[str]) -> None:
        self._reject("set_attribute", attribute=name)

    def remove_attribute(self, name: str) -> None:
        self._reject("remove_attribute", attribute=name)

    def set_password(self, password: str) -> None:
        self._reject("set_password")
