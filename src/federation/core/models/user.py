"""Canonical user record built from remote account API responses."""

from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.federation.core.errors import RecordIntegrityError


class CanonicalUserRecord(BaseModel):
    """Tenant-scoped, read-only view of one externally owned account.

    Built fresh from every remote response and never persisted. ``external_id``
    is the federation primary key and must be non-empty.
    """

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(description="Remote user id, stable for the account lifetime")
    username: str = Field(description="Login username")
    email: str | None = Field(default=None, description="Email address")
    first_name: str | None = Field(default=None, description="Given name")
    last_name: str | None = Field(default=None, description="Family name")
    tenant_tag: str | None = Field(
        default=None, description="Tenant/provider the account belongs to"
    )
    validated: bool = Field(
        default=True, description="Whether the host should treat the account as enabled"
    )

    @field_validator("external_id")
    @classmethod
    def _require_external_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("external_id must not be empty")
        return value

    @classmethod
    def create(cls, **fields: Any) -> "CanonicalUserRecord":
        """Build a record, raising ``RecordIntegrityError`` for a missing external id."""
        if not fields.get("external_id"):
            raise RecordIntegrityError(
                f"Record for user {fields.get('username')!r} has no external id"
            )
        return cls(**fields)


def _text(payload: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        value = str(value)
        if value:
            return value
    return None


def parse_user(payload: Any) -> CanonicalUserRecord | None:
    """Parse a user JSON object into a record.

    A payload without ``user_id`` means "no such user": the remote API may answer
    a miss with an empty or partial object, so this returns None instead of
    raising.

    Raises:
        ValueError: the payload has a user id but cannot form a valid record
    """
    if not isinstance(payload, dict):
        return None

    external_id = _text(payload, "user_id")
    if external_id is None:
        return None

    username = _text(payload, "username")
    if username is None:
        raise ValueError(f"user {external_id!r} has no username")

    try:
        record = CanonicalUserRecord.create(
            external_id=external_id,
            username=username,
            email=_text(payload, "email"),
            first_name=_text(payload, "firstname", "first_name"),
            last_name=_text(payload, "lastname", "last_name"),
            tenant_tag=_text(payload, "provider", "tenant"),
            validated=True,
        )
    except ValidationError as exc:
        raise ValueError(f"user {external_id!r} is malformed: {exc}") from exc

    logger.debug(
        "Parsed remote user",
        external_id=record.external_id,
        username=record.username,
        tenant_tag=record.tenant_tag,
    )
    return record
