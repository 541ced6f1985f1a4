"""Bridge settings loaded from environment variables and .env files.

Every option the bridge recognizes is a named field on ``BridgeSettings``.
Mandatory values have no default, so a missing one fails construction; that
failure is converted into a ``ConfigurationError`` by ``load_settings`` before
the bridge accepts its first call.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from loguru import logger
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_core import PydanticCustomError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.federation.core.errors import ConfigurationError

MANDATORY_VARIABLES: tuple[str, ...] = (
    "OBP_API_URL",
    "OBP_API_USERNAME",
    "OBP_API_PASSWORD",
    "OBP_API_CONSUMER_KEY",
    "OBP_AUTHUSER_PROVIDER",
)


class BridgeSettings(BaseSettings):
    """Validated configuration for one bridge process."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    # Remote account API
    api_base_url: str = Field(validation_alias="OBP_API_URL")
    api_username: str = Field(validation_alias="OBP_API_USERNAME")
    api_password: SecretStr = Field(validation_alias="OBP_API_PASSWORD")
    client_id: str = Field(validation_alias="OBP_API_CONSUMER_KEY")
    api_path_prefix: str = Field(default="", validation_alias="OBP_API_PATH_PREFIX")
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, validation_alias="OBP_API_TIMEOUT_SECONDS"
    )
    connect_timeout_seconds: float = Field(
        default=10.0, gt=0, validation_alias="OBP_API_CONNECT_TIMEOUT_SECONDS"
    )

    # Tenant scoping (security-critical)
    tenant_scope: str = Field(validation_alias="OBP_AUTHUSER_PROVIDER")

    # Host integration
    component_id: str = Field(
        default="obp-remote-directory", validation_alias="FEDERATION_COMPONENT_ID"
    )
    federation_api_key: SecretStr | None = Field(
        default=None, validation_alias="FEDERATION_API_KEY"
    )

    # Environment and logging
    environment: Literal["development", "production", "test"] = Field(
        default="development", validation_alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: Literal["plain", "json"] = Field(
        default="plain", validation_alias="LOG_FORMAT"
    )
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    @field_validator(
        "api_base_url", "api_username", "client_id", "tenant_scope", "component_id",
        mode="before",
    )
    @classmethod
    def _strip_required(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise PydanticCustomError("missing", "Field required")
        return value

    @field_validator("api_password", mode="before")
    @classmethod
    def _strip_password(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            raise PydanticCustomError("missing", "Field required")
        return value

    @field_validator("api_base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http:// or https:// URL")
        return value.rstrip("/")

    @field_validator("api_path_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = value.strip().strip("/")
        return f"/{value}" if value else ""


def _variable_name(loc: tuple) -> str:
    field_name = str(loc[0]) if loc else "?"
    field = BridgeSettings.model_fields.get(field_name)
    if field is not None and isinstance(field.validation_alias, str):
        return field.validation_alias
    return field_name


def load_settings(**overrides: object) -> BridgeSettings:
    """Build and validate the bridge settings.

    Keyword overrides are passed straight to ``BridgeSettings`` and use the
    environment variable names (e.g. ``OBP_API_URL=...``).

    Raises:
        ConfigurationError: if a mandatory value is missing or any value is invalid
    """
    try:
        settings = BridgeSettings(**overrides)
    except ValidationError as exc:
        missing = sorted(
            {_variable_name(err["loc"]) for err in exc.errors() if err["type"] == "missing"}
        )
        invalid = sorted(
            {
                f"{_variable_name(err['loc'])} ({err['msg']})"
                for err in exc.errors()
                if err["type"] != "missing"
            }
        )
        parts = []
        if missing:
            parts.append("required environment variables not set: " + " ".join(missing))
        if invalid:
            parts.append("invalid values: " + ", ".join(invalid))
        message = "FATAL: " + "; ".join(parts)
        logger.error(message)
        raise ConfigurationError(message, missing=missing) from exc

    for name in MANDATORY_VARIABLES:
        logger.debug("Environment variable {name} loaded", name=name)
    logger.info(
        "Remote directory configuration loaded",
        api_url=settings.api_base_url,
        api_username=settings.api_username,
        tenant_scope=settings.tenant_scope,
    )
    return settings


@lru_cache
def get_settings() -> BridgeSettings:
    """Settings for process entry points, loaded once."""
    return load_settings()
