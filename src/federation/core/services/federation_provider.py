"""Host-facing federation provider and its factory."""

from __future__ import annotations

import threading

import httpx
from loguru import logger

from src.federation.core.adapters.read_only_user import (
    PASSWORD_CREDENTIAL,
    ReadOnlyUserAdapter,
    external_id_from_storage_id,
)
from src.federation.core.errors import InvalidCredentials
from src.federation.core.models.result import LookupResult
from src.federation.core.models.user import CanonicalUserRecord
from src.federation.core.services.admin_session import AdminSessionManager
from src.federation.core.services.directory_client import (
    RemoteDirectoryClient,
    build_http_client,
)
from src.federation.core.services.tenant_scope import TenantScopeFilter
from src.federation.runtime.settings import BridgeSettings, load_settings


class FederationProvider:
    """Answers host platform federation queries with read-only users.

    Lookups return None for "not found" and raise ``RemoteDirectoryError``
    subclasses for failures talking to the remote API.
    """

    def __init__(self, directory: RemoteDirectoryClient, component_id: str) -> None:
        self._directory = directory
        self._component_id = component_id

    @property
    def component_id(self) -> str:
        return self._component_id

    def _adapt(self, result: LookupResult) -> ReadOnlyUserAdapter | None:
        record = result.record_or_none()
        return self._wrap(record) if record is not None else None

    def _wrap(self, record: CanonicalUserRecord) -> ReadOnlyUserAdapter:
        return ReadOnlyUserAdapter(record, self._component_id)

    # Lookup

    def get_user_by_id(self, user_id: str) -> ReadOnlyUserAdapter | None:
        """Look up by this component's namespaced storage id or a bare external id."""
        external_id = external_id_from_storage_id(user_id, self._component_id)
        if not external_id:
            return None
        return self._adapt(self._directory.lookup_by_id(external_id))

    def get_user_by_username(self, username: str) -> ReadOnlyUserAdapter | None:
        if not username:
            return None
        return self._adapt(self._directory.lookup_by_username(username))

    # Queries

    def list_users(
        self, first: int = 0, max_results: int | None = None
    ) -> list[ReadOnlyUserAdapter]:
        records = self._directory.list_users(offset=first, limit=max_results)
        return [self._wrap(record) for record in records]

    def search_users(
        self, search: str, first: int = 0, max_results: int | None = None
    ) -> list[ReadOnlyUserAdapter]:
        """Case-insensitive substring match on username or email, windowed after matching."""
        needle = search.strip().lower()
        records = self._directory.list_users()
        if needle and needle != "*":
            records = [
                record
                for record in records
                if needle in record.username.lower()
                or (record.email is not None and needle in record.email.lower())
            ]
        first = max(first, 0)
        if max_results is None or max_results < 0:
            window = records[first:]
        else:
            window = records[first:first + max_results]
        return [self._wrap(record) for record in window]

    def get_users_count(self) -> int:
        return len(self._directory.list_users())

    # Credentials

    def supports_credential_type(self, credential_type: str) -> bool:
        return credential_type == PASSWORD_CREDENTIAL

    def is_configured_for(self, user: ReadOnlyUserAdapter, credential_type: str) -> bool:
        return (
            self.supports_credential_type(credential_type)
            and credential_type in user.credential_types
        )

    def is_valid(
        self, user: ReadOnlyUserAdapter, credential_type: str, password: str
    ) -> bool:
        """Verify a password for an already resolved user."""
        if not self.supports_credential_type(credential_type) or not password:
            return False
        record = self._directory.verify_credentials(user.username, password).record_or_none()
        if record is None:
            return False
        if record.external_id != user.external_id:
            logger.warning(
                "Verified account does not match resolved user",
                username=user.username,
                expected_id=user.external_id,
            )
            return False
        return True

    def authenticate(self, username: str, password: str) -> ReadOnlyUserAdapter:
        """Verify credentials and return the user.

        Raises:
            InvalidCredentials: wrong password, unknown user, or out-of-tenant user
        """
        record = None
        if username and password:
            record = self._directory.verify_credentials(username, password).record_or_none()
        if record is None:
            raise InvalidCredentials("Invalid username or password")
        return self._wrap(record)

    def update_credential(
        self, user: ReadOnlyUserAdapter, credential_type: str, value: str
    ) -> bool:
        """Credentials are owned by the remote system; always rejected."""
        user.set_password(value)
        return False

    def test_connection(self, force_login: bool = True) -> bool:
        return self._directory.test_connection(force_login=force_login)

    def close(self) -> None:
        logger.debug("Federation provider closed", component_id=self._component_id)


class FederationProviderFactory:
    """Creates providers sharing one HTTP client and one admin session.

    Configuration is validated once per factory, on the first ``create``.
    """

    def __init__(
        self,
        settings: BridgeSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._lock = threading.Lock()
        self._http: httpx.Client | None = None
        self._session: AdminSessionManager | None = None
        self._directory: RemoteDirectoryClient | None = None

    @property
    def settings(self) -> BridgeSettings:
        self._ensure_initialized()
        assert self._settings is not None
        return self._settings

    @property
    def session(self) -> AdminSessionManager:
        self._ensure_initialized()
        assert self._session is not None
        return self._session

    @property
    def directory(self) -> RemoteDirectoryClient:
        self._ensure_initialized()
        assert self._directory is not None
        return self._directory

    def _ensure_initialized(self) -> None:
        if self._directory is not None:
            return
        with self._lock:
            if self._directory is not None:
                return
            logger.info("Validating remote directory configuration")
            settings = self._settings or load_settings()
            http_client = build_http_client(settings, transport=self._transport)
            session = AdminSessionManager(settings, http_client)
            self._settings = settings
            self._http = http_client
            self._session = session
            self._directory = RemoteDirectoryClient(
                settings, session, http_client, TenantScopeFilter(settings.tenant_scope)
            )

    def create(self) -> FederationProvider:
        self._ensure_initialized()
        assert self._directory is not None and self._settings is not None
        return FederationProvider(self._directory, self._settings.component_id)

    def close(self) -> None:
        logger.info("Closing federation provider factory")
        with self._lock:
            if self._http is not None:
                self._http.close()
            self._http = None
            self._session = None
            self._directory = None
