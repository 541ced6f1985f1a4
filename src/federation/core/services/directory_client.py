"""Client for the remote account API.

Translates federation queries into calls on the remote API:

    POST {prefix}/login                                      admin token
    GET  {prefix}/users/tenant/{TENANT}/username/{USERNAME}  lookup by username
    GET  {prefix}/users/id/{USER_ID}                         lookup by id
    GET  {prefix}/users                                      full listing
    POST {prefix}/users/verify-credentials                   password check
    GET  {prefix}/oidc/clients/{CLIENT_ID}                   OIDC client details
    GET  {prefix}/providers                                  known providers

Every call carries the admin token. A 401 answer invalidates the token and the
call is repeated exactly once with a fresh one. Every record returned passes
through the tenant scope filter.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from src.federation.core.errors import (
    AuthUnavailable,
    DirectoryInterrupted,
    DirectoryUnavailable,
    RemoteDirectoryError,
    RemoteProtocolError,
)
from src.federation.core.models.result import LookupResult
from src.federation.core.models.user import CanonicalUserRecord, parse_user
from src.federation.core.services.admin_session import AdminSessionManager
from src.federation.core.services.tenant_scope import TenantScopeFilter
from src.federation.runtime.settings import BridgeSettings


def encode_segment(value: str) -> str:
    """Percent-encode one path segment so '/', ':' and '?' stay data."""
    return quote(value, safe="")


def build_http_client(
    settings: BridgeSettings, transport: httpx.BaseTransport | None = None
) -> httpx.Client:
    """HTTP client bound to the remote API with bounded timeouts."""
    timeout = httpx.Timeout(
        settings.request_timeout_seconds, connect=settings.connect_timeout_seconds
    )
    return httpx.Client(
        base_url=settings.api_base_url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )


class RemoteDirectoryClient:
    def __init__(
        self,
        settings: BridgeSettings,
        session: AdminSessionManager,
        http_client: httpx.Client,
        scope_filter: TenantScopeFilter | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._http = http_client
        self._scope = scope_filter or TenantScopeFilter(settings.tenant_scope)

    @property
    def tenant_scope(self) -> str:
        return self._scope.scope

    # Lookups

    def lookup_by_username(self, username: str) -> LookupResult:
        """Look up a user by username within the configured tenant."""
        logger.info("Looking up user by username", username=username)
        path = self._path(
            "users", "tenant", encode_segment(self.tenant_scope),
            "username", encode_segment(username),
        )
        return self._lookup(path)

    def lookup_by_id(self, external_id: str) -> LookupResult:
        """Look up a user by remote user id within the configured tenant."""
        logger.info("Looking up user by id", external_id=external_id)
        path = self._path("users", "id", encode_segment(external_id))
        return self._lookup(path)

    def list_users(
        self, offset: int = 0, limit: int | None = None
    ) -> list[CanonicalUserRecord]:
        """List in-tenant users, windowed after tenant filtering.

        Args:
            offset: Number of in-tenant records to skip (negative means 0)
            limit: Maximum number of records; None or negative means unlimited

        Raises:
            RemoteDirectoryError: the listing could not be fetched or interpreted
        """
        offset = max(offset, 0)
        path = self._path("users")
        response = self._call("GET", path)
        self._raise_for_status(response, "GET", path)

        payload = self._json(response, "GET", path)
        entries = payload.get("users") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            logger.error("Listing has no users array", path=path)
            raise RemoteProtocolError(
                "Listing response has no 'users' array",
                method="GET", path=path, status_code=response.status_code,
            )

        records = []
        for entry in entries:
            try:
                record = parse_user(entry)
            except ValueError as exc:
                logger.warning("Skipping malformed listing entry", error=str(exc))
                continue
            if record is not None:
                records.append(record)

        in_scope = self._scope.filter(records, source="list")
        window = in_scope[offset:] if limit is None or limit < 0 else in_scope[offset:offset + limit]
        logger.info(
            "Listed users",
            returned=len(window),
            in_scope=len(in_scope),
            upstream=len(entries),
            tenant_scope=self.tenant_scope,
        )
        return window

    # Credentials

    def verify_credentials(self, username: str, password: str) -> LookupResult:
        """Check a password against the remote API.

        Wrong password and right password for an out-of-tenant account both
        yield not-found, so callers cannot tell them apart.
        """
        logger.info("Verifying credentials", username=username)
        path = self._path("users", "verify-credentials")
        body = {"username": username, "password": password, "provider": self.tenant_scope}
        try:
            response = self._call("POST", path, body)
        except RemoteDirectoryError as exc:
            return LookupResult.failed(exc)

        # A second 401 is an admin session outage, not a wrong password
        if response.status_code == 401:
            return LookupResult.failed(
                AuthUnavailable(
                    "Admin token rejected twice", method="POST", path=path, status_code=401
                )
            )

        if response.status_code not in (200, 201):
            logger.warning(
                "Credential verification failed",
                username=username,
                status_code=response.status_code,
            )
            return LookupResult.not_found()

        try:
            record = parse_user(self._json(response, "POST", path))
        except RemoteProtocolError as exc:
            return LookupResult.failed(exc)
        except ValueError as exc:
            return LookupResult.failed(self._protocol_error(str(exc), "POST", path, response))

        record = self._scope.apply(record, source="verify-credentials")
        if record is None:
            return LookupResult.not_found()
        logger.info("Credential verification succeeded", username=username)
        return LookupResult.found(record)

    # Connectivity and metadata

    def test_connection(self, force_login: bool = True) -> bool:
        """Report whether an admin token can be obtained.

        With ``force_login`` a fresh login is always performed; otherwise a
        cached token counts as success and a login only happens when none is held.
        """
        try:
            if force_login:
                self._session.refresh()
            else:
                self._session.get_token()
        except RemoteDirectoryError as exc:
            logger.error("Remote API connection test failed", error=str(exc))
            return False
        logger.info("Remote API connection test successful")
        return True

    def get_oidc_client(self, client_id: str) -> dict[str, Any] | None:
        """Fetch OIDC client details, None when the API does not return them."""
        path = self._path("oidc", "clients", encode_segment(client_id))
        response = self._call("GET", path)
        if response.status_code != 200:
            logger.warning(
                "OIDC client lookup returned no data",
                client_id=client_id,
                status_code=response.status_code,
            )
            return None
        payload = self._json(response, "GET", path)
        return payload if isinstance(payload, dict) else None

    def get_providers(self) -> list[str]:
        """Provider ids known to the remote API."""
        path = self._path("providers")
        response = self._call("GET", path)
        if response.status_code != 200:
            logger.warning("Provider listing unavailable", status_code=response.status_code)
            return []
        payload = self._json(response, "GET", path)
        providers = payload.get("providers") if isinstance(payload, dict) else None
        if not isinstance(providers, list):
            return []
        return [
            str(item["id"])
            for item in providers
            if isinstance(item, dict) and item.get("id")
        ]

    # Internals

    def _path(self, *segments: str) -> str:
        return self._settings.api_path_prefix + "/" + "/".join(segments)

    def _lookup(self, path: str) -> LookupResult:
        try:
            response = self._call("GET", path)
            self._raise_for_status(response, "GET", path, allow_client_errors=True)
        except RemoteDirectoryError as exc:
            return LookupResult.failed(exc)

        if response.status_code != 200:
            logger.info(
                "Lookup returned no user",
                path=path,
                status_code=response.status_code,
            )
            return LookupResult.not_found()

        try:
            record = parse_user(self._json(response, "GET", path))
        except RemoteProtocolError as exc:
            return LookupResult.failed(exc)
        except ValueError as exc:
            return LookupResult.failed(self._protocol_error(str(exc), "GET", path, response))

        record = self._scope.apply(record, source=path)
        if record is None:
            return LookupResult.not_found()
        return LookupResult.found(record)

    def _call(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> httpx.Response:
        token = self._session.get_token()
        response = self._send(method, path, token, body)
        if response.status_code != 401:
            return response

        logger.info("Admin token rejected (401), refreshing and retrying once", path=path)
        self._session.invalidate(token)
        token = self._session.get_token()
        response = self._send(method, path, token, body)
        if response.status_code == 401:
            logger.error("Admin token rejected again after refresh", method=method, path=path)
        return response

    def _send(
        self, method: str, path: str, token: str, body: dict[str, Any] | None
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json", **self._session.auth_headers(token)}
        try:
            if method == "GET":
                return self._http.get(path, headers=headers)
            return self._http.request(method, path, headers=headers, json=body or {})
        except httpx.TimeoutException as exc:
            logger.error(
                "Remote API call interrupted: {guidance}",
                guidance=DirectoryInterrupted.guidance,
                method=method,
                path=path,
            )
            raise DirectoryInterrupted(
                f"{method} {path} was interrupted: {exc}", method=method, path=path
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Remote API call failed", method=method, path=path, error=str(exc))
            raise DirectoryUnavailable(
                f"{method} {path} failed: {exc}", method=method, path=path
            ) from exc

    def _raise_for_status(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        allow_client_errors: bool = False,
    ) -> None:
        status = response.status_code
        if status == 401:
            raise AuthUnavailable(
                "Admin token rejected twice", method=method, path=path, status_code=status
            )
        if status >= 500:
            logger.error("Remote API server error", method=method, path=path, status_code=status)
            raise DirectoryUnavailable(
                f"{method} {path} returned HTTP {status}",
                method=method, path=path, status_code=status,
            )
        if status != 200 and not allow_client_errors:
            raise self._protocol_error(f"unexpected HTTP {status}", method, path, response)

    def _json(self, response: httpx.Response, method: str, path: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise self._protocol_error("response body is not JSON", method, path, response) from exc

    def _protocol_error(
        self, reason: str, method: str, path: str, response: httpx.Response
    ) -> RemoteProtocolError:
        logger.error(
            "Malformed remote API response",
            reason=reason,
            method=method,
            path=path,
            status_code=response.status_code,
            body=response.text[:500],
        )
        return RemoteProtocolError(
            f"{method} {path}: {reason}",
            method=method, path=path, status_code=response.status_code,
        )
