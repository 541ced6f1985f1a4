"""Admin session for the remote account API."""

from __future__ import annotations

import threading

import httpx
from loguru import logger

from src.federation.core.errors import AuthUnavailable, DirectoryInterrupted
from src.federation.runtime.settings import BridgeSettings

LOGIN_PATH = "/login"
TOKEN_HEADER = "DirectLogin"


def credential_header(username: str, password: str, client_id: str) -> str:
    """Direct Login header value carrying the privileged credentials."""
    return (
        f'DirectLogin username="{username}",password="{password}",'
        f'consumer_key="{client_id}"'
    )


class AdminSessionManager:
    """Owns the admin bearer token shared by every directory call.

    The token is created lazily, reused until the remote API rejects it, and
    fetched by at most one caller at a time. Its lifetime is decided by the
    remote system, so there is no local expiry.
    """

    def __init__(self, settings: BridgeSettings, http_client: httpx.Client) -> None:
        self._settings = settings
        self._http = http_client
        self._lock = threading.Lock()
        self._token: str | None = None
        self.login_count = 0

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def get_token(self) -> str:
        """Return the cached token, logging in first when there is none.

        Raises:
            AuthUnavailable: the login call did not yield a usable token
            DirectoryInterrupted: the login call timed out
        """
        token = self._token
        if token is not None:
            return token

        with self._lock:
            # Another caller may have finished a login while we waited
            if self._token is None:
                self._token = self._login()
            return self._token

    def invalidate(self, rejected_token: str | None = None) -> None:
        """Drop the cached token so the next ``get_token`` logs in again.

        With ``rejected_token`` the cache is only cleared while it still holds
        that token, so concurrent callers that saw the same rejection trigger a
        single fresh login.
        """
        with self._lock:
            if rejected_token is None or self._token == rejected_token:
                self._token = None
                logger.debug("Admin token invalidated")

    def refresh(self) -> str:
        """Force a fresh login and cache its token.

        The cached token is only replaced once the new login succeeds; a failed
        refresh leaves it in place for other callers.
        """
        with self._lock:
            token = self._login()
            self._token = token
            return token

    def auth_headers(self, token: str) -> dict[str, str]:
        return {TOKEN_HEADER: f"token={token}"}

    def _login(self) -> str:
        settings = self._settings
        path = f"{settings.api_path_prefix}{LOGIN_PATH}"
        headers = {
            "Content-Type": "application/json",
            TOKEN_HEADER: credential_header(
                settings.api_username,
                settings.api_password.get_secret_value(),
                settings.client_id,
            ),
        }
        self.login_count += 1

        try:
            response = self._http.post(path, headers=headers, json={})
        except httpx.TimeoutException as exc:
            logger.error("Admin login interrupted", path=path, error=str(exc))
            raise DirectoryInterrupted(
                "Admin login timed out", method="POST", path=path
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Admin login failed", path=path, error=str(exc))
            raise AuthUnavailable(
                f"Admin login failed: {exc}", method="POST", path=path
            ) from exc

        if response.status_code in (200, 201):
            try:
                token = response.json().get("token")
            except (ValueError, AttributeError):
                token = None
            if isinstance(token, str) and token:
                logger.info(
                    "Admin token obtained",
                    api_username=settings.api_username,
                    status_code=response.status_code,
                )
                return token

        logger.error(
            "Failed to obtain admin token",
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise AuthUnavailable(
            f"Admin login returned HTTP {response.status_code} without a token",
            method="POST",
            path=path,
            status_code=response.status_code,
        )
