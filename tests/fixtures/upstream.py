"""In-process stand-in for the remote account API."""

from __future__ import annotations

import json
import threading
from typing import Any
from urllib.parse import unquote

import httpx

LOGIN_PATH = "/login"


class FakeDirectoryUpstream:
    """Routes ``httpx.MockTransport`` requests like the remote account API.

    Knobs let tests script failures: ``reject_next`` forces that many 401s on
    data calls, ``login_status`` fails the admin login, ``fail_status`` answers
    every data call with that status, ``timeout`` raises a read timeout, and
    ``ignore_tenant_in_path`` makes the username lookup skip its tenant match.
    """

    def __init__(self) -> None:
        self.users: list[dict[str, Any]] = []
        self.passwords: dict[str, str] = {}
        self.providers: list[str] = []
        self.oidc_clients: dict[str, dict[str, Any]] = {}
        self.valid_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.login_count = 0
        self.login_status = 200
        self.login_payload: dict[str, Any] | None = None
        self.reject_next = 0
        self.fail_status: int | None = None
        self.raw_body: str | None = None
        self.miss_status = 404
        self.bad_credentials_status = 400
        self.timeout = False
        self.ignore_tenant_in_path = False
        self._lock = threading.Lock()

    # Setup helpers

    def add_user(
        self,
        user_id: str,
        username: str,
        provider: str,
        email: str | None = None,
        firstname: str | None = None,
        lastname: str | None = None,
        password: str | None = None,
    ) -> dict[str, Any]:
        user = {
            "user_id": user_id,
            "username": username,
            "provider": provider,
            "provider_id": username,
            "email": email,
            "firstname": firstname,
            "lastname": lastname,
            "entitlements": {"list": []},
        }
        self.users.append(user)
        if password is not None:
            self.passwords[user_id] = password
        return user

    def revoke_tokens(self) -> None:
        self.valid_tokens.clear()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def data_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if not r.url.path.endswith(LOGIN_PATH)]

    # Routing

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            raw_path = request.url.raw_path.split(b"?")[0].decode("ascii")

            if raw_path.endswith(LOGIN_PATH):
                return self._login(request)

            if self.timeout:
                raise httpx.ReadTimeout("timed out", request=request)

            if self.reject_next > 0:
                self.reject_next -= 1
                return httpx.Response(401, json={"message": "OBP-20001: User not logged in"})

            presented = request.headers.get("DirectLogin", "")
            if presented.removeprefix("token=") not in self.valid_tokens:
                return httpx.Response(401, json={"message": "OBP-20001: User not logged in"})

            if self.fail_status is not None:
                return httpx.Response(self.fail_status, text="upstream failure")

            if self.raw_body is not None:
                return httpx.Response(200, text=self.raw_body)

            segments = [unquote(part) for part in raw_path.strip("/").split("/")]
            return self._route(request, segments)

    def _login(self, request: httpx.Request) -> httpx.Response:
        self.login_count += 1
        if self.login_status not in (200, 201):
            return httpx.Response(self.login_status, json={"message": "login failed"})
        if self.login_payload is not None:
            return httpx.Response(self.login_status, json=self.login_payload)
        token = f"admin-token-{self.login_count}"
        self.valid_tokens = {token}
        return httpx.Response(self.login_status, json={"token": token})

    def _route(self, request: httpx.Request, segments: list[str]) -> httpx.Response:
        method = request.method

        if segments == ["users"] and method == "GET":
            return httpx.Response(200, json={"users": self.users})

        if len(segments) == 5 and segments[0:2] == ["users", "tenant"] and segments[3] == "username":
            tenant, username = segments[2], segments[4]
            for user in self.users:
                if user["username"] == username and (
                    self.ignore_tenant_in_path or user["provider"] == tenant
                ):
                    return httpx.Response(200, json=user)
            return self._miss()

        if len(segments) == 3 and segments[0:2] == ["users", "id"]:
            for user in self.users:
                if user["user_id"] == segments[2]:
                    return httpx.Response(200, json=user)
            return self._miss()

        if segments == ["users", "verify-credentials"] and method == "POST":
            body = json.loads(request.content or b"{}")
            for user in self.users:
                if (
                    user["username"] == body.get("username")
                    and self.passwords.get(user["user_id"]) == body.get("password")
                ):
                    return httpx.Response(201, json=user)
            return httpx.Response(
                self.bad_credentials_status, json={"message": "Invalid credentials"}
            )

        if len(segments) == 3 and segments[0:2] == ["oidc", "clients"]:
            client = self.oidc_clients.get(segments[2])
            if client is not None:
                return httpx.Response(200, json=client)
            return httpx.Response(404, json={"message": "client not found"})

        if segments == ["providers"]:
            return httpx.Response(
                200, json={"providers": [{"id": p} for p in self.providers]}
            )

        return httpx.Response(404, json={"message": "no route"})

    def _miss(self) -> httpx.Response:
        if self.miss_status == 200:
            return httpx.Response(200, json={})
        return httpx.Response(self.miss_status, json={"message": "OBP-20027: User not found"})
