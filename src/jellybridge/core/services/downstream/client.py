"""Client for the downstream media server's REST API."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.jellybridge.core.exceptions import (
    DownstreamError,
    DownstreamUnavailable,
    UsernameTakenError,
)
from src.jellybridge.runtime.config.config_data import DownstreamConfig


class DownstreamUser(BaseModel):
    """Account record as returned by the media server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    policy: dict[str, Any] = Field(default_factory=dict, alias="Policy")

    @property
    def is_disabled(self) -> bool:
        return bool(self.policy.get("IsDisabled", False))

    @property
    def is_administrator(self) -> bool:
        return bool(self.policy.get("IsAdministrator", False))


@runtime_checkable
class DownstreamService(Protocol):
    """Operations the bridge needs from the media server."""

    async def create_user(self, username: str, password: str) -> DownstreamUser: ...

    async def get_user(self, user_id: str) -> DownstreamUser | None: ...

    async def set_policy(self, user_id: str, policy: dict[str, Any]) -> None: ...

    async def list_users(self) -> list[DownstreamUser]: ...

    async def authenticate_by_name(self, username: str, password: str) -> str: ...

    async def approve_code(
        self,
        code: str,
        *,
        token: str | None = None,
        user_id: str | None = None,
        user_hint: str | None = None,
    ) -> bool: ...

    async def update_password(self, user_id: str, new_password: str) -> None: ...

    async def disable_user(self, user_id: str, policy: dict[str, Any] | None = None) -> None: ...


class JellyfinClient:
    """Async Jellyfin REST client.

    Service calls authenticate with the privileged API key. Calls made on
    behalf of a user carry that user's access token instead.
    """

    def __init__(
        self,
        config: DownstreamConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_s,
            transport=self._transport,
        )

    def _service_headers(self) -> dict[str, str]:
        return {"X-Emby-Token": self.config.api_key}

    def _client_authorization(self, token: str | None = None, user_id: str | None = None) -> dict[str, str]:
        """Build the ``X-Emby-Authorization`` header identifying this client."""
        parts = [
            f'Client="{self.config.client_name}"',
            f'Device="{self.config.device_name}"',
            f'DeviceId="{self.config.device_id}"',
            f'Version="{self.config.client_version}"',
        ]
        if user_id:
            parts.append(f'UserId="{user_id}"')
        if token:
            parts.append(f'Token="{token}"')
        return {"X-Emby-Authorization": "MediaBrowser " + ", ".join(parts)}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> httpx.Response | None:
        try:
            async with self._client() as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise DownstreamUnavailable(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise DownstreamUnavailable(f"{method} {path} failed: {e}") from e

        if allow_not_found and response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise DownstreamUnavailable(f"{method} {path} returned {response.status_code}")
        if response.is_error:
            raise DownstreamError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DownstreamError(
                f"Expected JSON from downstream, got: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _parse_user(body: Any) -> DownstreamUser:
        try:
            return DownstreamUser.model_validate(body)
        except ValidationError as e:
            raise DownstreamError(f"Unexpected user record from downstream: {e.error_count()} invalid field(s)") from e

    async def create_user(self, username: str, password: str) -> DownstreamUser:
        try:
            response = await self._request(
                "POST",
                "/Users/New",
                headers=self._service_headers(),
                json={"Name": username, "Password": password},
            )
        except DownstreamError as e:
            if "already exists" in str(e).lower():
                raise UsernameTakenError(
                    f"Username {username!r} already exists", status_code=e.status_code
                ) from e
            raise

        user = self._parse_user(self._json(response))
        logger.info("Created downstream user {} ({})", user.name, user.id)
        return user

    async def get_user(self, user_id: str) -> DownstreamUser | None:
        response = await self._request(
            "GET", f"/Users/{user_id}", headers=self._service_headers(), allow_not_found=True
        )
        if response is None:
            return None
        return self._parse_user(self._json(response))

    async def set_policy(self, user_id: str, policy: dict[str, Any]) -> None:
        await self._request(
            "POST", f"/Users/{user_id}/Policy", headers=self._service_headers(), json=policy
        )

    async def list_users(self) -> list[DownstreamUser]:
        response = await self._request("GET", "/Users", headers=self._service_headers())
        body = self._json(response)
        if not isinstance(body, list):
            raise DownstreamError("User listing was not a JSON array")
        return [self._parse_user(item) for item in body]

    async def authenticate_by_name(self, username: str, password: str) -> str:
        """Sign in as ``username`` and return the session access token."""
        response = await self._request(
            "POST",
            "/Users/AuthenticateByName",
            headers=self._client_authorization(),
            json={"Username": username, "Pw": password},
        )
        body = self._json(response)
        token = body.get("AccessToken") if isinstance(body, dict) else None
        if not token:
            raise DownstreamError("Authentication response carried no access token")
        return token

    async def approve_code(
        self,
        code: str,
        *,
        token: str | None = None,
        user_id: str | None = None,
        user_hint: str | None = None,
    ) -> bool:
        """Authorize a Quick Connect code.

        With ``token`` the call is made as that user. Otherwise the service key
        is used, attributing the session through ``user_id`` (query parameter)
        or ``user_hint`` (authorization header) when given.
        """
        params: dict[str, str] = {"code": code}
        if token:
            headers = self._client_authorization(token=token)
        elif user_id:
            params["userId"] = user_id
            headers = self._service_headers()
        else:
            headers = self._client_authorization(token=self.config.api_key, user_id=user_hint)

        response = await self._request("POST", "/QuickConnect/Authorize", headers=headers, params=params)
        if not response.content:
            return True
        body = self._json(response)
        return body if isinstance(body, bool) else True

    async def update_password(self, user_id: str, new_password: str) -> None:
        await self._request(
            "POST",
            f"/Users/{user_id}/Password",
            headers=self._service_headers(),
            json={"NewPw": new_password, "ResetPassword": True},
        )

    async def disable_user(self, user_id: str, policy: dict[str, Any] | None = None) -> None:
        """Set ``IsDisabled`` on top of the account's policy.

        ``policy`` is the policy the caller already read; without it the
        account is fetched first.
        """
        if policy is None:
            user = await self.get_user(user_id)
            if user is None:
                raise DownstreamError(f"Downstream user {user_id} not found", status_code=404)
            policy = user.policy
        await self.set_policy(user_id, {**policy, "IsDisabled": True})
        logger.info("Disabled downstream user {}", user_id)
