"""HTTP client for the privileged provisioning functions.

The app cannot create its own profile, membership or subscription; it asks
the functions service to do so and gets back an ``{ok, ...}`` document.
"""

import logging
from typing import Any

import httpx

from treinup.config import Settings
from treinup.exceptions import BackendError, BackendTimeoutError, NetworkError
from treinup.models.provisioning import (
    AttachSubscriptionRequest,
    CreateProfileRequest,
    FunctionResponse,
    JoinTeamRequest,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"
TENANT_HEADER = "X-Tenant-Id"

CREATE_PROFILE = "create-profile"
JOIN_DEFAULT_TEAM = "join-default-team"
ATTACH_DEFAULT_SUBSCRIPTION = "attach-default-subscription"


class FunctionsClient:
    """Invokes provisioning functions over HTTP."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the functions client.

        Args:
            base_url: Base URL of the functions service
            api_key: Function key sent in the X-Api-Key header
            timeout: Request timeout in seconds
            transport: Custom httpx transport (e.g. ASGI, for in-process use)
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._tenant_id: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "FunctionsClient":
        return cls(
            base_url=settings.functions_url,
            api_key=settings.functions_api_key,
            timeout=settings.request_timeout_seconds,
        )

    def pin_tenant(self, tenant_id: str | None) -> None:
        """Attach (or drop) the tenant routing header on later calls."""
        self._tenant_id = tenant_id

    def _headers(self) -> dict[str, str]:
        headers = {API_KEY_HEADER: self._api_key}
        if self._tenant_id:
            headers[TENANT_HEADER] = self._tenant_id
        return headers

    async def invoke(self, name: str, payload: dict[str, Any]) -> FunctionResponse:
        """Invoke a function by name.

        Returns:
            The function's response, which may carry ``ok=False``

        Raises:
            BackendTimeoutError: If the call exceeds the timeout
            NetworkError: If the service cannot be reached
            BackendError: If the service answers with a non-200 status or a
                body that is not a function response
        """
        url = f"{self._base_url}/functions/{name}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout invoking function {name}")
            raise BackendTimeoutError(f"function:{name}", self._timeout) from e
        except httpx.TransportError as e:
            logger.warning(f"Connection error invoking function {name}: {e}")
            raise NetworkError(f"function {name} unreachable: {e}") from e

        if resp.status_code != 200:
            raise BackendError(
                f"Function {name} returned HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            result = FunctionResponse.model_validate(resp.json())
        except ValueError as e:
            logger.warning(f"Function {name} returned an unreadable body: {resp.text[:200]}")
            raise BackendError(
                f"Function {name} returned an invalid response",
                status_code=resp.status_code,
            ) from e
        if not result.ok:
            logger.warning(f"Function {name} reported failure: {result.message}")
        return result

    async def create_profile(
        self,
        user_id: str,
        name: str,
        email: str,
        role: str,
    ) -> FunctionResponse:
        request = CreateProfileRequest(user_id=user_id, name=name, email=email, role=role)
        return await self.invoke(CREATE_PROFILE, request.model_dump(by_alias=True))

    async def join_default_team(self, user_id: str, role: str | None = None) -> FunctionResponse:
        request = JoinTeamRequest(user_id=user_id, role=role)
        return await self.invoke(
            JOIN_DEFAULT_TEAM, request.model_dump(by_alias=True, exclude_none=True)
        )

    async def attach_default_subscription(
        self,
        profile_id: str,
        plan_id: str | None = None,
    ) -> FunctionResponse:
        request = AttachSubscriptionRequest(
            profile_id=profile_id,
            plan_id=plan_id,
            tenant_id=self._tenant_id,
        )
        return await self.invoke(
            ATTACH_DEFAULT_SUBSCRIPTION, request.model_dump(by_alias=True, exclude_none=True)
        )
