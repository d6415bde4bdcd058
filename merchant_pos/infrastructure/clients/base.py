"""Shared HTTP plumbing for merchant backend clients"""

from typing import Any, Callable, Optional

import httpx

from merchant_pos.config import settings
from merchant_pos.domain.auth_events import AuthEvent, AuthEventChannel
from merchant_pos.domain.exceptions import GatewayProtocolError, GatewayRejectedError, GatewayTransportError
from merchant_pos.infrastructure.observability.metrics import gateway_latency_histogram

TokenProvider = Callable[[], Optional[str]]


def extract_reason(response: httpx.Response) -> str:
    """Best-effort human readable reason from an error response body"""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

    text = response.text.strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


class MerchantApiClient:
    """
    Base client for the merchant backend.

    - Adds the bearer token when a token provider returns one
    - Publishes TOKEN_EXPIRED_OR_INVALID on 401 responses
    - Translates httpx failures into gateway exceptions
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token_provider: TokenProvider | None = None,
        auth_events: AuthEventChannel | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.backend_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.token_provider = token_provider
        self.auth_events = auth_events
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, path: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request and return the 2xx response.

        Raises:
            GatewayTransportError: On timeout or connection failure
            GatewayRejectedError: On non-2xx status
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with gateway_latency_histogram.labels(endpoint=endpoint).time():
                    response = await client.request(
                        method,
                        f"{self.base_url}/{path.lstrip('/')}",
                        headers=self._headers(),
                        **kwargs,
                    )
                response.raise_for_status()
                return response

            except httpx.TimeoutException as e:
                raise GatewayTransportError(f"Merchant backend timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 401 and self.auth_events is not None:
                    self.auth_events.publish(AuthEvent.TOKEN_EXPIRED_OR_INVALID)
                raise GatewayRejectedError(status, extract_reason(e.response)) from e
            except httpx.RequestError as e:
                raise GatewayTransportError(f"Merchant backend unreachable: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GatewayProtocolError("Response body is not valid JSON", response.status_code) from e
