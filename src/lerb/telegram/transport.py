from __future__ import annotations

from typing import Any, Protocol

import httpx

from ..errors import ApiError, TransportError
from ..logging import get_logger

logger = get_logger(__name__)

API_BASE_URL = "https://api.telegram.org"


class Transport(Protocol):
    async def request(self, method: str, body: dict[str, Any]) -> Any: ...

    async def close(self) -> None: ...


class HttpTransport:
    """POSTs Bot API calls as JSON and unwraps the ``result`` payload."""

    def __init__(
        self,
        token: str,
        timeout_s: float = 60,
        client: httpx.AsyncClient | None = None,
        base_url: str = API_BASE_URL,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{base_url}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(self, method: str, body: dict[str, Any]) -> Any:
        logger.debug("telegram.request", method=method, payload=body)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "telegram.network_error",
                method=method,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise TransportError(f"{method}: {e}", method=method) from e

        try:
            payload = resp.json()
        except ValueError as e:
            if resp.is_error:
                logger.error(
                    "telegram.http_error",
                    method=method,
                    status=resp.status_code,
                    error=str(e),
                    body=resp.text,
                )
                raise TransportError(
                    f"{method}: HTTP {resp.status_code}", method=method
                ) from e
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                error_type=e.__class__.__name__,
                body=resp.text,
            )
            raise TransportError(
                f"{method}: undecodable response (HTTP {resp.status_code})",
                method=method,
            ) from e

        if not isinstance(payload, dict):
            logger.error(
                "telegram.invalid_payload",
                method=method,
                status=resp.status_code,
                payload=payload,
            )
            raise TransportError(f"{method}: invalid payload", method=method)

        # Telegram reports API errors as `ok: false` with a 4xx/5xx status.
        if not payload.get("ok"):
            description = payload.get("description")
            error_code = payload.get("error_code")
            logger.error(
                "telegram.api_error",
                method=method,
                status=resp.status_code,
                payload=payload,
            )
            raise ApiError(
                description
                if isinstance(description, str)
                else f"HTTP {resp.status_code}",
                method=method,
                error_code=error_code if isinstance(error_code, int) else None,
            )

        logger.debug("telegram.response", method=method, payload=payload)
        return payload.get("result")
