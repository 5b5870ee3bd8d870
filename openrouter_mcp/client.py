import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import Config
from .errors import UpstreamHttpError

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """Async client for the handful of OpenRouter endpoints we forward to.

    A fresh ``httpx.AsyncClient`` is opened per request so concurrent calls
    from the comparator never share connection state. ``transport`` lets
    tests swap in ``httpx.MockTransport``.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=self.config.headers(),
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        logger.debug("%s %s%s", method, self.config.base_url, path)
        try:
            async with self._client() as client:
                res = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamHttpError(f"{type(e).__name__}: {e}") from e

        if res.status_code >= 400:
            snippet = res.text[:400]
            raise UpstreamHttpError(
                f"Request failed with status code {res.status_code}: {snippet}",
                status_code=res.status_code,
            )

        try:
            return res.status_code, res.json()
        except ValueError as e:
            raise UpstreamHttpError(
                f"Non-JSON response from OpenRouter (status {res.status_code})",
                status_code=res.status_code,
            ) from e

    async def get(self, path: str) -> Any:
        _, data = await self._send("GET", path)
        return data

    async def post(self, path: str, payload: Dict[str, Any]) -> Tuple[int, Any]:
        return await self._send("POST", path, payload)

    # ─────────────────────────────────────────────
    # ENDPOINTS
    # ─────────────────────────────────────────────

    async def list_models(self) -> List[Dict[str, Any]]:
        data = await self.get("/models")
        return data.get("data", [])

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        _, data = await self.post("/chat/completions", payload)
        return data

    async def key_info(self) -> Dict[str, Any]:
        data = await self.get("/auth/key")
        return data.get("data", {})
