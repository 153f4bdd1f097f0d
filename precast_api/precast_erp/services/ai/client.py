from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from precast_erp.core.settings import get_app_settings

logger = logging.getLogger(__name__)


class AIRequestError(Exception):
    """The AI API could not be reached or answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AIClient:
    """
    Thin async client for the AI API.

    Every helper POSTs a JSON body to one endpoint under `/api/ai` and returns
    the decoded JSON reply. No retries and no caching.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_app_settings()
        headers = {"Accept": "application/json"}
        key = api_key if api_key is not None else settings.AI_SERVICE_API_KEY
        if key:
            headers["Authorization"] = f"Bearer {key}"
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.AI_SERVICE_URL,
            timeout=timeout if timeout is not None else settings.AI_SERVICE_TIMEOUT,
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # PUBLIC_INTERFACE
    async def post(self, path: str, payload: dict[str, Any]) -> Any:
        """POST `payload` to `/api/ai/<path>` and return the JSON body."""
        url = f"/api/ai/{path.lstrip('/')}"
        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("AI request to %s failed: %s", url, exc)
            raise AIRequestError(f"AI request to {url} failed: {exc}") from exc
        if response.is_error:
            logger.warning("AI request to %s returned %s", url, response.status_code)
            raise AIRequestError(
                f"AI service responded with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise AIRequestError(f"AI service returned invalid JSON from {url}") from exc

    async def analyze_data(self, payload: dict[str, Any]) -> Any:
        return await self.post("analyze", payload)

    async def get_recommendations(self, payload: dict[str, Any]) -> Any:
        return await self.post("recommendations", payload)

    async def get_prediction(self, payload: dict[str, Any]) -> Any:
        return await self.post("predict", payload)

    async def get_optimization_plan(self, payload: dict[str, Any]) -> Any:
        return await self.post("optimize", payload)

    async def generate_content(self, payload: dict[str, Any]) -> Any:
        return await self.post("generate", payload)

    async def extract_data(self, payload: dict[str, Any]) -> Any:
        return await self.post("extract", payload)

    async def analyze_images(self, payload: dict[str, Any]) -> Any:
        return await self.post("analyze-images", payload)
