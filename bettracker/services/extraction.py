from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Request
from pydantic import ValidationError

from bettracker.core.config import settings
from bettracker.core.errors import UpstreamExtractionError
from bettracker.schemas.bets import RawExtraction

logger = logging.getLogger(__name__)


class ExtractionClient:
    """
    Client for the external screenshot extraction service. Posts
    {"screenshot": <base64>} and expects the bet fields back as JSON, either
    bare or wrapped as {"bet_data": {...}}.

    One instance per process; it owns a pooled httpx.AsyncClient.
    """

    def __init__(
        self,
        url: str = settings.EXTRACTOR_URL,
        api_key: str = settings.EXTRACTOR_API_KEY,
        timeout: float = settings.EXTRACTOR_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    async def extract(self, screenshot_b64: str) -> RawExtraction:
        if not self.url:
            raise UpstreamExtractionError("Extraction service is not configured (EXTRACTOR_URL)")

        try:
            resp = await self._client.post(self.url, json={"screenshot": screenshot_b64})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("extraction service returned %s", e.response.status_code)
            raise UpstreamExtractionError(f"Extraction service error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("extraction service unreachable: %s", e)
            raise UpstreamExtractionError(f"Extraction service unavailable: {e}") from e
        except ValueError as e:
            raise UpstreamExtractionError("Extraction service returned a non-JSON body") from e

        if isinstance(data, dict) and isinstance(data.get("bet_data"), dict):
            data = data["bet_data"]
        if not isinstance(data, dict):
            raise UpstreamExtractionError("Extraction service returned an unexpected payload")
        try:
            return RawExtraction.model_validate(data)
        except ValidationError as e:
            raise UpstreamExtractionError(f"Failed to parse extraction result: {e.error_count()} invalid field(s)") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def get_extraction_client(request: Request) -> ExtractionClient:
    client = getattr(request.app.state, "extractor", None)
    if client is None:
        client = request.app.state.extractor = ExtractionClient()
    return client
