"""HTTP client for the status update and entity read endpoints"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..config import API_BASE_URL
from ..statuses import EntityKind

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store", "Pragma": "no-cache"}


@dataclass
class UpdateResponse:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    reason: str = ""

    @property
    def ok(self) -> bool:
        """2xx carrying an explicit success flag"""
        return 200 <= self.status_code < 300 and self.body.get("success") is True

    @property
    def partial(self) -> bool:
        return bool(self.body.get("partial"))

    @property
    def error_message(self) -> str:
        return self.body.get("error") or self.reason or f"Error {self.status_code}"


class StatusApiClient:
    """Thin async wrapper around the VenueDesk JSON API"""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # Deadlines are applied by the caller, so no client-level timeout
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=None)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def update_status(
        self, kind: EntityKind, entity_id: str, status: str, previous_status: Optional[str]
    ) -> UpdateResponse:
        stamp = int(time.time() * 1000)
        request_data = {
            kind.id_field: entity_id,
            "status": status,
            "previousStatus": previous_status,
            "timestamp": stamp,
        }
        logger.info(f"[StatusActions] Sending request data: {request_data}")

        response = await self.http.post(
            kind.update_path,
            params={"t": stamp},
            json=request_data,
            headers=NO_CACHE_HEADERS,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return UpdateResponse(status_code=response.status_code, body=body, reason=response.reason_phrase)

    async def fetch_status(self, kind: EntityKind, entity_id: str) -> str:
        """Authoritative status from the detail endpoint"""
        response = await self.http.get(kind.detail_path(entity_id), headers=NO_CACHE_HEADERS)
        response.raise_for_status()
        return response.json()["status"]
