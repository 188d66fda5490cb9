"""
Shared plumbing for the /api/<entities>/update-status endpoints.

The entity service runs against a fixed time budget. The deadline does not
cancel the service call: a write that is already under way keeps going and
its late result is only logged. Hitting the deadline is therefore reported
as a partial success and the client's next refresh decides what really
happened.
"""

import asyncio
import logging
import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, Protocol

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from .cache_headers import NO_STORE_HEADERS
from .config import STATUS_UPDATE_TIMEOUT_SECONDS
from .exceptions import (
    AmbiguousTimeoutError,
    EntityNotFoundError,
    InternalServiceError,
    StatusValidationError,
    VenueDeskError,
)
from .statuses import EntityKind

logger = logging.getLogger(__name__)

PARTIAL_SUCCESS_MESSAGE = "Status updated but notification may have timed out"

# Operations that lost the race against the deadline; held until they finish
_background_tasks: set[asyncio.Task] = set()


@dataclass
class StatusUpdateResult:
    success: bool
    message: Optional[str] = None
    webhook_sent: bool = False


class StatusUpdateService(Protocol):
    async def update_status(
        self, entity_id: str, status: str, previous_status: Optional[str] = None
    ) -> StatusUpdateResult: ...


class StatusUpdateRequest(BaseModel):
    """Fields common to every update-status body; subclasses add the ID field"""

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

    status: Optional[str] = None
    previousStatus: Optional[str] = None
    timestamp: Optional[float] = None

    @property
    @abstractmethod
    def entity_id(self) -> Optional[str]:
        """The validated ID field of the concrete request"""


def get_status_update_timeout() -> float:
    """Dependency so the deadline can be shortened in tests"""
    return STATUS_UPDATE_TIMEOUT_SECONDS


def now_ms() -> int:
    return int(time.time() * 1000)


def json_response(content: dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=NO_STORE_HEADERS)


def error_response(error: VenueDeskError) -> JSONResponse:
    return json_response(
        {"success": False, "error": error.message, "timestamp": now_ms()},
        status_code=error.status_code,
    )


def _finish_background_task(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("⚠️ Late status update was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"❌ Late status update failed after timeout: {error}")
    else:
        logger.info(f"🕒 Late status update finished after timeout: {task.result()}")


async def run_with_deadline(operation: Awaitable, timeout: float):
    """
    Await `operation` for at most `timeout` seconds.
    On expiry raise AmbiguousTimeoutError and let the operation run on.
    """
    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.TimeoutError:
        _background_tasks.add(task)
        task.add_done_callback(_finish_background_task)
        raise AmbiguousTimeoutError("Database operation timed out") from None


async def parse_update_request(request: Request, schema: type[StatusUpdateRequest]) -> StatusUpdateRequest:
    """Read and validate the JSON body; ID and status are required"""
    try:
        payload = schema.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error(f"[API] Unusable request body: {e}")
        raise StatusValidationError() from None

    if not payload.entity_id or not payload.status:
        logger.error("[API] Missing required fields in request")
        raise StatusValidationError()
    return payload


async def handle_status_update(
    request: Request,
    kind: EntityKind,
    schema: type[StatusUpdateRequest],
    service: StatusUpdateService,
    timeout: float,
) -> JSONResponse:
    """Validate, run the service against the deadline and shape the JSON answer"""
    try:
        update = await parse_update_request(request, schema)
        logger.info(
            f"[API] Processing {kind.name} status update: id={update.entity_id} "
            f"{update.previousStatus or '?'} → {update.status}"
        )

        try:
            result = await run_with_deadline(
                service.update_status(update.entity_id, update.status, update.previousStatus),
                timeout,
            )
        except AmbiguousTimeoutError as e:
            logger.error(f"[API] Operation timed out: {e}")
            return json_response(
                {
                    "success": True,
                    "partial": True,
                    "message": PARTIAL_SUCCESS_MESSAGE,
                    "webhookSent": False,
                    "timestamp": now_ms(),
                }
            )

        if not result.success:
            raise EntityNotFoundError(result.message)

        return json_response(
            {
                "success": True,
                "message": result.message,
                "webhookSent": result.webhook_sent,
                "timestamp": now_ms(),
            }
        )
    except (StatusValidationError, EntityNotFoundError) as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"[API] Error updating {kind.name} status: {e}")
        return error_response(InternalServiceError())
