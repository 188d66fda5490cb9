"""
Status Action Control: approve/reject with optimistic UI and reconciliation.

The control flips `current_status` to the target as soon as the user acts,
remembers that guess in the local store, and then lets the server decide:

- explicit success        -> refresh right away (transition-aware)
- partial success / 504   -> keep the guess, refresh after a delay
- client timeout / offline-> keep the guess, refresh after a delay
- any other error         -> roll back, forget the guess, alert

A refresh always wins: whatever the detail endpoint reports replaces the
optimistic value and the local record. A refresh that cannot reach the server
is retried a couple of times; after that the spinner stops and the guess stays
marked unconfirmed until the next mount verifies it.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from ..config import CLIENT_REQUEST_TIMEOUT_SECONDS
from ..statuses import PENDING, EntityKind
from .api import StatusApiClient
from .storage import LocalStatusStore

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    PENDING_REQUEST = "pending-request"
    SETTLED = "settled"


@dataclass(frozen=True)
class ControlState:
    phase: Phase
    current_status: str
    loading: bool = False
    refreshing: bool = False
    show_spinner: bool = False
    optimistic_record: Optional[str] = None
    last_message: Optional[str] = None
    # False while current_status is a guess the server has not confirmed
    confirmed: bool = True

    @property
    def busy(self) -> bool:
        return self.show_spinner or self.refreshing


@dataclass(frozen=True)
class ControlTimings:
    request_timeout: float = CLIENT_REQUEST_TIMEOUT_SECONDS
    gateway_timeout_refresh_delay: float = 3.0
    client_timeout_refresh_delay: float = 5.0
    network_error_refresh_delay: float = 3.0
    partial_success_refresh_delay: float = 3.0
    mount_verify_delay: float = 0.0
    refresh_retry_delay: float = 3.0
    refresh_retry_limit: int = 2


def log_alert(message: str) -> None:
    logger.warning(f"🔔 {message}")


class StatusActionControl:
    """One control per rendered entity row"""

    def __init__(
        self,
        kind: EntityKind,
        entity_id: str,
        initial_status: str,
        api: StatusApiClient,
        store: LocalStatusStore,
        notify: Callable[[str], None] = log_alert,
        timings: ControlTimings = ControlTimings(),
        on_change: Optional[Callable[[ControlState], None]] = None,
    ):
        self.kind = kind
        self.entity_id = entity_id
        self.api = api
        self.store = store
        self.notify = notify
        self.timings = timings
        self.on_change = on_change
        self._refresh_task: Optional[asyncio.Task] = None
        self._needs_verification = False

        key = self.storage_key
        record = store.get(key)
        if initial_status != PENDING:
            # Server already settled it; the record just mirrors the server
            store.set(key, initial_status)
            self.state = ControlState(Phase.IDLE, initial_status, optimistic_record=initial_status)
        elif record and record != PENDING:
            # A click from before a reload that the server has not confirmed yet
            self.state = ControlState(
                Phase.IDLE, record, show_spinner=True, optimistic_record=record, confirmed=False
            )
            self._needs_verification = True
        else:
            if record is not None:
                store.remove(key)
            self.state = ControlState(Phase.IDLE, initial_status)

    @classmethod
    async def mount(cls, *args, **kwargs) -> "StatusActionControl":
        """Create a control and, if it restored an optimistic record, verify it once"""
        control = cls(*args, **kwargs)
        if control._needs_verification:
            control._needs_verification = False
            control.schedule_refresh(control.timings.mount_verify_delay)
        return control

    @property
    def storage_key(self) -> str:
        return self.kind.storage_key(self.entity_id)

    @property
    def pending_refresh(self) -> Optional[asyncio.Task]:
        return self._refresh_task

    def _set(self, **changes) -> None:
        self.state = dataclasses.replace(self.state, **changes)
        if self.on_change:
            self.on_change(self.state)

    def _alert(self, message: str) -> None:
        self._set(last_message=message)
        self.notify(message)

    async def approve(self) -> bool:
        return await self.act("approve")

    async def reject(self) -> bool:
        return await self.act("reject")

    async def act(self, action: str) -> bool:
        """Run one approve/reject attempt; returns False when the click is ignored"""
        if self.state.loading:
            logger.debug(f"[StatusActions] {self.kind.name} {self.entity_id}: request in flight, ignoring {action}")
            return False
        if self.state.current_status != PENDING:
            logger.debug(f"[StatusActions] {self.kind.name} {self.entity_id} is {self.state.current_status}, ignoring {action}")
            return False

        target = self.kind.target_for(action)
        original = self.state.current_status
        self._cancel_scheduled_refresh()

        self._set(
            phase=Phase.PENDING_REQUEST,
            loading=True,
            current_status=target,
            show_spinner=True,
            last_message=None,
            confirmed=False,
        )
        await asyncio.to_thread(self.store.set, self.storage_key, target)
        self._set(optimistic_record=target)
        logger.info(f"[StatusActions] Updating {self.kind.name} {self.entity_id} status from {original} to {target}")

        try:
            response = await asyncio.wait_for(
                self.api.update_status(self.kind, self.entity_id, target, original),
                timeout=self.timings.request_timeout,
            )

            if response.ok and response.partial:
                logger.info(f"[StatusActions] Partial success: {response.body}")
                delay = self.timings.partial_success_refresh_delay
                self._alert(
                    "Status updated but the notification may have timed out. "
                    f"The page will refresh in {delay:g} seconds to confirm."
                )
                self.schedule_refresh(delay)
            elif response.ok:
                logger.info(f"[StatusActions] Status update successful: {response.body}")
                self._set(show_spinner=False)
                self.schedule_refresh(0)
            elif response.status_code == 504:
                logger.error(f"[StatusActions] Gateway timeout: {response.error_message}")
                delay = self.timings.gateway_timeout_refresh_delay
                self._alert(
                    "The server took too long to respond. The update may have succeeded. "
                    f"The page will refresh in {delay:g} seconds to check."
                )
                self.schedule_refresh(delay)
            else:
                logger.error(f"[StatusActions] Status update failed: {response.error_message}")
                await self._rollback(original, f"Failed to update status: {response.error_message}")
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"[StatusActions] Request timed out: {e!r}")
            delay = self.timings.client_timeout_refresh_delay
            self._alert(
                "The request timed out. The operation may still have been successful. "
                f"The page will refresh in {delay:g} seconds to check the status."
            )
            self.schedule_refresh(delay)
        except httpx.TransportError as e:
            logger.error(f"[StatusActions] Network error: {e!r}")
            self._alert(
                "Network error. The operation may still have been successful. "
                "Please wait while we refresh the page."
            )
            self.schedule_refresh(self.timings.network_error_refresh_delay)
        except Exception as e:
            logger.exception(f"[StatusActions] Error updating status: {e}")
            await self._rollback(original, f"An error occurred while updating the {self.kind.name} status.")
        finally:
            self._set(loading=False, phase=Phase.SETTLED)

        return True

    async def _rollback(self, original: str, message: str) -> None:
        await asyncio.to_thread(self.store.remove, self.storage_key)
        self._set(current_status=original, show_spinner=False, optimistic_record=None, confirmed=True)
        self._alert(message)

    def schedule_refresh(self, delay: float, attempt: int = 0) -> asyncio.Task:
        """Queue an authoritative refresh; a delay of 0 marks the refresh as in progress now"""
        self._cancel_scheduled_refresh()
        if delay <= 0:
            self._set(refreshing=True)
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_after(delay, attempt))
        return self._refresh_task

    async def _refresh_after(self, delay: float, attempt: int) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        if await self.refresh() is not None:
            return

        if attempt < self.timings.refresh_retry_limit:
            logger.info(
                f"[StatusActions] Retrying refresh of {self.kind.name} {self.entity_id} "
                f"({attempt + 1}/{self.timings.refresh_retry_limit})"
            )
            self.schedule_refresh(self.timings.refresh_retry_delay, attempt + 1)
            return

        # Out of retries: stop spinning but keep the record so the next mount verifies it
        self._set(show_spinner=False)
        self._alert(
            f"Could not confirm the {self.kind.name} status with the server. "
            "The status shown may be out of date; reload to check again."
        )

    def _cancel_scheduled_refresh(self) -> None:
        task = self._refresh_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._refresh_task = None

    async def wait_settled(self) -> None:
        """Wait for the scheduled refresh and any retry it queues"""
        while self._refresh_task is not None and not self._refresh_task.done():
            await asyncio.wait([self._refresh_task])

    async def refresh(self) -> Optional[str]:
        """Fetch the server's status and let it overwrite the local guess"""
        self._set(refreshing=True)
        try:
            status = await self.api.fetch_status(self.kind, self.entity_id)
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"[StatusActions] Refresh of {self.kind.name} {self.entity_id} failed: {e!r}")
            self._set(refreshing=False)
            return None

        await self._reconcile(status)
        return status

    async def _reconcile(self, status: str) -> None:
        if status != PENDING:
            await asyncio.to_thread(self.store.set, self.storage_key, status)
            record = status
        else:
            await asyncio.to_thread(self.store.remove, self.storage_key)
            record = None

        if status != self.state.current_status:
            logger.info(
                f"[StatusActions] Reconciled {self.kind.name} {self.entity_id}: "
                f"{self.state.current_status} → {status}"
            )
        self._set(
            current_status=status,
            show_spinner=False,
            refreshing=False,
            optimistic_record=record,
            confirmed=True,
        )

    async def close(self) -> None:
        self._cancel_scheduled_refresh()
