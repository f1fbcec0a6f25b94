"""Claims work items from the queue and keeps them heartbeated."""

from __future__ import annotations

import enum
import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable

from lakerunner.lockmgr.options import Option
from lakerunner.lockmgr.work_item import WorkItem
from lakerunner.lrdb.db import NoRowsError
from lakerunner.lrdb.models import ActionEnum, SignalEnum
from lakerunner.lrdb.store import StoreFull
from lakerunner.lrdb.work_queue_queries import (
    WorkQueueClaimParams,
    WorkQueueCompleteParams,
    WorkQueueFailParams,
    WorkQueueHeartbeatParams,
)

DEFAULT_HEARTBEAT_INTERVAL = timedelta(minutes=1)
_EXCLUSION_VIOLATION = "23P01"
_POLL_SECONDS = 0.1


class _Kind(enum.Enum):
    CLAIM = enum.auto()
    COMPLETE = enum.auto()
    FAIL = enum.auto()


@dataclass
class _Request:
    kind: _Kind
    item: WorkItem | None = None
    result: Future = field(default_factory=Future)


class WorkQueueManager:
    """Obtains, completes and fails work items for one worker.

    All database work happens on one background thread started by run(),
    which also heartbeats the acquired items whenever it has been idle for
    the heartbeat interval.
    """

    def __init__(
        self,
        store: StoreFull,
        worker_id: int,
        signal: SignalEnum,
        action: ActionEnum,
        frequencies: Iterable[int],
        minimum_priority: int,
        *options: Option,
    ) -> None:
        self.store = store
        self.worker_id = worker_id
        self.signal = signal
        self.action = action
        self.frequencies = list(frequencies)
        self.minimum_priority = minimum_priority
        self.heartbeat_interval = DEFAULT_HEARTBEAT_INTERVAL
        self.logger: logging.Logger | None = None
        self._acquired_ids: list[int] = []
        self._requests: queue.Queue[_Request] = queue.Queue()
        self._lock = threading.Lock()
        self._running = False
        for option in options:
            option.apply(self)

    @property
    def acquired_ids(self) -> tuple[int, ...]:
        """IDs of the items currently held by this manager."""
        return tuple(self._acquired_ids)

    def run(self, stop_event: threading.Event) -> threading.Thread:
        """Start the background thread; it stops once stop_event is set."""
        with self._lock:
            if self._running:
                raise RuntimeError("work queue manager is already running")
            self._running = True
        thread = threading.Thread(
            target=self._loop, args=(stop_event,), name="work-queue-manager", daemon=True
        )
        thread.start()
        return thread

    def request_work(self) -> WorkItem | None:
        """Claim the next work item, or return None if there is no work."""
        return self._submit(_Kind.CLAIM)

    def _complete(self, item: WorkItem) -> None:
        self._submit(_Kind.COMPLETE, item)

    def _fail(self, item: WorkItem) -> None:
        self._submit(_Kind.FAIL, item)

    def _submit(self, kind: _Kind, item: WorkItem | None = None) -> Any:
        request = _Request(kind, item)
        with self._lock:
            if not self._running:
                raise RuntimeError("work queue manager is not running")
            self._requests.put(request)
        return request.result.result()

    def _loop(self, stop_event: threading.Event) -> None:
        if self.logger is None:
            self.logger = logging.getLogger(__name__)
        last_activity = time.monotonic()
        try:
            while not stop_event.is_set():
                remaining = self.heartbeat_interval.total_seconds() - (
                    time.monotonic() - last_activity
                )
                if remaining <= 0:
                    self._heartbeat()
                    last_activity = time.monotonic()
                    continue
                try:
                    request = self._requests.get(timeout=min(remaining, _POLL_SECONDS))
                except queue.Empty:
                    continue
                self._handle(request)
                last_activity = time.monotonic()
        finally:
            with self._lock:
                self._running = False
                while True:
                    try:
                        pending = self._requests.get_nowait()
                    except queue.Empty:
                        break
                    pending.result.set_exception(
                        RuntimeError("work queue manager stopped")
                    )

    def _handle(self, request: _Request) -> None:
        try:
            if request.kind is _Kind.CLAIM:
                result: Any = self._claim()
            elif request.kind is _Kind.COMPLETE:
                result = self._complete_item(request.item)
            else:
                result = self._fail_item(request.item)
        except Exception as exc:
            request.result.set_exception(exc)
        else:
            request.result.set_result(result)

    def _claim(self) -> WorkItem | None:
        try:
            row = self.store.work_queue_claim(
                WorkQueueClaimParams(
                    target_freqs=list(self.frequencies),
                    signal=self.signal,
                    action=self.action,
                    min_priority=self.minimum_priority,
                    worker_id=self.worker_id,
                )
            )
        except NoRowsError:
            return None
        except Exception as exc:
            if _EXCLUSION_VIOLATION in str(exc):
                return None
            raise
        item = WorkItem(
            id=row.id,
            organization_id=row.organization_id,
            instance_num=row.instance_num,
            dateint=row.dateint,
            frequency_ms=row.frequency_ms,
            signal=row.signal,
            tries=row.tries,
            action=row.action,
            ts_range=row.ts_range,
            priority=row.priority,
            runnable_at=row.runnable_at,
            manager=self,
        )
        self._acquired_ids.append(item.id)
        return item

    def _release(self, item_id: int) -> None:
        self._acquired_ids = [held for held in self._acquired_ids if held != item_id]

    def _complete_item(self, item: WorkItem) -> None:
        self._release(item.id)
        self.store.work_queue_complete(
            WorkQueueCompleteParams(worker_id=self.worker_id, id=item.id)
        )

    def _fail_item(self, item: WorkItem) -> None:
        self._release(item.id)
        self.store.work_queue_fail(WorkQueueFailParams(id=item.id, worker_id=self.worker_id))

    def _heartbeat(self) -> None:
        try:
            self.store.work_queue_heartbeat(
                WorkQueueHeartbeatParams(ids=list(self._acquired_ids), worker_id=self.worker_id)
            )
        except Exception as exc:
            self.logger.error("failed to heartbeat work queue (continuing): %s", exc)