"""A work item claimed from the work queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from lakerunner.lrdb.models import ActionEnum, Range, SignalEnum


@dataclass(eq=False)
class WorkItem:
    """One claimed row of the work queue, owned until completed or failed."""

    id: int
    organization_id: uuid.UUID
    instance_num: int
    dateint: int
    frequency_ms: int
    signal: SignalEnum
    tries: int
    action: ActionEnum
    ts_range: Range[datetime]
    priority: int
    runnable_at: datetime
    manager: Any = field(default=None, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def closed(self) -> bool:
        """True once the item has been completed or failed."""
        return self._closed

    def complete(self) -> None:
        """Mark the item done and release it; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        if self.manager is None:
            raise RuntimeError("work item manager is not set")
        self.manager._complete(self)

    def fail(self) -> None:
        """Mark the item failed so it is retried later; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        if self.manager is None:
            raise RuntimeError("work item manager is not set")
        self.manager._fail(self)

    def as_map(self) -> dict[str, Any]:
        """The item's fields, keyed for logging."""
        return {
            "id": self.id,
            "orgId": self.organization_id,
            "instanceNum": self.instance_num,
            "dateint": self.dateint,
            "frequencyMs": self.frequency_ms,
            "signal": self.signal,
            "tries": self.tries,
            "action": self.action,
            "tsRange": self.ts_range,
            "priority": self.priority,
            "runnableAt": self.runnable_at,
        }