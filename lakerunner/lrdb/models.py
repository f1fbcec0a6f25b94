"""Row types and enums of the lakerunner metadata database."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _decode_enum_source(enum_name: str, value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode()
    if isinstance(value, str):
        return value
    raise TypeError(f"unsupported scan type for {enum_name}: {type(value).__name__}")


class ActionEnum(StrEnum):
    """Work queue action."""

    COMPACT = "compact"
    ROLLUP = "rollup"

    @classmethod
    def from_db(cls, value: Any) -> ActionEnum:
        """Build an action from a database value given as str or bytes."""
        return cls(_decode_enum_source(cls.__name__, value))


class SignalEnum(StrEnum):
    """Telemetry signal type."""

    LOGS = "logs"
    METRICS = "metrics"
    TRACES = "traces"

    @classmethod
    def from_db(cls, value: Any) -> SignalEnum:
        """Build a signal from a database value given as str or bytes."""
        return cls(_decode_enum_source(cls.__name__, value))


@dataclass(frozen=True, slots=True)
class Range(Generic[T]):
    """A PostgreSQL range; a bound of None is unbounded. Defaults to '[)'."""

    lower: T | None = None
    upper: T | None = None
    lower_inclusive: bool = True
    upper_inclusive: bool = False

    def __contains__(self, value: Any) -> bool:
        if self.lower is not None:
            if self.lower_inclusive and value < self.lower:
                return False
            if not self.lower_inclusive and value <= self.lower:
                return False
        if self.upper is not None:
            if self.upper_inclusive and value > self.upper:
                return False
            if not self.upper_inclusive and value >= self.upper:
                return False
        return True


@dataclass(frozen=True, slots=True)
class Inqueue:
    id: uuid.UUID
    queue_ts: datetime
    priority: int
    organization_id: uuid.UUID
    collector_name: str
    instance_num: int
    bucket: str
    object_id: str
    telemetry_type: str
    tries: int
    claimed_by: int
    claimed_at: datetime | None


@dataclass(frozen=True, slots=True)
class InqueueJournal:
    id: int
    organization_id: uuid.UUID
    bucket: str
    object_id: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class LogSeg:
    organization_id: uuid.UUID
    dateint: int
    segment_id: int
    instance_num: int
    fingerprints: list[int]
    record_count: int
    file_size: int
    ingest_dateint: int
    ts_range: Range[int]


@dataclass(frozen=True, slots=True)
class MetricSeg:
    organization_id: uuid.UUID
    dateint: int
    frequency_ms: int
    segment_id: int
    instance_num: int
    tid_partition: int
    ts_range: Range[int]
    record_count: int
    file_size: int
    tid_count: int
    ingest_dateint: int
    published: bool
    rolledup: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ObjCleanup:
    id: uuid.UUID
    delete_at: datetime
    organization_id: uuid.UUID
    instance_num: int
    bucket_id: str
    object_id: str
    tries: int


@dataclass(frozen=True, slots=True)
class Setting:
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class SignalLock:
    id: int
    work_id: int | None
    organization_id: uuid.UUID
    instance_num: int
    dateint: int
    frequency_ms: int
    signal: SignalEnum
    ts_range: Range[datetime]
    claimed_by: int
    claimed_at: datetime | None
    heartbeated_at: datetime


@dataclass(frozen=True, slots=True)
class WorkQueue:
    id: int
    priority: int
    runnable_at: datetime
    organization_id: uuid.UUID
    instance_num: int
    dateint: int
    frequency_ms: int
    signal: SignalEnum
    action: ActionEnum
    needs_run: bool
    tries: int
    ts_range: Range[datetime]
    claimed_by: int
    claimed_at: datetime | None
    heartbeated_at: datetime