"""The store: all queries plus transactional operations built from them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from lakerunner.lrdb.batch import BatchDeleteMetricSegsParams, BatchInsertMetricSegsParams
from lakerunner.lrdb.db import Pool
from lakerunner.lrdb.log_seg import InsertLogSegmentParams
from lakerunner.lrdb.metric_seg_queries import InsertMetricSegmentParams
from lakerunner.lrdb.queries import Queries
from lakerunner.lrdb.work_queue_queries import (
    WorkQueueAddParams,
    WorkQueueClaimParams,
    WorkQueueClaimRow,
    WorkQueueCleanupRow,
    WorkQueueCompleteParams,
    WorkQueueFailParams,
    WorkQueueHeartbeatParams,
)

R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class ReplaceMetricSegsOld:
    tid_partition: int
    segment_id: int


@dataclass(frozen=True, slots=True)
class ReplaceMetricSegsNew:
    tid_partition: int
    segment_id: int
    start_ts: int
    end_ts: int
    record_count: int
    file_size: int
    tid_count: int


@dataclass(frozen=True, slots=True)
class ReplaceMetricSegsParams:
    """Segments to swap for one organization, day, instance and frequency."""

    organization_id: uuid.UUID
    dateint: int
    ingest_dateint: int
    instance_num: int
    frequency_ms: int
    published: bool
    rolledup: bool
    old_records: list[ReplaceMetricSegsOld] = field(default_factory=list)
    new_records: list[ReplaceMetricSegsNew] = field(default_factory=list)


class ReplaceMetricSegsError(Exception):
    """One or more statements of a segment replacement failed."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        count = len(self.errors)
        heading = "1 error occurred" if count == 1 else f"{count} errors occurred"
        details = "".join(f"\n\t* {error}" for error in self.errors)
        super().__init__(f"{heading}:{details}")


def _wrap(message: str, cause: BaseException) -> RuntimeError:
    error = RuntimeError(f"{message}: {cause}")
    error.__cause__ = cause
    return error


@runtime_checkable
class StoreFull(Protocol):
    """Everything the workers need from the metadata database."""

    def replace_metric_segs(self, args: ReplaceMetricSegsParams) -> None: ...

    def insert_log_segment(self, params: InsertLogSegmentParams) -> None: ...

    def insert_metric_segment(self, params: InsertMetricSegmentParams) -> None: ...

    def work_queue_add(self, params: WorkQueueAddParams) -> None: ...

    def work_queue_fail(self, params: WorkQueueFailParams) -> None: ...

    def work_queue_complete(self, params: WorkQueueCompleteParams) -> None: ...

    def work_queue_heartbeat(self, params: WorkQueueHeartbeatParams) -> None: ...

    def work_queue_cleanup(self) -> list[WorkQueueCleanupRow]: ...

    def work_queue_claim(self, params: WorkQueueClaimParams) -> WorkQueueClaimRow: ...


class Store(Queries):
    """All queries on a connection pool, plus operations run in transactions."""

    def __init__(self, pool: Pool) -> None:
        super().__init__(pool)
        self.pool = pool

    def exec_tx(self, fn: Callable[[Store], R]) -> R:
        """Run fn with a store bound to a new transaction; commit if it succeeds.

        The transaction is rolled back if fn or the commit raises.
        """
        tx = self.pool.begin()
        tx_store = self.with_tx(tx)
        try:
            result = fn(tx_store)  # type: ignore[arg-type]
            tx.commit()
        except Exception as exc:
            try:
                tx.rollback()
            except Exception as rb_exc:
                raise RuntimeError(f"tx err: {exc}, rb err: {rb_exc}") from exc
            raise
        return result

    def insert_log_segment(self, params: InsertLogSegmentParams) -> None:
        """Insert a log segment, creating its partition first if needed."""
        self.ensure_log_fp_partition("log_seg", params.organization_id, params.dateint)
        self.insert_log_segment_direct(params)

    def insert_metric_segment(self, params: InsertMetricSegmentParams) -> None:
        """Insert a metric segment, creating its partition first if needed."""
        self.ensure_metric_segment_partition(params.organization_id, params.dateint)
        self.insert_metric_segment_direct(params)

    def replace_metric_segs(self, args: ReplaceMetricSegsParams) -> None:
        """Atomically delete the old segments and insert the new ones.

        Raises ReplaceMetricSegsError listing every failed statement.
        """
        old_items = [
            BatchDeleteMetricSegsParams(
                organization_id=args.organization_id,
                dateint=args.dateint,
                frequency_ms=args.frequency_ms,
                segment_id=old.segment_id,
                instance_num=args.instance_num,
                tid_partition=old.tid_partition,
            )
            for old in args.old_records
        ]
        new_items = [
            BatchInsertMetricSegsParams(
                organization_id=args.organization_id,
                dateint=args.dateint,
                ingest_dateint=args.ingest_dateint,
                frequency_ms=args.frequency_ms,
                segment_id=new.segment_id,
                instance_num=args.instance_num,
                tid_partition=new.tid_partition,
                start_ts=new.start_ts,
                end_ts=new.end_ts,
                record_count=new.record_count,
                file_size=new.file_size,
                tid_count=new.tid_count,
                published=args.published,
                rolledup=args.rolledup,
            )
            for new in args.new_records
        ]

        def replace(store: Store) -> None:
            errors: list[BaseException] = []

            def on_delete(index: int, error: BaseException | None) -> None:
                if error is not None:
                    errors.append(
                        _wrap(
                            f"error deleting old metric segment {index}, keys {old_items[index]}",
                            error,
                        )
                    )

            def on_insert(index: int, error: BaseException | None) -> None:
                if error is not None:
                    errors.append(
                        _wrap(
                            f"error inserting new metric segment {index}, keys {new_items[index]}",
                            error,
                        )
                    )

            if old_items:
                store.batch_delete_metric_segs(old_items).exec(on_delete)
            if not errors and new_items:
                store.batch_insert_metric_segs(new_items).exec(on_insert)
            if errors:
                raise ReplaceMetricSegsError(errors)

        self.exec_tx(replace)

    def _locked(self, fn: Callable[[Store], Any]) -> Any:
        def run(store: Store) -> Any:
            store.work_queue_global_lock()
            return fn(store)

        return self.exec_tx(run)

    def work_queue_add(self, params: WorkQueueAddParams) -> None:
        self._locked(lambda s: s.work_queue_add_direct(params))

    def work_queue_fail(self, params: WorkQueueFailParams) -> None:
        self._locked(lambda s: s.work_queue_fail_direct(params))

    def work_queue_complete(self, params: WorkQueueCompleteParams) -> None:
        self._locked(lambda s: s.work_queue_complete_direct(params))

    def work_queue_heartbeat(self, params: WorkQueueHeartbeatParams) -> None:
        self._locked(lambda s: s.work_queue_heartbeat_direct(params))

    def work_queue_cleanup(self) -> list[WorkQueueCleanupRow]:
        return self._locked(lambda s: s.work_queue_cleanup_direct())

    def work_queue_claim(self, params: WorkQueueClaimParams) -> WorkQueueClaimRow:
        """Claim the next work item; raises NoRowsError when there is none."""
        return self._locked(lambda s: s.work_queue_claim_direct(params))