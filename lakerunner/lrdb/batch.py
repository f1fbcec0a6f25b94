"""Batched statements on the metric segment table."""

from __future__ import annotations

import uuid
from dataclasses import astuple, dataclass
from typing import Any, Callable, Iterable

from lakerunner.lrdb.db import Batch, BatchResults, QueriesBase

BATCH_DELETE_METRIC_SEGS = """-- name: BatchDeleteMetricSegs :batchexec
DELETE FROM public.metric_seg
 WHERE organization_id = $1
   AND dateint         = $2
   AND frequency_ms    = $3
   AND segment_id      = $4
   AND instance_num    = $5
   AND tid_partition   = $6
"""

BATCH_INSERT_METRIC_SEGS = """-- name: BatchInsertMetricSegs :batchexec
INSERT INTO metric_seg (
  organization_id,
  dateint,
  ingest_dateint,
  frequency_ms,
  segment_id,
  instance_num,
  tid_partition,
  ts_range,
  record_count,
  file_size,
  tid_count,
  published,
  rolledup
)
VALUES (
  $1,
  $2,
  $3,
  $4,
  $5,
  $6,
  $7,
  int8range($8, $9, '[)'),
  $10,
  $11,
  $12,
  $13,
  $14
)
"""

BATCH_MARK_METRIC_SEGS_ROLLEDUP = """-- name: BatchMarkMetricSegsRolledup :batchexec
UPDATE public.metric_seg
   SET rolledup = true
 WHERE organization_id = $1
   AND dateint         = $2
   AND frequency_ms    = $3
   AND segment_id      = $4
   AND instance_num    = $5
   AND tid_partition   = $6
"""

BatchCallback = Callable[[int, "BaseException | None"], None]


class BatchAlreadyClosedError(Exception):
    """The batch was closed before all of its statements were run."""

    def __init__(self, message: str = "batch already closed") -> None:
        super().__init__(message)


class BatchExecResults:
    """Results of a batch of statements that return no rows."""

    def __init__(self, results: BatchResults, total: int) -> None:
        self._results = results
        self._total = total
        self.closed = False

    def __len__(self) -> int:
        return self._total

    def exec(self, callback: BatchCallback | None = None) -> None:
        """Run every queued statement, reporting each index and its error, if any."""
        try:
            for index in range(self._total):
                if self.closed:
                    if callback is not None:
                        callback(index, BatchAlreadyClosedError())
                    continue
                error: BaseException | None = None
                try:
                    self._results.exec()
                except Exception as exc:
                    error = exc
                if callback is not None:
                    callback(index, error)
        finally:
            self._results.close()

    def close(self) -> None:
        """Close the batch; statements not yet run will report BatchAlreadyClosedError."""
        self.closed = True
        self._results.close()

    def __enter__(self) -> BatchExecResults:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass(frozen=True, slots=True)
class BatchDeleteMetricSegsParams:
    organization_id: uuid.UUID
    dateint: int
    frequency_ms: int
    segment_id: int
    instance_num: int
    tid_partition: int


@dataclass(frozen=True, slots=True)
class BatchInsertMetricSegsParams:
    organization_id: uuid.UUID
    dateint: int
    ingest_dateint: int
    frequency_ms: int
    segment_id: int
    instance_num: int
    tid_partition: int
    start_ts: int
    end_ts: int
    record_count: int
    file_size: int
    tid_count: int
    published: bool
    rolledup: bool


@dataclass(frozen=True, slots=True)
class BatchMarkMetricSegsRolledupParams:
    organization_id: uuid.UUID
    dateint: int
    frequency_ms: int
    segment_id: int
    instance_num: int
    tid_partition: int


class BatchQueries(QueriesBase):
    """Batched metric segment statements."""

    def _send(self, sql: str, args: Iterable[Any]) -> BatchExecResults:
        batch = Batch()
        for item in args:
            batch.queue(sql, *astuple(item))
        return BatchExecResults(self.db.send_batch(batch), len(batch))

    def batch_delete_metric_segs(
        self, args: Iterable[BatchDeleteMetricSegsParams]
    ) -> BatchExecResults:
        return self._send(BATCH_DELETE_METRIC_SEGS, args)

    def batch_insert_metric_segs(
        self, args: Iterable[BatchInsertMetricSegsParams]
    ) -> BatchExecResults:
        return self._send(BATCH_INSERT_METRIC_SEGS, args)

    def batch_mark_metric_segs_rolledup(
        self, args: Iterable[BatchMarkMetricSegsRolledupParams]
    ) -> BatchExecResults:
        return self._send(BATCH_MARK_METRIC_SEGS_ROLLEDUP, args)