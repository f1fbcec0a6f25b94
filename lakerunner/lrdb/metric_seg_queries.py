"""Queries on metric segments."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from lakerunner.lrdb.db import QueriesBase
from lakerunner.lrdb.models import MetricSeg

GET_METRIC_SEGS = """-- name: GetMetricSegs :many
SELECT organization_id, dateint, frequency_ms, segment_id, instance_num, tid_partition, ts_range, record_count, file_size, tid_count, ingest_dateint, published, rolledup, created_at
FROM metric_seg
WHERE
  organization_id = $1 AND
  dateint = $2 AND
  frequency_ms = $3 AND
  instance_num = $4
  AND (
    ($5::BIGINT = 0 AND $6::BIGINT = 0)
    OR
    (ts_range && int8range($5, $6, '[)'))
  )
ORDER BY
  ts_range
"""

INSERT_METRIC_SEGMENT_DIRECT = """-- name: InsertMetricSegmentDirect :exec
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
  published
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
  $13
)
"""


@dataclass(frozen=True, slots=True)
class GetMetricSegsParams:
    organization_id: uuid.UUID
    dateint: int
    frequency_ms: int
    instance_num: int
    start_ts: int
    end_ts: int


@dataclass(frozen=True, slots=True)
class InsertMetricSegmentParams:
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


class MetricSegQueries(QueriesBase):
    """Queries on the metric_seg table."""

    def get_metric_segs(self, arg: GetMetricSegsParams) -> list[MetricSeg]:
        """Segments of one organization, day, frequency and instance, ordered by time.

        A start and end of zero both select every segment; otherwise only
        segments overlapping [start_ts, end_ts) are returned.
        """
        rows = self.db.query(
            GET_METRIC_SEGS,
            arg.organization_id,
            arg.dateint,
            arg.frequency_ms,
            arg.instance_num,
            arg.start_ts,
            arg.end_ts,
        )
        return [MetricSeg(*row) for row in rows]

    def insert_metric_segment_direct(self, arg: InsertMetricSegmentParams) -> None:
        """Insert a segment without making sure its partition exists."""
        self.db.exec(
            INSERT_METRIC_SEGMENT_DIRECT,
            arg.organization_id,
            arg.dateint,
            arg.ingest_dateint,
            arg.frequency_ms,
            arg.segment_id,
            arg.instance_num,
            arg.tid_partition,
            arg.start_ts,
            arg.end_ts,
            arg.record_count,
            arg.file_size,
            arg.tid_count,
            arg.published,
        )