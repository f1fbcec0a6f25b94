"""Queries on log segments."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from lakerunner.lrdb.db import QueriesBase

_OLD_SEGMENTS = (
    "organization_id = $1 AND dateint = $2 AND instance_num = $5 "
    "AND segment_id = ANY($10::bigint[])"
)

COMPACT_LOG_SEGMENTS = f"""
WITH all_fp AS (
    SELECT unnest(fingerprints) AS fp FROM log_seg WHERE {_OLD_SEGMENTS}
), fingerprint_array AS (
    SELECT coalesce(array_agg(DISTINCT fp ORDER BY fp), '{{}}'::bigint[]) AS fingerprints
      FROM all_fp
), deleted_seg AS (
    DELETE FROM log_seg WHERE {_OLD_SEGMENTS}
)
INSERT INTO log_seg (organization_id, dateint, ingest_dateint, segment_id, instance_num,
                     record_count, file_size, ts_range, fingerprints)
SELECT $1, $2, $3, $4, $5, $6, $7, int8range($8, $9, '[)'), fa.fingerprints
  FROM fingerprint_array AS fa
"""

GET_LOG_SEGMENTS_FOR_COMPACTION = """
SELECT segment_id,
       lower(ts_range)::bigint AS start_ts,
       upper(ts_range)::bigint AS end_ts,
       file_size, record_count, ingest_dateint
  FROM log_seg
 WHERE organization_id = $1 AND dateint = $2 AND instance_num = $3
   AND file_size > 0 AND record_count > 0
 ORDER BY lower(ts_range)
"""

INSERT_LOG_SEGMENT_DIRECT = """
INSERT INTO log_seg (organization_id, dateint, ingest_dateint, segment_id, instance_num,
                     ts_range, record_count, file_size, fingerprints)
VALUES ($1, $2, $3, $4, $5, int8range($6, $7, '[)'), $8, $9, $10::bigint[])
"""


@dataclass(frozen=True, slots=True)
class CompactLogSegmentsParams:
    organization_id: uuid.UUID
    dateint: int
    ingest_dateint: int
    new_segment_id: int
    instance_num: int
    new_record_count: int
    new_file_size: int
    new_start_ts: int
    new_end_ts: int
    old_segment_ids: list[int]


@dataclass(frozen=True, slots=True)
class GetLogSegmentsForCompactionParams:
    organization_id: uuid.UUID
    dateint: int
    instance_num: int


@dataclass(frozen=True, slots=True)
class GetLogSegmentsForCompactionRow:
    segment_id: int
    start_ts: int
    end_ts: int
    file_size: int
    record_count: int
    ingest_dateint: int


@dataclass(frozen=True, slots=True)
class InsertLogSegmentParams:
    organization_id: uuid.UUID
    dateint: int
    ingest_dateint: int
    segment_id: int
    instance_num: int
    start_ts: int
    end_ts: int
    record_count: int
    file_size: int
    fingerprints: list[int]


class LogSegQueries(QueriesBase):
    """Queries on the log_seg table."""

    def compact_log_segments(self, arg: CompactLogSegmentsParams) -> None:
        """Replace the old segments with one new segment holding their fingerprints."""
        self.db.exec(
            COMPACT_LOG_SEGMENTS,
            arg.organization_id,
            arg.dateint,
            arg.ingest_dateint,
            arg.new_segment_id,
            arg.instance_num,
            arg.new_record_count,
            arg.new_file_size,
            arg.new_start_ts,
            arg.new_end_ts,
            list(arg.old_segment_ids),
        )

    def get_log_segments_for_compaction(
        self, arg: GetLogSegmentsForCompactionParams
    ) -> list[GetLogSegmentsForCompactionRow]:
        """Non-empty segments of one organization, day and instance, by start time."""
        rows = self.db.query(
            GET_LOG_SEGMENTS_FOR_COMPACTION, arg.organization_id, arg.dateint, arg.instance_num
        )
        return [GetLogSegmentsForCompactionRow(*row) for row in rows]

    def insert_log_segment_direct(self, arg: InsertLogSegmentParams) -> None:
        self.db.exec(
            INSERT_LOG_SEGMENT_DIRECT,
            arg.organization_id,
            arg.dateint,
            arg.ingest_dateint,
            arg.segment_id,
            arg.instance_num,
            arg.start_ts,
            arg.end_ts,
            arg.record_count,
            arg.file_size,
            list(arg.fingerprints),
        )