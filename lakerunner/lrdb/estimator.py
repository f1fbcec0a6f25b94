"""Estimates of bytes per record for recent log and metric segments."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TypeVar


def _estimator_sql(table: str) -> str:
    """Average bytes per record over the last six hours of one segment table."""
    return f"""
WITH params AS (
    SELECT (EXTRACT(EPOCH FROM now() - INTERVAL '6 hour') * 1000)::bigint AS low_ms,
           (EXTRACT(EPOCH FROM now()) * 1000)::bigint AS high_ms
)
SELECT organization_id, instance_num,
       (sum(file_size)::float8 / sum(record_count))::float8 AS avg_bpr
  FROM {table} CROSS JOIN params
 WHERE record_count > 100
   AND dateint IN ((to_char(now(), 'YYYYMMDD'))::int,
                   (to_char(now() - INTERVAL '6 hour', 'YYYYMMDD'))::int)
   AND ts_range && int8range(params.low_ms, params.high_ms, '[)')
 GROUP BY organization_id, instance_num
 ORDER BY organization_id, instance_num
"""


LOG_SEG_ESTIMATOR = _estimator_sql("log_seg")
METRIC_SEG_ESTIMATOR = _estimator_sql("metric_seg")

from lakerunner.lrdb.db import QueriesBase  # noqa: E402


@dataclass(frozen=True, slots=True)
class LogSegEstimatorRow:
    organization_id: uuid.UUID
    instance_num: int
    avg_bpr: float


@dataclass(frozen=True, slots=True)
class MetricSegEstimatorRow:
    organization_id: uuid.UUID
    instance_num: int
    avg_bpr: float


_Row = TypeVar("_Row", LogSegEstimatorRow, MetricSegEstimatorRow)


class EstimatorQueries(QueriesBase):
    """Average bytes per record over the last six hours, per organization and instance."""

    def _estimate(self, sql: str, row_type: type[_Row]) -> list[_Row]:
        return [
            row_type(org_id, int(instance_num), float(avg_bpr))
            for org_id, instance_num, avg_bpr in self.db.query(sql)
        ]

    def log_seg_estimator(self) -> list[LogSegEstimatorRow]:
        return self._estimate(LOG_SEG_ESTIMATOR, LogSegEstimatorRow)

    def metric_seg_estimator(self) -> list[MetricSegEstimatorRow]:
        return self._estimate(METRIC_SEG_ESTIMATOR, MetricSegEstimatorRow)