"""Creation of per-organization, per-day partitions of the segment tables."""

from __future__ import annotations

import uuid

from lakerunner.base36 import uuid_to_base36
from lakerunner.lrdb.db import QueriesBase
from lakerunner.lrdb.partition_cache import (
    is_partition_table_remembered,
    remember_partition_table,
)


class PartitioningQueries(QueriesBase):
    """Makes sure partitions exist before rows are inserted into them."""

    def _ensure_partition(self, key: str, sql: str, failure: str) -> None:
        if is_partition_table_remembered(key):
            return
        try:
            self.db.exec(sql)
        except Exception as exc:
            raise RuntimeError(f"{failure}: {exc}") from exc
        remember_partition_table(key)

    def ensure_log_fp_partition(self, parent: str, org_id: uuid.UUID, dateint: int) -> None:
        """Create the partition of `parent` for one organization and day, once."""
        partition_table = f"{parent}_{uuid_to_base36(org_id)}"
        sql = (
            f"SELECT create_logfpseg_partition('{parent}', '{partition_table}', "
            f"'{org_id}', {dateint}, {dateint + 1})"
        )
        self._ensure_partition(
            f"{partition_table}_{dateint}",
            sql,
            f"failed to create partition {partition_table} for table {parent}",
        )

    def ensure_metric_segment_partition(self, org_id: uuid.UUID, dateint: int) -> None:
        """Create the metric_seg partition for one organization and day, once."""
        partition_table = f"mseg_{uuid_to_base36(org_id)}"
        sql = (
            f"SELECT create_metricseg_partition('metric_seg', '{partition_table}', "
            f"'{org_id}', {dateint}, {dateint + 1})"
        )
        self._ensure_partition(
            f"{partition_table}_{dateint}",
            sql,
            f"failed to create partition {partition_table} for table metric_seg",
        )