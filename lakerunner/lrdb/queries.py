"""All queries of the metadata database in one class."""

from __future__ import annotations

from lakerunner.lrdb.batch import BatchQueries
from lakerunner.lrdb.estimator import EstimatorQueries
from lakerunner.lrdb.inqueue import InqueueQueries
from lakerunner.lrdb.log_seg import LogSegQueries
from lakerunner.lrdb.metric_seg_queries import MetricSegQueries
from lakerunner.lrdb.obj_cleanup import ObjCleanupQueries
from lakerunner.lrdb.partitioning import PartitioningQueries
from lakerunner.lrdb.work_queue_queries import WorkQueueQueries


class Queries(
    BatchQueries,
    InqueueQueries,
    LogSegQueries,
    ObjCleanupQueries,
    MetricSegQueries,
    EstimatorQueries,
    WorkQueueQueries,
    PartitioningQueries,
):
    """Every query, run on one executor: a pool, a connection or a transaction."""