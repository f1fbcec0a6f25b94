import uuid

import pytest

from lakerunner.lrdb.estimator import (
    LOG_SEG_ESTIMATOR,
    METRIC_SEG_ESTIMATOR,
    EstimatorQueries,
    LogSegEstimatorRow,
    MetricSegEstimatorRow,
)

ORG_A = uuid.UUID("00000000-0000-0000-0000-000000000001")
ORG_B = uuid.UUID("ffffffff-ffff-ffff-ffff-ffffffffffff")


class FakeDB:
    def __init__(self, rows=(), error=None):
        self.rows = list(rows)
        self.error = error
        self.calls = []

    def exec(self, sql, *args):
        raise AssertionError("not expected")

    def query(self, sql, *args):
        self.calls.append((sql, args))
        if self.error is not None:
            raise self.error
        return iter(self.rows)

    def query_row(self, sql, *args):
        raise AssertionError("not expected")

    def send_batch(self, batch):
        raise AssertionError("not expected")


def test_log_seg_estimator_rows():
    db = FakeDB(rows=[(ORG_A, 1, 12.5), (ORG_B, 2, 7)])
    result = EstimatorQueries(db).log_seg_estimator()
    assert result == [
        LogSegEstimatorRow(ORG_A, 1, 12.5),
        LogSegEstimatorRow(ORG_B, 2, 7.0),
    ]
    assert isinstance(result[1].avg_bpr, float)
    assert db.calls == [(LOG_SEG_ESTIMATOR, ())]


def test_metric_seg_estimator_rows():
    db = FakeDB(rows=[(ORG_A, 3, 40.25)])
    result = EstimatorQueries(db).metric_seg_estimator()
    assert result == [MetricSegEstimatorRow(ORG_A, 3, 40.25)]
    assert db.calls == [(METRIC_SEG_ESTIMATOR, ())]


def test_estimators_empty():
    queries = EstimatorQueries(FakeDB())
    assert queries.log_seg_estimator() == []
    assert queries.metric_seg_estimator() == []


def test_estimator_propagates_error():
    with pytest.raises(RuntimeError, match="down"):
        EstimatorQueries(FakeDB(error=RuntimeError("down"))).metric_seg_estimator()