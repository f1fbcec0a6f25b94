import uuid
from datetime import datetime, timezone

import pytest

from lakerunner.lrdb.db import NoRowsError
from lakerunner.lrdb.models import ActionEnum, Range, SignalEnum
from lakerunner.lrdb.work_queue_queries import (
    SIGNAL_LOCK_CLEANUP,
    WORK_QUEUE_ADD_DIRECT,
    WORK_QUEUE_CLAIM_DIRECT,
    WORK_QUEUE_CLEANUP_DIRECT,
    WORK_QUEUE_COMPLETE_DIRECT,
    WORK_QUEUE_FAIL_DIRECT,
    WORK_QUEUE_GLOBAL_LOCK,
    WORK_QUEUE_HEARTBEAT_DIRECT,
    WorkQueueAddParams,
    WorkQueueClaimParams,
    WorkQueueClaimRow,
    WorkQueueCleanupRow,
    WorkQueueCompleteParams,
    WorkQueueFailParams,
    WorkQueueHeartbeatParams,
    WorkQueueQueries,
)

ORG = uuid.UUID("123e4567-e89b-12d3-a456-426614174001")
T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2025, 1, 2, tzinfo=timezone.utc)
TS_RANGE = Range(T0, T1)


class FakeDB:
    def __init__(self, rows=(), row=None, error=None):
        self.rows = list(rows)
        self.row = row
        self.error = error
        self.calls = []

    def exec(self, sql, *args):
        self.calls.append(("exec", sql, args))
        if self.error is not None:
            raise self.error

    def query(self, sql, *args):
        self.calls.append(("query", sql, args))
        return iter(self.rows)

    def query_row(self, sql, *args):
        self.calls.append(("query_row", sql, args))
        if self.row is None:
            raise NoRowsError("no rows in result set")
        return self.row

    def send_batch(self, batch):
        raise AssertionError("not expected")


def _work_row(signal, action):
    return (42, 5, T0, ORG, 1, 20250101, 60000, signal, action, False, 1, TS_RANGE, 7, T0, T1)


def test_add_direct_passes_params_in_order():
    db = FakeDB()
    params = WorkQueueAddParams(
        ORG, 1, 20250101, 60000, SignalEnum.METRICS, ActionEnum.ROLLUP, TS_RANGE, T0, 3
    )
    WorkQueueQueries(db).work_queue_add_direct(params)
    assert db.calls == [
        (
            "exec",
            WORK_QUEUE_ADD_DIRECT,
            (ORG, 1, 20250101, 60000, SignalEnum.METRICS, ActionEnum.ROLLUP, TS_RANGE, T0, 3),
        )
    ]


def test_complete_passes_worker_id_first():
    db = FakeDB()
    WorkQueueQueries(db).work_queue_complete_direct(WorkQueueCompleteParams(worker_id=9, id=42))
    assert db.calls == [("exec", WORK_QUEUE_COMPLETE_DIRECT, (9, 42))]


def test_fail_passes_id_first():
    db = FakeDB()
    WorkQueueQueries(db).work_queue_fail_direct(WorkQueueFailParams(id=42, worker_id=9))
    assert db.calls == [("exec", WORK_QUEUE_FAIL_DIRECT, (42, 9))]


def test_global_lock_and_heartbeat():
    db = FakeDB()
    queries = WorkQueueQueries(db)
    queries.work_queue_global_lock()
    queries.work_queue_heartbeat_direct(WorkQueueHeartbeatParams(ids=(1, 2, 3), worker_id=9))
    assert db.calls == [
        ("exec", WORK_QUEUE_GLOBAL_LOCK, ()),
        ("exec", WORK_QUEUE_HEARTBEAT_DIRECT, ([1, 2, 3], 9)),
    ]
    assert "hashtext('work_queue_global')" in WORK_QUEUE_GLOBAL_LOCK


def test_claim_decodes_enums_from_text_and_bytes():
    db = FakeDB(row=_work_row(b"metrics", "rollup"))
    params = WorkQueueClaimParams([60000], SignalEnum.METRICS, ActionEnum.ROLLUP, 0, 9)
    result = WorkQueueQueries(db).work_queue_claim_direct(params)
    assert result == WorkQueueClaimRow(*_work_row(SignalEnum.METRICS, ActionEnum.ROLLUP))
    assert result.signal is SignalEnum.METRICS
    assert result.action is ActionEnum.ROLLUP
    assert db.calls == [
        (
            "query_row",
            WORK_QUEUE_CLAIM_DIRECT,
            ([60000], SignalEnum.METRICS, ActionEnum.ROLLUP, 0, 9),
        )
    ]


def test_claim_without_work_raises_no_rows():
    db = FakeDB()
    params = WorkQueueClaimParams([10000], SignalEnum.LOGS, ActionEnum.COMPACT, 0, 9)
    with pytest.raises(NoRowsError):
        WorkQueueQueries(db).work_queue_claim_direct(params)


def test_claim_rejects_unsupported_signal_type():
    db = FakeDB(row=_work_row(17, "compact"))
    params = WorkQueueClaimParams([10000], SignalEnum.LOGS, ActionEnum.COMPACT, 0, 9)
    with pytest.raises(TypeError, match="SignalEnum"):
        WorkQueueQueries(db).work_queue_claim_direct(params)


def test_cleanup_rows_include_locks_removed():
    db = FakeDB(rows=[(*_work_row("logs", "compact"), 2)])
    result = WorkQueueQueries(db).work_queue_cleanup_direct()
    assert result == [
        WorkQueueCleanupRow(*_work_row(SignalEnum.LOGS, ActionEnum.COMPACT), 2)
    ]
    assert db.calls == [("query", WORK_QUEUE_CLEANUP_DIRECT, ())]


def test_cleanup_empty():
    assert WorkQueueQueries(FakeDB()).work_queue_cleanup_direct() == []


def test_signal_lock_cleanup_returns_count():
    db = FakeDB(row=(4,))
    assert WorkQueueQueries(db).signal_lock_cleanup() == 4
    assert db.calls == [("query_row", SIGNAL_LOCK_CLEANUP, ())]


def test_claim_sql_pins_rollup_sources():
    db = FakeDB(row=_work_row("metrics", "rollup"))
    params = WorkQueueClaimParams([3600000], SignalEnum.METRICS, ActionEnum.ROLLUP, 0, 9)
    WorkQueueQueries(db).work_queue_claim_direct(params)
    sent_sql = db.calls[0][1]
    assert "(3600000, 1200000)" in sent_sql
    assert "FOR UPDATE SKIP LOCKED" in sent_sql


def test_exec_error_propagates():
    db = FakeDB(error=RuntimeError("lock failed"))
    with pytest.raises(RuntimeError, match="lock failed"):
        WorkQueueQueries(db).work_queue_global_lock()