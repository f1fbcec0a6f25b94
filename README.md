# lakerunner

Database access and work coordination for a telemetry data lake whose
metadata lives in PostgreSQL. The package has three parts:

- `lakerunner.base36`: turns a UUID into a fixed-width, 25-character base-36
  string and back again. Partition table names use this form.
- `lakerunner.lrdb`: typed query classes for the metadata tables (inbound
  queue and its journal, log and metric segments, object cleanup, size
  estimates, work queue and signal locks), plus a `Store` that runs
  multi-step operations inside transactions.
- `lakerunner.lockmgr`: a `WorkQueueManager` that claims work items for one
  worker, heartbeats them in the background, and marks them complete or failed.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Base-36 identifiers

```python
import uuid
from lakerunner.base36 import uuid_to_base36, base36_to_uuid

uid = uuid.UUID("123e4567-e89b-12d3-a456-426614174001")
text = uuid_to_base36(uid)          # "12vqjrnxk8whv3i8qi6qgrlz5"
assert base36_to_uuid(text) == uid
```

`base36_to_uuid` raises `ValueError` when the text is not base 36 or when the
number it holds does not fit in 128 bits.

## Queries

`lakerunner.lrdb.queries.Queries` gathers every query method in one class. It
is built on any object that follows the `DBTX` protocol in
`lakerunner.lrdb.db`, which has four methods: `exec`, `query`, `query_row`
(raising `NoRowsError` when there is no row) and `send_batch`. Query results
come back as frozen dataclasses, such as `MetricSeg`, `Inqueue`,
`WorkQueueClaimRow` or `LogSegEstimatorRow`. The `signal` and `action` columns
are decoded into `SignalEnum` and `ActionEnum`.

The batched statements (`batch_delete_metric_segs`,
`batch_insert_metric_segs`, `batch_mark_metric_segs_rolledup`) return a
`BatchExecResults`. Its `exec(callback)` runs each statement and calls the
callback with the index and the error, or `None`. After `close()`, any
statements that have not run report `BatchAlreadyClosedError`.

## The store

`lakerunner.lrdb.store.Store` wraps an object that follows the `Pool`
protocol: it is itself a `DBTX`, and `begin()` returns a `Transaction` with
`commit()` and `rollback()`. `Store` has every query of `Queries` and adds
the operations that need more than one statement:

- `insert_log_segment` and `insert_metric_segment` create the
  per-organisation, per-day partition first. Partitions that are known to
  exist are remembered for thirty minutes. `flush_caches()` in
  `lakerunner.lrdb.partition_cache` forgets them.
- `replace_metric_segs` deletes the old segments and inserts the new ones in
  a single transaction. If any delete fails, no inserts are attempted. It
  raises `ReplaceMetricSegsError`, whose `errors` lists every failed row, and
  the transaction is rolled back.
- `work_queue_add`, `work_queue_claim`, `work_queue_complete`,
  `work_queue_fail`, `work_queue_heartbeat` and `work_queue_cleanup` take the
  work queue's global advisory lock before they touch the queue.
  `work_queue_claim` raises `NoRowsError` when nothing is runnable.

`exec_tx(fn)` runs your own function against a `Store` bound to a fresh
transaction. It commits when the function succeeds and rolls back when it
raises.

## Claiming work

```python
import threading
from datetime import timedelta
from lakerunner.lockmgr.options import with_heartbeat_interval
from lakerunner.lockmgr.workqueue import WorkQueueManager
from lakerunner.lrdb.models import ActionEnum, SignalEnum

manager = WorkQueueManager(
    store,
    worker_id,
    SignalEnum.METRICS,
    ActionEnum.COMPACT,
    [10_000],
    0,
    with_heartbeat_interval(timedelta(seconds=30)),
)
stop = threading.Event()
manager.run(stop)

item = manager.request_work()
if item is not None:
    try:
        ...  # do the work
    except Exception:
        item.fail()
        raise
    else:
        item.complete()

stop.set()
```

`run` starts a background thread and returns it. All database work happens on
that thread. `request_work` returns `None` when nothing is runnable. It raises
`RuntimeError` if the manager is not running.

The manager heartbeats every item it holds (see `acquired_ids`) each time the
thread has been idle for the heartbeat interval. The interval is one minute by
default, and an interval of ten seconds or less is raised to ten seconds.
`with_logger(logger)` chooses the logger that heartbeat failures are reported
to.

`WorkItem.complete()` and `WorkItem.fail()` release the item. A second call
does nothing. `as_map()` returns the item's fields for logging.

## What the package does not do

The package contains no PostgreSQL driver or connection pool. You supply
objects that meet the `DBTX`, `Pool` and `Transaction` protocols. It also
does not create or migrate the database schema. The tables, and the database
functions that the queries call, must already exist. Examples of these
functions are `work_queue_add`, `signal_lock_cleanup`,
`create_logfpseg_partition` and `create_metricseg_partition`. The package
provides no command-line program.