"""Queries on the work queue and its signal locks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from lakerunner.lrdb.db import QueriesBase
from lakerunner.lrdb.models import ActionEnum, Range, SignalEnum

_WORK_COLUMNS = (
    "id", "priority", "runnable_at", "organization_id", "instance_num", "dateint",
    "frequency_ms", "signal", "action", "needs_run", "tries", "ts_range",
    "claimed_by", "claimed_at", "heartbeated_at",
)

_LOCK_COLUMNS = (
    "id", "work_id", "organization_id", "instance_num", "dateint", "frequency_ms",
    "signal", "ts_range", "claimed_by", "claimed_at", "heartbeated_at",
)

# Parent frequency and the child frequency it is rolled up from, in milliseconds.
_ROLLUP_SOURCES = ((60000, 10000), (300000, 60000), (1200000, 300000), (3600000, 1200000))


def _columns(names: Sequence[str], prefix: str = "") -> str:
    return ", ".join(prefix + name for name in names)


def _setting(key: str, cast: str) -> str:
    return f"(SELECT value::{cast} FROM public.settings WHERE key = '{key}')"


WORK_QUEUE_ADD_DIRECT = """
SELECT public.work_queue_add(
    $1::UUID, $2::SMALLINT, $3::INTEGER, $4::INTEGER, $5::signal_enum,
    $6::action_enum, $7::TSTZRANGE, $8::TIMESTAMPTZ, $9::INTEGER
)
"""

WORK_QUEUE_CLEANUP_DIRECT = f"""
WITH params AS (
    SELECT NOW() AS v_now, {_setting('lock_ttl_dead', 'interval')} AS dead_ttl
), expired AS (
    UPDATE public.work_queue w
       SET claimed_by = -1, claimed_at = NULL,
           heartbeated_at = params.v_now, needs_run = TRUE
      FROM params
     WHERE w.claimed_by <> -1
       AND w.heartbeated_at < params.v_now - params.dead_ttl
    RETURNING {_columns(_WORK_COLUMNS, 'w.')}
), deleted_locks AS (
    DELETE FROM public.signal_locks sl USING expired e
     WHERE sl.work_id = e.id
    RETURNING sl.id
)
SELECT {_columns(_WORK_COLUMNS, 'e.')},
       (SELECT COUNT(*) FROM deleted_locks) AS locks_removed
  FROM expired e
"""

WORK_QUEUE_COMPLETE_DIRECT = """
WITH updated AS (
    UPDATE public.work_queue w
       SET claimed_by = -1, claimed_at = NULL, heartbeated_at = NOW(),
           needs_run = FALSE, runnable_at = NOW(), tries = 0
     WHERE w.id = $2::BIGINT AND w.claimed_by = $1
    RETURNING id
)
DELETE FROM public.signal_locks sl USING updated u
 WHERE sl.work_id = u.id AND sl.claimed_by = $1
"""

WORK_QUEUE_FAIL_DIRECT = f"""
WITH params AS (
    SELECT NOW() AS v_now,
           {_setting('work_fail_requeue_ttl', 'interval')} AS requeue_ttl,
           {_setting('max_retries', 'int')} AS max_retries
), old AS (
    SELECT w.tries FROM public.work_queue w
     WHERE w.id = $1::BIGINT AND w.claimed_by = $2
), updated AS (
    UPDATE public.work_queue w
       SET claimed_by = -1,
           claimed_at = NULL,
           heartbeated_at = (SELECT v_now FROM params),
           tries = CASE WHEN o.tries IS NULL THEN 1 ELSE o.tries + 1 END,
           runnable_at = CASE
               WHEN o.tries + 1 <= (SELECT max_retries FROM params)
               THEN (SELECT v_now FROM params) + (SELECT requeue_ttl FROM params)
               ELSE w.runnable_at END,
           needs_run = CASE
               WHEN o.tries + 1 <= (SELECT max_retries FROM params) THEN TRUE
               ELSE FALSE END
      FROM old o
     WHERE w.id = $1::BIGINT AND w.claimed_by = $2
)
DELETE FROM public.signal_locks sl
 WHERE sl.work_id = $1::BIGINT AND sl.claimed_by = $2
"""

WORK_QUEUE_GLOBAL_LOCK = "SELECT pg_advisory_xact_lock(hashtext('work_queue_global')::bigint)"

WORK_QUEUE_HEARTBEAT_DIRECT = f"""
WITH params AS (
    SELECT NOW() AS v_now, {_setting('lock_ttl', 'interval')} AS lock_ttl
)
UPDATE public.work_queue w
   SET heartbeated_at = p.v_now
  FROM params p
 WHERE w.id = ANY($1::BIGINT[])
   AND w.claimed_by = $2
   AND w.heartbeated_at >= p.v_now - p.lock_ttl
"""

_ROLLUP_VALUES = ", ".join(f"({parent}, {child})" for parent, child in _ROLLUP_SOURCES)

WORK_QUEUE_CLAIM_DIRECT = f"""
WITH params AS (
    SELECT NOW() AS v_now, {_setting('lock_ttl', 'interval')} AS v_lock_ttl
), target_freqs AS (
    SELECT unnest($1::INTEGER[]) AS freq
), rollup_sources(parent_freq_ms, child_freq_ms) AS (
    VALUES {_ROLLUP_VALUES}
), sl_small AS MATERIALIZED (
    SELECT {_columns(_LOCK_COLUMNS)}
      FROM public.signal_locks sl
     WHERE sl.signal = $2
       AND sl.frequency_ms = ANY (
           ARRAY(SELECT freq FROM target_freqs)
           || COALESCE((SELECT array_agg(child_freq_ms) FROM rollup_sources
                         WHERE parent_freq_ms = ANY(SELECT freq FROM target_freqs)
                           AND $3::action_enum = 'rollup'), '{{}}'))
), candidate AS (
    SELECT {_columns(_WORK_COLUMNS, 'w.')}
      FROM public.work_queue w
      LEFT JOIN sl_small sl
        ON sl.organization_id = w.organization_id
       AND sl.instance_num = w.instance_num
       AND sl.signal = w.signal
       AND sl.ts_range && w.ts_range
       AND sl.work_id <> w.id
     WHERE w.frequency_ms = ANY (SELECT freq FROM target_freqs)
       AND w.priority >= $4 AND w.signal = $2 AND w.action = $3
       AND w.runnable_at <= (SELECT v_now FROM params)
       AND sl.id IS NULL AND w.needs_run
     ORDER BY w.needs_run DESC, w.priority DESC, w.runnable_at, w.id
     LIMIT 1
     FOR UPDATE SKIP LOCKED
), lock_map AS (
    SELECT c.frequency_ms AS lock_freq_ms FROM candidate c
    UNION ALL
    SELECT rs.child_freq_ms AS lock_freq_ms
      FROM candidate c JOIN rollup_sources rs ON c.frequency_ms = rs.parent_freq_ms
     WHERE $3 = 'rollup'
), cleanup_locks AS (
    DELETE FROM public.signal_locks sl USING candidate c WHERE sl.work_id = c.id
), new_locks AS (
    INSERT INTO public.signal_locks (organization_id, instance_num, dateint, frequency_ms,
                                     signal, claimed_by, claimed_at, ts_range, work_id)
    SELECT c.organization_id, c.instance_num, c.dateint, lm.lock_freq_ms, c.signal,
           $5, (SELECT v_now FROM params), c.ts_range, c.id
      FROM candidate c CROSS JOIN lock_map lm
     ORDER BY lm.lock_freq_ms
), updated AS (
    UPDATE public.work_queue w
       SET claimed_by = $5,
           claimed_at = (SELECT v_now FROM params),
           heartbeated_at = (SELECT v_now FROM params),
           needs_run = FALSE,
           tries = w.tries + 1
      FROM candidate c
     WHERE w.id = c.id
    RETURNING {_columns(_WORK_COLUMNS, 'w.')}
)
SELECT {_columns(_WORK_COLUMNS)} FROM updated
"""

SIGNAL_LOCK_CLEANUP = "SELECT public.signal_lock_cleanup() AS count"


@dataclass(frozen=True, slots=True)
class WorkQueueAddParams:
    org_id: uuid.UUID
    instance: int
    dateint: int
    frequency: int
    signal: SignalEnum
    action: ActionEnum
    ts_range: Range[datetime]
    runnable_at: datetime
    priority: int


@dataclass(frozen=True, slots=True)
class WorkQueueClaimRow:
    id: int
    priority: int
    runnable_at: datetime
    organization_id: uuid.UUID
    instance_num: int
    dateint: int
    frequency_ms: int
    signal: SignalEnum
    action: ActionEnum
    needs_run: bool
    tries: int
    ts_range: Range[datetime]
    claimed_by: int
    claimed_at: datetime | None
    heartbeated_at: datetime


@dataclass(frozen=True, slots=True)
class WorkQueueCleanupRow(WorkQueueClaimRow):
    locks_removed: int


@dataclass(frozen=True, slots=True)
class WorkQueueCompleteParams:
    worker_id: int
    id: int


@dataclass(frozen=True, slots=True)
class WorkQueueFailParams:
    id: int
    worker_id: int


@dataclass(frozen=True, slots=True)
class WorkQueueHeartbeatParams:
    ids: list[int]
    worker_id: int


@dataclass(frozen=True, slots=True)
class WorkQueueClaimParams:
    target_freqs: list[int]
    signal: SignalEnum
    action: ActionEnum
    min_priority: int
    worker_id: int


def _decode_enums(row: Sequence[Any]) -> tuple[Any, ...]:
    """Turn the signal and action columns of a work queue row into enums."""
    head, signal, action, tail = tuple(row[:7]), row[7], row[8], tuple(row[9:])
    return (*head, SignalEnum.from_db(signal), ActionEnum.from_db(action), *tail)


class WorkQueueQueries(QueriesBase):
    """Queries on the work_queue and signal_locks tables."""

    def work_queue_add_direct(self, arg: WorkQueueAddParams) -> None:
        self.db.exec(
            WORK_QUEUE_ADD_DIRECT,
            arg.org_id,
            arg.instance,
            arg.dateint,
            arg.frequency,
            arg.signal,
            arg.action,
            arg.ts_range,
            arg.runnable_at,
            arg.priority,
        )

    def work_queue_cleanup_direct(self) -> list[WorkQueueCleanupRow]:
        """Release items whose heartbeat is too old and drop their locks."""
        return [
            WorkQueueCleanupRow(*_decode_enums(row))
            for row in self.db.query(WORK_QUEUE_CLEANUP_DIRECT)
        ]

    def work_queue_complete_direct(self, arg: WorkQueueCompleteParams) -> None:
        self.db.exec(WORK_QUEUE_COMPLETE_DIRECT, arg.worker_id, arg.id)

    def work_queue_fail_direct(self, arg: WorkQueueFailParams) -> None:
        self.db.exec(WORK_QUEUE_FAIL_DIRECT, arg.id, arg.worker_id)

    def work_queue_global_lock(self) -> None:
        """Take the transaction-scoped advisory lock that serialises queue changes."""
        self.db.exec(WORK_QUEUE_GLOBAL_LOCK)

    def work_queue_heartbeat_direct(self, arg: WorkQueueHeartbeatParams) -> None:
        self.db.exec(WORK_QUEUE_HEARTBEAT_DIRECT, list(arg.ids), arg.worker_id)

    def work_queue_claim_direct(self, arg: WorkQueueClaimParams) -> WorkQueueClaimRow:
        """Claim the next runnable item; raises NoRowsError when there is none."""
        row = self.db.query_row(
            WORK_QUEUE_CLAIM_DIRECT,
            list(arg.target_freqs),
            arg.signal,
            arg.action,
            arg.min_priority,
            arg.worker_id,
        )
        return WorkQueueClaimRow(*_decode_enums(row))

    def signal_lock_cleanup(self) -> int:
        """Remove stale signal locks and return how many were removed."""
        row = self.db.query_row(SIGNAL_LOCK_CLEANUP)
        return int(row[0])