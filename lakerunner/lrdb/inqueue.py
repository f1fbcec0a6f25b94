"""Queries on the ingest queue and its journal."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from lakerunner.lrdb.db import QueriesBase
from lakerunner.lrdb.models import Inqueue

CLAIM_INQUEUE_WORK = """-- name: ClaimInqueueWork :one
UPDATE inqueue AS i
SET
  claimed_by = $1,
  claimed_at = NOW()
WHERE i.id = (
  SELECT ii.id
  FROM inqueue ii
  WHERE ii.claimed_at IS NULL
    AND ii.telemetry_type = $2
  ORDER BY ii.priority DESC, ii.queue_ts
  LIMIT 1
  FOR UPDATE SKIP LOCKED
)
RETURNING id, queue_ts, priority, organization_id, collector_name, instance_num, bucket, object_id, telemetry_type, tries, claimed_by, claimed_at
"""

CLEANUP_INQUEUE_WORK = """-- name: CleanupInqueueWork :exec
UPDATE inqueue
SET claimed_by = -1, claimed_at = NULL
WHERE claimed_at IS NOT NULL
  AND claimed_at < NOW() - INTERVAL '5 minutes'
"""

DELETE_INQUEUE_WORK = """-- name: DeleteInqueueWork :exec
DELETE FROM inqueue
WHERE
  id = $1
  AND claimed_by = $2
"""

PUT_INQUEUE_WORK = """-- name: PutInqueueWork :exec
INSERT INTO inqueue (organization_id, collector_name, instance_num, bucket, object_id, telemetry_type, priority)
VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

RELEASE_INQUEUE_WORK = """-- name: ReleaseInqueueWork :exec
UPDATE inqueue
SET
  claimed_by = -1,
  claimed_at = NULL,
  queue_ts = NOW() + INTERVAL '5 second',
  tries = tries + 1
WHERE
  id = $1
  AND claimed_by = $2
"""

TOUCH_INQUEUE_WORK = """-- name: TouchInqueueWork :exec
UPDATE inqueue
SET
  claimed_at = NOW()
WHERE
  id IN ($1::uuid[])
  AND claimed_by = $2
"""

INQUEUE_JOURNAL_DELETE = """-- name: InqueueJournalDelete :exec
DELETE FROM inqueue_journal
WHERE organization_id = $1
  AND bucket = $2
  AND object_id = $3
"""

INQUEUE_JOURNAL_UPSERT = """-- name: InqueueJournalUpsert :one
INSERT INTO inqueue_journal (organization_id, bucket, object_id)
VALUES ($1, $2, $3)
ON CONFLICT (organization_id, bucket, object_id)
  DO UPDATE SET updated_at = clock_timestamp()
RETURNING (updated_at = created_at) AS is_new
"""


@dataclass(frozen=True, slots=True)
class ClaimInqueueWorkParams:
    claimed_by: int
    telemetry_type: str


@dataclass(frozen=True, slots=True)
class DeleteInqueueWorkParams:
    id: uuid.UUID
    claimed_by: int


@dataclass(frozen=True, slots=True)
class PutInqueueWorkParams:
    organization_id: uuid.UUID
    collector_name: str
    instance_num: int
    bucket: str
    object_id: str
    telemetry_type: str
    priority: int


@dataclass(frozen=True, slots=True)
class ReleaseInqueueWorkParams:
    id: uuid.UUID
    claimed_by: int


@dataclass(frozen=True, slots=True)
class TouchInqueueWorkParams:
    ids: list[uuid.UUID]
    claimed_by: int


@dataclass(frozen=True, slots=True)
class InqueueJournalDeleteParams:
    organization_id: uuid.UUID
    bucket: str
    object_id: str


@dataclass(frozen=True, slots=True)
class InqueueJournalUpsertParams:
    organization_id: uuid.UUID
    bucket: str
    object_id: str


class InqueueQueries(QueriesBase):
    """Queries on the inqueue and inqueue_journal tables."""

    def claim_inqueue_work(self, arg: ClaimInqueueWorkParams) -> Inqueue:
        """Claim the next unclaimed item; raises NoRowsError when there is none."""
        row = self.db.query_row(CLAIM_INQUEUE_WORK, arg.claimed_by, arg.telemetry_type)
        return Inqueue(*row)

    def cleanup_inqueue_work(self) -> None:
        self.db.exec(CLEANUP_INQUEUE_WORK)

    def delete_inqueue_work(self, arg: DeleteInqueueWorkParams) -> None:
        self.db.exec(DELETE_INQUEUE_WORK, arg.id, arg.claimed_by)

    def put_inqueue_work(self, arg: PutInqueueWorkParams) -> None:
        self.db.exec(
            PUT_INQUEUE_WORK,
            arg.organization_id,
            arg.collector_name,
            arg.instance_num,
            arg.bucket,
            arg.object_id,
            arg.telemetry_type,
            arg.priority,
        )

    def release_inqueue_work(self, arg: ReleaseInqueueWorkParams) -> None:
        self.db.exec(RELEASE_INQUEUE_WORK, arg.id, arg.claimed_by)

    def touch_inqueue_work(self, arg: TouchInqueueWorkParams) -> None:
        self.db.exec(TOUCH_INQUEUE_WORK, list(arg.ids), arg.claimed_by)

    def inqueue_journal_delete(self, arg: InqueueJournalDeleteParams) -> None:
        self.db.exec(INQUEUE_JOURNAL_DELETE, arg.organization_id, arg.bucket, arg.object_id)

    def inqueue_journal_upsert(self, arg: InqueueJournalUpsertParams) -> bool:
        """Record an object in the journal; True if it was not there before."""
        row = self.db.query_row(
            INQUEUE_JOURNAL_UPSERT, arg.organization_id, arg.bucket, arg.object_id
        )
        return bool(row[0])