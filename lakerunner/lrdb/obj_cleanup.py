"""Queries on the object cleanup queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from lakerunner.lrdb.db import QueriesBase

OBJECT_CLEANUP_ADD = """-- name: ObjectCleanupAdd :exec
INSERT INTO obj_cleanup (
  organization_id,
  instance_num,
  bucket_id,
  object_id
) VALUES (
  $1,
  $2,
  $3,
  $4
) ON CONFLICT (organization_id, instance_num, bucket_id, object_id) DO NOTHING
"""

OBJECT_CLEANUP_COMPLETE = """-- name: ObjectCleanupComplete :exec
DELETE FROM obj_cleanup WHERE id = $1
"""

OBJECT_CLEANUP_FAIL = """-- name: ObjectCleanupFail :exec
UPDATE obj_cleanup
SET tries = tries + 1
WHERE id = $1
"""

OBJECT_CLEANUP_GET = """-- name: ObjectCleanupGet :many
UPDATE obj_cleanup
SET delete_at = NOW() + INTERVAL '30 minutes'
WHERE id IN (
  SELECT id
  FROM obj_cleanup
  WHERE tries < 10
  ORDER BY delete_at DESC
  LIMIT 20
)
RETURNING
  id,
  organization_id,
  instance_num,
  bucket_id,
  object_id
"""


@dataclass(frozen=True, slots=True)
class ObjectCleanupAddParams:
    organization_id: uuid.UUID
    instance_num: int
    bucket_id: str
    object_id: str


@dataclass(frozen=True, slots=True)
class ObjectCleanupGetRow:
    id: uuid.UUID
    organization_id: uuid.UUID
    instance_num: int
    bucket_id: str
    object_id: str


class ObjCleanupQueries(QueriesBase):
    """Queries on the obj_cleanup table."""

    def object_cleanup_add(self, arg: ObjectCleanupAddParams) -> None:
        """Queue an object for deletion; queuing it twice is harmless."""
        self.db.exec(
            OBJECT_CLEANUP_ADD,
            arg.organization_id,
            arg.instance_num,
            arg.bucket_id,
            arg.object_id,
        )

    def object_cleanup_complete(self, cleanup_id: uuid.UUID) -> None:
        self.db.exec(OBJECT_CLEANUP_COMPLETE, cleanup_id)

    def object_cleanup_fail(self, cleanup_id: uuid.UUID) -> None:
        self.db.exec(OBJECT_CLEANUP_FAIL, cleanup_id)

    def object_cleanup_get(self) -> list[ObjectCleanupGetRow]:
        """Take up to 20 objects to delete, pushing their deadline back."""
        return [ObjectCleanupGetRow(*row) for row in self.db.query(OBJECT_CLEANUP_GET)]