"""
Vidstream Relation Ledger — durable store of actor → target toggle relations.

A ledger is bound to one ``AsyncSession``; it never commits. The unique
constraint on (actor_id, target_id, kind) is what keeps two inserts for the
same tuple from both landing, and ``insert`` reports that case as an
explicit ``ConflictError`` rather than leaking the driver's IntegrityError.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.models.models import Relation, RelationKind

logger = logging.getLogger(__name__)


class RelationLedger:

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _match(actor_id: uuid.UUID, target_id: uuid.UUID, kind: RelationKind):
        return (
            Relation.actor_id == actor_id,
            Relation.target_id == target_id,
            Relation.kind == kind,
        )

    # ── Tuple operations ─────────────────────────────────────────────────

    async def exists(self, actor_id: uuid.UUID, target_id: uuid.UUID, kind: RelationKind) -> bool:
        found = await self.db.scalar(
            select(Relation.id).where(*self._match(actor_id, target_id, kind)).limit(1)
        )
        return found is not None

    async def insert(self, actor_id: uuid.UUID, target_id: uuid.UUID, kind: RelationKind) -> Relation:
        """Create the relation, or raise ``ConflictError`` if the tuple is taken.

        Runs in a SAVEPOINT so a rejected insert leaves the outer
        transaction usable for the follow-up delete.
        """
        relation = Relation(actor_id=actor_id, target_id=target_id, kind=kind)
        try:
            async with self.db.begin_nested():
                self.db.add(relation)
                await self.db.flush()
        except IntegrityError as e:
            raise ConflictError(
                "Relation already exists",
                actor_id=actor_id, target_id=target_id, kind=kind.value,
            ) from e
        return relation

    async def delete_if_exists(self, actor_id: uuid.UUID, target_id: uuid.UUID, kind: RelationKind) -> bool:
        result = await self.db.execute(
            delete(Relation)
            .where(*self._match(actor_id, target_id, kind))
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    # ── Read helpers ─────────────────────────────────────────────────────

    async def count_for_target(self, target_id: uuid.UUID, kind: RelationKind) -> int:
        total = await self.db.scalar(
            select(func.count(Relation.id)).where(
                Relation.target_id == target_id,
                Relation.kind == kind,
            )
        )
        return total or 0

    async def count_by_targets(self, target_ids: Iterable[uuid.UUID], kind: RelationKind) -> Dict[uuid.UUID, int]:
        """Relation counts per target in one grouped query. Absent targets map to nothing."""
        ids = list(target_ids)
        if not ids:
            return {}
        rows = await self.db.execute(
            select(Relation.target_id, func.count(Relation.id))
            .where(Relation.target_id.in_(ids), Relation.kind == kind)
            .group_by(Relation.target_id)
        )
        return {target_id: count for target_id, count in rows}
