"""
Shared repository plumbing.

A repository wraps the request's async SQLModel session for one table.
``add`` only stages a row so a service can group several writes (ledger
entries, pool moves, spins) into one commit; ``save`` and ``delete`` commit
straight away.
"""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Optional, Type, TypeVar

from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

EntityType = TypeVar("EntityType", bound=SQLModel)


class AsyncBaseRepository(Generic[EntityType]):
    """Primary-key access and persistence for one SQLModel table."""

    def __init__(self, session: AsyncSession, model: Type[EntityType]) -> None:
        self.session = session
        self.model = model

    def add(self, entity: EntityType) -> EntityType:
        """Stage ``entity`` in the current unit of work."""
        self.session.add(entity)
        return entity

    async def save(self, entity: EntityType) -> EntityType:
        """Insert or update ``entity``, commit, and reload server-side defaults."""
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str | int) -> Optional[EntityType]:
        return await self.session.get(self.model, entity_id)

    async def get_many(self, entity_ids: Iterable[str]) -> Dict[str, EntityType]:
        """Rows keyed by id; missing ids are left out."""
        ids = list(set(entity_ids))
        if not ids:
            return {}
        primary_key = getattr(self.model, "id")
        result = await self.session.exec(select(self.model).where(col(primary_key).in_(ids)))
        return {entity.id: entity for entity in result.all()}

    async def delete(self, entity_id: str | int) -> bool:
        """Delete by primary key; False when no row matched."""
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.commit()
        return True
