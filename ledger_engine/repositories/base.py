"""
Base repository.

Shared lookups and writes for the engine's tables. Repositories only
flush; committing belongs to the calling service.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository over a single mapped table.

    Example:
        class DepositRepository(BaseRepository[Deposit]):
            def __init__(self, session: AsyncSession):
                super().__init__(Deposit, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Get row by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_for_update(self, id: int) -> ModelType | None:
        """
        Get row by primary key with ``SELECT ... FOR UPDATE``.

        The lock is held until the surrounding transaction ends. Backends
        without row locks ignore the clause.
        """
        stmt = select(self.model).where(self.model.id == id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row and load server defaults.

        Raises:
            sqlalchemy.exc.IntegrityError: a constraint rejected the row
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, id: int, **data: Any) -> ModelType | None:
        """Set columns on a locked row; None when the row is gone."""
        entity = await self.get_for_update(id)
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def delete(self, id: int) -> bool:
        """Delete by primary key. Returns False when nothing matched."""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.session.flush()
        return result.rowcount > 0

    async def exists(self, **filters: Any) -> bool:
        """True when at least one row matches the column filters."""
        conditions = [
            getattr(self.model, column) == value for column, value in filters.items()
        ]
        stmt = select(exists().where(*conditions))
        result = await self.session.execute(stmt)
        return bool(result.scalar())
