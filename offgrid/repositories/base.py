"""
Base repository with common CRUD operations.
All repositories should extend this class for database access.
"""
from typing import Generic, TypeVar, Type, Optional, List, Any, Dict

from sqlalchemy import select, update, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from offgrid.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Provides generic database operations that can be reused across all repositories.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def create(self, **kwargs) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance

        Example:
            ```python
            profile = await profile_repo.create(id=user_id, display_name="Ada")
            ```
        """
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def get(self, id: str) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_many(
        self,
        ids: List[str],
        order_by: Optional[Any] = None
    ) -> List[ModelType]:
        """
        Get multiple records by IDs.

        Args:
            ids: List of record IDs
            order_by: Optional SQLAlchemy order_by clause

        Returns:
            List of model instances
        """
        if not ids:
            return []

        query = select(self.model).where(self.model.id.in_(ids))

        if order_by is not None:
            query = query.order_by(order_by)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, id: str, **kwargs) -> Optional[ModelType]:
        """
        Update a record by ID.

        Args:
            id: Record ID
            **kwargs: Fields to update

        Returns:
            Updated model instance or None if not found

        Example:
            ```python
            updated_msg = await message_repo.update(
                msg_id,
                content="Updated content",
                is_edited=True
            )
            ```
        """
        await self.db.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**kwargs)
        )
        await self.db.flush()
        instance = await self.get(id)
        if instance is not None:
            await self.db.refresh(instance)
        return instance

    async def delete(self, id: str) -> bool:
        """
        Delete a record by ID (hard delete).

        Args:
            id: Record ID

        Returns:
            True if deleted, False if not found
        """
        result = await self.db.execute(
            delete(self.model).where(self.model.id == id)
        )
        await self.db.flush()
        return result.rowcount > 0

    async def exists(self, id: str) -> bool:
        """
        Check if a record exists.

        Args:
            id: Record ID

        Returns:
            True if exists, False otherwise
        """
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(self.model.id == id)
        )
        count = result.scalar()
        return count > 0

    def _dialect_insert(self):
        """Dialect-specific INSERT construct supporting ON CONFLICT clauses."""
        dialect_name = self.db.bind.dialect.name
        if dialect_name == "postgresql":
            return postgresql.insert(self.model)
        if dialect_name == "sqlite":
            return sqlite.insert(self.model)
        raise NotImplementedError(f"ON CONFLICT inserts are not supported on {dialect_name}")

    async def insert_ignoring_conflicts(
        self,
        values: Dict[str, Any],
        index_elements: Optional[List[str]] = None
    ) -> bool:
        """
        Insert a row with ON CONFLICT DO NOTHING.

        A single statement, so concurrent callers racing on the same unique
        key end up with exactly one row and no error.

        Args:
            values: Column values for the new row
            index_elements: Conflict target columns (any unique constraint if None)

        Returns:
            True if a row was inserted, False if it already existed

        Example:
            ```python
            inserted = await conversation_repo.insert_ignoring_conflicts(
                {"id": new_id, "type": ConversationType.DIRECT, "direct_key": key},
                index_elements=["direct_key"]
            )
            ```
        """
        stmt = self._dialect_insert().values(**values).on_conflict_do_nothing(index_elements=index_elements)
        result = await self.db.execute(stmt)
        await self.db.flush()
        return result.rowcount > 0
