"""GenerationRecord repository.

Provides data access methods for GenerationRecord entities.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from imagegen.models.generation_record import GenerationRecord


class GenerationRecordRepository:
    """Repository for GenerationRecord entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, record: GenerationRecord) -> GenerationRecord:
        """Persist new generation record to database.

        Args:
            record: GenerationRecord entity to persist

        Returns:
            Persisted record with generated ID
        """
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def get_by_id(self, record_id: int) -> GenerationRecord | None:
        """Retrieve generation record by ID.

        Args:
            record_id: Record's integer identifier

        Returns:
            GenerationRecord if found, None otherwise
        """
        result = await self.session.execute(
            select(GenerationRecord).where(GenerationRecord.id == record_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_newest_first(
        self, limit: int | None = None, offset: int = 0
    ) -> list[GenerationRecord]:
        """Retrieve generation records ordered by creation time (newest first).

        Records created within the same timestamp are ordered by ID descending.

        Args:
            limit: Maximum number of records to return (None for all)
            offset: Number of records to skip

        Returns:
            List of records, newest first
        """
        query = (
            select(GenerationRecord)
            .order_by(
                GenerationRecord.created_at.desc(),  # type: ignore[attr-defined]
                GenerationRecord.id.desc(),  # type: ignore[union-attr]
            )
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count all generation records."""
        result = await self.session.execute(select(func.count()).select_from(GenerationRecord))
        return result.scalar_one()

    async def update(self, record: GenerationRecord) -> GenerationRecord:
        """Persist changes made to a record (e.g. after a status transition).

        Args:
            record: GenerationRecord entity with modified fields

        Returns:
            Refreshed record
        """
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def delete(self, record_id: int) -> bool:
        """Delete generation record by ID.

        Args:
            record_id: Record's integer identifier

        Returns:
            True if a record was deleted, False if none matched
        """
        result = await self.session.execute(
            delete(GenerationRecord).where(GenerationRecord.id == record_id)  # type: ignore[arg-type]
        )
        return result.rowcount > 0
