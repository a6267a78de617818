"""Schema Bootstrap — create tables directly from Base.metadata.

Invariants:
    - create_schema() is for local SQLite runs and tests; Postgres schemas come from alembic
"""

from sqlalchemy.ext.asyncio import AsyncEngine

from binary_network.db.base import Base


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables registered on Base.metadata."""
    import binary_network.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
