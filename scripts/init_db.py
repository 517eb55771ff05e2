"""Script to initialize the database without Alembic."""

import asyncio

from sqlalchemy import text

from app.config import settings
from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Create every table and index declared in app.models."""
    async with engine.begin() as conn:
        if not settings.is_sqlite:
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
