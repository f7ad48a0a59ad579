"""Script to initialize the database without running migrations."""

import asyncio

from carebook.database import engine
from carebook.models import metadata


async def init_db() -> None:
    """Create every table the booking engine needs."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
