"""
Database setup.

Creates the schema (idempotent) and reconciles every doctor's rating and
review count from the reviews table.

    python -m app.scripts.setup_db [--drop] [--skip-reconcile]
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

import app.models  # noqa: F401
from app.core.database import Base
from app.services.rating import reconcile_doctor_ratings

logger = logging.getLogger(__name__)


async def setup_database(engine: AsyncEngine, drop: bool = False, reconcile: bool = True) -> int:
    """Create missing tables, then run one rating reconciliation sweep.

    Returns the number of doctors whose rating was refreshed.
    """
    async with engine.begin() as conn:
        if drop:
            logger.warning("Dropping all tables")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))

    if not reconcile:
        return 0

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as db:
        return await reconcile_doctor_ratings(db)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the Marrow schema and reconcile doctor ratings")
    parser.add_argument("--drop", action="store_true", help="Drop all tables first (destroys data)")
    parser.add_argument("--skip-reconcile", action="store_true", help="Do not recompute doctor ratings")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    from app.core.database import engine

    async def run() -> int:
        try:
            return await setup_database(engine, drop=args.drop, reconcile=not args.skip_reconcile)
        finally:
            await engine.dispose()

    try:
        refreshed = asyncio.run(run())
    except SQLAlchemyError as e:
        logger.error("Database setup failed: %s", e)
        return 1

    logger.info("Database setup completed, %d doctor ratings refreshed", refreshed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
