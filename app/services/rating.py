"""Doctor rating aggregation.

``Doctor.rating`` and ``Doctor.review_count`` are derived from the reviews
table. Every review mutation calls :func:`refresh_doctor_ratings` with the
affected doctor ids once the review write is committed, and a periodic
sweep (:func:`rating_reconciliation`) recomputes every doctor to heal any
recompute that failed or was skipped.

A doctor with no reviews is stored as ``rating = 0.0`` and
``review_count = 0``. The average is stored unrounded.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.review import Review
from app.models.user import Doctor

logger = logging.getLogger(__name__)

EMPTY_RATING = 0.0


@dataclass(frozen=True)
class RatingAggregate:
    doctor_id: uuid.UUID
    rating: float
    review_count: int


async def _read_aggregate(db: AsyncSession, doctor_id: uuid.UUID) -> tuple[float, int]:
    # Count and average come from the same statement, so they describe one snapshot.
    row = (
        await db.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(Review.doctor_id == doctor_id)
        )
    ).one()
    count, average = row
    if not count:
        return EMPTY_RATING, 0
    return float(average), int(count)


async def _write_aggregate(db: AsyncSession, doctor_id: uuid.UUID, rating: float, review_count: int) -> bool:
    result = await db.execute(
        update(Doctor)
        .where(Doctor.id == doctor_id)
        .values(rating=rating, review_count=review_count)
    )
    return result.rowcount > 0


async def recompute_doctor_rating(db: AsyncSession, doctor_id: uuid.UUID) -> RatingAggregate | None:
    """Recompute one doctor's rating and review count from all of their reviews.

    Both fields are written by a single UPDATE, so they change together or
    not at all. Returns ``None`` when the doctor no longer exists; no row is
    created in that case. Storage errors propagate. The caller owns the
    transaction and must commit.
    """
    rating, review_count = await _read_aggregate(db, doctor_id)
    if not await _write_aggregate(db, doctor_id, rating, review_count):
        logger.debug("Doctor %s not found, rating recompute skipped", doctor_id)
        return None
    return RatingAggregate(doctor_id=doctor_id, rating=rating, review_count=review_count)


def affected_doctor_ids(old_doctor_id: uuid.UUID | None, new_doctor_id: uuid.UUID | None) -> list[uuid.UUID]:
    """Doctors whose aggregate a review mutation touches.

    Moving a review between doctors affects both of them.
    """
    ids = []
    for doctor_id in (old_doctor_id, new_doctor_id):
        if doctor_id is not None and doctor_id not in ids:
            ids.append(doctor_id)
    return ids


async def refresh_doctor_ratings(
    db: AsyncSession,
    *doctor_ids: uuid.UUID,
    attempts: int | None = None,
) -> list[uuid.UUID]:
    """Recompute and commit the aggregate of each doctor, retrying storage and connection errors.

    Called after a review write has already been committed, so a failure here
    never undoes the review: it is logged and left for the reconciliation
    sweep. Returns the doctor ids that could not be refreshed.
    """
    if attempts is None:
        attempts = settings.RATING_RECOMPUTE_ATTEMPTS
    failed = []
    for doctor_id in dict.fromkeys(d for d in doctor_ids if d is not None):
        for attempt in range(1, attempts + 1):
            try:
                await recompute_doctor_rating(db, doctor_id)
                await db.commit()
                break
            except (SQLAlchemyError, OSError) as e:
                await db.rollback()
                logger.warning(
                    "Rating recompute for doctor %s failed (attempt %d/%d): %s",
                    doctor_id, attempt, attempts, e,
                )
        else:
            logger.error("Giving up on rating recompute for doctor %s; the next sweep will reconcile it", doctor_id)
            failed.append(doctor_id)
    return failed


async def reconcile_doctor_ratings(db: AsyncSession) -> int:
    """Recompute every doctor. Returns the number of doctors refreshed."""
    doctor_ids = (await db.execute(select(Doctor.id))).scalars().all()
    failed = await refresh_doctor_ratings(db, *doctor_ids)
    refreshed = len(doctor_ids) - len(failed)
    logger.info("Rating reconciliation: %d doctors refreshed, %d failed", refreshed, len(failed))
    return refreshed


async def rating_reconciliation():
    """Background task: periodically reconcile every doctor's rating."""
    from app.core.database import async_session

    while True:
        try:
            async with async_session() as db:
                await reconcile_doctor_ratings(db)
        except Exception:
            logger.exception("Rating reconciliation failed")

        await asyncio.sleep(settings.RATING_RECONCILE_INTERVAL_SECONDS)
