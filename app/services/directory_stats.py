"""Aggregate counts for the staff dashboard and analytics views."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.base import utcnow
from app.models.listing import BusinessListing

RECENT_DAYS = 7
RECENT_LIMIT = 10
TOP_GROUPS = 20
MOST_VIEWED_LIMIT = 10


async def _count(session: AsyncSession, *clauses) -> int:
    stmt = select(func.count()).select_from(BusinessListing).where(*clauses)
    return (await session.execute(stmt)).scalar_one()


async def overview_counts(session: AsyncSession) -> dict[str, int]:
    since = utcnow() - timedelta(days=RECENT_DAYS)
    return {
        "total_listings": await _count(session),
        "active_listings": await _count(session, BusinessListing.is_active == True),  # noqa: E712
        "inactive_listings": await _count(session, BusinessListing.is_active == False),  # noqa: E712
        "featured_listings": await _count(session, BusinessListing.featured == True),  # noqa: E712
        "pending_approval": await _count(session, BusinessListing.approved == False),  # noqa: E712
        "recent_signups": await _count(session, BusinessListing.created_at > since),
    }


async def recent_listings(session: AsyncSession) -> list[BusinessListing]:
    stmt = (
        select(BusinessListing)
        .order_by(BusinessListing.created_at.desc())  # type: ignore[attr-defined]
        .limit(RECENT_LIMIT)
    )
    return list((await session.execute(stmt)).scalars().all())


async def counts_by(session: AsyncSession, column) -> list[tuple[str, int]]:
    """Top groups by listing count, largest first."""
    total = func.count().label("total")
    stmt = (
        select(column, total)
        .group_by(column)
        .order_by(total.desc(), column)
        .limit(TOP_GROUPS)
    )
    return [(value, count) for value, count in (await session.execute(stmt)).all()]


async def most_viewed(session: AsyncSession) -> list[BusinessListing]:
    stmt = (
        select(BusinessListing)
        .where(
            BusinessListing.is_active == True,  # noqa: E712
            BusinessListing.approved == True,  # noqa: E712
        )
        .order_by(BusinessListing.views_count.desc())  # type: ignore[attr-defined]
        .limit(MOST_VIEWED_LIMIT)
    )
    return list((await session.execute(stmt)).scalars().all())


async def counts_by_month(session: AsyncSession, months: int = 12) -> dict[str, int]:
    """Listings created per calendar month, oldest first, zero-filled."""
    now = utcnow()
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    keys.reverse()

    first_year, first_month = (int(part) for part in keys[0].split("-"))
    since = now.replace(year=first_year, month=first_month, day=1, hour=0, minute=0,
                        second=0, microsecond=0)
    stmt = select(BusinessListing.created_at).where(BusinessListing.created_at >= since)
    counts = dict.fromkeys(keys, 0)
    for created_at in (await session.execute(stmt)).scalars().all():
        key = f"{created_at.year:04d}-{created_at.month:02d}"
        if key in counts:
            counts[key] += 1
    return counts
