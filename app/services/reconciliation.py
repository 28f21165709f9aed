"""Subscription-driven activation transitions for a single listing or user.

Each transition is one conditional UPDATE that re-checks the listing's
current state in its WHERE clause, so it is idempotent and safe to race
with user edits. The partial unique index on active listings has the final
word; a reactivation that loses that race is reported as "no change".
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import exists, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from app.models.base import utcnow
from app.models.listing import BusinessListing
from app.services.entitlement import user_has_qualifying_entitlement
from app.services.listings import is_active_conflict

logger = logging.getLogger(__name__)


async def deactivate_listing_if_unentitled(
    session: AsyncSession, listing_id: uuid.UUID, user_id: uuid.UUID, plan_id: str,
) -> bool:
    """Active → Inactive when the owner has lost entitlement. True if it flipped."""
    if await user_has_qualifying_entitlement(session, user_id, plan_id):
        return False
    stmt = (
        update(BusinessListing)
        .where(
            BusinessListing.id == listing_id,
            BusinessListing.is_active == True,  # noqa: E712
        )
        .values(is_active=False, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1


async def reactivate_listing_if_entitled(
    session: AsyncSession, listing_id: uuid.UUID, user_id: uuid.UUID, plan_id: str,
) -> bool:
    """Inactive → Active when entitlement is back and no other listing is active."""
    if not await user_has_qualifying_entitlement(session, user_id, plan_id):
        return False

    other = aliased(BusinessListing)
    other_active = exists(
        select(other.id).where(
            other.user_id == user_id,
            other.is_active == True,  # noqa: E712
            other.id != listing_id,
        )
    )
    stmt = (
        update(BusinessListing)
        .where(
            BusinessListing.id == listing_id,
            BusinessListing.is_active == False,  # noqa: E712
            ~other_active,
        )
        .values(is_active=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_active_conflict(exc):
            raise
        logger.info("Listing %s not reactivated: owner activated another listing", listing_id)
        return False
    return result.rowcount == 1


async def apply_subscription_change(
    session: AsyncSession, user_id: uuid.UUID, plan_id: str,
) -> dict:
    """Bring one user's listings in line with their current entitlement.

    Losing entitlement deactivates every active listing. Regaining it
    reactivates the most recently updated inactive listing, unless the user
    already has an active one.
    """
    stmt = (
        select(BusinessListing.id, BusinessListing.is_active)
        .where(BusinessListing.user_id == user_id)
        .order_by(BusinessListing.updated_at.desc())  # type: ignore[attr-defined]
    )
    rows = (await session.execute(stmt)).all()

    activated = deactivated = 0
    if await user_has_qualifying_entitlement(session, user_id, plan_id):
        if not any(is_active for _, is_active in rows):
            for listing_id, _ in rows:
                if await reactivate_listing_if_entitled(session, listing_id, user_id, plan_id):
                    activated += 1
                    break
    else:
        for listing_id, is_active in rows:
            if is_active and await deactivate_listing_if_unentitled(
                session, listing_id, user_id, plan_id,
            ):
                deactivated += 1

    logger.info(
        "Subscription change for user %s: %d activated, %d deactivated",
        user_id, activated, deactivated,
    )
    return {"activated": activated, "deactivated": deactivated}
