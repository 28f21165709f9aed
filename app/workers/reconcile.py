"""Daily jobs: align listing activation with subscription status."""

from __future__ import annotations

import logging
import uuid

from sqlmodel import select

from app.core.config import get_settings
from app.core.database import async_session_factory
from app.models.listing import BusinessListing
from app.services.allow_lists import load_directory_settings
from app.services.notifications import LISTING_EXPIRED, LISTING_REACTIVATED, notify_user
from app.services.reconciliation import (
    deactivate_listing_if_unentitled,
    reactivate_listing_if_entitled,
)
from app.services.slug_resolver import profile_path

logger = logging.getLogger(__name__)

BATCH_SIZE = 200


async def _next_batch(
    is_active: bool, after: uuid.UUID | None,
) -> list[tuple[uuid.UUID, uuid.UUID, str, str, str, str]]:
    """Keyset-paged slice of listings in the given activation state."""
    stmt = select(
        BusinessListing.id,
        BusinessListing.user_id,
        BusinessListing.business_name,
        BusinessListing.city,
        BusinessListing.category,
        BusinessListing.slug,
    ).where(BusinessListing.is_active == is_active)
    if after is not None:
        stmt = stmt.where(BusinessListing.id > after)
    stmt = stmt.order_by(BusinessListing.id.asc()).limit(BATCH_SIZE)  # type: ignore[union-attr]

    async with async_session_factory() as session:
        result = await session.execute(stmt)
        return [tuple(row) for row in result.all()]  # type: ignore[misc]


async def _sweep(ctx: dict, *, reactivate: bool) -> dict:
    verb = "reactivated" if reactivate else "deactivated"
    async with async_session_factory() as session:
        config = await load_directory_settings(session)

    if not config.enabled or not config.subscription_plan_id:
        logger.info("Listing sweep (%s) skipped: directory disabled or no plan", verb)
        return {"checked": 0, verb: 0, "failed": 0}

    transition = reactivate_listing_if_entitled if reactivate else deactivate_listing_if_unentitled
    notify = (
        config.send_reactivation_notifications if reactivate
        else config.send_expiry_notifications
    )
    base_url = get_settings().base_url

    checked = changed = failed = 0
    last_id: uuid.UUID | None = None
    while True:
        batch = await _next_batch(is_active=not reactivate, after=last_id)
        if not batch:
            break
        last_id = batch[-1][0]

        for listing_id, user_id, business_name, city, category, slug in batch:
            checked += 1
            try:
                async with async_session_factory() as session:
                    flipped = await transition(
                        session, listing_id, user_id, config.subscription_plan_id,
                    )
            except Exception:
                failed += 1
                logger.exception("Listing sweep (%s) failed for listing %s", verb, listing_id)
                continue

            if not flipped:
                continue
            changed += 1
            if notify:
                if reactivate:
                    await notify_user(user_id, LISTING_REACTIVATED, {
                        "business_name": business_name,
                        "listing_url": f"{base_url}{profile_path(city, category, slug)}",
                        "manage_url": f"{base_url}/my-business",
                    })
                else:
                    await notify_user(user_id, LISTING_EXPIRED, {
                        "business_name": business_name,
                        "renewal_url": f"{base_url}/s",
                    })

    logger.info("Listing sweep: %s %d of %d checked (%d failed)", verb, changed, checked, failed)
    return {"checked": checked, verb: changed, "failed": failed}


async def deactivate_expired_listings(ctx: dict) -> dict:
    """Cron job: deactivate listings whose owners lost their subscription."""
    return await _sweep(ctx, reactivate=False)


async def reactivate_renewed_listings(ctx: dict) -> dict:
    """Cron job: reactivate listings whose owners renewed their subscription."""
    return await _sweep(ctx, reactivate=True)
