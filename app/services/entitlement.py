"""Entitlement oracle: does a user hold a qualifying subscription?"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.subscription import QUALIFYING_STATUSES, Subscription


async def user_has_qualifying_entitlement(
    session: AsyncSession, user_id: uuid.UUID, plan_id: str,
) -> bool:
    """True when the user subscribes to ``plan_id`` in a qualifying status.

    An empty ``plan_id`` means the directory is not subscription-gated, so
    every user qualifies.
    """
    if not plan_id:
        return True
    stmt = (
        select(Subscription.id)
        .where(
            Subscription.user_id == user_id,
            Subscription.plan_id == plan_id,
            Subscription.status.in_(list(QUALIFYING_STATUSES)),  # type: ignore[attr-defined]
        )
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None
