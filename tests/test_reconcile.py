"""Tests for subscription-driven listing reconciliation."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.models.listing import BusinessListing
from app.models.subscription import SubscriptionStatus
from app.models.user import UserRole
from app.services.reconciliation import (
    apply_subscription_change,
    deactivate_listing_if_unentitled,
    reactivate_listing_if_entitled,
)
from app.workers import reconcile
from app.workers.reconcile import deactivate_expired_listings, reactivate_renewed_listings


async def _is_active(session, listing_id) -> bool:
    listing = await session.get(BusinessListing, listing_id, populate_existing=True)
    return listing.is_active


# ── Single-listing transitions ───────────────────────────────

@pytest.mark.asyncio
async def test_deactivate_only_when_unentitled(
    session, make_user, make_listing, subscribe, plan_id,
):
    paying = await make_user()
    lapsed = await make_user()
    await subscribe(paying)
    await subscribe(lapsed, SubscriptionStatus.CANCELED)
    kept = await make_listing(paying)
    dropped = await make_listing(lapsed)

    assert await deactivate_listing_if_unentitled(session, kept.id, paying.id, plan_id) is False
    assert await deactivate_listing_if_unentitled(session, dropped.id, lapsed.id, plan_id) is True
    # Already inactive: nothing to do
    assert await deactivate_listing_if_unentitled(session, dropped.id, lapsed.id, plan_id) is False

    assert await _is_active(session, kept.id) is True
    assert await _is_active(session, dropped.id) is False


@pytest.mark.asyncio
async def test_reactivate_skips_user_with_another_active_listing(
    session, make_user, make_listing, subscribe, plan_id,
):
    user = await make_user()
    await subscribe(user)
    await make_listing(user)
    dormant = await make_listing(user, is_active=False)

    assert await reactivate_listing_if_entitled(session, dormant.id, user.id, plan_id) is False
    assert await _is_active(session, dormant.id) is False


@pytest.mark.asyncio
async def test_reactivate_when_entitled(session, make_user, make_listing, subscribe, plan_id):
    user = await make_user()
    dormant = await make_listing(user, is_active=False)

    assert await reactivate_listing_if_entitled(session, dormant.id, user.id, plan_id) is False
    await subscribe(user, SubscriptionStatus.TRIALING)
    assert await reactivate_listing_if_entitled(session, dormant.id, user.id, plan_id) is True
    assert await _is_active(session, dormant.id) is True


@pytest.mark.asyncio
async def test_apply_subscription_change(session, make_user, make_listing, subscribe, plan_id):
    user = await make_user()
    listing = await make_listing(user)
    sub = await subscribe(user, SubscriptionStatus.PAST_DUE)

    assert await apply_subscription_change(session, user.id, plan_id) == {
        "activated": 0, "deactivated": 1,
    }
    assert await _is_active(session, listing.id) is False

    sub.status = SubscriptionStatus.ACTIVE
    session.add(sub)
    await session.commit()

    assert await apply_subscription_change(session, user.id, plan_id) == {
        "activated": 1, "deactivated": 0,
    }
    assert await _is_active(session, listing.id) is True


# ── Daily sweeps ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sweeps_skip_without_plan(test_session_factory, make_user, make_listing):
    listing = await make_listing(await make_user())

    with patch.object(reconcile, "async_session_factory", test_session_factory):
        result = await deactivate_expired_listings({})

    assert result == {"checked": 0, "deactivated": 0, "failed": 0}
    assert listing.is_active is True


@pytest.mark.asyncio
async def test_deactivation_sweep(
    session, test_session_factory, make_user, make_listing, subscribe, configure, plan_id,
):
    await configure(subscription_plan_id=plan_id)
    paying = await make_user()
    await subscribe(paying)
    kept = await make_listing(paying)
    expired = []
    for _ in range(3):
        expired.append(await make_listing(await make_user()))

    notify = AsyncMock()
    with patch.object(reconcile, "async_session_factory", test_session_factory), \
            patch.object(reconcile, "notify_user", notify):
        result = await deactivate_expired_listings({})

    assert result == {"checked": 4, "deactivated": 3, "failed": 0}
    assert await _is_active(session, kept.id) is True
    for listing in expired:
        assert await _is_active(session, listing.id) is False
    assert notify.await_count == 3

    # Idempotent: a second run finds nothing left to change
    with patch.object(reconcile, "async_session_factory", test_session_factory), \
            patch.object(reconcile, "notify_user", notify):
        result = await deactivate_expired_listings({})
    assert result == {"checked": 1, "deactivated": 0, "failed": 0}


@pytest.mark.asyncio
async def test_reactivation_sweep_activates_one_per_user(
    session, test_session_factory, make_user, make_listing, subscribe, configure, plan_id,
):
    await configure(subscription_plan_id=plan_id, send_reactivation_notifications=False)
    renewed = await make_user()
    await subscribe(renewed)
    first = await make_listing(renewed, is_active=False)
    second = await make_listing(renewed, is_active=False)
    unpaid = await make_listing(await make_user(), is_active=False)

    notify = AsyncMock()
    with patch.object(reconcile, "async_session_factory", test_session_factory), \
            patch.object(reconcile, "notify_user", notify):
        result = await reactivate_renewed_listings({})

    assert result == {"checked": 3, "reactivated": 1, "failed": 0}
    states = [await _is_active(session, first.id), await _is_active(session, second.id)]
    assert sorted(states) == [False, True]
    assert await _is_active(session, unpaid.id) is False
    notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_sweep_continues_after_a_failure(
    session, test_session_factory, make_user, make_listing, configure, plan_id,
):
    await configure(subscription_plan_id=plan_id)
    first = await make_listing(await make_user())
    second = await make_listing(await make_user())

    real = reconcile.deactivate_listing_if_unentitled
    calls = {"n": 0}

    async def flaky(session, listing_id, user_id, plan):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("database hiccup")
        return await real(session, listing_id, user_id, plan)

    with patch.object(reconcile, "async_session_factory", test_session_factory), \
            patch.object(reconcile, "deactivate_listing_if_unentitled", flaky), \
            patch.object(reconcile, "notify_user", AsyncMock()):
        result = await deactivate_expired_listings({})

    assert result == {"checked": 2, "deactivated": 1, "failed": 1}
    states = [await _is_active(session, first.id), await _is_active(session, second.id)]
    assert sorted(states) == [False, True]


# ── Admin subscription endpoint ──────────────────────────────

@pytest.mark.asyncio
async def test_subscription_endpoint_reconciles_immediately(
    client: AsyncClient, session, make_user, make_listing, headers_for, configure, plan_id,
):
    await configure(subscription_plan_id=plan_id)
    admin = await make_user(role=UserRole.ADMIN)
    member = await make_user()
    listing = await make_listing(member)

    resp = await client.put(
        f"/v1/admin/directory/subscriptions/{member.id}",
        json={"plan_id": plan_id, "status": "canceled"},
        headers=headers_for(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["deactivated"] == 1
    assert await _is_active(session, listing.id) is False

    resp = await client.put(
        f"/v1/admin/directory/subscriptions/{member.id}",
        json={"plan_id": plan_id, "status": "active"},
        headers=headers_for(admin),
    )
    assert resp.json()["activated"] == 1
    assert resp.json()["subscription"]["status"] == "active"
    assert await _is_active(session, listing.id) is True
