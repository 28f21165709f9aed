"""Tests for filtered, ranked, paginated listing reads."""

from datetime import datetime, timedelta

import pytest

from app.models.listing import BusinessListing, ListingStatus
from app.services.listing_query import (
    ADMIN_ALL,
    PUBLIC_VISIBLE,
    ListingFilters,
    VisibilityScope,
    city_category_combinations,
    distinct_values,
    find_by_slug,
    increment_views,
    query_listings,
    related_listings,
    total_pages_for,
)


@pytest.fixture
def listing_for_new_user(make_user, make_listing):
    """Each active listing needs its own owner."""

    async def _make(**overrides) -> BusinessListing:
        return await make_listing(await make_user(), **overrides)

    return _make


def test_total_pages_for():
    assert total_pages_for(0, 20) == 1
    assert total_pages_for(20, 20) == 1
    assert total_pages_for(21, 20) == 2


async def test_public_scope_hides_inactive_and_unapproved(session, listing_for_new_user):
    visible = await listing_for_new_user()
    await listing_for_new_user(is_active=False)
    await listing_for_new_user(approved=False)

    page = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE)
    assert [item.id for item in page.items] == [visible.id]
    assert page.total_count == 1


async def test_display_order(session, listing_for_new_user):
    base = datetime(2025, 1, 1)
    old_plain = await listing_for_new_user(created_at=base)
    new_plain = await listing_for_new_user(created_at=base + timedelta(days=2))
    high_priority = await listing_for_new_user(priority=5, created_at=base)
    featured = await listing_for_new_user(featured=True, created_at=base - timedelta(days=30))

    page = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE)
    assert [item.id for item in page.items] == [
        featured.id, high_priority.id, new_plain.id, old_plain.id,
    ]


async def test_filters_by_city_and_category(session, listing_for_new_user):
    match = await listing_for_new_user(city="Leeds", category="Portrait")
    await listing_for_new_user(city="Leeds", category="Wedding")
    await listing_for_new_user(city="London", category="Portrait")

    page = await query_listings(
        session, ListingFilters(city="Leeds", category="Portrait"), PUBLIC_VISIBLE,
    )
    assert [item.id for item in page.items] == [match.id]


async def test_search_is_case_insensitive_across_fields(session, listing_for_new_user):
    by_name = await listing_for_new_user(business_name="Golden Hour Studio")
    by_description = await listing_for_new_user(description="We love golden light")
    await listing_for_new_user(business_name="Other", description="Nothing here")

    page = await query_listings(session, ListingFilters(search="GOLDEN"), PUBLIC_VISIBLE)
    assert {item.id for item in page.items} == {by_name.id, by_description.id}


async def test_search_treats_wildcards_literally(session, listing_for_new_user):
    percent = await listing_for_new_user(business_name="100% Candid")
    await listing_for_new_user(business_name="Candid Moments")
    underscore = await listing_for_new_user(business_name="snap_shot")
    await listing_for_new_user(business_name="snapXshot")

    page = await query_listings(session, ListingFilters(search="%"), PUBLIC_VISIBLE)
    assert [item.id for item in page.items] == [percent.id]

    page = await query_listings(session, ListingFilters(search="p_s"), PUBLIC_VISIBLE)
    assert [item.id for item in page.items] == [underscore.id]


async def test_blank_search_is_ignored(session, listing_for_new_user):
    await listing_for_new_user()
    page = await query_listings(session, ListingFilters(search="   "), PUBLIC_VISIBLE)
    assert page.total_count == 1


async def test_pagination(session, listing_for_new_user):
    for _ in range(25):
        await listing_for_new_user()

    first = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE, page=1)
    second = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE, page=2)
    assert len(first.items) == 20
    assert len(second.items) == 5
    assert first.total_pages == second.total_pages == 2
    assert first.has_more is True
    assert second.has_more is False
    assert not {i.id for i in first.items} & {i.id for i in second.items}


async def test_page_is_clamped_and_past_end_is_empty(session, listing_for_new_user):
    await listing_for_new_user()

    clamped = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE, page=0)
    assert clamped.current_page == 1
    assert len(clamped.items) == 1

    past_end = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE, page=9)
    assert past_end.items == []
    assert past_end.total_count == 1
    assert past_end.has_more is False


async def test_admin_status_scopes(session, listing_for_new_user):
    active = await listing_for_new_user()
    inactive = await listing_for_new_user(is_active=False)
    featured = await listing_for_new_user(featured=True)
    pending = await listing_for_new_user(approved=False)

    async def ids(scope):
        page = await query_listings(session, ListingFilters(), scope, page_size=50)
        return {item.id for item in page.items}

    assert await ids(ADMIN_ALL) == {active.id, inactive.id, featured.id, pending.id}
    assert await ids(VisibilityScope.admin_status("inactive")) == {inactive.id}
    assert await ids(VisibilityScope.admin_status(ListingStatus.FEATURED)) == {featured.id}
    assert await ids(VisibilityScope.admin_status("pending")) == {pending.id}
    assert await ids(VisibilityScope.admin_status("active")) == {
        active.id, featured.id, pending.id,
    }
    assert VisibilityScope.admin_status("") is ADMIN_ALL
    with pytest.raises(ValueError):
        VisibilityScope.admin_status("archived")


async def test_related_listings(session, listing_for_new_user):
    subject = await listing_for_new_user(city="Leeds", category="Food")
    for _ in range(7):
        await listing_for_new_user(city="Leeds", category="Food")
    await listing_for_new_user(city="Leeds", category="Wedding")
    await listing_for_new_user(city="Leeds", category="Food", approved=False)

    related = await related_listings(session, subject)
    assert len(related) == 6
    assert subject.id not in {item.id for item in related}
    assert all(item.city == "Leeds" and item.category == "Food" for item in related)
    assert all(item.is_visible for item in related)


async def test_find_by_slug_respects_scope(session, listing_for_new_user):
    hidden = await listing_for_new_user(slug="hidden-studio", approved=False)

    assert await find_by_slug(session, "hidden-studio") is None
    found = await find_by_slug(session, "hidden-studio", ADMIN_ALL)
    assert found is not None and found.id == hidden.id


async def test_increment_views(session, listing_for_new_user):
    listing = await listing_for_new_user()

    await increment_views(session, listing.id)
    await increment_views(session, listing.id)

    refreshed = await session.get(BusinessListing, listing.id, populate_existing=True)
    assert refreshed.views_count == 2


async def test_distinct_values_and_combinations(session, listing_for_new_user):
    await listing_for_new_user(city="Leeds", category="Food")
    await listing_for_new_user(city="London", category="Food")
    await listing_for_new_user(city="Bristol", category="Wedding", is_active=False)

    assert await distinct_values(session, BusinessListing.city, ADMIN_ALL) == [
        "Bristol", "Leeds", "London",
    ]
    assert await distinct_values(session, BusinessListing.city, PUBLIC_VISIBLE) == [
        "Leeds", "London",
    ]
    assert await city_category_combinations(session) == [("Leeds", "Food"), ("London", "Food")]


async def test_oversized_page_is_empty(session, listing_for_new_user):
    await listing_for_new_user()

    page = await query_listings(session, ListingFilters(), PUBLIC_VISIBLE, page=10**19)
    assert page.items == []
    assert page.current_page == 10**19
    assert page.total_count == 1
    assert page.total_pages == 1
    assert page.has_more is False
