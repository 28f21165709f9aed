"""Staff directory management: moderation, bulk actions, analytics, settings."""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlmodel import select

from app.api.deps import Session, Staff
from app.core.errors import NotFoundError
from app.models.directory_settings import DirectorySettingsRead, DirectorySettingsUpdate
from app.models.listing import AdminListingRead, AdminListingUpdate, BusinessListing
from app.models.subscription import Subscription, SubscriptionRead, SubscriptionUpsert
from app.models.user import User
from app.services import directory_stats
from app.services.allow_lists import load_directory_settings, update_directory_settings
from app.services.listing_query import (
    ADMIN_PAGE_SIZE,
    ListingFilters,
    VisibilityScope,
    distinct_values,
    query_listings,
)
from app.services.listings import (
    AdminAction,
    apply_admin_action,
    bulk_action,
    delete_listing,
    get_listing_or_404,
)
from app.services.presenters import load_owners, to_admin_read
from app.services.reconciliation import apply_subscription_change

router = APIRouter(prefix="/admin/directory", tags=["admin"])


# ── Schemas ──────────────────────────────────────────────────

class DashboardResponse(BaseModel):
    stats: dict[str, int]
    recent_listings: list[AdminListingRead]


class AdminPagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int


class AdminFacets(BaseModel):
    cities: list[str]
    categories: list[str]


class AdminListingsResponse(BaseModel):
    listings: list[AdminListingRead]
    pagination: AdminPagination
    filters: AdminFacets


class AdminUpdateRequest(BaseModel):
    action_type: AdminAction | None = None
    priority: int | None = None
    business_listing: AdminListingUpdate | None = None


class AdminMutationResponse(BaseModel):
    success: bool = True
    message: str
    listing: AdminListingRead | None = None


class BulkRequest(BaseModel):
    bulk_action: str
    listing_ids: list[uuid.UUID] = Field(default_factory=list)


class BulkResponse(BaseModel):
    success: bool = True
    message: str
    skipped: list[uuid.UUID] = Field(default_factory=list)


class AnalyticsResponse(BaseModel):
    listings_by_month: dict[str, int]
    listings_by_city: list[tuple[str, int]]
    listings_by_category: list[tuple[str, int]]
    most_viewed: list[AdminListingRead]


class SettingsResponse(BaseModel):
    settings: DirectorySettingsRead


class SettingsUpdateResponse(BaseModel):
    success: bool = True
    message: str
    settings: DirectorySettingsRead


class SubscriptionChangeResponse(BaseModel):
    subscription: SubscriptionRead
    activated: int
    deactivated: int


async def _admin_rows(session, listings) -> list[AdminListingRead]:
    owners = await load_owners(session, listings)
    return [to_admin_read(listing, owners.get(listing.user_id)) for listing in listings]


# ── Dashboard and listings ────────────────────────────────────

@router.get("", response_model=DashboardResponse)
async def dashboard(auth: Staff, session: Session) -> DashboardResponse:
    return DashboardResponse(
        stats=await directory_stats.overview_counts(session),
        recent_listings=await _admin_rows(session, await directory_stats.recent_listings(session)),
    )


@router.get("/listings", response_model=AdminListingsResponse)
async def list_listings(
    auth: Staff,
    session: Session,
    status: str | None = None,
    city: str | None = None,
    category: str | None = None,
    search: str | None = None,
    page: int = 1,
) -> AdminListingsResponse:
    """Every listing, optionally narrowed by status, city, category or search."""
    try:
        scope = VisibilityScope.admin_status(status)
    except ValueError:
        # Unknown status values are ignored, as with the other filters
        scope = VisibilityScope.admin_status(None)

    result = await query_listings(
        session,
        ListingFilters(city=city, category=category, search=search),
        scope=scope,
        page=page,
        page_size=ADMIN_PAGE_SIZE,
    )
    return AdminListingsResponse(
        listings=await _admin_rows(session, result.items),
        pagination=AdminPagination(
            current_page=result.current_page,
            total_pages=result.total_pages,
            total_count=result.total_count,
        ),
        filters=AdminFacets(
            cities=await distinct_values(session, BusinessListing.city, scope),
            categories=await distinct_values(session, BusinessListing.category, scope),
        ),
    )


@router.put("/listings/{listing_id}", response_model=AdminMutationResponse)
async def update_listing(
    listing_id: uuid.UUID,
    body: AdminUpdateRequest,
    auth: Staff,
    session: Session,
) -> AdminMutationResponse:
    listing = await get_listing_or_404(session, listing_id)
    listing, message = await apply_admin_action(
        session, listing, body.action_type, body.priority, body.business_listing,
    )
    rows = await _admin_rows(session, [listing])
    return AdminMutationResponse(message=message, listing=rows[0])


@router.delete("/listings/{listing_id}", response_model=AdminMutationResponse)
async def remove_listing(
    listing_id: uuid.UUID,
    auth: Staff,
    session: Session,
) -> AdminMutationResponse:
    listing = await get_listing_or_404(session, listing_id)
    await delete_listing(session, listing)
    return AdminMutationResponse(message="Listing deleted successfully")


@router.post("/listings/bulk", response_model=BulkResponse)
async def bulk(body: BulkRequest, auth: Staff, session: Session) -> BulkResponse:
    result = await bulk_action(session, body.bulk_action, body.listing_ids)
    return BulkResponse(message=result.message, skipped=result.skipped)


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(auth: Staff, session: Session) -> AnalyticsResponse:
    return AnalyticsResponse(
        listings_by_month=await directory_stats.counts_by_month(session),
        listings_by_city=await directory_stats.counts_by(session, BusinessListing.city),
        listings_by_category=await directory_stats.counts_by(session, BusinessListing.category),
        most_viewed=await _admin_rows(session, await directory_stats.most_viewed(session)),
    )


# ── Settings and subscriptions ────────────────────────────────

@router.get("/settings", response_model=SettingsResponse)
async def get_directory_settings(auth: Staff, session: Session) -> SettingsResponse:
    return SettingsResponse(settings=await load_directory_settings(session))


@router.put("/settings", response_model=SettingsUpdateResponse)
async def put_directory_settings(
    body: DirectorySettingsUpdate,
    auth: Staff,
    session: Session,
) -> SettingsUpdateResponse:
    settings = await update_directory_settings(session, body)
    return SettingsUpdateResponse(message="Settings updated successfully", settings=settings)


@router.put("/subscriptions/{user_id}", response_model=SubscriptionChangeResponse)
async def record_subscription(
    user_id: uuid.UUID,
    body: SubscriptionUpsert,
    auth: Staff,
    session: Session,
) -> SubscriptionChangeResponse:
    """Record a billing status change and reconcile the user's listings at once."""
    if await session.get(User, user_id) is None:
        raise NotFoundError()

    stmt = select(Subscription).where(
        Subscription.user_id == user_id,
        Subscription.plan_id == body.plan_id,
    )
    subscription = (await session.execute(stmt)).scalars().first()
    if subscription is None:
        subscription = Subscription(user_id=user_id, plan_id=body.plan_id, status=body.status)
    else:
        subscription.status = body.status
        subscription.touch()
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)

    config = await load_directory_settings(session)
    changes = await apply_subscription_change(session, user_id, config.subscription_plan_id)
    return SubscriptionChangeResponse(
        subscription=SubscriptionRead.model_validate(subscription),
        activated=changes["activated"],
        deactivated=changes["deactivated"],
    )
