"""Filtered, ranked, paginated reads over business listings.

Every public read goes through ``PUBLIC_VISIBLE`` (active and approved);
staff reads may use ``ADMIN_ALL`` or narrow to a single status. Results are
always ordered featured first, then by priority, then newest, with the id as
a final tie-break so a page is stable across identical requests.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.listing import BusinessListing, ListingStatus

PUBLIC_PAGE_SIZE = 20
ADMIN_PAGE_SIZE = 50
RELATED_LIMIT = 6


@dataclass(frozen=True)
class VisibilityScope:
    """Which listings a query may see.

    ``status`` is None for the two unrestricted-by-status scopes.
    """

    public: bool
    status: ListingStatus | None = None

    @classmethod
    def admin_status(cls, status: ListingStatus | str | None) -> "VisibilityScope":
        if status is None or status == "":
            return ADMIN_ALL
        return cls(public=False, status=ListingStatus(status))


PUBLIC_VISIBLE = VisibilityScope(public=True)
ADMIN_ALL = VisibilityScope(public=False)


@dataclass
class ListingFilters:
    city: str | None = None
    category: str | None = None
    search: str | None = None
    exclude_ids: Sequence[uuid.UUID] = field(default_factory=tuple)


@dataclass
class ListingPage:
    items: list[BusinessListing]
    current_page: int
    total_pages: int
    total_count: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages


def scope_clauses(scope: VisibilityScope) -> list:
    if scope.public:
        return [
            BusinessListing.is_active == True,  # noqa: E712
            BusinessListing.approved == True,  # noqa: E712
        ]
    if scope.status == ListingStatus.ACTIVE:
        return [BusinessListing.is_active == True]  # noqa: E712
    if scope.status == ListingStatus.INACTIVE:
        return [BusinessListing.is_active == False]  # noqa: E712
    if scope.status == ListingStatus.FEATURED:
        return [BusinessListing.featured == True]  # noqa: E712
    if scope.status == ListingStatus.PENDING:
        return [BusinessListing.approved == False]  # noqa: E712
    return []


def _filter_clauses(filters: ListingFilters) -> list:
    clauses = []
    if filters.city:
        clauses.append(BusinessListing.city == filters.city)
    if filters.category:
        clauses.append(BusinessListing.category == filters.category)
    if filters.search:
        term = filters.search.strip()
        if term:
            clauses.append(
                or_(
                    BusinessListing.business_name.icontains(term, autoescape=True),  # type: ignore[attr-defined]
                    BusinessListing.description.icontains(term, autoescape=True),  # type: ignore[attr-defined]
                    BusinessListing.city.icontains(term, autoescape=True),  # type: ignore[attr-defined]
                    BusinessListing.category.icontains(term, autoescape=True),  # type: ignore[attr-defined]
                )
            )
    if filters.exclude_ids:
        clauses.append(BusinessListing.id.not_in(list(filters.exclude_ids)))  # type: ignore[union-attr]
    return clauses


DISPLAY_ORDER = (
    BusinessListing.featured.desc(),  # type: ignore[attr-defined]
    BusinessListing.priority.desc(),  # type: ignore[attr-defined]
    BusinessListing.created_at.desc(),  # type: ignore[attr-defined]
    BusinessListing.id.desc(),  # type: ignore[union-attr]
)


def total_pages_for(total_count: int, page_size: int) -> int:
    return max(1, math.ceil(total_count / page_size))


async def query_listings(
    session: AsyncSession,
    filters: ListingFilters,
    scope: VisibilityScope = PUBLIC_VISIBLE,
    page: int | None = 1,
    page_size: int = PUBLIC_PAGE_SIZE,
) -> ListingPage:
    """Return one page of listings matching ``filters`` within ``scope``.

    ``page`` is 1-based and clamped to at least 1. A page past the end comes
    back empty rather than raising.
    """
    current_page = max(page or 1, 1)
    clauses = scope_clauses(scope) + _filter_clauses(filters)

    count_stmt = select(func.count()).select_from(BusinessListing).where(*clauses)
    total_count = (await session.execute(count_stmt)).scalar_one()

    offset = (current_page - 1) * page_size
    items: list[BusinessListing] = []
    # Past the end: no select, so an oversized offset never reaches the driver
    if offset < total_count:
        stmt = (
            select(BusinessListing)
            .where(*clauses)
            .order_by(*DISPLAY_ORDER)
            .offset(offset)
            .limit(page_size)
        )
        items = list((await session.execute(stmt)).scalars().all())

    return ListingPage(
        items=items,
        current_page=current_page,
        total_pages=total_pages_for(total_count, page_size),
        total_count=total_count,
        page_size=page_size,
    )


async def related_listings(
    session: AsyncSession, listing: BusinessListing, limit: int = RELATED_LIMIT,
) -> list[BusinessListing]:
    """Visible listings in the same city and category, excluding ``listing``."""
    page = await query_listings(
        session,
        ListingFilters(
            city=listing.city,
            category=listing.category,
            exclude_ids=(listing.id,),
        ),
        scope=PUBLIC_VISIBLE,
        page=1,
        page_size=limit,
    )
    return page.items


async def find_by_slug(
    session: AsyncSession, slug: str, scope: VisibilityScope = PUBLIC_VISIBLE,
) -> BusinessListing | None:
    stmt = select(BusinessListing).where(
        BusinessListing.slug == slug, *scope_clauses(scope),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def increment_views(session: AsyncSession, listing_id: uuid.UUID) -> None:
    """Atomically bump the view counter in a single UPDATE statement."""
    stmt = (
        update(BusinessListing)
        .where(BusinessListing.id == listing_id)
        .values(views_count=BusinessListing.views_count + 1)
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)
    await session.commit()


async def distinct_values(session: AsyncSession, column, scope: VisibilityScope) -> list[str]:
    stmt = select(column).where(*scope_clauses(scope)).distinct()
    result = await session.execute(stmt)
    return sorted(v for v in result.scalars().all() if v)


async def city_category_combinations(session: AsyncSession) -> list[tuple[str, str]]:
    """Distinct (city, category) pairs among visible listings."""
    stmt = (
        select(BusinessListing.city, BusinessListing.category)
        .where(*scope_clauses(PUBLIC_VISIBLE))
        .distinct()
    )
    result = await session.execute(stmt)
    return sorted((city, category) for city, category in result.all())
