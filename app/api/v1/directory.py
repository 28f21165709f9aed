"""Public directory pages: index, city/category landing pages, profiles, sitemap."""

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from app.api.deps import EnabledDirectory, Session
from app.core.config import get_settings
from app.core.errors import NotFoundError
from app.models.listing import ListingDetail, ListingRead
from app.services.allow_lists import allow_lists_from
from app.services.listing_query import (
    PUBLIC_VISIBLE,
    ListingFilters,
    ListingPage,
    find_by_slug,
    increment_views,
    query_listings,
    related_listings,
)
from app.services.presenters import load_owners, to_detail, to_read
from app.services.seo import (
    SeoMeta,
    SitemapEntry,
    build_sitemap_entries,
    category_page_meta,
    collection_schema,
    index_meta,
    profile_meta,
)
from app.services.slug_resolver import (
    category_page_path,
    city_category_slug,
    profile_path,
    resolve_city_category,
)

router = APIRouter(tags=["directory"])


# ── Schemas ──────────────────────────────────────────────────

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_more: bool


class Facets(BaseModel):
    cities: list[str]
    categories: list[str]


class DirectoryIndexResponse(BaseModel):
    listings: list[ListingRead]
    pagination: Pagination
    filters: Facets
    seo: SeoMeta


class CategoryPageResponse(BaseModel):
    city: str
    category: str
    listings: list[ListingRead]
    pagination: Pagination
    seo: SeoMeta
    schema_org: dict


class ProfileResponse(BaseModel):
    listing: ListingDetail
    related_listings: list[ListingRead]
    seo: SeoMeta


class SitemapResponse(BaseModel):
    base_url: str
    entries: list[SitemapEntry]


def _pagination(page: ListingPage) -> Pagination:
    return Pagination(
        current_page=page.current_page,
        total_pages=page.total_pages,
        total_count=page.total_count,
        has_more=page.has_more,
    )


async def _cards(session, listings) -> list[ListingRead]:
    owners = await load_owners(session, listings)
    return [to_read(listing, owners.get(listing.user_id)) for listing in listings]


# ── Routes ───────────────────────────────────────────────────

@router.get("/directory", response_model=DirectoryIndexResponse)
async def directory_index(
    config: EnabledDirectory,
    session: Session,
    city: str | None = None,
    category: str | None = None,
    search: str | None = None,
    page: int = 1,
) -> DirectoryIndexResponse:
    """Filterable, paginated list of every visible listing."""
    allow_lists = allow_lists_from(config)
    result = await query_listings(
        session,
        ListingFilters(city=city, category=category, search=search),
        scope=PUBLIC_VISIBLE,
        page=page,
    )
    settings = get_settings()

    return DirectoryIndexResponse(
        listings=await _cards(session, result.items),
        pagination=_pagination(result),
        filters=Facets(
            cities=allow_lists.sorted_cities,
            categories=allow_lists.sorted_categories,
        ),
        seo=index_meta(settings.site_name, f"{settings.base_url}/directory"),
    )


@router.get("/directory/{segment}", response_model=CategoryPageResponse)
async def city_category_page(
    segment: str,
    config: EnabledDirectory,
    session: Session,
    page: int = 1,
) -> CategoryPageResponse:
    """Landing page for ``{city}-{category}-photographers``."""
    allow_lists = allow_lists_from(config)
    city, category = resolve_city_category(segment, allow_lists.cities, allow_lists.categories)

    result = await query_listings(
        session,
        ListingFilters(city=city, category=category),
        scope=PUBLIC_VISIBLE,
        page=page,
    )
    settings = get_settings()
    canonical = f"{settings.base_url}{category_page_path(city, category)}"

    return CategoryPageResponse(
        city=city,
        category=category,
        listings=await _cards(session, result.items),
        pagination=_pagination(result),
        seo=category_page_meta(city, category, settings.site_name, canonical),
        schema_org=collection_schema(
            city, category, result.total_count, settings.base_url, settings.site_name,
        ),
    )


@router.get("/directory/{segment}/{slug}", response_model=ProfileResponse)
async def business_profile(
    segment: str,
    slug: str,
    request: Request,
    config: EnabledDirectory,
    session: Session,
):
    """A single visible listing with related listings from the same page.

    A request under a stale city/category segment is redirected to the
    canonical path without counting a view.
    """
    listing = await find_by_slug(session, slug, PUBLIC_VISIBLE)
    if listing is None:
        raise NotFoundError()

    expected = city_category_slug(listing.city, listing.category)
    if segment != expected:
        location = request.url_for("business_profile", segment=expected, slug=listing.slug)
        return RedirectResponse(str(location), status_code=status.HTTP_301_MOVED_PERMANENTLY)

    await increment_views(session, listing.id)

    related = await related_listings(session, listing)
    owners = await load_owners(session, [listing, *related])
    detail = to_detail(listing, owners.get(listing.user_id))
    # The in-memory row predates the UPDATE above
    detail.views_count = listing.views_count + 1

    settings = get_settings()
    canonical = f"{settings.base_url}{profile_path(listing.city, listing.category, listing.slug)}"
    return ProfileResponse(
        listing=detail,
        related_listings=[to_read(r, owners.get(r.user_id)) for r in related],
        seo=profile_meta(listing, canonical),
    )


@router.get("/directory-sitemap", response_model=SitemapResponse)
async def directory_sitemap(config: EnabledDirectory, session: Session) -> SitemapResponse:
    if not config.show_in_sitemap:
        raise NotFoundError()
    return SitemapResponse(
        base_url=get_settings().base_url,
        entries=await build_sitemap_entries(session),
    )
