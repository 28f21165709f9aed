"""Page titles, descriptions, schema.org data and sitemap entries."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core import cache
from app.models.listing import BusinessListing
from app.services.listing_query import PUBLIC_VISIBLE, scope_clauses
from app.services.slug_resolver import DIRECTORY_ROOT, category_page_path, profile_path

SITEMAP_CACHE_KEY = ("directory", "sitemap")
SITEMAP_TTL = 3600
DESCRIPTION_LENGTH = 160


class SeoMeta(BaseModel):
    title: str
    description: str
    canonical_url: str | None = None


class SitemapEntry(BaseModel):
    url: str
    priority: float
    changefreq: str
    lastmod: datetime | None = None


def truncate(text: str, length: int = DESCRIPTION_LENGTH, omission: str = "...") -> str:
    """Cut ``text`` so that, with the omission marker, it fits in ``length``."""
    if len(text) <= length:
        return text
    return text[: length - len(omission)] + omission


def index_meta(site_name: str, canonical_url: str | None = None) -> SeoMeta:
    return SeoMeta(
        title=f"UK Photography Directory | {site_name}",
        description=(
            "Find professional photographers across the UK. Browse portfolios, "
            "compare services, and connect with local photography experts."
        ),
        canonical_url=canonical_url,
    )


def category_page_meta(
    city: str, category: str, site_name: str, canonical_url: str | None = None,
) -> SeoMeta:
    return SeoMeta(
        title=f"{city} {category}s | {site_name}",
        description=(
            f"Find the best {category.lower()}s in {city}. Browse portfolios, compare "
            "packages, and contact local photography professionals."
        ),
        canonical_url=canonical_url,
    )


def profile_meta(listing: BusinessListing, canonical_url: str | None = None) -> SeoMeta:
    return SeoMeta(
        title=f"{listing.business_name} - {listing.category} in {listing.city}",
        description=truncate(listing.description),
        canonical_url=canonical_url,
    )


def collection_schema(
    city: str, category: str, listings_count: int, base_url: str, site_name: str,
) -> dict:
    """schema.org CollectionPage for a city/category landing page."""
    return {
        "@context": "https://schema.org",
        "@type": "CollectionPage",
        "name": f"{city} {category}s",
        "description": f"Directory of professional {category.lower()}s in {city}",
        "url": f"{base_url}{category_page_path(city, category)}",
        "numberOfItems": listings_count,
        "provider": {"@type": "Organization", "name": site_name, "url": base_url},
        "geo": {
            "@type": "Place",
            "name": city,
            "addressLocality": city,
            "addressCountry": "GB",
        },
    }


async def build_sitemap_entries(session: AsyncSession) -> list[SitemapEntry]:
    """Directory root, every visible city/category page, every visible profile."""
    cached = cache.get(SITEMAP_CACHE_KEY, ttl=SITEMAP_TTL)
    if cached is not None:
        return cached

    newest = (
        await session.execute(select(func.max(BusinessListing.updated_at)))
    ).scalar_one_or_none()
    entries = [
        SitemapEntry(url=DIRECTORY_ROOT, priority=0.8, changefreq="weekly", lastmod=newest),
    ]

    pages = await session.execute(
        select(
            BusinessListing.city,
            BusinessListing.category,
            func.max(BusinessListing.updated_at),
        )
        .where(*scope_clauses(PUBLIC_VISIBLE))
        .group_by(BusinessListing.city, BusinessListing.category)
        .order_by(BusinessListing.city, BusinessListing.category)
    )
    for city, category, lastmod in pages.all():
        entries.append(
            SitemapEntry(
                url=category_page_path(city, category),
                priority=0.7,
                changefreq="weekly",
                lastmod=lastmod,
            )
        )

    profiles = await session.execute(
        select(
            BusinessListing.city,
            BusinessListing.category,
            BusinessListing.slug,
            BusinessListing.updated_at,
        )
        .where(*scope_clauses(PUBLIC_VISIBLE))
        .order_by(BusinessListing.slug)
    )
    for city, category, slug, updated_at in profiles.all():
        entries.append(
            SitemapEntry(
                url=profile_path(city, category, slug),
                priority=0.6,
                changefreq="monthly",
                lastmod=updated_at,
            )
        )

    cache.put(SITEMAP_CACHE_KEY, entries)
    return entries
