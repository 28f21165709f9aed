"""Listing → response schema conversion."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.listing import (
    AdminListingRead,
    BusinessListing,
    ContactMethod,
    ListingDetail,
    ListingOwner,
    ListingRead,
    PackageRead,
    SocialLink,
)
from app.models.user import User
from app.services.slug_resolver import profile_path

CARD_IMAGE_LIMIT = 3


async def load_owners(
    session: AsyncSession, listings: Iterable[BusinessListing],
) -> dict[uuid.UUID, ListingOwner]:
    user_ids = {listing.user_id for listing in listings}
    if not user_ids:
        return {}
    result = await session.execute(
        select(User.id, User.username).where(User.id.in_(user_ids))  # type: ignore[attr-defined]
    )
    return {uid: ListingOwner(id=uid, username=name) for uid, name in result.all()}


def listing_url(listing: BusinessListing) -> str:
    return profile_path(listing.city, listing.category, listing.slug)


def social_links(listing: BusinessListing) -> list[SocialLink]:
    links = []
    if listing.website:
        links.append(SocialLink(platform="Website", url=listing.website, icon="globe"))
    if listing.instagram:
        links.append(SocialLink(platform="Instagram", url=listing.instagram, icon="fab-instagram"))
    if listing.facebook:
        links.append(SocialLink(platform="Facebook", url=listing.facebook, icon="fab-facebook"))
    if listing.tiktok:
        links.append(SocialLink(platform="TikTok", url=listing.tiktok, icon="fab-tiktok"))
    return links


def contact_methods(listing: BusinessListing) -> list[ContactMethod]:
    methods = []
    if listing.email:
        methods.append(
            ContactMethod(type="email", value=listing.email, label=f"Email {listing.business_name}")
        )
    if listing.phone:
        methods.append(
            ContactMethod(type="phone", value=listing.phone, label=f"Call {listing.business_name}")
        )
    if listing.website:
        methods.append(ContactMethod(type="website", value=listing.website, label="Visit Website"))
    return methods


def formatted_packages(listing: BusinessListing) -> list[PackageRead]:
    packages = []
    for package in listing.package_list:
        if not isinstance(package, dict):
            continue
        price = package.get("price")
        has_price = price not in (None, "")
        packages.append(
            PackageRead(
                name=package.get("name"),
                description=package.get("description"),
                price=float(price) if has_price else None,
                formatted_price=f"£{price}" if has_price else None,
            )
        )
    return packages


def to_read(listing: BusinessListing, owner: ListingOwner | None = None) -> ListingRead:
    return ListingRead(
        id=listing.id,
        business_name=listing.business_name,
        description=listing.description,
        city=listing.city,
        category=listing.category,
        slug=listing.slug,
        profile_url=listing_url(listing),
        website=listing.website,
        featured=listing.featured,
        image_urls=listing.image_list[:CARD_IMAGE_LIMIT],
        user=owner,
        created_at=listing.created_at,
        views_count=listing.views_count,
    )


def to_detail(listing: BusinessListing, owner: ListingOwner | None = None) -> ListingDetail:
    card = to_read(listing, owner).model_dump()
    card["image_urls"] = listing.image_list
    return ListingDetail(
        **card,
        instagram=listing.instagram,
        facebook=listing.facebook,
        tiktok=listing.tiktok,
        email=listing.email,
        phone=listing.phone,
        packages=formatted_packages(listing),
        social_links=social_links(listing),
        contact_methods=contact_methods(listing),
        is_active=listing.is_active,
        approved=listing.approved,
    )


def to_admin_read(listing: BusinessListing, owner: ListingOwner | None = None) -> AdminListingRead:
    return AdminListingRead(
        id=listing.id,
        business_name=listing.business_name,
        description=listing.description,
        city=listing.city,
        category=listing.category,
        slug=listing.slug,
        website=listing.website,
        email=listing.email,
        phone=listing.phone,
        is_active=listing.is_active,
        featured=listing.featured,
        approved=listing.approved,
        priority=listing.priority,
        views_count=listing.views_count,
        user=owner,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )
