"""Listing lifecycle: create, edit, moderate, delete.

The one-active-listing-per-user rule is enforced by a partial unique index.
Writes that may collide with it commit and translate the resulting
IntegrityError; nothing here pre-checks the rule before writing.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import (
    FieldError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from app.models.base import utcnow
from app.models.directory_settings import DirectorySettingsRead
from app.models.listing import (
    ACTIVE_LISTING_INDEX,
    AdminListingUpdate,
    BusinessListing,
    ListingCreate,
    ListingUpdate,
)
from app.services.allow_lists import allow_lists_from, load_directory_settings
from app.services.entitlement import user_has_qualifying_entitlement
from app.services.listing_validation import normalize_listing, validate_listing

logger = logging.getLogger(__name__)

ACTIVE_CONFLICT_MESSAGE = "can only have one active business listing"

_SLUG_DROP = re.compile(r"[^a-z0-9\s]")
_SLUG_SPACES = re.compile(r"\s+")
_NUMBERED_SUFFIXES = 9

# Admin-editable columns that are NOT NULL in the table
NON_NULL_FLAGS = ("is_active", "featured", "approved", "priority")


class AdminAction(StrEnum):
    APPROVE = "approve"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    UPDATE_PRIORITY = "update_priority"


class BulkAction(StrEnum):
    APPROVE = "approve"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DELETE = "delete"


_BULK_FLAGS: dict[BulkAction, dict[str, bool]] = {
    BulkAction.APPROVE: {"approved": True},
    BulkAction.FEATURE: {"featured": True},
    BulkAction.UNFEATURE: {"featured": False},
    BulkAction.DEACTIVATE: {"is_active": False},
}

_BULK_VERBS: dict[BulkAction, str] = {
    BulkAction.APPROVE: "approved",
    BulkAction.FEATURE: "featured",
    BulkAction.UNFEATURE: "unfeatured",
    BulkAction.ACTIVATE: "activated",
    BulkAction.DEACTIVATE: "deactivated",
    BulkAction.DELETE: "deleted",
}


@dataclass
class BulkResult:
    action: BulkAction
    affected: int
    skipped: list[uuid.UUID] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"{self.affected} listings {_BULK_VERBS[self.action]}"


# ── Slugs ─────────────────────────────────────────────────────


def slug_base(business_name: str) -> str:
    base = _SLUG_SPACES.sub("-", _SLUG_DROP.sub("", business_name.lower()).strip())
    return base or "listing"


async def _slug_taken(session: AsyncSession, slug: str) -> bool:
    result = await session.execute(
        select(BusinessListing.id).where(BusinessListing.slug == slug).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def generate_slug(session: AsyncSession, business_name: str) -> str:
    """Unique slug: the name, then ``-1``..``-9``, then a random hex suffix."""
    base = slug_base(business_name)
    candidate = base
    counter = 1
    while await _slug_taken(session, candidate):
        if counter <= _NUMBERED_SUFFIXES:
            candidate = f"{base}-{counter}"
        else:
            candidate = f"{base}-{secrets.token_hex(2)}"
        counter += 1
    return candidate


# ── Persistence helpers ───────────────────────────────────────


def is_active_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return ACTIVE_LISTING_INDEX in message or "business_listings.user_id" in message


def _conflict_error() -> ValidationFailedError:
    return ValidationFailedError.single("user_id", ACTIVE_CONFLICT_MESSAGE)


async def _commit(session: AsyncSession, listing: BusinessListing) -> BusinessListing:
    session.add(listing)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_active_conflict(exc):
            raise _conflict_error() from exc
        if "slug" in str(exc.orig):
            raise ValidationFailedError.single("slug", "has already been taken") from exc
        raise
    await session.refresh(listing)
    return listing


async def save_listing(
    session: AsyncSession,
    listing: BusinessListing,
    config: DirectorySettingsRead | None = None,
) -> BusinessListing:
    """Normalise, validate against the current allow-lists, then commit."""
    if config is None:
        config = await load_directory_settings(session)
    normalize_listing(listing)
    errors = validate_listing(listing, allow_lists_from(config), config.max_images)
    if errors:
        raise ValidationFailedError(errors)
    listing.touch()
    return await _commit(session, listing)


def _apply_changes(listing: BusinessListing, changes: dict) -> None:
    if "images" in changes:
        changes["images"] = json.dumps(changes["images"] or [])
    if "packages" in changes:
        changes["packages"] = json.dumps(changes["packages"] or [])
    for name, value in changes.items():
        setattr(listing, name, value)


# ── Lookups and permissions ───────────────────────────────────


async def get_listing_or_404(session: AsyncSession, listing_id: uuid.UUID) -> BusinessListing:
    listing = await session.get(BusinessListing, listing_id)
    if listing is None:
        raise NotFoundError()
    return listing


def ensure_can_manage(listing: BusinessListing, user_id: uuid.UUID, is_staff: bool) -> None:
    if listing.user_id != user_id and not is_staff:
        raise UnauthorizedError()


async def active_listing_for(session: AsyncSession, user_id: uuid.UUID) -> BusinessListing | None:
    stmt = select(BusinessListing).where(
        BusinessListing.user_id == user_id,
        BusinessListing.is_active == True,  # noqa: E712
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def can_create_listing(
    session: AsyncSession, user_id: uuid.UUID, config: DirectorySettingsRead,
) -> bool:
    if not config.enabled:
        return False
    return await user_has_qualifying_entitlement(session, user_id, config.subscription_plan_id)


# ── Owner operations ──────────────────────────────────────────


async def create_listing(
    session: AsyncSession, user_id: uuid.UUID, body: ListingCreate,
) -> BusinessListing:
    config = await load_directory_settings(session)
    if not await can_create_listing(session, user_id, config):
        raise ForbiddenError()

    data = body.model_dump()
    listing = BusinessListing(
        user_id=user_id,
        business_name=data["business_name"],
        description=data["description"],
        city=data["city"],
        category=data["category"],
        website=data["website"],
        instagram=data["instagram"],
        facebook=data["facebook"],
        tiktok=data["tiktok"],
        email=data["email"],
        phone=data["phone"],
        images=json.dumps(data["images"]),
        packages=json.dumps(data["packages"]),
        approved=config.auto_approve,
        is_active=True,
        slug="",
    )
    if listing.business_name.strip():
        listing.slug = await generate_slug(session, listing.business_name)

    listing = await save_listing(session, listing, config)
    logger.info("Listing %s created by user %s", listing.slug, user_id)
    return listing


async def update_listing(
    session: AsyncSession,
    listing: BusinessListing,
    body: ListingUpdate,
) -> BusinessListing:
    # Loaded before any attribute changes so the read cannot autoflush them
    config = await load_directory_settings(session)
    _apply_changes(listing, body.model_dump(exclude_unset=True))
    return await save_listing(session, listing, config)


async def delete_listing(session: AsyncSession, listing: BusinessListing) -> None:
    await session.delete(listing)
    await session.commit()
    logger.info("Listing %s deleted", listing.slug)


# ── Staff operations ──────────────────────────────────────────


async def apply_admin_action(
    session: AsyncSession,
    listing: BusinessListing,
    action: AdminAction | None,
    priority: int | None = None,
    changes: AdminListingUpdate | None = None,
) -> tuple[BusinessListing, str]:
    """Apply a moderation action, or a plain field update when no action is given."""
    field_changes = changes.model_dump(exclude_unset=True) if changes is not None else {}
    null_flags = [
        name for name in NON_NULL_FLAGS if name in field_changes and field_changes[name] is None
    ]
    if null_flags:
        raise ValidationFailedError([FieldError(name, "can't be null") for name in null_flags])

    # Loaded before any attribute changes so the read cannot autoflush them
    config = await load_directory_settings(session)

    if action == AdminAction.APPROVE:
        listing.approved = True
        message = "Listing approved successfully"
    elif action == AdminAction.FEATURE:
        listing.featured = True
        message = "Listing featured successfully"
    elif action == AdminAction.UNFEATURE:
        listing.featured = False
        message = "Listing unfeatured successfully"
    elif action == AdminAction.ACTIVATE:
        listing.is_active = True
        message = "Listing activated successfully"
    elif action == AdminAction.DEACTIVATE:
        listing.is_active = False
        message = "Listing deactivated successfully"
    elif action == AdminAction.UPDATE_PRIORITY:
        listing.priority = priority or 0
        message = "Listing priority updated successfully"
    else:
        _apply_changes(listing, field_changes)
        message = "Listing updated successfully"

    listing = await save_listing(session, listing, config)
    return listing, message


async def activate_listing(session: AsyncSession, listing_id: uuid.UUID) -> bool:
    """Flip one listing to active in a single conditional UPDATE.

    Returns False when it was already active. Raises ValidationFailedError
    when its owner already holds a different active listing.
    """
    stmt = (
        update(BusinessListing)
        .where(
            BusinessListing.id == listing_id,
            BusinessListing.is_active == False,  # noqa: E712
        )
        .values(is_active=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_active_conflict(exc):
            raise _conflict_error() from exc
        raise
    return result.rowcount == 1


async def bulk_action(
    session: AsyncSession, action: BulkAction | str, listing_ids: Sequence[uuid.UUID],
) -> BulkResult:
    if not listing_ids:
        raise ValidationFailedError.single("listing_ids", "No listings selected")
    try:
        action = BulkAction(action)
    except ValueError as exc:
        raise ValidationFailedError.single("bulk_action", "Invalid action") from exc

    ids = list(dict.fromkeys(listing_ids))
    existing = await session.execute(
        select(BusinessListing.id)
        .where(BusinessListing.id.in_(ids))  # type: ignore[union-attr]
        .order_by(BusinessListing.created_at.asc())  # type: ignore[attr-defined]
    )
    matched = list(existing.scalars().all())

    if action == BulkAction.ACTIVATE:
        skipped: list[uuid.UUID] = []
        activated = 0
        for listing_id in matched:
            try:
                if await activate_listing(session, listing_id):
                    activated += 1
            except ValidationFailedError:
                logger.info("Bulk activate skipped listing %s: owner already active", listing_id)
                skipped.append(listing_id)
        return BulkResult(action, affected=activated, skipped=skipped)

    if action == BulkAction.DELETE:
        await session.execute(
            delete(BusinessListing)
            .where(BusinessListing.id.in_(matched))  # type: ignore[union-attr]
            .execution_options(synchronize_session=False)
        )
    else:
        await session.execute(
            update(BusinessListing)
            .where(BusinessListing.id.in_(matched))  # type: ignore[union-attr]
            .values(**_BULK_FLAGS[action], updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
    await session.commit()
    logger.info("Bulk %s applied to %d listings", action, len(matched))
    return BulkResult(action, affected=len(matched))


def field_errors_payload(errors: Sequence[FieldError]) -> list[dict]:
    return [{"field": e.field, "message": e.message} for e in errors]
