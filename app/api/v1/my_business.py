"""Owner-facing listing management: the signed-in user's own business."""

import uuid

from fastapi import APIRouter, UploadFile, status
from pydantic import BaseModel

from app.api.deps import Auth, EnabledDirectory, Session
from app.models.listing import ListingCreate, ListingDetail, ListingUpdate
from app.services.allow_lists import allow_lists_from
from app.services.listings import (
    active_listing_for,
    can_create_listing,
    create_listing,
    delete_listing,
    ensure_can_manage,
    get_listing_or_404,
    update_listing,
)
from app.services.presenters import load_owners, to_detail
from app.services.uploads import check_upload_allowed, store_image

router = APIRouter(prefix="/my-business", tags=["my-business"])


# ── Schemas ──────────────────────────────────────────────────

class ListingFormConfig(BaseModel):
    cities: list[str]
    categories: list[str]
    max_images: int


class MyBusinessResponse(BaseModel):
    listing: ListingDetail | None
    can_create: bool
    config: ListingFormConfig


class ListingMutationResponse(BaseModel):
    success: bool = True
    message: str
    listing: ListingDetail | None = None


class ImageUploadResponse(BaseModel):
    url: str


async def _detail(session, listing) -> ListingDetail:
    owners = await load_owners(session, [listing])
    return to_detail(listing, owners.get(listing.user_id))


# ── Routes ───────────────────────────────────────────────────

@router.get("", response_model=MyBusinessResponse)
async def my_business(auth: Auth, config: EnabledDirectory, session: Session) -> MyBusinessResponse:
    """The caller's active listing plus what the listing form needs."""
    listing = await active_listing_for(session, auth.user_id)
    allow_lists = allow_lists_from(config)
    return MyBusinessResponse(
        listing=await _detail(session, listing) if listing else None,
        can_create=await can_create_listing(session, auth.user_id, config),
        config=ListingFormConfig(
            cities=allow_lists.sorted_cities,
            categories=allow_lists.sorted_categories,
            max_images=config.max_images,
        ),
    )


@router.post("", response_model=ListingMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_business(
    body: ListingCreate,
    auth: Auth,
    config: EnabledDirectory,
    session: Session,
) -> ListingMutationResponse:
    listing = await create_listing(session, auth.user_id, body)
    return ListingMutationResponse(
        message="Business listing created successfully",
        listing=await _detail(session, listing),
    )


@router.put("/{listing_id}", response_model=ListingMutationResponse)
async def update_business(
    listing_id: uuid.UUID,
    body: ListingUpdate,
    auth: Auth,
    config: EnabledDirectory,
    session: Session,
) -> ListingMutationResponse:
    listing = await get_listing_or_404(session, listing_id)
    ensure_can_manage(listing, auth.user_id, auth.is_staff)
    listing = await update_listing(session, listing, body)
    return ListingMutationResponse(
        message="Business listing updated successfully",
        listing=await _detail(session, listing),
    )


@router.delete("/{listing_id}", response_model=ListingMutationResponse)
async def delete_business(
    listing_id: uuid.UUID,
    auth: Auth,
    config: EnabledDirectory,
    session: Session,
) -> ListingMutationResponse:
    listing = await get_listing_or_404(session, listing_id)
    ensure_can_manage(listing, auth.user_id, auth.is_staff)
    await delete_listing(session, listing)
    return ListingMutationResponse(message="Business listing deleted successfully")


@router.post("/images", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile,
    auth: Auth,
    config: EnabledDirectory,
) -> ImageUploadResponse:
    """Store one listing image and return its public URL."""
    check_upload_allowed(auth.user_id)
    content = await file.read()
    return ImageUploadResponse(url=store_image(auth.user_id, file.filename or "", content))
