"""Import all models so SQLModel.metadata picks them up."""

from app.models.directory_settings import (
    DirectorySettings,
    DirectorySettingsRead,
    DirectorySettingsUpdate,
)
from app.models.listing import (
    AdminListingRead,
    AdminListingUpdate,
    BusinessListing,
    ListingCreate,
    ListingDetail,
    ListingRead,
    ListingStatus,
    ListingUpdate,
)
from app.models.subscription import (
    Subscription,
    SubscriptionRead,
    SubscriptionStatus,
    SubscriptionUpsert,
)
from app.models.user import User, UserCreate, UserRead, UserRole, UserUpdate

__all__ = [
    "AdminListingRead",
    "AdminListingUpdate",
    "BusinessListing",
    "DirectorySettings",
    "DirectorySettingsRead",
    "DirectorySettingsUpdate",
    "ListingCreate",
    "ListingDetail",
    "ListingRead",
    "ListingStatus",
    "ListingUpdate",
    "Subscription",
    "SubscriptionRead",
    "SubscriptionStatus",
    "SubscriptionUpsert",
    "User",
    "UserCreate",
    "UserRead",
    "UserRole",
    "UserUpdate",
]
