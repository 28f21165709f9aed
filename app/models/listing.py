"""BusinessListing model: one directory entry per owning user."""

import json
import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Index, Text, text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid

# Name of the partial unique index enforcing one active listing per user.
ACTIVE_LISTING_INDEX = "uq_business_listings_user_active"


class ListingStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FEATURED = "featured"
    PENDING = "pending"


class BusinessListing(TimestampMixin, SQLModel, table=True):
    __tablename__ = "business_listings"
    __table_args__ = (
        Index(
            ACTIVE_LISTING_INDEX,
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_business_listings_city_category", "city", "category"),
        Index("ix_business_listings_display_order", "featured", "priority", "created_at"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE",
    )

    business_name: str = Field(max_length=100, nullable=False)
    description: str = Field(sa_column=Column(Text, nullable=False))
    city: str = Field(max_length=100, nullable=False)
    category: str = Field(max_length=100, nullable=False)
    slug: str = Field(max_length=150, unique=True, nullable=False, index=True)

    # Contact
    website: str | None = Field(default=None, max_length=500)
    instagram: str | None = Field(default=None, max_length=500)
    facebook: str | None = Field(default=None, max_length=500)
    tiktok: str | None = Field(default=None, max_length=500)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=50)

    # JSON arrays stored as text.
    # images: ["https://..."], packages: [{"name", "description", "price"}]
    images: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))
    packages: str = Field(
        default="[]", sa_column=Column(Text, nullable=False, server_default="[]"),
    )

    # Moderation / ranking
    is_active: bool = Field(default=True, index=True)
    approved: bool = Field(default=True, index=True)
    featured: bool = Field(default=False, index=True)
    priority: int = Field(default=0)
    views_count: int = Field(default=0)

    @property
    def image_list(self) -> list[str]:
        return json.loads(self.images) if isinstance(self.images, str) else list(self.images)

    @property
    def package_list(self) -> list[dict]:
        return json.loads(self.packages) if isinstance(self.packages, str) else list(self.packages)

    @property
    def is_visible(self) -> bool:
        return self.is_active and self.approved


# ── Pydantic schemas ─────────────────────────────────────────

class PackageIn(SQLModel):
    name: str = ""
    description: str = ""
    price: str | int | float | None = None


class ListingCreate(SQLModel):
    business_name: str = ""
    description: str = ""
    city: str = ""
    category: str = ""
    website: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    tiktok: str | None = None
    email: str | None = None
    phone: str | None = None
    images: list[str] = Field(default_factory=list)
    packages: list[PackageIn] = Field(default_factory=list)


class ListingUpdate(SQLModel):
    business_name: str | None = None
    description: str | None = None
    city: str | None = None
    category: str | None = None
    website: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    tiktok: str | None = None
    email: str | None = None
    phone: str | None = None
    images: list[str] | None = None
    packages: list[PackageIn] | None = None


class AdminListingUpdate(ListingUpdate):
    is_active: bool | None = None
    featured: bool | None = None
    approved: bool | None = None
    priority: int | None = None


class ListingOwner(SQLModel):
    id: uuid.UUID
    username: str


class PackageRead(SQLModel):
    name: str | None
    description: str | None
    price: float | None
    formatted_price: str | None


class SocialLink(SQLModel):
    platform: str
    url: str
    icon: str


class ContactMethod(SQLModel):
    type: str
    value: str
    label: str


class ListingRead(SQLModel):
    """Card shown in directory result pages."""

    id: uuid.UUID
    business_name: str
    description: str
    city: str
    category: str
    slug: str
    profile_url: str
    website: str | None
    featured: bool
    image_urls: list[str]
    user: ListingOwner | None = None
    created_at: datetime
    views_count: int


class ListingDetail(ListingRead):
    instagram: str | None
    facebook: str | None
    tiktok: str | None
    email: str | None
    phone: str | None
    packages: list[PackageRead]
    social_links: list[SocialLink]
    contact_methods: list[ContactMethod]
    is_active: bool
    approved: bool


class AdminListingRead(SQLModel):
    id: uuid.UUID
    business_name: str
    description: str
    city: str
    category: str
    slug: str
    website: str | None
    email: str | None
    phone: str | None
    is_active: bool
    featured: bool
    approved: bool
    priority: int
    views_count: int
    user: ListingOwner | None = None
    created_at: datetime
    updated_at: datetime
