"""DirectorySettings model: staff-editable runtime configuration (single row)."""

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin

SETTINGS_ROW_ID = 1


def split_lines(value: str) -> list[str]:
    """Newline-separated allow-list text → ordered list of stripped entries."""
    return [line.strip() for line in value.splitlines() if line.strip()]


class DirectorySettings(TimestampMixin, SQLModel, table=True):
    __tablename__ = "directory_settings"

    id: int = Field(default=SETTINGS_ROW_ID, primary_key=True)
    enabled: bool = Field(default=True)
    subscription_plan_id: str = Field(default="", max_length=100)
    auto_approve: bool = Field(default=True)
    max_images: int = Field(default=10)
    show_in_sitemap: bool = Field(default=True)
    featured_limit: int = Field(default=10)

    # Allow-lists, one entry per line
    locations: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    categories: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))

    send_expiry_notifications: bool = Field(default=True)
    send_reactivation_notifications: bool = Field(default=True)

    @property
    def city_list(self) -> list[str]:
        return split_lines(self.locations)

    @property
    def category_list(self) -> list[str]:
        return split_lines(self.categories)


# ── Pydantic schemas ─────────────────────────────────────────

class DirectorySettingsRead(SQLModel):
    enabled: bool
    subscription_plan_id: str
    auto_approve: bool
    max_images: int
    show_in_sitemap: bool
    featured_limit: int
    locations: str
    categories: str
    send_expiry_notifications: bool
    send_reactivation_notifications: bool


class DirectorySettingsUpdate(SQLModel):
    enabled: bool | None = None
    subscription_plan_id: str | None = Field(default=None, max_length=100)
    auto_approve: bool | None = None
    max_images: int | None = Field(default=None, ge=0, le=100)
    show_in_sitemap: bool | None = None
    featured_limit: int | None = Field(default=None, ge=0)
    locations: str | None = None
    categories: str | None = None
    send_expiry_notifications: bool | None = None
    send_reactivation_notifications: bool | None = None
