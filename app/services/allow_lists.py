"""Runtime directory settings and the city/category allow-lists they carry.

Settings live in a single ``directory_settings`` row that staff edit at
runtime. The row is created on first access from the environment defaults
in ``app.core.config``. Reads go through a short TTL cache; every write
invalidates it, so allow-list changes take effect on the next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import cache
from app.core.config import get_settings
from app.models.directory_settings import (
    SETTINGS_ROW_ID,
    DirectorySettings,
    DirectorySettingsRead,
    DirectorySettingsUpdate,
    split_lines,
)

logger = logging.getLogger(__name__)

CACHE_KEY = ("directory", "settings")
CACHE_TTL = 30


@dataclass(frozen=True)
class AllowLists:
    cities: tuple[str, ...]
    categories: tuple[str, ...]

    def has_city(self, value: str | None) -> bool:
        return bool(value) and value in self.cities

    def has_category(self, value: str | None) -> bool:
        return bool(value) and value in self.categories

    @property
    def sorted_cities(self) -> list[str]:
        return sorted(self.cities)

    @property
    def sorted_categories(self) -> list[str]:
        return sorted(self.categories)


def allow_lists_from(config: DirectorySettingsRead) -> AllowLists:
    return AllowLists(
        cities=tuple(split_lines(config.locations)),
        categories=tuple(split_lines(config.categories)),
    )


def _defaults() -> DirectorySettings:
    env = get_settings()
    return DirectorySettings(
        id=SETTINGS_ROW_ID,
        enabled=env.directory_enabled,
        subscription_plan_id=env.directory_subscription_plan_id,
        auto_approve=env.directory_auto_approve,
        max_images=env.directory_max_images,
        show_in_sitemap=env.directory_show_in_sitemap,
        featured_limit=env.directory_featured_limit,
        locations=env.directory_locations,
        categories=env.directory_categories,
        send_expiry_notifications=env.directory_send_expiry_notifications,
        send_reactivation_notifications=env.directory_send_reactivation_notifications,
    )


async def _get_or_create_row(session: AsyncSession) -> DirectorySettings:
    row = await session.get(DirectorySettings, SETTINGS_ROW_ID)
    if row is not None:
        return row

    row = _defaults()
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        # Another request seeded the row first
        await session.rollback()
        existing = await session.get(DirectorySettings, SETTINGS_ROW_ID)
        if existing is None:
            raise
        return existing
    logger.info("Seeded directory settings from environment defaults")
    await session.refresh(row)
    return row


async def load_directory_settings(session: AsyncSession) -> DirectorySettingsRead:
    cached = cache.get(CACHE_KEY, ttl=CACHE_TTL)
    if cached is not None:
        return cached
    row = await _get_or_create_row(session)
    snapshot = DirectorySettingsRead.model_validate(row)
    cache.put(CACHE_KEY, snapshot)
    return snapshot


async def get_allow_lists(session: AsyncSession) -> AllowLists:
    return allow_lists_from(await load_directory_settings(session))


async def update_directory_settings(
    session: AsyncSession, changes: DirectorySettingsUpdate,
) -> DirectorySettingsRead:
    row = await _get_or_create_row(session)
    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(row, field, value)
    row.touch()
    session.add(row)
    await session.commit()
    await session.refresh(row)
    cache.invalidate(CACHE_KEY)
    logger.info("Directory settings updated: %s", sorted(changes.model_fields_set))
    return DirectorySettingsRead.model_validate(row)
