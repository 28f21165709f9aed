"""Subscription model: mirror of the billing provider's subscription state."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


QUALIFYING_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class Subscription(TimestampMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE",
    )
    plan_id: str = Field(max_length=100, nullable=False, index=True)
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE)


# ── Pydantic schemas ─────────────────────────────────────────

class SubscriptionUpsert(SQLModel):
    plan_id: str = Field(max_length=100)
    status: SubscriptionStatus


class SubscriptionRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    plan_id: str
    status: SubscriptionStatus
