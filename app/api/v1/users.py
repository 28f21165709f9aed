"""Users CRUD: restricted to admins."""

import uuid

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete
from sqlmodel import select

from app.api.deps import Admin, Session
from app.core.security import hash_password
from app.models.listing import BusinessListing
from app.models.subscription import Subscription
from app.models.user import User, UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    auth: Admin,
    session: Session,
) -> UserRead:
    stmt = select(User).where(User.username == body.username)
    result = await session.execute(stmt)
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this username already exists",
        )

    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return UserRead.model_validate(user)


@router.get("", response_model=list[UserRead])
async def list_users(
    auth: Admin,
    session: Session,
) -> list[UserRead]:
    stmt = select(User).order_by(User.username.asc())  # type: ignore[attr-defined]
    result = await session.execute(stmt)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    auth: Admin,
    session: Session,
) -> UserRead:
    user = await _get_or_404(user_id, session)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("password"):
        user.password_hash = hash_password(update_data.pop("password"))
    update_data.pop("password", None)
    for field, value in update_data.items():
        if value is not None:
            setattr(user, field, value)

    user.touch()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    auth: Admin,
    session: Session,
) -> None:
    """Remove a user together with their listings and subscriptions."""
    user = await _get_or_404(user_id, session)
    # Explicit for stores that do not enforce ON DELETE CASCADE (SQLite)
    await session.execute(delete(BusinessListing).where(BusinessListing.user_id == user.id))
    await session.execute(delete(Subscription).where(Subscription.user_id == user.id))
    await session.delete(user)
    await session.commit()


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(user_id: uuid.UUID, session) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
