"""Authentication endpoints: register, login, current user."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import Auth, DirectoryConfig, Session
from app.core.security import create_jwt, hash_password, verify_password
from app.models.listing import BusinessListing
from app.models.user import User, UserCreate, UserRead, UserRole
from app.services.listings import active_listing_for, can_create_listing

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class ListingSummary(BaseModel):
    has_listing: bool
    id: str | None = None
    business_name: str | None = None
    city: str | None = None
    category: str | None = None


class MeResponse(BaseModel):
    user: UserRead
    can_create_business_listing: bool
    business_listing: ListingSummary


def _summary(listing: BusinessListing | None) -> ListingSummary:
    if listing is None:
        return ListingSummary(has_listing=False)
    return ListingSummary(
        has_listing=True,
        id=str(listing.id),
        business_name=listing.business_name,
        city=listing.city,
        category=listing.category,
    )


# ── Routes ───────────────────────────────────────────────────

@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(body: UserCreate, session: Session) -> LoginResponse:
    """Create a member account and return a JWT for it."""
    existing = await session.execute(select(User).where(User.username == body.username))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{body.username}' is already taken",
        )

    # Self-registration always yields a member; staff are promoted by an admin
    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role=UserRole.MEMBER,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{body.username}' is already taken",
        ) from exc
    await session.refresh(user)

    return LoginResponse(
        access_token=create_jwt(subject=str(user.id), role=user.role),
        user=UserRead.model_validate(user),
    )


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session) -> LoginResponse:
    """Authenticate with username + password, receive a JWT."""
    stmt = select(User).where(User.username == body.username)
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    return LoginResponse(
        access_token=create_jwt(subject=str(user.id), role=user.role),
        user=UserRead.model_validate(user),
    )


@router.get("/me", response_model=MeResponse)
async def get_me(auth: Auth, session: Session, config: DirectoryConfig) -> MeResponse:
    """Current user, whether they may list a business, and their active listing."""
    user = await session.get(User, auth.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return MeResponse(
        user=UserRead.model_validate(user),
        can_create_business_listing=await can_create_listing(session, user.id, config),
        business_listing=_summary(await active_listing_for(session, user.id)),
    )
