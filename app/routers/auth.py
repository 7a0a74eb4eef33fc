from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.deps import get_current_user, parse_user_id
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.models.user import Doctor, Patient, User
from app.schemas.auth import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    RefreshTokenRequest,
    RefreshTokenResponse,
    RegisterRequest,
    UserBrief,
)

router = APIRouter(prefix="/auth", tags=["Auth"])

DEFAULT_SPECIALTY = "General Physician"


def _user_brief(user: User) -> UserBrief:
    return UserBrief(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        profile_image=user.profile_image,
        doctor_id=str(user.doctor.id) if user.doctor else None,
        patient_id=str(user.patient.id) if user.patient else None,
    )


async def _load_user(db: AsyncSession, *criteria) -> User | None:
    result = await db.execute(
        select(User)
        .options(selectinload(User.doctor), selectinload(User.patient))
        .where(*criteria)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(str(user.id)),
        refresh_token=create_refresh_token(str(user.id)),
        user=_user_brief(user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Email already registered"}},
    summary="Register",
    description="Creates a user and the matching doctor or patient profile. Returns `token` and `refresh_token`.",
)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if await _load_user(db, User.email == body.email.lower()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists with this email")

    user = User(
        email=body.email.lower(),
        password_hash=hash_password(body.password),
        name=body.name,
        role=body.role,
    )
    db.add(user)
    await db.flush()

    if user.role == "doctor":
        db.add(Doctor(user_id=user.id, specialty=body.specialty or DEFAULT_SPECIALTY))
    else:
        db.add(Patient(user_id=user.id, date_of_birth=body.date_of_birth, gender=body.gender))

    await db.commit()
    user = await _load_user(db, User.id == user.id)
    return _auth_response(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid email or password"}},
    summary="Log in",
    description="Email and password login. Returns `token` and `refresh_token`.",
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await _load_user(db, User.email == body.email.lower())
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if user.status != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Account is {user.status}")

    user.last_login = datetime.now(timezone.utc)
    await db.commit()
    return _auth_response(user)


@router.post(
    "/refresh",
    response_model=RefreshTokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid refresh token"}},
    summary="Refresh tokens",
    description="Issues a new `token` + `refresh_token` pair for a valid refresh_token.",
)
async def refresh_token(body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    user_id = parse_user_id(decode_token(body.refresh_token), "refresh")
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return RefreshTokenResponse(
        token=create_access_token(str(user.id)),
        refresh_token=create_refresh_token(str(user.id)),
    )


@router.get("/me", response_model=UserBrief, summary="Current user")
async def me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return _user_brief(await _load_user(db, User.id == user.id))
