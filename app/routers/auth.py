"""
Auth routers — signup, login, refresh and "me" for every portal.

/auth/*          role taken from the request body (defaults to passenger)
/driver/auth/*   role fixed to driver
/admin/auth/*    role fixed to admin
"""
import logging

from fastapi import APIRouter, Depends, status

from app.dependencies import get_auth_provider, get_profile_service
from app.middleware.auth import get_current_admin, get_current_driver, get_current_user_id
from app.models.user import User
from app.schemas.schemas import (
    LoginRequest, PublicUser, RefreshRequest, SessionResponse, SignupRequest, UserEnvelope, UserTypeEnum,
)
from app.services.auth_provider import AuthProvider, normalize_role
from app.services.profiles import ProfileService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Auth"])
driver_router = APIRouter(prefix="/driver/auth", tags=["Auth"])
admin_router = APIRouter(prefix="/admin/auth", tags=["Auth"])


def _session(result: dict) -> SessionResponse:
    return SessionResponse(
        token=result["token"],
        refresh_token=result["refresh_token"],
        user=PublicUser.model_validate(result["user"]),
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserEnvelope)
async def signup(payload: SignupRequest, auth: AuthProvider = Depends(get_auth_provider)):
    user = await auth.sign_up(payload, normalize_role(payload.role))
    return UserEnvelope(user=PublicUser.model_validate(user))


@router.post("/login", response_model=SessionResponse)
async def login(payload: LoginRequest, auth: AuthProvider = Depends(get_auth_provider)):
    result = await auth.sign_in(payload.email, payload.password, normalize_role(payload.role))
    return _session(result)


@router.post("/refresh", response_model=SessionResponse)
async def refresh(payload: RefreshRequest, auth: AuthProvider = Depends(get_auth_provider)):
    return _session(await auth.refresh(payload.refresh_token))


@router.get("/me", response_model=UserEnvelope)
async def me(
    user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service),
):
    user = await profiles.get(user_id)
    return UserEnvelope(user=PublicUser.model_validate(user))


# ---------------------------------------------------------------------------
# Driver portal
# ---------------------------------------------------------------------------

@driver_router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserEnvelope)
async def driver_signup(payload: SignupRequest, auth: AuthProvider = Depends(get_auth_provider)):
    user = await auth.sign_up(payload, UserTypeEnum.driver)
    return UserEnvelope(user=PublicUser.model_validate(user))


@driver_router.post("/login", response_model=SessionResponse)
async def driver_login(payload: LoginRequest, auth: AuthProvider = Depends(get_auth_provider)):
    return _session(await auth.sign_in(payload.email, payload.password, UserTypeEnum.driver))


@driver_router.get("/me", response_model=UserEnvelope)
async def driver_me(user: User = Depends(get_current_driver)):
    return UserEnvelope(user=PublicUser.model_validate(user))


# ---------------------------------------------------------------------------
# Admin portal
# ---------------------------------------------------------------------------

@admin_router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserEnvelope)
async def admin_signup(payload: SignupRequest, auth: AuthProvider = Depends(get_auth_provider)):
    user = await auth.sign_up(payload, UserTypeEnum.admin)
    return UserEnvelope(user=PublicUser.model_validate(user))


@admin_router.post("/login", response_model=SessionResponse)
async def admin_login(payload: LoginRequest, auth: AuthProvider = Depends(get_auth_provider)):
    return _session(await auth.sign_in(payload.email, payload.password, UserTypeEnum.admin))


@admin_router.get("/me", response_model=UserEnvelope)
async def admin_me(user: User = Depends(get_current_admin)):
    return UserEnvelope(user=PublicUser.model_validate(user))
