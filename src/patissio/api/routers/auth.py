"""Registration, login, logout and the current user."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_access_token,
    get_current_user,
    get_db,
    get_settings,
    throttle,
)
from patissio.api.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    UserResponse,
)
from patissio.api.schemas.profile import ProfileResponse
from patissio.config.settings import Settings
from patissio.db.models import AccessToken, User, UserRole
from patissio.db.repositories import ProfileRepository
from patissio.services.auth import AuthResult, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        token=result.token,
        profile=ProfileResponse.model_validate(result.profile) if result.profile else None,
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Creates a client or patissier account. Patissiers also get a starter shop.",
    dependencies=[Depends(throttle("authStrict"))],
)
async def register(
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    result = await AuthService(db, settings).register(
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        role=UserRole(body.role),
        slug=body.slug,
        business_name=body.business_name,
    )
    return _auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Sign in",
    description="Checks credentials and issues a bearer token.",
    dependencies=[Depends(throttle("authStrict"))],
)
async def login(
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    result = await AuthService(db, settings).login(body.email, body.password)
    if result.user.role == UserRole.PATISSIER.value:
        result.profile = await ProfileRepository(db).get_by_user(result.user.id)
    return _auth_response(result)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
    description="Revokes the token used for this request.",
    dependencies=[Depends(throttle("auth"))],
)
async def logout(
    token: Annotated[AccessToken, Depends(get_access_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    await AuthService(db, settings).logout(token)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current user",
    description="Returns the signed-in user and, for patissiers, their shop.",
    dependencies=[Depends(throttle("auth"))],
)
async def me(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeResponse:
    profile = None
    if user.role == UserRole.PATISSIER.value:
        profile = await ProfileRepository(db).get_by_user(user.id)
    return MeResponse(
        user=UserResponse.model_validate(user),
        profile=ProfileResponse.model_validate(profile) if profile else None,
    )
