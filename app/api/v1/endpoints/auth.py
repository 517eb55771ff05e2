"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import AdminAuth, CacheManagerDep, CurrentAuth, DatabaseSession
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    TokenPairResponse,
    TokenRefresh,
    UserSummary,
)
from app.schemas.users import ProfileResponse, UserListResponse, UserResponse
from app.services.auth_service import AuthService
from app.services.slot_ledger import SlotLedger
from app.services.user_service import UserService

router = APIRouter()


def _auth_response(message: str, user: dict, auth_service: AuthService) -> AuthResponse:
    tokens = auth_service.create_tokens(str(user["id"]), user["role"])
    return AuthResponse(
        message=message,
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=UserSummary.model_validate(user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    request: RegisterRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> AuthResponse:
    """
    Create an account and return a token pair.

    Raises:
        ConflictException: If the email is already registered
    """
    user = await UserService(cache_manager).create_user(
        db,
        name=request.name,
        email=request.email,
        password=request.password,
        role=request.role.value,
        specialization=request.specialization,
    )

    return _auth_response("User registered successfully", user, AuthService(cache_manager))


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with email and password",
)
async def login(
    request: LoginRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> AuthResponse:
    """Check credentials and return a token pair."""
    user = await UserService(cache_manager).authenticate(db, request.email, request.password)

    return _auth_response("Login successful", user, AuthService(cache_manager))


@router.get(
    "/me",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    summary="Current user profile",
)
async def get_me(
    auth: CurrentAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> ProfileResponse:
    """Get the caller's profile; doctors also get their published slots."""
    user = await UserService(cache_manager).get_user_by_id(db, auth.subject_id)

    specialization = None
    available_slots = None
    if auth.is_doctor:
        specialization = user.get("specialization")
        available_slots = await SlotLedger(db).get_slots(auth.subject_id)

    return ProfileResponse(
        id=auth.subject_id,
        name=user["name"],
        email=user["email"],
        role=auth.role,
        specialization=specialization,
        available_slots=available_slots,
    )


@router.post(
    "/refresh",
    response_model=TokenPairResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    cache_manager: CacheManagerDep,
) -> TokenPairResponse:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        UnauthorizedException: If the refresh token is invalid or revoked
    """
    tokens = AuthService(cache_manager).refresh_access_token(request.refresh_token)

    return TokenPairResponse(
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout and revoke tokens",
)
async def logout(
    request: TokenRefresh,
    cache_manager: CacheManagerDep,
) -> None:
    """Revoke the given refresh token."""
    AuthService(cache_manager).revoke_token(request.refresh_token)


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List all users (admin only)",
)
async def list_users(
    admin: AdminAuth,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> UserListResponse:
    """Every account, without credentials."""
    user_list = await UserService(cache_manager).list_users(db)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in user_list])
