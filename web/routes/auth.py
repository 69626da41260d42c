"""Authentication routes: register, login, token refresh, profile, logout."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from medportal.services.auth_service import AuthService
from web.dependencies import AuthContext, get_auth_service, rate_limit, require_auth
from web.models.auth import LoginRequest, LogoutRequest, RefreshTokenRequest, RegisterRequest

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201, dependencies=[Depends(rate_limit("auth"))])
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Create an account and return an access/refresh token pair.

    Patients get a medical record number; doctors and nurses a staff profile.
    """
    result = await auth_service.register(body.to_registration())
    return {"success": True, "data": result.to_dict(), "message": "Registration successful"}


@router.post("/login", dependencies=[Depends(rate_limit("auth"))])
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Verify credentials and return an access/refresh token pair."""
    result = await auth_service.login(body.email, body.password)
    return {"success": True, "data": result.to_dict(), "message": "Login successful"}


@router.post("/refresh-token")
async def refresh_token(
    body: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Exchange a refresh token for a new token pair."""
    pair = await auth_service.refresh(body.refresh_token)
    return {
        "success": True,
        "data": {"token": pair.access_token, "refreshToken": pair.refresh_token},
    }


@router.get("/me")
async def get_current_user(
    user: AuthContext = Depends(require_auth),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Return the authenticated user's profile."""
    identity = await auth_service.get_profile(user.id)
    return {"success": True, "data": identity.profile_dict()}


@router.post("/logout")
async def logout(
    body: Optional[LogoutRequest] = None,
    user: AuthContext = Depends(require_auth),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Revoke the current access token and the supplied refresh token."""
    await auth_service.logout(user.claims, body.refresh_token if body else None)
    return {"success": True, "message": "Logout successful"}
