"""
Registration, email verification, login and session API
"""
from typing import Any, Optional

from fastapi import APIRouter, status

from app.api.deps import AuthServiceDep, ClientInfoDep, CurrentUser
from app.domains.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    SessionsPublic,
    UserPublic,
    VerifyEmailRequest,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(request: RegisterRequest, service: AuthServiceDep) -> Any:
    """
    Register and receive a verification code by email

    - **email**: Email (temporary/disposable domains are rejected)
    - **password**: At least 6 characters
    - **name** / **lastname**: At least 2 characters each

    No tokens are issued until the email is verified.
    """
    return await service.register(
        email=request.email,
        password=request.password,
        name=request.name,
        lastname=request.lastname,
    )


@router.post("/verify-email", response_model=AuthResponse)
async def verify_email(
    request: VerifyEmailRequest,
    service: AuthServiceDep,
    client: ClientInfoDep,
) -> Any:
    """
    Verify the email with the 6 digit code and log in

    - **email**: Registered email
    - **code**: Code received by email
    """
    return await service.verify_email(
        email=request.email,
        code=request.code,
        device_info=client.device_info,
        ip_address=client.ip_address,
    )


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    request: ResendVerificationRequest,
    service: AuthServiceDep,
) -> Any:
    """Send a new code; any previous pending code stops working"""
    return await service.resend_verification(request.email)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    service: AuthServiceDep,
    client: ClientInfoDep,
) -> Any:
    """
    Password login

    - **email**: Registered, verified email
    - **password**: Password
    """
    return await service.login(
        email=request.email,
        password=request.password,
        device_info=client.device_info,
        ip_address=client.ip_address,
    )


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: RefreshRequest,
    service: AuthServiceDep,
    client: ClientInfoDep,
) -> Any:
    """
    Exchange a refresh token for a new access/refresh pair

    The presented refresh token is rotated. Presenting an already rotated
    token outside the short retry window revokes every session issued
    from it.
    """
    return await service.refresh_access_token(
        refresh_token=request.refresh_token,
        device_info=client.device_info,
        ip_address=client.ip_address,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    service: AuthServiceDep,
    request: Optional[LogoutRequest] = None,
) -> Any:
    """Revoke one refresh token; succeeds even without a token"""
    return await service.logout(request.refresh_token if request else None)


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(current_user: CurrentUser, service: AuthServiceDep) -> Any:
    """Revoke every refresh token of the authenticated user"""
    return await service.logout_all(current_user.id)


@router.get("/me", response_model=UserPublic)
async def read_me(current_user: CurrentUser, service: AuthServiceDep) -> Any:
    return await service.get_me(current_user.id)


@router.get("/sessions", response_model=SessionsPublic)
async def read_sessions(current_user: CurrentUser, service: AuthServiceDep) -> Any:
    """Active (non-revoked, unexpired) sessions, newest first"""
    sessions = await service.get_active_sessions(current_user.id)
    return SessionsPublic(data=sessions, count=len(sessions))
