import uuid
from collections.abc import Generator
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from app.core import security
from app.core.audit import audit_service
from app.core.db import engine
from app.core.exceptions import AuthenticationError, ErrorCode
from app.domains.auth import AuthService, EmailSender, get_email_sender
from app.models import TokenPayload, User

http_bearer = HTTPBearer(
    auto_error=False,
    description="Paste your JWT (without the 'Bearer ' prefix)",
)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_clock() -> security.Clock:
    return security.utc_now


def get_mailer() -> EmailSender:
    return get_email_sender()


SessionDep = Annotated[Session, Depends(get_db)]
ClockDep = Annotated[security.Clock, Depends(get_clock)]
MailerDep = Annotated[EmailSender, Depends(get_mailer)]
BearerDep = Annotated[Optional[HTTPAuthorizationCredentials], Depends(http_bearer)]


def get_auth_service(session: SessionDep, mailer: MailerDep, clock: ClockDep) -> AuthService:
    return AuthService(session, email_sender=mailer, clock=clock)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


class ClientInfo(BaseModel):
    """Device and address recorded on issued refresh tokens"""
    device_info: Optional[str] = None
    ip_address: Optional[str] = None


def get_client_info(request: Request) -> ClientInfo:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return ClientInfo(
        device_info=request.headers.get("user-agent"),
        ip_address=ip_address,
    )


ClientInfoDep = Annotated[ClientInfo, Depends(get_client_info)]


def get_current_user(session: SessionDep, bearer: BearerDep) -> User:
    if bearer is None or not bearer.credentials:
        raise AuthenticationError(
            user_message="Token no proporcionado",
            error_code=ErrorCode.INVALID_TOKEN,
        )
    try:
        payload = security.decode_access_token(bearer.credentials)
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub or "")
    except (InvalidTokenError, PydanticValidationError, ValueError) as e:
        audit_service.log_invalid_token(type(e).__name__)
        raise AuthenticationError(
            user_message="Token inválido o expirado",
            internal_message=f"Access token rejected: {e}",
            error_code=ErrorCode.INVALID_TOKEN,
        )
    user = session.get(User, user_id)
    if not user:
        raise AuthenticationError(
            user_message="Token inválido o expirado",
            internal_message=f"Access token for missing user {token_data.sub}",
            error_code=ErrorCode.INVALID_TOKEN,
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
