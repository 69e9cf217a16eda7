"""Request dependencies — bearer token to User, role and ownership checks."""

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fulfillment.core.exceptions import ForbiddenException, UnauthorizedException
from fulfillment.infrastructure.database import get_db
from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from fulfillment.application.services.auth_service import decode_access_token
from fulfillment.domain.models.user import User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise UnauthorizedException("Token inválido ou expirado")

    user = SQLAlchemyUserRepository(db, User).get_by_email(payload["sub"])
    if user is None or not user.is_active:
        raise UnauthorizedException("Usuário não encontrado ou inativo")

    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Mutations and cross-customer views are admin only."""
    if not user.is_admin:
        raise ForbiddenException("Apenas administradores podem acessar este recurso")
    return user


def ensure_owner_or_admin(user: User, user_id: int) -> None:
    if not user.is_admin and user.id != user_id:
        raise ForbiddenException("Acesso negado.", {"user_id": user_id})
