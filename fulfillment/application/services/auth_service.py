"""Auth service — bcrypt password hashes and JWT bearer tokens.

Tokens carry the user's email in `sub` plus `uid` and `role`; the request
dependency always reloads the user so role changes apply immediately.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from fulfillment.config import get_settings
from fulfillment.domain.models.user import User, UserRole
from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

settings = get_settings()
logger = structlog.get_logger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(claims: dict, expires_delta: Optional[timedelta] = None) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def token_for(user: User) -> str:
    return create_access_token({"sub": user.email, "uid": user.id, "role": user.role})


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = SQLAlchemyUserRepository(db, User).get_by_email(email)
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        logger.warning("Login rejected", email=email)
        return None
    return user


def create_user(db: Session, name: str, email: str, password: str, role: str = UserRole.CUSTOMER.value) -> User:
    """Create a user; used to bootstrap the admin account."""
    user = SQLAlchemyUserRepository(db, User).create({
        "name": name,
        "email": email.strip().lower(),
        "password_hash": hash_password(password),
        "role": role,
    })
    db.commit()
    logger.info("User created", user_id=user.id, role=role)
    return user
