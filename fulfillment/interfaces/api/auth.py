"""Auth API routes — login, me."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.config import get_settings
from fulfillment.core.exceptions import UnauthorizedException
from fulfillment.infrastructure.database import get_db
from fulfillment.application.services.auth_service import authenticate_user, token_for
from fulfillment.domain.schemas.auth import LoginRequest, TokenResponse, UserRead
from fulfillment.interfaces.api.deps import get_current_user
from fulfillment.domain.models.user import User

settings = get_settings()
router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        raise UnauthorizedException("Email ou senha incorretos")

    return TokenResponse(
        access_token=token_for(user),
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
        user=UserRead.model_validate(user),
    )


@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    return user
