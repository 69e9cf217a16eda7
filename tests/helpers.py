"""Shared test helpers."""

from datetime import datetime, timezone

from fulfillment.application.services.auth_service import token_for
from fulfillment.domain.models.user import User

PASSWORD = "secret123"


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
