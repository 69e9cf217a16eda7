"""
SQLAlchemy Implementation of User Repository.
"""

from typing import List, Optional

from sqlalchemy import func

from fulfillment.domain.models.user import User, UserRole
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User]):
    """User lookups for auth and billing."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def active_customer_ids(self) -> List[int]:
        rows = (
            self.db.query(User.id)
            .filter(User.role == UserRole.CUSTOMER.value, User.is_active.is_(True))
            .order_by(User.id.asc())
            .all()
        )
        return [row[0] for row in rows]
