"""User contract — binds a customer to a storage service."""

from sqlalchemy import Column, Integer, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from fulfillment.infrastructure.database import Base


class UserContract(Base):
    __tablename__ = "user_contracts"
    __table_args__ = (UniqueConstraint("user_id", "service_id", name="unique_contract"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    volume = Column(Integer, nullable=True)  # extra m³ for additional_storage
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    service = relationship("Service", lazy="joined")

    def __repr__(self):
        return f"<UserContract user={self.user_id} service={self.service_id}>"
