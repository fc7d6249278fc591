import uuid
from enum import Enum

from sqlalchemy import Column, DateTime, Numeric, String, func

from checkout_api.database import Base


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String, nullable=False, index=True)
    product_name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)  # pending | completed
    stripe_session_id = Column(String, unique=True, index=True, nullable=True)  # set once, after session creation
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Order {self.id} ({self.status})>"
