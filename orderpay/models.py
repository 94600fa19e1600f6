import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Enum
from orderpay.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)          # bcrypt, never plaintext
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), index=True, nullable=False)
    product_ref = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)                # smallest currency unit
    status = Column(
        Enum(OrderStatus, native_enum=False, length=16,
             values_callable=lambda statuses: [s.value for s in statuses]),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    external_payment_ref = Column(String, unique=True, index=True, nullable=True)  # Stripe PaymentIntent ID
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)
