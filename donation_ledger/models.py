import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Numeric, Text, DateTime, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from donation_ledger.database import Base


class PaymentMethod(str, enum.Enum):
    PROMPTPAY = "promptpay"
    TRUEMONEY = "truemoney"
    LINEPAY = "linepay"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_STATUSES = (PaymentStatus.CONFIRMED, PaymentStatus.FAILED)


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255))
    image = Column(String(1024))
    bio = Column(Text)
    donation_goal = Column(Numeric(12, 2, asdecimal=False))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    donations = relationship("Donation", back_populates="account")

    @property
    def display_name(self) -> str:
        return self.name or self.username


class Donation(Base):
    __tablename__ = "donations"
    __table_args__ = (
        UniqueConstraint("account_id", "idempotency_key", name="uq_donations_account_idempotency"),
        Index("ix_donations_account_created", "account_id", "created_at"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    donor_name = Column(String(255), nullable=False)
    donor_email = Column(String(255))
    message = Column(Text)
    payment_method = Column(String(16), nullable=False)       # promptpay | truemoney | linepay
    payment_status = Column(String(16), nullable=False,       # pending | confirmed | failed
                            default=PaymentStatus.PENDING.value)
    transaction_id = Column(String(255))
    account_id = Column(
        String(32), ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False,
    )
    idempotency_key = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    account = relationship("Account", back_populates="donations")
