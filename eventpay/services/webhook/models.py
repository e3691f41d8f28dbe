"""Registration persistence model (one row per captured payment)."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from eventpay.common.db import Base


class Registration(Base):
    """Event registration created from a captured payment."""

    __tablename__ = "eventsregistrations"
    __table_args__ = (UniqueConstraint("payment_id", name="eventsregistrations_payment_id_key"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    event_id: Mapped[str] = mapped_column(String, index=True)
    user_email: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[int] = mapped_column(Integer)
    payment_id: Mapped[str] = mapped_column(String, index=True)
    status: Mapped[str] = mapped_column(String, default="success", server_default="success")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
