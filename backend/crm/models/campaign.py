"""Outreach campaign model."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.database import Base

DELETED = "deleted"


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "deleted" doubles as the soft-delete marker
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    leads: Mapped[list["Lead"]] = relationship(
        back_populates="campaign",
        order_by="Lead.created_at.desc()",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Campaign {self.name}>"
