"""Sales lead model."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.database import Base

EMAIL_CONSTRAINT = "leads_email_unique"


class Lead(Base):
    __tablename__ = "leads"
    # Email is unique across all tenants, not per tenant
    __table_args__ = (UniqueConstraint("email", name=EMAIL_CONSTRAINT),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    campaign_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Contact info
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Pipeline
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    score: Mapped[int | None] = mapped_column(Integer, default=0)  # 0-100, not enforced
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)  # opaque, usually a JSON array
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_contacted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign: Mapped["Campaign | None"] = relationship(back_populates="leads", lazy="raise")
    interactions: Mapped[list["Interaction"]] = relationship(
        back_populates="lead",
        order_by="Interaction.timestamp.desc()",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Lead {self.email}>"
