"""Campaign ORM models."""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.user import User


class Campaign(Base):
    """Outreach campaign people can register for."""

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="draft")
    budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    starts_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    settings: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    registrations: Mapped[List["CampaignRegistration"]] = relationship(
        "CampaignRegistration", back_populates="campaign"
    )


class CampaignRegistration(Base):
    """A person signed up for a campaign. Blocks deleting the campaign."""

    __tablename__ = "campaign_registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        ForeignKey("campaigns.id", ondelete="RESTRICT"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    registered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="registrations")
    user: Mapped[Optional["User"]] = relationship("User", back_populates="registrations")
