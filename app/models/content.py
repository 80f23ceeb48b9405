"""Content tables: media, translations and the page view log."""

from typing import Optional

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class MediaAsset(Base):
    """Uploaded file kept inline."""

    __tablename__ = "media_assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)


class Translation(Base):
    """UI string per locale, keyed by (locale, key)."""

    __tablename__ = "translations"

    locale: Mapped[str] = mapped_column(String(10), primary_key=True)
    key: Mapped[str] = mapped_column(String(120), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


# Append-only log without any key
page_views = Table(
    "page_views",
    Base.metadata,
    Column("path", String(255), nullable=False),
    Column("visitor", String(64), nullable=True),
    Column("viewed_at", DateTime, nullable=True),
)
