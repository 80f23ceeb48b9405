"""SQLAlchemy ORM models of the site's own tables."""

from app.models.base import Base
from app.models.user import User, UserRole
from app.models.campaign import Campaign, CampaignRegistration
from app.models.content import MediaAsset, Translation, page_views

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Campaign",
    "CampaignRegistration",
    "MediaAsset",
    "Translation",
    "page_views",
]
