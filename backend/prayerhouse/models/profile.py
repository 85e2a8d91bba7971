"""
Profile model for community members.
"""
from sqlalchemy import Column, String, Date, Boolean
from prayerhouse.db.base import BaseModel


class Profile(BaseModel):
    """Profile row keyed by the auth provider's user id."""
    __tablename__ = "profiles"

    name = Column(String(50), nullable=False, default="사용자")
    birth_date = Column(Date, nullable=True)
    gender = Column(String(10), nullable=True)
    church = Column(String(100), nullable=True)
    profile_completed = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)
