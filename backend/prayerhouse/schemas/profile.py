"""
Pydantic schemas for Profile entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from prayerhouse.schemas.prayer import MyPrayerSummary


class ProfileUpdate(BaseModel):
    """Schema for profile update."""
    name: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    church: Optional[str] = None
    is_public: Optional[bool] = None


class ProfileResponse(BaseModel):
    """Schema for profile response."""
    id: str
    name: str
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    church: Optional[str] = None
    profile_completed: bool
    is_public: bool

    class Config:
        from_attributes = True


class ProfileSummaryResponse(BaseModel):
    """Profile page data: profile, gratitude streak and own prayers."""
    profile: ProfileResponse
    gratitude_streak: int
    prayers: List[MyPrayerSummary] = []
