"""
Pydantic schemas for Gratitude entities.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime


class GratitudeEntrySave(BaseModel):
    """Schema for saving (upserting) the entry of a date."""
    text: str
    is_public: bool = False
    linked_prayer_id: Optional[str] = None


class GratitudeEntryUpdate(BaseModel):
    """Schema for partial entry update."""
    text: Optional[str] = None
    is_public: Optional[bool] = None
    linked_prayer_id: Optional[str] = None


class GratitudeEntryResponse(BaseModel):
    """Schema for the owner's view of an entry."""
    id: str
    user_id: str
    date: date
    text: str
    is_public: bool
    linked_prayer_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    writable: bool = False

    class Config:
        from_attributes = True


class PublicGratitudeEntryResponse(BaseModel):
    """Anonymized public entry. Owner identity is never returned."""
    id: str
    user_id: str = ""
    date: date
    text: str
    is_public: bool = True
    linked_prayer_id: Optional[str] = None
    created_at: datetime
    empathy_count: int = 0
    user_empathized: bool = False


class EmpathyToggleResponse(BaseModel):
    """Schema for empathy toggle result."""
    entry_id: str
    empathized: bool
    empathy_count: int


class GratitudeDatesResponse(BaseModel):
    """Date-keys the user has entries for."""
    dates: List[str]


class GratitudeCalendarResponse(BaseModel):
    """Calendar month view with streaks and completion."""
    year: int
    month: int
    today: str
    dates: List[str]
    month_entry_count: int
    days_in_month: int
    completion_ratio: float
    glow_opacity: float
    is_full_month: bool
    current_streak: int
    longest_streak: int
