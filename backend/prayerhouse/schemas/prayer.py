"""
Pydantic schemas for Prayer entities.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from prayerhouse.models.prayer import PrayerStatus


class PrayerCreate(BaseModel):
    """Schema for prayer creation."""
    title: str
    content: str
    category: str = "기타"
    priority: str = "일반"
    is_anonymous: bool = False
    allow_comments: bool = True


class PrayerUpdate(BaseModel):
    """Schema for prayer update."""
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[PrayerStatus] = None
    allow_comments: Optional[bool] = None


class PrayerResponse(BaseModel):
    """Schema for prayer response. Owner id is not exposed."""
    id: str
    title: str
    content: str
    excerpt: str
    category: str
    priority: str
    status: PrayerStatus
    is_anonymous: bool
    author: str
    allow_comments: bool
    prayer_count: int = 0
    user_prayed: bool = False
    is_owner: bool = False
    created_at: datetime
    updated_at: datetime


class ParticipationToggleResponse(BaseModel):
    """Schema for participation toggle result."""
    prayer_id: str
    prayed: bool
    prayer_count: int


class PrayerStatsResponse(BaseModel):
    """Schema for the home page prayer statistics."""
    today_participants: int


class CommentCreate(BaseModel):
    """Schema for comment creation."""
    content: str
    is_anonymous: bool = False


class CommentResponse(BaseModel):
    """Schema for comment response."""
    id: str
    prayer_id: str
    content: str
    author: str
    is_mine: bool = False
    created_at: datetime


class MyPrayerSummary(BaseModel):
    """Own prayer as listed on the profile page."""
    id: str
    title: str
    status: PrayerStatus
    prayer_count: int = 0
    created_at: datetime
