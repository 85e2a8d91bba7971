"""
Pydantic schemas for Mission entities.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from datetime import date as date_type


class MissionBase(BaseModel):
    """Base mission schema. Required-ness is checked by the form validator."""
    title: str = ""
    subtitle: Optional[str] = None
    type: str = "단기선교"
    region: str = "아시아"
    country: str = ""
    theme: str = "전도"
    priority: str = "일반"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = "<p></p>"
    missionary_name: str = ""
    is_anonymous: bool = False
    needs_support: bool = False
    support_goal: Optional[int] = None
    current_support: Optional[int] = None
    support_description: Optional[str] = None
    account_bank: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None
    is_completed: bool = False


class MissionCreate(MissionBase):
    """Schema for mission creation."""
    pass


class MissionUpdate(MissionBase):
    """Schema for mission update (the edit form resubmits every field)."""
    pass


class ImageResponse(BaseModel):
    """Public image reference."""
    url: str


class MissionResponse(BaseModel):
    """Schema for mission response."""
    id: str
    user_id: str
    title: str
    subtitle: Optional[str] = None
    type: str
    region: str
    country: str
    theme: str
    priority: str
    start_date: date
    end_date: date
    description: str
    missionary_name: str
    display_name: str
    is_anonymous: bool
    needs_support: bool
    support_goal: int
    current_support: int
    supporters: int
    support_description: Optional[str] = None
    account_bank: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None
    is_completed: bool
    completed_at: Optional[datetime] = None
    created_at: datetime
    images: List[ImageResponse] = []
    days: int = 0
    is_ended: bool = False
    can_edit: bool = False


class SupportInfoResponse(BaseModel):
    """Donation details shown on the support page. No payment is processed."""
    mission_id: str
    title: str
    display_name: str
    needs_support: bool
    support_goal: int = 0
    current_support: int = 0
    supporters: int = 0
    progress_percent: int = 0
    support_description: Optional[str] = None
    account_bank: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None


class DailyEntryBase(BaseModel):
    """Base daily entry schema."""
    title: str = ""
    content: str = ""
    mood: str = "감사"
    weather: str = "맑음"
    activities: List[str] = Field(default_factory=list)
    prayer_requests: Optional[str] = None
    thanksgiving: Optional[str] = None


class DailyEntryCreate(DailyEntryBase):
    """Schema for daily entry creation. Day number is assigned by the server."""
    date: Optional[date_type] = None


class DailyEntryUpdate(BaseModel):
    """Schema for daily entry update."""
    title: Optional[str] = None
    content: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None
    activities: Optional[List[str]] = None
    prayer_requests: Optional[str] = None
    thanksgiving: Optional[str] = None


class DailyEntryResponse(DailyEntryBase):
    """Schema for daily entry response."""
    id: str
    mission_id: str
    day: int
    date: date
    created_at: datetime
    updated_at: datetime
    images: List[ImageResponse] = []
    can_edit: bool = False
