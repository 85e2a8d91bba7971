"""
Mission report models: trip metadata, support fields, images and daily entries.
"""
from sqlalchemy import (
    Column, String, Date, DateTime, Text, Boolean, Integer, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from prayerhouse.db.base import BaseModel


class Mission(BaseModel):
    """Mission report owned by the user who created it."""
    __tablename__ = "missions"

    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    subtitle = Column(String(200), nullable=True)
    type = Column(String(20), nullable=False)
    region = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)
    theme = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)  # Rich text (HTML)
    missionary_name = Column(String(100), nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)

    # Support (display only, no payment is processed)
    needs_support = Column(Boolean, default=False, nullable=False)
    support_goal = Column(Integer, default=0, nullable=False)
    current_support = Column(Integer, default=0, nullable=False)
    supporters = Column(Integer, default=0, nullable=False)
    support_description = Column(Text, nullable=True)
    account_bank = Column(String(50), nullable=True)
    account_number = Column(String(50), nullable=True)
    account_holder = Column(String(50), nullable=True)

    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    images = relationship(
        "MissionImage", back_populates="mission", cascade="all, delete-orphan",
        order_by="MissionImage.sort_order"
    )
    daily_entries = relationship(
        "MissionDailyEntry", back_populates="mission", cascade="all, delete-orphan",
        order_by="MissionDailyEntry.day"
    )


class MissionImage(BaseModel):
    """Image metadata for a mission (object lives in the storage bucket)."""
    __tablename__ = "mission_images"

    mission_id = Column(String(36), ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_path = Column(String(500), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    mission = relationship("Mission", back_populates="images")


class MissionDailyEntry(BaseModel):
    """Daily diary entry of a mission, numbered by day."""
    __tablename__ = "mission_daily_entries"

    mission_id = Column(String(36), ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    day = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    mood = Column(String(20), nullable=False, default="감사")
    weather = Column(String(20), nullable=False, default="맑음")
    activities = Column(JSON, nullable=True)  # Ordered list of free-text tags
    prayer_requests = Column(Text, nullable=True)
    thanksgiving = Column(Text, nullable=True)

    # Relationships
    mission = relationship("Mission", back_populates="daily_entries")
    images = relationship(
        "MissionDailyImage", back_populates="daily_entry", cascade="all, delete-orphan",
        order_by="MissionDailyImage.sort_order"
    )

    # Unique constraint: one entry per day number per mission
    __table_args__ = (
        UniqueConstraint('mission_id', 'day', name='uq_mission_daily_day'),
    )


class MissionDailyImage(BaseModel):
    """Image metadata for a daily entry."""
    __tablename__ = "mission_daily_images"

    daily_entry_id = Column(
        String(36), ForeignKey("mission_daily_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    storage_path = Column(String(500), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    daily_entry = relationship("MissionDailyEntry", back_populates="images")
