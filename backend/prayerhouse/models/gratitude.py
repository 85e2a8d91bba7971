"""
Gratitude journal models.
"""
from sqlalchemy import Column, String, Date, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from prayerhouse.db.base import BaseModel


class GratitudeEntry(BaseModel):
    """One gratitude entry per user per date."""
    __tablename__ = "gratitude_entries"

    user_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    text = Column(String(200), nullable=False)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    linked_prayer_id = Column(String(36), ForeignKey("prayers.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    empathies = relationship("GratitudeEmpathy", back_populates="entry", cascade="all, delete-orphan")

    # Unique constraint: one entry per user per date (writes upsert on this pair)
    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='uq_gratitude_user_date'),
    )


class GratitudeEmpathy(BaseModel):
    """Empathy ("like") left on a public gratitude entry."""
    __tablename__ = "gratitude_empathies"

    entry_id = Column(String(36), ForeignKey("gratitude_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    # Relationships
    entry = relationship("GratitudeEntry", back_populates="empathies")

    __table_args__ = (
        UniqueConstraint('entry_id', 'user_id', name='uq_gratitude_empathy_entry_user'),
    )
