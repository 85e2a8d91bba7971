"""
Prayer request models.
"""
from sqlalchemy import Column, String, Text, Boolean, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from prayerhouse.db.base import BaseModel
import enum


class PrayerStatus(str, enum.Enum):
    """Prayer status enumeration. ACTIVE -> ANSWERED only."""
    ACTIVE = "active"
    ANSWERED = "answered"


class Prayer(BaseModel):
    """Prayer request shared with the community."""
    __tablename__ = "prayers"

    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False, default="일반")
    status = Column(
        SQLEnum(PrayerStatus, values_callable=lambda e: [m.value for m in e]),
        default=PrayerStatus.ACTIVE, nullable=False, index=True
    )
    is_anonymous = Column(Boolean, default=False, nullable=False)
    author_name = Column(String(50), nullable=True)
    allow_comments = Column(Boolean, default=True, nullable=False)

    # Relationships
    participations = relationship("PrayerParticipation", back_populates="prayer", cascade="all, delete-orphan")
    comments = relationship("PrayerComment", back_populates="prayer", cascade="all, delete-orphan")


class PrayerParticipation(BaseModel):
    """Participation ("I prayed for this"), one per user per prayer."""
    __tablename__ = "prayer_participations"

    prayer_id = Column(String(36), ForeignKey("prayers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    # Relationships
    prayer = relationship("Prayer", back_populates="participations")

    __table_args__ = (
        UniqueConstraint('prayer_id', 'user_id', name='uq_prayer_participation_prayer_user'),
    )


class PrayerComment(BaseModel):
    """Comment on a prayer, deletable only by its author."""
    __tablename__ = "prayer_comments"

    prayer_id = Column(String(36), ForeignKey("prayers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_name = Column(String(50), nullable=True)  # NULL when written anonymously

    # Relationships
    prayer = relationship("Prayer", back_populates="comments")
