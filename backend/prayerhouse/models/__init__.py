"""Models package - Import all models for SQLAlchemy registration."""
from prayerhouse.models.profile import Profile
from prayerhouse.models.prayer import Prayer, PrayerParticipation, PrayerComment, PrayerStatus
from prayerhouse.models.gratitude import GratitudeEntry, GratitudeEmpathy
from prayerhouse.models.mission import Mission, MissionImage, MissionDailyEntry, MissionDailyImage

__all__ = [
    "Profile",
    "Prayer",
    "PrayerParticipation",
    "PrayerComment",
    "PrayerStatus",
    "GratitudeEntry",
    "GratitudeEmpathy",
    "Mission",
    "MissionImage",
    "MissionDailyEntry",
    "MissionDailyImage",
]
