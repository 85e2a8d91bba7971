"""
Profile service: fallback profile creation, edits, profile page summary and
account deletion.
"""
import logging
from datetime import date
from typing import Dict, Optional
import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from prayerhouse.core.errors import ValidationFailed, SaveFailed
from prayerhouse.core.utils import local_today
from prayerhouse.models.profile import Profile
from prayerhouse.models.gratitude import GratitudeEntry, GratitudeEmpathy
from prayerhouse.models.mission import Mission
from prayerhouse.models.prayer import Prayer, PrayerParticipation, PrayerComment
from prayerhouse.services import auth_admin_service, mission_service, prayer_service
from prayerhouse.services.gratitude_service import get_my_dates_with_entries
from prayerhouse.services.storage_service import StorageBucket
from prayerhouse.services.streak_service import current_streak

logger = logging.getLogger(__name__)

DEFAULT_NAME = "사용자"
GENDERS = ["male", "female"]


def get_or_create_profile(user_id: str, name: Optional[str], db: Session) -> Profile:
    """Load the user's profile, creating a completed public one if missing."""
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        return profile

    profile = Profile(
        id=user_id,
        name=name or DEFAULT_NAME,
        profile_completed=True,
        is_public=True,
    )
    db.add(profile)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create profile for {user_id}: {e}", exc_info=True)
        raise SaveFailed("프로필 생성에 실패했습니다.")
    db.refresh(profile)
    logger.info(f"Created fallback profile for {user_id}")
    return profile


def update_profile(user_id: str, name: Optional[str], updates: Dict, db: Session) -> Profile:
    profile = get_or_create_profile(user_id, name, db)

    if "name" in updates and not (updates["name"] or "").strip():
        raise ValidationFailed("이름을 입력해주세요.")
    if updates.get("gender") is not None and updates["gender"] not in GENDERS:
        raise ValidationFailed("성별을 선택해주세요.")

    for key, value in updates.items():
        if key == "is_public" and value is None:
            continue
        if key == "name":
            value = value.strip()
        elif key == "church" and value is not None:
            value = value.strip() or None
        setattr(profile, key, value)
    profile.profile_completed = True

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update profile {user_id}: {e}", exc_info=True)
        raise SaveFailed("수정에 실패했습니다.")
    db.refresh(profile)
    return profile


def get_profile_summary(user_id: str, name: Optional[str], db: Session, today: Optional[date] = None) -> Dict:
    """Profile page data: the profile, current gratitude streak and own prayers."""
    profile = get_or_create_profile(user_id, name, db)
    dates = get_my_dates_with_entries(user_id, db)
    return {
        "profile": profile,
        "gratitude_streak": current_streak(dates, today or local_today()),
        "prayers": prayer_service.get_my_prayers(user_id, db),
    }


def delete_account(
    user_id: str,
    storage: StorageBucket,
    db: Session,
    client: Optional[httpx.Client] = None
) -> None:
    """
    Delete the auth account, then the user's rows and stored images.
    Nothing local is removed if the auth service refuses.
    """
    auth_admin_service.delete_auth_user(user_id, client=client)

    mission_ids = [row[0] for row in db.query(Mission.id).filter(Mission.user_id == user_id).all()]
    for mission_id in mission_ids:
        mission_service.delete_mission(mission_id, user_id, storage, db)

    try:
        for prayer in db.query(Prayer).filter(Prayer.user_id == user_id).all():
            db.delete(prayer)
        for entry in db.query(GratitudeEntry).filter(GratitudeEntry.user_id == user_id).all():
            db.delete(entry)
        db.flush()
        db.query(GratitudeEmpathy).filter(GratitudeEmpathy.user_id == user_id).delete(synchronize_session=False)
        db.query(PrayerParticipation).filter(PrayerParticipation.user_id == user_id).delete(synchronize_session=False)
        db.query(PrayerComment).filter(PrayerComment.user_id == user_id).delete(synchronize_session=False)
        db.query(Profile).filter(Profile.id == user_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to remove local data of {user_id}: {e}", exc_info=True)
        raise SaveFailed("계정 삭제에 실패했습니다")

    logger.info(f"Account {user_id} deleted ({len(mission_ids)} mission(s))")
