"""
Mission report repository: missions, their images and daily entries.

Listings fetch parent rows and child rows with separate queries and merge
them in memory by parent id. Writes that span storage and the datastore run
inside a Saga so uploaded objects are removed when a later step fails.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from prayerhouse.core.config import settings
from prayerhouse.core.errors import (
    ValidationFailed, PermissionDenied, NotFound, Conflict, SaveFailed, PartialWriteFailed
)
from prayerhouse.core.utils import local_today, service_timezone
from prayerhouse.models.mission import Mission, MissionImage, MissionDailyEntry, MissionDailyImage
from prayerhouse.schemas.mission import MissionBase, DailyEntryCreate
from prayerhouse.services.saga import Saga
from prayerhouse.services.storage_service import (
    StorageBucket, StorageError, mission_image_path, daily_image_path
)

logger = logging.getLogger(__name__)

MISSION_TYPES = ["단기선교", "장기선교", "의료선교", "교육선교", "구제선교", "전도선교", "문화선교", "기타"]
REGIONS = ["아시아", "아프리카", "유럽", "남미", "북미", "오세아니아"]
THEMES = ["전도", "의료", "교육", "구제", "건축", "문화교류", "어린이사역", "청소년사역"]
PRIORITIES = ["일반", "긴급", "특별"]
MOODS = ["감사", "기쁨", "평안", "설렘", "숙연함", "보람참", "도전적", "피곤함"]
WEATHERS = ["맑음", "구름많음", "흐림", "비", "더움", "선선함"]

EMPTY_DESCRIPTION = "<p></p>"
ANONYMOUS_NAME = "익명"
OWNER_ONLY_MESSAGE = "이 선교 일기서는 작성자만 편집할 수 있습니다."


class MissionAccess(str, enum.Enum):
    """Write surface of a mission for a given viewer."""
    ANONYMOUS_VIEWER = "anonymous-viewer"
    AUTHENTICATED_NON_OWNER = "authenticated-non-owner"
    OWNER = "owner"


@dataclass
class ImageUpload:
    """Image bytes received from the client."""
    filename: str
    content_type: str
    data: bytes


def mission_access(viewer_id: Optional[str], mission: Mission) -> MissionAccess:
    """Recomputed per request from the viewer id and the stored owner."""
    if not viewer_id:
        return MissionAccess.ANONYMOUS_VIEWER
    if mission.user_id and viewer_id == mission.user_id:
        return MissionAccess.OWNER
    return MissionAccess.AUTHENTICATED_NON_OWNER


def can_edit(viewer_id: Optional[str], mission: Mission) -> bool:
    return mission_access(viewer_id, mission) == MissionAccess.OWNER


def mask_missionary_name(mission: Mission) -> str:
    return ANONYMOUS_NAME if mission.is_anonymous else mission.missionary_name


def is_mission_ended(mission: Mission, now: Optional[datetime] = None) -> bool:
    """A mission ends at 23:59:59 local time on its end date."""
    tz = service_timezone()
    end = datetime.combine(mission.end_date, time(23, 59, 59), tzinfo=tz)
    now = now or datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    return end < now


def validate_mission_form(payload: MissionBase) -> None:
    """Reject an invalid mission form before anything is written."""
    if not payload.title.strip() or not payload.description or payload.description.strip() == EMPTY_DESCRIPTION:
        raise ValidationFailed("제목과 선교 개요를 입력해주세요.")
    if not payload.country.strip() or not payload.start_date or not payload.end_date:
        raise ValidationFailed("국가와 기간을 입력해주세요.")
    if payload.end_date < payload.start_date:
        raise ValidationFailed("종료일은 시작일 이후여야 합니다.")
    if not payload.missionary_name.strip():
        raise ValidationFailed("선교사 이름을 입력해주세요.")

    if payload.needs_support:
        if not payload.support_goal or payload.support_goal < settings.MIN_SUPPORT_GOAL:
            raise ValidationFailed(f"후원 목표 금액을 {settings.MIN_SUPPORT_GOAL:,}원 이상으로 설정해주세요.")
        if payload.current_support is not None and payload.current_support < 0:
            raise ValidationFailed("현재 모금액은 0원 이상이어야 합니다.")
        if payload.current_support and payload.current_support > payload.support_goal:
            raise ValidationFailed("현재 모금액은 목표 금액을 초과할 수 없습니다.")
        if not (payload.support_description or "").strip():
            raise ValidationFailed("후원 사용 목적을 입력해주세요.")
        if not payload.account_bank or not payload.account_number or not payload.account_holder:
            raise ValidationFailed("후원 계좌 정보를 모두 입력해주세요.")

    if payload.type not in MISSION_TYPES:
        raise ValidationFailed("선교 유형을 선택해주세요.")
    if payload.region not in REGIONS:
        raise ValidationFailed("지역을 선택해주세요.")
    if payload.theme not in THEMES:
        raise ValidationFailed("선교 주제를 선택해주세요.")
    if payload.priority not in PRIORITIES:
        raise ValidationFailed("우선순위를 선택해주세요.")


def validate_uploads(uploads: List[ImageUpload], max_count: int) -> None:
    """Check count, type and size of incoming images."""
    if len(uploads) > max_count:
        if max_count == 1:
            raise ValidationFailed("썸네일은 1장만 업로드할 수 있습니다.")
        raise ValidationFailed(f"최대 {max_count}장의 사진만 업로드할 수 있습니다.")
    for upload in uploads:
        if upload.content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ValidationFailed(f"이미지 파일만 업로드할 수 있습니다: {upload.filename}")
        if not upload.data:
            raise ValidationFailed(f"빈 이미지 파일입니다: {upload.filename}")
        if len(upload.data) > settings.MAX_UPLOAD_SIZE:
            raise ValidationFailed("이미지 용량이 5MB를 초과합니다. 더 작은 이미지를 사용해주세요.")


def _mission_values(payload: MissionBase) -> Dict:
    needs = payload.needs_support
    return {
        "title": payload.title.strip(),
        "subtitle": (payload.subtitle or "").strip() or None,
        "type": payload.type,
        "region": payload.region,
        "country": payload.country.strip(),
        "theme": payload.theme,
        "priority": payload.priority,
        "start_date": payload.start_date,
        "end_date": payload.end_date,
        "description": payload.description,
        "missionary_name": payload.missionary_name.strip(),
        "is_anonymous": payload.is_anonymous,
        "needs_support": needs,
        "support_goal": payload.support_goal if needs else 0,
        "current_support": (payload.current_support or 0) if needs else 0,
        "support_description": payload.support_description.strip() if needs else None,
        "account_bank": payload.account_bank if needs else None,
        "account_number": payload.account_number if needs else None,
        "account_holder": payload.account_holder if needs else None,
        "is_completed": payload.is_completed,
    }


def _get_mission_or_404(mission_id: str, db: Session) -> Mission:
    mission = db.query(Mission).filter(Mission.id == mission_id).first()
    if not mission:
        raise NotFound("선교 일기서를 찾을 수 없습니다.")
    return mission


def _require_owner(mission: Mission, user_id: str, message: str = OWNER_ONLY_MESSAGE) -> None:
    if not can_edit(user_id, mission):
        raise PermissionDenied(message)


def _mission_to_dict(mission: Mission, image_urls: List[str], days: int, viewer_id: Optional[str]) -> Dict:
    return {
        "id": mission.id,
        "user_id": mission.user_id,
        "title": mission.title,
        "subtitle": mission.subtitle,
        "type": mission.type,
        "region": mission.region,
        "country": mission.country,
        "theme": mission.theme,
        "priority": mission.priority,
        "start_date": mission.start_date,
        "end_date": mission.end_date,
        "description": mission.description,
        "missionary_name": mission.missionary_name,
        "display_name": mask_missionary_name(mission),
        "is_anonymous": mission.is_anonymous,
        "needs_support": mission.needs_support,
        "support_goal": mission.support_goal,
        "current_support": mission.current_support,
        "supporters": mission.supporters,
        "support_description": mission.support_description,
        "account_bank": mission.account_bank,
        "account_number": mission.account_number,
        "account_holder": mission.account_holder,
        "is_completed": mission.is_completed,
        "completed_at": mission.completed_at,
        "created_at": mission.created_at,
        "images": [{"url": url} for url in image_urls],
        "days": days,
        "is_ended": is_mission_ended(mission),
        "can_edit": can_edit(viewer_id, mission),
    }


def get_missions(db: Session, storage: StorageBucket, viewer_id: Optional[str] = None) -> List[Dict]:
    """
    List missions, newest first, with image URLs and daily-entry counts.

    Images and entry counts come from two secondary queries keyed by
    mission id and are merged in memory.
    """
    missions = db.query(Mission).order_by(Mission.created_at.desc()).all()
    if not missions:
        return []

    mission_ids = [m.id for m in missions]
    images = db.query(MissionImage.mission_id, MissionImage.storage_path).filter(
        MissionImage.mission_id.in_(mission_ids)
    ).order_by(MissionImage.sort_order).all()
    daily_rows = db.query(MissionDailyEntry.mission_id).filter(
        MissionDailyEntry.mission_id.in_(mission_ids)
    ).all()

    count_map: Dict[str, int] = {}
    for (mission_id,) in daily_rows:
        count_map[mission_id] = count_map.get(mission_id, 0) + 1

    img_map: Dict[str, List[str]] = {}
    for mission_id, storage_path in images:
        img_map.setdefault(mission_id, []).append(storage.get_public_url(storage_path))

    return [
        _mission_to_dict(m, img_map.get(m.id, []), count_map.get(m.id, 0), viewer_id)
        for m in missions
    ]


def get_mission_by_id(
    mission_id: str,
    db: Session,
    storage: StorageBucket,
    viewer_id: Optional[str] = None
) -> Optional[Dict]:
    """Single mission with ordered image URLs and daily-entry count."""
    mission = db.query(Mission).filter(Mission.id == mission_id).first()
    if not mission:
        return None

    paths = db.query(MissionImage.storage_path).filter(
        MissionImage.mission_id == mission_id
    ).order_by(MissionImage.sort_order).all()
    days = db.query(MissionDailyEntry).filter(MissionDailyEntry.mission_id == mission_id).count()

    return _mission_to_dict(mission, [storage.get_public_url(p[0]) for p in paths], days, viewer_id)


def _upload_step(saga: Saga, storage: StorageBucket, path: str, upload: ImageUpload) -> str:
    return saga.step(
        lambda: storage.upload(path, upload.data, content_type=upload.content_type),
        lambda stored: storage.remove([stored]),
        label=f"upload {path}"
    )


def create_mission(
    user_id: str,
    payload: MissionBase,
    db: Session,
    uploads: Optional[List[ImageUpload]] = None,
    storage: Optional[StorageBucket] = None
) -> Mission:
    """Create a mission, optionally with its thumbnail, as one unit."""
    validate_mission_form(payload)
    uploads = uploads or []
    validate_uploads(uploads, settings.MAX_MISSION_IMAGES)

    values = _mission_values(payload)
    mission = Mission(
        user_id=user_id,
        completed_at=datetime.utcnow() if payload.is_completed else None,
        **values
    )
    try:
        with Saga("create_mission") as saga:
            db.add(mission)
            db.flush()
            for index, upload in enumerate(uploads):
                path = _upload_step(saga, storage, mission_image_path(mission.id), upload)
                db.add(MissionImage(mission_id=mission.id, storage_path=path, sort_order=index))
            db.commit()
    except StorageError as e:
        db.rollback()
        raise SaveFailed(f"이미지 업로드 실패: {e}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create mission: {e}", exc_info=True)
        raise PartialWriteFailed("저장 실패")

    db.refresh(mission)
    logger.info(f"Mission {mission.id} created by {user_id}")
    return mission


def update_mission(mission_id: str, user_id: str, payload: MissionBase, db: Session) -> Mission:
    """Replace a mission's fields. Owner-only."""
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id, "작성자만 수정할 수 있습니다.")
    validate_mission_form(payload)

    was_completed = mission.is_completed
    for key, value in _mission_values(payload).items():
        setattr(mission, key, value)
    if payload.is_completed and not was_completed:
        mission.completed_at = datetime.utcnow()
    elif not payload.is_completed:
        mission.completed_at = None

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update mission {mission_id}: {e}", exc_info=True)
        raise SaveFailed("수정 실패")
    db.refresh(mission)
    return mission


def replace_mission_images(
    mission_id: str,
    user_id: str,
    uploads: List[ImageUpload],
    storage: StorageBucket,
    db: Session
) -> List[str]:
    """
    Replace the mission's images with the uploaded ones (empty list clears them).
    Old objects are removed only after the new rows are committed.
    """
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id, "작성자만 수정할 수 있습니다.")
    validate_uploads(uploads, settings.MAX_MISSION_IMAGES)

    old_images = db.query(MissionImage).filter(MissionImage.mission_id == mission_id).all()
    old_paths = [img.storage_path for img in old_images]
    new_paths: List[str] = []

    try:
        with Saga("replace_mission_images") as saga:
            for index, upload in enumerate(uploads):
                path = _upload_step(saga, storage, mission_image_path(mission_id), upload)
                new_paths.append(path)
                db.add(MissionImage(mission_id=mission_id, storage_path=path, sort_order=index))
            for img in old_images:
                db.delete(img)
            db.commit()
    except StorageError as e:
        db.rollback()
        raise SaveFailed(f"이미지 업로드 실패: {e}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to replace images of mission {mission_id}: {e}", exc_info=True)
        raise PartialWriteFailed("저장에 실패했습니다.")

    _remove_objects(storage, old_paths)
    return [storage.get_public_url(p) for p in new_paths]


def _remove_objects(storage: StorageBucket, paths: List[str]) -> None:
    """Best-effort object cleanup after rows are already gone."""
    if not paths:
        return
    try:
        storage.remove(paths)
    except (StorageError, OSError) as e:
        logger.error(f"Orphaned {len(paths)} object(s) after delete: {e}", exc_info=True)


def delete_mission(mission_id: str, user_id: str, storage: StorageBucket, db: Session) -> None:
    """
    Delete a mission with its images, daily entries and their images.
    Owner-only. Rows go first; objects are removed once the delete commits.
    """
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id, "작성자만 삭제할 수 있습니다.")

    paths = [row[0] for row in db.query(MissionImage.storage_path).filter(
        MissionImage.mission_id == mission_id
    ).all()]
    paths += [row[0] for row in db.query(MissionDailyImage.storage_path).join(
        MissionDailyEntry, MissionDailyImage.daily_entry_id == MissionDailyEntry.id
    ).filter(MissionDailyEntry.mission_id == mission_id).all()]

    try:
        db.delete(mission)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete mission {mission_id}: {e}", exc_info=True)
        raise SaveFailed("삭제에 실패했습니다.")

    _remove_objects(storage, paths)
    logger.info(f"Mission {mission_id} deleted with {len(paths)} object(s)")


def support_info(mission: Mission) -> Dict:
    """Donation details for the support page. Account data only when support is requested."""
    info = {
        "mission_id": mission.id,
        "title": mission.title,
        "display_name": mask_missionary_name(mission),
        "needs_support": mission.needs_support,
    }
    if not mission.needs_support:
        return info

    goal = mission.support_goal or 0
    current = mission.current_support or 0
    info.update({
        "support_goal": goal,
        "current_support": current,
        "supporters": mission.supporters or 0,
        "progress_percent": min(100, round(current / goal * 100)) if goal > 0 else 0,
        "support_description": mission.support_description,
        "account_bank": mission.account_bank,
        "account_number": mission.account_number,
        "account_holder": mission.account_holder,
    })
    return info


def get_support_info(mission_id: str, db: Session) -> Dict:
    return support_info(_get_mission_or_404(mission_id, db))


def _entry_to_dict(entry: MissionDailyEntry, image_urls: List[str], editable: bool) -> Dict:
    return {
        "id": entry.id,
        "mission_id": entry.mission_id,
        "day": entry.day,
        "date": entry.date,
        "title": entry.title,
        "content": entry.content,
        "mood": entry.mood,
        "weather": entry.weather,
        "activities": entry.activities or [],
        "prayer_requests": entry.prayer_requests,
        "thanksgiving": entry.thanksgiving,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
        "images": [{"url": url} for url in image_urls],
        "can_edit": editable,
    }


def get_daily_entries(
    mission_id: str,
    db: Session,
    storage: StorageBucket,
    viewer_id: Optional[str] = None
) -> List[Dict]:
    """Daily entries of a mission by day, with images merged in by entry id."""
    mission = _get_mission_or_404(mission_id, db)
    entries = db.query(MissionDailyEntry).filter(
        MissionDailyEntry.mission_id == mission_id
    ).order_by(MissionDailyEntry.day).all()
    if not entries:
        return []

    entry_ids = [e.id for e in entries]
    images = db.query(MissionDailyImage.daily_entry_id, MissionDailyImage.storage_path).filter(
        MissionDailyImage.daily_entry_id.in_(entry_ids)
    ).order_by(MissionDailyImage.sort_order).all()

    img_map: Dict[str, List[str]] = {}
    for entry_id, storage_path in images:
        img_map.setdefault(entry_id, []).append(storage.get_public_url(storage_path))

    editable = can_edit(viewer_id, mission)
    return [_entry_to_dict(e, img_map.get(e.id, []), editable) for e in entries]


def get_daily_entry_by_day(
    mission_id: str,
    day: int,
    db: Session,
    storage: StorageBucket,
    viewer_id: Optional[str] = None
) -> Optional[Dict]:
    """A mission's entry for a day number, or None."""
    mission = _get_mission_or_404(mission_id, db)
    entry = db.query(MissionDailyEntry).filter(
        MissionDailyEntry.mission_id == mission_id,
        MissionDailyEntry.day == day
    ).first()
    if not entry:
        return None

    paths = db.query(MissionDailyImage.storage_path).filter(
        MissionDailyImage.daily_entry_id == entry.id
    ).order_by(MissionDailyImage.sort_order).all()
    return _entry_to_dict(entry, [storage.get_public_url(p[0]) for p in paths], can_edit(viewer_id, mission))


def next_day_number(mission_id: str, db: Session) -> int:
    """max(existing days, 0) + 1"""
    current = db.query(func.max(MissionDailyEntry.day)).filter(
        MissionDailyEntry.mission_id == mission_id
    ).scalar()
    return (current or 0) + 1


def _clean_activities(activities: Optional[List[str]]) -> List[str]:
    return [a.strip() for a in (activities or []) if a and a.strip()]


def _validate_entry_choices(mood: Optional[str], weather: Optional[str]) -> None:
    if mood is not None and mood not in MOODS:
        raise ValidationFailed("기분을 선택해주세요.")
    if weather is not None and weather not in WEATHERS:
        raise ValidationFailed("날씨를 선택해주세요.")


def create_daily_entry(
    mission_id: str,
    user_id: str,
    fields: DailyEntryCreate,
    uploads: List[ImageUpload],
    storage: StorageBucket,
    db: Session,
    today: Optional[date] = None
) -> Dict:
    """
    Add the next day's entry to a mission. Owner-only.

    Images are uploaded first, then the entry and its image rows are
    committed together. Any failure removes the uploaded objects.
    """
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id)
    if not fields.title.strip() or not fields.content.strip():
        raise ValidationFailed("제목과 내용을 입력해주세요.")
    _validate_entry_choices(fields.mood, fields.weather)
    validate_uploads(uploads, settings.MAX_DAILY_IMAGES)

    paths: List[str] = []
    try:
        with Saga("create_daily_entry") as saga:
            for upload in uploads:
                paths.append(_upload_step(saga, storage, daily_image_path(mission_id), upload))

            entry = MissionDailyEntry(
                mission_id=mission_id,
                day=next_day_number(mission_id, db),
                date=fields.date or today or local_today(),
                title=fields.title.strip(),
                content=fields.content.strip(),
                mood=fields.mood or MOODS[0],
                weather=fields.weather or WEATHERS[0],
                activities=_clean_activities(fields.activities),
                prayer_requests=(fields.prayer_requests or "").strip() or None,
                thanksgiving=(fields.thanksgiving or "").strip() or None,
            )
            db.add(entry)
            db.flush()
            for index, path in enumerate(paths):
                db.add(MissionDailyImage(daily_entry_id=entry.id, storage_path=path, sort_order=index))
            db.commit()
    except StorageError as e:
        db.rollback()
        raise SaveFailed(f"이미지 업로드 실패: {e}")
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Duplicate day number on mission {mission_id}: {e}")
        raise Conflict("같은 일차의 기록이 이미 있습니다. 새로고침 후 다시 시도해주세요.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create daily entry on mission {mission_id}: {e}", exc_info=True)
        raise PartialWriteFailed("저장에 실패했습니다.")

    db.refresh(entry)
    return _entry_to_dict(entry, [storage.get_public_url(p) for p in paths], True)


def _get_entry_or_404(mission_id: str, entry_id: str, db: Session) -> MissionDailyEntry:
    entry = db.query(MissionDailyEntry).filter(
        MissionDailyEntry.id == entry_id,
        MissionDailyEntry.mission_id == mission_id
    ).first()
    if not entry:
        raise NotFound("일일 기록을 찾을 수 없습니다.")
    return entry


def update_daily_entry(
    mission_id: str,
    entry_id: str,
    user_id: str,
    fields: Dict,
    storage: StorageBucket,
    db: Session
) -> Dict:
    """Partially update a daily entry. Owner-only."""
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id)
    entry = _get_entry_or_404(mission_id, entry_id, db)

    for key in ("title", "content"):
        if key in fields and not (fields[key] or "").strip():
            raise ValidationFailed("제목과 내용을 입력해주세요.")
    _validate_entry_choices(fields.get("mood"), fields.get("weather"))

    for key, value in fields.items():
        if value is None and key in ("mood", "weather", "activities"):
            continue
        if key == "activities":
            value = _clean_activities(value)
        elif isinstance(value, str):
            value = value.strip()
            if key in ("prayer_requests", "thanksgiving"):
                value = value or None
        setattr(entry, key, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update daily entry {entry_id}: {e}", exc_info=True)
        raise SaveFailed("수정에 실패했습니다.")

    db.refresh(entry)
    paths = [img.storage_path for img in entry.images]
    return _entry_to_dict(entry, [storage.get_public_url(p) for p in paths], True)


def delete_daily_entry(
    mission_id: str,
    entry_id: str,
    user_id: str,
    storage: StorageBucket,
    db: Session
) -> None:
    """Delete a daily entry and its images. Owner-only."""
    mission = _get_mission_or_404(mission_id, db)
    _require_owner(mission, user_id)
    entry = _get_entry_or_404(mission_id, entry_id, db)
    paths = [img.storage_path for img in entry.images]

    try:
        db.delete(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete daily entry {entry_id}: {e}", exc_info=True)
        raise SaveFailed("삭제에 실패했습니다.")

    _remove_objects(storage, paths)
