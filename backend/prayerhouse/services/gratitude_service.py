"""
Gratitude journal repository: entries keyed by (user, date) and empathies.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Union
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from prayerhouse.core.config import settings
from prayerhouse.core.errors import ValidationFailed, PermissionDenied, NotFound, SaveFailed
from prayerhouse.core.utils import to_date_key, from_date_key, local_today, is_writable_date
from prayerhouse.models.gratitude import GratitudeEntry, GratitudeEmpathy
from prayerhouse.models.prayer import Prayer

logger = logging.getLogger(__name__)

CHAR_LIMIT = settings.GRATITUDE_CHAR_LIMIT


def get_char_limit() -> int:
    return CHAR_LIMIT


def _truncate(text: str) -> str:
    return str(text)[:CHAR_LIMIT]


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, str):
        try:
            return from_date_key(value)
        except ValueError:
            raise ValidationFailed("날짜 형식이 올바르지 않습니다.")
    return value


def _check_writable(entry_date: date, today: Optional[date]) -> None:
    if not is_writable_date(to_date_key(entry_date), today or local_today()):
        raise ValidationFailed("오늘과 어제의 감사일기만 작성할 수 있습니다.")


def _check_linked_prayer(linked_prayer_id: Optional[str], db: Session) -> None:
    if linked_prayer_id and not db.query(Prayer.id).filter(Prayer.id == linked_prayer_id).first():
        raise ValidationFailed("연결할 기도제목을 찾을 수 없습니다.")


def get_my_entries(user_id: str, db: Session) -> List[GratitudeEntry]:
    """All of the user's entries, newest date first."""
    return db.query(GratitudeEntry).filter(
        GratitudeEntry.user_id == user_id
    ).order_by(GratitudeEntry.date.desc()).all()


def get_my_entry_by_date(user_id: str, entry_date: Union[date, str], db: Session) -> Optional[GratitudeEntry]:
    """Get the user's entry for a date, if any."""
    return db.query(GratitudeEntry).filter(
        GratitudeEntry.user_id == user_id,
        GratitudeEntry.date == _as_date(entry_date)
    ).first()


def save_gratitude_entry(
    user_id: str,
    entry_date: Union[date, str],
    text: str,
    is_public: bool,
    linked_prayer_id: Optional[str] = None,
    db: Session = None,
    today: Optional[date] = None
) -> GratitudeEntry:
    """
    Save the entry of a date (upsert on user_id + date).

    Text is truncated to the character limit here regardless of what the
    client already enforced. Only today and yesterday are writable.
    """
    entry_date = _as_date(entry_date)
    clean_text = (text or "").strip()
    if not clean_text:
        raise ValidationFailed("감사할 내용을 적어주세요.")
    _check_writable(entry_date, today)
    _check_linked_prayer(linked_prayer_id, db)

    values = {
        "text": _truncate(clean_text),
        "is_public": bool(is_public),
        "linked_prayer_id": linked_prayer_id or None,
        "updated_at": datetime.utcnow(),
    }

    for attempt in range(2):
        entry = get_my_entry_by_date(user_id, entry_date, db)
        try:
            if entry:
                for key, value in values.items():
                    setattr(entry, key, value)
            else:
                entry = GratitudeEntry(user_id=user_id, date=entry_date, **values)
                db.add(entry)
            db.commit()
            db.refresh(entry)
            return entry
        except IntegrityError:
            # Another request inserted the same (user, date) first; retry as an update
            db.rollback()
            logger.info(f"Gratitude upsert race for user {user_id} on {entry_date}, retrying")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save gratitude entry: {e}", exc_info=True)
            raise SaveFailed("저장에 실패했습니다.")

    raise SaveFailed("저장에 실패했습니다.")


def update_gratitude_entry(
    entry_id: str,
    user_id: str,
    updates: Dict,
    db: Session,
    today: Optional[date] = None
) -> GratitudeEntry:
    """Partially update an entry. Owner-only, and only while its date is writable."""
    entry = db.query(GratitudeEntry).filter(GratitudeEntry.id == entry_id).first()
    if not entry:
        raise NotFound("감사일기를 찾을 수 없습니다.")
    if entry.user_id != user_id:
        raise PermissionDenied("작성자만 수정할 수 있습니다.")
    _check_writable(entry.date, today)

    if "text" in updates and updates["text"] is not None:
        clean_text = str(updates["text"]).strip()
        if not clean_text:
            raise ValidationFailed("감사할 내용을 적어주세요.")
        entry.text = _truncate(clean_text)
    if "is_public" in updates and updates["is_public"] is not None:
        entry.is_public = bool(updates["is_public"])
    if "linked_prayer_id" in updates:
        _check_linked_prayer(updates["linked_prayer_id"], db)
        entry.linked_prayer_id = updates["linked_prayer_id"] or None
    entry.updated_at = datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update gratitude entry {entry_id}: {e}", exc_info=True)
        raise SaveFailed("저장에 실패했습니다.")
    db.refresh(entry)
    return entry


def _empathy_maps(entry_ids: List[str], viewer_id: Optional[str], db: Session):
    """Empathy counts per entry and the entries the viewer empathized with."""
    count_map: Dict[str, int] = {}
    viewer_set: Set[str] = set()
    if not entry_ids:
        return count_map, viewer_set

    rows = db.query(GratitudeEmpathy.entry_id, GratitudeEmpathy.user_id).filter(
        GratitudeEmpathy.entry_id.in_(entry_ids)
    ).all()
    for entry_id, empathizer_id in rows:
        count_map[entry_id] = count_map.get(entry_id, 0) + 1
        if viewer_id and empathizer_id == viewer_id:
            viewer_set.add(entry_id)
    return count_map, viewer_set


def _anonymize(entry: GratitudeEntry, count_map: Dict[str, int], viewer_set: Set[str]) -> Dict:
    return {
        "id": entry.id,
        "user_id": "",
        "date": entry.date,
        "text": entry.text,
        "is_public": True,
        "linked_prayer_id": None,
        "created_at": entry.created_at,
        "empathy_count": count_map.get(entry.id, 0),
        "user_empathized": entry.id in viewer_set,
    }


def get_public_entries(db: Session, viewer_id: Optional[str] = None) -> List[Dict]:
    """
    Public entries, newest first, with empathy counts.

    Empathies are fetched in one secondary query and merged in memory.
    Owner identity is stripped from every row.
    """
    entries = db.query(GratitudeEntry).filter(
        GratitudeEntry.is_public.is_(True)
    ).order_by(GratitudeEntry.date.desc(), GratitudeEntry.created_at.desc()).all()

    if not entries:
        return []

    count_map, viewer_set = _empathy_maps([e.id for e in entries], viewer_id, db)
    return [_anonymize(e, count_map, viewer_set) for e in entries]


def get_public_entry(entry_id: str, db: Session, viewer_id: Optional[str] = None) -> Optional[Dict]:
    """A single public entry in anonymized form. Private entries are not found."""
    entry = db.query(GratitudeEntry).filter(
        GratitudeEntry.id == entry_id,
        GratitudeEntry.is_public.is_(True)
    ).first()
    if not entry:
        return None
    count_map, viewer_set = _empathy_maps([entry.id], viewer_id, db)
    return _anonymize(entry, count_map, viewer_set)


def count_empathies(entry_id: str, db: Session) -> int:
    return db.query(GratitudeEmpathy).filter(GratitudeEmpathy.entry_id == entry_id).count()


def toggle_empathy(entry_id: str, user_id: str, db: Session) -> bool:
    """
    Toggle the user's empathy on a public entry.
    Returns True when empathy is now set, False when it was removed.
    """
    entry = db.query(GratitudeEntry).filter(
        GratitudeEntry.id == entry_id,
        GratitudeEntry.is_public.is_(True)
    ).first()
    if not entry:
        raise NotFound("감사일기를 찾을 수 없습니다.")

    existing = db.query(GratitudeEmpathy).filter(
        GratitudeEmpathy.entry_id == entry_id,
        GratitudeEmpathy.user_id == user_id
    ).first()

    if existing:
        db.delete(existing)
        db.commit()
        return False

    db.add(GratitudeEmpathy(entry_id=entry_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent toggle already inserted the row
        db.rollback()
    return True


def get_my_dates_with_entries(user_id: str, db: Session) -> List[str]:
    """Date-keys of all the user's entries (calendar input)."""
    rows = db.query(GratitudeEntry.date).filter(
        GratitudeEntry.user_id == user_id
    ).order_by(GratitudeEntry.date.desc()).all()
    return [to_date_key(row[0]) for row in rows]
