"""
Prayer request service: prayers, participation and comments.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Set
from sqlalchemy import distinct, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from prayerhouse.core.errors import ValidationFailed, PermissionDenied, NotFound, SaveFailed
from prayerhouse.core.utils import local_today, service_timezone
from prayerhouse.models.prayer import Prayer, PrayerStatus, PrayerParticipation, PrayerComment
from prayerhouse.schemas.prayer import PrayerCreate, CommentCreate

logger = logging.getLogger(__name__)

CATEGORIES = ["건강", "가족", "학업", "직장", "교회", "사역", "진로", "관계", "재정", "기타"]
PRIORITIES = ["일반", "긴급", "감사"]

EXCERPT_LENGTH = 80
ANONYMOUS_NAME = "익명"


def excerpt(content: str) -> str:
    """First 80 characters of the content, with an ellipsis when cut."""
    content = content or ""
    if len(content) <= EXCERPT_LENGTH:
        return content
    return content[:EXCERPT_LENGTH] + "..."


def author_label(prayer: Prayer) -> str:
    if prayer.is_anonymous or not prayer.author_name:
        return ANONYMOUS_NAME
    return prayer.author_name


def _validate_choices(category: Optional[str], priority: Optional[str]) -> None:
    if category is not None and category not in CATEGORIES:
        raise ValidationFailed("카테고리를 선택해주세요.")
    if priority is not None and priority not in PRIORITIES:
        raise ValidationFailed("우선순위를 선택해주세요.")


def _get_prayer_or_404(prayer_id: str, db: Session) -> Prayer:
    prayer = db.query(Prayer).filter(Prayer.id == prayer_id).first()
    if not prayer:
        raise NotFound("기도제목을 찾을 수 없습니다.")
    return prayer


def _participation_maps(prayer_ids: List[str], viewer_id: Optional[str], db: Session):
    count_map: Dict[str, int] = {}
    viewer_set: Set[str] = set()
    if not prayer_ids:
        return count_map, viewer_set

    rows = db.query(PrayerParticipation.prayer_id, PrayerParticipation.user_id).filter(
        PrayerParticipation.prayer_id.in_(prayer_ids)
    ).all()
    for prayer_id, participant_id in rows:
        count_map[prayer_id] = count_map.get(prayer_id, 0) + 1
        if viewer_id and participant_id == viewer_id:
            viewer_set.add(prayer_id)
    return count_map, viewer_set


def _prayer_to_dict(prayer: Prayer, count_map: Dict[str, int], viewer_set: Set[str],
                    viewer_id: Optional[str]) -> Dict:
    return {
        "id": prayer.id,
        "title": prayer.title,
        "content": prayer.content,
        "excerpt": excerpt(prayer.content),
        "category": prayer.category,
        "priority": prayer.priority,
        "status": prayer.status,
        "is_anonymous": prayer.is_anonymous,
        "author": author_label(prayer),
        "allow_comments": prayer.allow_comments,
        "prayer_count": count_map.get(prayer.id, 0),
        "user_prayed": prayer.id in viewer_set,
        "is_owner": bool(viewer_id) and prayer.user_id == viewer_id,
        "created_at": prayer.created_at,
        "updated_at": prayer.updated_at,
    }


def create_prayer(user_id: str, author_name: str, payload: PrayerCreate, db: Session) -> Dict:
    """Register a prayer request."""
    if not payload.title.strip() or not payload.content.strip():
        raise ValidationFailed("제목과 내용을 입력해주세요.")
    _validate_choices(payload.category, payload.priority)

    prayer = Prayer(
        user_id=user_id,
        title=payload.title.strip(),
        content=payload.content.strip(),
        category=payload.category,
        priority=payload.priority,
        status=PrayerStatus.ACTIVE,
        is_anonymous=payload.is_anonymous,
        author_name=None if payload.is_anonymous else author_name,
        allow_comments=payload.allow_comments,
    )
    db.add(prayer)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create prayer: {e}", exc_info=True)
        raise SaveFailed("등록 중 오류가 발생했습니다. 다시 시도해 주세요.")
    db.refresh(prayer)
    return _prayer_to_dict(prayer, {}, set(), user_id)


def list_prayers(
    db: Session,
    viewer_id: Optional[str] = None,
    status: Optional[PrayerStatus] = None,
    category: Optional[str] = None,
    limit: Optional[int] = None
) -> List[Dict]:
    """
    Prayers newest first, with participation counts.
    A status of None lists every status.
    """
    query = db.query(Prayer)
    if status is not None:
        query = query.filter(Prayer.status == status)
    if category:
        query = query.filter(Prayer.category == category)
    query = query.order_by(Prayer.created_at.desc())
    if limit:
        query = query.limit(limit)
    prayers = query.all()

    count_map, viewer_set = _participation_maps([p.id for p in prayers], viewer_id, db)
    return [_prayer_to_dict(p, count_map, viewer_set, viewer_id) for p in prayers]


def list_answered_prayers(db: Session, viewer_id: Optional[str] = None, limit: Optional[int] = None) -> List[Dict]:
    return list_prayers(db, viewer_id=viewer_id, status=PrayerStatus.ANSWERED, limit=limit)


def get_prayer(prayer_id: str, db: Session, viewer_id: Optional[str] = None) -> Dict:
    prayer = _get_prayer_or_404(prayer_id, db)
    count_map, viewer_set = _participation_maps([prayer.id], viewer_id, db)
    return _prayer_to_dict(prayer, count_map, viewer_set, viewer_id)


def update_prayer(prayer_id: str, user_id: str, updates: Dict, db: Session) -> Dict:
    """
    Partially update a prayer. Owner-only.
    Status moves only from active to answered.
    """
    prayer = _get_prayer_or_404(prayer_id, db)
    if prayer.user_id != user_id:
        raise PermissionDenied("작성자만 수정할 수 있습니다.")

    for key in ("title", "content"):
        if key in updates and not (updates[key] or "").strip():
            raise ValidationFailed("제목과 내용을 입력해주세요.")
    _validate_choices(updates.get("category"), updates.get("priority"))

    new_status = updates.get("status")
    if new_status is not None and PrayerStatus(new_status) == PrayerStatus.ACTIVE \
            and prayer.status == PrayerStatus.ANSWERED:
        raise ValidationFailed("응답된 기도제목은 다시 진행 중으로 되돌릴 수 없습니다.")

    for key, value in updates.items():
        if value is None:
            continue
        if isinstance(value, str) and key in ("title", "content"):
            value = value.strip()
        if key == "status":
            value = PrayerStatus(value)
        setattr(prayer, key, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update prayer {prayer_id}: {e}", exc_info=True)
        raise SaveFailed("수정에 실패했습니다.")
    db.refresh(prayer)
    return get_prayer(prayer_id, db, viewer_id=user_id)


def mark_answered(prayer_id: str, user_id: str, db: Session) -> Dict:
    return update_prayer(prayer_id, user_id, {"status": PrayerStatus.ANSWERED}, db)


def delete_prayer(prayer_id: str, user_id: str, db: Session) -> None:
    """Delete a prayer with its participations and comments. Owner-only."""
    prayer = _get_prayer_or_404(prayer_id, db)
    if prayer.user_id != user_id:
        raise PermissionDenied("작성자만 삭제할 수 있습니다.")
    try:
        db.delete(prayer)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete prayer {prayer_id}: {e}", exc_info=True)
        raise SaveFailed("삭제에 실패했습니다.")


def count_participations(prayer_id: str, db: Session) -> int:
    return db.query(PrayerParticipation).filter(PrayerParticipation.prayer_id == prayer_id).count()


def _local_day_bounds(day: date):
    """UTC-naive [start, end) of a local calendar day, matching stored created_at values."""
    start = datetime.combine(day, time.min, tzinfo=service_timezone())
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=service_timezone())
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def count_today_participants(db: Session, today: Optional[date] = None) -> int:
    """Number of distinct users who marked "I prayed" during the local day."""
    start, end = _local_day_bounds(today or local_today())
    return db.query(func.count(distinct(PrayerParticipation.user_id))).filter(
        PrayerParticipation.created_at >= start,
        PrayerParticipation.created_at < end
    ).scalar() or 0


def toggle_participation(prayer_id: str, user_id: str, db: Session) -> bool:
    """
    Toggle the user's "I prayed" mark.
    Returns True when the mark is now set.
    """
    _get_prayer_or_404(prayer_id, db)
    existing = db.query(PrayerParticipation).filter(
        PrayerParticipation.prayer_id == prayer_id,
        PrayerParticipation.user_id == user_id
    ).first()

    if existing:
        db.delete(existing)
        db.commit()
        return False

    db.add(PrayerParticipation(prayer_id=prayer_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
    return True


def _comment_to_dict(comment: PrayerComment, viewer_id: Optional[str]) -> Dict:
    return {
        "id": comment.id,
        "prayer_id": comment.prayer_id,
        "content": comment.content,
        "author": comment.author_name or ANONYMOUS_NAME,
        "is_mine": bool(viewer_id) and comment.user_id == viewer_id,
        "created_at": comment.created_at,
    }


def list_comments(prayer_id: str, db: Session, viewer_id: Optional[str] = None) -> List[Dict]:
    """Comments of a prayer, newest first."""
    _get_prayer_or_404(prayer_id, db)
    comments = db.query(PrayerComment).filter(
        PrayerComment.prayer_id == prayer_id
    ).order_by(PrayerComment.created_at.desc()).all()
    return [_comment_to_dict(c, viewer_id) for c in comments]


def add_comment(prayer_id: str, user_id: str, author_name: str, payload: CommentCreate, db: Session) -> Dict:
    prayer = _get_prayer_or_404(prayer_id, db)
    if not prayer.allow_comments:
        raise PermissionDenied("댓글이 허용되지 않은 기도제목입니다.")
    content = (payload.content or "").strip()
    if not content:
        raise ValidationFailed("댓글 내용을 입력해주세요.")

    comment = PrayerComment(
        prayer_id=prayer_id,
        user_id=user_id,
        content=content,
        author_name=None if payload.is_anonymous else author_name,
    )
    db.add(comment)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to add comment on prayer {prayer_id}: {e}", exc_info=True)
        raise SaveFailed("등록 중 오류가 발생했습니다. 다시 시도해 주세요.")
    db.refresh(comment)
    return _comment_to_dict(comment, user_id)


def delete_comment(prayer_id: str, comment_id: str, user_id: str, db: Session) -> None:
    """Delete a comment. Only its author may do so."""
    comment = db.query(PrayerComment).filter(
        PrayerComment.id == comment_id,
        PrayerComment.prayer_id == prayer_id
    ).first()
    if not comment:
        raise NotFound("댓글을 찾을 수 없습니다.")
    if comment.user_id != user_id:
        raise PermissionDenied("작성자만 삭제할 수 있습니다.")
    db.delete(comment)
    db.commit()


def get_my_prayers(user_id: str, db: Session) -> List[Dict]:
    """The user's own prayers for the profile page, newest first."""
    prayers = db.query(Prayer).filter(Prayer.user_id == user_id).order_by(Prayer.created_at.desc()).all()
    count_map, _ = _participation_maps([p.id for p in prayers], None, db)
    return [
        {
            "id": p.id,
            "title": p.title,
            "status": p.status,
            "prayer_count": count_map.get(p.id, 0),
            "created_at": p.created_at,
        }
        for p in prayers
    ]
