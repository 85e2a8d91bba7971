"""
Prayer request routes: prayers, participation and comments.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from prayerhouse.core.errors import ValidationFailed
from prayerhouse.db.session import get_db
from prayerhouse.models.prayer import PrayerStatus
from prayerhouse.schemas.prayer import (
    PrayerCreate, PrayerUpdate, PrayerResponse, PrayerStatsResponse, ParticipationToggleResponse,
    CommentCreate, CommentResponse
)
from prayerhouse.services import prayer_service
from prayerhouse.api.dependencies import CurrentUser, get_current_user, get_optional_user

router = APIRouter(prefix="/prayers", tags=["prayers"])

ALL_STATUSES = "all"


@router.get("", response_model=List[PrayerResponse])
async def list_prayers(
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Prayers newest first, optionally by status ("all" by default) and category."""
    prayer_status = None
    if status_filter and status_filter != ALL_STATUSES:
        try:
            prayer_status = PrayerStatus(status_filter)
        except ValueError:
            raise ValidationFailed("상태 값이 올바르지 않습니다.")
    viewer_id = current_user.id if current_user else None
    return prayer_service.list_prayers(
        db, viewer_id=viewer_id, status=prayer_status, category=category, limit=limit
    )


@router.post("", response_model=PrayerResponse, status_code=status.HTTP_201_CREATED)
async def create_prayer(
    prayer_data: PrayerCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return prayer_service.create_prayer(current_user.id, current_user.name, prayer_data, db)


@router.get("/answered", response_model=List[PrayerResponse])
async def list_answered_prayers(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Answered prayers (testimonies)."""
    viewer_id = current_user.id if current_user else None
    return prayer_service.list_answered_prayers(db, viewer_id=viewer_id, limit=limit)


@router.get("/stats", response_model=PrayerStatsResponse)
async def get_prayer_stats(db: Session = Depends(get_db)):
    """Home page numbers: distinct users who prayed today."""
    return {"today_participants": prayer_service.count_today_participants(db)}


@router.get("/{prayer_id}", response_model=PrayerResponse)
async def get_prayer(
    prayer_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    viewer_id = current_user.id if current_user else None
    return prayer_service.get_prayer(prayer_id, db, viewer_id=viewer_id)


@router.put("/{prayer_id}", response_model=PrayerResponse)
async def update_prayer(
    prayer_id: str,
    prayer_data: PrayerUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a prayer (owner only)."""
    return prayer_service.update_prayer(
        prayer_id, current_user.id, prayer_data.model_dump(exclude_unset=True), db
    )


@router.post("/{prayer_id}/answered", response_model=PrayerResponse)
async def mark_answered(
    prayer_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return prayer_service.mark_answered(prayer_id, current_user.id, db)


@router.delete("/{prayer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prayer(
    prayer_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prayer_service.delete_prayer(prayer_id, current_user.id, db)
    return None


@router.post("/{prayer_id}/participation", response_model=ParticipationToggleResponse)
async def toggle_participation(
    prayer_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Toggle "I prayed for this"."""
    prayed = prayer_service.toggle_participation(prayer_id, current_user.id, db)
    return {
        "prayer_id": prayer_id,
        "prayed": prayed,
        "prayer_count": prayer_service.count_participations(prayer_id, db),
    }


@router.get("/{prayer_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    prayer_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    viewer_id = current_user.id if current_user else None
    return prayer_service.list_comments(prayer_id, db, viewer_id=viewer_id)


@router.post("/{prayer_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    prayer_id: str,
    comment_data: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return prayer_service.add_comment(prayer_id, current_user.id, current_user.name, comment_data, db)


@router.delete("/{prayer_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    prayer_id: str,
    comment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prayer_service.delete_comment(prayer_id, comment_id, current_user.id, db)
    return None
