"""
Gratitude journal routes: own entries, calendar and the public feed.
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from prayerhouse.db.session import get_db
from prayerhouse.core.utils import local_today, to_date_key, is_writable_date
from prayerhouse.models.gratitude import GratitudeEntry
from prayerhouse.schemas.gratitude import (
    GratitudeEntrySave, GratitudeEntryUpdate, GratitudeEntryResponse,
    PublicGratitudeEntryResponse, EmpathyToggleResponse,
    GratitudeDatesResponse, GratitudeCalendarResponse
)
from prayerhouse.services import gratitude_service
from prayerhouse.services.streak_service import build_calendar
from prayerhouse.api.dependencies import CurrentUser, get_current_user, get_optional_user

router = APIRouter(prefix="/gratitude", tags=["gratitude"])


def to_owner_response(entry: GratitudeEntry) -> GratitudeEntryResponse:
    response = GratitudeEntryResponse.model_validate(entry)
    response.writable = is_writable_date(to_date_key(entry.date), local_today())
    return response


@router.get("/me", response_model=List[GratitudeEntryResponse])
async def get_my_entries(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all of my entries, newest first."""
    entries = gratitude_service.get_my_entries(current_user.id, db)
    return [to_owner_response(e) for e in entries]


@router.get("/me/dates", response_model=GratitudeDatesResponse)
async def get_my_dates(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"dates": gratitude_service.get_my_dates_with_entries(current_user.id, db)}


@router.get("/me/calendar", response_model=GratitudeCalendarResponse)
async def get_my_calendar(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Month view with completion, glow and streaks (defaults to the current month)."""
    today = local_today()
    dates = gratitude_service.get_my_dates_with_entries(current_user.id, db)
    calendar = build_calendar(dates, year or today.year, month or today.month, today)
    return asdict(calendar)


@router.get("/me/{entry_date}", response_model=Optional[GratitudeEntryResponse])
async def get_my_entry(
    entry_date: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get my entry for a date-key (null when there is none)."""
    entry = gratitude_service.get_my_entry_by_date(current_user.id, entry_date, db)
    return to_owner_response(entry) if entry else None


@router.put("/me/{entry_date}", response_model=GratitudeEntryResponse)
async def save_my_entry(
    entry_date: str,
    entry_data: GratitudeEntrySave,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create or overwrite my entry for a date (today or yesterday only)."""
    entry = gratitude_service.save_gratitude_entry(
        current_user.id,
        entry_date,
        entry_data.text,
        entry_data.is_public,
        linked_prayer_id=entry_data.linked_prayer_id,
        db=db
    )
    return to_owner_response(entry)


@router.patch("/{entry_id}", response_model=GratitudeEntryResponse)
async def update_entry(
    entry_id: str,
    entry_data: GratitudeEntryUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    entry = gratitude_service.update_gratitude_entry(
        entry_id, current_user.id, entry_data.model_dump(exclude_unset=True), db
    )
    return to_owner_response(entry)


@router.get("/public", response_model=List[PublicGratitudeEntryResponse])
async def get_public_entries(
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Public feed. Owner identity is never included."""
    viewer_id = current_user.id if current_user else None
    return gratitude_service.get_public_entries(db, viewer_id=viewer_id)


@router.get("/public/{entry_id}", response_model=PublicGratitudeEntryResponse)
async def get_public_entry(
    entry_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    viewer_id = current_user.id if current_user else None
    entry = gratitude_service.get_public_entry(entry_id, db, viewer_id=viewer_id)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="감사일기를 찾을 수 없습니다."
        )
    return entry


@router.post("/{entry_id}/empathy", response_model=EmpathyToggleResponse)
async def toggle_empathy(
    entry_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Toggle my empathy on a public entry."""
    empathized = gratitude_service.toggle_empathy(entry_id, current_user.id, db)
    return {
        "entry_id": entry_id,
        "empathized": empathized,
        "empathy_count": gratitude_service.count_empathies(entry_id, db),
    }
