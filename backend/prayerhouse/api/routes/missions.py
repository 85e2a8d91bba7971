"""
Mission report routes: missions, thumbnails, support info and daily entries.
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from prayerhouse.db.session import get_db
from prayerhouse.schemas.mission import (
    MissionCreate, MissionUpdate, MissionResponse, ImageResponse, SupportInfoResponse,
    DailyEntryCreate, DailyEntryUpdate, DailyEntryResponse
)
from prayerhouse.services import mission_service
from prayerhouse.services.mission_service import ImageUpload
from prayerhouse.services.storage_service import StorageBucket, get_storage
from prayerhouse.api.dependencies import CurrentUser, get_current_user, get_optional_user

router = APIRouter(prefix="/missions", tags=["missions"])


async def read_uploads(files: List[UploadFile]) -> List[ImageUpload]:
    """Read multipart files into memory, skipping empty form slots."""
    uploads = []
    for file in files:
        if not file.filename:
            continue
        uploads.append(ImageUpload(
            filename=file.filename,
            content_type=file.content_type,
            data=await file.read()
        ))
    return uploads


def _viewer_id(current_user: Optional[CurrentUser]) -> Optional[str]:
    return current_user.id if current_user else None


@router.get("", response_model=List[MissionResponse])
async def get_missions(
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """List all missions, newest first."""
    return mission_service.get_missions(db, storage, viewer_id=_viewer_id(current_user))


@router.post("", response_model=MissionResponse, status_code=status.HTTP_201_CREATED)
async def create_mission(
    mission_data: MissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Create a mission. The thumbnail is uploaded separately."""
    mission = mission_service.create_mission(current_user.id, mission_data, db)
    return mission_service.get_mission_by_id(mission.id, db, storage, viewer_id=current_user.id)


@router.get("/{mission_id}", response_model=MissionResponse)
async def get_mission(
    mission_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    mission = mission_service.get_mission_by_id(mission_id, db, storage, viewer_id=_viewer_id(current_user))
    if not mission:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="선교 일기서를 찾을 수 없습니다."
        )
    return mission


@router.put("/{mission_id}", response_model=MissionResponse)
async def update_mission(
    mission_id: str,
    mission_data: MissionUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Update a mission (owner only)."""
    mission_service.update_mission(mission_id, current_user.id, mission_data, db)
    return mission_service.get_mission_by_id(mission_id, db, storage, viewer_id=current_user.id)


@router.delete("/{mission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mission(
    mission_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Delete a mission with its daily entries and images (owner only)."""
    mission_service.delete_mission(mission_id, current_user.id, storage, db)
    return None


@router.put("/{mission_id}/images", response_model=List[ImageResponse])
async def replace_mission_images(
    mission_id: str,
    images: List[UploadFile] = File(default=[]),
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Replace the mission thumbnail. Sending no file clears it."""
    uploads = await read_uploads(images)
    urls = mission_service.replace_mission_images(mission_id, current_user.id, uploads, storage, db)
    return [{"url": url} for url in urls]


@router.get("/{mission_id}/support", response_model=SupportInfoResponse)
async def get_support_info(
    mission_id: str,
    db: Session = Depends(get_db)
):
    return mission_service.get_support_info(mission_id, db)


@router.get("/{mission_id}/daily", response_model=List[DailyEntryResponse])
async def get_daily_entries(
    mission_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Daily entries ordered by day number."""
    return mission_service.get_daily_entries(mission_id, db, storage, viewer_id=_viewer_id(current_user))


@router.post("/{mission_id}/daily", response_model=DailyEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_daily_entry(
    mission_id: str,
    title: str = Form(""),
    content: str = Form(""),
    mood: str = Form("감사"),
    weather: str = Form("맑음"),
    activities: List[str] = Form([]),
    prayer_requests: Optional[str] = Form(None),
    thanksgiving: Optional[str] = Form(None),
    entry_date: Optional[date] = Form(None, alias="date"),
    images: List[UploadFile] = File(default=[]),
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Add the next day's entry with up to three photos (owner only).

    The day number is assigned by the server.
    """
    fields = DailyEntryCreate(
        title=title,
        content=content,
        mood=mood,
        weather=weather,
        activities=activities,
        prayer_requests=prayer_requests,
        thanksgiving=thanksgiving,
        date=entry_date
    )
    uploads = await read_uploads(images)
    return mission_service.create_daily_entry(mission_id, current_user.id, fields, uploads, storage, db)


@router.get("/{mission_id}/daily/{day}", response_model=DailyEntryResponse)
async def get_daily_entry(
    mission_id: str,
    day: int,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    entry = mission_service.get_daily_entry_by_day(
        mission_id, day, db, storage, viewer_id=_viewer_id(current_user)
    )
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="일일 기록을 찾을 수 없습니다."
        )
    return entry


@router.patch("/{mission_id}/daily/{entry_id}", response_model=DailyEntryResponse)
async def update_daily_entry(
    mission_id: str,
    entry_id: str,
    entry_data: DailyEntryUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    return mission_service.update_daily_entry(
        mission_id, entry_id, current_user.id, entry_data.model_dump(exclude_unset=True), storage, db
    )


@router.delete("/{mission_id}/daily/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_daily_entry(
    mission_id: str,
    entry_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    mission_service.delete_daily_entry(mission_id, entry_id, current_user.id, storage, db)
    return None
