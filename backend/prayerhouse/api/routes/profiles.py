"""
Profile routes for the current user.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from prayerhouse.db.session import get_db
from prayerhouse.schemas.profile import ProfileUpdate, ProfileResponse, ProfileSummaryResponse
from prayerhouse.services import profile_service
from prayerhouse.services.storage_service import StorageBucket, get_storage
from prayerhouse.api.dependencies import CurrentUser, get_current_user

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileSummaryResponse)
async def get_my_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Profile page: profile, gratitude streak and my prayers."""
    summary = profile_service.get_profile_summary(current_user.id, current_user.name, db)
    summary["profile"] = ProfileResponse.model_validate(summary["profile"])
    return summary


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return profile_service.update_profile(
        current_user.id, current_user.name, profile_data.model_dump(exclude_unset=True), db
    )


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_account(
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageBucket = Depends(get_storage),
    db: Session = Depends(get_db)
):
    """Delete my account and everything I wrote."""
    profile_service.delete_account(current_user.id, storage, db)
    return None
