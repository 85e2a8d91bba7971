"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from prayerhouse.api.routes import gratitude, missions, prayers, profiles

api_router = APIRouter()

# Include all route modules
api_router.include_router(gratitude.router)
api_router.include_router(missions.router)
api_router.include_router(prayers.router)
api_router.include_router(profiles.router)
