"""
User Preferences Routes

All endpoints act on the caller's own preferences, keyed by stable id.
"""

from typing import Any, Dict
from fastapi import APIRouter, Body, Depends

from ..deps import get_current_user_dep, get_preferences_service
from ...domain.models import ActorContext
from ...services.preferences_service import PreferencesService

router = APIRouter()


@router.get("")
async def get_preferences(
    actor: ActorContext = Depends(get_current_user_dep),
    service: PreferencesService = Depends(get_preferences_service),
):
    """Created with defaults on first read"""
    return service.get_preferences(actor.stable_id)


@router.put("")
async def update_preferences(
    updates: Dict[str, Any] = Body(...),
    actor: ActorContext = Depends(get_current_user_dep),
    service: PreferencesService = Depends(get_preferences_service),
):
    preferences = service.update_preferences(actor.stable_id, updates)
    return {"message": "Preferences updated successfully", "preferences": preferences}


@router.post("/reset")
async def reset_preferences(
    actor: ActorContext = Depends(get_current_user_dep),
    service: PreferencesService = Depends(get_preferences_service),
):
    preferences = service.reset_preferences(actor.stable_id)
    return {"message": "Preferences reset to default", "preferences": preferences}


@router.get("/{section}")
async def get_section(
    section: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: PreferencesService = Depends(get_preferences_service),
):
    return service.get_section(actor.stable_id, section)


@router.patch("/{section}")
async def update_section(
    section: str,
    updates: Dict[str, Any] = Body(...),
    actor: ActorContext = Depends(get_current_user_dep),
    service: PreferencesService = Depends(get_preferences_service),
):
    preferences = service.update_section(actor.stable_id, section, updates)
    return {"message": f"{section} preferences updated successfully", "preferences": preferences}
