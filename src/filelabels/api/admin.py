"""Admin settings API endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..exceptions import LabelValidationError
from ..settings import LabelSettings
from .schemas import AdminSettingsResponse, MaxLabelsUpdate
from .session import get_current_user_id, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def require_admin(
    user_id: Optional[str] = Depends(get_current_user_id),
    settings: LabelSettings = Depends(get_settings),
) -> str:
    """Allow only users listed in the admin_users config"""
    if not settings.is_admin(user_id):
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user_id


@router.get("/settings", response_model=AdminSettingsResponse)
async def get_admin_settings(
    admin: str = Depends(require_admin),
    settings: LabelSettings = Depends(get_settings),
):
    """Get current admin settings"""
    return AdminSettingsResponse(max_labels_per_user=settings.max_labels_per_user)


@router.put("/settings/max-labels", response_model=AdminSettingsResponse)
async def set_max_labels_per_user(
    update: MaxLabelsUpdate,
    admin: str = Depends(require_admin),
    settings: LabelSettings = Depends(get_settings),
):
    """Update the maximum number of labels per user"""

    try:
        value = settings.set_max_labels_per_user(update.value)
    except LabelValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Admin updated max labels per user", extra={"admin": admin, "max_labels_per_user": value})
    return AdminSettingsResponse(max_labels_per_user=value)
