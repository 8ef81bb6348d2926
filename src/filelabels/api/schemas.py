"""Pydantic schemas for API requests and responses"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Label schemas
class LabelValue(BaseModel):
    """Schema for setting a single label"""
    value: str = Field("", description="Label value (may be empty)")


class LabelsUpdate(BaseModel):
    """Schema for setting several labels on a file at once"""
    labels: Dict[str, str] = Field(..., description="Map of label key to value")


class BulkLabelsRequest(BaseModel):
    """Schema for fetching labels of many files"""
    model_config = ConfigDict(populate_by_name=True)

    file_ids: List[int] = Field(default_factory=list, alias="fileIds", description="File IDs to look up")


class LabelResponse(BaseModel):
    """Schema for label responses"""
    id: int
    file_id: int
    key: str
    value: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Admin schemas
class MaxLabelsUpdate(BaseModel):
    """Schema for changing the per-user label quota"""
    value: int = Field(..., description="New maximum number of labels per user")


class AdminSettingsResponse(BaseModel):
    """Schema for admin settings responses"""
    max_labels_per_user: int


# Common response schemas
class SuccessResponse(BaseModel):
    """Schema for success responses"""
    success: bool = True
