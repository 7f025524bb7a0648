"""
Activity Log Schemas
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ActionType


class ActivityLogItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: str | None = Field(None, description="Admin id; null for email-link actions")
    action_type: ActionType
    target_type: str
    target_id: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="details")
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    items: list[ActivityLogItem]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=200)
