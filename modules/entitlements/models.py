"""
Entitlement module data models.
"""

from typing import Optional

from pydantic import BaseModel, Field

from modules.subscriptions.models import SubscriptionPlan


class QuotaStatus(BaseModel):
    """Upload quota as shown to the user."""

    plan: SubscriptionPlan = Field(..., description="Effective plan")
    used: int = Field(..., ge=0, description="Uploads counted for this identity")
    limit: Optional[int] = Field(None, description="None means unlimited")
    remaining: Optional[int] = Field(None, description="None means unlimited")
    can_upload: bool

    model_config = {"frozen": True}
