"""
AI Clipboard Backend — Subscription Schemas
=============================================

What:  Tier definitions and the per-user subscription state.
How:   SubscriptionTier instances are static configuration (see
       SUBSCRIPTION_TIERS in services.subscription_service); SubscriptionState
       is the mutable, persisted part.
"""

from typing import FrozenSet, Literal, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from aiclipboard.schemas.clipboard import CamelModel


TierName = Literal["free", "premium"]


class SubscriptionTier(CamelModel):
    """
    A named bundle of quota and feature entitlements.

    `max_daily_processing` of None means unbounded.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: TierName
    max_daily_processing: Optional[int] = Field(default=None, ge=0)
    allowed_models: FrozenSet[str]
    download_formats: FrozenSet[str]
    watermark: bool
    priority: bool


class ProcessingCount(CamelModel):
    today: int = Field(default=0, ge=0)
    date: str = Field(description="ISO calendar date (YYYY-MM-DD) the count belongs to")


class SubscriptionState(CamelModel):
    tier: TierName = "free"
    expires_at: Optional[int] = Field(default=None, description="Epoch millis, premium only")
    processing_count: ProcessingCount
    purchase_token: Optional[str] = None


class SubscriptionResponse(CamelModel):
    subscription: SubscriptionState
    tier: SubscriptionTier
    remaining: Optional[int] = Field(description="Analyses left today; null when unbounded")


class SubscriptionActionResponse(CamelModel):
    success: bool
    subscription: SubscriptionState
