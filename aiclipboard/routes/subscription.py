"""
AI Clipboard Backend — Subscription Route Handlers
====================================================

What:  Subscription status and the simulated billing actions.
How:   Billing actions never raise for a declined or unsaved change; they
       answer 200 with `success=false` and the unchanged subscription.
"""

from fastapi import APIRouter, Depends

from aiclipboard.dependencies import get_subscription_gate
from aiclipboard.schemas.subscription import SubscriptionActionResponse, SubscriptionResponse
from aiclipboard.services.subscription_service import SubscriptionGate

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


@router.get("", response_model=SubscriptionResponse, summary="Current tier and remaining quota")
async def get_subscription(
    gate: SubscriptionGate = Depends(get_subscription_gate),
) -> SubscriptionResponse:
    # Rolls the daily counter over if the date changed
    await gate.can_process_more()
    return SubscriptionResponse(
        subscription=gate.state,
        tier=gate.current_tier,
        remaining=gate.remaining_processing_count(),
    )


@router.post("/purchase", response_model=SubscriptionActionResponse, summary="Buy premium")
async def purchase(
    gate: SubscriptionGate = Depends(get_subscription_gate),
) -> SubscriptionActionResponse:
    success = await gate.purchase_subscription()
    return SubscriptionActionResponse(success=success, subscription=gate.state)


@router.post("/cancel", response_model=SubscriptionActionResponse, summary="Return to the free tier")
async def cancel(
    gate: SubscriptionGate = Depends(get_subscription_gate),
) -> SubscriptionActionResponse:
    success = await gate.cancel_subscription()
    return SubscriptionActionResponse(success=success, subscription=gate.state)


@router.post("/restore", response_model=SubscriptionActionResponse, summary="Restore a previous purchase")
async def restore(
    gate: SubscriptionGate = Depends(get_subscription_gate),
) -> SubscriptionActionResponse:
    success = await gate.restore_purchases()
    return SubscriptionActionResponse(success=success, subscription=gate.state)
