"""
User entitlement API endpoints.
Exposes the caller's plan and remaining quota, and the plan catalogue.
"""

import logging
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..services.credits_service import CreditsService, PLANS, get_plan_summaries_limit
from .auth import get_current_user_id
from .dependencies import get_credits_service

logger = logging.getLogger(__name__)


class CreditsResponse(BaseModel):
    """Caller's plan and quota."""
    plan: str
    summaries_left: int
    summaries_limit: int
    subscription_status: str
    billing_customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


class PlanResponse(BaseModel):
    id: str
    name: str
    description: str
    price: float
    summaries_limit: int
    features: List[str]


router = APIRouter(prefix="/api/v1", tags=["users"])


@router.get("/users/me/credits", response_model=CreditsResponse)
def get_my_credits(
    user_id: str = Depends(get_current_user_id),
    credits_service: CreditsService = Depends(get_credits_service)
):
    """Get the caller's credits, creating a free plan record on first access."""
    credits = credits_service.get_or_create(user_id)
    return CreditsResponse(
        plan=credits.plan.value,
        summaries_left=credits.summaries_left,
        summaries_limit=get_plan_summaries_limit(credits.plan.value),
        subscription_status=credits.subscription_status,
        billing_customer_id=credits.billing_customer_id,
        subscription_id=credits.subscription_id,
    )


@router.get("/plans", response_model=List[PlanResponse])
def list_plans():
    """Plan catalogue."""
    return [PlanResponse(**plan.to_dict()) for plan in PLANS.values()]
