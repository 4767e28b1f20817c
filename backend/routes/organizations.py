"""Organization Routes
Firm accounts and their subscription plans.
"""
from fastapi import APIRouter, Query, status
from typing import Optional
import logging

from models import CreateOrganizationRequest, UpdateOrganizationRequest, UpdateSubscriptionRequest
from services.organization_service import organization_service
from services.records import to_response, to_responses
from services.subscription import PLAN_DEFINITIONS

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/organizations", tags=["organizations"])


@router.get("/plans")
async def list_plans():
    return [
        {
            "id": plan.value,
            "name": plan_def["name"],
            "maxUsers": plan_def["max_users"],
            "maxCases": plan_def["max_cases"],
            "trialDays": plan_def["trial_days"],
            "price": plan_def["price"],
            "features": plan_def["features"],
        }
        for plan, plan_def in PLAN_DEFINITIONS.items()
    ]


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_organization(data: CreateOrganizationRequest):
    org = await organization_service.create_organization(data)
    return to_response(org)


@router.get("/list")
async def list_organizations(created_by: Optional[str] = Query(None, alias="createdBy")):
    orgs = await organization_service.list_organizations(created_by)
    return to_responses(orgs)


@router.get("/{org_id}")
async def get_organization(org_id: str):
    org = await organization_service.get_organization(org_id)
    return to_response(org)


@router.patch("/{org_id}")
async def update_organization(org_id: str, data: UpdateOrganizationRequest):
    """Administrative override of organization fields."""
    org = await organization_service.update_organization(org_id, data)
    return to_response(org)


@router.patch("/{org_id}/subscription")
async def update_subscription(org_id: str, data: UpdateSubscriptionRequest):
    """Change plan. Organizations already in trial keep their trial; others become active."""
    org = await organization_service.change_subscription(org_id, data)
    return to_response(org)
