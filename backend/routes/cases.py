"""Case Routes
List, create, update and delete cases, plus the legacy-case migration.
"""
from fastapi import APIRouter, Query, Request, status
from typing import Optional
import logging

from middleware import authorize_principal
from models import CreateCaseRequest, UpdateCaseRequest, DeleteCaseRequest, MigrateRequest
from services.case_service import case_service
from services.migration import migration_service
from services.records import to_response, to_responses

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cases", tags=["cases"])


@router.get("/list")
async def list_cases(
    request: Request,
    user_id: str = Query(..., alias="userId", min_length=1),
    organization_id: Optional[str] = Query(None, alias="organizationId"),
):
    """Cases visible to the user: their legacy cases plus those of their organization."""
    await authorize_principal(request, user_id)
    cases = await case_service.list_cases(user_id, organization_id)
    return to_responses(cases)


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_case(request: Request, data: CreateCaseRequest):
    await authorize_principal(request, data.user_id)
    case = await case_service.create_case(data)
    return to_response(case)


@router.patch("/update")
async def update_case(request: Request, data: UpdateCaseRequest):
    await authorize_principal(request, data.user_id)
    case = await case_service.update_case(data)
    return to_response(case)


@router.delete("/delete")
async def delete_case(request: Request, data: DeleteCaseRequest):
    await authorize_principal(request, data.user_id)
    await case_service.delete_case(data)
    return {"success": True}


@router.post("/migrate")
async def migrate_cases(request: Request, data: MigrateRequest):
    """Tag the user's legacy cases with an organization.

    Safe to repeat: later runs find nothing left and report ``migrated: 0``.
    """
    await authorize_principal(request, data.user_id)
    result = await migration_service.migrate_cases(data.user_id, data.organization_id)
    return result.to_response()


@router.get("/{case_id}")
async def get_case(
    request: Request,
    case_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
):
    if user_id is not None:
        await authorize_principal(request, user_id)
    case = await case_service.get_case(case_id, user_id)
    return to_response(case)


@router.get("/{case_id}/stats")
async def get_case_stats(case_id: str):
    return await case_service.get_case_stats(case_id)


@router.get("/{case_id}/history")
async def get_case_history(
    request: Request,
    case_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    limit: int = Query(50, ge=1, le=200),
):
    """Audit trail of a case, newest first. Only the owner may read it."""
    await authorize_principal(request, user_id)
    entries = await case_service.get_case_history(case_id, user_id, limit)
    return to_responses(entries)
