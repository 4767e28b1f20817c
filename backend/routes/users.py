from fastapi import APIRouter, Request
import logging

from middleware import authorize_principal
from models import UpdateUserProfileRequest
from services.records import to_response
from services.user_service import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}")
async def get_user(request: Request, user_id: str):
    """User profile with its organization; users without one join the default organization."""
    await authorize_principal(request, user_id)
    user = await user_service.get_user_with_organization(user_id)
    organization = user.pop("organization")
    body = to_response(user)
    body["organization"] = to_response(organization)
    return body


@router.patch("/{user_id}")
async def update_user(request: Request, user_id: str, data: UpdateUserProfileRequest):
    await authorize_principal(request, user_id)
    user = await user_service.update_profile(user_id, data)
    return to_response(user)
