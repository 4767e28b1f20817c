"""User profiles and their organization membership."""
from typing import Optional, Dict, Any
import logging

from database import database
from models import AuditAction, UserRecord, UpdateUserProfileRequest, utc_now_iso
from services.organization_service import organization_service
from services.records import build_record
from utils.audit import create_audit_log
from utils.errors import NotFoundError, RecordValidationError

logger = logging.getLogger(__name__)


class UserService:

    def _get_db(self):
        return database.get_db()

    async def ensure_user_has_organization(self, user_id: str) -> Dict[str, Any]:
        """Return the user record, creating it and joining the default organization as needed.

        Users that already belong to an organization are returned unchanged.
        """
        db = self._get_db()
        user = await db.users.find_one({"id": user_id}, {"_id": 0})

        if user and user.get("organization_id"):
            return user

        default_org = await organization_service.get_or_create_default_organization()

        if not user:
            user = build_record(UserRecord, {"id": user_id, "organization_id": default_org["id"]})
            await db.users.insert_one(user)
            user.pop("_id", None)
            await create_audit_log(
                action=AuditAction.USER_CREATED,
                actor_id=user_id,
                organization_id=default_org["id"],
                resource_type="user",
                resource_id=user_id,
            )
            logger.info(f"Created user record {user_id} in default organization")
        else:
            now = utc_now_iso()
            result = await db.users.update_one(
                {"id": user_id, "organization_id": {"$in": [None, ""]}},
                {"$set": {"organization_id": default_org["id"], "updated_at": now}},
            )
            if result.matched_count != 1:
                # Assigned by a concurrent request, which also counted the member
                logger.info(f"User {user_id} already assigned to an organization")
                return await db.users.find_one({"id": user_id}, {"_id": 0})
            user["organization_id"] = default_org["id"]
            user["updated_at"] = now
            await create_audit_log(
                action=AuditAction.USER_ORG_ASSIGNED,
                actor_id=user_id,
                organization_id=default_org["id"],
                resource_type="user",
                resource_id=user_id,
            )
            logger.info(f"Assigned user {user_id} to default organization")

        await organization_service.add_member(default_org["id"])
        return user

    async def get_user_with_organization(self, user_id: str) -> Dict[str, Any]:
        """User record with its organization document embedded under ``organization``."""
        user = await self.ensure_user_has_organization(user_id)
        organization: Optional[Dict[str, Any]] = None
        if user.get("organization_id"):
            db = self._get_db()
            organization = await db.organizations.find_one({"id": user["organization_id"]}, {"_id": 0})
        return {**user, "organization": organization}

    async def update_profile(self, user_id: str, data: UpdateUserProfileRequest) -> Dict[str, Any]:
        db = self._get_db()
        existing = await db.users.find_one({"id": user_id}, {"_id": 0})
        if not existing:
            raise NotFoundError("User not found", details={"id": user_id})

        updates = data.model_dump(exclude_unset=True)
        updates = {k: ("" if v is None else v) for k, v in updates.items()}
        if not updates:
            raise RecordValidationError("No fields to update", details={"fields": []})

        updates["updated_at"] = utc_now_iso()
        await db.users.update_one({"id": user_id}, {"$set": updates})
        updated = {**existing, **updates}

        await create_audit_log(
            action=AuditAction.USER_UPDATED,
            actor_id=user_id,
            organization_id=existing.get("organization_id"),
            resource_type="user",
            resource_id=user_id,
            before_state=existing,
            after_state=updated,
        )
        logger.info(f"User profile updated: {user_id}")
        return updated


# Global instance
user_service = UserService()
