"""Case records: create, read, update, delete and statistics."""
from typing import Optional, Dict, Any, List
import logging

from database import database
from models import (
    AuditAction,
    CaseRecord,
    CreateCaseRequest,
    UpdateCaseRequest,
    DeleteCaseRequest,
    new_record_id,
    utc_now_iso,
)
from services.ownership import ensure_owner, fetch_owned
from services.records import build_record, merge_update
from services.subscription import check_case_creation
from services.tenancy import resolve_principal, list_visible
from utils.audit import create_audit_log, list_audit_history
from utils.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

# Collections whose documents reference a case by ``case_id``
CASE_STAT_COLLECTIONS = ("documents", "hearings", "tasks", "conversations")


class CaseService:
    """Service for case records."""

    def _get_db(self):
        return database.get_db()

    async def list_cases(self, user_id: str, organization_id: Optional[str] = None) -> List[Dict[str, Any]]:
        principal = await resolve_principal(user_id, organization_id)
        if principal is None:
            return []
        return await list_visible("cases", principal)

    async def get_case(self, case_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        db = self._get_db()
        case = await db.cases.find_one({"id": case_id}, {"_id": 0})
        if not case:
            raise NotFoundError("Case not found", details={"id": case_id})
        if user_id is not None:
            ensure_owner(case, user_id, "case", case_id)
        return case

    async def get_case_stats(self, case_id: str) -> Dict[str, int]:
        db = self._get_db()
        stats = {}
        for name in CASE_STAT_COLLECTIONS:
            stats[name] = await db[name].count_documents({"case_id": case_id})
        return stats

    async def get_case_history(self, case_id: str, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        await self.get_case(case_id, user_id)
        return await list_audit_history("case", case_id, limit)

    async def _check_organization(self, organization_id: str) -> Dict[str, Any]:
        db = self._get_db()
        org = await db.organizations.find_one({"id": organization_id}, {"_id": 0})
        if not org:
            raise NotFoundError("Organization not found", details={"id": organization_id})

        allowed, reason = check_case_creation(org)
        if not allowed:
            logger.warning(f"Case creation blocked for organization {organization_id}: {reason}")
            raise ForbiddenError(reason, details={
                "organizationId": organization_id,
                "currentCases": org.get("current_cases", 0),
                "maxCases": org.get("max_cases", 0),
            })
        return org

    async def create_case(self, data: CreateCaseRequest) -> Dict[str, Any]:
        db = self._get_db()

        if data.organization_id:
            await self._check_organization(data.organization_id)

        fields = data.model_dump(exclude_none=True)
        fields["id"] = new_record_id("CASE")
        fields.setdefault("organization_id", None)
        case_doc = build_record(CaseRecord, fields)

        await db.cases.insert_one(case_doc)
        case_doc.pop("_id", None)

        if data.organization_id:
            await db.organizations.update_one(
                {"id": data.organization_id},
                {"$inc": {"current_cases": 1}, "$set": {"updated_at": utc_now_iso()}},
            )

        await create_audit_log(
            action=AuditAction.CASE_CREATED,
            actor_id=data.user_id,
            organization_id=data.organization_id,
            resource_type="case",
            resource_id=case_doc["id"],
            after_state={"title": case_doc["title"], "status": case_doc["status"]},
        )
        logger.info(f"Case created: {case_doc['id']} by {data.user_id}")
        return case_doc

    async def update_case(self, data: UpdateCaseRequest) -> Dict[str, Any]:
        db = self._get_db()
        existing = await fetch_owned("cases", data.id, data.user_id, "case")

        changes = data.model_dump(exclude_unset=True, exclude={"id", "user_id"})
        updated = merge_update(CaseRecord, existing, changes, keep_on_null=("title", "description", "status"))

        await db.cases.update_one({"id": data.id, "user_id": data.user_id}, {"$set": updated})

        await create_audit_log(
            action=AuditAction.CASE_UPDATED,
            actor_id=data.user_id,
            organization_id=existing.get("organization_id"),
            resource_type="case",
            resource_id=data.id,
            before_state=existing,
            after_state=updated,
        )
        logger.info(f"Case updated: {data.id}")
        return updated

    async def delete_case(self, data: DeleteCaseRequest) -> None:
        """Delete a case owned by the caller.

        A case tagged with another organization than the one passed in is
        refused. Deleting a tagged case releases one slot of that
        organization's case quota.
        """
        db = self._get_db()
        existing = await fetch_owned("cases", data.id, data.user_id, "case")

        case_org = existing.get("organization_id")
        if data.organization_id and case_org and case_org != data.organization_id:
            logger.warning(f"User {data.user_id} tried to delete case {data.id} outside organization {data.organization_id}")
            raise ForbiddenError("Case belongs to a different organization", details={"id": data.id})

        await db.cases.delete_one({"id": data.id, "user_id": data.user_id})

        if case_org:
            await db.organizations.update_one(
                {"id": case_org, "current_cases": {"$gt": 0}},
                {"$inc": {"current_cases": -1}, "$set": {"updated_at": utc_now_iso()}},
            )

        await create_audit_log(
            action=AuditAction.CASE_DELETED,
            actor_id=data.user_id,
            organization_id=case_org,
            resource_type="case",
            resource_id=data.id,
            before_state=existing,
        )
        logger.info(f"Case deleted: {data.id}")


# Global instance
case_service = CaseService()
