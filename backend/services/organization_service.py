"""Organization Service

Manages law-firm organizations, their subscription state and the shared
default organization that users without a firm are placed in.
"""

from typing import Optional, Dict, Any, List
import logging

from database import database
from models import (
    AuditAction,
    OrganizationRecord,
    CreateOrganizationRequest,
    UpdateOrganizationRequest,
    UpdateSubscriptionRequest,
    SubscriptionPlan,
    SubscriptionStatus,
    new_record_id,
    utc_now_iso,
)
from services.records import build_record
from services.subscription import (
    complete_trial_state,
    get_plan,
    initial_subscription_state,
    resolve_subscription_transition,
)
from utils.audit import create_audit_log
from utils.errors import NotFoundError, RecordValidationError

logger = logging.getLogger(__name__)

DEFAULT_ORG_NAME = "Default Organization"
DEFAULT_ORG_EMAIL = "default@case-tracker.local"
SYSTEM_ACTOR = "system"

# Fields an administrator may explicitly clear
NULLABLE_ORG_FIELDS = ("subscription_end_date", "trial_end_date")


class OrganizationService:
    """Service for organization management."""

    def _get_db(self):
        return database.get_db()

    # =========================================================================
    # Organization CRUD
    # =========================================================================

    async def create_organization(self, data: CreateOrganizationRequest) -> Dict[str, Any]:
        """Create an organization with the quotas and trial of its plan."""
        db = self._get_db()

        fields = data.model_dump(exclude_none=True)
        fields["id"] = new_record_id("ORG")
        fields.update(initial_subscription_state(data.subscription_plan))
        org_doc = build_record(OrganizationRecord, fields)

        await db.organizations.insert_one(org_doc)
        org_doc.pop("_id", None)

        await create_audit_log(
            action=AuditAction.ORG_CREATED,
            actor_id=data.created_by,
            organization_id=org_doc["id"],
            resource_type="organization",
            resource_id=org_doc["id"],
            after_state={"name": org_doc["name"], "subscription_plan": org_doc["subscription_plan"]},
        )
        logger.info(f"Created organization: {org_doc['id']} by {data.created_by}")
        return org_doc

    async def list_organizations(self, created_by: Optional[str] = None) -> List[Dict[str, Any]]:
        db = self._get_db()
        query = {"created_by": created_by} if created_by else {}
        return await db.organizations.find(query, {"_id": 0}).to_list(None)

    async def get_organization(self, org_id: str) -> Dict[str, Any]:
        db = self._get_db()
        org = await db.organizations.find_one({"id": org_id}, {"_id": 0})
        if not org:
            raise NotFoundError("Organization not found", details={"id": org_id})
        return org

    async def update_organization(self, org_id: str, data: UpdateOrganizationRequest) -> Dict[str, Any]:
        """Administrative override of the allowed organization fields."""
        db = self._get_db()
        existing = await self.get_organization(org_id)

        updates = {
            key: value
            for key, value in data.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in NULLABLE_ORG_FIELDS
        }
        if not updates:
            raise RecordValidationError("No fields to update", details={"fields": []})

        # A plan override also resets the quotas to that plan's
        if updates.get("subscription_plan"):
            plan_def = get_plan(updates["subscription_plan"])
            updates["max_users"] = plan_def["max_users"]
            updates["max_cases"] = plan_def["max_cases"]
        updates = complete_trial_state(existing, updates)

        updates["updated_at"] = utc_now_iso()
        await db.organizations.update_one({"id": org_id}, {"$set": updates})

        updated = await self.get_organization(org_id)
        await create_audit_log(
            action=AuditAction.ORG_UPDATED,
            organization_id=org_id,
            resource_type="organization",
            resource_id=org_id,
            before_state=existing,
            after_state=updated,
            metadata={"updated_fields": sorted(k for k in updates if k != "updated_at")},
        )
        logger.info(f"Organization updated: {org_id}")
        return updated

    async def change_subscription(self, org_id: str, data: UpdateSubscriptionRequest) -> Dict[str, Any]:
        """Move an organization to another plan and return the full updated document."""
        db = self._get_db()
        existing = await self.get_organization(org_id)

        updates = resolve_subscription_transition(existing, data.subscription_plan, data.subscription_status)
        updates["updated_at"] = utc_now_iso()
        await db.organizations.update_one({"id": org_id}, {"$set": updates})

        updated = await self.get_organization(org_id)
        await create_audit_log(
            action=AuditAction.SUBSCRIPTION_CHANGED,
            organization_id=org_id,
            resource_type="organization",
            resource_id=org_id,
            before_state={
                "subscription_plan": existing.get("subscription_plan"),
                "subscription_status": existing.get("subscription_status"),
            },
            after_state={
                "subscription_plan": updated.get("subscription_plan"),
                "subscription_status": updated.get("subscription_status"),
            },
        )
        logger.info(
            f"Subscription for {org_id} changed to {updates['subscription_plan']} "
            f"({updates['subscription_status']})"
        )
        return updated

    # =========================================================================
    # Default organization
    # =========================================================================

    async def get_or_create_default_organization(self) -> Dict[str, Any]:
        db = self._get_db()
        org = await db.organizations.find_one({"is_default": True}, {"_id": 0})
        if org:
            return org

        plan_def = get_plan(SubscriptionPlan.FREE)
        org_doc = build_record(OrganizationRecord, {
            "id": new_record_id("ORG"),
            "name": DEFAULT_ORG_NAME,
            "email": DEFAULT_ORG_EMAIL,
            "subscription_plan": SubscriptionPlan.FREE,
            "subscription_status": SubscriptionStatus.ACTIVE,
            "max_users": plan_def["max_users"],
            "max_cases": plan_def["max_cases"],
            "created_by": SYSTEM_ACTOR,
            "is_default": True,
        })
        await db.organizations.insert_one(org_doc)
        org_doc.pop("_id", None)

        await create_audit_log(
            action=AuditAction.ORG_CREATED,
            actor_id=SYSTEM_ACTOR,
            organization_id=org_doc["id"],
            resource_type="organization",
            resource_id=org_doc["id"],
            metadata={"default": True},
        )
        logger.info(f"Created default organization: {org_doc['id']}")
        return org_doc

    async def add_member(self, org_id: str) -> None:
        db = self._get_db()
        await db.organizations.update_one(
            {"id": org_id},
            {"$inc": {"current_users": 1}, "$set": {"updated_at": utc_now_iso()}},
        )


# Global instance
organization_service = OrganizationService()
