"""Backfill ``organization_id`` onto a user's legacy records.

Staging is pure (``plan_migration``); applying it is one ``update_many`` whose
filter repeats the "still untagged" condition, followed by a separate ``$inc``
of the organization's case counter by the number of records actually changed.
A counter failure leaves the migration in place and is reported as partial.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List
import logging

from pymongo.errors import PyMongoError

from database import database
from models import AuditAction, utc_now_iso
from utils.audit import create_audit_log
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    message: str
    migrated: int
    counter_updated: bool = True
    warnings: List[str] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "migrated": self.migrated}
        if self.warnings:
            body["counterUpdated"] = self.counter_updated
            body["warnings"] = self.warnings
        return body


def plan_migration(
    records: Iterable[Dict[str, Any]],
    user_id: str,
    organization_id: str,
    now_iso: str,
) -> Dict[str, Dict[str, Any]]:
    """Stage ``{organization_id, updated_at}`` for every untagged record of the user."""
    staged = {}
    for record in records:
        if record.get("user_id") != user_id or record.get("organization_id"):
            continue
        staged[record["id"]] = {"organization_id": organization_id, "updated_at": now_iso}
    return staged


class MigrationService:
    """Moves legacy cases and clients into an organization."""

    def _get_db(self):
        return database.get_db()

    async def _apply(self, collection: str, user_id: str, organization_id: str) -> int:
        db = self._get_db()
        records = await db[collection].find({"user_id": user_id}, {"_id": 0}).to_list(None)
        now = utc_now_iso()
        staged = plan_migration(records, user_id, organization_id, now)
        if not staged:
            return 0

        result = await db[collection].update_many(
            {"id": {"$in": list(staged)}, "user_id": user_id, "organization_id": {"$in": [None, ""]}},
            {"$set": {"organization_id": organization_id, "updated_at": now}},
        )
        return result.modified_count

    async def _require_organization(self, organization_id: str) -> Dict[str, Any]:
        db = self._get_db()
        org = await db.organizations.find_one({"id": organization_id}, {"_id": 0})
        if not org:
            raise NotFoundError("Organization not found", details={"id": organization_id})
        return org

    async def migrate_cases(self, user_id: str, organization_id: str) -> MigrationResult:
        await self._require_organization(organization_id)

        migrated = await self._apply("cases", user_id, organization_id)
        if migrated == 0:
            logger.info(f"No legacy cases to migrate for user {user_id}")
            return MigrationResult("No cases to migrate", 0)

        result = MigrationResult(f"Successfully migrated {migrated} case(s)", migrated)
        try:
            counter = await self._get_db().organizations.update_one(
                {"id": organization_id},
                {"$inc": {"current_cases": migrated}, "$set": {"updated_at": utc_now_iso()}},
            )
            if counter.matched_count == 0:
                result.counter_updated = False
                result.warnings.append("Organization case counter was not updated")
        except PyMongoError as e:
            logger.error(f"Case counter update failed for organization {organization_id}: {e}", exc_info=True)
            result.counter_updated = False
            result.warnings.append("Organization case counter was not updated")

        logger.info(f"Migrated {migrated} case(s) for user {user_id} into {organization_id}")
        await create_audit_log(
            action=AuditAction.CASES_MIGRATED,
            actor_id=user_id,
            organization_id=organization_id,
            resource_type="organization",
            resource_id=organization_id,
            metadata={"migrated": migrated, "counter_updated": result.counter_updated},
        )
        return result

    async def migrate_clients(self, user_id: str, organization_id: str) -> MigrationResult:
        await self._require_organization(organization_id)

        migrated = await self._apply("clients", user_id, organization_id)
        if migrated == 0:
            return MigrationResult("No clients to migrate", 0)

        logger.info(f"Migrated {migrated} client(s) for user {user_id} into {organization_id}")
        await create_audit_log(
            action=AuditAction.CLIENTS_MIGRATED,
            actor_id=user_id,
            organization_id=organization_id,
            resource_type="organization",
            resource_id=organization_id,
            metadata={"migrated": migrated},
        )
        return MigrationResult(f"Successfully migrated {migrated} client(s)", migrated)


# Global instance
migration_service = MigrationService()
