"""Ownership checks for single-record reads and mutations."""
import asyncio
from typing import Any, Dict, Optional
import logging

from database import database
from utils.errors import CascadeDeleteError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


def ensure_owner(record: Optional[Dict[str, Any]], user_id: str, resource_type: str, record_id: str) -> Dict[str, Any]:
    """Return the record if ``user_id`` owns it.

    Raises NotFoundError when it does not exist and ForbiddenError when it
    belongs to someone else.
    """
    if not record:
        raise NotFoundError(f"{resource_type.capitalize()} not found", details={"id": record_id})
    if record.get("user_id") != user_id:
        logger.warning(f"User {user_id} denied access to {resource_type} {record_id}")
        raise ForbiddenError(f"You do not have access to this {resource_type}", details={"id": record_id})
    return record


async def fetch_owned(collection: str, record_id: str, user_id: str, resource_type: str) -> Dict[str, Any]:
    db = database.get_db()
    record = await db[collection].find_one({"id": record_id}, {"_id": 0})
    return ensure_owner(record, user_id, resource_type, record_id)


async def delete_client_cascade(client_id: str, user_id: str) -> Dict[str, Any]:
    """Delete a client and every payment recorded against it.

    Payments are removed first, independently of each other. If any of them
    fails the client is left in place and one CascadeDeleteError reports how
    many failed.
    """
    client = await fetch_owned("clients", client_id, user_id, "client")
    db = database.get_db()

    payments = await db.payments.find({"client_id": client_id}, {"_id": 0, "id": 1}).to_list(None)
    total = len(payments)

    if total:
        results = await asyncio.gather(
            *(db.payments.delete_one({"id": payment["id"], "client_id": client_id}) for payment in payments),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for failure in failures:
                logger.error(f"Payment delete failed for client {client_id}: {failure}")
            raise CascadeDeleteError("payment", failed=len(failures), total=total)

    await db.clients.delete_one({"id": client_id, "user_id": user_id})
    logger.info(f"Deleted client {client_id} with {total} payment(s)")
    return {"client": client, "payments_deleted": total}
