"""Tenancy resolution: which records a principal may see.

A record is visible to ``(user_id, organization_id)`` when the user owns it
and either the record is untagged (legacy) or it is tagged with the
principal's organization. A principal without an organization only sees
untagged records.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

from database import database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    user_id: str
    organization_id: Optional[str] = None


def is_visible(record: Dict[str, Any], principal: Principal) -> bool:
    if record.get("user_id") != principal.user_id:
        return False
    record_org = record.get("organization_id")
    if not record_org:
        return True
    return bool(principal.organization_id) and record_org == principal.organization_id


def filter_visible(records: Iterable[Dict[str, Any]], principal: Principal) -> List[Dict[str, Any]]:
    """Keep visible records in their original order."""
    return [record for record in records if is_visible(record, principal)]


def _payment_sort_key(payment: Dict[str, Any]) -> datetime:
    value = payment.get("date") or ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        # Unparseable dates sort as oldest
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_payments(payments: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Newest payment first; equal dates keep their stored order."""
    return sorted(payments, key=_payment_sort_key, reverse=True)


async def resolve_principal(user_id: str, organization_id: Optional[str] = None) -> Optional[Principal]:
    """Build the principal for a request.

    When no organization is given it is read from the user record. Returns
    None for an unknown user so callers can answer with an empty list.
    """
    if organization_id:
        return Principal(user_id=user_id, organization_id=organization_id)

    db = database.get_db()
    user = await db.users.find_one({"id": user_id}, {"_id": 0})
    if not user:
        logger.info(f"No user record for {user_id}; returning no records")
        return None
    return Principal(user_id=user_id, organization_id=user.get("organization_id"))


async def list_visible(collection: str, principal: Principal) -> List[Dict[str, Any]]:
    """Records of one collection visible to the principal, in insertion order."""
    db = database.get_db()
    # Owner filter narrows the scan; the predicate is still applied in full
    records = await db[collection].find({"user_id": principal.user_id}, {"_id": 0}).to_list(None)
    return filter_visible(records, principal)
