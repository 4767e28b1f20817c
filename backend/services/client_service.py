"""Clients and the payments recorded against them."""
from typing import Optional, Dict, Any, List
import logging

from database import database
from models import (
    AuditAction,
    ClientRecord,
    PaymentRecord,
    CreateClientRequest,
    UpdateClientRequest,
    CreatePaymentRequest,
    UpdatePaymentRequest,
    new_record_id,
)
from services.ownership import delete_client_cascade, ensure_owner, fetch_owned
from services.records import build_record, merge_update
from services.tenancy import resolve_principal, list_visible, sort_payments
from utils.audit import create_audit_log
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)


class ClientService:
    """Service for client and payment records."""

    def _get_db(self):
        return database.get_db()

    # =========================================================================
    # Clients
    # =========================================================================

    async def list_clients(self, user_id: str, organization_id: Optional[str] = None) -> List[Dict[str, Any]]:
        principal = await resolve_principal(user_id, organization_id)
        if principal is None:
            return []
        return await list_visible("clients", principal)

    async def get_client(self, client_id: str, user_id: str) -> Dict[str, Any]:
        return await fetch_owned("clients", client_id, user_id, "client")

    async def create_client(self, data: CreateClientRequest) -> Dict[str, Any]:
        db = self._get_db()

        fields = data.model_dump(exclude_none=True)
        fields["id"] = new_record_id("CLI")
        fields.setdefault("organization_id", None)
        client_doc = build_record(ClientRecord, fields)

        await db.clients.insert_one(client_doc)
        client_doc.pop("_id", None)

        await create_audit_log(
            action=AuditAction.CLIENT_CREATED,
            actor_id=data.user_id,
            organization_id=data.organization_id,
            resource_type="client",
            resource_id=client_doc["id"],
            after_state={"name": client_doc["name"]},
        )
        logger.info(f"Client created: {client_doc['id']} by {data.user_id}")
        return client_doc

    async def update_client(self, client_id: str, data: UpdateClientRequest) -> Dict[str, Any]:
        db = self._get_db()
        existing = await fetch_owned("clients", client_id, data.user_id, "client")

        changes = data.model_dump(exclude_unset=True, exclude={"user_id"})
        updated = merge_update(ClientRecord, existing, changes, keep_on_null=("name",))

        await db.clients.update_one({"id": client_id, "user_id": data.user_id}, {"$set": updated})

        await create_audit_log(
            action=AuditAction.CLIENT_UPDATED,
            actor_id=data.user_id,
            organization_id=existing.get("organization_id"),
            resource_type="client",
            resource_id=client_id,
            before_state=existing,
            after_state=updated,
        )
        logger.info(f"Client updated: {client_id}")
        return updated

    async def delete_client(self, client_id: str, user_id: str) -> int:
        """Delete the client and its payments; returns how many payments went with it."""
        result = await delete_client_cascade(client_id, user_id)
        client = result["client"]

        await create_audit_log(
            action=AuditAction.CLIENT_DELETED,
            actor_id=user_id,
            organization_id=client.get("organization_id"),
            resource_type="client",
            resource_id=client_id,
            before_state=client,
            metadata={"payments_deleted": result["payments_deleted"]},
        )
        return result["payments_deleted"]

    # =========================================================================
    # Payments
    # =========================================================================

    async def list_payments(self, client_id: str, user_id: str) -> List[Dict[str, Any]]:
        """Payments of an owned client, newest first."""
        await fetch_owned("clients", client_id, user_id, "client")
        db = self._get_db()
        payments = await db.payments.find({"client_id": client_id}, {"_id": 0}).to_list(None)
        return sort_payments(payments)

    async def create_payment(self, client_id: str, data: CreatePaymentRequest) -> Dict[str, Any]:
        db = self._get_db()
        client = await fetch_owned("clients", client_id, data.user_id, "client")

        fields = data.model_dump(exclude_none=True)
        fields["id"] = new_record_id("PAY")
        fields["client_id"] = client_id
        # Payments inherit the tenancy of their client
        fields["organization_id"] = client.get("organization_id") or None
        payment_doc = build_record(PaymentRecord, fields)

        await db.payments.insert_one(payment_doc)
        payment_doc.pop("_id", None)

        await create_audit_log(
            action=AuditAction.PAYMENT_CREATED,
            actor_id=data.user_id,
            organization_id=payment_doc["organization_id"],
            resource_type="payment",
            resource_id=payment_doc["id"],
            after_state={"client_id": client_id, "amount": payment_doc["amount"], "date": payment_doc["date"]},
        )
        logger.info(f"Payment created: {payment_doc['id']} for client {client_id}")
        return payment_doc

    async def _fetch_owned_payment(self, payment_id: str, user_id: str) -> Dict[str, Any]:
        payment = await fetch_owned("payments", payment_id, user_id, "payment")
        db = self._get_db()
        client = await db.clients.find_one({"id": payment["client_id"]}, {"_id": 0})
        if not client:
            raise NotFoundError("Client not found", details={"id": payment["client_id"]})
        ensure_owner(client, user_id, "client", payment["client_id"])
        return payment

    async def update_payment(self, payment_id: str, data: UpdatePaymentRequest) -> Dict[str, Any]:
        db = self._get_db()
        existing = await self._fetch_owned_payment(payment_id, data.user_id)

        changes = data.model_dump(exclude_unset=True, exclude={"user_id"})
        updated = merge_update(PaymentRecord, existing, changes, keep_on_null=("amount", "date"))

        await db.payments.update_one({"id": payment_id, "user_id": data.user_id}, {"$set": updated})

        await create_audit_log(
            action=AuditAction.PAYMENT_UPDATED,
            actor_id=data.user_id,
            organization_id=existing.get("organization_id"),
            resource_type="payment",
            resource_id=payment_id,
            before_state=existing,
            after_state=updated,
        )
        logger.info(f"Payment updated: {payment_id}")
        return updated

    async def delete_payment(self, payment_id: str, user_id: str) -> None:
        db = self._get_db()
        existing = await self._fetch_owned_payment(payment_id, user_id)

        await db.payments.delete_one({"id": payment_id, "user_id": user_id})

        await create_audit_log(
            action=AuditAction.PAYMENT_DELETED,
            actor_id=user_id,
            organization_id=existing.get("organization_id"),
            resource_type="payment",
            resource_id=payment_id,
            before_state=existing,
        )
        logger.info(f"Payment deleted: {payment_id}")


# Global instance
client_service = ClientService()
