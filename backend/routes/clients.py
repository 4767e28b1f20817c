"""Client Routes
Clients and the payments recorded against them. Deleting a client removes
its payments first.
"""
from fastapi import APIRouter, Query, Request, status
from typing import Optional
import logging

from middleware import authorize_principal
from models import (
    CreateClientRequest,
    UpdateClientRequest,
    CreatePaymentRequest,
    UpdatePaymentRequest,
    MigrateRequest,
)
from services.client_service import client_service
from services.migration import migration_service
from services.records import to_response, to_responses

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.get("/list")
async def list_clients(
    request: Request,
    user_id: str = Query(..., alias="userId", min_length=1),
    organization_id: Optional[str] = Query(None, alias="organizationId"),
):
    await authorize_principal(request, user_id)
    clients = await client_service.list_clients(user_id, organization_id)
    return to_responses(clients)


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_client(request: Request, data: CreateClientRequest):
    await authorize_principal(request, data.user_id)
    client = await client_service.create_client(data)
    return to_response(client)


@router.post("/migrate")
async def migrate_clients(request: Request, data: MigrateRequest):
    await authorize_principal(request, data.user_id)
    result = await migration_service.migrate_clients(data.user_id, data.organization_id)
    return result.to_response()


# Payments

@router.patch("/payments/{payment_id}")
async def update_payment(request: Request, payment_id: str, data: UpdatePaymentRequest):
    await authorize_principal(request, data.user_id)
    payment = await client_service.update_payment(payment_id, data)
    return to_response(payment)


@router.delete("/payments/{payment_id}")
async def delete_payment(
    request: Request,
    payment_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    await authorize_principal(request, user_id)
    await client_service.delete_payment(payment_id, user_id)
    return {"success": True}


@router.get("/{client_id}/payments")
async def list_payments(
    request: Request,
    client_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    """Payments for the client, newest first."""
    await authorize_principal(request, user_id)
    payments = await client_service.list_payments(client_id, user_id)
    return to_responses(payments)


@router.post("/{client_id}/payments", status_code=status.HTTP_201_CREATED)
async def create_payment(request: Request, client_id: str, data: CreatePaymentRequest):
    await authorize_principal(request, data.user_id)
    payment = await client_service.create_payment(client_id, data)
    return to_response(payment)


# Single client

@router.get("/{client_id}")
async def get_client(
    request: Request,
    client_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    await authorize_principal(request, user_id)
    client = await client_service.get_client(client_id, user_id)
    return to_response(client)


@router.patch("/{client_id}")
async def update_client(request: Request, client_id: str, data: UpdateClientRequest):
    await authorize_principal(request, data.user_id)
    client = await client_service.update_client(client_id, data)
    return to_response(client)


@router.delete("/{client_id}")
async def delete_client(
    request: Request,
    client_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    await authorize_principal(request, user_id)
    payments_deleted = await client_service.delete_client(client_id, user_id)
    return {"success": True, "paymentsDeleted": payments_deleted}
