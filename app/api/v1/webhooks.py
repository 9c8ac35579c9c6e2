"""Webhook endpoints for payment gateways."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.exceptions import AuthenticationError, StateConflict, ValidationError
from app.gateways.base import GatewayType
from app.services.escrow_service import escrow_service
from app.services.gateway_service import gateway_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/paystack", status_code=status.HTTP_200_OK)
async def paystack_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    paystack_signature: str | None = Header(None, alias="x-paystack-signature"),
) -> dict:
    """Handle Paystack webhook events."""
    return await _handle_webhook(db, GatewayType.PAYSTACK, await request.body(), paystack_signature)


@router.post("/flutterwave", status_code=status.HTTP_200_OK)
async def flutterwave_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    verif_hash: str | None = Header(None, alias="verif-hash"),
) -> dict:
    """Handle Flutterwave webhook events."""
    return await _handle_webhook(db, GatewayType.FLUTTERWAVE, await request.body(), verif_hash)


async def _handle_webhook(
    db: AsyncSession, gateway: GatewayType, body: bytes, signature: str | None
) -> dict:
    """Verify, translate and apply a provider event.

    Updates are idempotent, so providers may redeliver freely.
    """
    if not gateway_service.verify_webhook(gateway, body, signature):
        logger.warning(f"Rejected {gateway.value} webhook with invalid signature")
        raise AuthenticationError("Invalid webhook signature")

    try:
        data = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid webhook payload")

    event = gateway_service.parse_webhook(gateway, data)
    if event.status is None:
        logger.info(f"Ignoring {gateway.value} event {event.event_type}")
        return {"received": True, "applied": False}

    escrow = await escrow_service.find_escrow(db, escrow_id=event.escrow_id, reference=event.reference)
    if not escrow:
        logger.warning(
            f"{gateway.value} event {event.event_type} for unknown escrow "
            f"(id={event.escrow_id}, reference={event.reference})"
        )
        return {"received": True, "applied": False}

    escrow_id, current_status = escrow.id, escrow.status
    try:
        async with db.begin_nested():
            escrow = await escrow_service.apply_provider_event(
                db,
                escrow,
                event.status,
                provider_reference=event.provider_reference,
                payload={"event": event.event_type, "provider": gateway.value},
            )
    except StateConflict as e:
        # Acknowledged so the provider stops redelivering; needs manual reconciliation
        logger.error(
            f"{gateway.value} event {event.event_type} not applied to escrow {escrow_id} "
            f"({current_status}): {e.detail}"
        )
        return {"received": True, "applied": False}
    return {"received": True, "applied": True, "status": escrow.status}
