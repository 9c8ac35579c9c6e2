"""Celery background tasks.

This module contains all out-of-band work for:
- Rendering contract documents and attaching them to contracts
- Sending escrow payloads to the payment provider
- Reconciling escrows the provider never called back about

No request handler waits on these; results land through the same service
operations the API uses (attach_document, apply_provider_event).
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from celery import shared_task
from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy import select

from app.config import settings
from app.core.exceptions import AppException, ExternalServiceError
from app.database import get_db_context
from app.models.contract import Contract
from app.models.escrow import EscrowTransaction
from app.services.contract_service import contract_service
from app.services.document_service import document_service
from app.services.escrow_service import escrow_service
from app.services.gateway_service import gateway_service
from app.services.storage_service import storage_service
from app.worker import celery_app  # noqa: F401  (binds shared tasks to our broker)

logger = logging.getLogger(__name__)


_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro):
    """Run async function in sync context.

    One loop per worker process, so pooled database connections stay bound
    to the loop that opened them.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


# ==================== DISPATCH ====================


def dispatch_contract_render(contract_id: UUID) -> None:
    """Queue rendering for a committed contract.

    A broker outage is logged; render_pending_contracts picks the contract
    up on its next run.
    """
    try:
        render_contract_document.delay(str(contract_id))
    except BrokerError as e:
        logger.error(f"Could not queue render for contract {contract_id}: {e}")


def dispatch_escrow_initialization(escrow_id: UUID) -> None:
    """Queue provider initialization for a committed escrow.

    A broker outage is logged; reconcile_pending_escrows retries it.
    """
    try:
        initialize_escrow_payment.delay(str(escrow_id))
    except BrokerError as e:
        logger.error(f"Could not queue initialization for escrow {escrow_id}: {e}")


# ==================== CONTRACT TASKS ====================


@shared_task(bind=True, max_retries=3)
def render_contract_document(self, contract_id: str):
    """Render a contract's terms and attach the stored PDF."""
    try:
        return run_async(_render_contract_document(UUID(contract_id)))
    except ExternalServiceError as exc:
        raise self.retry(exc=exc, countdown=60)
    except AppException as exc:
        logger.error(f"Rendering contract {contract_id} failed: {exc.detail}")
        return {"status": "error", "contract_id": contract_id, "kind": exc.kind}


async def _render_contract_document(contract_id: UUID) -> dict:
    """Async implementation of contract rendering."""
    async with get_db_context() as db:
        result = await db.execute(select(Contract).where(Contract.id == contract_id))
        contract = result.scalar_one_or_none()
        if not contract:
            return {"status": "missing", "contract_id": str(contract_id)}
        if contract.hash:
            return {"status": "already_rendered", "contract_id": str(contract_id)}
        terms, version = contract.terms, contract.version

    # Collaborator calls happen outside any open transaction
    rendered = await document_service.render(terms)
    pdf_url = storage_service.upload_contract(
        rendered.content, str(contract_id), version, rendered.hash, rendered.content_type
    )

    async with get_db_context() as db:
        await contract_service.attach_document(db, contract_id, pdf_url, rendered.hash)

    logger.info(f"Contract {contract_id} rendered to {pdf_url}")
    return {"status": "success", "contract_id": str(contract_id), "hash": rendered.hash}


@shared_task
def render_pending_contracts():
    """Queue rendering for contracts still without a document."""
    count = run_async(_render_pending_contracts())
    return {"status": "success", "queued": count}


async def _render_pending_contracts() -> int:
    cutoff = datetime.now(UTC) - timedelta(minutes=settings.escrow_reconcile_after_minutes)
    async with get_db_context() as db:
        result = await db.execute(
            select(Contract.id).where(Contract.hash.is_(None), Contract.created_at <= cutoff)
        )
        contract_ids = list(result.scalars().all())

    for contract_id in contract_ids:
        dispatch_contract_render(contract_id)
    return len(contract_ids)


# ==================== ESCROW TASKS ====================


@shared_task(bind=True, max_retries=3)
def initialize_escrow_payment(self, escrow_id: str):
    """Send the stored payload to the provider and mark the escrow PROCESSING."""
    try:
        return run_async(_initialize_escrow_payment(UUID(escrow_id)))
    except ExternalServiceError as exc:
        raise self.retry(exc=exc, countdown=60)
    except AppException as exc:
        logger.error(f"Initializing escrow {escrow_id} failed: {exc.detail}")
        return {"status": "error", "escrow_id": escrow_id, "kind": exc.kind}


async def _initialize_escrow_payment(escrow_id: UUID) -> dict:
    """Async implementation of provider initialization."""
    async with get_db_context() as db:
        result = await db.execute(select(EscrowTransaction).where(EscrowTransaction.id == escrow_id))
        escrow = result.scalar_one_or_none()
        if not escrow:
            return {"status": "missing", "escrow_id": str(escrow_id)}
        if escrow.status != "PENDING":
            return {"status": "skipped", "escrow_id": str(escrow_id), "escrow_status": escrow.status}
        provider, payload = escrow.provider, escrow.payload

    response = await gateway_service.initialize_payment(provider, payload)
    if not response.success:
        raise ExternalServiceError(provider.lower(), response.error_message)

    async with get_db_context() as db:
        # A webhook may have funded the escrow while the provider call was in flight
        escrow = await escrow_service.apply_provider_event(
            db,
            await escrow_service.get_escrow_by_id(db, escrow_id),
            "PROCESSING",
            provider_reference=response.transaction_id,
            payload={"authorization_url": response.payment_url},
        )
        escrow_status = escrow.status

    return {"status": "success", "escrow_id": str(escrow_id), "escrow_status": escrow_status}


@shared_task
def reconcile_pending_escrows():
    """Catch up on escrows whose provider callbacks never arrived.

    Stale PENDING escrows are re-initialized; stale PROCESSING escrows are
    verified with the provider and moved to FUNDED or FAILED.
    """
    summary = run_async(_reconcile_pending_escrows(settings.escrow_reconcile_after_minutes))
    return {"status": "success", **summary}


async def _reconcile_pending_escrows(older_than_minutes: int) -> dict:
    """Async implementation of escrow reconciliation."""
    cutoff = datetime.now(UTC) - timedelta(minutes=older_than_minutes)
    async with get_db_context() as db:
        pending = await db.execute(
            select(EscrowTransaction.id).where(
                EscrowTransaction.status == "PENDING",
                EscrowTransaction.created_at <= cutoff,
            )
        )
        pending_ids = list(pending.scalars().all())
        processing = await escrow_service.stale_processing(db, older_than_minutes)
        to_verify = [(e.id, e.provider, e.reference) for e in processing]

    for escrow_id in pending_ids:
        dispatch_escrow_initialization(escrow_id)

    updated = 0
    for escrow_id, provider, reference in to_verify:
        response = await gateway_service.verify_payment(provider, reference)
        if not response.success or response.status is None:
            logger.info(f"Escrow {escrow_id} still open at {provider.lower()}")
            continue
        try:
            async with get_db_context() as db:
                escrow = await escrow_service.find_escrow(db, escrow_id=str(escrow_id))
                await escrow_service.apply_provider_event(
                    db,
                    escrow,
                    response.status,
                    provider_reference=response.transaction_id,
                    payload={"source": "reconciliation"},
                )
            updated += 1
        except AppException as e:
            logger.error(f"Reconciling escrow {escrow_id} failed: {e.detail}")

    return {"requeued": len(pending_ids), "verified": len(to_verify), "updated": updated}
