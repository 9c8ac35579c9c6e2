"""Escrow reference generation utilities."""

import random
import string
import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_BASE36 = string.digits + string.ascii_lowercase


def build_escrow_reference(booking_id: UUID | str, timestamp_ms: int | None = None) -> str:
    """Build a reference like 'BF-1A2B3C4D-1718000000000-K9M2X7'.

    Args:
        booking_id: Booking the escrow belongs to (first 8 chars are used)
        timestamp_ms: Milliseconds since the epoch; defaults to now

    Returns:
        str: Upper-cased reference
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    random_part = "".join(random.choices(_BASE36, k=6))
    return f"BF-{str(booking_id)[:8]}-{timestamp_ms}-{random_part}".upper()


async def generate_escrow_reference(db: AsyncSession, booking_id: UUID) -> str:
    """Generate an escrow reference not yet used by any transaction."""
    from app.models.escrow import EscrowTransaction

    while True:
        reference = build_escrow_reference(booking_id)

        # Check uniqueness
        result = await db.execute(
            select(EscrowTransaction.id).where(EscrowTransaction.reference == reference)
        )
        if not result.scalar_one_or_none():
            return reference
