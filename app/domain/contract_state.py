"""Contract signature status, derived from signer-set membership."""

from collections.abc import Iterable
from uuid import UUID

PENDING_SIGNATURES = "PENDING_SIGNATURES"
PARTIALLY_SIGNED = "PARTIALLY_SIGNED"
FULLY_SIGNED = "FULLY_SIGNED"


def contract_status(signer_ids: Iterable[UUID], owner_id: UUID, operator_id: UUID) -> str:
    signers = set(signer_ids)
    owner_signed = owner_id in signers
    operator_signed = operator_id in signers
    if owner_signed and operator_signed:
        return FULLY_SIGNED
    if owner_signed or operator_signed:
        return PARTIALLY_SIGNED
    return PENDING_SIGNATURES


def is_fully_signed(signer_ids: Iterable[UUID], owner_id: UUID, operator_id: UUID) -> bool:
    return contract_status(signer_ids, owner_id, operator_id) == FULLY_SIGNED
