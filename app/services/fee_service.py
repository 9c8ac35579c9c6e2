"""Platform fee calculation service.

CRITICAL BUSINESS LOGIC:
- The platform keeps a flat percentage (PLATFORM_FEE_PERCENT, default 7%) of
  the escrowed total
- The fee is rounded half-up to a whole major unit
- The owner receives exactly total - fee, so the two always add up to total
- Providers are sent minor units (major × 100)
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.config import settings
from app.core.exceptions import ValidationError

MINOR_UNITS = 100


@dataclass(frozen=True)
class EscrowAmounts:
    """Escrow split in both major and minor units."""

    total: int
    platform_fee: int
    owner_payout: int
    fee_percent: Decimal

    @property
    def total_minor(self) -> int:
        return self.total * MINOR_UNITS

    @property
    def platform_fee_minor(self) -> int:
        return self.platform_fee * MINOR_UNITS

    @property
    def owner_payout_minor(self) -> int:
        return self.owner_payout * MINOR_UNITS

    def as_dict(self) -> dict:
        return {
            "total_amount": self.total,
            "platform_fee": self.platform_fee,
            "owner_payout": self.owner_payout,
            "fee_percent": str(self.fee_percent),
            "total_amount_minor": self.total_minor,
            "platform_fee_minor": self.platform_fee_minor,
            "owner_payout_minor": self.owner_payout_minor,
        }


class FeeService:
    """Service for splitting escrow totals between platform and owner."""

    def calculate_platform_fee(self, total: int, fee_percent: Decimal) -> int:
        """Platform fee in major units, rounded half-up."""
        fee = (Decimal(total) * Decimal(fee_percent) / Decimal("100")).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return int(fee)

    def calculate_amounts(self, total: int, fee_percent: Decimal | None = None) -> EscrowAmounts:
        """Split an escrow total into platform fee and owner payout.

        Args:
            total: Escrow total in major units
            fee_percent: Platform fee percentage; defaults to the configured
                PLATFORM_FEE_PERCENT

        Returns:
            EscrowAmounts with platform_fee + owner_payout == total
        """
        if total < 0:
            raise ValidationError("Escrow total cannot be negative")
        if fee_percent is None:
            fee_percent = settings.platform_fee_percent
        fee_percent = Decimal(fee_percent)
        if not Decimal("0") <= fee_percent <= Decimal("100"):
            raise ValidationError("Platform fee percent must be between 0 and 100")

        platform_fee = self.calculate_platform_fee(total, fee_percent)
        return EscrowAmounts(
            total=total,
            platform_fee=platform_fee,
            owner_payout=total - platform_fee,
            fee_percent=fee_percent,
        )

    def charter_total(self, daily_rate: int, days: int, security_deposit: int = 0) -> int:
        """Amount the operator pays into escrow: charter hire plus deposit."""
        return daily_rate * days + security_deposit


# Singleton instance
fee_service = FeeService()
