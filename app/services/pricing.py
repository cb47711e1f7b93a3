"""Order pricing in integer cents

Tax and service charge are computed independently from the subtotal and
rounded half-up to whole cents; the total is their exact sum.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional


@dataclass
class ModifierLine:
    option_id: object
    unit_price_cents: int
    quantity: int = 1

    @property
    def total_price_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class PricedLine:
    product_id: object
    unit_price_cents: int
    quantity: int
    modifiers: List[ModifierLine] = field(default_factory=list)

    @property
    def total_price_cents(self) -> int:
        surcharge = sum(mod.total_price_cents for mod in self.modifiers)
        return (self.unit_price_cents + surcharge) * self.quantity


@dataclass
class OrderTotals:
    subtotal_cents: int
    tax_cents: int
    service_charge_cents: int
    total_cents: int


def round_cents(amount: Decimal) -> int:
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(lines: Iterable[PricedLine], tax_rate, service_charge_rate) -> OrderTotals:
    """Sum order lines and apply the organization's rates"""
    subtotal = sum(line.total_price_cents for line in lines)
    tax = round_cents(Decimal(subtotal) * Decimal(str(tax_rate or 0)))
    service = round_cents(Decimal(subtotal) * Decimal(str(service_charge_rate or 0)))
    return OrderTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        service_charge_cents=service,
        total_cents=subtotal + tax + service,
    )


def estimate_ready_time(
    prep_times: Iterable[Optional[int]],
    default_minutes: int = 15,
    now: Optional[datetime] = None,
) -> datetime:
    """Longest product prep time from now; unset or zero prep times count as missing"""
    now = now or datetime.utcnow()
    minutes = max((p for p in prep_times if p), default=0) or default_minutes
    return now + timedelta(minutes=minutes)
