"""Advance ledger: unallocated payment balances held for a party."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, Mapping, Sequence

from . import fifo
from .models import (
    AdvanceResult,
    AdvanceUse,
    Allocation,
    AllocationWrite,
    Invoice,
    Payment,
    PaymentDirection,
)
from .money import round2, to_amount
from .normalize import chronological

logger = logging.getLogger(__name__)

PersistAllocation = Callable[[str, Allocation], None]


@dataclass(slots=True)
class BillApplication:
    payment_id: str
    bill_id: str
    bill_number: str
    amount_applied: float
    bill_outstanding: float


@dataclass(slots=True)
class AdvanceApplication:
    total_applied: float = 0.0
    remaining_advance: float = 0.0
    applications: list[BillApplication] = field(default_factory=list)


def _advance_payments(
    party_id: str, payments: Iterable[Payment], direction: PaymentDirection | None
) -> list[Payment]:
    # Advance-allocation records restate money already held on the source payment.
    return [
        p
        for p in payments
        if p.party_id == party_id
        and p.direction != "advance_allocation"
        and not p.advance_refunded
        and (direction is None or p.direction == direction)
    ]


def unallocated(payment: Payment) -> float:
    """Part of ``payment`` not yet allocated to any bill (may be negative)."""
    return round2(to_amount(payment.total_amount) - to_amount(payment.allocated_total))


def get_party_advance(
    party_id: str,
    payments: Iterable[Payment],
    direction: PaymentDirection | None = None,
) -> float:
    """Total unallocated money held for ``party_id``.

    The raw sum can go negative when allocations exceed a payment's total;
    use :func:`available_advance` wherever the value is spent.
    """
    return round2(sum(unallocated(p) for p in _advance_payments(party_id, payments, direction)))


def available_advance(
    party_id: str,
    payments: Iterable[Payment],
    direction: PaymentDirection | None = None,
) -> float:
    advance = get_party_advance(party_id, payments, direction)
    if advance < 0:
        logger.warning("Party %s has negative advance %.2f; treating as zero", party_id, advance)
        return 0.0
    return advance


def allocate_advance_to_bill(
    party_id: str,
    bill_outstanding,
    payments: Sequence[Payment],
    direction: PaymentDirection | None = None,
) -> AdvanceResult:
    """Draw the party's advance against a bill, oldest payment first.

    Never allocates more than ``min(available advance, bill_outstanding)``
    nor more than any single payment's unallocated remainder.
    """
    outstanding = max(round2(bill_outstanding), 0.0)
    target = round2(min(available_advance(party_id, payments, direction), outstanding))
    remaining = target
    uses: list[AdvanceUse] = []
    for payment in chronological(_advance_payments(party_id, payments, direction)):
        if remaining <= 0:
            break
        leftover = unallocated(payment)
        if leftover <= 0:
            continue
        use = round2(min(leftover, remaining))
        logger.debug(
            "Advance %s: using %.2f of %.2f (still to cover %.2f)",
            payment.id,
            use,
            leftover,
            remaining,
        )
        uses.append(AdvanceUse(payment_id=payment.id, amount_used=use))
        remaining = round2(remaining - use)
    allocated = round2(target - remaining)
    return AdvanceResult(
        allocated_advance=allocated,
        allocations=uses,
        remaining_outstanding=round2(outstanding - allocated),
    )


def mark_advance_used(
    advance_allocations: Iterable[AdvanceUse],
    bill: Invoice,
    bill_outstanding,
    persist: PersistAllocation | None = None,
) -> list[AllocationWrite]:
    """Compute the allocation records that consume advance against ``bill``.

    Each record is appended to the source payment by the write
    collaborator; when ``persist`` is given it is called once per record.
    """
    outstanding = max(round2(bill_outstanding), 0.0)
    writes: list[AllocationWrite] = []
    for use in advance_allocations:
        amount = round2(use.amount_used)
        if amount <= 0:
            continue
        allocation = Allocation(
            bill_type=bill.kind,
            bill_id=bill.id,
            bill_number=bill.number,
            allocated_amount=amount,
            bill_outstanding=outstanding,
            is_full_payment=amount >= outstanding,
        )
        writes.append(AllocationWrite(payment_id=use.payment_id, allocation=allocation))
        outstanding = round2(max(outstanding - amount, 0.0))
    if persist is not None:
        for write in writes:
            persist(write.payment_id, write.allocation)
    return writes


def advance_allocation_record(
    bill: Invoice,
    result: AdvanceResult,
    receipt_number: str,
    payment_date: date | None = None,
) -> Payment:
    """Build the advance-allocation payment stored alongside ``bill``."""
    outstanding = round2(result.allocated_advance + result.remaining_outstanding)
    return Payment(
        id=receipt_number,
        receipt_number=receipt_number,
        date=payment_date or bill.date,
        party_id=bill.party_id,
        total_amount=result.allocated_advance,
        direction="advance_allocation",
        mode="Advance",
        reference=", ".join(use.payment_id for use in result.allocations),
        allocations=(
            Allocation(
                bill_type=bill.kind,
                bill_id=bill.id,
                bill_number=bill.number,
                allocated_amount=result.allocated_advance,
                bill_outstanding=outstanding,
                is_full_payment=result.remaining_outstanding <= 0,
            ),
        ),
    )


def refund_advance(
    payment: Payment,
    persist: Callable[[str], None] | None = None,
) -> Payment:
    """Return a copy of ``payment`` flagged as refunded.

    A refunded payment no longer counts towards the party advance, so
    none of its unallocated remainder can be drawn against bills. When
    ``persist`` is given it is called with the payment id.
    """
    logger.info(
        "Refunding advance %.2f held on %s", max(unallocated(payment), 0.0), payment.id
    )
    refunded = replace(payment, advance_refunded=True)
    if persist is not None:
        persist(payment.id)
    return refunded


def apply_advance_to_bills(
    party_id: str,
    bills: Iterable[Invoice],
    payments: Sequence[Payment],
    outstanding: Mapping[str, float] | None = None,
) -> AdvanceApplication:
    """Spread each advance payment over the party's bills, oldest first.

    ``outstanding`` maps bill id to its current outstanding; by default it
    is derived from allocations already recorded on ``payments``. Inputs
    are not modified.
    """
    party_bills = chronological(b for b in bills if b.party_id == party_id)
    open_amounts: dict[str, float] = {}
    for bill in party_bills:
        if outstanding is not None and bill.id in outstanding:
            open_amounts[bill.id] = round2(outstanding[bill.id])
        else:
            open_amounts[bill.id] = fifo.bill_outstanding(bill, payments)
    result = AdvanceApplication()
    for payment in chronological(_advance_payments(party_id, payments, None)):
        to_apply = unallocated(payment)
        if to_apply <= 0:
            continue
        for bill in party_bills:
            if to_apply <= 0:
                break
            open_amount = open_amounts[bill.id]
            if open_amount <= 0:
                continue
            amount = round2(min(to_apply, open_amount))
            result.applications.append(
                BillApplication(
                    payment_id=payment.id,
                    bill_id=bill.id,
                    bill_number=bill.number,
                    amount_applied=amount,
                    bill_outstanding=open_amount,
                )
            )
            result.total_applied = round2(result.total_applied + amount)
            to_apply = round2(to_apply - amount)
            open_amounts[bill.id] = round2(open_amount - amount)
        result.remaining_advance = round2(result.remaining_advance + to_apply)
    return result


__all__ = [
    "AdvanceApplication",
    "BillApplication",
    "PersistAllocation",
    "advance_allocation_record",
    "allocate_advance_to_bill",
    "apply_advance_to_bills",
    "available_advance",
    "get_party_advance",
    "mark_advance_used",
    "refund_advance",
    "unallocated",
]
