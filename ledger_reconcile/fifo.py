"""FIFO allocation of payments to invoices.

Invoices and payments for one party are walked in date order with two
pointers. Each step either skips a settled invoice, skips an exhausted
payment, or applies ``min(invoice outstanding, payment remaining)``
without moving either pointer, so one payment can settle several invoices
and one invoice can draw on several payments. The walk stops as soon as
either list runs out.

The walk is written as a reducer over :class:`AllocationState`; inputs
are never mutated, so the same lists can be fed to several reports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from .models import (
    Allocation,
    Invoice,
    InvoiceAllocation,
    PartySummary,
    Payment,
    PaymentDirection,
    PaymentReceipt,
)
from .money import round2, to_amount
from .normalize import chronological

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AllocationState:
    """Progress of a FIFO walk.

    ``paid`` and ``used`` are indexed by position in the sorted invoice and
    payment sequences.
    """

    invoice_index: int
    payment_index: int
    paid: tuple[float, ...]
    used: tuple[float, ...]
    receipts: tuple[tuple[PaymentReceipt, ...], ...]
    total_paid: float = 0.0

    @classmethod
    def start(cls, invoices: Sequence[Invoice], payments: Sequence[Payment]) -> "AllocationState":
        return cls(
            invoice_index=0,
            payment_index=0,
            paid=tuple(to_amount(inv.paid_amount) for inv in invoices),
            used=tuple(to_amount(p.used_amount) for p in payments),
            receipts=tuple(() for _ in invoices),
        )

    def finished(self, invoices: Sequence[Invoice], payments: Sequence[Payment]) -> bool:
        return self.invoice_index >= len(invoices) or self.payment_index >= len(payments)


@dataclass(slots=True)
class FifoResult:
    invoices: list[InvoiceAllocation] = field(default_factory=list)
    total_paid: float = 0.0
    unapplied: float = 0.0


@dataclass(slots=True)
class PaymentAllocation:
    allocations: list[Allocation] = field(default_factory=list)
    remaining_amount: float = 0.0


def _replace_at(values: tuple, index: int, value) -> tuple:
    return values[:index] + (value,) + values[index + 1 :]


def fifo_step(
    state: AllocationState,
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
) -> AllocationState:
    """Advance the walk by one step. ``state`` must not be finished."""
    i, j = state.invoice_index, state.payment_index
    invoice, payment = invoices[i], payments[j]

    outstanding = round2(to_amount(invoice.total_amount) - state.paid[i])
    if outstanding <= 0:
        return replace(state, invoice_index=i + 1)
    remaining = round2(to_amount(payment.total_amount) - state.used[j])
    if remaining <= 0:
        return replace(state, payment_index=j + 1)

    amount = round2(min(outstanding, remaining))
    logger.debug(
        "FIFO: %.2f from %s to %s (outstanding %.2f, remaining %.2f)",
        amount,
        payment.receipt_number,
        invoice.number,
        outstanding,
        remaining,
    )
    receipt = PaymentReceipt(receipt_number=payment.receipt_number, amount=amount, date=payment.date)
    return replace(
        state,
        paid=_replace_at(state.paid, i, round2(state.paid[i] + amount)),
        used=_replace_at(state.used, j, round2(state.used[j] + amount)),
        receipts=_replace_at(state.receipts, i, state.receipts[i] + (receipt,)),
        total_paid=round2(state.total_paid + amount),
    )


def allocate_fifo(invoices: Iterable[Invoice], payments: Iterable[Payment]) -> FifoResult:
    """Run the FIFO walk over ``invoices`` and ``payments``.

    Both are sorted by date first; records sharing a date keep their input
    order.
    """
    ordered_invoices = chronological(invoices)
    ordered_payments = chronological(payments)
    state = AllocationState.start(ordered_invoices, ordered_payments)
    while not state.finished(ordered_invoices, ordered_payments):
        state = fifo_step(state, ordered_invoices, ordered_payments)

    annotated = []
    for index, invoice in enumerate(ordered_invoices):
        total = to_amount(invoice.total_amount)
        paid = state.paid[index]
        annotated.append(
            InvoiceAllocation(
                id=invoice.id,
                number=invoice.number,
                date=invoice.date,
                total_amount=total,
                paid_amount=paid,
                outstanding=max(0.0, round2(total - paid)),
                payment_receipts=list(state.receipts[index]),
            )
        )
    unapplied = sum(
        max(0.0, round2(to_amount(p.total_amount) - used))
        for p, used in zip(ordered_payments, state.used)
    )
    return FifoResult(invoices=annotated, total_paid=state.total_paid, unapplied=round2(unapplied))


def summarize_party(
    party_id: str,
    invoices: Iterable[Invoice],
    payments: Iterable[Payment],
    direction: PaymentDirection | None = "sales_receipt",
) -> PartySummary:
    """FIFO-allocate one party's payments of ``direction`` to its invoices."""
    party_invoices = [inv for inv in invoices if inv.party_id == party_id]
    party_payments = [
        p
        for p in payments
        if p.party_id == party_id and (direction is None or p.direction == direction)
    ]
    result = allocate_fifo(party_invoices, party_payments)
    total_amount = round2(sum(inv.total_amount for inv in result.invoices))
    summary = PartySummary(
        party_id=party_id,
        total_invoices=len(result.invoices),
        total_amount=total_amount,
        total_paid=result.total_paid,
        total_outstanding=max(0.0, round2(total_amount - result.total_paid)),
        advance=max(0.0, round2(result.total_paid - total_amount)),
        unapplied_payments=result.unapplied,
        invoices=result.invoices,
    )
    logger.debug(
        "Party %s: total %.2f paid %.2f outstanding %.2f advance %.2f",
        party_id,
        summary.total_amount,
        summary.total_paid,
        summary.total_outstanding,
        summary.advance,
    )
    return summary


def summarize_parties(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    direction: PaymentDirection | None = "sales_receipt",
) -> dict[str, PartySummary]:
    """Summaries for every party with an invoice or a matching payment."""
    party_ids: dict[str, None] = {}
    for invoice in invoices:
        party_ids.setdefault(invoice.party_id, None)
    for payment in payments:
        if direction is None or payment.direction == direction:
            party_ids.setdefault(payment.party_id, None)
    return {
        party_id: summarize_party(party_id, invoices, payments, direction)
        for party_id in party_ids
    }


def _targets(allocation: Allocation, bill: Invoice) -> bool:
    if allocation.bill_id != bill.id:
        return False
    return not allocation.bill_type or allocation.bill_type == bill.kind


def recorded_paid(bill: Invoice, payments: Iterable[Payment]) -> float:
    """Amount paid against ``bill`` according to explicit allocation entries.

    Advance-allocation payments are skipped: they restate allocations
    already written to the source payments.
    """
    return round2(
        sum(
            to_amount(a.allocated_amount)
            for p in payments
            if p.direction != "advance_allocation"
            for a in p.allocations
            if _targets(a, bill)
        )
    )


def bill_outstanding(bill: Invoice, payments: Iterable[Payment]) -> float:
    return max(0.0, round2(to_amount(bill.total_amount) - recorded_paid(bill, payments)))


def allocate_payment(
    party_id: str,
    amount,
    bills: Iterable[Invoice],
    payments: Sequence[Payment] = (),
) -> PaymentAllocation:
    """Split a new payment over the party's open bills, oldest first.

    Outstanding amounts come from allocations already recorded on
    ``payments``. Whatever cannot be placed is returned as
    ``remaining_amount`` and becomes advance.
    """
    remaining = max(round2(amount), 0.0)
    result = PaymentAllocation()
    for bill in chronological(b for b in bills if b.party_id == party_id):
        if remaining <= 0:
            break
        outstanding = bill_outstanding(bill, payments)
        if outstanding <= 0:
            continue
        allocated = round2(min(remaining, outstanding))
        result.allocations.append(
            Allocation(
                bill_type=bill.kind,
                bill_id=bill.id,
                bill_number=bill.number,
                allocated_amount=allocated,
                bill_outstanding=outstanding,
                is_full_payment=allocated >= outstanding,
            )
        )
        remaining = round2(remaining - allocated)
    result.remaining_amount = remaining
    return result


__all__ = [
    "AllocationState",
    "FifoResult",
    "PaymentAllocation",
    "allocate_fifo",
    "allocate_payment",
    "bill_outstanding",
    "fifo_step",
    "recorded_paid",
    "summarize_parties",
    "summarize_party",
]
