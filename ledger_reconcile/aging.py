"""Outstanding ageing per party, from recorded payment allocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from .models import Invoice, Payment
from .money import round2, to_amount
from .normalize import chronological


@dataclass(slots=True)
class AgedInvoice:
    id: str
    number: str
    date: date | None
    total: float
    paid: float
    balance: float
    last_payment_date: date | None = None


@dataclass(slots=True)
class AgingRow:
    party_id: str
    total_outstanding: float = 0.0
    outstanding_invoices: list[AgedInvoice] = field(default_factory=list)
    last_paid_date: date | None = None
    pending_ref_date: date | None = None
    days_since_last_paid: int | None = None
    days_since_pending: int | None = None


def _days_between(earlier: date | None, later: date) -> int | None:
    if earlier is None:
        return None
    return max(0, (later - earlier).days)


def aging_summary(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    as_of: date,
) -> list[AgingRow]:
    """Age each party's unpaid invoices as of ``as_of``.

    Only invoices and payments dated on or before ``as_of`` count. The
    pending reference date is the last payment against the oldest unpaid
    invoice, or that invoice's own date when nothing was paid on it.
    """
    invoices = [inv for inv in invoices if inv.date is not None and inv.date <= as_of]
    # Advance-allocation records repeat allocations held on the source payments.
    payments = [
        p
        for p in payments
        if p.date is not None and p.date <= as_of and p.direction != "advance_allocation"
    ]

    paid_by_invoice: dict[str, float] = {}
    last_paid_by_invoice: dict[str, date] = {}
    last_paid_by_party: dict[str, date] = {}
    for payment in payments:
        previous = last_paid_by_party.get(payment.party_id)
        if previous is None or payment.date > previous:
            last_paid_by_party[payment.party_id] = payment.date
        for allocation in payment.allocations:
            if allocation.bill_type not in ("", "invoice") or not allocation.bill_id:
                continue
            paid_by_invoice[allocation.bill_id] = paid_by_invoice.get(
                allocation.bill_id, 0.0
            ) + to_amount(allocation.allocated_amount)
            previous = last_paid_by_invoice.get(allocation.bill_id)
            if previous is None or payment.date > previous:
                last_paid_by_invoice[allocation.bill_id] = payment.date

    rows: dict[str, AgingRow] = {}
    for invoice in chronological(invoices):
        if not invoice.party_id:
            continue
        row = rows.setdefault(invoice.party_id, AgingRow(party_id=invoice.party_id))
        total = to_amount(invoice.total_amount)
        paid = round2(paid_by_invoice.get(invoice.id, 0.0))
        balance = max(0.0, round2(total - paid))
        if balance <= 0:
            continue
        row.total_outstanding = round2(row.total_outstanding + balance)
        row.outstanding_invoices.append(
            AgedInvoice(
                id=invoice.id,
                number=invoice.number,
                date=invoice.date,
                total=total,
                paid=paid,
                balance=balance,
                last_payment_date=last_paid_by_invoice.get(invoice.id),
            )
        )

    for row in rows.values():
        row.last_paid_date = last_paid_by_party.get(row.party_id)
        if row.outstanding_invoices:
            oldest = row.outstanding_invoices[0]
            row.pending_ref_date = oldest.last_payment_date or oldest.date
        row.days_since_last_paid = _days_between(row.last_paid_date, as_of)
        row.days_since_pending = _days_between(row.pending_ref_date, as_of)
    return list(rows.values())


__all__ = ["AgedInvoice", "AgingRow", "aging_summary"]
