from __future__ import annotations

from typing import Dict, Iterable, Sequence

from .fifo import recorded_paid
from .models import (
    ComparisonReport,
    Invoice,
    InvoiceAllocation,
    PaidConflict,
    PartySummary,
    Payment,
)
from .money import round2


def compare_paid_amounts(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    summaries: Iterable[PartySummary],
) -> ComparisonReport:
    """Compare allocation-recorded paid amounts with FIFO-derived ones."""
    recorded_dict: Dict[str, float] = {
        invoice.id: recorded_paid(invoice, payments) for invoice in invoices
    }
    numbers: Dict[str, str] = {invoice.id: invoice.number for invoice in invoices}
    computed_dict: Dict[str, InvoiceAllocation] = {
        allocation.id: allocation
        for summary in summaries
        for allocation in summary.invoices
    }

    conflicts = [
        PaidConflict(
            invoice_id=invoice_id,
            invoice_number=computed_dict[invoice_id].number,
            recorded_paid=None,
            computed_paid=computed_dict[invoice_id].paid_amount,
            reason="missing_in_recorded",
        )
        for invoice_id in computed_dict
        if invoice_id not in recorded_dict
    ]
    conflicts.extend(
        PaidConflict(
            invoice_id=invoice_id,
            invoice_number=numbers.get(invoice_id),
            recorded_paid=paid,
            computed_paid=None,
            reason="missing_in_computed",
        )
        for invoice_id, paid in recorded_dict.items()
        if invoice_id not in computed_dict
    )

    matched = []
    for invoice_id in sorted(recorded_dict.keys() & computed_dict.keys()):
        recorded = recorded_dict[invoice_id]
        computed = round2(computed_dict[invoice_id].paid_amount)
        if recorded != computed:
            conflicts.append(
                PaidConflict(
                    invoice_id=invoice_id,
                    invoice_number=numbers.get(invoice_id),
                    recorded_paid=recorded,
                    computed_paid=computed,
                    reason="amount_mismatch",
                )
            )
        else:
            matched.append(invoice_id)

    return ComparisonReport(matched=matched, conflicts=conflicts)


__all__ = ["compare_paid_amounts"]
