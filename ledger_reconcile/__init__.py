"""FIFO payment allocation, advances and party ledgers for invoicing data."""

from .advance import (
    allocate_advance_to_bill,
    apply_advance_to_bills,
    available_advance,
    get_party_advance,
    mark_advance_used,
    refund_advance,
)
from .fifo import allocate_fifo, allocate_payment, summarize_parties, summarize_party
from .ledger import build_party_ledger
from .money import (
    apply_line_discount,
    compute_bill_totals,
    parse_qty_expression,
    round2,
    split_gst,
)
from .runner import run_reconciliation

__all__ = [
    "allocate_advance_to_bill",
    "allocate_fifo",
    "allocate_payment",
    "apply_advance_to_bills",
    "apply_line_discount",
    "available_advance",
    "build_party_ledger",
    "compute_bill_totals",
    "get_party_advance",
    "mark_advance_used",
    "parse_qty_expression",
    "refund_advance",
    "round2",
    "run_reconciliation",
    "split_gst",
    "summarize_parties",
    "summarize_party",
]
