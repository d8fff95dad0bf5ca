"""Domain models for party ledger reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

BillKind = Literal["invoice", "purchase", "challan", "quotation"]
DiscountType = Literal["percent", "amount"]
PaymentDirection = Literal[
    "sales_receipt",
    "purchase_payment",
    "advance_allocation",
    "other",
]
LedgerEntryType = Literal[
    "sale",
    "purchase",
    "payment_received",
    "payment_paid",
]
ConflictReason = Literal[
    "amount_mismatch",
    "missing_in_recorded",
    "missing_in_computed",
]


@dataclass(slots=True)
class LineItem:
    """One row of an invoice or bill."""

    quantity: float
    rate: float
    discount_type: str | None = None
    discount_value: float = 0.0
    gst_percent: float = 0.0
    qty_display: str | None = None


@dataclass(slots=True)
class Invoice:
    """A sales invoice, purchase bill, challan or quotation."""

    id: str
    number: str
    date: date | None
    party_id: str
    total_amount: float
    kind: BillKind = "invoice"
    lines: tuple[LineItem, ...] = ()
    paid_amount: float = 0.0


@dataclass(slots=True)
class Allocation:
    """Part of a payment applied to a specific bill."""

    bill_type: str
    bill_id: str
    bill_number: str
    allocated_amount: float
    bill_outstanding: float
    is_full_payment: bool


@dataclass(slots=True)
class Payment:
    """Money received from, or paid to, a party."""

    id: str
    receipt_number: str
    date: date | None
    party_id: str
    total_amount: float
    direction: PaymentDirection = "other"
    mode: str = ""
    reference: str = ""
    allocations: tuple[Allocation, ...] = ()
    used_amount: float = 0.0
    advance_refunded: bool = False

    @property
    def allocated_total(self) -> float:
        from .money import to_amount  # money imports this module

        return sum(to_amount(a.allocated_amount) for a in self.allocations)


@dataclass(slots=True)
class PaymentReceipt:
    """Trail entry recording which payment settled part of an invoice."""

    receipt_number: str
    amount: float
    date: date | None


@dataclass(slots=True)
class InvoiceAllocation:
    """An invoice annotated with the outcome of a FIFO walk."""

    id: str
    number: str
    date: date | None
    total_amount: float
    paid_amount: float
    outstanding: float
    payment_receipts: list[PaymentReceipt] = field(default_factory=list)


@dataclass(slots=True)
class PartySummary:
    """Per-party totals produced by the FIFO engine."""

    party_id: str
    total_invoices: int = 0
    total_amount: float = 0.0
    total_paid: float = 0.0
    total_outstanding: float = 0.0
    advance: float = 0.0
    unapplied_payments: float = 0.0
    invoices: list[InvoiceAllocation] = field(default_factory=list)


@dataclass(slots=True)
class AdvanceUse:
    payment_id: str
    amount_used: float


@dataclass(slots=True)
class AdvanceResult:
    """Outcome of drawing a party's advance against one bill."""

    allocated_advance: float
    allocations: list[AdvanceUse] = field(default_factory=list)
    remaining_outstanding: float = 0.0


@dataclass(slots=True)
class AllocationWrite:
    """An allocation record the write collaborator should append to a payment."""

    payment_id: str
    allocation: Allocation


@dataclass(slots=True)
class LedgerEntry:
    date: date
    type: LedgerEntryType
    ref_no: str
    description: str
    debit: float
    credit: float
    balance: float


@dataclass(slots=True)
class PartyLedger:
    """A party's ledger for a date range."""

    party_id: str
    start: date | None
    end: date | None
    opening_balance: float = 0.0
    closing_balance: float = 0.0
    total_debit: float = 0.0
    total_credit: float = 0.0
    outstanding: float = 0.0
    entries: list[LedgerEntry] = field(default_factory=list)


@dataclass(slots=True)
class PaidConflict:
    """Describes a disagreement between recorded and FIFO-derived paid amounts."""

    invoice_id: str
    invoice_number: str | None
    recorded_paid: float | None
    computed_paid: float | None
    reason: ConflictReason


@dataclass(slots=True)
class ComparisonReport:
    """Groups comparison outcomes for later processing."""

    matched: list[str] = field(default_factory=list)
    conflicts: list[PaidConflict] = field(default_factory=list)


__all__ = [
    "AdvanceResult",
    "AdvanceUse",
    "Allocation",
    "AllocationWrite",
    "BillKind",
    "ComparisonReport",
    "ConflictReason",
    "DiscountType",
    "Invoice",
    "InvoiceAllocation",
    "LedgerEntry",
    "LedgerEntryType",
    "LineItem",
    "PaidConflict",
    "PartyLedger",
    "PartySummary",
    "Payment",
    "PaymentDirection",
    "PaymentReceipt",
]
