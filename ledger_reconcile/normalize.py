"""Read boundary: map upstream invoice and payment records onto the models.

Upstream documents name the same field several ways (``amount``,
``totalAmount``, ``grandTotal`` ...). Everything past this module only
sees the canonical dataclasses.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from .config import DEFAULT_DATE_FORMATS, DEFAULT_SETTINGS, ReconcileSettings
from .exceptions import InvalidDateError
from .money import to_amount
from .models import Allocation, Invoice, LineItem, Payment, PaymentDirection

logger = logging.getLogger(__name__)

_DIRECTIONS = ("sales_receipt", "purchase_payment", "advance_allocation", "other")

_BILL_NUMBER_KEYS = (
    "number",
    "invoiceNumber",
    "invoiceNo",
    "billNumber",
    "billNo",
    "challanNumber",
    "quotationNumber",
)
_BILL_DATE_KEYS = ("invoiceDate", "billDate", "challanDate", "quotationDate", "date", "createdAt")
_BILL_AMOUNT_KEYS = ("totalAmount", "grandTotal", "amount", "invoiceAmount", "billAmount")
_PAYMENT_AMOUNT_KEYS = ("totalAmount", "amount", "paymentAmount")
_RECEIPT_KEYS = ("receiptNumber", "paymentId", "number")


def _pick(record: Mapping[str, Any], keys: Iterable[str], default=None):
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return default


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "full")
    return bool(value)


def parse_date(value, formats: Iterable[str] = DEFAULT_DATE_FORMATS) -> date | None:
    """Parse ``value`` into a date, returning ``None`` when it is not one."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def require_date(value, formats: Iterable[str] = DEFAULT_DATE_FORMATS) -> date:
    parsed = parse_date(value, formats)
    if parsed is None:
        raise InvalidDateError(f"Unsupported date format: {value!r}")
    return parsed


def chronological(records: Iterable[Any]) -> list:
    """Sort records by ``.date`` ascending, keeping input order for ties.

    Undated records go last.
    """
    return sorted(records, key=lambda r: (r.date is None, r.date or date.min))


def normalize_party_id(value) -> str:
    return _text(value)


def _party_of(record: Mapping[str, Any]) -> str:
    custom = record.get("customFields")
    custom_party = custom.get("party") if isinstance(custom, Mapping) else None
    return normalize_party_id(
        custom_party or _pick(record, ("partyId", "party", "customerId", "supplierId"))
    )


def payment_direction(
    receipt_number, settings: ReconcileSettings = DEFAULT_SETTINGS
) -> PaymentDirection:
    ref = _text(receipt_number).upper()
    if ref.startswith(settings.advance_allocation_prefix.upper()):
        return "advance_allocation"
    if ref.startswith(settings.sales_receipt_prefix.upper()):
        return "sales_receipt"
    if ref.startswith(settings.purchase_payment_prefix.upper()):
        return "purchase_payment"
    return "other"


def normalize_line(record: Mapping[str, Any]) -> LineItem:
    qty_display = _pick(record, ("qtyExpression", "qtyDisplay"))
    return LineItem(
        quantity=to_amount(_pick(record, ("quantity", "qty", "nos"))),
        rate=to_amount(record.get("rate")),
        discount_type=_pick(record, ("discountType",)),
        discount_value=to_amount(_pick(record, ("discountValue", "discount"))),
        gst_percent=to_amount(_pick(record, ("gstPercent", "gstPercentage", "gst"))),
        qty_display=_text(qty_display) or None,
    )


def normalize_invoice(
    record: Mapping[str, Any],
    kind: str = "invoice",
    settings: ReconcileSettings = DEFAULT_SETTINGS,
) -> Invoice:
    """Build an :class:`Invoice` from a raw bill record.

    Numbers starting with the advance-allocation prefix denote advance
    invoices and are stored with a negative total.
    """
    record_id = _text(record.get("id"))
    number = _text(_pick(record, _BILL_NUMBER_KEYS)) or record_id
    amount = to_amount(_pick(record, _BILL_AMOUNT_KEYS))
    if number.upper().startswith(settings.advance_allocation_prefix.upper()) and amount > 0:
        amount = -amount
    rows = record.get("rows") or record.get("items") or record.get("lines") or ()
    return Invoice(
        id=record_id or number,
        number=number,
        date=parse_date(_pick(record, _BILL_DATE_KEYS), settings.date_formats),
        party_id=_party_of(record),
        total_amount=amount,
        kind=kind,  # type: ignore[arg-type]
        lines=tuple(normalize_line(row) for row in rows if isinstance(row, Mapping)),
        paid_amount=to_amount(record.get("paidAmount")),
    )


def normalize_allocation(record: Mapping[str, Any]) -> Allocation:
    allocated = to_amount(_pick(record, ("allocatedAmount", "amount", "amountApplied")))
    outstanding = to_amount(_pick(record, ("billOutstanding", "outstanding")))
    full = record.get("isFullPayment")
    if full is None:
        full = allocated >= outstanding > 0
    return Allocation(
        bill_type=_text(record.get("billType")) or "invoice",
        bill_id=_text(record.get("billId")),
        bill_number=_text(_pick(record, ("billNumber", "number"))),
        allocated_amount=allocated,
        bill_outstanding=outstanding,
        is_full_payment=_flag(full),
    )


def normalize_payment(
    record: Mapping[str, Any], settings: ReconcileSettings = DEFAULT_SETTINGS
) -> Payment:
    record_id = _text(record.get("id"))
    receipt = _text(_pick(record, _RECEIPT_KEYS)) or record_id
    direction = _text(record.get("direction"))
    if direction not in _DIRECTIONS:
        if direction:
            logger.warning("Unknown payment direction %r on %s", direction, receipt)
        direction = payment_direction(receipt, settings)
    allocations = record.get("allocations") or ()
    return Payment(
        id=record_id or receipt,
        receipt_number=receipt,
        date=parse_date(_pick(record, ("paymentDate", "date", "createdAt")), settings.date_formats),
        party_id=_party_of(record),
        total_amount=to_amount(_pick(record, _PAYMENT_AMOUNT_KEYS)),
        direction=direction,  # type: ignore[arg-type]
        mode=_text(record.get("paymentMode")),
        reference=_text(_pick(record, ("reference", "notes"))),
        allocations=tuple(
            normalize_allocation(item) for item in allocations if isinstance(item, Mapping)
        ),
        used_amount=to_amount(record.get("usedAmount")),
        advance_refunded=_flag(record.get("advanceRefunded")),
    )


__all__ = [
    "chronological",
    "normalize_allocation",
    "normalize_invoice",
    "normalize_line",
    "normalize_party_id",
    "normalize_payment",
    "parse_date",
    "payment_direction",
    "require_date",
]
