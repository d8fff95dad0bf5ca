from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from openpyxl import load_workbook

from .config import DEFAULT_SETTINGS, ReconcileSettings
from .exceptions import WorkbookFormatError
from .models import Invoice, Payment
from .normalize import normalize_invoice, normalize_payment

logger = logging.getLogger(__name__)

# Normalised header text -> record key understood by the normalize module
HEADER_KEYS = {
    "id": "id",
    "number": "number",
    "invoicenumber": "number",
    "invoiceno": "number",
    "billnumber": "billNumber",
    "billno": "number",
    "date": "date",
    "invoicedate": "date",
    "billdate": "date",
    "party": "partyId",
    "partyid": "partyId",
    "customer": "partyId",
    "supplier": "partyId",
    "amount": "totalAmount",
    "totalamount": "totalAmount",
    "grandtotal": "totalAmount",
    "paidamount": "paidAmount",
    "receiptnumber": "receiptNumber",
    "receiptno": "receiptNumber",
    "paymentdate": "paymentDate",
    "mode": "paymentMode",
    "paymentmode": "paymentMode",
    "reference": "reference",
    "notes": "reference",
    "direction": "direction",
    "usedamount": "usedAmount",
    "paymentid": "paymentRef",
    "billtype": "billType",
    "billid": "billId",
    "allocatedamount": "allocatedAmount",
    "billoutstanding": "billOutstanding",
    "fullpayment": "isFullPayment",
    "isfullpayment": "isFullPayment",
    "advancerefunded": "advanceRefunded",
    "refunded": "advanceRefunded",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(slots=True)
class LedgerWorkbook:
    invoices: List[Invoice] = field(default_factory=list)
    purchases: List[Invoice] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)


def _header_key(header) -> str:
    if header is None:
        return ""
    text = str(header).strip()
    return HEADER_KEYS.get(_NON_ALNUM.sub("", text.lower()), text)


def _read_rows(
    workbook, sheet_name: str, *, required: bool = True
) -> List[Tuple[int, Dict[str, Any]]]:
    """Return ``(sheet row number, record)`` pairs, skipping blank rows."""
    try:
        sheet = workbook[sheet_name]
    except KeyError as exc:
        if not required:
            return []
        raise WorkbookFormatError(f"Worksheet '{sheet_name}' not found in workbook") from exc
    rows = sheet.iter_rows(values_only=True)
    headers_row = next(rows, None)  # First row should contain column headers
    if headers_row is None:  # Empty sheet edge case
        return []
    headers = [_header_key(header) for header in headers_row]

    records: List[Tuple[int, Dict[str, Any]]] = []
    for row_number, row in enumerate(rows, start=2):
        if row is None or all(value in (None, "") for value in row):
            continue
        record = {
            key: value
            for key, value in zip(headers, row)
            if key and value not in (None, "")
        }
        records.append((row_number, record))
    return records


def _bills(records, kind: str, sheet_name: str, settings: ReconcileSettings) -> List[Invoice]:
    bills: List[Invoice] = []
    for row_number, record in records:
        bill = normalize_invoice(record, kind=kind, settings=settings)
        if not bill.id or not bill.party_id:
            logger.warning("%s row %d skipped: missing id or party", sheet_name, row_number)
            continue
        bills.append(bill)
    return bills


def read_ledger_workbook(
    file_path: Path | str,
    settings: ReconcileSettings = DEFAULT_SETTINGS,
) -> LedgerWorkbook:
    """Load sales, purchases and payments (with allocations) from a workbook."""
    workbook_path = Path(file_path)
    if not workbook_path.exists():
        raise FileNotFoundError(f"Workbook not found: {workbook_path}")
    workbook = load_workbook(filename=workbook_path, data_only=True, read_only=True)
    try:
        sales_rows = _read_rows(workbook, settings.sales_sheet)
        purchase_rows = _read_rows(workbook, settings.purchases_sheet, required=False)
        payment_rows = _read_rows(workbook, settings.payments_sheet)
        allocation_rows = _read_rows(workbook, settings.allocations_sheet, required=False)
    finally:
        workbook.close()  # Always close the workbook handle

    allocations_by_payment: Dict[str, List[Dict[str, Any]]] = {}
    for row_number, record in allocation_rows:
        payment_ref = str(record.get("paymentRef", "")).strip()
        if not payment_ref:
            logger.warning(
                "%s row %d skipped: missing payment id", settings.allocations_sheet, row_number
            )
            continue
        allocations_by_payment.setdefault(payment_ref, []).append(record)

    payments: List[Payment] = []
    for row_number, record in payment_rows:
        key = str(record.get("id") or record.get("receiptNumber") or "").strip()
        record["allocations"] = allocations_by_payment.get(key, [])
        payment = normalize_payment(record, settings)
        if not payment.id or not payment.party_id:
            logger.warning("%s row %d skipped: missing id or party", settings.payments_sheet, row_number)
            continue
        payments.append(payment)

    result = LedgerWorkbook(
        invoices=_bills(sales_rows, "invoice", settings.sales_sheet, settings),
        purchases=_bills(purchase_rows, "purchase", settings.purchases_sheet, settings),
        payments=payments,
    )
    logger.info(
        "Read %d invoices, %d purchase bills, %d payments from %s",
        len(result.invoices),
        len(result.purchases),
        len(result.payments),
        workbook_path,
    )
    return result


__all__ = ["HEADER_KEYS", "LedgerWorkbook", "read_ledger_workbook"]
