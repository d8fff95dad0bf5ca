from datetime import date

import pytest

from ledger_reconcile.models import Allocation, Invoice, Payment


def _invoice(id, total, day, party="P1", number=None, kind="invoice", paid=0.0):
    return Invoice(
        id=id,
        number=number or f"INV-{id}",
        date=date(2025, 4, day) if isinstance(day, int) else day,
        party_id=party,
        total_amount=total,
        kind=kind,
        paid_amount=paid,
    )


def _payment(
    id,
    total,
    day,
    party="P1",
    direction="sales_receipt",
    receipt=None,
    allocations=(),
    mode="",
    reference="",
):
    return Payment(
        id=id,
        receipt_number=receipt or f"PRI-{id}",
        date=date(2025, 4, day) if isinstance(day, int) else day,
        party_id=party,
        total_amount=total,
        direction=direction,
        mode=mode,
        reference=reference,
        allocations=tuple(allocations),
    )


def _allocation(bill_id, amount, bill_type="invoice", outstanding=None):
    outstanding = amount if outstanding is None else outstanding
    return Allocation(
        bill_type=bill_type,
        bill_id=bill_id,
        bill_number=f"INV-{bill_id}",
        allocated_amount=amount,
        bill_outstanding=outstanding,
        is_full_payment=amount >= outstanding,
    )


@pytest.fixture
def make_invoice():
    """Factory for invoices dated in April 2025 (``day`` is the day of month)."""
    return _invoice


@pytest.fixture
def make_payment():
    """Factory for payments dated in April 2025."""
    return _payment


@pytest.fixture
def make_allocation():
    return _allocation


def _write_sheet(workbook, title, headers, rows):
    sheet = workbook.create_sheet(title)
    sheet.append(headers)
    for row in rows:
        sheet.append(row)
    return sheet


@pytest.fixture
def ledger_workbook(tmp_path):
    """A small workbook with two customers, one supplier and recorded allocations."""
    from openpyxl import Workbook

    workbook = Workbook()
    workbook.remove(workbook.active)
    _write_sheet(
        workbook,
        "Sales",
        ["ID", "Invoice Number", "Date", "Party", "Amount"],
        [
            ["s1", "INV/1", date(2025, 4, 1), "C1", 100],
            ["s2", "INV/2", date(2025, 4, 5), "C1", 200],
            ["s3", "INV/3", date(2025, 4, 8), "C2", "1,500.00"],
            ["s4", "INV/4", date(2025, 4, 9), None, 75],
            [None, None, None, None, None],
        ],
    )
    _write_sheet(
        workbook,
        "Purchases",
        ["ID", "Bill No", "Bill Date", "Supplier", "Amount"],
        [["b1", "PRB/1", date(2025, 4, 3), "S1", 400]],
    )
    _write_sheet(
        workbook,
        "Payments",
        ["ID", "Receipt Number", "Payment Date", "Party", "Amount", "Mode"],
        [
            ["r1", "PRI/1", date(2025, 4, 10), "C1", 150, "UPI"],
            ["r2", "PRI/2", "12/04/2025", "C2", 1500, None],
            ["pp1", "PRP/1", date(2025, 4, 11), "S1", 250, "Bank"],
        ],
    )
    _write_sheet(
        workbook,
        "Allocations",
        ["Payment ID", "Bill Type", "Bill ID", "Bill Number", "Allocated Amount", "Bill Outstanding"],
        [
            ["r1", "invoice", "s1", "INV/1", 100, 100],
            ["r1", "invoice", "s2", "INV/2", 30, 200],
            ["r2", "invoice", "s3", "INV/3", 1500, 1500],
            ["pp1", "purchase", "b1", "PRB/1", 250, 400],
            [None, "invoice", "s1", "INV/1", 5, 5],
        ],
    )
    path = tmp_path / "ledger.xlsx"
    workbook.save(path)
    return path
