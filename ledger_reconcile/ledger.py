"""Party ledger: sales, purchases and payments as one running balance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .models import Invoice, LedgerEntry, LedgerEntryType, PartyLedger, Payment
from .money import round2, to_amount
from .normalize import chronological

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Transaction:
    date: date
    type: LedgerEntryType
    ref_no: str
    description: str
    debit: float
    credit: float


def _payment_description(label: str, payment: Payment) -> str:
    text = f"{label} - {payment.mode or 'Cash'}"
    if payment.reference:
        text += f" ({payment.reference})"
    return text


def _collect(
    party_id: str,
    invoices: Iterable[Invoice],
    purchases: Iterable[Invoice],
    payments: Iterable[Payment],
) -> list[_Transaction]:
    transactions: list[_Transaction] = []
    skipped = 0
    for invoice in invoices:
        if invoice.party_id != party_id:
            continue
        amount = round2(invoice.total_amount)
        if invoice.date is None or amount <= 0:
            skipped += 1
            continue
        transactions.append(
            _Transaction(
                invoice.date, "sale", invoice.number, f"Sale Invoice - {invoice.number}", amount, 0.0
            )
        )
    for bill in purchases:
        if bill.party_id != party_id:
            continue
        amount = round2(bill.total_amount)
        if bill.date is None or amount <= 0:
            skipped += 1
            continue
        transactions.append(
            _Transaction(
                bill.date, "purchase", bill.number, f"Purchase Bill - {bill.number}", 0.0, amount
            )
        )
    for payment in payments:
        if payment.party_id != party_id or payment.direction == "advance_allocation":
            continue
        amount = round2(to_amount(payment.total_amount))
        if payment.date is None or amount <= 0:
            skipped += 1
            continue
        if payment.direction == "purchase_payment":
            transactions.append(
                _Transaction(
                    payment.date,
                    "payment_paid",
                    payment.receipt_number,
                    _payment_description("Payment Against Purchase", payment),
                    amount,
                    0.0,
                )
            )
        else:
            label = "Payment Received" if payment.direction == "sales_receipt" else "Payment"
            transactions.append(
                _Transaction(
                    payment.date,
                    "payment_received",
                    payment.receipt_number,
                    _payment_description(label, payment),
                    0.0,
                    amount,
                )
            )
    if skipped:
        logger.debug("Ledger %s: skipped %d undated or zero-amount records", party_id, skipped)
    return chronological(transactions)


def build_party_ledger(
    party_id: str,
    invoices: Iterable[Invoice],
    purchases: Iterable[Invoice],
    payments: Iterable[Payment],
    start: date | None = None,
    end: date | None = None,
) -> PartyLedger:
    """Build the ledger of ``party_id`` for ``start``..``end`` (both inclusive).

    Sales and payments made to the party are debits and raise the balance;
    purchases and payments received are credits and lower it. A positive
    balance is receivable, a negative one payable. Transactions before
    ``start`` only contribute to the opening balance.
    """
    transactions = _collect(party_id, invoices, purchases, payments)
    if end is not None:
        transactions = [t for t in transactions if t.date <= end]

    opening = 0.0
    in_range: list[_Transaction] = []
    for txn in transactions:
        if start is not None and txn.date < start:
            opening = round2(opening + txn.debit - txn.credit)
        else:
            in_range.append(txn)

    ledger = PartyLedger(party_id=party_id, start=start, end=end, opening_balance=opening)
    balance = opening
    total_debit = total_credit = 0.0
    for txn in in_range:
        balance = round2(balance + txn.debit - txn.credit)
        total_debit += txn.debit
        total_credit += txn.credit
        ledger.entries.append(
            LedgerEntry(
                date=txn.date,
                type=txn.type,
                ref_no=txn.ref_no,
                description=txn.description,
                debit=txn.debit,
                credit=txn.credit,
                balance=balance,
            )
        )
    ledger.closing_balance = balance
    ledger.total_debit = round2(total_debit)
    ledger.total_credit = round2(total_credit)
    ledger.outstanding = balance
    return ledger


__all__ = ["build_party_ledger"]
