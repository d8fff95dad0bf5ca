"""High-level orchestration for the reconciliation report."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Dict, List

from . import aging, comparer, excel_reader, fifo, ledger
from .advance import available_advance, get_party_advance
from .config import ReconcileSettings
from .normalize import require_date
from .reporting import (
    aging_to_dict,
    comparison_to_dict,
    iso_timestamp,
    ledger_to_dict,
    summary_to_dict,
    write_report,
)

logger = logging.getLogger(__name__)


def _party_ids(workbook: excel_reader.LedgerWorkbook, party_id: str | None) -> List[str]:
    if party_id:
        return [party_id]
    seen: Dict[str, None] = {}
    for record in (*workbook.invoices, *workbook.purchases, *workbook.payments):
        seen.setdefault(record.party_id, None)
    return list(seen)


def _advance_to_dict(party_id: str, workbook: excel_reader.LedgerWorkbook) -> Dict[str, object]:
    # Received advance and advance paid to the party are kept apart.
    return {
        "party_id": party_id,
        "advance": get_party_advance(party_id, workbook.payments, "sales_receipt"),
        "available": available_advance(party_id, workbook.payments, "sales_receipt"),
        "paid_advance": available_advance(party_id, workbook.payments, "purchase_payment"),
    }


def run_reconciliation(
    workbook_path: str | Path,
    *,
    output_path: str | Path | None = None,
    party_id: str | None = None,
    start: date | str | None = None,
    end: date | str | None = None,
    settings: ReconcileSettings | None = None,
) -> Path:
    """Contract entry point for reconciling a workbook of bills and payments.

    Args:
        workbook_path: Path to the workbook with Sales, Purchases, Payments
            and (optionally) Allocations worksheets.
        output_path: Optional JSON output path. Defaults to the configured
            report name in the current working directory.
        party_id: Restrict the report to one party.
        start: First day of the ledger period (inclusive).
        end: Last day of the ledger period and the ageing date (inclusive).
        settings: Run settings; read from the environment when omitted.

    Returns:
        Path to the generated JSON report.
    """

    settings = settings or ReconcileSettings.from_env()
    report_path = Path(output_path) if output_path else Path(settings.report_name)
    report_payload: Dict[str, object] = {
        "status": "success",
        "generated_at": iso_timestamp(),
        "period": {"start": None, "end": None},
        "sales": [],
        "purchases": [],
        "ledgers": [],
        "advances": [],
        "aging": [],
        "comparison": None,
        "error": None,
    }

    try:
        start_date = require_date(start, settings.date_formats) if start else None
        end_date = require_date(end, settings.date_formats) if end else None
        report_payload["period"] = {"start": start_date, "end": end_date}

        workbook = excel_reader.read_ledger_workbook(Path(workbook_path), settings)
        parties = _party_ids(workbook, party_id)
        logger.info("Reconciling %d parties", len(parties))

        sales = [
            fifo.summarize_party(pid, workbook.invoices, workbook.payments, "sales_receipt")
            for pid in parties
        ]
        purchases = [
            fifo.summarize_party(pid, workbook.purchases, workbook.payments, "purchase_payment")
            for pid in parties
        ]
        ledgers = [
            ledger.build_party_ledger(
                pid,
                workbook.invoices,
                workbook.purchases,
                workbook.payments,
                start=start_date,
                end=end_date,
            )
            for pid in parties
        ]
        party_set = set(parties)
        aging_rows = aging.aging_summary(
            [inv for inv in workbook.invoices if inv.party_id in party_set],
            [p for p in workbook.payments if p.party_id in party_set],
            end_date or date.today(),
        )
        comparison = comparer.compare_paid_amounts(
            [inv for inv in workbook.invoices if inv.party_id in party_set],
            workbook.payments,
            sales,
        )

        report_payload["sales"] = [summary_to_dict(s) for s in sales if s.total_invoices]
        report_payload["purchases"] = [
            summary_to_dict(s) for s in purchases if s.total_invoices
        ]
        report_payload["ledgers"] = [ledger_to_dict(item) for item in ledgers]
        report_payload["advances"] = [_advance_to_dict(pid, workbook) for pid in parties]
        report_payload["aging"] = [aging_to_dict(row) for row in aging_rows]
        report_payload["comparison"] = comparison_to_dict(comparison)
    except Exception as exc:
        logger.exception("Reconciliation of %s failed", workbook_path)
        report_payload["status"] = "error"
        report_payload["error"] = str(exc)

    write_report(report_payload, report_path)
    logger.info("Report written to %s", report_path)
    return report_path


__all__ = ["run_reconciliation"]
