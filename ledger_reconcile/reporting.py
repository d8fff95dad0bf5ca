"""JSON report helpers."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .aging import AgingRow
from .models import ComparisonReport, PartyLedger, PartySummary


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _json_default(value: Any):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def summary_to_dict(summary: PartySummary, *, include_invoices: bool = True) -> Dict[str, object]:
    payload = asdict(summary)
    if not include_invoices:
        payload.pop("invoices")
    return payload


def ledger_to_dict(ledger: PartyLedger) -> Dict[str, object]:
    return asdict(ledger)


def aging_to_dict(row: AgingRow) -> Dict[str, object]:
    return asdict(row)


def comparison_to_dict(report: ComparisonReport) -> Dict[str, object]:
    return {
        "matched": len(report.matched),
        "conflicts": [asdict(conflict) for conflict in report.conflicts],
    }


def write_report(payload: Dict[str, object], report_path: Path) -> None:
    """Write ``payload`` as UTF-8 JSON, creating parent directories."""
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(
        json.dumps(payload, indent=2, default=_json_default),
        encoding="utf-8",
    )


__all__ = [
    "aging_to_dict",
    "comparison_to_dict",
    "iso_timestamp",
    "ledger_to_dict",
    "summary_to_dict",
    "write_report",
]
