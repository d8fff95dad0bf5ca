"""Run settings for reconciliation reports."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

DEFAULT_REPORT_NAME = "ledger_reconciliation_report.json"
DEFAULT_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%m/%d/%Y",
)
ENV_PREFIX = "LEDGER_RECONCILE_"


@dataclass(frozen=True, slots=True)
class ReconcileSettings:
    """Receipt prefixes, worksheet names and date formats used for a run.

    Receipt prefixes are only consulted when a payment record carries no
    explicit direction. The advance prefix is checked first.
    """

    sales_receipt_prefix: str = "PRI"
    purchase_payment_prefix: str = "PRP"
    advance_allocation_prefix: str = "ADV-INV"
    sales_sheet: str = "Sales"
    purchases_sheet: str = "Purchases"
    payments_sheet: str = "Payments"
    allocations_sheet: str = "Allocations"
    report_name: str = DEFAULT_REPORT_NAME
    date_formats: tuple[str, ...] = DEFAULT_DATE_FORMATS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ReconcileSettings":
        """Build settings, overriding defaults from ``LEDGER_RECONCILE_*`` variables.

        ``LEDGER_RECONCILE_DATE_FORMATS`` is a comma separated list.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for name in (
            "sales_receipt_prefix",
            "purchase_payment_prefix",
            "advance_allocation_prefix",
            "sales_sheet",
            "purchases_sheet",
            "payments_sheet",
            "allocations_sheet",
            "report_name",
        ):
            value = env.get(ENV_PREFIX + name.upper())
            if value:
                overrides[name] = value.strip()
        formats = env.get(ENV_PREFIX + "DATE_FORMATS")
        if formats:
            parsed = tuple(f.strip() for f in formats.split(",") if f.strip())
            if parsed:
                overrides["date_formats"] = parsed
        return replace(cls(), **overrides)


DEFAULT_SETTINGS = ReconcileSettings()

__all__ = [
    "DEFAULT_DATE_FORMATS",
    "DEFAULT_REPORT_NAME",
    "DEFAULT_SETTINGS",
    "ENV_PREFIX",
    "ReconcileSettings",
]
