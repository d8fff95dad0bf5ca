from ledger_reconcile.config import DEFAULT_DATE_FORMATS, DEFAULT_SETTINGS, ReconcileSettings


def test_defaults():
    assert DEFAULT_SETTINGS.sales_receipt_prefix == "PRI"
    assert DEFAULT_SETTINGS.purchase_payment_prefix == "PRP"
    assert DEFAULT_SETTINGS.advance_allocation_prefix == "ADV-INV"
    assert DEFAULT_SETTINGS.report_name == "ledger_reconciliation_report.json"
    assert ReconcileSettings.from_env({}) == DEFAULT_SETTINGS


def test_environment_overrides():
    settings = ReconcileSettings.from_env(
        {
            "LEDGER_RECONCILE_SALES_RECEIPT_PREFIX": " RCV ",
            "LEDGER_RECONCILE_PAYMENTS_SHEET": "Receipts",
            "LEDGER_RECONCILE_DATE_FORMATS": "%d.%m.%Y, %Y-%m-%d,",
            "LEDGER_RECONCILE_REPORT_NAME": "",
            "UNRELATED": "x",
        }
    )
    assert settings.sales_receipt_prefix == "RCV"
    assert settings.payments_sheet == "Receipts"
    assert settings.date_formats == ("%d.%m.%Y", "%Y-%m-%d")
    assert settings.report_name == DEFAULT_SETTINGS.report_name


def test_blank_date_formats_keep_defaults():
    settings = ReconcileSettings.from_env({"LEDGER_RECONCILE_DATE_FORMATS": " , "})
    assert settings.date_formats == DEFAULT_DATE_FORMATS


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("LEDGER_RECONCILE_SALES_SHEET", "Invoices")
    assert ReconcileSettings.from_env().sales_sheet == "Invoices"
