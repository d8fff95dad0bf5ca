from ledger_reconcile.comparer import compare_paid_amounts
from ledger_reconcile.fifo import summarize_party


def _conflicts_by_id(report):
    return {c.invoice_id: c for c in report.conflicts}


def test_matching_allocations(make_invoice, make_payment, make_allocation):
    invoices = [make_invoice("a", 100, 1), make_invoice("b", 200, 2), make_invoice("c", 50, 3)]
    payments = [make_payment("p1", 150, 4, allocations=[make_allocation("a", 100), make_allocation("b", 50)])]

    report = compare_paid_amounts(invoices, payments, [summarize_party("P1", invoices, payments)])

    assert report.matched == ["a", "b", "c"]
    assert report.conflicts == []


def test_amount_mismatch(make_invoice, make_payment, make_allocation):
    invoices = [make_invoice("a", 100, 1), make_invoice("b", 200, 2)]
    payments = [make_payment("p1", 150, 4, allocations=[make_allocation("a", 100), make_allocation("b", 30)])]

    report = compare_paid_amounts(invoices, payments, [summarize_party("P1", invoices, payments)])

    conflict = _conflicts_by_id(report)["b"]
    assert conflict.reason == "amount_mismatch"
    assert conflict.recorded_paid == 30
    assert conflict.computed_paid == 50
    assert conflict.invoice_number == "INV-b"
    assert report.matched == ["a"]


def test_missing_on_either_side(make_invoice, make_payment):
    shared = make_invoice("a", 100, 1)
    only_recorded = make_invoice("x", 10, 2)
    only_computed = make_invoice("z", 20, 2, party="P2")
    payments = [make_payment("p1", 100, 3)]
    summaries = [
        summarize_party("P1", [shared], payments),
        summarize_party("P2", [only_computed], payments),
    ]

    report = compare_paid_amounts([shared, only_recorded], payments, summaries)

    conflicts = _conflicts_by_id(report)
    assert conflicts["x"].reason == "missing_in_computed"
    assert conflicts["x"].computed_paid is None
    assert conflicts["z"].reason == "missing_in_recorded"
    assert conflicts["z"].recorded_paid is None
    assert conflicts["a"].reason == "amount_mismatch"
    assert report.matched == []
