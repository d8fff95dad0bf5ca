from datetime import date

import pytest

from ledger_reconcile.advance import (
    advance_allocation_record,
    allocate_advance_to_bill,
    apply_advance_to_bills,
    available_advance,
    get_party_advance,
    mark_advance_used,
    refund_advance,
)
from ledger_reconcile.aging import aging_summary
from ledger_reconcile.fifo import bill_outstanding
from ledger_reconcile.models import AdvanceUse, Allocation


@pytest.fixture
def payments(make_payment, make_allocation):
    return [
        make_payment("late", 300, 20),
        make_payment("early", 500, 2, allocations=[make_allocation("x", 350)]),
        make_payment("middle", 100, 10),
        make_payment("other-party", 900, 1, party="P2"),
        make_payment(
            "adv-record", 120, 11, direction="advance_allocation", receipt="ADV-INV/1",
            allocations=[make_allocation("y", 120)],
        ),
    ]


class TestPartyAdvance:
    def test_sums_unallocated_remainders(self, payments):
        assert get_party_advance("P1", payments) == 550

    def test_direction_filter(self, payments, make_payment):
        payments.append(make_payment("paid", 70, 3, direction="purchase_payment", receipt="PRP-1"))
        assert get_party_advance("P1", payments, "purchase_payment") == 70
        assert get_party_advance("P1", payments, "sales_receipt") == 550

    def test_unknown_party(self, payments):
        assert get_party_advance("nobody", payments) == 0

    def test_corrupt_allocations_go_negative_but_are_clamped(self, make_payment, make_allocation):
        broken = [make_payment("p", 100, 1, allocations=[make_allocation("a", 180)])]
        assert get_party_advance("P1", broken) == -80
        assert available_advance("P1", broken) == 0


class TestAllocateAdvanceToBill:
    def test_oldest_leftover_first(self, payments):
        result = allocate_advance_to_bill("P1", 200, payments)
        assert result.allocated_advance == 200
        assert [(a.payment_id, a.amount_used) for a in result.allocations] == [
            ("early", 150),
            ("middle", 50),
        ]
        assert result.remaining_outstanding == 0

    def test_bill_larger_than_advance(self, payments):
        result = allocate_advance_to_bill("P1", 1000, payments)
        assert result.allocated_advance == 550
        assert sum(a.amount_used for a in result.allocations) == 550
        assert result.remaining_outstanding == 450

    @pytest.mark.parametrize("outstanding", [0, -10, 1, 149.99, 550, 551, 10_000])
    def test_never_exceeds_bound(self, payments, outstanding):
        result = allocate_advance_to_bill("P1", outstanding, payments)
        bound = min(available_advance("P1", payments), max(outstanding, 0))
        assert result.allocated_advance <= bound
        assert sum(a.amount_used for a in result.allocations) == pytest.approx(result.allocated_advance)

    def test_no_advance(self, make_payment, make_allocation):
        spent = [make_payment("p", 100, 1, allocations=[make_allocation("a", 100)])]
        result = allocate_advance_to_bill("P1", 50, spent)
        assert result.allocated_advance == 0
        assert result.allocations == []
        assert result.remaining_outstanding == 50


class TestMarkAdvanceUsed:
    def test_builds_allocation_records_and_persists(self, make_invoice):
        bill = make_invoice("b1", 400, 15)
        written = []

        writes = mark_advance_used(
            [AdvanceUse("early", 150), AdvanceUse("middle", 50), AdvanceUse("zero", 0)],
            bill,
            400,
            persist=lambda payment_id, allocation: written.append((payment_id, allocation)),
        )

        assert [w.payment_id for w in writes] == ["early", "middle"]
        first, second = (w.allocation for w in writes)
        assert (first.bill_id, first.allocated_amount, first.bill_outstanding, first.is_full_payment) == (
            "b1", 150, 400, False,
        )
        assert second.bill_outstanding == 250
        assert [(pid, a) for pid, a in written] == [(w.payment_id, w.allocation) for w in writes]

    def test_without_persist_only_computes(self, make_invoice):
        writes = mark_advance_used([AdvanceUse("p", 75)], make_invoice("b", 75, 1), 75)
        assert writes[0].allocation.is_full_payment

    def test_round_trip_reduces_party_advance(self, payments, make_invoice):
        bill = make_invoice("new", 200, 25)
        result = allocate_advance_to_bill("P1", 200, payments)
        for write in mark_advance_used(result.allocations, bill, 200):
            payment = next(p for p in payments if p.id == write.payment_id)
            payment.allocations = payment.allocations + (write.allocation,)
        assert get_party_advance("P1", payments) == 350


def test_advance_allocation_record(make_invoice, payments):
    bill = make_invoice("b9", 600, 21, number="INV/9")
    result = allocate_advance_to_bill("P1", 600, payments)

    record = advance_allocation_record(bill, result, "ADV-INV/9")

    assert record.direction == "advance_allocation"
    assert record.total_amount == 550
    assert record.date == bill.date
    (allocation,) = record.allocations
    assert allocation.bill_outstanding == 600
    assert allocation.allocated_amount == 550
    assert not allocation.is_full_payment
    assert get_party_advance("P1", payments + [record]) == 550


class TestApplyAdvanceToBills:
    def test_spreads_over_open_bills(self, payments, make_invoice):
        bills = [make_invoice("b2", 400, 12), make_invoice("b1", 100, 5), make_invoice("paid", 50, 1)]
        result = apply_advance_to_bills("P1", bills, payments, outstanding={"paid": 0})

        assert [(a.payment_id, a.bill_id, a.amount_applied) for a in result.applications] == [
            ("early", "b1", 100),
            ("early", "b2", 50),
            ("middle", "b2", 100),
            ("late", "b2", 250),
        ]
        assert result.total_applied == 500
        assert result.remaining_advance == 50

    def test_inputs_untouched(self, payments, make_invoice):
        bills = [make_invoice("b1", 100, 5)]
        apply_advance_to_bills("P1", bills, payments)
        assert bills[0].total_amount == 100
        assert bills[0].paid_amount == 0


def test_uncoerced_allocation_amounts(make_payment):
    payment = make_payment(
        "p",
        100,
        1,
        allocations=[
            Allocation("invoice", "a", "INV-a", "40", 40, True),
            Allocation("invoice", "b", "INV-b", None, 0, False),
        ],
    )
    assert payment.allocated_total == 40
    assert get_party_advance("P1", [payment]) == 60
    assert allocate_advance_to_bill("P1", 100, [payment]).allocated_advance == 60


class TestAdvanceFlow:
    def test_bill_outstanding_after_advance_is_written_back(self, make_invoice, make_payment):
        bill = make_invoice("b1", 300, 25)
        payments = [make_payment("adv", 100, 1)]

        def persist(payment_id, allocation):
            payment = next(p for p in payments if p.id == payment_id)
            payment.allocations = payment.allocations + (allocation,)

        outstanding = bill_outstanding(bill, payments)
        result = allocate_advance_to_bill("P1", outstanding, payments)
        mark_advance_used(result.allocations, bill, outstanding, persist=persist)
        payments.append(advance_allocation_record(bill, result, "ADV-INV/1"))

        assert result.allocated_advance == 100
        assert bill_outstanding(bill, payments) == 200
        assert get_party_advance("P1", payments) == 0
        (row,) = aging_summary([bill], payments, date(2025, 4, 30))
        assert row.total_outstanding == 200
        assert row.last_paid_date == date(2025, 4, 1)


class TestRefundAdvance:
    def test_refunded_payment_leaves_the_advance(self, payments, make_invoice):
        early = next(p for p in payments if p.id == "early")
        refunded_ids = []

        refunded = refund_advance(early, persist=refunded_ids.append)
        payments = [refunded if p.id == "early" else p for p in payments]

        assert refunded.advance_refunded
        assert not early.advance_refunded
        assert refunded_ids == ["early"]
        assert get_party_advance("P1", payments) == 400
        result = allocate_advance_to_bill("P1", 200, payments)
        assert [a.payment_id for a in result.allocations] == ["middle", "late"]
        applied = apply_advance_to_bills("P1", [make_invoice("b", 1000, 21)], payments)
        assert "early" not in {a.payment_id for a in applied.applications}
        assert applied.total_applied == 400
