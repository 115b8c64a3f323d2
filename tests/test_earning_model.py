"""
Earning ledger model tests.

Verifies:
- final_amount / net_payment are derived live and clamped as documented
- Bonus replaces, deductions accumulate
- net_amount and invoice total are frozen at action time
- Payment lifecycle transitions
"""

from decimal import Decimal

import pytest

from argentessay.models.earning import Earning
from argentessay.utils.exceptions import ValidationFailed


@pytest.fixture
def earning(db_session, writer):
    e = Earning(writer_id=writer.id, job_id="job-001", amount=Decimal("100.00"))
    db_session.add(e)
    db_session.commit()
    return e


# =============================================================================
# DERIVED AMOUNTS
# =============================================================================


class TestDerivedAmounts:

    def test_final_amount(self, earning, admin):
        earning.add_bonus(20, "Fast turnaround", admin.id)
        earning.add_deduction(30, "Late", admin.id)
        earning.add_deduction(10, "Formatting", admin.id)
        assert earning.total_deductions == Decimal("40")
        assert earning.final_amount == Decimal("80")

    def test_final_amount_clamped_at_zero(self, earning, admin):
        earning.add_deduction(150, "Plagiarism", admin.id)
        assert earning.final_amount == Decimal("0")

    def test_net_payment_may_go_negative(self):
        e = Earning(writer_id="usr-x", job_id="job-x", amount=Decimal("50"), processing_fee=Decimal("60"))
        assert e.net_payment == Decimal("-10")

    def test_deductions_are_additive(self, earning, admin):
        for _ in range(3):
            earning.add_deduction(10, "Revision", admin.id)
        assert len(earning.deductions) == 3
        assert earning.total_deductions == Decimal("30")
        assert [d.sequence for d in earning.deductions] == [1, 2, 3]

    def test_bonus_is_replaced(self, earning, admin):
        earning.add_bonus(5, "first", admin.id)
        earning.add_bonus(15, "second", admin.id)
        assert earning.bonus_amount == Decimal("15")
        assert earning.bonus_reason == "second"
        assert earning.final_amount == Decimal("115")

    def test_deductions_persist_in_order(self, db_session, earning, admin):
        earning.add_deduction(5, "a", admin.id)
        earning.add_deduction(7, "b", admin.id)
        db_session.commit()
        db_session.expire_all()
        reloaded = db_session.get(Earning, earning.id)
        assert [d.reason for d in reloaded.deductions] == ["a", "b"]
        assert reloaded.final_amount == Decimal("88")


# =============================================================================
# PAYMENT AND INVOICE SNAPSHOTS
# =============================================================================


class TestSnapshots:

    def test_mark_as_paid(self, db_session, writer):
        e = Earning(writer_id=writer.id, job_id="job-210", amount=Decimal("210"))
        e.mark_as_paid("paypal", "TXN1", 10)
        assert e.payment_status == "paid"
        assert e.net_amount == Decimal("200")
        assert e.paid_at is not None
        assert e.transaction_id == "TXN1"

    def test_net_amount_is_frozen(self, earning, admin):
        earning.mark_as_paid("stripe", "TXN2", 0)
        earning.add_bonus(50, "late bonus", admin.id)
        assert earning.net_amount == Decimal("100")
        assert earning.net_payment == Decimal("150")

    def test_credited_amount_is_frozen(self, earning, admin):
        assert earning.credited_amount == Decimal("0")
        earning.mark_as_paid("paypal", "TXN5", 10)
        earning.add_deduction(30, "Late", admin.id)
        assert earning.credited_amount == Decimal("100")
        assert earning.final_amount == Decimal("70")

    @pytest.mark.parametrize("status", ["paid", "refunded"])
    def test_pay_refused_when_settled(self, earning, status):
        earning.payment_status = status
        with pytest.raises(ValidationFailed) as exc:
            earning.mark_as_paid("paypal", "TXN6")
        assert exc.value.code == "INVALID_STATUS"
        assert earning.transaction_id is None

    def test_invalid_payment_method(self, earning):
        with pytest.raises(ValidationFailed):
            earning.mark_as_paid("cash", "TXN3")
        assert earning.payment_status == "pending"

    def test_generate_invoice(self, earning, writer):
        earning.generate_invoice()
        assert earning.invoice_number.startswith("INV-")
        assert earning.invoice_number.endswith(writer.id[-6:])
        assert earning.invoice_tax_amount == Decimal("0")
        assert earning.invoice_total_amount == Decimal("100")
        assert (earning.invoice_due_date - earning.invoice_generated_at).days == 30

    def test_invoice_total_is_frozen(self, earning, admin):
        earning.generate_invoice()
        earning.add_deduction(25, "Late", admin.id)
        assert earning.invoice_total_amount == Decimal("100")
        assert earning.final_amount == Decimal("75")


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycle:

    def test_processing_fail_retry(self, earning):
        earning.mark_processing()
        assert earning.payment_status == "processing"
        earning.mark_failed("Gateway timeout")
        assert earning.payment_status == "failed"
        assert earning.admin_notes == "Gateway timeout"
        earning.retry()
        assert earning.payment_status == "pending"

    def test_refund_requires_paid(self, earning):
        with pytest.raises(ValidationFailed) as exc:
            earning.refund()
        assert exc.value.code == "INVALID_STATUS"
        earning.mark_as_paid("paypal", "TXN4")
        earning.refund("Duplicate job")
        assert earning.payment_status == "refunded"

    def test_fail_requires_processing(self, earning):
        with pytest.raises(ValidationFailed):
            earning.mark_failed()
        assert earning.payment_status == "pending"

    def test_to_dict_shape(self, earning, admin):
        earning.add_deduction(10, "Late", admin.id)
        data = earning.to_dict()
        assert data["final_amount"] == 90.0
        assert data["total_deductions"] == 10.0
        assert data["deductions"][0]["reason"] == "Late"
        assert data["invoice"] is None
