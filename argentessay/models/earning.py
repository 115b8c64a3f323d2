"""Per-job writer earnings.

``final_amount``, ``net_payment`` and ``total_deductions`` are always derived
from ``amount``, ``bonus_amount`` and the deduction rows. ``net_amount`` and
``invoice_total_amount`` are snapshots frozen when the payment or invoice is
recorded; later edits to the earning do not recompute them.
"""
from datetime import datetime, timedelta
from decimal import Decimal
import time

from argentessay.extensions import db
from argentessay.models.user import gen_uuid
from argentessay.utils.exceptions import ValidationFailed

CURRENCIES = ("USD", "EUR", "GBP")
PAYMENT_STATUSES = ("pending", "processing", "paid", "failed", "refunded")
PAYMENT_METHODS = ("paypal", "bank_transfer", "stripe", "other")

# target payment status -> statuses it may be entered from
PAYMENT_TRANSITIONS = {
    "processing": ("pending",),
    "failed": ("processing",),
    "refunded": ("paid",),
    "pending": ("failed",),
}
PAYABLE_STATUSES = ("pending", "processing", "failed")

INVOICE_DUE_DAYS = 30


def to_decimal(value):
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class EarningDeduction(db.Model):
    __tablename__ = "earning_deductions"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("ded"))
    earning_id = db.Column(
        db.String(50),
        db.ForeignKey("earnings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sequence = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    reason = db.Column(db.String(255))
    applied_by = db.Column(db.String(50), db.ForeignKey("users.id"))
    applied_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "amount": float(self.amount),
            "reason": self.reason,
            "applied_by": self.applied_by,
            "applied_at": self.applied_at.isoformat() + "Z" if self.applied_at else None,
        }


class Earning(db.Model):
    __tablename__ = "earnings"

    __table_args__ = (
        db.Index("idx_earnings_writer_earned_at", "writer_id", "earned_at"),
        db.Index("idx_earnings_payment_status", "payment_status"),
        db.Index("idx_earnings_earned_at", "earned_at"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("ern"))
    writer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    job_id = db.Column(db.String(50), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), default="USD")

    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    payment_method = db.Column(db.String(20))
    transaction_id = db.Column(db.String(255))
    payment_date = db.Column(db.DateTime)
    processing_fee = db.Column(db.Numeric(10, 2), default=0)
    net_amount = db.Column(db.Numeric(10, 2))

    bonus_amount = db.Column(db.Numeric(10, 2), default=0)
    bonus_reason = db.Column(db.String(255))
    bonus_applied_by = db.Column(db.String(50), db.ForeignKey("users.id"))
    bonus_applied_at = db.Column(db.DateTime)

    quality_rating = db.Column(db.Float)
    completed_on_time = db.Column(db.Boolean, default=True)
    revision_requests = db.Column(db.Integer, default=0)

    earned_at = db.Column(db.DateTime, default=datetime.utcnow)
    paid_at = db.Column(db.DateTime)

    invoice_number = db.Column(db.String(64))
    invoice_generated_at = db.Column(db.DateTime)
    invoice_due_date = db.Column(db.DateTime)
    invoice_tax_amount = db.Column(db.Numeric(10, 2))
    invoice_total_amount = db.Column(db.Numeric(10, 2))

    notes = db.Column(db.Text)
    admin_notes = db.Column(db.Text)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    writer = db.relationship("User", foreign_keys=[writer_id], backref="earnings")
    deductions = db.relationship(
        "EarningDeduction",
        order_by="EarningDeduction.sequence",
        cascade="all, delete-orphan",
        backref="earning",
    )

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        kwargs.setdefault("payment_status", "pending")
        kwargs.setdefault("currency", "USD")
        kwargs.setdefault("bonus_amount", 0)
        kwargs.setdefault("processing_fee", 0)
        kwargs.setdefault("completed_on_time", True)
        kwargs.setdefault("revision_requests", 0)
        kwargs.setdefault("earned_at", datetime.utcnow())
        super().__init__(**kwargs)

    # ---- derived ----

    @property
    def total_deductions(self):
        return sum((to_decimal(d.amount) for d in self.deductions), Decimal("0"))

    @property
    def final_amount(self):
        final = to_decimal(self.amount) + to_decimal(self.bonus_amount) - self.total_deductions
        return max(final, Decimal("0"))

    @property
    def net_payment(self):
        # may go negative when the fee exceeds the final amount
        return self.final_amount - to_decimal(self.processing_fee)

    @property
    def credited_amount(self):
        """Final amount as it stood when the payment was recorded."""
        if self.net_amount is None:
            return Decimal("0")
        return to_decimal(self.net_amount) + to_decimal(self.processing_fee)

    # ---- operations ----

    def mark_as_paid(self, payment_method, transaction_id, processing_fee=0):
        if self.payment_status not in PAYABLE_STATUSES:
            raise ValidationFailed(
                f"Cannot pay an earning that is {self.payment_status}",
                details={"from": self.payment_status, "to": "paid"},
                code="INVALID_STATUS",
            )
        if payment_method not in PAYMENT_METHODS:
            raise ValidationFailed(
                f"Invalid payment method '{payment_method}'",
                details={"allowed": list(PAYMENT_METHODS)},
            )
        now = datetime.utcnow()
        self.payment_status = "paid"
        self.paid_at = now
        self.payment_method = payment_method
        self.transaction_id = transaction_id
        self.payment_date = now
        self.processing_fee = to_decimal(processing_fee)
        self.net_amount = self.net_payment
        return self

    def add_bonus(self, amount, reason, admin_id):
        self.bonus_amount = to_decimal(amount)
        self.bonus_reason = reason
        self.bonus_applied_by = admin_id
        self.bonus_applied_at = datetime.utcnow()
        return self

    def add_deduction(self, amount, reason, admin_id):
        deduction = EarningDeduction(
            sequence=len(self.deductions) + 1,
            amount=to_decimal(amount),
            reason=reason,
            applied_by=admin_id,
            applied_at=datetime.utcnow(),
        )
        self.deductions.append(deduction)
        return deduction

    def generate_invoice(self, due_days=INVOICE_DUE_DAYS):
        now = datetime.utcnow()
        self.invoice_number = f"INV-{int(time.time() * 1000)}-{str(self.writer_id)[-6:]}"
        self.invoice_generated_at = now
        self.invoice_due_date = now + timedelta(days=due_days)
        # TODO: derive tax from the writer's country once tax rates are configured
        self.invoice_tax_amount = Decimal("0")
        self.invoice_total_amount = self.final_amount + self.invoice_tax_amount
        return self

    def _transition(self, target):
        if self.payment_status not in PAYMENT_TRANSITIONS[target]:
            raise ValidationFailed(
                f"Cannot move payment from {self.payment_status} to {target}",
                details={"from": self.payment_status, "to": target},
                code="INVALID_STATUS",
            )
        self.payment_status = target

    def mark_processing(self):
        self._transition("processing")
        return self

    def mark_failed(self, reason=None):
        self._transition("failed")
        if reason:
            self.admin_notes = reason
        return self

    def retry(self):
        self._transition("pending")
        return self

    def refund(self, reason=None):
        self._transition("refunded")
        if reason:
            self.admin_notes = reason
        return self

    def to_dict(self):
        return {
            "id": self.id,
            "writer_id": self.writer_id,
            "job_id": self.job_id,
            "amount": float(to_decimal(self.amount)),
            "currency": self.currency,
            "final_amount": float(self.final_amount),
            "net_payment": float(self.net_payment),
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "payment_details": {
                "transaction_id": self.transaction_id,
                "payment_date": self.payment_date.isoformat() + "Z" if self.payment_date else None,
                "processing_fee": float(to_decimal(self.processing_fee)),
                "net_amount": float(self.net_amount) if self.net_amount is not None else None,
            },
            "bonus": {
                "amount": float(to_decimal(self.bonus_amount)),
                "reason": self.bonus_reason,
                "applied_by": self.bonus_applied_by,
                "applied_at": self.bonus_applied_at.isoformat() + "Z" if self.bonus_applied_at else None,
            },
            "deductions": [d.to_dict() for d in self.deductions],
            "total_deductions": float(self.total_deductions),
            "quality_rating": self.quality_rating,
            "completed_on_time": self.completed_on_time,
            "revision_requests": self.revision_requests,
            "earned_at": self.earned_at.isoformat() + "Z" if self.earned_at else None,
            "paid_at": self.paid_at.isoformat() + "Z" if self.paid_at else None,
            "invoice": {
                "invoice_number": self.invoice_number,
                "generated_at": self.invoice_generated_at.isoformat() + "Z" if self.invoice_generated_at else None,
                "due_date": self.invoice_due_date.isoformat() + "Z" if self.invoice_due_date else None,
                "tax_amount": float(self.invoice_tax_amount) if self.invoice_tax_amount is not None else None,
                "total_amount": float(self.invoice_total_amount) if self.invoice_total_amount is not None else None,
            } if self.invoice_number else None,
            "notes": self.notes,
        }
