import logging
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, case

from argentessay.extensions import db
from argentessay.models.earning import Earning, EarningDeduction, to_decimal
from argentessay.models.user import User
from argentessay.services.email_service import send_payment_sent_email
from argentessay.utils.db_utils import commit
from argentessay.utils.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)


def get_earning(earning_id):
    earning = db.session.get(Earning, earning_id)
    if not earning:
        raise NotFound("Earning not found")
    return earning


def _refresh_writer_rating(writer_id):
    avg = (
        db.session.query(func.avg(Earning.quality_rating))
        .filter(Earning.writer_id == writer_id, Earning.quality_rating.isnot(None))
        .scalar()
    )
    writer = db.session.get(User, writer_id)
    writer.rating = round(float(avg), 2) if avg is not None else 0.0


def create_earning(writer_id, job_id, amount, currency="USD", quality_rating=None,
                   completed_on_time=True, revision_requests=0, notes=None, earned_at=None):
    writer = db.session.get(User, writer_id)
    if not writer or writer.role != "writer":
        raise NotFound("Writer not found")

    if Earning.query.filter_by(job_id=job_id).first():
        raise Conflict(
            "An earning already exists for this job",
            details={"job_id": job_id},
            code="EARNING_EXISTS",
        )

    earning = Earning(
        writer_id=writer_id,
        job_id=job_id,
        amount=to_decimal(amount),
        currency=currency,
        quality_rating=quality_rating,
        completed_on_time=completed_on_time,
        revision_requests=revision_requests,
        notes=notes,
        earned_at=earned_at or datetime.utcnow(),
    )
    db.session.add(earning)
    writer.completed_jobs = (writer.completed_jobs or 0) + 1
    db.session.flush()
    if quality_rating is not None:
        _refresh_writer_rating(writer_id)
    commit()

    logger.info("Earning %s created for writer %s job %s", earning.id, writer_id, job_id)
    return earning


def update_quality(earning, quality_rating=None, completed_on_time=None, revision_requests=None):
    if quality_rating is not None:
        earning.quality_rating = quality_rating
    if completed_on_time is not None:
        earning.completed_on_time = completed_on_time
    if revision_requests is not None:
        earning.revision_requests = revision_requests
    db.session.flush()
    _refresh_writer_rating(earning.writer_id)
    commit()
    return earning


def mark_earning_paid(earning, payment_method, transaction_id, processing_fee=0):
    earning.mark_as_paid(payment_method, transaction_id, processing_fee)
    writer = earning.writer
    writer.total_earnings = to_decimal(writer.total_earnings) + earning.credited_amount
    commit()

    logger.info(
        "Earning %s paid via %s (txn %s, net %s)",
        earning.id, payment_method, transaction_id, earning.net_amount,
    )
    send_payment_sent_email(writer, earning)
    return earning


def add_bonus(earning, amount, reason, admin_id):
    earning.add_bonus(amount, reason, admin_id)
    commit()
    logger.info("Bonus %s set on earning %s by %s", amount, earning.id, admin_id)
    return earning


def add_deduction(earning, amount, reason, admin_id):
    earning.add_deduction(amount, reason, admin_id)
    commit()
    logger.info("Deduction %s added to earning %s by %s", amount, earning.id, admin_id)
    return earning


def generate_invoice(earning):
    earning.generate_invoice(current_app.config.get("INVOICE_DUE_DAYS", 30))
    commit()
    logger.info("Invoice %s generated for earning %s", earning.invoice_number, earning.id)
    return earning


def mark_processing(earning):
    earning.mark_processing()
    commit()
    return earning


def mark_failed(earning, reason=None):
    earning.mark_failed(reason)
    commit()
    logger.info("Earning %s payment failed", earning.id)
    return earning


def retry_payment(earning):
    earning.retry()
    commit()
    return earning


def refund_earning(earning, reason=None):
    earning.refund(reason)
    writer = earning.writer
    writer.total_earnings = max(
        to_decimal(writer.total_earnings) - earning.credited_amount, Decimal("0")
    )
    commit()
    logger.info("Earning %s refunded", earning.id)
    return earning


def _date_bounded(query, start_date=None, end_date=None):
    if start_date:
        query = query.filter(Earning.earned_at >= start_date)
    if end_date:
        query = query.filter(Earning.earned_at <= end_date)
    return query


def get_writer_earnings(writer_id, start_date=None, end_date=None):
    query = Earning.query.filter(Earning.writer_id == writer_id)
    return _date_bounded(query, start_date, end_date).order_by(Earning.earned_at.desc())


def get_earnings_stats(writer_id, start_date=None, end_date=None):
    totals = _date_bounded(
        db.session.query(
            func.coalesce(func.sum(Earning.amount), 0),
            func.coalesce(func.sum(Earning.bonus_amount), 0),
            func.coalesce(func.sum(case((Earning.payment_status == "paid", Earning.amount), else_=0)), 0),
            func.coalesce(func.sum(case((Earning.payment_status == "pending", Earning.amount), else_=0)), 0),
            func.count(Earning.id),
            func.avg(Earning.quality_rating),
            func.coalesce(func.sum(case((Earning.completed_on_time.is_(True), 1), else_=0)), 0),
        ).filter(Earning.writer_id == writer_id),
        start_date,
        end_date,
    ).one()

    total_deductions = _date_bounded(
        db.session.query(func.coalesce(func.sum(EarningDeduction.amount), 0))
        .join(Earning, EarningDeduction.earning_id == Earning.id)
        .filter(Earning.writer_id == writer_id),
        start_date,
        end_date,
    ).scalar()

    total, bonus, paid, pending, jobs, avg_rating, on_time = totals
    return {
        "total_earnings": float(total),
        "total_bonus": float(bonus),
        "total_deductions": float(total_deductions or 0),
        "paid_amount": float(paid),
        "pending_amount": float(pending),
        "jobs_completed": jobs,
        "average_rating": round(float(avg_rating), 2) if avg_rating is not None else None,
        "on_time_deliveries": int(on_time),
        "on_time_ratio": round(int(on_time) / jobs, 4) if jobs else 0.0,
    }


def get_monthly_earnings(writer_id, year):
    month = func.extract("month", Earning.earned_at)
    rows = (
        db.session.query(
            month.label("month"),
            func.coalesce(func.sum(Earning.amount), 0).label("total_amount"),
            func.count(Earning.id).label("job_count"),
        )
        .filter(
            Earning.writer_id == writer_id,
            Earning.earned_at >= datetime(year, 1, 1),
            Earning.earned_at < datetime(year + 1, 1, 1),
        )
        .group_by(month)
        .order_by(month)
        .all()
    )
    return [
        {"month": int(r.month), "total_amount": float(r.total_amount), "job_count": r.job_count}
        for r in rows
    ]


def get_pending_payments():
    return (
        Earning.query
        .filter(Earning.payment_status == "pending")
        .order_by(Earning.earned_at.asc())
        .all()
    )
