from flask import current_app, render_template
from datetime import datetime
from argentessay.utils.mailer import send_email

COMPANY_NAME = "ArgentEssay"


def _deliver(user, subject, template, **context):
    """Render and send; delivery failures are logged, never raised to the caller."""
    try:
        html = render_template(
            f"emails/{template}",
            full_name=user.full_name,
            company_name=COMPANY_NAME,
            year=datetime.utcnow().year,
            **context,
        )
        send_email(to=user.email, subject=subject, html=html)
    except Exception as e:
        current_app.logger.error("Failed to send %s to %s: %s", template, user.email, e)


def send_verification_email(user, code):
    _deliver(
        user,
        f"Verify your {COMPANY_NAME} account",
        "verify_email.html",
        code=code,
    )


def send_password_reset_email(user, token):
    reset_url = f"{current_app.config['FRONTEND_URL']}/reset-password?token={token}"
    _deliver(
        user,
        "Password reset request",
        "password_reset.html",
        reset_url=reset_url,
    )


def send_application_submitted_email(user):
    _deliver(
        user,
        "We've received your writer application",
        "application_submitted.html",
        title="Application Received",
    )


def send_application_approved_email(user, notes=None):
    _deliver(
        user,
        "Your writer application has been approved",
        "application_approved.html",
        title="Application Approved",
        feedback=notes,
    )


def send_application_rejected_email(user, details=None, reapply_after=None):
    _deliver(
        user,
        "Update on your writer application",
        "application_rejected.html",
        title="Application Update",
        feedback=details,
        reapply_after=reapply_after,
    )


def send_payment_sent_email(user, earning):
    _deliver(
        user,
        "Your payment has been sent",
        "payment_sent.html",
        amount=f"{earning.net_amount:.2f}",
        currency=earning.currency,
        transaction_id=earning.transaction_id,
    )
