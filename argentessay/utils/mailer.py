import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from flask import current_app

def send_email(to: str, subject: str, html: str):
    if not current_app.config.get("MAIL_ENABLED"):
        current_app.logger.info("Email delivery disabled, skipping '%s' to %s", subject, to)
        return False

    msg = EmailMessage()
    msg["From"] = f"{current_app.config['EMAIL_FROM_NAME']} <{current_app.config['EMAIL_FROM_ADDRESS']}>"
    msg["To"] = to
    msg["Subject"] = subject
    msg["Reply-To"] = current_app.config["EMAIL_FROM_ADDRESS"]
    msg["Message-ID"] = make_msgid(domain="argentessay.com")

    msg.set_content("This is an automated message. Please view in HTML.")
    msg.add_alternative(html, subtype="html")

    current_app.logger.info(
        "Connecting to SMTP %s:%s", current_app.config["SMTP_HOST"], current_app.config["SMTP_PORT"]
    )

    try:
        with smtplib.SMTP_SSL(
            current_app.config["SMTP_HOST"],
            current_app.config["SMTP_PORT"]
        ) as server:
            server.login(
                current_app.config["EMAIL_FROM_ADDRESS"],
                current_app.config["SMTP_PASSWORD"]
            )
            server.send_message(msg)
            current_app.logger.info("Email sent successfully to %s", to)
    except Exception as e:
        current_app.logger.error("Failed to send email to %s: %s", to, e)
        raise
    return True
