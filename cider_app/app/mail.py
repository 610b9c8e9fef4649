from __future__ import annotations
import smtplib
from email.message import EmailMessage
import requests
from flask import current_app


def send_email(subject: str, recipient: str, body: str, html: str | None = None) -> bool:
    """Deliver a message through Resend or SMTP. Returns False instead of raising."""
    provider = current_app.config.get("EMAIL_PROVIDER", "smtp")
    if provider == "resend":
        api_key = current_app.config.get("RESEND_API_KEY")
        if not api_key:
            current_app.logger.error("RESEND_API_KEY not configured")
            return False
        payload = {
            "from": current_app.config.get("MAIL_DEFAULT_SENDER"),
            "to": [recipient],
            "subject": subject,
            "text": body,
        }
        if html:
            payload["html"] = html
        try:
            resp = requests.post(
                "https://api.resend.com/emails",
                headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=10,
            )
        except requests.RequestException:
            current_app.logger.exception("Failed to send email via Resend API")
            return False
        if resp.status_code in (200, 202):
            return True
        current_app.logger.error("Resend API returned non-success: %s %s", resp.status_code, resp.text)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = current_app.config.get("MAIL_DEFAULT_SENDER")
    msg["To"] = recipient
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")
    try:
        with smtplib.SMTP(str(current_app.config.get("MAIL_SERVER")), int(current_app.config.get("MAIL_PORT") or 0)) as server:
            if bool(current_app.config.get("MAIL_USE_TLS")):
                server.starttls()
            username = str(current_app.config.get("MAIL_USERNAME") or "")
            password = str(current_app.config.get("MAIL_PASSWORD") or "")
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception("Failed to send email via SMTP")
        return False
