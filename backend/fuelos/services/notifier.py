import logging
import smtplib
import ssl
from email.message import EmailMessage

from fuelos.config import get_settings

logger = logging.getLogger(__name__)


def _mask(email: str) -> str:
    if "@" not in email:
        return email
    user, domain = email.split("@", 1)
    return f"{user[:1]}***@{domain}"


class OtpNotifier:
    """Delivers admin login codes by email, or to the log when SMTP is not configured."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def send(self, email: str, code: str) -> None:
        if not self.settings.smtp_enabled:
            logger.info(f"[{self.settings.app_name} OTP] {email}: {code}")
            return

        minutes = self.settings.otp_expire_minutes
        msg = EmailMessage()
        msg["From"] = self.settings.mail_from or self.settings.smtp_user
        msg["To"] = email
        msg["Subject"] = f"{self.settings.app_name} Admin OTP"
        msg.set_content(f"Your {self.settings.app_name} admin OTP is {code}. Valid for {minutes} minutes.")
        msg.add_alternative(
            f"<p>Your {self.settings.app_name} admin OTP is: "
            f'<strong style="font-size:24px;letter-spacing:4px">{code}</strong></p>'
            f"<p>Valid for {minutes} minutes.</p>",
            subtype="html",
        )

        ctx = ssl.create_default_context()
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=20) as s:
            s.ehlo()
            s.starttls(context=ctx)
            s.ehlo()
            s.login(self.settings.smtp_user, self.settings.smtp_password)
            s.send_message(msg)
        logger.info(f"OTP email sent to {_mask(email)}")
