"""Email notifier for pings."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from safety_check.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Notifier:
    """Sends "please check in" emails over SMTP.

    Delivery is best-effort: ``notify`` reports failure by returning False
    and never raises for transport problems.
    """

    def __init__(self, settings: Settings, timeout: float = 10.0) -> None:
        self.settings = settings
        self.timeout = timeout

    @property
    def login_url(self) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}/login"

    def build_message(self, target_email: str, target_name: str, from_name: str) -> MIMEMultipart:
        """Build the plain text and HTML ping email."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"{from_name} is checking on you"
        msg["From"] = self.settings.mail_sender
        msg["To"] = target_email

        text_content = (
            f"Hi {target_name},\n\n"
            f"{from_name} is checking if you're safe. Please log in to the Safety Check "
            f"Network and mark yourself as safe.\n\n"
            f"Log in: {self.login_url}\n\n"
            f"Best regards,\nSafety Check Network Team"
        )
        html_content = f"""
<h2>Safety Check Request</h2>
<p>Hi {escape(target_name)},</p>
<p>{escape(from_name)} is checking if you're safe. Please log in to the Safety Check Network
and mark yourself as safe.</p>
<p>Click here to log in: <a href="{escape(self.login_url)}">Safety Check Network</a></p>
<p>Best regards,<br>Safety Check Network Team</p>
"""
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))
        return msg

    def _send(self, msg: MIMEMultipart) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=self.timeout) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_user and settings.smtp_password:
                server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)

    async def notify(self, target_email: str, target_name: str, from_name: str) -> bool:
        """Email ``target_email`` that ``from_name`` wants them to check in.

        Returns True when the SMTP server accepted the message.
        """
        if not self.settings.smtp_configured:
            logger.warning("SMTP not configured; ping email to %s not sent", target_email)
            return False

        msg = self.build_message(target_email, target_name, from_name)
        try:
            await asyncio.to_thread(self._send, msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send ping email to %s", target_email)
            return False

        logger.info("Ping email sent to %s", target_email)
        return True


def get_notifier() -> Notifier:
    """Dependency that provides a Notifier configured from settings."""
    return Notifier(get_settings())
