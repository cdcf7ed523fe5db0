import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache

from app.core.config import get_settings
from app.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html: str, text: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        msg = self.build_message(to, subject, html, text)
        try:
            if self.use_ssl:
                smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with smtp:
                if not self.use_ssl and self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except smtplib.SMTPAuthenticationError as exc:
            raise NotificationError(f"SMTP authentication failed for {self.username or 'anonymous'}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {to} failed: {exc}") from exc


@lru_cache
def get_mailer() -> SmtpMailer | None:
    settings = get_settings()
    if not settings.mail_configured:
        logger.info("SMTP_HOST not set, email notifications are disabled")
        return None
    logger.info("email transport configured host=%s port=%s", settings.SMTP_HOST, settings.SMTP_PORT)
    return SmtpMailer(
        host=settings.SMTP_HOST.strip(),
        port=settings.SMTP_PORT,
        sender=settings.mail_sender,
        username=settings.SMTP_USERNAME.strip(),
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        use_ssl=settings.SMTP_USE_SSL,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )
