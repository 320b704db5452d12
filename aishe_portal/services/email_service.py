import os
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

from aishe_portal.core.config import Settings, settings

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")

SUBJECTS = {
    "password_reset_otp": "AISHE PORTAL - Password Reset Code",
    "password_changed": "AISHE PORTAL - Password Changed",
}


class EmailDispatcher:
    """
    Renders an HTML template and delivers it over SMTP.

    `send` never raises: delivery problems are logged and reported as False,
    so it is safe to hand to BackgroundTasks after the response is flushed.
    """

    def __init__(self, config: Settings = settings):
        self.config = config
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_configured(self) -> bool:
        return self.config.email_configured

    def render(self, template: str, payload: dict) -> str:
        context = {
            "portal_name": self.config.EMAILS_FROM_NAME,
            "year": datetime.now().year,
            **payload,
        }
        return self.env.get_template(f"{template}.html").render(context)

    def send(self, template: str, recipient: str, payload: dict) -> bool:
        if not self.is_configured:
            logger.warning(f"Email not configured. Skipping '{template}' for {recipient}.")
            return False

        try:
            html_content = self.render(template, payload)
            subject = SUBJECTS.get(template, self.config.EMAILS_FROM_NAME)
            self._deliver(recipient, subject, html_content)
            logger.info(f"Email '{template}' sent to {recipient}")
            return True

        except Exception as e:
            logger.error(f"Failed to send '{template}' email to {recipient}: {e}")
            if template == "password_reset_otp" and not self.config.is_production:
                logger.debug(f"[DEV] OTP for {recipient}: {payload.get('otp')}")
            return False

    def _deliver(self, to_email: str, subject: str, html_content: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.config.EMAILS_FROM_NAME} <{self.config.EMAIL_USER}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        logger.debug(f"Connecting to SMTP: {self.config.SMTP_HOST}:{self.config.SMTP_PORT}")

        with smtplib.SMTP(
            self.config.SMTP_HOST,
            self.config.SMTP_PORT,
            timeout=self.config.SMTP_TIMEOUT,
        ) as server:
            server.ehlo()
            # 587 / 2525 speak STARTTLS; local catchers (1025) do not
            if self.config.SMTP_PORT in (587, 2525):
                server.starttls()
                server.ehlo()
            server.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
            server.sendmail(self.config.EMAIL_USER, to_email, msg.as_string())


email_dispatcher = EmailDispatcher()


def get_email_dispatcher() -> EmailDispatcher:
    return email_dispatcher


# ---------------------------------------------------------
# Convenience wrappers used by the password-reset endpoints
# ---------------------------------------------------------
def send_password_reset_email(dispatcher: EmailDispatcher, email: str, otp: str) -> bool:
    return dispatcher.send(
        "password_reset_otp",
        email,
        {"otp": otp, "expires_minutes": settings.OTP_EXPIRE_MINUTES},
    )


def send_password_changed_email(dispatcher: EmailDispatcher, email: str, name: str, username: str) -> bool:
    return dispatcher.send(
        "password_changed",
        email,
        {"name": name, "username": username},
    )
