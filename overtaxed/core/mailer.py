from abc import ABC, abstractmethod
from email.message import EmailMessage
from pathlib import Path
from typing import Optional
import logging
import smtplib

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from pydantic import BaseModel

from overtaxed.core.config import Settings, settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class RenderedEmail(BaseModel):
    subject: str
    text: str
    html: str


def _currency(value) -> str:
    return f"${float(value or 0):,.2f}"


def _long_date(value) -> str:
    return f"{value:%B} {value.day}, {value.year}"


TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

# Each email lives in templates/email/<name>/ as subject.txt, body.txt and body.html.
# Only the .html bodies are autoescaped.
templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)
templates.filters["currency"] = _currency
templates.filters["long_date"] = _long_date


def render_email(name: str, **context) -> RenderedEmail:
    return RenderedEmail(
        subject=templates.get_template(f"email/{name}/subject.txt").render(**context).strip(),
        text=templates.get_template(f"email/{name}/body.txt").render(**context),
        html=templates.get_template(f"email/{name}/body.html").render(**context),
    )


class Mailer(ABC):
    @abstractmethod
    def send(self, to: str, message: RenderedEmail):
        """Deliver one message or raise EmailDeliveryError."""


class SmtpMailer(Mailer):
    def __init__(self, config: Settings):
        self.host = config.SMTP_HOST
        self.port = config.SMTP_PORT
        self.user = config.SMTP_USER
        self.password = config.SMTP_PASSWORD
        self.sender = config.SMTP_FROM
        self.use_tls = config.SMTP_USE_TLS

    def send(self, to: str, message: RenderedEmail):
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = message.subject
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if self.use_tls:
                    smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery to {to} failed: {e}") from e

        logger.info(f'Email sent to {to}: "{message.subject}"')


def get_mailer() -> Optional[Mailer]:
    """FastAPI dependency; None when SMTP is not configured."""
    if not settings.is_email_configured():
        logger.warning("SMTP not configured; outgoing email is disabled")
        return None
    return SmtpMailer(settings)
