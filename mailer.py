"""
Transactional email.

Sends through SMTP when SMTP_HOST is configured; otherwise the message is
only logged, which is what local development runs with. Failures are
reported to the caller and never retried.
"""
import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

ORDER_CONFIRMATION = "order-confirmation"


@dataclass
class SendResult:
    success: bool
    error: Optional[str] = None


@dataclass
class SmtpSettings:
    host: str
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    secure: bool = False
    sender: str = "noreply@mitss.in"

    @classmethod
    def from_env(cls) -> Optional["SmtpSettings"]:
        host = os.getenv("SMTP_HOST")
        if not host:
            return None
        return cls(
            host=host,
            port=int(os.getenv("SMTP_PORT", 587)),
            user=os.getenv("SMTP_USER"),
            password=os.getenv("SMTP_PASSWORD"),
            secure=os.getenv("SMTP_SECURE") == "true",
            sender=os.getenv("EMAIL_FROM") or os.getenv("SMTP_USER") or "noreply@mitss.in",
        )


def _money(value: Any) -> str:
    try:
        return f"₹{float(value):,.2f}"
    except (TypeError, ValueError):
        return "₹0.00"


def order_confirmation_body(data: Dict[str, Any]) -> str:
    items: List[Dict[str, Any]] = data.get("items") or []
    pricing = data.get("pricing") or {}
    lines = [
        f"Hi {data.get('customerName') or 'there'},",
        "",
        f"Thank you for your order {data.get('orderNumber', '')}.",
        "",
    ]
    for item in items:
        lines.append(f"  {item.get('quantity', 1)} x {item.get('name', 'Item')}  {_money(item.get('price'))}")
    lines += [
        "",
        f"Subtotal: {_money(pricing.get('subtotal'))}",
        f"Shipping: {_money(pricing.get('shipping'))}",
        f"GST: {_money(pricing.get('gst'))}",
        f"Total: {_money(pricing.get('total', data.get('total')))}",
        "",
        "Team Mitss",
    ]
    return "\n".join(lines)


class Mailer:
    def __init__(self, settings: Optional[SmtpSettings] = None):
        self.settings = settings

    def send(self, to: str, subject: str, body: str) -> SendResult:
        if self.settings is None:
            logger.info("Email (dev mode) to=%s subject=%r", to, subject)
            return SendResult(success=True)

        msg = EmailMessage()
        msg["From"] = self.settings.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        smtp_cls = smtplib.SMTP_SSL if self.settings.secure else smtplib.SMTP
        try:
            with smtp_cls(self.settings.host, self.settings.port, timeout=10) as client:
                if not self.settings.secure:
                    client.starttls()
                if self.settings.user:
                    client.login(self.settings.user, self.settings.password or "")
                client.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return SendResult(success=False, error=str(e))
        logger.info("Email sent to %s subject=%r", to, subject)
        return SendResult(success=True)

    def send_order_confirmation(self, to: str, data: Dict[str, Any]) -> SendResult:
        subject = f"Order Confirmation - {data.get('orderNumber', '')}".strip(" -")
        return self.send(to, subject, order_confirmation_body(data))


def get_mailer() -> Mailer:
    return Mailer(SmtpSettings.from_env())
