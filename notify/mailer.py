"""
notify/mailer.py -- Outbound inquiry email to a listing's owner.

Thin wrapper over smtplib. The message is sent from the configured sender
address with Reply-To set to the inquirer, so replies reach the buyer
without the service spoofing their From header.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

from core.errors import DeliveryError

logger = logging.getLogger("carmarket.notify")


@dataclass
class Inquiry:
    """A buyer's message about one listing."""

    name: str
    email: str
    number: str
    message: str
    car_owner_email: str
    subject: str


class Mailer:
    """Sends inquiries over SMTP. An empty host means delivery is not configured."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "",
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or username

    def build_message(self, inquiry: Inquiry) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((inquiry.name, self.sender))
        msg["To"] = inquiry.car_owner_email
        msg["Reply-To"] = formataddr((inquiry.name, inquiry.email))
        msg["Subject"] = f"{inquiry.name} is INTERESTED in your {inquiry.subject}!"
        msg.set_content(
            f"Name: {inquiry.name}\nEmail: {inquiry.email}\nPhone: {inquiry.number}\n\nMessage:\n{inquiry.message}"
        )
        return msg

    def send_inquiry(self, inquiry: Inquiry) -> None:
        """Deliver the inquiry. Raises DeliveryError on any transport failure."""
        if not self.host:
            raise DeliveryError("Email delivery is not configured.")
        msg = self.build_message(inquiry)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send inquiry to %s: %s", inquiry.car_owner_email, exc)
            raise DeliveryError("Error sending email") from exc
        logger.info("Sent inquiry to %s", inquiry.car_owner_email)
