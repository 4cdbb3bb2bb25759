"""Unit tests for notify/mailer.py. smtplib.SMTP is patched; nothing leaves the process."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from core.errors import DeliveryError
from notify.mailer import Inquiry, Mailer


@pytest.fixture
def inquiry():
    return Inquiry(
        name="Ann",
        email="a@x.com",
        number="555-0100",
        message="Is it still available?",
        car_owner_email="owner@x.com",
        subject="Volvo V70",
    )


@pytest.fixture
def mailer():
    return Mailer(host="smtp.example.com", port=587, username="relay@example.com", password="pw")


def test_build_message_headers(mailer, inquiry):
    msg = mailer.build_message(inquiry)
    assert msg["To"] == "owner@x.com"
    assert msg["From"] == "Ann <relay@example.com>"
    assert msg["Reply-To"] == "Ann <a@x.com>"
    assert msg["Subject"] == "Ann is INTERESTED in your Volvo V70!"
    body = msg.get_content()
    assert "Phone: 555-0100" in body
    assert "Is it still available?" in body


def test_sender_overrides_username(inquiry):
    msg = Mailer(host="h", username="relay@example.com", sender="cars@example.com").build_message(inquiry)
    assert msg["From"] == "Ann <cars@example.com>"


def test_send_uses_tls_and_login(mailer, inquiry):
    server = MagicMock()
    with patch("notify.mailer.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value = server
        mailer.send_inquiry(inquiry)
    smtp.assert_called_once_with("smtp.example.com", 587, timeout=10)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("relay@example.com", "pw")
    sent = server.send_message.call_args.args[0]
    assert sent["To"] == "owner@x.com"


def test_send_without_tls_or_credentials(inquiry):
    server = MagicMock()
    with patch("notify.mailer.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value = server
        Mailer(host="localhost", port=25, use_tls=False, sender="cars@example.com").send_inquiry(inquiry)
    server.starttls.assert_not_called()
    server.login.assert_not_called()
    server.send_message.assert_called_once()


def test_unconfigured_host(inquiry):
    with patch("notify.mailer.smtplib.SMTP") as smtp:
        with pytest.raises(DeliveryError, match="not configured"):
            Mailer(host="").send_inquiry(inquiry)
    smtp.assert_not_called()


@pytest.mark.parametrize("failure", [smtplib.SMTPAuthenticationError(535, b"bad"), ConnectionRefusedError()])
def test_transport_failure_is_delivery_error(mailer, inquiry, failure):
    with patch("notify.mailer.smtplib.SMTP", side_effect=failure):
        with pytest.raises(DeliveryError) as info:
            mailer.send_inquiry(inquiry)
    assert info.value.message == "Error sending email"
