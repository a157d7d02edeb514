# =============================================================================
# tests/test_notification_service.py - Email Tests
# =============================================================================
# SMTP is patched out; these check what gets sent, to whom, and that
# failures are reported instead of raised.
#
# Run with: pytest tests/test_notification_service.py -v
# =============================================================================

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from core.services.notification_service import NotificationService


ORDER = {
    "order_number": "CC2026000042",
    "email": "amara@example.com",
    "status": "shipped",
    "total_amount": "36.50",
}


@pytest.fixture
def views():
    mock = MagicMock()
    mock.render_to_string.return_value = "<p>rendered</p>"
    return mock


@pytest.fixture
def mail_settings():
    return settings.model_copy(update={
        "SMTP_HOST": "smtp.example.com",
        "SMTP_PORT": 587,
        "SMTP_USER": "mailer",
        "SMTP_PASS": "pw",
        "MAIL_FROM": "shop@example.com",
        "ADMIN_EMAIL": "admin@example.com",
    })


@pytest.fixture
def smtp():
    with patch("core.services.notification_service.smtplib.SMTP") as smtp_class:
        yield smtp_class


def sent_message(smtp_class):
    server = smtp_class.return_value.__enter__.return_value
    return server.send_message.call_args.args[0]


class TestSend:
    """Tests for NotificationService.send."""

    def test_disabled_without_host(self, views, smtp):
        notifier = NotificationService(settings.model_copy(update={"SMTP_HOST": ""}), views)

        assert notifier.send("a@example.com", "Hi", "emails/contact.html", {}) is False
        smtp.assert_not_called()

    def test_sends_with_starttls_and_login(self, mail_settings, views, smtp):
        notifier = NotificationService(mail_settings, views)

        assert notifier.send("a@example.com", "Hello", "emails/contact.html", {"text": "plain"}) is True

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=15)
        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "pw")
        message = sent_message(smtp)
        assert message["To"] == "a@example.com"
        assert message["Subject"] == "Hello"
        assert "shop@example.com" in message["From"]

    def test_no_tls_or_login_on_port_25(self, mail_settings, views, smtp):
        cfg = mail_settings.model_copy(update={"SMTP_PORT": 25, "SMTP_USER": ""})
        NotificationService(cfg, views).send("a@example.com", "Hello", "emails/contact.html", {})

        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_not_called()
        server.login.assert_not_called()

    @pytest.mark.parametrize("error", [smtplib.SMTPException("rejected"), ConnectionRefusedError()])
    def test_failures_return_false(self, mail_settings, views, smtp, error):
        smtp.side_effect = error
        assert NotificationService(mail_settings, views).send("a@example.com", "Hello", "emails/contact.html", {}) is False


class TestOrderMail:
    """Order and contact notifications."""

    def test_order_confirmation(self, mail_settings, views, smtp):
        NotificationService(mail_settings, views).order_confirmation(ORDER, bank_details={"swift_code": "X"})

        message = sent_message(smtp)
        assert message["Subject"] == "Order Confirmation - CC2026000042 | Ceylon Cinnamon"
        template, context = views.render_to_string.call_args.args
        assert template == "emails/order_confirmation.html"
        assert context["bank_details"] == {"swift_code": "X"}
        assert "36.50" in context["text"]

    def test_status_changed_subject(self, mail_settings, views, smtp):
        NotificationService(mail_settings, views).order_status_changed(ORDER, "processing")
        assert sent_message(smtp)["Subject"] == "Your Order Has Shipped! - CC2026000042 | Ceylon Cinnamon"

    def test_status_unchanged_sends_nothing(self, mail_settings, views, smtp):
        assert NotificationService(mail_settings, views).order_status_changed(ORDER, "shipped") is False
        smtp.assert_not_called()

    def test_pending_has_no_status_mail(self, mail_settings, views, smtp):
        order = dict(ORDER, status="pending")
        assert NotificationService(mail_settings, views).order_status_changed(order, "processing") is False

    def test_admin_and_contact_go_to_admin(self, mail_settings, views, smtp):
        notifier = NotificationService(mail_settings, views)

        notifier.admin_new_order(ORDER)
        assert sent_message(smtp)["To"] == "admin@example.com"

        notifier.contact_message("Amara", "amara@example.com", None, "Do you ship to Norway?")
        message = sent_message(smtp)
        assert message["To"] == "admin@example.com"
        assert message["Subject"] == "Contact Form: New message"
