# =============================================================================
# core/services/notification_service.py - Transactional Email
# =============================================================================
# Order confirmation, status updates, contact messages and admin alerts.
#
# Mail is best effort: send failures are logged and reported as False, never
# raised, so a slow or broken SMTP server can't fail a checkout. With
# SMTP_HOST empty every send is skipped.
#
# Bodies are Jinja2 templates under templates/emails/.
# =============================================================================

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any

logger = logging.getLogger(__name__)

STATUS_SUBJECTS = {
    "processing": "Order Update - {number} | Ceylon Cinnamon",
    "shipped": "Your Order Has Shipped! - {number} | Ceylon Cinnamon",
    "delivered": "Your Order Has Been Delivered! - {number} | Ceylon Cinnamon",
    "cancelled": "Order Cancelled - {number} | Ceylon Cinnamon",
    "returned": "Order Update - {number} | Ceylon Cinnamon",
}


class NotificationService:
    """
    Sends store email through SMTP.

    Example:
        notifier = NotificationService(settings, views)
        notifier.order_confirmation(order_details)
    """

    def __init__(self, settings: Any, views: Any = None):
        self.settings = settings
        self.views = views

    @property
    def enabled(self) -> bool:
        return bool(self.settings.SMTP_HOST)

    def send(self, to: str, subject: str, template: str, context: dict[str, Any]) -> bool:
        """
        Render and send one email.

        Returns:
            True if the SMTP server accepted the message
        """
        if not self.enabled:
            logger.debug(f"Mail disabled, skipping '{subject}' to {to}")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.settings.APP_NAME, self.settings.MAIL_FROM))
        message["To"] = to
        html = self._render(template, context)
        message.set_content(context.get("text") or subject)
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=15) as smtp:
                if self.settings.SMTP_PORT == 587:
                    smtp.starttls()
                if self.settings.SMTP_USER:
                    smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True

    def _render(self, template: str, context: dict[str, Any]) -> str:
        data = {"app_url": self.settings.APP_URL, **context}
        if self.views is None:
            return str(data.get("text") or "")
        return self.views.render_to_string(template, data)

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def order_confirmation(self, order: dict[str, Any], bank_details: dict[str, Any] | None = None) -> bool:
        number = order["order_number"]
        return self.send(
            order["email"],
            f"Order Confirmation - {number} | Ceylon Cinnamon",
            "emails/order_confirmation.html",
            {
                "order": order,
                "bank_details": bank_details,
                "text": f"Thank you for your order {number}. Total: {float(order['total_amount']):.2f}",
            },
        )

    def order_status_changed(self, order: dict[str, Any], old_status: str) -> bool:
        status = order["status"]
        if status == old_status or status not in STATUS_SUBJECTS:
            return False
        number = order["order_number"]
        return self.send(
            order["email"],
            STATUS_SUBJECTS[status].format(number=number),
            "emails/order_status.html",
            {
                "order": order,
                "old_status": old_status,
                "text": f"Your order {number} is now {status}.",
            },
        )

    def admin_new_order(self, order: dict[str, Any]) -> bool:
        number = order["order_number"]
        return self.send(
            self.settings.ADMIN_EMAIL,
            f"New Order Received - {number}",
            "emails/admin_new_order.html",
            {"order": order, "text": f"New order {number} from {order['email']}."},
        )

    # -------------------------------------------------------------------------
    # Contact
    # -------------------------------------------------------------------------

    def contact_message(self, name: str, email: str, subject: str | None, message: str) -> bool:
        return self.send(
            self.settings.ADMIN_EMAIL,
            f"Contact Form: {subject or 'New message'}",
            "emails/contact.html",
            {"name": name, "email": email, "subject": subject, "message": message, "text": message},
        )

    # -------------------------------------------------------------------------
    # Wholesale
    # -------------------------------------------------------------------------

    def wholesale_inquiry(self, inquiry_id: int, inquiry: dict[str, Any]) -> bool:
        company = inquiry["company_name"]
        return self.send(
            self.settings.ADMIN_EMAIL,
            f"New Wholesale Inquiry #{inquiry_id} - {company}",
            "emails/wholesale_inquiry.html",
            {
                "inquiry_id": inquiry_id,
                "inquiry": inquiry,
                "text": f"New wholesale inquiry from {company} ({inquiry['email']}).",
            },
        )

    def wholesale_confirmation(self, inquiry: dict[str, Any]) -> bool:
        return self.send(
            inquiry["email"],
            "Thank You for Your Wholesale Inquiry - Ceylon Cinnamon",
            "emails/wholesale_confirmation.html",
            {
                "inquiry": inquiry,
                "text": "Thank you for your wholesale inquiry. Our team will contact you within 1-2 business days.",
            },
        )
