# =============================================================================
# core/services/payment_service.py - Payment Processing
# =============================================================================
# Three payment methods:
# - bank_transfer: always available; returns a BT- reference and the bank
#   details to show the customer. The order stays payment_status=pending
#   until an admin confirms the transfer.
# - stripe: charges a card token through the Stripe REST API.
# - paypal: captures an approved PayPal order through the PayPal REST API.
#
# Card and PayPal calls need credentials in settings; without them the
# method is reported as unavailable and process() raises PaymentError.
# =============================================================================

import logging
import secrets
from typing import Any

import httpx
from pydantic import BaseModel

from app.exceptions import PaymentError
from core.models.order import PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)

STRIPE_API_URL = "https://api.stripe.com/v1"
PAYPAL_API_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}

BANK_DETAILS = {
    "bank_name": "Ceylon National Bank",
    "account_name": "Ceylon Cinnamon Exports Ltd",
    "account_number": "1234567890",
    "routing_number": "021000021",
    "swift_code": "CNBKLKLX",
    "currency": "USD",
}

METHOD_LABELS = {
    PaymentMethod.STRIPE: ("Credit/Debit Card", "Pay securely with your card via Stripe"),
    PaymentMethod.PAYPAL: ("PayPal", "Pay with your PayPal account"),
    PaymentMethod.BANK_TRANSFER: ("Bank Transfer", "Pay via direct bank transfer"),
}


class PaymentResult(BaseModel):
    """Outcome of a successful payment call."""

    payment_method: PaymentMethod
    amount: float
    status: PaymentStatus
    transaction_id: str
    bank_details: dict[str, str] | None = None
    instructions: str | None = None


def generate_bank_reference() -> str:
    """BT- followed by 10 uppercase hex characters."""
    return "BT-" + secrets.token_hex(5).upper()


class PaymentService:
    """
    Payment gateway facade.

    Example:
        payments = PaymentService(settings)
        result = payments.process("bank_transfer", 54.5, {}, {"order_number": "CC2026000123"})
        result.transaction_id   # "BT-3F9A0C11D2"
    """

    def __init__(self, settings: Any, client: httpx.Client | None = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=30)
        return self._client

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def is_available(self, method: PaymentMethod | str) -> bool:
        method = PaymentMethod(method)
        if method == PaymentMethod.STRIPE:
            return bool(self.settings.STRIPE_SECRET_KEY)
        if method == PaymentMethod.PAYPAL:
            return bool(self.settings.PAYPAL_CLIENT_ID and self.settings.PAYPAL_SECRET)
        return True

    def available_methods(self) -> list[dict[str, str]]:
        """Methods to offer on the checkout page, bank transfer last."""
        return [
            {"code": method.value, "name": METHOD_LABELS[method][0], "description": METHOD_LABELS[method][1]}
            for method in (PaymentMethod.STRIPE, PaymentMethod.PAYPAL, PaymentMethod.BANK_TRANSFER)
            if self.is_available(method)
        ]

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def process(
        self,
        method: PaymentMethod | str,
        amount: float,
        payment_data: dict[str, Any],
        order_data: dict[str, Any],
    ) -> PaymentResult:
        """
        Take a payment.

        Args:
            method: stripe, paypal or bank_transfer
            amount: Order total in the store currency
            payment_data: Provider input ("token" for Stripe, "order_id" for PayPal)
            order_data: Order number and email, used in provider metadata

        Returns:
            PaymentResult (status paid, or pending for bank transfers)

        Raises:
            PaymentError: Unknown or unconfigured method, declined payment,
                or a provider that can't be reached
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise PaymentError("Invalid payment method")

        if method == PaymentMethod.BANK_TRANSFER:
            return self.process_bank_transfer(amount)
        if method == PaymentMethod.STRIPE:
            return self.process_stripe(amount, payment_data, order_data)
        return self.process_paypal(amount, payment_data)

    def process_bank_transfer(self, amount: float) -> PaymentResult:
        reference = generate_bank_reference()
        return PaymentResult(
            payment_method=PaymentMethod.BANK_TRANSFER,
            amount=amount,
            status=PaymentStatus.PENDING,
            transaction_id=reference,
            bank_details=dict(BANK_DETAILS),
            instructions=(
                f"Please transfer {amount:.2f} {BANK_DETAILS['currency']} to the bank account below. "
                f"Use reference: {reference} in your transfer description."
            ),
        )

    def process_stripe(self, amount: float, payment_data: dict[str, Any], order_data: dict[str, Any]) -> PaymentResult:
        if not payment_data.get("token"):
            raise PaymentError("Payment token is required")
        if not self.is_available(PaymentMethod.STRIPE):
            raise PaymentError("Stripe is not configured")

        order_number = order_data.get("order_number") or "New Order"
        body = {
            "amount": int(round(amount * 100)),
            "currency": self.settings.CURRENCY.lower(),
            "source": payment_data["token"],
            "description": f"Ceylon Cinnamon Order: {order_number}",
            "metadata[order_number]": order_data.get("order_number") or "",
            "metadata[customer_email]": order_data.get("email") or "",
        }
        try:
            response = self.client.post(
                f"{STRIPE_API_URL}/charges", data=body, auth=(self.settings.STRIPE_SECRET_KEY, "")
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Stripe request failed: {e}")
            raise PaymentError("Payment processing error: could not reach the card processor")

        if payload.get("id") and payload.get("status") == "succeeded":
            logger.info(f"Stripe charge {payload['id']} succeeded for {order_number}")
            return PaymentResult(
                payment_method=PaymentMethod.STRIPE,
                amount=amount,
                status=PaymentStatus.PAID,
                transaction_id=payload["id"],
            )
        message = (payload.get("error") or {}).get("message") or "Payment failed"
        logger.warning(f"Stripe charge declined for {order_number}: {message}")
        raise PaymentError(message, details={"provider": "stripe"})

    def process_paypal(self, amount: float, payment_data: dict[str, Any]) -> PaymentResult:
        order_id = payment_data.get("order_id")
        if not order_id:
            raise PaymentError("PayPal order ID is required")
        if not self.is_available(PaymentMethod.PAYPAL):
            raise PaymentError("PayPal is not configured")

        base_url = PAYPAL_API_URLS.get(self.settings.PAYPAL_MODE, PAYPAL_API_URLS["sandbox"])
        try:
            token = self._paypal_token(base_url)
            response = self.client.post(
                f"{base_url}/v2/checkout/orders/{order_id}/capture",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"PayPal request failed: {e}")
            raise PaymentError("PayPal processing error: could not reach PayPal")

        if payload.get("status") == "COMPLETED":
            try:
                transaction_id = payload["purchase_units"][0]["payments"]["captures"][0]["id"]
            except (KeyError, IndexError, TypeError):
                transaction_id = payload.get("id") or order_id
            logger.info(f"PayPal capture {transaction_id} completed")
            return PaymentResult(
                payment_method=PaymentMethod.PAYPAL,
                amount=amount,
                status=PaymentStatus.PAID,
                transaction_id=transaction_id,
            )
        raise PaymentError(payload.get("message") or "PayPal payment failed", details={"provider": "paypal"})

    def _paypal_token(self, base_url: str) -> str:
        response = self.client.post(
            f"{base_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.settings.PAYPAL_CLIENT_ID, self.settings.PAYPAL_SECRET),
        )
        token = response.json().get("access_token")
        if not token:
            raise PaymentError("Failed to authenticate with PayPal")
        return token
