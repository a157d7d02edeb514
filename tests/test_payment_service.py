# =============================================================================
# tests/test_payment_service.py - Payment Gateway Tests
# =============================================================================
# Bank transfer references, method availability, and the Stripe / PayPal
# request flows against a mocked httpx client.
#
# Run with: pytest tests/test_payment_service.py -v
# =============================================================================

import re
from unittest.mock import MagicMock

import httpx
import pytest

from app.config import settings
from app.exceptions import PaymentError
from core.models import PaymentMethod, PaymentStatus
from core.services.payment_service import PaymentService, generate_bank_reference


def response(payload):
    mock = MagicMock()
    mock.json.return_value = payload
    return mock


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def configured(http):
    cfg = settings.model_copy(update={
        "STRIPE_SECRET_KEY": "sk_test_123",
        "PAYPAL_CLIENT_ID": "client",
        "PAYPAL_SECRET": "secret",
        "PAYPAL_MODE": "sandbox",
        "CURRENCY": "USD",
    })
    return PaymentService(cfg, client=http)


@pytest.fixture
def unconfigured(http):
    return PaymentService(settings, client=http)


class TestBankTransfer:
    """Bank transfer is always available and stays pending."""

    def test_reference_format(self):
        assert re.fullmatch(r"BT-[0-9A-F]{10}", generate_bank_reference())

    def test_process(self, unconfigured, http):
        result = unconfigured.process("bank_transfer", 54.5, {}, {"order_number": "CC2026000001"})

        assert result.status == PaymentStatus.PENDING
        assert result.transaction_id.startswith("BT-")
        assert result.bank_details["swift_code"] == "CNBKLKLX"
        assert "54.50 USD" in result.instructions
        assert result.transaction_id in result.instructions
        http.post.assert_not_called()

    def test_unknown_method(self, unconfigured):
        with pytest.raises(PaymentError) as exc:
            unconfigured.process("cheque", 10, {}, {})
        assert exc.value.status_code == 402


class TestAvailability:
    """Which methods checkout offers."""

    def test_without_credentials(self, unconfigured):
        assert [m["code"] for m in unconfigured.available_methods()] == ["bank_transfer"]

    def test_with_credentials(self, configured):
        assert [m["code"] for m in configured.available_methods()] == ["stripe", "paypal", "bank_transfer"]

    def test_unconfigured_stripe_raises(self, unconfigured):
        with pytest.raises(PaymentError, match="not configured"):
            unconfigured.process(PaymentMethod.STRIPE, 10, {"token": "tok_visa"}, {})


class TestStripe:
    """Card charges through the Stripe API."""

    def test_success(self, configured, http):
        http.post.return_value = response({"id": "ch_1", "status": "succeeded"})

        result = configured.process("stripe", 12.34, {"token": "tok_visa"}, {"order_number": "CC2026000001", "email": "a@b.com"})

        assert result.status == PaymentStatus.PAID
        assert result.transaction_id == "ch_1"
        url = http.post.call_args.args[0]
        body = http.post.call_args.kwargs["data"]
        assert url == "https://api.stripe.com/v1/charges"
        assert body["amount"] == 1234
        assert body["currency"] == "usd"
        assert body["metadata[order_number]"] == "CC2026000001"
        assert http.post.call_args.kwargs["auth"] == ("sk_test_123", "")

    def test_token_required(self, configured, http):
        with pytest.raises(PaymentError, match="token"):
            configured.process("stripe", 10, {}, {})
        http.post.assert_not_called()

    def test_declined(self, configured, http):
        http.post.return_value = response({"error": {"message": "Your card was declined."}})
        with pytest.raises(PaymentError, match="declined"):
            configured.process("stripe", 10, {"token": "tok_chargeDeclined"}, {})

    def test_network_error(self, configured, http):
        http.post.side_effect = httpx.ConnectError("down")
        with pytest.raises(PaymentError, match="could not reach"):
            configured.process("stripe", 10, {"token": "tok_visa"}, {})


class TestPayPal:
    """Order capture through the PayPal API."""

    def test_capture(self, configured, http):
        http.post.side_effect = [
            response({"access_token": "A21"}),
            response({
                "status": "COMPLETED",
                "purchase_units": [{"payments": {"captures": [{"id": "CAP-9"}]}}],
            }),
        ]

        result = configured.process("paypal", 30, {"order_id": "PP-ORDER"}, {})

        assert result.transaction_id == "CAP-9"
        assert result.status == PaymentStatus.PAID
        token_call, capture_call = http.post.call_args_list
        assert token_call.args[0] == "https://api-m.sandbox.paypal.com/v1/oauth2/token"
        assert capture_call.args[0].endswith("/v2/checkout/orders/PP-ORDER/capture")
        assert capture_call.kwargs["headers"]["Authorization"] == "Bearer A21"

    def test_auth_failure(self, configured, http):
        http.post.return_value = response({"error": "invalid_client"})
        with pytest.raises(PaymentError, match="authenticate"):
            configured.process("paypal", 30, {"order_id": "PP-ORDER"}, {})

    def test_not_completed(self, configured, http):
        http.post.side_effect = [
            response({"access_token": "A21"}),
            response({"status": "PAYER_ACTION_REQUIRED"}),
        ]
        with pytest.raises(PaymentError):
            configured.process("paypal", 30, {"order_id": "PP-ORDER"}, {})

    def test_order_id_required(self, configured):
        with pytest.raises(PaymentError, match="order ID"):
            configured.process("paypal", 30, {}, {})
