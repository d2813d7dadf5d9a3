"""Tests for Razorpay payments: orders, verification, webhooks and refunds."""

import hashlib
import hmac
import json
from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.config import settings
from app.models.client import Client
from app.models.filing import Filing
from app.models.onboarding import OnboardingPaymentStatus, OnboardingProgress
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.user import User
from app.services.razorpay import (
    payment_signature,
    to_paise,
    verify_payment_signature,
    verify_webhook_signature,
)


def _sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


async def _seed_progress(db_session, user: User, completed: list[int]) -> None:
    progress = OnboardingProgress.fresh(user.id)
    progress.completed_steps = completed
    progress.current_step = max(completed, default=1)
    db_session.add(progress)
    await db_session.commit()


async def _progress(session_factory, user: User) -> OnboardingProgress:
    async with session_factory() as session:
        result = await session.execute(
            select(OnboardingProgress).where(OnboardingProgress.user_id == user.id)
        )
        return result.scalar_one()


async def _payment(session_factory, payment_id: str) -> Payment:
    async with session_factory() as session:
        result = await session.execute(select(Payment).where(Payment.id == payment_id))
        return result.scalar_one()


@pytest.mark.unit
class TestSignatures:
    """HMAC helpers."""

    def test_to_paise(self):
        """Amounts are rounded to whole paise."""
        assert to_paise(499.99) == 49999

    def test_payment_signature(self):
        """Checkout signatures cover `order_id|payment_id`."""
        signature = payment_signature("order_1", "pay_1", "secret")
        assert verify_payment_signature("order_1", "pay_1", signature, "secret")
        assert not verify_payment_signature("order_1", "pay_2", signature, "secret")
        assert not verify_payment_signature("order_1", "pay_1", signature, "other")

    def test_missing_secret_never_verifies(self):
        """An unconfigured secret rejects everything."""
        signature = payment_signature("order_1", "pay_1", "")
        assert not verify_payment_signature("order_1", "pay_1", signature, "")

    def test_webhook_signature(self):
        """Webhook signatures cover the raw body."""
        body = b'{"event":"payment.captured"}'
        signature = _sign(body, "hook")
        assert verify_webhook_signature(body, signature, "hook")
        assert not verify_webhook_signature(body + b" ", signature, "hook")
        assert not verify_webhook_signature(body, None, "hook")


@pytest.mark.api
@pytest.mark.asyncio
class TestCreateOrder:
    """Raising gateway orders."""

    async def test_create_order(
        self,
        client: AsyncClient,
        customer_client: Client,
        customer_filing: Filing,
        customer_headers: dict,
        fake_gateway,
    ):
        """The order is raised in paise and the payment starts initiated."""
        response = await client.post(
            "/api/payments/create-order",
            json={
                "clientId": customer_client.id,
                "filingId": customer_filing.id,
                "amount": 1499.5,
                "paymentMethod": "upi",
            },
            headers=customer_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order"]["amount"] == 149950
        assert data["order"]["currency"] == "INR"
        assert data["order"]["key"] == settings.razorpay_key_id
        assert data["payment"]["status"] == "initiated"
        assert data["payment"]["gatewayOrderId"] == data["order"]["id"]

        path, payload = fake_gateway.calls[0]
        assert path == "/orders"
        assert payload["notes"]["filing_id"] == customer_filing.id

    async def test_filing_must_belong_to_client(
        self,
        client: AsyncClient,
        make_filing,
        customer_client: Client,
        other_client: Client,
        admin_headers: dict,
        fake_gateway,
    ):
        """A filing from another client is rejected before the gateway is called."""
        foreign = await make_filing(other_client)

        response = await client.post(
            "/api/payments/create-order",
            json={
                "clientId": customer_client.id,
                "filingId": foreign.id,
                "amount": 500,
                "paymentMethod": "card",
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Filing does not belong to the specified client"
        assert fake_gateway.calls == []

    async def test_non_positive_amount(
        self, client: AsyncClient, customer_client: Client, customer_headers: dict, fake_gateway
    ):
        """Amounts must be positive."""
        response = await client.post(
            "/api/payments/create-order",
            json={"clientId": customer_client.id, "amount": 0, "paymentMethod": "upi"},
            headers=customer_headers,
        )

        assert response.status_code == 400

    async def test_out_of_scope_client(
        self, client: AsyncClient, other_client: Client, customer_headers: dict, fake_gateway
    ):
        """Customers cannot pay on another client's behalf."""
        response = await client.post(
            "/api/payments/create-order",
            json={"clientId": other_client.id, "amount": 100, "paymentMethod": "upi"},
            headers=customer_headers,
        )

        assert response.status_code == 404


@pytest.mark.api
@pytest.mark.asyncio
class TestVerifyPayment:
    """Checkout signature verification and its effect on onboarding."""

    async def _order(
        self, client: AsyncClient, profile: Client, headers: dict, method: str = "upi"
    ) -> str:
        response = await client.post(
            "/api/payments/create-order",
            json={"clientId": profile.id, "amount": 999, "paymentMethod": method},
            headers=headers,
        )
        return response.json()["data"]["order"]["id"]

    async def test_valid_signature_completes_onboarding(
        self,
        client: AsyncClient,
        db_session,
        session_factory,
        customer_client: Client,
        customer_user: User,
        customer_headers: dict,
        fake_gateway,
    ):
        """A good signature marks the payment successful and finishes step 7."""
        await _seed_progress(db_session, customer_user, [1, 2, 3, 4, 5, 6])
        order_id = await self._order(client, customer_client, customer_headers, "card")
        signature = payment_signature(order_id, "pay_live01", settings.razorpay_key_secret)

        response = await client.post(
            "/api/payments/verify",
            json={
                "razorpayOrderId": order_id,
                "razorpayPaymentId": "pay_live01",
                "razorpaySignature": signature,
            },
            headers=customer_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "success"
        assert data["gatewayPaymentId"] == "pay_live01"
        assert data["paymentMethod"] == "upi"
        assert fake_gateway.fetched == ["pay_live01"]
        stored = await _payment(session_factory, data["id"])
        assert stored.gateway_response["razorpay_payment"]["status"] == "captured"

        progress = await _progress(session_factory, customer_user)
        assert progress.payment_status == OnboardingPaymentStatus.COMPLETED
        assert progress.completed_steps == [1, 2, 3, 4, 5, 6, 7]
        assert progress.is_completed is True

    async def test_invalid_signature_persists_failure(
        self,
        client: AsyncClient,
        db_session,
        session_factory,
        customer_client: Client,
        customer_user: User,
        customer_headers: dict,
        fake_gateway,
    ):
        """A bad signature is reported and the failure stays on record."""
        await _seed_progress(db_session, customer_user, [1, 2, 3, 4, 5, 6])
        order_id = await self._order(client, customer_client, customer_headers)

        response = await client.post(
            "/api/payments/verify",
            json={
                "razorpayOrderId": order_id,
                "razorpayPaymentId": "pay_forged",
                "razorpaySignature": "0" * 64,
            },
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Payment verification failed: Invalid signature"
        assert fake_gateway.fetched == []

        async with session_factory() as session:
            payment = (
                await session.execute(select(Payment).where(Payment.gateway_order_id == order_id))
            ).scalar_one()
        assert payment.status == PaymentStatus.FAILED

        progress = await _progress(session_factory, customer_user)
        assert progress.payment_status == OnboardingPaymentStatus.FAILED
        assert 7 not in progress.completed_steps

    async def test_success_with_open_steps_completes_payment(
        self,
        client: AsyncClient,
        db_session,
        session_factory,
        customer_client: Client,
        customer_user: User,
        customer_headers: dict,
        fake_gateway,
    ):
        """A verified payment completes the payment step even with earlier steps open."""
        await _seed_progress(db_session, customer_user, [1, 2])
        order_id = await self._order(client, customer_client, customer_headers)
        signature = payment_signature(order_id, "pay_early", settings.razorpay_key_secret)

        response = await client.post(
            "/api/payments/verify",
            json={
                "razorpayOrderId": order_id,
                "razorpayPaymentId": "pay_early",
                "razorpaySignature": signature,
            },
            headers=customer_headers,
        )

        assert response.status_code == 200
        progress = await _progress(session_factory, customer_user)
        assert progress.payment_status == OnboardingPaymentStatus.COMPLETED
        assert progress.completed_steps == [1, 2, 7]

    async def test_settled_payment_not_reverified(
        self,
        client: AsyncClient,
        make_payment,
        session_factory,
        customer_client: Client,
        customer_headers: dict,
        fake_gateway,
    ):
        """Verifying a refunded payment again leaves it refunded."""
        payment = await make_payment(customer_client, status=PaymentStatus.REFUNDED)
        signature = payment_signature(
            payment.gateway_order_id, "pay_again", settings.razorpay_key_secret
        )

        response = await client.post(
            "/api/payments/verify",
            json={
                "razorpayOrderId": payment.gateway_order_id,
                "razorpayPaymentId": "pay_again",
                "razorpaySignature": signature,
            },
            headers=customer_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "refunded"
        assert fake_gateway.fetched == []
        stored = await _payment(session_factory, payment.id)
        assert stored.status == PaymentStatus.REFUNDED

    async def test_unknown_order(self, client: AsyncClient, customer_headers: dict):
        """Orders that were never raised are 404."""
        response = await client.post(
            "/api/payments/verify",
            json={
                "razorpayOrderId": "order_missing",
                "razorpayPaymentId": "pay_x",
                "razorpaySignature": "sig",
            },
            headers=customer_headers,
        )

        assert response.status_code == 404


@pytest.mark.api
@pytest.mark.asyncio
class TestWebhook:
    """Signed gateway callbacks."""

    async def _post(self, client: AsyncClient, event: dict, secret: str | None = None):
        body = json.dumps(event).encode()
        signature = _sign(body, secret or settings.razorpay_webhook_secret)
        return await client.post(
            "/api/payments/webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Razorpay-Signature": signature},
        )

    async def test_payment_captured(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        session_factory,
    ):
        """payment.captured marks the matching payment successful."""
        payment = await make_payment(
            customer_client, status=PaymentStatus.INITIATED, gateway_payment_id=None
        )

        response = await self._post(
            client,
            {
                "event": "payment.captured",
                "payload": {
                    "payment": {"entity": {"id": "pay_hook01", "order_id": payment.gateway_order_id}}
                },
            },
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Webhook payment.captured processed"
        stored = await _payment(session_factory, payment.id)
        assert stored.status == PaymentStatus.SUCCESS
        assert stored.gateway_payment_id == "pay_hook01"

    async def test_payment_failed(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        session_factory,
    ):
        """payment.failed marks the matching payment failed."""
        payment = await make_payment(customer_client, status=PaymentStatus.INITIATED)

        await self._post(
            client,
            {
                "event": "payment.failed",
                "payload": {
                    "payment": {
                        "entity": {
                            "id": "pay_hook02",
                            "order_id": payment.gateway_order_id,
                            "error_description": "Card declined",
                        }
                    }
                },
            },
        )

        stored = await _payment(session_factory, payment.id)
        assert stored.status == PaymentStatus.FAILED

    async def test_captured_settles_onboarding(
        self,
        client: AsyncClient,
        db_session,
        make_payment,
        customer_client: Client,
        customer_user: User,
        session_factory,
    ):
        """A capture seen only through the webhook still completes onboarding."""
        await _seed_progress(db_session, customer_user, [1, 2, 3, 4, 5, 6])
        payment = await make_payment(
            customer_client, status=PaymentStatus.INITIATED, gateway_payment_id=None
        )

        await self._post(
            client,
            {
                "event": "payment.captured",
                "payload": {
                    "payment": {"entity": {"id": "pay_hook03", "order_id": payment.gateway_order_id}}
                },
            },
        )

        progress = await _progress(session_factory, customer_user)
        assert progress.payment_status == OnboardingPaymentStatus.COMPLETED
        assert progress.completed_steps == [1, 2, 3, 4, 5, 6, 7]
        assert progress.is_completed is True

    @pytest.mark.parametrize("final_status", [PaymentStatus.REFUNDED, PaymentStatus.FAILED])
    async def test_replayed_capture_keeps_final_status(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        session_factory,
        final_status: PaymentStatus,
    ):
        """A capture replayed against a finished payment changes nothing."""
        payment = await make_payment(customer_client, status=final_status)

        response = await self._post(
            client,
            {
                "event": "payment.captured",
                "payload": {
                    "payment": {"entity": {"id": "pay_replay", "order_id": payment.gateway_order_id}}
                },
            },
        )

        assert response.status_code == 200
        stored = await _payment(session_factory, payment.id)
        assert stored.status == final_status
        assert stored.gateway_payment_id == payment.gateway_payment_id

    async def test_unknown_event_acknowledged(self, client: AsyncClient):
        """Events without a handler are logged and acknowledged."""
        response = await self._post(client, {"event": "order.paid", "payload": {}})

        assert response.status_code == 200

    async def test_bad_signature(self, client: AsyncClient):
        """Bodies signed with the wrong secret are rejected."""
        response = await self._post(
            client, {"event": "payment.captured", "payload": {}}, secret="wrong-secret"
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid webhook signature"

    async def test_missing_signature(self, client: AsyncClient):
        """Unsigned bodies are rejected."""
        response = await client.post("/api/payments/webhook", json={"event": "payment.captured"})

        assert response.status_code == 400


@pytest.mark.api
@pytest.mark.asyncio
class TestRefunds:
    """Admin refunds."""

    async def test_partial_then_full_refund(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
        fake_gateway,
    ):
        """Refunds accumulate until the payment is fully refunded."""
        payment = await make_payment(customer_client, amount=1000.0)

        partial = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"amount": 400, "reason": "Partial service"},
            headers=admin_headers,
        )
        assert partial.status_code == 200
        data = partial.json()["data"]
        assert data["refundAmount"] == 400
        assert data["status"] == "success"

        rest = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"reason": "Cancelled filing"},
            headers=admin_headers,
        )
        assert rest.status_code == 200
        data = rest.json()["data"]
        assert data["refundAmount"] == 1000
        assert data["status"] == "refunded"

        amounts = [payload["amount"] for path, payload in fake_gateway.calls]
        assert amounts == [40000, 60000]

    async def test_refund_exceeding_amount(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
        fake_gateway,
    ):
        """A single refund cannot exceed the payment."""
        payment = await make_payment(customer_client, amount=500.0)

        response = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"amount": 600, "reason": "Too much"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Refund amount cannot exceed payment amount"

    async def test_refund_exceeding_remaining(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
        fake_gateway,
    ):
        """Cumulative refunds cannot exceed the payment."""
        payment = await make_payment(customer_client, amount=500.0, refund_amount=300.0)

        response = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"amount": 250, "reason": "Second refund"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Total refund amount cannot exceed payment amount"

    async def test_refund_requires_success(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
        fake_gateway,
    ):
        """Only successful payments can be refunded."""
        payment = await make_payment(customer_client, status=PaymentStatus.FAILED)

        response = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"reason": "Not captured"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only successful payments can be refunded"

    async def test_refund_admin_only(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        customer_headers: dict,
        fake_gateway,
    ):
        """Customers cannot refund themselves."""
        payment = await make_payment(customer_client)

        response = await client.post(
            f"/api/payments/{payment.id}/refund",
            json={"reason": "I want it back"},
            headers=customer_headers,
        )

        assert response.status_code == 403


@pytest.mark.api
@pytest.mark.asyncio
class TestPaymentListings:
    """Scoped reads."""

    async def test_scoped_listings(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        other_client: Client,
        customer_filing: Filing,
        customer_headers: dict,
        ca_headers: dict,
        admin_headers: dict,
    ):
        """Each role sees its own payments; by-client and by-filing narrow further."""
        await make_payment(customer_client, customer_filing)
        await make_payment(other_client)

        mine = await client.get("/api/payments/", headers=customer_headers)
        assert mine.json()["data"]["total"] == 1

        assigned = await client.get("/api/payments/", headers=ca_headers)
        assert assigned.json()["data"]["total"] == 1

        everything = await client.get("/api/payments/", headers=admin_headers)
        assert everything.json()["data"]["total"] == 2

        by_filing = await client.get(
            f"/api/payments/filing/{customer_filing.id}", headers=customer_headers
        )
        assert by_filing.json()["data"]["total"] == 1

        foreign = await client.get(
            f"/api/payments/client/{other_client.id}", headers=customer_headers
        )
        assert foreign.status_code == 404

    async def test_get_payment_scope(
        self,
        client: AsyncClient,
        make_payment,
        other_client: Client,
        customer_headers: dict,
        admin_headers: dict,
    ):
        """Out-of-scope payments look missing."""
        payment = await make_payment(other_client)

        hidden = await client.get(f"/api/payments/{payment.id}", headers=customer_headers)
        assert hidden.status_code == 404

        visible = await client.get(f"/api/payments/{payment.id}", headers=admin_headers)
        assert visible.status_code == 200
        assert visible.json()["data"]["amount"] == 1000


@pytest.mark.api
@pytest.mark.asyncio
class TestPaymentStats:
    """Payment totals and the admin revenue report."""

    async def test_stats_in_scope(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        other_client: Client,
        customer_headers: dict,
        admin_headers: dict,
    ):
        """Revenue is net of refunds and counts only captured payments."""
        await make_payment(customer_client, amount=1000.0, refund_amount=200.0)
        await make_payment(customer_client, amount=500.0, payment_method=PaymentMethod.CARD)
        await make_payment(customer_client, amount=300.0, status=PaymentStatus.FAILED)
        await make_payment(customer_client, amount=250.0, status=PaymentStatus.INITIATED)
        await make_payment(other_client, amount=9000.0)

        response = await client.get("/api/payments/stats", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {
            "totalRevenue": 1300.0,
            "totalTransactions": 4,
            "successfulTransactions": 2,
            "failedTransactions": 1,
            "refundedAmount": 200.0,
            "pendingAmount": 250.0,
            "revenueByMethod": {"upi": 800.0, "card": 500.0},
            "transactionsByStatus": {"success": 2, "failed": 1, "initiated": 1},
        }

        everything = (await client.get("/api/payments/stats", headers=admin_headers)).json()
        assert everything["data"]["totalRevenue"] == 10300.0

    async def test_stats_date_window(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
    ):
        """startDate and endDate bound the payments counted."""
        await make_payment(customer_client, created_at=datetime(2025, 3, 10, 12, 0))
        await make_payment(customer_client, created_at=datetime(2025, 5, 31, 23, 30))
        await make_payment(customer_client, created_at=datetime(2025, 6, 1, 0, 5))

        response = await client.get(
            "/api/payments/stats",
            params={"startDate": "2025-04-01", "endDate": "2025-05-31"},
            headers=admin_headers,
        )

        assert response.json()["data"]["totalTransactions"] == 1

    async def test_revenue_report(
        self,
        client: AsyncClient,
        make_payment,
        customer_client: Client,
        admin_headers: dict,
    ):
        """The report buckets captured revenue per period and derives the rates."""
        await make_payment(customer_client, amount=1000.0, created_at=datetime(2025, 4, 2))
        await make_payment(
            customer_client, amount=1000.0, refund_amount=500.0, created_at=datetime(2025, 4, 20)
        )
        await make_payment(customer_client, amount=2000.0, created_at=datetime(2025, 5, 5))
        await make_payment(
            customer_client,
            amount=700.0,
            status=PaymentStatus.FAILED,
            created_at=datetime(2025, 5, 6),
        )

        response = await client.get(
            "/api/payments/revenue",
            params={"period": "monthly", "startDate": "2025-04-01", "endDate": "2025-05-31"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalRevenue"] == 3500.0
        assert data["startDate"] == "2025-04-01"
        assert data["transactionStats"] == {
            "total": 4,
            "successful": 3,
            "failed": 1,
            "successRate": 75.0,
        }
        assert data["refundStats"] == {"totalRefunded": 500.0, "refundRate": 12.5}
        assert data["periodData"] == [
            {"period": "2025-04", "revenue": 1500.0, "transactions": 2},
            {"period": "2025-05", "revenue": 2000.0, "transactions": 1},
        ]

    async def test_revenue_requires_admin(self, client: AsyncClient, ca_headers: dict):
        """Only admins see the revenue report."""
        response = await client.get("/api/payments/revenue", headers=ca_headers)

        assert response.status_code == 403

    async def test_revenue_rejects_inverted_range(self, client: AsyncClient, admin_headers: dict):
        """A start after the end is a validation error."""
        response = await client.get(
            "/api/payments/revenue",
            params={"startDate": "2025-06-01", "endDate": "2025-05-01"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["errors"] == ["startDate must not be after endDate"]
