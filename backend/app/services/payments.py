"""Payment orders, verification, webhooks and refunds.

A payment starts `initiated` when its gateway order is raised and moves to
`success` or `failed` on checkout verification (or the matching webhook).
Refunds accumulate in `refund_amount`; the payment becomes `refunded` once
the whole amount has gone back.

Settling a payment, through checkout verification or a payment webhook,
also settles the payer's onboarding: success applies `complete_payment` to
their progress and failure `fail_payment`, in the same transaction as the
payment row. Webhook replays never move a payment out of a final status.
"""

import logging
import time
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import ensure_can_access, ensure_role, scope_clause
from app.config import settings
from app.middleware.exceptions import ResourceNotFoundError, ValidationFailedError
from app.models.client import Client
from app.models.filing import Filing
from app.models.notification import NotificationCategory, NotificationType
from app.models.onboarding import OnboardingProgress
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.user import User, UserRole
from app.schemas.common import Period
from app.schemas.onboarding import ProgressAction
from app.schemas.payment import PaymentCreate, RefundRequest
from app.services.clients import get_client
from app.services.filings import get_filing
from app.services.notifications import notify
from app.services.onboarding import apply_action
from app.services.periods import date_window, day_bounds, period_key
from app.services.razorpay import (
    RazorpayClient,
    to_paise,
    verify_payment_signature,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)


# ── Access ──────────────────────────────────────────────────

def payment_assignee(payment: Payment) -> str | None:
    if payment.filing is not None:
        return payment.filing.ca_id
    return payment.client.ca_id


def ensure_payment_access(user: User, payment: Payment) -> None:
    ensure_can_access(user, "Payment", payment.client.user_id, payment_assignee(payment))


async def get_payment(db: AsyncSession, user: User, payment_id: str) -> Payment:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    if not payment:
        raise ResourceNotFoundError("Payment")
    ensure_payment_access(user, payment)
    return payment


async def _by_order_id(db: AsyncSession, order_id: str, *, for_update: bool = False) -> Payment | None:
    query = select(Payment).where(Payment.gateway_order_id == order_id)
    if for_update:
        query = query.with_for_update()
    return (await db.execute(query)).scalar_one_or_none()


def _record_response(payment: Payment, key: str, value) -> None:
    response = dict(payment.gateway_response or {})
    response[key] = value
    payment.gateway_response = response


# ── Orders ──────────────────────────────────────────────────

async def create_order(
    db: AsyncSession,
    user: User,
    gateway: RazorpayClient,
    body: PaymentCreate,
) -> tuple[Payment, dict]:
    client = await get_client(db, user, body.client_id)
    filing = None
    if body.filing_id:
        filing = await get_filing(db, user, body.filing_id)
        if filing.client_id != client.id:
            raise ValidationFailedError("Filing does not belong to the specified client")

    amount = round(body.amount, 2)
    order = await gateway.create_order(
        amount_paise=to_paise(amount),
        currency=body.currency,
        receipt=f"payment_{int(time.time())}_{client.id[:8]}",
        notes={
            "client_id": client.id,
            "filing_id": filing.id if filing else "",
            "description": body.description or "Tax filing service payment",
        },
    )

    payment = Payment(
        client=client,
        filing=filing,
        amount=amount,
        currency=body.currency,
        status=PaymentStatus.INITIATED,
        payment_method=body.payment_method,
        gateway_provider="razorpay",
        gateway_order_id=order["id"],
        gateway_response={"order": order},
        refund_amount=0,
    )
    db.add(payment)
    await db.flush()

    logger.info("Payment order %s created for client %s (%.2f %s)", order["id"], client.id, amount, body.currency)
    return payment, order


# ── Checkout verification ───────────────────────────────────

# Webhooks only move payments still waiting on the gateway
OPEN_STATUSES = frozenset({PaymentStatus.INITIATED, PaymentStatus.PENDING})
SETTLED_STATUSES = frozenset({PaymentStatus.SUCCESS, PaymentStatus.REFUNDED})


async def _settle_onboarding(db: AsyncSession, user_id: str, succeeded: bool) -> None:
    """Apply the payment outcome to the payer's onboarding, when they have one."""
    result = await db.execute(
        select(OnboardingProgress)
        .where(OnboardingProgress.user_id == user_id)
        .with_for_update()
    )
    progress = result.scalar_one_or_none()
    if progress is None:
        return
    action = ProgressAction.COMPLETE_PAYMENT if succeeded else ProgressAction.FAIL_PAYMENT
    apply_action(progress, action)


async def _apply_outcome(db: AsyncSession, payment: Payment, succeeded: bool) -> None:
    """Set the payment's final status, settle onboarding and tell the payer."""
    payer_id = payment.client.user_id
    payment.status = PaymentStatus.SUCCESS if succeeded else PaymentStatus.FAILED
    await _settle_onboarding(db, payer_id, succeeded)
    if succeeded:
        notify(
            db,
            payer_id,
            title="Payment successful",
            body=f"We received your payment of {payment.amount:.2f} {payment.currency}",
            type=NotificationType.SUCCESS,
            category=NotificationCategory.PAYMENT,
        )
    else:
        notify(
            db,
            payer_id,
            title="Payment failed",
            body="We could not verify your payment. Please try again.",
            type=NotificationType.ERROR,
            category=NotificationCategory.PAYMENT,
        )


async def verify_payment(
    db: AsyncSession,
    user: User,
    gateway: RazorpayClient,
    order_id: str,
    payment_id: str,
    signature: str,
) -> Payment:
    payment = await _by_order_id(db, order_id, for_update=True)
    if not payment:
        raise ResourceNotFoundError("Payment")
    ensure_payment_access(user, payment)

    if payment.status in SETTLED_STATUSES:
        logger.info("Payment %s already %s; verification ignored", payment.id, payment.status.value)
        return payment

    verification = {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "verified_at": datetime.utcnow().isoformat(),
    }

    if not verify_payment_signature(order_id, payment_id, signature, settings.razorpay_key_secret):
        _record_response(payment, "verification", {**verification, "error": "Invalid signature"})
        await _apply_outcome(db, payment, succeeded=False)
        # Keep the failure on record even though the request reports an error
        await db.commit()
        logger.warning("Payment %s failed signature verification", payment.id)
        raise ValidationFailedError("Payment verification failed: Invalid signature")

    gateway_payment = await gateway.fetch_payment(payment_id)
    payment.gateway_payment_id = payment_id
    # Methods outside our set (emi, paylater) keep the one chosen at checkout
    method = gateway_payment.get("method")
    if method in {m.value for m in PaymentMethod}:
        payment.payment_method = PaymentMethod(method)
    _record_response(payment, "verification", verification)
    _record_response(payment, "razorpay_payment", gateway_payment)
    await _apply_outcome(db, payment, succeeded=True)
    await db.flush()

    logger.info("Payment %s verified", payment.id)
    return payment


# ── Webhooks ────────────────────────────────────────────────

async def handle_webhook(db: AsyncSession, body: bytes, signature: str | None, event: dict) -> str:
    """Apply one gateway webhook event. Returns the event name.

    Payment events only move an open payment; replays against a payment that
    is already settled, failed or refunded are recorded and otherwise ignored.
    """
    if not verify_webhook_signature(body, signature, settings.razorpay_webhook_secret):
        raise ValidationFailedError("Invalid webhook signature")

    name = event.get("event", "")
    payload = event.get("payload") or {}

    if name in ("payment.captured", "payment.failed"):
        entity = (payload.get("payment") or {}).get("entity") or {}
        payment = await _by_order_id(db, entity.get("order_id", ""), for_update=True)
        if payment is None:
            logger.warning("Webhook %s for unknown order %s", name, entity.get("order_id"))
            return name

        _record_response(payment, name, entity)
        if payment.status not in OPEN_STATUSES:
            logger.info("Webhook %s ignored for %s payment %s", name, payment.status.value, payment.id)
        elif name == "payment.captured":
            payment.gateway_payment_id = entity.get("id") or payment.gateway_payment_id
            await _apply_outcome(db, payment, succeeded=True)
            logger.info("Payment %s captured", payment.id)
        else:
            payment.gateway_payment_id = entity.get("id") or payment.gateway_payment_id
            await _apply_outcome(db, payment, succeeded=False)
            logger.info(
                "Payment %s failed: %s", payment.id, entity.get("error_description")
            )
        await db.flush()

    elif name in ("refund.created", "refund.processed"):
        entity = (payload.get("refund") or {}).get("entity") or {}
        logger.info("Refund %s %s for payment %s", entity.get("id"), name.split(".")[1], entity.get("payment_id"))

    else:
        logger.info("Unhandled webhook event: %s", name)

    return name


# ── Refunds ─────────────────────────────────────────────────

async def refund_payment(
    db: AsyncSession,
    user: User,
    gateway: RazorpayClient,
    payment_id: str,
    body: RefundRequest,
) -> Payment:
    ensure_role(user, UserRole.ADMIN, message="Only admins can process refunds")
    payment = await get_payment(db, user, payment_id)

    if payment.status != PaymentStatus.SUCCESS:
        raise ValidationFailedError("Only successful payments can be refunded")

    remaining = round(payment.amount - (payment.refund_amount or 0), 2)
    amount = round(body.amount, 2) if body.amount is not None else remaining
    if amount > payment.amount:
        raise ValidationFailedError("Refund amount cannot exceed payment amount")
    if amount > remaining:
        raise ValidationFailedError("Total refund amount cannot exceed payment amount")
    if not payment.gateway_payment_id:
        raise ValidationFailedError("Gateway payment id not found for this payment")

    refund = await gateway.refund(
        payment.gateway_payment_id,
        to_paise(amount),
        notes={"reason": body.reason, **(body.notes or {})},
    )

    payment.refund_amount = round((payment.refund_amount or 0) + amount, 2)
    payment.refund_reason = body.reason
    refunds = list((payment.gateway_response or {}).get("refunds", []))
    refunds.append(refund)
    _record_response(payment, "refunds", refunds)
    if payment.refund_amount >= payment.amount:
        payment.status = PaymentStatus.REFUNDED

    notify(
        db,
        payment.client.user_id,
        title="Refund processed",
        body=f"A refund of {amount:.2f} {payment.currency} has been initiated",
        type=NotificationType.INFO,
        category=NotificationCategory.PAYMENT,
    )
    await db.flush()

    logger.info("Refunded %.2f on payment %s", amount, payment.id)
    return payment


# ── Listings ────────────────────────────────────────────────

def _scoped(query, user: User, *filters):
    """Restrict a Payment query to what `user` may see."""
    assignee = func.coalesce(Filing.ca_id, Client.ca_id)
    return (
        query.join(Client, Payment.client_id == Client.id)
        .outerjoin(Filing, Payment.filing_id == Filing.id)
        .where(scope_clause(user, Client.user_id, assignee), *filters)
    )


async def list_payments(
    db: AsyncSession,
    user: User,
    *,
    client_id: str | None = None,
    filing_id: str | None = None,
    status: PaymentStatus | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Payment], int]:
    filters = []
    if client_id:
        filters.append(Payment.client_id == client_id)
    if filing_id:
        filters.append(Payment.filing_id == filing_id)
    if status is not None:
        filters.append(Payment.status == status)

    total = (
        await db.execute(_scoped(select(func.count()).select_from(Payment), user, *filters))
    ).scalar() or 0
    result = await db.execute(
        _scoped(select(Payment), user, *filters)
        .order_by(Payment.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


# ── Stats and revenue ───────────────────────────────────────

def _window(start: date | None, end: date | None) -> list:
    filters = []
    if start is not None:
        filters.append(Payment.created_at >= day_bounds(start, start)[0])
    if end is not None:
        filters.append(Payment.created_at < day_bounds(end, end)[1])
    return filters


async def payment_stats(
    db: AsyncSession,
    user: User,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Totals over the payments in scope, optionally within [start, end].

    Revenue is what was captured net of refunds, counted on `success`
    payments only; a fully refunded payment contributes nothing.
    """
    result = await db.execute(
        _scoped(
            select(
                Payment.status,
                Payment.payment_method,
                func.count(),
                func.coalesce(func.sum(Payment.amount), 0),
                func.coalesce(func.sum(Payment.refund_amount), 0),
            ).select_from(Payment),
            user,
            *_window(start, end),
        ).group_by(Payment.status, Payment.payment_method)
    )

    stats = {
        "total_revenue": 0.0,
        "total_transactions": 0,
        "successful_transactions": 0,
        "failed_transactions": 0,
        "refunded_amount": 0.0,
        "pending_amount": 0.0,
        "revenue_by_method": {},
        "transactions_by_status": {},
    }
    for status, method, count, amount, refunded in result.all():
        stats["total_transactions"] += count
        by_status = stats["transactions_by_status"]
        by_status[status.value] = by_status.get(status.value, 0) + count
        stats["refunded_amount"] += refunded
        if status == PaymentStatus.SUCCESS:
            net = amount - refunded
            stats["total_revenue"] += net
            stats["successful_transactions"] += count
            by_method = stats["revenue_by_method"]
            by_method[method.value] = by_method.get(method.value, 0) + net
        elif status == PaymentStatus.FAILED:
            stats["failed_transactions"] += count
        elif status in OPEN_STATUSES:
            stats["pending_amount"] += amount
    return stats


def _rate(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


async def revenue_buckets(
    db: AsyncSession,
    period: Period,
    start: date,
    end: date,
) -> list[dict]:
    """Net revenue and successful transactions per period, oldest first."""
    rows = await db.execute(
        select(Payment.created_at, Payment.amount, Payment.refund_amount)
        .where(Payment.status == PaymentStatus.SUCCESS, *_window(start, end))
        .order_by(Payment.created_at)
    )
    buckets: dict[str, dict] = {}
    for created_at, amount, refunded in rows.all():
        bucket = buckets.setdefault(
            period_key(created_at, period), {"revenue": 0.0, "transactions": 0}
        )
        bucket["revenue"] += amount - refunded
        bucket["transactions"] += 1
    return [{"period": key, **value} for key, value in buckets.items()]


async def revenue_report(
    db: AsyncSession,
    user: User,
    period: Period = Period.MONTHLY,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Admin revenue summary with per-period buckets; defaults to the last 30 days."""
    ensure_role(user, UserRole.ADMIN, message="Access denied: Admin only")
    start, end = date_window(start, end, default_days=30)
    stats = await payment_stats(db, user, start, end)

    return {
        "period": period,
        "start_date": start,
        "end_date": end,
        "total_revenue": stats["total_revenue"],
        "revenue_by_method": stats["revenue_by_method"],
        "transaction_stats": {
            "total": stats["total_transactions"],
            "successful": stats["successful_transactions"],
            "failed": stats["failed_transactions"],
            "success_rate": _rate(stats["successful_transactions"], stats["total_transactions"]),
        },
        "refund_stats": {
            "total_refunded": stats["refunded_amount"],
            "refund_rate": _rate(
                stats["refunded_amount"], stats["total_revenue"] + stats["refunded_amount"]
            ),
        },
        "period_data": await revenue_buckets(db, period, start, end),
    }
