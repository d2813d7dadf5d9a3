"""Pydantic schemas for gateway payments."""

from datetime import date, datetime
from typing import Literal

from pydantic import Field

from app.models.payment import PaymentMethod, PaymentStatus
from app.schemas.common import CamelModel, Period


class PaymentCreate(CamelModel):
    client_id: str
    filing_id: str | None = None
    amount: float = Field(..., gt=0)
    currency: Literal["INR", "USD", "EUR"] = "INR"
    payment_method: PaymentMethod
    description: str | None = Field(None, max_length=500)


class PaymentVerify(CamelModel):
    # Field names match what Razorpay checkout hands back
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class RefundRequest(CamelModel):
    amount: float | None = Field(None, gt=0)
    reason: str = Field(..., min_length=5, max_length=500)
    notes: dict[str, str] | None = None


class PaymentOut(CamelModel):
    id: str
    client_id: str
    filing_id: str | None
    amount: float
    currency: str
    status: PaymentStatus
    payment_method: PaymentMethod
    gateway_provider: str
    gateway_order_id: str | None
    gateway_payment_id: str | None
    refund_amount: float
    refund_reason: str | None
    created_at: datetime
    updated_at: datetime


class GatewayOrderOut(CamelModel):
    id: str
    amount: int
    currency: str
    receipt: str | None = None
    key: str


class PaymentOrderOut(CamelModel):
    order: GatewayOrderOut
    payment: PaymentOut


# ── Stats and revenue ───────────────────────────────────────

class PaymentStatsOut(CamelModel):
    total_revenue: float
    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    refunded_amount: float
    pending_amount: float
    revenue_by_method: dict[str, float]
    transactions_by_status: dict[str, int]


class TransactionStats(CamelModel):
    total: int
    successful: int
    failed: int
    success_rate: float


class RefundStats(CamelModel):
    total_refunded: float
    refund_rate: float


class RevenueBucket(CamelModel):
    period: str
    revenue: float
    transactions: int


class RevenueOut(CamelModel):
    period: Period
    start_date: date
    end_date: date
    total_revenue: float
    revenue_by_method: dict[str, float]
    transaction_stats: TransactionStats
    refund_stats: RefundStats
    period_data: list[RevenueBucket]
