"""Razorpay payments.

Endpoints:
    POST /api/payments/create-order          Raise a gateway order for a client
    POST /api/payments/verify                Verify the checkout signature
    POST /api/payments/webhook               Gateway webhook (no auth, signed body)
    GET  /api/payments/                      List payments in scope
    GET  /api/payments/stats                 Totals in scope (?startDate=&endDate=)
    GET  /api/payments/revenue               Revenue report (admin)
    GET  /api/payments/client/{client_id}    Payments of one client
    GET  /api/payments/filing/{filing_id}    Payments of one filing
    GET  /api/payments/{id}                  Get payment
    POST /api/payments/{id}/refund           Refund (admin)
"""

import json
import logging
from datetime import date

from fastapi import APIRouter, Depends, Header, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user, require_admin
from app.config import settings
from app.database import get_db
from app.middleware.exceptions import ValidationFailedError
from app.models.payment import PaymentStatus
from app.models.user import User
from app.schemas.common import ApiResponse, Page, PageParams, Period, page_params
from app.schemas.payment import (
    GatewayOrderOut,
    PaymentCreate,
    PaymentOrderOut,
    PaymentOut,
    PaymentStatsOut,
    PaymentVerify,
    RefundRequest,
    RevenueOut,
)
from app.services import payments as service
from app.services.clients import get_client
from app.services.filings import get_filing
from app.services.razorpay import RazorpayClient, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


def _page(items, total: int, paging: PageParams) -> Page[PaymentOut]:
    return Page.build(
        [PaymentOut.model_validate(p) for p in items], total, paging.page, paging.limit
    )


@router.post(
    "/create-order",
    response_model=ApiResponse[PaymentOrderOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: RazorpayClient = Depends(get_gateway),
):
    payment, order = await service.create_order(db, user, gateway, body)
    return ApiResponse(
        message="Payment order created successfully",
        data=PaymentOrderOut(
            order=GatewayOrderOut(
                id=order["id"],
                amount=order["amount"],
                currency=order["currency"],
                receipt=order.get("receipt"),
                key=settings.razorpay_key_id,
            ),
            payment=PaymentOut.model_validate(payment),
        ),
    )


@router.post("/verify", response_model=ApiResponse[PaymentOut])
async def verify_payment(
    body: PaymentVerify,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: RazorpayClient = Depends(get_gateway),
):
    payment = await service.verify_payment(
        db,
        user,
        gateway,
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
    )
    return ApiResponse(
        message="Payment verified successfully", data=PaymentOut.model_validate(payment)
    )


@router.post("/webhook", response_model=ApiResponse[None])
async def webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Gateway callback. The signature covers the raw body, so it is read unparsed."""
    raw = await request.body()
    try:
        event = json.loads(raw or b"{}")
    except ValueError as exc:
        raise ValidationFailedError("Malformed webhook body") from exc

    name = await service.handle_webhook(db, raw, x_razorpay_signature, event)
    return ApiResponse(message=f"Webhook {name or 'event'} processed")


@router.get("/", response_model=ApiResponse[Page[PaymentOut]])
async def list_payments(
    status_filter: PaymentStatus | None = Query(None, alias="status"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await service.list_payments(
        db, user, status=status_filter, offset=paging.offset, limit=paging.limit
    )
    return ApiResponse(message="Payments retrieved successfully", data=_page(items, total, paging))


@router.get("/stats", response_model=ApiResponse[PaymentStatsOut])
async def payment_stats(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stats = await service.payment_stats(db, user, start_date, end_date)
    return ApiResponse(
        message="Payment statistics retrieved successfully", data=PaymentStatsOut(**stats)
    )


@router.get("/revenue", response_model=ApiResponse[RevenueOut])
async def revenue(
    period: Period = Query(Period.MONTHLY),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    report = await service.revenue_report(db, user, period, start_date, end_date)
    return ApiResponse(message="Revenue data retrieved successfully", data=RevenueOut(**report))


@router.get("/client/{client_id}", response_model=ApiResponse[Page[PaymentOut]])
async def list_client_payments(
    client_id: str,
    status_filter: PaymentStatus | None = Query(None, alias="status"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await get_client(db, user, client_id)
    items, total = await service.list_payments(
        db,
        user,
        client_id=client.id,
        status=status_filter,
        offset=paging.offset,
        limit=paging.limit,
    )
    return ApiResponse(message="Payments retrieved successfully", data=_page(items, total, paging))


@router.get("/filing/{filing_id}", response_model=ApiResponse[Page[PaymentOut]])
async def list_filing_payments(
    filing_id: str,
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await get_filing(db, user, filing_id)
    items, total = await service.list_payments(
        db, user, filing_id=filing.id, offset=paging.offset, limit=paging.limit
    )
    return ApiResponse(message="Payments retrieved successfully", data=_page(items, total, paging))


@router.get("/{payment_id}", response_model=ApiResponse[PaymentOut])
async def get_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    payment = await service.get_payment(db, user, payment_id)
    return ApiResponse(
        message="Payment retrieved successfully", data=PaymentOut.model_validate(payment)
    )


@router.post("/{payment_id}/refund", response_model=ApiResponse[PaymentOut])
async def refund_payment(
    payment_id: str,
    body: RefundRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    gateway: RazorpayClient = Depends(get_gateway),
):
    payment = await service.refund_payment(db, admin, gateway, payment_id, body)
    return ApiResponse(
        message="Refund processed successfully", data=PaymentOut.model_validate(payment)
    )
