"""Role dashboards and analytics.

Each dashboard is assembled from the scoped queries behind the listing
and stats endpoints:

    admin     platform totals and breakdowns
    ca        work assigned to the CA
    customer  the customer's own records

"Pending" filings are those being worked on: `in_progress` or
`under_review`.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import ensure_role, scope_clause
from app.models.client import Client
from app.models.filing import Filing, FilingStatus
from app.models.payment import Payment, PaymentStatus
from app.models.user import User, UserRole
from app.schemas.common import Period
from app.services import documents, filings, payments
from app.services.periods import date_window, period_key

RECENT_PER_KIND = 10
RECENT_LIMIT = 20
PENDING_FILING_STATUSES = (FilingStatus.IN_PROGRESS, FilingStatus.UNDER_REVIEW)


# ── Building blocks ─────────────────────────────────────────

async def recent_activity(db: AsyncSession, user: User) -> list[dict]:
    """Latest filings, documents and payments in scope, newest first."""
    recent_filings, _ = await filings.list_filings(db, user, limit=RECENT_PER_KIND)
    recent_documents, _ = await documents.list_documents(db, user, limit=RECENT_PER_KIND)
    recent_payments, _ = await payments.list_payments(db, user, limit=RECENT_PER_KIND)

    items = [
        {
            "type": "filing",
            "id": f.id,
            "description": f"{f.tax_year} {f.filing_type.value} filing",
            "status": f.status.value,
            "timestamp": f.created_at,
        }
        for f in recent_filings
    ]
    items += [
        {
            "type": "document",
            "id": d.id,
            "description": d.file_name,
            "status": "verified" if d.is_verified else "pending",
            "timestamp": d.created_at,
        }
        for d in recent_documents
    ]
    items += [
        {
            "type": "payment",
            "id": p.id,
            "description": f"{p.amount:.2f} {p.currency}",
            "status": p.status.value,
            "timestamp": p.created_at,
        }
        for p in recent_payments
    ]
    items.sort(key=lambda item: item["timestamp"], reverse=True)
    return items[:RECENT_LIMIT]


async def filing_trend(db: AsyncSession, user: User, period: Period) -> list[dict]:
    """Filings created per period within the caller's scope, oldest first."""
    result = await db.execute(
        select(Filing.created_at)
        .join(Client, Filing.client_id == Client.id)
        .where(scope_clause(user, Client.user_id, Filing.ca_id))
        .order_by(Filing.created_at)
    )
    counts: dict[str, int] = {}
    for (created_at,) in result.all():
        key = period_key(created_at, period)
        counts[key] = counts.get(key, 0) + 1
    return [{"period": key, "count": count} for key, count in counts.items()]


def _pending(status_counts: dict[FilingStatus, int]) -> int:
    return sum(status_counts[s] for s in PENDING_FILING_STATUSES)


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar() or 0


# ── Dashboards ──────────────────────────────────────────────

async def admin_dashboard(db: AsyncSession, user: User) -> dict:
    ensure_role(user, UserRole.ADMIN, message="Access denied: Admin only")
    status_counts = await filings.filing_stats(db, user)
    doc_stats = await documents.document_stats(db, user)
    pay_stats = await payments.payment_stats(db, user)

    by_method = await db.execute(
        select(Payment.payment_method, func.count())
        .where(Payment.status == PaymentStatus.SUCCESS)
        .group_by(Payment.payment_method)
    )

    return {
        "total_users": await _count(db, User),
        "total_clients": await _count(db, Client),
        "total_filings": sum(status_counts.values()),
        "total_documents": doc_stats["total_documents"],
        "total_revenue": pay_stats["total_revenue"],
        "pending_filings": _pending(status_counts),
        "completed_filings": status_counts[FilingStatus.COMPLETED],
        "verified_documents": doc_stats["verified_documents"],
        "pending_documents": doc_stats["pending_verification"],
        "recent_activity": await recent_activity(db, user),
        "monthly_stats": await filing_trend(db, user, Period.MONTHLY),
        "filings_by_status": {s.value: n for s, n in status_counts.items() if n},
        "documents_by_type": doc_stats["documents_by_type"],
        "payments_by_method": {row[0].value: row[1] for row in by_method.all()},
    }


async def ca_dashboard(db: AsyncSession, user: User) -> dict:
    ensure_role(user, UserRole.CA, message="Access denied: CA only")
    status_counts = await filings.filing_stats(db, user)
    doc_stats = await documents.document_stats(db, user)

    by_status = await db.execute(
        select(Client.status, func.count())
        .where(Client.ca_id == user.id)
        .group_by(Client.status)
    )
    clients_by_status = {row[0].value: row[1] for row in by_status.all()}

    return {
        "assigned_clients": sum(clients_by_status.values()),
        "assigned_filings": sum(status_counts.values()),
        "pending_filings": _pending(status_counts),
        "completed_filings": status_counts[FilingStatus.COMPLETED],
        "documents_to_verify": doc_stats["pending_verification"],
        "clients_by_status": clients_by_status,
        "filings_by_month": await filing_trend(db, user, Period.MONTHLY),
        "recent_activity": await recent_activity(db, user),
    }


async def user_dashboard(db: AsyncSession, user: User) -> dict:
    """Customer view; all zeros until the customer has a client profile."""
    ensure_role(user, UserRole.CUSTOMER, message="Access denied: Customer only")
    status_counts = await filings.filing_stats(db, user)
    doc_stats = await documents.document_stats(db, user)
    pay_stats = await payments.payment_stats(db, user)

    return {
        "my_filings": sum(status_counts.values()),
        "pending_filings": _pending(status_counts),
        "completed_filings": status_counts[FilingStatus.COMPLETED],
        "my_documents": doc_stats["total_documents"],
        "verified_documents": doc_stats["verified_documents"],
        "pending_documents": doc_stats["pending_verification"],
        "total_payments": pay_stats["total_transactions"],
        "recent_activity": await recent_activity(db, user),
    }


# ── Analytics ───────────────────────────────────────────────

async def revenue_analytics(
    db: AsyncSession,
    user: User,
    period: Period = Period.MONTHLY,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Admin revenue over [start, end]; defaults to the last twelve months."""
    ensure_role(user, UserRole.ADMIN, message="Access denied: Admin only")
    start, end = date_window(start, end, default_days=365)
    stats = await payments.payment_stats(db, user, start, end)
    return {
        "period": period,
        "start_date": start,
        "end_date": end,
        "total_revenue": stats["total_revenue"],
        "total_transactions": stats["successful_transactions"],
        "period_data": await payments.revenue_buckets(db, period, start, end),
    }


async def filing_analytics(db: AsyncSession, user: User, period: Period = Period.MONTHLY) -> dict:
    data = await filing_trend(db, user, period)
    return {"period": period, "data": data, "total": sum(d["count"] for d in data)}
