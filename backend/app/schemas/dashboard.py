"""Pydantic schemas for role dashboards and analytics."""

from datetime import date, datetime
from typing import Literal

from app.schemas.common import CamelModel, Period
from app.schemas.payment import RevenueBucket


class ActivityItem(CamelModel):
    type: Literal["filing", "document", "payment"]
    id: str
    description: str
    status: str
    timestamp: datetime


class PeriodCount(CamelModel):
    period: str
    count: int


class AdminDashboardOut(CamelModel):
    total_users: int
    total_clients: int
    total_filings: int
    total_documents: int
    total_revenue: float
    pending_filings: int
    completed_filings: int
    verified_documents: int
    pending_documents: int
    recent_activity: list[ActivityItem]
    monthly_stats: list[PeriodCount]
    filings_by_status: dict[str, int]
    documents_by_type: dict[str, int]
    payments_by_method: dict[str, int]


class CADashboardOut(CamelModel):
    assigned_clients: int
    assigned_filings: int
    pending_filings: int
    completed_filings: int
    documents_to_verify: int
    clients_by_status: dict[str, int]
    filings_by_month: list[PeriodCount]
    recent_activity: list[ActivityItem]


class UserDashboardOut(CamelModel):
    my_filings: int
    pending_filings: int
    completed_filings: int
    my_documents: int
    verified_documents: int
    pending_documents: int
    total_payments: int
    recent_activity: list[ActivityItem]


class RevenueAnalyticsOut(CamelModel):
    period: Period
    start_date: date
    end_date: date
    total_revenue: float
    total_transactions: int
    period_data: list[RevenueBucket]


class FilingAnalyticsOut(CamelModel):
    period: Period
    data: list[PeriodCount]
    total: int
