"""Role dashboards and analytics.

Endpoints:
    GET /api/dashboard/admin               Platform overview (admin)
    GET /api/dashboard/ca                  Assigned work overview (CA)
    GET /api/dashboard/user                Own records overview (customer)
    GET /api/dashboard/analytics/revenue   Revenue per period (admin)
    GET /api/dashboard/analytics/filings   Filings created per period, in scope
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user, require_admin, require_role
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.common import ApiResponse, Period
from app.schemas.dashboard import (
    AdminDashboardOut,
    CADashboardOut,
    FilingAnalyticsOut,
    RevenueAnalyticsOut,
    UserDashboardOut,
)
from app.services import dashboard as service

router = APIRouter()


@router.get("/admin", response_model=ApiResponse[AdminDashboardOut])
async def admin_dashboard(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    data = await service.admin_dashboard(db, admin)
    return ApiResponse(
        message="Admin dashboard data retrieved successfully", data=AdminDashboardOut(**data)
    )


@router.get("/ca", response_model=ApiResponse[CADashboardOut])
async def ca_dashboard(
    db: AsyncSession = Depends(get_db),
    ca: User = Depends(require_role(UserRole.CA)),
):
    data = await service.ca_dashboard(db, ca)
    return ApiResponse(
        message="CA dashboard data retrieved successfully", data=CADashboardOut(**data)
    )


@router.get("/user", response_model=ApiResponse[UserDashboardOut])
async def user_dashboard(
    db: AsyncSession = Depends(get_db),
    customer: User = Depends(require_role(UserRole.CUSTOMER)),
):
    data = await service.user_dashboard(db, customer)
    return ApiResponse(
        message="User dashboard data retrieved successfully", data=UserDashboardOut(**data)
    )


@router.get("/analytics/revenue", response_model=ApiResponse[RevenueAnalyticsOut])
async def revenue_analytics(
    period: Period = Query(Period.MONTHLY),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Defaults to the last twelve months when either bound is missing."""
    data = await service.revenue_analytics(db, admin, period, start_date, end_date)
    return ApiResponse(
        message="Revenue analytics retrieved successfully", data=RevenueAnalyticsOut(**data)
    )


@router.get("/analytics/filings", response_model=ApiResponse[FilingAnalyticsOut])
async def filing_analytics(
    period: Period = Query(Period.MONTHLY),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = await service.filing_analytics(db, user, period)
    return ApiResponse(
        message="Filing analytics retrieved successfully", data=FilingAnalyticsOut(**data)
    )
