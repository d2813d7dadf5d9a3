"""Filing router.

Endpoints:
    GET    /api/filings/                    List filings in scope
    POST   /api/filings/                    Create filing (status draft)
    GET    /api/filings/stats               Counts per status in scope
    GET    /api/filings/deadlines           Open filings due soon (?days=30)
    GET    /api/filings/{id}                Get filing
    PATCH  /api/filings/{id}                Update filing fields
    PUT    /api/filings/{id}/status         Move through the status lifecycle
    PUT    /api/filings/{id}/assign-ca      Assign CA (admin)
    DELETE /api/filings/{id}/assign-ca      Unassign CA (admin)
    DELETE /api/filings/{id}                Delete a draft filing
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.models.filing import FilingStatus, FilingType
from app.models.user import User
from app.schemas.common import ApiResponse, Page, PageParams, page_params
from app.schemas.filing import (
    FilingAssignCA,
    FilingCreate,
    FilingOut,
    FilingStatsOut,
    FilingStatusUpdate,
    FilingUpdate,
)
from app.services import filings as service

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[FilingOut]])
async def list_filings(
    status_filter: FilingStatus | None = Query(None, alias="status"),
    tax_year: str | None = Query(None, alias="taxYear"),
    filing_type: FilingType | None = Query(None, alias="filingType"),
    client_id: str | None = Query(None, alias="clientId"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await service.list_filings(
        db,
        user,
        status=status_filter,
        tax_year=tax_year,
        filing_type=filing_type,
        client_id=client_id,
        offset=paging.offset,
        limit=paging.limit,
    )
    return ApiResponse(
        message="Filings retrieved successfully",
        data=Page.build(
            [FilingOut.model_validate(f) for f in items], total, paging.page, paging.limit
        ),
    )


@router.post("/", response_model=ApiResponse[FilingOut], status_code=status.HTTP_201_CREATED)
async def create_filing(
    body: FilingCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.create_filing(db, user, body)
    return ApiResponse(message="Filing created successfully", data=FilingOut.model_validate(filing))


@router.get("/stats", response_model=ApiResponse[FilingStatsOut])
async def filing_stats(
    client_id: str | None = Query(None, alias="clientId"),
    ca_id: str | None = Query(None, alias="caId"),
    tax_year: str | None = Query(None, alias="taxYear"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    counts = await service.filing_stats(
        db, user, client_id=client_id, ca_id=ca_id, tax_year=tax_year
    )
    stats = FilingStatsOut(
        total=sum(counts.values()),
        draft=counts[FilingStatus.DRAFT],
        in_progress=counts[FilingStatus.IN_PROGRESS],
        under_review=counts[FilingStatus.UNDER_REVIEW],
        completed=counts[FilingStatus.COMPLETED],
        rejected=counts[FilingStatus.REJECTED],
    )
    return ApiResponse(message="Filing statistics retrieved successfully", data=stats)


@router.get("/deadlines", response_model=ApiResponse[list[FilingOut]])
async def upcoming_deadlines(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Open filings due within `days` days."""
    filings = await service.upcoming_deadlines(db, user, days)
    return ApiResponse(
        message="Upcoming deadlines retrieved successfully",
        data=[FilingOut.model_validate(f) for f in filings],
    )


@router.get("/{filing_id}", response_model=ApiResponse[FilingOut])
async def get_filing(
    filing_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.get_filing(db, user, filing_id)
    return ApiResponse(message="Filing retrieved successfully", data=FilingOut.model_validate(filing))


@router.patch("/{filing_id}", response_model=ApiResponse[FilingOut])
async def update_filing(
    filing_id: str,
    body: FilingUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.update_filing(db, user, filing_id, body)
    return ApiResponse(message="Filing updated successfully", data=FilingOut.model_validate(filing))


@router.put("/{filing_id}/status", response_model=ApiResponse[FilingOut])
async def update_status(
    filing_id: str,
    body: FilingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.update_status(db, user, filing_id, body.status, body.notes)
    return ApiResponse(
        message="Filing status updated successfully", data=FilingOut.model_validate(filing)
    )


@router.put("/{filing_id}/assign-ca", response_model=ApiResponse[FilingOut])
async def assign_ca(
    filing_id: str,
    body: FilingAssignCA,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.assign_ca(db, user, filing_id, body.ca_id)
    return ApiResponse(message="CA assigned successfully", data=FilingOut.model_validate(filing))


@router.delete("/{filing_id}/assign-ca", response_model=ApiResponse[FilingOut])
async def unassign_ca(
    filing_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filing = await service.unassign_ca(db, user, filing_id)
    return ApiResponse(message="CA unassigned successfully", data=FilingOut.model_validate(filing))


@router.delete("/{filing_id}", response_model=ApiResponse[None])
async def delete_filing(
    filing_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await service.delete_filing(db, user, filing_id)
    return ApiResponse(message="Filing deleted successfully")
