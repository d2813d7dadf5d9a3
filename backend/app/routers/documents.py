"""Document metadata router.

Endpoints:
    GET    /api/documents/                 List documents in scope
    POST   /api/documents/                 Record an uploaded document for a filing
    GET    /api/documents/stats            Counts and sizes in scope
    GET    /api/documents/unverified       Review queue (CA or admin)
    GET    /api/documents/{id}             Get document
    PATCH  /api/documents/{id}             Update (uploader or admin)
    DELETE /api/documents/{id}             Delete (uploader or admin)
    PUT    /api/documents/{id}/verify      Verify (assigned CA or admin)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.models.document import DocumentType
from app.models.user import User
from app.schemas.common import ApiResponse, Page, PageParams, page_params
from app.schemas.document import (
    DocumentCreate,
    DocumentOut,
    DocumentStatsOut,
    DocumentUpdate,
    DocumentVerify,
)
from app.services import documents as service

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[DocumentOut]])
async def list_documents(
    filing_id: str | None = Query(None, alias="filingId"),
    document_type: DocumentType | None = Query(None, alias="documentType"),
    is_verified: bool | None = Query(None, alias="isVerified"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await service.list_documents(
        db,
        user,
        filing_id=filing_id,
        document_type=document_type,
        is_verified=is_verified,
        offset=paging.offset,
        limit=paging.limit,
    )
    return ApiResponse(
        message="Documents retrieved successfully",
        data=Page.build(
            [DocumentOut.model_validate(d) for d in items], total, paging.page, paging.limit
        ),
    )


@router.post("/", response_model=ApiResponse[DocumentOut], status_code=status.HTTP_201_CREATED)
async def create_document(
    body: DocumentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    document = await service.create_document(db, user, body)
    return ApiResponse(
        message="Document uploaded successfully", data=DocumentOut.model_validate(document)
    )


@router.get("/stats", response_model=ApiResponse[DocumentStatsOut])
async def document_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stats = await service.document_stats(db, user)
    return ApiResponse(
        message="Document statistics retrieved successfully", data=DocumentStatsOut(**stats)
    )


@router.get("/unverified", response_model=ApiResponse[Page[DocumentOut]])
async def list_unverified(
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Review queue: unverified documents on the caller's filings (CA) or all (admin)."""
    items, total = await service.list_unverified(
        db, user, offset=paging.offset, limit=paging.limit
    )
    return ApiResponse(
        message="Unverified documents retrieved successfully",
        data=Page.build(
            [DocumentOut.model_validate(d) for d in items], total, paging.page, paging.limit
        ),
    )


@router.get("/{document_id}", response_model=ApiResponse[DocumentOut])
async def get_document(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    document = await service.get_document(db, user, document_id)
    return ApiResponse(
        message="Document retrieved successfully", data=DocumentOut.model_validate(document)
    )


@router.patch("/{document_id}", response_model=ApiResponse[DocumentOut])
async def update_document(
    document_id: str,
    body: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    document = await service.update_document(db, user, document_id, body)
    return ApiResponse(
        message="Document updated successfully", data=DocumentOut.model_validate(document)
    )


@router.delete("/{document_id}", response_model=ApiResponse[None])
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await service.delete_document(db, user, document_id)
    return ApiResponse(message="Document deleted successfully")


@router.put("/{document_id}/verify", response_model=ApiResponse[DocumentOut])
async def verify_document(
    document_id: str,
    body: DocumentVerify | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    document = await service.verify_document(
        db, user, document_id, body.notes if body else None
    )
    return ApiResponse(
        message="Document verified successfully", data=DocumentOut.model_validate(document)
    )
