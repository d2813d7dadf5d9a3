"""Client profile router.

Endpoints:
    GET    /api/clients/                      List clients in scope
    POST   /api/clients/                      Create client profile
    GET    /api/clients/stats                 Platform-wide counts (admin)
    GET    /api/clients/me                    Caller's own client profile
    GET    /api/clients/{id}                  Get client
    PATCH  /api/clients/{id}                  Update client
    DELETE /api/clients/{id}                  Delete client (admin)
    PUT    /api/clients/{id}/assign-ca        Assign CA (admin)
    DELETE /api/clients/{id}/assign-ca        Unassign CA (admin)
    POST   /api/clients/{id}/complete-onboarding
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user, require_admin
from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.client import ClientStatus
from app.models.user import User
from app.schemas.client import (
    AssignCARequest,
    ClientCreate,
    ClientOut,
    ClientStatsOut,
    ClientUpdate,
)
from app.schemas.common import ApiResponse, Page, PageParams, page_params
from app.services import clients as service

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[ClientOut]])
async def list_clients(
    status_filter: ClientStatus | None = Query(None, alias="status"),
    ca_id: str | None = Query(None, alias="caId"),
    search: str | None = Query(None, max_length=100),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await service.list_clients(
        db,
        user,
        status=status_filter,
        ca_id=ca_id,
        search=search,
        offset=paging.offset,
        limit=paging.limit,
    )
    return ApiResponse(
        message="Clients retrieved successfully",
        data=Page.build(
            [ClientOut.model_validate(c) for c in items], total, paging.page, paging.limit
        ),
    )


@router.post("/", response_model=ApiResponse[ClientOut], status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.create_client(db, user, body)
    return ApiResponse(message="Client created successfully", data=ClientOut.model_validate(client))


@router.get("/stats", response_model=ApiResponse[ClientStatsOut])
async def client_stats(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    stats = await service.client_stats(db)
    return ApiResponse(
        message="Client statistics retrieved successfully", data=ClientStatsOut(**stats)
    )


@router.get("/me", response_model=ApiResponse[ClientOut])
async def get_my_client(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.get_client_for_user(db, user.id)
    if not client:
        raise ResourceNotFoundError("Client profile")
    return ApiResponse(
        message="Client profile retrieved successfully", data=ClientOut.model_validate(client)
    )


@router.get("/{client_id}", response_model=ApiResponse[ClientOut])
async def get_client(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.get_client(db, user, client_id)
    return ApiResponse(message="Client retrieved successfully", data=ClientOut.model_validate(client))


@router.patch("/{client_id}", response_model=ApiResponse[ClientOut])
async def update_client(
    client_id: str,
    body: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.update_client(db, user, client_id, body)
    return ApiResponse(message="Client updated successfully", data=ClientOut.model_validate(client))


@router.delete("/{client_id}", response_model=ApiResponse[None])
async def delete_client(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await service.delete_client(db, user, client_id)
    return ApiResponse(message="Client deleted successfully")


# ── CA assignment ────────────────────────────────────────────

@router.put("/{client_id}/assign-ca", response_model=ApiResponse[ClientOut])
async def assign_ca(
    client_id: str,
    body: AssignCARequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.assign_ca(db, user, client_id, body.ca_id)
    return ApiResponse(message="CA assigned successfully", data=ClientOut.model_validate(client))


@router.delete("/{client_id}/assign-ca", response_model=ApiResponse[ClientOut])
async def unassign_ca(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.unassign_ca(db, user, client_id)
    return ApiResponse(message="CA unassigned successfully", data=ClientOut.model_validate(client))


@router.post("/{client_id}/complete-onboarding", response_model=ApiResponse[ClientOut])
async def complete_onboarding(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    client = await service.complete_onboarding(db, user, client_id)
    return ApiResponse(
        message="Onboarding marked as completed", data=ClientOut.model_validate(client)
    )
