"""
TitleDesk Backend — Application Routes
========================================

What:  /api/applications: list, detail, create, update, soft delete,
       bulk delete, and the query sub-resource.

Scoping and soft-delete rules live in ApplicationService; these handlers
only pick the permission and pass parameters through.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import client_ip, optional_graph_token, require_permissions
from titledesk.models.user import User
from titledesk.routes import bulk_ids, error_responses
from titledesk.schemas.application import (
    ApplicationCreate,
    ApplicationDetailResponse,
    ApplicationPage,
    ApplicationUpdate,
    QueryCreate,
    QueryUpdate,
)
from titledesk.schemas.common import BulkDeleteResponse, MessageResponse
from titledesk.services.application_service import application_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/applications", tags=["Applications"])


@router.get(
    "",
    response_model=ApplicationPage,
    responses=error_responses(400, 401, 403),
    summary="List applications visible to the caller",
    description=(
        "Paginated, filterable list. Deleted applications are only returned when "
        "status=deleted is requested. Non-admin users only see applications of "
        "their assigned companies."
    ),
)
async def list_applications(
    response: Response,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: Optional[str] = Query(default=None, description="Applicant name, file number or company"),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    order: str = Query(default="desc", description="asc or desc"),
    company: Optional[str] = Query(default=None),
    branch: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    date_from: Optional[str] = Query(default=None, alias="dateFrom", description="dd-mm-yyyy or yyyy-mm-dd"),
    date_to: Optional[str] = Query(default=None, alias="dateTo", description="dd-mm-yyyy or yyyy-mm-dd"),
    user: User = Depends(require_permissions("view_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationPage:
    result = await application_service.list_applications(
        db,
        user,
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        order=order,
        company=company,
        branch=branch,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    responses=error_responses(400, 401, 403),
    summary="Soft-delete several applications",
)
async def bulk_delete_applications(
    request: Request,
    body: Any = Body(default=None, examples=[{"ids": [1, 2, 3]}]),
    user: User = Depends(require_permissions("delete_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> BulkDeleteResponse:
    count = await application_service.bulk_delete(db, user, bulk_ids(body), ip_address=client_ip(request))
    return BulkDeleteResponse(message=f"{count} applications deleted", count=count)


@router.get(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    responses=error_responses(401, 403, 404),
    summary="Get one application with queries, documents and PDFs",
)
async def get_application(
    application_id: int,
    user: User = Depends(require_permissions("view_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    return await application_service.get_application(db, user, application_id)


@router.post(
    "",
    response_model=ApplicationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 409),
    summary="Create an application",
    description=(
        "fileNumber is generated when omitted. When an X-Graph-Token header is sent, "
        "the OneDrive folder ROOT/FY/Month/FileNo is created as well; a failure there "
        "does not fail the request."
    ),
)
async def create_application(
    payload: ApplicationCreate,
    request: Request,
    graph_token: Optional[str] = Depends(optional_graph_token),
    user: User = Depends(require_permissions("add_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    return await application_service.create_application(
        db, user, payload, graph_token=graph_token, ip_address=client_ip(request)
    )


@router.put(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    responses=error_responses(400, 401, 403, 404),
    summary="Update an application (fileNumber cannot change)",
)
async def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    request: Request,
    user: User = Depends(require_permissions("edit_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    return await application_service.update_application(
        db, user, application_id, payload, ip_address=client_ip(request)
    )


@router.delete(
    "/{application_id}",
    response_model=MessageResponse,
    responses=error_responses(401, 403, 404),
    summary="Soft-delete an application",
)
async def delete_application(
    application_id: int,
    request: Request,
    user: User = Depends(require_permissions("delete_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await application_service.delete_application(db, user, application_id, ip_address=client_ip(request))
    return MessageResponse(message="Application deleted")


# ── Queries ───────────────────────────────────────────────────────────────

@router.post(
    "/{application_id}/queries",
    response_model=ApplicationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 404),
    summary="Raise a query on an application",
)
async def add_query(
    application_id: int,
    payload: QueryCreate,
    request: Request,
    user: User = Depends(require_permissions("edit_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    return await application_service.add_query(db, user, application_id, payload, ip_address=client_ip(request))


@router.patch(
    "/{application_id}/queries/{query_id}",
    response_model=ApplicationDetailResponse,
    responses=error_responses(400, 401, 403, 404),
    summary="Edit, resolve or reopen a query",
)
async def update_query(
    application_id: int,
    query_id: int,
    payload: QueryUpdate,
    user: User = Depends(require_permissions("edit_applications")),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    return await application_service.update_query(db, user, application_id, query_id, payload)
