"""
TitleDesk Backend — Document Type Master Routes
=================================================

What:  The two document type masters share one route shape:

           /api/application-documents   (*_application_documents, default .pdf)
           /api/company-documents       (*_company_documents, default .docx)

How:   build_router() creates the same set of handlers for a given
       service instance and permission suffix.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import require_permissions
from titledesk.models.user import User
from titledesk.routes import bulk_ids, error_responses
from titledesk.schemas.common import BulkDeleteResponse, MessageResponse
from titledesk.schemas.document_type import (
    DocumentTypeCreate,
    DocumentTypePage,
    DocumentTypeResponse,
    DocumentTypeUpdate,
)
from titledesk.services.document_type_service import (
    DocumentTypeService,
    application_document_types,
    company_document_types,
)


def build_router(prefix: str, tag: str, service: DocumentTypeService, suffix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=DocumentTypePage, responses=error_responses(401, 403))
    async def list_types(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=100),
        search: Optional[str] = Query(default=None, description="Title or format"),
        sort_by: Optional[str] = Query(default=None, alias="sortBy"),
        order: str = Query(default="desc"),
        user: User = Depends(require_permissions(f"view_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentTypePage:
        return await service.list_types(db, page=page, limit=limit, search=search, sort_by=sort_by, order=order)

    @router.post("/bulk-delete", response_model=BulkDeleteResponse, responses=error_responses(400, 401, 403))
    async def bulk_delete_types(
        body: Any = Body(default=None, examples=[{"ids": [1, 2]}]),
        user: User = Depends(require_permissions(f"delete_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> BulkDeleteResponse:
        count = await service.bulk_delete(db, bulk_ids(body))
        return BulkDeleteResponse(message=f"{count} items deleted", count=count)

    @router.get("/{type_id}", response_model=DocumentTypeResponse, responses=error_responses(401, 403, 404))
    async def get_type(
        type_id: int,
        user: User = Depends(require_permissions(f"view_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentTypeResponse:
        return await service.get_type(db, type_id)

    @router.post(
        "",
        response_model=DocumentTypeResponse,
        status_code=status.HTTP_201_CREATED,
        responses=error_responses(401, 403),
    )
    async def create_type(
        payload: DocumentTypeCreate,
        user: User = Depends(require_permissions(f"add_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentTypeResponse:
        return await service.create_type(db, payload)

    @router.put("/{type_id}", response_model=DocumentTypeResponse, responses=error_responses(401, 403, 404))
    async def update_type(
        type_id: int,
        payload: DocumentTypeUpdate,
        user: User = Depends(require_permissions(f"edit_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentTypeResponse:
        return await service.update_type(db, type_id, payload)

    @router.delete("/{type_id}", response_model=MessageResponse, responses=error_responses(401, 403, 404))
    async def delete_type(
        type_id: int,
        user: User = Depends(require_permissions(f"delete_{suffix}")),
        db: AsyncSession = Depends(get_db_session),
    ) -> MessageResponse:
        await service.delete_type(db, type_id)
        return MessageResponse(message="Deleted")

    return router


application_documents_router = build_router(
    "/api/application-documents", "Application Documents", application_document_types, "application_documents"
)
company_documents_router = build_router(
    "/api/company-documents", "Company Documents", company_document_types, "company_documents"
)
