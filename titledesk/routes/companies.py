"""
TitleDesk Backend — Company Routes
====================================

What:  /api/companies CRUD. The list is readable by anyone who works with
       applications, since the application form needs the company names.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import require_permissions
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.company import CompanyCreate, CompanyResponse, CompanyUpdate
from titledesk.services.company_service import company_service

router = APIRouter(prefix="/api/companies", tags=["Companies"])

can_view = require_permissions(
    "view_companies", "view_applications", "add_applications", "edit_applications"
)


@router.get("", response_model=List[CompanyResponse], responses=error_responses(401, 403))
async def list_companies(
    user: User = Depends(can_view),
    db: AsyncSession = Depends(get_db_session),
) -> List[CompanyResponse]:
    return await company_service.list_companies(db)


@router.get("/{company_id}", response_model=CompanyResponse, responses=error_responses(401, 403, 404))
async def get_company(
    company_id: int,
    user: User = Depends(can_view),
    db: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    return await company_service.get_company(db, company_id)


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(401, 403, 409),
)
async def create_company(
    payload: CompanyCreate,
    user: User = Depends(require_permissions("add_companies")),
    db: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    return await company_service.create_company(db, payload)


@router.put("/{company_id}", response_model=CompanyResponse, responses=error_responses(401, 403, 404, 409))
async def update_company(
    company_id: int,
    payload: CompanyUpdate,
    user: User = Depends(require_permissions("edit_companies")),
    db: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    return await company_service.update_company(db, company_id, payload)


@router.delete(
    "/{company_id}",
    response_model=MessageResponse,
    responses=error_responses(401, 403, 404),
    summary="Delete a company and its linked file records",
)
async def delete_company(
    company_id: int,
    user: User = Depends(require_permissions("delete_companies")),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await company_service.delete_company(db, company_id)
    return MessageResponse(message="Company deleted")
