"""
TitleDesk Backend — OneDrive Routes
=====================================

What:  /api/onedrive: a thin proxy over the caller's OneDrive plus the
       document flows (company letterpads, copies into application
       folders, PDF uploads).

Two tokens per request:
    Authorization: Bearer <app JWT>       who the caller is in TitleDesk
    X-Graph-Token: <Microsoft token>      whose OneDrive to act on

Routes that only touch the database (company documents list, file
unlink, PDF lock/unlock/delete) do not need the Graph token.
"""

import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import get_current_user, graph_token
from titledesk.exceptions import ValidationError
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.application import GeneratedDocumentResponse, PdfUploadResponse
from titledesk.schemas.common import MessageResponse, parse_flexible_date
from titledesk.schemas.company import CompanyDocumentResponse
from titledesk.schemas.onedrive import (
    CompanyDocumentRequest,
    CopyDocumentRequest,
    CreateFolderRequest,
    DriveItem,
    DriveItemList,
    PdfActionRequest,
)
from titledesk.services.onedrive_service import onedrive_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/onedrive", tags=["OneDrive"])

GRAPH_ERRORS = error_responses(400, 401, 404, 502)


@router.get("/files", response_model=DriveItemList, responses=GRAPH_ERRORS, summary="List a folder")
async def list_files(
    folder_id: Optional[str] = Query(default=None, alias="folderId"),
    path: Optional[str] = Query(default=None, description="Drive-relative folder path"),
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
) -> DriveItemList:
    return DriveItemList(items=await onedrive_service.list_files(token, folder_id=folder_id, path=path))


@router.post(
    "/files/upload",
    response_model=DriveItem,
    status_code=status.HTTP_201_CREATED,
    responses=GRAPH_ERRORS,
    summary="Upload a file by folder id or path",
)
async def upload_file(
    file: UploadFile = File(...),
    folder_id: Optional[str] = Form(default=None, alias="folderId"),
    path: Optional[str] = Form(default=None),
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
) -> DriveItem:
    content = await file.read()
    return await onedrive_service.upload_file(
        token, file.filename or "", content, folder_id=folder_id, path=path
    )


@router.get("/files/{file_id}/download", responses=GRAPH_ERRORS, summary="Download a file")
async def download_file(
    file_id: str,
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
) -> Response:
    content, media_type, name = await onedrive_service.download(token, file_id)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.delete(
    "/files/{file_id}",
    response_model=MessageResponse,
    responses=error_responses(401, 404),
    summary="Unlink a company file (the OneDrive item is kept)",
)
async def delete_file(
    file_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await onedrive_service.delete_company_file(db, file_id)


@router.post("/folders", response_model=DriveItem, status_code=status.HTTP_201_CREATED, responses=GRAPH_ERRORS)
async def create_folder(
    payload: CreateFolderRequest,
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
) -> DriveItem:
    return await onedrive_service.create_folder(token, payload.name, parent_id=payload.parent_id)


@router.get("/search", response_model=DriveItemList, responses=GRAPH_ERRORS)
async def search(
    q: str = Query(..., min_length=1),
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
) -> DriveItemList:
    return DriveItemList(items=await onedrive_service.search(token, q))


# ── Company documents ─────────────────────────────────────────────────────

@router.get(
    "/company-documents/{company_name}",
    response_model=List[CompanyDocumentResponse],
    responses=error_responses(401, 404),
)
async def list_company_documents(
    company_name: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CompanyDocumentResponse]:
    return await onedrive_service.company_documents(db, company_name)


@router.post(
    "/company-documents",
    response_model=CompanyDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=GRAPH_ERRORS,
    summary="Create a company document from the letterpad template",
)
async def create_company_document(
    payload: CompanyDocumentRequest,
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CompanyDocumentResponse:
    return await onedrive_service.create_company_document(db, token, payload, user)


# ── Application documents ─────────────────────────────────────────────────

@router.post(
    "/copy-document",
    response_model=GeneratedDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=GRAPH_ERRORS,
    summary="Copy a document into the application's folder",
)
async def copy_document(
    payload: CopyDocumentRequest,
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> GeneratedDocumentResponse:
    return await onedrive_service.copy_document(db, token, payload, user)


@router.post(
    "/upload-pdf",
    response_model=PdfUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 404, 409, 502),
    summary="Upload the PDF for one document slot of an application",
)
async def upload_pdf(
    file: UploadFile = File(...),
    file_no: str = Form(..., alias="fileNo"),
    application_date: str = Form(..., alias="applicationDate", description="dd-mm-yyyy"),
    application_id: int = Form(..., alias="applicationId"),
    title: str = Form(...),
    pdf_doc_id: Optional[int] = Form(default=None, alias="pdfDocId"),
    token: str = Depends(graph_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PdfUploadResponse:
    parsed = parse_flexible_date(application_date)
    if not isinstance(parsed, dt.date):
        try:
            parsed = dt.date.fromisoformat(application_date)
        except ValueError:
            raise ValidationError(message="Invalid applicationDate", field="applicationDate")
    content = await file.read()
    return await onedrive_service.upload_pdf(
        db,
        token,
        user,
        content=content,
        content_type=file.content_type,
        file_no=file_no,
        application_date=parsed,
        application_id=application_id,
        title=title,
        pdf_doc_id=pdf_doc_id,
    )


@router.post("/lock-pdf", response_model=PdfUploadResponse, responses=error_responses(401, 404))
async def lock_pdf(
    payload: PdfActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PdfUploadResponse:
    return await onedrive_service.set_pdf_lock(db, user, payload, locked=True)


@router.post("/unlock-pdf", response_model=PdfUploadResponse, responses=error_responses(401, 404))
async def unlock_pdf(
    payload: PdfActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PdfUploadResponse:
    return await onedrive_service.set_pdf_lock(db, user, payload, locked=False)


@router.post("/delete-pdf", response_model=MessageResponse, responses=error_responses(401, 404))
async def delete_pdf(
    payload: PdfActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await onedrive_service.delete_pdf(db, user, payload)
