"""
TitleDesk Backend — OneDrive Service
======================================

What:  The OneDrive flows behind /api/onedrive and the application folder
       created on application create.
How:   Each call opens a GraphClient with the caller's delegated token;
       database rows (company_files, application_documents,
       application_pdf_uploads) are written in the request session.

Folder layout under settings.onedrive_upload_root:

    ROOT/
    ├── letterpad.docx                 template for company documents
    ├── COMPANY_DATA/
    │   └── {company}/{company}-{docType}.docx
    └── {FY}/{Month}/{fileNo}/         one folder per application
        ├── {fileNo}-{document}.docx
        └── {fileNo}-{title}.pdf

FY is the Indian financial year (April to March), written "2024-2025".
"""

import datetime as dt
import logging
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.config import settings
from titledesk.exceptions import CloudStorageError, ConflictError, NotFoundError, ValidationError
from titledesk.models.application import Application, ApplicationDocument, ApplicationPdfUpload
from titledesk.models.company import Company, CompanyFile
from titledesk.models.user import User
from titledesk.schemas.application import GeneratedDocumentResponse, PdfUploadResponse
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.company import CompanyDocumentResponse
from titledesk.schemas.onedrive import (
    CompanyDocumentRequest,
    CopyDocumentRequest,
    DriveItem,
    PdfActionRequest,
)
from titledesk.services.file_service import file_service
from titledesk.services.graph_client import GraphClient, ItemNotReady

logger = logging.getLogger(__name__)

COMPANY_DATA_FOLDER = "COMPANY_DATA"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


# ── Naming helpers ────────────────────────────────────────────────────────

def financial_year(day: dt.date) -> str:
    """April to March: 15 May 2024 → "2024-2025", 10 Feb 2025 → "2024-2025"."""
    start = day.year if day.month >= 4 else day.year - 1
    return f"{start}-{start + 1}"


def month_name(day: dt.date) -> str:
    return MONTH_NAMES[day.month - 1]


def application_folder(day: dt.date, file_no: str, root: Optional[str] = None) -> List[str]:
    return [root or settings.onedrive_upload_root, financial_year(day), month_name(day), file_no]


def strip_company_prefix(name: str, company_name: Optional[str]) -> str:
    if company_name:
        prefix = f"{company_name}-"
        if name.lower().startswith(prefix.lower()):
            return name[len(prefix):]
    return name


def unique_name(name: str, taken: Iterable[str]) -> str:
    """`name`, or `stem (n).ext` with the smallest n not already taken."""
    existing = {t.lower() for t in taken}
    if name.lower() not in existing:
        return name
    path = PurePosixPath(name)
    stem, suffix = path.stem, path.suffix
    n = 1
    while f"{stem} ({n}){suffix}".lower() in existing:
        n += 1
    return f"{stem} ({n}){suffix}"


class OneDriveService:
    def __init__(self, client_factory: Callable[[str], GraphClient] = GraphClient):
        self.client_factory = client_factory

    # ── Pass-through ──────────────────────────────────────────────────────

    async def list_files(
        self,
        token: str,
        folder_id: Optional[str] = None,
        path: Optional[str] = None,
    ) -> List[DriveItem]:
        segments = [p for p in (path or "").split("/") if p]
        async with self.client_factory(token) as graph:
            items = await graph.list_children(folder_id=folder_id, path=segments)
        return [DriveItem.from_graph(item) for item in items]

    async def upload_file(
        self,
        token: str,
        filename: str,
        content: bytes,
        folder_id: Optional[str] = None,
        path: Optional[str] = None,
    ) -> DriveItem:
        if not filename:
            raise ValidationError(message="A file is required", field="file")
        async with self.client_factory(token) as graph:
            if folder_id:
                parent_id = folder_id
            else:
                segments = [p for p in (path or "").split("/") if p]
                parent_id = (await graph.ensure_path(segments))["id"]
            item = await graph.upload(parent_id, filename, content)
        logger.info("Uploaded %s (%d bytes) to OneDrive", filename, len(content))
        return DriveItem.from_graph(item)

    async def download(self, token: str, file_id: str):
        """(content, media type, file name) of a drive item."""
        async with self.client_factory(token) as graph:
            meta = await graph.get_item(file_id)
            response = await graph.download(file_id)
        media_type = response.headers.get("content-type", "application/octet-stream")
        return response.content, media_type, meta.get("name", file_id)

    async def create_folder(self, token: str, name: str, parent_id: Optional[str] = None) -> DriveItem:
        async with self.client_factory(token) as graph:
            item = await graph.create_folder(name, parent_id=parent_id, conflict_behavior="rename")
        return DriveItem.from_graph(item)

    async def search(self, token: str, query: str) -> List[DriveItem]:
        if not query.strip():
            raise ValidationError(message="Search query is required", field="q")
        async with self.client_factory(token) as graph:
            items = await graph.search(query.strip())
        return [DriveItem.from_graph(item) for item in items]

    # ── Application folders ───────────────────────────────────────────────

    async def ensure_application_folder(self, token: str, application: Application) -> DriveItem:
        day = application.date or dt.date.today()
        async with self.client_factory(token) as graph:
            folder = await graph.ensure_path(application_folder(day, application.file_number))
        application.onedrive_folder_id = folder["id"]
        application.onedrive_folder_url = folder.get("webUrl")
        return DriveItem.from_graph(folder)

    # ── Company documents ─────────────────────────────────────────────────

    async def company_documents(self, db: AsyncSession, company_name: str) -> List[CompanyDocumentResponse]:
        company = await self._company_by_name(db, company_name)
        return [CompanyDocumentResponse.from_file(f) for f in company.files]

    async def create_company_document(
        self,
        db: AsyncSession,
        token: str,
        payload: CompanyDocumentRequest,
        user: User,
    ) -> CompanyDocumentResponse:
        """Copy the letterpad template into the company's folder and link it."""
        company = await self._company_by_name(db, payload.company_name)
        root = settings.onedrive_upload_root
        target_name = f"{company.name}-{payload.doc_type}.docx"
        folder_segments = [root, COMPANY_DATA_FOLDER, company.name]

        async with self.client_factory(token) as graph:
            template = await graph.get_item_by_path([root, settings.onedrive_template_name])
            if template is None:
                raise CloudStorageError(
                    message=f"Template '{settings.onedrive_template_name}' not found in {root}",
                    status_code=404,
                )
            folder = await graph.ensure_path(folder_segments)
            children = await graph.list_children(folder_id=folder["id"])
            target_name = unique_name(target_name, (c.get("name", "") for c in children))
            await graph.copy(template["id"], folder, target_name)
            item = await self._wait_for_copy(graph, folder_segments + [target_name])

        company_file = CompanyFile(
            company_id=company.id,
            file_id=item["id"],
            name=item.get("name", target_name),
            web_url=item.get("webUrl"),
            type=payload.doc_type,
            created_by=user.full_name,
        )
        db.add(company_file)
        await db.flush()
        logger.info("Created company document %s for %s", company_file.name, company.name)
        return CompanyDocumentResponse.from_file(company_file)

    async def delete_company_file(self, db: AsyncSession, file_id: str) -> MessageResponse:
        """Unlink a company file; the OneDrive item itself is left in place."""
        result = await db.execute(select(CompanyFile).where(CompanyFile.file_id == file_id))
        rows = result.scalars().all()
        if not rows:
            raise NotFoundError(resource="file", resource_id=file_id)
        for row in rows:
            await db.delete(row)
        await db.flush()
        return MessageResponse(message="File removed")

    # ── Application documents ─────────────────────────────────────────────

    async def copy_document(
        self,
        db: AsyncSession,
        token: str,
        payload: CopyDocumentRequest,
        user: User,
    ) -> GeneratedDocumentResponse:
        """Copy a company document into the application's folder as {fileNo}-{name}."""
        application = await self._application(db, user, payload.application_id)
        folder_segments = application_folder(payload.application_date, payload.file_no)
        base_name = strip_company_prefix(payload.file_name, payload.company_name)
        target_name = f"{payload.file_no}-{base_name}"

        async with self.client_factory(token) as graph:
            folder = await graph.ensure_path(folder_segments)
            children = await graph.list_children(folder_id=folder["id"])
            target_name = unique_name(target_name, (c.get("name", "") for c in children))
            await graph.copy(payload.file_id, folder, target_name)
            item = await self._wait_for_copy(graph, folder_segments + [target_name])

        document = await db.get(ApplicationDocument, item["id"])
        if document is None:
            document = ApplicationDocument(id=item["id"], application_id=application.id)
            db.add(document)
        document.name = item.get("name", target_name)
        document.web_url = item.get("webUrl")
        document.type = (item.get("file") or {}).get("mimeType")
        document.source_file_id = payload.file_id
        await db.flush()
        logger.info("Copied %s into %s", target_name, "/".join(folder_segments))
        return GeneratedDocumentResponse.model_validate(document)

    # ── PDF uploads ───────────────────────────────────────────────────────

    async def upload_pdf(
        self,
        db: AsyncSession,
        token: str,
        user: User,
        *,
        content: bytes,
        content_type: Optional[str],
        file_no: str,
        application_date: dt.date,
        application_id: int,
        title: str,
        pdf_doc_id: Optional[int] = None,
    ) -> PdfUploadResponse:
        file_service.validate_pdf(content, content_type)
        application = await self._application(db, user, application_id)

        upload = await self._pdf_row(db, application.id, title)
        if upload is not None and upload.is_locked:
            raise ConflictError(message=f"PDF '{title}' is locked and cannot be replaced")

        folder_segments = application_folder(application_date, file_no)
        file_name = f"{file_no}-{title}.pdf"
        async with self.client_factory(token) as graph:
            folder = await graph.ensure_path(folder_segments)
            item = await graph.upload(folder["id"], file_name, content, conflict_behavior="replace")

        if upload is None:
            upload = ApplicationPdfUpload(application_id=application.id, title=title)
            db.add(upload)
        upload.pdf_doc_id = pdf_doc_id
        upload.file_name = item.get("name", file_name)
        upload.file_id = item.get("id")
        upload.file_url = item.get("webUrl")
        upload.path = "/".join(folder_segments + [file_name])
        upload.uploaded_by = user.full_name
        upload.uploaded_at = dt.datetime.now(dt.timezone.utc)
        await db.flush()
        logger.info("Uploaded PDF %s for application %s", file_name, application.id)
        return PdfUploadResponse.model_validate(upload)

    async def set_pdf_lock(
        self,
        db: AsyncSession,
        user: User,
        payload: PdfActionRequest,
        locked: bool,
    ) -> PdfUploadResponse:
        application = await self._application(db, user, payload.application_id)
        upload = await self._pdf_row(db, application.id, payload.title)
        if upload is None:
            raise NotFoundError(resource="PDF upload", resource_id=payload.title)
        upload.is_locked = locked
        await db.flush()
        return PdfUploadResponse.model_validate(upload)

    async def delete_pdf(self, db: AsyncSession, user: User, payload: PdfActionRequest) -> MessageResponse:
        application = await self._application(db, user, payload.application_id)
        upload = await self._pdf_row(db, application.id, payload.title)
        if upload is None:
            raise NotFoundError(resource="PDF upload", resource_id=payload.title)
        await db.delete(upload)
        await db.flush()
        return MessageResponse(message="PDF deleted")

    # ── Internals ─────────────────────────────────────────────────────────

    async def _wait_for_copy(self, graph: GraphClient, segments: List[str]) -> dict:
        try:
            return await graph.wait_for_item(segments)
        except ItemNotReady:
            raise CloudStorageError(
                message="OneDrive is still copying the file. Refresh in a moment.",
                status_code=504,
                context={"path": "/".join(segments)},
            )

    async def _company_by_name(self, db: AsyncSession, name: str) -> Company:
        result = await db.execute(select(Company).where(Company.name == name))
        company = result.scalar_one_or_none()
        if company is None:
            raise NotFoundError(resource="company", resource_id=name)
        return company

    async def _application(self, db: AsyncSession, user: User, application_id: int) -> Application:
        # application_service imports this module for folder creation
        from titledesk.services.application_service import application_service

        return await application_service.get_visible(db, user, application_id)

    async def _pdf_row(self, db: AsyncSession, application_id: int, title: str) -> Optional[ApplicationPdfUpload]:
        result = await db.execute(
            select(ApplicationPdfUpload).where(
                ApplicationPdfUpload.application_id == application_id,
                ApplicationPdfUpload.title == title,
            )
        )
        return result.scalar_one_or_none()


onedrive_service = OneDriveService()
