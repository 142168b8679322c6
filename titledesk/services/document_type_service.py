"""
TitleDesk Backend — Document Type Masters
===========================================

What:  One service class serving both masters (application documents and
       company documents). Each instance is bound to its model.
"""

import logging
from typing import List, Optional, Type

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.document_type import (
    ApplicationDocumentType,
    CompanyDocumentType,
    DocumentTypeMixin,
)
from titledesk.schemas.document_type import (
    DocumentTypeCreate,
    DocumentTypePage,
    DocumentTypeResponse,
    DocumentTypeUpdate,
)
from titledesk.services.query_builder import FilterSet, ilike_pattern

logger = logging.getLogger(__name__)


def normalize_format(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


class DocumentTypeService:
    def __init__(self, model: Type[DocumentTypeMixin], default_format: str, label: str):
        self.model = model
        self.default_format = default_format
        self.label = label
        self.sort_columns = {
            "createdAt": model.created_at,
            "title": model.title,
            "documentFormat": model.document_format,
        }

    async def list_types(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        order: str = "desc",
    ) -> DocumentTypePage:
        filters = FilterSet().add_if(
            search,
            lambda term: or_(
                self.model.title.ilike(ilike_pattern(term), escape="\\"),
                self.model.document_format.ilike(ilike_pattern(term), escape="\\"),
            ),
        )
        rows, total = await filters.paginate(
            db, select(self.model), self.sort_columns, sort_by, order, page, limit
        )
        items = [DocumentTypeResponse.model_validate(r) for r in rows]
        return DocumentTypePage.build(items, total, page, limit)

    async def _get(self, db: AsyncSession, type_id: int):
        row = await db.get(self.model, type_id)
        if row is None:
            raise NotFoundError(resource=self.label, resource_id=type_id)
        return row

    async def get_type(self, db: AsyncSession, type_id: int) -> DocumentTypeResponse:
        return DocumentTypeResponse.model_validate(await self._get(db, type_id))

    async def create_type(self, db: AsyncSession, payload: DocumentTypeCreate) -> DocumentTypeResponse:
        row = self.model(
            title=payload.title.strip(),
            document_format=normalize_format(payload.document_format or self.default_format),
            is_uploaded=payload.is_uploaded,
            is_generate=payload.is_generate,
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return DocumentTypeResponse.model_validate(row)

    async def update_type(self, db: AsyncSession, type_id: int, payload: DocumentTypeUpdate) -> DocumentTypeResponse:
        row = await self._get(db, type_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if field == "document_format":
                value = normalize_format(value)
            setattr(row, field, value)
        await db.flush()
        await db.refresh(row)
        return DocumentTypeResponse.model_validate(row)

    async def delete_type(self, db: AsyncSession, type_id: int) -> None:
        row = await self._get(db, type_id)
        await db.delete(row)
        await db.flush()

    async def bulk_delete(self, db: AsyncSession, ids: List[int]) -> int:
        if not ids:
            raise ValidationError(message="Invalid ids format", field="ids")
        result = await db.execute(delete(self.model).where(self.model.id.in_(ids)))
        count = result.rowcount or 0
        logger.info("Deleted %d %s rows", count, self.label)
        return count


application_document_types = DocumentTypeService(ApplicationDocumentType, ".pdf", "application document type")
company_document_types = DocumentTypeService(CompanyDocumentType, ".docx", "company document type")
