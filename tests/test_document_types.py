"""
TitleDesk Backend — Document Type Master Tests
================================================
"""

import pytest

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.schemas.document_type import DocumentTypeCreate, DocumentTypeUpdate
from titledesk.services.document_type_service import (
    application_document_types,
    company_document_types,
    normalize_format,
)


@pytest.mark.parametrize("raw,expected", [("pdf", ".pdf"), (" .DOCX ", ".docx"), (".xlsx", ".xlsx")])
def test_normalize_format(raw, expected):
    assert normalize_format(raw) == expected


class TestDocumentTypes:
    @pytest.mark.asyncio
    async def test_each_master_has_its_default_format(self, sqlite_session):
        title_report = await application_document_types.create_type(
            sqlite_session, DocumentTypeCreate(title="Title Search Report")
        )
        letterpad = await company_document_types.create_type(sqlite_session, DocumentTypeCreate(title="Letterpad"))

        assert title_report.document_format == ".pdf"
        assert letterpad.document_format == ".docx"

    @pytest.mark.asyncio
    async def test_search_sort_and_paging(self, sqlite_session):
        for title, fmt in [("Sale Deed", "pdf"), ("Encumbrance Certificate", "pdf"), ("Legal Opinion", "docx")]:
            await application_document_types.create_type(
                sqlite_session, DocumentTypeCreate(title=title, document_format=fmt)
            )

        page = await application_document_types.list_types(sqlite_session, search="pdf", sort_by="title", order="asc")
        assert [i.title for i in page.items] == ["Encumbrance Certificate", "Sale Deed"]
        assert page.total == 2

        second = await application_document_types.list_types(
            sqlite_session, page=2, limit=2, sort_by="title", order="asc"
        )
        assert [i.title for i in second.items] == ["Sale Deed"]
        assert second.total_pages == 2

    @pytest.mark.asyncio
    async def test_update_skips_nulls(self, sqlite_session):
        created = await company_document_types.create_type(
            sqlite_session, DocumentTypeCreate(title="NOC", is_generate=True)
        )
        updated = await company_document_types.update_type(
            sqlite_session,
            created.id,
            DocumentTypeUpdate.model_validate({"title": None, "documentFormat": "PDF"}),
        )

        assert updated.title == "NOC"
        assert updated.document_format == ".pdf"
        assert updated.is_generate is True

    @pytest.mark.asyncio
    async def test_masters_do_not_share_rows(self, sqlite_session):
        created = await application_document_types.create_type(sqlite_session, DocumentTypeCreate(title="Sale Deed"))
        with pytest.raises(NotFoundError):
            await company_document_types.get_type(sqlite_session, created.id + 100)
        assert (await company_document_types.list_types(sqlite_session)).total == 0

    @pytest.mark.asyncio
    async def test_bulk_delete(self, sqlite_session):
        ids = [
            (await application_document_types.create_type(sqlite_session, DocumentTypeCreate(title=t))).id
            for t in ("A", "B", "C")
        ]

        assert await application_document_types.bulk_delete(sqlite_session, ids[:2] + [999]) == 2
        remaining = await application_document_types.list_types(sqlite_session)
        assert [i.title for i in remaining.items] == ["C"]

        with pytest.raises(ValidationError, match="Invalid ids format"):
            await application_document_types.bulk_delete(sqlite_session, [])
