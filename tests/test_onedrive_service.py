"""
TitleDesk Backend — OneDrive Tests
====================================

What:  Folder naming helpers, the Graph client (against httpx.MockTransport)
       and the OneDriveService flows (against a fake client).

Test Strategy:
    - Financial year boundaries (March/April) and month folders
    - Name de-duplication for copies
    - Graph status mapping: 401 → 401, 404 → None/404, other → 502
    - ensure_path only creates the missing levels
    - Copy polling retries until the item appears, then gives up with 504
    - Locked PDFs are never replaced
    - Applications outside the caller's companies are treated as missing
"""

import datetime as dt
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from tenacity import stop_after_attempt, wait_none

from titledesk.exceptions import CloudStorageError, ConflictError, NotFoundError
from titledesk.models.application import Application, ApplicationPdfUpload
from titledesk.schemas.onedrive import CopyDocumentRequest, PdfActionRequest
from titledesk.services.application_service import application_service
from titledesk.services.file_service import file_service
from titledesk.services.graph_client import GraphClient, ItemNotReady, encode_path
from titledesk.services.onedrive_service import (
    OneDriveService,
    application_folder,
    financial_year,
    month_name,
    strip_company_prefix,
    unique_name,
)

BASE_URL = "https://graph.test/v1.0"


def graph_with(handler) -> GraphClient:
    return GraphClient("token-123", base_url=BASE_URL, transport=httpx.MockTransport(handler))


class FakeGraph:
    """Stands in for GraphClient inside OneDriveService."""

    def __init__(self):
        self.ensure_path = AsyncMock(return_value={"id": "folder-1", "webUrl": "https://od/folder-1"})
        self.list_children = AsyncMock(return_value=[])
        self.copy = AsyncMock()
        self.upload = AsyncMock()
        self.wait_for_item = AsyncMock()
        self.get_item_by_path = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


# ── Naming helpers ────────────────────────────────────────────────────────

class TestNaming:
    @pytest.mark.parametrize(
        "day,expected",
        [
            (dt.date(2024, 4, 1), "2024-2025"),
            (dt.date(2024, 3, 31), "2023-2024"),
            (dt.date(2025, 2, 10), "2024-2025"),
            (dt.date(2024, 12, 31), "2024-2025"),
        ],
    )
    def test_financial_year(self, day, expected):
        assert financial_year(day) == expected

    def test_application_folder(self):
        assert application_folder(dt.date(2024, 5, 15), "ULF-1042", root="Files") == [
            "Files",
            "2024-2025",
            "May",
            "ULF-1042",
        ]
        assert month_name(dt.date(2024, 1, 3)) == "January"

    def test_unique_name(self):
        assert unique_name("a.docx", []) == "a.docx"
        assert unique_name("a.docx", ["A.docx"]) == "a (1).docx"
        assert unique_name("a.docx", ["a.docx", "a (1).docx"]) == "a (2).docx"

    def test_strip_company_prefix(self):
        assert strip_company_prefix("Bank A-Letterpad.docx", "Bank A") == "Letterpad.docx"
        assert strip_company_prefix("Letterpad.docx", "Bank A") == "Letterpad.docx"
        assert strip_company_prefix("Letterpad.docx", None) == "Letterpad.docx"

    def test_encode_path_skips_empty_segments(self):
        assert encode_path(["", "Title Desk", "/2024-2025/"]) == "Title%20Desk/2024-2025"


# ── GraphClient ───────────────────────────────────────────────────────────

class TestGraphClient:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"id": "1", "name": "x"})

        async with graph_with(handler) as graph:
            await graph.get_item("1")
        assert seen["auth"] == "Bearer token-123"

    @pytest.mark.asyncio
    async def test_expired_token_maps_to_401(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "InvalidAuthenticationToken"}})

        async with graph_with(handler) as graph:
            with pytest.raises(CloudStorageError) as exc_info:
                await graph.get_item("1")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_server_error_maps_to_502(self):
        def handler(request):
            return httpx.Response(503, text="busy")

        async with graph_with(handler) as graph:
            with pytest.raises(CloudStorageError) as exc_info:
                await graph.search("deed")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure_maps_to_502(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with graph_with(handler) as graph:
            with pytest.raises(CloudStorageError) as exc_info:
                await graph.get_item("1")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_path_is_none(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"message": "itemNotFound"}})

        async with graph_with(handler) as graph:
            assert await graph.get_item_by_path(["TitleDesk", "missing"]) is None

    @pytest.mark.asyncio
    async def test_list_children_follows_next_link(self):
        def handler(request):
            if "skiptoken" in str(request.url):
                return httpx.Response(200, json={"value": [{"id": "2", "name": "b"}]})
            return httpx.Response(
                200,
                json={
                    "value": [{"id": "1", "name": "a"}],
                    "@odata.nextLink": f"{BASE_URL}/me/drive/items/f/children?$skiptoken=abc",
                },
            )

        async with graph_with(handler) as graph:
            items = await graph.list_children(folder_id="f")
        assert [i["id"] for i in items] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_ensure_path_creates_missing_levels(self):
        created = []
        existing = {
            "/v1.0/me/drive/root": {"id": "root"},
            "/v1.0/me/drive/root:/TitleDesk": {"id": "td"},
        }

        def handler(request):
            path = request.url.path
            if request.method == "POST":
                body = request.read().decode()
                created.append((path, body))
                return httpx.Response(201, json={"id": f"new-{len(created)}"})
            if path in existing:
                return httpx.Response(200, json=existing[path])
            return httpx.Response(404, json={"error": {"message": "itemNotFound"}})

        async with graph_with(handler) as graph:
            folder = await graph.ensure_path(["TitleDesk", "2024-2025", "May"])

        assert folder == {"id": "new-2"}
        assert created[0][0] == "/v1.0/me/drive/items/td/children"
        assert '"2024-2025"' in created[0][1]
        assert created[1][0] == "/v1.0/me/drive/items/new-1/children"

    @pytest.mark.asyncio
    async def test_wait_for_item_retries_until_present(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(404, json={"error": {"message": "itemNotFound"}})
            return httpx.Response(200, json={"id": "copied", "name": "ULF-1-Deed.docx"})

        fast_wait = GraphClient.wait_for_item.retry_with(wait=wait_none(), stop=stop_after_attempt(5))
        async with graph_with(handler) as graph:
            item = await fast_wait(graph, ["TitleDesk", "ULF-1-Deed.docx"])

        assert item["id"] == "copied"
        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_wait_for_item_gives_up(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"message": "itemNotFound"}})

        fast_wait = GraphClient.wait_for_item.retry_with(wait=wait_none(), stop=stop_after_attempt(2))
        async with graph_with(handler) as graph:
            with pytest.raises(ItemNotReady):
                await fast_wait(graph, ["TitleDesk", "never.docx"])


# ── OneDriveService ───────────────────────────────────────────────────────

class TestOneDriveService:
    def setup_method(self):
        self.graph = FakeGraph()
        self.service = OneDriveService(client_factory=lambda token: self.graph)
        self._load_patch = patch.object(application_service, "_load", AsyncMock(return_value=None))
        self.load = self._load_patch.start()

    def teardown_method(self):
        self._load_patch.stop()

    @pytest.mark.asyncio
    async def test_copy_timeout_is_504(self, mock_db_session, make_user):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login")
        self.graph.wait_for_item.side_effect = ItemNotReady("TitleDesk/ULF-1-Deed.docx")
        payload = CopyDocumentRequest(
            file_id="src-1",
            file_name="Bank A-Deed.docx",
            file_no="ULF-1",
            application_date="15-05-2024",
            application_id=1,
            company_name="Bank A",
        )

        with pytest.raises(CloudStorageError) as exc_info:
            await self.service.copy_document(mock_db_session, "t", payload, make_user(role="Admin"))

        assert exc_info.value.status_code == 504
        assert self.graph.copy.await_args.args[2] == "ULF-1-Deed.docx"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_copy_document_avoids_name_clash(self, mock_db_session, make_user):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login")
        mock_db_session.get.return_value = None
        self.graph.list_children.return_value = [{"id": "x", "name": "ULF-1-Deed.docx"}]
        self.graph.wait_for_item.return_value = {"id": "copy-1", "name": "ULF-1-Deed (1).docx", "webUrl": "u"}
        payload = CopyDocumentRequest(
            file_id="src-1",
            file_name="Deed.docx",
            file_no="ULF-1",
            application_date=dt.date(2024, 5, 15),
            application_id=1,
        )

        response = await self.service.copy_document(mock_db_session, "t", payload, make_user(role="Admin"))

        assert self.graph.copy.await_args.args[2] == "ULF-1-Deed (1).docx"
        assert response.id == "copy-1"
        assert response.source_file_id == "src-1"

    @pytest.mark.asyncio
    async def test_locked_pdf_is_not_replaced(self, mock_db_session, make_user, make_result, sample_pdf_bytes):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login")
        locked = ApplicationPdfUpload(id=4, application_id=1, title="Report", file_name="x.pdf", is_locked=True)
        mock_db_session.execute.return_value = make_result(one=locked)

        with patch.object(file_service, "validate_pdf"):
            with pytest.raises(ConflictError, match="locked"):
                await self.service.upload_pdf(
                    mock_db_session,
                    "t",
                    make_user(role="Admin"),
                    content=sample_pdf_bytes,
                    content_type="application/pdf",
                    file_no="ULF-1",
                    application_date=dt.date(2024, 5, 15),
                    application_id=1,
                    title="Report",
                )
        self.graph.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_pdf_creates_row(self, mock_db_session, make_user, make_result, sample_pdf_bytes):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login")
        mock_db_session.execute.return_value = make_result(one=None)
        self.graph.upload.return_value = {"id": "pdf-1", "name": "ULF-1-Report.pdf", "webUrl": "https://od/pdf-1"}

        async def assign_id():
            mock_db_session.add.call_args.args[0].id = 11

        mock_db_session.flush.side_effect = assign_id

        with patch.object(file_service, "validate_pdf"):
            response = await self.service.upload_pdf(
                mock_db_session,
                "t",
                make_user(role="Admin", first_name="Asha", last_name="Rao"),
                content=sample_pdf_bytes,
                content_type="application/pdf",
                file_no="ULF-1",
                application_date=dt.date(2024, 5, 15),
                application_id=1,
                title="Report",
                pdf_doc_id=3,
            )

        assert response.id == 11
        assert response.file_id == "pdf-1"
        assert response.path == "TitleDesk/2024-2025/May/ULF-1/ULF-1-Report.pdf"
        assert response.uploaded_by == "Asha Rao"
        assert response.is_locked is False
        assert self.graph.ensure_path.await_args.args[0] == ["TitleDesk", "2024-2025", "May", "ULF-1"]

    @pytest.mark.asyncio
    async def test_upload_pdf_for_deleted_application(self, mock_db_session, make_user, sample_pdf_bytes):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="deleted")
        with patch.object(file_service, "validate_pdf"):
            with pytest.raises(NotFoundError):
                await self.service.upload_pdf(
                    mock_db_session,
                    "t",
                    make_user(role="Admin"),
                    content=sample_pdf_bytes,
                    content_type="application/pdf",
                    file_no="ULF-1",
                    application_date=dt.date(2024, 5, 15),
                    application_id=1,
                    title="Report",
                )

    @pytest.mark.asyncio
    async def test_upload_pdf_outside_assigned_companies(
        self, mock_db_session, make_user, make_result, sample_pdf_bytes
    ):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login", company="Bank Z")
        mock_db_session.execute.return_value = make_result(scalars=["Bank A"])

        with patch.object(file_service, "validate_pdf"):
            with pytest.raises(NotFoundError):
                await self.service.upload_pdf(
                    mock_db_session,
                    "t",
                    make_user(assigned_companies=[1]),
                    content=sample_pdf_bytes,
                    content_type="application/pdf",
                    file_no="ULF-1",
                    application_date=dt.date(2024, 5, 15),
                    application_id=1,
                    title="Report",
                )
        self.graph.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_pdf_outside_assigned_companies(self, mock_db_session, make_user, make_result):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login", company="Bank Z")
        mock_db_session.execute.return_value = make_result(scalars=["Bank A"])
        payload = PdfActionRequest(application_id=1, title="Report")

        with pytest.raises(NotFoundError):
            await self.service.set_pdf_lock(mock_db_session, make_user(assigned_companies=[1]), payload, locked=True)
        with pytest.raises(NotFoundError):
            await self.service.delete_pdf(mock_db_session, make_user(assigned_companies=[1]), payload)
        mock_db_session.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_pdf_in_assigned_company(self, mock_db_session, make_user, make_result):
        self.load.return_value = Application(id=1, file_number="ULF-1", status="Login", company="Bank A")
        upload = ApplicationPdfUpload(id=4, application_id=1, title="Report", file_name="x.pdf", is_locked=False)
        mock_db_session.execute.side_effect = [make_result(scalars=["Bank A"]), make_result(one=upload)]
        payload = PdfActionRequest(application_id=1, title="Report")

        response = await self.service.set_pdf_lock(
            mock_db_session, make_user(assigned_companies=[1]), payload, locked=True
        )

        assert upload.is_locked is True
        assert response.is_locked is True

    @pytest.mark.asyncio
    async def test_unlink_unknown_company_file(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_company_file(mock_db_session, "missing")
