"""
TitleDesk Backend — File Service Unit Tests
=============================================

What:  Branch image validation/storage and PDF content checks.
How:   libmagic is patched out (`detect_mime_type`) so the tests do not
       depend on the system library; storage goes to a temp directory.

Test Strategy:
    - Allowed image extensions (.png, .jpg, .jpeg, .webp), case-insensitive
    - Size limits for images and PDFs
    - MIME sniffing decides, not the extension or the declared type
    - Stored paths are branches/YYYY/MM/DD/<uuid>.<ext>
    - Paths outside the storage root are never served
"""

import re
from unittest.mock import patch

import pytest

from titledesk.config import settings
from titledesk.exceptions import FileStorageError, NotFoundError, ValidationError
from titledesk.services.file_service import FileService

SNIFF = "titledesk.services.file_service.detect_mime_type"


class TestImageValidation:
    def setup_method(self):
        self.service = FileService()

    @pytest.mark.parametrize("filename", ["logo.png", "logo.jpg", "logo.JPEG", "logo.webp"])
    def test_allowed_extensions(self, filename):
        self.service.validate_extension(filename)

    @pytest.mark.parametrize("filename", ["logo.gif", "logo.pdf", "noextension", "malware.exe"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    def test_size_at_limit_passes(self):
        self.service.validate_size(settings.max_image_size, settings.max_image_size)

    def test_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_image_size + 1, settings.max_image_size)

    def test_content_must_really_be_an_image(self, sample_pdf_bytes):
        with patch(SNIFF, return_value="application/pdf"):
            with pytest.raises(ValidationError, match="content type"):
                self.service.validate_image("looks-fine.png", sample_pdf_bytes)

    def test_sniff_failure_is_a_storage_error(self, sample_png_bytes):
        with patch(SNIFF, side_effect=RuntimeError("libmagic missing")):
            with pytest.raises(FileStorageError):
                self.service.validate_image("logo.png", sample_png_bytes)


class TestPdfValidation:
    def setup_method(self):
        self.service = FileService()

    def test_pdf_passes(self, sample_pdf_bytes):
        with patch(SNIFF, return_value="application/pdf"):
            self.service.validate_pdf(sample_pdf_bytes, "application/pdf")

    def test_declared_type_must_be_pdf(self, sample_pdf_bytes):
        with pytest.raises(ValidationError, match="Only PDF files are allowed"):
            self.service.validate_pdf(sample_pdf_bytes, "image/png")

    def test_renamed_image_rejected(self, sample_png_bytes):
        with patch(SNIFF, return_value="image/png"):
            with pytest.raises(ValidationError, match="Only PDF files are allowed"):
                self.service.validate_pdf(sample_png_bytes, "application/pdf")


class TestStorage:
    @pytest.mark.asyncio
    async def test_store_image_uses_dated_uuid_path(self, temp_storage, sample_png_bytes):
        service = FileService(storage_root=temp_storage)
        with patch(SNIFF, return_value="image/png"):
            relative = await service.store_image("Head Office.PNG", sample_png_bytes)

        assert re.fullmatch(r"branches/\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.png", relative)
        assert service.resolve_stored_path(relative).read_bytes() == sample_png_bytes

    def test_traversal_is_not_found(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        with pytest.raises(NotFoundError):
            service.resolve_stored_path("../../etc/passwd")

    def test_missing_file_is_not_found(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        with pytest.raises(NotFoundError):
            service.resolve_stored_path("branches/2024/01/01/missing.png")

    @pytest.mark.asyncio
    async def test_remove_deletes_file(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        target = service.storage_root / "branches" / "old.png"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"x")

        await service.remove("branches/old.png")
        assert not target.exists()

    @pytest.mark.asyncio
    async def test_remove_missing_file_is_quiet(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        await service.remove("branches/never-existed.png")
        await service.remove(None)
