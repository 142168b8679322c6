"""
TitleDesk Backend — Branch Service Tests
==========================================

What:  Branch CRUD and the lifecycle of the stored branch image.
How:   file_service is patched so no image is validated or written; the
       tests only check which stored paths are kept and which are removed.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.branch import Branch
from titledesk.services.branch_service import BranchService, ImageUpload

PNG = ImageUpload(filename="front.png", content=b"png-bytes")


class TestBranchImages:
    def setup_method(self):
        self.service = BranchService()
        self.patcher = patch("titledesk.services.branch_service.file_service")
        self.files = self.patcher.start()
        self.files.store_image = AsyncMock(return_value="branches/new.png")
        self.files.remove = AsyncMock()

    def teardown_method(self):
        self.patcher.stop()

    @pytest.mark.asyncio
    async def test_create_stores_image(self, mock_db_session):
        def assign_id():
            mock_db_session.add.call_args.args[0].id = 9

        mock_db_session.flush.side_effect = assign_id

        response = await self.service.create_branch(mock_db_session, "  Pune  ", image=PNG)

        self.files.store_image.assert_awaited_once_with("front.png", b"png-bytes")
        assert response.name == "Pune"
        assert response.image_url == "/api/files/branches/new.png"

    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_image(self, mock_db_session):
        mock_db_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("boom"))

        with pytest.raises(IntegrityError):
            await self.service.create_branch(mock_db_session, "Pune", image=PNG)

        self.files.remove.assert_awaited_once_with("branches/new.png")

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, mock_db_session):
        with pytest.raises(ValidationError, match="Branch name is required"):
            await self.service.create_branch(mock_db_session, "   ", image=PNG)
        self.files.store_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replacing_image_removes_previous(self, mock_db_session):
        branch = Branch(id=3, name="Pune", image="branches/old.png")
        mock_db_session.get.return_value = branch

        response = await self.service.update_branch(mock_db_session, 3, image=PNG)

        assert response.image == "branches/new.png"
        self.files.remove.assert_awaited_once_with("branches/old.png")

    @pytest.mark.asyncio
    async def test_update_without_image_keeps_it(self, mock_db_session):
        branch = Branch(id=3, name="Pune", image="branches/old.png")
        mock_db_session.get.return_value = branch

        response = await self.service.update_branch(mock_db_session, 3, address="FC Road")

        assert response.image == "branches/old.png"
        assert response.address == "FC Road"
        self.files.remove.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_image_flag(self, mock_db_session):
        mock_db_session.get.return_value = Branch(id=3, name="Pune", image="branches/old.png")

        response = await self.service.update_branch(mock_db_session, 3, remove_image=True)

        assert response.image is None
        self.files.remove.assert_awaited_once_with("branches/old.png")

    @pytest.mark.asyncio
    async def test_delete_removes_image(self, mock_db_session):
        branch = Branch(id=3, name="Pune", image="branches/old.png")
        mock_db_session.get.return_value = branch

        await self.service.delete_branch(mock_db_session, 3)

        mock_db_session.delete.assert_awaited_once_with(branch)
        self.files.remove.assert_awaited_once_with("branches/old.png")

    @pytest.mark.asyncio
    async def test_unknown_branch(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_branch(mock_db_session, 404)
        self.files.remove.assert_not_awaited()
