"""
TitleDesk Backend — Branch Service
====================================

What:  CRUD for branches, including the optional branch image.
How:   Images go through FileService (extension, size and content checks)
       and are stored locally; the branch row keeps the relative path.
       Replaced or removed images are deleted from disk best-effort.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.branch import Branch
from titledesk.schemas.company import BranchResponse
from titledesk.services.file_service import file_service

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    filename: str
    content: bytes


class BranchService:
    async def list_branches(self, db: AsyncSession) -> List[BranchResponse]:
        result = await db.execute(select(Branch).order_by(Branch.name))
        return [BranchResponse.from_branch(b) for b in result.scalars().all()]

    async def _get(self, db: AsyncSession, branch_id: int) -> Branch:
        branch = await db.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(resource="branch", resource_id=branch_id)
        return branch

    async def get_branch(self, db: AsyncSession, branch_id: int) -> BranchResponse:
        return BranchResponse.from_branch(await self._get(db, branch_id))

    async def create_branch(
        self,
        db: AsyncSession,
        name: str,
        contact_person: Optional[str] = None,
        contact_number: Optional[str] = None,
        address: Optional[str] = None,
        image: Optional[ImageUpload] = None,
    ) -> BranchResponse:
        if not name or not name.strip():
            raise ValidationError(message="Branch name is required", field="name")
        stored = await file_service.store_image(image.filename, image.content) if image else None
        branch = Branch(
            name=name.strip(),
            contact_person=contact_person,
            contact_number=contact_number,
            address=address,
            image=stored,
        )
        db.add(branch)
        try:
            await db.flush()
        except Exception:
            await file_service.remove(stored)
            raise
        logger.info("Created branch %s (id=%s)", branch.name, branch.id)
        return BranchResponse.from_branch(branch)

    async def update_branch(
        self,
        db: AsyncSession,
        branch_id: int,
        name: Optional[str] = None,
        contact_person: Optional[str] = None,
        contact_number: Optional[str] = None,
        address: Optional[str] = None,
        image: Optional[ImageUpload] = None,
        remove_image: bool = False,
    ) -> BranchResponse:
        branch = await self._get(db, branch_id)
        if name is not None:
            if not name.strip():
                raise ValidationError(message="Branch name is required", field="name")
            branch.name = name.strip()
        if contact_person is not None:
            branch.contact_person = contact_person
        if contact_number is not None:
            branch.contact_number = contact_number
        if address is not None:
            branch.address = address

        previous = branch.image
        if image is not None:
            branch.image = await file_service.store_image(image.filename, image.content)
        elif remove_image:
            branch.image = None
        await db.flush()

        if previous and previous != branch.image:
            await file_service.remove(previous)
        return BranchResponse.from_branch(branch)

    async def delete_branch(self, db: AsyncSession, branch_id: int) -> None:
        branch = await self._get(db, branch_id)
        image = branch.image
        await db.delete(branch)
        await db.flush()
        await file_service.remove(image)
        logger.info("Deleted branch id=%s", branch_id)


branch_service = BranchService()
