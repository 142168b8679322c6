"""
TitleDesk Backend — Branch Routes
===================================

What:  /api/branches CRUD (multipart, optional image) and
       GET /api/files/{path}, which serves stored branch images.

Create/update take form fields rather than JSON so the image can be sent
in the same request.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import require_permissions
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.company import BranchResponse
from titledesk.services.branch_service import ImageUpload, branch_service
from titledesk.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Branches"])

can_view = require_permissions(
    "view_branches", "view_applications", "add_applications", "edit_applications"
)


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    if image is None or not image.filename:
        return None
    content = await image.read()
    return ImageUpload(filename=image.filename, content=content)


@router.get("/branches", response_model=List[BranchResponse], responses=error_responses(401, 403))
async def list_branches(
    user: User = Depends(can_view),
    db: AsyncSession = Depends(get_db_session),
) -> List[BranchResponse]:
    return await branch_service.list_branches(db)


@router.get("/branches/{branch_id}", response_model=BranchResponse, responses=error_responses(401, 403, 404))
async def get_branch(
    branch_id: int,
    user: User = Depends(can_view),
    db: AsyncSession = Depends(get_db_session),
) -> BranchResponse:
    return await branch_service.get_branch(db, branch_id)


@router.post(
    "/branches",
    response_model=BranchResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403),
    summary="Create a branch (multipart form)",
)
async def create_branch(
    name: str = Form(...),
    contact_person: Optional[str] = Form(default=None, alias="contactPerson"),
    contact_number: Optional[str] = Form(default=None, alias="contactNumber"),
    address: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: User = Depends(require_permissions("add_branches")),
    db: AsyncSession = Depends(get_db_session),
) -> BranchResponse:
    return await branch_service.create_branch(
        db,
        name=name,
        contact_person=contact_person,
        contact_number=contact_number,
        address=address,
        image=await _read_image(image),
    )


@router.put(
    "/branches/{branch_id}",
    response_model=BranchResponse,
    responses=error_responses(400, 401, 403, 404),
    summary="Update a branch (multipart form)",
    description="Send removeImage=true to clear the image without uploading a new one.",
)
async def update_branch(
    branch_id: int,
    name: Optional[str] = Form(default=None),
    contact_person: Optional[str] = Form(default=None, alias="contactPerson"),
    contact_number: Optional[str] = Form(default=None, alias="contactNumber"),
    address: Optional[str] = Form(default=None),
    remove_image: bool = Form(default=False, alias="removeImage"),
    image: Optional[UploadFile] = File(default=None),
    user: User = Depends(require_permissions("edit_branches")),
    db: AsyncSession = Depends(get_db_session),
) -> BranchResponse:
    return await branch_service.update_branch(
        db,
        branch_id,
        name=name,
        contact_person=contact_person,
        contact_number=contact_number,
        address=address,
        image=await _read_image(image),
        remove_image=remove_image,
    )


@router.delete("/branches/{branch_id}", response_model=MessageResponse, responses=error_responses(401, 403, 404))
async def delete_branch(
    branch_id: int,
    user: User = Depends(require_permissions("delete_branches")),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await branch_service.delete_branch(db, branch_id)
    return MessageResponse(message="Branch deleted")


@router.get(
    "/files/{file_path:path}",
    response_class=FileResponse,
    responses=error_responses(404),
    summary="Serve a stored branch image",
)
async def serve_file(file_path: str) -> FileResponse:
    path = file_service.resolve_stored_path(file_path)
    return FileResponse(path, headers={"Cache-Control": "public, max-age=86400"})
