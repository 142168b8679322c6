"""
TitleDesk Backend — Company Service
=====================================

What:  CRUD for client companies. Deleting a company removes its linked
       OneDrive file records; the OneDrive items themselves are untouched.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import ConflictError, NotFoundError
from titledesk.models.company import Company
from titledesk.schemas.company import CompanyCreate, CompanyResponse, CompanyUpdate

logger = logging.getLogger(__name__)


class CompanyService:
    async def list_companies(self, db: AsyncSession) -> List[CompanyResponse]:
        result = await db.execute(select(Company).order_by(Company.name))
        return [CompanyResponse.from_company(c) for c in result.scalars().all()]

    async def _get(self, db: AsyncSession, company_id: int) -> Company:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFoundError(resource="company", resource_id=company_id)
        return company

    async def get_company(self, db: AsyncSession, company_id: int) -> CompanyResponse:
        return CompanyResponse.from_company(await self._get(db, company_id))

    async def _ensure_unique_name(self, db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Company.id).where(func.lower(Company.name) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Company.id != exclude_id)
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ConflictError(message=f"Company '{name}' already exists")

    async def create_company(self, db: AsyncSession, payload: CompanyCreate) -> CompanyResponse:
        await self._ensure_unique_name(db, payload.name)
        company = Company(
            name=payload.name.strip(),
            address=payload.address,
            emails=[str(e) for e in payload.emails],
        )
        db.add(company)
        await db.flush()
        await db.refresh(company, attribute_names=["files"])
        logger.info("Created company %s (id=%s)", company.name, company.id)
        return CompanyResponse.from_company(company)

    async def update_company(self, db: AsyncSession, company_id: int, payload: CompanyUpdate) -> CompanyResponse:
        company = await self._get(db, company_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name"):
            await self._ensure_unique_name(db, changes["name"], exclude_id=company.id)
            company.name = changes["name"].strip()
        if "address" in changes:
            company.address = changes["address"]
        if changes.get("emails") is not None:
            company.emails = [str(e) for e in changes["emails"]]
        await db.flush()
        return CompanyResponse.from_company(company)

    async def delete_company(self, db: AsyncSession, company_id: int) -> None:
        company = await self._get(db, company_id)
        await db.delete(company)
        await db.flush()
        logger.info("Deleted company %s (id=%s)", company.name, company_id)


company_service = CompanyService()
