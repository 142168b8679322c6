"""
TitleDesk Backend — Application Service
=========================================

What:  Business logic for applications and their queries.
How:   Stateless service; every method takes the request AsyncSession and
       the acting user. Routes stay thin and call one method each.

Company scoping:
    Administrators see every application. Anyone else sees only
    applications whose `company` is one of the names of their assigned
    companies. A user with no assigned companies sees nothing, and the
    list returns before any application query is issued.

Soft delete:
    Delete sets status to 'deleted'. Deleted rows are hidden from the list
    (unless status=deleted is requested) and from GET by id.
"""

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from titledesk.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from titledesk.models.application import Application, ApplicationQuery, ApplicationStatus
from titledesk.models.company import Company
from titledesk.models.user import User
from titledesk.schemas.application import (
    ApplicationCreate,
    ApplicationDetailResponse,
    ApplicationPage,
    ApplicationResponse,
    ApplicationUpdate,
    QueryCreate,
    QueryUpdate,
)
from titledesk.schemas.common import parse_flexible_date
from titledesk.services.audit_log_service import audit_log_service
from titledesk.services.auth_service import is_admin
from titledesk.services.file_number import file_number_generator
from titledesk.services.notification_service import notification_service
from titledesk.services.onedrive_service import onedrive_service
from titledesk.services.query_builder import FilterSet, ilike_pattern

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Application.created_at,
    "id": Application.id,
    "fileNumber": Application.file_number,
    "date": Application.date,
    "applicantName": Application.applicant_name,
    "company": Application.company,
    "branchName": Application.branch_name,
    "status": Application.status,
}

DELETED = ApplicationStatus.DELETED.value


def _parse_filter_date(value: Optional[str], field: str) -> Optional[dt.date]:
    if value is None or not value.strip():
        return None
    parsed = parse_flexible_date(value)
    if isinstance(parsed, dt.date):
        return parsed
    try:
        return dt.date.fromisoformat(parsed)
    except ValueError:
        raise ValidationError(message=f"Invalid date '{value}'", field=field)


class ApplicationService:
    # ── Scoping ───────────────────────────────────────────────────────────

    async def visible_companies(self, db: AsyncSession, user: User) -> Optional[List[str]]:
        """
        Company names `user` may see; None means unrestricted.

        assigned_companies holds company ids; applications store names.
        """
        if is_admin(user):
            return None
        ids = [int(i) for i in (user.assigned_companies or []) if str(i).isdigit()]
        if not ids:
            return []
        result = await db.execute(select(Company.name).where(Company.id.in_(ids)))
        return list(result.scalars().all())

    def _in_scope(self, application: Application, companies: Optional[List[str]]) -> bool:
        return companies is None or application.company in companies

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_applications(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        order: str = "desc",
        company: Optional[str] = None,
        branch: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> ApplicationPage:
        companies = await self.visible_companies(db, user)
        if companies is not None and not companies:
            return ApplicationPage(items=[], total=0, total_pages=0, current_page=page)

        filters = FilterSet()
        if status and status.strip():
            filters.add(Application.status == status.strip())
        else:
            filters.add(Application.status != DELETED)
        filters.add_if(
            search,
            lambda term: or_(
                Application.applicant_name.ilike(ilike_pattern(term), escape="\\"),
                Application.file_number.ilike(ilike_pattern(term), escape="\\"),
                Application.company.ilike(ilike_pattern(term), escape="\\"),
            ),
        )
        filters.add_if(company, lambda v: Application.company == v)
        filters.add_if(branch, lambda v: Application.branch_name == v)
        filters.add_if(_parse_filter_date(date_from, "dateFrom"), lambda d: Application.date >= d)
        filters.add_if(_parse_filter_date(date_to, "dateTo"), lambda d: Application.date <= d)
        if companies is not None:
            filters.add(Application.company.in_(companies))

        rows, total = await filters.paginate(
            db,
            select(Application),
            SORT_COLUMNS,
            sort_by,
            order,
            page,
            limit,
            default_sort="createdAt",
        )
        items = [ApplicationResponse.model_validate(row) for row in rows]
        return ApplicationPage.build(items, total, page, limit)

    async def _load(self, db: AsyncSession, application_id: int) -> Optional[Application]:
        stmt = (
            select(Application)
            .where(Application.id == application_id)
            .options(
                selectinload(Application.queries),
                selectinload(Application.documents),
                selectinload(Application.pdf_uploads),
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_visible(self, db: AsyncSession, user: User, application_id: int) -> Application:
        application = await self._load(db, application_id)
        if application is None or application.is_deleted:
            raise NotFoundError(resource="application", resource_id=application_id)
        companies = await self.visible_companies(db, user)
        if not self._in_scope(application, companies):
            # Out-of-scope rows look missing, not forbidden
            raise NotFoundError(resource="application", resource_id=application_id)
        return application

    async def get_application(self, db: AsyncSession, user: User, application_id: int) -> ApplicationDetailResponse:
        application = await self.get_visible(db, user, application_id)
        return ApplicationDetailResponse.model_validate(application)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_application(
        self,
        db: AsyncSession,
        user: User,
        payload: ApplicationCreate,
        graph_token: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> ApplicationDetailResponse:
        data = payload.model_dump(exclude={"file_number"}, exclude_none=True)
        if payload.file_number:
            if await file_number_generator.is_taken(db, payload.file_number):
                raise ConflictError(
                    message=f"File number {payload.file_number} already exists",
                    context={"file_number": payload.file_number},
                )
            file_number = payload.file_number
        else:
            file_number = await file_number_generator.generate(db)

        application = Application(
            file_number=file_number,
            created_by_id=user.id,
            **data,
        )
        application.status = data.get("status", ApplicationStatus.LOGIN.value)
        db.add(application)
        try:
            await db.flush()
        except IntegrityError:
            # two requests claimed the same number between the check and the insert
            raise ConflictError(
                message=f"File number {file_number} already exists",
                context={"file_number": file_number},
            )
        except SQLAlchemyError as e:
            logger.error("Could not insert application %s: %s", file_number, e, exc_info=True)
            raise DatabaseError(context={"original_error": type(e).__name__})

        if graph_token:
            try:
                await onedrive_service.ensure_application_folder(graph_token, application)
                await db.flush()
            except Exception as e:
                logger.warning("OneDrive folder for %s not created: %s", file_number, e)

        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="CREATE",
            module="Applications",
            details=f"Created application {file_number}",
            ip_address=ip_address,
        )
        logger.info("Created application %s (id=%s)", file_number, application.id)
        return ApplicationDetailResponse.model_validate(await self._load(db, application.id))

    async def update_application(
        self,
        db: AsyncSession,
        user: User,
        application_id: int,
        payload: ApplicationUpdate,
        ip_address: Optional[str] = None,
    ) -> ApplicationDetailResponse:
        application = await self.get_visible(db, user, application_id)
        changes = payload.model_dump(exclude_unset=True)
        # status is NOT NULL; an explicit null leaves it unchanged
        if changes.get("status", "") is None:
            changes.pop("status")
        for field, value in changes.items():
            setattr(application, field, value)
        await db.flush()

        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="UPDATE",
            module="Applications",
            details=f"Updated application {application.file_number}: {', '.join(sorted(changes)) or 'no changes'}",
            ip_address=ip_address,
        )
        return ApplicationDetailResponse.model_validate(await self._load(db, application.id))

    async def delete_application(
        self,
        db: AsyncSession,
        user: User,
        application_id: int,
        ip_address: Optional[str] = None,
    ) -> None:
        application = await self.get_visible(db, user, application_id)
        application.status = DELETED
        await db.flush()
        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="DELETE",
            module="Applications",
            details=f"Deleted application {application.file_number}",
            ip_address=ip_address,
        )

    async def bulk_delete(
        self,
        db: AsyncSession,
        user: User,
        ids: List[int],
        ip_address: Optional[str] = None,
    ) -> int:
        if not ids:
            raise ValidationError(message="Invalid ids format", field="ids")
        companies = await self.visible_companies(db, user)
        if companies is not None and not companies:
            return 0

        stmt = (
            update(Application)
            .where(Application.id.in_(ids), Application.status != DELETED)
            .values(status=DELETED)
            .execution_options(synchronize_session=False)
        )
        if companies is not None:
            stmt = stmt.where(Application.company.in_(companies))
        result = await db.execute(stmt)
        count = result.rowcount or 0

        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="BULK_DELETE",
            module="Applications",
            details=f"Deleted {count} applications",
            ip_address=ip_address,
        )
        return count

    # ── Queries ───────────────────────────────────────────────────────────

    async def add_query(
        self,
        db: AsyncSession,
        user: User,
        application_id: int,
        payload: QueryCreate,
        ip_address: Optional[str] = None,
    ) -> ApplicationDetailResponse:
        application = await self.get_visible(db, user, application_id)
        query = ApplicationQuery(
            date=payload.date or dt.date.today(),
            query_details=payload.query_details,
            remarks=payload.remarks,
            raised_by=user.full_name,
            is_resolved=False,
        )
        application.queries.append(query)
        application.status = ApplicationStatus.QUERY.value
        await db.flush()

        if application.created_by_id and application.created_by_id != user.id:
            await notification_service.create_notification(
                db,
                user_id=application.created_by_id,
                title="New query raised",
                message=f"{user.full_name} raised a query on {application.file_number}",
                type="warning",
                link=f"/applications/{application.id}",
            )
        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="ADD_QUERY",
            module="Applications",
            details=f"Raised query on {application.file_number}",
            ip_address=ip_address,
        )
        return ApplicationDetailResponse.model_validate(await self._load(db, application.id))

    async def update_query(
        self,
        db: AsyncSession,
        user: User,
        application_id: int,
        query_id: int,
        payload: QueryUpdate,
    ) -> ApplicationDetailResponse:
        application = await self.get_visible(db, user, application_id)
        query = next((q for q in application.queries if q.id == query_id), None)
        if query is None:
            raise NotFoundError(resource="query", resource_id=query_id)

        changes = payload.model_dump(exclude_unset=True)
        resolved = changes.pop("is_resolved", None)
        for field, value in changes.items():
            if field == "query_details" and value is None:
                continue
            setattr(query, field, value)

        if resolved is True:
            if not query.is_resolved:
                query.resolved_by = user.full_name
                query.resolved_date = dt.date.today()
            query.is_resolved = True
        elif resolved is False:
            query.is_resolved = False
            query.resolved_by = None
            query.resolved_date = None
        await db.flush()
        return ApplicationDetailResponse.model_validate(await self._load(db, application.id))


application_service = ApplicationService()
