"""
TitleDesk Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless service classes exposed as module-level singletons; every
       method that touches the database takes the request's AsyncSession.
       Services never commit; get_db_session commits once per request.

Service Inventory:
    - AuthService:            registration, login, password reset, profile
    - ApplicationService:     applications, queries, company scoping
    - FileNumberGenerator:    unique {prefix}-{sequence} file numbers
    - CompanyService / BranchService / DocumentTypeService: masters
    - UserService / RoleService: user administration and RBAC
    - NotificationService / AuditLogService: best-effort activity records
    - AppSettingsStore:       typed, cached business settings
    - DashboardService:       landing page aggregates
    - OneDriveService + GraphClient: Microsoft Graph document flows
    - FileService:            local branch images, PDF validation
    - FilterSet (query_builder): shared filtering and pagination
"""
