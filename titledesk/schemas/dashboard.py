"""Dashboard statistics schemas."""

from typing import List

from titledesk.schemas.application import ApplicationResponse
from titledesk.schemas.common import CamelModel


class DashboardSummary(CamelModel):
    total_applications: int
    completed: int
    pending: int
    in_query: int
    companies: int
    branches: int
    users: int


class StatusCount(CamelModel):
    status: str
    count: int
    percentage: float


class MonthCount(CamelModel):
    month: str
    count: int


class NamedCount(CamelModel):
    name: str
    count: int


class DashboardStats(CamelModel):
    summary: DashboardSummary
    status_breakdown: List[StatusCount]
    monthly_trend: List[MonthCount]
    top_companies: List[NamedCount]
    top_branches: List[NamedCount]
    recent_applications: List[ApplicationResponse]
    open_queries: int
    total_queries: int
    completion_rate: float
