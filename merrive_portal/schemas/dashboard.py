from pydantic import Field

from merrive_portal.schemas.base import BaseSchema
from merrive_portal.schemas.service import Service


class CategoryStat(BaseSchema):
    name: str
    count: int = 0
    revenue: float = 0


class MonthlyStat(BaseSchema):
    month: str
    projects: int = 0
    revenue: float = 0


class DashboardStats(BaseSchema):
    """Global statistics of the dashboard"""

    total_projects: int = 0
    total_revenue: float = 0
    total_artisans: int = 0
    total_announcements: int | None = None
    projects_this_month: int = 0
    revenue_this_month: float = 0
    top_categories: list[CategoryStat] = Field(default_factory=list)
    monthly_stats: list[MonthlyStat] = Field(default_factory=list)


class LibraryYear(BaseSchema):
    year: int
    count: int = 0


class LibraryCategory(BaseSchema):
    name: str
    count: int = 0
    revenue: float | None = None
    logo: str | None = None


class LibraryCategoryPage(BaseSchema):
    """One page of the services of a category for a given year"""

    projects: list[Service] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0
