from .base import BaseSchema
from .user import User, LoginCredentials
from .token import AuthResponse, Credential, CurrentUserResponse
from .request import ApiRequest
from .service import Category, MediaFile, Provider, SearchFilters, Service
from .dashboard import (
    CategoryStat,
    DashboardStats,
    LibraryCategory,
    LibraryCategoryPage,
    LibraryYear,
    MonthlyStat,
)

__all__ = [
    "BaseSchema",
    "User",
    "LoginCredentials",
    "AuthResponse",
    "Credential",
    "CurrentUserResponse",
    "ApiRequest",
    "Category",
    "MediaFile",
    "Provider",
    "SearchFilters",
    "Service",
    "CategoryStat",
    "DashboardStats",
    "LibraryCategory",
    "LibraryCategoryPage",
    "LibraryYear",
    "MonthlyStat",
]
