from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError

from merrive_portal.core.config import ListFailurePolicy, settings
from merrive_portal.core.constants import UNCATEGORIZED, ApiPath
from merrive_portal.core.exceptions import ApiResponseError, GatewayError, SessionExpiredError
from merrive_portal.core.utils import build_path, clean_params, count_by, paginate
from merrive_portal.schemas import (
    ApiRequest,
    Category,
    DashboardStats,
    LibraryCategory,
    LibraryCategoryPage,
    LibraryYear,
    MediaFile,
    Provider,
    SearchFilters,
    Service,
)
from merrive_portal.services.gateway import CredentialGateway

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class PortalApi:
    """
    Read access to the institutional dashboard resources.

    Every call goes through the credential gateway and is therefore subject to
    its single refresh-and-replay on 401. Library endpoints that are not
    available server side are rebuilt from the project endpoints.

    List reads (providers, categories, library fallbacks) follow the list
    failure policy: with `empty` a failure is logged and an empty result is
    returned, with `raise` the error propagates. Session-fatal errors always
    propagate.
    """

    def __init__(
        self,
        gateway: CredentialGateway,
        list_failure_policy: ListFailurePolicy | None = None,
    ):
        self.gateway = gateway
        self.list_failure_policy = list_failure_policy or settings.list_failure_policy

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.gateway.fetch_json(ApiRequest(path=path, params=clean_params(params)))

    @staticmethod
    def _parse(adapter_type: type[T] | Any, data: Any, what: str) -> T:
        try:
            return TypeAdapter(adapter_type).validate_python(data)
        except ValidationError as err:
            raise ApiResponseError(f"Unexpected {what} payload", exception=err) from err

    def _parse_list(self, model: type[M], data: Any, what: str) -> list[M]:
        # Some endpoints answer with a wrapper object instead of a bare list
        if isinstance(data, dict):
            data = data.get("data", data.get("items", []))

        if not isinstance(data, list):
            logger.warning(f"Expected a list of {what}, got {type(data).__name__}")
            data = []

        return self._parse(list[model], data, what)

    async def _guard_list(
        self,
        what: str,
        read: Callable[[], Awaitable[T]],
        empty: Callable[[], T] = list,  # type: ignore[assignment]
    ) -> T:
        """
        Run a list read under the list failure policy

        Args:
            what: Description of the read, for logs
            read: The read to run
            empty: Factory of the empty result returned under the `empty` policy
        """
        try:
            return await read()
        except SessionExpiredError:
            raise
        except GatewayError as err:
            if self.list_failure_policy == ListFailurePolicy.RAISE:
                raise

            logger.warning(f"Failed to load {what}, returning an empty result: {err.message}")
            return empty()

    # ============================================
    # SERVICES (projects in the API)
    # ============================================

    async def get_services(self, filters: SearchFilters | None = None) -> list[Service]:
        params = filters.to_api() if filters else {}
        data = await self._get(ApiPath.PROJECTS_SEARCH, params)
        return self._parse_list(Service, data, "services")

    async def search_services(
        self, query: str, filters: SearchFilters | None = None
    ) -> list[Service]:
        params = {"search": query, **(filters.to_api() if filters else {})}
        data = await self._get(ApiPath.PROJECTS_SEARCH, params)
        return self._parse_list(Service, data, "services")

    async def get_service_by_id(self, service_id: str) -> Service:
        data = await self._get(build_path(ApiPath.PROJECTS, service_id))
        return self._parse(Service, data, "service")

    async def get_services_by_provider(self, provider_id: str) -> list[Service]:
        data = await self._get(build_path(ApiPath.PROJECTS_BY_ARTISAN, provider_id))
        return self._parse_list(Service, data, "services")

    async def get_services_by_year(self, year: int) -> list[Service]:
        data = await self._get(build_path(ApiPath.PROJECTS_BY_YEAR, year))
        return self._parse_list(Service, data, "services")

    async def get_services_by_category(self, category: str) -> list[Service]:
        data = await self._get(build_path(ApiPath.PROJECTS_BY_CATEGORY, category))
        return self._parse_list(Service, data, "services")

    async def get_service_media(self, service_id: str) -> list[MediaFile]:
        """
        Get the files attached to a service, an empty list when it has none
        """
        service = await self.get_service_by_id(service_id)
        return service.files or service.media

    # ============================================
    # PROVIDERS (artisans in the API) AND CATEGORIES
    # ============================================

    async def get_providers(self) -> list[Provider]:
        async def read() -> list[Provider]:
            data = await self._get(ApiPath.ARTISANS)
            return self._parse_list(Provider, data, "providers")

        return await self._guard_list("providers", read)

    async def get_provider_by_id(self, provider_id: str) -> Provider:
        data = await self._get(build_path(ApiPath.ARTISANS, provider_id))
        return self._parse(Provider, data, "provider")

    async def get_categories(self) -> list[Category]:
        async def read() -> list[Category]:
            data = await self._get(ApiPath.CATEGORIES)
            if isinstance(data, list):
                data = [{"name": item} if isinstance(item, str) else item for item in data]
            return self._parse_list(Category, data, "categories")

        return await self._guard_list("categories", read)

    # ============================================
    # DASHBOARD
    # ============================================

    async def get_dashboard_stats(self) -> DashboardStats:
        data = await self._get(ApiPath.DASHBOARD_STATS)
        return self._parse(DashboardStats, data, "dashboard stats")

    # ============================================
    # LIBRARY
    # ============================================

    async def get_library_years(self) -> list[LibraryYear]:
        """
        Get the number of services per year, newest year first
        """
        try:
            data = await self._get(ApiPath.LIBRARY_YEARS)
            return self._parse_list(LibraryYear, data, "library years")
        except ApiResponseError as err:
            logger.warning(f"Library years unavailable ({err.status_code}), counting services")

        async def fallback() -> list[LibraryYear]:
            services = await self.get_services()
            # Services without a creation date belong to no year
            counts = count_by(service.year for service in services if service.year is not None)
            years = [LibraryYear(year=year, count=count) for year, count in counts.items()]
            return sorted(years, key=lambda item: item.year, reverse=True)

        return await self._guard_list("library years", fallback)

    async def get_library_year_categories(self, year: int) -> list[LibraryCategory]:
        """
        Get the number of services per category for a year
        """
        try:
            data = await self._get(build_path(ApiPath.LIBRARY_YEARS, year, "categories"))
            return self._parse_list(LibraryCategory, data, "library categories")
        except ApiResponseError as err:
            logger.warning(
                f"Library categories of {year} unavailable ({err.status_code}), counting services"
            )

        async def fallback() -> list[LibraryCategory]:
            services = await self.get_services_by_year(year)
            counts = count_by(service.category or UNCATEGORIZED for service in services)
            return [LibraryCategory(name=name, count=count) for name, count in counts.items()]

        return await self._guard_list(f"library categories of {year}", fallback)

    async def get_library_category_projects(
        self,
        year: int,
        category: str,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> LibraryCategoryPage:
        """
        Get one page of the services of a category for a year

        Args:
            year: Year of creation of the services
            category: Category name
            page: 1-based page number
            limit: Page size
            search: Case-insensitive filter on name and description

        Returns:
            LibraryCategoryPage: The page, empty when nothing could be loaded
                under the `empty` list failure policy
        """
        path = build_path(ApiPath.LIBRARY_YEARS, year, "categories", category, "projects")
        try:
            data = await self._get(path, {"page": page, "limit": limit, "search": search or None})
            return self._parse(LibraryCategoryPage, data, "library projects")
        except ApiResponseError as err:
            logger.warning(
                f"Library projects of {category}/{year} unavailable ({err.status_code}), "
                f"filtering services"
            )

        async def fallback() -> LibraryCategoryPage:
            services = await self.get_services_by_category(category)
            matching = [service for service in services if service.year == year]

            if search:
                needle = search.lower()
                matching = [
                    service
                    for service in matching
                    if needle in service.name.lower() or needle in service.description.lower()
                ]

            projects, total_pages = paginate(matching, page, limit)
            return LibraryCategoryPage(
                projects=projects,
                total=len(matching),
                page=page,
                limit=limit,
                total_pages=total_pages,
            )

        return await self._guard_list(
            f"library projects of {category}/{year}",
            fallback,
            empty=lambda: LibraryCategoryPage(page=page, limit=limit),
        )

    async def get_library_stats(self) -> DashboardStats:
        """
        Get the library statistics, the dashboard statistics when unavailable
        """
        try:
            data = await self._get(ApiPath.LIBRARY_STATS)
            return self._parse(DashboardStats, data, "library stats")
        except ApiResponseError as err:
            logger.warning(f"Library stats unavailable ({err.status_code}), using dashboard stats")

        return await self.get_dashboard_stats()
