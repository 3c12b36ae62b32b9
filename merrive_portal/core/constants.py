class StorageKey:
    """
    Keys of the local credential store.

    All three are written together on login or refresh
    and removed together on logout or unrecoverable refresh failure.
    """

    ACCESS_TOKEN = "auth_token"
    REFRESH_TOKEN = "refresh_token"
    USER = "user"

    @classmethod
    def all_keys(cls) -> tuple[str, ...]:
        return cls.ACCESS_TOKEN, cls.REFRESH_TOKEN, cls.USER


class ApiPath:
    """
    Centralized registry of the remote API paths.

    Example:
        ```python
        from merrive_portal.core.constants import ApiPath

        request = ApiRequest(method="GET", path=ApiPath.DASHBOARD_STATS)
        ```
    """

    # Authentication
    LOGIN = "/auth/institutional/login"
    REFRESH = "/auth/refresh"
    ME = "/auth/me"
    LOGOUT = "/auth/logout"

    # Services (projects in the API)
    PROJECTS = "/projects"
    PROJECTS_SEARCH = "/projects/search/global"
    PROJECTS_BY_ARTISAN = "/projects/artisan"
    PROJECTS_BY_YEAR = "/projects/year"
    PROJECTS_BY_CATEGORY = "/projects/category"

    # Providers (artisans in the API)
    ARTISANS = "/artisans"

    CATEGORIES = "/categories"

    DASHBOARD_STATS = "/dashboard/stats/global"

    # Library (archive by year and category)
    LIBRARY_YEARS = "/library/years"
    LIBRARY_STATS = "/library/stats"


# Category used when a service carries no category
UNCATEGORIZED = "Non catégorisé"

# Statuses that indicate rejected credentials on login
LOGIN_REJECTED_STATUSES = frozenset({400, 401, 403})
