"""Exception hierarchy for the POI pipeline."""


class PoiscopeError(Exception):
    """Base class for all pipeline errors."""


class BuildError(PoiscopeError, ValueError):
    """Query parameters rejected before any network call."""


class FetchError(PoiscopeError):
    """Data source call failure."""

    user_message = "Error fetching data."


class FetchTimeout(FetchError):
    """The request did not complete within the timeout."""

    user_message = "Request timed out. Try again."

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"request timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms


class ServerError(FetchError):
    """The data source answered with a non-2xx status."""

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP error {status}")
        self.status = status

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Error fetching data: HTTP error {self.status}"


class NetworkError(FetchError):
    """Transport failure or unreadable response body."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Error fetching data: {self.message}"
