"""Custom exceptions for edgewaf with user-friendly error messages."""

# The edge API reports an already existing object with this message text.
DUPLICATE_RECORD_MARKER = "Duplicate record"


class EdgeWafError(Exception):
    """Base exception with user-friendly message and optional hint.

    Attributes:
        message: The main error message.
        hint: Optional hint for resolving the error.
    """

    def __init__(self, message: str, hint: str = "") -> None:
        """Initialize the exception.

        Args:
            message: The main error message.
            hint: Optional hint for resolving the error.
        """
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation."""
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class NetworkError(EdgeWafError):
    """Network connectivity issue."""

    def __init__(
        self,
        service: str,
        original_error: Exception | None = None,
        message: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"Failed to reach {service}"
            if original_error:
                message += f": {original_error}"
        if not hint:
            hint = "Check your internet connection and the configured api_endpoint."
        super().__init__(message, hint)


class ApiError(EdgeWafError):
    """The edge API answered with a non-success status.

    Attributes:
        status_code: HTTP status code of the response.
        detail: Raw error detail reported by the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str = "",
        detail: str = "",
        hint: str = "",
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        if not message:
            message = f"Edge API request failed with status {status_code}"
        if detail and detail not in message:
            message = f"{message}: {detail}"
        super().__init__(message, hint)


class AuthenticationError(ApiError):
    """Authentication failed - missing or invalid API key."""

    def __init__(
        self,
        status_code: int = 401,
        message: str = "Edge API authentication failed",
        detail: str = "",
        hint: str = "Set EDGEWAF_API_KEY or api_key in the configuration file with an engineer-level token.",
    ) -> None:
        super().__init__(status_code, message, detail, hint)


class NotFoundError(ApiError):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "",
        message: str = "",
        detail: str = "",
        hint: str = "",
    ) -> None:
        if not message:
            message = f"{resource} not found" if resource else "Edge API resource not found"
        super().__init__(404, message, detail, hint)


class DuplicateResourceError(ApiError):
    """The remote side already holds a record with the same identity."""

    def __init__(
        self,
        status_code: int = 409,
        resource: str = "",
        message: str = "",
        detail: str = "",
    ) -> None:
        if not message:
            message = f"{resource} already exists" if resource else DUPLICATE_RECORD_MARKER
        super().__init__(status_code, message, detail)


class NoRecordsError(EdgeWafError):
    """A list call returned zero records."""

    def __init__(
        self,
        resource: str = "rules",
        message: str = "",
        hint: str = "",
    ) -> None:
        self.resource = resource
        if not message:
            message = f"No {resource} found"
        super().__init__(message, hint)


class ConfigurationError(EdgeWafError):
    """Invalid configuration."""

    pass


class MissingApiKeyError(ConfigurationError):
    """The API key is missing."""

    def __init__(
        self,
        message: str = "No edge API key configured",
        hint: str = "Set EDGEWAF_API_KEY, pass --api-key, or set api_key in the configuration file.",
    ) -> None:
        super().__init__(message, hint)


class NoActiveVersionError(EdgeWafError):
    """The service has no active configuration version."""

    def __init__(
        self,
        service_id: str,
        message: str = "",
        hint: str = "Verify the service ID is correct.",
    ) -> None:
        if not message:
            message = f"No active version found for service {service_id!r}"
        super().__init__(message, hint)


class ProvisioningError(EdgeWafError):
    """The provisioning sequence could not continue."""

    pass


class BackupError(EdgeWafError):
    """A backup could not be taken."""

    pass
