"""Domain exceptions raised by the backend client and services."""


class SeaWatchError(Exception):
    """Base class for SeaWatch domain errors."""


class BackendError(SeaWatchError):
    """A backend table or RPC call failed.

    Attributes:
        operation: Table or RPC name that was being called.
        status_code: HTTP status returned by the backend, if any.
        message: Descriptive error message.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.message = message
        if status_code is not None:
            super().__init__(f"Backend call '{operation}' failed ({status_code}): {message}")
        else:
            super().__init__(f"Backend call '{operation}' failed: {message}")


class BackendNotInitializedError(RuntimeError):
    """The backend client manager was used before ``init``."""

    def __init__(self) -> None:
        super().__init__("BackendClientManager is not initialized")


class UnknownFocusModeError(SeaWatchError, ValueError):
    """A focus mode name that does not map to a vessel filter."""

    def __init__(self, focus_mode: str) -> None:
        self.focus_mode = focus_mode
        super().__init__(f"Unknown focus mode: '{focus_mode}'")
