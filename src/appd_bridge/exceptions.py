"""
Exception classes for the violation bridge.

Errors are contained at the smallest unit that can retry on its own:
- AuthConfigurationError: No usable controller credentials
- UpstreamError: Controller call failed (HTTP status, timeout, transport)
- UpstreamNotFound: Controller returned 404, treated as an empty result
- TicketGatewayError: Jira call failed, never escapes the gateway
- StatePersistenceError: State file could not be read or written, never
  escapes the store

Per project patterns:
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""


class BridgeError(Exception):
    """Base class for all bridge errors."""


class AuthConfigurationError(BridgeError):
    """
    Raised when neither OAuth credentials nor an API key are configured.

    Fatal to the tick that needs a token, not to the process.
    """

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "AppDynamics authentication not configured. Set APPD_CLIENT_NAME "
            "and APPD_CLIENT_SECRET, or APPD_API_KEY."
        )


class UpstreamError(BridgeError):
    """
    Raised when a controller request fails.

    Attributes:
        status_code: HTTP status if a response was received, else None
        body: Response body text if available
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{message} (status {status_code}: {body or ''})"
        super().__init__(message)


class UpstreamNotFound(UpstreamError):
    """Raised on 404 from the controller. Callers treat it as no data."""


class TicketGatewayError(BridgeError):
    """
    Raised inside the ticket gateway when a Jira call fails.

    Attributes:
        status_code: HTTP status if a response was received, else None
        body: Response body text if available
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{message} (status {status_code}: {body or ''})"
        super().__init__(message)


class StatePersistenceError(BridgeError):
    """
    Raised inside the state store when the state file cannot be used.

    Attributes:
        path: The state file path
    """

    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        super().__init__(f"State file {path}: {reason}")
