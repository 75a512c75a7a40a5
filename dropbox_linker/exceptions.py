"""Exception hierarchy for Dropbox Linker."""

from typing import Optional


class LinkerError(Exception):
    """Base class for all Dropbox Linker errors."""


class ConfigError(LinkerError):
    """Configuration file is unreadable or contains invalid values."""


class AuthenticationError(LinkerError):
    """The interactive authorization flow failed."""


class StateMismatchError(AuthenticationError):
    def __init__(self):
        super().__init__("OAuth state mismatch. Authentication may have been intercepted.")


class AuthorizationDeniedError(AuthenticationError):
    """Dropbox redirected back without an authorization code."""

    def __init__(self, reason: str, description: Optional[str] = None):
        self.reason = reason
        self.description = description
        message = f"Dropbox authentication failed: {reason}"
        if description:
            message = f"{message} ({description})"
        super().__init__(message)


class TokenRequestError(AuthenticationError):
    """The token endpoint rejected a code exchange or refresh."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class CallbackTimeoutError(AuthenticationError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No authorization callback received within {timeout:g} seconds")


class CallbackServerError(AuthenticationError):
    """The loopback listener could not be started."""


class DropboxApiError(LinkerError):
    """
    A classified error returned by the Dropbox HTTP API.

    Attributes:
        tag: Error tag, e.g. "shared_link_already_exists", or "unknown"
        body: Raw response body
        status_code: HTTP status of the failed call
    """

    def __init__(self, tag: str, body: str = "", status_code: Optional[int] = None):
        self.tag = tag
        self.body = body
        self.status_code = status_code
        super().__init__(f"Dropbox API error ({status_code}): {tag}")


class SharedLinkNotFoundError(LinkerError):
    """Dropbox reported an existing link, but listing returned none."""
