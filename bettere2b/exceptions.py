"""Custom exceptions for the BetterE2B SDK."""

from typing import Any, Optional


class BetterE2BError(Exception):
    """Base exception for BetterE2B errors.

    Every error carries a short ``kind`` tag alongside its message so callers
    can branch on the failure without parsing text.
    """

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SandboxConnectionError(BetterE2BError):
    """Raised when connection to the sandbox server fails."""

    kind = "connection"


class APIError(BetterE2BError):
    """Raised when the server answers with a non-success status."""

    kind = "api"

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SandboxNotFoundError(APIError):
    """Raised when a sandbox is not found or has already been killed."""

    kind = "not_found"


class AuthenticationError(APIError):
    """Raised when the API key is missing or rejected."""

    kind = "auth"


class CodeExecutionError(BetterE2BError):
    """Raised when the server reports that code execution failed."""

    kind = "execution"


class FileOperationError(BetterE2BError):
    """Raised when a file operation fails."""

    kind = "file"


class PackageInstallError(BetterE2BError):
    """Raised when package installation fails."""

    kind = "install"


class StreamClosedError(BetterE2BError):
    """Raised when data is fed to a stream decoder that was already closed."""

    kind = "stream_closed"
