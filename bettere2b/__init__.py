"""BetterE2B Python SDK.

An async Python client for the BetterE2B sandbox service: create sandboxes,
run code, stream its output, manage files and install packages.

Usage:
    from bettere2b import Sandbox, StreamCallbacks

    async with await Sandbox.create(runtime="python") as sandbox:
        result = await sandbox.run_code("print('hello')")
        print(result.text)

        await sandbox.stream_code(
            "for i in range(3): print(i)",
            callbacks=StreamCallbacks(on_output=print),
        )
"""

from .client import BetterE2BClient
from .sandbox import Sandbox
from .models import (
    ApiKey,
    DynamicSubdomain,
    ExecutionLogs,
    ExecutionResult,
    FileInfo,
    HealthStatus,
    InstallResult,
    SandboxInfo,
    SandboxStatus,
    SandboxUrls,
    SubdomainConfig,
    WriteFileResult,
)
from .streaming import (
    StreamCallbacks,
    StreamDecoder,
    StreamEvent,
    StreamEventKind,
    adecode_stream,
    decode_stream,
    parse_frame,
)
from .exceptions import (
    APIError,
    AuthenticationError,
    BetterE2BError,
    CodeExecutionError,
    FileOperationError,
    PackageInstallError,
    SandboxConnectionError,
    SandboxNotFoundError,
    StreamClosedError,
)

__version__ = "0.1.0"

__all__ = [
    "BetterE2BClient",
    "Sandbox",
    "ApiKey",
    "DynamicSubdomain",
    "ExecutionLogs",
    "ExecutionResult",
    "FileInfo",
    "HealthStatus",
    "InstallResult",
    "SandboxInfo",
    "SandboxStatus",
    "SandboxUrls",
    "SubdomainConfig",
    "WriteFileResult",
    "StreamCallbacks",
    "StreamDecoder",
    "StreamEvent",
    "StreamEventKind",
    "adecode_stream",
    "decode_stream",
    "parse_frame",
    "APIError",
    "AuthenticationError",
    "BetterE2BError",
    "CodeExecutionError",
    "FileOperationError",
    "PackageInstallError",
    "SandboxConnectionError",
    "SandboxNotFoundError",
    "StreamClosedError",
]
