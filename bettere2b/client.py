"""BetterE2B client for managing sandboxes and executing code."""

import logging
from typing import Any, BinaryIO, Optional, Union

import httpx

from .config import get_settings
from .connection import ServiceConnection, check_success, parse_model, parse_models
from .exceptions import (
    BetterE2BError,
    CodeExecutionError,
    FileOperationError,
)
from .models import (
    ApiKey,
    ExecutionResult,
    FileInfo,
    HealthStatus,
    SandboxInfo,
    WriteFileResult,
)
from .streaming import StreamCallbacks, adecode_stream

logger = logging.getLogger(__name__)

DEFAULT_KEY_PERMISSIONS = ["sandbox:read", "sandbox:write", "code:execute"]


class BetterE2BClient:
    """Client for the sandbox service's account-level API.

    Every call names the sandbox it works on. For an object bound to a single
    sandbox see ``bettere2b.Sandbox``.

    Usage:
        async with BetterE2BClient(api_key="...") as client:
            info = await client.create_sandbox("My Python App")
            result = await client.run_code(info.sandbox_id, "print(1 + 1)")
            print(result.text)
            await client.delete_sandbox(info.sandbox_id)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        server_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key sent as a bearer token. Defaults to BETTERE2B_API_KEY.
            server_url: Base URL of the service. Defaults to BETTERE2B_SERVER_URL.
            timeout: Default timeout for HTTP requests in seconds.
            http_client: Pre-configured httpx client to use instead of creating one.
        """
        settings = get_settings()
        self._connection = ServiceConnection(
            server_url or settings.server_url,
            api_key=api_key if api_key is not None else settings.api_key,
            timeout=timeout if timeout is not None else settings.timeout,
            http_client=http_client,
        )

    @property
    def base_url(self) -> str:
        return self._connection.base_url

    async def health_check(self) -> HealthStatus:
        """Check API health status."""
        data = await self._connection.request_json(
            "GET", "/health", action="Health check", authenticated=False
        )
        return parse_model(HealthStatus, data, "Health check")

    async def create_sandbox(
        self,
        name: str,
        runtime: str = "python",
        description: str = "",
    ) -> SandboxInfo:
        """Create a new sandbox.

        Args:
            name: Sandbox name.
            runtime: Runtime type (python, javascript, react, nextjs, go, rust, static).
            description: Optional description.

        Returns:
            The created sandbox.
        """
        logger.info(f"Creating {runtime} sandbox: {name}")
        data = await self._connection.request_json(
            "POST",
            "/api/sandbox/create",
            action="Sandbox creation",
            json={"name": name, "runtime": runtime, "description": description},
        )
        check_success(data, BetterE2BError, "Sandbox creation failed")

        sandbox = parse_model(SandboxInfo, data.get("sandbox") or data, "Sandbox creation")
        logger.info(f"Created sandbox: {sandbox.sandbox_id}")
        return sandbox

    async def list_sandboxes(self) -> list[SandboxInfo]:
        """List all sandboxes of the current user."""
        data = await self._connection.request_json(
            "GET", "/api/sandbox/list", action="Listing sandboxes"
        )
        return parse_models(SandboxInfo, data.get("sandboxes") or [], "Listing sandboxes")

    async def run_code(self, sandbox_id: str, code: str, language: str = "python") -> ExecutionResult:
        """Execute code in a sandbox and wait for the result.

        Raises:
            CodeExecutionError: If the service reports that execution failed.
        """
        logger.debug(f"Running {language} code in sandbox {sandbox_id}")
        data = await self._connection.request_json(
            "POST",
            "/api/sandbox/run-code",
            action="Code execution",
            json={"code": code, "language": language, "sandboxId": sandbox_id},
        )
        check_success(data, CodeExecutionError, "Code execution failed")
        return parse_model(ExecutionResult, data.get("result") or data, "Code execution")

    async def stream_code(
        self,
        sandbox_id: str,
        code: str,
        language: str = "python",
        callbacks: Optional[StreamCallbacks] = None,
    ) -> int:
        """Execute code and deliver its events to callbacks as they arrive.

        Args:
            sandbox_id: Target sandbox ID.
            code: Code to execute.
            language: Programming language.
            callbacks: Handlers for start/output/error/end events.

        Returns:
            Number of events dispatched.

        Raises:
            SandboxConnectionError: If the connection fails or drops mid-stream.
            APIError: If the server rejects the request.
        """
        logger.debug(f"Streaming {language} code in sandbox {sandbox_id}")
        async with self._connection.stream(
            "POST",
            "/api/sandbox/stream-code",
            action="Streaming execution",
            json={"code": code, "language": language, "sandboxId": sandbox_id, "stream": True},
        ) as response:
            return await adecode_stream(response.aiter_text(), callbacks)

    async def write_file(
        self,
        sandbox_id: str,
        file_path: str,
        content: str,
    ) -> WriteFileResult:
        """Write a file to a sandbox.

        Raises:
            FileOperationError: If the service could not write the file.
        """
        data = await self._connection.request_json(
            "POST",
            f"/api/sandbox/{sandbox_id}/write-file",
            action="File write",
            json={"filePath": file_path, "content": content},
        )
        check_success(data, FileOperationError, "File write failed")
        logger.debug(f"Wrote file: {file_path}")
        return parse_model(WriteFileResult, data, "File write")

    async def list_files(self, sandbox_id: str, directory: str = "/") -> list[FileInfo]:
        """List files in a sandbox directory."""
        data = await self._connection.request_json(
            "GET",
            f"/api/sandbox/{sandbox_id}/files",
            action="Listing files",
            params={"directory": directory},
        )
        check_success(data, FileOperationError, "File listing failed")
        return parse_models(FileInfo, data.get("files") or [], "Listing files")

    async def upload_file(
        self,
        sandbox_id: str,
        file: Union[bytes, BinaryIO],
        filename: str,
    ) -> dict[str, Any]:
        """Upload a file to a sandbox as multipart form data.

        Args:
            sandbox_id: Target sandbox ID.
            file: File content or an open binary file.
            filename: Name to store the file under.
        """
        data = await self._connection.request_json(
            "POST",
            f"/api/sandbox/{sandbox_id}/upload",
            action="File upload",
            files={"file": (filename, file)},
        )
        return check_success(data, FileOperationError, "File upload failed")

    async def delete_sandbox(self, sandbox_id: str) -> dict[str, Any]:
        """Delete a sandbox."""
        logger.info(f"Deleting sandbox: {sandbox_id}")
        data = await self._connection.request_json(
            "DELETE", f"/api/sandbox/delete/{sandbox_id}", action="Sandbox deletion"
        )
        return check_success(data, BetterE2BError, "Sandbox deletion failed")

    def get_sandbox_url(self, sandbox_id: str) -> str:
        """Get the preview URL of a sandbox."""
        return f"{self.base_url}/preview/{sandbox_id}"

    def get_live_url(self, sandbox_id: str) -> str:
        """Get the live URL of a sandbox."""
        return f"{self.base_url}/sandbox/{sandbox_id}"

    async def generate_api_key(
        self,
        name: str,
        permissions: Optional[list[str]] = None,
    ) -> ApiKey:
        """Generate a new API key with the given permissions."""
        data = await self._connection.request_json(
            "POST",
            "/api/keys/generate",
            action="API key generation",
            json={"name": name, "permissions": permissions or list(DEFAULT_KEY_PERMISSIONS)},
        )
        check_success(data, BetterE2BError, "API key generation failed")
        key = data.get("key")
        return parse_model(ApiKey, key if isinstance(key, dict) else data, "API key generation")

    async def list_api_keys(self) -> list[ApiKey]:
        """List the API keys of the current user."""
        data = await self._connection.request_json("GET", "/api/keys/list", action="Listing API keys")
        return parse_models(ApiKey, data.get("keys") or [], "Listing API keys")

    async def close(self) -> None:
        """Close the connection to the server."""
        await self._connection.close()

    async def __aenter__(self) -> "BetterE2BClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
        return False
