"""Sandbox class for interacting with one remote sandbox."""

import logging
import time
from typing import Any, Optional, Union

import httpx

from .config import get_settings
from .connection import ServiceConnection, check_success, parse_model, parse_models
from .exceptions import (
    BetterE2BError,
    CodeExecutionError,
    FileOperationError,
    PackageInstallError,
    SandboxNotFoundError,
)
from .models import (
    DynamicSubdomain,
    ExecutionResult,
    FileInfo,
    InstallResult,
    SandboxStatus,
    SandboxUrls,
    SubdomainConfig,
    WriteFileResult,
)
from .streaming import StreamCallbacks, adecode_stream

logger = logging.getLogger(__name__)


class Sandbox:
    """A sandbox that can run code and manage files.

    Create one with ``await Sandbox.create()``. Used as an async context
    manager, the sandbox is killed on exit.

    Usage:
        async with await Sandbox.create(runtime="python") as sandbox:
            await sandbox.run_code("x = 1")
            result = await sandbox.run_code("x += 1; x")
            print(result.text)
    """

    def __init__(
        self,
        sandbox_id: str,
        connection: ServiceConnection,
        *,
        timeout_ms: Optional[int] = None,
        urls: Optional[SandboxUrls] = None,
        dynamic_subdomain: Optional[DynamicSubdomain] = None,
    ):
        """Initialize a sandbox handle.

        Args:
            sandbox_id: The sandbox ID assigned by the server.
            connection: Connection to the server that owns the sandbox.
            timeout_ms: Sandbox lifetime in milliseconds.
            urls: URLs the server reported for the sandbox.
            dynamic_subdomain: Dynamic subdomain scheme of the sandbox.
        """
        self.sandbox_id = sandbox_id
        self._connection = connection
        self.timeout_ms = timeout_ms if timeout_ms is not None else get_settings().sandbox_timeout_ms
        self.created_at = time.time()
        self.urls = urls
        self.dynamic_subdomain = dynamic_subdomain
        self._killed = False

    @classmethod
    async def create(
        cls,
        *,
        name: str = "BetterE2B Sandbox",
        runtime: str = "static",
        description: str = "Created with the BetterE2B Python SDK",
        timeout_ms: Optional[int] = None,
        server_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "Sandbox":
        """Create a new sandbox.

        Args:
            name: Sandbox name.
            runtime: Runtime type (static, react, python...).
            description: Sandbox description.
            timeout_ms: Sandbox lifetime in milliseconds.
            server_url: Base URL of the service. Defaults to BETTERE2B_SERVER_URL.
            api_key: API key sent as a bearer token. Defaults to BETTERE2B_API_KEY.
            timeout: Default timeout for HTTP requests in seconds. Defaults to BETTERE2B_TIMEOUT.
            http_client: Pre-configured httpx client to use instead of creating one.

        Returns:
            A Sandbox instance ready for use.

        Raises:
            SandboxConnectionError: If connection to the server fails.
            APIError: If the server rejects the request.
        """
        settings = get_settings()
        connection = ServiceConnection(
            server_url or settings.server_url,
            api_key=api_key if api_key is not None else settings.api_key,
            timeout=timeout if timeout is not None else settings.timeout,
            http_client=http_client,
        )

        logger.info(f"Creating {runtime} sandbox: {name}")
        try:
            data = await connection.request_json(
                "POST",
                "/api/sandbox/create",
                action="Sandbox creation",
                json={"name": name, "runtime": runtime, "description": description},
            )
            check_success(data, BetterE2BError, "Failed to create sandbox")

            sandbox_id = data.get("sandboxId") or (data.get("sandbox") or {}).get("id")
            if not sandbox_id:
                raise BetterE2BError("Server did not return a sandbox ID")

            urls = data.get("urls")
            dynamic_subdomain = data.get("dynamicSubdomain")
            sandbox = cls(
                sandbox_id,
                connection,
                timeout_ms=timeout_ms,
                urls=parse_model(SandboxUrls, urls, "Sandbox creation") if urls else None,
                dynamic_subdomain=(
                    parse_model(DynamicSubdomain, dynamic_subdomain, "Sandbox creation")
                    if dynamic_subdomain
                    else None
                ),
            )
        except BetterE2BError:
            await connection.close()
            raise

        logger.info(f"Created sandbox: {sandbox_id} (subdomain: {sandbox.get_subdomain_url() or 'N/A'})")
        return sandbox

    @property
    def server_url(self) -> str:
        return self._connection.base_url

    @property
    def is_active(self) -> bool:
        """True until the sandbox has been killed."""
        return not self._killed

    def _check_active(self) -> None:
        if self._killed:
            raise SandboxNotFoundError("Sandbox has been killed")

    async def run_code(self, code: str, language: str = "python") -> ExecutionResult:
        """Execute code in the sandbox.

        Args:
            code: Code to execute.
            language: Programming language (python, javascript, bash).

        Returns:
            ExecutionResult with text, logs, error, exit code and timing.

        Raises:
            SandboxNotFoundError: If the sandbox no longer exists.
            CodeExecutionError: If the service reports that execution failed.
        """
        self._check_active()

        data = await self._connection.request_json(
            "POST",
            "/api/sandbox/run-code",
            action="Code execution",
            json={"sandboxId": self.sandbox_id, "code": code, "language": language},
        )
        check_success(data, CodeExecutionError, "Code execution failed")
        return parse_model(ExecutionResult, data.get("result") or data, "Code execution")

    async def stream_code(
        self,
        code: str,
        language: str = "python",
        callbacks: Optional[StreamCallbacks] = None,
    ) -> int:
        """Execute code, dispatching output events to callbacks as they arrive.

        Returns:
            Number of events dispatched.
        """
        self._check_active()

        async with self._connection.stream(
            "POST",
            "/api/sandbox/stream-code",
            action="Streaming execution",
            json={"code": code, "language": language, "sandboxId": self.sandbox_id, "stream": True},
        ) as response:
            return await adecode_stream(response.aiter_text(), callbacks)

    def get_host(self, port: Optional[int] = None) -> str:
        """Get a URL under which the sandbox is reachable.

        Prefers the dynamic subdomain URL. Otherwise, with a port, returns the
        server URL on that port; without one, the preview URL.
        """
        subdomain = self.get_subdomain_url()
        if subdomain:
            return subdomain

        if port:
            return str(httpx.URL(self.server_url).copy_with(port=port))

        return f"{self.server_url}/preview/{self.sandbox_id}"

    def get_subdomain_url(self) -> Optional[str]:
        """Get the dynamic subdomain URL, or None if unknown."""
        return self.urls.subdomain if self.urls else None

    def get_path_url(self) -> Optional[str]:
        """Get the path-based URL, or None if unknown."""
        return self.urls.path if self.urls else None

    def set_timeout(self, timeout_ms: int) -> None:
        """Set the sandbox timeout in milliseconds."""
        self.timeout_ms = timeout_ms
        logger.info(f"Sandbox timeout set to {timeout_ms}ms")

    def extend_timeout(self, extension_ms: int) -> None:
        """Extend the sandbox timeout by the given milliseconds."""
        self.timeout_ms += extension_ms
        logger.info(f"Sandbox timeout extended by {extension_ms}ms")

    async def install(
        self,
        packages: Union[str, list[str]],
        manager: str = "pip",
    ) -> InstallResult:
        """Install packages in the sandbox.

        Args:
            packages: Package name or list of names.
            manager: Package manager (pip, npm, yarn).

        Raises:
            PackageInstallError: If installation failed.
        """
        self._check_active()
        package_list = [packages] if isinstance(packages, str) else list(packages)

        data = await self._connection.request_json(
            "POST",
            f"/api/sandbox/{self.sandbox_id}/install-packages",
            action="Package installation",
            json={"packages": package_list, "manager": manager},
        )
        check_success(data, PackageInstallError, "Package installation failed")

        logger.info(f"Packages installed: {', '.join(package_list)}")
        return parse_model(InstallResult, data, "Package installation")

    async def write_file(self, file_path: str, content: str) -> WriteFileResult:
        """Write content to a file in the sandbox.

        Raises:
            SandboxNotFoundError: If the sandbox no longer exists.
            FileOperationError: If the file cannot be written.
        """
        self._check_active()

        data = await self._connection.request_json(
            "POST",
            f"/api/sandbox/{self.sandbox_id}/write-file",
            action="File write",
            json={"filePath": file_path, "content": content},
        )
        check_success(data, FileOperationError, "File write failed")

        logger.debug(f"Wrote file: {file_path}")
        return parse_model(WriteFileResult, data, "File write")

    async def read_file(self, file_path: str) -> str:
        """Read a text file from the sandbox."""
        self._check_active()

        response = await self._connection.request(
            "GET",
            f"/api/sandbox/{self.sandbox_id}/files/{file_path}",
            action="File read",
        )
        logger.debug(f"Read file: {file_path}")
        return response.text

    async def list_files(self, directory: str = "/") -> list[FileInfo]:
        """List files in a sandbox directory."""
        self._check_active()

        data = await self._connection.request_json(
            "GET",
            f"/api/sandbox/{self.sandbox_id}/files",
            action="Listing files",
            params={"directory": directory},
        )
        check_success(data, FileOperationError, "File listing failed")
        return parse_models(FileInfo, data.get("files") or [], "Listing files")

    async def get_status(self) -> SandboxStatus:
        """Get the current state of the sandbox."""
        self._check_active()

        data = await self._connection.request_json(
            "GET", f"/api/sandbox/{self.sandbox_id}/state", action="Status check"
        )
        return parse_model(SandboxStatus, data, "Status check")

    async def get_subdomain_config(self) -> SubdomainConfig:
        """Get the dynamic subdomain configuration of the sandbox."""
        self._check_active()

        data = await self._connection.request_json(
            "GET", f"/api/subdomain/dynamic/{self.sandbox_id}", action="Subdomain config"
        )
        return parse_model(SubdomainConfig, data, "Subdomain config")

    async def kill(self) -> dict[str, Any]:
        """Terminate the sandbox.

        After calling this method, the sandbox cannot be used anymore.
        """
        self._check_active()

        data = await self._connection.request_json(
            "DELETE", f"/api/sandbox/delete/{self.sandbox_id}", action="Sandbox kill"
        )
        check_success(data, BetterE2BError, "Sandbox kill failed")

        self._killed = True
        logger.info(f"Sandbox killed: {self.sandbox_id}")
        return data

    async def close(self) -> None:
        """Close the connection without killing the sandbox."""
        await self._connection.close()

    async def __aenter__(self) -> "Sandbox":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - kills the sandbox."""
        try:
            if not self._killed:
                await self.kill()
        except BetterE2BError as e:
            logger.warning(f"Error killing sandbox {self.sandbox_id}: {e}")
        finally:
            await self.close()
        return False
