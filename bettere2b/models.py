"""Pydantic models for sandbox service responses."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ServiceModel(BaseModel):
    """Base for response models.

    The service speaks camelCase; attributes are snake_case. Fields the SDK
    does not know about are kept so newer servers don't lose data.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class HealthStatus(ServiceModel):
    """Response of the health endpoint."""
    status: str = "unknown"


class ExecutionLogs(ServiceModel):
    """Captured output streams of one execution."""
    stdout: list[str] = Field(default_factory=list)
    stderr: list[str] = Field(default_factory=list)


class ExecutionResult(ServiceModel):
    """Result of running code in a sandbox."""
    text: str = ""
    logs: ExecutionLogs = Field(default_factory=ExecutionLogs)
    error: Optional[str] = None
    exit_code: int = Field(default=0, alias="exitCode")
    execution_time: float = Field(default=0, alias="executionTime")

    @field_validator("text", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("exit_code", "execution_time", mode="before")
    @classmethod
    def _number_or_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def success(self) -> bool:
        """Returns True if the code ran without error and exited with code 0."""
        return self.exit_code == 0 and not self.error


class SandboxUrls(ServiceModel):
    """URLs under which a sandbox is reachable."""
    preview: Optional[str] = None
    sandbox: Optional[str] = None
    live: Optional[str] = None
    vite: Optional[str] = None
    subdomain: Optional[str] = None
    path: Optional[str] = None
    redirect: Optional[str] = None


class DynamicSubdomain(ServiceModel):
    """Dynamic subdomain scheme assigned to a sandbox."""
    format: str = ""
    example: str = ""
    port_id: str = Field(default="", alias="portId")


class SandboxInfo(ServiceModel):
    """A sandbox as described by the create and list endpoints."""
    sandbox_id: str = Field(validation_alias=AliasChoices("sandboxId", "sandbox_id", "id"))
    name: str = ""
    description: str = ""
    runtime: str = ""
    status: str = ""
    port: Optional[int] = None
    current_server_port: Optional[int] = Field(default=None, alias="currentServerPort")
    urls: Optional[SandboxUrls] = None
    dynamic_subdomain: Optional[DynamicSubdomain] = Field(default=None, alias="dynamicSubdomain")


class FileInfo(ServiceModel):
    """An entry of a sandbox directory listing."""
    name: str
    path: str = ""
    size: int = 0
    is_directory: bool = Field(default=False, alias="isDirectory")
    last_modified: Optional[float] = Field(default=None, alias="lastModified")


class InstallResult(ServiceModel):
    """Result of a package installation."""
    success: bool = True
    packages: list[str] = Field(default_factory=list)
    manager: str = ""
    output: str = ""
    error: Optional[str] = None


class WriteFileResult(ServiceModel):
    """Result of writing a file."""
    success: bool = True
    file_path: str = Field(default="", alias="filePath")
    size: int = 0
    error: Optional[str] = None


class SandboxStatus(ServiceModel):
    """Current state of a sandbox."""
    success: bool = True
    sandbox_id: str = Field(default="", alias="sandboxId")
    status: str = ""
    runtime: str = ""
    port: Optional[int] = None
    created_at: Optional[float] = Field(default=None, alias="createdAt")
    last_used: Optional[float] = Field(default=None, alias="lastUsed")


class SubdomainConfig(ServiceModel):
    """Dynamic subdomain configuration of a sandbox."""
    success: bool = True
    port_id: str = Field(default="", alias="portId")
    port: Optional[int] = None
    sandbox_id: str = Field(default="", alias="sandboxId")
    urls: Optional[SandboxUrls] = None
    format: str = ""
    example: str = ""


class ApiKey(ServiceModel):
    """An API key issued by the service."""
    id: Optional[str] = None
    name: str = ""
    key: Optional[str] = None
    permissions: list[str] = Field(default_factory=list)
    created_at: Optional[Any] = Field(default=None, alias="createdAt")
