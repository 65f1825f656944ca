"""HTTP connection shared by the client and sandbox objects."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .exceptions import (
    APIError,
    AuthenticationError,
    BetterE2BError,
    SandboxConnectionError,
    SandboxNotFoundError,
)

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> tuple[str, Any]:
    """Extract a human-readable reason and the decoded body of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = response.text
    detail = ""
    if isinstance(body, dict):
        detail = body.get("error") or body.get("message") or ""
    return str(detail or response.reason_phrase), body


def raise_for_response(response: httpx.Response, action: str) -> None:
    """Raise the matching APIError if the response is not a success.

    Args:
        response: Response whose status is checked.
        action: What was attempted, used as the message prefix.

    Raises:
        SandboxNotFoundError: On 404.
        AuthenticationError: On 401 or 403.
        APIError: On any other 4xx/5xx status.
    """
    if not response.is_error:
        return

    detail, body = _error_detail(response)
    message = f"{action} failed: {response.status_code} {detail}".rstrip()
    status = response.status_code

    if status == 404:
        raise SandboxNotFoundError(message, status_code=status, body=body)
    if status in (401, 403):
        raise AuthenticationError(message, status_code=status, body=body)
    raise APIError(message, status_code=status, body=body)


def check_success(data: Any, error_cls: type[BetterE2BError], default_message: str) -> Any:
    """Raise ``error_cls`` if a JSON body reports ``success: false``."""
    if isinstance(data, dict) and data.get("success") is False:
        raise error_cls(data.get("error") or default_message)
    return data


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model(model: type[ModelT], data: Any, action: str) -> ModelT:
    """Validate a response body, reporting a mismatch as APIError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise APIError(f"{action} failed: unexpected response", body=data) from e


def parse_models(model: type[ModelT], items: Iterable[Any], action: str) -> list[ModelT]:
    return [parse_model(model, item, action) for item in items]


class ServiceConnection:
    """Authenticated HTTP access to one sandbox server.

    The underlying ``httpx.AsyncClient`` is created on first use. A client
    passed in by the caller is used as-is and left open on close().
    """

    def __init__(
        self,
        server_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = server_url.rstrip("/")
        self._api_key = api_key or None
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def base_url(self) -> str:
        """Server URL without trailing slash."""
        return self._base_url

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    def url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and return the successful response.

        Args:
            method: HTTP method.
            path: Path below the server URL, starting with "/".
            action: Description of the operation, used in error messages.
            authenticated: Whether to send the Authorization header.
            **kwargs: Passed through to ``httpx.AsyncClient.request``
                (``json``, ``params``, ``files``...).

        Raises:
            SandboxConnectionError: If the server can't be reached.
            APIError: If the server answers with an error status.
        """
        client = self._ensure_connected()
        headers = self.headers() if authenticated else {}

        logger.debug(f"{method} {path}")
        try:
            response = await client.request(method, self.url(path), headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise SandboxConnectionError(f"{action} failed: {e}") from e

        raise_for_response(response, action)
        return response

    async def request_json(self, method: str, path: str, *, action: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body of the response."""
        response = await self.request(method, path, action=action, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                f"{action} failed: invalid JSON response",
                status_code=response.status_code,
                body=response.text,
            ) from e

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        path: str,
        *,
        action: str,
        **kwargs: Any,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming request; the body is read inside the block.

        Transport errors raised while the caller reads the body are reported
        as SandboxConnectionError, the same as errors while connecting.
        """
        client = self._ensure_connected()

        logger.debug(f"{method} {path} (stream)")
        try:
            async with client.stream(method, self.url(path), headers=self.headers(), **kwargs) as response:
                if response.is_error:
                    await response.aread()
                    raise_for_response(response, action)
                yield response
        except httpx.HTTPError as e:
            raise SandboxConnectionError(f"{action} failed: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client if this connection created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
