"""Tests for the Sandbox object."""

import httpx
import pytest

from bettere2b import Sandbox, StreamCallbacks
from bettere2b import sandbox as sandbox_module
from bettere2b.connection import ServiceConnection
from bettere2b.exceptions import (
    APIError,
    BetterE2BError,
    PackageInstallError,
    SandboxNotFoundError,
)
from bettere2b.models import SandboxUrls

SERVER_URL = "http://localhost:8083"
API_KEY = "test-key"

CREATE_RESPONSE = {
    "success": True,
    "sandboxId": "sb-42",
    "name": "Test Sandbox",
    "runtime": "static",
    "status": "running",
    "urls": {
        "preview": f"{SERVER_URL}/preview/sb-42",
        "subdomain": "http://3000-sb-42.sandbox.test",
        "path": f"{SERVER_URL}/sandbox/sb-42",
    },
    "dynamicSubdomain": {
        "format": "{port}-{id}.sandbox.test",
        "example": "http://3000-sb-42.sandbox.test",
        "portId": "3000-sb-42",
    },
}


async def create_sandbox(server, **kwargs):
    server.add("POST", "/api/sandbox/create", json=CREATE_RESPONSE)
    return await Sandbox.create(
        server_url=SERVER_URL,
        api_key=API_KEY,
        http_client=server.http_client(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_create(server):
    """Creating a sandbox sends the defaults and keeps the returned URLs."""
    sandbox = await create_sandbox(server)

    assert sandbox.sandbox_id == "sb-42"
    assert sandbox.is_active
    assert sandbox.dynamic_subdomain.port_id == "3000-sb-42"
    assert server.last_json() == {
        "name": "BetterE2B Sandbox",
        "runtime": "static",
        "description": "Created with the BetterE2B Python SDK",
    }
    assert server.last_request.headers["authorization"] == f"Bearer {API_KEY}"


@pytest.mark.asyncio
async def test_create_reports_server_error(server):
    server.add("POST", "/api/sandbox/create", json={"success": False, "error": "Quota exceeded"})

    with pytest.raises(BetterE2BError, match="Quota exceeded"):
        await Sandbox.create(server_url=SERVER_URL, api_key=API_KEY, http_client=server.http_client())


@pytest.mark.asyncio
async def test_create_without_sandbox_id(server):
    server.add("POST", "/api/sandbox/create", json={"success": True})

    with pytest.raises(BetterE2BError, match="sandbox ID"):
        await Sandbox.create(server_url=SERVER_URL, api_key=API_KEY, http_client=server.http_client())


@pytest.mark.asyncio
async def test_run_code(server):
    sandbox = await create_sandbox(server)
    server.add(
        "POST",
        "/api/sandbox/run-code",
        json={"success": True, "result": {"text": "2", "exitCode": 0, "executionTime": 3, "error": None}},
    )

    result = await sandbox.run_code("x += 1; x")

    assert result.text == "2"
    assert result.exit_code == 0
    assert result.logs.stdout == []
    assert server.last_json() == {"sandboxId": "sb-42", "code": "x += 1; x", "language": "python"}


@pytest.mark.asyncio
async def test_run_code_null_fields_use_defaults(server):
    sandbox = await create_sandbox(server)
    server.add(
        "POST",
        "/api/sandbox/run-code",
        json={"success": True, "result": {"text": None, "exitCode": None, "error": "NameError"}},
    )

    result = await sandbox.run_code("y")

    assert result.text == ""
    assert result.exit_code == 0
    assert not result.success


@pytest.mark.asyncio
async def test_stream_code(server):
    async def body():
        yield b'data: {"type":"start"}\n'
        yield b'data: {"type":"error","error":"Traceback'
        yield b' (most recent call last)"}\n'

    sandbox = await create_sandbox(server)
    server.add("POST", "/api/sandbox/stream-code", handler=lambda request: httpx.Response(200, content=body()))
    errors = []

    count = await sandbox.stream_code("raise", callbacks=StreamCallbacks(on_error=errors.append))

    assert count == 2
    assert errors == ["Traceback (most recent call last)"]


@pytest.mark.asyncio
async def test_host_helpers(server):
    sandbox = await create_sandbox(server)

    assert sandbox.get_host() == "http://3000-sb-42.sandbox.test"
    assert sandbox.get_subdomain_url() == "http://3000-sb-42.sandbox.test"
    assert sandbox.get_path_url() == f"{SERVER_URL}/sandbox/sb-42"

    sandbox.urls = None
    assert sandbox.get_subdomain_url() is None
    assert sandbox.get_path_url() is None
    assert sandbox.get_host() == f"{SERVER_URL}/preview/sb-42"
    assert sandbox.get_host(3000).startswith("http://localhost:3000")


def test_host_on_port_keeps_ipv6_brackets_and_credentials():
    ipv6 = Sandbox("sb", ServiceConnection("http://[::1]:8083")).get_host(3000)
    assert "[::1]:3000" in ipv6
    assert httpx.URL(ipv6).host == "::1"
    assert httpx.URL(ipv6).port == 3000

    with_userinfo = Sandbox("sb", ServiceConnection("http://user:pw@localhost:8083")).get_host(3000)
    assert "user:pw@localhost:3000" in with_userinfo


@pytest.mark.asyncio
async def test_create_passes_http_timeout(server, monkeypatch):
    seen = {}

    class RecordingConnection(ServiceConnection):
        def __init__(self, *args, **kwargs):
            seen.update(kwargs)
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(sandbox_module, "ServiceConnection", RecordingConnection)

    await create_sandbox(server, timeout=5.0)

    assert seen["timeout"] == 5.0


@pytest.mark.asyncio
async def test_timeouts(server):
    sandbox = await create_sandbox(server, timeout_ms=1000)

    sandbox.set_timeout(5000)
    sandbox.extend_timeout(2500)

    assert sandbox.timeout_ms == 7500


@pytest.mark.asyncio
async def test_install_single_package(server):
    sandbox = await create_sandbox(server)
    server.add(
        "POST",
        "/api/sandbox/sb-42/install-packages",
        json={"success": True, "packages": ["requests"], "manager": "pip", "output": "ok"},
    )

    result = await sandbox.install("requests")

    assert result.packages == ["requests"]
    assert server.last_json() == {"packages": ["requests"], "manager": "pip"}


@pytest.mark.asyncio
async def test_install_failure(server):
    sandbox = await create_sandbox(server)
    server.add(
        "POST",
        "/api/sandbox/sb-42/install-packages",
        json={"success": False, "error": "npm not available in static runtime"},
    )

    with pytest.raises(PackageInstallError, match="npm not available") as exc_info:
        await sandbox.install(["left-pad", "lodash"], manager="npm")

    assert exc_info.value.kind == "install"
    assert server.last_json()["packages"] == ["left-pad", "lodash"]


@pytest.mark.asyncio
async def test_write_and_read_file(server):
    sandbox = await create_sandbox(server)
    server.add("POST", "/api/sandbox/sb-42/write-file", json={"success": True, "filePath": "test.txt", "size": 5})
    server.add("GET", "/api/sandbox/sb-42/files/test.txt", text="Hello")

    written = await sandbox.write_file("test.txt", "Hello")
    content = await sandbox.read_file("test.txt")

    assert written.size == 5
    assert content == "Hello"


@pytest.mark.asyncio
async def test_read_missing_file(server):
    sandbox = await create_sandbox(server)

    with pytest.raises(SandboxNotFoundError):
        await sandbox.read_file("nope.txt")


@pytest.mark.asyncio
async def test_list_files(server):
    sandbox = await create_sandbox(server)
    server.add("GET", "/api/sandbox/sb-42/files", json={"success": True, "files": [{"name": "index.html"}]})

    files = await sandbox.list_files("/public")

    assert files[0].name == "index.html"
    assert server.last_request.url.params["directory"] == "/public"


@pytest.mark.asyncio
async def test_status_and_subdomain_config(server):
    sandbox = await create_sandbox(server)
    server.add(
        "GET",
        "/api/sandbox/sb-42/state",
        json={"success": True, "sandboxId": "sb-42", "status": "running", "runtime": "static", "createdAt": 1700000000000},
    )
    server.add(
        "GET",
        "/api/subdomain/dynamic/sb-42",
        json={"success": True, "portId": "3000-sb-42", "port": 3000, "sandboxId": "sb-42", "urls": {"subdomain": "http://3000-sb-42.sandbox.test"}},
    )

    status = await sandbox.get_status()
    config = await sandbox.get_subdomain_config()

    assert status.status == "running"
    assert status.created_at == 1700000000000
    assert config.port == 3000
    assert isinstance(config.urls, SandboxUrls)


@pytest.mark.asyncio
async def test_unexpected_status_body_raises_api_error(server):
    sandbox = await create_sandbox(server)
    server.add("GET", "/api/sandbox/sb-42/state", json={"success": True, "port": "not-a-port"})

    with pytest.raises(APIError, match="Status check failed: unexpected response"):
        await sandbox.get_status()


@pytest.mark.asyncio
async def test_create_with_malformed_urls(server):
    server.add("POST", "/api/sandbox/create", json={"success": True, "sandboxId": "sb-1", "urls": ["not", "a", "map"]})

    with pytest.raises(APIError, match="Sandbox creation failed: unexpected response"):
        await Sandbox.create(server_url=SERVER_URL, api_key=API_KEY, http_client=server.http_client())


@pytest.mark.asyncio
async def test_killed_sandbox_rejects_calls(server):
    sandbox = await create_sandbox(server)
    server.add("DELETE", "/api/sandbox/delete/sb-42", json={"success": True})

    await sandbox.kill()

    assert not sandbox.is_active
    with pytest.raises(SandboxNotFoundError, match="killed"):
        await sandbox.run_code("1")


@pytest.mark.asyncio
async def test_context_manager_kills_sandbox(server):
    server.add("DELETE", "/api/sandbox/delete/sb-42", json={"success": True})

    async with await create_sandbox(server) as sandbox:
        assert sandbox.is_active

    assert not sandbox.is_active
    assert server.last_request.method == "DELETE"


@pytest.mark.asyncio
async def test_context_manager_logs_failed_kill(server, caplog):
    """A failing kill on exit is logged, not raised."""
    server.add("DELETE", "/api/sandbox/delete/sb-42", status=500, json={"error": "boom"})

    async with await create_sandbox(server) as sandbox:
        pass

    assert sandbox.is_active
    assert "Error killing sandbox sb-42" in caplog.text


@pytest.mark.integration
@pytest.mark.asyncio
async def test_live_server_round_trip():
    """Create, run, write, read and kill against a running server."""
    async with await Sandbox.create(runtime="python") as sandbox:
        result = await sandbox.run_code("print('hello')")
        assert "hello" in result.text

        await sandbox.write_file("/test.txt", "Hello from BetterE2B")
        assert await sandbox.read_file("/test.txt") == "Hello from BetterE2B"
