"""Integration tests for the tools API endpoints."""

import json

import pytest
from httpx import AsyncClient

from parley_server.tools import (
    DiscoveredPrompt,
    DiscoveredTool,
    DiscoveryState,
    ToolSourceStatus,
)


class FakeToolSource:
    """Tool source with a fixed two-tool catalog.

    A command of "broken" fails to connect.
    """

    def __init__(self, source_id, config):
        self.source_id = source_id
        self.config = config
        self.status = ToolSourceStatus.DISCONNECTED
        self.tools = {}
        self.prompts = {}

    def get_status(self):
        return self.status

    def get_discovery_state(self):
        return DiscoveryState.COMPLETED if self.tools else DiscoveryState.NOT_STARTED

    def get_tools(self):
        return self.tools

    def get_prompts(self):
        return self.prompts

    def add_status_change_listener(self, listener):
        pass

    def remove_status_change_listener(self, listener):
        pass

    async def connect(self):
        if self.config.command == "broken":
            raise ConnectionError("server exited")
        self.status = ToolSourceStatus.CONNECTED

    async def discover_all(self):
        self.tools = {
            name: DiscoveredTool(
                name=name,
                description=f"{name} tool",
                parameter_schema={"type": "object"},
                source_id=self.source_id,
                trusted=self.config.trust,
            )
            for name in ("read", "write")
        }
        self.prompts = {
            "review": DiscoveredPrompt(
                name="review",
                description="Review code",
                arguments=[{"name": "file", "description": "", "required": True}],
                source_id=self.source_id,
            )
        }

    async def disconnect(self):
        self.status = ToolSourceStatus.DISCONNECTED
        self.tools = {}
        self.prompts = {}

    async def call_tool(self, name, args):
        return name


@pytest.fixture
def fake_sources(test_app, async_client):
    """Route tool source connections to FakeToolSource."""
    test_app.state.tool_manager._connection_factory = FakeToolSource
    return test_app.state.tool_manager


async def add_source(client: AsyncClient, source_id: str, **config):
    return await client.post(
        "/api/v1/tools/servers",
        json={"id": source_id, "config": config or {"command": "files-server"}},
    )


@pytest.mark.asyncio
async def test_empty_catalog(async_client: AsyncClient):
    assert (await async_client.get("/api/v1/tools")).json() == {"tools": []}
    assert (await async_client.get("/api/v1/tools/prompts")).json() == {"prompts": []}

    servers = (await async_client.get("/api/v1/tools/servers")).json()
    assert servers["servers"] == []
    assert servers["stats"]["total"] == 0


@pytest.mark.asyncio
async def test_add_server(async_client: AsyncClient, fake_sources, test_settings):
    response = await add_source(async_client, "files", command="files-server", trust=True)

    assert response.status_code == 201
    assert response.json() == {
        "id": "files",
        "transport": "stdio",
        "status": "connected",
        "discovery_state": "completed",
        "tool_count": 2,
        "prompt_count": 1,
    }

    saved = json.loads(test_settings.resolved_tool_sources_path.read_text())
    assert saved["servers"]["files"] == {"command": "files-server", "trust": True}


@pytest.mark.asyncio
async def test_catalog_uses_qualified_names(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")
    await add_source(async_client, "git", command="git-server")

    tools = (await async_client.get("/api/v1/tools")).json()["tools"]
    assert [tool["qualified_name"] for tool in tools] == [
        "files:read",
        "files:write",
        "git:read",
        "git:write",
    ]
    assert tools[2]["source_id"] == "git"
    assert tools[2]["name"] == "read"

    prompts = (await async_client.get("/api/v1/tools/prompts")).json()["prompts"]
    assert [prompt["qualified_name"] for prompt in prompts] == ["files:review", "git:review"]


@pytest.mark.asyncio
async def test_add_duplicate_server(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")

    response = await add_source(async_client, "files")

    assert response.status_code == 409
    assert response.json()["detail"]["error"]["code"] == "tool_source_exists"


@pytest.mark.asyncio
async def test_add_server_without_transport(async_client: AsyncClient, fake_sources):
    response = await async_client.post(
        "/api/v1/tools/servers",
        json={"id": "empty", "config": {"description": "nothing to run"}},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"]["code"] == "invalid_tool_source"


@pytest.mark.asyncio
async def test_add_server_with_separator_in_id(async_client: AsyncClient, fake_sources):
    response = await add_source(async_client, "bad:id")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_add_unreachable_server(async_client: AsyncClient, fake_sources, test_settings):
    response = await add_source(async_client, "flaky", command="broken")

    assert response.status_code == 502
    assert response.json()["detail"]["error"]["code"] == "tool_source_error"
    assert "flaky" not in fake_sources.servers

    saved = json.loads(test_settings.resolved_tool_sources_path.read_text())
    assert "flaky" not in saved["servers"]


@pytest.mark.asyncio
async def test_update_server(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")

    response = await async_client.put(
        "/api/v1/tools/servers/files",
        json={"http_url": "http://localhost:9000/mcp"},
    )

    assert response.status_code == 200
    assert response.json()["transport"] == "http"
    assert fake_sources.get_client("files").config.http_url == "http://localhost:9000/mcp"
    assert len((await async_client.get("/api/v1/tools")).json()["tools"]) == 2


@pytest.mark.asyncio
async def test_update_unknown_server(async_client: AsyncClient, fake_sources):
    response = await async_client.put("/api/v1/tools/servers/nope", json={"command": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_server_reconnect_failure(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")

    response = await async_client.put("/api/v1/tools/servers/files", json={"command": "broken"})

    assert response.status_code == 502
    servers = (await async_client.get("/api/v1/tools/servers")).json()["servers"]
    assert servers == [
        {
            "id": "files",
            "transport": "stdio",
            "status": "disconnected",
            "discovery_state": "not_started",
            "tool_count": 0,
            "prompt_count": 0,
        }
    ]


@pytest.mark.asyncio
async def test_delete_server(async_client: AsyncClient, fake_sources, test_settings):
    await add_source(async_client, "files")

    response = await async_client.delete("/api/v1/tools/servers/files")

    assert response.status_code == 204
    assert (await async_client.get("/api/v1/tools")).json() == {"tools": []}
    saved = json.loads(test_settings.resolved_tool_sources_path.read_text())
    assert saved["servers"] == {}

    response = await async_client.delete("/api/v1/tools/servers/files")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_servers_with_stats(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")
    await add_source(async_client, "git", command="git-server")

    data = (await async_client.get("/api/v1/tools/servers")).json()

    assert [server["id"] for server in data["servers"]] == ["files", "git"]
    assert data["stats"] == {"total": 2, "connected": 2, "disconnected": 0, "discovering": 0}


@pytest.mark.asyncio
async def test_export_config(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files", command="files-server", trust=True)

    response = await async_client.get("/api/v1/tools/config")

    assert response.status_code == 200
    exported = response.json()
    assert exported["version"] == "1.0.0"
    assert isinstance(exported["lastUpdated"], int)
    assert exported["servers"] == {"files": {"command": "files-server", "trust": True}}


@pytest.mark.asyncio
async def test_import_config_replaces_sources(async_client: AsyncClient, fake_sources, test_settings):
    await add_source(async_client, "files")

    response = await async_client.put(
        "/api/v1/tools/config",
        json={
            "version": "1.0",
            "servers": {
                "git": {"command": "git-server"},
                "flaky": {"command": "broken"},
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert [(server["id"], server["status"]) for server in data["servers"]] == [
        ("flaky", "disconnected"),
        ("git", "connected"),
    ]
    assert fake_sources.get_client("files") is None

    tools = (await async_client.get("/api/v1/tools")).json()["tools"]
    assert [tool["qualified_name"] for tool in tools] == ["git:read", "git:write"]

    saved = json.loads(test_settings.resolved_tool_sources_path.read_text())
    assert set(saved["servers"]) == {"git", "flaky"}


@pytest.mark.asyncio
async def test_import_invalid_config(async_client: AsyncClient, fake_sources):
    await add_source(async_client, "files")

    response = await async_client.put("/api/v1/tools/config", json={"servers": ["files"]})

    assert response.status_code == 400
    assert response.json()["detail"]["error"]["code"] == "invalid_tool_config"
    assert fake_sources.get_client("files") is not None


@pytest.mark.asyncio
async def test_reset_config(async_client: AsyncClient, fake_sources, test_settings):
    await add_source(async_client, "files")

    response = await async_client.delete("/api/v1/tools/config")

    assert response.status_code == 200
    assert response.json()["servers"] == []
    assert (await async_client.get("/api/v1/tools")).json() == {"tools": []}
    saved = json.loads(test_settings.resolved_tool_sources_path.read_text())
    assert saved["servers"] == {}
