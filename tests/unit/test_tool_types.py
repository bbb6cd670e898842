"""Unit tests for tool source types and qualified names."""

from types import SimpleNamespace

import pytest

from parley_server.tools import (
    DiscoveredPrompt,
    DiscoveredTool,
    ToolSourceConfig,
    qualify_name,
    split_qualified_name,
)


def test_qualified_name_round_trip():
    for source_id, name in [("files", "read"), ("git", "log:oneline"), ("a-b", "c_d")]:
        assert split_qualified_name(qualify_name(source_id, name)) == (source_id, name)


@pytest.mark.parametrize("bad_name", ["read", ":read", "files:", ""])
def test_split_rejects_unqualified_names(bad_name):
    with pytest.raises(ValueError):
        split_qualified_name(bad_name)


def test_transport_selection():
    assert ToolSourceConfig(command="npx").transport == "stdio"
    assert ToolSourceConfig(url="http://localhost/sse").transport == "sse"
    assert ToolSourceConfig(http_url="http://localhost/mcp").transport == "http"
    assert ToolSourceConfig().transport is None


def test_config_json_uses_camel_case():
    config = ToolSourceConfig.from_dict(
        {
            "httpUrl": "http://localhost/mcp",
            "headers": {"Authorization": "Bearer x"},
            "trust": True,
            "includeTools": ["read"],
        }
    )

    assert config.http_url == "http://localhost/mcp"
    assert config.include_tools == ["read"]
    assert config.trust is True
    assert config.to_dict() == {
        "httpUrl": "http://localhost/mcp",
        "headers": {"Authorization": "Bearer x"},
        "trust": True,
        "includeTools": ["read"],
    }


def test_tool_filters():
    config = ToolSourceConfig(command="x", include_tools=["a", "b"], exclude_tools=["b"])
    assert config.allows_tool("a") is True
    assert config.allows_tool("b") is False
    assert config.allows_tool("c") is False
    assert ToolSourceConfig(command="x").allows_tool("anything") is True


def test_discovered_tool_from_mcp_tool():
    mcp_tool = SimpleNamespace(
        name="read_file",
        description="Read a file",
        inputSchema={"type": "object", "properties": {"path": {"type": "string"}}},
    )

    tool = DiscoveredTool.from_mcp_tool(mcp_tool, "files", trusted=False)

    assert tool.qualified_name == "files:read_file"
    assert tool.requires_confirmation() is True
    assert tool.to_function_declaration() == {
        "name": "files:read_file",
        "description": "Read a file (from files)",
        "parameters": {"type": "object", "properties": {"path": {"type": "string"}}},
    }


def test_discovered_prompt_from_mcp_prompt():
    mcp_prompt = SimpleNamespace(
        name="summarize",
        description=None,
        arguments=[SimpleNamespace(name="text", description="Input", required=True)],
    )

    prompt = DiscoveredPrompt.from_mcp_prompt(mcp_prompt, "docs")

    assert prompt.description == ""
    assert prompt.arguments == [{"name": "text", "description": "Input", "required": True}]
    assert prompt.source_id == "docs"
