"""Unit tests for ToolSourceConfigStore."""

import json

import pytest

from parley_server.tools import ToolSourceConfig, ToolSourceConfigStore


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "mcp.json"


def test_load_creates_default_file(config_path):
    store = ToolSourceConfigStore(config_path)

    servers = store.load()

    assert servers == {}
    data = json.loads(config_path.read_text())
    assert data["version"] == "1.0.0"
    assert data["servers"] == {}
    assert isinstance(data["lastUpdated"], int)


def test_set_server_persists(config_path):
    store = ToolSourceConfigStore(config_path)
    store.load()

    store.set_server("files", ToolSourceConfig(command="mcp-files", args=["--root", "/tmp"]))

    reloaded = ToolSourceConfigStore(config_path)
    servers = reloaded.load()
    assert servers["files"].command == "mcp-files"
    assert servers["files"].args == ["--root", "/tmp"]
    assert reloaded.has_server("files")
    assert reloaded.get_server_count() == 1


def test_remove_server(config_path):
    store = ToolSourceConfigStore(config_path)
    store.load()
    store.set_server("files", ToolSourceConfig(command="mcp-files"))

    store.remove_server("files")
    store.remove_server("never-added")

    assert ToolSourceConfigStore(config_path).load() == {}


def test_corrupt_file_resets_in_memory(config_path):
    config_path.write_text("{ broken")
    store = ToolSourceConfigStore(config_path)

    assert store.load() == {}
    # The broken file is left for the user to inspect
    assert config_path.read_text() == "{ broken"


def test_loads_existing_camel_case_file(config_path):
    config_path.write_text(
        json.dumps(
            {
                "version": "1.0.0",
                "lastUpdated": 1,
                "servers": {
                    "remote": {"httpUrl": "http://localhost:9000/mcp", "trust": True},
                    "events": {"url": "http://localhost:9001/sse"},
                },
            }
        )
    )

    servers = ToolSourceConfigStore(config_path).load()

    assert servers["remote"].transport == "http"
    assert servers["remote"].trust is True
    assert servers["events"].transport == "sse"


def test_export_import_round_trip(config_path, tmp_path):
    store = ToolSourceConfigStore(config_path)
    store.load()
    store.set_server("files", ToolSourceConfig(command="mcp-files"))
    exported = store.export_config()

    other = ToolSourceConfigStore(tmp_path / "other.json")
    other.load()
    other.import_config(exported)

    assert other.get_server("files").command == "mcp-files"


def test_import_invalid_config_raises(config_path):
    store = ToolSourceConfigStore(config_path)
    store.load()

    with pytest.raises(ValueError, match="Invalid configuration format"):
        store.import_config('{"servers": []}')

    with pytest.raises(ValueError, match="Invalid configuration format"):
        store.import_config("not json")


def test_reset(config_path):
    store = ToolSourceConfigStore(config_path)
    store.load()
    store.set_server("files", ToolSourceConfig(command="mcp-files"))

    store.reset()

    assert store.get_servers() == {}
    assert json.loads(config_path.read_text())["servers"] == {}
