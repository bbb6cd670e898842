"""Persistent configuration of tool sources.

The configured sources live in a single JSON file:

    {
        "version": "1.0.0",
        "lastUpdated": <epoch millis>,
        "servers": {"<source id>": {...}}
    }
"""

import json
import logging
import time
from pathlib import Path
from typing import Any

from parley_server.tools.types import ToolSourceConfig

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.0"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ToolSourceConfigStore:
    """Loads and saves the tool source configuration file."""

    def __init__(self, config_path: Path) -> None:
        """Initialize the store.

        Args:
            config_path: Path of the JSON configuration file
        """
        self.config_path = config_path
        self._servers: dict[str, ToolSourceConfig] = {}
        self.version = CONFIG_VERSION
        self.last_updated = _now_ms()

    def load(self) -> dict[str, ToolSourceConfig]:
        """Load the configuration, creating a default file on first run.

        An unreadable file is logged and replaced in memory by the default
        configuration; it is not overwritten on disk.

        Returns:
            Configured sources keyed by source id
        """
        if not self.config_path.exists():
            self._reset_in_memory()
            self.save()
            logger.debug("Created default tool source configuration")
            return self.get_servers()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._apply(data)
            logger.debug(f"Loaded tool source configuration with {len(self._servers)} servers")
        except Exception as e:
            logger.error(f"Failed to load tool source configuration: {e}")
            self._reset_in_memory()

        return self.get_servers()

    def save(self) -> None:
        """Write the configuration to disk.

        Raises:
            OSError: If the file cannot be written
        """
        self.last_updated = _now_ms()
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

        logger.debug(f"Saved tool source configuration with {len(self._servers)} servers")

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "lastUpdated": self.last_updated,
            "servers": {
                source_id: config.to_dict() for source_id, config in self._servers.items()
            },
        }

    def _apply(self, data: dict[str, Any]) -> None:
        servers = data.get("servers")
        if not isinstance(servers, dict):
            raise ValueError("Invalid configuration format")
        self._servers = {
            source_id: ToolSourceConfig.from_dict(config or {})
            for source_id, config in servers.items()
        }
        self.version = data.get("version", CONFIG_VERSION)
        self.last_updated = data.get("lastUpdated", _now_ms())

    def _reset_in_memory(self) -> None:
        self._servers = {}
        self.version = CONFIG_VERSION
        self.last_updated = _now_ms()

    # --- Servers ---

    def get_servers(self) -> dict[str, ToolSourceConfig]:
        return dict(self._servers)

    def get_server(self, source_id: str) -> ToolSourceConfig | None:
        return self._servers.get(source_id)

    def has_server(self, source_id: str) -> bool:
        return source_id in self._servers

    def get_server_count(self) -> int:
        return len(self._servers)

    def set_server(self, source_id: str, config: ToolSourceConfig) -> None:
        """Add or replace a source and persist the change."""
        self._servers[source_id] = config
        self.save()
        logger.debug(f"Updated tool source: {source_id}")

    def remove_server(self, source_id: str) -> None:
        if self._servers.pop(source_id, None) is not None:
            self.save()
            logger.debug(f"Removed tool source: {source_id}")

    # --- Import / export ---

    def export_config(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def import_config(self, config_json: str) -> None:
        """Replace the configuration with an exported one and persist it.

        Raises:
            ValueError: If the JSON is not a valid configuration
        """
        try:
            data = json.loads(config_json)
            self._apply(data)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Failed to import tool source configuration: {e}")
            raise ValueError("Invalid configuration format") from e

        self.version = CONFIG_VERSION
        self.save()
        logger.info("Tool source configuration imported successfully")

    def reset(self) -> None:
        self._reset_in_memory()
        self.save()
        logger.info("Tool source configuration reset to defaults")
