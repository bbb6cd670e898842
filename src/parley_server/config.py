"""Configuration module for parley-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ParleyServerSettings(BaseSettings):
    """Main configuration settings for parley-server.

    All settings can be overridden via environment variables with the PARLEY_ prefix.
    For example, PARLEY_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"
    default_model: str = "llama3.2:latest"

    # Data locations (relative to data_dir)
    data_dir: str = "."
    histories_dir: str = "chat-histories"
    manifest_file: str = "chat-histories.json"
    tool_sources_file: str = "mcp.json"

    # Session archive retention
    max_histories: int = 100

    # Tool calling
    max_tool_turns: int = 10
    tool_permissions: dict[str, str] = Field(default_factory=dict)
    default_tool_permission: str = "ask"  # ask | always | never
    discover_tools_on_startup: bool = True

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="PARLEY_")

    # --- Resolved paths (computed from data_dir + relative paths) ---

    @property
    def resolved_histories_dir(self) -> Path:
        """Get the full path to the per-session history directory."""
        return Path(self.data_dir) / self.histories_dir

    @property
    def resolved_manifest_path(self) -> Path:
        """Get the full path to the history manifest file."""
        return Path(self.data_dir) / self.manifest_file

    @property
    def resolved_tool_sources_path(self) -> Path:
        """Get the full path to the tool source configuration file."""
        return Path(self.data_dir) / self.tool_sources_file
