"""Configuration management for nexuslauncher.

Loads settings from an optional YAML configuration file with environment
variable overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/nexuslauncher.yaml")

DEFAULT_NODE_ID = "12954263"

# Drops the `read -p ... </dev/tty` prompts from the upstream install script
PROMPT_FILTER = r"/read -p.*\/dev\/tty/d"


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)


class NodeConfig(BaseModel):
    node_id: str = Field(default=DEFAULT_NODE_ID, min_length=1)
    probe_binary: str = Field(default="nexus-cli", description="CLI probed with -V")
    probe_marker: str = Field(
        default="nexus-network",
        description="Substring the probe output must contain to count as installed",
    )
    binary: str = Field(default="nexus-network", description="Binary launched to start the node")
    install_url: str = Field(default="https://cli.nexus.xyz/")
    strip_prompts: bool = Field(
        default=True, description="Filter interactive prompts out of the install script"
    )
    install_input: str | None = Field(
        default=None, description="Canned stdin fed to the install pipeline"
    )
    install_dir: str = Field(default="~/.nexus/bin")
    locate_binary: bool = Field(default=True)
    verify_binary: bool = Field(default=True)
    probe_timeout: float = Field(default=30.0, gt=0)

    def install_command(self) -> str:
        """Shell pipeline that downloads and runs the install script."""
        command = f"curl -fsSL {self.install_url}"
        if self.strip_prompts:
            command += f" | sed '{PROMPT_FILTER}'"
        return command + " | sh"

    def launch_args(self) -> list[str]:
        return ["start", "--node-id", self.node_id]


class LaunchConfig(BaseModel):
    use_pty: bool = Field(default=True)
    rows: int = Field(default=30, gt=0)
    cols: int = Field(default=80, gt=0)
    term: str = Field(default="xterm-256color")


class RelayConfig(BaseModel):
    keep_alive_interval: float = Field(default=30.0, gt=0)
    truncate_at: int = Field(default=1024, gt=0)
    buffer_capacity: int = Field(default=10 * 1024 * 1024, gt=0)
    initial_status: str = Field(default="Nexus Network CLI Setup Server is running...")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for nexuslauncher.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "NEXUSLAUNCHER_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Constructor values carry the YAML file, which ranks below the environment
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults. The plain
    ``PORT`` and ``NEXUS_NODE_ID`` variables are folded into the YAML data,
    so they beat the file but not their ``NEXUSLAUNCHER_`` counterparts.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply the plain PORT and NEXUS_NODE_ID variables over the YAML data."""
    port = os.environ.get("PORT", "")
    node_id = os.environ.get("NEXUS_NODE_ID", "")

    if port:
        yaml_data.setdefault("server", {})["port"] = port

    if node_id:
        yaml_data.setdefault("node", {})["node_id"] = node_id
