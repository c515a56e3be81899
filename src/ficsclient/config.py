"""Configuration management for the FICS client."""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """Server address and connection settings."""

    host: str = "freechess.org"
    port: int = 5000
    encoding: str = "latin-1"
    connect_timeout: float = 10.0


class SessionConfig(BaseModel):
    """Login and session behaviour."""

    username: str | None = None
    password: SecretStr | None = None
    prompt: str = "fics%"
    # Uptime is sent just under the server's one hour idle limit
    keepalive_interval: float = 59 * 60.0
    setup_commands: list[str] = Field(
        default_factory=lambda: ["set prompt", "set seek 0", "set style 12"]
    )
    auto_next_page: bool = True


class LoggingConfig(BaseModel):
    """Logging and transcript settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    transcript_dir: Path = Field(default_factory=lambda: Path("./transcripts"))
    enable_json: bool = True
    enable_markdown: bool = True


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FICS_",
        env_nested_delimiter="__",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional path to YAML config file.

    Returns:
        Loaded configuration.
    """
    config_data: dict[str, Any] = {}

    if config_path and config_path.exists():
        import yaml

        with open(config_path) as f:
            loaded = yaml.safe_load(f)
            if loaded:
                config_data = loaded

    return Config(**config_data)
