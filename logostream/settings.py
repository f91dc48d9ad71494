"""Configuration models and TOML loader.

Loads stream, client and cache settings from defaults.toml into pydantic
models. Every section is optional in a user-supplied file; missing keys
fall back to the model defaults.
"""

from __future__ import annotations

import codecs
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

# Default config directory inside the logostream package
_CONFIG_DIR = Path(__file__).parent / "config"

# Environment variable overriding [client].base_url
BASE_URL_ENV = "LOGOSTREAM_BASE_URL"


class StreamConfig(BaseModel):
    """Settings for StreamProcessor."""

    stall_timeout: float = Field(
        default=60.0, ge=0.0,
        description="Seconds to wait for the next chunk before giving up (0 = wait forever)",
    )
    report_truncated: bool = Field(
        default=False,
        description="Invoke on_error when the stream ends inside an object",
    )
    encoding: str = Field(default="utf-8", description="Text encoding of the byte stream")

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError:
            raise ValueError(f"Unknown encoding: {value}") from None
        return value


class ClientConfig(BaseModel):
    """Settings for GenerationClient."""

    base_url: str = Field(default="http://localhost:3000", description="Generator base URL")
    generate_path: str = Field(
        default="/api/generate-logo", description="Path of the streaming generation route"
    )
    request_timeout: float = Field(default=120.0, gt=0.0, description="Read timeout in seconds")
    connect_timeout: float = Field(default=10.0, gt=0.0, description="Connect timeout in seconds")
    auto_reconnect: bool = Field(default=True, description="Retry connection failures")
    max_reconnect_attempts: int = Field(default=3, ge=0, description="Retries after the first attempt")
    reconnect_delay: float = Field(
        default=1.0, ge=0.0, description="Base backoff in seconds, doubled per attempt"
    )


class CacheTTL(BaseModel):
    """Time-to-live per cache kind, in seconds."""

    generation: float = Field(default=24 * 60 * 60, gt=0.0)
    intermediate: float = Field(default=2 * 60 * 60, gt=0.0)
    asset: float = Field(default=24 * 60 * 60, gt=0.0)
    progress: float = Field(default=15 * 60, gt=0.0)


class CacheConfig(BaseModel):
    """Settings for GenerationCache."""

    enabled: bool = Field(default=True, description="Disable to make the cache a no-op")
    max_items: int = Field(default=1000, gt=0, description="LRU capacity across all kinds")
    ttl: CacheTTL = Field(default_factory=CacheTTL)


class LogoStreamConfig(BaseModel):
    """Top-level configuration."""

    stream: StreamConfig = Field(default_factory=StreamConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


def load_config(config_path: Path | None = None) -> LogoStreamConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to logostream/config/defaults.toml.

    Returns:
        LogoStreamConfig with values from the file, then the
        LOGOSTREAM_BASE_URL environment override applied.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML is malformed or a section fails validation.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    sections = {key: raw[key] for key in ("stream", "client", "cache") if key in raw}
    for key, section in sections.items():
        if not isinstance(section, dict):
            raise ValueError(f"[{key}] in {path} must be a table")

    try:
        config = LogoStreamConfig(**sections)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e

    base_url = os.environ.get(BASE_URL_ENV)
    if base_url:
        config.client.base_url = base_url
    return config
