"""
Pydantic-based configuration models for roomlink.

Each section reads its own environment prefix (ROOMLINK_, LOGGING_); AppConfig
composes them and also reads a local .env file.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from ..codec.binary_codec import BinaryEnvelope, BinaryMode
from ..structured_logging.enhanced_logging_config import VALID_RENDERERS, get_logger

logger = get_logger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ClientConfig(BaseSettings):
    """Connection and protocol settings for a NetClient."""

    url: str = Field(default="ws://127.0.0.1:8080", description="Relay backend WebSocket URL")
    game_name: str = Field(default="defaultGame", description="Scopes rooms through the game:<name> tag")
    binary_mode: BinaryMode = Field(default=BinaryMode.BYTES, description="Application form of binary payloads")
    binary_envelope: BinaryEnvelope = Field(
        default=BinaryEnvelope.SENDER_PREFIXED,
        description="Whether inbound binary frames carry a 4-byte sender id",
    )
    open_timeout: float = Field(default=10.0, description="Seconds to wait for the WebSocket handshake")
    default_max_clients: int = Field(default=8, description="Room capacity used when create_room() gets none")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Only WebSocket URLs are accepted."""
        if not v.startswith(("ws://", "wss://")):
            logger.error("Invalid relay URL", url=v, expected_schemes=["ws", "wss"])
            raise ValueError("URL must start with 'ws://' or 'wss://'")
        return v

    @field_validator("game_name")
    @classmethod
    def validate_game_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Game name cannot be empty")
        return v.strip()

    @field_validator("open_timeout")
    @classmethod
    def validate_open_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Open timeout must be positive")
        return v

    @field_validator("default_max_clients")
    @classmethod
    def validate_default_max_clients(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Room capacity must be at least 1")
        return v

    model_config = {"env_prefix": "ROOMLINK_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="development", description="Environment name reported in logs")
    level: str = Field(default="INFO", description="Log level")
    renderer: str = Field(default="console", description="console, json or keyvalue")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @field_validator("renderer")
    @classmethod
    def validate_renderer(cls, v: str) -> str:
        renderer = v.lower()
        if renderer not in VALID_RENDERERS:
            raise ValueError(f"Renderer must be one of {', '.join(VALID_RENDERERS)}")
        return renderer

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via the get_config() function.
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}
