"""Pydantic models for zelo.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class DeepgramConfig(BaseModel):
    """Deepgram streaming endpoint configuration."""

    base_url: str = Field(
        default="wss://api.deepgram.com/v1/listen",
        description="Deepgram streaming websocket URL",
    )
    model: str = Field(default="nova-2", description="Deepgram model name")
    api_key_env: str = Field(
        default="DEEPGRAM_API_KEY",
        description="Environment variable holding the Deepgram API key",
    )
    api_key: str | None = Field(
        default=None,
        description="Inline API key (overrides the environment variable, avoid in shared configs)",
    )


class ReconnectConfig(BaseModel):
    """Reconnection policy after an unsolicited provider close."""

    max_attempts: int = Field(default=3, description="Reconnection attempts", ge=1, le=10)
    initial_delay: float = Field(
        default=1.0,
        description="Delay before the first attempt in seconds, doubled for each retry",
        gt=0.0,
    )


class ProviderConfig(BaseModel):
    """Streaming provider configuration."""

    name: Literal["deepgram"] = Field(default="deepgram", description="Speech-to-text provider")
    capacity: int = Field(
        default=1,
        description="Number of concurrent provider connections (1 = every session shares one)",
        ge=1,
    )
    share_when_full: bool = Field(
        default=True,
        description="Let extra sessions share a busy connection instead of failing to start",
    )
    deepgram: DeepgramConfig = Field(default_factory=DeepgramConfig)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)


class StorageConfig(BaseModel):
    """Session persistence configuration."""

    backend: Literal["json", "sqlite", "postgres"] = Field(
        default="json",
        description="Session store backend: one JSON file per session, SQLite or PostgreSQL",
    )
    directory: str = Field(default="./sessions", description="Directory for JSON session files")
    sqlite_path: str = Field(default="./zelo.db", description="SQLite database path")
    postgres_dsn: str = Field(
        default="postgresql+psycopg://localhost/zelo",
        description="SQLAlchemy URL of the PostgreSQL database",
    )


class TranscriptionConfig(BaseModel):
    """Session and transcript defaults."""

    default_language: str = Field(default="pt-BR", description="Language when none is given")
    persist_threshold: int = Field(
        default=10,
        description="Persist an active session after this many new segments",
        ge=1,
    )
    default_page_size: int = Field(
        default=50, description="Default segment page size for get_transcription", ge=1
    )
    default_list_limit: int = Field(
        default=20, description="Default number of sessions returned by list_sessions", ge=1
    )


class ServerConfig(BaseModel):
    """HTTP and audio websocket server configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, description="Server port", ge=1, le=65535)
    public_host: str = Field(
        default="localhost",
        description="Host name advertised in the audio websocket endpoint returned to clients",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level for the zelo logger"
    )
    format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log record format",
    )


class ZeloConfig(BaseModel):
    """Root configuration schema for Zelo."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
