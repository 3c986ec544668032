"""Configuration management for Echo Notes application."""

import os
from pathlib import Path
from typing import Dict, Optional
from pydantic import BaseModel, Field


PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_KEY = "placeholder-key"


def is_placeholder(value: Optional[str]) -> bool:
    """Return True if a credential is missing or is a recognizable placeholder."""
    if not value or not value.strip():
        return True
    value = value.strip()
    if value in (PLACEHOLDER_URL, PLACEHOLDER_KEY):
        return True
    return "placeholder" in value.lower()


class AudioConfig(BaseModel):
    """Audio recording configuration."""
    sample_rate: int = Field(default=16000, description="Audio sample rate in Hz")
    channels: int = Field(default=1, description="Number of audio channels (mono)")
    chunk_size: int = Field(default=1024, description="Audio buffer chunk size in frames")
    device_id: Optional[int] = Field(default=None, description="Input device ID (system default if None)")
    media_type: str = Field(default="audio/wav", description="Media type tag of finished captures")
    filename: str = Field(default="recording.wav", description="Filename used when uploading captures")


class MonitorConfig(BaseModel):
    """Signal level monitor configuration."""
    fft_size: int = Field(default=256, description="Analysis window size in samples")
    refresh_hz: float = Field(default=60.0, description="Level sampling cadence (UI refresh rate)")
    min_decibels: float = Field(default=-100.0, description="Magnitude mapped to level 0")
    max_decibels: float = Field(default=-30.0, description="Magnitude mapped to full scale")


class ProviderConfig(BaseModel):
    """Speech-to-text and language model provider configuration."""
    api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    base_url: Optional[str] = Field(default=None, description="Override for the OpenAI API base URL")
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    extraction_model: str = Field(default="gpt-4o-mini", description="Chat model used for extraction")
    temperature: float = Field(default=0.7, description="Sampling temperature for extraction")
    timeout_seconds: float = Field(default=120.0, description="Timeout for each provider request")

    def is_configured(self) -> bool:
        return not is_placeholder(self.api_key)


class StoreConfig(BaseModel):
    """Note persistence and audio storage configuration."""
    backend: str = Field(default="supabase", description="Store backend (supabase, local)")
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(default=None, description="Supabase API key")
    notes_table: str = Field(default="notes", description="Table holding persisted notes")
    audio_bucket: str = Field(default="audio-notes", description="Storage bucket for recordings")
    local_dir: Path = Field(default=Path("notes_data"), description="Data directory for the local backend")
    timeout_seconds: float = Field(default=30.0, description="Timeout for store requests")

    def is_configured(self) -> bool:
        """Check whether the selected backend has usable connection parameters."""
        if self.backend == "local":
            return True
        return not (is_placeholder(self.supabase_url) or is_placeholder(self.supabase_key))


class AuthConfig(BaseModel):
    """Caller identity configuration."""
    header_name: str = Field(default="X-API-Key", description="Header carrying the caller's API key")
    api_keys: Dict[str, str] = Field(default_factory=dict, description="API key to user id mapping")


class ServerConfig(BaseModel):
    """FastAPI server configuration."""
    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")
    cors_origins: list[str] = Field(default=["*"], description="CORS allowed origins")


class AppConfig(BaseModel):
    """Main application configuration."""
    audio: AudioConfig = Field(default_factory=AudioConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        config = cls()

        # Audio settings
        if os.getenv("AUDIO_SAMPLE_RATE"):
            config.audio.sample_rate = int(os.getenv("AUDIO_SAMPLE_RATE"))
        if os.getenv("AUDIO_DEVICE_ID"):
            config.audio.device_id = int(os.getenv("AUDIO_DEVICE_ID"))

        # Provider settings
        config.provider.api_key = os.getenv("OPENAI_API_KEY")
        config.provider.base_url = os.getenv("OPENAI_BASE_URL")
        if os.getenv("TRANSCRIPTION_MODEL"):
            config.provider.transcription_model = os.getenv("TRANSCRIPTION_MODEL")
        if os.getenv("EXTRACTION_MODEL"):
            config.provider.extraction_model = os.getenv("EXTRACTION_MODEL")
        if os.getenv("EXTRACTION_TEMPERATURE"):
            config.provider.temperature = float(os.getenv("EXTRACTION_TEMPERATURE"))
        if os.getenv("PROVIDER_TIMEOUT_SECONDS"):
            config.provider.timeout_seconds = float(os.getenv("PROVIDER_TIMEOUT_SECONDS"))

        # Store settings
        if os.getenv("NOTE_STORE_BACKEND"):
            config.store.backend = os.getenv("NOTE_STORE_BACKEND").lower()
        config.store.supabase_url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
        config.store.supabase_key = os.getenv("SUPABASE_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")
        if os.getenv("NOTES_DATA_DIR"):
            config.store.local_dir = Path(os.getenv("NOTES_DATA_DIR"))

        # Auth settings
        if os.getenv("ECHO_NOTES_API_KEYS"):
            config.auth.api_keys = parse_api_keys(os.getenv("ECHO_NOTES_API_KEYS"))

        # Server settings
        if os.getenv("SERVER_HOST"):
            config.server.host = os.getenv("SERVER_HOST")
        if os.getenv("SERVER_PORT"):
            config.server.port = int(os.getenv("SERVER_PORT"))
        if os.getenv("DEBUG"):
            config.server.debug = os.getenv("DEBUG").lower() == "true"

        return config


def parse_api_keys(raw: str) -> Dict[str, str]:
    """Parse ``key:user,key:user`` into a key to user id mapping."""
    mapping = {}
    for pair in raw.split(","):
        key, sep, user_id = pair.strip().partition(":")
        if sep and key.strip() and user_id.strip():
            mapping[key.strip()] = user_id.strip()
    return mapping


# Global configuration instance
config = AppConfig.load_from_env()
