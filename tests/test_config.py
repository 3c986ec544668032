"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from echo_notes.config import AppConfig, is_placeholder, parse_api_keys


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "OPENAI_API_KEY", "OPENAI_BASE_URL", "TRANSCRIPTION_MODEL", "EXTRACTION_MODEL",
        "EXTRACTION_TEMPERATURE", "PROVIDER_TIMEOUT_SECONDS", "NOTE_STORE_BACKEND",
        "SUPABASE_URL", "SUPABASE_KEY", "NEXT_PUBLIC_SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        "NOTES_DATA_DIR", "ECHO_NOTES_API_KEYS", "AUDIO_SAMPLE_RATE", "AUDIO_DEVICE_ID",
        "SERVER_HOST", "SERVER_PORT", "DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestIsPlaceholder:
    """Test cases for credential placeholder detection."""

    @pytest.mark.parametrize("value", [
        None, "", "   ", "https://placeholder.supabase.co", "placeholder-key", "my-PLACEHOLDER-value"
    ])
    def test_placeholders(self, value):
        assert is_placeholder(value)

    def test_real_value(self):
        assert not is_placeholder("https://abcd.supabase.co")


class TestAppConfig:
    """Test cases for AppConfig.load_from_env."""

    def test_defaults(self, clean_env):
        config = AppConfig.load_from_env()

        assert config.provider.transcription_model == "whisper-1"
        assert config.provider.extraction_model == "gpt-4o-mini"
        assert config.provider.temperature == 0.7
        assert config.provider.timeout_seconds == 120.0
        assert not config.provider.is_configured()
        assert config.store.backend == "supabase"
        assert config.store.audio_bucket == "audio-notes"
        assert not config.store.is_configured()
        assert config.monitor.fft_size == 256
        assert config.audio.media_type == "audio/wav"
        assert config.auth.api_keys == {}

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("EXTRACTION_TEMPERATURE", "0.2")
        clean_env.setenv("PROVIDER_TIMEOUT_SECONDS", "30")
        clean_env.setenv("SUPABASE_URL", "https://abcd.supabase.co")
        clean_env.setenv("SUPABASE_KEY", "service-key")
        clean_env.setenv("AUDIO_SAMPLE_RATE", "44100")
        clean_env.setenv("SERVER_PORT", "9000")
        clean_env.setenv("DEBUG", "True")

        config = AppConfig.load_from_env()

        assert config.provider.is_configured()
        assert config.provider.temperature == 0.2
        assert config.provider.timeout_seconds == 30.0
        assert config.store.is_configured()
        assert config.audio.sample_rate == 44100
        assert config.server.port == 9000
        assert config.server.debug

    def test_public_supabase_variables_are_accepted(self, clean_env):
        clean_env.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://abcd.supabase.co")
        clean_env.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "anon-key")

        config = AppConfig.load_from_env()

        assert config.store.supabase_url == "https://abcd.supabase.co"
        assert config.store.supabase_key == "anon-key"

    def test_local_backend_is_always_configured(self, clean_env):
        clean_env.setenv("NOTE_STORE_BACKEND", "LOCAL")
        clean_env.setenv("NOTES_DATA_DIR", "/tmp/echo")

        config = AppConfig.load_from_env()

        assert config.store.backend == "local"
        assert config.store.local_dir == Path("/tmp/echo")
        assert config.store.is_configured()

    def test_api_keys(self, clean_env):
        clean_env.setenv("ECHO_NOTES_API_KEYS", "k1:alice, k2:bob")

        assert AppConfig.load_from_env().auth.api_keys == {"k1": "alice", "k2": "bob"}


class TestParseApiKeys:
    """Test cases for the key:user list format."""

    def test_malformed_pairs_are_skipped(self):
        assert parse_api_keys("good:alice,missing-colon,:nouser,nokey:,") == {"good": "alice"}

    def test_user_ids_may_contain_colons(self):
        assert parse_api_keys("k:auth0:123") == {"k": "auth0:123"}
