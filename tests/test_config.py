"""Tests for ServerConfig environment loading and validation."""

from __future__ import annotations

import pytest

from vcon_wtf.config import (
    DEFAULT_TIMEOUT_MS,
    LOCAL_TIMEOUT_MS,
    PROVIDER_IDS,
    ProviderSettings,
    ServerConfig,
)
from vcon_wtf.exceptions import ConfigurationError, UnknownProviderError


class TestDefaults:
    """An empty environment yields the documented defaults."""

    def test_server_defaults(self) -> None:
        config = ServerConfig.from_env({})

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.log_level == "info"
        assert config.asr_provider == "nvidia"
        assert config.max_audio_size_mb == 100
        assert config.max_vcon_size_mb == 200

    def test_every_provider_has_settings(self) -> None:
        config = ServerConfig.from_env({})
        assert set(config.providers) == set(PROVIDER_IDS)

    def test_provider_defaults(self) -> None:
        config = ServerConfig.from_env({})

        nim = config.provider_settings("nvidia")
        assert nim.base_url == "http://localhost:9000"
        assert nim.model == "parakeet-tdt-1.1b"
        assert nim.timeout_ms == DEFAULT_TIMEOUT_MS

        assert config.provider_settings("openai").model == "whisper-1"
        assert config.provider_settings("deepgram").model == "nova-2"
        assert config.provider_settings("groq").model == "whisper-large-v3-turbo"

        local = config.provider_settings("local-whisper")
        assert local.base_url == "http://localhost:9001"
        assert local.model == "base"
        assert local.timeout_ms == LOCAL_TIMEOUT_MS

        mlx = config.provider_settings("mlx-whisper")
        assert mlx.base_url == "http://localhost:8000"
        assert mlx.model == "mlx-community/whisper-turbo"

    def test_size_limits_in_bytes(self) -> None:
        config = ServerConfig(max_audio_size_mb=1, max_vcon_size_mb=2.5)
        assert config.max_audio_size_bytes == 1024 * 1024
        assert config.max_vcon_size_bytes == int(2.5 * 1024 * 1024)


class TestFromEnv:
    def test_reads_server_variables(self) -> None:
        config = ServerConfig.from_env(
            {"HOST": "127.0.0.1", "PORT": "8080", "LOG_LEVEL": "DEBUG", "ASR_PROVIDER": "openai"}
        )
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.log_level == "debug"
        assert config.asr_provider == "openai"

    def test_reads_provider_variables(self) -> None:
        config = ServerConfig.from_env(
            {
                "NIM_ASR_URL": "http://nim.internal:9000",
                "NIM_API_KEY": "nim-key",
                "NIM_DEFAULT_MODEL": "canary-1b",
                "NIM_TIMEOUT_MS": "1500",
                "OPENAI_API_KEY": "sk-test",
                "OPENAI_BASE_URL": "https://proxy.example.com/v1",
                "DEEPGRAM_API_KEY": "dg-key",
                "DEEPGRAM_MODEL": "nova",
                "LOCAL_WHISPER_URL": "http://gpu-box:9001",
                "LOCAL_WHISPER_MODEL": "large-v3",
            }
        )

        nim = config.provider_settings("nvidia")
        assert nim == ProviderSettings(
            model="canary-1b",
            base_url="http://nim.internal:9000",
            api_key="nim-key",
            timeout_ms=1500,
        )
        assert config.provider_settings("openai").api_key == "sk-test"
        assert config.provider_settings("openai").base_url == "https://proxy.example.com/v1"
        assert config.provider_settings("deepgram").model == "nova"
        assert config.provider_settings("local-whisper").base_url == "http://gpu-box:9001"
        assert config.provider_settings("local-whisper").model == "large-v3"

    def test_blank_values_fall_back_to_defaults(self) -> None:
        config = ServerConfig.from_env({"PORT": "  ", "OPENAI_API_KEY": ""})
        assert config.port == 3000
        assert config.provider_settings("openai").api_key is None

    def test_warn_is_an_accepted_log_level(self) -> None:
        assert ServerConfig.from_env({"LOG_LEVEL": "warn"}).log_level == "warn"

    def test_reads_size_limits(self) -> None:
        config = ServerConfig.from_env({"MAX_AUDIO_SIZE_MB": "25", "MAX_VCON_SIZE_MB": "0.5"})
        assert config.max_audio_size_mb == 25
        assert config.max_vcon_size_mb == 0.5


class TestInvalidConfiguration:
    """Every invalid value is reported in a single ConfigurationError."""

    @pytest.mark.parametrize(
        ("environ", "fragment"),
        [
            ({"ASR_PROVIDER": "watson"}, "asr_provider"),
            ({"PORT": "eighty"}, "PORT"),
            ({"PORT": "0"}, "port"),
            ({"LOG_LEVEL": "loud"}, "log_level"),
            ({"NIM_DEFAULT_MODEL": "whisper-1"}, "nvidia.model"),
            ({"OPENAI_MODEL": "gpt-4o"}, "openai.model"),
            ({"DEEPGRAM_MODEL": "nova-9"}, "deepgram.model"),
            ({"GROQ_MODEL": "whisper-1"}, "groq.model"),
            ({"NIM_TIMEOUT_MS": "-5"}, "nvidia.timeout_ms"),
            ({"LOCAL_WHISPER_URL": "not a url"}, "local-whisper.base_url"),
            ({"MAX_AUDIO_SIZE_MB": "0"}, "max_audio_size_mb"),
        ],
    )
    def test_rejects_invalid_value(self, environ: dict[str, str], fragment: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration") as exc_info:
            ServerConfig.from_env(environ)
        assert fragment in str(exc_info.value)

    def test_collects_every_problem(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ServerConfig.from_env({"ASR_PROVIDER": "watson", "PORT": "x", "LOG_LEVEL": "loud"})

        message = str(exc_info.value)
        assert "asr_provider" in message
        assert "PORT" in message
        assert "log_level" in message

    def test_local_backends_accept_any_model(self) -> None:
        config = ServerConfig.from_env({"MLX_WHISPER_MODEL": "my-org/custom-whisper"})
        assert config.provider_settings("mlx-whisper").model == "my-org/custom-whisper"


class TestProviderSettings:
    def test_unknown_provider(self) -> None:
        with pytest.raises(UnknownProviderError, match="Unknown ASR provider: watson"):
            ServerConfig().provider_settings("watson")

    def test_unknown_provider_is_a_configuration_error(self) -> None:
        assert issubclass(UnknownProviderError, ConfigurationError)

    def test_timeout_in_seconds(self) -> None:
        assert ProviderSettings(model="m", timeout_ms=2500).timeout_s == 2.5

    def test_to_dict_hides_api_key(self) -> None:
        data = ProviderSettings(model="m", api_key="secret").to_dict()
        assert data["api_key_set"] is True
        assert "secret" not in str(data)

    def test_config_to_dict(self) -> None:
        data = ServerConfig().to_dict()
        assert data["asr_provider"] == "nvidia"
        assert set(data["providers"]) == set(PROVIDER_IDS)
