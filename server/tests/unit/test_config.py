"""测试 config.py — 配置加载、环境变量覆盖、验证。"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from lookalike.config import ConfigError, Settings, load_settings, require_api_key

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestLoadSettings:
    """TOML 文件加载。"""

    def test_load_test_toml(self):
        settings = load_settings(FIXTURES / "test_config.toml")
        assert settings.server.host == "127.0.0.1"
        assert settings.server.port == 8999
        assert settings.server.log_level == "DEBUG"
        assert settings.gemini.api_key == "test_key"
        assert settings.gemini.model == "gemini-test"
        assert settings.capture.relay_url == "http://relay.test"
        assert settings.capture.device == 1

    def test_load_nonexistent_file_uses_defaults(self):
        settings = load_settings(Path("/nonexistent/path.toml"))
        assert settings.server.host == "0.0.0.0"
        assert settings.server.port == 3000
        assert settings.server.max_body_bytes == 10 * 1024 * 1024
        assert settings.gemini.api_key == ""
        assert settings.gemini.mime_type == "image/jpeg"
        assert settings.capture.jpeg_quality == 0.9

    def test_default_static_dir_has_index(self):
        settings = Settings()
        assert (settings.server.static_dir / "index.html").is_file()


class TestEnvironmentOverride:
    """环境变量覆盖。"""

    def test_plain_gemini_api_key(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        settings = load_settings(FIXTURES / "test_config.toml")
        assert settings.gemini.api_key == "from-env"

    def test_plain_port(self, monkeypatch):
        monkeypatch.setenv("PORT", "8123")
        settings = load_settings(Path("/nonexistent/path.toml"))
        assert settings.server.port == 8123

    def test_prefixed_nested_override(self, monkeypatch):
        monkeypatch.setenv("LOOKALIKE_GEMINI__MODEL", "gemini-1.5-flash")
        settings = Settings()
        assert settings.gemini.model == "gemini-1.5-flash"

    def test_prefixed_env_beats_toml(self, monkeypatch):
        """TOML 已设置的键仍可被 LOOKALIKE_ 环境变量覆盖。"""
        monkeypatch.setenv("LOOKALIKE_SERVER__PORT", "9999")
        monkeypatch.setenv("LOOKALIKE_GEMINI__MODEL", "gemini-1.5-flash")
        settings = load_settings(FIXTURES / "test_config.toml")
        assert settings.server.port == 9999
        assert settings.gemini.model == "gemini-1.5-flash"
        # 同一分区里未覆盖的键保留 TOML 值
        assert settings.server.host == "127.0.0.1"
        assert settings.gemini.api_key == "test_key"

    def test_prefixed_env_beats_default_toml(self, monkeypatch):
        monkeypatch.setenv("LOOKALIKE_SERVER__PORT", "9999")
        settings = load_settings()
        assert settings.server.port == 9999

    def test_toml_used_without_env(self):
        settings = load_settings(FIXTURES / "test_config.toml")
        assert settings.server.port == 8999


class TestValidation:
    """配置验证。"""

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(server={"log_level": "TRACE"})

    def test_quality_out_of_range(self):
        with pytest.raises(ValidationError):
            Settings(capture={"jpeg_quality": 1.5})

    def test_all_fields_have_defaults(self):
        settings = Settings()
        assert settings.capture.ready_timeout > 0
        assert settings.capture.request_timeout > 0


class TestRequireApiKey:
    """API key 缺失是启动期致命错误。"""

    def test_missing_key_raises(self):
        with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
            require_api_key(Settings())

    def test_blank_key_raises(self):
        with pytest.raises(ConfigError):
            require_api_key(Settings(gemini={"api_key": "   "}))

    def test_present_key_returned(self, test_config):
        assert require_api_key(test_config) == "test_key"
