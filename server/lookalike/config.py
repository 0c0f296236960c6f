"""配置管理 — Pydantic Settings 从 TOML 加载。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

_DEFAULT_TOML = Path(__file__).resolve().parent.parent / "config" / "default.toml"
_DEFAULT_STATIC = Path(__file__).resolve().parent / "public"


class ConfigError(RuntimeError):
    """启动前即可发现的配置错误（进程应拒绝启动）。"""


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    static_dir: Path = _DEFAULT_STATIC
    max_body_bytes: int = 10 * 1024 * 1024


class GeminiConfig(BaseModel):
    api_key: str = ""
    model: str = "gemini-2.5-pro-exp-03-25"
    mime_type: str = "image/jpeg"


class CaptureConfig(BaseModel):
    relay_url: str = "http://localhost:3000"
    device: int = 0
    width: int = 1280
    height: int = 720
    jpeg_quality: float = Field(0.9, gt=0.0, le=1.0)
    ready_timeout: float = 10.0
    request_timeout: float = 120.0


class Settings(BaseSettings):
    server: ServerConfig = ServerConfig()
    gemini: GeminiConfig = GeminiConfig()
    capture: CaptureConfig = CaptureConfig()

    model_config = {"env_prefix": "LOOKALIKE_", "env_nested_delimiter": "__"}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # TOML 以构造参数传入，环境变量优先于它
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_settings(toml_path: Path = _DEFAULT_TOML) -> Settings:
    """从 TOML 文件加载配置，环境变量可覆盖。

    除 ``LOOKALIKE_`` 前缀变量外，还识别通用的 ``GEMINI_API_KEY`` 与 ``PORT``。
    """
    import sys

    if sys.version_info >= (3, 11):
        import tomllib
    else:
        import tomli as tomllib

    data: dict = {}
    if toml_path.exists():
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    settings = Settings(**data)

    api_key = os.environ.get("GEMINI_API_KEY")
    if api_key:
        settings.gemini.api_key = api_key
    port = os.environ.get("PORT")
    if port:
        settings.server.port = int(port)
    return settings


def require_api_key(settings: Settings) -> str:
    """返回 API key；缺失时抛出 ConfigError（附带可操作的提示）。"""
    key = settings.gemini.api_key.strip()
    if not key:
        raise ConfigError(
            "GEMINI_API_KEY is not set.\n"
            "Export it (or LOOKALIKE_GEMINI__API_KEY) before starting the server:\n"
            "    export GEMINI_API_KEY=YOUR_ACTUAL_API_KEY_HERE"
        )
    return key
