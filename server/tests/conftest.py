"""共享 fixtures — 假摄像头、mock 视觉模型、mock relay、测试配置。"""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from lookalike.capture.camera import Camera, CameraError, MediaStream
from lookalike.config import Settings, load_settings
from lookalike.relay.vision import VisionResponse

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ────────────────────── 假摄像头 ──────────────────────


class FakeStream(MediaStream):
    """可控的媒体流：wait_ready 后才暴露原生分辨率。"""

    def __init__(
        self,
        width: int = 64,
        height: int = 48,
        ready_error: CameraError | None = None,
    ) -> None:
        self._native = (width, height)
        self.ready_error = ready_error
        self.reads = 0
        self.stopped = 0

    async def wait_ready(self) -> None:
        await asyncio.sleep(0)
        if self.ready_error is not None:
            raise self.ready_error
        self.width, self.height = self._native

    def read_frame(self) -> np.ndarray:
        self.reads += 1
        w, h = self._native
        return np.full((h, w, 3), 128, dtype=np.uint8)

    def stop(self) -> None:
        self.stopped += 1


class FakeCamera(Camera):
    def __init__(self, stream: FakeStream | None = None, error: CameraError | None = None) -> None:
        self.stream = stream or FakeStream()
        self.error = error
        self.open_calls = 0

    async def open(self) -> MediaStream:
        self.open_calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.stream


# ────────────────────── Fixtures ──────────────────────


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """宿主机上的 GEMINI_API_KEY / PORT 不影响测试。"""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("PORT", raising=False)


@pytest.fixture
def test_config() -> Settings:
    """加载测试专用配置。"""
    return load_settings(FIXTURES_DIR / "test_config.toml")


@pytest.fixture
def fake_stream() -> FakeStream:
    return FakeStream()


@pytest.fixture
def fake_camera(fake_stream) -> FakeCamera:
    return FakeCamera(fake_stream)


@pytest.fixture
def make_stream():
    """FakeStream 工厂。"""
    return FakeStream


@pytest.fixture
def make_camera():
    """FakeCamera 工厂。"""
    return FakeCamera


@pytest.fixture
def mock_vision() -> MagicMock:
    """Mock 视觉模型客户端 — 返回固定文本。"""
    vision = MagicMock()
    vision.model_name = "gemini-test"
    vision.start = MagicMock()
    vision.generate = AsyncMock(
        return_value=VisionResponse(text="Resembles a stock-photo model", finish_reason="STOP")
    )
    return vision


@pytest.fixture
def mock_relay() -> MagicMock:
    """Mock RelayClient。"""
    relay = MagicMock()
    relay.start = AsyncMock()
    relay.close = AsyncMock()
    relay.analyze = AsyncMock(return_value="Resembles a stock-photo model")
    return relay
