"""E2E 测试专用 fixtures — mock 视觉模型，使用 TestClient。"""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from lookalike.app import create_app


@pytest.fixture
def relay_app(test_config, mock_vision):
    return create_app(test_config, vision=mock_vision)


@pytest.fixture
def client(relay_app):
    """跑完整 lifespan 的 TestClient。"""
    with TestClient(relay_app) as c:
        yield c
