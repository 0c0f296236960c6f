"""Relay 客户端 — POST /api/analyze。"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """传输失败或非 2xx 响应。status 为 None 表示请求未得到响应。"""

    def __init__(self, status: int | None, detail: str | None = None) -> None:
        if status is None:
            message = f"Request failed: {detail}"
        else:
            message = f"HTTP error! status: {status}"
            if detail is not None:
                message += f" - {detail}"
        super().__init__(message)
        self.status = status
        self.detail = detail


class RelayClient:
    """单次请求/响应，不重试。"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def analyze(self, image_base64: str) -> str:
        """发送不带 data URL 头的 base64，返回 analysis 字段（可能为空）。"""
        if not self._client:
            raise RuntimeError("Relay client not started")

        try:
            resp = await self._client.post("/api/analyze", json={"image": image_base64})
        except httpx.HTTPError as exc:
            raise RelayError(None, str(exc)) from exc

        if not resp.is_success:
            detail = None
            try:
                detail = resp.json().get("error") or "Unknown backend error"
            except (ValueError, AttributeError):
                pass
            raise RelayError(resp.status_code, detail)

        data = resp.json()
        analysis = data.get("analysis") if isinstance(data, dict) else None
        return analysis if isinstance(analysis, str) else ""
