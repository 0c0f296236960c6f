"""/api/analyze 请求/响应定义 — Pydantic 模型。"""

from __future__ import annotations

from pydantic import BaseModel

NO_IMAGE_ERROR = "No image data provided."
INTERNAL_ERROR = "Failed to analyze image due to an internal server error."
BODY_TOO_LARGE_ERROR = "Request body too large."


# ────────────────────── Client → Relay ──────────────────────

class AnalyzeRequest(BaseModel):
    image: str = ""  # base64，不带 data URL 头


# ────────────────────── Relay → Client ──────────────────────

class AnalyzeResponse(BaseModel):
    analysis: str


class ErrorResponse(BaseModel):
    error: str


# ────────────────────── 解析 ──────────────────────

def parse_analyze_request(data: object) -> AnalyzeRequest:
    """解析请求体；非对象或 image 缺失/为空时抛 ValueError。"""
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    image = data.get("image")
    if not isinstance(image, str) or not image:
        raise ValueError("Missing or empty 'image' field")
    return AnalyzeRequest(image=image)
