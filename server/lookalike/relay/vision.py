"""视觉语言模型客户端 — Google Gemini 多模态调用。"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import google.generativeai as genai

if TYPE_CHECKING:
    from lookalike.config import GeminiConfig

logger = logging.getLogger(__name__)


@dataclass
class VisionResponse:
    """一次模型调用的归一化结果（文本 + 安全元数据）。"""

    text: str
    block_reason: str | None = None
    finish_reason: str | None = None
    safety_ratings: list[str] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.block_reason is not None


def _enum_name(value: Any) -> str | None:
    """proto 枚举 → 名称；0 / UNSPECIFIED 视为无。"""
    if value is None or not value:
        return None
    name = getattr(value, "name", None) or str(value)
    if name.endswith("_UNSPECIFIED"):
        return None
    return name


def to_vision_response(response: Any) -> VisionResponse:
    """从 SDK 响应对象提取文本、block reason、finish reason、安全评级。"""
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = _enum_name(getattr(feedback, "block_reason", None))

    candidates = list(getattr(response, "candidates", None) or [])
    finish_reason = None
    ratings: list[str] = []
    if candidates:
        first = candidates[0]
        finish_reason = _enum_name(getattr(first, "finish_reason", None))
        for rating in getattr(first, "safety_ratings", None) or []:
            category = _enum_name(getattr(rating, "category", None))
            probability = _enum_name(getattr(rating, "probability", None))
            ratings.append(f"{category}={probability}")

    try:
        text = response.text or ""
    except ValueError:
        # SDK 在无可用 part 时抛 ValueError；被拦截的响应按空文本透传
        if block_reason is None and finish_reason != "SAFETY":
            raise
        text = ""

    return VisionResponse(
        text=text,
        block_reason=block_reason,
        finish_reason=finish_reason,
        safety_ratings=ratings,
    )


class VisionClient:
    """Gemini 多模态客户端，每次 generate 只发一次上游请求。"""

    def __init__(self, config: GeminiConfig) -> None:
        self.config = config
        self._model: genai.GenerativeModel | None = None

    @property
    def model_name(self) -> str:
        return self.config.model

    def start(self) -> None:
        genai.configure(api_key=self.config.api_key)
        self._model = genai.GenerativeModel(self.config.model)
        logger.info("Using Gemini model: %s", self.config.model)

    async def generate(
        self, prompt: str, image_base64: str, mime_type: str
    ) -> VisionResponse:
        """prompt + 单张内联图片 → VisionResponse。失败不重试。"""
        if self._model is None:
            raise RuntimeError("Vision client not started")

        image_part = {"mime_type": mime_type, "data": base64.b64decode(image_base64)}
        response = await self._model.generate_content_async([prompt, image_part])
        return to_vision_response(response)
