"""相似度分析 — 固定 prompt + 图片 → 模型文本。"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lookalike.relay.vision import VisionClient

logger = logging.getLogger(__name__)

# 固定 prompt，不接受用户配置
LOOKALIKE_PROMPT = """Analyze the face in this image. Setting aside major fame, does this person strongly remind you of *anyone* whose image might be publicly available on the internet? Think broadly – from well-known figures to people notable in specific fields, historical images, or even character archetypes represented online (like stock photo models).

If you find a potential resemblance:
1.  Identify or describe the person/people they resemble. If naming someone, focus on those with a public identity. If it's more of a 'type', describe that (e.g., 'resembles models often seen in X type of advertisement'). **Crucially, do not attempt to identify or guess the identity of private individuals.**
2.  Explain *why* – which specific facial features (eyes, nose, mouth shape, face structure, hair, etc.) create this resemblance?

If no particular resemblance stands out, simply state that. Focus on reasonably clear similarities."""

_PREVIEW_CHARS = 50


class Analyzer:
    """无状态的分析器：一次 analyze 对应一次上游调用。"""

    def __init__(self, vision: VisionClient, mime_type: str = "image/jpeg") -> None:
        self.vision = vision
        self.mime_type = mime_type

    async def analyze(self, image_base64: str) -> str:
        """返回模型文本（可能为空）。

        被安全策略拦截时只记录警告并透传已提取的文本，不转换为错误。
        调用失败的异常原样抛给上层。
        """
        logger.info("Image data received (preview): %s...", image_base64[:_PREVIEW_CHARS])
        logger.debug("Using prompt: %r", LOOKALIKE_PROMPT)

        try:
            result = await self.vision.generate(LOOKALIKE_PROMPT, image_base64, self.mime_type)
        except Exception as exc:
            if "SAFETY" in str(exc):
                logger.error("Vision call failed, likely related to safety settings or blocked content")
            raise

        logger.info(
            "Vision response: block_reason=%s finish_reason=%s safety_ratings=%s",
            result.block_reason,
            result.finish_reason,
            result.safety_ratings,
        )
        logger.debug("Extracted text: %r", result.text)

        if result.blocked:
            logger.warning(
                "Response potentially blocked (reason: %s); analysis text may be empty or incomplete",
                result.block_reason,
            )
        return result.text
