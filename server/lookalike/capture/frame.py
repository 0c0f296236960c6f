"""帧冻结 — RGB 栅格 → JPEG → data URL。"""

from __future__ import annotations

import base64
import io

import numpy as np
from PIL import Image

from lookalike.capture.session import CapturedFrame

_PIL_FORMATS = {"image/jpeg": "JPEG", "image/png": "PNG", "image/webp": "WEBP"}


def to_data_url(data: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def strip_data_url_header(data_url: str) -> str:
    """去掉 ``data:...;base64,`` 头，只保留 base64 负载。"""
    _, sep, payload = data_url.partition(",")
    return payload if sep else data_url


def freeze_frame(
    raster: np.ndarray,
    width: int,
    height: int,
    quality: float = 0.9,
    mime_type: str = "image/jpeg",
) -> CapturedFrame:
    """把当前画面编码为定长的有损图片。

    输出尺寸严格等于流的原生 width×height；抓到的画面尺寸不同时先缩放。
    quality 取 0~1，与浏览器 canvas.toDataURL 的语义一致。
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid frame size: {width}x{height}")

    image = Image.fromarray(np.ascontiguousarray(raster[..., :3], dtype=np.uint8))
    if image.size != (width, height):
        image = image.resize((width, height))

    buf = io.BytesIO()
    image.save(buf, format=_PIL_FORMATS.get(mime_type, "JPEG"), quality=round(quality * 100))
    data = buf.getvalue()
    return CapturedFrame(
        data=data,
        data_url=to_data_url(data, mime_type),
        width=width,
        height=height,
        mime_type=mime_type,
    )
