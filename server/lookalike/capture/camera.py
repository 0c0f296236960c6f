"""摄像头端口 — 抽象媒体流 + OpenCV 实现。"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraError(Exception):
    """设备/权限错误，kind 为底层失败类别（如 NotAllowedError）。"""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"{kind} - {message}")
        self.kind = kind
        self.message = message


class MediaStream(ABC):
    """仅视频的活动流。width/height 在 wait_ready() 返回前为 0。"""

    width: int = 0
    height: int = 0

    @abstractmethod
    async def wait_ready(self) -> None:
        """挂起直到原生分辨率可知。"""

    @abstractmethod
    def read_frame(self) -> np.ndarray:
        """当前画面，H×W×3 RGB uint8。"""

    @abstractmethod
    def stop(self) -> None:
        """停止所有轨道，可重复调用。"""


class Camera(ABC):
    @abstractmethod
    async def open(self) -> MediaStream:
        """请求摄像头访问；失败抛 CameraError。"""


class OpenCVStream(MediaStream):
    def __init__(self, cap: cv2.VideoCapture, ready_timeout: float) -> None:
        self._cap = cap
        self._ready_timeout = ready_timeout
        self._stopped = False

    async def wait_ready(self) -> None:
        try:
            frame = await asyncio.wait_for(
                asyncio.to_thread(self._read_bgr), timeout=self._ready_timeout
            )
        except asyncio.TimeoutError as exc:
            raise CameraError("NotReadableError", "Timed out waiting for the first frame") from exc
        self.height, self.width = frame.shape[:2]
        logger.info("Camera stream ready: %dx%d", self.width, self.height)

    def _read_bgr(self) -> np.ndarray:
        if self._stopped:
            raise CameraError("InvalidStateError", "Stream has been stopped")
        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CameraError("NotReadableError", "Could not read a frame from the camera")
        return frame

    def read_frame(self) -> np.ndarray:
        return cv2.cvtColor(self._read_bgr(), cv2.COLOR_BGR2RGB)

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._cap.release()
        logger.info("Camera stream stopped")


class OpenCVCamera(Camera):
    """本地 USB 摄像头。"""

    def __init__(
        self,
        device: int = 0,
        width: int = 1280,
        height: int = 720,
        ready_timeout: float = 10.0,
    ) -> None:
        self.device = device
        self.width = width
        self.height = height
        self.ready_timeout = ready_timeout

    def _open_capture(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self.device)
        if not cap.isOpened():
            cap.release()
            raise CameraError("NotFoundError", f"Cannot open camera device {self.device}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        return cap

    async def open(self) -> MediaStream:
        logger.info("Requesting camera access (device %d)", self.device)
        cap = await asyncio.to_thread(self._open_capture)
        return OpenCVStream(cap, self.ready_timeout)
