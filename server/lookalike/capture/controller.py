"""采集控制器 — start → capture → analyze 流程编排。"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from lookalike.capture.camera import CameraError, OpenCVCamera
from lookalike.capture.client import RelayClient
from lookalike.capture.frame import freeze_frame, strip_data_url_header
from lookalike.capture.session import (
    Action,
    CameraSession,
    CapturedFrame,
    CaptureState,
    check_transition,
    permitted_actions,
)

if TYPE_CHECKING:
    from lookalike.capture.camera import Camera
    from lookalike.config import CaptureConfig

logger = logging.getLogger(__name__)

NO_TEXT_PLACEHOLDER = "No analysis text received."


class CaptureController:
    """每个实例独占一个摄像头会话和最近一次抓拍。

    所有动作在同一个事件循环里执行；analyze 进行中时 capture/analyze 均不可用，
    保证同一实例最多只有一个在途请求。
    """

    def __init__(
        self,
        camera: Camera,
        relay: RelayClient,
        quality: float = 0.9,
        mime_type: str = "image/jpeg",
    ) -> None:
        self.camera = camera
        self.relay = relay
        self.quality = quality
        self.mime_type = mime_type

        self.state: CaptureState = CaptureState.IDLE
        self.session: CameraSession | None = None
        self.frame: CapturedFrame | None = None
        self.status: str = ""
        self.result: str = ""

        # 在途请求与 stop() 代数，独立于 state
        self._inflight: bool = False
        self._generation: int = 0

    @classmethod
    def from_config(cls, config: CaptureConfig) -> CaptureController:
        camera = OpenCVCamera(config.device, config.width, config.height, config.ready_timeout)
        relay = RelayClient(config.relay_url, config.request_timeout)
        return cls(camera, relay, quality=config.jpeg_quality)

    async def __aenter__(self) -> CaptureController:
        await self.relay.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def ready(self) -> bool:
        return self.session is not None and self.session.ready

    @property
    def permitted(self) -> set[Action]:
        actions = permitted_actions(self.state, self.ready)
        if self._inflight:
            actions.discard(Action.ANALYZE)
        return actions

    def transition_to(self, new_state: CaptureState) -> None:
        check_transition(self.state, new_state)
        self.state = new_state

    # ────────────────────── 动作 ──────────────────────

    async def start(self) -> bool:
        """打开摄像头并等待原生分辨率。失败时保持 IDLE。"""
        if self.session is not None:
            return True

        self.status = "Requesting camera access..."
        try:
            stream = await self.camera.open()
        except CameraError as exc:
            self._start_failed(exc)
            return False

        self.session = CameraSession(stream)
        self.transition_to(CaptureState.STREAMING)
        try:
            await stream.wait_ready()
        except CameraError as exc:
            self.stop()
            self._start_failed(exc)
            return False
        except BaseException:
            self.stop()
            raise

        logger.info("Camera started: %dx%d", self.session.width, self.session.height)
        self.status = "Camera started. Ready to capture."
        return True

    def _start_failed(self, exc: CameraError) -> None:
        logger.error("Error accessing camera: %s", exc)
        self.status = f"Error: {exc.kind} - {exc.message}"

    def capture(self) -> CapturedFrame | None:
        """冻结当前画面。未就绪时只更新状态文本，不读帧。"""
        if Action.CAPTURE not in self.permitted:
            if self.state == CaptureState.ANALYZING:
                self.status = "Analysis in progress."
            else:
                self.status = "Camera not ready yet."
            return None

        session = self.session
        if session is None:
            self.status = "Camera not ready yet."
            return None

        self.status = "Capturing..."
        try:
            raster = session.stream.read_frame()
        except CameraError as exc:
            logger.error("Frame read failed: %s", exc)
            self.status = f"Error: {exc.kind} - {exc.message}"
            return None

        frame = freeze_frame(
            raster,
            session.width,
            session.height,
            quality=self.quality,
            mime_type=self.mime_type,
        )
        self.frame = frame
        self.transition_to(CaptureState.CAPTURED)
        logger.debug("Snapshot captured: %dx%d, %d bytes", frame.width, frame.height, len(frame.data))
        self.status = "Snapshot captured. Ready to analyze."
        return frame

    async def analyze(self) -> str | None:
        """把最近一次抓拍发给 relay。返回展示文本，未发请求或失败时返回 None。

        上一个请求未返回前（包括中途 stop() 又重新开始的情况）不会发出第二个请求；
        stop() 之前发出的请求，其结果到达后直接丢弃。
        """
        if self._inflight:
            logger.debug("Ignoring analyze: request already in flight")
            self.status = "Analysis in progress."
            return None
        if self.frame is None:
            self.status = "Please capture a snapshot first."
            return None

        self.transition_to(CaptureState.ANALYZING)
        self.result = ""
        self.status = "Analyzing... Please wait."
        payload = strip_data_url_header(self.frame.data_url)
        generation = self._generation
        self._inflight = True

        try:
            text = await self.relay.analyze(payload)
        except asyncio.CancelledError:
            if generation == self._generation:
                self.transition_to(CaptureState.FAILED)
                self.status = "Analysis failed."
            raise
        except Exception as exc:
            logger.exception("Error during analysis")
            if generation != self._generation:
                return None
            self.transition_to(CaptureState.FAILED)
            self.result = f"Analysis failed: {exc}"
            self.status = "Analysis failed."
            return None
        finally:
            self._inflight = False

        if generation != self._generation:
            logger.info("Discarding analysis result issued before stop()")
            return None
        self.transition_to(CaptureState.RESULT)
        self.result = text or NO_TEXT_PLACEHOLDER
        self.status = "Analysis complete."
        return self.result

    def stop(self) -> None:
        """停止所有轨道并释放会话；任何状态下都可调用。"""
        if self.session is not None:
            self.session.release()
            self.session = None
            logger.info("Camera session released")
        self.frame = None
        self.state = CaptureState.IDLE
        self._generation += 1

    async def close(self) -> None:
        self.stop()
        await self.relay.close()
