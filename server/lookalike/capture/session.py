"""采集状态机 — 显式状态 + 由状态推导的可用动作。"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lookalike.capture.camera import MediaStream


class CaptureState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    CAPTURED = "captured"
    ANALYZING = "analyzing"
    RESULT = "result"
    FAILED = "failed"


class Action(enum.Enum):
    START = "start"
    CAPTURE = "capture"
    ANALYZE = "analyze"
    STOP = "stop"


_TRANSITIONS: dict[CaptureState, set[CaptureState]] = {
    CaptureState.IDLE: {CaptureState.STREAMING},
    CaptureState.STREAMING: {CaptureState.CAPTURED, CaptureState.IDLE},
    CaptureState.CAPTURED: {CaptureState.CAPTURED, CaptureState.ANALYZING, CaptureState.IDLE},
    CaptureState.ANALYZING: {CaptureState.RESULT, CaptureState.FAILED},
    CaptureState.RESULT: {CaptureState.CAPTURED, CaptureState.ANALYZING, CaptureState.IDLE},
    CaptureState.FAILED: {CaptureState.CAPTURED, CaptureState.ANALYZING, CaptureState.IDLE},
}

# 流仍在运行、可以抓拍的状态
_CAN_CAPTURE = {
    CaptureState.STREAMING,
    CaptureState.CAPTURED,
    CaptureState.RESULT,
    CaptureState.FAILED,
}
_CAN_ANALYZE = {CaptureState.CAPTURED, CaptureState.RESULT, CaptureState.FAILED}


def check_transition(current: CaptureState, new: CaptureState) -> None:
    """校验合法路径，非法时抛 ValueError。"""
    if new not in _TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid state transition: {current.value} → {new.value}")


def permitted_actions(state: CaptureState, ready: bool) -> set[Action]:
    """当前状态下允许的动作。``ready`` 表示原生分辨率已知。"""
    actions: set[Action] = set()
    if state == CaptureState.IDLE:
        actions.add(Action.START)
    else:
        actions.add(Action.STOP)
    if state in _CAN_CAPTURE and ready:
        actions.add(Action.CAPTURE)
    if state in _CAN_ANALYZE:
        actions.add(Action.ANALYZE)
    return actions


class CameraSession:
    """包装一个活动的媒体流。"""

    def __init__(self, stream: MediaStream) -> None:
        self.stream = stream
        self.live: bool = True

    @property
    def width(self) -> int:
        return self.stream.width

    @property
    def height(self) -> int:
        return self.stream.height

    @property
    def ready(self) -> bool:
        return self.live and self.width > 0 and self.height > 0

    def release(self) -> None:
        if self.live:
            self.stream.stop()
            self.live = False


@dataclass(frozen=True)
class CapturedFrame:
    data: bytes
    data_url: str
    width: int
    height: int
    mime_type: str = "image/jpeg"
