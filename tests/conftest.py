"""
测试共享 Fixtures

提供模拟摄像头、模拟检测器、模拟服务客户端和可控时钟
"""

import pytest
import numpy as np
from unittest.mock import MagicMock
from typing import List, Optional

from facescan.capture.camera import CameraUnavailableError
from facescan.detection.face import BoundingBox, DetectorInitError
from facescan.scanning.client import QRApiClient, ScanResponse, UserRecord


class FakeCamera:
    """模拟摄像头：总是返回同一帧"""

    def __init__(self, frame: Optional[np.ndarray] = None, fail_open: bool = False):
        self.frame = frame if frame is not None else np.full((480, 640, 3), 128, dtype=np.uint8)
        self.fail_open = fail_open
        self.running = False
        self.open_calls = 0
        self.stop_calls = 0

    def open(self):
        self.open_calls += 1
        if self.fail_open:
            raise CameraUnavailableError("Camera access denied")
        self.running = True

    def stop(self):
        self.stop_calls += 1
        self.running = False

    @property
    def is_playing(self) -> bool:
        return self.running and self.frame is not None

    def read_latest(self) -> Optional[np.ndarray]:
        if not self.running or self.frame is None:
            return None
        return self.frame.copy()


class FakeDetector:
    """模拟检测器：返回预设的人脸框"""

    def __init__(self, fail_load: bool = False):
        self.fail_load = fail_load
        self.faces: List[BoundingBox] = []
        self.loaded = False
        self.detect_calls = 0

    def load(self):
        if self.fail_load:
            raise DetectorInitError("model missing")
        self.loaded = True

    @property
    def is_ready(self) -> bool:
        return self.loaded

    def detect(self, frame):
        self.detect_calls += 1
        return list(self.faces)


class ManualClock:
    """手动推进的毫秒时钟"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


FACE = BoundingBox(200, 120, 180, 180)

SUCCESS_RESPONSE = ScanResponse(
    success=True,
    qr_image="data:image/png;base64,AAAA",
    user=UserRecord(name="Asha", mobile="9876543210", role="staff"),
)


@pytest.fixture
def fake_camera() -> FakeCamera:
    camera = FakeCamera()
    return camera


@pytest.fixture
def fake_detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def mock_client() -> MagicMock:
    """模拟服务客户端，默认返回识别失败"""
    client = MagicMock(spec=QRApiClient)
    client.generate.return_value = ScanResponse(success=False, message="Unknown face")
    return client


@pytest.fixture
def face() -> BoundingBox:
    return FACE


@pytest.fixture
def success_response() -> ScanResponse:
    return SUCCESS_RESPONSE
