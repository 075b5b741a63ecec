"""
采集会话模块

一次挂载对应一个 CaptureSession:
- 持有摄像头（独占，关闭时释放一次）
- 每帧执行检测并交给触发策略
- 触发后冻结原始帧，编码为 JPEG 并异步提交
- 维护状态文本、loading 标志和识别结果

所有状态读写都在锁内完成，触发判断读取的是当前最新状态
"""

import cv2
import numpy as np
from typing import Optional, Callable, List
from dataclasses import dataclass
import threading
import logging
import time

from facescan.capture.camera import Camera
from facescan.detection.face import (
    BoundingBox,
    DetectorInitError,
    FaceDetector,
    draw_overlay,
)
from facescan.scanning.client import QRApiClient, ScanRequestError, UserRecord
from facescan.scanning.policy import TriggerPolicy, StabilityPolicy

logger = logging.getLogger(__name__)

STATUS_IDLE = "Idle"
STATUS_SUBMITTING = "Scanning face..."
STATUS_SUCCESS = "✅ QR Generated"
STATUS_NOT_RECOGNIZED = "❌ Face not recognized"
STATUS_LOADING_MODEL = "Loading face model..."
STATUS_MODEL_FAILED = "❌ Face model failed to load"


def status_kind(status: str) -> str:
    """
    状态分类（用于界面配色）

    Returns:
        "success" / "error" / "scanning" / ""
    """
    if status == STATUS_SUCCESS:
        return "success"
    if "❌" in status:
        return "error"
    if status == STATUS_SUBMITTING:
        return "scanning"
    return ""


@dataclass(frozen=True)
class SessionState:
    """会话状态快照"""
    status: str = STATUS_IDLE
    loading: bool = False
    qr_image: Optional[str] = None
    user: Optional[UserRecord] = None
    detector_ready: bool = False
    closed: bool = False

    @property
    def has_result(self) -> bool:
        return self.qr_image is not None


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class CaptureSession:
    """
    人脸采集会话

    使用示例:
    ```python
    session = CaptureSession(
        camera=Camera(),
        client=QRApiClient("http://192.168.1.26:5001/api/qr/generate"),
        policy=StabilityPolicy(),
    )
    session.open()

    while True:
        display = session.step()
        state = session.snapshot()
        if state.has_result:
            print(state.user.name)
            break

    session.close()
    ```
    """

    def __init__(
        self,
        camera: Camera,
        client: QRApiClient,
        policy: Optional[TriggerPolicy] = None,
        detector: Optional[FaceDetector] = None,
        jpeg_quality: int = 90,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        初始化会话

        Args:
            camera: 摄像头
            client: 二维码服务客户端
            policy: 触发策略，默认 StabilityPolicy
            detector: 人脸检测器，策略需要时默认创建 FaceDetector
            jpeg_quality: JPEG 编码质量
            clock: 毫秒时钟，默认 time.monotonic
        """
        self.camera = camera
        self.client = client
        self.policy = policy or StabilityPolicy()
        if detector is None and self.policy.needs_detector:
            detector = FaceDetector()
        self.detector = detector
        self.jpeg_quality = jpeg_quality
        self._clock = clock or _monotonic_ms

        self._lock = threading.RLock()
        self._status = STATUS_IDLE
        self._loading = False
        self._qr_image: Optional[str] = None
        self._user: Optional[UserRecord] = None
        self._detector_ready = not self.policy.needs_detector
        self._closed = False
        self._worker: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def open(self):
        """
        打开摄像头并加载检测模型

        Raises:
            CameraUnavailableError: 摄像头无法打开
        """
        self.camera.open()
        if self.policy.needs_detector:
            self.load_detector()

    def load_detector(self) -> bool:
        """
        加载人脸模型

        失败时状态保持为 STATUS_MODEL_FAILED，检测循环不再工作

        Returns:
            是否加载成功
        """
        with self._lock:
            self._status = STATUS_LOADING_MODEL

        try:
            self.detector.load()
        except DetectorInitError as e:
            logger.error(f"人脸模型加载失败: {e}")
            with self._lock:
                self._detector_ready = False
                self._status = STATUS_MODEL_FAILED
            return False

        with self._lock:
            self._detector_ready = True
            if self._status == STATUS_LOADING_MODEL:
                self._status = STATUS_IDLE
        return True

    def close(self):
        """关闭会话，之后到达的响应不再更新状态"""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self.camera.stop()
        logger.info("采集会话已关闭")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        等待进行中的提交完成

        Returns:
            是否已无进行中的提交
        """
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            return not worker.is_alive()
        return True

    def __enter__(self) -> "CaptureSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionState:
        """当前状态快照"""
        with self._lock:
            return SessionState(
                status=self._status,
                loading=self._loading,
                qr_image=self._qr_image,
                user=self._user,
                detector_ready=self._detector_ready,
                closed=self._closed,
            )

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    @property
    def qr_image(self) -> Optional[str]:
        with self._lock:
            return self._qr_image

    @property
    def user(self) -> Optional[UserRecord]:
        with self._lock:
            return self._user

    @property
    def can_trigger(self) -> bool:
        """无提交进行中、无结果显示且会话未关闭"""
        with self._lock:
            return not self._closed and not self._loading and self._qr_image is None

    # ------------------------------------------------------------------
    # 检测循环
    # ------------------------------------------------------------------

    def step(self, now: Optional[float] = None) -> Optional[np.ndarray]:
        """
        执行一次循环迭代

        前置条件不满足（模型未就绪、摄像头无画面、已有结果）时不做任何工作

        Args:
            now: 当前时间 (ms)，默认读取时钟

        Returns:
            用于显示的画面（带人脸框），未工作时返回 None
        """
        with self._lock:
            if self._closed or not self._detector_ready or self._qr_image is not None:
                return None

        if not self.camera.is_playing:
            return None

        frame = self.camera.read_latest()
        if frame is None:
            return None

        if now is None:
            now = self._clock()

        faces: List[BoundingBox] = []
        if self.policy.needs_detector:
            faces = self.detector.detect(frame)

        with self._lock:
            decision = self.policy.update(now, faces, can_trigger=self.can_trigger)

        if decision.fire:
            logger.info("触发采集")
            self.capture_and_submit(frame)

        if self.policy.needs_detector:
            return draw_overlay(frame, faces, decision.progress)
        return frame

    # ------------------------------------------------------------------
    # 采集与提交
    # ------------------------------------------------------------------

    def capture_and_submit(self, frame: Optional[np.ndarray] = None) -> bool:
        """
        冻结一帧并异步提交

        正在提交或已有结果时直接返回

        Args:
            frame: 原始画面（不含叠加层），默认读取摄像头最新帧

        Returns:
            是否发起了提交
        """
        with self._lock:
            if self._closed or self._loading or self._qr_image is not None:
                return False
            self._loading = True
            self._status = STATUS_SUBMITTING

        if frame is None:
            frame = self.camera.read_latest()

        payload = self._encode(frame)
        if payload is None:
            logger.warning("画面编码失败，放弃本次提交")
            with self._lock:
                self._loading = False
            return False

        worker = threading.Thread(target=self._submit, args=(payload,), daemon=True)
        self._worker = worker
        worker.start()
        return True

    def _encode(self, frame: Optional[np.ndarray]) -> Optional[bytes]:
        """按原始分辨率编码为 JPEG"""
        if frame is None or frame.size == 0:
            return None

        ok, buffer = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            return None
        return buffer.tobytes()

    def _submit(self, payload: bytes):
        """提交线程"""
        try:
            response = self.client.generate(payload)
        except ScanRequestError as e:
            self._apply_failure(e.message)
        except Exception as e:
            logger.exception(f"提交时发生未知错误: {e}")
            self._apply_failure(None)
        else:
            if response.success:
                self._apply_success(response.qr_image, response.user)
            else:
                self._apply_failure(response.message)
        finally:
            with self._lock:
                if not self._closed:
                    self._loading = False

    def _apply_success(self, qr_image: Optional[str], user: Optional[UserRecord]):
        with self._lock:
            if self._closed:
                logger.debug("会话已关闭，忽略识别结果")
                return
            self._qr_image = qr_image or ""
            self._user = user
            self._status = STATUS_SUCCESS
        logger.info(f"二维码已生成: {user.name if user else ''}")

    def _apply_failure(self, message: Optional[str]):
        with self._lock:
            if self._closed:
                logger.debug("会话已关闭，忽略失败响应")
                return
            self._status = message or STATUS_NOT_RECOGNIZED

    def reset_scan(self):
        """清除结果，重新开始扫描"""
        with self._lock:
            self._qr_image = None
            self._user = None
            self._status = STATUS_IDLE
            self.policy.reset()
        logger.info("扫描已重置")
