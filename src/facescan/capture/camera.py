"""
摄像头视频流采集模块

负责打开面向用户的摄像头并在后台线程中持续读取最新帧:
- 打开失败时抛出 CameraUnavailableError（不做静默降级）
- stop() 只释放一次底层设备
- is_playing 表示已经收到至少一帧画面
"""

import cv2
import numpy as np
from typing import Optional, Union
from dataclasses import dataclass
import threading
import logging
import time

logger = logging.getLogger(__name__)


class CameraUnavailableError(RuntimeError):
    """摄像头无法打开（权限被拒绝或设备不存在）"""


@dataclass
class CameraConfig:
    """摄像头配置"""
    source: Union[int, str] = 0          # 视频源 (设备ID或URL/路径)
    width: int = 640                      # 分辨率宽度
    height: int = 480                     # 分辨率高度
    fps: int = 30                         # 帧率


class Camera:
    """
    摄像头视频流采集类

    使用示例:
    ```python
    camera = Camera(CameraConfig(source=0))
    camera.open()

    frame = camera.read_latest()

    camera.stop()

    # 或使用上下文管理器
    with Camera() as camera:
        frame = camera.read_latest()
    ```
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        """
        初始化摄像头

        Args:
            config: 摄像头配置，默认使用设备 0
        """
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._last_frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        启动摄像头

        Returns:
            是否成功启动
        """
        if self._running:
            return True

        self._cap = cv2.VideoCapture(self.config.source)

        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)

        # 设置缓冲区大小（减少延迟）
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()

        logger.info(f"摄像头已启动: source={self.config.source}")
        return True

    def open(self):
        """
        启动摄像头，失败时抛出异常

        Raises:
            CameraUnavailableError: 摄像头无法打开
        """
        if not self.start():
            raise CameraUnavailableError(
                f"Camera access denied or unavailable (source={self.config.source})"
            )

    def stop(self):
        """停止摄像头并释放设备"""
        self._running = False

        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("摄像头已释放")

        with self._lock:
            self._last_frame = None

    def _capture_loop(self):
        """帧采集循环（在独立线程中运行）"""
        while self._running and self._cap is not None:
            ret, frame = self._cap.read()

            if not ret:
                time.sleep(0.01)
                continue

            with self._lock:
                self._last_frame = frame

    def read_latest(self) -> Optional[np.ndarray]:
        """
        读取最新一帧

        Returns:
            最新图像帧的副本，没有画面时返回 None
        """
        with self._lock:
            return self._last_frame.copy() if self._last_frame is not None else None

    @property
    def is_running(self) -> bool:
        """是否正在运行"""
        return self._running

    @property
    def is_playing(self) -> bool:
        """是否正在出画面"""
        with self._lock:
            return self._running and self._last_frame is not None

    def __enter__(self) -> "Camera":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __del__(self):
        self.stop()
