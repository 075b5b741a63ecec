"""
扫描循环

按帧率反复调用 CaptureSession.step()，可显式取消:
- start() 时创建取消令牌，由工作线程持有
- stop() 设置令牌并等待线程退出
"""

import numpy as np
from typing import Optional, Callable
import threading
import logging
import time

from facescan.scanning.session import CaptureSession

logger = logging.getLogger(__name__)


class ScanLoop:
    """
    扫描循环

    使用示例:
    ```python
    loop = ScanLoop(session, fps=30, on_frame=lambda f: cv2.imshow("scan", f))
    loop.start()
    ...
    loop.stop()
    session.close()
    ```
    """

    def __init__(
        self,
        session: CaptureSession,
        fps: float = 30,
        on_frame: Optional[Callable[[np.ndarray], None]] = None
    ):
        """
        初始化扫描循环

        Args:
            session: 采集会话
            fps: 循环频率上限
            on_frame: 每帧显示回调
        """
        self.session = session
        self.fps = fps
        self.on_frame = on_frame
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None
        self._iterations = 0

    def start(self) -> bool:
        """
        启动循环

        Returns:
            是否新启动了循环
        """
        if self.is_running:
            return False

        cancel = threading.Event()
        self._cancel = cancel
        self._thread = threading.Thread(target=self._run, args=(cancel,), daemon=True)
        self._thread.start()
        logger.info("扫描循环已启动")
        return True

    def stop(self, timeout: float = 2.0):
        """取消循环并等待退出"""
        if self._cancel is not None:
            self._cancel.set()

        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("扫描循环已停止")

    def _run(self, cancel: threading.Event):
        """循环主体（在独立线程中运行）"""
        period = 1.0 / self.fps if self.fps > 0 else 0.0

        while not cancel.is_set():
            started = time.monotonic()

            try:
                frame = self.session.step()
            except Exception as e:
                logger.error(f"扫描循环迭代失败: {e}")
                frame = None

            self._iterations += 1

            if frame is not None and self.on_frame is not None and not cancel.is_set():
                try:
                    self.on_frame(frame)
                except Exception as e:
                    logger.error(f"画面回调执行失败: {e}")

            remaining = period - (time.monotonic() - started)
            if remaining > 0:
                cancel.wait(remaining)

    @property
    def is_running(self) -> bool:
        """是否正在运行"""
        return self._thread is not None and self._thread.is_alive()

    @property
    def iterations(self) -> int:
        """已执行的迭代次数"""
        return self._iterations
