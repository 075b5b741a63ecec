"""
人脸检测模块

基于 OpenCV Haar 级联分类器:
- 首次使用前必须加载模型 (load)
- 加载失败抛出 DetectorInitError
- 检测结果为显示分辨率下的边界框列表
"""

import cv2
import numpy as np
from typing import Optional, List, Tuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

CAPTURING_LABEL = "Capturing..."


class DetectorInitError(RuntimeError):
    """人脸检测模型初始化失败"""


@dataclass(frozen=True)
class BoundingBox:
    """人脸边界框"""
    x: int
    y: int
    width: int
    height: int

    @property
    def top_left(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def bottom_right(self) -> Tuple[int, int]:
        return (self.x + self.width, self.y + self.height)


@dataclass
class DetectorConfig:
    """检测器配置"""
    cascade_path: Optional[str] = None    # 级联模型路径，默认使用 OpenCV 自带模型
    scale_factor: float = 1.1             # 图像金字塔缩放系数
    min_neighbors: int = 5                # 最少邻居数
    min_size: int = 80                    # 最小人脸尺寸 (像素)


class FaceDetector:
    """
    人脸检测器

    使用示例:
    ```python
    detector = FaceDetector()
    detector.load()

    boxes = detector.detect(frame)
    for box in boxes:
        print(box.x, box.y, box.width, box.height)
    ```
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self._cascade = None

    def load(self):
        """
        加载级联分类器

        Raises:
            DetectorInitError: 模型文件不存在或无法解析
        """
        if self._cascade is not None:
            return

        path = self.config.cascade_path or (
            cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        )

        try:
            cascade = cv2.CascadeClassifier(path)
        except cv2.error as e:
            raise DetectorInitError(f"无法加载人脸模型 {path}: {e}") from e

        if cascade.empty():
            raise DetectorInitError(f"无法加载人脸模型: {path}")

        self._cascade = cascade
        logger.info(f"人脸模型加载成功: {path}")

    @property
    def is_ready(self) -> bool:
        """模型是否已加载"""
        return self._cascade is not None

    def detect(self, frame: np.ndarray) -> List[BoundingBox]:
        """
        检测画面中的人脸

        Args:
            frame: 输入图像 (BGR格式)

        Returns:
            边界框列表
        """
        if self._cascade is None:
            raise DetectorInitError("人脸模型尚未加载")

        if len(frame.shape) == 3:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        else:
            gray = frame

        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            minSize=(self.config.min_size, self.config.min_size),
        )

        return [BoundingBox(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]


def progress_label(progress: float) -> str:
    """
    生成进度标签

    Args:
        progress: 稳定进度 (0-1)

    Returns:
        "NN%"，满进度时为 "Capturing..."
    """
    progress = max(0.0, min(progress, 1.0))
    if progress >= 1.0:
        return CAPTURING_LABEL
    return f"{int(progress * 100)}%"


def draw_overlay(
    frame: np.ndarray,
    boxes: List[BoundingBox],
    progress: float = 0.0,
    color: Tuple[int, int, int] = (0, 255, 0),
) -> np.ndarray:
    """
    在画面副本上绘制人脸框和进度标签

    Args:
        frame: 原始图像（不会被修改）
        boxes: 人脸边界框
        progress: 稳定进度 (0-1)
        color: 框颜色 (BGR)

    Returns:
        带标注的新图像
    """
    overlay = frame.copy()
    label = progress_label(progress)

    for box in boxes:
        cv2.rectangle(overlay, box.top_left, box.bottom_right, color, 2)
        cv2.putText(
            overlay,
            label,
            (box.x, max(box.y - 10, 15)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            color,
            2
        )

    return overlay


def draw_scanning_banner(
    frame: np.ndarray,
    text: str = "Scanning face...",
    alpha: float = 0.5,
) -> np.ndarray:
    """
    提交进行中时的遮罩：整体调暗并在中央显示提示文字

    Args:
        frame: 图像（不会被修改）
        text: 提示文字
        alpha: 原画面保留比例

    Returns:
        新图像
    """
    dark = np.zeros_like(frame)
    banner = cv2.addWeighted(frame, alpha, dark, 1.0 - alpha, 0)

    h, w = banner.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX
    text_size = cv2.getTextSize(text, font, 1.0, 2)[0]
    x = max((w - text_size[0]) // 2, 0)
    y = (h + text_size[1]) // 2

    cv2.putText(banner, text, (x, y), font, 1.0, (255, 255, 255), 2)
    return banner
