"""
人脸检测模块
"""

from facescan.detection.face import (
    BoundingBox,
    DetectorConfig,
    DetectorInitError,
    FaceDetector,
    draw_overlay,
    draw_scanning_banner,
    progress_label,
)

__all__ = [
    "BoundingBox",
    "DetectorConfig",
    "DetectorInitError",
    "FaceDetector",
    "draw_overlay",
    "draw_scanning_banner",
    "progress_label",
]
