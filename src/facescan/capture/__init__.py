"""
图像采集模块

负责从面向用户的摄像头获取视频流
"""

from facescan.capture.camera import Camera, CameraConfig, CameraUnavailableError

__all__ = [
    "Camera",
    "CameraConfig",
    "CameraUnavailableError",
]
