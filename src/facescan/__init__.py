"""
FaceScan QR - 人脸扫描取码终端

摄像头采集画面，检测到稳定人脸后抓拍并提交到识别服务，
服务返回二维码和用户信息。
"""

__version__ = "0.1.0"
__author__ = "FaceScan Team"

from facescan.capture import Camera
from facescan.config import ScanConfig, create_session
from facescan.scanning import CaptureSession, QRApiClient, ScanLoop

__all__ = [
    "Camera",
    "CaptureSession",
    "QRApiClient",
    "ScanConfig",
    "ScanLoop",
    "create_session",
    "__version__",
]
