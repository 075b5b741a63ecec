"""
配置模块

ScanConfig 汇总服务地址、摄像头、触发策略和检测器参数，
支持 JSON 文件保存/加载，以及通过环境变量覆盖服务地址
"""

import json
import logging
import os
from typing import Optional
from dataclasses import dataclass, asdict, fields, replace

from facescan.capture.camera import Camera, CameraConfig
from facescan.detection.face import DetectorConfig, FaceDetector
from facescan.scanning.client import DEFAULT_ENDPOINT_URL, QRApiClient
from facescan.scanning.policy import TriggerPolicy, create_policy
from facescan.scanning.session import CaptureSession

logger = logging.getLogger(__name__)

ENDPOINT_ENV_VAR = "FACESCAN_ENDPOINT_URL"


@dataclass
class ScanConfig:
    """扫描配置"""
    # 服务配置
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    request_timeout: float = 10.0
    image_field: str = "face_image"
    image_filename: str = "face.jpg"
    jpeg_quality: int = 90

    # 摄像头配置
    camera_source: int = 0
    camera_width: int = 640
    camera_height: int = 480
    camera_fps: int = 30

    # 触发配置
    mode: str = "stability"           # stability, interval
    stability_window_ms: int = 1000
    cooldown_window_ms: int = 3000
    scan_interval_ms: int = 3000

    # 检测器配置
    detector_scale_factor: float = 1.1
    detector_min_neighbors: int = 5
    detector_min_size: int = 80

    def camera_config(self) -> CameraConfig:
        return CameraConfig(
            source=self.camera_source,
            width=self.camera_width,
            height=self.camera_height,
            fps=self.camera_fps,
        )

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig(
            scale_factor=self.detector_scale_factor,
            min_neighbors=self.detector_min_neighbors,
            min_size=self.detector_min_size,
        )


def save_config(config: ScanConfig, path: str = "facescan.json") -> bool:
    """保存配置到文件"""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(config), f, indent=2, ensure_ascii=False)
        return True
    except OSError as e:
        logger.error(f"保存配置失败: {e}")
        return False


def load_config(path: str = "facescan.json") -> Optional[ScanConfig]:
    """从文件加载配置，忽略未知字段"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.error(f"加载配置失败: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"配置文件格式错误: {path}")
        return None

    known = {f.name for f in fields(ScanConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"忽略未知配置项: {sorted(unknown)}")

    try:
        return ScanConfig(**{k: v for k, v in data.items() if k in known})
    except TypeError as e:
        logger.error(f"加载配置失败: {e}")
        return None


def config_from_env(base: Optional[ScanConfig] = None) -> ScanConfig:
    """
    用环境变量覆盖服务地址

    Args:
        base: 基础配置，默认 ScanConfig()

    Returns:
        新的配置对象
    """
    config = base or ScanConfig()
    endpoint = os.environ.get(ENDPOINT_ENV_VAR)
    if endpoint:
        config = replace(config, endpoint_url=endpoint)
    return config


def create_trigger_policy(config: ScanConfig) -> TriggerPolicy:
    """根据配置创建触发策略"""
    return create_policy(
        mode=config.mode,
        stability_ms=config.stability_window_ms,
        cooldown_ms=config.cooldown_window_ms,
        interval_ms=config.scan_interval_ms,
    )


def create_session(config: Optional[ScanConfig] = None) -> CaptureSession:
    """
    便捷函数：根据配置组装采集会话（未打开）

    Args:
        config: 扫描配置

    Returns:
        CaptureSession
    """
    config = config or ScanConfig()
    policy = create_trigger_policy(config)

    client = QRApiClient(
        endpoint_url=config.endpoint_url,
        timeout=config.request_timeout,
        field_name=config.image_field,
        filename=config.image_filename,
    )

    detector = FaceDetector(config.detector_config()) if policy.needs_detector else None

    return CaptureSession(
        camera=Camera(config.camera_config()),
        client=client,
        policy=policy,
        detector=detector,
        jpeg_quality=config.jpeg_quality,
    )
