"""
扫描模块

采集触发策略、二维码服务客户端、采集会话与扫描循环
"""

from facescan.scanning.policy import (
    PolicyDecision,
    PolicyPhase,
    PolicyState,
    TriggerPolicy,
    IntervalPolicy,
    StabilityPolicy,
    create_policy,
)

from facescan.scanning.client import (
    QRApiClient,
    ScanRequestError,
    ScanResponse,
    UserRecord,
    decode_qr_image,
)

from facescan.scanning.session import (
    CaptureSession,
    SessionState,
    STATUS_IDLE,
    STATUS_SUBMITTING,
    STATUS_SUCCESS,
    STATUS_NOT_RECOGNIZED,
    STATUS_LOADING_MODEL,
    STATUS_MODEL_FAILED,
    status_kind,
)

from facescan.scanning.loop import ScanLoop

__all__ = [
    # policy
    "PolicyDecision",
    "PolicyPhase",
    "PolicyState",
    "TriggerPolicy",
    "IntervalPolicy",
    "StabilityPolicy",
    "create_policy",
    # client
    "QRApiClient",
    "ScanRequestError",
    "ScanResponse",
    "UserRecord",
    "decode_qr_image",
    # session
    "CaptureSession",
    "SessionState",
    "STATUS_IDLE",
    "STATUS_SUBMITTING",
    "STATUS_SUCCESS",
    "STATUS_NOT_RECOGNIZED",
    "STATUS_LOADING_MODEL",
    "STATUS_MODEL_FAILED",
    "status_kind",
    # loop
    "ScanLoop",
]
