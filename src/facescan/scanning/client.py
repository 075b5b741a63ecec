"""
二维码生成服务客户端

以 multipart/form-data 上传人脸 JPEG，服务端返回:
    {"success": true,
     "data": {"qr_image": "...", "user": {"name", "mobile", "role"}},
     "message": "..."}

基于 requests 实现
"""

import base64
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass

import cv2
import numpy as np
import requests

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "http://localhost:5001/api/qr/generate"


class ScanRequestError(Exception):
    """
    提交失败（网络错误或服务端错误）

    Attributes:
        message: 服务端返回的错误消息，没有时为 None
        status_code: HTTP 状态码，无响应时为 None
    """

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or "scan request failed")
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class UserRecord:
    """识别到的用户信息"""
    name: str = ""
    mobile: str = ""
    role: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["UserRecord"]:
        if not data:
            return None
        return cls(
            name=str(data.get("name") or ""),
            mobile=str(data.get("mobile") or ""),
            role=str(data.get("role") or ""),
        )


@dataclass(frozen=True)
class ScanResponse:
    """服务端响应"""
    success: bool
    qr_image: Optional[str] = None        # data URI 或 URL
    user: Optional[UserRecord] = None
    message: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "ScanResponse":
        data = payload.get("data") or {}
        return cls(
            success=bool(payload.get("success")),
            qr_image=data.get("qr_image"),
            user=UserRecord.from_dict(data.get("user")),
            message=payload.get("message") or None,
        )


class QRApiClient:
    """
    二维码生成服务客户端

    使用示例:
    ```python
    client = QRApiClient("http://192.168.1.26:5001/api/qr/generate")
    ok, jpeg = cv2.imencode(".jpg", frame)
    response = client.generate(jpeg.tobytes())
    if response.success:
        print(response.user.name)
    ```
    """

    def __init__(
        self,
        endpoint_url: str = DEFAULT_ENDPOINT_URL,
        timeout: float = 10.0,
        field_name: str = "face_image",
        filename: str = "face.jpg",
        session: Optional[requests.Session] = None
    ):
        """
        初始化客户端

        Args:
            endpoint_url: 服务地址
            timeout: 请求超时（秒）
            field_name: 表单字段名
            filename: 上传文件名
            session: 可复用的 requests 会话
        """
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.field_name = field_name
        self.filename = filename
        self._http = session or requests.Session()

    def generate(self, image_bytes: bytes) -> ScanResponse:
        """
        上传人脸图像并获取二维码

        Args:
            image_bytes: JPEG 编码的图像

        Returns:
            服务端响应（success 可能为 False）

        Raises:
            ScanRequestError: 网络错误或服务端返回错误状态
        """
        files = {self.field_name: (self.filename, image_bytes, "image/jpeg")}

        try:
            resp = self._http.post(self.endpoint_url, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"请求失败: {e}")
            raise ScanRequestError() from e

        if not resp.ok:
            message = _error_message(resp)
            logger.error(f"服务端返回错误 {resp.status_code}: {message}")
            raise ScanRequestError(message, resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(f"响应不是有效的 JSON: {e}")
            raise ScanRequestError(status_code=resp.status_code) from e

        if not isinstance(payload, dict):
            raise ScanRequestError(status_code=resp.status_code)

        response = ScanResponse.from_json(payload)
        if not response.success:
            logger.warning(f"识别失败: {payload}")
        return response

    def close(self):
        """关闭 HTTP 会话"""
        self._http.close()


def _error_message(resp: requests.Response) -> Optional[str]:
    """从错误响应中提取 message 字段"""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or None
    return None


def decode_qr_image(ref: Optional[str]) -> Optional[np.ndarray]:
    """
    解码 data URI 形式的二维码图像

    Args:
        ref: data URI (data:image/png;base64,...) 或 URL

    Returns:
        BGR 图像，URL 或无法解码时返回 None
    """
    if not ref or not ref.startswith("data:"):
        return None

    _, _, encoded = ref.partition(",")
    try:
        binary = base64.b64decode(encoded)
    except ValueError:
        return None

    array = np.frombuffer(binary, dtype=np.uint8)
    if array.size == 0:
        return None
    return cv2.imdecode(array, cv2.IMREAD_COLOR)
