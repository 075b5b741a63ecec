"""
集成测试共享 Fixtures

提供模拟 HTTP 会话、服务端响应和短窗口配置
"""

import pytest
import requests
from unittest.mock import MagicMock

from facescan.scanning.client import QRApiClient

ENDPOINT = "http://qr-server.test/api/qr/generate"


def make_http_response(status_code: int, payload) -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.json.return_value = payload
    return resp


@pytest.fixture
def success_payload() -> dict:
    """识别成功的响应体"""
    return {
        "success": True,
        "data": {
            "qr_image": "https://qr-server.test/qr/42.png",
            "user": {"name": "Asha", "mobile": "9876543210", "role": "staff"},
        },
    }


@pytest.fixture
def unknown_face_payload() -> dict:
    """未识别的响应体"""
    return {"success": False, "message": "Unknown face"}


@pytest.fixture
def http_session() -> MagicMock:
    """模拟 requests 会话，默认返回未识别"""
    http = MagicMock(spec=requests.Session)
    http.post.return_value = make_http_response(200, {"success": False, "message": "Unknown face"})
    return http


@pytest.fixture
def api_client(http_session) -> QRApiClient:
    return QRApiClient(ENDPOINT, timeout=2.0, session=http_session)


@pytest.fixture
def respond(http_session):
    """设置下一次请求的响应: respond(status_code, payload)"""
    def _respond(status_code: int, payload):
        http_session.post.return_value = make_http_response(status_code, payload)
    return _respond
