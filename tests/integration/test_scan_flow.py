"""
扫描流程集成测试

测试完整流程:
- 摄像头画面 → 人脸检测 → 稳定触发 → HTTP 提交 → 状态更新 → 重置
"""

import threading
import time

import pytest
import requests

from facescan.scanning.loop import ScanLoop
from facescan.scanning.policy import IntervalPolicy, StabilityPolicy
from facescan.scanning.session import (
    CaptureSession,
    STATUS_IDLE,
    STATUS_NOT_RECOGNIZED,
    STATUS_SUCCESS,
)


def wait_until(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def scan_session(fake_camera, fake_detector, api_client, clock):
    session = CaptureSession(
        camera=fake_camera,
        client=api_client,
        policy=StabilityPolicy(stability_ms=1000, cooldown_ms=3000),
        detector=fake_detector,
        clock=clock,
    )
    session.open()
    yield session
    session.close()


class TestStabilityFlow:
    """稳定触发流程测试"""

    def test_success_flow(self, scan_session, fake_detector, http_session, respond,
                          success_payload, face):
        """测试识别成功后停止触发"""
        respond(200, success_payload)
        fake_detector.faces = [face]

        for t in range(0, 5000, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        state = scan_session.snapshot()
        assert state.status == STATUS_SUCCESS
        assert state.qr_image == "https://qr-server.test/qr/42.png"
        assert state.user.mobile == "9876543210"
        assert http_session.post.call_count == 1

        _, kwargs = http_session.post.call_args
        name, body, content_type = kwargs["files"]["face_image"]
        assert body[:2] == b"\xff\xd8"
        assert content_type == "image/jpeg"

    def test_unknown_face_stays_armed(self, scan_session, fake_detector, http_session,
                                      unknown_face_payload, respond, face):
        """测试未识别时继续按冷却节奏重试"""
        respond(200, unknown_face_payload)
        fake_detector.faces = [face]

        for t in range(0, 4100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        assert scan_session.status == "Unknown face"
        assert scan_session.loading is False
        assert http_session.post.call_count == 2

    def test_network_failure_then_recovery(self, scan_session, fake_detector, http_session,
                                           respond, success_payload, face):
        """测试网络失败后下一次自然触发成功"""
        http_session.post.side_effect = requests.ConnectionError("unreachable")
        fake_detector.faces = [face]

        for t in range(0, 1100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        assert scan_session.status == STATUS_NOT_RECOGNIZED
        assert scan_session.loading is False

        http_session.post.side_effect = None
        respond(200, success_payload)

        for t in range(1100, 4100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        assert scan_session.status == STATUS_SUCCESS
        assert http_session.post.call_count == 2

    def test_server_error_message(self, scan_session, fake_detector, respond, face):
        """测试服务端错误消息显示"""
        respond(400, {"success": False, "message": "No face found in image"})
        fake_detector.faces = [face]

        for t in range(0, 1100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        assert scan_session.status == "No face found in image"

    def test_reset_after_success(self, scan_session, fake_detector, http_session, respond,
                                 success_payload, unknown_face_payload, face):
        """测试重置后重新扫描"""
        respond(200, success_payload)
        fake_detector.faces = [face]

        for t in range(0, 1100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)
        assert scan_session.snapshot().has_result is True

        scan_session.reset_scan()
        state = scan_session.snapshot()
        assert state.status == STATUS_IDLE
        assert state.qr_image is None
        assert state.user is None

        respond(200, unknown_face_payload)
        for t in range(5000, 6100, 100):
            scan_session.step(t)
            scan_session.wait_idle(2.0)

        assert http_session.post.call_count == 2
        assert scan_session.status == "Unknown face"


class TestIntervalFlow:
    """固定间隔流程测试"""

    def test_interval_submits_without_detector(self, fake_camera, api_client, http_session, clock):
        """测试固定间隔模式定时提交"""
        session = CaptureSession(fake_camera, api_client, IntervalPolicy(interval_ms=3000), clock=clock)
        session.open()

        for t in range(0, 9100, 100):
            session.step(t)
            session.wait_idle(2.0)

        assert http_session.post.call_count == 3
        session.close()


class TestLoopFlow:
    """后台循环流程测试"""

    def test_loop_until_success(self, fake_camera, fake_detector, api_client, http_session,
                                respond, success_payload, face):
        """测试后台循环运行直到识别成功"""
        respond(200, success_payload)
        fake_detector.faces = [face]

        session = CaptureSession(
            fake_camera, api_client,
            StabilityPolicy(stability_ms=50, cooldown_ms=200),
            fake_detector,
        )
        session.open()

        frames = []
        loop = ScanLoop(session, fps=100, on_frame=frames.append)
        loop.start()

        assert wait_until(lambda: session.snapshot().has_result)
        loop.stop()
        session.wait_idle(2.0)
        session.close()

        assert http_session.post.call_count == 1
        assert frames
        assert fake_camera.stop_calls == 1

    def test_close_releases_camera_mid_request(self, fake_camera, fake_detector, api_client,
                                               http_session, respond, success_payload):
        """测试请求进行中关闭会话"""
        release = threading.Event()
        respond(200, success_payload)
        response = http_session.post.return_value

        def slow_post(*args, **kwargs):
            release.wait(2.0)
            return response

        http_session.post.side_effect = slow_post

        session = CaptureSession(fake_camera, api_client, IntervalPolicy(), fake_detector)
        session.open()
        assert session.capture_and_submit() is True

        session.close()
        assert fake_camera.stop_calls == 1
        assert fake_camera.is_playing is False

        release.set()
        assert session.wait_idle(2.0)

        # 关闭后到达的响应不再更新状态
        assert session.snapshot().has_result is False
