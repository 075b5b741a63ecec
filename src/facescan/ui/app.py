"""
Streamlit 扫描界面

功能：
- 实时视频预览（人脸框与稳定进度）
- 状态提示
- 识别成功后显示二维码和用户信息
- 「再次扫描」重置

运行方式:
    streamlit run src/facescan/ui/app.py
"""

import streamlit as st
import cv2
import numpy as np
import time
from typing import Optional, List
import threading
import logging

from facescan.capture.camera import CameraUnavailableError
from facescan.config import ScanConfig, config_from_env, create_session, save_config, load_config
from facescan.detection.face import draw_scanning_banner
from facescan.scanning.client import UserRecord, decode_qr_image
from facescan.scanning.loop import ScanLoop
from facescan.scanning.session import CaptureSession, SessionState, status_kind

logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Food Face Scan",
    page_icon="🍽️",
    layout="centered",
)

BADGE_RENDERERS = {
    "success": "success",
    "error": "error",
    "scanning": "info",
    "": "warning",
}

CAMERA_DENIED_MESSAGE = "❌ Camera access denied"


class LatestFrame:
    """扫描线程与页面之间共享的最新画面"""

    def __init__(self):
        self._frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def put(self, frame: np.ndarray):
        with self._lock:
            self._frame = frame

    def get(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._frame


def init_session_state():
    """初始化会话状态"""
    if "config" not in st.session_state:
        st.session_state.config = config_from_env()

    if "scan_session" not in st.session_state:
        st.session_state.scan_session = None

    if "scan_loop" not in st.session_state:
        st.session_state.scan_loop = None

    if "latest_frame" not in st.session_state:
        st.session_state.latest_frame = LatestFrame()

    if "camera_error" not in st.session_state:
        st.session_state.camera_error = None


def render_sidebar():
    """渲染侧边栏"""
    st.sidebar.title("⚙️ 配置")

    config: ScanConfig = st.session_state.config

    with st.sidebar.expander("🌐 服务", expanded=True):
        config.endpoint_url = st.text_input("服务地址", value=config.endpoint_url)
        config.request_timeout = st.number_input(
            "超时 (秒)",
            min_value=1.0,
            max_value=60.0,
            value=float(config.request_timeout)
        )

    with st.sidebar.expander("📹 摄像头", expanded=False):
        config.camera_source = st.number_input(
            "设备ID",
            min_value=0,
            max_value=10,
            value=config.camera_source
        )
        config.camera_fps = st.slider("帧率", min_value=1, max_value=60, value=config.camera_fps)

    with st.sidebar.expander("🎯 触发方式", expanded=False):
        config.mode = st.selectbox(
            "模式",
            options=["stability", "interval"],
            index=0 if config.mode == "stability" else 1,
            format_func=lambda x: {
                "stability": "人脸稳定后采集",
                "interval": "固定间隔采集"
            }[x]
        )

        if config.mode == "stability":
            config.stability_window_ms = st.slider(
                "稳定时间 (ms)", min_value=200, max_value=5000,
                value=config.stability_window_ms, step=100
            )
            config.cooldown_window_ms = st.slider(
                "冷却时间 (ms)", min_value=500, max_value=10000,
                value=config.cooldown_window_ms, step=100
            )
        else:
            config.scan_interval_ms = st.slider(
                "采集间隔 (ms)", min_value=500, max_value=10000,
                value=config.scan_interval_ms, step=100
            )

    st.sidebar.divider()

    col1, col2 = st.sidebar.columns(2)
    with col1:
        if st.button("💾 保存配置", use_container_width=True):
            if save_config(config):
                st.success("配置已保存")
            else:
                st.error("保存失败")

    with col2:
        if st.button("📂 加载配置", use_container_width=True):
            loaded = load_config()
            if loaded:
                st.session_state.config = loaded
                st.success("配置已加载")
                st.rerun()


def start_scanning() -> bool:
    """
    打开摄像头并启动扫描循环

    失败时错误信息保存在 session_state.camera_error，直到下次成功启动
    """
    config: ScanConfig = st.session_state.config
    session = create_session(config)

    try:
        session.open()
    except CameraUnavailableError as e:
        logger.error(f"摄像头打开失败: {e}")
        session.close()
        st.session_state.camera_error = CAMERA_DENIED_MESSAGE
        return False

    loop = ScanLoop(session, fps=config.camera_fps, on_frame=st.session_state.latest_frame.put)
    loop.start()

    st.session_state.scan_session = session
    st.session_state.scan_loop = loop
    st.session_state.camera_error = None
    return True


def stop_scanning():
    """停止循环并释放摄像头"""
    loop: Optional[ScanLoop] = st.session_state.scan_loop
    session: Optional[CaptureSession] = st.session_state.scan_session

    if loop is not None:
        loop.stop()
    if session is not None:
        session.close()

    st.session_state.scan_loop = None
    st.session_state.scan_session = None


def render_status(placeholder, status: str):
    """按状态类型显示状态提示"""
    renderer = getattr(placeholder, BADGE_RENDERERS[status_kind(status)])
    renderer(status)


def render_user_lines(user: Optional[UserRecord]) -> List[str]:
    """用户信息的显示行"""
    if user is None:
        return []
    return [
        f"**Name:** {user.name}",
        f"**Mobile:** {user.mobile}",
        f"**Role:** {user.role}",
    ]


def render_result(session: CaptureSession, state: SessionState):
    """渲染识别结果"""
    render_status(st, state.status)

    qr = decode_qr_image(state.qr_image)
    if qr is not None:
        st.image(cv2.cvtColor(qr, cv2.COLOR_BGR2RGB), caption="QR Code")
    elif state.qr_image:
        st.image(state.qr_image, caption="QR Code")

    for line in render_user_lines(state.user):
        st.markdown(line)

    if st.button("🔄 Scan Again", type="primary"):
        session.reset_scan()
        st.rerun()


def run_preview(session: CaptureSession, loop: Optional[ScanLoop], fps: int):
    """刷新预览画面，直到出现识别结果或扫描停止"""
    video_placeholder = st.empty()
    status_placeholder = st.empty()
    latest: LatestFrame = st.session_state.latest_frame

    while True:
        state = session.snapshot()
        if state.has_result:
            st.rerun()

        frame = latest.get()
        if frame is not None:
            if state.loading:
                frame = draw_scanning_banner(frame)
            video_placeholder.image(
                cv2.cvtColor(frame, cv2.COLOR_BGR2RGB),
                use_container_width=True
            )
        render_status(status_placeholder, state.status)

        if st.session_state.scan_session is not session:
            break
        if loop is None or not loop.is_running:
            break

        time.sleep(1.0 / max(fps, 1))


def create_placeholder_image() -> np.ndarray:
    """创建占位图像"""
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[:] = (40, 40, 40)

    text = "Camera Offline"
    font = cv2.FONT_HERSHEY_SIMPLEX
    font_scale = 1.5
    thickness = 2
    text_size = cv2.getTextSize(text, font, font_scale, thickness)[0]

    x = (640 - text_size[0]) // 2
    y = (480 + text_size[1]) // 2

    cv2.putText(img, text, (x, y), font, font_scale, (100, 100, 100), thickness)

    return img


def render_main_content():
    """渲染主内容区域"""
    st.title("🍽️ Food Face Scan")

    running = st.session_state.scan_session is not None

    if st.button(
        "▶️ 启动" if not running else "⏹️ 停止",
        type="primary" if not running else "secondary"
    ):
        if running:
            stop_scanning()
        else:
            start_scanning()
        st.rerun()

    if st.session_state.camera_error:
        st.error(st.session_state.camera_error)

    session: Optional[CaptureSession] = st.session_state.scan_session
    if session is None:
        st.image(create_placeholder_image(), caption="点击「启动」开始扫描", use_container_width=True)
        return

    state = session.snapshot()
    if state.has_result:
        render_result(session, state)
    else:
        run_preview(session, st.session_state.scan_loop, st.session_state.config.camera_fps)


def main():
    """主函数"""
    init_session_state()
    render_sidebar()
    render_main_content()


if __name__ == "__main__":
    main()
