#!/usr/bin/env python3
"""
FaceScan 示例 02: 摄像头扫描取码

功能说明:
- 打开摄像头，检测人脸并显示稳定进度
- 人脸稳定 1 秒后抓拍并提交到识别服务
- 识别成功后打印用户信息，按 r 重新扫描，按 q 退出

依赖:
- opencv-python (需要窗口显示)
- requests

运行方法:
    FACESCAN_ENDPOINT_URL=http://192.168.1.26:5001/api/qr/generate \\
        python examples/02_webcam_scan.py
"""

import logging
import sys

import cv2

from facescan.capture.camera import CameraUnavailableError
from facescan.config import config_from_env, create_session
from facescan.scanning.loop import ScanLoop
from facescan.scanning.session import STATUS_SUCCESS

WINDOW_TITLE = "Food Face Scan - r: scan again, q: quit"


def run():
    config = config_from_env()
    session = create_session(config)

    try:
        session.open()
    except CameraUnavailableError as e:
        print(f"❌ Camera access denied: {e}")
        sys.exit(1)

    latest = {"frame": None}
    loop = ScanLoop(session, fps=config.camera_fps, on_frame=lambda f: latest.update(frame=f))
    loop.start()

    printed = False
    try:
        while True:
            state = session.snapshot()

            frame = latest["frame"]
            if frame is not None:
                display = frame.copy()
                cv2.putText(display, state.status.replace("✅ ", "").replace("❌ ", ""),
                            (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 255), 2)
                cv2.imshow(WINDOW_TITLE, display)

            if state.status == STATUS_SUCCESS and not printed:
                user = state.user
                print("\n✅ QR Generated")
                if user is not None:
                    print(f"   Name:   {user.name}")
                    print(f"   Mobile: {user.mobile}")
                    print(f"   Role:   {user.role}")
                printed = True

            key = cv2.waitKey(30) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r") and state.has_result:
                session.reset_scan()
                printed = False
    finally:
        loop.stop()
        session.close()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    run()
