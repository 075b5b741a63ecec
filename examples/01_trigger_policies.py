#!/usr/bin/env python3
"""
FaceScan 示例 01: 触发策略模拟

功能说明:
- 用模拟的检测序列驱动 StabilityPolicy
- 展示稳定进度、丢失人脸后的归零和冷却时间
- 对比固定间隔的 IntervalPolicy

依赖:
- 无（不需要摄像头和服务端）

运行方法:
    python examples/01_trigger_policies.py
"""

from facescan.detection.face import BoundingBox, progress_label
from facescan.scanning.policy import IntervalPolicy, StabilityPolicy


FACE = [BoundingBox(200, 120, 180, 180)]
FRAME_MS = 100


def stability_example():
    """稳定触发示例"""
    print("=" * 50)
    print("StabilityPolicy: 稳定 1000ms，冷却 3000ms")
    print("=" * 50)

    policy = StabilityPolicy(stability_ms=1000, cooldown_ms=3000)

    # 0-600ms 有人脸，700ms 丢失，之后一直有人脸
    timeline = []
    for t in range(0, 6000, FRAME_MS):
        present = not (700 <= t < 800)
        timeline.append((t, FACE if present else []))

    for now, faces in timeline:
        decision = policy.update(now, faces)
        state = policy.state(now)
        marker = "  <-- 触发" if decision.fire else ""
        label = progress_label(decision.progress) if faces else "-"
        print(f"  t={now:5d}ms  人脸={'有' if faces else '无'}  "
              f"进度={label:>12}  状态={state.phase.value}{marker}")


def interval_example():
    """固定间隔示例"""
    print("\n" + "=" * 50)
    print("IntervalPolicy: 每 3000ms 触发一次")
    print("=" * 50)

    policy = IntervalPolicy(interval_ms=3000)

    for now in range(0, 10000, 500):
        # 4000-5000ms 模拟请求进行中
        can_trigger = not (4000 <= now < 5000)
        decision = policy.update(now, can_trigger=can_trigger)
        if decision.fire:
            print(f"  t={now:5d}ms  触发")
        elif not can_trigger:
            print(f"  t={now:5d}ms  请求进行中，间隔已取消")


if __name__ == "__main__":
    stability_example()
    interval_example()
