"""
触发策略模块

决定何时冻结一帧并提交识别:
- IntervalPolicy: 固定间隔触发（无人脸模型）
- StabilityPolicy: 人脸持续稳定后触发，并带冷却时间

所有时间单位为毫秒
"""

from typing import Optional, Sequence
from dataclasses import dataclass
from enum import Enum


class PolicyPhase(Enum):
    """稳定策略状态"""
    NO_FACE = "no_face"               # 未检测到人脸
    FACE_DETECTED = "face_detected"   # 检测到人脸，正在累积稳定时间
    COOLDOWN = "cooldown"             # 刚触发过，冷却中


@dataclass(frozen=True)
class PolicyState:
    """策略状态快照"""
    phase: PolicyPhase
    stable_since: Optional[float] = None   # FACE_DETECTED 起始时间
    cooldown_until: Optional[float] = None # COOLDOWN 结束时间


@dataclass(frozen=True)
class PolicyDecision:
    """单帧决策结果"""
    fire: bool = False                # 是否触发采集
    progress: float = 0.0             # 稳定进度 (0-1)


class TriggerPolicy:
    """
    触发策略基类

    每帧调用一次 update()，返回是否触发
    """

    needs_detector = False

    def update(
        self,
        now: float,
        faces: Sequence = (),
        can_trigger: bool = True
    ) -> PolicyDecision:
        """
        根据当前帧更新策略

        Args:
            now: 当前时间 (ms)
            faces: 当前帧检测到的人脸
            can_trigger: 当前是否允许提交（无请求进行中且无结果显示）

        Returns:
            决策结果
        """
        raise NotImplementedError

    def reset(self):
        """重置计时"""
        raise NotImplementedError


class IntervalPolicy(TriggerPolicy):
    """
    固定间隔触发策略

    只要允许提交，每隔 interval_ms 触发一次，不检查人脸。
    条件变为不允许时取消当前间隔，重新允许后从零开始计时。

    使用示例:
    ```python
    policy = IntervalPolicy(interval_ms=3000)
    decision = policy.update(now_ms, can_trigger=True)
    ```
    """

    def __init__(self, interval_ms: float = 3000):
        self.interval_ms = interval_ms
        self._armed_at: Optional[float] = None

    def update(
        self,
        now: float,
        faces: Sequence = (),
        can_trigger: bool = True
    ) -> PolicyDecision:
        if not can_trigger:
            self._armed_at = None
            return PolicyDecision()

        if self._armed_at is None:
            self._armed_at = now
            return PolicyDecision()

        if now - self._armed_at >= self.interval_ms:
            self._armed_at = now
            return PolicyDecision(fire=True)

        return PolicyDecision()

    def reset(self):
        self._armed_at = None


class StabilityPolicy(TriggerPolicy):
    """
    人脸稳定触发策略

    人脸需连续检测到 stability_ms 才能触发，中途丢失则进度归零；
    两次触发之间至少间隔 cooldown_ms（独立于稳定计时）。

    使用示例:
    ```python
    policy = StabilityPolicy(stability_ms=1000, cooldown_ms=3000)
    decision = policy.update(now_ms, faces=boxes, can_trigger=not loading)
    if decision.fire:
        session.capture_and_submit(frame)
    ```
    """

    needs_detector = True

    def __init__(self, stability_ms: float = 1000, cooldown_ms: float = 3000):
        self.stability_ms = stability_ms
        self.cooldown_ms = cooldown_ms
        self._first_detection: Optional[float] = None
        self._last_trigger: Optional[float] = None

    @property
    def first_detection(self) -> Optional[float]:
        """本轮首次检测到人脸的时间"""
        return self._first_detection

    @property
    def last_trigger(self) -> Optional[float]:
        """上次触发时间"""
        return self._last_trigger

    def progress(self, now: float) -> float:
        """当前稳定进度 (0-1)"""
        if self._first_detection is None:
            return 0.0
        if self.stability_ms <= 0:
            return 1.0
        return min((now - self._first_detection) / self.stability_ms, 1.0)

    def _cooldown_elapsed(self, now: float) -> bool:
        return self._last_trigger is None or now - self._last_trigger >= self.cooldown_ms

    def update(
        self,
        now: float,
        faces: Sequence = (),
        can_trigger: bool = True
    ) -> PolicyDecision:
        if not faces:
            # 丢失人脸，进度归零
            self._first_detection = None
            return PolicyDecision()

        if self._first_detection is None:
            self._first_detection = now

        progress = self.progress(now)
        elapsed = now - self._first_detection

        if elapsed >= self.stability_ms and can_trigger and self._cooldown_elapsed(now):
            self._first_detection = None
            self._last_trigger = now
            return PolicyDecision(fire=True, progress=1.0)

        return PolicyDecision(progress=progress)

    def state(self, now: float) -> PolicyState:
        """
        当前状态

        冷却优先于检测状态显示
        """
        if not self._cooldown_elapsed(now):
            return PolicyState(
                phase=PolicyPhase.COOLDOWN,
                stable_since=self._first_detection,
                cooldown_until=self._last_trigger + self.cooldown_ms
            )
        if self._first_detection is not None:
            return PolicyState(
                phase=PolicyPhase.FACE_DETECTED,
                stable_since=self._first_detection
            )
        return PolicyState(phase=PolicyPhase.NO_FACE)

    def reset(self):
        # 冷却记录保留，重置后仍不会在冷却窗口内再次触发
        self._first_detection = None


def create_policy(
    mode: str = "stability",
    stability_ms: float = 1000,
    cooldown_ms: float = 3000,
    interval_ms: float = 3000
) -> TriggerPolicy:
    """
    根据模式创建触发策略

    Args:
        mode: "stability" 或 "interval"
        stability_ms: 稳定窗口
        cooldown_ms: 冷却窗口
        interval_ms: 固定间隔

    Returns:
        触发策略
    """
    if mode == "stability":
        return StabilityPolicy(stability_ms=stability_ms, cooldown_ms=cooldown_ms)
    if mode == "interval":
        return IntervalPolicy(interval_ms=interval_ms)
    raise ValueError(f"不支持的触发模式: {mode}")
