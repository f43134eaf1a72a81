import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple


class TestShape(str, Enum):
    """负载形态"""

    __test__ = False  # 避免被 pytest 当作测试类收集

    STEADY = "steady"
    ESCALATING = "escalating"
    BURST = "burst"

    @classmethod
    def _missing_(cls, value):
        # 兼容前端旧的 k6 测试类型名称
        aliases = {
            "load-test": cls.STEADY,
            "stress-test": cls.ESCALATING,
            "spike-test": cls.BURST,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


# (latency_ms, rps, error_rate, virtual_users)
Point = Tuple[float, float, float, int]


@dataclass(frozen=True)
class ShapeProfile:
    """单个形态的基线参数与随时间的扰动函数"""

    latency_range: Tuple[float, float]
    base_error_rate: float
    perturb: Callable[[Point, float, int], Point]
    description: str = ""

    def draw_base_latency(self, rng: random.Random) -> float:
        low, high = self.latency_range
        return low + rng.random() * (high - low)


def _steady(point: Point, fraction: float, virtual_users: int) -> Point:
    return point


def _escalating(point: Point, fraction: float, virtual_users: int) -> Point:
    latency, rps, error_rate, users = point
    if fraction > 0.7:
        # 持续压力下的退化：延迟随时间放大，错误率翻三倍
        latency *= 1 + fraction * 2
        error_rate *= 3
    return latency, rps, error_rate, users


def _burst(point: Point, fraction: float, virtual_users: int) -> Point:
    latency, rps, error_rate, _ = point
    phase = math.sin(fraction * math.pi * 2)
    latency += phase * 200
    rps += phase * virtual_users
    users = round(virtual_users * (1 + math.sin(fraction * math.pi) * 0.5))
    return latency, rps, error_rate, users


SHAPE_PROFILES: Dict[TestShape, ShapeProfile] = {
    TestShape.STEADY: ShapeProfile(
        latency_range=(150, 250),
        base_error_rate=0.005,
        perturb=_steady,
        description="Constant load at the configured virtual user count",
    ),
    TestShape.ESCALATING: ShapeProfile(
        latency_range=(300, 500),
        base_error_rate=0.02,
        perturb=_escalating,
        description="Load ramps past capacity; latency degrades in the final 30%",
    ),
    TestShape.BURST: ShapeProfile(
        latency_range=(250, 550),
        base_error_rate=0.015,
        perturb=_burst,
        description="Sudden traffic spike followed by recovery",
    ),
}


def get_profile(shape: TestShape) -> ShapeProfile:
    return SHAPE_PROFILES[shape]
