import random
import time
from typing import List, Optional

from portfolio_labs.config.settings import settings
from portfolio_labs.core.shapes import get_profile
from portfolio_labs.models.performance import MetricSample, TestConfiguration

LATENCY_FLOOR_MS = 50

# 每个采样点的均匀噪声幅度（总宽度）
LATENCY_JITTER = 50
RPS_JITTER = 5
ERROR_RATE_JITTER = 0.01


def sample_count(duration: int, max_samples: Optional[int] = None) -> int:
    """采样点数 = min(duration, max_samples)，至少 1 个"""
    limit = settings.MAX_SAMPLES if max_samples is None else max_samples
    return max(1, min(duration, limit))


def generate_series(
    config: TestConfiguration,
    rng: random.Random,
    start_ms: Optional[int] = None,
) -> List[MetricSample]:
    """
    生成合成性能时间序列

    Args:
        config: 测试配置（形态、虚拟用户数、时长）
        rng: 随机源，测试中传入固定种子
        start_ms: 第一个点的时间戳，默认当前时间

    Returns:
        按时间升序的 MetricSample 列表
    """
    profile = get_profile(config.test_type)
    duration = config.duration
    virtual_users = config.virtual_users
    points = sample_count(duration)
    interval_ms = duration * 1000 / points

    if start_ms is None:
        start_ms = int(time.time() * 1000)

    base_latency = profile.draw_base_latency(rng)
    base_rps = virtual_users * 2

    samples = []
    for i in range(points):
        elapsed = i * (duration / points)
        fraction = elapsed / duration

        latency, rps, error_rate, users = profile.perturb(
            (base_latency, base_rps, profile.base_error_rate, virtual_users),
            fraction,
            virtual_users,
        )

        latency += (rng.random() - 0.5) * LATENCY_JITTER
        rps += (rng.random() - 0.5) * RPS_JITTER
        error_rate += (rng.random() - 0.5) * ERROR_RATE_JITTER

        latency = max(LATENCY_FLOOR_MS, latency)
        rps = max(0.0, rps)
        error_rate = max(0.0, min(1.0, error_rate))

        samples.append(
            MetricSample(
                timestamp=int(start_ms + i * interval_ms),
                time=round(elapsed, 3),
                response_time=round(latency),
                rps=round(rps, 1),
                error_rate=round(error_rate, 3),
                virtual_users=users,
            )
        )

    return samples
