import math
from typing import List, Sequence

from portfolio_labs.models.performance import MetricSample, Percentiles, SummaryStatistics

PERCENTILE_FRACTIONS = (0.50, 0.90, 0.95, 0.99)


def nearest_rank(sorted_values: Sequence[int], fraction: float) -> int:
    """取 floor(n * fraction) 位置的值，不做插值"""
    index = min(int(math.floor(len(sorted_values) * fraction)), len(sorted_values) - 1)
    return sorted_values[index]


def summarize(samples: List[MetricSample], duration: int) -> SummaryStatistics:
    """将采样序列归约为汇总统计；samples 至少包含一个点"""
    count = len(samples)
    latencies = [s.response_time for s in samples]
    rps_values = [s.rps for s in samples]
    error_rates = [s.error_rate for s in samples]

    ordered = sorted(latencies)
    p50, p90, p95, p99 = (nearest_rank(ordered, f) for f in PERCENTILE_FRACTIONS)

    mean_rps = sum(rps_values) / count
    mean_error_rate = sum(error_rates) / count
    total_requests = round(mean_rps * duration)

    return SummaryStatistics(
        total_requests=total_requests,
        average_response_time=round(sum(latencies) / count),
        max_response_time=ordered[-1],
        min_response_time=ordered[0],
        average_rps=round(mean_rps, 1),
        max_rps=max(rps_values),
        total_errors=round(total_requests * mean_error_rate),
        average_error_rate=round(mean_error_rate * 100, 1),
        percentiles=Percentiles(p50=p50, p90=p90, p95=p95, p99=p99),
    )
