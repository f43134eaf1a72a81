from portfolio_labs.core.shapes import TestShape
from portfolio_labs.models.performance import Assessment, PerformanceRating, SummaryStatistics

# 平均延迟阈值（ms）
FAIR_LATENCY_MS = 300
POOR_LATENCY_MS = 500

# 平均错误率阈值（%）
WARN_ERROR_RATE = 1.0
POOR_ERROR_RATE = 5.0

HEALTHY = "Performance looks healthy - continue monitoring"

_SHAPE_FINDINGS = {
    TestShape.STEADY: "Steady load held at a constant virtual user count",
    TestShape.ESCALATING: "Stress profile: latency degradation expected after 70% of the run",
    TestShape.BURST: "Spike profile: traffic peaked mid-run before recovering",
}


def _worse(current: PerformanceRating, candidate: PerformanceRating) -> PerformanceRating:
    return candidate if candidate.rank > current.rank else current


def assess(stats: SummaryStatistics, shape: TestShape) -> Assessment:
    """根据汇总统计给出性能评级与建议（纯函数）"""
    rating = PerformanceRating.GOOD
    recommendations = []

    if stats.average_response_time > POOR_LATENCY_MS:
        rating = _worse(rating, PerformanceRating.POOR)
        recommendations.append(
            "Response times are high - consider optimizing backend performance"
        )
    elif stats.average_response_time > FAIR_LATENCY_MS:
        rating = _worse(rating, PerformanceRating.FAIR)
        recommendations.append(
            "Response times could be improved - investigate slow endpoints"
        )

    if stats.average_error_rate > POOR_ERROR_RATE:
        rating = _worse(rating, PerformanceRating.POOR)
        recommendations.append("High error rate detected - check application stability")
    elif stats.average_error_rate > WARN_ERROR_RATE:
        recommendations.append("Monitor error rate - ensure proper error handling")

    if stats.percentiles.p95 > stats.average_response_time * 2:
        recommendations.append(
            "High response time variance - investigate performance outliers"
        )

    if not recommendations:
        recommendations.append(HEALTHY)

    key_findings = [
        f"Average response time: {stats.average_response_time}ms",
        f"Peak RPS achieved: {stats.max_rps}",
        f"Total requests processed: {stats.total_requests}",
        f"Error rate: {stats.average_error_rate}%",
        _SHAPE_FINDINGS[shape],
    ]

    return Assessment(
        overall_performance=rating,
        recommendations=recommendations,
        key_findings=key_findings,
    )
