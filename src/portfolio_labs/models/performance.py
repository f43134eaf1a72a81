from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from portfolio_labs.core.shapes import TestShape


@dataclass(frozen=True)
class TestConfiguration:
    """性能测试配置（单次请求有效）"""

    __test__ = False

    test_type: TestShape
    target_url: str
    virtual_users: int
    duration: int  # 秒

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testType": self.test_type.value,
            "targetUrl": self.target_url,
            "virtualUsers": self.virtual_users,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class MetricSample:
    """时间序列中的单个采样点"""

    timestamp: int  # epoch ms
    time: float  # 相对开始的秒数
    response_time: int  # ms
    rps: float
    error_rate: float  # 0~1
    virtual_users: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "time": self.time,
            "responseTime": self.response_time,
            "rps": self.rps,
            "errorRate": round(self.error_rate * 100, 1),
            "virtualUsers": self.virtual_users,
        }


@dataclass(frozen=True)
class Percentiles:
    p50: int
    p90: int
    p95: int
    p99: int

    def to_dict(self) -> Dict[str, int]:
        return {"p50": self.p50, "p90": self.p90, "p95": self.p95, "p99": self.p99}


@dataclass(frozen=True)
class SummaryStatistics:
    """时间序列的聚合结果"""

    total_requests: int
    average_response_time: int
    max_response_time: int
    min_response_time: int
    average_rps: float
    max_rps: float
    total_errors: int
    average_error_rate: float  # 百分比
    percentiles: Percentiles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "averageResponseTime": self.average_response_time,
            "maxResponseTime": self.max_response_time,
            "minResponseTime": self.min_response_time,
            "averageRPS": self.average_rps,
            "maxRPS": self.max_rps,
            "totalErrors": self.total_errors,
            "averageErrorRate": self.average_error_rate,
            "percentiles": self.percentiles.to_dict(),
        }


class PerformanceRating(str, Enum):
    """按严重程度排序"""

    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

    @property
    def rank(self) -> int:
        return list(PerformanceRating).index(self)


@dataclass(frozen=True)
class Assessment:
    overall_performance: PerformanceRating
    recommendations: List[str] = field(default_factory=list)
    key_findings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallPerformance": self.overall_performance.value,
            "recommendations": list(self.recommendations),
            "keyFindings": list(self.key_findings),
        }
