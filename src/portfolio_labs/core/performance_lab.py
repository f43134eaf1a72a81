import asyncio
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from portfolio_labs.config.logger import logger
from portfolio_labs.config.settings import settings
from portfolio_labs.core.assessor import assess
from portfolio_labs.core.metric_generator import generate_series
from portfolio_labs.core.script_emitter import render_k6_script
from portfolio_labs.core.statistics import summarize
from portfolio_labs.models.performance import TestConfiguration


def simulated_delay(duration: int) -> float:
    """按测试时长计算模拟等待（秒），有上限"""
    return min(duration * settings.SIMULATED_DELAY_PER_SECOND, settings.SIMULATED_DELAY_CAP)


async def run_performance_test(
    config: TestConfiguration,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    模拟执行一次 k6 测试

    生成序列 -> 汇总 -> 评估 -> 渲染脚本，然后等待一段与时长成比例的时间。
    """
    rng = rng or random.Random()
    start_time = time.time()

    logger.info(
        "Starting simulated k6 test",
        test_type=config.test_type.value,
        target_url=config.target_url,
        virtual_users=config.virtual_users,
        duration=config.duration,
    )

    samples = generate_series(config, rng, start_ms=int(start_time * 1000))
    stats = summarize(samples, config.duration)
    assessment = assess(stats, config.test_type)
    script = render_k6_script(config)

    delay = simulated_delay(config.duration)
    if delay > 0:
        await asyncio.sleep(delay)

    actual_duration = int((time.time() - start_time) * 1000)

    logger.info(
        "Simulated k6 test finished",
        test_type=config.test_type.value,
        samples=len(samples),
        rating=assessment.overall_performance.value,
        duration_ms=actual_duration,
    )

    test_config = config.to_dict()
    test_config["actualDuration"] = actual_duration

    return {
        "testConfig": test_config,
        "metrics": {
            "timeSeriesData": [s.to_dict() for s in samples],
            "summary": stats.to_dict(),
        },
        "summary": assessment.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "k6Version": settings.K6_VERSION,
        "testScript": script,
    }
