"""
合成指标生成器测试
"""

import random

import pytest

from portfolio_labs.core.metric_generator import (
    LATENCY_FLOOR_MS,
    generate_series,
    sample_count,
)
from portfolio_labs.core.shapes import TestShape
from portfolio_labs.models.performance import TestConfiguration


def make_config(shape=TestShape.STEADY, virtual_users=10, duration=30):
    return TestConfiguration(
        test_type=shape,
        target_url="https://example.com",
        virtual_users=virtual_users,
        duration=duration,
    )


class TestSampleCount:
    def test_short_test_uses_one_point_per_second(self):
        assert sample_count(30) == 30

    def test_long_test_is_capped(self):
        assert sample_count(600) == 60

    def test_explicit_limit(self):
        assert sample_count(600, max_samples=10) == 10

    def test_never_empty(self):
        assert sample_count(0) == 1

    def test_explicit_zero_limit_is_respected(self):
        assert sample_count(600, max_samples=0) == 1


class TestGenerateSeries:
    @pytest.mark.parametrize("shape", list(TestShape))
    @pytest.mark.parametrize("duration", [1, 5, 30, 60, 300])
    def test_length_matches_duration_cap(self, shape, duration):
        samples = generate_series(make_config(shape, duration=duration), random.Random(7))
        assert len(samples) == min(duration, 60)

    @pytest.mark.parametrize("shape", list(TestShape))
    def test_values_stay_in_bounds(self, shape):
        for seed in range(50):
            samples = generate_series(make_config(shape, virtual_users=1), random.Random(seed))
            for sample in samples:
                assert sample.response_time >= LATENCY_FLOOR_MS
                assert sample.rps >= 0
                assert 0.0 <= sample.error_rate <= 1.0

    def test_same_seed_same_series(self, steady_config):
        first = generate_series(steady_config, random.Random(99), start_ms=0)
        second = generate_series(steady_config, random.Random(99), start_ms=0)
        assert first == second

    def test_timestamps_evenly_spaced(self, rng):
        samples = generate_series(make_config(duration=120), rng, start_ms=1_000)
        assert samples[0].timestamp == 1_000
        assert samples[1].timestamp - samples[0].timestamp == 2_000
        assert [s.time for s in samples[:3]] == [0.0, 2.0, 4.0]

    def test_steady_keeps_virtual_users_constant(self, steady_config, rng):
        samples = generate_series(steady_config, rng)
        assert {s.virtual_users for s in samples} == {10}

    def test_escalating_degrades_towards_the_end(self):
        for seed in range(20):
            samples = generate_series(
                make_config(TestShape.ESCALATING, duration=60), random.Random(seed)
            )
            head = [s.response_time for s in samples[:18]]
            tail = [s.response_time for s in samples[-18:]]
            assert sum(tail) / len(tail) > sum(head) / len(head)

    def test_burst_peaks_virtual_users_mid_run(self, rng):
        samples = generate_series(make_config(TestShape.BURST, duration=60), rng)
        users = [s.virtual_users for s in samples]
        assert users[0] == 10
        assert max(users) == 15
        assert users[30] == 15

    def test_to_dict_reports_error_rate_as_percentage(self, steady_config, rng):
        sample = generate_series(steady_config, rng)[0]
        data = sample.to_dict()
        assert set(data) == {"timestamp", "time", "responseTime", "rps", "errorRate", "virtualUsers"}
        assert data["errorRate"] == round(sample.error_rate * 100, 1)
