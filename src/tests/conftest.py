"""Test configuration for portfolio-labs."""

import random

import httpx
import pytest

from fakes import target_handler
from portfolio_labs.config.settings import settings
from portfolio_labs.core.shapes import TestShape
from portfolio_labs.models.performance import TestConfiguration


@pytest.fixture(autouse=True)
def no_simulated_delay(monkeypatch):
    """跳过性能实验室的模拟等待"""
    monkeypatch.setattr(settings, "SIMULATED_DELAY_CAP", 0.0)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def steady_config():
    return TestConfiguration(
        test_type=TestShape.STEADY,
        target_url="https://example.com",
        virtual_users=10,
        duration=30,
    )


@pytest.fixture
def mock_transport():
    return httpx.MockTransport(target_handler)
