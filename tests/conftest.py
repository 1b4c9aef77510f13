"""Общие fixtures тестов."""

import pytest
import structlog

from src.core.domain.config import VolatilityConfig
from src.data.synthetic import generate_synthetic_samples


@pytest.fixture(autouse=True)
def reset_structlog():
    """CLI переконфигурирует structlog на stderr теста; возвращаем defaults."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_config():
    """Фабрика VolatilityConfig с переопределениями."""

    def _make(sample_count: int = 5, **overrides) -> VolatilityConfig:
        return VolatilityConfig(sample_count=sample_count, **overrides)

    return _make


@pytest.fixture
def synthetic_window():
    """Фабрика синтетических окон."""

    def _make(count: int = 64, seed: int = 7, **kwargs):
        return generate_synthetic_samples(count, seed=seed, **kwargs)

    return _make
