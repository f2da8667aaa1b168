"""
Shared fixtures for the forecasting test suite.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import matplotlib
import numpy as np
import polars as pl
import pytest

from energy_forecasting.config.settings import TrainingConfig
from energy_forecasting.data.loaders import to_series_frame
from energy_forecasting.models.forecasting import ModelHandle, check_window
from energy_forecasting.utils.errors import TrainingFailure
from energy_forecasting.utils.logging import Logger

matplotlib.use("Agg")


class StubRegressor:
    """Deterministic regressor driven by a plain function of the window."""

    def __init__(
            self,
            fn: Callable[[np.ndarray], float],
            fail: Optional[Exception] = None,
        ) -> None:
        self.fn = fn
        self.fail = fail
        self.train_calls: List[tuple] = []
        self.windows: List[List[float]] = []

    def train(self, X, y, config: TrainingConfig) -> ModelHandle:
        self.train_calls.append((np.array(X), np.array(y), config))
        if self.fail is not None:
            raise TrainingFailure("stub failure") from self.fail
        return ModelHandle(model=self.fn, look_back=np.asarray(X).shape[1])

    def predict(self, handle: ModelHandle, window) -> float:
        values = check_window(handle, window)
        # Copy: the rollout hands out a view of its buffer
        self.windows.append(values.tolist())
        return float(handle.model(values))


@pytest.fixture
def stub_regressor():
    """Factory for StubRegressor instances."""
    return StubRegressor


@pytest.fixture
def quiet_logger():
    return Logger(verbose=0)


@pytest.fixture
def make_series():
    """Build a 15-minute series frame from a list of readings."""
    def _make(
            values,
            start: datetime = datetime(2023, 1, 1),
            interval_minutes: int = 15,
        ) -> pl.DataFrame:
        step = timedelta(minutes=interval_minutes)
        timestamps = [(start + i * step).isoformat() for i in range(len(values))]
        return to_series_frame(timestamps, list(values))
    return _make


@pytest.fixture
def daily_profile(make_series):
    """Two weeks of a smooth daily-periodic load at 15-minute resolution."""
    t = np.arange(14 * 96)
    values = 50 + 20 * np.sin(2 * np.pi * t / 96)
    return make_series(values.tolist())
