"""
Tests for forecast vs actual alignment and aggregate statistics.
"""
import math
from datetime import datetime, timedelta

import numpy as np
import polars as pl
import pytest

from energy_forecasting.evaluation.compare import (
    ResultRecord,
    compare,
    forecast_timestamps,
    summarize,
)
from energy_forecasting.utils.errors import InvalidInputError

START = datetime(2024, 1, 1)


def test_index_alignment_example():
    records = compare([10.0, 20.0], [8.0, 0.0], policy="index", start=START)
    assert [r.deviation for r in records] == [2.0, 20.0]
    assert records[0].error_percentage == pytest.approx(25.0)
    assert math.isinf(records[1].error_percentage)

    summary = summarize(records)
    assert summary.mean_deviation == pytest.approx(2.0)
    assert summary.evaluated == 1
    assert summary.infinite_error_percentage == 1


def test_records_carry_synthesized_timestamps():
    records = compare([1.0, 2.0, 3.0], None, start=START, interval_minutes=15)
    assert [r.timestamp for r in records] == [
        START,
        START + timedelta(minutes=15),
        START + timedelta(minutes=30),
    ]
    assert all(not r.matched for r in records)


def test_deviation_is_non_negative():
    rng = np.random.default_rng(7)
    forecast = rng.normal(size=50)
    actual = rng.normal(size=50)
    records = compare(forecast, actual)
    assert all(r.deviation >= 0 for r in records)


def test_short_actual_leaves_records_unmatched():
    records = compare([1.0, 2.0, 3.0], [1.5])
    assert records[0].actual_value == 1.5
    assert records[1].actual_value is None
    assert records[1].deviation is None
    assert records[2].error_percentage is None

    summary = summarize(records)
    assert summary.matched == 1
    assert summary.missing_actual == 2
    assert summary.mean_deviation == pytest.approx(0.5)


def test_missing_actual_default_is_configurable():
    records = compare([1.0, 2.0], [1.5], missing_actual=0.0)
    assert records[1].actual_value == 0.0
    assert records[1].deviation == 2.0
    assert math.isinf(records[1].error_percentage)


def test_index_alignment_accepts_series_frame(make_series):
    actual = make_series([4.0, 5.0])
    records = compare([5.0, 5.0], actual, policy="index")
    assert [r.deviation for r in records] == [1.0, 0.0]


def test_timestamp_alignment_matches_exact_timestamps():
    actual = pl.DataFrame({
        "timestamp": [
            START + timedelta(minutes=15),
            # Off-grid reading never matches
            START + timedelta(minutes=37),
            START + timedelta(minutes=45),
        ],
        "value": [10.0, 99.0, 40.0],
    })
    records = compare(
        [1.0, 20.0, 30.0, 44.0],
        actual,
        policy="timestamp",
        start=START,
        interval_minutes=15,
    )
    assert [r.actual_value for r in records] == [None, 10.0, None, 40.0]
    assert records[1].deviation == 10.0
    assert records[3].deviation == 4.0
    assert records[3].error_percentage == pytest.approx(10.0)
    assert records[0].deviation is None


def test_timestamp_alignment_with_year_shift():
    last_year = pl.DataFrame({
        "timestamp": [datetime(2023, 1, 1), datetime(2023, 1, 2)],
        "value": [5.0, 6.0],
    })
    records = compare(
        [5.5, 6.5],
        last_year,
        policy="timestamp",
        start=datetime(2024, 1, 1),
        interval_minutes=24 * 60,
        actual_year_shift=1,
    )
    assert [r.actual_value for r in records] == [5.0, 6.0]


def test_timestamp_alignment_requires_start_and_frame():
    with pytest.raises(InvalidInputError):
        compare([1.0], pl.DataFrame({"timestamp": [START], "value": [1.0]}),
                policy="timestamp")
    with pytest.raises(InvalidInputError):
        compare([1.0], [1.0], policy="timestamp", start=START)


def test_unknown_policy():
    with pytest.raises(InvalidInputError):
        compare([1.0], [1.0], policy="nearest")


def test_summary_flags_non_finite_predictions():
    records = compare([float("nan"), 2.0, 4.0], [1.0, 1.0, 2.0])
    summary = summarize(records)
    assert summary.non_finite_predictions == 1
    assert summary.evaluated == 2
    assert summary.mean_deviation == pytest.approx(1.5)
    assert not math.isnan(summary.rmse)


def test_summary_without_finite_records():
    summary = summarize([ResultRecord(START, 1.0)])
    assert summary.evaluated == 0
    assert math.isnan(summary.mean_deviation)
    assert math.isnan(summary.mean_error_percentage)


def test_forecast_timestamps_daily():
    ts = forecast_timestamps(START, 3, 24 * 60)
    assert ts[-1] == START + timedelta(days=2)


def test_record_serialization():
    record = compare([10.0], [0.0], start=START)[0]
    data = record.to_dict()
    assert data["timestamp"] == "2024-01-01T00:00:00"
    assert data["predictedValue"] == 10.0
    assert data["actualValue"] == 0.0
    assert data["deviation"] == 10.0
    assert math.isinf(data["errorPercentage"])


def test_negative_actual_gives_negative_percentage():
    record = compare([-6.0], [-8.0])[0]
    assert record.deviation == pytest.approx(2.0)
    assert record.error_percentage == pytest.approx(-25.0)


def test_aware_start_is_matched_as_utc():
    actual = pl.DataFrame({
        "timestamp": [datetime(2024, 1, 1), datetime(2024, 1, 1, 0, 15)],
        "value": [5.0, 6.0],
    })
    records = compare(
        [4.0, 6.0],
        actual,
        policy="timestamp",
        start=datetime.fromisoformat("2024-01-01T01:00:00+01:00"),
    )
    assert [r.actual_value for r in records] == [5.0, 6.0]
    assert records[0].timestamp == datetime(2024, 1, 1)
    assert records[0].timestamp.tzinfo is None
