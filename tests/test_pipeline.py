"""
End-to-end tests for the forecasting pipeline.
"""
import json
from datetime import datetime, timedelta

import numpy as np
import polars as pl
import pytest

from energy_forecasting.config.settings import ForecastConfig
from energy_forecasting.pipeline import ForecastPipeline, validate_series
from energy_forecasting.utils.errors import InvalidInputError, TrainingFailure

START = datetime(2023, 1, 1)


def _config(**kwargs):
    base = dict(look_back=4, steps=3, verbosity=0)
    base.update(kwargs)
    return ForecastConfig(**base)


def _write_csv(path, values, start=START, interval_minutes=15):
    step = timedelta(minutes=interval_minutes)
    lines = ["timestamp,value_kw"]
    lines += [
        f"{(start + i * step).isoformat()}Z,{v}" for i, v in enumerate(values)
    ]
    path.write_text("\n".join(lines) + "\n")
    return path


def test_persistence_forecast(stub_regressor, quiet_logger, make_series):
    series = make_series([10.0, 20.0, 30.0, 40.0, 25.0, 35.0])
    model = stub_regressor(lambda w: float(w[-1]))
    run = ForecastPipeline(_config(), model=model, logger=quiet_logger).run(
        series, actual=[35.0, 30.0, 0.0]
    )
    predicted = [r.predicted_value for r in run.records]
    assert predicted == pytest.approx([35.0, 35.0, 35.0])
    assert [r.actual_value for r in run.records] == [35.0, 30.0, 0.0]
    assert run.summary.evaluated == 2
    assert run.summary.infinite_error_percentage == 1
    assert run.scaling.min == 10.0 and run.scaling.max == 40.0
    # Model is trained on normalized windows only
    X, y, _ = model.train_calls[0]
    assert X.shape == (2, 4)
    assert X.min() >= 0.0 and X.max() <= 1.0
    assert model.windows[0] == pytest.approx([2 / 3, 1.0, 0.5, 5 / 6])


def test_forecast_start_follows_last_reading(stub_regressor, quiet_logger,
                                             make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    model = stub_regressor(lambda w: 0.0)
    run = ForecastPipeline(_config(), model=model, logger=quiet_logger).run(series)
    assert run.start == START + timedelta(minutes=6 * 15)
    assert run.records[0].timestamp == run.start
    assert run.records[2].timestamp == run.start + timedelta(minutes=30)
    assert all(not r.matched for r in run.records)


def test_configured_start_time(stub_regressor, quiet_logger, make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    start = datetime(2024, 1, 1)
    pipeline = ForecastPipeline(
        _config(start_time=start),
        model=stub_regressor(lambda w: 0.0),
        logger=quiet_logger,
    )
    assert pipeline.run(series).start == start


def test_constant_series_forecasts_the_constant(stub_regressor, make_series,
                                                capsys):
    from energy_forecasting.utils.logging import Logger
    logger = Logger(verbose=0)
    series = make_series([7.0] * 8)
    model = stub_regressor(lambda w: float(w.mean()))
    run = ForecastPipeline(_config(), model=model, logger=logger).run(series)
    assert [r.predicted_value for r in run.records] == [7.0, 7.0, 7.0]
    assert run.scaling.degenerate
    assert logger.warnings == 1
    assert "constant" in capsys.readouterr().out


def test_timestamp_alignment(stub_regressor, quiet_logger, make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    start = START + timedelta(minutes=6 * 15)
    actual = make_series([6.0, 12.0], start=start + timedelta(minutes=15))
    pipeline = ForecastPipeline(
        _config(alignment_policy="timestamp"),
        model=stub_regressor(lambda w: float(w[-1])),
        logger=quiet_logger,
    )
    records = pipeline.run(series, actual).records
    assert records[0].actual_value is None
    assert records[1].actual_value == 6.0
    assert records[1].deviation == pytest.approx(0.0)
    assert records[2].actual_value == 12.0


@pytest.mark.parametrize("values, look_back", [
    ([1.0, 2.0, 3.0], 3),
    ([1.0, 2.0, 3.0], 5),
    ([], 1),
])
def test_invalid_series_rejected_before_training(
        stub_regressor, quiet_logger, make_series, values, look_back):
    model = stub_regressor(lambda w: 0.0)
    series = make_series(values)
    with pytest.raises(InvalidInputError):
        ForecastPipeline(
            _config(look_back=look_back), model=model, logger=quiet_logger
        ).run(series)
    assert model.train_calls == []


def test_non_finite_reading_rejected(stub_regressor, quiet_logger):
    series = pl.DataFrame({
        "timestamp": [START + timedelta(minutes=15 * i) for i in range(6)],
        "value": [1.0, 2.0, float("nan"), 4.0, 5.0, 6.0],
    })
    model = stub_regressor(lambda w: 0.0)
    with pytest.raises(InvalidInputError):
        ForecastPipeline(_config(), model=model, logger=quiet_logger).run(series)
    assert model.train_calls == []


def test_unordered_timestamps_rejected(make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0]).reverse()
    with pytest.raises(InvalidInputError):
        validate_series(series, 4)


def test_training_failure_propagates(stub_regressor, quiet_logger, make_series):
    model = stub_regressor(lambda w: 0.0, fail=RuntimeError("boom"))
    with pytest.raises(TrainingFailure):
        ForecastPipeline(_config(), model=model, logger=quiet_logger).run(
            make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        )
    assert model.windows == []


def test_run_from_sources_writes_results(stub_regressor, quiet_logger,
                                         tmp_path):
    first = _write_csv(tmp_path / "2022.csv", [1.0, 2.0, 3.0])
    second = _write_csv(
        tmp_path / "2023.csv", [4.0, 5.0, 6.0],
        start=START + timedelta(minutes=45),
    )
    actual = _write_csv(tmp_path / "actual.csv", [6.0, 6.0, 3.0])
    config = _config(
        input_paths=(first, second),
        comparison_path=actual,
        output_path=tmp_path / "out" / "predictions.json",
        plot_path=tmp_path / "out" / "forecast.png",
    )
    run = ForecastPipeline(
        config,
        model=stub_regressor(lambda w: float(w[-1])),
        logger=quiet_logger,
    ).run_from_sources()

    assert run.output_path == tmp_path / "out" / "predictions.json"
    document = json.loads(run.output_path.read_text())
    assert len(document["records"]) == 3
    assert document["records"][2]["deviation"] == pytest.approx(3.0)
    assert document["summary"]["evaluated"] == 3
    assert run.plot_path.exists()


def test_failed_run_writes_nothing(stub_regressor, tmp_path, capsys):
    from energy_forecasting.utils.logging import Logger
    source = _write_csv(tmp_path / "series.csv", [1.0, 2.0, 3.0, 4.0, 5.0])
    output = tmp_path / "out" / "predictions.json"
    config = _config(input_paths=(source,), output_path=output)
    with pytest.raises(TrainingFailure):
        ForecastPipeline(
            config,
            model=stub_regressor(lambda w: 0.0, fail=ValueError("bad")),
            logger=Logger(verbose=0),
        ).run_from_sources()
    assert not output.exists()
    assert "Run aborted: TrainingFailure" in capsys.readouterr().out


def test_default_model_from_config(quiet_logger, daily_profile):
    config = _config(model="linear", look_back=96, steps=96)
    run = ForecastPipeline(config, logger=quiet_logger).run(daily_profile)
    predicted = np.array([r.predicted_value for r in run.records])
    expected = daily_profile.get_column("value").to_numpy()[:96]
    assert np.allclose(predicted, expected, atol=1e-3)


def test_aware_start_time_with_timestamp_alignment(stub_regressor, quiet_logger,
                                                   make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    actual = make_series([6.0, 6.0, 6.0], start=datetime(2024, 1, 1))
    config = _config(
        alignment_policy="timestamp",
        start_time=datetime.fromisoformat("2024-01-01T00:00:00Z"),
    )
    run = ForecastPipeline(
        config,
        model=stub_regressor(lambda w: float(w[-1])),
        logger=quiet_logger,
    ).run(series, actual)
    assert run.start == datetime(2024, 1, 1)
    assert run.summary.matched == 3
    assert run.summary.mean_deviation == pytest.approx(0.0)


def test_constant_series_reports_non_finite_predictions(stub_regressor,
                                                        quiet_logger,
                                                        make_series):
    series = make_series([7.0] * 8)
    model = stub_regressor(lambda w: float("nan"))
    run = ForecastPipeline(_config(), model=model, logger=quiet_logger).run(
        series, actual=[7.0, 7.0, 7.0]
    )
    assert all(np.isnan(r.predicted_value) for r in run.records)
    assert run.summary.non_finite_predictions == 3
    assert run.summary.evaluated == 0


def test_missing_input_file_is_invalid_input(quiet_logger, tmp_path):
    config = _config(input_paths=(tmp_path / "missing.csv",))
    with pytest.raises(InvalidInputError):
        ForecastPipeline(config, logger=quiet_logger).run_from_sources()
