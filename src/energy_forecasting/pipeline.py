# stdlib
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional
# thirdpartylib
import numpy as np
import polars as pl
# projectlib
from energy_forecasting.config.settings import ForecastConfig
from energy_forecasting.data.loaders import (
    load_many,
    load_series,
    series_values,
    to_naive_utc,
)
from energy_forecasting.data.schemas import Column
from energy_forecasting.data.writers import write_results
from energy_forecasting.evaluation.compare import (
    Actuals,
    EvaluationSummary,
    ResultRecord,
    compare,
    summarize,
)
from energy_forecasting.models.forecasting import (
    ModelHandle,
    Regressor,
    build_regressor,
)
from energy_forecasting.models.rollout import rollout
from energy_forecasting.preprocessing.scaling import (
    ScalingParams,
    denormalize,
    fit_scaling,
    normalize,
)
from energy_forecasting.preprocessing.windowing import build_windows
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.logging import Logger
from energy_forecasting.visualization.timeseries import save_forecast_plot


@dataclass(frozen=True)
class ForecastRun:
    """Outcome of one pipeline run."""
    records: List[ResultRecord]
    summary: EvaluationSummary
    scaling: ScalingParams
    handle: ModelHandle
    start: datetime
    config: ForecastConfig
    output_path: Optional[Path] = None
    plot_path: Optional[Path] = None


def validate_series(series: pl.DataFrame, look_back: int) -> None:
    """
    Check a series frame before anything is trained on it.

    Raises
    ------
    InvalidInputError
        If the series is empty, too short for ``look_back``, holds
        non-finite readings, or its timestamps are not strictly
        increasing.
    """
    n = series.height
    if n == 0:
        raise InvalidInputError("Input series is empty.")
    if look_back >= n:
        raise InvalidInputError(
            f"look_back ({look_back}) must be smaller than the series "
            f"length ({n})."
        )
    values = series_values(series)
    bad = int((~np.isfinite(values)).sum())
    if bad:
        raise InvalidInputError(
            f"Input series holds {bad} non-finite reading(s)."
        )
    if Column.TIMESTAMP.value in series.columns and n > 1:
        diffs = series.get_column(Column.TIMESTAMP.value).diff().drop_nulls()
        if (diffs <= timedelta(0)).any():
            raise InvalidInputError(
                "Input timestamps must be strictly increasing."
            )


class ForecastPipeline(object):
    """
    Sequential forecasting pipeline.

    One run goes load -> normalize -> window -> train -> rollout ->
    denormalize -> evaluate -> persist, each stage consuming the
    complete output of the previous one. Scaling parameters and the
    model handle are created fresh for every run.

    Parameters
    ----------
    config : ForecastConfig
        Run configuration, including sources and sinks.
    model : Regressor, optional
        Regression model to train. Defaults to the model family named
        by ``config.model``.
    logger : Logger, optional
        Defaults to a logger built from ``config.verbosity``,
        ``config.log_dir`` and ``config.write_log``.
    """

    def __init__(
            self,
            config: ForecastConfig,
            model: Optional[Regressor] = None,
            logger: Optional[Logger] = None,
        ) -> None:
        self.config = config
        self.log = logger if logger is not None else Logger(
            verbose=config.verbosity,
            log_dir=config.log_dir,
            write_log=config.write_log,
        )
        self.model = (
            model if model is not None
            else build_regressor(config.model, logger=self.log)
        )

    def forecast_start(self, series: pl.DataFrame) -> datetime:
        """First forecast timestamp: configured, or one interval after
        the last reading."""
        if self.config.start_time is not None:
            return to_naive_utc(self.config.start_time)
        if Column.TIMESTAMP.value not in series.columns:
            raise InvalidInputError(
                "Series has no timestamps; set start_time explicitly."
            )
        last = series.get_column(Column.TIMESTAMP.value)[-1]
        return last + timedelta(minutes=self.config.interval_minutes)

    def run(
            self,
            series: pl.DataFrame,
            actual: Optional[Actuals] = None,
        ) -> ForecastRun:
        """
        Train on ``series``, forecast ``config.steps`` readings and
        compare them with ``actual``.

        Parameters
        ----------
        series : pl.DataFrame
            Training series with ``timestamp`` and ``value`` columns.
        actual : array-like or pl.DataFrame, optional
            Actual readings for the forecast horizon.

        Returns
        -------
        ForecastRun
            Records, summary and the run's scaling and model state.

        Raises
        ------
        InvalidInputError
            If the series fails validation (before training).
        TrainingFailure
            If the model cannot be fitted.
        """
        cfg = self.config
        validate_series(series, cfg.look_back)
        values = series_values(series)
        start = self.forecast_start(series)

        scaling = fit_scaling(values)
        if scaling.degenerate:
            self.log.warning(
                f"Input series is constant ({scaling.min}); normalized "
                "values are all 0 and the forecast repeats that value."
            )
        normalized = normalize(values, scaling)
        dataset = build_windows(normalized, cfg.look_back)
        self.log(
            f"Built {len(dataset)} windows of {cfg.look_back} readings "
            f"from {len(values)} readings.",
            1,
        )

        self.log(f"Training the model ({cfg.model})...", 1)
        handle = self.model.train(dataset.X, dataset.y, cfg.training)

        self.log(f"Forecasting {cfg.steps} steps from {start}...", 1)
        predicted = rollout(
            self.model,
            handle,
            normalized[-cfg.look_back:],
            cfg.steps,
            logger=self.log,
        )
        forecast = denormalize(predicted, scaling)

        records = compare(
            forecast,
            actual,
            policy=cfg.alignment_policy,
            start=start,
            interval_minutes=cfg.interval_minutes,
            missing_actual=cfg.missing_actual,
            actual_year_shift=cfg.actual_year_shift,
        )
        summary = summarize(records)
        self.log(
            f"Evaluated {summary.evaluated}/{summary.records} steps; "
            f"mean deviation: {summary.mean_deviation:.4f}, "
            f"missing actual: {summary.missing_actual}, "
            f"zero actual: {summary.infinite_error_percentage}, "
            f"non-finite predictions: {summary.non_finite_predictions}",
            1,
        )
        return ForecastRun(
            records=records,
            summary=summary,
            scaling=scaling,
            handle=handle,
            start=start,
            config=cfg,
        )

    def run_from_sources(self) -> ForecastRun:
        """
        Load the configured sources, run, and persist the results.

        Input files are read in the configured order and concatenated.
        Outputs are written only once evaluation has completed, so an
        aborted run leaves nothing behind.
        """
        cfg = self.config
        with self.log:
            self.log(f"Loading {len(cfg.input_paths)} input file(s)...", 1)
            series = load_many(cfg.input_paths)
            actual = (
                load_series(cfg.comparison_path)
                if cfg.comparison_path is not None else None
            )
            result = self.run(series, actual)

            output_path = plot_path = None
            if cfg.output_path is not None:
                output_path = write_results(
                    result.records,
                    cfg.output_path,
                    summary=result.summary,
                )
                self.log(f"Forecast saved to {output_path}", 1)
            if cfg.plot_path is not None:
                plot_path = save_forecast_plot(result.records, cfg.plot_path)
                self.log(f"Plot saved to {plot_path}", 1)
        return replace(result, output_path=output_path, plot_path=plot_path)
