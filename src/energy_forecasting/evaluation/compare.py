# stdlib
import math
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Union
# thirdpartylib
import numpy as np
import polars as pl
# projectlib
from energy_forecasting.data.loaders import to_naive_utc
from energy_forecasting.data.schemas import Column, ResultField
from energy_forecasting.evaluation.metrics import (
    absolute_deviation,
    error_percentage,
    finite_mask,
    mean_deviation,
    rmse,
    strict_r2,
)
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.typing import (
    ALIGNMENT_POLICIES,
    AlignmentPolicy,
    ArrayLike1D,
)

# Actual readings: bare values (index alignment) or a series frame
type Actuals = Union[ArrayLike1D, pl.DataFrame]

_STEP = "step"
_PREDICTED = "predicted"
_ACTUAL = "actual"


@dataclass(frozen=True)
class ResultRecord:
    """
    One forecast step paired with its actual reading, if any.

    ``deviation`` and ``error_percentage`` are ``None`` when no actual
    reading was found; ``error_percentage`` is ``inf`` when the actual
    reading is ``0``.
    """
    timestamp: Optional[datetime]
    predicted_value: float
    actual_value: Optional[float] = None
    deviation: Optional[float] = None
    error_percentage: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.actual_value is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable mapping using the result file's field names."""
        return {
            ResultField.TIMESTAMP.value: (
                self.timestamp.isoformat()
                if self.timestamp is not None else None
            ),
            ResultField.PREDICTED.value: self.predicted_value,
            ResultField.ACTUAL.value: self.actual_value,
            ResultField.DEVIATION.value: self.deviation,
            ResultField.ERROR_PERCENTAGE.value: self.error_percentage,
        }


@dataclass(frozen=True)
class EvaluationSummary:
    """
    Aggregate statistics over a list of result records.

    Means, RMSE and R² only use records whose deviation and error
    percentage are both finite; records without an actual reading,
    with a zero actual reading, or with a non-finite prediction are
    counted separately instead.
    """
    records: int
    matched: int
    missing_actual: int
    non_finite_predictions: int
    infinite_error_percentage: int
    evaluated: int
    mean_deviation: float
    mean_error_percentage: float
    rmse: float
    r2: float

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return asdict(self)


def forecast_timestamps(
        start: datetime,
        steps: int,
        interval_minutes: int,
    ) -> List[datetime]:
    """Timestamps ``start + i * interval_minutes`` for each step."""
    step = timedelta(minutes=interval_minutes)
    return [start + i * step for i in range(steps)]

def _records(
        timestamps: Sequence[Optional[datetime]],
        predicted: np.ndarray,
        actual: np.ndarray,
        has_actual: np.ndarray,
    ) -> List[ResultRecord]:
    dev = absolute_deviation(actual, predicted)
    pct = error_percentage(actual, predicted)
    out: List[ResultRecord] = []
    for i, ts in enumerate(timestamps):
        if not has_actual[i]:
            out.append(ResultRecord(ts, float(predicted[i])))
            continue
        out.append(ResultRecord(
            timestamp=ts,
            predicted_value=float(predicted[i]),
            actual_value=float(actual[i]),
            deviation=float(dev[i]),
            error_percentage=float(pct[i]),
        ))
    return out

def _align_by_index(
        predicted: np.ndarray,
        actual: Actuals,
        missing_actual: Optional[float],
    ) -> tuple[np.ndarray, np.ndarray]:
    if isinstance(actual, pl.DataFrame):
        values = actual.get_column(Column.VALUE.value).to_numpy()
    else:
        values = np.asarray(actual, dtype=np.float64)
    values = values.astype(np.float64)[:len(predicted)]
    n = len(predicted)
    aligned = np.full(n, np.nan)
    aligned[:len(values)] = values
    has_actual = np.zeros(n, dtype=bool)
    has_actual[:len(values)] = True
    if missing_actual is not None:
        aligned[len(values):] = missing_actual
        has_actual[:] = True
    return aligned, has_actual

def _align_by_timestamp(
        predicted: np.ndarray,
        timestamps: List[datetime],
        actual: Actuals,
        actual_year_shift: int,
    ) -> tuple[np.ndarray, np.ndarray]:
    if not isinstance(actual, pl.DataFrame):
        raise InvalidInputError(
            "Timestamp alignment needs actual readings with timestamps."
        )
    ts = Column.TIMESTAMP.value
    actual = actual.select(
        pl.col(ts).cast(pl.Datetime("us")),
        pl.col(Column.VALUE.value).cast(pl.Float64).alias(_ACTUAL),
    )
    if actual_year_shift:
        actual = actual.with_columns(
            pl.col(ts).dt.offset_by(f"{actual_year_shift}y")
        )
    # Exact matches only; the first reading wins on duplicate timestamps
    actual = actual.unique(subset=[ts], keep="first", maintain_order=True)
    frame = pl.DataFrame({
        ts: pl.Series(timestamps, dtype=pl.Datetime("us")),
        _PREDICTED: predicted,
    }).with_row_index(_STEP)
    joined = frame.join(actual, on=ts, how="left").sort(_STEP)
    col = joined.get_column(_ACTUAL)
    has_actual = col.is_not_null().to_numpy()
    aligned = col.fill_null(np.nan).to_numpy().astype(np.float64)
    return aligned, has_actual

def compare(
        forecast: ArrayLike1D,
        actual: Optional[Actuals],
        *,
        policy: AlignmentPolicy = "index",
        start: Optional[datetime] = None,
        interval_minutes: int = 15,
        missing_actual: Optional[float] = None,
        actual_year_shift: int = 0,
    ) -> List[ResultRecord]:
    """
    Pair a denormalized forecast with actual readings.

    Parameters
    ----------
    forecast : ArrayLike1D
        Forecast values in the original scale, one per step.
    actual : array-like or pl.DataFrame, optional
        Actual readings. Index alignment accepts bare values or a
        series frame; timestamp alignment needs a series frame with
        ``timestamp`` and ``value`` columns. ``None`` yields records
        without actual values.
    policy : {"index", "timestamp"}, default "index"
        ``"index"`` pairs ``forecast[i]`` with ``actual[i]``.
        ``"timestamp"`` pairs step ``i`` with the actual reading whose
        timestamp equals ``start + i * interval_minutes`` exactly.
    start : datetime, optional
        Timestamp of the first forecast step. Required for timestamp
        alignment; when omitted under index alignment the records carry
        no timestamp. Aware values are converted to naive UTC.
    interval_minutes : int, default 15
        Spacing between forecast steps.
    missing_actual : float, optional
        Index alignment only: value used for steps past the end of the
        actual readings. ``None`` leaves those records unmatched.
    actual_year_shift : int, default 0
        Timestamp alignment only: whole years added to the actual
        timestamps before matching, e.g. ``1`` to compare a forecast of
        next year against this year's readings.

    Returns
    -------
    list of ResultRecord
        One record per forecast step, in step order.

    Raises
    ------
    InvalidInputError
        On an unknown policy, a missing ``start`` for timestamp
        alignment, or bare actual values under timestamp alignment.
    """
    if policy not in ALIGNMENT_POLICIES:
        raise InvalidInputError(
            f"Unknown alignment policy {policy!r}. "
            f"Choose from {ALIGNMENT_POLICIES}."
        )
    predicted = np.asarray(forecast, dtype=np.float64)
    n = len(predicted)
    if start is not None:
        timestamps: List[Optional[datetime]] = list(
            forecast_timestamps(to_naive_utc(start), n, interval_minutes)
        )
    elif policy == "timestamp":
        raise InvalidInputError("Timestamp alignment needs a start time.")
    else:
        timestamps = [None] * n

    if actual is None:
        aligned = np.full(n, np.nan)
        has_actual = np.zeros(n, dtype=bool)
    elif policy == "index":
        aligned, has_actual = _align_by_index(
            predicted, actual, missing_actual
        )
    else:
        aligned, has_actual = _align_by_timestamp(
            predicted,
            [t for t in timestamps if t is not None],
            actual,
            actual_year_shift,
        )
    return _records(timestamps, predicted, aligned, has_actual)

def summarize(records: Sequence[ResultRecord]) -> EvaluationSummary:
    """
    Aggregate deviation statistics over ``records``.

    Examples
    --------
    Forecast ``[10, 20]`` against actual ``[8, 0]`` gives deviations
    ``[2, 20]`` and error percentages ``[25, inf]``; only the first
    record is finite, so ``mean_deviation == 2``.
    """
    matched = [r for r in records if r.matched]
    predicted = np.array([r.predicted_value for r in matched])
    actual = np.array([r.actual_value for r in matched], dtype=np.float64)
    pct = np.array([r.error_percentage for r in matched], dtype=np.float64)
    dev = np.array([r.deviation for r in matched], dtype=np.float64)
    mask = (
        finite_mask(dev, pct) if matched else np.zeros(0, dtype=bool)
    )
    return EvaluationSummary(
        records=len(records),
        matched=len(matched),
        missing_actual=len(records) - len(matched),
        non_finite_predictions=sum(
            not math.isfinite(r.predicted_value) for r in records
        ),
        infinite_error_percentage=int((actual == 0).sum()),
        evaluated=int(mask.sum()),
        mean_deviation=mean_deviation(actual[mask], predicted[mask]),
        mean_error_percentage=(
            float(pct[mask].mean()) if mask.any() else float("nan")
        ),
        rmse=rmse(actual[mask], predicted[mask]),
        r2=strict_r2(actual[mask], predicted[mask]),
    )
