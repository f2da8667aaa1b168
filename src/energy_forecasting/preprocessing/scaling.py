# stdlib
from dataclasses import dataclass
# thirdpartylib
import numpy as np
# projectlib
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.typing import ArrayLike1D, FloatArray


@dataclass(frozen=True)
class ScalingParams:
    """
    Min-max statistics of a training series.

    Computed once per run and shared by :func:`normalize` and the
    matching :func:`denormalize`.
    """
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def degenerate(self) -> bool:
        """True for a constant series (``max == min``)."""
        return self.span == 0.0


def fit_scaling(series: ArrayLike1D) -> ScalingParams:
    """
    Compute min-max scaling parameters from a series.

    Raises
    ------
    InvalidInputError
        If ``series`` is empty or contains non-finite values.
    """
    values = np.asarray(series, dtype=np.float64)
    if values.size == 0:
        raise InvalidInputError("Cannot fit scaling on an empty series.")
    if not np.all(np.isfinite(values)):
        raise InvalidInputError(
            "Cannot fit scaling on a series with non-finite values."
        )
    return ScalingParams(min=float(values.min()), max=float(values.max()))

def normalize(series: ArrayLike1D, params: ScalingParams) -> FloatArray:
    """
    Map ``v -> (v - min) / (max - min)``.

    A degenerate (constant) scale maps every value to ``0`` instead of
    dividing by zero.
    """
    values = np.asarray(series, dtype=np.float64)
    if params.degenerate:
        return np.zeros_like(values)
    return (values - params.min) / params.span

def denormalize(series: ArrayLike1D, params: ScalingParams) -> FloatArray:
    """
    Map ``v -> v * (max - min) + min``, the inverse of :func:`normalize`.

    With a degenerate scale every finite value maps back to the
    constant ``min``; NaN and Inf pass through unchanged.
    """
    values = np.asarray(series, dtype=np.float64)
    if params.degenerate:
        return np.where(np.isfinite(values), params.min, values)
    return values * params.span + params.min
