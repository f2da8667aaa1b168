# thirdpartylib
import numpy as np
from sklearn.metrics import mean_absolute_error, root_mean_squared_error
# projectlib
from energy_forecasting.utils.typing import ArrayLike1D, FloatArray

def absolute_deviation(
        y_true: ArrayLike1D,
        y_pred: ArrayLike1D,
    ) -> FloatArray:
    """Element-wise ``|y_pred - y_true|``."""
    return np.abs(
        np.asarray(y_pred, dtype=np.float64)
        - np.asarray(y_true, dtype=np.float64)
    )

def error_percentage(
        y_true: ArrayLike1D,
        y_pred: ArrayLike1D,
    ) -> FloatArray:
    """
    Element-wise deviation relative to the actual value, in percent.

    Unlike a clamped MAPE, no epsilon is added to the denominator: the
    result is ``inf`` exactly where ``y_true == 0`` so callers can
    exclude those points explicitly instead of averaging an inflated
    value.

    Parameters
    ----------
    y_true : array-like
        Actual values.
    y_pred : array-like
        Predicted values.

    Returns
    -------
    FloatArray
        ``|y_pred - y_true| / y_true * 100``, ``inf`` where
        ``y_true == 0``. A negative actual value gives a negative
        percentage.
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    dev = absolute_deviation(y_true, y_pred)
    denom = y_true
    out = np.full_like(dev, np.inf)
    np.divide(dev, denom, out=out, where=denom != 0)
    out[denom != 0] *= 100.0
    return out

def finite_mask(*arrays: ArrayLike1D) -> np.ndarray:
    """True where every array holds a finite value."""
    mask = np.ones(len(np.asarray(arrays[0])), dtype=bool)
    for arr in arrays:
        mask &= np.isfinite(np.asarray(arr, dtype=np.float64))
    return mask

def mean_deviation(y_true: ArrayLike1D, y_pred: ArrayLike1D) -> float:
    """Mean absolute deviation; ``NaN`` for empty input."""
    if len(np.asarray(y_true)) == 0:
        return float("nan")
    return float(mean_absolute_error(y_true, y_pred))

def rmse(y_true: ArrayLike1D, y_pred: ArrayLike1D) -> float:
    """Root mean squared error; ``NaN`` for empty input."""
    if len(np.asarray(y_true)) == 0:
        return float("nan")
    return float(root_mean_squared_error(y_true, y_pred))

def strict_r2(
    y_true: ArrayLike1D,
    y_pred: ArrayLike1D,
    eps: float = 1e-12
) -> float:
    """
    Compute the strict coefficient of determination (R²).

    This implementation follows the textbook definition of R²:

        R² = 1 - Σ(y_true - y_pred)² / Σ(y_true - ȳ_true)²

    Unlike :func:`sklearn.metrics.r2_score`, this function does **not**
    apply fallback conventions when the variance of ``y_true`` is zero
    or near-zero. In such degenerate cases (including empty input), the
    R² score is undefined and this function returns ``NaN``.

    Parameters
    ----------
    y_true : ArrayLike1D
        Ground-truth target values.
    y_pred : ArrayLike1D
        Predicted target values. Must have the same shape as ``y_true``.
    eps : float, default=1e-12
        Minimum allowable denominator value.

    Returns
    -------
    float
        The R² score, or ``NaN`` if the variance of ``y_true`` is zero
        or near-zero.
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if y_true.size == 0:
        return float("nan")
    denom = np.sum((y_true - y_true.mean()) ** 2)
    if denom <= eps:
        return float("nan")

    return float(1.0 - np.sum((y_true - y_pred) ** 2) / denom)
