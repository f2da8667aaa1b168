# stdlib
from dataclasses import dataclass
# thirdpartylib
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
# projectlib
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.typing import ArrayLike1D, FloatArray


@dataclass(frozen=True)
class WindowedDataset:
    """
    Supervised pairs cut from a series.

    ``X`` has shape ``(n, look_back)`` and ``y`` shape ``(n,)``; row
    ``X[i]`` holds the ``look_back`` readings immediately preceding
    ``y[i]``.
    """
    X: FloatArray
    y: FloatArray

    def __len__(self) -> int:
        return len(self.y)

    @property
    def look_back(self) -> int:
        return self.X.shape[1]


def build_windows(series: ArrayLike1D, look_back: int) -> WindowedDataset:
    """
    Turn a series into ``(window, target)`` pairs.

    Window ``i`` covers positions ``[i, i + look_back)`` and its target
    is the reading at position ``i + look_back``, so a series of length
    ``N`` yields ``N - look_back`` pairs in ascending series order.

    Parameters
    ----------
    series : ArrayLike1D
        Ordered readings (normally already normalized).
    look_back : int
        Window length; must satisfy ``0 < look_back < len(series)``.

    Returns
    -------
    WindowedDataset
        Read-only windows and targets.

    Raises
    ------
    InvalidInputError
        If ``look_back`` is not positive or does not leave at least one
        target in the series.

    Examples
    --------
    >>> ds = build_windows([1, 2, 3, 4, 5, 6], 2)
    >>> ds.X.tolist()
    [[1.0, 2.0], [2.0, 3.0], [3.0, 4.0], [4.0, 5.0]]
    >>> ds.y.tolist()
    [3.0, 4.0, 5.0, 6.0]
    """
    values = np.asarray(series, dtype=np.float64)
    if look_back <= 0:
        raise InvalidInputError(
            f"look_back must be positive, got {look_back}."
        )
    if look_back >= len(values):
        raise InvalidInputError(
            f"look_back ({look_back}) must be smaller than the series "
            f"length ({len(values)})."
        )
    # Drop the last view: it has no following target
    X = sliding_window_view(values, look_back)[:-1].copy()
    y = values[look_back:].copy()
    X.flags.writeable = False
    y.flags.writeable = False
    return WindowedDataset(X=X, y=y)
