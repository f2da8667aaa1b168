# stdlib
import math
from typing import Optional
# thirdpartylib
import numpy as np
# projectlib
from energy_forecasting.models.forecasting import ModelHandle, Regressor
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.logging import Logger
from energy_forecasting.utils.typing import ArrayLike1D, FloatArray


def rollout(
        model: Regressor,
        handle: ModelHandle,
        seed_window: ArrayLike1D,
        steps: int,
        *,
        logger: Optional[Logger] = None,
    ) -> FloatArray:
    """
    Forecast ``steps`` readings autoregressively.

    Each prediction is appended to the output and fed back as the
    newest element of the window for the next prediction, so errors
    compound over the horizon. No correction, clipping or rescaling is
    applied: values stay in the scale of ``seed_window``.

    The sliding window lives in a buffer of ``2 * L`` slots. Every new
    value is written at ``start`` and ``start + L``, which keeps the
    current window available as the contiguous view
    ``buf[start:start + L]`` (oldest to newest) without allocating per
    step.

    Parameters
    ----------
    model : Regressor
        Regressor whose ``predict`` produced ``handle``.
    handle : ModelHandle
        Trained state; its ``look_back`` must equal the seed length.
    seed_window : ArrayLike1D
        Last ``L`` normalized readings of the training series.
    steps : int
        Number of future readings to produce.
    logger : Logger, optional
        Receives a warning when predictions are not finite.

    Returns
    -------
    FloatArray
        Array of length ``steps``; empty when ``steps == 0``.

    Raises
    ------
    InvalidInputError
        If ``steps`` is negative or the seed does not match the trained
        window length.

    Notes
    -----
    Non-finite predictions (NaN/Inf) are kept and keep propagating
    through later steps. The first one is logged and the total count is
    reported when the rollout completes.
    """
    seed = np.asarray(seed_window, dtype=np.float64)
    if steps < 0:
        raise InvalidInputError(f"steps must be non-negative, got {steps}.")
    if seed.ndim != 1 or seed.size != handle.look_back:
        raise InvalidInputError(
            f"Seed window of shape {seed.shape} does not match the trained "
            f"look-back of {handle.look_back}."
        )
    log = logger if logger is not None else Logger()
    L = seed.size
    out = np.empty(steps, dtype=np.float64)
    # Invariant: buf[i] == buf[i + L] for every i < L
    buf = np.concatenate([seed, seed])
    start = 0
    non_finite = 0
    for i in range(steps):
        value = model.predict(handle, buf[start:start + L])
        out[i] = value
        if not math.isfinite(value):
            if non_finite == 0:
                log.warning(
                    f"Non-finite prediction {value} at step {i}; "
                    "it will propagate through the rest of the rollout."
                )
            non_finite += 1
        # Slide: overwrite the oldest slot in both halves
        buf[start] = value
        buf[start + L] = value
        start = (start + 1) % L
    if non_finite:
        log.warning(
            f"{non_finite} of {steps} rollout predictions are non-finite."
        )
    return out
