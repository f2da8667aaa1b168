class ForecastError(Exception):
    """Base class for failures raised by the forecasting pipeline."""


class InvalidInputError(ForecastError, ValueError):
    """
    Input series or run configuration cannot be used.

    Raised before any model training starts: empty series, a look-back
    window that does not fit in the series, non-finite readings, or
    out-of-range configuration values.
    """


class TrainingFailure(ForecastError, RuntimeError):
    """
    The regression model could not be fitted.

    The underlying exception, when there is one, is chained as
    ``__cause__``.
    """
