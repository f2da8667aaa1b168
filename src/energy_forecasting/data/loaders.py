# stdlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Sequence
# thirdpartylib
import numpy as np
import pandas as pd
import polars as pl
# projectlib
from energy_forecasting.data.schemas import Column, SourceField
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.paths import validate_address
from energy_forecasting.utils.typing import Address

SUPPORTED_SUFFIXES = (".csv", ".json")


def to_naive_utc(ts: datetime) -> datetime:
    """
    Express ``ts`` as a naive UTC datetime, the convention of every
    series frame. Naive inputs are assumed to be UTC already.
    """
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)

def to_series_frame(
        timestamps: Sequence[Any],
        values: Sequence[Any],
    ) -> pl.DataFrame:
    """
    Build a normalized series frame from raw timestamps and readings.

    Timestamps are parsed with pandas (ISO-8601 dates, datetimes and
    ``Z``/offset suffixes are accepted), converted to UTC and stored as
    naive ``Datetime[us]``. Readings are coerced to ``Float64``.

    Parameters
    ----------
    timestamps : Sequence
        Raw timestamp values in series order.
    values : Sequence
        Raw readings in series order.

    Returns
    -------
    pl.DataFrame
        Frame with columns ``timestamp`` and ``value``.

    Raises
    ------
    InvalidInputError
        If lengths differ, a timestamp cannot be parsed, or a reading is
        missing or not numeric.
    """
    if len(timestamps) != len(values):
        raise InvalidInputError(
            f"Got {len(timestamps)} timestamps for {len(values)} values."
        )
    try:
        ts = pd.to_datetime(
            pd.Series(timestamps, dtype=object), utc=True, format="ISO8601"
        )
    except (ValueError, TypeError) as e:
        raise InvalidInputError(f"Unparseable timestamp: {e}") from e
    naive = ts.dt.tz_convert(None).to_numpy().astype("datetime64[us]")
    # Coerce numeric values; invalid parses become NaN
    numeric = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce")
    n_missing = int(numeric.isna().sum())
    if n_missing:
        raise InvalidInputError(
            f"{n_missing} reading(s) are missing or not numeric."
        )
    return pl.DataFrame({
        Column.TIMESTAMP.value: naive,
        Column.VALUE.value: numeric.to_numpy(dtype=np.float64),
    })

def read_csv_series(source: Address) -> pl.DataFrame:
    """
    Read a 15-minute CSV export with ``timestamp`` and ``value_kw``
    columns. A plain ``value`` column is accepted as well.
    """
    path = validate_address(source, extension=".csv")
    # Read everything as text; parsing happens in to_series_frame
    raw = pl.read_csv(path, infer_schema_length=0)
    if Column.TIMESTAMP.value not in raw.columns:
        raise InvalidInputError(
            f"{path} has no '{Column.TIMESTAMP.value}' column."
        )
    for name in (SourceField.VALUE_KW, Column.VALUE):
        if name.value in raw.columns:
            value_col = name
            break
    else:
        raise InvalidInputError(
            f"{path} has neither a '{SourceField.VALUE_KW.value}' nor a "
            f"'{Column.VALUE.value}' column."
        )
    return to_series_frame(
        raw.get_column(Column.TIMESTAMP.value).to_list(),
        raw.get_column(value_col.value).to_list(),
    )

def read_json_series(source: Address) -> pl.DataFrame:
    """
    Read a JSON export.

    Two layouts are understood: the daily export
    ``{"entriesDaily": [{"day": ..., "day_total_kwh": ...}, ...]}`` and
    a plain list of ``{"timestamp": ..., "value": ...}`` objects.
    """
    path = validate_address(source, extension=".json")
    with open(path, "r", encoding="utf8") as file:
        content = json.load(file)

    if isinstance(content, dict) and SourceField.ENTRIES_DAILY.value in content:
        entries = content[SourceField.ENTRIES_DAILY.value]
        ts_key, value_key = SourceField.DAY.value, SourceField.DAY_TOTAL_KWH.value
    elif isinstance(content, list):
        entries = content
        ts_key, value_key = Column.TIMESTAMP.value, Column.VALUE.value
    else:
        raise InvalidInputError(
            f"{path} is neither a daily export nor a list of readings."
        )
    try:
        timestamps = [entry[ts_key] for entry in entries]
        values = [entry[value_key] for entry in entries]
    except (KeyError, TypeError) as e:
        raise InvalidInputError(f"Malformed entry in {path}: {e}") from e
    return to_series_frame(timestamps, values)

def load_series(source: Address) -> pl.DataFrame:
    """Read a series file, choosing the reader from its suffix."""
    suffix = Path(source).suffix.lower()
    readers = {".csv": read_csv_series, ".json": read_json_series}
    if suffix in readers:
        try:
            return readers[suffix](source)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise InvalidInputError(f"Cannot read series: {e}") from e
    raise InvalidInputError(
        f"Unsupported series file {source}; "
        f"expected one of {SUPPORTED_SUFFIXES}."
    )

def load_many(sources: Iterable[Address]) -> pl.DataFrame:
    """
    Read several series files (e.g. one per year) and concatenate them
    in the order given.
    """
    frames: List[pl.DataFrame] = [load_series(s) for s in sources]
    if not frames:
        raise InvalidInputError("No input series sources configured.")
    return pl.concat(frames, how="vertical")

def series_values(df: pl.DataFrame) -> np.ndarray:
    """Readings of a series frame as a float64 array."""
    return df.get_column(Column.VALUE.value).to_numpy().astype(np.float64)
