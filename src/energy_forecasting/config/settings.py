# stdlib
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
# projectlib
from energy_forecasting.config.env import OUTPUT_ROOT, fetch_var
from energy_forecasting.utils.errors import InvalidInputError
from energy_forecasting.utils.typing import (
    ALIGNMENT_POLICIES,
    MODEL_KINDS,
    AlignmentPolicy,
    ModelKind,
    Verbosity,
)

# 96 intervals of 15 minutes = 24 hours
DEFAULT_LOOK_BACK = 96
DEFAULT_INTERVAL_MINUTES = 15
# One year of 15-minute intervals
DEFAULT_STEPS = 365 * 96
# Prefix of environment variables read by ForecastConfig.from_env
ENV_PREFIX = "FORECAST_"


@dataclass(frozen=True)
class TrainingConfig:
    """
    Options forwarded to a regressor's ``train`` call.

    These only change how (and for how long) a model is fitted; none of
    them alter the shape of the window the model accepts.
    """
    epochs: int = 10
    batch_size: int = 16
    validation_split: float = 0.1
    early_stopping_patience: int = 3
    learning_rate: float = 1e-3
    hidden_size: int = 32
    dense_size: int = 16
    seed: Optional[int] = None


def _parse_paths(raw: str) -> Tuple[Path, ...]:
    return tuple(Path(p.strip()) for p in raw.split(",") if p.strip())

def _parse_optional_float(raw: str) -> Optional[float]:
    return None if raw.lower() in {"", "none", "null"} else float(raw)

def _parse_bool(raw: str) -> bool:
    return raw.lower() in {"1", "true", "yes", "on"}

# Environment value parsers keyed by ForecastConfig field name
_PARSERS: Dict[str, Callable[[str], Any]] = {
    "look_back": int,
    "steps": int,
    "epochs": int,
    "batch_size": int,
    "validation_split": float,
    "early_stopping_patience": int,
    "alignment_policy": str,
    "interval_minutes": int,
    "model": str,
    "learning_rate": float,
    "hidden_size": int,
    "dense_size": int,
    "seed": int,
    "missing_actual": _parse_optional_float,
    "start_time": datetime.fromisoformat,
    "actual_year_shift": int,
    "input_paths": _parse_paths,
    "comparison_path": Path,
    "output_path": Path,
    "plot_path": Path,
    "verbosity": int,
    "write_log": _parse_bool,
    "log_dir": Path,
}


@dataclass(frozen=True)
class ForecastConfig:
    """
    Complete configuration of one forecasting run.

    A single structure carries the model and rollout options together
    with the input sources, the comparison source and the output sink,
    so the pipeline never depends on module-level constants.

    Attributes
    ----------
    look_back : int
        Number of past readings fed to the model (window length).
    steps : int
        Number of future intervals to forecast.
    alignment_policy : {"index", "timestamp"}
        How forecast steps are paired with actual readings.
    interval_minutes : int
        Sampling interval used to synthesize forecast timestamps.
    missing_actual : float, optional
        Value used for forecast steps without an actual reading under
        index alignment. ``None`` leaves the actual value empty.
    start_time : datetime, optional
        Timestamp of the first forecast step. Defaults to one interval
        after the last input reading.
    actual_year_shift : int
        Whole years added to the comparison timestamps before
        timestamp alignment.
    """
    look_back: int = DEFAULT_LOOK_BACK
    steps: int = DEFAULT_STEPS
    epochs: int = 10
    batch_size: int = 16
    validation_split: float = 0.1
    early_stopping_patience: int = 3
    alignment_policy: AlignmentPolicy = "index"
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    model: ModelKind = "lstm"
    learning_rate: float = 1e-3
    hidden_size: int = 32
    dense_size: int = 16
    seed: Optional[int] = None
    missing_actual: Optional[float] = None
    start_time: Optional[datetime] = None
    actual_year_shift: int = 0
    input_paths: Tuple[Path, ...] = ()
    comparison_path: Optional[Path] = None
    output_path: Optional[Path] = None
    plot_path: Optional[Path] = None
    verbosity: Verbosity = 1
    write_log: bool = False
    log_dir: Path = field(default_factory=lambda: Path(OUTPUT_ROOT))

    def __post_init__(self) -> None:
        if self.look_back <= 0:
            raise InvalidInputError(
                f"look_back must be positive, got {self.look_back}."
            )
        if self.steps < 0:
            raise InvalidInputError(
                f"steps must be non-negative, got {self.steps}."
            )
        if self.epochs <= 0 or self.batch_size <= 0:
            raise InvalidInputError(
                "epochs and batch_size must be positive."
            )
        if not 0.0 <= self.validation_split < 1.0:
            raise InvalidInputError(
                "validation_split must lie in [0, 1), "
                f"got {self.validation_split}."
            )
        if self.early_stopping_patience < 0:
            raise InvalidInputError(
                "early_stopping_patience must be non-negative."
            )
        if self.interval_minutes <= 0:
            raise InvalidInputError(
                "interval_minutes must be positive, "
                f"got {self.interval_minutes}."
            )
        if self.alignment_policy not in ALIGNMENT_POLICIES:
            raise InvalidInputError(
                f"Unknown alignment policy {self.alignment_policy!r}. "
                f"Choose from {ALIGNMENT_POLICIES}."
            )
        if self.model not in MODEL_KINDS:
            raise InvalidInputError(
                f"Unknown model {self.model!r}. Choose from {MODEL_KINDS}."
            )
        if self.verbosity not in (0, 1, 2):
            raise InvalidInputError("verbosity must be 0, 1 or 2.")

    @property
    def training(self) -> TrainingConfig:
        """Training options forwarded to the regressor."""
        return TrainingConfig(
            epochs=self.epochs,
            batch_size=self.batch_size,
            validation_split=self.validation_split,
            early_stopping_patience=self.early_stopping_patience,
            learning_rate=self.learning_rate,
            hidden_size=self.hidden_size,
            dense_size=self.dense_size,
            seed=self.seed,
        )

    def with_overrides(self, **overrides: Any) -> "ForecastConfig":
        """Return a copy with ``overrides`` applied (``None`` ignored)."""
        return replace(
            self,
            **{k: v for k, v in overrides.items() if v is not None},
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> "ForecastConfig":
        """
        Build a configuration from ``FORECAST_*`` environment variables.

        Each field maps to the upper-cased variable name with the
        ``FORECAST_`` prefix (``look_back`` -> ``FORECAST_LOOK_BACK``).
        Unset variables keep the dataclass default; keyword
        ``overrides`` take precedence over the environment.

        Raises
        ------
        InvalidInputError
            If a variable cannot be parsed or a value is out of range.
        """
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = fetch_var(ENV_PREFIX + f.name.upper(), "")
            if not raw:
                continue
            try:
                values[f.name] = _PARSERS[f.name](raw)
            except ValueError as e:
                raise InvalidInputError(
                    f"Cannot parse {ENV_PREFIX + f.name.upper()}={raw!r}: {e}"
                ) from e
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
