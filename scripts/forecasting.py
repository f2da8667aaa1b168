# stdlib
import sys
import argparse
from datetime import datetime
from pathlib import Path
from typing import Any, Dict
# projectlib
from energy_forecasting.config.env import DATA_ROOT, OUTPUT_ROOT
from energy_forecasting.config.settings import ForecastConfig
from energy_forecasting.pipeline import ForecastPipeline
from energy_forecasting.utils.errors import ForecastError
from energy_forecasting.utils.typing import ALIGNMENT_POLICIES, MODEL_KINDS

def parse_args() -> argparse.Namespace:
    """Parse input arguments for Forecasting."""
    parser = argparse.ArgumentParser(
        description=(
            "Train on historical energy readings, forecast the next "
            "horizon and compare it with actual readings."
        ),
    )
    parser.add_argument(
        "--input",
        type=Path,
        nargs="+",
        default=None,
        help="Series files (.csv or .json) in chronological order.",
    )
    parser.add_argument(
        "--compare",
        type=Path,
        default=None,
        help="Series file holding actual readings for the horizon.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="JSON file receiving the result records.",
    )
    parser.add_argument(
        "--plot",
        type=Path,
        default=None,
        help="Optional PNG file for a forecast vs actual plot.",
    )
    parser.add_argument("--look_back", type=int, default=None)
    parser.add_argument("--steps", type=int, default=None)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--batch_size", type=int, default=None)
    parser.add_argument("--validation_split", type=float, default=None)
    parser.add_argument("--early_stopping_patience", type=int, default=None)
    parser.add_argument("--interval_minutes", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--alignment",
        choices=ALIGNMENT_POLICIES,
        default=None,
        help="Pair forecast steps with actual readings by index or timestamp.",
    )
    parser.add_argument(
        "--model",
        choices=MODEL_KINDS,
        default=None,
        help="Regression model to train.",
    )
    parser.add_argument(
        "--missing_actual",
        type=float,
        default=None,
        help="Actual value assumed past the end of the comparison data.",
    )
    parser.add_argument(
        "--start_time",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp of the first forecast step.",
    )
    parser.add_argument(
        "--year_shift",
        type=int,
        default=None,
        help="Years added to comparison timestamps before matching.",
    )
    parser.add_argument(
        "--verbosity",
        type=int,
        default=None,
        choices=(0, 1, 2),
        help=(
            "Verbosity level: "
            "0 = silent, "
            "1 = info, "
            "2 = debug"
        ),
    )
    parser.add_argument(
        "--write_log",
        action="store_true",
        help="Whether to store message/info outputs to a log file.",
    )

    return parser.parse_args()

def build_config(args: argparse.Namespace) -> ForecastConfig:
    """
    Merge command-line arguments over ``FORECAST_*`` environment
    variables; unset options fall back to the defaults.
    """
    overrides: Dict[str, Any] = {
        "input_paths": tuple(args.input) if args.input else None,
        "comparison_path": args.compare,
        "output_path": args.output,
        "plot_path": args.plot,
        "look_back": args.look_back,
        "steps": args.steps,
        "epochs": args.epochs,
        "batch_size": args.batch_size,
        "validation_split": args.validation_split,
        "early_stopping_patience": args.early_stopping_patience,
        "interval_minutes": args.interval_minutes,
        "seed": args.seed,
        "alignment_policy": args.alignment,
        "model": args.model,
        "missing_actual": args.missing_actual,
        "start_time": args.start_time,
        "actual_year_shift": args.year_shift,
        "verbosity": args.verbosity,
        "write_log": args.write_log or None,
    }
    config = ForecastConfig.from_env(**overrides)
    # Fall back to the default export locations
    defaults: Dict[str, Any] = {}
    if not config.input_paths:
        defaults["input_paths"] = (Path(DATA_ROOT) / "energy-data.csv",)
    if config.output_path is None:
        defaults["output_path"] = Path(OUTPUT_ROOT) / "predictions.json"
    return config.with_overrides(**defaults)

def main() -> None:
    """
    Entry point for running the forecasting pipeline from the command
    line.

    Trains the configured model on the input series, forecasts the
    configured horizon, compares it with the comparison series when one
    is given, and writes the result records (and optional plot) to disk.
    """
    args = parse_args()
    try:
        config = build_config(args)
        run = ForecastPipeline(config).run_from_sources()
    except ForecastError as e:
        print(f"Forecast failed: {e}", file=sys.stderr)
        sys.exit(1)
    summary = run.summary
    print(
        f"Forecast saved to {run.output_path} "
        f"({summary.records} steps, mean deviation "
        f"{summary.mean_deviation:.4f})"
    )

if __name__ == "__main__":
    main()
