# stdlib
from pathlib import Path
from typing import Dict, Optional, Sequence
# thirdpartylib
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib as mpl
from cycler import cycler
from matplotlib.axes import Axes
# projectlib
from energy_forecasting.evaluation.compare import ResultRecord
from energy_forecasting.utils.paths import validate_address
from energy_forecasting.utils.typing import Address


def use_dark_theme() -> None:
    """
    Apply a shadcn-inspired dark theme to Matplotlib.

    This function updates Matplotlib's global rcParams to use a dark
    color palette with subtle gridlines, muted text, and a modern line
    color cycle suitable for time-series plots.
    """
    mpl.rcParams.update({
        "figure.facecolor": "#0a0a0a",
        "axes.facecolor": "#171717",
        "axes.edgecolor": "#ffffff1a",
        "axes.labelcolor": "#fafafa",
        "axes.titlecolor": "#fafafa",
        "grid.color": "#ffffff1a",
        "grid.alpha": 0.4,
        "grid.linewidth": 0.2,
        "xtick.color": "#a1a1a1",
        "ytick.color": "#a1a1a1",
        "lines.linewidth": 1.6,
        "text.color": "#e5e7eb",
        "legend.edgecolor": "#ffffff1a",
        "legend.facecolor": "#171717",
        "legend.fontsize": 9,
        "legend.frameon": True,
        "axes.grid": True,
        "axes.prop_cycle": cycler(color=[
            "#1447e6",
            "#00bc7d",
            "#fe9a00",
            "#ad46ff",
            "#ff2056",
        ]),
    })

def records_to_frame(records: Sequence[ResultRecord]) -> pd.DataFrame:
    """
    Result records as a DataFrame indexed by step timestamp (or step
    number when the records carry no timestamps).
    """
    df = pd.DataFrame({
        "predicted": [r.predicted_value for r in records],
        "actual": [r.actual_value for r in records],
        "deviation": [r.deviation for r in records],
    }, dtype="float64")
    if records and records[0].timestamp is not None:
        df.index = pd.DatetimeIndex([r.timestamp for r in records])
    return df

def plot_series_comparison(
        series: Dict[str, pd.Series],
        *,
        title: str,
        ylabel: str,
        ax: Optional[Axes] = None,
        alpha: float = 0.8,
    ) -> Axes:
    """
    Plot multiple aligned series on a shared axis.

    Parameters
    ----------
    series : dict[str, pandas.Series]
        Mapping from label to indexed series. All series must share
        compatible indices.
    title : str
        Plot title.
    ylabel : str
        Y-axis label.
    ax : matplotlib.axes.Axes, optional
        Axes on which to draw the plot. A new one is created if None.
    alpha : float, default 0.8
        Base transparency applied to all lines.

    Returns
    -------
    matplotlib.axes.Axes
        The axes containing the rendered plot.
    """
    use_dark_theme()
    if ax is None:
        _, ax = plt.subplots( # pyright: ignore[reportUnknownMemberType]
            figsize=(12, 5)
        )

    for label, s in series.items():
        ax.plot( # pyright: ignore[reportUnknownMemberType]
            s.index,
            s.to_numpy(),
            label=label,
            alpha=alpha,
        )

    ax.set_title(title) # pyright: ignore[reportUnknownMemberType]
    ax.set_xlabel("UTC time") # pyright: ignore[reportUnknownMemberType]
    ax.set_ylabel(ylabel) # pyright: ignore[reportUnknownMemberType]
    ax.legend() # pyright: ignore[reportUnknownMemberType]
    plt.tight_layout() # pyright: ignore[reportUnknownMemberType]

    return ax

def save_forecast_plot(
        records: Sequence[ResultRecord],
        destination: Address,
        *,
        title: str = "Energy consumption: Forecast vs Actual",
        ylabel: str = "Consumption",
    ) -> Path:
    """Render forecast and actual values of ``records`` to a PNG file."""
    path = validate_address(
        destination, extension=".png", mode="w", mkdir=True
    )
    df = records_to_frame(records)
    series = {"forecast": df["predicted"]}
    if df["actual"].notna().any():
        series["actual"] = df["actual"]
    use_dark_theme()
    fig, ax = plt.subplots( # pyright: ignore[reportUnknownMemberType]
        figsize=(12, 5)
    )
    plot_series_comparison(series, title=title, ylabel=ylabel, ax=ax)
    fig.savefig( # pyright: ignore[reportUnknownMemberType]
        path,
        dpi=150,
    )
    plt.close(fig)
    return path
