"""Matplotlib time-series chart of buoy vs satellite temperature."""
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.dates as mdates  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402

Y_RANGE = (-20, 5)   # °C


def plot_matchups(matched, title=None, figsize=(10, 5)):
    """
    Plot ``temp_buoy`` and ``temp_sat`` against date on one Celsius axis.

    Missing values leave gaps in the lines; the y-axis is fixed to
    [-20, 5] °C so runs are visually comparable.
    """
    fig, ax = plt.subplots(figsize=figsize)
    dates = matched["date"]

    ax.plot(dates, matched["temp_buoy"], color="tab:blue", marker="o",
            markersize=4, linewidth=1, label="Buoy surface temperature")
    ax.plot(dates, matched["temp_sat"], color="tab:red", marker="s",
            markersize=4, linewidth=1, label="Satellite ice surface temperature")

    ax.set_ylim(*Y_RANGE)
    ax.set_ylabel("Temperature (°C)")
    ax.set_xlabel("Date")
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()
    ax.grid(True, alpha=0.3)
    ax.legend(loc="lower left")
    if title:
        ax.set_title(title)
    fig.tight_layout()
    return fig


def save_matchup_plot(matched, path, title=None):
    """Render the chart to ``path`` (PNG) and close the figure."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = plot_matchups(matched, title=title)
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path
