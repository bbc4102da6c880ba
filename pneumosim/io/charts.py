from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from pneumosim.config.models import ModelSpec
from pneumosim.core.types import ElementKind
from pneumosim.io.recorder import TIME_COLUMN, series_by_element

VALVE_ROW_HEIGHT = 1.5


def _is_valve(tag: str) -> bool:
    try:
        return ElementKind.parse(tag) is ElementKind.VALVE
    except ValueError:
        return False


def plot_results(frame: pd.DataFrame, spec: ModelSpec, path: str | Path) -> Path:
    """Давления видимых элементов сверху, состояния видимых клапанов (0/1) снизу."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    series = series_by_element(frame)
    t = frame[TIME_COLUMN].to_numpy()
    valves = [e for e in spec.elements if e.visible and _is_valve(e.type)]
    pressures = [e for e in spec.elements if e.visible and not _is_valve(e.type)]

    if valves:
        fig, (ax, ax_v) = plt.subplots(
            2,
            1,
            figsize=(12, 6 + 0.4 * len(valves)),
            sharex=True,
            gridspec_kw={"height_ratios": [6, max(1.0, 0.4 * len(valves) + 0.6)]},
        )
    else:
        fig, ax = plt.subplots(figsize=(12, 6))
        ax_v = None

    for el in pressures:
        if el.name in series:
            ax.plot(t, series[el.name].to_numpy(), lw=2, label=el.name)
    ax.set_title("Pressure Distribution")
    ax.set_ylabel("Pressure [bar]")
    ax.grid(True, alpha=0.3)
    if pressures:
        ax.legend(fontsize=8)

    if ax_v is not None:
        ticks, labels = [], []
        for i, el in enumerate(valves):
            offset = i * VALVE_ROW_HEIGHT
            if el.name in series:
                state = (series[el.name].to_numpy() > 0.5).astype(float) + offset
                ax_v.plot(t, state, lw=2)
            ticks.append(offset + 0.5)
            labels.append(el.name)
        ax_v.set_yticks(ticks)
        ax_v.set_yticklabels(labels)
        ax_v.set_ylim(-1, len(valves) * VALVE_ROW_HEIGHT)
        ax_v.set_xlabel("Time [s]")
    else:
        ax.set_xlabel("Time [s]")

    fig.tight_layout()
    fig.savefig(path, dpi=100)
    plt.close(fig)
    return path
