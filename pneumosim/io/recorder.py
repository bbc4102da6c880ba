from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional
import json

import h5py
import numpy as np
import pandas as pd

from pneumosim.network.elements import Element, TwoPortElement

TIME_COLUMN = "Time[s]"


def column_name(element: Element) -> str:
    # у клапанов в журнал идёт степень открытия, у остальных давление
    suffix = "_State" if isinstance(element, TwoPortElement) else "_P[bar]"
    return f"{element.name}{suffix}"


class ResultRecorder:
    """Построчная запись loggable-значений элементов.

    Первая точка пишется всегда, следующие -- только если время ушло вперёд
    не меньше чем на min_interval.
    """

    def __init__(self, elements: Iterable[Element], min_interval: float = 0.001):
        self.elements: List[Element] = sorted(elements, key=lambda e: e.id)
        self.min_interval = float(min_interval)
        self.columns: List[str] = [TIME_COLUMN] + [column_name(e) for e in self.elements]
        self._rows: List[List[float]] = []
        self._last_time: Optional[float] = None

    def __len__(self) -> int:
        return len(self._rows)

    def record(self, time: float) -> bool:
        # небольшой допуск: t накапливается как k*dt
        if self._last_time is not None and time < self._last_time + self.min_interval - 1e-12:
            return False
        self._rows.append([float(time)] + [float(e.loggable_value) for e in self.elements])
        self._last_time = float(time)
        return True

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=self.columns)

    def write_csv(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(path, sep=";", index=False, float_format="%.4f")
        return path

    def write_h5(self, path: str | Path, attrs: Optional[Mapping[str, object]] = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        frame = self.to_frame()
        with h5py.File(path, "w") as h5:
            grp = h5.create_group("results")
            for col in frame.columns:
                grp.create_dataset(
                    col,
                    data=np.asarray(frame[col].to_numpy(), dtype=np.float32),
                    compression="gzip",
                    compression_opts=5,
                )
            for k, v in (attrs or {}).items():
                if isinstance(v, (dict, list, tuple)):
                    grp.attrs[f"{k}_json"] = json.dumps(v, ensure_ascii=False)
                else:
                    grp.attrs[k] = v
        return path


def read_csv(path: str | Path) -> pd.DataFrame:
    return pd.read_csv(path, sep=";")


def series_by_element(frame: pd.DataFrame) -> Dict[str, pd.Series]:
    """Колонки ``<name>_P[bar]`` / ``<name>_State`` -> {name: series}."""

    out: Dict[str, pd.Series] = {}
    for col in frame.columns:
        if col == TIME_COLUMN:
            continue
        name, _, _ = col.rpartition("_")
        out[name or col] = frame[col]
    return out
