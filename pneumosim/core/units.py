"""pneumosim.core.units

Единицы измерения и разбор строковых параметров элементов.

Принцип: внутри ядра давление хранится в bar, объём в m³, длина в m,
время в s. Перевод в SI (Pa) делается только там, где он нужен физике
(скорость истечения через отверстие).
"""

from __future__ import annotations

import math
import re
from typing import Dict, Optional, Tuple

# Base units (conceptual SI multipliers)
METER: float = 1.0
SECOND: float = 1.0
PASCAL: float = 1.0

# Convenience multipliers
BAR: float = 1e5 * PASCAL
MBAR: float = 1e-3 * BAR
CENTIMETER: float = 1e-2 * METER
MILLIMETER: float = 1e-3 * METER
LITRE: float = 1e-3 * (METER**3)
MILLISECOND: float = 1e-3 * SECOND

PA_PER_BAR: float = BAR / PASCAL

# Скорость звука в воздухе при комнатной температуре, m/s
SONIC_VELOCITY: float = 340.0

# "10 mm", "0.5l", "0.01 m3", "6 bar"
_PARAM_RE = re.compile(r"^([-+]?\d*\.?\d+)\s*([a-zA-Z]*[³3]?)$")

# unit -> множитель к базовой единице величины
LENGTH_UNITS: Dict[str, float] = {"": 1.0, "m": 1.0, "cm": CENTIMETER, "mm": MILLIMETER}
VOLUME_UNITS: Dict[str, float] = {"": 1.0, "m3": 1.0, "m³": 1.0, "l": LITRE}
# давление остаётся в bar
PRESSURE_UNITS: Dict[str, float] = {"": 1.0, "bar": 1.0, "mbar": MBAR / BAR}


def parse_quantity(raw: str) -> Optional[Tuple[float, str]]:
    """Split a parameter string like ``"10 mm"`` into ``(10.0, "mm")``.

    Returns ``None`` when the string does not look like a number with an
    optional unit suffix.
    """

    match = _PARAM_RE.match(str(raw).strip())
    if match is None:
        return None
    value = float(match.group(1))
    if not math.isfinite(value):
        return None
    return value, match.group(2)


def convert(value: float, unit: str, table: Dict[str, float]) -> Optional[float]:
    factor = table.get(unit.lower())
    if factor is None:
        return None
    return float(value * factor)


def circle_area(diameter_m: float) -> float:
    r = diameter_m / 2.0
    return math.pi * r * r
