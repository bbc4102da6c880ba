"""Типизированный доступ к строковым параметрам элемента.

Параметры в описании модели хранятся строками ("10 mm", "0.5 l", "6 bar").
Отсутствующее или нечитаемое значение заменяется документированным
значением по умолчанию: это штатная деградация, а не ошибка.
"""

from __future__ import annotations

from typing import Dict, Mapping
import logging

from pneumosim.config.models import ElementSpec
from pneumosim.core import units

logger = logging.getLogger(__name__)

DEFAULT_DIAMETER_M = 0.01
DEFAULT_PORT_LENGTH_M = 0.03
MIN_PORT_VOLUME_M3 = 1e-9


class ParameterReader:
    def __init__(self, spec: ElementSpec) -> None:
        self.name = spec.name
        self._params: Dict[str, str] = {str(k).lower(): str(v) for k, v in spec.parameters.items()}

    def _fallback(self, key: str, raw: str | None, default):
        if raw is not None:
            logger.debug("%s: cannot parse %s=%r, using default %r", self.name, key, raw, default)
        return default

    def raw(self, key: str) -> str | None:
        return self._params.get(key.lower())

    def quantity(self, key: str, table: Mapping[str, float], default: float) -> float:
        raw = self.raw(key)
        if raw is None:
            return default
        parsed = units.parse_quantity(raw)
        if parsed is None:
            return self._fallback(key, raw, default)
        value = units.convert(parsed[0], parsed[1], table)
        if value is None:
            return self._fallback(key, raw, default)
        return value

    def diameter(self) -> float:
        d = self.quantity("diameter", units.LENGTH_UNITS, DEFAULT_DIAMETER_M)
        # нулевой/отрицательный диаметр даёт деление на ноль в площади порта
        return d if d > 0.0 else DEFAULT_DIAMETER_M

    def length(self, default: float = 0.0) -> float:
        return self.quantity("length", units.LENGTH_UNITS, default)

    def volume(self, default: float = 0.0) -> float:
        return self.quantity("volume", units.VOLUME_UNITS, default)

    def pressure(self, default: float = 0.0) -> float:
        p = self.quantity("pressure", units.PRESSURE_UNITS, default)
        return max(0.0, p)

    def number(self, key: str, default: float) -> float:
        raw = self.raw(key)
        if raw is None:
            return default
        parsed = units.parse_quantity(raw)
        if parsed is None:
            return self._fallback(key, raw, default)
        return parsed[0]

    def flag(self, key: str, default: bool) -> bool:
        raw = self.raw(key)
        if raw is None:
            return default
        norm = raw.strip().lower()
        if norm in ("true", "1", "yes"):
            return True
        if norm in ("false", "0", "no"):
            return False
        return self._fallback(key, raw, default)
