"""pneumosim.core.types

Общие типы: вид элемента и ссылка на порт вида ``"V1.2"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ElementKind(str, Enum):
    SUPPLY = "supply"
    EXHAUST = "exhaust"
    TANK = "tank"
    PIPE = "pipe"
    VALVE = "valve"
    THROTTLE = "throttle"
    CHECK_VALVE = "checkvalve"
    REGULATOR = "regulator"
    EPU = "epu"

    @classmethod
    def parse(cls, tag: str) -> "ElementKind":
        norm = str(tag).strip().lower().replace("_", "").replace("-", "")
        for kind in cls:
            if kind.value == norm:
                return kind
        raise ValueError(f"Unknown element type: {tag!r}")

    @property
    def port_count(self) -> int:
        return 2 if self in TWO_PORT_KINDS else 1


TWO_PORT_KINDS = frozenset(
    {
        ElementKind.VALVE,
        ElementKind.THROTTLE,
        ElementKind.CHECK_VALVE,
        ElementKind.REGULATOR,
    }
)


@dataclass(frozen=True, slots=True)
class PortRef:
    """Ссылка на порт элемента в описании соединений."""

    element: str
    port: int = 1

    @classmethod
    def parse(cls, raw: str) -> "PortRef":
        text = str(raw).strip()
        if not text:
            raise ValueError("empty port reference")
        name, sep, port = text.partition(".")
        name = name.strip()
        if not name:
            raise ValueError(f"port reference {raw!r} has no element name")
        if not sep:
            return cls(element=name, port=1)
        try:
            number = int(port.strip())
        except ValueError as exc:
            raise ValueError(f"port reference {raw!r} has a non-integer port") from exc
        return cls(element=name, port=number)

    def __str__(self) -> str:
        return f"{self.element}.{self.port}"
