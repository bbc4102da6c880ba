from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple
import logging
import math

from pneumosim.core.validation import ensure_in_range, ensure_non_negative, ensure_positive
from pneumosim.errors import ProfileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhysicsConstants:
    rho: float = 1.2                        # kg/m^3, воздух
    smoothing_time_constant: float = 0.005  # s, постоянная фильтра расхода
    critical_pressure_delta: float = 0.5    # bar

    def __post_init__(self) -> None:
        ensure_positive(self.rho, "rho")
        ensure_positive(self.smoothing_time_constant, "smoothing_time_constant")
        ensure_positive(self.critical_pressure_delta, "critical_pressure_delta")

    def smoothing_alpha(self, dt: float) -> float:
        """Вес нового значения в экспоненциальном фильтре для шага dt."""

        return 1.0 - math.exp(-float(dt) / self.smoothing_time_constant)

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, float]]) -> "PhysicsConstants":
        if overrides is None:
            logger.info("No custom physics parameters in profile, using defaults")
            return cls()

        base = cls()
        keys = {str(k).lower(): v for k, v in overrides.items()}
        consts = cls(
            rho=float(keys.get("airdensityrho", base.rho)),
            smoothing_time_constant=float(keys.get("smoothingtimeconstant", base.smoothing_time_constant)),
            critical_pressure_delta=float(keys.get("criticalpressuredelta", base.critical_pressure_delta)),
        )
        logger.info(
            "Custom physics parameters: smoothing=%g s, rho=%g kg/m^3, critical dp=%g bar",
            consts.smoothing_time_constant,
            consts.rho,
            consts.critical_pressure_delta,
        )
        return consts


@dataclass(frozen=True)
class ElementSpec:
    name: str
    type: str
    parameters: Dict[str, str] = field(default_factory=dict)
    visible: bool = False
    flow_coefficient: float = 1.0
    description: str = ""
    comment: str = ""


@dataclass(frozen=True)
class ModelSpec:
    model_name: str = ""
    description: str = ""
    elements: Tuple[ElementSpec, ...] = ()
    # id узла -> ["V1.1", "T1", ...]
    connections: Dict[str, List[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ValveEvent:
    time_s: float
    state: float  # 0..1


@dataclass(frozen=True)
class EpuEvent:
    time_s: float
    target_pressure: float  # bar


def _sorted_events(timelines: Mapping[str, Tuple]) -> Dict[str, Tuple]:
    return {name: tuple(sorted(events, key=lambda e: e.time_s)) for name, events in timelines.items()}


def _active_value(events: Tuple, t: float, attr: str, default: float = 0.0) -> float:
    value = default
    for e in events:
        if e.time_s <= t:
            value = getattr(e, attr)
        else:
            break
    return float(value)


@dataclass(frozen=True)
class ExecutionProfile:
    time_step: float = 0.001       # s
    steady_tolerance: float = 1e-5 # bar за шаг
    hard_time_limit: float = 30.0  # s, аварийный стоп даже без установившегося режима

    valve_timelines: Dict[str, Tuple[ValveEvent, ...]] = field(default_factory=dict)
    epu_timelines: Dict[str, Tuple[EpuEvent, ...]] = field(default_factory=dict)
    physics: PhysicsConstants = PhysicsConstants()

    def __post_init__(self) -> None:
        try:
            ensure_positive(self.time_step, "time_step")
            ensure_positive(self.hard_time_limit, "hard_time_limit")
            ensure_non_negative(self.steady_tolerance, "steady_tolerance")
            for name, events in self.valve_timelines.items():
                for event in events:
                    ensure_in_range(event.state, 0.0, 1.0, f"valve {name} state")
        except ValueError as exc:
            raise ProfileError(str(exc)) from exc

        # frozen: сортировку пишем через object.__setattr__
        object.__setattr__(self, "valve_timelines", _sorted_events(self.valve_timelines))
        object.__setattr__(self, "epu_timelines", _sorted_events(self.epu_timelines))

    def valve_state(self, name: str, t: float) -> float:
        return _active_value(self.valve_timelines.get(name, ()), t, "state")

    def epu_target(self, name: str, t: float) -> float:
        return _active_value(self.epu_timelines.get(name, ()), t, "target_pressure")

    def last_event_time(self) -> float:
        t_max = 0.0
        for timeline in (*self.valve_timelines.values(), *self.epu_timelines.values()):
            if timeline:
                t_max = max(t_max, timeline[-1].time_s)
        return t_max
