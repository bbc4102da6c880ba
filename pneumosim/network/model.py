"""SimulationModel: владелец элементов, узлов и массива накопителей заряда.

Шаг (порядок фаз фиксирован):
    1) обнулить накопители заряда;
    2) update_state всех элементов (расписания, регуляторы);
    3) internal_flow двухпортовых элементов по давлениям узлов прошлого шага;
    4) решение равновесия в каждом узле + обмен зарядом узел <-> порты;
    5) calc_pressure всех элементов, max |Δp| -> метрика установившегося режима;
    6) t += dt.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple
import logging

import numpy as np

from pneumosim.config.models import ExecutionProfile, ModelSpec, PhysicsConstants
from pneumosim.core.types import PortRef
from pneumosim.core.validation import ensure_positive
from pneumosim.errors import ProfileError
from pneumosim.network.elements import (
    Element,
    EpuElement,
    TwoPortElement,
    ValveElement,
    build_element,
)
from pneumosim.network.junction import Connection, Junction
from pneumosim.network.validation import validate_model

logger = logging.getLogger(__name__)


class SimulationModel:
    def __init__(
        self,
        elements: Iterable[Element],
        junctions: Iterable[Junction],
        physics: Optional[PhysicsConstants] = None,
        name: str = "",
    ) -> None:
        self.name = name
        self.physics = physics or PhysicsConstants()

        self._elements: Tuple[Element, ...] = tuple(elements)
        self._by_name: Dict[str, Element] = {e.name: e for e in self._elements}
        self._two_port: Tuple[TwoPortElement, ...] = tuple(
            e for e in self._elements if isinstance(e, TwoPortElement)
        )
        self._junctions: Dict[int, Junction] = {j.id: j for j in sorted(junctions, key=lambda j: j.id)}

        n_slots = max((p.charge_index for e in self._elements for p in e.ports), default=-1) + 1
        self._charges = np.zeros(n_slots, dtype=np.float64)

        self.dt = 0.001
        self.time = 0.0
        self.step_count = 0
        self.interactive = False
        self.last_max_pressure_delta = 0.0

    # ------------------------------------------------------------------
    # Построение
    # ------------------------------------------------------------------
    @classmethod
    def from_spec(cls, spec: ModelSpec, physics: Optional[PhysicsConstants] = None) -> "SimulationModel":
        validate_model(spec)
        physics = physics or PhysicsConstants()

        elements: List[Element] = []
        charge_index = 0
        for element_id, el_spec in enumerate(spec.elements):
            element = build_element(el_spec, element_id, charge_index, physics)
            charge_index += len(element.ports)
            elements.append(element)
        by_name = {e.name: e for e in elements}

        junctions: List[Junction] = []
        for conn_id, members in spec.connections.items():
            junction = Junction(int(conn_id))
            for raw in members:
                ref = PortRef.parse(raw)
                element = by_name[ref.element]
                element.port(ref.port).junction_id = junction.id
                junction.add_connection(Connection(element, ref.port))
            junctions.append(junction)

        model = cls(elements, junctions, physics=physics, name=spec.model_name)
        logger.info(
            "Model %r built: %d elements, %d junctions, %d charge slots",
            spec.model_name,
            len(elements),
            len(junctions),
            model._charges.size,
        )
        if logger.isEnabledFor(logging.DEBUG):
            for line in model.describe():
                logger.debug(line)
        model.reset(model.dt)
        return model

    # ------------------------------------------------------------------
    # Доступ
    # ------------------------------------------------------------------
    @property
    def elements(self) -> Tuple[Element, ...]:
        return self._elements

    @property
    def junctions(self) -> Dict[int, Junction]:
        return dict(self._junctions)

    @property
    def charges(self) -> np.ndarray:
        view = self._charges.view()
        view.flags.writeable = False
        return view

    def element(self, name: str) -> Element:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown element: {name!r}") from None

    def pressure_of(self, name: str, port: int = 1) -> float:
        return self.element(name).port(port).pressure

    def loggable_values(self) -> Dict[str, float]:
        return {e.name: float(e.loggable_value) for e in self._elements}

    # интерфейс для элементов и узлов
    def charge(self, index: int) -> float:
        return float(self._charges[index])

    def add_charge(self, index: int, value: float) -> None:
        self._charges[index] += value

    def junction_pressure(self, junction_id: Optional[int]) -> Optional[float]:
        if junction_id is None:
            return None
        junction = self._junctions.get(junction_id)
        return None if junction is None else junction.pressure

    # ------------------------------------------------------------------
    # Управление
    # ------------------------------------------------------------------
    def reset(self, time_step: float) -> None:
        ensure_positive(time_step, "time_step")
        self.dt = float(time_step)
        self.time = 0.0
        self.step_count = 0
        self.last_max_pressure_delta = 0.0
        self._charges.fill(0.0)
        # стартовое давление узла -- среднее по его портам
        for junction in self._junctions.values():
            if junction.connections:
                junction.pressure = sum(c.pressure for c in junction.connections) / len(junction.connections)

    def apply_profile(self, profile: ExecutionProfile) -> float:
        """Inject valve / EPU schedules; returns the minimum run time."""

        for name, events in profile.valve_timelines.items():
            element = self._profile_target(name, ValveElement, "valve")
            element.set_schedule(events)
        for name, events in profile.epu_timelines.items():
            element = self._profile_target(name, EpuElement, "EPU")
            element.set_schedule(events)

        if profile.physics != self.physics:
            self.physics = profile.physics
        logger.info(
            "Profile applied: %d valve timelines, %d EPU timelines",
            len(profile.valve_timelines),
            len(profile.epu_timelines),
        )
        return profile.last_event_time()

    def _profile_target(self, name: str, cls: type, label: str):
        element = self._by_name.get(name)
        if element is None:
            raise ProfileError(f"Profile refers to unknown element {name!r}")
        if not isinstance(element, cls):
            raise ProfileError(f"Profile {label} timeline refers to {name!r} ({element.kind.value})")
        return element

    def set_control_value(self, name: str, value: float) -> None:
        element = self._by_name.get(name)
        if element is None:
            raise ProfileError(f"Unknown element {name!r}")
        if not element.controllable:
            raise ProfileError(f"{name!r} ({element.kind.value}) is not controllable")
        element.set_control_value(value)
        logger.debug("T=%.4fs: %s <- %g", self.time, name, value)

    # ------------------------------------------------------------------
    # Шаг
    # ------------------------------------------------------------------
    def step(self) -> float:
        self._charges.fill(0.0)

        for element in self._elements:
            element.update_state(self)

        for element in self._two_port:
            element.internal_flow(self)

        for junction in self._junctions.values():
            junction.solve(self.dt, self.physics)
            junction.exchange(self)
            if not junction.converged and logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "T=%.4fs: node #%d not converged, residual=%.3e",
                    self.time,
                    junction.id,
                    junction.residual,
                )

        max_delta = 0.0
        for element in self._elements:
            max_delta = max(max_delta, element.calc_pressure(self))
        self.last_max_pressure_delta = max_delta

        self.step_count += 1
        self.time = self.step_count * self.dt
        return max_delta

    def describe(self) -> List[str]:
        lines = [e.describe() for e in self._elements]
        lines.extend(j.info() for j in self._junctions.values())
        return lines
