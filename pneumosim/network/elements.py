"""Элементы пневмосети.

Каждый элемент имеет один или два порта; порт хранит давление (bar), объём
(м³) и индекс ячейки в массиве накопителей заряда модели.

Контракт элемента (вызывается моделью по фазам шага):
- update_state(model)   -- расписание / регулятор / исполнительный механизм;
- internal_flow(model)  -- перенос заряда между своими двумя портами
                           (только двухпортовые элементы);
- calc_pressure(model)  -- интегрирование накопленного заряда в давление,
                           возвращает |Δp| за шаг (метрика установившегося режима).

Двухпортовые элементы (клапан, дроссель, обратный клапан, регулятор) держат
независимое состояние на каждом порту и связаны только своим внутренним
расходом. Общая часть вынесена в TwoPortElement; варианты наследуют только её.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple
import logging
import math

from pneumosim.config.models import ElementSpec, EpuEvent, PhysicsConstants, ValveEvent
from pneumosim.core.types import ElementKind
from pneumosim.core.units import circle_area
from pneumosim.core.validation import ensure_finite
from pneumosim.errors import ModelConfigError, NumericalError
from pneumosim.network.parameters import DEFAULT_PORT_LENGTH_M, MIN_PORT_VOLUME_M3, ParameterReader
from pneumosim.physics.actuators import PIController, PT1, PT2
from pneumosim.physics.flow import charge_flow, limit_charge, smoothed_flow, valve_transition_alpha

if TYPE_CHECKING:
    from pneumosim.network.model import SimulationModel

logger = logging.getLogger(__name__)

_OPENING_EPS = 1e-9
_STATE_EPS = 1e-6


@dataclass
class Port:
    pressure: float = 0.0         # bar
    volume: float = 0.0           # m^3
    charge_index: int = -1
    junction_id: Optional[int] = None


@dataclass(frozen=True)
class ElementInfo:
    id: int
    name: str
    kind: ElementKind
    diameter: float               # m
    flow_coefficient: float = 1.0
    visible: bool = False
    description: str = ""

    @property
    def area(self) -> float:
        return circle_area(self.diameter)


def _integrate_port(port: Port, model: "SimulationModel", name: str) -> float:
    """p = (p_old·V + charge) / V, clamp >= 0. Returns |Δp|."""

    old = port.pressure
    volume = max(port.volume, MIN_PORT_VOLUME_M3)
    p = (old * volume + model.charge(port.charge_index)) / volume
    try:
        ensure_finite(p, f"pressure from charge #{port.charge_index}")
    except ValueError as exc:
        raise NumericalError(name, model.time, str(exc)) from exc
    port.pressure = max(0.0, p)
    return abs(port.pressure - old)


class Element:
    controllable = False

    def __init__(self, info: ElementInfo, ports: Sequence[Port]) -> None:
        self.info = info
        self.ports: Tuple[Port, ...] = tuple(ports)

    @property
    def id(self) -> int:
        return self.info.id

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def kind(self) -> ElementKind:
        return self.info.kind

    @property
    def area(self) -> float:
        return self.info.area

    @property
    def flow_coefficient(self) -> float:
        return self.info.flow_coefficient

    @property
    def visible(self) -> bool:
        return self.info.visible

    @property
    def pressure(self) -> float:
        return self.ports[0].pressure

    @property
    def loggable_value(self) -> float:
        return self.pressure

    def port(self, number: int) -> Port:
        if not 1 <= number <= len(self.ports):
            raise ModelConfigError(f"{self.name} has no port {number} (ports: 1..{len(self.ports)})")
        return self.ports[number - 1]

    def update_state(self, model: "SimulationModel") -> None:
        # у большинства элементов нет внутреннего состояния
        return None

    def internal_flow(self, model: "SimulationModel") -> float:
        return 0.0

    def calc_pressure(self, model: "SimulationModel") -> float:
        raise NotImplementedError

    def set_control_value(self, value: float) -> None:
        raise TypeError(f"{self.name} ({self.kind.value}) is not controllable")

    def describe(self) -> str:
        joints = " <=> ".join(str(p.junction_id) for p in self.ports)
        return f"Element #{self.id}: {self.name} ({self.kind.value}) [{joints}]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, id={self.id})"


class SourceElement(Element):
    """Supply / Exhaust: давление задано и не меняется (выхлоп = 0 bar)."""

    def calc_pressure(self, model: "SimulationModel") -> float:
        return 0.0


class VolumeElement(Element):
    """Tank / Pipe: сосредоточенный объём, давление из накопленного заряда."""

    @property
    def volume(self) -> float:
        return self.ports[0].volume

    def calc_pressure(self, model: "SimulationModel") -> float:
        return _integrate_port(self.ports[0], model, self.name)


class TwoPortElement(Element):
    def __init__(self, info: ElementInfo, ports: Sequence[Port], opening: float = 0.0) -> None:
        super().__init__(info, ports)
        self.opening = float(opening)
        self.last_internal_flow = 0.0

    @property
    def pressure_port2(self) -> float:
        return self.ports[1].pressure

    @property
    def loggable_value(self) -> float:
        return self.opening

    def _junction_pressures(self, model: "SimulationModel") -> Optional[Tuple[float, float]]:
        p1 = model.junction_pressure(self.ports[0].junction_id)
        p2 = model.junction_pressure(self.ports[1].junction_id)
        if p1 is None or p2 is None:
            return None
        return p1, p2

    def _transfer(self, model: "SimulationModel", p1: float, p2: float, area: float) -> float:
        q = smoothed_flow(
            p1,
            p2,
            area,
            self.flow_coefficient,
            self.last_internal_flow,
            model.dt,
            model.physics,
        )
        # источник -- сторона, из которой идёт поток
        p_source = p1 if q > 0 else p2
        dq = charge_flow(q, p_source) * model.dt

        # не больше, чем выравнивает перепад между объёмами портов
        v1, v2 = self.ports[0].volume, self.ports[1].volume
        limited = limit_charge(dq, p1 - p2, v1 * v2 / (v1 + v2))
        if limited != dq:
            q = limited / (p_source * model.dt) if p_source > 0.0 else 0.0
        self.last_internal_flow = q

        model.add_charge(self.ports[0].charge_index, -limited)
        model.add_charge(self.ports[1].charge_index, +limited)
        return q

    def _stop(self) -> float:
        self.last_internal_flow = 0.0
        return 0.0

    def internal_flow(self, model: "SimulationModel") -> float:
        """Поток порт 1 -> порт 2 по давлениям узлов с предыдущего шага."""

        if self.opening <= _OPENING_EPS:
            return self._stop()
        pressures = self._junction_pressures(model)
        if pressures is None:
            return self._stop()

        area = self.area * self.opening
        if area <= _OPENING_EPS:
            return self._stop()
        return self._transfer(model, pressures[0], pressures[1], area)

    def calc_pressure(self, model: "SimulationModel") -> float:
        d1 = _integrate_port(self.ports[0], model, self.name)
        d2 = _integrate_port(self.ports[1], model, self.name)
        return max(d1, d2)


class ValveElement(TwoPortElement):
    """Дискретный клапан 0/1 с плавной S-кривой переключения."""

    controllable = True

    def __init__(self, info: ElementInfo, ports: Sequence[Port], transition_ms: float = 20.0) -> None:
        super().__init__(info, ports, opening=0.0)
        self.transition_ms = float(transition_ms)
        self.schedule: Tuple[ValveEvent, ...] = ()
        self.commanded_state = 0.0
        # время начала текущего переключения; None -- переключений ещё не было
        self.last_change_time: Optional[float] = None
        self._requested = 0.0

    def set_schedule(self, events: Sequence[ValveEvent]) -> None:
        self.schedule = tuple(sorted(events, key=lambda e: e.time_s))

    def set_control_value(self, value: float) -> None:
        self._requested = min(1.0, max(0.0, float(value)))

    def _scheduled_state(self, t: float) -> Tuple[float, Optional[float]]:
        state, at = 0.0, None
        for event in self.schedule:
            if event.time_s <= t:
                state, at = float(event.state), float(event.time_s)
            else:
                break
        return state, at

    def update_state(self, model: "SimulationModel") -> None:
        t = model.time
        if model.interactive:
            target, event_time = self._requested, None
        else:
            target, event_time = self._scheduled_state(t)

        if abs(target - self.commanded_state) > _STATE_EPS:
            self.commanded_state = target
            self.last_change_time = event_time if event_time is not None else t

        if self.last_change_time is None:
            # до первой команды клапан в исходном (закрытом) положении
            self.opening = self.commanded_state
            return

        elapsed_ms = (t - self.last_change_time) * 1000.0
        alpha = valve_transition_alpha(elapsed_ms, self.transition_ms)
        self.opening = alpha if self.commanded_state > 0.5 else 1.0 - alpha


class ThrottleElement(TwoPortElement):
    """Нерегулируемый дроссель: всегда полностью открыт."""

    def __init__(self, info: ElementInfo, ports: Sequence[Port]) -> None:
        super().__init__(info, ports, opening=1.0)


class CheckValveElement(TwoPortElement):
    """Обратный клапан: пропускает только 1 -> 2 при перепаде выше opening_delta_p.

    Порог задаётся параметром openingDeltaP (bar). Без него берётся
    PhysicsConstants.critical_pressure_delta (0.5 bar по умолчанию, можно
    переопределить в профиле как criticalPressureDelta); для лёгкого
    клапана с порогом 0.05 bar укажите openingDeltaP явно.
    """

    def __init__(self, info: ElementInfo, ports: Sequence[Port], opening_delta_p: float) -> None:
        super().__init__(info, ports, opening=1.0)
        self.opening_delta_p = float(opening_delta_p)

    def describe(self) -> str:
        j1, j2 = (p.junction_id for p in self.ports)
        return f"Element #{self.id}: {self.name} ({self.kind.value}) [{j1} => {j2}]"

    def internal_flow(self, model: "SimulationModel") -> float:
        pressures = self._junction_pressures(model)
        if pressures is None:
            return self._stop()

        p1, p2 = pressures
        if p1 > p2 + self.opening_delta_p:
            return self._transfer(model, p1, p2, self.area * self.opening)
        return self._stop()


class RegulatorElement(TwoPortElement):
    """Редукционный клапан: ПИ-регулятор держит давление узла на выходе (порт 2)."""

    def __init__(
        self,
        info: ElementInfo,
        ports: Sequence[Port],
        target_pressure: float,
        controller: PIController,
    ) -> None:
        super().__init__(info, ports, opening=0.0)
        self.target_pressure = float(target_pressure)
        self.controller = controller

    def describe(self) -> str:
        j1, j2 = (p.junction_id for p in self.ports)
        return f"Element #{self.id}: {self.name} ({self.kind.value}) [{j1} => {j2}]"

    def update_state(self, model: "SimulationModel") -> None:
        p_out = model.junction_pressure(self.ports[1].junction_id)
        if p_out is None:
            self.opening = 0.0
            return
        self.opening = self.controller.update(self.target_pressure - p_out, model.dt)

    def internal_flow(self, model: "SimulationModel") -> float:
        pressures = self._junction_pressures(model)
        if pressures is None:
            return self._stop()
        # обратного потока через редуктор нет
        if pressures[0] <= pressures[1]:
            return self._stop()
        return super().internal_flow(model)


class EpuElement(Element):
    """Электропневматический источник давления (EPU).

    Давление не интегрируется из заряда: источник сам задаёт своё давление,
    отслеживая уставку через PT1 или PT2.
    """

    controllable = True

    def __init__(
        self,
        info: ElementInfo,
        port: Port,
        pt1: PT1,
        pt2: PT2,
        use_pt2: bool = True,
    ) -> None:
        super().__init__(info, [port])
        self.initial_pressure = port.pressure
        self.target_pressure = port.pressure
        self.pt1 = pt1
        self.pt2 = pt2
        self.use_pt2 = bool(use_pt2)
        self.schedule: Tuple[EpuEvent, ...] = ()

    @property
    def loggable_value(self) -> float:
        return self.target_pressure if self.visible else self.pressure

    def set_schedule(self, events: Sequence[EpuEvent]) -> None:
        self.schedule = tuple(sorted(events, key=lambda e: e.time_s))

    def set_control_value(self, value: float) -> None:
        self.target_pressure = max(0.0, float(value))

    def update_state(self, model: "SimulationModel") -> None:
        if model.interactive or not self.schedule:
            return

        target = self.initial_pressure
        for event in self.schedule:
            if event.time_s <= model.time:
                target = float(event.target_pressure)
            else:
                break
        self.target_pressure = target

    def calc_pressure(self, model: "SimulationModel") -> float:
        port = self.ports[0]
        if self.use_pt2:
            p = self.pt2.update(port.pressure, self.target_pressure, model.dt)
        else:
            p = self.pt1.update(port.pressure, self.target_pressure, model.dt)
        try:
            ensure_finite(p, "actuator output")
        except ValueError as exc:
            raise NumericalError(self.name, model.time, str(exc)) from exc
        port.pressure = max(0.0, p)
        # изменение давления источника -- не мера устойчивости сети
        return 0.0


# =============================================================================
# Фабрика
# =============================================================================
def _two_port_ports(reader: ParameterReader, area: float, charge_index: int, pressure: float) -> List[Port]:
    length = reader.length(DEFAULT_PORT_LENGTH_M)
    if length <= 0.0:
        length = DEFAULT_PORT_LENGTH_M
    volume = max(area * length, MIN_PORT_VOLUME_M3)
    return [
        Port(pressure=pressure, volume=volume, charge_index=charge_index),
        Port(pressure=pressure, volume=volume, charge_index=charge_index + 1),
    ]


def build_element(
    spec: ElementSpec,
    element_id: int,
    charge_index: int,
    physics: PhysicsConstants,
) -> Element:
    """Create the element variant for ``spec``; ports take consecutive charge slots."""

    try:
        kind = ElementKind.parse(spec.type)
    except ValueError as exc:
        raise ModelConfigError(f"Element {spec.name!r}: {exc}") from exc

    reader = ParameterReader(spec)
    cd = float(spec.flow_coefficient)
    if not math.isfinite(cd) or cd <= 0.0:
        logger.debug("%s: invalid flow coefficient %r, using 1.0", spec.name, spec.flow_coefficient)
        cd = 1.0

    info = ElementInfo(
        id=element_id,
        name=spec.name,
        kind=kind,
        diameter=reader.diameter(),
        flow_coefficient=cd,
        visible=bool(spec.visible) or reader.flag("visible", False),
        description=spec.description,
    )

    if kind in (ElementKind.SUPPLY, ElementKind.EXHAUST):
        p0 = 0.0 if kind is ElementKind.EXHAUST else reader.pressure()
        return SourceElement(info, [Port(pressure=p0, charge_index=charge_index)])

    if kind is ElementKind.TANK:
        volume = max(reader.volume(), MIN_PORT_VOLUME_M3)
        return VolumeElement(info, [Port(pressure=reader.pressure(), volume=volume, charge_index=charge_index)])

    if kind is ElementKind.PIPE:
        volume = max(info.area * reader.length(), MIN_PORT_VOLUME_M3)
        return VolumeElement(info, [Port(pressure=reader.pressure(), volume=volume, charge_index=charge_index)])

    if kind is ElementKind.EPU:
        try:
            pt1 = PT1(reader.number("timeConstant", 0.1), reader.number("maxDpDt", 25.0))
        except ValueError as exc:
            logger.debug("%s: %s, using default PT1", spec.name, exc)
            pt1 = PT1()
        try:
            pt2 = PT2(reader.number("naturalFrequency", 20.0), reader.number("dampingRatio", 0.7))
        except ValueError as exc:
            logger.debug("%s: %s, using default PT2", spec.name, exc)
            pt2 = PT2()
        port = Port(pressure=reader.pressure(), charge_index=charge_index)
        return EpuElement(info, port, pt1, pt2, use_pt2=reader.flag("usePt2Model", True))

    if kind is ElementKind.REGULATOR:
        # "pressure" у регулятора -- уставка, порты стартуют с initialPressure
        ports = _two_port_ports(reader, info.area, charge_index, max(0.0, reader.number("initialPressure", 0.0)))
        controller = PIController(kp=reader.number("kp", 0.5), ki=reader.number("ki", 5.0))
        return RegulatorElement(info, ports, target_pressure=reader.pressure(), controller=controller)

    ports = _two_port_ports(reader, info.area, charge_index, reader.pressure())
    if kind is ElementKind.VALVE:
        return ValveElement(info, ports, transition_ms=reader.number("transitionTime", 20.0))
    if kind is ElementKind.THROTTLE:
        return ThrottleElement(info, ports)
    if kind is ElementKind.CHECK_VALVE:
        return CheckValveElement(
            info,
            ports,
            opening_delta_p=reader.number("openingDeltaP", physics.critical_pressure_delta),
        )

    raise ModelConfigError(f"Element {spec.name!r}: unsupported type {kind.value!r}")
