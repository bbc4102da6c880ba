"""Узлы сети (junction) и решатель равновесного давления.

Узел -- точка нулевого объёма, соединяющая порты >= 2 элементов. На каждом
шаге ищется давление p*, при котором сумма расходов заряда от всех портов
к узлу ~ 0 (баланс по Кирхгофу):

    p* <- среднее давление портов
    повторять <= 10 раз:
        S = Σ charge_flow(smoothed_flow(p_port, p*), p_source)
        |S| < 1e-6 -> стоп
        p* <- max(0, p* + S·damping)

Демпфирование адаптивное, в [0.005, 0.1] по максимальному перепаду в узле
(1 bar -- "большой" перепад). Несходимость за 10 итераций не ошибка:
берётся последняя оценка, невязка сохраняется в Junction.residual.
Итоговое p* не выходит за диапазон давлений подключённых портов.

Обмен (exchange) переносит заряд порт <-> узел при найденном p*. Заряд
порта с объёмом ограничивается limit_charge: за шаг порт не проходит через
p*. Фактически применённый объёмный расход сохраняется в
Connection.last_volume_flow -- это состояние фильтра для следующего шага.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from pneumosim.config.models import PhysicsConstants
from pneumosim.network.elements import Element, Port
from pneumosim.physics.flow import charge_flow, limit_charge, smoothed_flow

if TYPE_CHECKING:
    from pneumosim.network.model import SimulationModel


MAX_ITERATIONS = 10
RESIDUAL_TOLERANCE = 1e-6
MIN_DAMPING = 0.005
MAX_DAMPING = 0.1
PRESSURE_SCALE = 1.0  # bar


@dataclass
class Connection:
    """Порт элемента, подключённый к узлу; хранит состояние фильтра расхода."""

    element: Element
    port: int
    last_volume_flow: float = 0.0

    @property
    def state(self) -> Port:
        return self.element.port(self.port)

    @property
    def pressure(self) -> float:
        return self.state.pressure

    def info(self) -> str:
        return f"{self.element.name}.{self.port}"


def adaptive_damping(max_pressure_diff: float) -> float:
    t = min(1.0, max(0.0, max_pressure_diff) / PRESSURE_SCALE)
    return MIN_DAMPING + (MAX_DAMPING - MIN_DAMPING) * t


class Junction:
    def __init__(self, junction_id: int) -> None:
        self.id = int(junction_id)
        self.connections: List[Connection] = []
        self.pressure = 0.0
        self.residual = 0.0
        self.iterations = 0

    def add_connection(self, connection: Connection) -> None:
        self.connections.append(connection)

    @property
    def converged(self) -> bool:
        return abs(self.residual) < RESIDUAL_TOLERANCE

    def _charge_flow_sum(self, p_guess: float, dt: float, physics: PhysicsConstants) -> float:
        total = 0.0
        for conn in self.connections:
            p_port = conn.pressure
            q = smoothed_flow(
                p_port,
                p_guess,
                conn.element.area,
                conn.element.flow_coefficient,
                conn.last_volume_flow,
                dt,
                physics,
            )
            # направление потока определяет давление источника
            p_source = p_port if q > 0 else p_guess
            total += charge_flow(q, p_source)
        return total

    def solve(self, dt: float, physics: PhysicsConstants) -> float:
        if not self.connections:
            self.pressure, self.residual, self.iterations = 0.0, 0.0, 0
            return self.pressure
        if len(self.connections) == 1:
            self.pressure, self.residual, self.iterations = self.connections[0].pressure, 0.0, 0
            return self.pressure

        pressures = [c.pressure for c in self.connections]
        damping = adaptive_damping(max(pressures) - min(pressures))

        p_guess = sum(pressures) / len(pressures)
        residual = 0.0
        iterations = 0
        for iterations in range(1, MAX_ITERATIONS + 1):
            residual = self._charge_flow_sum(p_guess, dt, physics)
            if abs(residual) < RESIDUAL_TOLERANCE:
                break
            # чистый приток в узел -> давление узла растёт
            p_guess = max(0.0, p_guess + residual * damping)

        self.pressure = min(max(pressures), max(min(pressures), p_guess))
        self.residual = residual
        self.iterations = iterations
        return self.pressure

    def exchange(self, model: "SimulationModel") -> None:
        """Переносит заряд между портами и узлом при найденном давлении узла."""

        p_node = self.pressure
        for conn in self.connections:
            state = conn.state
            q = smoothed_flow(
                state.pressure,
                p_node,
                conn.element.area,
                conn.element.flow_coefficient,
                conn.last_volume_flow,
                model.dt,
                model.physics,
            )
            p_source = state.pressure if q > 0 else p_node
            dq = charge_flow(q, p_source) * model.dt
            limited = limit_charge(dq, state.pressure - p_node, state.volume)
            if limited != dq:
                q = limited / (p_source * model.dt) if p_source > 0.0 else 0.0
            conn.last_volume_flow = q
            model.add_charge(state.charge_index, -limited)

    def info(self) -> str:
        return f"Node #{self.id}: " + ", ".join(c.info() for c in self.connections)

    def __repr__(self) -> str:
        return f"Junction(id={self.id}, p={self.pressure:.4f}bar, n={len(self.connections)})"
