from typing import Optional

import numpy as np
import pytest

from pneumosim.config.models import ElementSpec, PhysicsConstants
from pneumosim.network.elements import build_element
from pneumosim.network.junction import (
    MAX_DAMPING,
    MAX_ITERATIONS,
    MIN_DAMPING,
    Connection,
    Junction,
    adaptive_damping,
)


class DummyModel:
    def __init__(self, slots: int = 8) -> None:
        self.time = 0.0
        self.dt = 0.001
        self.physics = PhysicsConstants()
        self.interactive = False
        self.charges = np.zeros(slots)

    def charge(self, index: int) -> float:
        return float(self.charges[index])

    def add_charge(self, index: int, value: float) -> None:
        self.charges[index] += value

    def junction_pressure(self, junction_id: Optional[int]) -> Optional[float]:
        return None


def tank(name: str, pressure: float, slot: int, volume: str = "1 l"):
    el_spec = ElementSpec(name=name, type="tank", parameters={"volume": volume, "pressure": str(pressure)})
    return build_element(el_spec, slot, slot, PhysicsConstants())


def junction_of(*elements) -> Junction:
    j = Junction(7)
    for el in elements:
        j.add_connection(Connection(el, 1))
    return j


class TestAdaptiveDamping:
    def test_limits(self):
        assert adaptive_damping(0.0) == pytest.approx(MIN_DAMPING)
        assert adaptive_damping(1.0) == pytest.approx(MAX_DAMPING)
        assert adaptive_damping(25.0) == pytest.approx(MAX_DAMPING)

    def test_linear_between(self):
        assert adaptive_damping(0.5) == pytest.approx(0.5 * (MIN_DAMPING + MAX_DAMPING))


class TestSolve:
    def test_equal_pressures_converge_in_one_iteration(self):
        j = junction_of(tank("A", 3.0, 0), tank("B", 3.0, 1), tank("C", 3.0, 2))
        p = j.solve(0.001, PhysicsConstants())
        assert p == 3.0
        assert j.iterations == 1
        assert j.residual == 0.0
        assert j.converged

    def test_single_connection_takes_port_pressure(self):
        j = junction_of(tank("A", 2.5, 0))
        assert j.solve(0.001, PhysicsConstants()) == 2.5
        assert j.iterations == 0

    def test_bounded_iterations_and_between_ports(self):
        j = junction_of(tank("A", 6.0, 0), tank("B", 0.0, 1))
        p = j.solve(0.001, PhysicsConstants())
        assert 0.0 <= j.iterations <= MAX_ITERATIONS
        assert 0.0 < p < 6.0

    def test_never_negative(self):
        j = junction_of(tank("A", 0.0, 0), tank("B", 0.0, 1))
        j.connections[0].last_volume_flow = -1.0
        j.connections[1].last_volume_flow = -1.0
        assert j.solve(0.001, PhysicsConstants()) >= 0.0

    def test_stays_within_port_pressures(self):
        j = junction_of(tank("A", 2.0, 0), tank("B", 3.0, 1))
        for conn in j.connections:
            conn.last_volume_flow = -1.0
        assert j.solve(0.001, PhysicsConstants()) == 2.0


class TestExchange:
    def test_flow_direction_and_persisted_state(self):
        model = DummyModel()
        high, low = tank("A", 4.0, 0), tank("B", 1.0, 1)
        j = junction_of(high, low)
        j.solve(model.dt, model.physics)
        j.exchange(model)

        assert model.charges[0] < 0.0
        assert model.charges[1] > 0.0
        assert j.connections[0].last_volume_flow > 0.0
        assert j.connections[1].last_volume_flow < 0.0

    def test_equilibrium_exchanges_nothing(self):
        model = DummyModel()
        j = junction_of(tank("A", 2.0, 0), tank("B", 2.0, 1))
        j.solve(model.dt, model.physics)
        j.exchange(model)
        assert not model.charges.any()

    def test_small_port_does_not_cross_node_pressure(self):
        model = DummyModel()
        small = tank("A", 4.0, 0, volume="0.00000001")
        j = junction_of(small, tank("B", 1.0, 1))
        p_node = j.solve(model.dt, model.physics)
        j.exchange(model)

        after = small.pressure + model.charges[0] / small.volume
        assert after == pytest.approx(p_node)
        assert j.connections[0].last_volume_flow == pytest.approx(-model.charges[0] / (4.0 * model.dt))

    def test_stale_flow_against_gradient_is_dropped(self):
        model = DummyModel()
        j = junction_of(tank("A", 4.0, 0), tank("B", 1.0, 1))
        j.pressure = 2.5
        j.connections[0].last_volume_flow = -1.0
        j.exchange(model)
        assert model.charges[0] == 0.0
        assert j.connections[0].last_volume_flow == 0.0
        assert model.charges[1] > 0.0


def test_info():
    j = junction_of(tank("A", 1.0, 0), tank("B", 1.0, 1))
    assert j.info() == "Node #7: A.1, B.1"
    assert j.connections[1].info() == "B.1"
