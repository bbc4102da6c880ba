import math

import pytest

from pneumosim.config.models import (
    ElementSpec,
    EpuEvent,
    ExecutionProfile,
    ModelSpec,
    PhysicsConstants,
    ValveEvent,
)
from pneumosim.errors import ModelConfigError, NumericalError, ProfileError
from pneumosim.network.model import SimulationModel


def el(name, type_, visible=False, cd=1.0, **params):
    return ElementSpec(
        name=name,
        type=type_,
        parameters={k: str(v) for k, v in params.items()},
        visible=visible,
        flow_coefficient=cd,
    )


@pytest.fixture()
def supply_valve_tank() -> ModelSpec:
    return ModelSpec(
        model_name="supply-valve-tank",
        elements=(
            el("S", "Supply", pressure="6 bar"),
            el("V1", "Valve", visible=True, diameter="8 mm", length="1 m", cd=0.05),
            el("T1", "Tank", visible=True, volume="0.01"),
        ),
        connections={"1": ["S", "V1.1"], "2": ["V1.2", "T1"]},
    )


@pytest.fixture()
def model(supply_valve_tank) -> SimulationModel:
    return SimulationModel.from_spec(supply_valve_tank)


class TestConstruction:
    def test_ids_and_charge_slots(self, model):
        assert [e.id for e in model.elements] == [0, 1, 2]
        slots = [p.charge_index for e in model.elements for p in e.ports]
        assert slots == [0, 1, 2, 3]
        assert model.charges.shape == (4,)

    def test_junctions_sorted_and_wired(self, model):
        assert list(model.junctions) == [1, 2]
        assert model.element("V1").ports[0].junction_id == 1
        assert model.element("V1").ports[1].junction_id == 2
        assert model.element("T1").ports[0].junction_id == 2

    def test_invalid_topology_aborts(self):
        spec = ModelSpec(elements=(el("S", "Supply"),), connections={"1": ["S", "Ghost"]})
        with pytest.raises(ModelConfigError):
            SimulationModel.from_spec(spec)

    def test_describe(self, model):
        lines = model.describe()
        assert "Element #1: V1 (valve) [1 <=> 2]" in lines
        assert "Node #2: V1.2, T1.1" in lines

    def test_unknown_element(self, model):
        with pytest.raises(KeyError):
            model.element("nope")

    def test_charges_view_is_read_only(self, model):
        with pytest.raises(ValueError):
            model.charges[0] = 1.0


class TestStep:
    def test_reset(self, model):
        model.reset(0.002)
        assert model.dt == 0.002
        assert model.time == 0.0
        with pytest.raises(ValueError):
            model.reset(0.0)

    def test_time_advances(self, model):
        model.reset(0.001)
        for _ in range(10):
            model.step()
        assert model.time == pytest.approx(0.01)
        assert model.step_count == 10

    def test_closed_valve_isolates_tank(self, model):
        model.reset(0.001)
        for _ in range(200):
            model.step()
        assert model.pressure_of("T1") == 0.0
        # порт 1 клапана заполняется от источника
        assert model.pressure_of("V1", 1) > 5.0
        assert model.element("V1").opening == 0.0

    def test_open_valve_fills_tank(self, model):
        model.reset(0.001)
        model.apply_profile(ExecutionProfile(valve_timelines={"V1": (ValveEvent(0.0, 1.0),)}))
        deltas = [model.step() for _ in range(500)]
        assert model.pressure_of("T1") > 0.05
        assert model.last_max_pressure_delta == deltas[-1]

    def test_pressures_never_negative(self, model):
        model.reset(0.001)
        model.apply_profile(
            ExecutionProfile(valve_timelines={"V1": (ValveEvent(0.0, 1.0), ValveEvent(0.2, 0.0))})
        )
        for _ in range(400):
            model.step()
            for e in model.elements:
                assert all(p.pressure >= 0.0 for p in e.ports)

    def test_loggable_values(self, model):
        values = model.loggable_values()
        assert list(values) == ["S", "V1", "T1"]
        assert values["S"] == 6.0
        assert values["V1"] == 0.0

    def test_numerical_failure_propagates(self, model):
        model.reset(0.001)
        model.element("T1").ports[0].pressure = math.nan
        with pytest.raises(NumericalError) as err:
            model.step()
        assert err.value.element == "T1"


class TestProfileAndControl:
    def test_apply_profile_returns_last_event(self, model):
        profile = ExecutionProfile(valve_timelines={"V1": (ValveEvent(0.5, 1.0), ValveEvent(1.5, 0.0))})
        assert model.apply_profile(profile) == pytest.approx(1.5)
        assert [e.time_s for e in model.element("V1").schedule] == [0.5, 1.5]

    def test_apply_profile_takes_physics(self, model):
        physics = PhysicsConstants(smoothing_time_constant=0.05)
        model.apply_profile(ExecutionProfile(physics=physics))
        assert model.physics == physics

    def test_unknown_element_in_profile(self, model):
        with pytest.raises(ProfileError):
            model.apply_profile(ExecutionProfile(valve_timelines={"V9": (ValveEvent(0.0, 1.0),)}))

    def test_timeline_on_wrong_kind(self, model):
        with pytest.raises(ProfileError):
            model.apply_profile(ExecutionProfile(epu_timelines={"V1": (EpuEvent(0.0, 2.0),)}))

    def test_set_control_value(self, model):
        model.interactive = True
        model.reset(0.001)
        model.set_control_value("V1", 1)
        for _ in range(30):
            model.step()
        assert model.element("V1").opening == 1.0

    @pytest.mark.parametrize("name", ["T1", "missing"])
    def test_set_control_value_rejected(self, model, name):
        with pytest.raises(ProfileError):
            model.set_control_value(name, 1.0)
