import logging
import math

import pytest

from pneumosim.config.models import EpuEvent, ExecutionProfile, PhysicsConstants, ValveEvent
from pneumosim.errors import ProfileError


class TestPhysicsConstants:
    def test_defaults(self):
        c = PhysicsConstants()
        assert (c.rho, c.smoothing_time_constant, c.critical_pressure_delta) == (1.2, 0.005, 0.5)

    @pytest.mark.parametrize("field", ["rho", "smoothing_time_constant", "critical_pressure_delta"])
    def test_must_be_positive(self, field):
        with pytest.raises(ValueError):
            PhysicsConstants(**{field: 0.0})

    def test_smoothing_alpha(self):
        c = PhysicsConstants(smoothing_time_constant=0.01)
        assert c.smoothing_alpha(0.001) == pytest.approx(1.0 - math.exp(-0.1))

    def test_overrides_case_insensitive_and_partial(self):
        c = PhysicsConstants.from_overrides({"SmoothingTimeConstant": 0.02, "airDensityRho": 1.0})
        assert c.smoothing_time_constant == 0.02
        assert c.rho == 1.0
        assert c.critical_pressure_delta == 0.5

    def test_no_overrides_logs_defaults(self, caplog):
        with caplog.at_level(logging.INFO, logger="pneumosim.config.models"):
            assert PhysicsConstants.from_overrides(None) == PhysicsConstants()
        assert "defaults" in caplog.text


class TestExecutionProfile:
    @pytest.fixture()
    def profile(self) -> ExecutionProfile:
        return ExecutionProfile(
            valve_timelines={"V1": (ValveEvent(2.0, 0.0), ValveEvent(0.5, 1.0))},
            epu_timelines={"EPU": (EpuEvent(1.0, 3.0), EpuEvent(3.5, 1.0))},
        )

    def test_timelines_sorted(self, profile):
        assert [e.time_s for e in profile.valve_timelines["V1"]] == [0.5, 2.0]

    @pytest.mark.parametrize("t, expected", [(0.0, 0.0), (0.5, 1.0), (1.9, 1.0), (2.0, 0.0)])
    def test_valve_state(self, profile, t, expected):
        assert profile.valve_state("V1", t) == expected

    def test_epu_target(self, profile):
        assert profile.epu_target("EPU", 0.5) == 0.0
        assert profile.epu_target("EPU", 2.0) == 3.0
        assert profile.epu_target("missing", 2.0) == 0.0

    def test_last_event_time(self, profile):
        assert profile.last_event_time() == 3.5
        assert ExecutionProfile().last_event_time() == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"time_step": 0.0}, {"hard_time_limit": -1.0}, {"steady_tolerance": -1e-6}],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ProfileError):
            ExecutionProfile(**kwargs)


@pytest.mark.parametrize("state", [-0.1, 1.5])
def test_valve_state_outside_unit_range(state):
    with pytest.raises(ProfileError, match="valve V1 state"):
        ExecutionProfile(valve_timelines={"V1": (ValveEvent(0.0, state),)})
