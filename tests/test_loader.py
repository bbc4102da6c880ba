import json
from pathlib import Path

import pytest

from pneumosim.config.models import PhysicsConstants
from pneumosim.errors import ModelConfigError, ProfileError
from pneumosim.io.loader import load_model, load_profile, model_from_dict, profile_from_dict

DATA = Path(__file__).resolve().parents[1] / "data" / "models"


class TestModelLoading:
    def test_bundled_model(self):
        spec = load_model(DATA / "supply_valve_tank.json")
        assert spec.model_name == "Supply Valve Tank"
        assert [e.name for e in spec.elements] == ["S", "V1", "T1"]
        v1 = spec.elements[1]
        assert v1.visible is True
        assert v1.flow_coefficient == 0.05
        assert v1.parameters == {"diameter": "8 mm", "length": "1 m"}
        assert spec.connections == {"1": ["S", "V1.1"], "2": ["V1.2", "T1"]}

    def test_keys_case_insensitive(self):
        spec = model_from_dict(
            {
                "ModelName": "m",
                "Elements": [{"Name": "T", "TYPE": "tank", "Parameters": {"volume": 2}, "Visible": "true"}],
                "Connections": {},
            }
        )
        assert spec.model_name == "m"
        assert spec.elements[0].parameters == {"volume": "2"}
        assert spec.elements[0].visible is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_model(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ModelConfigError):
            load_model(path)

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"elements": {}},
            {"elements": ["x"]},
            {"connections": {"1": "S"}},
            {"elements": [{"name": "T", "type": "tank", "parameters": []}]},
        ],
    )
    def test_bad_structure(self, data):
        with pytest.raises(ModelConfigError):
            model_from_dict(data)


class TestProfileLoading:
    def test_bundled_profile(self):
        profile = load_profile(DATA / "supply_valve_tank_profile.json")
        assert profile.time_step == 0.001
        assert profile.steady_tolerance == 1e-5
        assert profile.hard_time_limit == 60
        assert profile.valve_timelines["V1"][0].state == 1.0
        assert profile.physics == PhysicsConstants()

    def test_physics_overrides(self):
        profile = profile_from_dict({"physicsParameters": {"SmoothingTimeConstant": 0.05, "airDensityRho": 1.1}})
        assert profile.physics.smoothing_time_constant == 0.05
        assert profile.physics.rho == 1.1
        assert profile.physics.critical_pressure_delta == 0.5

    def test_defaults_when_absent(self):
        profile = profile_from_dict({})
        assert profile.time_step == 0.001
        assert profile.hard_time_limit == 30.0
        assert profile.valve_timelines == {}

    def test_epu_events(self):
        profile = profile_from_dict({"epuTimelines": {"EPU": [{"TimeSeconds": 1, "targetPressure": 2.5}]}})
        event = profile.epu_timelines["EPU"][0]
        assert (event.time_s, event.target_pressure) == (1.0, 2.5)

    @pytest.mark.parametrize(
        "data",
        [
            {"timeStepSeconds": 0},
            {"timeStepSeconds": "fast"},
            {"valveTimelines": {"V1": [{"state": 1}]}},
            {"valveTimelines": {"V1": [{"timeSeconds": 0, "state": 2}]}},
            {"valveTimelines": {"V1": {"timeSeconds": 0}}},
            {"physicsParameters": {"smoothingTimeConstant": -1}},
            {"physicsParameters": 5},
        ],
    )
    def test_invalid_profile(self, data):
        with pytest.raises(ProfileError):
            profile_from_dict(data)

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps({"hardTimeLimit": 2.5}), encoding="utf-8")
        assert load_profile(path).hard_time_limit == 2.5
