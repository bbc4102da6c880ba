"""Загрузка описания модели и профиля управления из JSON.

Ключи верхнего уровня, элементов и событий читаются без учёта регистра
("modelName" == "modelname"); имена элементов и id узлов -- как есть.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping
import json
import logging

from pneumosim.config.models import (
    ElementSpec,
    EpuEvent,
    ExecutionProfile,
    ModelSpec,
    PhysicsConstants,
    ValveEvent,
)
from pneumosim.errors import ModelConfigError, ProfileError

logger = logging.getLogger(__name__)


def _read_json(path: str | Path, error_cls: type) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise error_cls(f"{path}: invalid JSON ({exc})") from exc


def _lower_keys(obj: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k).lower(): v for k, v in obj.items()}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _element_from_dict(raw: Any, index: int) -> ElementSpec:
    if not isinstance(raw, Mapping):
        raise ModelConfigError(f"Element #{index} is not an object")
    d = _lower_keys(raw)
    params = d.get("parameters")
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise ModelConfigError(f"Element #{index}: 'parameters' must be an object")
    try:
        cd = float(d.get("flowcoefficient", 1.0))
    except (TypeError, ValueError) as exc:
        raise ModelConfigError(f"Element #{index}: invalid flowCoefficient") from exc
    return ElementSpec(
        name=str(d.get("name", "")),
        type=str(d.get("type", "")),
        parameters={str(k): str(v) for k, v in params.items()},
        visible=_as_bool(d.get("visible", False)),
        flow_coefficient=cd,
        description=str(d.get("description") or ""),
        comment=str(d.get("comment") or ""),
    )


def model_from_dict(data: Any) -> ModelSpec:
    if not isinstance(data, Mapping):
        raise ModelConfigError("Model description must be a JSON object")
    d = _lower_keys(data)

    raw_elements = d.get("elements", [])
    if not isinstance(raw_elements, list):
        raise ModelConfigError("'elements' must be a list")
    raw_connections = d.get("connections", {})
    if not isinstance(raw_connections, Mapping):
        raise ModelConfigError("'connections' must be an object")

    connections: Dict[str, List[str]] = {}
    for conn_id, members in raw_connections.items():
        if not isinstance(members, list):
            raise ModelConfigError(f"Connection '{conn_id}' must be a list of 'element.port' strings")
        connections[str(conn_id)] = [str(m) for m in members]

    return ModelSpec(
        model_name=str(d.get("modelname") or ""),
        description=str(d.get("description") or ""),
        elements=tuple(_element_from_dict(e, i) for i, e in enumerate(raw_elements)),
        connections=connections,
    )


def _events(raw: Any, label: str, build) -> Dict[str, tuple]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ProfileError(f"'{label}' must be an object")
    timelines: Dict[str, tuple] = {}
    for name, events in raw.items():
        if not isinstance(events, list):
            raise ProfileError(f"{label}[{name!r}] must be a list of events")
        try:
            timelines[str(name)] = tuple(build(_lower_keys(e)) for e in events)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ProfileError(f"{label}[{name!r}]: invalid event ({exc})") from exc
    return timelines


def profile_from_dict(data: Any) -> ExecutionProfile:
    if not isinstance(data, Mapping):
        raise ProfileError("Execution profile must be a JSON object")
    d = _lower_keys(data)

    physics_raw = d.get("physicsparameters")
    if physics_raw is not None and not isinstance(physics_raw, Mapping):
        raise ProfileError("'physicsParameters' must be an object")
    try:
        physics = PhysicsConstants.from_overrides(physics_raw)
        base = ExecutionProfile.__dataclass_fields__
        return ExecutionProfile(
            time_step=float(d.get("timestepseconds", base["time_step"].default)),
            steady_tolerance=float(d.get("steadytolerance", base["steady_tolerance"].default)),
            hard_time_limit=float(d.get("hardtimelimit", base["hard_time_limit"].default)),
            valve_timelines=_events(
                d.get("valvetimelines"),
                "valveTimelines",
                lambda e: ValveEvent(float(e["timeseconds"]), float(e.get("state", 0.0))),
            ),
            epu_timelines=_events(
                d.get("eputimelines"),
                "epuTimelines",
                lambda e: EpuEvent(float(e["timeseconds"]), float(e.get("targetpressure", 0.0))),
            ),
            physics=physics,
        )
    except ProfileError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise ProfileError(f"Invalid execution profile: {exc}") from exc


def load_model(path: str | Path) -> ModelSpec:
    spec = model_from_dict(_read_json(path, ModelConfigError))
    logger.info("Loaded model %r from %s (%d elements)", spec.model_name, path, len(spec.elements))
    return spec


def load_profile(path: str | Path) -> ExecutionProfile:
    profile = profile_from_dict(_read_json(path, ProfileError))
    logger.info(
        "Loaded profile from %s (dt=%g s, hard limit=%g s)",
        path,
        profile.time_step,
        profile.hard_time_limit,
    )
    return profile
