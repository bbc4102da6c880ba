"""Пакет физики: расход через отверстие и динамика исполнительных механизмов."""

from __future__ import annotations

from .actuators import PIController, PT1, PT2
from .flow import charge_flow, orifice_flow, smoothed_flow, valve_transition_alpha

__all__ = [
    "orifice_flow",
    "smoothed_flow",
    "charge_flow",
    "valve_transition_alpha",
    "PT1",
    "PT2",
    "PIController",
]
