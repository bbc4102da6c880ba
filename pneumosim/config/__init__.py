"""Конфиги симулятора: физические константы, описание модели, профиль управления."""

from __future__ import annotations

from .models import (  # noqa: F401
    ElementSpec,
    EpuEvent,
    ExecutionProfile,
    ModelSpec,
    PhysicsConstants,
    ValveEvent,
)

__all__ = [
    "PhysicsConstants",
    "ElementSpec",
    "ModelSpec",
    "ValveEvent",
    "EpuEvent",
    "ExecutionProfile",
]
