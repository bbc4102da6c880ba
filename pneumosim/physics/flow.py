"""Физика расхода через отверстие (изотермическое приближение).

Единицы:
- Давление: bar (перевод в Pa только внутри orifice_flow)
- Площадь: м²
- Объёмный расход: м³/с
- "Заряд": bar·м³ (давление × объём), расход заряда: bar·м³/с

Все функции чистые; константы среды приходят явно через PhysicsConstants.
"""

from __future__ import annotations

import math

from pneumosim.config.models import PhysicsConstants
from pneumosim.core.units import PA_PER_BAR, SONIC_VELOCITY

_EQUILIBRIUM_DP_BAR = 1e-9


def orifice_flow(
    p_up: float,
    p_down: float,
    area: float,
    cd: float,
    physics: PhysicsConstants,
) -> float:
    """Signed volumetric flow through an orifice, Q = sign(dp)·A·min(v, 340)·Cd.

    v = sqrt(2·dp/rho) with dp in Pa; the velocity is capped at the speed of
    sound (choked flow).
    """

    dp = float(p_up) - float(p_down)
    if abs(dp) < _EQUILIBRIUM_DP_BAR or area <= 0.0:
        return 0.0

    dp_pa = abs(dp) * PA_PER_BAR
    v = math.sqrt(2.0 * dp_pa / physics.rho)
    v = min(v, SONIC_VELOCITY)

    return math.copysign(area * v * cd, dp)


def smoothed_flow(
    p_up: float,
    p_down: float,
    area: float,
    cd: float,
    last_flow: float,
    dt: float,
    physics: PhysicsConstants,
) -> float:
    # Фильтр первого порядка по расходу; перескок через равновесие
    # срезается отдельно, в limit_charge.
    raw = orifice_flow(p_up, p_down, area, cd, physics)
    alpha = physics.smoothing_alpha(dt)
    return alpha * raw + (1.0 - alpha) * float(last_flow)


def charge_flow(volume_flow: float, source_pressure: float) -> float:
    return float(volume_flow) * float(source_pressure)


def limit_charge(charge: float, pressure_gap: float, capacity: float) -> float:
    """Ограничивает перенос заряда за шаг так, чтобы перепад не сменил знак.

    charge > 0 уменьшает pressure_gap; перенос против перепада обнуляется,
    по модулю не больше |pressure_gap|·capacity (capacity, м³ -- объём, на
    котором выравнивается перепад). capacity <= 0 -- без ограничения
    (источники с заданным давлением).
    """

    if capacity <= 0.0:
        return charge
    if charge * pressure_gap <= 0.0:
        return 0.0
    limit = abs(pressure_gap) * capacity
    return max(-limit, min(limit, charge))


def valve_transition_alpha(elapsed_ms: float, transition_ms: float = 20.0) -> float:
    """Плавная S-кривая открытия клапана: 0 -> 1 за transition_ms."""

    if elapsed_ms <= 0.0:
        return 0.0
    if elapsed_ms >= transition_ms:
        return 1.0
    return 0.5 * (1.0 - math.cos(math.pi * elapsed_ms / transition_ms))
