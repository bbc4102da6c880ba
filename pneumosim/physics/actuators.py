"""Модели исполнительных механизмов источников давления и регулятора.

PT1:
    p_target = p + (dt / T)·(setpoint - p)
    Δp_eff   = clamp(p_target - p, -maxRate·dt, +maxRate·dt)

PT2 (пружина-демпфер):
    a = ωn²·(target - x) - 2ζωn·v
    v += a·dt;  x += v·dt      (явный Эйлер, x через новую скорость)

PI (регулятор давления):
    I = clamp(I + e·dt, -1, 1);  u = clamp(Kp·e + Ki·I, 0, 1)
"""

from __future__ import annotations

from dataclasses import dataclass


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(x)))


class PT1:
    def __init__(self, time_constant: float = 0.1, max_rate: float = 25.0) -> None:
        if time_constant <= 0.0:
            raise ValueError(f"time_constant must be > 0, got {time_constant}")
        if max_rate <= 0.0:
            raise ValueError(f"max_rate must be > 0, got {max_rate}")
        self.time_constant = float(time_constant)  # s
        self.max_rate = float(max_rate)            # bar/s

    def update(self, value: float, setpoint: float, dt: float) -> float:
        if dt <= 0.0:
            return float(value)

        p_target = value + (dt / self.time_constant) * (setpoint - value)
        dp_max = self.max_rate * dt
        return float(value + _clamp(p_target - value, -dp_max, dp_max))

    def __repr__(self) -> str:
        return f"PT1(T={self.time_constant}s, max_rate={self.max_rate}bar/s)"


class PT2:
    def __init__(self, natural_frequency: float = 20.0, damping_ratio: float = 0.7) -> None:
        if natural_frequency <= 0.0:
            raise ValueError(f"natural_frequency must be > 0, got {natural_frequency}")
        if damping_ratio < 0.0:
            raise ValueError(f"damping_ratio must be >= 0, got {damping_ratio}")
        self.natural_frequency = float(natural_frequency)
        self.damping_ratio = float(damping_ratio)
        self.velocity = 0.0

        self._wn2 = self.natural_frequency**2
        self._two_zeta_wn = 2.0 * self.damping_ratio * self.natural_frequency

    def update(self, value: float, target: float, dt: float) -> float:
        acceleration = self._wn2 * (target - value) - self._two_zeta_wn * self.velocity
        self.velocity += acceleration * dt
        return float(value + self.velocity * dt)

    def reset(self) -> None:
        self.velocity = 0.0

    def __repr__(self) -> str:
        return f"PT2(wn={self.natural_frequency}, zeta={self.damping_ratio})"


@dataclass
class PIController:
    kp: float = 0.5
    ki: float = 5.0
    integral: float = 0.0

    def update(self, error: float, dt: float) -> float:
        """Возвращает степень открытия 0..1; интеграл ограничен [-1, 1] (anti-windup)."""

        self.integral = _clamp(self.integral + error * dt, -1.0, 1.0)
        return _clamp(self.kp * error + self.ki * self.integral, 0.0, 1.0)

    def reset(self) -> None:
        self.integral = 0.0
