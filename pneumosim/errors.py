"""Исключения симулятора.

- ModelConfigError: ошибка топологии/описания модели, симуляция не стартует;
- ProfileError: ошибка профиля управления или внешней команды;
- NumericalError: давление стало NaN/inf, прогон прерывается сразу.
"""

from __future__ import annotations

from typing import Iterable, List


class ModelConfigError(ValueError):
    def __init__(self, message: str, errors: Iterable[str] = ()) -> None:
        self.errors: List[str] = list(errors)
        if self.errors:
            message = message + "\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)


class ProfileError(ValueError):
    pass


class NumericalError(RuntimeError):
    def __init__(self, element: str, time: float, detail: str = "") -> None:
        self.element = element
        self.time = float(time)
        msg = f"Pressure became invalid in {element} at T={self.time:.4f}s"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg + ". Simulation halted.")
