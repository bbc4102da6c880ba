"""pneumosim package.

Важно: пакет не должен иметь побочных эффектов при импорте.
Поэтому здесь нет eager-import'ов (модель сети, загрузчик, графики).

Импортируй нужное напрямую:
- from pneumosim.network.model import SimulationModel
- from pneumosim.config.models import ExecutionProfile, PhysicsConstants
- from pneumosim.runner import run_profile
"""

from __future__ import annotations

__all__: list[str] = []
