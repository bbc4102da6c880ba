from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

from pneumosim.config.models import ExecutionProfile
from pneumosim.io.recorder import ResultRecorder
from pneumosim.network.model import SimulationModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    end_time: float
    steps: int
    steady: bool
    last_max_pressure_delta: float


def run_profile(
    model: SimulationModel,
    profile: ExecutionProfile,
    recorder: Optional[ResultRecorder] = None,
    progress_every: int = 1000,
) -> RunResult:
    """Прогон по профилю до установившегося режима или жёсткого лимита времени.

    Всегда доходим до последнего события профиля; после него продолжаем,
    только пока max |Δp| за шаг >= steady_tolerance.
    """

    model.reset(profile.time_step)
    min_run_time = model.apply_profile(profile)
    hard_limit = profile.hard_time_limit

    logger.info(
        "Starting simulation (dt=%g s, min run=%g s, hard limit=%g s)",
        profile.time_step,
        min_run_time,
        hard_limit,
    )

    steady = False
    steps = 0
    while (not steady and model.time < hard_limit) or model.time < min_run_time:
        model.step()
        steps += 1
        if recorder is not None:
            recorder.record(model.time)

        steady = model.last_max_pressure_delta < profile.steady_tolerance
        if steady and model.time > min_run_time:
            logger.info(
                "Steady state reached at T=%.2fs (max dp=%.2e bar)",
                model.time,
                model.last_max_pressure_delta,
            )
            break

        if progress_every and steps % progress_every == 0:
            logger.debug("T=%.4fs | max dp=%.6f", model.time, model.last_max_pressure_delta)

    if not steady:
        logger.warning(
            "Hard time limit %.2fs reached without steady state (max dp=%.2e bar)",
            hard_limit,
            model.last_max_pressure_delta,
        )

    return RunResult(
        end_time=model.time,
        steps=steps,
        steady=steady,
        last_max_pressure_delta=model.last_max_pressure_delta,
    )
