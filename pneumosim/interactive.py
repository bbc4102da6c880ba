"""Интерактивный режим: команды управления поверх SimulationModel.

    <Element> <value>   клапан 0/1 или уставка EPU, bar
    run <steps>         сделать N шагов по 1 мс
    status              давления видимых элементов
    quit                выход
"""

from __future__ import annotations

from typing import List

from pneumosim.errors import ProfileError
from pneumosim.network.model import SimulationModel


INTERACTIVE_DT = 0.001  # s

HELP = "\n".join(
    [
        "--- Simulation Control ---",
        "  <ElementName> <Value>   (e.g., 'V1 1' or 'EPU 3.5')",
        "  run <steps>             (e.g., 'run 1000' to simulate 1s)",
        "  status                  (shows current state of visible elements)",
        "  quit                    (to exit)",
    ]
)


class InteractiveSession:
    def __init__(self, model: SimulationModel, dt: float = INTERACTIVE_DT):
        self.model = model
        self.model.interactive = True
        self.model.reset(dt)
        self.running = True

    def status(self) -> str:
        lines: List[str] = [f"--- Status at T = {self.model.time:.4f}s ---"]
        visible = [e for e in self.model.elements if e.visible]
        if not visible:
            lines.append("No elements marked as visible. Add '\"visible\": true' to the element in JSON.")
            return "\n".join(lines)
        for element in visible:
            lines.append(f"  {element.name:<10}: {element.pressure:.4f} bar")
        return "\n".join(lines)

    def run(self, steps: int) -> str:
        for _ in range(steps):
            self.model.step()
        return f"Simulated {steps * self.model.dt:.4f}s. Current Time: {self.model.time:.4f}s\n" + self.status()

    def execute(self, line: str) -> str:
        parts = line.split()
        if not parts:
            return ""

        command = parts[0].lower()
        if command == "quit":
            self.running = False
            return "Interactive simulation finished."
        if command == "status":
            return self.status()
        if command == "help":
            return HELP
        if command == "run":
            try:
                steps = int(parts[1])
            except (IndexError, ValueError):
                steps = 0
            if steps <= 0:
                return "Usage: run <number_of_steps>"
            return self.run(steps)

        if len(parts) < 2:
            return "Unknown command. Use 'ElementName Value' or a valid command."
        try:
            value = float(parts[1])
        except ValueError:
            return "Unknown command. Use 'ElementName Value' or a valid command."
        try:
            self.model.set_control_value(parts[0], value)
        except ProfileError:
            return f"Error: Element '{parts[0]}' not found or not controllable."
        return f"Set {parts[0]} to {value:g}."

    def loop(self, read=input, write=print) -> None:
        write(HELP)
        while self.running:
            try:
                line = read("\n> ")
            except EOFError:
                break
            reply = self.execute(line)
            if reply:
                write(reply)
