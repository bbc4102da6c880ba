from .elements import (
    CheckValveElement,
    Element,
    EpuElement,
    Port,
    RegulatorElement,
    SourceElement,
    ThrottleElement,
    TwoPortElement,
    ValveElement,
    VolumeElement,
    build_element,
)
from .junction import Connection, Junction
from .model import SimulationModel
from .validation import validate_model

__all__ = [
    "CheckValveElement",
    "Connection",
    "Element",
    "EpuElement",
    "Junction",
    "Port",
    "RegulatorElement",
    "SimulationModel",
    "SourceElement",
    "ThrottleElement",
    "TwoPortElement",
    "ValveElement",
    "VolumeElement",
    "build_element",
    "validate_model",
]
