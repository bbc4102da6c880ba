"""Проверка целостности описания модели до построения.

Все ошибки собираются в список и поднимаются одним ModelConfigError:
симуляция не стартует, пока описание не исправлено.
"""

from __future__ import annotations

from typing import Dict, List, Set, Tuple
import logging

from pneumosim.config.models import ModelSpec
from pneumosim.core.types import ElementKind, PortRef
from pneumosim.errors import ModelConfigError

logger = logging.getLogger(__name__)


def _element_kinds(spec: ModelSpec, errors: List[str]) -> Dict[str, ElementKind]:
    kinds: Dict[str, ElementKind] = {}
    for el in spec.elements:
        name = str(el.name).strip()
        if not name:
            errors.append("Element with an empty name.")
            continue
        if name in kinds:
            errors.append(f"Element '{name}' is defined more than once.")
            continue
        try:
            kinds[name] = ElementKind.parse(el.type)
        except ValueError as exc:
            errors.append(f"Element '{name}': {exc}")
    return kinds


def validate_model(spec: ModelSpec) -> List[str]:
    """Validate ``spec``; raise ModelConfigError listing every problem.

    Returns the names of elements that are defined but never connected
    (reported as a warning only).
    """

    errors: List[str] = []
    kinds = _element_kinds(spec, errors)

    used: Set[str] = set()
    port_owner: Dict[Tuple[str, int], str] = {}

    for conn_id, members in spec.connections.items():
        try:
            int(conn_id)
        except (TypeError, ValueError):
            errors.append(f"Connector id '{conn_id}' is not an integer.")

        if not members:
            errors.append(f"Connector '{conn_id}' is empty.")
            continue
        if len(members) < 2:
            errors.append(f"Connector '{conn_id}' needs at least 2 elements.")

        seen: Set[str] = set()
        for raw in members:
            try:
                ref = PortRef.parse(raw)
            except ValueError as exc:
                errors.append(f"Connector '{conn_id}': {exc}")
                continue

            used.add(ref.element)
            if ref.element in seen:
                errors.append(f"Connector '{conn_id}' contains element '{ref.element}' more than once.")
            seen.add(ref.element)

            kind = kinds.get(ref.element)
            if kind is None:
                errors.append(
                    f"Element '{ref.element}' used in connection '{conn_id}' is not defined in the 'elements' list."
                )
                continue
            if not 1 <= ref.port <= kind.port_count:
                errors.append(f"Element '{ref.element}' ({kind.value}) has no port {ref.port} (connection '{conn_id}').")
                continue

            key = (ref.element, ref.port)
            if key in port_owner and port_owner[key] != str(conn_id):
                errors.append(
                    f"Port '{ref}' is connected to both '{port_owner[key]}' and '{conn_id}'."
                )
            port_owner[key] = str(conn_id)

    if errors:
        raise ModelConfigError("Model validation failed", errors)

    unused = sorted(set(kinds) - used)
    if unused:
        logger.warning("Elements defined but not used in any connection: %s", ", ".join(unused))
    return unused
