"""Checklist de tareas por dominio.

Dos formas conviven en los datos históricos:
- lista de `Task` (forma canónica)
- mapa plano `{taskKey: bool}` (forma legacy, p.ej. filas remotas antiguas)

Este módulo es el único adaptador entre ambas.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from core.domain.identity import generate_id

# (key, label) en el orden en que se muestran.
DEFAULT_TASKS: tuple[tuple[str, str], ...] = (
    ("installation", "Installation"),
    ("configuration", "Configuration"),
    ("gscSetup", "GSC/CF Setup"),
    ("content", "Content"),
    ("wwwStatus", "WWW Status"),
    ("uxPublishing", "UX/WH Publishing"),
    ("traffic", "Traffic"),
    ("monetization", "Monetization"),
)

_LABELS = dict(DEFAULT_TASKS)
_CAMEL_RE = re.compile(r"([A-Z])")


def humanize_task_key(key: str) -> str:
    """`wwwStatus` -> `WWW Status` si es conocido, si no `someKey` -> `Some Key`."""

    if key in _LABELS:
        return _LABELS[key]
    if not key:
        return key
    return key[0].upper() + _CAMEL_RE.sub(r" \1", key[1:])


def default_task_dicts() -> list[dict[str, Any]]:
    """Checklist por defecto con ids nuevos."""

    return [
        {"id": generate_id(), "name": label, "completed": False}
        for _, label in DEFAULT_TASKS
    ]


def tasks_from_legacy_map(tasks: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [
        {"id": str(key), "name": humanize_task_key(str(key)), "completed": bool(value)}
        for key, value in tasks.items()
    ]


def tasks_to_legacy_map(tasks: Iterable[Any]) -> dict[str, bool]:
    """Inverso de `tasks_from_legacy_map` (pierde `name`/`notes`)."""

    out: dict[str, bool] = {}
    for task in tasks:
        if isinstance(task, Mapping):
            out[str(task["id"])] = bool(task.get("completed", False))
        else:
            out[task.id] = bool(task.completed)
    return out


def coerce_tasks(value: Any) -> Any:
    """Acepta lista o mapa legacy; cualquier otra cosa se deja a la validación."""

    if value is None:
        return []
    if isinstance(value, Mapping):
        return tasks_from_legacy_map(value)
    return value


def calculate_progress(tasks: Iterable[Any]) -> int:
    """round(100 * completadas / total), 0 si no hay tareas.

    Redondeo half-up (12.5 -> 13), no el redondeo bancario de `round()`.
    """

    items = list(tasks)
    if not items:
        return 0
    done = sum(
        1
        for t in items
        if (t.get("completed") if isinstance(t, Mapping) else t.completed)
    )
    total = len(items)
    return (200 * done + total) // (2 * total)
