"""Exportación/importación JSON de la colección.

Por qué JSON:
- Es el mismo formato que el store local: un array de dominios camelCase.
- Permite respaldar/mover datos sin depender del backend activo.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from core.domain.models import Domain


def dump_domains_json(domains: Iterable[Domain]) -> str:
    return json.dumps([d.to_json_dict() for d in domains], ensure_ascii=False, indent=2)


def export_domains_json(*, domains: Iterable[Domain], output_path: Path) -> Path:
    """Exporta los dominios a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dump_domains_json(domains) + "\n", encoding="utf-8")
    return output_path


def read_import_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")
