"""Cargador de recursos (lista inicial de dominios).

Este módulo vive en `core/` porque:
- centraliza *qué* datos iniciales usamos sin acoplarse a la CLI
- evita duplicar lógica de paths en adaptadores.
"""

from __future__ import annotations

from pathlib import Path

from core.config import get_user_config_dir

SEED_FILENAME = "seed_domains.txt"

_BUNDLED_SEED = Path(__file__).resolve().parent / "resources" / SEED_FILENAME


def get_default_seed_path(filename: str = SEED_FILENAME, *, data_dir: Path | None = None) -> Path | None:
    """Busca la lista en ubicaciones comunes.

    Orden:
    1) <data_dir>/<filename> (si se indica)
    2) <config>/data/<filename>
    3) ./<filename> (cwd)
    4) la lista incluida en el paquete
    """

    candidates: list[Path] = []
    if data_dir is not None:
        candidates.append(data_dir / filename)
    candidates.extend(
        [
            get_user_config_dir() / "data" / filename,
            Path.cwd() / filename,
            _BUNDLED_SEED,
        ]
    )
    for p in candidates:
        if p.exists() and p.is_file():
            return p
    return None


def parse_url_lines(text: str) -> list[str]:
    """Una URL por línea; ignora líneas vacías y comentarios `#`."""

    out: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def load_seed_domains(path: Path | None = None, *, data_dir: Path | None = None) -> list[str]:
    resolved = path or get_default_seed_path(data_dir=data_dir)
    if resolved is None:
        return []
    return parse_url_lines(resolved.read_text(encoding="utf-8"))
