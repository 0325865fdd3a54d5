"""Exportación del dashboard a HTML.

Por qué está en adapters:
- El HTML es un detalle de infraestructura (Jinja2).
- El Core solo aporta los dominios y las vistas (`core.services.views`).
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.domain.models import Domain
from core.domain.tasks import calculate_progress
from core.services.views import BAND_STYLES, SortKey, group_by_band, progress_band, sort_domains

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )


def render_dashboard_html(
    *,
    domains: Iterable[Domain],
    sort: SortKey | str | None = SortKey.NAME,
    descending: bool = False,
) -> str:
    """Renderiza un HTML autocontenido: vista tabla + vista mind-map."""

    items = sort_domains(domains, sort, descending=descending)
    generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    total_tasks = sum(len(d.tasks) for d in items)
    completed_tasks = sum(d.completed_count for d in items)
    overall = calculate_progress(t for d in items for t in d.tasks)

    template = _get_env().get_template("dashboard.html.j2")
    return template.render(
        domains=items,
        groups=group_by_band(items),
        band_styles=BAND_STYLES,
        progress_band=progress_band,
        generated_at=generated_at,
        overall_progress=overall,
        completed_tasks=completed_tasks,
        total_tasks=total_tasks,
    )


def export_dashboard_html(*, domains: Iterable[Domain], output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_dashboard_html(domains=domains), encoding="utf-8")
    return output_path
