"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/árboles en varios comandos.
"""

from __future__ import annotations

from typing import Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from core.domain.models import Domain
from core.services.views import BAND_STYLES, group_by_band, progress_band


def print_banner(console: Console, *, backend: str) -> None:
    title = Text("DOMAIN TRACKER", style="bold cyan")
    subtitle = Text(f"Onboarding checklist • backend: {backend}", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def progress_text(progress: int, *, width: int = 10) -> Text:
    """Barra `█████░░░░░ 50%` coloreada por banda."""

    style = BAND_STYLES[progress_band(progress)]
    filled = (progress * width + 50) // 100
    bar = Text("█" * filled, style=style)
    bar.append("░" * (width - filled), style="dim")
    bar.append(f" {progress}%")
    return bar


def build_domains_table(domains: Iterable[Domain]) -> Table:
    items = list(domains)
    table = Table(title=f"{len(items)} domain{'' if len(items) == 1 else 's'}")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("URL", style="magenta")
    table.add_column("DA", justify="right")
    table.add_column("DR", justify="right")
    table.add_column("Progress", no_wrap=True)
    table.add_column("Done", justify="right")
    table.add_column("Created", style="dim")

    for d in items:
        table.add_row(
            d.id,
            d.name,
            d.url,
            "-" if d.da is None else str(d.da),
            "-" if d.dr is None else str(d.dr),
            progress_text(d.progress),
            f"{d.completed_count}/{len(d.tasks)}",
            d.created_at.date().isoformat(),
        )
    return table


def build_tasks_table(domain: Domain) -> Table:
    table = Table(title=f"{domain.name} · {domain.progress}%")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task ID", style="dim", no_wrap=True)
    table.add_column("Task", style="white")
    table.add_column("Done", justify="center")
    table.add_column("Notes", style="dim")
    for index, task in enumerate(domain.tasks, start=1):
        mark = Text("✓", style="green") if task.completed else Text("✗", style="red")
        table.add_row(str(index), task.id, task.name, mark, task.notes or "")
    return table


def build_mind_map(domains: Iterable[Domain]) -> Tree:
    """Vista mind-map en texto: raíz -> bandas de progreso -> dominios -> tareas."""

    groups = group_by_band(domains)
    total = sum(len(members) for members in groups.values())
    root = Tree(Text(f"Domains ({total})", style="bold"))
    for band, members in groups.items():
        if not members:
            continue
        style = BAND_STYLES[band]
        branch = root.add(Text(f"{band} ({len(members)})", style=f"bold {style}"))
        for d in members:
            node = branch.add(Text.assemble((d.name, "cyan"), f"  {d.progress}%"))
            for task in d.tasks:
                if task.completed:
                    node.add(Text(f"✓ {task.name}", style="green"))
                else:
                    node.add(Text(f"✗ {task.name}", style="dim"))
    return root
