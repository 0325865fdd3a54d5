"""Domain tracker CLI.

Commands only parse input and render output; every storage decision goes
through `BackendSelector`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.json_exporter import dump_domains_json, export_domains_json, read_import_file
from adapters.report_exporter import export_dashboard_html
from cli.doctor import app as doctor_app
from cli.ui_components import build_domains_table, build_mind_map, build_tasks_table, print_banner
from core.config import AppSettings
from core.domain.identity import find_duplicate
from core.domain.models import Domain, DomainInput, Task, TaskPatch
from core.errors import DomainTrackerError
from core.logging import setup_logging
from core.resources_loader import load_seed_domains, parse_url_lines
from core.services.backend_selector import BackendSelector, SelectorHooks
from core.services.views import SortKey, filter_domains, sort_domains

app = typer.Typer(no_args_is_help=True, help="Track domains and their onboarding checklist.")
app.add_typer(doctor_app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def _warn(message: str) -> None:
    _err_console.print(f"[yellow]{message}[/yellow]")


def _selector() -> BackendSelector:
    return BackendSelector.from_settings(hooks=SelectorHooks(warning=_warn))


def _fail(message: str) -> typer.Exit:
    _err_console.print(f"[red]{message}[/red]")
    return typer.Exit(code=1)


def _resolve_domain(selector: BackendSelector, ref: str) -> Domain:
    """Domain by id, then by url or name."""

    for domain in selector.domains:
        if domain.id == ref:
            return domain
    found = find_duplicate(selector.domains, url=ref, name=ref)
    if found is None:
        raise _fail(f"Domain not found: {ref}")
    return found


def _resolve_task(domain: Domain, ref: str) -> Task:
    """Task by id, 1-based position, or name (case-insensitive)."""

    task = domain.find_task(ref)
    if task is not None:
        return task
    if ref.isdigit() and 1 <= int(ref) <= len(domain.tasks):
        return domain.tasks[int(ref) - 1]
    for candidate in domain.tasks:
        if candidate.name.casefold() == ref.strip().casefold():
            return candidate
    raise _fail(f"Task not found in {domain.name}: {ref}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
) -> None:
    settings = AppSettings()
    setup_logging("DEBUG" if verbose else settings.log_level, json_format=settings.log_json)


@app.command(name="list")
def list_domains(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name or URL."),
    sort: SortKey = typer.Option(SortKey.NAME, "--sort", help="Sort column."),
    desc: bool = typer.Option(False, "--desc", help="Descending order."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    banner: bool = typer.Option(False, "--banner", help="Show the banner first."),
) -> None:
    """Table view of all domains."""

    selector = _selector()
    domains = asyncio.run(selector.load())
    items = sort_domains(filter_domains(domains, search), sort, descending=desc)

    if as_json:
        typer.echo(dump_domains_json(items))
        return
    if banner:
        print_banner(_console, backend="remote" if selector.state.using_remote else "local")
    _console.print(build_domains_table(items))


@app.command()
def mindmap(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name or URL."),
) -> None:
    """Mind-map view: domains clustered by progress."""

    selector = _selector()
    domains = asyncio.run(selector.load())
    _console.print(build_mind_map(filter_domains(domains, search)))


@app.command()
def add(
    name: str = typer.Argument(..., help="Display name, e.g. example.com"),
    url: str = typer.Argument(..., help="Site URL"),
    da: Optional[int] = typer.Option(None, "--da", help="Domain Authority (0-100)."),
    dr: Optional[int] = typer.Option(None, "--dr", help="Domain Rating (0-100)."),
) -> None:
    """Add one domain with the default checklist."""

    try:
        data = DomainInput(name=name, url=url, da=da, dr=dr)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    async def _add() -> tuple[Domain, bool]:
        selector = _selector()
        await selector.load()
        known = {d.id for d in selector.domains}
        domain = await selector.add_domain(data)
        return domain, domain.id in known

    domain, existed = asyncio.run(_add())
    if existed:
        _console.print(f"[yellow]Already tracked:[/yellow] {domain.name} ({domain.id})")
    else:
        _console.print(f"[green]Added:[/green] {domain.name} ({domain.id})")


async def _bulk_add(urls: list[str]) -> tuple[list[Domain], int]:
    selector = _selector()
    await selector.load()
    known = {d.id for d in selector.domains}
    result = await selector.add_domains(urls)
    return result, sum(1 for d in result if d.id not in known)


@app.command(name="add-many")
def add_many(
    urls: Optional[List[str]] = typer.Argument(None, help="URLs or bare hosts."),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Text file, one URL per line."),
) -> None:
    """Bulk add; repeated or already tracked URLs collapse to one record."""

    entries = list(urls or [])
    if file is not None:
        entries.extend(parse_url_lines(read_import_file(file)))
    if not entries:
        raise typer.BadParameter("Provide URLs as arguments or with --file")

    result, created = asyncio.run(_bulk_add(entries))
    _console.print(f"[green]{created} added[/green], {len(result) - created} already tracked.")


@app.command()
def seed(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Seed list (default: bundled list)."),
) -> None:
    """Add the initial domain list."""

    settings = AppSettings()
    urls = load_seed_domains(file, data_dir=settings.resolved_data_dir())
    if not urls:
        raise _fail("No seed list found.")
    result, created = asyncio.run(_bulk_add(urls))
    _console.print(f"[green]{created} added[/green], {len(result) - created} already tracked.")


@app.command()
def tasks(domain_ref: str = typer.Argument(..., metavar="DOMAIN")) -> None:
    """Show the checklist of one domain."""

    selector = _selector()
    asyncio.run(selector.load())
    _console.print(build_tasks_table(_resolve_domain(selector, domain_ref)))


@app.command()
def toggle(
    domain_ref: str = typer.Argument(..., metavar="DOMAIN"),
    task_ref: str = typer.Argument(..., metavar="TASK", help="Task id, position (1-8) or name."),
) -> None:
    """Flip one task inline."""

    async def _toggle() -> Domain | None:
        selector = _selector()
        await selector.load()
        domain = _resolve_domain(selector, domain_ref)
        task = _resolve_task(domain, task_ref)
        return await selector.toggle_task_inline(domain.id, task.id)

    updated = asyncio.run(_toggle())
    if updated is None:
        raise _fail("Task could not be updated.")
    _console.print(build_tasks_table(updated))


@app.command(name="edit-task")
def edit_task(
    domain_ref: str = typer.Argument(..., metavar="DOMAIN"),
    task_ref: str = typer.Argument(..., metavar="TASK", help="Task id, position (1-8) or name."),
    done: Optional[bool] = typer.Option(None, "--done/--not-done", help="Completion flag."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes."),
) -> None:
    """Task editor: prompts for any value not given as an option."""

    async def _edit() -> Domain | None:
        selector = _selector()
        await selector.load()
        domain = _resolve_domain(selector, domain_ref)
        task = _resolve_task(domain, task_ref)

        completed = done
        new_notes = notes
        if done is None and notes is None:
            completed = typer.confirm(f"{task.name} completed?", default=task.completed)
            new_notes = typer.prompt("Notes", default=task.notes or "", show_default=False)
        patch = TaskPatch(completed=completed, notes=new_notes)
        return await selector.apply_task_edit(domain.id, task.id, patch)

    updated = asyncio.run(_edit())
    if updated is None:
        raise _fail("Task could not be updated.")
    _console.print(build_tasks_table(updated))


@app.command()
def delete(
    domain_ref: str = typer.Argument(..., metavar="DOMAIN"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete a domain."""

    async def _delete() -> str | None:
        selector = _selector()
        await selector.load()
        domain = _resolve_domain(selector, domain_ref)
        if not yes and not typer.confirm(f"Are you sure you want to delete {domain.name}?"):
            return None
        await selector.delete_domain(domain.id)
        return domain.name

    name = asyncio.run(_delete())
    if name is not None:
        _console.print(f"[green]Deleted:[/green] {name}")


@app.command(name="export")
def export_json(output: Path = typer.Argument(..., help="Destination .json file.")) -> None:
    """Export the current working set as a JSON array."""

    selector = _selector()
    domains = asyncio.run(selector.load())
    path = export_domains_json(domains=domains, output_path=output)
    _console.print(f"[green]Exported {len(domains)} domains to:[/green] {path}")


@app.command(name="import")
def import_json(source: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Replace the local store with a JSON export."""

    selector = _selector()
    if not selector.store.import_json(read_import_file(source)):
        raise _fail("Import rejected: expected a JSON array of domains. Existing data was kept.")
    if selector.state.using_remote:
        _warn("Remote storage is active; the import only replaced the local store.")
    _console.print(f"[green]Imported {len(selector.store.list())} domains.[/green]")


@app.command()
def report(output: Path = typer.Argument(Path("reports/dashboard.html"), help="Destination .html file.")) -> None:
    """Write an HTML dashboard (table + mind map)."""

    selector = _selector()
    domains = asyncio.run(selector.load())
    path = export_dashboard_html(domains=domains, output_path=output)
    _console.print(f"[green]Dashboard written to:[/green] {path}")


def run() -> None:
    try:
        app()
    except DomainTrackerError as exc:
        _err_console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
