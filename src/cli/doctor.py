"""Doctor command: environment diagnostics and remote storage setup."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.report_exporter import render_dashboard_html
from core.config import AppSettings
from core.domain.models import RemoteConfig
from core.services.backend_selector import BackendSelector

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and remote storage setup.")

_console = Console()


def _check_storage(settings: AppSettings) -> tuple[bool, str]:
    data_dir = settings.resolved_data_dir()
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        marker = data_dir / ".doctor_check"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink(missing_ok=True)
        return True, str(data_dir)
    except OSError as exc:
        return False, str(exc)


async def _check_remote(selector: BackendSelector) -> tuple[bool, str]:
    domains = await selector.remote.fetch_domains()
    if domains:
        return True, f"{len(domains)} rows"
    return False, "No rows returned (empty table or request failed, see logs)"


def _check_report() -> tuple[bool, str]:
    """Render an empty dashboard to detect template problems."""

    try:
        render_dashboard_html(domains=[])
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


def migration_summary(migrated: int, local_count: int) -> str:
    """The local store is only cleared when every record reached the remote table."""

    if local_count == 0:
        return "No local domains to migrate."
    if migrated == local_count:
        return f"Migrated {migrated} local domains; local store cleared."
    return (
        f"[yellow]Migrated {migrated} of {local_count} local domains; "
        "local data was kept.[/yellow]"
    )


@app.command()
def run() -> None:
    """Check local storage, remote connectivity and the report template."""

    settings = AppSettings()
    selector = BackendSelector.from_settings(settings)

    table = Table(title="Domain Tracker Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_storage, detail_storage = _check_storage(settings)
    table.add_row("Local storage", "OK" if ok_storage else "FAIL", detail_storage)
    table.add_row("Local domains", "OK", str(len(selector.store.list())))

    config = selector.state.remote_config
    if selector.state.using_remote and config is not None:
        table.add_row("Remote config", "OK", f"base={config.base_id} table={config.table_name}")
        ok_remote, detail_remote = asyncio.run(_check_remote(selector))
        table.add_row("Remote connectivity", "OK" if ok_remote else "WARN", detail_remote)
    else:
        table.add_row("Remote config", "OPTIONAL", "Not configured -> local storage only")

    ok_report, detail_report = _check_report()
    table.add_row("HTML report", "OK" if ok_report else "FAIL", detail_report)

    _console.print(table)

    if not ok_storage:
        _console.print(
            "\n[yellow]Note:[/yellow] set DOMAIN_TRACKER_DATA_DIR to a writable directory."
        )


@app.command(name="setup-remote")
def setup_remote() -> None:
    """Interactive remote storage setup. Migrates local data once, then saves credentials."""

    api_key = typer.prompt("API key", hide_input=True, confirmation_prompt=False).strip()
    base_id = typer.prompt("Base ID").strip()
    table_name = typer.prompt("Table name", default="Domains", show_default=True).strip()

    config = RemoteConfig(api_key=api_key, base_id=base_id, table_name=table_name or "Domains")
    if not config.is_complete:
        raise typer.BadParameter("API key and Base ID are required")

    selector = BackendSelector.from_settings()
    local_count = len(selector.store.list())
    migrated = asyncio.run(selector.enable_remote(config))

    _console.print(f"[green]Remote storage enabled:[/green] {config.base_id}/{config.table_name}")
    _console.print(migration_summary(len(migrated), local_count))
    _console.print(f"Working set: {len(selector.domains)} domains.")


@app.command(name="disable-remote")
def disable_remote() -> None:
    """Forget remote credentials and go back to local storage."""

    selector = BackendSelector.from_settings()
    asyncio.run(selector.disable_remote())
    _console.print("[green]Remote storage disabled.[/green] Using local storage.")
