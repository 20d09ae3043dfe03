import functools
import json
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from pvetheme.config import DEFAULT_CONFIG, coerce_value, load_config, save_global_config
from pvetheme.errors import ThemeManagerError
from pvetheme.log import read_logs
from pvetheme.manager import ThemeManager, check_root

console = Console()


def _manager(ctx):
    """Build the ThemeManager once per invocation, stored on the click context."""
    ctx.ensure_object(dict)
    if "manager" not in ctx.obj:
        try:
            ctx.obj["manager"] = ThemeManager(load_config())
        except ValueError as e:
            console.print(f"[red]Config error: {e}[/red]")
            raise SystemExit(1)
    return ctx.obj["manager"]


def guarded(fn):
    """Turn ThemeManagerError and OSError into a red message and exit code 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ThemeManagerError as e:
            label = "Fatal" if e.fatal else "Error"
            console.print(f"[red]{label}: {escape(str(e))}[/red]")
            if e.fatal:
                console.print("[dim]No changes written; service not restarted.[/dim]")
            raise SystemExit(1)
        except OSError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise SystemExit(1)

    return wrapper


def _print_report(report):
    style = "green" if report.success and not report.warnings else ("yellow" if report.success else "red")
    console.print(f"[bold {style}]{report.summary()}[/bold {style}]")
    for message in report.warnings:
        console.print(f"  [yellow]![/yellow] {message}")
    for message in report.errors:
        console.print(f"  [red]x[/red] {message}")


def _do_install(manager, name, backup=True, restart=True):
    check_root(manager.config)
    console.print(f"Installing [bold]{name}[/bold]...")
    report = manager.install(name, backup=backup, restart=restart)
    if report.snapshot_id:
        console.print(f"  [dim]Snapshot: {report.snapshot_id} ({manager.layout.backups / report.snapshot_id})[/dim]")
    _print_report(report)
    if report.restarted:
        console.print("Refresh your browser to see the new theme.")
    return report


def _do_backup(manager):
    check_root(manager.config)
    report = manager.backup()
    _print_report(report)
    console.print(f"  [dim]Location: {manager.layout.backups / report.snapshot_id}[/dim]")
    return report


@click.group(invoke_without_command=True)
@click.version_option(version="0.1.0")
@click.option("--auto", is_flag=True, help="Install non-interactively (uses --theme or the first theme).")
@click.option("--theme", "theme_name", default=None, help="Theme to install with --auto.")
@click.option("--backup-only", is_flag=True, help="Create a snapshot and exit.")
@click.option("--no-restart", is_flag=True, help="Do not restart pveproxy after changes.")
@click.pass_context
@guarded
def main(ctx, auto, theme_name, backup_only, no_restart):
    """pve-theme: install and manage Proxmox VE web console themes."""
    ctx.ensure_object(dict)
    ctx.obj["restart"] = not no_restart
    if ctx.invoked_subcommand is not None:
        return

    manager = _manager(ctx)

    if backup_only:
        _do_backup(manager)
        return

    if auto or theme_name:
        name = theme_name or next(iter(manager.catalog.names()), None)
        if not name:
            console.print("[red]No themes available.[/red]")
            raise SystemExit(1)
        _do_install(manager, name, restart=not no_restart)
        return

    shell(manager, restart=not no_restart)


@main.command("list")
@click.pass_context
@guarded
def list_cmd(ctx):
    """List available themes."""
    manager = _manager(ctx)
    themes = manager.list_themes()
    if not themes:
        console.print("[dim]No themes found.[/dim]")
        return

    table = Table(title="Themes")
    table.add_column("#", style="dim")
    table.add_column("Name", style="bold cyan")
    table.add_column("Label")
    table.add_column("Description", style="dim", max_width=50)
    table.add_column("Active", style="green")

    for i, (theme, active) in enumerate(themes, 1):
        table.add_row(str(i), theme.name, theme.label, theme.description, "*" if active else "")

    console.print(table)


@main.command()
@click.argument("name")
@click.option("--no-backup", is_flag=True, help="Skip the snapshot before patching.")
@click.pass_context
@guarded
def install(ctx, name, no_backup):
    """Install a theme by name.

    Example: pve-theme install ocean-blue
    """
    _do_install(_manager(ctx), name, backup=not no_backup, restart=ctx.obj["restart"])


@main.command()
@click.argument("snapshot_id", required=False)
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
@guarded
def restore(ctx, snapshot_id, yes):
    """Restore a snapshot (the latest if no ID is given)."""
    manager = _manager(ctx)
    check_root(manager.config)

    target = snapshot_id or "the latest snapshot"
    if not yes and not click.confirm(f"Restore {target}? Any custom theme will be removed.", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return

    report = manager.restore(snapshot_id, restart=ctx.obj["restart"])
    console.print(f"Restored from [cyan]{report.snapshot_id}[/cyan]")
    _print_report(report)


@main.command()
@click.pass_context
@guarded
def status(ctx):
    """Show current theme, template and snapshot state."""
    _print_status(_manager(ctx))


def _print_status(manager):
    info = manager.status()

    def _yes(flag):
        return "[green]yes[/green]" if flag else "[red]no[/red]"

    table = Table(title="Theme Manager Status", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Current theme", info["active_theme"] or "Original Proxmox theme")
    table.add_row("Template patched", _yes(info["patched"]))
    table.add_row("Install root", f"{info['root']} ({_yes(info['root_exists'])})")
    table.add_row("Template", f"{info['template']} ({_yes(info['template_exists'])})")
    table.add_row("Snapshots", str(info["snapshots"]))
    table.add_row("Latest snapshot", info["latest_snapshot"] or "None")
    table.add_row("Backup path", info["backup_dir"])
    table.add_row("Catalog", info["catalog"])
    console.print(table)

    if info["root_exists"] and not info["template_exists"]:
        console.print("[yellow]Template missing: only backup and restore are available.[/yellow]")


@main.command()
@click.pass_context
@guarded
def backup(ctx):
    """Snapshot the template and any theme files."""
    _do_backup(_manager(ctx))


@main.command()
@click.argument("name")
@click.option("-n", "--lines", default=40, help="Number of CSS lines to show.")
@click.pass_context
@guarded
def preview(ctx, name, lines):
    """Show a theme's details and stylesheet without installing it."""
    theme, css = _manager(ctx).preview(name)
    console.print(f"[bold]{theme.label}[/bold] [dim]({theme.name})[/dim]")
    if theme.description:
        console.print(theme.description)
    all_lines = css.splitlines()
    console.print(f"[dim]{len(css.encode())} bytes, {len(all_lines)} lines[/dim]\n")
    console.print(Syntax("\n".join(all_lines[:lines]), "css", line_numbers=True))
    if len(all_lines) > lines:
        console.print(f"[dim]... {len(all_lines) - lines} more lines[/dim]")


@main.group(invoke_without_command=True)
@click.pass_context
@guarded
def snapshots(ctx):
    """List and manage snapshots."""
    if ctx.invoked_subcommand is not None:
        return

    snapshot_list = _manager(ctx).store.all()
    if not snapshot_list:
        console.print("[dim]No snapshots found.[/dim]")
        return

    table = Table(title="Snapshots")
    table.add_column("ID", style="bold cyan")
    table.add_column("Created", style="dim")
    table.add_column("Template")
    table.add_column("Theme files")
    table.add_column("Result", style="bold")

    for s in snapshot_list:
        created = s.created
        if created:
            try:
                created = datetime.fromisoformat(created).strftime("%Y-%m-%d %H:%M:%S")
            except ValueError:
                pass
        table.add_row(
            s.id,
            created,
            "yes" if s.has_template else "[yellow]missing[/yellow]",
            str(len(s.theme_files)),
            "[green]ok[/green]" if s.success else "[red]partial[/red]",
        )

    console.print(table)


@snapshots.command("clean")
@click.option("--last", "last_n", type=int, default=None, help="Delete the N most recent snapshots.")
@click.option("--all", "delete_all", is_flag=True, help="Delete all snapshots.")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
@guarded
def snapshots_clean(ctx, last_n, delete_all, yes):
    """Delete snapshots. Use --last N or --all."""
    if not last_n and not delete_all:
        console.print("[red]Specify --last N or --all.[/red]")
        raise SystemExit(1)

    manager = _manager(ctx)
    all_ids = list(manager.store.list())
    targets = all_ids if delete_all else all_ids[:last_n]  # list is newest-first

    if not targets:
        console.print("[dim]No snapshots to delete.[/dim]")
        return

    console.print(f"[bold]About to delete {len(targets)} snapshot(s):[/bold]")
    for snapshot_id in targets:
        console.print(f"  [cyan]{snapshot_id}[/cyan]")

    if not yes and not click.confirm("Delete these snapshots?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return

    for snapshot_id in targets:
        manager.delete_snapshot(snapshot_id)
        console.print(f"  [red]Deleted[/red] {snapshot_id}")

    console.print(f"[bold green]Done. {len(targets)} snapshot(s) removed.[/bold green]")


@main.command()
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
@guarded
def uninstall(ctx, yes):
    """Remove the theme and restore the original console look."""
    manager = _manager(ctx)
    check_root(manager.config)
    if not yes and not click.confirm("Remove the theme and restore the original template?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return
    report = manager.uninstall(restart=ctx.obj["restart"])
    _print_report(report)
    console.print(f"[dim]Snapshots are kept in {manager.layout.backups}[/dim]")


@main.command()
@click.pass_context
@guarded
def sync(ctx):
    """Download all themes from catalog_url into themes_dir."""
    manager = _manager(ctx)
    names = manager.sync()
    console.print(f"[green]Downloaded {len(names)} theme(s) to {manager.layout.themes_dir}[/green]")
    for name in names:
        console.print(f"  {name}")


@main.command("config")
@click.argument("key", required=False)
@click.argument("value", required=False)
@guarded
def config_cmd(key, value):
    """Show the merged config, or save KEY VALUE to the global config."""
    if key is None:
        try:
            config = load_config()
        except ValueError as e:
            console.print(f"[red]Config error: {e}[/red]")
            raise SystemExit(1)
        console.print_json(json.dumps(config))
        return

    if key not in DEFAULT_CONFIG:
        console.print(f"[red]Unknown key {key!r}. Known keys: {', '.join(DEFAULT_CONFIG)}[/red]")
        raise SystemExit(1)
    if value is None:
        console.print("[red]Missing VALUE.[/red]")
        raise SystemExit(1)

    path = save_global_config({key: coerce_value(key, value)})
    console.print(f"Saved {key} to {path}")


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
@guarded
def logs(limit):
    """Show the audit log."""
    try:
        config = load_config()
    except ValueError:
        config = None
    entries = read_logs(config)
    if not entries:
        console.print("[dim]No logs yet.[/dim]")
        return

    table = Table(title="Audit Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Theme")
    table.add_column("Snapshot", style="cyan")
    table.add_column("Result", style="bold")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        result = entry.get("result", "")
        result_style = {
            "ok": "[green]ok[/green]",
            "partial": "[yellow]partial[/yellow]",
            "failed": "[red]failed[/red]",
        }.get(result, result)
        table.add_row(ts, entry.get("event", ""), entry.get("theme", ""), entry.get("snapshot", ""), result_style)

    console.print(table)


# ── Interactive menu ──────────────────────────────────────────────────────────

_MENU = [
    ("1", "Show status"),
    ("2", "Create backup"),
    ("3", "Restore original theme"),
    ("4", "Install a theme"),
    ("5", "Uninstall theme"),
    ("6", "Exit"),
]


def _choose_theme(manager):
    themes = manager.catalog.themes
    console.print()
    console.print("[bold]Available themes:[/bold]")
    for i, theme in enumerate(themes, 1):
        console.print(f"  {i}. {theme.label} [dim]({theme.name})[/dim]")
    console.print(f"  {len(themes) + 1}. Back")
    choice = click.prompt("  Choice", type=click.IntRange(1, len(themes) + 1))
    if choice == len(themes) + 1:
        return None
    return themes[choice - 1].name


@guarded
def _menu_action(manager, choice, restart):
    if choice == "1":
        _print_status(manager)
    elif choice == "2":
        if click.confirm("Create a backup of the current configuration?", default=True):
            _do_backup(manager)
    elif choice == "3":
        check_root(manager.config)
        if click.confirm("This will restore the latest snapshot and remove any custom theme. Continue?", default=False):
            _print_report(manager.restore(restart=restart))
    elif choice == "4":
        name = _choose_theme(manager)
        if name and click.confirm(f"Install {name}? This modifies Proxmox files.", default=True):
            _do_install(manager, name, restart=restart)
    elif choice == "5":
        check_root(manager.config)
        if click.confirm("Remove the theme and restore the original template?", default=False):
            _print_report(manager.uninstall(restart=restart))


def shell(manager, restart=True):
    """Interactive menu over the same operations as the subcommands."""
    console.print("[bold]Proxmox VE Theme Manager[/bold]")

    probe = manager.probe()
    if not probe.root_exists:
        console.print(f"[red]Proxmox VE not found at {manager.layout.root}.[/red]")
        raise SystemExit(1)
    if not probe.template_exists:
        console.print("[yellow]Template missing: only backup and restore are available.[/yellow]")

    while True:
        console.print()
        for num, label in _MENU:
            console.print(f"  {num}. {label}")
        try:
            choice = click.prompt("Choice", default="1").strip()
        except (KeyboardInterrupt, EOFError, click.Abort):
            console.print("\n[dim]Goodbye.[/dim]")
            break

        if choice == "6":
            console.print("[dim]Goodbye.[/dim]")
            break
        if choice not in dict(_MENU):
            console.print("[red]Invalid choice.[/red]")
            continue

        try:
            _menu_action(manager, choice, restart)
        except SystemExit:
            # errors are already printed; stay in the menu
            continue
