"""hostbook CLI."""

import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hostbook.alias import find_record
from hostbook.codec import serialize
from hostbook.codec.parser import strip_comment_marker
from hostbook.config import CONFIG_FILE, USER_CONFIG_PATH, HostbookConfig, get_config_template, load_config
from hostbook.forms import HostForm, HostValidationError, validate_extra_options, validate_records
from hostbook.lookup import resolve_options
from hostbook.shell import build_sftp_command, build_ssh_command
from hostbook.store import SSHConfigFile
from hostbook.types import Directive, HostRecord, ParseResult

app = typer.Typer(help="hostbook - manage hosts in your SSH client config")
console = Console()


def setup_logging(verbose: bool = False):
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("paramiko").setLevel(logging.WARNING)


@dataclass
class State:
    config: HostbookConfig
    file: SSHConfigFile


def get_state(ctx: typer.Context) -> State:
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help=f"Path to {CONFIG_FILE}"),
    ssh_config: Path | None = typer.Option(None, "--file", "-f", help="SSH config file to manage"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Manage hosts in your SSH client config."""
    setup_logging(verbose)
    try:
        cfg = load_config(config)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        raise typer.Exit(1)

    if ssh_config is not None:
        cfg.ssh_config = ssh_config
    ctx.obj = State(
        config=cfg,
        file=SSHConfigFile(cfg.ssh_config_path, indent=cfg.indent, backup=cfg.backup),
    )


def require_record(result: ParseResult, alias: str) -> HostRecord:
    record = find_record(result.records, alias)
    if record is None:
        console.print(f"[red]Error:[/red] Host {alias} not found.")
        raise typer.Exit(1)
    return record


def parse_option_args(options: list[str] | None) -> list[tuple[str, str]]:
    parsed = []
    for raw in options or []:
        name, _, value = raw.strip().partition(" ")
        if not name or not value.strip():
            console.print(f"[red]Error:[/red] Option {raw!r} must look like 'Name value'.")
            raise typer.Exit(1)
        parsed.append((name, value.strip()))
    return parsed


def print_issues(error: HostValidationError) -> None:
    for issue in error.issues:
        console.print(f"[red]Error:[/red] {issue.field}: {issue.message}")


@app.command()
def init(
    user: bool = typer.Option(False, "--user", help=f"Write to {USER_CONFIG_PATH} instead of ./{CONFIG_FILE}"),
):
    """Write a configuration template."""
    config_file = USER_CONFIG_PATH if user else Path(CONFIG_FILE)

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {config_file} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(get_config_template())
    console.print(f"[green]Wrote {config_file}[/green]")


@app.command("list")
def list_hosts(ctx: typer.Context):
    """List hosts in the SSH config."""
    state = get_state(ctx)
    result = state.file.load()

    if not result.records:
        console.print(f"No hosts in {state.file.path}.")
        return

    table = Table()
    table.add_column("Alias")
    table.add_column("Name")
    table.add_column("Target")
    table.add_column("Port")

    for record in result.records:
        target = record.host_name
        if record.user:
            target = f"{record.user}@{target}"
        table.add_row(
            record.host,
            record.label,
            target,
            str(record.port) if record.port is not None else "",
        )
    console.print(table)


@app.command()
def show(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Show the Host block for an alias."""
    result = get_state(ctx).file.load()
    record = require_record(result, alias)

    console.print(f"[bold]Name:[/bold] {record.display_name}")
    if record.sftp_path:
        console.print(f"[bold]SFTP path:[/bold] {record.sftp_path}")
    console.print(serialize([record], indent=get_state(ctx).config.indent).rstrip(), markup=False)


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name; the alias is derived from it"),
    hostname: str = typer.Option("", "--hostname", "-H", help="HostName"),
    user: str = typer.Option("", "--user", "-u", help="User"),
    port: str = typer.Option("", "--port", "-p", help="Port"),
    identity_file: str = typer.Option("", "--identity-file", "-i", help="IdentityFile"),
    proxy_jump: str = typer.Option("", "--proxy-jump", "-J", help="ProxyJump"),
    sftp_path: str = typer.Option("", "--sftp-path", help="Initial SFTP directory"),
    forward_agent: bool | None = typer.Option(None, "--forward-agent/--no-forward-agent", help="ForwardAgent"),
    icon: str = typer.Option("", "--icon", help="Icon name"),
    comment: str = typer.Option("", "--comment", help="Comment line above the block"),
    option: list[str] | None = typer.Option(None, "--option", "-o", help="Extra directive, e.g. 'ServerAliveInterval 30'"),
):
    """Add a host."""
    state = get_state(ctx)
    result = state.file.load()

    form = HostForm(
        name=name,
        host_name=hostname,
        user=user,
        port=port,
        identity_file=identity_file,
        proxy_jump=proxy_jump,
        sftp_path=sftp_path,
        forward_agent=forward_agent,
        icon=icon,
        comment=strip_comment_marker(comment),
        extra_options="\n".join(f"{k} {v}" for k, v in parse_option_args(option)),
    )
    try:
        record = form.to_record(others=result.records, collision=state.config.alias_collision)
    except HostValidationError as e:
        print_issues(e)
        raise typer.Exit(1)

    result.records.append(record)
    state.file.save(result.records, result.foreign_blocks)
    console.print(f"[green]Added Host {record.host}[/green]")


@app.command()
def edit(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Host alias to edit"),
    name: str | None = typer.Option(None, "--name", "-n", help="New display name (renames the alias)"),
    hostname: str | None = typer.Option(None, "--hostname", "-H", help="HostName"),
    user: str | None = typer.Option(None, "--user", "-u", help="User"),
    port: str | None = typer.Option(None, "--port", "-p", help="Port (empty string clears it)"),
    identity_file: str | None = typer.Option(None, "--identity-file", "-i", help="IdentityFile"),
    proxy_jump: str | None = typer.Option(None, "--proxy-jump", "-J", help="ProxyJump"),
    sftp_path: str | None = typer.Option(None, "--sftp-path", help="Initial SFTP directory"),
    forward_agent: bool | None = typer.Option(None, "--forward-agent/--no-forward-agent", help="ForwardAgent"),
    icon: str | None = typer.Option(None, "--icon", help="Icon name"),
    comment: str | None = typer.Option(None, "--comment", help="Comment line above the block"),
    option: list[str] | None = typer.Option(None, "--option", "-o", help="Set an extra directive"),
    unset: list[str] | None = typer.Option(None, "--unset", help="Remove an extra directive by name"),
):
    """Edit a host. Only the given fields change; the alias changes only with --name."""
    state = get_state(ctx)
    result = state.file.load()
    existing = require_record(result, alias)

    changes = {
        "name": name,
        "host_name": hostname,
        "user": user,
        "port": port,
        "identity_file": identity_file,
        "proxy_jump": proxy_jump,
        "sftp_path": sftp_path,
        "forward_agent": forward_agent,
        "icon": icon,
        "comment": strip_comment_marker(comment) if comment is not None else None,
    }
    # Extra options are applied to the record directly, not through the form.
    changes = {k: v for k, v in changes.items() if v is not None}
    form = HostForm.from_record(existing).model_copy(update={**changes, "extra_options": ""})
    new_options = [Directive(name=k, value=v) for k, v in parse_option_args(option)]
    try:
        record = form.to_record(
            existing=existing,
            others=result.records,
            collision=state.config.alias_collision,
        )
        issues = validate_extra_options(new_options)
        if issues:
            raise HostValidationError(issues)
    except HostValidationError as e:
        print_issues(e)
        raise typer.Exit(1)

    # Includes options the form cannot express, such as those without a value.
    record.extra_options = existing.model_copy(deep=True).extra_options
    for directive in new_options:
        record.set_option(directive.name, directive.value)
    for key in unset or []:
        record.remove_option(key)

    result.replace_record(record)
    state.file.save(result.records, result.foreign_blocks)
    if record.host != existing.host:
        console.print(f"[green]Renamed Host {existing.host} to {record.host}[/green]")
    else:
        console.print(f"[green]Updated Host {record.host}[/green]")


@app.command()
def remove(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Host alias to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove every Host block with this alias."""
    state = get_state(ctx)
    result = state.file.load()
    matches = [r for r in result.records if r.host == alias]
    if not matches:
        console.print(f"[red]Error:[/red] Host {alias} not found.")
        raise typer.Exit(1)

    if not yes and not typer.confirm(f"Remove {len(matches)} block(s) for Host {alias}?"):
        raise typer.Exit(0)

    for record in matches:
        result.remove_record(record.id)
    state.file.save(result.records, result.foreign_blocks)
    console.print(f"[green]Removed Host {alias}[/green]")


@app.command()
def command(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Host alias"),
    sftp: bool = typer.Option(False, "--sftp", help="Print the sftp command instead of ssh"),
):
    """Print the command that connects to a host."""
    result = get_state(ctx).file.load()
    record = require_record(result, alias)
    try:
        cmd = build_sftp_command(record) if sftp else build_ssh_command(record)
    except HostValidationError as e:
        print_issues(e)
        raise typer.Exit(1)
    typer.echo(cmd)


@app.command()
def check(ctx: typer.Context):
    """Report parse anomalies and validation problems."""
    state = get_state(ctx)
    result = state.file.load()

    for diagnostic in result.diagnostics:
        console.print(
            f"[yellow]line {diagnostic.line_number}:[/yellow] {diagnostic.message}",
            highlight=False,
        )

    issues = validate_records(result.records)
    for issue in issues:
        console.print(f"[red]Error:[/red] {issue.field}: {issue.message}")

    if issues:
        raise typer.Exit(1)
    console.print(f"[green]{len(result.records)} host(s) OK[/green]")


@app.command("format")
def format_file(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Print instead of writing"),
):
    """Rewrite the SSH config in canonical form."""
    state = get_state(ctx)
    if not state.file.exists():
        console.print(f"[red]Error:[/red] {state.file.path} not found.")
        raise typer.Exit(1)

    result = state.file.load()
    if dry_run:
        typer.echo(serialize(result.records, result.foreign_blocks, indent=state.config.indent), nl=False)
        return
    state.file.save(result.records, result.foreign_blocks)
    console.print(f"[green]Formatted {state.file.path}[/green]")


@app.command()
def resolve(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Show the options ssh would apply to an alias."""
    state = get_state(ctx)
    try:
        options = resolve_options(state.file.read_text(), alias)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table()
    table.add_column("Option")
    table.add_column("Value")
    for key, value in sorted(options.items()):
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
