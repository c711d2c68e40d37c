"""Unified CLI for du-foundation.

Subcommands:
    du-foundation web      – run the web API (FastAPI + uvicorn)
    du-foundation scan     – scan a project for Foundation compatibility
    du-foundation migrate  – apply automatic adjustments to a project
    du-foundation tiers    – list the capacity tiers
    du-foundation suggest  – suggest a tier for a user count

Running ``du-foundation`` without a subcommand defaults to ``web``.
"""

import logging
from pathlib import Path

import click

from du_foundation import __version__

_CLASSIFICATION_COLORS = {
    "COMPATIBLE": "green",
    "NEEDS_ADJUSTMENT": "yellow",
    "INCOMPATIBLE": "red",
}
_SEVERITY_COLORS = {
    "CRITICAL": "red",
    "MAJOR": "yellow",
    "MINOR": "cyan",
    "INFO": "blue",
    "SUCCESS": "green",
}
_SCAN_EXIT_CODES = {"COMPATIBLE": 0, "NEEDS_ADJUSTMENT": 1, "INCOMPATIBLE": 2}

_root_option = click.option(
    "--root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Project root (defaults to the current directory).",
)
_output_option = click.option(
    "--output-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for reports and backups (defaults to <root>/foundation).",
)
_json_option = click.option(
    "--json", "as_json", is_flag=True, default=False, help="Print the raw JSON report."
)
_verbose_option = click.option(
    "--verbose", "-v", is_flag=True, default=False, help="Enable verbose logging."
)


def _configure_logging(verbose: bool) -> None:
    from du_foundation.app import _setup_logging

    _setup_logging(level=logging.DEBUG if verbose else logging.WARNING)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="du-foundation")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """duEuler Foundation."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(web)


@cli.command()
@click.option("--host", default=None, help="Host to bind to.  [default: 127.0.0.1]")
@click.option("--port", default=None, type=int, help="Port to listen on.  [default: 5000]")
@_verbose_option
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Auto-reload on code changes (development only).",
)
def web(host: str | None, port: int | None, verbose: bool, reload: bool) -> None:
    """Run the web API (default)."""
    import uvicorn

    from du_foundation.app import app
    from du_foundation.settings import settings

    _configure_logging(verbose)
    host = host or settings.host
    port = port or settings.port
    log_level = "info" if verbose else "warning"

    url = f"http://{host}:{port}"
    click.echo(f"✦ du-foundation running at {click.style(url, fg='cyan', bold=True)}")
    if reload:
        click.echo(f"  {click.style('⟳ Auto-reload enabled', fg='yellow')}")
    click.echo("  Press Ctrl+C to stop.\n")

    if reload:
        uvicorn.run(
            "du_foundation.app:app",
            host=host,
            port=port,
            log_level=log_level,
            reload=True,
            reload_dirs=[str(Path(__file__).resolve().parent)],
        )
    else:
        uvicorn.run(app, host=host, port=port, log_level=log_level)


@cli.command()
@_root_option
@_output_option
@_json_option
@_verbose_option
def scan(root: Path | None, output_dir: Path | None, as_json: bool, verbose: bool) -> None:
    """Scan a project for Foundation compatibility."""
    from du_foundation.services.scanner import ScanError, scan_project

    _configure_logging(verbose)
    try:
        report = scan_project(root, output_dir)
    except (ScanError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(report.model_dump_json(indent=2))
    else:
        color = _CLASSIFICATION_COLORS[report.classification]
        click.echo(f"Classification: {click.style(report.classification, fg=color, bold=True)}")
        click.echo(f"Score: {report.score}/{report.maxScore} ({report.scorePercentage}%)")
        for severity, fg in _SEVERITY_COLORS.items():
            issues = [i for i in report.issues if i.severity == severity]
            if not issues:
                continue
            click.echo(f"\n{click.style(severity, fg=fg, bold=True)}:")
            for issue in issues:
                click.echo(f"  • {issue.message}")
                if issue.recommendation:
                    click.echo(f"    → {issue.recommendation}")
        if report.recommendations:
            click.echo(f"\n{click.style('Next steps', bold=True)}:")
            for line in report.recommendations:
                click.echo(f"  {line}")
        if report.requirements:
            click.echo(f"\n{click.style('Requirements', bold=True)}:")
            for line in report.requirements:
                click.echo(f"  • {line}")
    ctx = click.get_current_context()
    ctx.exit(_SCAN_EXIT_CODES[report.classification])


@cli.command()
@_root_option
@_output_option
@_json_option
@_verbose_option
def migrate(root: Path | None, output_dir: Path | None, as_json: bool, verbose: bool) -> None:
    """Apply automatic adjustments to a NEEDS_ADJUSTMENT project."""
    from du_foundation.services.migrator import migrate_project
    from du_foundation.services.scanner import ScanError

    _configure_logging(verbose)
    try:
        result = migrate_project(root, output_dir)
    except (ScanError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        sections = (
            ("Migrations applied", result.migrationsApplied, "green"),
            ("Manual actions", result.manualActions, "yellow"),
            ("Errors", result.errors, "red"),
        )
        for title, lines, fg in sections:
            if not lines:
                continue
            click.echo(f"{click.style(title, fg=fg, bold=True)}:")
            for line in lines:
                click.echo(f"  • {line}")
        if result.backupPath:
            click.echo(f"Backup: {result.backupPath}")
        status = "SUCCESS" if result.success else "MANUAL ACTION REQUIRED"
        click.echo(f"Status: {click.style(status, fg='green' if result.success else 'red')}")
    ctx = click.get_current_context()
    ctx.exit(0 if result.success else 1)


@cli.command()
def tiers() -> None:
    """List the capacity tiers and their user ranges."""
    from du_foundation.capacity import CAPACITY_PROFILES

    for tier, profile in CAPACITY_PROFILES.items():
        users = f"{profile.userRange.min:,}–{profile.userRange.max:,}"
        res = profile.resources
        click.echo(
            f"{click.style(f'{tier.value:<10}', bold=True)} {users:>22} users  "
            f"{res.ramMB} MB RAM, {res.cpuCores} vCPU  – {profile.description}"
        )


@cli.command()
@click.argument("max_users", type=click.IntRange(min=0))
def suggest(max_users: int) -> None:
    """Suggest a capacity tier for MAX_USERS concurrent users."""
    from du_foundation.capacity import suggest_tier_for_user_count

    click.echo(suggest_tier_for_user_count(max_users).value)
