"""Click CLI entrypoint for envsync."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Confirm

from .config import (
    DEFAULT_CONFIG_FILE,
    Config,
    config_exists,
    load_config,
    new_config,
    save_config,
    validate_config,
)
from .engine import ProgressEvent, SyncEngine
from .env_file import infer_env_from_filename, parse_env_file, quote_if_needed, write_env_file
from .errors import AuthenticationError, EnvSyncError
from .formatters import render_diff, render_report
from .models import LOCAL_ENVIRONMENTS, LOCAL_TEST, Target, TargetDiff
from .orchestrator import RunReport, run_sync
from .sources import EnvSource, FileSource, Source
from .stores import get_store_info, is_write_only

console = Console(stderr=True)
out = Console()

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

_format_option = click.option(
    "--format",
    "output_format",
    default="table",
    type=click.Choice(["table", "json"], case_sensitive=False),
    show_default=True,
    help="Output format.",
)
_dry_run_option = click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Preview changes without writing anything.",
)
_force_option = click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Skip confirmation prompts (suitable for CI).",
)
_no_mask_option = click.option(
    "--mask/--no-mask",
    default=True,
    show_default=True,
    help="Mask sensitive values in output (use --no-mask to show plaintext).",
)
_env_option = click.option(
    "--env",
    "-e",
    "env_name",
    default=None,
    help="Local environment to sync (test or live); overrides inference.",
)
_from_option = click.option(
    "--from",
    "-f",
    "from_file",
    default=None,
    metavar="FILE",
    help="Source env file; overrides inference.",
)
_no_file_option = click.option(
    "--no-file",
    is_flag=True,
    default=False,
    help="Read values from environment variables instead of a file.",
)
_to_option = click.option(
    "--to",
    "-t",
    "to_targets",
    multiple=True,
    metavar="TARGET",
    help="Target(s) to sync to (default: all). Repeatable.",
)


def _abort(msg: str, exit_code: int = 1) -> None:
    console.print(f"[bold red]Error:[/] {escape(msg)}")
    sys.exit(exit_code)


def _emit(rendered: str) -> None:
    """Write pre-rendered formatter output to stdout verbatim."""
    out.print(rendered, end="", markup=False, highlight=False, soft_wrap=True)


def _warn_no_mask(mask: bool) -> None:
    """Print a warning when --no-mask is active."""
    if not mask:
        console.print(
            "[bold yellow]Warning:[/] --no-mask is active. "
            "Secret values will be displayed in plaintext."
        )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _config_path() -> str:
    return click.get_current_context().find_root().obj["config"]


def _load() -> Config:
    path = _config_path()
    if not config_exists(path):
        _abort(f"No config found at {path!r}. Run 'envsync init' first.")
    try:
        return load_config(path)
    except EnvSyncError as exc:
        _abort(str(exc))


def _load_and_validate() -> Config:
    cfg = _load()
    errors = validate_config(cfg)
    if errors:
        for err in errors:
            console.print(f"[bold red]Config error:[/] {escape(err)}")
        sys.exit(1)
    return cfg


def _save(cfg: Config) -> None:
    try:
        save_config(cfg, _config_path())
    except EnvSyncError as exc:
        _abort(str(exc))


def _resolve_env_and_file(
    arg: Optional[str],
    env_name: Optional[str],
    from_file: Optional[str],
    no_file: bool,
) -> tuple[str, str]:
    """Work out the local environment and source file.

    ``test`` uses ``.env.test`` when it exists; ``.env.live`` implies the
    ``live`` environment.  ``--env`` and ``--from`` win over inference.
    """
    env = env_name or ""
    file = from_file or ""

    if arg:
        if "." in arg or "/" in arg:
            file = file or arg
            env = env or infer_env_from_filename(arg)
        else:
            env = env or arg

    if not env:
        _abort("environment required: envsync sync <test|live> or envsync sync .env.<env>")
    if env not in LOCAL_ENVIRONMENTS:
        _abort(f"unknown environment {env!r}: must be one of {', '.join(LOCAL_ENVIRONMENTS)}")

    if no_file:
        return env, ""
    if not file and Path(f".env.{env}").exists():
        file = f".env.{env}"
    if file and not Path(file).exists():
        _abort(f"Env file not found: {file!r}")
    return env, file


def _select_targets(cfg: Config, names: tuple[str, ...]) -> list[Target]:
    targets = cfg.get_targets()
    if not names:
        return targets
    unknown = [n for n in names if n not in cfg.targets]
    if unknown:
        _abort(f"unknown target(s): {', '.join(unknown)}")
    return [t for t in targets if t.name in names]


def _print_auth_failure(exc: AuthenticationError) -> None:
    console.print("[bold red]Authentication failed:[/]")
    for status in exc.statuses:
        hint = f" (set {status.env_var})" if status.env_var else ""
        console.print(f"  [red]✗[/] {escape(status.target_name)}: {escape(str(status.error))}{hint}")


def _print_progress(event: ProgressEvent) -> None:
    if not event.done:
        logger.debug("Writing %s to %s/%s.", event.secret_name, event.target_name, event.environment)
        return
    label = escape(f"{event.target_name}/{event.environment} {event.secret_name}")
    if event.success:
        console.print(f"  [green]✓[/] {label}")
    else:
        console.print(f"  [red]✗[/] {label}: {escape(str(event.error))}")


def _pending(report: RunReport) -> int:
    return sum(len(p.diff.changes) for p in report.passes if p.diff is not None)


def _run(
    cfg: Config,
    source: Source,
    env: str,
    targets: list[Target],
    *,
    dry_run: bool,
    force: bool,
    output_format: str,
    mask: bool,
) -> None:
    """Preview every pass, confirm, then apply."""
    names = list(cfg.secrets)
    engine = SyncEngine()
    table = output_format == "table"

    def show(diff: TargetDiff) -> None:
        _emit(render_diff(diff, fmt="table", mask=mask))

    if table:
        console.print(f"Source: {escape(source.name)}  Environment: [bold]{env}[/]")

    try:
        preview = run_sync(
            engine, names, source, targets, env, dry_run=True, on_preview=show if table else None
        )
    except AuthenticationError as exc:
        _print_auth_failure(exc)
        sys.exit(1)

    if dry_run:
        _emit(render_report(preview, fmt=output_format, mask=mask))
        if not preview.ok:
            sys.exit(1)
        return

    if not _pending(preview):
        if preview.failed_passes or not table:
            _emit(render_report(preview, fmt=output_format, mask=mask))
        if not preview.ok:
            sys.exit(1)
        console.print("[bold green]Nothing to sync — already in sync.[/]")
        return

    if not force:
        if not Confirm.ask(
            f"Apply {_pending(preview)} change(s) to {len(targets)} target(s)?",
            default=False,
            console=console,
        ):
            console.print("Aborted.")
            return

    try:
        report = run_sync(
            engine, names, source, targets, env,
            dry_run=False,
            progress=_print_progress if table else None,
        )
    except AuthenticationError as exc:
        _print_auth_failure(exc)
        sys.exit(1)

    _emit(render_report(report, fmt=output_format, mask=mask))
    if not report.ok:
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="envsync")
@click.option(
    "--config",
    "-c",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="ENVSYNC_CONFIG",
    help="Path to the envsync.yaml config file.",
    metavar="FILE",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def cli(ctx, config, verbose):
    """envsync — keep secrets in sync between .env files and deployment platforms."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# Schema management
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--target",
    "target_specs",
    multiple=True,
    metavar="TYPE[:NAME]",
    help="Add a target with the platform's default mapping. Repeatable.",
)
@click.option(
    "--from",
    "from_file",
    default=None,
    metavar="FILE",
    help="Import secret names (not values) from an existing .env file.",
)
@_force_option
def init(target_specs, from_file, force):
    """Create a new envsync.yaml."""
    path = _config_path()
    if config_exists(path) and not force:
        if not Confirm.ask(f"{path} already exists. Overwrite?", default=False, console=console):
            console.print("Cancelled.")
            return

    cfg = new_config()
    if from_file:
        if not Path(from_file).exists():
            _abort(f"Env file not found: {from_file!r}")
        for name in parse_env_file(from_file):
            cfg.add_secret(name)

    for target_spec in target_specs:
        store_type, _, name = target_spec.partition(":")
        try:
            info = get_store_info(store_type)
        except EnvSyncError as exc:
            _abort(str(exc))
        cfg.add_target(name or store_type, store_type, info.default_mapping)

    _save(cfg)
    console.print(f"[bold green]Created {escape(path)}[/] ({len(cfg.secrets)} secrets, {len(cfg.targets)} targets)")
    for error in validate_config(cfg):
        console.print(f"[yellow]Todo:[/] {escape(error)}")


@cli.command()
@click.argument("names", nargs=-1, required=True)
def add(names):
    """Add secret names to the schema."""
    path = _config_path()
    cfg = _load() if config_exists(path) else new_config()

    added: list[str] = []
    skipped: list[str] = []
    for raw in names:
        name = raw.strip().upper()
        if not name:
            continue
        (added if cfg.add_secret(name) else skipped).append(name)

    if added:
        _save(cfg)
        out.print(f"Added: {', '.join(added)}", markup=False, highlight=False)
    if skipped:
        out.print(f"Already in schema: {', '.join(skipped)}", markup=False, highlight=False)
    if not added and not skipped:
        out.print("No secrets added.")


@cli.command(name="set")
@click.argument("pairs", nargs=-1, required=True, metavar="NAME=VALUE...")
@click.option(
    "--env",
    "-e",
    "env_name",
    default=LOCAL_TEST,
    type=click.Choice(list(LOCAL_ENVIRONMENTS)),
    show_default=True,
    help="Local environment to update.",
)
@_dry_run_option
@_force_option
def set_(pairs, env_name, dry_run, force):
    """Set values in .env.<env>, then sync that environment."""
    values: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep:
            _abort(f"invalid format {pair!r}: expected NAME=VALUE")
        if not name:
            _abort(f"invalid format {pair!r}: name cannot be empty")
        values[name] = value.strip()

    cfg = _load_and_validate()
    added = [name for name in values if cfg.add_secret(name)]
    if added:
        _save(cfg)
        console.print(f"Added to config: {escape(', '.join(added))}")

    env_file = f".env.{env_name}"
    write_env_file(env_file, values)
    console.print(f"Updated {escape(env_file)}")

    targets = cfg.get_targets()
    if not targets:
        console.print("No targets configured. Secrets saved locally.")
        return
    _run(
        cfg, FileSource(env_file), env_name, targets,
        dry_run=dry_run, force=force, output_format="table", mask=True,
    )


# ---------------------------------------------------------------------------
# sync / diff
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("env_or_file", required=False, metavar="[ENV|FILE]")
@_env_option
@_from_option
@_no_file_option
@_to_option
@_dry_run_option
@_force_option
@_format_option
@_no_mask_option
def sync(env_or_file, env_name, from_file, no_file, to_targets, dry_run, force, output_format, mask):
    """Push local values to every mapped target.

    Remote secrets that have no local value are never deleted.
    """
    _warn_no_mask(mask)
    env, file = _resolve_env_and_file(env_or_file, env_name, from_file, no_file)
    cfg = _load_and_validate()
    if not cfg.secrets:
        console.print("No secrets defined in config.")
        return
    targets = _select_targets(cfg, to_targets)
    if not targets:
        console.print("No targets configured.")
        return

    source: Source = FileSource(file) if file else EnvSource()
    _run(
        cfg, source, env, targets,
        dry_run=dry_run, force=force, output_format=output_format, mask=mask,
    )


@cli.command()
@click.argument("env_or_file", required=False, metavar="[ENV|FILE]")
@_env_option
@_from_option
@_no_file_option
@_to_option
@_format_option
@_no_mask_option
@click.pass_context
def diff(ctx, env_or_file, env_name, from_file, no_file, to_targets, output_format, mask):
    """Show what a sync would change, without writing anything."""
    ctx.invoke(
        sync,
        env_or_file=env_or_file,
        env_name=env_name,
        from_file=from_file,
        no_file=no_file,
        to_targets=to_targets,
        dry_run=True,
        force=True,
        output_format=output_format,
        mask=mask,
    )


# ---------------------------------------------------------------------------
# pull  (remote → local)
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("target_name", metavar="TARGET")
@click.option("--env", "-e", "remote_env", required=True, help="Remote environment to pull from.")
@click.option("--output", "-o", default=None, metavar="FILE", help="Write to FILE instead of stdout.")
def pull(target_name, remote_env, output):
    """Pull secret values from a target into a local .env file."""
    cfg = _load_and_validate()
    target = cfg.get_target(target_name)
    if target is None:
        _abort(f"target {target_name!r} not found")

    if is_write_only(target.type):
        info = get_store_info(target.type)
        _abort(
            f"cannot pull from {target_name}: {info.display_name} is write-only "
            f"(secret values cannot be read back). Use 'envsync sync' to push to it instead."
        )

    engine = SyncEngine()
    status = engine.check_auth(target)
    if not status.authenticated:
        _abort(f"not authenticated for {target_name}: {status.error}")

    console.print(f"Pulling from {escape(target_name)}/{escape(remote_env)}...")
    try:
        secrets = engine.pull(target, remote_env)
    except EnvSyncError as exc:
        _abort(str(exc))

    if not secrets:
        console.print("No secrets found.")
        return

    if cfg.secrets:
        outside = [name for name in secrets if not cfg.has_secret(name)]
        if outside:
            console.print(f"Note: {len(outside)} secrets on remote are not in your schema.")
            logger.debug("Not in schema: %s", ", ".join(sorted(outside)))
        secrets = {name: value for name, value in secrets.items() if cfg.has_secret(name)}

    console.print(f"Found {len(secrets)} secrets")
    if output:
        write_env_file(output, secrets)
        console.print(f"[bold green]Written to {escape(output)}[/]")
    else:
        for name in sorted(secrets):
            out.print(f"{name}={quote_if_needed(secrets[name])}", markup=False, highlight=False, soft_wrap=True)

    added = [name for name in secrets if cfg.add_secret(name)]
    if added:
        _save(cfg)
        console.print(f"Added {len(added)} new secrets to schema")


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
def status():
    """Show the schema, targets, authentication and mappings."""
    cfg = _load()
    for err in validate_config(cfg):
        console.print(f"[bold yellow]Config warning:[/] {escape(err)}")

    out.print(f"[bold]Secrets:[/] {len(cfg.secrets)} in schema")
    for name in cfg.secrets:
        out.print(f"  {escape(str(name))}")
    out.print()

    targets = cfg.get_targets()
    out.print(f"[bold]Targets:[/] {len(targets)} configured")
    engine = SyncEngine()
    for t in targets:
        try:
            info = get_store_info(t.type)
        except EnvSyncError as exc:
            out.print(f"  {escape(t.name)}: [red]{escape(str(exc))}[/]")
            continue

        auth = engine.check_auth(t)
        if t.type == "dotenv":
            auth_text = f"[dim](file: {escape(str(t.config.get('path', '.env')))})[/]"
        elif auth.authenticated:
            via = auth.env_var if auth.source == "env" and auth.env_var else auth.source
            auth_text = f"[green]authenticated (via {escape(via)})[/]"
        else:
            hint = f" - set {auth.env_var}" if auth.env_var else ""
            auth_text = f"[red]not authenticated{escape(hint)}[/]"

        project = f" ({escape(t.project)})" if t.project else ""
        tags = ""
        if info.beta:
            tags += " [dim](beta)[/]"
        if info.write_only:
            tags += " [dim](write-only)[/]"
        out.print(f"  {escape(t.name)} \\[{escape(info.display_name)}]{project}: {auth_text}{tags}")

        for remote, local in t.mapping.items():
            out.print(f"    [dim]{escape(remote)}[/] -> {escape(local)}")
        if t.secrets.include:
            out.print(f"    include: {escape(', '.join(t.secrets.include))}")
        if t.secrets.exclude:
            out.print(f"    exclude: {escape(', '.join(t.secrets.exclude))}")
