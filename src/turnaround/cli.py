"""Command line interface for Turnaround."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from turnaround.config import ConfigError, ConfigManager, ConfigScope, TurnaroundConfig
from turnaround.diff import diff_files
from turnaround.errors import VcsError
from turnaround.logging_setup import configure_logging
from turnaround.state import Commit, MissingStateError, StateError
from turnaround.timeline import TimelineDiff, TimeRange, diff_commit_timelines
from turnaround.vcs import ChangeSet, CommitEngine, CommitGraph, ProjectSession, RestoreEngine
from turnaround.watch import ChangeEvent, ChangePoller, WatchService

console = Console()

_STATUS_STYLES = {
    "added": "green",
    "modified": "yellow",
    "removed": "red",
    "unchanged": "dim",
    "Added": "green",
    "Modified": "yellow",
    "Removed": "red",
    "Unchanged": "dim",
}


_ERROR_CODES: tuple[tuple[type[BaseException], str], ...] = (
    (MissingStateError, "missing_state"),
    (StateError, "state_error"),
)


def _describe_error(exc: Exception, action: str) -> tuple[str, str, dict[str, Any]]:
    """Return the machine code, message, and structured details for ``exc``."""
    if isinstance(exc, VcsError):
        return exc.code, str(exc), {}
    if isinstance(exc, ConfigError):
        return "config_error", str(exc), exc.details()
    if isinstance(exc, click.ClickException):
        return "cli_error", exc.format_message(), {}
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            return code, str(exc), {}
    return (
        "internal_error",
        f"Unexpected error while {action}: {exc}",
        {"exception": type(exc).__name__},
    )


def _fail(exc: Exception, *, json_output: bool, action: str) -> NoReturn:
    """Report ``exc`` as a CLI failure.

    JSON mode prints ``{"error": {"code", "message", "details"?}}`` and exits
    with status 1; otherwise the error surfaces as a ``click.ClickException``.
    ``click.Abort`` (a declined prompt) passes through untouched.
    """
    if isinstance(exc, click.Abort):
        raise exc
    code, message, details = _describe_error(exc, action)
    if json_output:
        error: dict[str, Any] = {"code": code, "message": message}
        if details:
            error["details"] = details
        console.print_json(data={"error": error})
        raise SystemExit(1)
    if isinstance(exc, click.ClickException):
        raise exc
    raise click.ClickException(message) from exc


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    formatted_root = str(root)
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {formatted_root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: TurnaroundConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine output flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective quiet and summary-only settings.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config(project_path: str | None = None) -> TurnaroundConfig:
    """Load user settings overlaid with the project file of ``project_path``, if any."""
    project_root = Path(project_path) if project_path is not None else None
    return ConfigManager(project_root=project_root).load()


def _open_session(project_path: str, config: TurnaroundConfig) -> ProjectSession:
    """Open an initialised project and route its logs into the state directory.

    Raises:
        click.ClickException: If the directory is not a Turnaround project.
    """
    session = ProjectSession(Path(project_path), config)
    if not session.repository.exists(session.root):
        raise click.ClickException(
            f"No Turnaround project found at {session.root}. Run `turnaround init` first."
        )
    configure_logging(config.logging, session.state_dir)
    return session


def _short(commit_id: Optional[str]) -> str:
    return commit_id[:8] if commit_id else "-"


def _format_commit_line(commit: Commit) -> str:
    marker = "[magenta]*[/magenta] " if commit.is_milestone else ""
    timestamp = commit.created_at.strftime("%Y-%m-%d %H:%M")
    return f"[yellow]{_short(commit.id)}[/yellow] {timestamp} {marker}{commit.message}"


def _format_range(value: Optional[TimeRange], fallback_rate: float) -> str:
    if value is None:
        return "-"
    start = value.start.to_seconds(fallback_rate)
    end = value.end_seconds(fallback_rate)
    if start is None or end is None:
        return "?"
    return f"{start:.2f}s-{end:.2f}s"


def _project_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "-C",
        "--project",
        "project_path",
        type=click.Path(exists=True, file_okay=False, path_type=str),
        default=".",
        show_default=True,
        help="Project directory.",
    )(func)


def _output_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--quiet", is_flag=True, help="Suppress non-error output.")(func)
    func = click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")(
        func
    )
    return click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")(func)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="turnaround")
def cli() -> None:
    """Turnaround keeps a commit history of video and audio editing projects."""


@cli.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=str),
    default=".",
    required=False,
)
@click.option("--name", type=str, help="Project name (defaults to the directory name).")
@_output_options
@click.pass_context
def init(
    ctx: click.Context,
    path: str,
    name: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Start tracking the editing project in PATH."""
    try:
        config = _load_config(path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = ProjectSession.init(Path(path), config, name=name)
        configure_logging(config.logging, session.state_dir)
        graph = session.load_graph()
        branch = graph.branches[graph.project.active_branch_id or ""]

        if json_output:
            console.print_json(
                data={
                    "project": graph.project.model_dump(mode="json"),
                    "branch": branch.model_dump(mode="json"),
                    "state_dir": str(session.state_dir),
                }
            )
            return

        _emit_message(
            f"[green]Initialised {graph.project.name} on branch {branch.name}.[/green]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        _emit_message(
            _format_summary_line("Init", session.root, {"branch": branch.name}),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="initialising the project")


@cli.command()
@_project_option
@_output_options
@click.pass_context
def status(
    ctx: click.Context,
    project_path: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Show the active branch and uncommitted changes."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        graph_api = CommitGraph(session)
        branch = graph_api.get_active_branch()
        changes = CommitEngine(session).changed_files()

        if json_output:
            console.print_json(
                data={
                    "context": {"root": str(session.root)},
                    "branch": branch.model_dump(mode="json"),
                    "changes": changes.model_dump(mode="json"),
                }
            )
            return

        _emit_message(
            f"On branch [bold]{branch.name}[/bold] at {_short(branch.head_commit_id)}",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        if changes.is_empty():
            _emit_message(
                "[dim]Nothing to commit; working directory matches the head.[/dim]",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        for label, paths in (
            ("added", changes.added),
            ("modified", changes.modified),
            ("removed", changes.removed),
        ):
            style = _STATUS_STYLES[label]
            for item in paths:
                _emit_message(
                    f"  [{style}]{label:>8}[/{style}] {item}",
                    mode="detail",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
        _emit_message(
            _format_summary_line(
                "Status",
                session.root,
                {
                    "branch": branch.name,
                    "added": len(changes.added),
                    "modified": len(changes.modified),
                    "removed": len(changes.removed),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="reading status")


@cli.command()
@_project_option
@click.option("-m", "--message", required=True, help="Commit message.")
@click.option("--milestone", is_flag=True, help="Flag the commit as a milestone.")
@click.option("--allow-empty", is_flag=True, help="Commit even when nothing changed.")
@_output_options
@click.pass_context
def commit(
    ctx: click.Context,
    project_path: str,
    message: str,
    milestone: bool,
    allow_empty: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Record the working directory as a new commit on the active branch."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        created = CommitEngine(session).create_commit(
            message, milestone, allow_empty=allow_empty
        )
        files = CommitGraph(session).get_snapshots(created.id)

        if json_output:
            console.print_json(
                data={
                    "commit": created.model_dump(mode="json"),
                    "files": len(files),
                }
            )
            return

        _emit_message(
            _format_commit_line(created),
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        _emit_message(
            _format_summary_line(
                "Commit", session.root, {"commit": _short(created.id), "files": len(files)}
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="creating the commit")


@cli.command()
@_project_option
@click.option("--branch", "branch_name", type=str, help="Branch to list (defaults to active).")
@click.option("-n", "--limit", type=int, default=None, help="Maximum number of commits.")
@click.option("--milestones", is_flag=True, help="Only list milestone commits.")
@_output_options
@click.pass_context
def log(
    ctx: click.Context,
    project_path: str,
    branch_name: str | None,
    limit: int | None,
    milestones: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """List commits of a branch, newest first."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        graph_api = CommitGraph(session)
        if branch_name:
            branch = graph_api.find_branch(branch_name)
        else:
            branch = graph_api.get_active_branch()
        effective_limit = limit if limit is not None else config.cli.history_limit
        history = graph_api.get_history(branch.id, effective_limit)
        if milestones:
            history = [item for item in history if item.is_milestone]

        if json_output:
            console.print_json(
                data={
                    "branch": branch.model_dump(mode="json"),
                    "commits": [item.model_dump(mode="json") for item in history],
                }
            )
            return

        for item in history:
            _emit_message(
                _format_commit_line(item),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Log", session.root, {"branch": branch.name, "commits": len(history)}
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="reading history")


@cli.command()
@click.argument("ref", default="HEAD", required=False)
@_project_option
@_output_options
@click.pass_context
def show(
    ctx: click.Context,
    ref: str,
    project_path: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Show a commit and the files it records."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        graph_api = CommitGraph(session)
        detail = graph_api.get_commit_detail(graph_api.resolve_commit(ref).id)

        if json_output:
            console.print_json(data=detail.model_dump(mode="json"))
            return

        _emit_message(
            _format_commit_line(detail.commit),
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        table = Table(title=f"Files in {_short(detail.commit.id)}")
        table.add_column("Path")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        table.add_column("Hash")
        for snapshot in detail.files:
            hash_label = snapshot.content_hash[:12] + ("" if snapshot.stored else " (hash only)")
            table.add_row(
                snapshot.file_path, snapshot.file_type, str(snapshot.file_size), hash_label
            )
        _emit_message(table, mode="detail", quiet=quiet_enabled, summary_only=summary_only)
        _emit_message(
            _format_summary_line(
                "Show",
                session.root,
                {"commit": _short(detail.commit.id), "files": len(detail.files)},
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="showing the commit")


@cli.command()
@click.argument("ref_a")
@click.argument("ref_b", default="HEAD", required=False)
@_project_option
@click.option("--all", "show_all", is_flag=True, help="Include unchanged files.")
@_output_options
@click.pass_context
def diff(
    ctx: click.Context,
    ref_a: str,
    ref_b: str,
    project_path: str,
    show_all: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Compare the files of REF_A with REF_B (defaults to HEAD)."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        graph_api = CommitGraph(session)
        commit_a = graph_api.resolve_commit(ref_a)
        commit_b = graph_api.resolve_commit(ref_b)
        result = diff_files(
            graph_api.get_snapshots(commit_a.id), graph_api.get_snapshots(commit_b.id)
        )

        if json_output:
            payload = result.model_dump(mode="json")
            payload["context"] = {"commit_a": commit_a.id, "commit_b": commit_b.id}
            console.print_json(data=payload)
            return

        for entry in result.entries if show_all else result.changed():
            style = _STATUS_STYLES[entry.status]
            delta = f" ({entry.size_change:+d} bytes)" if entry.size_change else ""
            _emit_message(
                f"  [{style}]{entry.status:>9}[/{style}] {entry.file_path}{delta}",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Diff",
                f"{_short(commit_a.id)}..{_short(commit_b.id)}",
                result.summary.model_dump(),
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="diffing commits")


def _render_timeline_diff(
    result: TimelineDiff,
    *,
    fallback_rate: float,
    show_all: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    for track in result.tracks:
        clips = [clip for clip in track.clips if show_all or clip.status.value != "Unchanged"]
        if not clips:
            continue
        table = Table(title=f"{track.kind.value} {track.track_index + 1}: {track.name}")
        table.add_column("#", justify="right")
        table.add_column("Status")
        table.add_column("Clip")
        table.add_column("Before")
        table.add_column("After")
        for clip in clips:
            style = _STATUS_STYLES[clip.status.value]
            table.add_row(
                str(clip.clip_index + 1),
                f"[{style}]{clip.status.value}[/{style}]",
                clip.name,
                _format_range(clip.old_range, fallback_rate),
                _format_range(clip.new_range, fallback_rate),
            )
        _emit_message(table, mode="detail", quiet=quiet, summary_only=summary_only)


@cli.command("timeline-diff")
@click.argument("ref_a")
@click.argument("ref_b", default="HEAD", required=False)
@_project_option
@click.option("--all", "show_all", is_flag=True, help="Include unchanged clips.")
@_output_options
@click.pass_context
def timeline_diff(
    ctx: click.Context,
    ref_a: str,
    ref_b: str,
    project_path: str,
    show_all: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Compare the edit timelines of REF_A and REF_B clip by clip."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        graph_api = CommitGraph(session)
        commit_a = graph_api.resolve_commit(ref_a)
        commit_b = graph_api.resolve_commit(ref_b)
        result = diff_commit_timelines(session, commit_a.id, commit_b.id)

        if json_output:
            payload = result.model_dump(mode="json")
            payload["context"] = {"commit_a": commit_a.id, "commit_b": commit_b.id}
            console.print_json(data=payload)
            return

        if result.old_name is None and result.new_name is None:
            _emit_message(
                "[yellow]Neither commit holds a readable timeline.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _render_timeline_diff(
            result,
            fallback_rate=config.timeline.default_frame_rate,
            show_all=show_all,
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        _emit_message(
            _format_summary_line(
                "Timeline diff",
                f"{_short(commit_a.id)}..{_short(commit_b.id)}",
                {
                    "added": result.summary.clips_added,
                    "modified": result.summary.clips_modified,
                    "removed": result.summary.clips_removed,
                    "unchanged": result.summary.clips_unchanged,
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="diffing timelines")


@cli.command()
@click.argument("ref")
@_project_option
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@_output_options
@click.pass_context
def restore(
    ctx: click.Context,
    ref: str,
    project_path: str,
    yes: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Overwrite working files so they match REF."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        target = CommitGraph(session).resolve_commit(ref)
        if not yes and not json_output:
            click.confirm(
                f"Restore {_short(target.id)} ({target.message}) over the working directory?",
                abort=True,
            )
        report = RestoreEngine(session).restore_commit(target.id)

        if json_output:
            console.print_json(data=report.model_dump(mode="json"))
            return

        for path in report.restored:
            _emit_message(
                f"  [green]restored[/green] {path}",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        for path in report.failed:
            _emit_message(
                f"[yellow]Could not restore {path}.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Restore",
                session.root,
                {
                    "restored": report.restored_count,
                    "skipped": report.skipped_count,
                    "failed": report.failed_count,
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="restoring the commit")


@cli.command()
@click.argument("ref")
@click.argument("destination", type=click.Path(file_okay=False, path_type=str))
@_project_option
@_output_options
@click.pass_context
def export(
    ctx: click.Context,
    ref: str,
    destination: str,
    project_path: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Copy the files of REF into DESTINATION."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)
        target = CommitGraph(session).resolve_commit(ref)
        report = RestoreEngine(session).export_commit(target.id, Path(destination))

        if json_output:
            console.print_json(data=report.model_dump(mode="json"))
            return

        for path in report.skipped:
            _emit_message(
                f"[yellow]Skipped {path}: content unavailable.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Export",
                report.dest_path,
                {"exported": report.exported_count, "skipped": report.skipped_count},
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _fail(exc, json_output=json_output, action="exporting the commit")


@cli.command()
@click.argument("ref", default="HEAD", required=False)
@_project_option
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def drop(ref: str, project_path: str, yes: bool, json_output: bool) -> None:
    """Delete the latest commit of its branch."""
    try:
        config = _load_config(project_path)
        session = _open_session(project_path, config)
        target = CommitGraph(session).resolve_commit(ref)
        if not yes and not json_output:
            click.confirm(f"Delete commit {_short(target.id)} ({target.message})?", abort=True)
        CommitEngine(session).delete_commit(target.id)

        if json_output:
            console.print_json(data={"deleted": target.id, "parent_id": target.parent_id})
            return
        console.print(f"[green]Deleted commit {_short(target.id)}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="deleting the commit")


@cli.group()
def branch() -> None:
    """Create, switch and delete branches."""


@branch.command("list")
@_project_option
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def branch_list(project_path: str, json_output: bool) -> None:
    """List branches of the project."""
    try:
        session = _open_session(project_path, _load_config(project_path))
        branches = CommitGraph(session).get_branches()
        if json_output:
            console.print_json(
                data={"branches": [item.model_dump(mode="json") for item in branches]}
            )
            return

        table = Table(title="Branches")
        table.add_column("")
        table.add_column("Name")
        table.add_column("Head")
        for item in branches:
            table.add_row("*" if item.is_active else "", item.name, _short(item.head_commit_id))
        console.print(table)
    except Exception as exc:
        _fail(exc, json_output=json_output, action="listing branches")


@branch.command("create")
@click.argument("name")
@_project_option
@click.option("--switch", "switch_to", is_flag=True, help="Make the new branch active.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def branch_create(name: str, project_path: str, switch_to: bool, json_output: bool) -> None:
    """Create an empty branch called NAME."""
    try:
        session = _open_session(project_path, _load_config(project_path))
        graph_api = CommitGraph(session)
        created = graph_api.create_branch(name)
        if switch_to:
            created = graph_api.switch_branch(created.id)
        if json_output:
            console.print_json(data=created.model_dump(mode="json"))
            return
        console.print(f"[green]Created branch {created.name}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="creating the branch")


@branch.command("switch")
@click.argument("name")
@_project_option
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def branch_switch(name: str, project_path: str, json_output: bool) -> None:
    """Make branch NAME the active branch."""
    try:
        session = _open_session(project_path, _load_config(project_path))
        graph_api = CommitGraph(session)
        switched = graph_api.switch_branch(graph_api.find_branch(name).id)
        if json_output:
            console.print_json(data=switched.model_dump(mode="json"))
            return
        console.print(f"[green]Switched to branch {switched.name}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="switching branches")


@branch.command("delete")
@click.argument("name")
@_project_option
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def branch_delete(name: str, project_path: str, yes: bool, json_output: bool) -> None:
    """Delete branch NAME together with its commits."""
    try:
        session = _open_session(project_path, _load_config(project_path))
        graph_api = CommitGraph(session)
        target = graph_api.find_branch(name)
        if not yes and not json_output:
            click.confirm(f"Delete branch {target.name} and all of its commits?", abort=True)
        graph_api.delete_branch(target.id)
        if json_output:
            console.print_json(data={"deleted": target.id, "name": target.name})
            return
        console.print(f"[green]Deleted branch {target.name}.[/green]")
    except Exception as exc:
        _fail(exc, json_output=json_output, action="deleting the branch")


def _emit_pending_reminder(
    changes: ChangeSet,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render the periodic reminder about uncommitted changes."""

    if json_output:
        console.print_json(
            data={
                "pending": {
                    "added": changes.added,
                    "modified": changes.modified,
                    "removed": changes.removed,
                }
            }
        )
        return

    _emit_message(
        f"[yellow]Reminder: {len(changes.paths)} uncommitted change(s) "
        f"(added={len(changes.added)} modified={len(changes.modified)} "
        f"removed={len(changes.removed)}).[/yellow]",
        mode="warning",
        quiet=quiet,
        summary_only=summary_only,
    )


def _emit_change_batch(
    events: list[ChangeEvent],
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render output for a debounced batch of change events."""

    if json_output:
        console.print_json(
            data={
                "events": [
                    {"path": event.path, "kind": event.kind, "src_path": event.src_path}
                    for event in events
                ]
            }
        )
        return

    if not events:
        _emit_message(
            "[dim]No uncommitted changes.[/dim]",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )
        return

    for event in events:
        origin = f" (from {event.src_path})" if event.src_path else ""
        _emit_message(
            f"  [cyan]{event.kind:>8}[/cyan] {event.path}{origin}",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )
    _emit_message(
        f"[yellow]{len(events)} tracked file(s) changed; "
        "run `turnaround commit` to record them.[/yellow]",
        mode="warning",
        quiet=quiet,
        summary_only=summary_only,
    )


@cli.command()
@_project_option
@click.option("--debounce", type=float, help="Override debounce interval in seconds.")
@click.option("--once", is_flag=True, help="Report current uncommitted changes and exit.")
@_output_options
@click.pass_context
def watch(
    ctx: click.Context,
    project_path: str,
    debounce: float | None,
    once: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Report changes to tracked files as they happen."""
    try:
        config = _load_config(project_path)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        session = _open_session(project_path, config)

        if once:
            changes = CommitEngine(session).changed_files()
            events = [
                *(ChangeEvent(path=item, kind="created") for item in changes.added),
                *(ChangeEvent(path=item, kind="modified") for item in changes.modified),
                *(ChangeEvent(path=item, kind="removed") for item in changes.removed),
            ]
            _emit_change_batch(
                events, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
            )
            return

        service = WatchService(
            session.workdir,
            debounce_seconds=(
                debounce if debounce and debounce > 0 else config.watch.debounce_seconds
            ),
        )
        _emit_message(
            f"[green]Watching {session.root}. Press Ctrl+C to stop.[/green]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        poller = ChangePoller.from_config(
            CommitEngine(session),
            lambda changes: _emit_pending_reminder(
                changes, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
            ),
            config.watch,
        )
        poller.start()
        try:
            service.watch(
                lambda events: _emit_change_batch(
                    events, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only
                )
            )
        except KeyboardInterrupt:
            _emit_message(
                "[yellow]Stopping watch...[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        finally:
            poller.cancel()
    except Exception as exc:
        _fail(exc, json_output=json_output, action="watching the project")


@cli.group()
def config() -> None:
    """Manage user and project configuration.

    User settings live in ~/.turnaround/config.yaml. Passing --project reads or
    writes <project>/.turnaround/config.yaml, which overrides the user file for
    that project only.
    """


def _config_project_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "-C",
        "--project",
        "project_path",
        type=click.Path(exists=True, file_okay=False, path_type=str),
        default=None,
        help="Use this project's configuration file.",
    )(func)


def _config_target(project_path: str | None) -> tuple[ConfigManager, ConfigScope]:
    if project_path is None:
        return ConfigManager(), "user"
    return ConfigManager(project_root=Path(project_path)), "project"


def _config_lines(text: str) -> list[str]:
    """Return file lines without the header comments rewritten on every save."""
    return [line for line in text.splitlines() if not line.startswith("#")]


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@_config_project_option
@click.option("--json", "json_output", is_flag=True, help="Emit JSON output.")
def config_view(no_env: bool, project_path: str | None, json_output: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    try:
        manager, _ = _config_target(project_path)
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        _fail(exc, json_output=json_output, action="loading configuration")

    sources = [str(manager.config_path)]
    project_file = manager.project_config_path
    if project_file is not None and project_file.exists():
        sources.append(str(project_file))

    if json_output:
        console.print_json(data={"config": loaded.model_dump(mode="json"), "sources": sources})
        return

    console.print(f"[dim]Sources: {', '.join(sources)}[/dim]")
    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML value to assign to KEY.")
@_config_project_option
def config_set(key: str, value: str, project_path: str | None) -> None:
    """Persist a YAML VALUE at dotted KEY, for example `watch.debounce_seconds`."""
    manager, scope = _config_target(project_path)
    try:
        if scope == "user":
            manager.ensure_exists()
        before = _config_lines(manager.read_text(scope))
        try:
            parsed_value = yaml.safe_load(value)
        except yaml.YAMLError as exc:
            raise click.ClickException(f"Unable to parse value: {exc}") from exc
        manager.set_value(key, parsed_value, scope)
    except (ConfigError, click.ClickException) as exc:
        _fail(exc, json_output=False, action="updating configuration")

    label = str(manager.path_for(scope))
    changes = list(
        difflib.unified_diff(
            before,
            _config_lines(manager.read_text(scope)),
            fromfile=f"{label} (before)",
            tofile=f"{label} (after)",
            lineterm="",
        )
    )
    if not changes:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(changes), "diff", word_wrap=False))
    console.print(f"[green]Updated {key.strip()} in {scope} configuration.[/green]")


@config.command("edit")
@_config_project_option
def config_edit(project_path: str | None) -> None:
    """Edit the user (or, with --project, the project) configuration file."""
    manager, scope = _config_target(project_path)
    try:
        if scope == "user":
            manager.ensure_exists()
        original = manager.read_text(scope)
    except ConfigError as exc:
        _fail(exc, json_output=False, action="reading configuration")

    edited = click.edit(original, extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        try:
            parsed = yaml.safe_load(edited) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML: {exc}", source=manager.path_for(scope)) from exc
        if not isinstance(parsed, dict):
            raise ConfigError(
                "Configuration file must contain a top-level mapping.",
                source=manager.path_for(scope),
            )
        manager.validate_overrides(parsed, scope)
        manager.save(parsed, scope)
    except ConfigError as exc:
        _fail(exc, json_output=False, action="saving configuration")

    console.print(f"[green]Updated {scope} configuration at {manager.path_for(scope)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
