"""CLI entry point for Backstep."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from backstep import __version__
from backstep.config import BackstepConfig, ConfigLoader
from backstep.core import BackstepError, NotFoundError, get_logger, setup_logging
from backstep.log.discovery import SessionLocator
from backstep.operations.models import Operation
from backstep.sessions.storage import LocalSessionStorage
from backstep.undo.backups import FileBackupStore
from backstep.undo.manager import UndoService
from backstep.undo.models import CascadeReport, OperationResult
from backstep.undo.sources import LocalSessionSource, LogOperationSource, OperationSource
from backstep.undo.tracker import UndoStateTracker

logger = get_logger("cli")

COMMANDS = ("list", "undo", "redo", "preview", "sessions", "session")

FLAGS = ("--all", "--local", "--yes", "-y", "--no-color")
VALUE_OPTIONS = ("--index", "-n", "--session")

ACTION_STYLES = {
    "delete": "red",
    "remove": "red",
    "manual": "red",
    "revert": "yellow",
    "rename": "yellow",
    "restore": "green",
}


class UsageError(BackstepError):
    """Invalid command line."""


@dataclass
class CliArgs:
    """Parsed command line."""

    command: str = "list"
    target_id: str | None = None
    index: int | None = None
    session: str | None = None
    show_all: bool = False
    local: bool = False
    yes: bool = False
    no_color: bool = False
    extra: list[str] = field(default_factory=list)

    @property
    def target(self) -> int | str:
        """Cascade target; the most recent operation if none was given."""
        if self.target_id is not None:
            return self.target_id
        return self.index if self.index is not None else 0


def parse_args(args: list[str]) -> CliArgs:
    """Parse the command line.

    Raises:
        UsageError: On unknown commands or options, or bad values.
    """
    parsed = CliArgs()
    positional: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in VALUE_OPTIONS:
            if i + 1 >= len(args):
                raise UsageError(f"Option '{arg}' requires a value")
            value = args[i + 1]
            if arg == "--session":
                parsed.session = value
            else:
                try:
                    parsed.index = int(value)
                except ValueError:
                    raise UsageError(f"Invalid index: {value}") from None
            i += 2
            continue
        if arg.startswith("-"):
            if arg not in FLAGS:
                raise UsageError(f"Unknown option '{arg}'")
            parsed.show_all = parsed.show_all or arg == "--all"
            parsed.local = parsed.local or arg == "--local"
            parsed.yes = parsed.yes or arg in ("--yes", "-y")
            parsed.no_color = parsed.no_color or arg == "--no-color"
        else:
            positional.append(arg)
        i += 1

    if positional:
        parsed.command = positional.pop(0)
        if parsed.command not in COMMANDS:
            raise UsageError(f"Unknown command '{parsed.command}'")
    if positional:
        parsed.target_id = positional.pop(0)
    parsed.extra = positional

    if parsed.extra:
        raise UsageError(f"Unexpected arguments: {' '.join(parsed.extra)}")
    if parsed.command == "session" and parsed.target_id is None:
        raise UsageError("Command 'session' requires a session id")
    if parsed.target_id is not None and parsed.index is not None:
        raise UsageError("Give either an operation id or --index, not both")
    return parsed


def print_help() -> None:
    print(
        f"""backstep {__version__}

Step back through recorded file operations.

Usage:
  backstep list [--all] [--local] [--session ID]
  backstep undo [ID | --index N] [--local] [--session ID] [--yes]
  backstep redo [ID | --index N] [--local] [--session ID] [--yes]
  backstep preview [ID | --index N] [--local] [--session ID]
  backstep sessions [--local]
  backstep session ID

Undoing an operation also undoes every operation after it; redoing one
also redoes every operation undone before it. Without --yes, undo and redo
only show what would happen.

Options:
  --all          List undone operations too
  --local        Use the local sessions recorded by backstep-hook
  --session ID   Use a specific session instead of the current one
  --index, -n N  Select by position in the list (0 is the most recent)
  --yes, -y      Apply the cascade
  --no-color     Disable colored output
  -h, --help     Show this help
  -v, --version  Show version

Environment:
  BACKSTEP_HOME       Storage root (default ~/.backstep)
  BACKSTEP_LOG_LEVEL  Console log level (default WARNING)"""
    )


class CliApp:
    """Command implementations over an UndoService."""

    def __init__(
        self,
        config: BackstepConfig,
        console: Console,
        cwd: Path | None = None,
    ) -> None:
        self.config = config
        self.console = console
        self.cwd = cwd or Path.cwd()
        self.locator = SessionLocator(config.logs.projects_dir)

    def _local_storage(self) -> LocalSessionStorage:
        return LocalSessionStorage(self.config.storage.resolved_sessions_dir())

    def resolve_source(self, args: CliArgs) -> OperationSource:
        """Pick the operation history a command works on.

        Raises:
            NotFoundError: If no matching session exists.
        """
        if args.local:
            storage = self._local_storage()
            session_id = args.session or storage.get_current()
            if session_id is None or not storage.exists(session_id):
                raise NotFoundError("No local session found")
            return LocalSessionSource(storage, session_id)

        tracker = UndoStateTracker(self.config.storage.resolved_undo_state_file())
        if args.session:
            info = self.locator.find_session(args.session)
            if info is None:
                raise NotFoundError(f"Session not found: {args.session}")
            return LogOperationSource(info.file, tracker)

        log_path = self.locator.current_session_file(self.cwd)
        if log_path is None:
            raise NotFoundError(f"No session log found for {self.cwd}")
        return LogOperationSource(log_path, tracker)

    def service(self, args: CliArgs) -> UndoService:
        return UndoService(
            self.resolve_source(args),
            FileBackupStore(self.config.storage.resolved_backup_dir()),
            preview_lines=self.config.display.preview_lines,
        )

    def run(self, args: CliArgs) -> int:
        handler = getattr(self, f"cmd_{args.command}")
        return handler(args)

    def cmd_list(self, args: CliArgs) -> int:
        service = self.service(args)
        source = service.source
        if args.show_all and isinstance(source, (LogOperationSource, LocalSessionSource)):
            operations = source.list_all()
            title = "All operations"
        else:
            operations = service.list_active()
            title = "Operations (newest first)"

        if not operations:
            self.console.print("No operations found.")
            return 0

        table = Table(title=title)
        table.add_column("#", justify="right", style="dim")
        table.add_column("ID")
        table.add_column("Type")
        table.add_column("Target")
        table.add_column("Time", style="dim")
        if args.show_all:
            table.add_column("State")

        for index, op in enumerate(operations):
            row = [
                str(index),
                escape(op.id),
                op.kind.value,
                escape(op.target),
                op.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            ]
            if args.show_all:
                row.append("[dim]undone[/dim]" if op.undone else "active")
            table.add_row(*row)

        self.console.print(table)
        return 0

    def _print_cascade(self, heading: str, cascade: list[Operation]) -> None:
        self.console.print(f"[bold]{heading} ({len(cascade)} operations):[/bold]")
        for op in cascade:
            self.console.print(f"  {op.kind.value:<18} {escape(op.target)}")

    def _print_previews(self, service: UndoService, cascade: list[Operation]) -> None:
        for op, preview in service.preview(cascade):
            style = ACTION_STYLES.get(preview.action, "dim")
            self.console.print(f"[{style}]{escape(op.id)}[/{style}]")
            self.console.print(escape(preview.text))
            self.console.print()

    def _print_result(self, result: OperationResult) -> None:
        if result.success:
            self.console.print(f"[green]✓[/green] {escape(result.message)}")
            if result.backup_path:
                self.console.print(f"  [dim]Backup: {escape(result.backup_path)}[/dim]")
        else:
            self.console.print(f"[red]✗[/red] {escape(result.message)}")

    def _print_tally(self, report: CascadeReport) -> int:
        verb = "undone" if report.direction.value == "undo" else "redone"
        self.console.print()
        self.console.print(
            f"{report.success_count} {verb}, {report.fail_count} failed"
        )
        return 0 if report.all_succeeded else 1

    def cmd_preview(self, args: CliArgs) -> int:
        service = self.service(args)
        cascade = service.plan_cascade(service.list_active(), args.target)
        self._print_cascade("Will undo", cascade)
        self.console.print()
        self._print_previews(service, cascade)
        return 0

    def cmd_undo(self, args: CliArgs) -> int:
        service = self.service(args)
        cascade = service.plan_cascade(service.list_active(), args.target)
        if not args.yes:
            self._print_cascade("Would undo", cascade)
            self.console.print()
            self._print_previews(service, cascade)
            self.console.print("[dim]Run again with --yes to apply.[/dim]")
            return 0

        report = service.undo(cascade, on_result=self._print_result)
        return self._print_tally(report)

    def cmd_redo(self, args: CliArgs) -> int:
        service = self.service(args)
        candidates = service.list_undone()
        if not candidates:
            self.console.print("Nothing to redo.")
            return 0

        cascade = service.plan_cascade(candidates, args.target)
        if not args.yes:
            self._print_cascade("Would redo", cascade)
            self.console.print("[dim]Run again with --yes to apply.[/dim]")
            return 0

        report = service.redo(cascade, on_result=self._print_result)
        return self._print_tally(report)

    def cmd_sessions(self, args: CliArgs) -> int:
        if args.local:
            storage = self._local_storage()
            current = storage.get_current()
            session_ids = storage.list_sessions()
            if not session_ids:
                self.console.print("No local sessions found.")
                return 0
            for session_id in session_ids:
                marker = "*" if session_id == current else " "
                self.console.print(f"{marker} {escape(session_id)}")
            return 0

        sessions = self.locator.all_sessions()
        if not sessions:
            self.console.print("No sessions found.")
            return 0

        table = Table(title="Sessions")
        table.add_column("ID")
        table.add_column("Project")
        table.add_column("File", style="dim")
        for info in sessions:
            table.add_row(escape(info.id), escape(info.project), escape(str(info.file)))
        self.console.print(table)
        return 0

    def cmd_session(self, args: CliArgs) -> int:
        if args.target_id is None:
            raise UsageError("Command 'session' requires a session id")
        storage = self._local_storage()
        if not storage.exists(args.target_id):
            raise NotFoundError(f"Local session not found: {args.target_id}")
        storage.set_current(args.target_id)
        self.console.print(f"Switched to session {escape(args.target_id)}")
        return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Backstep CLI.

    Returns:
        Exit code (0 for success, 1 for error or a cascade with failures).
    """
    args = sys.argv[1:] if argv is None else argv

    if "--version" in args or "-v" in args:
        print(f"backstep {__version__}")
        return 0

    if "--help" in args or "-h" in args:
        print_help()
        return 0

    try:
        parsed = parse_args(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run 'backstep --help' for usage information", file=sys.stderr)
        return 2

    try:
        config = ConfigLoader().load_all()
    except BackstepError as e:
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        print(
            "Hint: Check your config files at ~/.backstep/settings.json or "
            ".backstep/settings.json",
            file=sys.stderr,
        )
        return 1

    try:
        setup_logging(
            log_dir=config.storage.resolved_log_dir() if config.display.file_logging else None
        )
    except OSError as e:
        setup_logging()
        logger.warning("File logging disabled: %s", e)

    console = Console(
        no_color=parsed.no_color or not config.display.color or "NO_COLOR" in os.environ,
        highlight=False,
    )

    try:
        return CliApp(config, console).run(parsed)
    except BackstepError as e:
        logger.debug("Command %s failed", parsed.command, exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
