from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .cache import BoardCache, CacheState
from .clock import AsyncioClock
from .codec import LintResult
from .commands import COMMANDS, CommandContext, execute_command
from .config import ConfigError, SyncSettings, discover_board_file, load_sync_config
from .coordinator import PersistenceCoordinator
from .io_utils import BoardIOError
from .logging_utils import configure_logging
from .notifications import NotificationCenter
from .session import BoardSession
from .state_store import FileStateStore


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _write_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")


def _setup(args: argparse.Namespace) -> Optional[tuple[Path, Path, SyncSettings]]:
    project_dir = _resolve_project_dir(args.project_dir)
    try:
        settings = load_sync_config(project_dir)
    except ConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        return None
    configure_logging(args.log_level or settings.log_level, settings.log_file)
    board_path = Path(args.board).expanduser().resolve() if args.board else discover_board_file(project_dir)
    if board_path is None:
        sys.stderr.write(f"No board file found in {project_dir}\n")
        return None
    return project_dir, board_path, settings


def _coordinator(board_path: Path, settings: SyncSettings) -> PersistenceCoordinator:
    return PersistenceCoordinator(board_path, cache=BoardCache(settings.parse_error_tolerance))


def _show(args: argparse.Namespace) -> int:
    setup = _setup(args)
    if setup is None:
        return 1
    _, board_path, settings = setup
    coordinator = _coordinator(board_path, settings)
    coordinator.refresh()
    cache = coordinator.cache
    board = cache.board
    _write_json({"path": str(board_path), "state": cache.state.value, "board": board.to_dict() if board else None})
    return 0 if cache.state == CacheState.VALID else 1


def _render_lint(lint: LintResult, board_path: Path) -> None:
    console = Console()
    if not lint.issues:
        console.print(f"[green]{board_path.name}: no issues[/green]")
        return
    table = Table(title=f"{board_path.name}: {len(lint.issues)} issue(s)")
    table.add_column("Line", justify="right")
    table.add_column("Type")
    table.add_column("Message")
    table.add_column("Fixable")
    for issue in lint.issues:
        color = "red" if issue.type == "error" else "yellow"
        table.add_row(
            str(issue.line) if issue.line else "-",
            f"[{color}]{issue.type}[/{color}]",
            issue.message,
            "yes" if issue.fixable else "",
        )
    console.print(table)


def _lint(args: argparse.Namespace) -> int:
    setup = _setup(args)
    if setup is None:
        return 1
    _, board_path, settings = setup
    try:
        lint = _coordinator(board_path, settings).lint()
    except BoardIOError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    if args.json:
        _write_json(lint.to_dict())
    else:
        _render_lint(lint, board_path)
    return 0 if lint.valid else 1


def _fix(args: argparse.Namespace) -> int:
    setup = _setup(args)
    if setup is None:
        return 1
    _, board_path, settings = setup
    coordinator = _coordinator(board_path, settings)
    if args.dry_run:
        try:
            lint = coordinator.preview_fix()
        except BoardIOError as exc:
            sys.stderr.write(f"{exc}\n")
            return 1
        _write_json(lint.to_dict())
        return 0
    outcome = coordinator.apply_fix()
    _write_json(outcome.to_dict())
    return 0 if outcome.success else 1


def _command(args: argparse.Namespace) -> int:
    setup = _setup(args)
    if setup is None:
        return 1
    project_dir, board_path, settings = setup
    try:
        payload = json.loads(args.payload) if args.payload else {}
    except json.JSONDecodeError as exc:
        sys.stderr.write(f"Invalid --payload JSON: {exc}\n")
        return 1
    if not isinstance(payload, dict):
        sys.stderr.write("--payload must be a JSON object\n")
        return 1
    ctx = CommandContext(
        coordinator=_coordinator(board_path, settings),
        notifications=NotificationCenter(),
        state=FileStateStore.for_project(project_dir),
        actor=args.actor,
    )
    outcome = execute_command(ctx, args.name, payload)
    _write_json(outcome.to_dict())
    return 0 if outcome.success else 1


async def _watch_async(board_path: Path, settings: SyncSettings, duration: Optional[float]) -> None:
    session = BoardSession(
        board_path,
        AsyncioClock(),
        lambda message: sys.stdout.write(json.dumps(message, default=str) + "\n"),
        settings=settings,
    )
    session.mark_view_ready()
    session.start()
    try:
        if duration is not None:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    finally:
        session.dispose()


def _watch(args: argparse.Namespace) -> int:
    setup = _setup(args)
    if setup is None:
        return 1
    _, board_path, settings = setup
    try:
        asyncio.run(_watch_async(board_path, settings, args.duration))
    except KeyboardInterrupt:
        pass
    return 0


def _server(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        sys.stderr.write("Install server extras: pip install 'brainfile-sync[server]'\n")
        return 1
    from .server.api import create_app

    setup = _setup(args)
    if setup is None:
        return 1
    project_dir, board_path, settings = setup
    app = create_app(board_path, settings=settings, state=FileStateStore.for_project(project_dir))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keep a brainfile board and its views in sync")
    parser.add_argument("--project-dir", default=None, help="Directory holding the board (default: current working directory)")
    parser.add_argument("--board", default=None, help="Board file (default: discovered in the project directory)")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Parse the board and print it as JSON")
    show.set_defaults(func=_show)

    lint = subparsers.add_parser("lint", help="Report problems in the board document")
    lint.add_argument("--json", action="store_true", help="Print the lint result as JSON")
    lint.set_defaults(func=_lint)

    fix = subparsers.add_parser("fix", help="Apply automatic fixes to the board document")
    fix.add_argument("--dry-run", action="store_true", help="Show the fixed content without writing it")
    fix.set_defaults(func=_fix)

    command = subparsers.add_parser("command", help="Run one board command")
    command.add_argument("name", choices=sorted(COMMANDS))
    command.add_argument("--payload", default=None, help="Command arguments as a JSON object")
    command.add_argument("--actor", default="user", help="Who issues the command (e.g. agent:copilot)")
    command.set_defaults(func=_command)

    watch = subparsers.add_parser("watch", help="Print view messages as the board changes")
    watch.add_argument("--duration", default=None, type=float, help="Stop after this many seconds")
    watch.set_defaults(func=_watch)

    server = subparsers.add_parser("server", help="Start the web server")
    server.add_argument("--host", default="127.0.0.1")
    server.add_argument("--port", default=8000, type=int)
    server.set_defaults(func=_server)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == "__main__":
    raise SystemExit(main())
