"""Command line interface for pushdrop."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rich.logging import RichHandler

from . import __version__
from .cli_display import (
    ConsoleActivityIndicator,
    ConsoleConfirmationPrompt,
    ConsoleNotificationSink,
    render_configuration_summary,
    render_history,
)
from .config import AgentConfig, UploaderSettings
from .orchestrator import UploadAgent
from .services import HistoryStore, HTTPUploader


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


USER_ENV_FILE = Path.home() / ".config" / "pushdrop" / "env"


def _parse_env_line(raw_line: str) -> Optional[Tuple[str, str]]:
    """``KEY=value`` from one env-file line, or None for blanks and comments."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export ") :].strip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return key, value[1:-1]
    # Unquoted values may carry a trailing " # comment"
    return key, value.split(" #", 1)[0].rstrip()


def _load_env_file(path: Path, override: bool = False) -> List[str]:
    """Apply an env file to ``os.environ``; returns the keys that were set."""
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    applied = []
    for raw_line in content.splitlines():
        parsed = _parse_env_line(raw_line)
        if parsed is None:
            continue
        key, value = parsed
        if override or key not in os.environ:
            os.environ[key] = value
            applied.append(key)
    return applied


def _resolve_default_env_file() -> Optional[Path]:
    """``./.env`` first, then the per-user ``~/.config/pushdrop/env``."""
    for candidate in (Path(".env"), USER_ENV_FILE):
        if candidate.is_file():
            return candidate
    return None


def _build_agent(config: AgentConfig, assume_yes: bool, quiet: bool) -> UploadAgent:
    settings = UploaderSettings.from_env()
    history_path = os.getenv("PUSHDROP_HISTORY_FILE")
    return UploadAgent(
        uploader=HTTPUploader(settings),
        notifications=ConsoleNotificationSink(enabled=not quiet),
        activity=ConsoleActivityIndicator(),
        history=HistoryStore(
            Path(history_path).expanduser() if history_path else None,
            max_entries=lambda: config.history_max_entries,
        ),
        prompt=ConsoleConfirmationPrompt(assume_yes=assume_yes),
        config=config,
    )


async def _run_watch(config: AgentConfig) -> int:
    async with _build_agent(config, assume_yes=True, quiet=False) as agent:
        if not agent.start_watching(show_failure=True):
            return 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass
        finally:
            agent.stop_watching()
    return 0


async def _run_push(config: AgentConfig, files: List[Path], assume_yes: bool) -> int:
    async with _build_agent(config, assume_yes=assume_yes, quiet=False) as agent:
        state = await agent.upload_files(files)
    if state is None:
        return 1
    return 0 if state.error_count == 0 else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pushdrop",
        description="Upload files dropped into a watched folder or pushed explicitly.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pushdrop {__version__}",
    )

    sub = parser.add_subparsers(dest="command")

    watch = sub.add_parser("watch", help="Watch a folder and upload new files")
    watch.add_argument(
        "-f",
        "--folder",
        type=Path,
        default=None,
        help="Folder to watch (default from PUSHDROP_WATCHED_FOLDER)",
    )
    watch.add_argument("-r", "--rename", action="store_true", help="Upload under random names")

    push = sub.add_parser("push", help="Upload the given files once")
    push.add_argument("files", nargs="+", type=Path, help="Files to upload")
    push.add_argument("-y", "--yes", action="store_true", help="Do not ask before multi-file uploads")
    push.add_argument("-r", "--rename", action="store_true", help="Upload under random names")

    sub.add_parser("history", help="Show recent uploads")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = AgentConfig.from_env()
    except ValueError as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 1

    if getattr(args, "rename", False):
        config = replace(config, rename_on_upload=True)
    if getattr(args, "folder", None) is not None:
        config = replace(config, watched_folder=str(args.folder.expanduser()))

    if args.command == "history":
        history_path = os.getenv("PUSHDROP_HISTORY_FILE")
        store = HistoryStore(
            Path(history_path).expanduser() if history_path else None,
            max_entries=config.history_max_entries,
        )
        render_history(store.all())
        return 0

    settings = UploaderSettings.from_env()
    render_configuration_summary(
        {
            "Command": args.command,
            "Watched Folder": config.watched_folder or "(not set)",
            "Endpoint": settings.endpoint or "(missing)",
            "Auth": settings.auth_mode,
            "Rename": "yes" if config.rename_on_upload else "no",
            "Size Limit": f"{config.max_file_size_mb} MB" if config.max_file_size_enabled else "off",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        if args.command == "watch":
            return asyncio.run(_run_watch(config))
        if args.command == "push":
            return asyncio.run(_run_push(config, [p.expanduser() for p in args.files], args.yes))
        raise CLIError(f"unknown command: {args.command}")
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
