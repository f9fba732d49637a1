"""Common utilities for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Any, NoReturn

import platformdirs
import typer as t
import yaml

from source_linked import FileSystemHost, SettingsStore, SourceLinkService
from source_linked.log import configure_logging
from source_linked.paths import AbsolutePath
from source_linked.result import Fail


if TYPE_CHECKING:
    from source_linked import ManagedRelativePath, Result, Settings


PROJECT_HELP = "Project directory containing the managed tree (default: current directory)"
OUTPUT_FORMAT_HELP = "Output format. One of: text, json, yaml"
VERBOSE_HELP = "Enable debug logging"
# Command options
PROJECT_CMDS = "-p", "--project"
OUTPUT_FORMAT_CMDS = "-o", "--output-format"
VERBOSE_CMDS = "-v", "--verbose"

LOG_DIR = Path(platformdirs.user_log_dir("source-linked", "source-linked"))
TIMESTAMP = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
LOG_FILE = LOG_DIR / f"source_linked_{TIMESTAMP}.log"

# Maximum log file size in bytes (10MB)
MAX_LOG_SIZE = 10 * 1024 * 1024
# Number of backup files to keep
BACKUP_COUNT = 5


def setup_logging(*, level: int | str = logging.WARNING, log_to_file: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        level: The logging level for console output
        log_to_file: Whether to also log at DEBUG level to a rotating file
    """
    handlers: list[logging.Handler] = []
    if log_to_file:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=MAX_LOG_SIZE,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            print(f"Failed to create log file: {exc}", file=sys.stderr)
        else:
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)

    configure_logging(level, handlers=handlers)
    if handlers:
        logging.getLogger("source_linked").debug("File logging enabled (%s)", LOG_FILE)


def complete_output_formats() -> list[str]:
    """Complete output format options."""
    return ["text", "json", "yaml"]


def verbose_callback(ctx: t.Context, _param: t.CallbackParam, value: bool) -> bool:
    """Handle verbose flag."""
    if value:
        setup_logging(level=logging.DEBUG, log_to_file=True)
    return value


output_format_opt = t.Option(
    "text",
    *OUTPUT_FORMAT_CMDS,
    help=OUTPUT_FORMAT_HELP,
    autocompletion=complete_output_formats,
)
verbose_opt = t.Option(False, *VERBOSE_CMDS, help=VERBOSE_HELP, callback=verbose_callback)


@dataclass
class CliState:
    """Objects shared by all commands of one invocation."""

    store: SettingsStore
    settings: Settings
    host: FileSystemHost

    @property
    def service(self) -> SourceLinkService:
        return SourceLinkService(self.settings, self.host)


def load_state(project: str | None) -> CliState:
    """Load settings and build the host for a project directory."""
    root = AbsolutePath.create(project or ".").ensure(
        lambda p: p.exists_as_directory(), lambda p: f"Project directory not found: {p}"
    )
    project_root = unwrap_or_exit(root)
    store = SettingsStore(project_root.native)
    return CliState(store=store, settings=store.load(), host=FileSystemHost(project_root))


def get_state(ctx: t.Context) -> CliState:
    """State stored on the root context by the main callback."""
    state = ctx.find_root().obj
    if not isinstance(state, CliState):
        state = load_state(None)
        ctx.find_root().obj = state
    return state


def fail_exit(reason: str) -> NoReturn:
    """Print a failure reason and exit with code 1."""
    t.echo(f"Error: {reason}", err=True)
    raise t.Exit(1)


def unwrap_or_exit[T](result: Result[T]) -> T:
    """Return the success value or print the reason and exit."""
    if isinstance(result, Fail):
        fail_exit(result.reason)
    return result.unwrap()


def parse_managed(state: CliState, raw: str) -> ManagedRelativePath:
    return unwrap_or_exit(state.host.managed_path(raw))


def format_output(data: Any, output_format: str) -> str:
    """Render structured data as json or yaml."""
    match output_format:
        case "json":
            return json.dumps(data, indent=2)
        case "yaml":
            return yaml.dump(data, default_flow_style=False, sort_keys=False).rstrip()
        case _:
            fail_exit(f"Unsupported output format: {output_format}")
