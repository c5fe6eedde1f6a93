"""
Logging and terminal output for AgentBridge.

Everything user-facing goes to ``console`` (stdout). Log records go to
stderr through rich, so the spinner of a running auth or commit flow and the
printed commit message are never interleaved with log lines.

"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.text import Text

console = Console()
err_console = Console(stderr=True)

LOG_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# HTTP polling during authorization is chatty at DEBUG
QUIET_LOGGERS = ("urllib3", "requests", "asyncio")


def _file_handler(log_file_path: Path) -> logging.Handler | None:
	try:
		log_file_path.parent.mkdir(parents=True, exist_ok=True)
		handler = logging.FileHandler(log_file_path, mode="a", encoding="utf-8")
	except OSError as e:
		err_console.print(f"[yellow]Not saving logs to {log_file_path}: {e}[/yellow]")
		return None
	handler.setLevel(logging.DEBUG)
	handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
	return handler


def setup_logging(
	is_verbose: bool = False,
	log_to_console: bool = True,
	log_file_path: Path | str | None = None,
) -> None:
	"""
	Configure the root logger for a CLI invocation.

	Args:
	    is_verbose: Show DEBUG records on the terminal (otherwise WARNING)
	    log_to_console: Attach the rich stderr handler
	    log_file_path: Also write every record, DEBUG included, to this file

	"""
	console_level = logging.DEBUG if is_verbose else logging.WARNING
	handlers: list[logging.Handler] = []

	if log_to_console:
		handlers.append(
			RichHandler(
				level=console_level,
				console=err_console,
				rich_tracebacks=True,
				show_path=is_verbose,
				markup=False,
			)
		)
	if log_file_path:
		file_handler = _file_handler(Path(log_file_path))
		if file_handler is not None:
			handlers.append(file_handler)

	root_logger = logging.getLogger()
	for handler in root_logger.handlers[:]:
		root_logger.removeHandler(handler)
	for handler in handlers:
		root_logger.addHandler(handler)
	root_logger.setLevel(min((handler.level for handler in handlers), default=console_level))

	for name in QUIET_LOGGERS:
		logging.getLogger(name).setLevel(logging.DEBUG if is_verbose else logging.WARNING)

	logging.getLogger(__name__).debug("Logging configured (verbose=%s, file=%s)", is_verbose, log_file_path)


def _display_summary(title: str, message: str, style: str) -> None:
	console.print()
	console.print(Rule(Text(title, style=f"bold {style}"), style=style))
	console.print(f"\n{message}\n", markup=False)
	console.print(Rule(style=style))


def display_error_summary(error_message: str) -> None:
	"""Print ``error_message`` between red rules."""
	_display_summary("Error", error_message, "red")


def display_warning_summary(warning_message: str) -> None:
	"""Print ``warning_message`` between yellow rules."""
	_display_summary("Warning", warning_message, "yellow")
