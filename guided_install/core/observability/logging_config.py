"""
Logging setup for the CLI, with install-run context on every record.

The orchestrator binds the phase it is in and the recipe it is
working on through ``bind_phase`` / ``log_context``. Handlers created
by ``setup_logging`` carry an ``InstallContextFilter`` that stamps
both onto each record, so debug output reads like:

    12:01:07 DEBUG [install_optional/mysql-open-source-integration] guided_install.core.engine.validator: No data yet

The context lives in ContextVars; nothing here is touched by the
install core except those two binders.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_NO_CONTEXT = "-"

_phase: ContextVar[str] = ContextVar("install_phase", default=_NO_CONTEXT)
_recipe: ContextVar[str] = ContextVar("install_recipe", default=_NO_CONTEXT)

# Console format per level; WARNING and above print the bare message
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s [%(phase)s/%(recipe)s] %(name)s: %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(phase)s] %(message)s", "%H:%M:%S"),
}
_FILE_FORMAT = "%(asctime)s %(levelname)-5s [%(phase)s/%(recipe)s] %(name)s:%(lineno)d: %(message)s"


# ── Run context ─────────────────────────────────────────────────


def bind_phase(phase: str) -> None:
    """Record the orchestrator phase for subsequent log lines."""
    _phase.set(phase)


@contextmanager
def log_context(*, recipe: str) -> Iterator[None]:
    """Attribute log lines inside the block to ``recipe``."""
    token = _recipe.set(recipe)
    try:
        yield
    finally:
        _recipe.reset(token)


class InstallContextFilter(logging.Filter):
    """Adds ``phase`` and ``recipe`` attributes to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.phase = _phase.get()
        record.recipe = _recipe.get()
        return True


# ── Setup ───────────────────────────────────────────────────────


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console (stderr) and optional file handlers on the root logger.

    Args:
        level: Console level name.
        log_file: Optional log file path; always written with full context.
        log_file_level: Level for the file, defaulting to ``level``.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)
    handlers = [_handler(logging.StreamHandler(sys.stderr), console_level, fmt, datefmt)]

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level or level)
        handlers.append(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, _FILE_FORMAT, None)
        )
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers.clear()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(root_level)

    # CliRunner closes its streams between invocations
    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold in (logging.DEBUG, logging.INFO):
        if level <= threshold:
            return _CONSOLE_FORMATS[threshold]
    return "%(message)s", None


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str | None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    handler.addFilter(InstallContextFilter())
    return handler


def resolve_level(debug: bool, verbose: bool, quiet: bool, env_level: str | None) -> str:
    """Pick the console level: CLI flag, then GI_LOG_LEVEL, then WARNING."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def _parse_level(level: str | None) -> int:
    numeric = logging.getLevelName((level or "WARNING").upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
