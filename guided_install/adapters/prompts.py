"""
Terminal interaction — prompts and progress lines via click.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import click

from guided_install.adapters.base import ProgressIndicator, Prompter
from guided_install.core.errors import InterruptError

logger = logging.getLogger(__name__)


class ClickPrompter(Prompter):
    """Interactive prompts on the controlling terminal.

    Ctrl-C, SIGTERM or EOF at a prompt surfaces as InterruptError.
    """

    def prompt_yes_no(self, msg: str) -> bool:
        try:
            with _interruptible():
                return click.confirm(msg, default=True)
        except click.Abort as e:
            raise InterruptError("prompt aborted") from e

    def multi_select(self, msg: str, options: list[str]) -> list[str]:
        if not options:
            return []

        click.echo(msg)
        for i, label in enumerate(options, start=1):
            click.echo(f"  {i}) {label}")

        while True:
            try:
                with _interruptible():
                    answer = click.prompt(
                        "Select by number (comma separated, 'all' or 'none')",
                        default="all",
                        show_default=True,
                    )
            except click.Abort as e:
                raise InterruptError("prompt aborted") from e

            selected = parse_selection(answer, options)
            if selected is not None:
                return selected
            click.secho("Invalid selection, try again.", fg="yellow")


_PROMPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def _interruptible() -> Iterator[None]:
    """Make SIGINT/SIGTERM abort a blocking prompt.

    The previous handler still runs first (cancelling the run when the
    CLI installed one), then KeyboardInterrupt unblocks the read and
    click turns it into Abort. No-op off the main thread.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {signum: signal.getsignal(signum) for signum in _PROMPT_SIGNALS}

    def _handler(signum: int, frame: object) -> None:
        prior = previous[signum]
        if callable(prior):
            prior(signum, frame)
        raise KeyboardInterrupt

    for signum in _PROMPT_SIGNALS:
        signal.signal(signum, _handler)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def parse_selection(answer: str, options: list[str]) -> list[str] | None:
    """Turn ``"1, 3"`` / ``"all"`` / ``"none"`` into option labels.

    Returns None when the answer cannot be parsed.
    """
    text = answer.strip().lower()
    if text in ("", "all", "a"):
        return list(options)
    if text in ("none", "n", "-"):
        return []

    picked: list[str] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            return None
        index = int(part)
        if index < 1 or index > len(options):
            return None
        label = options[index - 1]
        if label not in picked:
            picked.append(label)
    return picked


class PlainProgress(ProgressIndicator):
    """One line per step: ``→ start``, ``✓ success``, ``✗ fail``."""

    def start(self, msg: str) -> None:
        click.echo(f"→ {msg}")

    def success(self, msg: str) -> None:
        click.secho(f"✓ {msg}", fg="green")

    def fail(self, msg: str) -> None:
        click.secho(f"✗ {msg}", fg="red", err=True)

    def info(self, msg: str) -> None:
        click.echo(msg)
