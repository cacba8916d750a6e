"""
Cancellation context — the single shared "stop now" signal.

One CancelContext is created per install run and threaded through
discovery, fetch, execution and validation. Blocking points either
call ``check()`` or wait through ``wait()`` so a cancel is observed
promptly:

    - CLI:    main.py → install_signal_handlers(ctx)
    - Tests:  ctx.cancel() from a fake collaborator
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Callable

from guided_install.core.errors import InterruptError

logger = logging.getLogger(__name__)


class CancelContext:
    """Thread-safe cancellation flag with an interruptible wait."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    @property
    def canceled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "operation canceled") -> None:
        """Fire the signal. Later calls keep the first reason."""
        if not self._event.is_set():
            self._reason = reason
            logger.debug("Cancellation requested: %s", reason)
        self._event.set()

    def check(self) -> None:
        """Raise InterruptError if the signal has fired."""
        if self._event.is_set():
            raise InterruptError(self._reason)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as the signal fires."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


def install_signal_handlers(ctx: CancelContext) -> Callable[[], None]:
    """Route SIGINT/SIGTERM to ``ctx.cancel()``.

    The handler never raises: work stops at the next ``check()`` or
    ``wait()``. Prompts, which block without polling, arrange their own
    interruption (see ``adapters.prompts``). Must be called from the
    main thread.

    Returns:
        A function restoring the previous handlers.
    """

    def _handler(signum: int, _frame: object) -> None:
        reason = f"interrupted by {signal.Signals(signum).name}"
        ctx.cancel(reason)

    previous = {
        signal.SIGINT: signal.signal(signal.SIGINT, _handler),
        signal.SIGTERM: signal.signal(signal.SIGTERM, _handler),
    }

    def restore() -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    return restore
