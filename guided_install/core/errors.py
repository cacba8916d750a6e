"""
Install errors — the failure taxonomy shared by every layer.

The orchestrator decides what is fatal by error type, never by message:

    DiscoveryFailedError, FetchFailedError   → abort the run
    ExecutionFailedError, Validation*Error   → fatal for mandatory recipes,
                                               a warning for optional ones
    InterruptError                           → always fatal
    StatusReportError                        → fatal only on mandatory paths
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for every error raised by the install core."""


class DiscoveryFailedError(InstallError):
    """Host discovery could not produce a manifest."""


class FetchFailedError(InstallError):
    """The recipe catalog could not be read."""


class RecipeNotFoundError(FetchFailedError):
    """A named recipe does not exist in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"recipe not found: {name}")
        self.name = name


class ExecutionFailedError(InstallError):
    """A recipe's install steps failed."""

    def __init__(self, recipe_name: str, reason: str):
        super().__init__(
            f"encountered an error while executing {recipe_name}: {reason}"
        )
        self.recipe_name = recipe_name
        self.reason = reason


class ValidationExhaustedError(InstallError):
    """No telemetry arrived within the configured number of attempts."""

    def __init__(self, recipe_name: str, attempts: int):
        super().__init__(
            f"no data received for {recipe_name} after {attempts} attempt(s)"
        )
        self.recipe_name = recipe_name
        self.attempts = attempts


class ValidationQueryFailedError(InstallError):
    """The query backend rejected or failed a validation query."""

    def __init__(self, recipe_name: str, reason: str):
        super().__init__(
            f"validation query for {recipe_name} failed: {reason}"
        )
        self.recipe_name = recipe_name
        self.reason = reason


class QueryError(InstallError):
    """Raised by query clients on transport or response errors."""


class InterruptError(InstallError):
    """The shared cancellation signal fired."""

    def __init__(self, reason: str = "operation canceled"):
        super().__init__(reason)
        self.reason = reason


class StatusStoreError(InstallError):
    """A single write to the remote status store failed."""


class StatusReportError(InstallError):
    """One or more status subscribers failed to handle an event.

    Carries every collected error; ``first`` is the earliest one.
    """

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        detail = "; ".join(str(e) for e in self.errors)
        super().__init__(f"status report failed ({len(self.errors)} error(s)): {detail}")

    @property
    def first(self) -> Exception | None:
        return self.errors[0] if self.errors else None


class StatusClosedError(InstallError):
    """A transition was attempted after the install reached a terminal outcome."""
