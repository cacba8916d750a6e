"""
Mock adapters — hand-written test doubles for every collaborator.

Used by the test suite and by the built-in scenarios to drive the
install core without touching the host, the catalog or any backend.
Each double records its calls and can be told to fail.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable

from guided_install.adapters.base import (
    Discoverer,
    FileFilterer,
    ProgressIndicator,
    Prompter,
    QueryClient,
    QueryRow,
    RecipeExecutor,
    RecipeFetcher,
    StatusStoreClient,
)
from guided_install.core.context import CancelContext
from guided_install.core.engine.subscribers import StatusSubscriber
from guided_install.core.engine.validator import RecipeValidator
from guided_install.core.errors import (
    ExecutionFailedError,
    RecipeNotFoundError,
    StatusStoreError,
)
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import LogMatch, Recipe
from guided_install.core.models.status import RecipeStatusEvent

# ── Discovery / catalog ─────────────────────────────────────────


class MockDiscoverer(Discoverer):
    """Returns a fixed manifest, or raises ``error`` when set."""

    def __init__(self, manifest: DiscoveryManifest | None = None):
        self.manifest = manifest or DiscoveryManifest(
            hostname="mock-host",
            os="linux",
            platform="ubuntu",
            platform_version="22.04",
            kernel_version="5.15.0",
            kernel_arch="x86_64",
        )
        self.error: Exception | None = None
        self.call_count = 0

    def discover(self, ctx: CancelContext) -> DiscoveryManifest:
        self.call_count += 1
        ctx.check()
        if self.error is not None:
            raise self.error
        return self.manifest


class MockRecipeFetcher(RecipeFetcher):
    """In-memory catalog.

    ``fetch_recipe_vals`` answers fetch_recipe by name;
    ``fetch_recommendations_val`` is returned as-is by fetch_recommendations.
    """

    def __init__(
        self,
        fetch_recipe_vals: list[Recipe] | None = None,
        fetch_recommendations_val: list[Recipe] | None = None,
    ):
        self.fetch_recipe_vals = list(fetch_recipe_vals or [])
        self.fetch_recommendations_val = list(fetch_recommendations_val or [])
        self.fetch_recipe_error: Exception | None = None
        self.fetch_recommendations_error: Exception | None = None
        self.fetch_recipe_calls: list[str] = []
        self.fetch_recommendations_call_count = 0

    def fetch_recipe(self, ctx: CancelContext, manifest: DiscoveryManifest, name: str) -> Recipe:
        self.fetch_recipe_calls.append(name)
        ctx.check()
        if self.fetch_recipe_error is not None:
            raise self.fetch_recipe_error
        for r in self.fetch_recipe_vals:
            if r.name == name:
                return r.model_copy(deep=True)
        raise RecipeNotFoundError(name)

    def fetch_recommendations(self, ctx: CancelContext, manifest: DiscoveryManifest) -> list[Recipe]:
        self.fetch_recommendations_call_count += 1
        ctx.check()
        if self.fetch_recommendations_error is not None:
            raise self.fetch_recommendations_error
        return [r.model_copy(deep=True) for r in self.fetch_recommendations_val]


class MockFileFilterer(FileFilterer):
    def __init__(self, filter_val: list[LogMatch] | None = None):
        self.filter_val = list(filter_val or [])
        self.call_count = 0

    def filter(self, ctx: CancelContext, recipes: list[Recipe]) -> list[LogMatch]:
        self.call_count += 1
        ctx.check()
        return list(self.filter_val)


# ── Execution ───────────────────────────────────────────────────


class MockRecipeExecutor(RecipeExecutor):
    """Records executions; succeeds unless configured otherwise."""

    def __init__(self) -> None:
        self.prepare_calls: list[str] = []
        self.executed: list[Recipe] = []
        self._failures: dict[str, str] = {}
        self._interrupts: set[str] = set()

    @property
    def execute_call_count(self) -> int:
        return len(self.executed)

    @property
    def executed_names(self) -> list[str]:
        return [r.name for r in self.executed]

    def set_failure(self, recipe_name: str, reason: str = "mock failure") -> None:
        """Make execution of ``recipe_name`` raise ExecutionFailedError."""
        self._failures[recipe_name] = reason

    def set_interrupt(self, recipe_name: str) -> None:
        """Cancel the run while ``recipe_name`` is executing."""
        self._interrupts.add(recipe_name)

    def prepare(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        assume_yes: bool,
        license_key: str,
    ) -> dict[str, str]:
        self.prepare_calls.append(recipe.name)
        ctx.check()
        return dict(recipe.vars)

    def execute(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        variables: dict[str, str],
    ) -> None:
        self.executed.append(recipe)
        if recipe.name in self._interrupts:
            ctx.cancel(f"canceled while installing {recipe.name}")
        ctx.check()
        if recipe.name in self._failures:
            raise ExecutionFailedError(recipe.name, self._failures[recipe.name])


class MockFailingRecipeExecutor(MockRecipeExecutor):
    """Every execution fails."""

    def execute(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        variables: dict[str, str],
    ) -> None:
        self.executed.append(recipe)
        ctx.check()
        raise ExecutionFailedError(recipe.name, "mock failure")


class MockRecipeValidator(RecipeValidator):
    """Validator double: returns a GUID per recipe, or raises."""

    def __init__(self, default_guid: str = "mock-guid"):
        self.default_guid = default_guid
        self.guids: dict[str, str] = {}
        self.validated: list[str] = []
        self._failures: dict[str, Exception] = {}

    def set_failure(self, recipe_name: str, error: Exception) -> None:
        self._failures[recipe_name] = error

    def validate(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        self.validated.append(recipe.name)
        ctx.check()
        if recipe.name in self._failures:
            raise self._failures[recipe.name]
        return self.guids.get(recipe.name, self.default_guid)


# ── Terminal interaction ────────────────────────────────────────


class MockPrompter(Prompter):
    """Scripted answers.

    Args:
        yes_no: Answer to every yes/no prompt.
        selection: Labels returned by multi_select; None selects all.
    """

    def __init__(self, yes_no: bool = True, selection: list[str] | None = None):
        self.yes_no = yes_no
        self.selection = selection
        self.error: Exception | None = None
        self.yes_no_prompts: list[str] = []
        self.multi_select_calls: list[list[str]] = []

    def prompt_yes_no(self, msg: str) -> bool:
        self.yes_no_prompts.append(msg)
        if self.error is not None:
            raise self.error
        return self.yes_no

    def multi_select(self, msg: str, options: list[str]) -> list[str]:
        self.multi_select_calls.append(list(options))
        if self.error is not None:
            raise self.error
        if self.selection is None:
            return list(options)
        return [o for o in options if o in self.selection]


class MockProgress(ProgressIndicator):
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def start(self, msg: str) -> None:
        self.messages.append(("start", msg))

    def success(self, msg: str) -> None:
        self.messages.append(("success", msg))

    def fail(self, msg: str) -> None:
        self.messages.append(("fail", msg))

    def info(self, msg: str) -> None:
        self.messages.append(("info", msg))


# ── Backends ────────────────────────────────────────────────────


class MockQueryClient(QueryClient):
    """Query backend double.

    By default every query returns ``[{"count": 1}]``. Use
    ``return_results_after_n_attempts`` to simulate data arriving late.
    """

    def __init__(self, results: list[QueryRow] | None = None):
        self._before: list[QueryRow] = []
        self._after: list[QueryRow] = results if results is not None else [{"count": 1}]
        self._n = 1
        self.error: Exception | None = None
        self.on_attempt: Callable[[int], None] | None = None
        self.queries: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.queries)

    def return_results_after_n_attempts(
        self, before: list[QueryRow], after: list[QueryRow], n: int
    ) -> None:
        """Return ``before`` for attempts 1..n-1 and ``after`` from attempt n on."""
        self._before = before
        self._after = after
        self._n = n

    def set_error(self, error: Exception) -> None:
        self.error = error

    def query(self, ctx: CancelContext, query: str) -> list[QueryRow]:
        self.queries.append(query)
        attempt = len(self.queries)
        if self.on_attempt is not None:
            self.on_attempt(attempt)
        if self.error is not None:
            raise self.error
        return list(self._before if attempt < self._n else self._after)


class MockStatusStoreClient(StatusStoreClient):
    """Counts writes per scope; each scope can be made to fail."""

    def __init__(self) -> None:
        self.write_document_with_user_scope_call_count = 0
        self.write_document_with_entity_scope_call_count = 0
        self.user_scope_error: StatusStoreError | None = None
        self.entity_scope_error: StatusStoreError | None = None
        self.entity_guids_written: list[str] = []
        self.last_document: dict[str, Any] | None = None

    def write_document_with_user_scope(
        self, collection: str, document_id: str, document: dict[str, Any]
    ) -> None:
        self.write_document_with_user_scope_call_count += 1
        if self.user_scope_error is not None:
            raise self.user_scope_error
        self.last_document = document

    def write_document_with_entity_scope(
        self, entity_guid: str, collection: str, document_id: str, document: dict[str, Any]
    ) -> None:
        self.write_document_with_entity_scope_call_count += 1
        self.entity_guids_written.append(entity_guid)
        if self.entity_scope_error is not None:
            raise self.entity_scope_error


# ── Subscribers ─────────────────────────────────────────────────


class MockStatusReporter(StatusSubscriber):
    """Records every event as ``(operation, recipe names)``.

    ``set_error(operation, error)`` makes that operation raise.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, list[str]]] = []
        self._errors: dict[str, Exception] = {}

    @property
    def counts(self) -> Counter:
        return Counter(op for op, _ in self.events)

    def set_error(self, operation: str, error: Exception) -> None:
        self._errors[operation] = error

    def events_for(self, recipe_name: str) -> list[str]:
        """Operations that mentioned ``recipe_name``, in order."""
        return [op for op, names in self.events if recipe_name in names]

    def _record(self, operation: str, names: list[str]) -> None:
        self.events.append((operation, names))
        if operation in self._errors:
            raise self._errors[operation]

    def discovery_complete(self, status, manifest: DiscoveryManifest) -> None:
        self._record("discovery_complete", [])

    def recipes_available(self, status, recipes: list[Recipe]) -> None:
        self._record("recipes_available", [r.name for r in recipes])

    def recipes_selected(self, status, recipes: list[Recipe]) -> None:
        self._record("recipes_selected", [r.name for r in recipes])

    def recipe_recommended(self, status, event: RecipeStatusEvent) -> None:
        self._record("recipe_recommended", [event.recipe.name])

    def recipe_installing(self, status, event: RecipeStatusEvent) -> None:
        self._record("recipe_installing", [event.recipe.name])

    def recipe_installed(self, status, event: RecipeStatusEvent) -> None:
        self._record("recipe_installed", [event.recipe.name])

    def recipe_failed(self, status, event: RecipeStatusEvent) -> None:
        self._record("recipe_failed", [event.recipe.name])

    def recipe_skipped(self, status, event: RecipeStatusEvent) -> None:
        self._record("recipe_skipped", [event.recipe.name])

    def install_complete(self, status) -> None:
        self._record("install_complete", [])

    def install_canceled(self, status) -> None:
        self._record("install_canceled", [])

    def install_failed(self, status, error: Exception) -> None:
        self._record("install_failed", [])
