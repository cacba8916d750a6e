"""
Adapter base — the contracts between the install core and the outside world.

The orchestrator and validator only talk to collaborators through
these interfaces, never directly to the host, the catalog or the
backend. Every blocking method receives the shared CancelContext and
must raise InterruptError once it observes cancellation.

To add a new collaborator:
    1. Subclass the matching ABC
    2. Raise the error types named in the method docstring
    3. Wire it in ``use_cases/install.py:build_installer``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from guided_install.core.context import CancelContext
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import LogMatch, Recipe

# A single query result row: column name → value
QueryRow = dict[str, Any]


class Discoverer(ABC):
    """Collects host facts."""

    @abstractmethod
    def discover(self, ctx: CancelContext) -> DiscoveryManifest:
        """Return the host manifest. Raises DiscoveryFailedError."""


class RecipeFetcher(ABC):
    """Reads recipes from the catalog."""

    @abstractmethod
    def fetch_recipe(self, ctx: CancelContext, manifest: DiscoveryManifest, name: str) -> Recipe:
        """Fetch one recipe by name.

        Raises:
            RecipeNotFoundError: If the catalog has no such recipe.
            FetchFailedError: On any other catalog failure.
        """

    @abstractmethod
    def fetch_recommendations(self, ctx: CancelContext, manifest: DiscoveryManifest) -> list[Recipe]:
        """Recipes recommended for this host. Raises FetchFailedError."""


class FileFilterer(ABC):
    """Finds log files on the host matching recipe log patterns."""

    @abstractmethod
    def filter(self, ctx: CancelContext, recipes: list[Recipe]) -> list[LogMatch]:
        """Return one LogMatch per pattern that matched at least one file."""


class RecipeExecutor(ABC):
    """Runs a recipe's install steps (opaque to the core)."""

    @abstractmethod
    def prepare(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        assume_yes: bool,
        license_key: str,
    ) -> dict[str, str]:
        """Resolve the variables the install steps will see."""

    @abstractmethod
    def execute(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        variables: dict[str, str],
    ) -> None:
        """Run the install steps. Raises ExecutionFailedError."""


class Prompter(ABC):
    """Asks the user questions."""

    @abstractmethod
    def prompt_yes_no(self, msg: str) -> bool:
        """Yes/no question."""

    @abstractmethod
    def multi_select(self, msg: str, options: list[str]) -> list[str]:
        """Pick any subset of ``options``; returns the chosen labels."""


class ProgressIndicator(ABC):
    """Presentation of long-running steps (spinner, plain lines, ...)."""

    @abstractmethod
    def start(self, msg: str) -> None: ...

    @abstractmethod
    def success(self, msg: str) -> None: ...

    @abstractmethod
    def fail(self, msg: str) -> None: ...

    def info(self, msg: str) -> None:
        """Free-form informational text (pre/post install notes)."""


class QueryClient(ABC):
    """Telemetry backend used as a count oracle by the validator."""

    @abstractmethod
    def query(self, ctx: CancelContext, query: str) -> list[QueryRow]:
        """Run a query and return its rows. Raises QueryError."""


class EntityLookup(ABC):
    """Side channel resolving the entity created by a validated recipe.

    ``core.engine.validator.QueryEntityLookup`` is the built-in
    implementation, enabled by ``validation.entity_lookup_query``.
    """

    @abstractmethod
    def lookup(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        """Entity GUID, or "" when unknown. Raises QueryError."""


class StatusStoreClient(ABC):
    """Remote document store with user and entity scopes.

    Each write is independent and raises StatusStoreError on failure.
    """

    @abstractmethod
    def write_document_with_user_scope(
        self, collection: str, document_id: str, document: dict[str, Any]
    ) -> None: ...

    @abstractmethod
    def write_document_with_entity_scope(
        self, entity_guid: str, collection: str, document_id: str, document: dict[str, Any]
    ) -> None: ...
