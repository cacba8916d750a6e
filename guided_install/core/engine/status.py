"""
InstallStatus — the aggregate state of one guided install run.

Owns the per-recipe outcome map, the set of known entity GUIDs and
the overall outcome, and fans every transition out to the status
subscribers.

Fan-out model
─────────────
- Synchronous, in subscriber order, one call per subscriber.
- State is updated first, then subscribers are notified.
- A failing subscriber never stops the others: errors are collected
  and raised together as one StatusReportError afterwards.

Terminal outcomes
─────────────────
Once the outcome is COMPLETE, CANCELED or FAILED every mutating
operation raises StatusClosedError and nothing is notified.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from guided_install.core.errors import InterruptError, StatusClosedError, StatusReportError
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe
from guided_install.core.models.status import (
    InstallOutcome,
    RecipeStatus,
    RecipeStatusEvent,
    RecipeStatusType,
)

if TYPE_CHECKING:
    from guided_install.core.engine.subscribers import StatusSubscriber
    from guided_install.core.engine.success_link import SuccessLinkGenerator

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class InstallStatus:
    """Mutable aggregate of an install run, observed by subscribers."""

    def __init__(
        self,
        subscribers: list[StatusSubscriber],
        success_link_generator: SuccessLinkGenerator,
    ):
        self._subscribers: tuple[StatusSubscriber, ...] = tuple(subscribers)
        self._link_generator = success_link_generator

        self.document_id = str(uuid.uuid4())
        self.started_at = _now_iso()
        self.updated_at = self.started_at

        self.outcome = InstallOutcome.IN_PROGRESS
        self.manifest: DiscoveryManifest | None = None
        self.error = ""
        self.success_link: str | None = None

        self._recipes: list[Recipe] = []
        self._statuses: dict[str, RecipeStatus] = {}
        self._entity_guids: list[str] = []

    # ── Read-only views ─────────────────────────────────────────

    @property
    def subscribers(self) -> tuple[StatusSubscriber, ...]:
        return self._subscribers

    @property
    def recipes(self) -> list[Recipe]:
        """Discovered/offered recipes, in the order first seen."""
        return list(self._recipes)

    @property
    def statuses(self) -> list[RecipeStatus]:
        return list(self._statuses.values())

    @property
    def entity_guids(self) -> tuple[str, ...]:
        return tuple(self._entity_guids)

    @property
    def is_terminal(self) -> bool:
        return self.outcome.terminal

    def get_status(self, name: str) -> RecipeStatusType | None:
        row = self._statuses.get(name)
        return row.status if row else None

    def recipes_with_status(self, status: RecipeStatusType) -> list[str]:
        return [row.name for row in self._statuses.values() if row.status == status]

    def has_any_recipe_status(self, status: RecipeStatusType) -> bool:
        return any(row.status == status for row in self._statuses.values())

    def find_recipe(self, name: str) -> Recipe | None:
        for r in self._recipes:
            if r.name == name:
                return r
        return None

    # ── Entity GUIDs ────────────────────────────────────────────

    def with_entity_guid(self, guid: str) -> None:
        """Record an entity GUID. Empty and already-known GUIDs are ignored."""
        if not guid or guid in self._entity_guids:
            return
        self._entity_guids.append(guid)
        logger.debug("Registered entity GUID %s (%d known)", guid, len(self._entity_guids))

    # ── Milestones ──────────────────────────────────────────────

    def discovery_complete(self, manifest: DiscoveryManifest) -> None:
        self._ensure_open("discovery_complete")
        self.manifest = manifest
        self._notify("discovery_complete", manifest)

    def recipes_available(self, recipes: list[Recipe]) -> None:
        self._ensure_open("recipes_available")
        for r in recipes:
            self._set(r, RecipeStatusType.AVAILABLE)
        self._notify("recipes_available", list(recipes))

    def recipes_selected(self, recipes: list[Recipe]) -> None:
        self._ensure_open("recipes_selected")
        for r in recipes:
            self._set(r, RecipeStatusType.SELECTED)
        self._notify("recipes_selected", list(recipes))

    # ── Per-recipe transitions ──────────────────────────────────

    def recipe_recommended(self, event: RecipeStatusEvent) -> None:
        self._ensure_open("recipe_recommended")
        self._set(event.recipe, RecipeStatusType.RECOMMENDED, entity_guid=event.entity_guid)
        self._notify("recipe_recommended", event)

    def recipe_installing(self, event: RecipeStatusEvent) -> None:
        self._ensure_open("recipe_installing")
        self._set(event.recipe, RecipeStatusType.INSTALLING)
        self._notify("recipe_installing", event)

    def recipe_installed(self, event: RecipeStatusEvent) -> None:
        self._ensure_open("recipe_installed")
        self.with_entity_guid(event.entity_guid)
        self._set(
            event.recipe,
            RecipeStatusType.INSTALLED,
            entity_guid=event.entity_guid,
            validation_duration_ms=event.validation_duration_ms,
        )
        self._notify("recipe_installed", event)

    def recipe_failed(self, event: RecipeStatusEvent) -> None:
        self._ensure_open("recipe_failed")
        self._set(
            event.recipe,
            RecipeStatusType.FAILED,
            error=event.msg,
            validation_duration_ms=event.validation_duration_ms,
        )
        self._notify("recipe_failed", event)

    def recipe_skipped(self, event: RecipeStatusEvent) -> None:
        self._ensure_open("recipe_skipped")
        self._set(event.recipe, RecipeStatusType.SKIPPED)
        self._notify("recipe_skipped", event)

    # ── Terminal transitions ────────────────────────────────────

    def install_complete(self) -> None:
        self._ensure_open("install_complete")
        self.outcome = InstallOutcome.COMPLETE
        self.success_link = self._link_generator.generate(self)
        self.touch()
        self._notify("install_complete")

    def install_canceled(self) -> None:
        self._ensure_open("install_canceled")
        self.outcome = InstallOutcome.CANCELED
        for row in self._statuses.values():
            if row.status == RecipeStatusType.INSTALLING:
                row.status = RecipeStatusType.CANCELED
        self.touch()
        self._notify("install_canceled")

    def install_failed(self, error: Exception) -> None:
        self._ensure_open("install_failed")
        self.outcome = InstallOutcome.FAILED
        self.error = str(error)
        self.touch()
        self._notify("install_failed", error)

    # ── Serialization ───────────────────────────────────────────

    def to_document(self) -> dict[str, Any]:
        """Snapshot persisted by remote status reporters."""
        return {
            "document_id": self.document_id,
            "started_at": self.started_at,
            "timestamp": self.updated_at,
            "outcome": self.outcome.value,
            "complete": self.outcome == InstallOutcome.COMPLETE,
            "error": self.error,
            "discovery_manifest": self.manifest.model_dump(mode="json") if self.manifest else None,
            "entity_guids": list(self._entity_guids),
            "statuses": [row.model_dump(mode="json") for row in self._statuses.values()],
            "success_link": self.success_link,
        }

    def touch(self) -> None:
        self.updated_at = _now_iso()

    # ── Internals ───────────────────────────────────────────────

    def _ensure_open(self, operation: str) -> None:
        if self.outcome.terminal:
            raise StatusClosedError(
                f"cannot apply {operation}: install already {self.outcome.value}"
            )

    def _set(self, recipe: Recipe, status: RecipeStatusType, **fields: Any) -> None:
        if self.find_recipe(recipe.name) is None:
            self._recipes.append(recipe)

        row = self._statuses.get(recipe.name)
        if row is None:
            row = RecipeStatus(
                name=recipe.name,
                display_name=recipe.display_name,
                status=status,
            )
            self._statuses[recipe.name] = row
        else:
            row.status = status

        for key, value in fields.items():
            if value is not None and value != "":
                setattr(row, key, value)
        self.touch()

    def _notify(self, method: str, *args: Any) -> None:
        errors: list[Exception] = []
        for subscriber in self._subscribers:
            try:
                getattr(subscriber, method)(self, *args)
            except InterruptError:
                raise
            except StatusReportError as e:
                logger.debug("Subscriber %r failed on %s: %s", subscriber, method, e)
                errors.extend(e.errors)
            except Exception as e:
                # Subscribers are third-party observers; collect everything
                logger.debug("Subscriber %r failed on %s: %s", subscriber, method, e)
                errors.append(e)

        if errors:
            raise StatusReportError(errors)
