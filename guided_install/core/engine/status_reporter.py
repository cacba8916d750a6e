"""
Scoped status reporter — persists the install status document remotely.

Every event writes the current aggregate to the per-user scope.
RECIPE_INSTALLED and RECIPE_FAILED additionally write one copy per
known entity GUID, because a host-level install applies to every
entity created so far in the run, not only to the one that just
reported.

All writes of one event are attempted even when an earlier one
fails; any failure is raised as a single StatusReportError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from guided_install.adapters.base import StatusStoreClient
from guided_install.core.engine.subscribers import StatusSubscriber
from guided_install.core.errors import StatusReportError, StatusStoreError
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe
from guided_install.core.models.status import RecipeStatusEvent

if TYPE_CHECKING:
    from guided_install.core.engine.status import InstallStatus

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "install-status"


class ScopedStatusReporter(StatusSubscriber):
    """Writes status documents with user scope and, when known, entity scope."""

    def __init__(self, client: StatusStoreClient, collection: str = DEFAULT_COLLECTION):
        self._client = client
        self._collection = collection

    def discovery_complete(self, status: InstallStatus, manifest: DiscoveryManifest) -> None:
        self._write(status, entity_scope=False)

    def recipes_available(self, status: InstallStatus, recipes: list[Recipe]) -> None:
        self._write(status, entity_scope=False)

    def recipes_selected(self, status: InstallStatus, recipes: list[Recipe]) -> None:
        self._write(status, entity_scope=False)

    def recipe_recommended(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        self._write(status, entity_scope=False)

    def recipe_installing(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        self._write(status, entity_scope=False)

    def recipe_installed(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        self._write(status, entity_scope=True)

    def recipe_failed(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        self._write(status, entity_scope=True)

    def recipe_skipped(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        self._write(status, entity_scope=False)

    def install_complete(self, status: InstallStatus) -> None:
        self._write(status, entity_scope=False)

    def install_canceled(self, status: InstallStatus) -> None:
        self._write(status, entity_scope=False)

    def install_failed(self, status: InstallStatus, error: Exception) -> None:
        self._write(status, entity_scope=False)

    def _write(self, status: InstallStatus, *, entity_scope: bool) -> None:
        document = status.to_document()
        errors: list[Exception] = []

        try:
            self._client.write_document_with_user_scope(
                self._collection, status.document_id, document
            )
        except StatusStoreError as e:
            logger.debug("User-scope status write failed: %s", e)
            errors.append(e)

        if entity_scope:
            for guid in status.entity_guids:
                try:
                    self._client.write_document_with_entity_scope(
                        guid, self._collection, status.document_id, document
                    )
                except StatusStoreError as e:
                    logger.debug("Entity-scope status write for %s failed: %s", guid, e)
                    errors.append(e)

        if errors:
            raise StatusReportError(errors)
