"""
Tests for the scoped status reporter — user and entity scope writes.
"""

import pytest

from guided_install.adapters.mock import MockStatusStoreClient
from guided_install.core.engine.status import InstallStatus
from guided_install.core.engine.status_reporter import ScopedStatusReporter
from guided_install.core.engine.success_link import RedirectLinkGenerator
from guided_install.core.errors import StatusReportError, StatusStoreError
from guided_install.core.models.recipe import Recipe
from guided_install.core.models.status import RecipeStatusEvent

ENTITY_SCOPED = ["recipe_installed", "recipe_failed"]


def _event() -> RecipeStatusEvent:
    return RecipeStatusEvent(recipe=Recipe(name="redis-open-source-integration"))


def _status_with_guids(*guids: str) -> InstallStatus:
    status = InstallStatus([], RedirectLinkGenerator("https://one.example.com"))
    for g in guids:
        status.with_entity_guid(g)
    return status


def _call(reporter: ScopedStatusReporter, operation: str, status: InstallStatus) -> None:
    if operation in ("recipes_available", "recipes_selected"):
        getattr(reporter, operation)(status, [Recipe(name="a")])
    elif operation == "discovery_complete":
        reporter.discovery_complete(status, None)
    elif operation in ("install_complete", "install_canceled"):
        getattr(reporter, operation)(status)
    elif operation == "install_failed":
        reporter.install_failed(status, RuntimeError("boom"))
    else:
        getattr(reporter, operation)(status, _event())


class TestEntityFanOut:
    @pytest.mark.parametrize("operation", ENTITY_SCOPED)
    @pytest.mark.parametrize("guids", [(), ("g1",), ("g1", "g2"), ("g1", "g2", "g3")])
    def test_one_entity_write_per_known_guid(self, operation, guids):
        client = MockStatusStoreClient()
        reporter = ScopedStatusReporter(client)

        _call(reporter, operation, _status_with_guids(*guids))

        assert client.write_document_with_user_scope_call_count == 1
        assert client.write_document_with_entity_scope_call_count == len(guids)
        assert client.entity_guids_written == list(guids)

    @pytest.mark.parametrize("operation", ENTITY_SCOPED)
    def test_duplicate_guid_counts_once(self, operation):
        client = MockStatusStoreClient()
        status = _status_with_guids("g1", "g1")

        _call(ScopedStatusReporter(client), operation, status)

        assert client.write_document_with_entity_scope_call_count == 1

    def test_repeated_events_rewrite_every_guid(self):
        client = MockStatusStoreClient()
        reporter = ScopedStatusReporter(client)
        status = _status_with_guids("host-guid")

        reporter.recipe_installed(status, _event())
        status.with_entity_guid("app-guid")
        reporter.recipe_installed(status, _event())

        assert client.write_document_with_user_scope_call_count == 2
        assert client.entity_guids_written == ["host-guid", "host-guid", "app-guid"]

    @pytest.mark.parametrize("operation", [
        "discovery_complete",
        "recipes_available",
        "recipes_selected",
        "recipe_recommended",
        "recipe_installing",
        "recipe_skipped",
        "install_complete",
        "install_canceled",
        "install_failed",
    ])
    def test_other_events_are_user_scope_only(self, operation):
        client = MockStatusStoreClient()

        _call(ScopedStatusReporter(client), operation, _status_with_guids("g1", "g2"))

        assert client.write_document_with_user_scope_call_count == 1
        assert client.write_document_with_entity_scope_call_count == 0


class TestWriteErrors:
    @pytest.mark.parametrize("operation", ENTITY_SCOPED)
    def test_user_scope_error_still_writes_entities(self, operation):
        client = MockStatusStoreClient()
        client.user_scope_error = StatusStoreError("user store down")

        with pytest.raises(StatusReportError, match="user store down"):
            _call(ScopedStatusReporter(client), operation, _status_with_guids("g1"))

        assert client.write_document_with_entity_scope_call_count == 1

    @pytest.mark.parametrize("operation", ENTITY_SCOPED)
    def test_entity_scope_error_after_user_success(self, operation):
        client = MockStatusStoreClient()
        client.entity_scope_error = StatusStoreError("entity store down")

        with pytest.raises(StatusReportError, match="entity store down"):
            _call(ScopedStatusReporter(client), operation, _status_with_guids("g1", "g2"))

        assert client.write_document_with_user_scope_call_count == 1
        assert client.last_document is not None
        assert client.write_document_with_entity_scope_call_count == 2

    def test_all_failures_collected(self):
        client = MockStatusStoreClient()
        client.user_scope_error = StatusStoreError("user")
        client.entity_scope_error = StatusStoreError("entity")

        with pytest.raises(StatusReportError) as exc_info:
            ScopedStatusReporter(client).recipe_failed(_status_with_guids("g1", "g2"), _event())

        assert len(exc_info.value.errors) == 3

    def test_user_only_event_error(self):
        client = MockStatusStoreClient()
        client.user_scope_error = StatusStoreError("down")

        with pytest.raises(StatusReportError):
            ScopedStatusReporter(client).recipes_available(_status_with_guids(), [Recipe(name="a")])

    def test_no_entity_guid_no_entity_error(self):
        client = MockStatusStoreClient()
        client.entity_scope_error = StatusStoreError("never reached")

        ScopedStatusReporter(client).recipe_installed(_status_with_guids(), _event())


class TestThroughInstallStatus:
    def test_installed_event_guid_is_written(self):
        client = MockStatusStoreClient()
        status = InstallStatus(
            [ScopedStatusReporter(client)], RedirectLinkGenerator("https://one.example.com")
        )

        status.recipe_installed(RecipeStatusEvent(recipe=Recipe(name="a"), entity_guid="g1"))

        assert client.entity_guids_written == ["g1"]
        assert client.last_document["entity_guids"] == ["g1"]
        assert client.last_document["statuses"][0]["status"] == "INSTALLED"

    def test_store_failure_surfaces_as_status_report_error(self):
        client = MockStatusStoreClient()
        client.user_scope_error = StatusStoreError("down")
        status = InstallStatus(
            [ScopedStatusReporter(client)], RedirectLinkGenerator("https://one.example.com")
        )

        with pytest.raises(StatusReportError) as exc_info:
            status.recipe_skipped(RecipeStatusEvent(recipe=Recipe(name="a")))

        assert isinstance(exc_info.value.first, StatusStoreError)
