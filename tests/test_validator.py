"""
Tests for the polling recipe validator.
"""

import threading
import time

import pytest

from guided_install.adapters.base import EntityLookup
from guided_install.adapters.mock import MockQueryClient
from guided_install.core.engine.validator import (
    PollingRecipeValidator,
    QueryEntityLookup,
    ValidationCause,
    render_query,
)
from guided_install.core.errors import (
    InterruptError,
    QueryError,
    ValidationExhaustedError,
    ValidationQueryFailedError,
)
from guided_install.core.models.recipe import Recipe
from guided_install.core.reliability.backoff import PollSchedule

NO_DATA = [{"count": 0}]
DATA = [{"count": 1.0}]


@pytest.fixture
def recipe() -> Recipe:
    return Recipe(
        name="mysql-open-source-integration",
        validation_nrql="SELECT count(*) FROM MysqlSample WHERE hostname = '{{HOSTNAME}}'",
    )


def _validator(client, max_attempts=5, interval=0.0, **kwargs) -> PollingRecipeValidator:
    return PollingRecipeValidator(
        client,
        max_attempts=max_attempts,
        schedule=PollSchedule(interval=interval),
        **kwargs,
    )


class TestPollingSuccess:
    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    def test_succeeds_after_exactly_n_attempts(self, ctx, manifest, recipe, n):
        client = MockQueryClient()
        client.return_results_after_n_attempts(NO_DATA, DATA, n)
        v = _validator(client, max_attempts=5)

        assert v.validate(ctx, manifest, recipe) == ""
        assert client.call_count == n
        assert v.last_attempt.count == n
        assert v.last_attempt.cause == ValidationCause.MATCHED
        assert v.last_attempt.last_results == DATA

    def test_hostname_rendered_into_query(self, ctx, manifest, recipe):
        client = MockQueryClient()
        _validator(client).validate(ctx, manifest, recipe)
        assert client.queries == ["SELECT count(*) FROM MysqlSample WHERE hostname = 'web-01'"]

    def test_entity_guid_from_row(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[{"count": 3, "entityGuid": "MXxJTkZSQXxOQXwx"}])
        assert _validator(client).validate(ctx, manifest, recipe) == "MXxJTkZSQXxOQXwx"

    def test_entity_guid_from_lookup(self, ctx, manifest, recipe):
        class Lookup(EntityLookup):
            def lookup(self, ctx, manifest, recipe):
                return f"guid-for-{manifest.hostname}"

        client = MockQueryClient(results=DATA)
        v = _validator(client, entity_lookup=Lookup())
        assert v.validate(ctx, manifest, recipe) == "guid-for-web-01"

    def test_any_row_with_data_matches(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[{"count": 0}, {"count": "2"}])
        _validator(client, max_attempts=1).validate(ctx, manifest, recipe)
        assert client.call_count == 1

    def test_custom_count_field(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[{"count": 0, "events": 12}])
        v = _validator(client, max_attempts=1, count_field="events")
        v.validate(ctx, manifest, recipe)
        assert v.last_attempt.cause == ValidationCause.MATCHED


class TestPollingFailure:
    def test_exhausted_after_max_attempts(self, ctx, manifest, recipe):
        client = MockQueryClient(results=NO_DATA)
        v = _validator(client, max_attempts=3)

        with pytest.raises(ValidationExhaustedError) as exc_info:
            v.validate(ctx, manifest, recipe)

        assert exc_info.value.attempts == 3
        assert client.call_count == 3
        assert v.last_attempt.cause == ValidationCause.EXHAUSTED

    def test_empty_result_set_is_no_data(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[])
        with pytest.raises(ValidationExhaustedError):
            _validator(client, max_attempts=2).validate(ctx, manifest, recipe)
        assert client.call_count == 2

    @pytest.mark.parametrize("value", [None, "n/a", 0, 0.0, "0"])
    def test_non_positive_counts_are_no_data(self, ctx, manifest, recipe, value):
        client = MockQueryClient(results=[{"count": value}])
        with pytest.raises(ValidationExhaustedError):
            _validator(client, max_attempts=1).validate(ctx, manifest, recipe)

    def test_query_error_is_distinct(self, ctx, manifest, recipe):
        client = MockQueryClient()
        client.set_error(QueryError("HTTP 503"))
        v = _validator(client, max_attempts=5)

        with pytest.raises(ValidationQueryFailedError, match="HTTP 503"):
            v.validate(ctx, manifest, recipe)

        assert client.call_count == 1
        assert v.last_attempt.cause == ValidationCause.FAILED

    def test_entity_lookup_error_is_query_failure(self, ctx, manifest, recipe):
        class FailingLookup(EntityLookup):
            def lookup(self, ctx, manifest, recipe):
                raise QueryError("entity search timed out")

        v = _validator(MockQueryClient(results=DATA), entity_lookup=FailingLookup())

        with pytest.raises(ValidationQueryFailedError, match="entity search timed out") as exc_info:
            v.validate(ctx, manifest, recipe)

        assert exc_info.value.recipe_name == recipe.name
        assert v.last_attempt.cause == ValidationCause.FAILED

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            _validator(MockQueryClient(), max_attempts=0)


class TestPollingCancellation:
    def test_canceled_before_first_attempt(self, ctx, manifest, recipe):
        client = MockQueryClient()
        ctx.cancel()
        with pytest.raises(InterruptError):
            _validator(client).validate(ctx, manifest, recipe)
        assert client.call_count == 0

    def test_cancel_mid_poll_stops_attempts(self, ctx, manifest, recipe):
        client = MockQueryClient(results=NO_DATA)

        def _cancel_on_second(attempt: int) -> None:
            if attempt == 2:
                ctx.cancel("stop")

        client.on_attempt = _cancel_on_second
        v = _validator(client, max_attempts=10)

        with pytest.raises(InterruptError):
            v.validate(ctx, manifest, recipe)

        assert client.call_count == 2
        assert v.last_attempt.cause == ValidationCause.CANCELED

    def test_cancel_interrupts_wait(self, ctx, manifest, recipe):
        client = MockQueryClient(results=NO_DATA)
        v = _validator(client, max_attempts=3, interval=30.0)

        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        start = time.monotonic()
        try:
            with pytest.raises(InterruptError):
                v.validate(ctx, manifest, recipe)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 5
        assert client.call_count == 1


class TestRenderQuery:
    def test_replaces_every_placeholder(self, manifest):
        q = "FROM A WHERE h = '{{HOSTNAME}}' OR host = '{{HOSTNAME}}'"
        assert render_query(q, manifest) == "FROM A WHERE h = 'web-01' OR host = 'web-01'"


class TestQueryEntityLookup:
    LOOKUP = "SELECT latest(entityGuid) AS entityGuid FROM SystemSample WHERE hostname = '{{HOSTNAME}}'"

    def test_first_guid_wins(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[{"entityGuid": None}, {"entityGuid": "MXxJTkZSQXxOQXwx"}])
        lookup = QueryEntityLookup(client, self.LOOKUP)

        assert lookup.lookup(ctx, manifest, recipe) == "MXxJTkZSQXxOQXwx"
        assert client.queries == [
            "SELECT latest(entityGuid) AS entityGuid FROM SystemSample WHERE hostname = 'web-01'"
        ]

    def test_no_rows_is_unknown(self, ctx, manifest, recipe):
        lookup = QueryEntityLookup(MockQueryClient(results=[]), self.LOOKUP)
        assert lookup.lookup(ctx, manifest, recipe) == ""

    def test_custom_guid_field(self, ctx, manifest, recipe):
        client = MockQueryClient(results=[{"guid": "abc"}])
        assert QueryEntityLookup(client, self.LOOKUP, guid_field="guid").lookup(ctx, manifest, recipe) == "abc"

    def test_canceled_before_query(self, ctx, manifest, recipe):
        client = MockQueryClient()
        ctx.cancel()
        with pytest.raises(InterruptError):
            QueryEntityLookup(client, self.LOOKUP).lookup(ctx, manifest, recipe)
        assert client.call_count == 0

    def test_used_when_rows_carry_no_guid(self, ctx, manifest, recipe):
        client = MockQueryClient()
        client.return_results_after_n_attempts([{"count": 4}], [{"entityGuid": "guid-1"}], 2)
        v = _validator(client, entity_lookup=QueryEntityLookup(client, self.LOOKUP))

        assert v.validate(ctx, manifest, recipe) == "guid-1"
        assert client.call_count == 2
