"""
Recipe validator — confirms an installed recipe is sending telemetry.

Polls the query backend with the recipe's validation query until a
row reports data, the attempt budget runs out, or the run is
canceled. This is the only place in the install core that retries.

Outcomes:
    MATCHED    → entity GUID (may be "")
    EXHAUSTED  → ValidationExhaustedError
    FAILED     → ValidationQueryFailedError (backend/transport error,
                 including a failed entity lookup)
    CANCELED   → InterruptError, never a false success
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum

from guided_install.adapters.base import EntityLookup, QueryClient, QueryRow
from guided_install.core.context import CancelContext
from guided_install.core.errors import (
    InterruptError,
    QueryError,
    ValidationExhaustedError,
    ValidationQueryFailedError,
)
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe
from guided_install.core.reliability.backoff import PollSchedule

logger = logging.getLogger(__name__)

HOSTNAME_PLACEHOLDER = "{{HOSTNAME}}"


class ValidationCause(StrEnum):
    """Why polling stopped."""

    PENDING = "pending"
    MATCHED = "matched"
    EXHAUSTED = "exhausted"
    CANCELED = "canceled"
    FAILED = "failed"


@dataclass
class ValidationAttempt:
    """Bookkeeping for one validate() call."""

    recipe: str
    count: int = 0
    elapsed_s: float = 0.0
    last_results: list[QueryRow] = field(default_factory=list)
    cause: ValidationCause = ValidationCause.PENDING


class RecipeValidator(ABC):
    """Confirms that an installed recipe is producing telemetry."""

    @abstractmethod
    def validate(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        """Return the entity GUID of the validated resource ("" if unknown)."""


class PollingRecipeValidator(RecipeValidator):
    """Bounded polling validator.

    Args:
        client: Query backend.
        max_attempts: Maximum number of queries per validation.
        schedule: Delay between attempts.
        count_field: Column whose non-zero value means "data arrived".
        entity_guid_field: Column carrying the entity GUID, if any.
        entity_lookup: Fallback GUID resolver when rows carry none.
    """

    def __init__(
        self,
        client: QueryClient,
        *,
        max_attempts: int,
        schedule: PollSchedule,
        count_field: str = "count",
        entity_guid_field: str = "entityGuid",
        entity_lookup: EntityLookup | None = None,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._client = client
        self._max_attempts = max_attempts
        self._schedule = schedule
        self._count_field = count_field
        self._entity_guid_field = entity_guid_field
        self._entity_lookup = entity_lookup
        self.last_attempt: ValidationAttempt | None = None

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def validate(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        """Poll until data arrives; return the entity GUID.

        Raises:
            InterruptError: Canceled before or between attempts.
            ValidationQueryFailedError: The backend returned an error.
            ValidationExhaustedError: ``max_attempts`` queries saw no data.
        """
        attempt = ValidationAttempt(recipe=recipe.name)
        self.last_attempt = attempt
        query = render_query(recipe.validation_nrql, manifest)
        started = time.monotonic()

        try:
            for n in range(1, self._max_attempts + 1):
                ctx.check()
                attempt.count = n

                try:
                    rows = self._client.query(ctx, query)
                except QueryError as e:
                    attempt.cause = ValidationCause.FAILED
                    logger.warning("Validation query for %s failed: %s", recipe.name, e)
                    raise ValidationQueryFailedError(recipe.name, str(e)) from e

                attempt.last_results = rows
                row = self._find_data_row(rows)
                if row is not None:
                    try:
                        guid = self._entity_guid(ctx, manifest, recipe, row)
                    except QueryError as e:
                        attempt.cause = ValidationCause.FAILED
                        logger.warning("Entity lookup for %s failed: %s", recipe.name, e)
                        raise ValidationQueryFailedError(recipe.name, str(e)) from e
                    attempt.cause = ValidationCause.MATCHED
                    logger.info(
                        "Validated %s after %d attempt(s) (entity=%s)",
                        recipe.name, n, guid or "-",
                    )
                    return guid

                logger.debug("No data yet for %s (attempt %d/%d)", recipe.name, n, self._max_attempts)

                if n < self._max_attempts and ctx.wait(self._schedule.delay(n)):
                    ctx.check()
        except InterruptError:
            attempt.cause = ValidationCause.CANCELED
            raise
        finally:
            attempt.elapsed_s = time.monotonic() - started

        attempt.cause = ValidationCause.EXHAUSTED
        raise ValidationExhaustedError(recipe.name, attempt.count)

    def _find_data_row(self, rows: list[QueryRow]) -> QueryRow | None:
        for row in rows:
            if _is_nonzero(row.get(self._count_field)):
                return row
        return None

    def _entity_guid(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        row: QueryRow,
    ) -> str:
        guid = row.get(self._entity_guid_field)
        if guid:
            return str(guid)
        if self._entity_lookup is not None:
            return self._entity_lookup.lookup(ctx, manifest, recipe)
        return ""


class QueryEntityLookup(EntityLookup):
    """Resolves the entity GUID with a second query against the backend.

    Used when validation rows carry no GUID column. The query is
    rendered like a validation query; the first row with a non-empty
    ``guid_field`` wins.

    Args:
        client: Query backend.
        query: Lookup query, e.g.
            ``SELECT latest(entityGuid) AS entityGuid FROM SystemSample
            WHERE hostname = '{{HOSTNAME}}'``.
        guid_field: Column carrying the GUID.
    """

    def __init__(self, client: QueryClient, query: str, guid_field: str = "entityGuid"):
        self._client = client
        self._query = query
        self._guid_field = guid_field

    def lookup(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        ctx.check()
        for row in self._client.query(ctx, render_query(self._query, manifest)):
            guid = row.get(self._guid_field)
            if guid:
                return str(guid)
        logger.debug("No entity found for %s on %s", recipe.name, manifest.hostname)
        return ""


def render_query(query: str, manifest: DiscoveryManifest) -> str:
    """Substitute host placeholders in a validation query."""
    return query.replace(HOSTNAME_PLACEHOLDER, manifest.hostname)


def _is_nonzero(value: object) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    try:
        return float(value) != 0  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
