"""
Install use case — the guided installation workflow.

This is the top-level orchestrator: it discovers the host, fetches
the mandatory recipes and the catalog recommendations, lets the user
(or ``assume_yes``) choose, then installs and validates each recipe
while every transition fans out through InstallStatus.

Phases:

    DISCOVER → FETCH_REQUIRED → FETCH_RECOMMENDATIONS → SELECT
      → INSTALL_REQUIRED → INSTALL_OPTIONAL → COMPLETE

CANCELED is reachable from any phase; FAILED only from
INSTALL_REQUIRED. The host agent and logging recipes are mandatory
(any error aborts the run); every other recipe is best-effort.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable

from guided_install.adapters.base import (
    Discoverer,
    FileFilterer,
    ProgressIndicator,
    Prompter,
    QueryClient,
    RecipeExecutor,
    RecipeFetcher,
)
from guided_install.core.config.loader import ConfigError, InstallerConfig, ValidationSettings
from guided_install.core.context import CancelContext
from guided_install.core.engine.status import InstallStatus
from guided_install.core.engine.validator import PollingRecipeValidator, QueryEntityLookup, RecipeValidator
from guided_install.core.errors import (
    InstallError,
    InterruptError,
    StatusReportError,
    ValidationQueryFailedError,
)
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.options import InstallOptions
from guided_install.core.models.recipe import (
    DISCOVERED_LOG_FILES_VAR,
    INFRA_AGENT_RECIPE_NAME,
    LOGGING_RECIPE_NAME,
    LogMatch,
    Recipe,
)
from guided_install.core.models.status import InstallOutcome, RecipeStatusEvent
from guided_install.core.observability.logging_config import bind_phase, log_context
from guided_install.core.reliability.backoff import PollSchedule

logger = logging.getLogger(__name__)

SELECT_PROMPT = "Please choose from the additional recommended instrumentation to be installed:"


class Phase(StrEnum):
    """Where the orchestrator currently is."""

    DISCOVER = "discover"
    FETCH_REQUIRED = "fetch_required"
    FETCH_RECOMMENDATIONS = "fetch_recommendations"
    SELECT = "select"
    INSTALL_REQUIRED = "install_required"
    INSTALL_OPTIONAL = "install_optional"
    COMPLETE = "complete"
    CANCELED = "canceled"
    FAILED = "failed"


class RecipeInstaller:
    """Drives one guided install run.

    All collaborators are injected; nothing here touches the host
    directly. ``report_errors`` collects status-report failures that
    were downgraded to warnings.
    """

    def __init__(
        self,
        options: InstallOptions,
        *,
        discoverer: Discoverer,
        recipe_fetcher: RecipeFetcher,
        file_filterer: FileFilterer,
        recipe_executor: RecipeExecutor,
        recipe_validator: RecipeValidator,
        status: InstallStatus,
        prompter: Prompter,
        progress: ProgressIndicator,
    ):
        self.options = options
        self.discoverer = discoverer
        self.recipe_fetcher = recipe_fetcher
        self.file_filterer = file_filterer
        self.recipe_executor = recipe_executor
        self.recipe_validator = recipe_validator
        self.status = status
        self.prompter = prompter
        self.progress = progress

        self.phase = Phase.DISCOVER
        self.report_errors: list[StatusReportError] = []
        self._skip_logging_install = options.skip_logging_install

    @property
    def phase(self) -> Phase:
        return self._phase

    @phase.setter
    def phase(self, value: Phase) -> None:
        self._phase = value
        bind_phase(value.value)

    # ── Entry point ─────────────────────────────────────────────

    def install(self, ctx: CancelContext) -> None:
        """Run the whole workflow.

        Raises:
            InterruptError: The run was canceled (status is CANCELED).
            InstallError: Discovery, fetch or a mandatory recipe failed.
        """
        try:
            self.phase = Phase.DISCOVER
            ctx.check()
            manifest = self.discoverer.discover(ctx)
            self._report(self.status.discovery_complete, manifest)

            self.guided_install(ctx, manifest)
        except InterruptError as e:
            logger.info("Install canceled during %s: %s", self.phase, e)
            self.phase = Phase.CANCELED
            if not self.status.is_terminal:
                self._report(self.status.install_canceled)
            raise
        except InstallError as e:
            if self.phase == Phase.INSTALL_REQUIRED and not self.status.is_terminal:
                self.phase = Phase.FAILED
                self._report(self.status.install_failed, e)
            raise

        self.phase = Phase.COMPLETE
        self._report(self.status.install_complete)

    def guided_install(self, ctx: CancelContext, manifest: DiscoveryManifest) -> None:
        """Fetch, select and install; errors only for mandatory recipes."""
        if self.options.skip_infra:
            raise InstallError("skip_infra is only applicable to targeted installation")

        # ── Mandatory recipes ──
        self.phase = Phase.FETCH_REQUIRED
        agent_recipe = self.recipe_fetcher.fetch_recipe(ctx, manifest, INFRA_AGENT_RECIPE_NAME)
        logging_recipe = self.recipe_fetcher.fetch_recipe(ctx, manifest, LOGGING_RECIPE_NAME)
        self._report(self.status.recipes_available, [agent_recipe, logging_recipe])

        recommended: list[Recipe] = []
        if self._skip_logging_install:
            self._report(self.status.recipe_skipped, RecipeStatusEvent(recipe=logging_recipe))
        else:
            recommended.append(logging_recipe)

        # ── Recommendations ──
        self.phase = Phase.FETCH_RECOMMENDATIONS
        if not self.options.skip_discovery:
            recommended.extend(self._fetch_recommendations(ctx, manifest))

        # ── Selection ──
        self.phase = Phase.SELECT
        selected = self._filter_integrations(recommended)
        for_installation = [agent_recipe, *selected]
        self._report(self.status.recipes_selected, for_installation)

        # Logging is installed explicitly below
        integrations = [r for r in selected if r.name != LOGGING_RECIPE_NAME]

        # ── Mandatory installs ──
        self.phase = Phase.INSTALL_REQUIRED
        logger.debug("Installing infrastructure agent")
        entity_guid = self.execute_and_validate_with_progress(
            ctx, manifest, agent_recipe, mandatory=True
        )

        # A host entity now exists; application recipes can be recommended for it
        self._report_recommended(recommended, entity_guid)

        if not self._skip_logging_install:
            logger.debug("Installing logging")
            self._install_logging(ctx, manifest, logging_recipe, for_installation)

        # ── Best-effort installs ──
        self.phase = Phase.INSTALL_OPTIONAL
        if not self.options.skip_integrations:
            self._install_integrations(ctx, manifest, integrations)

    # ── Fetch / select ──────────────────────────────────────────

    def _fetch_recommendations(self, ctx: CancelContext, manifest: DiscoveryManifest) -> list[Recipe]:
        recommendations = self.recipe_fetcher.fetch_recommendations(ctx, manifest)

        filtered = []
        for r in recommendations:
            if r.name in (INFRA_AGENT_RECIPE_NAME, LOGGING_RECIPE_NAME):
                logger.debug("Skipping redundant recommendation %s", r.name)
                continue
            filtered.append(r)

        logger.debug("Recommended integrations: %s", [r.name for r in filtered])
        return filtered

    def _is_application_only(self, recipe: Recipe) -> bool:
        """Application recipes need an entity; only APM ones are installable here."""
        return (
            recipe.has_application_target_type
            and not recipe.is_apm
            and not self.options.include_application_recipes
        )

    def _filter_integrations(self, recommended: list[Recipe]) -> list[Recipe]:
        """Partition into candidates, prompt, and mark everything else SKIPPED."""
        candidates: list[Recipe] = []
        for r in recommended:
            if self._is_application_only(r):
                continue
            if self.options.skip_integrations or (self.options.skip_apm and r.is_apm):
                self._skip(r)
            else:
                candidates.append(r)

        labels = [r.display_name for r in candidates]
        if self.options.assume_yes:
            chosen = set(labels)
        elif labels:
            chosen = set(self.prompter.multi_select(SELECT_PROMPT, labels))
        else:
            chosen = set()

        selected = [r for r in candidates if r.display_name in chosen]
        selected_names = {r.name for r in selected}

        for r in candidates:
            if r.name not in selected_names:
                self._skip(r)

        logger.info("Selected %d of %d candidate recipe(s)", len(selected), len(candidates))
        return selected

    def _skip(self, recipe: Recipe) -> None:
        self._report(self.status.recipe_skipped, RecipeStatusEvent(recipe=recipe))
        if recipe.name == LOGGING_RECIPE_NAME:
            self._skip_logging_install = True

    def _report_recommended(self, recommended: list[Recipe], entity_guid: str) -> None:
        if not entity_guid:
            return
        for r in recommended:
            if self._is_application_only(r):
                self._report(
                    self.status.recipe_recommended,
                    RecipeStatusEvent(recipe=r, entity_guid=entity_guid),
                )

    # ── Install ─────────────────────────────────────────────────

    def _install_logging(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        recipes: list[Recipe],
    ) -> None:
        matches = self.file_filterer.filter(ctx, recipes)
        logger.debug("Found %d possible log match(es)", len(matches))

        accepted = [m for m in matches if self._user_accepts_log_file(m)]
        discovered = ",".join(m.file for m in accepted)
        recipe.set_recipe_var(DISCOVERED_LOG_FILES_VAR, discovered)
        logger.debug("%s=%s", DISCOVERED_LOG_FILES_VAR, discovered)

        self.execute_and_validate_with_progress(ctx, manifest, recipe, mandatory=True)

    def _user_accepts_log_file(self, match: LogMatch) -> bool:
        if self.options.assume_yes:
            return True
        return self.prompter.prompt_yes_no(
            f"Files have been found at the following pattern: {match.file} "
            "Do you want to watch them?"
        )

    def _install_integrations(
        self, ctx: CancelContext, manifest: DiscoveryManifest, recipes: list[Recipe]
    ) -> None:
        for r in recipes:
            try:
                self.execute_and_validate_with_progress(ctx, manifest, r, mandatory=False)
            except InterruptError:
                raise
            except InstallError as e:
                logger.warning("Could not install %s, continuing: %s", r.display_name, e)

    def execute_and_validate_with_progress(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        *,
        mandatory: bool,
    ) -> str:
        """Execute one recipe, validate it and report the outcome.

        Returns the entity GUID of the validated resource ("" if none).
        Any InstallError from preparation, execution or validation is
        reported as FAILED and re-raised; status-report errors only
        propagate when ``mandatory``.
        """
        with log_context(recipe=recipe.name):
            return self._execute_and_validate(ctx, manifest, recipe, mandatory=mandatory)

    def _execute_and_validate(
        self,
        ctx: CancelContext,
        manifest: DiscoveryManifest,
        recipe: Recipe,
        *,
        mandatory: bool,
    ) -> str:
        ctx.check()
        self._report(self.status.recipe_installing, RecipeStatusEvent(recipe=recipe), fatal=mandatory)

        if recipe.pre_install.strip():
            self.progress.info(recipe.pre_install.strip())

        msg = f"Installing {recipe.display_name}"
        self.progress.start(msg)
        validation_started: float | None = None
        try:
            variables = self.recipe_executor.prepare(
                ctx, manifest, recipe, self.options.assume_yes, self.options.license_key
            )
            self.recipe_executor.execute(ctx, manifest, recipe, variables)

            validation_started = time.monotonic()
            entity_guid = self._validate(ctx, manifest, recipe)
        except InterruptError:
            self.progress.fail(msg)
            raise
        except InstallError as e:
            self.progress.fail(msg)
            if isinstance(e, ValidationQueryFailedError):
                logger.error("Validation backend error for %s: %s", recipe.name, e.reason)
            else:
                logger.debug("Recipe %s failed: %s", recipe.name, e)
            self._report_failure(recipe, e, _elapsed_ms(validation_started), fatal=mandatory)
            raise

        self.progress.success(msg)
        self._report(
            self.status.recipe_installed,
            RecipeStatusEvent(
                recipe=recipe,
                entity_guid=entity_guid,
                validation_duration_ms=_elapsed_ms(validation_started),
            ),
            fatal=mandatory,
        )

        if recipe.post_install.strip():
            self.progress.info(recipe.post_install.strip())
        return entity_guid

    def _validate(self, ctx: CancelContext, manifest: DiscoveryManifest, recipe: Recipe) -> str:
        if not recipe.validation_nrql:
            logger.warning("%s has no validation query, skipping validation", recipe.name)
            return ""
        return self.recipe_validator.validate(ctx, manifest, recipe)

    # ── Status reporting ────────────────────────────────────────

    def _report_failure(
        self, recipe: Recipe, error: InstallError, duration_ms: int | None, *, fatal: bool
    ) -> None:
        event = RecipeStatusEvent(recipe=recipe, msg=str(error), validation_duration_ms=duration_ms)
        try:
            self._report(self.status.recipe_failed, event, fatal=fatal)
        except StatusReportError as report_error:
            # The recipe error is what the caller sees
            logger.warning("Could not report failure of %s: %s", recipe.name, report_error)
            self.report_errors.append(report_error)

    def _report(self, operation: Callable[..., None], *args: Any, fatal: bool = False) -> None:
        try:
            operation(*args)
        except StatusReportError as e:
            if fatal:
                raise
            logger.warning("Status reporting failed: %s", e)
            self.report_errors.append(e)


def _elapsed_ms(started: float | None) -> int | None:
    if started is None:
        return None
    return int((time.monotonic() - started) * 1000)


# ── Result ──────────────────────────────────────────────────────


@dataclass
class InstallResult:
    """Outcome of a guided install, for the CLI."""

    outcome: InstallOutcome = InstallOutcome.IN_PROGRESS
    phase: str = ""
    error: str | None = None
    success_link: str | None = None
    statuses: list[dict] = field(default_factory=list)
    report_errors: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.outcome == InstallOutcome.COMPLETE:
            return 0
        if self.outcome == InstallOutcome.CANCELED:
            return 130
        return 1

    def to_dict(self) -> dict:
        result: dict = {
            "outcome": self.outcome.value,
            "phase": self.phase,
            "statuses": self.statuses,
        }
        if self.error:
            result["error"] = self.error
        if self.success_link:
            result["success_link"] = self.success_link
        if self.report_errors:
            result["report_errors"] = self.report_errors
        return result


def run_install(installer: RecipeInstaller, ctx: CancelContext) -> InstallResult:
    """Run ``installer`` and fold every outcome into an InstallResult."""
    result = InstallResult()
    try:
        installer.install(ctx)
    except InstallError as e:
        result.error = str(e)

    status = installer.status
    result.outcome = status.outcome
    if result.error and not status.is_terminal:
        # Aborted before any recipe ran; nothing terminal was reported
        result.outcome = InstallOutcome.FAILED
    result.phase = installer.phase.value
    result.success_link = status.success_link
    result.statuses = [row.model_dump(mode="json") for row in status.statuses]
    result.report_errors = [str(e) for e in installer.report_errors]
    return result


# ── Wiring ──────────────────────────────────────────────────────


def build_validator(settings: ValidationSettings, client: QueryClient) -> PollingRecipeValidator:
    """Polling validator configured from the ``validation`` section."""
    entity_lookup = None
    if settings.entity_lookup_query:
        entity_lookup = QueryEntityLookup(
            client, settings.entity_lookup_query, settings.entity_guid_field
        )
    return PollingRecipeValidator(
        client,
        max_attempts=settings.max_attempts,
        schedule=PollSchedule(
            interval=settings.interval_seconds,
            multiplier=settings.backoff_multiplier,
            max_interval=settings.max_interval_seconds,
        ),
        count_field=settings.count_field,
        entity_guid_field=settings.entity_guid_field,
        entity_lookup=entity_lookup,
    )


def build_installer(
    config: InstallerConfig,
    options: InstallOptions,
    env: dict[str, str] | None = None,
) -> RecipeInstaller:
    """Wire the production collaborators from configuration.

    Raises:
        ConfigError: If no query backend is configured.
    """
    from guided_install.adapters.catalog import FileRecipeFetcher
    from guided_install.adapters.discovery import GlobFileFilterer, HostDiscoverer
    from guided_install.adapters.prompts import ClickPrompter, PlainProgress
    from guided_install.adapters.query import HttpQueryClient
    from guided_install.adapters.shell import ShellRecipeExecutor
    from guided_install.core.engine.status_reporter import ScopedStatusReporter
    from guided_install.core.engine.subscribers import TerminalStatusReporter
    from guided_install.core.engine.success_link import RedirectLinkGenerator
    from guided_install.core.persistence.status_store import FileStatusStoreClient

    if not config.query.url:
        raise ConfigError(
            "No query backend configured: set query.url in installer.yml or GI_QUERY_URL"
        )

    env = os.environ if env is None else env
    client = HttpQueryClient(
        config.query.url,
        api_key=env.get(config.query.api_key_env, ""),
        timeout=config.query.timeout_seconds,
    )

    store = FileStatusStoreClient(config.resolve_path(config.status_store.path))
    status = InstallStatus(
        [
            TerminalStatusReporter(),
            ScopedStatusReporter(store, config.status_store.collection),
        ],
        RedirectLinkGenerator(config.link_base_url),
    )

    return RecipeInstaller(
        options,
        discoverer=HostDiscoverer(),
        recipe_fetcher=FileRecipeFetcher(config.resolve_path(config.catalog.recipes_dir)),
        file_filterer=GlobFileFilterer(),
        recipe_executor=ShellRecipeExecutor(),
        recipe_validator=build_validator(config.validation, client),
        status=status,
        prompter=ClickPrompter(),
        progress=PlainProgress(),
    )
