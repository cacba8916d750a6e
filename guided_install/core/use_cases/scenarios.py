"""
Scenarios — canned installer wirings for demos and manual testing.

Each scenario runs the real orchestrator, InstallStatus, terminal
reporter and polling validator against in-memory collaborators, so
the whole guided flow can be exercised on any machine without
touching the host or a backend. Validation succeeds on the second
attempt in every scenario.
"""

from __future__ import annotations

from enum import StrEnum

from guided_install.adapters.base import FileFilterer, ProgressIndicator, Prompter
from guided_install.adapters.discovery import GlobFileFilterer
from guided_install.adapters.mock import (
    MockDiscoverer,
    MockFailingRecipeExecutor,
    MockFileFilterer,
    MockQueryClient,
    MockRecipeExecutor,
    MockRecipeFetcher,
    MockStatusReporter,
)
from guided_install.adapters.prompts import ClickPrompter, PlainProgress
from guided_install.core.engine.status import InstallStatus
from guided_install.core.engine.subscribers import TerminalStatusReporter
from guided_install.core.engine.success_link import RedirectLinkGenerator
from guided_install.core.engine.validator import PollingRecipeValidator
from guided_install.core.models.options import InstallOptions
from guided_install.core.models.recipe import (
    INFRA_AGENT_RECIPE_NAME,
    LOGGING_RECIPE_NAME,
    LogMatch,
    Recipe,
    SuccessLinkConfig,
)
from guided_install.core.reliability.backoff import PollSchedule
from guided_install.core.use_cases.install import RecipeInstaller

SCENARIO_LINK_BASE_URL = "https://one.newrelic.com"
SCENARIO_MAX_ATTEMPTS = 3
SCENARIO_POLL_INTERVAL = 0.1

EMPTY_RESULTS = [{"count": 0.0}]
NON_EMPTY_RESULTS = [{"count": 1.0}]


class Scenario(StrEnum):
    BASIC = "BASIC"
    LOG_MATCHES = "LOG_MATCHES"
    FAIL = "FAIL"
    CANCELED = "CANCELED"
    DISPLAY_EXPLORER_LINK = "DISPLAY_EXPLORER_LINK"


CANCELED_RECIPE_NAME = "test-canceled-installation"
EXPLORER_LINK_RECIPE_NAME = "test-display-explorer-link"


def scenario_names() -> list[str]:
    return [s.value for s in Scenario]


def _agent_recipe() -> Recipe:
    return Recipe(
        name=INFRA_AGENT_RECIPE_NAME,
        display_name="Infrastructure Agent",
        validation_nrql="test NRQL",
        pre_install=(
            "This is the Infrastructure Agent Installer preinstall message.\n"
            "It is made up of a multi line string."
        ),
        post_install=(
            "This is the Infrastructure Agent Installer postinstall message.\n"
            "It is made up of a multi line string."
        ),
    )


def _logging_recipe() -> Recipe:
    return Recipe(
        name=LOGGING_RECIPE_NAME,
        display_name="Logs integration",
        validation_nrql="test NRQL",
        log_match=[LogMatch(name="docker log", file="/var/lib/docker/containers/*/*.log")],
    )


def _recommendations(scenario: Scenario) -> list[Recipe]:
    if scenario == Scenario.CANCELED:
        return [Recipe(
            name=CANCELED_RECIPE_NAME,
            display_name="Test Canceled Installation",
            validation_nrql="test NRQL",
        )]
    if scenario == Scenario.DISPLAY_EXPLORER_LINK:
        return [Recipe(
            name=EXPLORER_LINK_RECIPE_NAME,
            display_name="Test Display Explorer Link",
            validation_nrql="test NRQL",
            success_link=SuccessLinkConfig(type="explorer", filter="\"`tags.language` = 'java'\""),
        )]
    return [Recipe(
        name="recommended-recipe",
        display_name="Recommended recipe",
        validation_nrql="test NRQL",
    )]


def build_scenario(
    name: str,
    options: InstallOptions | None = None,
    *,
    prompter: Prompter | None = None,
    progress: ProgressIndicator | None = None,
) -> RecipeInstaller:
    """Wire an installer for scenario ``name``.

    Raises:
        ValueError: If ``name`` is not a known scenario.
    """
    try:
        scenario = Scenario(name.upper())
    except ValueError:
        raise ValueError(
            f"unknown scenario '{name}' (expected one of: {', '.join(scenario_names())})"
        ) from None

    fetcher = MockRecipeFetcher(
        fetch_recipe_vals=[_agent_recipe(), _logging_recipe()],
        fetch_recommendations_val=_recommendations(scenario),
    )

    client = MockQueryClient()
    client.return_results_after_n_attempts(EMPTY_RESULTS, NON_EMPTY_RESULTS, 2)
    validator = PollingRecipeValidator(
        client,
        max_attempts=SCENARIO_MAX_ATTEMPTS,
        schedule=PollSchedule(interval=SCENARIO_POLL_INTERVAL),
    )

    if scenario == Scenario.FAIL:
        executor: MockRecipeExecutor = MockFailingRecipeExecutor()
    else:
        executor = MockRecipeExecutor()
    if scenario == Scenario.CANCELED:
        executor.set_interrupt(CANCELED_RECIPE_NAME)

    file_filterer: FileFilterer
    if scenario == Scenario.LOG_MATCHES:
        file_filterer = MockFileFilterer([LogMatch(name="asdf", file="asdf")])
    else:
        file_filterer = GlobFileFilterer()

    status = InstallStatus(
        [MockStatusReporter(), TerminalStatusReporter()],
        RedirectLinkGenerator(SCENARIO_LINK_BASE_URL),
    )

    return RecipeInstaller(
        options or InstallOptions(),
        discoverer=MockDiscoverer(),
        recipe_fetcher=fetcher,
        file_filterer=file_filterer,
        recipe_executor=executor,
        recipe_validator=validator,
        status=status,
        prompter=prompter or ClickPrompter(),
        progress=progress or PlainProgress(),
    )
