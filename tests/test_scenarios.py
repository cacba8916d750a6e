"""
Tests for the canned scenarios — full runs against in-memory collaborators.
"""

import pytest

from guided_install.adapters.mock import MockProgress, MockPrompter, MockStatusReporter
from guided_install.core.context import CancelContext
from guided_install.core.models.options import InstallOptions
from guided_install.core.models.recipe import DISCOVERED_LOG_FILES_VAR, LOGGING_RECIPE_NAME
from guided_install.core.models.status import InstallOutcome, RecipeStatusType
from guided_install.core.use_cases.install import run_install
from guided_install.core.use_cases.scenarios import (
    CANCELED_RECIPE_NAME,
    EXPLORER_LINK_RECIPE_NAME,
    Scenario,
    build_scenario,
    scenario_names,
)


def _run(name: str, **options):
    installer = build_scenario(
        name,
        InstallOptions(**options),
        prompter=MockPrompter(),
        progress=MockProgress(),
    )
    return installer, run_install(installer, CancelContext())


def _reporter(installer) -> MockStatusReporter:
    return next(s for s in installer.status.subscribers if isinstance(s, MockStatusReporter))


class TestScenarios:
    def test_names(self):
        assert scenario_names() == ["BASIC", "LOG_MATCHES", "FAIL", "CANCELED", "DISPLAY_EXPLORER_LINK"]

    def test_unknown_scenario(self):
        with pytest.raises(ValueError, match="unknown scenario"):
            build_scenario("NOPE")

    def test_name_is_case_insensitive(self):
        installer = build_scenario("basic", prompter=MockPrompter(), progress=MockProgress())
        assert installer.options == InstallOptions()

    def test_basic_completes(self):
        installer, result = _run(Scenario.BASIC, assume_yes=True)

        assert result.outcome == InstallOutcome.COMPLETE
        assert result.exit_code == 0
        assert installer.status.get_status("recommended-recipe") == RecipeStatusType.INSTALLED
        assert result.success_link is None

    def test_basic_shows_pre_and_post_install(self):
        installer, _ = _run(Scenario.BASIC, assume_yes=True)
        infos = [msg for kind, msg in installer.progress.messages if kind == "info"]
        assert any("preinstall message" in m for m in infos)
        assert any("postinstall message" in m for m in infos)

    def test_basic_prompts_without_assume_yes(self):
        installer, result = _run(Scenario.BASIC)
        assert result.outcome == InstallOutcome.COMPLETE
        assert installer.prompter.multi_select_calls == [["Logs integration", "Recommended recipe"]]

    def test_log_matches_injects_files(self):
        installer, result = _run(Scenario.LOG_MATCHES, assume_yes=True)

        assert result.outcome == InstallOutcome.COMPLETE
        logging_recipe = next(
            r for r in installer.recipe_executor.executed if r.name == LOGGING_RECIPE_NAME
        )
        assert logging_recipe.vars[DISCOVERED_LOG_FILES_VAR] == "asdf"

    def test_fail_aborts_on_agent(self):
        installer, result = _run(Scenario.FAIL, assume_yes=True)

        assert result.outcome == InstallOutcome.FAILED
        assert result.exit_code == 1
        assert "mock failure" in result.error
        assert installer.recipe_executor.execute_call_count == 1
        assert _reporter(installer).events[-1] == ("install_failed", [])

    def test_canceled(self):
        installer, result = _run(Scenario.CANCELED, assume_yes=True)

        assert result.outcome == InstallOutcome.CANCELED
        assert result.exit_code == 130
        assert installer.status.get_status(CANCELED_RECIPE_NAME) == RecipeStatusType.CANCELED
        assert installer.status.get_status(LOGGING_RECIPE_NAME) == RecipeStatusType.INSTALLED

    def test_display_explorer_link(self):
        installer, result = _run(Scenario.DISPLAY_EXPLORER_LINK, assume_yes=True)

        assert result.outcome == InstallOutcome.COMPLETE
        assert installer.status.get_status(EXPLORER_LINK_RECIPE_NAME) == RecipeStatusType.INSTALLED
        assert result.success_link.startswith("https://one.newrelic.com/explorer?filter=")
        assert "tags.language" in result.success_link
