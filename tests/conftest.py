"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from guided_install.adapters.mock import (
    MockDiscoverer,
    MockFileFilterer,
    MockProgress,
    MockPrompter,
    MockRecipeExecutor,
    MockRecipeFetcher,
    MockRecipeValidator,
    MockStatusReporter,
)
from guided_install.core.context import CancelContext
from guided_install.core.engine.status import InstallStatus
from guided_install.core.engine.subscribers import StatusSubscriber
from guided_install.core.engine.success_link import RedirectLinkGenerator
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.options import InstallOptions
from guided_install.core.models.recipe import (
    INFRA_AGENT_RECIPE_NAME,
    LOGGING_RECIPE_NAME,
    LogMatch,
    Recipe,
)
from guided_install.core.use_cases.install import RecipeInstaller

LINK_BASE_URL = "https://one.example.com"


class InstallRig:
    """Mock collaborators around a RecipeInstaller.

    Tests tweak the doubles first, then call ``installer(**options)``.
    """

    def __init__(self) -> None:
        self.agent = Recipe(
            name=INFRA_AGENT_RECIPE_NAME,
            display_name="Infrastructure Agent",
            validation_nrql="SELECT count(*) FROM SystemSample WHERE hostname = '{{HOSTNAME}}'",
        )
        self.logging = Recipe(
            name=LOGGING_RECIPE_NAME,
            display_name="Logs integration",
            validation_nrql="SELECT count(*) FROM Log WHERE hostname = '{{HOSTNAME}}'",
            log_match=[LogMatch(name="syslog", file="/var/log/syslog")],
        )
        self.ctx = CancelContext()
        self.discoverer = MockDiscoverer()
        self.fetcher = MockRecipeFetcher([self.agent, self.logging])
        self.filterer = MockFileFilterer()
        self.executor = MockRecipeExecutor()
        self.validator = MockRecipeValidator()
        self.prompter = MockPrompter()
        self.progress = MockProgress()
        self.reporter = MockStatusReporter()
        self.subscribers: list[StatusSubscriber] = [self.reporter]

    def recommend(self, *recipes: Recipe) -> None:
        self.fetcher.fetch_recommendations_val.extend(recipes)

    def installer(self, **options) -> RecipeInstaller:
        status = InstallStatus(self.subscribers, RedirectLinkGenerator(LINK_BASE_URL))
        return RecipeInstaller(
            InstallOptions(**options),
            discoverer=self.discoverer,
            recipe_fetcher=self.fetcher,
            file_filterer=self.filterer,
            recipe_executor=self.executor,
            recipe_validator=self.validator,
            status=status,
            prompter=self.prompter,
            progress=self.progress,
        )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def ctx() -> CancelContext:
    return CancelContext()


@pytest.fixture
def manifest() -> DiscoveryManifest:
    return DiscoveryManifest(
        hostname="web-01",
        os="linux",
        platform="ubuntu",
        platform_version="22.04",
        kernel_version="5.15.0",
        kernel_arch="x86_64",
    )


@pytest.fixture
def rig() -> InstallRig:
    return InstallRig()


@pytest.fixture
def make_recipe():
    """Factory for integration recipes with a validation query."""

    def _make(name: str, **fields) -> Recipe:
        fields.setdefault("display_name", name.replace("-", " ").title())
        fields.setdefault("validation_nrql", f"SELECT count(*) FROM {name}")
        return Recipe(name=name, **fields)

    return _make


@pytest.fixture
def status() -> InstallStatus:
    """Status aggregate with no subscribers."""
    return InstallStatus([], RedirectLinkGenerator(LINK_BASE_URL))
