"""
Status subscribers — observers of every InstallStatus transition.

InstallStatus calls each subscriber synchronously, in the order they
were given at construction. Subscribers receive the aggregate as a
read-only view and must not mutate it. A subscriber signals failure
by raising; InstallStatus collects the error and keeps notifying the
rest.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import click

from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe
from guided_install.core.models.status import RecipeStatusEvent, RecipeStatusType

if TYPE_CHECKING:
    from guided_install.core.engine.status import InstallStatus

logger = logging.getLogger(__name__)


class StatusSubscriber(ABC):
    """Receives one call per InstallStatus operation."""

    @abstractmethod
    def discovery_complete(self, status: InstallStatus, manifest: DiscoveryManifest) -> None: ...

    @abstractmethod
    def recipes_available(self, status: InstallStatus, recipes: list[Recipe]) -> None: ...

    @abstractmethod
    def recipes_selected(self, status: InstallStatus, recipes: list[Recipe]) -> None: ...

    @abstractmethod
    def recipe_recommended(self, status: InstallStatus, event: RecipeStatusEvent) -> None: ...

    @abstractmethod
    def recipe_installing(self, status: InstallStatus, event: RecipeStatusEvent) -> None: ...

    @abstractmethod
    def recipe_installed(self, status: InstallStatus, event: RecipeStatusEvent) -> None: ...

    @abstractmethod
    def recipe_failed(self, status: InstallStatus, event: RecipeStatusEvent) -> None: ...

    @abstractmethod
    def recipe_skipped(self, status: InstallStatus, event: RecipeStatusEvent) -> None: ...

    @abstractmethod
    def install_complete(self, status: InstallStatus) -> None: ...

    @abstractmethod
    def install_canceled(self, status: InstallStatus) -> None: ...

    @abstractmethod
    def install_failed(self, status: InstallStatus, error: Exception) -> None: ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class TerminalStatusReporter(StatusSubscriber):
    """Human-readable progress on the terminal."""

    def discovery_complete(self, status: InstallStatus, manifest: DiscoveryManifest) -> None:
        pass

    def recipes_available(self, status: InstallStatus, recipes: list[Recipe]) -> None:
        pass

    def recipes_selected(self, status: InstallStatus, recipes: list[Recipe]) -> None:
        if not recipes:
            return
        click.secho("The following will be installed:", fg="cyan", bold=True)
        for r in recipes:
            click.echo(f"   • {r.display_name}")
        click.echo()

    def recipe_recommended(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        pass

    def recipe_installing(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        pass

    def recipe_installed(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        click.secho(f"   ✅ {event.recipe.display_name} installed", fg="green")

    def recipe_failed(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        click.secho(f"   ❌ {event.recipe.display_name} failed", fg="red")
        if event.msg:
            click.echo(f"      {event.msg}")

    def recipe_skipped(self, status: InstallStatus, event: RecipeStatusEvent) -> None:
        pass

    def install_complete(self, status: InstallStatus) -> None:
        click.echo()
        click.secho("Installation complete.", fg="green", bold=True)
        self._print_summary(status)
        if status.success_link:
            click.echo()
            click.echo(f"View your data at: {status.success_link}")

    def install_canceled(self, status: InstallStatus) -> None:
        click.echo()
        click.secho("Installation canceled.", fg="yellow", bold=True)

    def install_failed(self, status: InstallStatus, error: Exception) -> None:
        click.echo()
        click.secho(f"Installation failed: {error}", fg="red", bold=True)

    def _print_summary(self, status: InstallStatus) -> None:
        icons = {
            RecipeStatusType.INSTALLED: "✅",
            RecipeStatusType.FAILED: "❌",
            RecipeStatusType.SKIPPED: "⏭️",
            RecipeStatusType.RECOMMENDED: "💡",
        }
        for row in status.statuses:
            icon = icons.get(row.status)
            if icon is None:
                continue
            click.echo(f"   {icon} {row.display_name:<40} {row.status.value.lower()}")
