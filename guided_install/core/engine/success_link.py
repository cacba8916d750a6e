"""
Success link — the "go look at your data" URL shown after an install.

Generators are pluggable and may legitimately return None when the
run produced nothing worth linking to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from urllib.parse import quote

from guided_install.core.models.status import RecipeStatusType

if TYPE_CHECKING:
    from guided_install.core.engine.status import InstallStatus

EXPLORER_LINK_TYPE = "explorer"


class SuccessLinkGenerator(ABC):
    """Derives a user-facing link from the current status."""

    @abstractmethod
    def generate(self, status: InstallStatus) -> str | None:
        """Return a link, or None when conditions for a link are unmet."""


class RedirectLinkGenerator(SuccessLinkGenerator):
    """Explorer link for recipes that ask for one, else an entity redirect.

    Args:
        base_url: UI origin, e.g. ``https://one.newrelic.com``.
    """

    def __init__(self, base_url: str):
        self._base_url = base_url.rstrip("/")

    def generate(self, status: InstallStatus) -> str | None:
        installed = status.recipes_with_status(RecipeStatusType.INSTALLED)
        if not installed:
            return None

        for name in installed:
            recipe = status.find_recipe(name)
            if recipe and recipe.success_link and recipe.success_link.type == EXPLORER_LINK_TYPE:
                return f"{self._base_url}/explorer?filter={quote(recipe.success_link.filter, safe='')}"

        if status.entity_guids:
            return f"{self._base_url}/redirect/entity/{status.entity_guids[0]}"

        return None
