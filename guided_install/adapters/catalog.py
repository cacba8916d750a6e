"""
Recipe catalog — loads recipe definitions from YAML files.

Recipes live in <recipes_dir>/<name>.yml, one recipe per file. The
directory is read once, on first use, into a registry keyed by name.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from guided_install.adapters.base import RecipeFetcher
from guided_install.core.context import CancelContext
from guided_install.core.errors import FetchFailedError, RecipeNotFoundError
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import Recipe

logger = logging.getLogger(__name__)


def load_recipe(path: Path) -> Recipe | None:
    """Load a single recipe from a YAML file.

    Returns:
        Recipe model, or None if the file is not a valid recipe.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load recipe from %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Recipe file %s is not a mapping, skipping", path)
        return None

    try:
        recipe = Recipe.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid recipe in %s: %s", path, e)
        return None

    logger.debug("Loaded recipe: %s from %s", recipe.name, path)
    return recipe


def discover_recipes(recipes_dir: Path) -> dict[str, Recipe]:
    """Load every ``*.yml`` / ``*.yaml`` recipe under ``recipes_dir``.

    Raises:
        FetchFailedError: If the directory does not exist or cannot be listed.
    """
    if not recipes_dir.is_dir():
        raise FetchFailedError(f"recipe catalog not found: {recipes_dir}")

    recipes: dict[str, Recipe] = {}
    try:
        files = sorted(p for p in recipes_dir.iterdir() if p.suffix in (".yml", ".yaml"))
    except OSError as e:
        raise FetchFailedError(f"cannot read recipe catalog {recipes_dir}: {e}") from e

    for path in files:
        recipe = load_recipe(path)
        if recipe is None:
            continue
        if recipe.name in recipes:
            logger.warning("Duplicate recipe '%s' in %s, keeping the first", recipe.name, path)
            continue
        recipes[recipe.name] = recipe

    logger.info("Discovered %d recipes: %s", len(recipes), list(recipes.keys()))
    return recipes


class FileRecipeFetcher(RecipeFetcher):
    """Catalog backed by a directory of recipe YAML files."""

    def __init__(self, recipes_dir: Path):
        self._recipes_dir = Path(recipes_dir)
        self._registry: dict[str, Recipe] | None = None

    def _load(self) -> dict[str, Recipe]:
        if self._registry is None:
            self._registry = discover_recipes(self._recipes_dir)
        return self._registry

    def fetch_recipe(self, ctx: CancelContext, manifest: DiscoveryManifest, name: str) -> Recipe:
        ctx.check()
        recipe = self._load().get(name)
        if recipe is None:
            raise RecipeNotFoundError(name)
        # Callers inject vars; hand out copies so the registry stays pristine
        return recipe.model_copy(deep=True)

    def fetch_recommendations(self, ctx: CancelContext, manifest: DiscoveryManifest) -> list[Recipe]:
        ctx.check()
        return [
            r.model_copy(deep=True)
            for r in self._load().values()
            if r.supports_os(manifest.os)
        ]
