"""
Domain models — Pydantic types for the install core.

All models are re-exported here for convenient access:

    from guided_install.core.models import Recipe, RecipeStatusEvent, InstallOptions
"""

from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.options import InstallOptions
from guided_install.core.models.recipe import (
    DISCOVERED_LOG_FILES_VAR,
    INFRA_AGENT_RECIPE_NAME,
    LOGGING_RECIPE_NAME,
    LogMatch,
    Recipe,
    SuccessLinkConfig,
    TargetType,
)
from guided_install.core.models.status import (
    InstallOutcome,
    RecipeStatus,
    RecipeStatusEvent,
    RecipeStatusType,
)

__all__ = [
    # manifest.py
    "DiscoveryManifest",
    # options.py
    "InstallOptions",
    # recipe.py
    "DISCOVERED_LOG_FILES_VAR",
    "INFRA_AGENT_RECIPE_NAME",
    "LOGGING_RECIPE_NAME",
    "LogMatch",
    "Recipe",
    "SuccessLinkConfig",
    "TargetType",
    # status.py
    "InstallOutcome",
    "RecipeStatus",
    "RecipeStatusEvent",
    "RecipeStatusType",
]
