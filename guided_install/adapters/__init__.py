"""Adapters — collaborators of the install core.

Public re-exports for convenient access.
"""

from guided_install.adapters.base import (
    Discoverer,
    EntityLookup,
    FileFilterer,
    ProgressIndicator,
    Prompter,
    QueryClient,
    RecipeExecutor,
    RecipeFetcher,
    StatusStoreClient,
)
from guided_install.adapters.catalog import FileRecipeFetcher
from guided_install.adapters.discovery import GlobFileFilterer, HostDiscoverer
from guided_install.adapters.prompts import ClickPrompter, PlainProgress
from guided_install.adapters.query import HttpQueryClient
from guided_install.adapters.shell import ShellRecipeExecutor

__all__ = [
    "ClickPrompter",
    "Discoverer",
    "EntityLookup",
    "FileFilterer",
    "FileRecipeFetcher",
    "GlobFileFilterer",
    "HostDiscoverer",
    "HttpQueryClient",
    "PlainProgress",
    "ProgressIndicator",
    "Prompter",
    "QueryClient",
    "RecipeExecutor",
    "RecipeFetcher",
    "ShellRecipeExecutor",
    "StatusStoreClient",
]
