"""
Status models — recipe outcomes and the events that carry them.

RecipeStatusEvent is produced once per transition per recipe and
delivered to every status subscriber. RecipeStatus is the row the
InstallStatus aggregate keeps per recipe name.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from guided_install.core.models.recipe import Recipe


class RecipeStatusType(StrEnum):
    """Per-recipe outcome."""

    AVAILABLE = "AVAILABLE"
    SELECTED = "SELECTED"
    RECOMMENDED = "RECOMMENDED"
    SKIPPED = "SKIPPED"
    INSTALLING = "INSTALLING"
    INSTALLED = "INSTALLED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


class InstallOutcome(StrEnum):
    """Overall outcome of an install run."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    CANCELED = "CANCELED"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self != InstallOutcome.IN_PROGRESS


class RecipeStatusEvent(BaseModel):
    """A single recipe transition."""

    recipe: Recipe
    entity_guid: str = ""
    msg: str = ""
    validation_duration_ms: int | None = None


class RecipeStatus(BaseModel):
    """Current outcome of one recipe within the aggregate."""

    name: str
    display_name: str = ""
    status: RecipeStatusType
    entity_guid: str = ""
    error: str = ""
    validation_duration_ms: int | None = None
