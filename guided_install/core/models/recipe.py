"""
Recipe model — an installable unit from the catalog.

Recipes are fetched once and treated as read-only afterwards. The
single exception is variable injection: the orchestrator writes
discovered values (e.g. accepted log files) into ``vars`` right
before execution.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

# Well-known catalog names handled explicitly by the guided flow
INFRA_AGENT_RECIPE_NAME = "infrastructure-agent-installer"
LOGGING_RECIPE_NAME = "logs-integration"

# Recipe variable receiving the accepted log files (comma separated)
DISCOVERED_LOG_FILES_VAR = "DISCOVERED_LOG_FILES"


class TargetType(StrEnum):
    """What a recipe instruments."""

    HOST = "host"
    APPLICATION = "application"


class LogMatch(BaseModel):
    """A named log file pattern a recipe can forward."""

    name: str = ""
    file: str = ""        # glob pattern or concrete path


class SuccessLinkConfig(BaseModel):
    """How to build the post-install link for this recipe."""

    type: str = ""        # "explorer" or "" (entity redirect)
    filter: str = ""


class Recipe(BaseModel):
    """An installable agent or integration."""

    name: str
    display_name: str = ""
    description: str = ""
    target_type: TargetType = TargetType.HOST
    keywords: list[str] = Field(default_factory=list)
    os: list[str] = Field(default_factory=list)        # empty = any OS

    # Validation
    validation_nrql: str = ""

    # Logging
    log_match: list[LogMatch] = Field(default_factory=list)

    # Execution (opaque to the orchestrator)
    vars: dict[str, str] = Field(default_factory=dict)
    install_steps: list[str] = Field(default_factory=list)
    pre_install: str = ""
    post_install: str = ""

    success_link: SuccessLinkConfig | None = None

    def model_post_init(self, __context: object) -> None:
        if not self.display_name:
            self.display_name = self.name

    @property
    def is_apm(self) -> bool:
        """APM recipes are tagged with the ``apm`` keyword."""
        return any(k.lower() == "apm" for k in self.keywords)

    @property
    def has_application_target_type(self) -> bool:
        return self.target_type == TargetType.APPLICATION

    def supports_os(self, os_name: str) -> bool:
        if not self.os:
            return True
        return os_name.lower() in (o.lower() for o in self.os)

    def set_recipe_var(self, key: str, value: str) -> None:
        """Inject a recipe-scoped variable before execution."""
        self.vars[key] = value
