"""
InstallOptions — automation flags for one guided install run.

Loaded from the ``options`` section of installer.yml and overridden
by CLI flags.
"""

from __future__ import annotations

from pydantic import BaseModel


class InstallOptions(BaseModel):
    """Flags steering selection and prompting."""

    assume_yes: bool = False                    # no prompts, select everything
    skip_discovery: bool = False                # don't fetch recommendations
    skip_logging_install: bool = False
    skip_integrations: bool = False
    skip_apm: bool = False
    skip_infra: bool = False                    # targeted installs only
    include_application_recipes: bool = False   # offer app-scoped recipes too
    license_key: str = ""
