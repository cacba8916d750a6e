"""
Host adapters — discovery and log file matching on the local machine.
"""

from __future__ import annotations

import glob
import logging
import platform
import socket

import distro

from guided_install.adapters.base import Discoverer, FileFilterer
from guided_install.core.context import CancelContext
from guided_install.core.errors import DiscoveryFailedError
from guided_install.core.models.manifest import DiscoveryManifest
from guided_install.core.models.recipe import LogMatch, Recipe

logger = logging.getLogger(__name__)


class HostDiscoverer(Discoverer):
    """Builds the manifest from ``platform``, ``socket`` and ``distro``."""

    def discover(self, ctx: CancelContext) -> DiscoveryManifest:
        ctx.check()
        try:
            system = platform.system().lower()
            if system == "linux":
                platform_name = distro.id() or system
                platform_version = distro.version() or platform.version()
            else:
                platform_name = system
                platform_version = platform.version()

            manifest = DiscoveryManifest(
                hostname=socket.gethostname(),
                os=system,
                platform=platform_name,
                platform_version=platform_version,
                kernel_version=platform.release(),
                kernel_arch=platform.machine().lower(),
            )
        except OSError as e:
            raise DiscoveryFailedError(f"host discovery failed: {e}") from e

        logger.info(
            "Discovered host %s (%s %s, %s)",
            manifest.hostname, manifest.platform, manifest.platform_version, manifest.kernel_arch,
        )
        return manifest


class GlobFileFilterer(FileFilterer):
    """Keeps the log patterns that match at least one existing file."""

    def filter(self, ctx: CancelContext, recipes: list[Recipe]) -> list[LogMatch]:
        matches: list[LogMatch] = []
        seen: set[str] = set()

        for recipe in recipes:
            for pattern in recipe.log_match:
                ctx.check()
                if not pattern.file or pattern.file in seen:
                    continue
                if glob.glob(pattern.file):
                    seen.add(pattern.file)
                    matches.append(pattern)
                    logger.debug("Log pattern %s matched (%s)", pattern.file, recipe.name)

        return matches
