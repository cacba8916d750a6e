"""
DiscoveryManifest — host facts used to pick and run recipes.
"""

from __future__ import annotations

from pydantic import BaseModel


class DiscoveryManifest(BaseModel):
    """What discovery learned about the host."""

    hostname: str = ""
    os: str = ""                  # linux, darwin, windows
    platform: str = ""            # distribution name where known
    platform_version: str = ""
    kernel_version: str = ""
    kernel_arch: str = ""
