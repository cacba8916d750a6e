"""guided-install: guided installation of monitoring agents and integrations."""

__version__ = "0.1.0"
