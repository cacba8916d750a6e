"""
Guided Install — CLI entrypoint.

Usage:
    guided-install --help
    guided-install install --assume-yes
    guided-install scenario BASIC
    guided-install status --json
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable

import click

from guided_install import __version__
from guided_install.core.observability.logging_config import resolve_level, setup_logging

# Flag name → InstallOptions field
_OPTION_FLAGS: dict[str, str] = {
    "assume_yes": "assume_yes",
    "skip_discovery": "skip_discovery",
    "skip_logging": "skip_logging_install",
    "skip_integrations": "skip_integrations",
    "skip_apm": "skip_apm",
    "skip_infra": "skip_infra",
    "include_app_recipes": "include_application_recipes",
}


@click.group()
@click.version_option(version=__version__, prog_name="guided-install")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to installer.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Guided Install — install and validate monitoring agents on this host."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("GI_LOG_LEVEL")),
        log_file=os.environ.get("GI_LOG_FILE"),
        log_file_level=os.environ.get("GI_LOG_FILE_LEVEL"),
    )


def _install_flags(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``install`` and ``scenario``."""
    decorators = [
        click.option("--assume-yes", "-y", is_flag=True, help="Answer yes to every prompt."),
        click.option("--skip-discovery", is_flag=True, help="Don't fetch recommendations."),
        click.option("--skip-logging", is_flag=True, help="Don't install the logging recipe."),
        click.option("--skip-integrations", is_flag=True, help="Install only the mandatory recipes."),
        click.option("--skip-apm", is_flag=True, help="Skip APM recipes."),
        click.option("--skip-infra", is_flag=True, help="Targeted installs only (rejected here)."),
        click.option(
            "--include-app-recipes", is_flag=True,
            help="Offer application-scoped recipes too.",
        ),
        click.option("--license-key", default=None, envvar="GI_LICENSE_KEY", help="License key."),
        click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def _merge_options(base, flags: dict[str, Any]):
    """Apply CLI flags on top of the configured default options."""
    from guided_install.core.models.options import InstallOptions

    data = base.model_dump() if base is not None else {}
    for flag, field_name in _OPTION_FLAGS.items():
        if flags.get(flag):
            data[field_name] = True
    if flags.get("license_key"):
        data["license_key"] = flags["license_key"]
    return InstallOptions.model_validate(data)


def _run_and_exit(installer, as_json: bool) -> None:
    from guided_install.core.context import CancelContext, install_signal_handlers
    from guided_install.core.models.status import InstallOutcome
    from guided_install.core.use_cases.install import run_install

    cancel_ctx = CancelContext()
    restore_signals = install_signal_handlers(cancel_ctx)
    try:
        result = run_install(installer, cancel_ctx)
    finally:
        restore_signals()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.error and result.outcome != InstallOutcome.CANCELED:
        click.secho(f"❌ {result.error}", fg="red", err=True)

    for err in result.report_errors:
        click.secho(f"⚠️  Status reporting: {err}", fg="yellow", err=True)

    sys.exit(result.exit_code)


@cli.command()
@_install_flags
@click.pass_context
def install(ctx: click.Context, as_json: bool, **flags: Any) -> None:
    """Run the guided installation on this host."""
    from guided_install.core.config.loader import ConfigError, load_config
    from guided_install.core.use_cases.install import build_installer

    try:
        config = load_config(ctx.obj.get("config_path"))
        installer = build_installer(config, _merge_options(config.options, flags))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    _run_and_exit(installer, as_json)


@cli.command()
@click.argument("name")
@_install_flags
@click.pass_context
def scenario(ctx: click.Context, name: str, as_json: bool, **flags: Any) -> None:
    """Run a canned scenario against in-memory collaborators.

    NAME is one of BASIC, LOG_MATCHES, FAIL, CANCELED, DISPLAY_EXPLORER_LINK.
    """
    from guided_install.core.use_cases.scenarios import build_scenario

    try:
        installer = build_scenario(name, _merge_options(None, flags))
    except ValueError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)

    _run_and_exit(installer, as_json)


# ── Register sub-command groups from guided_install/ui/cli/ ─────

from guided_install.ui.cli.status import status  # noqa: E402

cli.add_command(status)


if __name__ == "__main__":
    cli()
