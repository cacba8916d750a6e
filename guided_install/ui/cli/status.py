"""
CLI command for past install runs.

Thin wrapper over ``guided_install.core.persistence.status_store``.
"""

from __future__ import annotations

import json
import sys

import click

_OUTCOME_COLORS = {
    "COMPLETE": "green",
    "CANCELED": "yellow",
    "FAILED": "red",
    "IN_PROGRESS": "white",
}


@click.command()
@click.option("--limit", "-n", default=5, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show the most recent install runs recorded in the status store."""
    from guided_install.core.config.loader import ConfigError, load_config
    from guided_install.core.persistence.status_store import FileStatusStoreClient

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    store = FileStatusStoreClient(config.resolve_path(config.status_store.path))
    documents = store.list_user_documents(config.status_store.collection)[:limit]

    if as_json:
        click.echo(json.dumps(documents, indent=2))
        return

    if not documents:
        click.echo("No install runs recorded yet.")
        return

    for doc in documents:
        outcome = doc.get("outcome", "?")
        click.echo()
        click.secho(f"📋 {doc.get('document_id', '?')}", fg="cyan", bold=True)
        click.echo(f"   at {doc.get('timestamp', '?')}  ", nl=False)
        click.secho(outcome, fg=_OUTCOME_COLORS.get(outcome, "white"))

        for row in doc.get("statuses", []):
            click.echo(f"     • {row.get('display_name') or row.get('name')}: {row.get('status')}")

        if doc.get("error"):
            click.echo(f"   error: {doc['error']}")
        if doc.get("success_link"):
            click.echo(f"   🔗 {doc['success_link']}")

    click.echo()
