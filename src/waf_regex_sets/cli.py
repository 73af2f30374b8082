"""Command-line interface for declarative WAF regex set management."""

from __future__ import annotations

import logging
import sys
from typing import Any, NoReturn

import click
import yaml

from .config import SCOPE_GLOBAL, SCOPE_REGIONAL, ProviderConfig
from .exceptions import WafRegexSetsError
from .manifest import WafManifest
from .models import RegexMatchTuple, sorted_items
from .planner import (
    PlannedChange,
    apply_manifest,
    compute_destroy_plan,
    compute_plan,
    destroy_manifest,
    discover,
    list_remote_sets,
    refresh,
)
from .provider import Provider
from .resources import REGEX_MATCH_SET, REGEX_PATTERN_SET

RESOURCE_CHOICES = {
    "pattern-set": REGEX_PATTERN_SET,
    "match-set": REGEX_MATCH_SET,
}

ACTION_SYMBOLS = {"create": "+", "update": "~", "delete": "-", "noop": " "}


@click.group()
@click.version_option(package_name="waf-regex-sets")
@click.option(
    "--scope",
    type=click.Choice([SCOPE_GLOBAL, SCOPE_REGIONAL]),
    help="WAF scope (default: $WAF_REGEX_SETS_SCOPE or global).",
)
@click.option("--region", help="AWS region for the regional scope.")
@click.option("--endpoint-url", help="AWS endpoint URL (e.g., LocalStack).")
@click.option("--profile", help="AWS profile name.")
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output).")
@click.pass_context
def cli(
    ctx: click.Context,
    scope: str | None,
    region: str | None,
    endpoint_url: str | None,
    profile: str | None,
    verbose: int,
) -> None:
    """Manage AWS WAF Classic regex pattern sets and regex match sets."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    ctx.obj = {
        "scope": scope,
        "region": region,
        "endpoint_url": endpoint_url,
        "profile": profile,
    }


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _make_provider(ctx: click.Context) -> Provider:
    try:
        config = ProviderConfig.from_env(**(ctx.obj or {}))
    except WafRegexSetsError as e:
        _fail(str(e))
    return Provider(config)


def _load_manifest(file_path: str) -> WafManifest:
    """Load and validate a YAML manifest file."""
    with open(file_path) as f:
        content = f.read()
    try:
        return WafManifest.from_yaml(content)
    except yaml.YAMLError as e:
        _fail(f"Cannot parse {file_path}: {e}")
    except WafRegexSetsError as e:
        _fail(str(e))


def _format_item(value: Any) -> str:
    if isinstance(value, RegexMatchTuple):
        field = value.field_to_match
        target = f"{field.type}:{field.data}" if field.data else field.type
        return f"{target} {value.text_transformation} -> {value.regex_pattern_set_id}"
    return str(value)


def _echo_change(change: PlannedChange) -> None:
    symbol = ACTION_SYMBOLS.get(change.action, "?")
    click.echo(f"  {symbol} {change.action} {change.resource_type}: {change.name}")
    for update in change.updates:
        item_symbol = "+" if update.action == "INSERT" else "-"
        click.echo(f"      {item_symbol} {update.action} {_format_item(update.value)}")


file_option = click.option(
    "--file",
    "-f",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML manifest file.",
)


@cli.command("plan")
@file_option
@click.pass_context
def plan_cmd(ctx: click.Context, file_path: str) -> None:
    """Preview changes without applying (like terraform plan)."""
    manifest = _load_manifest(file_path)
    provider = _make_provider(ctx)
    try:
        changes = compute_plan(manifest, provider)
    except WafRegexSetsError as e:
        _fail(str(e))

    pending = [c for c in changes if c.action != "noop"]
    if not pending:
        click.echo("No changes. Remote state is up-to-date.")
        return

    click.echo(f"Plan: {len(pending)} change(s)\n")
    for change in pending:
        _echo_change(change)


@cli.command("apply")
@file_option
@click.pass_context
def apply_cmd(ctx: click.Context, file_path: str) -> None:
    """Create or update the regex sets a manifest declares."""
    manifest = _load_manifest(file_path)
    provider = _make_provider(ctx)
    try:
        result = apply_manifest(manifest, provider)
    except WafRegexSetsError as e:
        _fail(str(e))

    click.echo(
        f"Applied: {result.created} created, "
        f"{result.updated} updated, "
        f"{result.unchanged} unchanged."
    )

    if result.errors:
        click.echo(f"\nErrors ({len(result.errors)}):", err=True)
        for err in result.errors:
            click.echo(f"  - {err}", err=True)
        sys.exit(1)


@cli.command("destroy")
@file_option
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def destroy_cmd(ctx: click.Context, file_path: str, yes: bool) -> None:
    """Delete the regex sets a manifest declares."""
    manifest = _load_manifest(file_path)
    provider = _make_provider(ctx)
    try:
        remote = discover(provider)
        changes = compute_destroy_plan(manifest, provider, remote)
    except WafRegexSetsError as e:
        _fail(str(e))

    if not changes:
        click.echo("Nothing to destroy.")
        return

    click.echo(f"Destroy: {len(changes)} regex set(s)\n")
    for change in changes:
        _echo_change(change)

    if not yes:
        click.confirm("\nDelete these regex sets?", abort=True)

    try:
        result = destroy_manifest(manifest, provider, remote)
    except WafRegexSetsError as e:
        _fail(str(e))

    click.echo(f"\nDestroyed: {result.deleted} deleted.")
    if result.errors:
        click.echo(f"\nErrors ({len(result.errors)}):", err=True)
        for err in result.errors:
            click.echo(f"  - {err}", err=True)
        sys.exit(1)


@cli.command("show")
@click.argument("kind", type=click.Choice(sorted(RESOURCE_CHOICES)))
@click.argument("resource_id")
@click.pass_context
def show_cmd(ctx: click.Context, kind: str, resource_id: str) -> None:
    """Show one remote regex set by id."""
    resource = RESOURCE_CHOICES[kind]
    provider = _make_provider(ctx)
    try:
        state = refresh(resource, provider, resource_id)
    except WafRegexSetsError as e:
        _fail(str(e))

    if state is None:
        _fail(f"{resource.name} {resource_id} not found")

    output: dict[str, Any] = {"id": resource_id}
    for name, value in state.items():
        if isinstance(value, frozenset):
            items = sorted_items(value)
            output[name] = [v.to_dict() if hasattr(v, "to_dict") else v for v in items]
        else:
            output[name] = value
    click.echo(yaml.safe_dump(output, default_flow_style=False, sort_keys=False))


@cli.command("list")
@click.argument("kind", type=click.Choice(sorted(RESOURCE_CHOICES)))
@click.pass_context
def list_cmd(ctx: click.Context, kind: str) -> None:
    """List remote regex sets."""
    resource = RESOURCE_CHOICES[kind]
    provider = _make_provider(ctx)
    try:
        sets = list_remote_sets(provider, resource.name)
    except WafRegexSetsError as e:
        _fail(str(e))

    if not sets:
        click.echo(f"No {kind}s found.")
        return

    for name in sorted(sets):
        click.echo(f"{sets[name]}  {name}")


if __name__ == "__main__":
    cli()
