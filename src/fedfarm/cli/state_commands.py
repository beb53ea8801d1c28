"""Desired-state CLI commands.

This module provides the commands that reconcile a desired-state document:
- get: Show the current state of every resource in the document
- test: Report compliance (exit 1 when anything drifted)
- set: Converge every resource to its desired state

Exit codes: 0 success, 1 non-compliant (test only), 2 errors.
"""

import json
import logging
from pathlib import Path
from typing import Callable, List, Tuple

import click

from fedfarm.certificates.resolver import CertificateResolver
from fedfarm.config.desired_state import load_desired_state
from fedfarm.config.schema import Config
from fedfarm.models.resources import Ensure
from fedfarm.providers.base import ProviderAdapter
from fedfarm.providers.rest import RestProvider
from fedfarm.reconcile.descriptor import DesiredResource, serialize_value
from fedfarm.reconcile.engine import ReconciliationEngine
from fedfarm.utils.exceptions import (
    ConfigurationError,
    ErrorCategory,
    FedFarmError,
    create_error_info,
)

logger = logging.getLogger(__name__)

EXIT_NON_COMPLIANT = 1
EXIT_ERROR = 2


def build_provider(config: Config) -> ProviderAdapter:
    """Provider adapter for the configured administrative surface."""
    return RestProvider(config.provider)


def _load_resources(state_file: Path) -> List[DesiredResource]:
    try:
        return load_desired_state(state_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Invalid desired-state document", err=True)
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(EXIT_ERROR)


def _report_error(resource: DesiredResource, error: FedFarmError) -> None:
    info = create_error_info(error, resource=resource.label)
    click.echo(
        click.style("✗", fg="red", bold=True) + f" {resource.label}: {info.error_type}: {info.message}",
        err=True,
    )
    click.echo(f"  Fix: {info.remediation}", err=True)
    logger.error(f"{resource.label}: {info.error_type} ({info.category.value}): {info.message}")
    if info.technical_details:
        logger.debug(f"{resource.label}: {info.technical_details}")


def _run(
    ctx: click.Context,
    state_file: Path,
    operation: Callable[[ReconciliationEngine, DesiredResource], None],
    fail_fast: bool = False,
) -> Tuple[int, int]:
    """Apply ``operation`` to every resource in document order.

    A failing resource does not stop the others unless ``fail_fast`` is set
    or the error is CRITICAL (bad input or certificates).

    Returns:
        (processed, failed) counts
    """
    config: Config = ctx.obj["config"]
    resources = _load_resources(state_file)
    provider = build_provider(config)
    engine = ReconciliationEngine(
        provider,
        CertificateResolver(provider, store=config.certificates.default_store),
    )

    processed = failed = 0
    try:
        for resource in resources:
            processed += 1
            try:
                operation(engine, resource)
            except FedFarmError as e:
                failed += 1
                _report_error(resource, e)
                if fail_fast or create_error_info(e).category is ErrorCategory.CRITICAL:
                    click.echo("Stopping: remaining resources were not processed.", err=True)
                    break
    finally:
        close = getattr(provider, "close", None)
        if close is not None:
            close()
    return processed, failed


@click.command(name="get")
@click.argument("state_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text)",
)
@click.pass_context
def get_command(ctx: click.Context, state_file: Path, output_format: str) -> None:
    """Show the current state of every resource in STATE_FILE.

    Example:

        fedfarm get state/portal.json --format json
    """
    states = []

    def operation(engine: ReconciliationEngine, resource: DesiredResource) -> None:
        state = engine.get(resource)
        if output_format == "json":
            states.append(
                {
                    "resource": state.label,
                    "ensure": state.ensure.value,
                    "properties": {k: serialize_value(v) for k, v in state.properties.items()},
                }
            )
            return
        click.echo(f"{state.label}: {state.ensure.value}")
        for name, value in sorted(state.properties.items()):
            click.echo(f"  {name}: {serialize_value(value)!r}")

    _, failed = _run(ctx, state_file, operation)
    if output_format == "json":
        click.echo(json.dumps(states, indent=2, default=str))
    if failed:
        raise click.exceptions.Exit(EXIT_ERROR)


@click.command(name="test")
@click.argument("state_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def test_command(ctx: click.Context, state_file: Path) -> None:
    """Check whether every resource in STATE_FILE is in its desired state.

    Exits 1 when a resource is not compliant and 2 when compliance could not
    be determined for some resource.

    Example:

        fedfarm test state/portal.json
    """
    drifted = []

    def operation(engine: ReconciliationEngine, resource: DesiredResource) -> None:
        report = engine.test(resource)
        if report.compliant:
            click.echo(click.style("✓", fg="green", bold=True) + f" {report.resource}")
            return
        drifted.append(report.resource)
        if report.ensure is Ensure.ABSENT:
            detail = "should be absent"
        elif not report.exists:
            detail = "missing"
        else:
            detail = "drifted: " + ", ".join(sorted(report.mismatches))
        click.echo(click.style("✗", fg="yellow", bold=True) + f" {report.resource} ({detail})")

    processed, failed = _run(ctx, state_file, operation)
    click.echo(
        f"\n{processed - failed - len(drifted)} compliant, {len(drifted)} non-compliant, {failed} error(s)"
    )
    if failed:
        raise click.exceptions.Exit(EXIT_ERROR)
    if drifted:
        raise click.exceptions.Exit(EXIT_NON_COMPLIANT)


@click.command(name="set")
@click.argument("state_file", type=click.Path(exists=True, path_type=Path))
@click.option("--fail-fast", is_flag=True, help="Stop at the first failing resource")
@click.pass_context
def set_command(ctx: click.Context, state_file: Path, fail_fast: bool) -> None:
    """Converge every resource in STATE_FILE to its desired state.

    Resources are processed in document order; list a relying party trust
    before its SAML endpoints.

    Example:

        fedfarm set state/portal.json --fail-fast
    """
    changed = []

    def operation(engine: ReconciliationEngine, resource: DesiredResource) -> None:
        outcome = engine.set(resource)
        if outcome.changed:
            changed.append(outcome.resource)
        click.echo(f"{outcome.action.value:>9}  {outcome.resource}")

    processed, failed = _run(ctx, state_file, operation, fail_fast=fail_fast)
    click.echo(f"\n{len(changed)} changed, {processed - failed - len(changed)} unchanged, {failed} error(s)")
    if failed:
        raise click.exceptions.Exit(EXIT_ERROR)
