"""Main CLI entry point for fedfarm.

This module provides the main Click command group for the fedfarm CLI.
"""

from pathlib import Path
from typing import Optional

import click

from fedfarm import __version__
from fedfarm.cli.cert_commands import certs_group
from fedfarm.cli.gateway_commands import mock_gateway_command
from fedfarm.cli.state_commands import get_command, set_command, test_command
from fedfarm.config import load_config
from fedfarm.logging_audit import configure_logging, configure_operation_logging
from fedfarm.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="fedfarm")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
) -> None:
    """fedfarm - desired-state configuration for federation service farms.

    Reads a desired-state document and reports on or converges the farm,
    its relying party trusts, SAML endpoints, global authentication policy
    and device registration.

    Common usage:

        # Show drift without changing anything
        fedfarm test state/portal.json

        # Converge the farm
        fedfarm set state/portal.json

        # Use custom configuration file
        fedfarm --config config/prod.json set state/portal.json
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(2)

    ctx.obj["config"] = config_obj
    ctx.obj["verbose"] = verbose

    # CLI flags > config file > defaults
    configure_logging(
        level="DEBUG" if verbose else config_obj.logging.level,
        log_file=log_file or config_obj.logging.log_file,
        redact_secrets=config_obj.logging.redact_secrets,
    )
    configure_operation_logging(config_obj.logging.operation_levels)


cli.add_command(get_command)
cli.add_command(test_command)
cli.add_command(set_command)
cli.add_command(certs_group)
cli.add_command(mock_gateway_command)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        fedfarm config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")

    provider = config_obj.provider
    click.echo("\nProvider:")
    click.echo(f"  Base URL:    {provider.base_url}")
    click.echo(f"  Verify TLS:  {provider.verify_tls}")
    click.echo(f"  Timeouts:    {provider.timeout_connect}s connect, {provider.timeout_read}s read")
    click.echo(f"  Retries:     {provider.max_retries} (backoff {provider.backoff_factor})")

    certificates = config_obj.certificates
    click.echo("\nCertificates:")
    for name, directory in sorted(certificates.stores.items()):
        marker = " (default)" if name == certificates.default_store else ""
        click.echo(f"  {name}: {directory}{marker}")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redaction:   {config_obj.logging.redact_secrets}")


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"fedfarm version {__version__}")


if __name__ == "__main__":
    cli()
