"""CLI command for the mock administrative gateway."""

import logging
from pathlib import Path
from typing import Optional

import click

from fedfarm.certificates.store import CertificateStore
from fedfarm.config.schema import Config
from fedfarm.mock_gateway.app import DEFAULT_URL_PREFIX, load_seed_file, run_gateway
from fedfarm.providers.memory import InMemoryProvider
from fedfarm.utils.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


def build_gateway_provider(config: Config, seed_file: Optional[Path]) -> InMemoryProvider:
    """In-memory provider serving the configured certificate stores and seed state.

    Raises:
        ConfigurationError: If the seed file is malformed
    """
    store = CertificateStore(
        config.certificates.stores,
        password_env_var=config.certificates.pkcs12_password_env_var,
    )
    provider = InMemoryProvider(certificate_store=store)
    if seed_file is None:
        return provider

    for kind, items in load_seed_file(seed_file).items():
        for properties in items:
            try:
                provider.seed(kind, properties)
            except (ProviderError, TypeError) as e:
                raise ConfigurationError(f"Seed file {seed_file}: invalid {kind.value} entry: {e}") from e
        logger.info(f"Seeded {len(items)} {kind.value} resource(s)")
    return provider


@click.command(name="mock-gateway")
@click.option("--host", default="127.0.0.1", show_default=True, help="Host address to bind")
@click.option("--port", type=int, default=8443, show_default=True, help="Port to listen on")
@click.option(
    "--url-prefix",
    default=DEFAULT_URL_PREFIX,
    show_default=True,
    help="Path the administrative routes are mounted under",
)
@click.option(
    "--seed-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with initial resources, keyed by kind",
)
@click.pass_context
def mock_gateway_command(
    ctx: click.Context,
    host: str,
    port: int,
    url_prefix: str,
    seed_file: Optional[Path],
) -> None:
    """Run a mock administrative gateway backed by memory.

    Certificates are served from the configured certificate stores.

    Example:

        fedfarm mock-gateway --port 8443 --seed-file mocks/farm.json
    """
    try:
        provider = build_gateway_provider(ctx.obj["config"], seed_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + f" {e}", err=True)
        raise click.exceptions.Exit(2)

    click.echo(f"Mock gateway listening on http://{host}:{port}{url_prefix} (Ctrl+C to stop)")
    run_gateway(provider, host=host, port=port, url_prefix=url_prefix)
