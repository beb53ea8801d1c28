"""Certificate CLI commands.

- certs select: Run the certificate selector over a directory of certificates
"""

import json
from pathlib import Path
from typing import Optional, Tuple

import click

from fedfarm.certificates.selector import select_certificates
from fedfarm.certificates.store import CertificateStore
from fedfarm.models.certificate import CertificateCriteria

CLI_STORE = "cli"


@click.group(name="certs")
def certs_group() -> None:
    """Certificate inventory commands."""
    pass


@certs_group.command(name="select")
@click.option(
    "--store-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=True,
    help="Directory holding PEM/DER/PKCS12 certificates",
)
@click.option("--thumbprint", type=str, help="Exact thumbprint")
@click.option("--friendly-name", type=str, help="Exact friendly name")
@click.option("--subject", type=str, help="Exact subject DN, e.g. CN=sts.contoso.com")
@click.option("--issuer", type=str, help="Exact issuer DN")
@click.option("--dns-name", "dns_names", multiple=True, help="Required DNS name (repeatable)")
@click.option("--key-usage", "key_usage", multiple=True, help="Required key usage (repeatable)")
@click.option(
    "--eku",
    "enhanced_key_usage",
    multiple=True,
    help="Required enhanced key usage, e.g. 'Server Authentication' (repeatable)",
)
@click.option("--allow-expired", is_flag=True, help="Include certificates outside their validity window")
@click.option(
    "--password-env-var",
    type=str,
    default=None,
    help="Environment variable holding the PKCS12 password",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text)",
)
def select(
    store_dir: Path,
    thumbprint: Optional[str],
    friendly_name: Optional[str],
    subject: Optional[str],
    issuer: Optional[str],
    dns_names: Tuple[str, ...],
    key_usage: Tuple[str, ...],
    enhanced_key_usage: Tuple[str, ...],
    allow_expired: bool,
    password_env_var: Optional[str],
    output_format: str,
) -> None:
    """List certificates matching every given criterion, latest expiry first.

    Exits 1 when nothing matches.

    Example:

        fedfarm certs select --store-dir certs/my --subject CN=sts.contoso.com \\
            --eku "Server Authentication"
    """
    criteria = CertificateCriteria(
        thumbprint=thumbprint,
        friendly_name=friendly_name,
        subject=subject,
        issuer=issuer,
        dns_names=dns_names or None,
        key_usage=key_usage or None,
        enhanced_key_usage=enhanced_key_usage or None,
        allow_expired=allow_expired,
    )
    store = CertificateStore({CLI_STORE: store_dir}, password_env_var=password_env_var)
    matches = select_certificates(store.list_certificates(CLI_STORE), criteria)

    if output_format == "json":
        click.echo(json.dumps([cert.to_dict() for cert in matches], indent=2))
    else:
        for cert in matches:
            click.echo(f"{cert.thumbprint}  {cert.not_after:%Y-%m-%d}  {cert.subject}")
            if cert.friendly_name:
                click.echo(f"    friendly name: {cert.friendly_name}")

    if not matches:
        click.echo("No certificate matches the given criteria.", err=True)
        raise click.exceptions.Exit(1)
