"""Entry point for running fedfarm as a module.

This allows the package to be executed as:
    python -m fedfarm
"""

from fedfarm.cli.main import cli

if __name__ == "__main__":
    cli()
