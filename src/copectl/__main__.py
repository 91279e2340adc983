"""Allow ``python -m copectl``."""

from copectl.cli import cli

cli()
