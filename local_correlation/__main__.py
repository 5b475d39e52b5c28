"""Allow ``python -m local_correlation``."""

from local_correlation.cli import cli

if __name__ == '__main__':
    cli()
