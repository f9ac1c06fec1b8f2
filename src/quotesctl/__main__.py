"""Entry point for ``python -m quotesctl``."""

from quotesctl.cli import main

main()
