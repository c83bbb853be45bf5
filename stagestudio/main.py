"""Entry point for the stagestudio command."""

from __future__ import annotations

import logging
import sys

from . import cli


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def run() -> int:
    """Configure logging and dispatch to the CLI."""

    configure_logging(verbose="-v" in sys.argv[1:] or "--verbose" in sys.argv[1:])
    return cli.main()


if __name__ == "__main__":
    sys.exit(run())
