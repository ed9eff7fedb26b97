"""Logging setup for the allocheck CLI."""

from __future__ import annotations

import logging

# Client libraries that log every request; held at WARNING unless debugging.
CHATTY_LOGGERS = ("web3", "httpx", "httpcore", "aiohttp", "urllib3")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for terminal output.

    Scan progress arrives on the ``allocheck.progress`` logger at INFO, so the
    default level shows it. ``force=True`` replaces handlers installed earlier.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
