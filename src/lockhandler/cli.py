"""Command-line entry point: run the lock handler until interrupted."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any

from lockhandler.config import LockhandlerConfig
from lockhandler.exceptions import LockhandlerConfigError
from lockhandler.service import LockService

_logger = logging.getLogger("lockhandler")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lockhandler",
        description="Track LoRaWAN smart locks and deliver queued unlock commands.",
    )
    parser.add_argument("--state-path", help="Snapshot file (default: $STATE_PATH or locks.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


async def run(config: LockhandlerConfig) -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass

    async with LockService(config) as service:
        _logger.info("lockhandler running for application %s", config.ttn_app_id)
        await stop.wait()
        _logger.info("Shutting down with %d locks", len(service.locks()))


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    overrides: dict[str, Any] = {}
    if args.state_path:
        overrides["state_path"] = args.state_path

    try:
        config = LockhandlerConfig.from_env(**overrides)
    except LockhandlerConfigError as exc:
        print(f"lockhandler: {exc}; please set TTN_APP_ID and TTN_ACCESS_KEY", file=sys.stderr)
        return 1

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        _logger.error("Could not connect to %s:%s: %s", config.mqtt_host, config.mqtt_port, exc)
        return 1
    return 0
