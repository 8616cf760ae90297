import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from incident_mirror.config import MirrorConfig
from incident_mirror.errors import AlreadyRunning, ConfigError, FeedError, StoreError
from incident_mirror.orchestrator import open_mirror
from incident_mirror.store import RunLock
from incident_mirror.watcher import IncidentWatcher

log = logging.getLogger("main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mirror a status page's incidents into a Discord channel")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single pass and exit (default)")
    mode.add_argument(
        "--interval",
        type=int,
        metavar="SECONDS",
        help="Keep running, one pass every SECONDS (default: POLL_INTERVAL_SECONDS)",
    )
    parser.add_argument("--messages-file", help="Path to the incident → message map (default: MESSAGES_FILE)")
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def run(config: MirrorConfig) -> None:
    async with open_mirror(config) as mirror:
        if config.poll_interval_seconds <= 0:
            await mirror.run_once()
            log.info("Done.")
            return

        watcher = IncidentWatcher(mirror, config.poll_interval_seconds, config.retry)
        task = asyncio.create_task(watcher.run_forever(), name="watcher")

        # POSIX only, like the flock run lock
        loop = asyncio.get_running_loop()

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s — shutting down gracefully...", sig.name)
            task.cancel()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        try:
            await task
        except asyncio.CancelledError:
            log.info("Mirror stopped.")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = MirrorConfig.from_env()
    except ConfigError as exc:
        setup_logging("INFO")
        log.error("Invalid configuration: %s", exc)
        return 2

    if args.once:
        config.poll_interval_seconds = 0
    elif args.interval is not None:
        config.poll_interval_seconds = max(args.interval, 0)
    if args.messages_file:
        config.messages_file = Path(args.messages_file)

    setup_logging(config.log_level)

    try:
        with RunLock(config.lock_file):
            asyncio.run(run(config))
    except AlreadyRunning as exc:
        log.warning("Not starting: %s", exc)
        return 0
    except FeedError as exc:
        log.error("Could not fetch incidents: %s", exc)
        return 1
    except StoreError as exc:
        log.error("Message map unusable, aborting: %s", exc)
        return 1
    except KeyboardInterrupt:
        log.info("Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
