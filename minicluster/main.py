#!/usr/bin/env python3
import argparse
import logging
from pathlib import Path
import shutil
import signal
import sys
import tempfile
import time
from uuid import uuid4

from minicluster import sample
from minicluster.cluster.cluster import MiniCluster
from minicluster.config import settings
from minicluster.errors import MiniClusterError
from minicluster.utils.logger import configure_logging

logger = logging.getLogger(__name__)


def parse_overrides(pairs: list[str]) -> dict[str, str]:
    overrides = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        overrides[key.strip()] = value.strip()
    return overrides


class ClusterManager:
    def __init__(self, cluster: MiniCluster, poll_interval: float = 1.0):
        self.cluster = cluster
        self.poll_interval = poll_interval

    def run_forever(self):
        def signal_handler(sig, frame):
            logger.info("Received shutdown signal, stopping cluster...")
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        reported = set()
        try:
            self.cluster.start()
            logger.info(f"Instance: {self.cluster.instance_name}")
            logger.info(f"Zookeepers: {self.cluster.zookeepers}")
            logger.info(f"Logs: {self.cluster.workdir.log_dir}")
            logger.info("Press Ctrl+C to stop")

            while True:
                time.sleep(self.poll_interval)
                for handle in self.cluster.check_processes():
                    if handle.pid not in reported:
                        reported.add(handle.pid)
                        logger.error(
                            f"{handle.role.value} (pid {handle.pid}) stopped unexpectedly "
                            f"with code {handle.returncode}, see {handle.stderr.path}"
                        )
        finally:
            self.cluster.stop()

    def run_sample(self, root_password: str) -> int:
        with self.cluster:
            logger.info(f"---- Running sample app against accumulo-{settings.ACCUMULO_VERSION}")
            records = sample.run(self.cluster, root_password)
            logger.info(f"---- Ran sample app, {len(records)} record(s)")
        return 0 if records else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=settings.PROJECT_DESCRIPTION)
    parser.add_argument(
        "--version",
        action="version",
        version=f"{settings.PROJECT_NAME} {settings.VERSION}",
    )
    parser.add_argument(
        "--dir",
        "-d",
        type=Path,
        default=None,
        help="Empty or missing working directory (default: new temp directory)",
    )
    parser.add_argument(
        "--password",
        "-p",
        default="pass1234",
        help="Root password",
    )
    parser.add_argument(
        "-D",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Site configuration override",
    )
    parser.add_argument(
        "--tservers",
        "-t",
        type=int,
        default=settings.NUM_TSERVERS,
        help="Number of tablet servers",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Run the sample app and exit",
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep a generated temp directory after exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write orchestrator logs to this file",
    )

    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None, args.log_file)
    try:
        overrides = parse_overrides(args.overrides)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    generated = args.dir is None
    directory = args.dir or Path(tempfile.gettempdir()) / f"macc-{uuid4()}"

    try:
        cluster = MiniCluster(directory, args.password, overrides, num_tservers=args.tservers)
        manager = ClusterManager(cluster)
        if args.sample:
            return manager.run_sample(args.password)
        manager.run_forever()
        return 0
    except MiniClusterError as e:
        logger.error(f"Error: {e}")
        return 1
    finally:
        if generated and not args.keep:
            shutil.rmtree(directory, ignore_errors=True)


if __name__ == "__main__":
    sys.exit(main())
