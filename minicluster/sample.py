"""Sample application: create a table, write a record and scan it back."""

from __future__ import annotations

import logging
import re

from minicluster.cluster.cluster import MiniCluster
from minicluster.schemas import ScanRecord

logger = logging.getLogger(__name__)

TABLE = "foo"

# Shell scan output: "<row> <family>:<qualifier> [<visibility>]    <value>"
_SCAN_LINE = re.compile(r"^(?P<row>\S+) (?P<family>[^:\s]*):(?P<qualifier>\S*) \[(?P<visibility>[^\]]*)\]\s+(?P<value>.*)$")


def parse_scan(output: str) -> list[ScanRecord]:
    records = []
    for line in output.splitlines():
        match = _SCAN_LINE.match(line.strip())
        if match:
            records.append(ScanRecord(**match.groupdict()))
    return records


def run(
    cluster: MiniCluster,
    root_password: str,
    row: str = "r1",
    family: str = "cf1",
    qualifier: str = "cq1",
    value: str = "v1",
    table: str = TABLE,
) -> list[ScanRecord]:
    commands = [
        f"createtable {table}",
        f"insert {row} {family} {qualifier} {value}",
        f"scan -t {table}",
    ]
    logger.info(f"Running sample app against {cluster.instance_name} at {cluster.zookeepers}")
    output = cluster.exec_shell(commands, password=root_password)

    records = parse_scan(output)
    for record in records:
        logger.info(f"  {record}")
    return records
