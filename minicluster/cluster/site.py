from __future__ import annotations

import logging
from collections.abc import Mapping
from xml.sax.saxutils import escape

from minicluster.cluster.roles import requires_logger_service
from minicluster.cluster.workdir import WorkingDirectory
from minicluster.errors import ConfigurationError
from minicluster.schemas import ClusterPorts

logger = logging.getLogger(__name__)

# tserver.port.search and tserver.compaction.major.delay appeared in 1.5.
PORT_SEARCH_VERSION = (1, 5)

ZOO_CFG_DEFAULTS = {
    "tickTime": "2000",
    "initLimit": "10",
    "syncLimit": "5",
    "maxClientCnxns": "100",
}


def check_tserver_count(num_tservers: int, version: tuple[int, int]) -> None:
    if num_tservers < 1:
        raise ConfigurationError(f"At least one tablet server is required, got {num_tservers}")
    if num_tservers > 1 and version < PORT_SEARCH_VERSION:
        raise ConfigurationError(
            f"Accumulo {version[0]}.{version[1]} cannot run {num_tservers} tablet servers on one host"
        )


def build_site_config(
    workdir: WorkingDirectory,
    ports: ClusterPorts,
    overrides: Mapping[str, str] | None = None,
    version: tuple[int, int] = (1, 4),
    num_tservers: int = 1,
) -> dict[str, str]:
    """Computed defaults merged with ``overrides``; an override always wins."""
    overrides = dict(overrides or {})
    check_tserver_count(num_tservers, version)

    defaults = {
        "instance.dfs.uri": "file:///",
        "instance.dfs.dir": str(workdir.accumulo_dir),
        "instance.zookeeper.host": ports.zookeeper_address,
        "master.port.client": str(ports.master),
        "tserver.port.client": str(ports.tserver),
        "logger.dir.walog": str(workdir.walog_dir),
        "tserver.cache.data.size": "10M",
        "tserver.cache.index.size": "10M",
        "tserver.memory.maps.max": "40M",
        "tserver.walog.max.size": "100M",
        "tserver.memory.maps.native.enabled": "false",
        "general.classpaths": f"{workdir.lib_dir}/[^.].*.jar",
    }
    if num_tservers > 1:
        defaults["tserver.port.search"] = "true"
    if requires_logger_service(version) and ports.logger is not None:
        defaults["logger.port.client"] = str(ports.logger)
    if version >= PORT_SEARCH_VERSION:
        defaults["tserver.compaction.major.delay"] = "3"

    site = {key: value for key, value in defaults.items() if key not in overrides}
    site.update(overrides)
    return site


def render_site_config(site: Mapping[str, str]) -> str:
    lines = ["<configuration>"]
    for key, value in site.items():
        lines.append(f"<property><name>{escape(str(key))}</name><value>{escape(str(value))}</value></property>")
    lines.append("</configuration>")
    return "\n".join(lines) + "\n"


def build_zoo_config(workdir: WorkingDirectory, ports: ClusterPorts) -> dict[str, str]:
    return {
        "tickTime": ZOO_CFG_DEFAULTS["tickTime"],
        "initLimit": ZOO_CFG_DEFAULTS["initLimit"],
        "syncLimit": ZOO_CFG_DEFAULTS["syncLimit"],
        "clientPort": str(ports.zookeeper),
        "maxClientCnxns": ZOO_CFG_DEFAULTS["maxClientCnxns"],
        "dataDir": str(workdir.zookeeper_dir),
    }


def render_zoo_config(zoo: Mapping[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in zoo.items())


def write(
    workdir: WorkingDirectory,
    overrides: Mapping[str, str] | None,
    ports: ClusterPorts,
    version: tuple[int, int] = (1, 4),
    num_tservers: int = 1,
) -> dict[str, str]:
    """Write ``accumulo-site.xml`` and ``zoo.cfg`` into the conf directory.

    Returns the merged site configuration. I/O errors propagate.
    """
    site = build_site_config(workdir, ports, overrides, version=version, num_tservers=num_tservers)
    zoo = build_zoo_config(workdir, ports)

    workdir.site_file.write_text(render_site_config(site), encoding="utf-8")
    workdir.zoo_cfg_file.write_text(render_zoo_config(zoo), encoding="utf-8")

    logger.debug(f"Wrote {workdir.site_file} ({len(site)} properties) and {workdir.zoo_cfg_file}")
    return site


def read_zoo_config(path) -> dict[str, str]:
    result: dict[str, str] = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                result[key.strip()] = value.strip()
    return result
