from enum import Enum

# Accumulo 1.6 moved the server classes out of the server module.
SPLIT_MODULES_VERSION = (1, 6)
# The standalone logger service was replaced by tablet server walogs in 1.5.
LOGGER_REMOVED_VERSION = (1, 5)

_ENTRY_POINTS = {
    "zookeeper": ("org.apache.zookeeper.server.ZooKeeperServerMain", None),
    "initialize": ("org.apache.accumulo.server.util.Initialize", "org.apache.accumulo.server.init.Initialize"),
    "master": ("org.apache.accumulo.server.master.Master", "org.apache.accumulo.master.Master"),
    "tserver": ("org.apache.accumulo.server.tabletserver.TabletServer", "org.apache.accumulo.tserver.TabletServer"),
    "logger": ("org.apache.accumulo.server.logger.LogService", None),
    "shell": ("org.apache.accumulo.core.util.shell.Shell", None),
}


class ServerRole(Enum):
    ZOOKEEPER = "zookeeper"
    INITIALIZE = "initialize"
    MASTER = "master"
    TSERVER = "tserver"
    LOGGER = "logger"
    SHELL = "shell"

    def entry_point(self, version: tuple[int, int]) -> str:
        legacy, split = _ENTRY_POINTS[self.value]
        if split and version >= SPLIT_MODULES_VERSION:
            return split
        return legacy

    def available(self, version: tuple[int, int]) -> bool:
        if self is ServerRole.LOGGER:
            return version < LOGGER_REMOVED_VERSION
        return True


def requires_logger_service(version: tuple[int, int]) -> bool:
    return ServerRole.LOGGER.available(version)
