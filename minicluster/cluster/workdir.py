from __future__ import annotations

from pathlib import Path

from minicluster.errors import ConfigurationError

SUBDIRECTORIES = ("lib", "conf", "accumulo", "zookeeper", "logs", "walogs")


class WorkingDirectory:
    """Directory layout owned by a single cluster.

    The root must be missing or empty; it is validated before anything is created.
    """

    def __init__(self, root: str | Path):
        root = Path(root).absolute()

        if root.exists() and not root.is_dir():
            raise ConfigurationError(f"Must pass in directory, {root} is a file")

        if root.exists() and any(root.iterdir()):
            raise ConfigurationError(f"Directory {root} is not empty")

        self.root = root

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    @property
    def conf_dir(self) -> Path:
        return self.root / "conf"

    @property
    def accumulo_dir(self) -> Path:
        return self.root / "accumulo"

    @property
    def zookeeper_dir(self) -> Path:
        return self.root / "zookeeper"

    @property
    def log_dir(self) -> Path:
        return self.root / "logs"

    @property
    def walog_dir(self) -> Path:
        return self.root / "walogs"

    @property
    def site_file(self) -> Path:
        return self.conf_dir / "accumulo-site.xml"

    @property
    def zoo_cfg_file(self) -> Path:
        return self.conf_dir / "zoo.cfg"

    def create(self) -> None:
        for name in SUBDIRECTORIES:
            (self.root / name).mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"WorkingDirectory({str(self.root)!r})"
