"""Shared pytest fixtures for minicluster tests."""

from __future__ import annotations

from pathlib import Path
import stat

import pytest

from minicluster.cluster.cluster import MiniCluster
from minicluster.config import Settings

# Stands in for the JVM: dispatches on the main class like the real roles would.
FAKE_JAVA = """\
#!/bin/sh
for arg in "$@"; do
  case "$arg" in
    *.Initialize)
      read name
      read password
      read confirm
      echo "instance=$name"
      echo "password=$password"
      echo "confirm=$confirm"
      if [ -n "$FAKE_INIT_HANG" ]; then
        exec sleep 300
      fi
      exit "${FAKE_INIT_EXIT:-0}"
      ;;
    *.Shell)
      read password
      echo "args=$*"
      echo "password accepted (${#password} chars)"
      echo "root@test> scan -t foo"
      echo "r1 cf1:cq1 []    v1"
      exit 0
      ;;
    *.ZooKeeperServerMain|*.Master|*.TabletServer|*.LogService)
      echo "role=$arg"
      echo "home=$ACCUMULO_HOME"
      echo "logdir=$ACCUMULO_LOG_DIR"
      echo "started $arg" >&2
      exec sleep 300
      ;;
  esac
done
echo "no main class in $*" >&2
exit 2
"""


@pytest.fixture
def java_home(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """A JAVA_HOME whose bin/java is the fake role dispatcher."""
    home = tmp_path_factory.mktemp("java")
    java = home / "bin" / "java"
    java.parent.mkdir()
    java.write_text(FAKE_JAVA, encoding="utf-8")
    java.chmod(java.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return home


@pytest.fixture
def cluster_settings(java_home: Path) -> Settings:
    return Settings(
        JAVA_HOME=str(java_home),
        ACCUMULO_HOME=None,
        HADOOP_HOME=None,
        ZOOKEEPER_HOME=None,
        ACCUMULO_VERSION="1.4.0",
        ZOOKEEPER_HOST="localhost",
        INSTANCE_NAME="test",
        NUM_TSERVERS=1,
        LOG_FLUSH_INTERVAL=0.1,
        INIT_TIMEOUT=None,
        STOP_TIMEOUT=5.0,
        PORT_ATTEMPTS=13,
    )


@pytest.fixture
def make_cluster(tmp_path: Path, cluster_settings: Settings):
    """Factory building clusters in fresh directories; every cluster is stopped at teardown."""
    clusters: list[MiniCluster] = []

    def factory(name: str = "cluster", password: str = "pass1234", site_config=None, **kwargs) -> MiniCluster:
        kwargs.setdefault("settings", cluster_settings)
        cluster = MiniCluster(tmp_path / name, password, site_config, **kwargs)
        clusters.append(cluster)
        return cluster

    try:
        yield factory
    finally:
        for cluster in clusters:
            cluster.stop()


@pytest.fixture
def cluster(make_cluster) -> MiniCluster:
    return make_cluster()
