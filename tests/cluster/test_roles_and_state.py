import pytest

from minicluster.cluster.roles import ServerRole, requires_logger_service
from minicluster.cluster.state import ClusterState, ClusterStateManager
from minicluster.errors import ClusterStateError


class TestServerRole:
    def test_legacy_entry_points(self) -> None:
        assert ServerRole.MASTER.entry_point((1, 4)) == "org.apache.accumulo.server.master.Master"
        assert ServerRole.INITIALIZE.entry_point((1, 5)) == "org.apache.accumulo.server.util.Initialize"
        assert ServerRole.ZOOKEEPER.entry_point((1, 4)) == "org.apache.zookeeper.server.ZooKeeperServerMain"

    def test_split_module_entry_points(self) -> None:
        assert ServerRole.TSERVER.entry_point((1, 6)) == "org.apache.accumulo.tserver.TabletServer"
        assert ServerRole.INITIALIZE.entry_point((1, 7)) == "org.apache.accumulo.server.init.Initialize"
        assert ServerRole.ZOOKEEPER.entry_point((1, 6)) == "org.apache.zookeeper.server.ZooKeeperServerMain"

    @pytest.mark.parametrize(
        ("version", "expected"),
        [((1, 3), True), ((1, 4), True), ((1, 5), False), ((2, 0), False)],
    )
    def test_logger_service_gate(self, version, expected) -> None:
        assert requires_logger_service(version) is expected
        assert ServerRole.LOGGER.available(version) is expected
        assert ServerRole.MASTER.available(version)


class TestClusterStateManager:
    def test_happy_path(self) -> None:
        manager = ClusterStateManager()
        assert manager.get_state() is ClusterState.NOT_STARTED
        assert not manager.active
        manager.transition_to(ClusterState.STARTING)
        assert manager.active
        manager.transition_to(ClusterState.RUNNING)
        manager.transition_to(ClusterState.STOPPED)
        assert manager.get_state() is ClusterState.STOPPED

    def test_failed_start_goes_to_stopped(self) -> None:
        manager = ClusterStateManager()
        manager.transition_to(ClusterState.STARTING)
        manager.transition_to(ClusterState.STOPPED)
        assert not manager.active

    @pytest.mark.parametrize(
        "target",
        [ClusterState.NOT_STARTED, ClusterState.STARTING, ClusterState.RUNNING, ClusterState.STOPPED],
    )
    def test_stopped_is_terminal(self, target) -> None:
        manager = ClusterStateManager()
        manager.transition_to(ClusterState.STARTING)
        manager.transition_to(ClusterState.STOPPED)
        with pytest.raises(ClusterStateError):
            manager.transition_to(target)

    def test_cannot_run_without_starting(self) -> None:
        with pytest.raises(ClusterStateError):
            ClusterStateManager().transition_to(ClusterState.RUNNING)
