from __future__ import annotations

import atexit
from collections.abc import Iterable, Mapping
import logging
from pathlib import Path
import subprocess
import threading
import time
from uuid import uuid4

from minicluster.cluster import site
from minicluster.cluster.launcher import ProcessHandle, ProcessLauncher
from minicluster.cluster.ports import PortAllocator
from minicluster.cluster.roles import ServerRole, requires_logger_service
from minicluster.cluster.state import ClusterState, ClusterStateManager
from minicluster.cluster.workdir import WorkingDirectory
from minicluster.config import Settings, settings as default_settings
from minicluster.errors import ClusterStateError, InitializationError, MiniClusterError
from minicluster.schemas import ClusterPorts
from minicluster.utils.timers import Ticker

logger = logging.getLogger(__name__)

ONE_SHOT_ROLES = (ServerRole.INITIALIZE, ServerRole.SHELL)


class MiniCluster:
    """A ZooKeeper + Accumulo cluster living entirely inside one empty directory.

    Construction validates the directory, allocates ports and writes the
    configuration. ``start`` launches ZooKeeper, runs the initializer, then
    launches the master, the tablet server(s) and, for 1.4, the logger service.
    ``stop`` may be called any number of times from any thread.
    """

    def __init__(
        self,
        directory: str | Path,
        root_password: str,
        site_config: Mapping[str, str] | None = None,
        *,
        settings: Settings | None = None,
        num_tservers: int | None = None,
        instance_name: str | None = None,
        register_exit_hook: bool = True,
    ):
        self.settings = settings or default_settings
        self.version = self.settings.version_info
        self.root_password = root_password
        self.num_tservers = num_tservers if num_tservers is not None else self.settings.NUM_TSERVERS
        self.register_exit_hook = register_exit_hook
        self._instance_name = instance_name or self.settings.INSTANCE_NAME

        self.workdir = WorkingDirectory(directory)
        site.check_tserver_count(self.num_tservers, self.version)

        allocator = PortAllocator(attempts=self.settings.PORT_ATTEMPTS)
        with_logger = requires_logger_service(self.version)
        zookeeper, master, tserver = allocator.allocate_many(3)
        self.ports = ClusterPorts(
            host=self.settings.ZOOKEEPER_HOST,
            zookeeper=zookeeper,
            master=master,
            tserver=tserver,
            logger=allocator.allocate() if with_logger else None,
        )

        self.workdir.create()
        self.site_config = site.write(
            self.workdir,
            site_config,
            self.ports,
            version=self.version,
            num_tservers=self.num_tservers,
        )

        self.launcher = ProcessLauncher(self.workdir, self.settings)
        self._state = ClusterStateManager()
        self._handles: list[ProcessHandle] = []
        self._lock = threading.Lock()
        self._stop_lock = threading.Lock()
        self._ticker = Ticker(
            self.settings.LOG_FLUSH_INTERVAL,
            self.launcher.flush,
            name=f"log-flush-{self.workdir.root.name}",
        )

        logger.debug(f"Prepared cluster in {self.workdir.root} (zookeeper {self.ports.zookeeper_address})")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> ClusterState:
        return self._state.get_state()

    @property
    def instance_name(self) -> str:
        return self._instance_name

    @property
    def zookeepers(self) -> str:
        return self.ports.zookeeper_address

    def cluster_label(self) -> str:
        return self.instance_name

    def coordinator_endpoint(self) -> str:
        return self.zookeepers

    @property
    def processes(self) -> list[ProcessHandle]:
        with self._lock:
            return list(self._handles)

    def log_files(self) -> list[Path]:
        return sorted(self.workdir.log_dir.iterdir())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _launch(self, role: ServerRole, *args: str, stdin: bool = False) -> ProcessHandle:
        with self._lock:
            if not self._state.active:
                raise ClusterStateError(f"Cannot launch {role.value}: cluster is {self.state.value}")
            handle = self.launcher.spawn(role, *args, stdin=stdin)
            self._handles.append(handle)
        return handle

    def _release(self, handle: ProcessHandle):
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)
        self.launcher.release(handle)

    @staticmethod
    def _answer(handle: ProcessHandle, answers: list[str]):
        try:
            handle.process.stdin.write("".join(f"{answer}\n" for answer in answers))
            handle.process.stdin.flush()
            handle.process.stdin.close()
        except OSError as e:
            logger.warning(f"{handle.name} closed its input early: {e}")

    def _initialize(self):
        handle = self._launch(ServerRole.INITIALIZE, stdin=True)
        self._answer(handle, [self.instance_name, self.root_password, self.root_password])

        timeout = self.settings.INIT_TIMEOUT
        try:
            returncode = handle.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            handle.destroy(self.settings.STOP_TIMEOUT)
            raise InitializationError(
                f"Initializer did not finish within {timeout}s, see {handle.stderr.path}"
            ) from None

        if returncode != 0:
            raise InitializationError(
                f"Initializer exited with code {returncode}, see {handle.stderr.path}",
                returncode=returncode,
            )
        logger.info(f"Initialized instance {self.instance_name}")

    def start(self):
        with self._lock:
            if self._state.get_state() is not ClusterState.NOT_STARTED:
                raise ClusterStateError(f"Cluster in {self.workdir.root} already started")
            self._state.transition_to(ClusterState.STARTING)

        if self.register_exit_hook:
            atexit.register(self.stop)
        self._ticker.start()

        try:
            self._launch(ServerRole.ZOOKEEPER, str(self.workdir.zoo_cfg_file))
            self._initialize()

            self._launch(ServerRole.MASTER)
            for _ in range(self.num_tservers):
                self._launch(ServerRole.TSERVER)
            if requires_logger_service(self.version):
                self._launch(ServerRole.LOGGER)

            with self._lock:
                self._state.transition_to(ClusterState.RUNNING)
        except BaseException:
            logger.error(f"Failed to start cluster in {self.workdir.root}, stopping launched processes")
            self.stop()
            raise

        logger.info(f"Cluster {self.instance_name} running, zookeepers at {self.zookeepers}")

    def stop(self):
        """Stop every launched process and close their logs.

        A stop that was interrupted part way can be repeated: processes still
        alive on a STOPPED cluster are destroyed by the next call.
        """
        with self._stop_lock:
            with self._lock:
                handles = list(self._handles)
                if self._state.active:
                    self._state.transition_to(ClusterState.STOPPED)
                elif not any(handle.alive for handle in handles):
                    return

            timeout = self.settings.STOP_TIMEOUT
            try:
                self._destroy_all(list(reversed(handles)), timeout)
                deadline = time.monotonic() + timeout
                for drain in self.launcher.drains:
                    if not drain.wait(max(0.0, deadline - time.monotonic())):
                        logger.warning(f"Log drain {drain.name} still open after stop")
                    drain.flush()
            finally:
                self._ticker.stop(timeout)
                if self.register_exit_hook and not any(handle.alive for handle in handles):
                    atexit.unregister(self.stop)

        logger.info(f"Cluster {self.instance_name} in {self.workdir.root} stopped")

    def _destroy_all(self, handles: list[ProcessHandle], timeout: float):
        if not handles:
            return
        handle, rest = handles[0], handles[1:]
        try:
            handle.destroy(timeout)
        except OSError as e:
            logger.warning(f"Failed to stop {handle.name}: {e}")
        finally:
            self._destroy_all(rest, timeout)

    def check_processes(self) -> list[ProcessHandle]:
        """Server processes that exited while the cluster was running."""
        if self.state is not ClusterState.RUNNING:
            return []
        return [
            handle
            for handle in self.processes
            if handle.role not in ONE_SHOT_ROLES and not handle.destroyed and not handle.alive
        ]

    def exec_shell(
        self,
        commands: Iterable[str],
        user: str = "root",
        password: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run shell commands against the running cluster and return the shell's stdout."""
        if self.state is not ClusterState.RUNNING:
            raise ClusterStateError(f"Cannot run shell: cluster is {self.state.value}")

        script = self.workdir.conf_dir / f"shell-{uuid4().hex[:8]}.txt"
        script.write_text("".join(f"{command}\n" for command in commands), encoding="utf-8")

        # The password goes to the shell's prompt on stdin so it never shows up in ps.
        handle = self._launch(
            ServerRole.SHELL,
            "-u",
            user,
            "-z",
            self.instance_name,
            self.zookeepers,
            "-f",
            str(script),
            stdin=True,
        )
        try:
            self._answer(handle, [password if password is not None else self.root_password])
            try:
                returncode = handle.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                handle.destroy(self.settings.STOP_TIMEOUT)
                raise MiniClusterError(f"Shell did not finish within {timeout}s, see {handle.stderr.path}") from None

            if returncode != 0:
                logger.warning(f"Shell exited with code {returncode}, see {handle.stderr.path}")
            if not handle.stdout.wait(self.settings.STOP_TIMEOUT):
                logger.warning(f"Shell output in {handle.stdout.path} may be incomplete")
            return handle.stdout.path.read_text(encoding="utf-8")
        finally:
            self._release(handle)
            script.unlink(missing_ok=True)

    def __enter__(self) -> "MiniCluster":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def __repr__(self) -> str:
        return f"MiniCluster(root={str(self.workdir.root)!r}, state={self.state.value}, zookeepers={self.zookeepers!r})"
