from __future__ import annotations

import logging
import os
from pathlib import Path
import shlex
import shutil
import subprocess
import threading

from minicluster.cluster.logs import LogDrain
from minicluster.cluster.roles import ServerRole
from minicluster.cluster.workdir import WorkingDirectory
from minicluster.config import Settings
from minicluster.errors import LaunchError

logger = logging.getLogger(__name__)


class ProcessHandle:
    def __init__(self, role: ServerRole, process: subprocess.Popen, stdout: LogDrain, stderr: LogDrain):
        self.role = role
        self.process = process
        self.stdout = stdout
        self.stderr = stderr
        self._destroyed = False
        self._lock = threading.Lock()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def name(self) -> str:
        return f"{self.role.value}_{self.pid}"

    @property
    def returncode(self) -> int | None:
        return self.process.poll()

    @property
    def alive(self) -> bool:
        return self.process.poll() is None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def drains(self) -> tuple[LogDrain, LogDrain]:
        return self.stdout, self.stderr

    def wait(self, timeout: float | None = None) -> int:
        return self.process.wait(timeout=timeout)

    def destroy(self, timeout: float = 5.0) -> bool:
        """Terminate the process, killing it after ``timeout``.

        Returns False if the handle was already destroyed and the process is
        gone. A destroy that was interrupted before the process exited can be
        retried.
        """
        with self._lock:
            if self._destroyed and self.process.poll() is not None:
                return False
            self._destroyed = True

            if self.process.poll() is None:
                logger.debug(f"Stopping {self.name}")
                try:
                    self.process.terminate()
                    self.process.wait(timeout=timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(f"{self.name} did not exit after {timeout}s, killing")
                    self.process.kill()
                    self.process.wait()
                except ProcessLookupError:
                    pass

            if self.process.stdin:
                try:
                    self.process.stdin.close()
                except OSError:
                    pass
        return True

    def __repr__(self) -> str:
        return f"ProcessHandle(role={self.role.value}, pid={self.pid}, returncode={self.returncode})"


class ProcessLauncher:
    """Spawns cluster roles as JVM child processes scoped to a working directory."""

    def __init__(self, workdir: WorkingDirectory, settings: Settings):
        self.workdir = workdir
        self.settings = settings
        self.version = settings.version_info
        self._drains: list[LogDrain] = []
        self._lock = threading.Lock()

    @property
    def drains(self) -> list[LogDrain]:
        with self._lock:
            return list(self._drains)

    @property
    def java_binary(self) -> str:
        if self.settings.JAVA_HOME:
            return str(Path(self.settings.JAVA_HOME) / "bin" / "java")
        return shutil.which("java") or "java"

    def classpath(self) -> str:
        entries = [str(self.workdir.conf_dir), str(self.workdir.lib_dir / "*")]

        if self.settings.ACCUMULO_HOME:
            entries.append(str(Path(self.settings.ACCUMULO_HOME) / "lib" / "*"))
        for home in (self.settings.HADOOP_HOME, self.settings.ZOOKEEPER_HOME):
            if home:
                entries.append(str(Path(home) / "*"))
                entries.append(str(Path(home) / "lib" / "*"))

        entries.extend(self.settings.CLASSPATH)

        inherited = os.environ.get("CLASSPATH")
        if inherited:
            entries.append(inherited)
        return os.pathsep.join(entries)

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env["ACCUMULO_HOME"] = str(self.workdir.root)
        env["ACCUMULO_LOG_DIR"] = str(self.workdir.log_dir)
        return env

    def command(self, role: ServerRole, *args: str) -> list[str]:
        return [
            self.java_binary,
            "-cp",
            self.classpath(),
            *shlex.split(self.settings.JVM_OPTS),
            role.entry_point(self.version),
            *args,
        ]

    def spawn(self, role: ServerRole, *args: str, stdin: bool = False) -> ProcessHandle:
        cmd = self.command(role, *args)
        logger.debug(f"Launching {role.value}: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE if stdin else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.environment(),
                cwd=self.workdir.root,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise LaunchError(f"Failed to launch {role.value} with {cmd[0]}: {e}") from e

        name = f"{role.value}_{process.pid}"
        stdout = None
        try:
            stdout = LogDrain(process.stdout, self.workdir.log_dir / f"{name}.out")
            stderr = LogDrain(process.stderr, self.workdir.log_dir / f"{name}.err")
        except OSError as e:
            process.kill()
            process.wait()
            if stdout is not None:
                stdout.close()
            for stream in (process.stdin, process.stdout, process.stderr):
                if stream:
                    stream.close()
            raise LaunchError(f"Failed to open log files for {name} in {self.workdir.log_dir}: {e}") from e
        with self._lock:
            self._drains.extend((stdout, stderr))
        stdout.start()
        stderr.start()

        logger.info(f"Started {role.value} (pid {process.pid})")
        return ProcessHandle(role, process, stdout, stderr)

    def release(self, handle: ProcessHandle):
        """Stop tracking the drains of a finished one-shot process."""
        with self._lock:
            self._drains = [drain for drain in self._drains if drain not in handle.drains]

    def flush(self):
        for drain in self.drains:
            drain.flush()
