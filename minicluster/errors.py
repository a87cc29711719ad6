"""
Error classes for minicluster.

Construction and start failures are raised synchronously to the caller.
Failures of running child processes never raise; they only show up in the
log files under ``<workdir>/logs``.
"""


class MiniClusterError(Exception):
    """Base exception for minicluster."""
    pass


class ConfigurationError(MiniClusterError, ValueError):
    """
    The cluster cannot be built from the given inputs.

    Examples:
    - Working directory is an existing file
    - Working directory is not empty
    - More tablet servers than the installed version can address
    """
    pass


class PortExhaustedError(MiniClusterError):
    """No free TCP port was found within the allowed number of attempts."""
    pass


class LaunchError(MiniClusterError):
    """A child process could not be spawned."""
    pass


class InitializationError(MiniClusterError):
    """
    The one-shot initializer failed or did not finish in time.

    ``returncode`` is the initializer's exit status, or None when it was
    destroyed after a timeout.
    """

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class ClusterStateError(MiniClusterError, RuntimeError):
    """An operation was called in a lifecycle state that does not allow it."""
    pass
