from enum import Enum
import threading

from minicluster.errors import ClusterStateError


class ClusterState(Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


TRANSITIONS: dict[ClusterState, tuple[ClusterState, ...]] = {
    ClusterState.NOT_STARTED: (ClusterState.STARTING,),
    ClusterState.STARTING: (ClusterState.RUNNING, ClusterState.STOPPED),
    ClusterState.RUNNING: (ClusterState.STOPPED,),
    ClusterState.STOPPED: (),
}


class ClusterStateManager:
    def __init__(self):
        self.state = ClusterState.NOT_STARTED
        self._lock = threading.Lock()

    def transition_to(self, new_state: ClusterState):
        with self._lock:
            if new_state not in TRANSITIONS[self.state]:
                raise ClusterStateError(f"Cannot move from {self.state.value} to {new_state.value}")
            self.state = new_state

    def get_state(self) -> ClusterState:
        return self.state

    @property
    def active(self) -> bool:
        return self.state in (ClusterState.STARTING, ClusterState.RUNNING)
