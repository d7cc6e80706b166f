"""Readiness gate models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ReadinessTask(str, Enum):
    """Independent startup tasks joined by the readiness gate."""

    SESSION = "session"  # First settle of the session state machine
    ASSETS = "assets"  # Font/asset preload
    LOCAL_STORE = "local_store"  # On-device cache open


class ReadinessGate(BaseModel):
    """Settled flags for each startup task. Each flag only ever goes false -> true."""

    model_config = ConfigDict(frozen=True)

    session_resolved: bool = False
    assets_loaded: bool = False
    local_store_open: bool = False

    @property
    def ready(self) -> bool:
        return self.session_resolved and self.assets_loaded and self.local_store_open

    @property
    def pending(self) -> list[ReadinessTask]:
        """Tasks that have not settled yet."""
        return [task for task in ReadinessTask if not self.is_settled(task)]

    def is_settled(self, task: ReadinessTask) -> bool:
        return getattr(self, _GATE_FIELDS[task])

    def settle(self, task: ReadinessTask) -> "ReadinessGate":
        """Return a gate with the given task marked settled."""
        return self.model_copy(update={_GATE_FIELDS[task]: True})


_GATE_FIELDS: dict[ReadinessTask, str] = {
    ReadinessTask.SESSION: "session_resolved",
    ReadinessTask.ASSETS: "assets_loaded",
    ReadinessTask.LOCAL_STORE: "local_store_open",
}
