from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class SessionStateTracker:
    status: SessionStatus = SessionStatus.DISCONNECTED
    session_id: str | None = None
    last_error: str | None = None

    def set_connecting(self) -> None:
        self.status = SessionStatus.CONNECTING
        self.last_error = None

    def set_connected(self, session_id: str | None = None) -> None:
        self.status = SessionStatus.CONNECTED
        if session_id:
            self.session_id = session_id

    def set_disconnected(self) -> None:
        self.status = SessionStatus.DISCONNECTED
        self.session_id = None

    def set_error(self, detail: str) -> None:
        self.status = SessionStatus.ERROR
        self.last_error = detail
