"""
Defines the per-connection session state and the store that owns it.

A Session bundles everything one connection needs: its interpreter, the
output sink the interpreter writes through, the authentication flag and the
buffer of source lines still waiting to form a complete statement. The
SessionStore keeps exactly one Session per open connection.
"""
import threading
from datetime import datetime
from typing import Any, Hashable, Optional

from pydantic import BaseModel, ConfigDict, Field

from interpreter import PythonInterpreter
from output_sink import LineBufferedSink


class SessionNotFoundError(KeyError):
    """Raised when a connection has no session, i.e. it was never opened or is already closed."""


class Session(BaseModel):
    """
    Represents the live state of one connection.
    """

    # Allows the interpreter and sink, which are not pydantic types.
    model_config = ConfigDict(arbitrary_types_allowed=True)

    connection: Hashable
    interpreter: PythonInterpreter
    sink: LineBufferedSink
    authenticated: bool = False
    # Source accumulated across fragments that do not yet form a complete unit.
    input_buffer: str = ""
    # Serializes overlapping messages from the same connection.
    lock: Any = Field(default_factory=threading.Lock, exclude=True)
    connected_at: datetime = Field(default_factory=datetime.now)

    def close(self) -> None:
        """Releases the interpreter and the sink; nothing writes to the connection afterwards."""
        self.interpreter.close()
        self.sink.close()
        self.input_buffer = ""


class SessionStore:
    """
    Maps each open connection to its Session.

    All access goes through a single lock, so the store can be shared between
    the handlers of different connections.
    """

    def __init__(self):
        self._sessions: dict[Hashable, Session] = {}
        self._lock = threading.Lock()

    def add(self, session: Session) -> None:
        with self._lock:
            if session.connection in self._sessions:
                raise ValueError(f"Connection {session.connection!r} already has a session.")
            self._sessions[session.connection] = session

    def get(self, connection: Hashable) -> Session:
        with self._lock:
            try:
                return self._sessions[connection]
            except KeyError:
                raise SessionNotFoundError(connection) from None

    def pop(self, connection: Hashable) -> Optional[Session]:
        with self._lock:
            return self._sessions.pop(connection, None)

    def connections(self) -> list:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, connection: Hashable) -> bool:
        with self._lock:
            return connection in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
