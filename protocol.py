"""
The session protocol: what the server does for each connection event.

SessionProtocol owns the lifecycle of every session (created when a connection
opens, destroyed when it closes), enforces authentication, dispatches each
inbound message by type and runs the continuation logic that lets a client
type a multi-line statement one line at a time.

It talks to the outside world only through a transport object providing:

    send(connection, message: OutboundMessage) -> None
    close(connection, code: int) -> None

which keeps it independent of the socket library in use.
"""
import hmac
import logging
from typing import Callable, Hashable, Optional

from audit_logger import audit_log
from codec import InvalidFieldsError, MessageDecodeError, decode_message
from config import NORMAL_CLOSURE, PROMPT_CONTINUATION, PROMPT_PRIMARY
from data_models import (
    FileRequest,
    InteractiveRequest,
    Label,
    LoginRequest,
    LogoutRequest,
    OutboundMessage,
    Status,
    StatusCode,
)
from interpreter import ExecutionError, PythonInterpreter
from output_sink import LineBufferedSink
from session_models import Session, SessionStore
from tracer import trace


class SessionProtocol:
    """
    Drives every session from open to close.

    Args:
        transport: Delivers outbound messages and closes connections.
        store: Where sessions live; a fresh SessionStore if omitted.
        password: The shared login secret. None or "" disables authentication.
        interpreter_factory: Builds an execution engine around an output stream.
        audit: Receives connection and authentication events.
    """

    def __init__(
        self,
        transport,
        store: Optional[SessionStore] = None,
        password: Optional[str] = None,
        interpreter_factory: Callable[[LineBufferedSink], PythonInterpreter] = PythonInterpreter,
        audit=audit_log,
    ):
        self.transport = transport
        self.store = store if store is not None else SessionStore()
        self.password = password or ""
        self.interpreter_factory = interpreter_factory
        self.audit = audit

    # --- Lifecycle ---

    @trace
    def open(self, connection: Hashable) -> Session:
        """Creates the session for a newly opened connection."""
        logging.info(f"New websocket connection: {connection}")
        sink = LineBufferedSink(connection, self.send)
        session = Session(
            connection=connection,
            interpreter=self.interpreter_factory(sink),
            sink=sink,
            authenticated=not self.password,
        )
        self.store.add(session)
        self.audit.log_event("Client Connected", connection=connection)
        return session

    @trace
    def close(self, connection: Hashable) -> None:
        """
        Destroys the session of a closed connection.

        Safe to call more than once and for connections that were never opened.
        """
        session = self.store.pop(connection)
        if session is None:
            logging.debug(f"Close for unknown or already closed connection {connection}; ignoring.")
            return
        session.close()
        logging.info(f"Client disconnected: {connection}")
        self.audit.log_event("Client Disconnected", connection=connection)

    def send(self, connection: Hashable, message: OutboundMessage) -> None:
        self.transport.send(connection, message)

    def _reply(self, connection: Hashable, label: Label, code: int, text: str, prompt: Optional[str] = None) -> None:
        self.send(connection, OutboundMessage(type=label, status=Status(code=code, text=text), prompt=prompt))

    # --- Inbound messages ---

    @trace
    def handle_text(self, connection: Hashable, raw: str) -> None:
        """
        Handles one text frame from a connection.

        Raises:
            SessionNotFoundError: If the connection was never opened or is closed.
        """
        session = self.store.get(connection)
        try:
            message = decode_message(raw)
        except InvalidFieldsError as e:
            logging.warning(f"Malformed {e.message_type.upper()} message from {connection}: {e}")
            with session.lock:
                self._reject_fields(session, e.message_type)
            return
        except MessageDecodeError as e:
            logging.warning(f"Unidentified message from {connection}: {e}")
            self._reply(connection, Label.UNDEFINED, StatusCode.FAILURE, "Unidentified action type")
            return

        logging.info(message.type.upper())
        with session.lock:
            if isinstance(message, LoginRequest):
                self._handle_login(session, message)
            elif isinstance(message, LogoutRequest):
                self._handle_logout(session)
            elif isinstance(message, InteractiveRequest):
                self._handle_interactive(session, message)
            elif isinstance(message, FileRequest):
                logging.info("Not implemented yet")
            else:
                raise TypeError(f"Unhandled message variant: {type(message).__name__}")

    @trace
    def handle_binary(self, connection: Hashable, payload: bytes) -> None:
        """Answers a binary frame. Binary payloads are not supported."""
        session = self.store.get(connection)
        if not session.authenticated:
            self._reply(connection, Label.LOGIN, StatusCode.NOT_AUTHENTICATED, "Not authenticated")
            return
        self._reply(connection, Label.EXECUTE, StatusCode.NOT_IMPLEMENTED, "not implemented")
        logging.info(f"Binary message of {len(payload)} bytes not implemented")

    def _handle_login(self, session: Session, message: LoginRequest) -> None:
        supplied = (message.password or "").encode("utf-8")
        if hmac.compare_digest(supplied, self.password.encode("utf-8")):
            session.authenticated = True
            self._reply(session.connection, Label.LOGIN, StatusCode.SUCCESS, "Login successful")
            self.audit.log_event("Login Succeeded", connection=session.connection)
        else:
            self._fail_login(session)

    def _fail_login(self, session: Session) -> None:
        self._reply(session.connection, Label.LOGIN, StatusCode.FAILURE, "Login failed")
        logging.warning(f"Login failed for {session.connection}")
        self.audit.log_event("Login Failed", connection=session.connection)

    def _reject_fields(self, session: Session, message_type: str) -> None:
        """Answers a message of a known type whose other fields are malformed."""
        if message_type == "login":
            self._fail_login(session)
        elif message_type == "interactive" and not session.authenticated:
            self._reply(session.connection, Label.LOGIN, StatusCode.NOT_AUTHENTICATED, "Not authenticated")
        else:
            self._reply(session.connection, Label.UNDEFINED, StatusCode.FAILURE, "Unidentified action type")

    def _handle_logout(self, session: Session) -> None:
        connection = session.connection
        self._reply(connection, Label.LOGIN, StatusCode.SUCCESS, "Logout successful")
        self.audit.log_event("Logout", connection=connection)
        self.transport.close(connection, NORMAL_CLOSURE)
        self.close(connection)

    def _handle_interactive(self, session: Session, message: InteractiveRequest) -> None:
        connection = session.connection
        if not session.authenticated:
            self._reply(connection, Label.LOGIN, StatusCode.NOT_AUTHENTICATED, "Not authenticated")
            return

        command = message.command or ""
        more = False
        try:
            if "\n" in command:
                # A pasted block is complete on its own and bypasses the line buffer.
                more = session.interpreter.parse_or_execute(command, multiline=True)
            else:
                session.input_buffer += "\n" + command
                more = session.interpreter.parse_or_execute(session.input_buffer, multiline=False)
        except ExecutionError as e:
            logging.exception(f"[Python] {e}")
            self._reply(connection, Label.INTERACTIVE, StatusCode.EXECUTION_ERROR, "Python Exception")

        if not more:
            session.input_buffer = ""
            self._reply(connection, Label.LOGIN, StatusCode.READY, "Expecting input", prompt=PROMPT_PRIMARY)
        else:
            self._reply(connection, Label.INTERACTIVE, StatusCode.MORE_INPUT, "More input expected", prompt=PROMPT_CONTINUATION)
