"""
Connects the session protocol to Flask-SocketIO.

Each Socket.IO client is one connection, identified by its session id
(request.sid). Protocol messages travel as Socket.IO 'message' events: text
frames carry the JSON envelope, binary frames arrive as bytes.
"""
import json
import logging
import threading
from typing import Hashable

from flask import request
from flask_socketio import SocketIO

from codec import encode_message
from data_models import OutboundMessage
from protocol import SessionProtocol
from tracer import global_tracer, trace

# Close code used when a connection is torn down after a handler error
INTERNAL_ERROR = 1011


class SocketIOTransport:
    """
    Sends protocol messages to Socket.IO clients and closes their connections.

    Only connections between attach() and detach() are considered open; sending
    to or closing any other connection does nothing.
    """

    def __init__(self, socketio: SocketIO):
        self.socketio = socketio
        self._open: set = set()
        self._lock = threading.Lock()

    def attach(self, connection: Hashable) -> None:
        with self._lock:
            self._open.add(connection)

    def detach(self, connection: Hashable) -> bool:
        """Marks connection closed. Returns False if it was not open."""
        with self._lock:
            if connection not in self._open:
                return False
            self._open.discard(connection)
            return True

    def is_open(self, connection: Hashable) -> bool:
        with self._lock:
            return connection in self._open

    def send(self, connection: Hashable, message: OutboundMessage) -> None:
        if not self.is_open(connection):
            logging.debug(f"Dropping message for closed connection {connection}.")
            return
        self.socketio.send(encode_message(message), to=connection)

    def close(self, connection: Hashable, code: int) -> None:
        if not self.detach(connection):
            return
        logging.info(f"Closing connection {connection} with code {code}.")
        self.socketio.server.disconnect(connection)


@trace
def register_events(socketio: SocketIO, protocol: SessionProtocol, transport: SocketIOTransport) -> None:
    """
    Registers the Socket.IO handlers that feed connection events into protocol.
    """

    def teardown(connection: Hashable) -> None:
        transport.close(connection, INTERNAL_ERROR)
        protocol.close(connection)

    @socketio.on("connect")
    def handle_connect(auth=None) -> None:
        connection = request.sid
        transport.attach(connection)
        protocol.open(connection)

    @socketio.on("disconnect")
    def handle_disconnect(reason=None) -> None:
        connection = request.sid
        transport.detach(connection)
        protocol.close(connection)

    @socketio.on("message")
    def handle_message(data) -> None:
        connection = request.sid
        if isinstance(data, (bytes, bytearray)):
            protocol.handle_binary(connection, bytes(data))
        elif isinstance(data, str):
            protocol.handle_text(connection, data)
        else:
            # Clients that send a plain object get it re-encoded for the codec.
            protocol.handle_text(connection, json.dumps(data))

    @socketio.on_error_default
    def handle_error(e) -> None:
        connection = request.sid
        logging.exception(f"Error handling event from {connection}: {e}. Closing connection.")
        teardown(connection)

    def is_authenticated(connection: Hashable) -> bool:
        return connection in protocol.store and protocol.store.get(connection).authenticated

    @socketio.on("reset_tracer")
    def handle_reset_tracer(data=None) -> None:
        if not is_authenticated(request.sid):
            logging.warning(f"Ignoring reset_tracer from unauthenticated connection {request.sid}.")
            return
        logging.info("Received request to reset global tracer.")
        global_tracer.reset()

    @socketio.on("get_trace_log")
    def handle_get_trace_log(data=None) -> None:
        if not is_authenticated(request.sid):
            logging.warning(f"Ignoring get_trace_log from unauthenticated connection {request.sid}.")
            return
        logging.info("Received request to get trace log.")
        socketio.emit("trace_log_response", {"trace": global_tracer.get_trace()}, to=request.sid)
