"""
Main application bootstrap file.

This script builds the Flask application and the SocketIO server, wires the
session protocol to the socket transport and serves the browser client. Each
browser tab that connects gets its own interpreter session.
"""
import logging

import debugpy
from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO

from config import DEBUG_MODE, DEBUGPY_PORT, SERVER_HOST, SERVER_PORT, STATIC_DIR, load_password
from events import SocketIOTransport, register_events
from protocol import SessionProtocol
from session_models import SessionStore
from tracer import trace


@trace
def create_app(password=None, async_mode: str = "eventlet"):
    """
    Builds the Flask app and its SocketIO server.

    Args:
        password: The login secret. Falls back to config.load_password().
        async_mode: The Flask-SocketIO async mode.

    Returns:
        A tuple of (app, socketio, protocol).
    """
    app = Flask(__name__, static_folder=None)
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode=async_mode)

    if password is None:
        password = load_password()
    if not password:
        logging.warning("No login password configured; every connection starts authenticated.")

    transport = SocketIOTransport(socketio)
    protocol = SessionProtocol(transport, store=SessionStore(), password=password)
    register_events(socketio, protocol, transport)

    @app.route("/")
    def serve_index():
        """Serves the browser console."""
        return send_from_directory(STATIC_DIR, "index.html")

    @app.route("/<path:filename>")
    def serve_static_files(filename: str):
        return send_from_directory(STATIC_DIR, filename)

    return app, socketio, protocol


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    app, socketio, _ = create_app()

    if DEBUG_MODE:
        debugpy.listen(("0.0.0.0", DEBUGPY_PORT))
        app.logger.info("Debugpy server listening. Waiting for debugger to attach...")
        debugpy.wait_for_client()
        app.logger.info("Debugger attached.")

    app.logger.info(f"Starting REPL socket server on http://{SERVER_HOST}:{SERVER_PORT}")
    socketio.run(app, host=SERVER_HOST, port=SERVER_PORT)


# --- MAIN EXECUTION ---
if __name__ == "__main__":
    main()
