import os
from typing import Optional

# Server configuration
SERVER_HOST = os.environ.get("REPL_SOCKET_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("REPL_SOCKET_PORT", "5001"))

DEBUG_MODE = False
DEBUGPY_PORT = 5678

# Close code sent on LOGOUT (RFC 6455 normal closure)
NORMAL_CLOSURE = 1000

PROMPT_PRIMARY = ">>> "
PROMPT_CONTINUATION = "... "

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")
AUDIT_LOG_PATH = os.path.join(os.path.dirname(__file__), ".sandbox", "audit_trail.csv")

# Upper bound on top-level entries kept by the global tracer
TRACE_LOG_LIMIT = 500

PASSWORD_ENV_VAR = "REPL_SOCKET_PASSWORD"


def load_password() -> Optional[str]:
    """
    Loads the shared login secret.

    The environment variable wins over 'private_data/password.txt'. Returns None
    when neither is set or the value is empty, meaning sessions start
    authenticated.
    """
    password = os.environ.get(PASSWORD_ENV_VAR)
    if password is None:
        try:
            password_path = os.path.join(os.path.dirname(__file__), "private_data", "password.txt")
            with open(password_path, "r") as f:
                password = f.read().strip()
        except FileNotFoundError:
            return None
    return password or None
