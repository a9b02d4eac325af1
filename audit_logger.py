import csv
import json
import os
import threading
from datetime import datetime

from config import AUDIT_LOG_PATH


class AuditLogger:
    """
    Appends connection and authentication events to a CSV audit trail.

    Secrets never reach this file: callers pass only the connection id and
    non-sensitive details.
    """

    HEADER = ["Timestamp", "Event", "Connection", "Details"]

    def __init__(self, filepath=AUDIT_LOG_PATH):
        self.filepath = filepath
        self.lock = threading.Lock()
        self._initialized = False

    def _initialize_file(self):
        """Creates the CSV file and writes the header if it doesn't exist."""
        os.makedirs(os.path.dirname(self.filepath), exist_ok=True)
        if not os.path.exists(self.filepath) or os.path.getsize(self.filepath) == 0:
            with open(self.filepath, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(self.HEADER)
        self._initialized = True

    def log_event(self, event, connection=None, details=None):
        """Writes one row for event."""
        row = [
            datetime.now().isoformat(),
            event,
            "N/A" if connection is None else str(connection),
            json.dumps(details) if details is not None else "",
        ]
        with self.lock:
            if not self._initialized:
                self._initialize_file()
            with open(self.filepath, "a", newline="", encoding="utf-8") as f:
                csv.writer(f, quoting=csv.QUOTE_ALL).writerow(row)


# Create a single, global instance to be used by the entire application
audit_log = AuditLogger()
