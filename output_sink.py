"""
Turns interpreter output into result messages, one per completed line.
"""
import io
import logging
from typing import Callable, Hashable

from data_models import Label, OutboundMessage, Status, StatusCode


class LineBufferedSink(io.TextIOBase):
    """
    A writable text stream bound to one connection.

    Characters accumulate until a newline arrives, at which point the buffered
    line (newline included) is sent as a 'Sending result' message. A trailing
    partial line stays buffered until a later write completes it. Once closed,
    writes are discarded.
    """

    def __init__(self, connection: Hashable, send: Callable[[Hashable, OutboundMessage], None]):
        super().__init__()
        self.connection = connection
        self._send = send
        self.output_buffer = ""

    def writable(self) -> bool:
        return not self.closed

    def write(self, text: str) -> int:
        if self.closed:
            return 0
        for char in text:
            self.output_buffer += char
            if char == "\n":
                self._flush_line()
        return len(text)

    def _flush_line(self) -> None:
        line, self.output_buffer = self.output_buffer, ""
        message = OutboundMessage(
            type=Label.INTERACTIVE,
            status=Status(code=StatusCode.SUCCESS, text="Sending result"),
            result=line,
        )
        self._send(self.connection, message)
        logging.info(f"[Python] {line[:-1]}")

    def flush(self) -> None:
        # Partial lines are only sent once a newline completes them.
        pass

    def close(self) -> None:
        self.output_buffer = ""
        super().close()
