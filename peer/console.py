import logging
import sys
import threading

from peer.events import InputLine

logger = logging.getLogger(__name__)


class Console:
    """Reads user input on a daemon thread, one ``InputLine`` per line."""

    def __init__(self, events, stream=None):
        self.events = events
        self.stream = stream if stream is not None else sys.stdin
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._read_lines, name="console", daemon=True)
        self._thread.start()

    def _read_lines(self):
        for line in self.stream:
            self.events.put(InputLine(line.strip()))
        logger.debug("End of input")
