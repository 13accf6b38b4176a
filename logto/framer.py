"""Record framing over the capture buffer."""

import logging

from logto.buffer import CaptureBuffer
from logto.metrics import Metrics

logger = logging.getLogger(__name__)

NEWLINE = b"\n"


class RecordFramer:
    """Decides when buffered bytes become a record.

    ``line`` framing emits every complete line and force-flushes a full
    buffer that holds no newline. ``capacity`` framing only flushes once the
    buffer is full, so a record may span or split lines.
    """

    def __init__(self, buffer: CaptureBuffer, framing: str = "line",
                 metrics: Metrics | None = None):
        if framing not in ("line", "capacity"):
            raise ValueError(f"unknown framing {framing!r}")
        self._buffer = buffer
        self._framing = framing
        self._metrics = metrics

    def feed(self, n: int) -> list[bytes]:
        """Account for ``n`` freshly read bytes and return ready records."""
        self._buffer.feed(n)
        records: list[bytes] = []

        if self._framing == "line":
            # only the bytes from this read can hold a newline we haven't seen
            scan_from = self._buffer.pending - n
            while True:
                pos = self._buffer.find(NEWLINE, scan_from)
                if pos == -1:
                    break
                records.append(self._buffer.take(pos + 1))
                scan_from = 0

        if self._buffer.space == 0:
            if self._framing == "line":
                logger.debug("Line exceeds %d bytes, forcing flush", self._buffer.capacity)
                if self._metrics:
                    self._metrics.increment("forced_flushes")
            records.append(self._flush_all())

        return records

    def drain(self) -> bytes | None:
        """Flush whatever is left, e.g. a final line without a newline."""
        if not self._buffer.pending:
            return None
        return self._flush_all()

    def _flush_all(self) -> bytes:
        record = bytes(self._buffer.pending_region())
        self._buffer.reset()
        return record
