"""The capture loop: child pipe -> buffer -> framer -> composer -> sink."""

import logging
import os

from logto.buffer import CaptureBuffer
from logto.config import Config
from logto.errors import LogtoError, StreamError
from logto.framer import RecordFramer
from logto.launcher import spawn
from logto.metrics import Metrics
from logto.prefix import LOG_INFO, PrefixComposer
from logto.sinks import KmsgSink, Sink, open_sink

logger = logging.getLogger(__name__)

# returned when the child's output ended but the child itself reported success
EXIT_STREAM_CLOSED = 1


class Relay:
    def __init__(self, config: Config, sink: Sink, buffer: CaptureBuffer | None = None,
                 metrics: Metrics | None = None):
        self._sink = sink
        self._buffer = buffer if buffer is not None else CaptureBuffer(config.buffer_size)
        self._metrics = metrics if metrics is not None else Metrics()
        self._framer = RecordFramer(self._buffer, config.framing, self._metrics)
        self._composer = PrefixComposer(config.name, config.default_priority)

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def emit(self, raw: bytes):
        record = self._composer.compose(raw)
        self._sink.write(record)
        self._metrics.increment("records")
        self._metrics.increment("bytes", len(raw))

    def announce(self, message: str):
        """Emit a lifecycle line of our own through the destination."""
        self.emit(f"<{LOG_INFO}>{message}\n".encode("utf-8"))

    def pump(self, read_fd: int):
        """Relay until end of stream, then flush the partial record."""
        while True:
            free = self._buffer.free_region()
            try:
                n = os.readv(read_fd, [free])
            except OSError as exc:
                if self._buffer.pending:
                    logger.warning("Dropping %d unflushed bytes", self._buffer.pending)
                raise StreamError(f"read from child failed: {exc}") from exc
            finally:
                free.release()

            if n == 0:
                logger.info("End of stream from child")
                break

            self._metrics.increment("reads")
            for raw in self._framer.feed(n):
                self.emit(raw)

        tail = self._framer.drain()
        if tail is not None:
            self.emit(tail)


def _run_direct(config: Config) -> int:
    """Kmsg without a name: the child writes straight into the device."""
    with KmsgSink(config.kmsg_path, os.O_RDWR) as sink:
        relay = Relay(config, sink)
        child = spawn(config.command, target=sink.fileno)
        if config.announce:
            relay.announce(f"started {config.command[0]} (pid {child.pid})")
        status = child.reap()
        logger.info("Child %d exited with status %d", child.pid, status)
        if config.announce:
            relay.announce(f"{config.command[0]} exited with status {status}")
    return status


def run(config: Config) -> int:
    """Supervise one child for its whole life and return our exit status."""
    if config.direct_wiring:
        return _run_direct(config)

    child = spawn(config.command)
    try:
        sink = open_sink(config)
    except LogtoError:
        child.close()
        child.kill()
        raise

    try:
        with sink:
            relay = Relay(config, sink)
            if config.announce:
                relay.announce(f"started {config.command[0]} (pid {child.pid})")

            relay.pump(child.read_fd)

            status = child.reap(config.reap_timeout)
            if config.announce and status is not None:
                relay.announce(f"{config.command[0]} exited with status {status}")
            logger.info("Relay stats: %s", relay.metrics.snapshot())
    finally:
        child.close()

    if status is None:
        logger.error("Child %d closed its output but is still running", child.pid)
        return EXIT_STREAM_CLOSED
    if status != 0:
        logger.error("Child %d exited with status %d", child.pid, status)
        return status
    logger.error("Output stream of child %d closed", child.pid)
    return EXIT_STREAM_CLOSED
