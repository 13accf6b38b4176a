"""Destination writers: kernel ring buffer, netconsole (UDP) and syslog."""

import logging
import os
import socket
import syslog

from logto.config import Config, Destination
from logto.errors import SinkError
from logto.prefix import LogRecord

logger = logging.getLogger(__name__)


class Sink:
    """One destination, opened once and written once per record."""

    def write(self, record: LogRecord):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class KmsgSink(Sink):
    """Scatter-writes header and payload to the device in one call.

    The device is opened write-only for relayed records and read-write
    when it is handed straight to the child.
    """

    def __init__(self, path: str = "/dev/kmsg", flags: int = os.O_WRONLY):
        try:
            self._fd = os.open(path, flags | os.O_CLOEXEC)
        except OSError as exc:
            raise SinkError(f"could not open {path}: {exc}") from exc
        self._path = path
        logger.debug("Opened %s as fd %d", path, self._fd)

    @property
    def fileno(self) -> int:
        return self._fd

    def write(self, record: LogRecord):
        try:
            os.writev(self._fd, record.segments())
        except OSError as exc:
            raise SinkError(f"emit failed: {exc}") from exc

    def close(self):
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1


class NetconsoleSink(Sink):
    """Unconnected UDP socket; every record is exactly one datagram.

    A missing listener never fails a send.
    """

    def __init__(self, host: str, port: int):
        try:
            family, socktype, proto, _, self._addr = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
            self._sock = socket.socket(family, socktype, proto)
        except OSError as exc:
            raise SinkError(
                f"could not setup UDP socket for netconsole {host}:{port}: {exc}"
            ) from exc
        logger.debug("Netconsole socket sending to %s", self._addr)

    def write(self, record: LogRecord):
        try:
            self._sock.sendmsg(record.segments(), [], 0, self._addr)
        except OSError as exc:
            raise SinkError(f"emit failed: {exc}") from exc

    def close(self):
        self._sock.close()


class SyslogSink(Sink):
    def __init__(self, ident: str = "logto", facility: str = "user"):
        self._facility = getattr(syslog, f"LOG_{facility.upper()}")
        syslog.openlog(ident, syslog.LOG_PID, self._facility)
        logger.debug("Opened syslog ident=%s facility=%s", ident, facility)

    def write(self, record: LogRecord):
        # syslog takes one formatted string, so no scatter write here
        try:
            syslog.syslog(record.effective_priority, record.text())
        except (OSError, ValueError) as exc:
            raise SinkError(f"syslog submission failed: {exc}") from exc

    def close(self):
        syslog.closelog()


def open_sink(config: Config) -> Sink:
    """Open the write handle for the configured destination."""
    if config.destination is Destination.KMSG:
        return KmsgSink(config.kmsg_path)
    if config.destination is Destination.NETCONSOLE:
        return NetconsoleSink(config.netconsole_host, config.netconsole_port)
    if config.destination is Destination.SYSLOG:
        return SyslogSink(config.name or "logto", config.syslog_facility)
    raise SinkError(f"unsupported destination {config.destination!r}")
