"""Tests for the destination writers."""

import os
import socket
import syslog

import pytest

from conftest import make_config
from logto.config import Destination
from logto.errors import SinkError
from logto.prefix import PrefixComposer
from logto.sinks import KmsgSink, NetconsoleSink, SyslogSink, open_sink


def _make_receiver(port=0):
    """Create a UDP socket to receive datagrams, returns (sock, address)."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", port))
    sock.settimeout(5.0)
    return sock, sock.getsockname()


class TestKmsgSink:
    def test_writes_header_then_payload(self, kmsg_file):
        with KmsgSink(str(kmsg_file)) as sink:
            sink.write(PrefixComposer("app").compose(b"<3>hello\n"))
        assert kmsg_file.read_bytes() == b"<3>app: hello\n"

    def test_unnamed_record_written_verbatim(self, kmsg_file):
        with KmsgSink(str(kmsg_file)) as sink:
            sink.write(PrefixComposer().compose(b"no marker here\n"))
        assert kmsg_file.read_bytes() == b"no marker here\n"

    def test_records_appended_in_order(self, kmsg_file):
        composer = PrefixComposer("app")
        with KmsgSink(str(kmsg_file)) as sink:
            sink.write(composer.compose(b"one\n"))
            sink.write(composer.compose(b"<2>two\n"))
        assert kmsg_file.read_bytes() == b"<6>app: one\n<2>app: two\n"

    def test_default_open_is_write_only(self, kmsg_file, monkeypatch):
        opened = []
        real_open = os.open
        monkeypatch.setattr(os, "open", lambda path, flags, *rest: opened.append(flags) or real_open(path, flags, *rest))
        KmsgSink(str(kmsg_file)).close()
        assert opened[0] & (os.O_WRONLY | os.O_RDWR) == os.O_WRONLY

    def test_read_write_open(self, kmsg_file):
        with KmsgSink(str(kmsg_file), os.O_RDWR) as sink:
            assert os.read(sink.fileno, 10) == b""
            sink.write(PrefixComposer().compose(b"x\n"))
        assert kmsg_file.read_bytes() == b"x\n"

    def test_open_failure(self, tmp_path):
        with pytest.raises(SinkError, match="could not open"):
            KmsgSink(str(tmp_path / "missing" / "kmsg"))

    def test_write_failure_is_fatal(self, kmsg_file):
        sink = KmsgSink(str(kmsg_file))
        os.close(sink.fileno)
        try:
            with pytest.raises(SinkError, match="emit failed"):
                sink.write(PrefixComposer().compose(b"x\n"))
        finally:
            sink._fd = -1


class TestNetconsoleSink:
    def test_one_datagram_per_record(self):
        recv_sock, (host, port) = _make_receiver()
        try:
            composer = PrefixComposer("app")
            with NetconsoleSink(host, port) as sink:
                sink.write(composer.compose(b"<3>hello\n"))
                sink.write(composer.compose(b"plain\n"))

            first, _ = recv_sock.recvfrom(65536)
            second, _ = recv_sock.recvfrom(65536)
            assert first == b"<3>app: hello\n"
            assert second == b"<6>app: plain\n"
        finally:
            recv_sock.close()

    def test_unnamed(self):
        recv_sock, (host, port) = _make_receiver()
        try:
            with NetconsoleSink(host, port) as sink:
                sink.write(PrefixComposer().compose(b"<3>hello"))
            data, _ = recv_sock.recvfrom(65536)
            assert data == b"<3>hello"
        finally:
            recv_sock.close()

    def test_missing_listener_does_not_fail_writes(self):
        closed = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        closed.bind(("127.0.0.1", 0))
        host, port = closed.getsockname()
        closed.close()

        composer = PrefixComposer("app")
        with NetconsoleSink(host, port) as sink:
            for i in range(3):
                sink.write(composer.compose(f"line {i}\n".encode()))

    def test_unresolvable_host(self):
        with pytest.raises(SinkError):
            NetconsoleSink("host.invalid", 6666)


class TestSyslogSink:
    def test_priority_and_text(self, syslog_calls):
        with SyslogSink("watchdog") as sink:
            sink.write(PrefixComposer("watchdog").compose(b"<1>critical error\n"))
        assert syslog_calls == [(1, "watchdog: critical error\n")]

    def test_default_priority(self, syslog_calls):
        with SyslogSink() as sink:
            sink.write(PrefixComposer("app").compose(b"hello\n"))
        assert syslog_calls == [(6, "app: hello\n")]

    def test_unnamed_marker_used_and_stripped(self, syslog_calls):
        with SyslogSink() as sink:
            sink.write(PrefixComposer().compose(b"<3>disk full\n"))
        assert syslog_calls == [(3, "disk full\n")]

    def test_openlog_receives_facility(self, monkeypatch, syslog_calls):
        opened = []
        monkeypatch.setattr(syslog, "openlog", lambda *a: opened.append(a))
        SyslogSink("app", "daemon").close()
        assert opened == [("app", syslog.LOG_PID, syslog.LOG_DAEMON)]


class TestOpenSink:
    def test_kmsg(self, kmsg_file):
        sink = open_sink(make_config(destination=Destination.KMSG, kmsg_path=str(kmsg_file)))
        try:
            assert isinstance(sink, KmsgSink)
        finally:
            sink.close()

    def test_netconsole(self):
        sink = open_sink(make_config(destination=Destination.NETCONSOLE,
                                     netconsole_host="127.0.0.1", netconsole_port=6666))
        try:
            assert isinstance(sink, NetconsoleSink)
        finally:
            sink.close()

    def test_syslog(self, syslog_calls):
        sink = open_sink(make_config(destination=Destination.SYSLOG, name="app"))
        try:
            assert isinstance(sink, SyslogSink)
        finally:
            sink.close()
