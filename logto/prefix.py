"""Priority marker extraction and ``<P>name: `` header composition."""

from dataclasses import dataclass

LOG_INFO = 6
MARKER_LEN = 3


def parse_priority(raw: bytes) -> int | None:
    """Return the digit of a leading ``<d>`` marker (d in 0-7), else None."""
    if len(raw) < MARKER_LEN or raw[0] != ord("<") or raw[2] != ord(">"):
        return None
    digit = raw[1] - ord("0")
    if 0 <= digit <= 7:
        return digit
    return None


@dataclass(frozen=True)
class LogRecord:
    priority: int | None
    name: str | None
    body: bytes
    raw: bytes
    default_priority: int = LOG_INFO

    @property
    def effective_priority(self) -> int:
        return self.default_priority if self.priority is None else self.priority

    def header(self) -> bytes | None:
        """``<P>name: `` when a name is configured, otherwise None."""
        if self.name is None:
            return None
        return f"<{self.effective_priority}>{self.name}: ".encode("utf-8")

    def segments(self) -> list[bytes]:
        """Buffers for a single scatter write, header first."""
        header = self.header()
        if header is None:
            # unnamed records go out untouched; the reader parses any marker
            return [self.raw]
        return [header, self.body]

    def text(self) -> str:
        """Single string form for syslog: ``name: body`` without a marker."""
        body = self.body.decode("utf-8", errors="replace")
        if self.name is None:
            return body
        return f"{self.name}: {body}"


class PrefixComposer:
    def __init__(self, name: str | None = None, default_priority: int = LOG_INFO):
        self._name = name
        self._default_priority = default_priority

    def compose(self, raw: bytes) -> LogRecord:
        priority = parse_priority(raw)
        body = raw[MARKER_LEN:] if priority is not None else raw
        return LogRecord(
            priority=priority,
            name=self._name,
            body=body,
            raw=raw,
            default_priority=self._default_priority,
        )
