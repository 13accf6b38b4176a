"""Fixed-capacity capture buffer between the child's pipe and the sink."""

from logto.errors import BufferOverflowError

DEFAULT_CAPACITY = 4096


class CaptureBuffer:
    """Byte accumulator over a fixed ``bytearray``.

    Pending data always starts at offset 0. Callers read directly into
    :meth:`free_region`, then call :meth:`feed` with the byte count, and
    remove flushed bytes from the front with :meth:`eat`.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._buf = bytearray(capacity)
        self._count = 0

    @property
    def capacity(self) -> int:
        return len(self._buf)

    @property
    def pending(self) -> int:
        return self._count

    @property
    def space(self) -> int:
        return len(self._buf) - self._count

    def free_region(self) -> memoryview:
        """Writable view over the unused tail of the buffer."""
        return memoryview(self._buf)[self._count:]

    def pending_region(self) -> memoryview:
        """Read-only view over the bytes waiting to be flushed."""
        return memoryview(self._buf)[:self._count].toreadonly()

    def feed(self, n: int):
        """Mark ``n`` bytes already written into the free region as pending."""
        if n < 0 or n > self.space:
            raise BufferOverflowError(
                f"cannot feed {n} bytes, only {self.space} free of {self.capacity}"
            )
        self._count += n

    def eat(self, n: int):
        """Drop ``n`` bytes from the front and shift the rest down."""
        if n < 0 or n > self._count:
            raise BufferOverflowError(
                f"cannot eat {n} bytes, only {self._count} pending"
            )
        remaining = self._count - n
        self._buf[:remaining] = self._buf[n:self._count]
        self._count = remaining

    def take(self, n: int) -> bytes:
        """Copy out the first ``n`` pending bytes and eat them."""
        if n < 0 or n > self._count:
            raise BufferOverflowError(
                f"cannot take {n} bytes, only {self._count} pending"
            )
        data = bytes(self._buf[:n])
        self.eat(n)
        return data

    def find(self, sub: bytes, start: int = 0) -> int:
        """Index of ``sub`` within the pending region, or -1."""
        return self._buf.find(sub, start, self._count)

    def reset(self):
        # contents are left in place; only the count matters
        self._count = 0
