import pytest

from create_drive import protocol as oi
from create_drive.errors import TransportError


class FakeClock:
    """Monotonic clock that only moves when someone sleeps on it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeLink:
    """In-memory stand-in for SerialLink.

    ``replies`` maps a sensor packet id to the replies handed out, in order,
    each time that packet is requested.
    """

    def __init__(self, replies=None):
        self.replies = {k: list(v) for k, v in (replies or {}).items()}
        self.written = []
        self.pending = []
        self.is_open = False
        self.opens = 0
        self.closes = 0
        self.flushes = 0

    def open(self):
        if self.is_open:
            raise TransportError("already open")
        self.is_open = True
        self.opens += 1

    def write(self, frame):
        if not self.is_open:
            raise TransportError("not open")
        self.written.append(bytes(frame))
        if frame[0] == oi.SENSORS:
            queue = self.replies.get(frame[1], [])
            self.pending.append(queue.pop(0) if queue else b"")

    def reset_input(self):
        if not self.is_open:
            raise TransportError("not open")
        self.pending.clear()
        self.flushes += 1

    def read_exact(self, size):
        data = self.pending.pop(0) if self.pending else b""
        if len(data) != size:
            raise TransportError(f"short read: got {len(data)} of {size} bytes")
        return data

    def close(self):
        if self.is_open:
            self.is_open = False
            self.closes += 1

    def drive_frames(self):
        return [f for f in self.written if f[0] == oi.DRIVE_DIRECT]


def int16(value):
    return bytes(oi.split_bytes16(oi.to_twos_complement16(value)))


def encoder_packet(left, right):
    return int16(left) + int16(right) + bytes(24)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def link():
    return FakeLink()
