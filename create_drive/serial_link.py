import sys

import serial

from .errors import TransportError


def port_name(port) -> str:
    """Device name for a port number (``/dev/ttyUSB<n>`` or ``COM<n>``)."""
    if isinstance(port, str):
        return port
    if sys.platform == "win32":
        return f"COM{int(port)}"
    return f"/dev/ttyUSB{int(port)}"


class SerialLink:
    """Byte-stream link to the robot over pyserial.

    Reads are request-then-response: ``read_exact`` keeps reading until the
    full reply is in or ``max_attempts`` reads came back short.
    """

    def __init__(self, port, baud: int = 115200, timeout: float = 0.1,
                 max_attempts: int = 20, on_tx=None):
        self.port_name = port_name(port)
        self.baud = baud
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.on_tx = on_tx  # callback for status display
        self.ser = None

    @property
    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def open(self):
        if self.is_open:
            raise TransportError(f"{self.port_name} is already open")
        try:
            self.ser = serial.Serial(self.port_name, self.baud, timeout=self.timeout)
        except (serial.SerialException, OSError) as e:
            self.ser = None
            raise TransportError(f"serial port {self.port_name} does not exist or is in use: {e}") from e
        print(f"[Serial] Connected {self.port_name} @ {self.baud}")

    def write(self, frame: bytes):
        if not self.is_open:
            raise TransportError(f"{self.port_name} is not open")
        try:
            self.ser.write(frame)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"write to {self.port_name} failed: {e}") from e
        if self.on_tx:
            self.on_tx(frame.hex(" "))

    def reset_input(self):
        """Discard whatever is waiting in the receive buffer."""
        if not self.is_open:
            raise TransportError(f"{self.port_name} is not open")
        try:
            self.ser.reset_input_buffer()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"flush of {self.port_name} failed: {e}") from e

    def read_exact(self, size: int) -> bytes:
        if not self.is_open:
            raise TransportError(f"{self.port_name} is not open")
        buf = b""
        for _ in range(self.max_attempts):
            try:
                buf += self.ser.read(size - len(buf))
            except (serial.SerialException, OSError) as e:
                raise TransportError(f"read from {self.port_name} failed: {e}") from e
            if len(buf) == size:
                return buf
        raise TransportError(
            f"short read on {self.port_name}: got {len(buf)} of {size} bytes "
            f"after {self.max_attempts} attempts")

    def close(self):
        if self.ser is None:
            return
        try:
            self.ser.close()
        finally:
            self.ser = None
            print(f"[Serial] Closed {self.port_name}")
