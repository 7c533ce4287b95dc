# Open Interface command registry and 16-bit wire helpers.
# Keep opcodes aligned with the iRobot Create OI manual.
import math

START          = 128
BAUD           = 129
CONTROL        = 130
SAFE           = 131  # safe mode: cliff/wheel-drop still stop the robot
FULL           = 132
DRIVE          = 137
LED            = 139  # LED bits, power color, power intensity
SONG           = 140  # song index, note count, (note, duration) * count
PLAY_SONG      = 141  # song index
SENSORS        = 142  # packet id
DRIVE_DIRECT   = 145  # first wheel hi/lo, second wheel hi/lo (mm/s)

# Sensor packet ids and reply sizes in bytes
PKT_BUMPS      = 7    # bit0 right bumper, bit1 left bumper, bits 2-4 wheel drops
PKT_DISTANCE   = 19   # int16 mm since last request
PKT_ANGLE      = 20   # int16 degrees since last request
PKT_ENCODERS   = 101  # group; bytes 0-1 left count, 2-3 right count

PACKET_SIZES = {
    PKT_BUMPS: 1,
    PKT_DISTANCE: 2,
    PKT_ANGLE: 2,
    PKT_ENCODERS: 28,
}

INT16_MIN = -32768
INT16_MAX = 32767
ROLLOVER = 65536

# Wheel travel per encoder tick: 72 mm wheel, 508.8 counts per revolution.
MM_PER_COUNT = math.pi * 72.0 / 508.8


def merge_bytes16(high: int, low: int) -> int:
    return (low & 0xFF) | ((high & 0xFF) << 8)


def split_bytes16(word: int):
    """Return (high, low) bytes of an unsigned 16-bit word."""
    if not 0 <= word <= 0xFFFF:
        raise ValueError(f"{word} is not an unsigned 16-bit word")
    return (word >> 8) & 0xFF, word & 0xFF


def to_twos_complement16(value: int) -> int:
    """Encode a signed int as an unsigned 16-bit word.

    Out-of-range values are rejected instead of being wrapped.
    """
    value = int(value)
    if not INT16_MIN <= value <= INT16_MAX:
        raise ValueError(f"{value} does not fit in a signed 16-bit field")
    return value + ROLLOVER if value < 0 else value


def from_twos_complement16(word: int) -> int:
    word = int(word)
    if not 0 <= word <= 0xFFFF:
        raise ValueError(f"{word} is not an unsigned 16-bit word")
    return word - ROLLOVER if word > INT16_MAX else word


def rollover_delta(current: int, previous: int) -> int:
    """Signed change of a 16-bit counter, correcting for one wraparound.

    Example: previous=32767, current=-32768 -> 1
    """
    delta = current - previous
    if delta > ROLLOVER // 2:
        delta -= ROLLOVER
    elif delta < -(ROLLOVER // 2):
        delta += ROLLOVER
    return delta


def decode_int16(data: bytes, offset: int = 0) -> int:
    """Big-endian signed 16-bit field at ``offset``."""
    return from_twos_complement16(merge_bytes16(data[offset], data[offset + 1]))


def decode_encoder_counts(packet: bytes):
    """(left, right) signed encoder counts from the packet-101 group."""
    if len(packet) < 4:
        raise ValueError(f"encoder packet too short: {len(packet)} bytes")
    return decode_int16(packet, 0), decode_int16(packet, 2)


def bumped(flags: int) -> bool:
    return bool(flags & 0x03)


# ------------------------------
# Command frames
# ------------------------------
def pack(opcode: int, *payload: int) -> bytes:
    # Example: pack(SENSORS, 7) -> b"\x8e\x07"
    return bytes([opcode, *payload])


def cmd_start() -> bytes:
    return pack(START)


def cmd_safe() -> bytes:
    return pack(SAFE)


def cmd_led(bits: int = 10, color: int = 0, intensity: int = 128) -> bytes:
    return pack(LED, bits, color, intensity)


def cmd_song(index: int = 1, notes=((48, 20),)) -> bytes:
    payload = [index, len(notes)]
    for note, duration in notes:
        payload += [note, duration]
    return pack(SONG, *payload)


def cmd_play_song(index: int = 1) -> bytes:
    return pack(PLAY_SONG, index)


def cmd_sensors(packet_id: int) -> bytes:
    return pack(SENSORS, packet_id)


def cmd_drive_direct(first: int, second: int) -> bytes:
    """DriveDirect frame from two signed wheel speeds in mm/s.

    The OI reads the right wheel first. ``WheelSpeeds.left`` goes in ``first``,
    which is what makes a positive angular rate turn the robot anticlockwise.
    """
    fh, fl = split_bytes16(to_twos_complement16(first))
    sh, sl = split_bytes16(to_twos_complement16(second))
    return pack(DRIVE_DIRECT, fh, fl, sh, sl)
