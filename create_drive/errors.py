# Error kinds raised by the drive stack. Each one is also a builtin so callers
# can catch either the robot-specific class or the generic one.


class RobotError(Exception):
    pass


class ConfigurationError(RobotError, ValueError):
    """Update rate outside 1..20, unknown hardware version, bad config file."""


class WheelSpeedOverflowError(RobotError, OverflowError):
    """A wheel would exceed 500 mm/s (simulation and direct drive only)."""


class UnsupportedOperationError(RobotError):
    """Operation not available for this backend or hardware version."""


class TransportError(RobotError, IOError):
    """Port unavailable, already open, I/O failure or short sensor packet."""


class SafetyLimitError(RobotError, ValueError):
    """Requested move is longer than the 10 m safety bound."""
