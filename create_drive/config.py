import json
from dataclasses import dataclass, fields, replace
from typing import Optional, Union

from .errors import ConfigurationError
from .rate_limiter import MAX_HZ, MIN_HZ

# ------------------------------
# Configuration (edit as needed)
# ------------------------------
CONFIG = {
    # Control loop
    "update_hz": 10,            # 1..20 velocity commands per second

    # Real hardware (port None = simulation)
    "port": None,               # 0 -> /dev/ttyUSB0 (COM0 on Windows), or a device path
    "baudrate": 115200,
    "hardware_version": 1,      # 1 = original Create, 2 = Create 2 (encoder reads)
    "wheelbase": None,          # meters; None picks 0.26 (v1 hardware) or 0.235
    "read_timeout": 0.1,        # seconds per serial read
    "max_read_attempts": 20,    # short sensor reads before giving up

    # Simulation
    "sigma_v": 0.0,             # multiplicative noise on linear velocity
    "sigma_omega": 0.0,         # multiplicative noise on angular velocity
    "noise_seed": None,
    "trail_length": 100,        # poses kept for the renderer, None = unbounded
}

WHEELBASE_V1 = 0.26
WHEELBASE_DEFAULT = 0.235


@dataclass(frozen=True)
class SessionConfig:
    update_hz: int = CONFIG["update_hz"]
    port: Optional[Union[int, str]] = CONFIG["port"]
    baudrate: int = CONFIG["baudrate"]
    hardware_version: int = CONFIG["hardware_version"]
    wheelbase: Optional[float] = CONFIG["wheelbase"]
    read_timeout: float = CONFIG["read_timeout"]
    max_read_attempts: int = CONFIG["max_read_attempts"]
    sigma_v: float = CONFIG["sigma_v"]
    sigma_omega: float = CONFIG["sigma_omega"]
    noise_seed: Optional[int] = CONFIG["noise_seed"]
    trail_length: Optional[int] = CONFIG["trail_length"]

    def __post_init__(self):
        if not MIN_HZ <= self.update_hz <= MAX_HZ:
            raise ConfigurationError(
                f"the update rate must be between {MIN_HZ} and {MAX_HZ} Hz, got {self.update_hz}")
        if self.hardware_version not in (1, 2):
            raise ConfigurationError(f"invalid hardware version {self.hardware_version}")
        if self.max_read_attempts < 1:
            raise ConfigurationError("max_read_attempts must be at least 1")
        if self.wheelbase is None:
            wheelbase = WHEELBASE_V1 if self.is_hardware and self.hardware_version == 1 else WHEELBASE_DEFAULT
            object.__setattr__(self, "wheelbase", wheelbase)
        elif self.wheelbase <= 0:
            raise ConfigurationError(f"wheelbase must be positive, got {self.wheelbase}")

    @property
    def is_hardware(self) -> bool:
        return self.port is not None

    @property
    def period(self) -> float:
        return 1.0 / self.update_hz

    def with_update_rate(self, hz: int) -> "SessionConfig":
        return replace(self, update_hz=hz)


def config_from_dict(cfg: dict) -> SessionConfig:
    known = {f.name for f in fields(SessionConfig)}
    unknown = set(cfg) - known
    if unknown:
        raise ConfigurationError(f"unknown config keys: {', '.join(sorted(unknown))}")
    merged = dict(CONFIG)
    merged.update(cfg)
    return SessionConfig(**merged)


def load_config(path) -> SessionConfig:
    try:
        with open(path, "r") as f:
            cfg = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"{path}: expected a JSON object")
    return config_from_dict(cfg)
