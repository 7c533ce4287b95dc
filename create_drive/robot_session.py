"""
RobotSession
============

One object to drive a Create, real or simulated, with the same calls.

With no port in the config the session runs the kinematic simulation;
with a port it talks to the robot over the serial link. The backend is
picked once, at construction.

Units at this boundary are centimeters and degrees (cm/s, deg/s for
velocities). ``set_vel`` is the exception and takes m/s and rad/s.

Example::

    with RobotSession(SessionConfig(update_hz=5)) as robot:
        robot.drive_forward(50)
        robot.turn_left(90)
        print(robot.get_pose())
"""
import math
import time
from dataclasses import replace

from .backends import (DEFAULT_SIGMA_OMEGA, DEFAULT_SIGMA_V, HardwareBackend,
                       SimulatedBackend)
from .config import SessionConfig
from .errors import TransportError, UnsupportedOperationError
from .kinematics import Pose, normalize_angle
from .motion import MotionController
from .rate_limiter import RateLimiter
from .serial_link import SerialLink

CM = 0.01


def make_backend(config: SessionConfig, link=None, on_pose=None, on_tx=None, sleep=time.sleep):
    if not config.is_hardware:
        return SimulatedBackend(
            config.wheelbase,
            sigma_v=config.sigma_v,
            sigma_omega=config.sigma_omega,
            trail_length=config.trail_length,
            seed=config.noise_seed,
            on_pose=on_pose,
        )
    if link is None:
        link = SerialLink(config.port, config.baudrate, timeout=config.read_timeout,
                          max_attempts=config.max_read_attempts, on_tx=on_tx)
    return HardwareBackend(link, config.wheelbase, version=config.hardware_version, sleep=sleep)


class RobotSession:
    def __init__(self, config: SessionConfig = None, *, link=None, on_pose=None, on_tx=None,
                 autoconnect: bool = True, clock=time.monotonic, sleep=time.sleep):
        self.config = config if config is not None else SessionConfig()
        self.backend = make_backend(self.config, link=link, on_pose=on_pose, on_tx=on_tx, sleep=sleep)
        self.rate_limiter = RateLimiter(self.config.update_hz, clock=clock, sleep=sleep)
        self.motion = MotionController(self.backend, self.rate_limiter)
        self._closed = False
        if autoconnect:
            self.connect()

    @property
    def simulated(self) -> bool:
        return isinstance(self.backend, SimulatedBackend)

    def _check_open(self):
        if self._closed:
            raise TransportError("session is closed")

    def _sim(self) -> SimulatedBackend:
        if not self.simulated:
            raise UnsupportedOperationError("only available in simulation mode")
        return self.backend

    def _hw(self) -> HardwareBackend:
        if self.simulated:
            raise UnsupportedOperationError("only available in robot mode")
        return self.backend

    # ---- Lifecycle ----
    def connect(self):
        self._check_open()
        self.backend.connect()

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.backend.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def set_update_rate(self, hz: int):
        self.config = self.config.with_update_rate(hz)
        self.rate_limiter.set_rate(hz)

    # ---- Velocity ----
    def set_vel(self, v: float, omega: float):
        """Velocity in m/s and rad/s; returns the command actually sent."""
        self._check_open()
        return self.motion.set_velocity(v, omega)

    def set_velocity(self, v_cm: float, omega_deg: float):
        """Velocity in cm/s and deg/s."""
        self.set_vel(v_cm * CM, math.radians(omega_deg))

    def direct_drive(self, left: float, right: float):
        """Wheel speeds in m/s, at most 0.5 each."""
        self._check_open()
        self.motion.direct_drive(left, right)

    def stop(self):
        self._check_open()
        self.motion.stop()

    def resume_control(self):
        self._check_open()
        self.backend.resume_control()

    # ---- Blocking moves ----
    def drive_forward(self, distance_cm: float, abort=None):
        """Drive forward (negative = backward); covered distance in cm."""
        self._check_open()
        outcome = self.motion.drive_distance(distance_cm * CM, abort=abort)
        return replace(outcome, covered=outcome.covered / CM)

    def drive_backward(self, distance_cm: float, abort=None):
        return self.drive_forward(-distance_cm, abort=abort)

    def rotate(self, angle_deg: float, abort=None):
        """Turn anticlockwise by ``angle_deg`` (negative = clockwise)."""
        self._check_open()
        outcome = self.motion.rotate_angle(math.radians(angle_deg), abort=abort)
        return replace(outcome, covered=math.degrees(outcome.covered))

    def turn_left(self, degrees: float, abort=None):
        return self.rotate(degrees, abort=abort)

    def turn_right(self, degrees: float, abort=None):
        return self.rotate(-degrees, abort=abort)

    # ---- Sensors ----
    def is_bumped(self) -> bool:
        self._check_open()
        return self.backend.is_bumped()

    def distance_sensor(self) -> float:
        """cm since the last read."""
        self._check_open()
        return self.backend.read_distance_delta() / CM

    def angle_sensor(self) -> float:
        """Degrees since the last read."""
        self._check_open()
        return math.degrees(self.backend.read_angle_delta())

    def angle_and_distance_sensor(self):
        """(degrees, cm) since the last read."""
        self._check_open()
        angle, distance = self.backend.read_combined()
        return math.degrees(angle), distance / CM

    # ---- Robot mode only ----
    def beep(self):
        self._check_open()
        self._hw().beep()

    # ---- Simulation only ----
    def set_noise(self, sigma_v: float = DEFAULT_SIGMA_V, sigma_omega: float = DEFAULT_SIGMA_OMEGA):
        self._sim().set_noise(sigma_v, sigma_omega)

    def get_pose(self) -> Pose:
        return self._sim().pose

    def move_to(self, x: float, y: float, heading: float = 0.0):
        """Teleport the simulated robot (meters, radians)."""
        self._sim().move_to(Pose(x, y, normalize_angle(heading)))

    def trail_size(self, length):
        """Poses kept for drawing; None keeps all of them."""
        self._sim().set_trail_length(length)

    def trail(self):
        return self._sim().trail

    def add_pose_listener(self, callback):
        self._sim().add_listener(callback)
