# ------------------------------
# Drive backends (simulated or real)
# ------------------------------
#
# Wheel-speed overflow is handled differently on purpose:
#   SimulatedBackend.check_velocity  -> raises WheelSpeedOverflowError
#   HardwareBackend.check_velocity   -> rescales so the faster wheel sits at
#                                       500 mm/s and prints a warning
# Both policies are kept separate; do not merge them.
import math
import time
from collections import deque

import numpy as np

from . import protocol as oi
from .errors import UnsupportedOperationError, WheelSpeedOverflowError
from .kinematics import (MAX_WHEEL_SPEED, Pose, apply_noise, clamp_or_scale,
                         integrate_pose, velocity_for, wheel_speeds_for)

# Measured on a real Create, used when set_noise() is called without values
DEFAULT_SIGMA_V = 0.0152
DEFAULT_SIGMA_OMEGA = 0.5098


class BackendBase:
    name = "base"
    drive_speed = 0.0   # m/s used by drive_distance
    turn_speed = 0.0    # rad/s used by rotate_angle

    def __init__(self, wheelbase: float):
        self.wheelbase = wheelbase

    def connect(self):
        pass

    def check_velocity(self, linear: float, angular: float):
        """Return the (linear, angular) command that will actually be sent."""
        raise NotImplementedError

    def apply_velocity(self, linear: float, angular: float, dt: float):
        raise NotImplementedError

    def read_distance_delta(self) -> float:
        raise NotImplementedError

    def read_angle_delta(self) -> float:
        raise NotImplementedError

    def read_combined(self):
        raise NotImplementedError

    def is_bumped(self) -> bool:
        return False

    def resume_control(self):
        pass

    def reset_travel(self):
        """Zero the counter behind travel_delta()."""
        raise NotImplementedError

    def reset_turn(self):
        """Zero the counter behind turn_delta()."""
        raise NotImplementedError

    def travel_delta(self) -> float:
        raise NotImplementedError

    def turn_delta(self) -> float:
        raise NotImplementedError

    def close(self):
        pass


class SimulatedBackend(BackendBase):
    """Kinematic stand-in for the robot.

    Owns the pose and its trail. Renderers subscribe with add_listener() and
    get a Pose after every control tick; they never hold the backend itself.
    """
    name = "simulation"
    drive_speed = 0.5
    turn_speed = math.pi / 8

    def __init__(self, wheelbase: float, sigma_v: float = 0.0, sigma_omega: float = 0.0,
                 trail_length=100, seed=None, on_pose=None):
        super().__init__(wheelbase)
        self.sigma_v = sigma_v
        self.sigma_omega = sigma_omega
        self.rng = np.random.default_rng(seed)
        self._pose = Pose()
        self._trail = deque([self._pose], maxlen=trail_length)
        self._listeners = [on_pose] if on_pose else []
        # sensor accumulators, reset on read
        self._distance = 0.0
        self._angle = 0.0
        # odometer used by the blocking motions
        self._odo_distance = 0.0
        self._odo_angle = 0.0

    @property
    def pose(self) -> Pose:
        return self._pose

    @property
    def trail(self):
        return tuple(self._trail)

    def add_listener(self, callback):
        self._listeners.append(callback)

    def set_noise(self, sigma_v: float = DEFAULT_SIGMA_V, sigma_omega: float = DEFAULT_SIGMA_OMEGA):
        self.sigma_v = sigma_v
        self.sigma_omega = sigma_omega

    def set_trail_length(self, length):
        self._trail = deque(self._trail, maxlen=length)

    def move_to(self, pose: Pose):
        """Place the robot at ``pose`` without touching the sensors."""
        self._set_pose(pose)

    def _set_pose(self, pose: Pose):
        self._pose = pose
        self._trail.append(pose)
        for cb in self._listeners:
            cb(pose)

    def check_velocity(self, linear, angular):
        speeds = wheel_speeds_for(linear, angular, self.wheelbase)
        if speeds.exceeds(MAX_WHEEL_SPEED):
            raise WheelSpeedOverflowError(
                f"the speed of each wheel cannot exceed 0.5 m/s (consider both v and omega): "
                f"left={speeds.left} right={speeds.right} mm/s")
        return linear, angular

    def apply_velocity(self, linear, angular, dt):
        linear, angular = apply_noise(linear, angular, self.sigma_v, self.sigma_omega, self.rng)
        dx = linear * dt
        dtheta = angular * dt
        self._distance += dx
        self._angle += dtheta
        self._odo_distance += dx
        self._odo_angle += dtheta
        self._set_pose(integrate_pose(self._pose, linear, angular, dt))

    def read_distance_delta(self):
        d, self._distance = self._distance, 0.0
        return d

    def read_angle_delta(self):
        a, self._angle = self._angle, 0.0
        return a

    def read_combined(self):
        return self.read_angle_delta(), self.read_distance_delta()

    def reset_travel(self):
        self._odo_distance = 0.0

    def reset_turn(self):
        self._odo_angle = 0.0

    def travel_delta(self):
        d, self._odo_distance = self._odo_distance, 0.0
        return d

    def turn_delta(self):
        a, self._odo_angle = self._odo_angle, 0.0
        return a

    def close(self):
        self._listeners.clear()
        self._trail.clear()


class HardwareBackend(BackendBase):
    """A Create on the other end of a byte-stream link (see serial_link)."""
    name = "hardware"
    drive_speed = 0.4
    spin_wheel_speed = 0.1  # m/s per wheel when turning in place

    def __init__(self, link, wheelbase: float, version: int = 1, sleep=time.sleep):
        super().__init__(wheelbase)
        self.link = link
        self.version = version
        self.turn_speed = 2 * self.spin_wheel_speed / wheelbase
        self._sleep = sleep
        self.prev_left = 0
        self.prev_right = 0

    def _send(self, frame: bytes, pause: float = 0.0):
        self.link.write(frame)
        if pause:
            self._sleep(pause)

    def _request(self, packet_id: int) -> bytes:
        # drop late bytes from an earlier reply so they are not read as this one
        self.link.reset_input()
        self.link.write(oi.cmd_sensors(packet_id))
        return self.link.read_exact(oi.PACKET_SIZES[packet_id])

    def connect(self):
        try:
            self.link.open()
            self._send(oi.cmd_start(), 0.3)
            self._send(oi.cmd_safe(), 0.3)
            self._send(oi.cmd_led(), 0.3)
            self._send(oi.cmd_song(), 0.3)
            self._send(oi.cmd_play_song(), 0.3)
            if self.version == 2:
                self.prev_left, self.prev_right = oi.decode_encoder_counts(self._request(oi.PKT_ENCODERS))
        except Exception:
            self.link.close()
            raise
        print(f"[Create] Ready (version {self.version}, wheelbase {self.wheelbase} m)")

    def resume_control(self):
        # robot may have been picked up: wheel drop drops it to passive mode
        self._send(oi.cmd_safe(), 0.1)
        self._send(oi.cmd_led(), 0.1)

    def beep(self):
        self._send(oi.cmd_song(), 0.1)
        self._send(oi.cmd_play_song(), 0.1)

    def check_velocity(self, linear, angular):
        speeds, scaled = clamp_or_scale(wheel_speeds_for(linear, angular, self.wheelbase))
        if not scaled:
            return linear, angular
        linear, angular = velocity_for(speeds, self.wheelbase)
        print("[Create] WARNING: wheel velocities are being scaled down.")
        print(f"[Create] New omega is {angular:f} rad/s and new velocity is {linear:f} m/s")
        return linear, angular

    def apply_velocity(self, linear, angular, dt):
        speeds, _ = clamp_or_scale(wheel_speeds_for(linear, angular, self.wheelbase))
        self._send(oi.cmd_drive_direct(speeds.left, speeds.right))

    def read_distance_delta(self):
        if self.version != 1:
            raise UnsupportedOperationError("distance sensor not compatible with Create version 2")
        return oi.decode_int16(self._request(oi.PKT_DISTANCE)) / 1000.0

    def read_angle_delta(self):
        if self.version != 1:
            raise UnsupportedOperationError("angle sensor not compatible with Create version 2")
        return math.radians(oi.decode_int16(self._request(oi.PKT_ANGLE)))

    def read_combined(self):
        """(angle rad, distance m) since the previous call, from wheel encoders."""
        if self.version != 2:
            raise UnsupportedOperationError("angle/distance encoder read not compatible with Create version 1")
        left, right = oi.decode_encoder_counts(self._request(oi.PKT_ENCODERS))
        l_wheel = oi.rollover_delta(left, self.prev_left) * oi.MM_PER_COUNT
        r_wheel = oi.rollover_delta(right, self.prev_right) * oi.MM_PER_COUNT
        self.prev_left, self.prev_right = left, right
        distance = (l_wheel + r_wheel) / 2 * 0.001
        angle = (r_wheel - l_wheel) / (self.wheelbase * 1000)
        return angle, distance

    def is_bumped(self):
        return oi.bumped(self._request(oi.PKT_BUMPS)[0])

    # version 1 resets only the sensor the move tracks; the other keeps its
    # unread value for the caller
    def reset_travel(self):
        if self.version == 1:
            self.read_distance_delta()
        else:
            self.read_combined()

    def reset_turn(self):
        if self.version == 1:
            self.read_angle_delta()
        else:
            self.read_combined()

    def travel_delta(self):
        if self.version == 1:
            return self.read_distance_delta()
        return self.read_combined()[1]

    def turn_delta(self):
        if self.version == 1:
            return self.read_angle_delta()
        return self.read_combined()[0]

    def close(self):
        self.link.close()
