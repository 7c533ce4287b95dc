# Differential-drive kinematics for the Create base.
import math
from dataclasses import dataclass

import numpy as np

MAX_WHEEL_SPEED = 500  # mm/s, either direction


@dataclass(frozen=True)
class Pose:
    """Simple pose container (meters, radians)."""
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0


@dataclass(frozen=True)
class WheelSpeeds:
    left: int   # mm/s
    right: int  # mm/s

    def exceeds(self, bound: int = MAX_WHEEL_SPEED) -> bool:
        return abs(self.left) > bound or abs(self.right) > bound


def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]; pi itself is kept."""
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle <= -math.pi:
        angle += 2 * math.pi
    return angle


def _drive_matrix(wheelbase: float) -> np.ndarray:
    # [v; omega] = A @ [left; right]
    return np.array([[0.5, 0.5], [1.0 / wheelbase, -1.0 / wheelbase]])


def wheel_speeds_for(linear: float, angular: float, wheelbase: float) -> WheelSpeeds:
    """Wheel speeds (mm/s, truncated toward zero) for a body velocity.

    linear in m/s, angular in rad/s; left minus right gives the angular rate.
    """
    wheels = np.linalg.solve(_drive_matrix(wheelbase), [linear, angular]) * 1000.0
    # round off solver noise first so 0.2 m/s is 200 mm/s, not 199
    left, right = np.trunc(np.round(wheels, 6))
    return WheelSpeeds(int(left), int(right))


def velocity_for(speeds: WheelSpeeds, wheelbase: float):
    """Inverse map: (linear m/s, angular rad/s) produced by ``speeds``."""
    linear, angular = _drive_matrix(wheelbase) @ [speeds.left, speeds.right] * 0.001
    return float(linear), float(angular)


def clamp_or_scale(speeds: WheelSpeeds, bound: int = MAX_WHEEL_SPEED):
    """Scale both wheels so the faster one sits exactly at ``bound``.

    Returns (speeds, scaled). Speeds already inside the bound pass through.
    """
    if not speeds.exceeds(bound):
        return speeds, False
    if abs(speeds.left) >= abs(speeds.right):
        alpha = bound / abs(speeds.left)
        left = int(math.copysign(bound, speeds.left))
        right = int(np.trunc(speeds.right * alpha))
    else:
        alpha = bound / abs(speeds.right)
        left = int(np.trunc(speeds.left * alpha))
        right = int(math.copysign(bound, speeds.right))
    return WheelSpeeds(left, right), True


def integrate_pose(pose: Pose, linear: float, angular: float, dt: float) -> Pose:
    """Advance a pose by one step using the midpoint heading.

    x/y move along ``heading + angular*dt/2``; heading is wrapped to (-pi, pi].
    """
    dx = linear * dt
    dtheta = angular * dt
    mid = pose.heading + dtheta / 2
    return Pose(
        pose.x + dx * math.cos(mid),
        pose.y + dx * math.sin(mid),
        normalize_angle(pose.heading + dtheta),
    )


def apply_noise(linear: float, angular: float, sigma_v: float, sigma_omega: float, rng=None):
    """Multiplicative gaussian noise on an unscaled velocity command."""
    if sigma_v == 0 and sigma_omega == 0:
        return linear, angular
    rng = rng if rng is not None else np.random.default_rng()
    linear *= 1 + rng.normal(0.0, sigma_v)
    angular *= 1 + rng.normal(0.0, sigma_omega)
    return float(linear), float(angular)
