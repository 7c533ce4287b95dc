import math
from dataclasses import dataclass

from .errors import RobotError, SafetyLimitError, WheelSpeedOverflowError
from .kinematics import normalize_angle

MAX_DISTANCE = 10.0   # m, longest single drive_distance()
SETTLE = 0.01         # m or rad short of the target counts as reached
MAX_DIRECT_SPEED = 0.5  # m/s per wheel for direct_drive()


@dataclass(frozen=True)
class MotionOutcome:
    covered: float          # distance (m) or angle (rad) actually travelled
    stopped_early: bool     # a bump (or the abort predicate) ended the move


class MotionController:
    """Velocity ticks and the blocking drive/rotate primitives.

    Every velocity that reaches the backend goes through set_velocity(), so
    each one costs exactly one rate-limiter tick.
    """

    def __init__(self, backend, rate_limiter):
        self.backend = backend
        self.rate_limiter = rate_limiter

    def set_velocity(self, linear: float, angular: float):
        linear, angular = self.backend.check_velocity(linear, angular)
        self.rate_limiter.tick()
        self.backend.apply_velocity(linear, angular, self.rate_limiter.period)
        return linear, angular

    def stop(self):
        return self.set_velocity(0.0, 0.0)

    def direct_drive(self, left: float, right: float):
        """Drive each wheel at its own speed (m/s).

        ``left`` and ``right`` follow the drive map (left minus right is the
        angular rate), not the physical wheels: ``left`` goes in the first
        DriveDirect slot, which the Create applies to its right wheel.
        """
        if abs(left) > MAX_DIRECT_SPEED or abs(right) > MAX_DIRECT_SPEED:
            raise WheelSpeedOverflowError(
                f"the speed of each wheel cannot exceed {MAX_DIRECT_SPEED} m/s: left={left} right={right}")
        linear = (left + right) / 2
        angular = (left - right) / self.backend.wheelbase
        return self.set_velocity(linear, angular)

    def _aborted(self, abort) -> bool:
        if self.backend.is_bumped():
            return True
        return bool(abort and abort())

    def _run(self, linear, angular, progress, target, abort) -> MotionOutcome:
        # command (linear, angular) each tick until progress() adds up to target
        goal = abs(target) - SETTLE
        covered = 0.0
        stopped = False
        try:
            while abs(covered) < goal:
                self.set_velocity(linear, angular)
                covered += progress()
                if abs(covered) < goal and self._aborted(abort):
                    stopped = True
                    break
        except BaseException:
            self._halt()
            raise
        self.stop()
        return MotionOutcome(covered, stopped)

    def _halt(self):
        # the last command stays active on the robot until zero is sent
        try:
            self.stop()
        except RobotError as e:
            print(f"[Motion] could not stop after error: {e}")

    def drive_distance(self, target: float, abort=None) -> MotionOutcome:
        """Drive ``target`` meters (negative = backwards) and stop."""
        if abs(target) > MAX_DISTANCE:
            raise SafetyLimitError(f"distance is too large: {target} m (limit {MAX_DISTANCE} m)")
        self.backend.resume_control()
        self.backend.reset_travel()
        speed = math.copysign(self.backend.drive_speed, target)
        return self._run(speed, 0.0, self.backend.travel_delta, target, abort)

    def rotate_angle(self, target: float, abort=None) -> MotionOutcome:
        """Turn by ``target`` radians, positive anticlockwise.

        The target is first wrapped into (-pi, pi] so the robot never spins
        more than half a turn.
        """
        target = normalize_angle(target)
        self.backend.resume_control()
        self.backend.reset_turn()
        omega = self.backend.turn_speed if target > 0 else -self.backend.turn_speed
        return self._run(0.0, omega, self.backend.turn_delta, target, abort)
