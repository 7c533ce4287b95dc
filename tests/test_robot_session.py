import json
import math

import pytest

from conftest import FakeLink, encoder_packet
from create_drive import (ConfigurationError, RobotSession, SafetyLimitError,
                          SessionConfig, TransportError,
                          UnsupportedOperationError, WheelSpeedOverflowError,
                          load_config)
from create_drive import protocol as oi


@pytest.fixture
def sim(clock):
    robot = RobotSession(SessionConfig(update_hz=20), clock=clock, sleep=clock.sleep)
    yield robot
    robot.close()


def hw_session(link, clock, version=1):
    cfg = SessionConfig(port="/dev/ttyUSB0", hardware_version=version, update_hz=20)
    return RobotSession(cfg, link=link, clock=clock, sleep=clock.sleep)


# ------------------------------
# Configuration
# ------------------------------
def test_config_defaults():
    cfg = SessionConfig()
    assert cfg.update_hz == 10
    assert not cfg.is_hardware
    assert cfg.wheelbase == 0.235
    assert SessionConfig(port=0).wheelbase == 0.26
    assert SessionConfig(port=0, hardware_version=2).wheelbase == 0.235
    assert SessionConfig(wheelbase=0.3).wheelbase == 0.3


@pytest.mark.parametrize("kwargs", [
    {"update_hz": 0}, {"update_hz": 21}, {"hardware_version": 3}, {"wheelbase": -1.0},
])
def test_config_validation(kwargs):
    with pytest.raises(ConfigurationError):
        SessionConfig(**kwargs)


def test_load_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"update_hz": 5, "port": 0}))
    cfg = load_config(path)
    assert cfg.update_hz == 5
    assert cfg.is_hardware
    assert cfg.wheelbase == 0.26
    assert cfg.baudrate == 115200


def test_load_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"hz": 5}))
    with pytest.raises(ConfigurationError, match="hz"):
        load_config(path)


def test_load_config_rejects_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{update_hz: 5")
    with pytest.raises(ConfigurationError):
        load_config(path)


# ------------------------------
# Simulation session
# ------------------------------
def test_drive_forward_in_cm(sim):
    outcome = sim.drive_forward(5)
    assert outcome.stopped_early is False
    assert outcome.covered == pytest.approx(5, abs=1.0)
    assert sim.distance_sensor() == pytest.approx(5, abs=1.0)
    assert sim.distance_sensor() == 0.0


def test_drive_backward(sim):
    outcome = sim.drive_backward(10)
    assert outcome.covered == pytest.approx(-10, abs=1.0)
    assert sim.get_pose().x == pytest.approx(-0.1, abs=0.01)


def test_drive_forward_safety_limit(sim):
    with pytest.raises(SafetyLimitError):
        sim.drive_forward(1001)


def test_turns_in_degrees(sim):
    sim.turn_left(90)
    assert sim.get_pose().heading == pytest.approx(math.pi / 2, abs=0.03)
    assert sim.angle_sensor() == pytest.approx(90, abs=2)
    sim.turn_right(180)
    assert sim.get_pose().heading == pytest.approx(-math.pi / 2, abs=0.05)


def test_rotate_wraps_large_angles(sim):
    outcome = sim.rotate(450)
    assert outcome.covered == pytest.approx(90, abs=2)


def test_set_velocity_in_boundary_units(sim):
    sim.set_velocity(20, 0)  # 20 cm/s for one 50 ms tick
    assert sim.get_pose().x == pytest.approx(0.01)
    sim.set_velocity(0, 90)
    assert sim.get_pose().heading == pytest.approx(math.pi / 2 * 0.05)


def test_set_vel_overflow_is_fatal_in_simulation(sim):
    with pytest.raises(WheelSpeedOverflowError):
        sim.set_vel(0.6, 0.0)


def test_direct_drive_and_stop(sim):
    sim.direct_drive(0.2, 0.2)
    sim.stop()
    assert sim.get_pose().x == pytest.approx(0.01)


def test_angle_and_distance_sensor(sim):
    sim.set_vel(0.2, 0.5)
    angle, distance = sim.angle_and_distance_sensor()
    assert angle == pytest.approx(math.degrees(0.025))
    assert distance == pytest.approx(1.0)


def test_simulation_never_bumps(sim):
    assert sim.is_bumped() is False
    sim.resume_control()


def test_set_update_rate(sim, clock):
    sim.set_update_rate(5)
    assert sim.config.update_hz == 5
    sim.set_vel(0.1, 0.0)
    assert clock.sleeps[-1] == pytest.approx(0.2)
    with pytest.raises(ConfigurationError):
        sim.set_update_rate(25)
    assert sim.config.update_hz == 5


def test_pose_listener_and_trail(sim):
    poses = []
    sim.add_pose_listener(poses.append)
    sim.trail_size(2)
    sim.drive_forward(10)
    assert poses[-1] == sim.get_pose()
    assert len(sim.trail()) == 2


def test_move_to_wraps_heading(sim):
    sim.move_to(1.0, 2.0, 3 * math.pi)
    pose = sim.get_pose()
    assert (pose.x, pose.y, pose.heading) == (1.0, 2.0, math.pi)


def test_noise_changes_motion(clock):
    cfg = SessionConfig(update_hz=20, noise_seed=11)
    with RobotSession(cfg, clock=clock, sleep=clock.sleep) as robot:
        robot.set_noise(0.2, 0.2)
        robot.set_vel(0.2, 0.0)
        assert robot.get_pose().x != pytest.approx(0.01, abs=1e-9)


def test_robot_only_operations_fail_in_simulation(sim):
    with pytest.raises(UnsupportedOperationError):
        sim.beep()


def test_close_is_idempotent(clock):
    robot = RobotSession(SessionConfig(update_hz=20), clock=clock, sleep=clock.sleep)
    robot.close()
    robot.close()
    with pytest.raises(TransportError):
        robot.drive_forward(5)


# ------------------------------
# Hardware session
# ------------------------------
def test_hardware_session_connects_and_closes_once(link, clock):
    robot = hw_session(link, clock)
    assert link.opens == 1
    assert link.written[0] == b"\x80"
    assert robot.backend.wheelbase == 0.26
    with robot:
        robot.beep()
    robot.close()
    assert link.closes == 1


def test_hardware_connect_failure_releases_port(link, clock):
    with pytest.raises(TransportError):
        hw_session(link, clock, version=2)  # no encoder reply scripted
    assert link.closes == 1
    assert not link.is_open


def test_hardware_rescales_instead_of_failing(link, clock):
    with hw_session(link, clock) as robot:
        linear, angular = robot.set_vel(0.6, 0.0)
    assert linear == pytest.approx(0.5)
    assert link.drive_frames()[-1] == bytes([145, 0x01, 0xF4, 0x01, 0xF4])


def test_hardware_v2_sensors(clock):
    link = FakeLink({oi.PKT_ENCODERS: [encoder_packet(0, 0), encoder_packet(225, 225)]})
    with hw_session(link, clock, version=2) as robot:
        angle, distance = robot.angle_and_distance_sensor()
        assert angle == pytest.approx(0.0)
        assert distance == pytest.approx(225 * oi.MM_PER_COUNT / 10)
        with pytest.raises(UnsupportedOperationError):
            robot.distance_sensor()
        with pytest.raises(UnsupportedOperationError):
            robot.angle_sensor()


def test_simulation_only_operations_fail_on_hardware(link, clock):
    with hw_session(link, clock) as robot:
        with pytest.raises(UnsupportedOperationError):
            robot.get_pose()
        with pytest.raises(UnsupportedOperationError):
            robot.set_noise()
        with pytest.raises(UnsupportedOperationError):
            robot.angle_and_distance_sensor()
