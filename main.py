## 1) Install deps
#pip install -e .
# 2) Edit config.json if needed ("port": null runs the simulation)
# 3) Run
#python3 main.py --square 50
import argparse

from create_drive import RobotSession, load_config


class SquareRunner:
    """Drive a square, reporting sensors after every side."""

    def __init__(self, robot: RobotSession, side_cm: float):
        self.robot = robot
        self.side_cm = side_cm

    def run(self):
        for side in range(4):
            outcome = self.robot.drive_forward(self.side_cm)
            print(f"[Square] side {side + 1}: {outcome.covered:.1f} cm")
            if outcome.stopped_early:
                print("[Square] bumped, stopping")
                return
            self.robot.turn_left(90)
        if self.robot.simulated:
            pose = self.robot.get_pose()
            print(f"[Square] final pose x={pose.x:.3f} y={pose.y:.3f} heading={pose.heading:.3f}")


def main():
    ap = argparse.ArgumentParser(description="Drive a Create (or its simulation) around a square.")
    ap.add_argument("--config", default="config.json")
    ap.add_argument("--square", type=float, default=50.0, help="side length in cm")
    args = ap.parse_args()

    cfg = load_config(args.config)
    with RobotSession(cfg) as robot:
        try:
            SquareRunner(robot, args.square).run()
        finally:
            robot.stop()


if __name__ == "__main__":
    main()
