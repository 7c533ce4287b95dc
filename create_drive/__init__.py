from .config import CONFIG, SessionConfig, load_config
from .errors import (ConfigurationError, RobotError, SafetyLimitError,
                     TransportError, UnsupportedOperationError,
                     WheelSpeedOverflowError)
from .kinematics import Pose, WheelSpeeds
from .motion import MotionOutcome
from .robot_session import RobotSession

__version__ = "0.1.0"
