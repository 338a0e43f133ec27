"""
armkin - Kinematics for 6-axis industrial robots with external axes.

Forward and closed-form inverse kinematics, external linear and rotational
axes, work objects and path generation through motion programs.
"""

__version__ = "0.1.0"
__author__ = "armkin Contributors"

from armkin.core.config import ConfigManager, load_program
from armkin.core.exceptions import (
    ArmkinError,
    ConfigurationError,
    Diagnostic,
    DiagnosticKind,
    InvalidInputError,
    KinematicsError,
    UnreachableTargetError,
    UnsupportedConfigurationError,
)
from armkin.core.geometry import AxisLimits
from armkin.core.kinematic_parameters import RobotKinematicParameters
from armkin.core.presets import RobotPreset, get_robot_preset
from armkin.core.robot import LoadData, RobotModel, RobotTool
from armkin.motion.actions import (
    AutoAxisConfig,
    ExternalJointPosition,
    JointTarget,
    Movement,
    MovementType,
    OverrideRobotTool,
    RobotJointPosition,
    RobotTarget,
    WorkObject,
)
from armkin.motion.external_axes import (
    UNDEFINED_AXIS_VALUE,
    ExternalLinearAxis,
    ExternalRotationalAxis,
)
from armkin.motion.forward_kinematics import ForwardKinematics, ForwardKinematicsResult
from armkin.motion.inverse_kinematics import InverseKinematics, InverseKinematicsResult
from armkin.motion.planner import PathGenerator, PathResult

__all__ = [
    "__version__",
    "ArmkinError",
    "AutoAxisConfig",
    "AxisLimits",
    "ConfigManager",
    "ConfigurationError",
    "Diagnostic",
    "DiagnosticKind",
    "ExternalJointPosition",
    "ExternalLinearAxis",
    "ExternalRotationalAxis",
    "ForwardKinematics",
    "ForwardKinematicsResult",
    "InvalidInputError",
    "InverseKinematics",
    "InverseKinematicsResult",
    "JointTarget",
    "KinematicsError",
    "LoadData",
    "Movement",
    "MovementType",
    "OverrideRobotTool",
    "PathGenerator",
    "PathResult",
    "RobotJointPosition",
    "RobotKinematicParameters",
    "RobotModel",
    "RobotPreset",
    "RobotTarget",
    "RobotTool",
    "UNDEFINED_AXIS_VALUE",
    "UnreachableTargetError",
    "UnsupportedConfigurationError",
    "WorkObject",
    "get_robot_preset",
    "load_program",
]
