"""
Preset robot definitions.

Kinematic parameters of a few common ABB robots, ready to be placed in the
world with a base plane, a tool and external axes.
"""

from enum import Enum
from typing import Optional, Sequence

from compas.geometry import Frame

from armkin.core.exceptions import ConfigurationError
from armkin.core.geometry import AxisLimits, plane_to_plane, world_xy
from armkin.core.kinematic_parameters import RobotKinematicParameters
from armkin.core.robot import RobotModel, RobotTool
from armkin.motion.external_axes import ExternalAxis


class RobotPreset(Enum):
    """Available robot presets."""

    IRB1300_11_09 = "IRB1300-11/0.9"
    IRB4600_40_255 = "IRB4600-40/2.55"
    IRB6700_235_265 = "IRB6700-235/2.65"

    @classmethod
    def from_name(cls, name: str) -> "RobotPreset":
        """
        Look up a preset by member name or robot name, ignoring case.

        Raises:
            ConfigurationError: If no preset matches.
        """
        key = name.strip().upper()
        for preset in cls:
            if key in (preset.name, preset.value.upper()):
                return preset
        raise ConfigurationError(
            f"Unknown robot preset: {name}",
            details={"available": [preset.name for preset in cls]},
        )

    @property
    def kinematic_parameters(self) -> RobotKinematicParameters:
        return _PRESET_DATA[self][0]

    @property
    def axis_limits(self) -> tuple[AxisLimits, ...]:
        return tuple(AxisLimits(float(low), float(high)) for low, high in _PRESET_DATA[self][1])


# Kinematic parameters and joint limits in degrees
_PRESET_DATA = {
    RobotPreset.IRB1300_11_09: (
        RobotKinematicParameters(a1=50, a2=-40, a3=0, b=0, c1=544, c2=425, c3=425, c4=90),
        [(-180, 180), (-100, 130), (-210, 65), (-230, 230), (-130, 130), (-400, 400)],
    ),
    RobotPreset.IRB4600_40_255: (
        RobotKinematicParameters(a1=175, a2=-175, a3=0, b=0, c1=495, c2=1095, c3=1270, c4=135),
        [(-180, 180), (-90, 150), (-180, 75), (-400, 400), (-120, 125), (-400, 400)],
    ),
    RobotPreset.IRB6700_235_265: (
        RobotKinematicParameters(a1=320, a2=-200, a3=0, b=0, c1=780, c2=1135, c3=1182.5, c4=200),
        [(-170, 170), (-65, 85), (-180, 70), (-300, 300), (-130, 130), (-360, 360)],
    ),
}


def robot_from_parameters(
    name: str,
    parameters: RobotKinematicParameters,
    axis_limits: Sequence[AxisLimits],
    tool: Optional[RobotTool] = None,
) -> RobotModel:
    """Robot at the world origin with the axis planes and flange of ``parameters``."""
    return RobotModel(
        name=name,
        internal_axis_planes=parameters.get_axis_planes(),
        internal_axis_limits=tuple(axis_limits),
        mounting_frame=parameters.mounting_frame,
        tool=tool or RobotTool(),
    )


def get_robot_preset(
    preset: RobotPreset | str,
    base_plane: Optional[Frame] = None,
    tool: Optional[RobotTool] = None,
    external_axes: Sequence[ExternalAxis] = (),
) -> RobotModel:
    """
    Build a preset robot.

    Args:
        preset: Preset member or preset name
        base_plane: Robot placement, world XY by default. Ignored when one of
            the external axes moves the robot: the robot is then placed on the
            attachment plane of that axis.
        tool: Mounted tool, the default tool0 when None
        external_axes: External axes of the robot

    Returns:
        RobotModel placed in the world

    Raises:
        ConfigurationError: If the preset name is unknown.
    """
    if not isinstance(preset, RobotPreset):
        preset = RobotPreset.from_name(preset)

    parameters, limits = _PRESET_DATA[preset]
    robot = robot_from_parameters(
        preset.value,
        parameters,
        tuple(AxisLimits(float(low), float(high)) for low, high in limits),
        tool=tool,
    )

    return place_robot(robot, base_plane, external_axes)


def place_robot(
    robot: RobotModel,
    base_plane: Optional[Frame] = None,
    external_axes: Sequence[ExternalAxis] = (),
) -> RobotModel:
    """
    Place a robot defined at the world origin and attach its external axes.

    The robot is moved onto the attachment plane of the external axis that
    carries it, or onto ``base_plane`` when no axis does. External axes are
    expected in world coordinates and are not moved.
    """
    position_plane = base_plane if base_plane is not None else world_xy()
    for axis in external_axes:
        if axis.moves_robot:
            position_plane = axis.attachment_plane
    robot = robot.transformed(plane_to_plane(world_xy(), position_plane))
    return robot.with_external_axes(external_axes)
