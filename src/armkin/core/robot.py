"""
Robot model definitions.

Provides the static description of a 6-axis robot arm: joint axis planes,
joint limits, placement, mounting frame, the attached tool and the external
axes. All definitions are immutable; the ``with_*`` functions return updated
copies with their derived geometry recomputed.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from compas.geometry import Frame, Point, Quaternion, Rotation, Transformation

from armkin.core.exceptions import InvalidInputError, UnsupportedConfigurationError
from armkin.core.geometry import (
    AxisLimits,
    is_valid_frame,
    plane_to_plane,
    world_xy,
)
from armkin.core.kinematic_parameters import RobotKinematicParameters
from armkin.motion.external_axes import MAX_EXTERNAL_AXES, ExternalAxis, ExternalLinearAxis

INTERNAL_AXIS_COUNT = 6


@dataclass(frozen=True)
class LoadData:
    """
    Load data of a tool.

    Only carried along for controller code generation; the kinematics never
    reads it.

    Attributes:
        name: Load data name
        mass: Mass in kg
        center_of_gravity: Center of gravity in mm, relative to the tool frame
        axes_of_moment: Orientation of the axes of moment as quaternion (w, x, y, z)
        inertial_moments: Moments of inertia in kgm2 (ix, iy, iz)
    """

    name: str = "load0"
    mass: float = 0.001
    center_of_gravity: tuple[float, float, float] = (0.0, 0.0, 0.001)
    axes_of_moment: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    inertial_moments: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "mass": self.mass,
            "center_of_gravity": list(self.center_of_gravity),
            "axes_of_moment": list(self.axes_of_moment),
            "inertial_moments": list(self.inertial_moments),
        }


@dataclass(frozen=True)
class RobotTool:
    """
    Tool mounted on the robot flange.

    Attributes:
        name: Tool name, an empty name marks an unset tool
        attachment_plane: Plane that mates with the mounting frame of the robot
        tool_plane: Tool center point (TCP) plane, same coordinate space as
            the attachment plane
        robot_hold: Whether the robot holds the tool
        load_data: Load data, round-tripped unchanged
        position: TCP position relative to the attachment plane (derived)
        orientation: TCP orientation relative to the attachment plane (derived)
    """

    name: str = "tool0"
    attachment_plane: Frame = field(default_factory=world_xy)
    tool_plane: Frame = field(default_factory=world_xy)
    robot_hold: bool = True
    load_data: LoadData = field(default_factory=LoadData)
    position: Point = field(init=False, repr=False, compare=False)
    orientation: Quaternion = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attachment_plane", self.attachment_plane.copy())
        object.__setattr__(self, "tool_plane", self.tool_plane.copy())
        local = self.tool_plane.transformed(plane_to_plane(self.attachment_plane, world_xy()))
        object.__setattr__(self, "position", local.point)
        object.__setattr__(self, "orientation", Quaternion.from_frame(local))

    @classmethod
    def from_quaternion(
        cls,
        name: str,
        position: Sequence[float],
        orientation: Sequence[float],
        attachment_plane: Frame | None = None,
        load_data: LoadData | None = None,
    ) -> "RobotTool":
        """
        Create a tool from a TCP offset and a quaternion.

        Args:
            name: Tool name.
            position: TCP offset (x, y, z) in the attachment plane.
            orientation: TCP orientation as quaternion (w, x, y, z).
            attachment_plane: Attachment plane, world XY by default.
            load_data: Optional load data.
        """
        if attachment_plane is None:
            attachment_plane = world_xy()
        quaternion = Quaternion(*orientation).unitized()
        local = Frame.from_quaternion(quaternion, point=list(position))
        tool_plane = local.transformed(plane_to_plane(world_xy(), attachment_plane))
        return cls(
            name=name,
            attachment_plane=attachment_plane,
            tool_plane=tool_plane,
            load_data=load_data or LoadData(),
        )

    @classmethod
    def from_euler(
        cls,
        name: str,
        position: Sequence[float],
        rotation: Sequence[float],
        load_data: LoadData | None = None,
    ) -> "RobotTool":
        """
        Create a tool from a TCP offset and rotations in radians.

        The TCP plane is rotated about the world X, Y and Z axes through the
        TCP, in that order. The attachment plane is world XY.
        """
        tool_plane = Frame(Point(*position), [1, 0, 0], [0, 1, 0])
        for axis, angle in zip(([1, 0, 0], [0, 1, 0], [0, 0, 1]), rotation):
            tool_plane.transform(Rotation.from_axis_and_angle(axis, angle, point=tool_plane.point))
        return cls(name=name, tool_plane=tool_plane, load_data=load_data or LoadData())

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.name)
            and is_valid_frame(self.attachment_plane)
            and is_valid_frame(self.tool_plane)
        )

    def with_name(self, name: str) -> "RobotTool":
        return replace(self, name=name)

    def with_attachment_plane(self, plane: Frame) -> "RobotTool":
        return replace(self, attachment_plane=plane)

    def with_tool_plane(self, plane: Frame) -> "RobotTool":
        return replace(self, tool_plane=plane)

    def with_load_data(self, load_data: LoadData) -> "RobotTool":
        return replace(self, load_data=load_data)

    def transformed(self, transformation: Transformation) -> "RobotTool":
        """Return the tool with both planes transformed."""
        return replace(
            self,
            attachment_plane=self.attachment_plane.transformed(transformation),
            tool_plane=self.tool_plane.transformed(transformation),
        )


@dataclass(frozen=True)
class RobotModel:
    """
    Static description of a 6-axis robot.

    Joint axis planes and the mounting frame are expressed in robot-local
    coordinates, the base plane places the robot in the world. The Z-axis of
    each joint plane is the rotation axis of that joint. External axes are
    given in world coordinates.

    Attributes:
        name: Robot name
        internal_axis_planes: The six joint axis planes (robot-local)
        internal_axis_limits: The six joint limits in degrees
        base_plane: Robot placement in world coordinates
        mounting_frame: Flange plane at the home position (robot-local)
        tool: Mounted tool
        external_axes: Attached external axes, at most six
        tool_plane: TCP plane at the home position (robot-local, derived)
        external_axis_limits: Limits per axis slot, None for unused slots (derived)
        external_axis_planes: Axis plane per axis slot, None for unused slots (derived)

    Raises:
        InvalidInputError: If the joint planes or limits are not exactly six.
        UnsupportedConfigurationError: If the external axes cannot be combined.
    """

    name: str
    internal_axis_planes: tuple[Frame, ...]
    internal_axis_limits: tuple[AxisLimits, ...]
    base_plane: Frame = field(default_factory=world_xy)
    mounting_frame: Frame = field(default_factory=world_xy)
    tool: RobotTool = field(default_factory=RobotTool)
    external_axes: tuple[ExternalAxis, ...] = ()
    tool_plane: Frame = field(init=False, repr=False, compare=False)
    external_axis_limits: tuple[AxisLimits | None, ...] = field(
        init=False, repr=False, compare=False
    )
    external_axis_planes: tuple[Frame | None, ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        planes = tuple(plane.copy() for plane in self.internal_axis_planes)
        limits = tuple(
            item if isinstance(item, AxisLimits) else AxisLimits.from_sequence(item)
            for item in self.internal_axis_limits
        )
        if len(planes) != INTERNAL_AXIS_COUNT or len(limits) != INTERNAL_AXIS_COUNT:
            raise InvalidInputError(
                "A robot needs exactly six internal axis planes and limits",
                details={"planes": len(planes), "limits": len(limits)},
            )

        object.__setattr__(self, "internal_axis_planes", planes)
        object.__setattr__(self, "internal_axis_limits", limits)
        object.__setattr__(self, "base_plane", self.base_plane.copy())
        object.__setattr__(self, "mounting_frame", self.mounting_frame.copy())
        object.__setattr__(self, "external_axes", self._assign_axis_numbers(self.external_axes))

        attach = plane_to_plane(self.tool.attachment_plane, self.mounting_frame)
        object.__setattr__(self, "tool_plane", self.tool.tool_plane.transformed(attach))

        slot_limits: list[AxisLimits | None] = [None] * MAX_EXTERNAL_AXES
        slot_planes: list[Frame | None] = [None] * MAX_EXTERNAL_AXES
        for axis in self.external_axes:
            slot_limits[axis.axis_number] = axis.axis_limits
            slot_planes[axis.axis_number] = axis.axis_plane
        object.__setattr__(self, "external_axis_limits", tuple(slot_limits))
        object.__setattr__(self, "external_axis_planes", tuple(slot_planes))

    @staticmethod
    def _assign_axis_numbers(axes: Sequence[ExternalAxis]) -> tuple[ExternalAxis, ...]:
        axes = tuple(axes)
        if len(axes) > MAX_EXTERNAL_AXES:
            raise UnsupportedConfigurationError(
                "More than six external axes are defined",
                details={"count": len(axes)},
            )
        if sum(1 for axis in axes if axis.moves_robot) > 1:
            raise UnsupportedConfigurationError(
                "More than one external axis is defined that moves the robot",
                details={"axes": [axis.name for axis in axes if axis.moves_robot]},
            )

        numbered = []
        for index, axis in enumerate(axes):
            if axis.axis_number == -1:
                axis = axis.with_axis_number(index)
            if not axis.is_valid:
                raise UnsupportedConfigurationError(
                    f"External axis {axis.axis_logic} ({axis.name}) is not valid"
                )
            numbered.append(axis)

        numbers = [axis.axis_number for axis in numbered]
        duplicates = sorted({number for number in numbers if numbers.count(number) > 1})
        if duplicates:
            raise UnsupportedConfigurationError(
                "Some of the external axis numbers are used multiple times",
                details={"duplicates": duplicates},
            )
        return tuple(numbered)

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.name)
            and all(is_valid_frame(plane) for plane in self.internal_axis_planes)
            and is_valid_frame(self.base_plane)
            and is_valid_frame(self.mounting_frame)
            and self.tool.is_valid
        )

    @property
    def robot_moving_axis(self) -> ExternalAxis | None:
        """The external axis that carries the robot, if any."""
        for axis in self.external_axes:
            if axis.moves_robot:
                return axis
        return None

    @property
    def tool_plane_world(self) -> Frame:
        """TCP plane at the home position in world coordinates."""
        return self.tool_plane.transformed(plane_to_plane(world_xy(), self.base_plane))

    @property
    def kinematic_parameters(self) -> RobotKinematicParameters:
        """Arm geometry derived from the joint axis planes."""
        return RobotKinematicParameters.from_axis_planes(self.internal_axis_planes)

    def get_external_axis(self, name: str) -> ExternalAxis | None:
        """Find an attached external axis by name."""
        for axis in self.external_axes:
            if axis.name == name:
                return axis
        return None

    def has_linear_axis(self) -> bool:
        return any(isinstance(axis, ExternalLinearAxis) for axis in self.external_axes)

    def with_tool(self, tool: RobotTool) -> "RobotModel":
        return replace(self, tool=tool)

    def with_base_plane(self, plane: Frame) -> "RobotModel":
        return replace(self, base_plane=plane)

    def with_mounting_frame(self, plane: Frame) -> "RobotModel":
        return replace(self, mounting_frame=plane)

    def with_external_axes(self, external_axes: Sequence[ExternalAxis]) -> "RobotModel":
        return replace(self, external_axes=tuple(external_axes))

    def transformed(self, transformation: Transformation) -> "RobotModel":
        """Return the robot moved in the world, external axes included."""
        return replace(
            self,
            base_plane=self.base_plane.transformed(transformation),
            external_axes=tuple(axis.transformed(transformation) for axis in self.external_axes),
        )

    def internal_axis_in_limits(self, index: int, value: float) -> bool:
        return math.isfinite(value) and self.internal_axis_limits[index].includes(value)
