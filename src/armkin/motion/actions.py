"""
Motion program building blocks.

Joint positions, targets, work objects and the actions a path is generated
from: movements plus the tool override and automatic axis configuration
instructions.
"""

import math
import numbers
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Union

from compas.geometry import Frame, Quaternion

from armkin.core.exceptions import (
    ConfigurationError,
    Diagnostic,
    DiagnosticKind,
    InvalidInputError,
    UnsupportedConfigurationError,
)
from armkin.core.geometry import is_valid_frame, plane_to_plane, world_xy
from armkin.core.robot import INTERNAL_AXIS_COUNT, RobotModel, RobotTool
from armkin.motion.external_axes import (
    AXIS_LOGIC,
    MAX_EXTERNAL_AXES,
    UNDEFINED_AXIS_VALUE,
    ExternalAxis,
    is_undefined,
)

Number = Union[int, float]


class _AxisValues:
    """Fixed-size sequence of axis values with element-wise arithmetic."""

    __slots__ = ("_values",)
    size = 0
    default = 0.0
    padded = True

    def __init__(self, *values: Union[Number, Sequence[Number]]) -> None:
        if len(values) == 1 and not isinstance(values[0], numbers.Real):
            values = tuple(values[0])
        if len(values) > self.size or (values and not self.padded and len(values) != self.size):
            raise InvalidInputError(
                f"{type(self).__name__} takes {'at most ' if self.padded else ''}{self.size} values",
                details={"values": list(values)},
            )
        items = [float(value) for value in values]
        items += [self.default] * (self.size - len(items))
        self._values = tuple(items)

    def _combine(self, a: float, b: float, operation) -> float:
        return operation(a, b)

    def _apply(self, other, operation):
        if isinstance(other, type(self)):
            values = [self._combine(a, b, operation) for a, b in zip(self, other)]
        elif isinstance(other, numbers.Real):
            values = [self._combine(a, float(other), operation) for a in self]
        else:
            return NotImplemented
        return type(self)(values)

    def __add__(self, other):
        return self._apply(other, lambda a, b: a + b)

    def __sub__(self, other):
        return self._apply(other, lambda a, b: a - b)

    def __mul__(self, other):
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return self._apply(other, lambda a, b: a * b)

    __rmul__ = __mul__

    def __truediv__(self, other):
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return self._apply(other, lambda a, b: a / b)

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._values))

    def __repr__(self) -> str:
        values = ", ".join(f"{value:g}" for value in self._values)
        return f"{type(self).__name__}({values})"

    def to_list(self) -> List[float]:
        return list(self._values)

    def with_value(self, index: int, value: float):
        """Return a copy with a single value replaced."""
        values = list(self._values)
        values[index] = value
        return type(self)(values)


class RobotJointPosition(_AxisValues):
    """
    The six internal axis values of a robot, in degrees.

    Example:
        >>> position = RobotJointPosition(0, 0, 0, 0, 90, 0)
        >>> position.to_radians()[4]
        1.5707963267948966
    """

    __slots__ = ()
    size = INTERNAL_AXIS_COUNT
    default = 0.0
    padded = False

    @classmethod
    def from_radians(cls, values: Sequence[float]) -> "RobotJointPosition":
        return cls([math.degrees(value) for value in values])

    def to_radians(self) -> List[float]:
        return [math.radians(value) for value in self._values]

    @property
    def is_valid(self) -> bool:
        return all(math.isfinite(value) for value in self._values)


class ExternalJointPosition(_AxisValues):
    """
    Values of the six external axis slots (A-F).

    Slots without a value hold :data:`UNDEFINED_AXIS_VALUE`. Arithmetic keeps
    undefined slots undefined; combining a defined with an undefined slot is
    an error.
    """

    __slots__ = ()
    size = MAX_EXTERNAL_AXES
    default = UNDEFINED_AXIS_VALUE

    def _combine(self, a: float, b: float, operation) -> float:
        if is_undefined(a) and is_undefined(b):
            return UNDEFINED_AXIS_VALUE
        if is_undefined(a) or is_undefined(b):
            raise InvalidInputError(
                "Cannot combine a defined and an undefined external axis value"
            )
        return operation(a, b)

    def _apply(self, other, operation):
        if isinstance(other, numbers.Real):
            values = [
                value if is_undefined(value) else operation(value, float(other))
                for value in self
            ]
            return type(self)(values)
        return super()._apply(other, operation)

    def is_defined(self, index: int) -> bool:
        return not is_undefined(self._values[index])

    def value_or(self, index: int, default: float = 0.0) -> float:
        """Value of a slot, ``default`` when the slot is undefined."""
        value = self._values[index]
        return default if is_undefined(value) else value

    @property
    def is_valid(self) -> bool:
        return all(math.isfinite(value) for value in self._values)


@dataclass(frozen=True)
class WorkObject:
    """
    Coordinate system in which targets are defined.

    Attributes:
        name: Work object name
        plane: Object frame, relative to the user frame
        user_frame: User frame, relative to the world (or to the attachment
            plane of the external axis)
        external_axis: External axis that moves the work object
        robot_hold: Whether the robot holds the work object
        global_plane: Object frame in world coordinates (derived)
    """

    name: str = "wobj0"
    plane: Frame = field(default_factory=world_xy)
    user_frame: Frame = field(default_factory=world_xy)
    external_axis: Optional[ExternalAxis] = None
    robot_hold: bool = False
    global_plane: Frame = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.external_axis is not None and self.external_axis.moves_robot:
            raise UnsupportedConfigurationError(
                f"Work object {self.name}: an external axis that moves the robot "
                "cannot move a work object",
                details={"external_axis": self.external_axis.name},
            )
        object.__setattr__(self, "plane", self.plane.copy())
        object.__setattr__(self, "user_frame", self.user_frame.copy())

        global_plane = self.plane.transformed(plane_to_plane(world_xy(), self.user_frame))
        if self.external_axis is not None:
            global_plane = global_plane.transformed(
                plane_to_plane(world_xy(), self.external_axis.attachment_plane)
            )
        object.__setattr__(self, "global_plane", global_plane)

    @property
    def fixed_frame(self) -> bool:
        """True when no external axis moves the work object."""
        return self.external_axis is None

    @property
    def orientation(self) -> Quaternion:
        return Quaternion.from_frame(self.plane)

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and is_valid_frame(self.plane) and is_valid_frame(self.user_frame)

    def with_plane(self, plane: Frame) -> "WorkObject":
        return replace(self, plane=plane)

    def with_user_frame(self, user_frame: Frame) -> "WorkObject":
        return replace(self, user_frame=user_frame)

    def with_external_axis(self, external_axis: Optional[ExternalAxis]) -> "WorkObject":
        return replace(self, external_axis=external_axis)


@dataclass(frozen=True)
class RobotTarget:
    """
    Cartesian target for the tool center point.

    Attributes:
        name: Target name
        plane: Target plane in work object coordinates
        axis_config: Index (0-7) of the inverse kinematics solution to use
        external_joint_position: External axis values, undefined slots are
            solved automatically
    """

    name: str
    plane: Frame
    axis_config: int = 0
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)

    def __post_init__(self) -> None:
        if not 0 <= self.axis_config <= 7:
            raise InvalidInputError(
                f"Robot target {self.name}: axis configuration must be between 0 and 7",
                details={"axis_config": self.axis_config},
            )
        object.__setattr__(self, "plane", self.plane.copy())
        if not isinstance(self.external_joint_position, ExternalJointPosition):
            object.__setattr__(
                self,
                "external_joint_position",
                ExternalJointPosition(self.external_joint_position),
            )

    @classmethod
    def from_reference_plane(
        cls,
        name: str,
        plane: Frame,
        reference_plane: Frame,
        axis_config: int = 0,
        external_joint_position: Optional[ExternalJointPosition] = None,
    ) -> "RobotTarget":
        """Create a target from a plane defined relative to ``reference_plane``."""
        plane = plane.transformed(plane_to_plane(reference_plane, world_xy()))
        return cls(name, plane, axis_config, external_joint_position or ExternalJointPosition())

    @property
    def orientation(self) -> Quaternion:
        return Quaternion.from_frame(self.plane)

    @property
    def is_valid(self) -> bool:
        return is_valid_frame(self.plane) and self.external_joint_position.is_valid

    def with_plane(self, plane: Frame) -> "RobotTarget":
        return replace(self, plane=plane)

    def with_axis_config(self, axis_config: int) -> "RobotTarget":
        return replace(self, axis_config=axis_config)

    def with_external_joint_position(self, position: ExternalJointPosition) -> "RobotTarget":
        return replace(self, external_joint_position=position)


@dataclass(frozen=True)
class JointTarget:
    """
    Target given directly as axis values.

    Attributes:
        name: Target name
        robot_joint_position: Internal axis values in degrees
        external_joint_position: External axis values
    """

    name: str
    robot_joint_position: RobotJointPosition = field(default_factory=RobotJointPosition)
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)

    def __post_init__(self) -> None:
        if not isinstance(self.robot_joint_position, RobotJointPosition):
            object.__setattr__(
                self, "robot_joint_position", RobotJointPosition(self.robot_joint_position)
            )
        if not isinstance(self.external_joint_position, ExternalJointPosition):
            object.__setattr__(
                self,
                "external_joint_position",
                ExternalJointPosition(self.external_joint_position),
            )

    @property
    def is_valid(self) -> bool:
        return self.robot_joint_position.is_valid and self.external_joint_position.is_valid

    def check_axis_limits(self, robot: RobotModel) -> List[Diagnostic]:
        """
        Check the axis values against the limits of ``robot``.

        Returns:
            One diagnostic per axis value outside its limits or per attached
            external axis without a value.
        """
        diagnostics = []
        for index, value in enumerate(self.robot_joint_position):
            if not robot.internal_axis_in_limits(index, value):
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"Joint Target {self.name}: Internal Axis Value {index + 1} "
                        "is not in Range.",
                    )
                )

        for index, limits in enumerate(robot.external_axis_limits):
            if limits is None:
                continue
            value = self.external_joint_position[index]
            if is_undefined(value):
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.INVALID_INPUT,
                        f"Joint Target {self.name}: External Axis Value {AXIS_LOGIC[index]} "
                        "is not defined.",
                    )
                )
            elif not limits.includes(value):
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"Joint Target {self.name}: External Axis Value {AXIS_LOGIC[index]} "
                        "is not in Range.",
                    )
                )
        return diagnostics


Target = Union[RobotTarget, JointTarget]


class MovementType(Enum):
    """Interpolation of a movement towards its target."""

    JOINT = "joint"
    LINEAR = "linear"
    JOINT_ZONE = "joint_zone"
    LINEAR_ZONE = "linear_zone"

    @property
    def is_linear(self) -> bool:
        return self in (MovementType.LINEAR, MovementType.LINEAR_ZONE)

    @property
    def is_zone(self) -> bool:
        return self in (MovementType.JOINT_ZONE, MovementType.LINEAR_ZONE)


@dataclass(frozen=True)
class Movement:
    """
    Move instruction towards a target.

    Attributes:
        target: Robot target or joint target
        movement_type: Joint or linear interpolation, with or without zone
        work_object: Work object the target plane is defined in
        robot_tool: Tool override, the mounted tool is used when None or
            not valid
    """

    target: Target
    movement_type: MovementType = MovementType.JOINT
    work_object: WorkObject = field(default_factory=WorkObject)
    robot_tool: Optional[RobotTool] = None

    def __post_init__(self) -> None:
        if not isinstance(self.movement_type, MovementType):
            object.__setattr__(self, "movement_type", MovementType(self.movement_type))

    @property
    def is_joint_target(self) -> bool:
        return isinstance(self.target, JointTarget)

    @property
    def is_valid(self) -> bool:
        return self.target.is_valid and self.work_object.is_valid

    def resolve_tool(self, mounted_tool: RobotTool) -> RobotTool:
        """The tool override when set and valid, ``mounted_tool`` otherwise."""
        if self.robot_tool is not None and self.robot_tool.is_valid:
            return self.robot_tool
        return mounted_tool

    def global_target_plane(self) -> Frame:
        """
        Target plane in world coordinates, external axis at its zero position.

        Raises:
            InvalidInputError: If the target is a joint target.
        """
        if not isinstance(self.target, RobotTarget):
            raise InvalidInputError(
                f"Movement {self.target.name}: a joint target has no target plane"
            )
        return self.target.plane.transformed(
            plane_to_plane(world_xy(), self.work_object.global_plane)
        )

    def posed_global_target_plane(self, robot: RobotModel) -> Frame:
        """
        Target plane in world coordinates with the work object axis posed.

        The value of the external axis that moves the work object is taken
        from the target; an undefined value poses the axis at zero.

        Raises:
            ConfigurationError: If the work object axis is not attached to ``robot``.
        """
        plane = self.global_target_plane()
        axis = self.work_object_axis(robot)
        if axis is None:
            return plane
        value = self.target.external_joint_position.value_or(axis.axis_number, 0.0)
        return plane.transformed(axis.transformation(value))

    def work_object_axis(self, robot: RobotModel) -> Optional[ExternalAxis]:
        """The robot's instance of the external axis that moves the work object."""
        if self.work_object.external_axis is None:
            return None
        axis = robot.get_external_axis(self.work_object.external_axis.name)
        if axis is None:
            raise ConfigurationError(
                f"Movement {self.target.name}\\{self.work_object.name}: the external axis "
                "that moves the work object is not attached to the robot",
                details={"external_axis": self.work_object.external_axis.name},
            )
        return axis

    def with_target(self, target: Target) -> "Movement":
        return replace(self, target=target)

    def with_robot_tool(self, robot_tool: Optional[RobotTool]) -> "Movement":
        return replace(self, robot_tool=robot_tool)


@dataclass(frozen=True)
class OverrideRobotTool:
    """Instruction that changes the mounted tool for all following movements."""

    robot_tool: RobotTool


@dataclass(frozen=True)
class AutoAxisConfig:
    """Instruction that switches automatic axis configuration selection on or off."""

    is_active: bool = True


Action = Union[Movement, OverrideRobotTool, AutoAxisConfig]
