"""
External axes support for robotic systems.

This module provides the two kinds of external axes that can be combined with
a 6-axis arm:
- Linear axes (rail or track that carries the robot or a work object)
- Rotational axes (turntables and other single-axis positioners)

An external axis maps a scalar axis value to a pose of its attachment plane.
Axes are immutable: changing a plane or the limits returns a new axis whose
derived geometry has been rebuilt.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from compas.geometry import Frame, Rotation, Transformation, Translation, Vector

from armkin.core.exceptions import InvalidInputError
from armkin.core.geometry import AxisCurve, AxisLimits, frame_from_normal, is_valid_frame

# Axis value meaning "not defined, solve automatically"
UNDEFINED_AXIS_VALUE = 9e9

AXIS_LOGIC = "ABCDEF"
MAX_EXTERNAL_AXES = len(AXIS_LOGIC)


def is_undefined(value: float) -> bool:
    """Check whether an external axis value holds the undefined marker."""
    return value == UNDEFINED_AXIS_VALUE


def parse_axis_number(value: Union[int, str]) -> int:
    """
    Parse a logical axis number.

    Args:
        value: -1 (unassigned), 0-5, or one of the axis letters a-f / A-F.

    Returns:
        Axis number between -1 and 5.

    Raises:
        InvalidInputError: If the value is not a valid axis number.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 1 and text.upper() in AXIS_LOGIC:
            return AXIS_LOGIC.index(text.upper())
        try:
            value = int(text)
        except ValueError:
            raise InvalidInputError(
                f"Invalid external axis logic: {value!r}",
                details={"allowed": ["-1", "0-5", "A-F"]},
            )

    if isinstance(value, bool) or not isinstance(value, int) or not -1 <= value < MAX_EXTERNAL_AXES:
        raise InvalidInputError(
            f"Invalid external axis number: {value!r}",
            details={"allowed": ["-1", "0-5", "A-F"]},
        )
    return value


class ExternalAxis(ABC):
    """
    Common behaviour of linear and rotational external axes.

    Attributes:
        name: Axis name, also used to bind work objects to the axis
        attachment_plane: Plane that is moved by the axis
        axis_plane: Plane whose Z-axis is the motion direction / rotation axis
        axis_limits: Allowed axis values (mm or degrees)
        axis_number: Logical axis number (0-5), -1 when not yet assigned
        moves_robot: Whether the robot is mounted on the axis
    """

    name: str
    attachment_plane: Frame
    axis_plane: Frame
    axis_limits: AxisLimits
    axis_number: int
    moves_robot: bool

    def _initialize(self) -> None:
        object.__setattr__(self, "attachment_plane", self.attachment_plane.copy())
        object.__setattr__(self, "axis_plane", self.axis_plane.copy())
        object.__setattr__(self, "axis_number", parse_axis_number(self.axis_number))
        if not isinstance(self.axis_limits, AxisLimits):
            object.__setattr__(self, "axis_limits", AxisLimits.from_sequence(self.axis_limits))

    @abstractmethod
    def _motion(self, value: float) -> Transformation:
        """Transformation for an already resolved axis value."""

    @property
    def axis_logic(self) -> Optional[str]:
        """Axis letter (A-F), None when the axis number is not assigned."""
        if self.axis_number < 0:
            return None
        return AXIS_LOGIC[self.axis_number]

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.name)
            and is_valid_frame(self.attachment_plane)
            and is_valid_frame(self.axis_plane)
        )

    def resolve_value(self, value: float) -> float:
        """Replace the undefined marker with the default axis value."""
        if is_undefined(value):
            return max(0.0, self.axis_limits.lower)
        return value

    def in_limits(self, value: float) -> bool:
        return self.axis_limits.includes(self.resolve_value(value))

    def transformation(self, value: float) -> Transformation:
        """Transformation of the axis at ``value`` without clamping."""
        return self._motion(self.resolve_value(value))

    def transformation_clamped(self, value: float) -> Transformation:
        """Transformation of the axis at ``value`` clamped to the axis limits."""
        return self._motion(self.axis_limits.clamp(self.resolve_value(value)))

    def pose(self, value: float) -> Tuple[Frame, bool]:
        """
        Pose the attachment plane without clamping.

        Args:
            value: Axis value in mm or degrees.

        Returns:
            Tuple of the posed attachment plane and whether ``value`` lies
            within the axis limits.
        """
        plane = self.attachment_plane.transformed(self.transformation(value))
        return plane, self.in_limits(value)

    def pose_clamped(self, value: float) -> Frame:
        """Pose the attachment plane after clamping ``value`` to the nearest limit."""
        return self.attachment_plane.transformed(self.transformation_clamped(value))

    def with_attachment_plane(self, plane: Frame) -> "ExternalAxis":
        return replace(self, attachment_plane=plane)

    def with_axis_plane(self, plane: Frame) -> "ExternalAxis":
        return replace(self, axis_plane=plane)

    def with_axis_limits(self, limits: AxisLimits) -> "ExternalAxis":
        return replace(self, axis_limits=limits)

    def with_axis_number(self, axis_number: Union[int, str]) -> "ExternalAxis":
        return replace(self, axis_number=axis_number)

    def transformed(self, transformation: Transformation) -> "ExternalAxis":
        """Return the axis with both planes transformed."""
        return replace(
            self,
            attachment_plane=self.attachment_plane.transformed(transformation),
            axis_plane=self.axis_plane.transformed(transformation),
        )


@dataclass(frozen=True)
class ExternalLinearAxis(ExternalAxis):
    """
    Linear external axis (track).

    The attachment plane is translated along the Z-axis of the axis plane.
    The axis curve spans the axis limits along that direction, starting from
    the attachment origin, and is rebuilt whenever the axis is updated.
    """

    name: str
    attachment_plane: Frame
    axis_plane: Frame
    axis_limits: AxisLimits
    axis_number: int = -1
    moves_robot: bool = True
    axis_curve: AxisCurve = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._initialize()
        curve = AxisCurve(
            origin=self.attachment_plane.point.copy(),
            direction=self.axis_plane.zaxis.unitized(),
            domain=self.axis_limits,
        )
        object.__setattr__(self, "axis_curve", curve)

    @classmethod
    def from_direction(
        cls,
        name: str,
        attachment_plane: Frame,
        direction: Vector,
        axis_limits: AxisLimits,
        axis_number: Union[int, str] = -1,
        moves_robot: bool = True,
    ) -> "ExternalLinearAxis":
        """Create a linear axis from its direction of motion."""
        axis_plane = frame_from_normal(attachment_plane.point, direction)
        return cls(name, attachment_plane, axis_plane, axis_limits, axis_number, moves_robot)

    def _motion(self, value: float) -> Transformation:
        return Translation.from_vector(self.axis_plane.zaxis.unitized() * value)


@dataclass(frozen=True)
class ExternalRotationalAxis(ExternalAxis):
    """
    Rotational external axis (positioner).

    The attachment plane is rotated about the Z-axis of the axis plane,
    through its origin. Attachment and axis plane are independent fields;
    use :meth:`from_axis_plane` for the common case where they coincide.
    """

    name: str
    attachment_plane: Frame
    axis_plane: Frame
    axis_limits: AxisLimits
    axis_number: int = -1
    moves_robot: bool = False

    def __post_init__(self) -> None:
        self._initialize()

    @classmethod
    def from_axis_plane(
        cls,
        name: str,
        axis_plane: Frame,
        axis_limits: AxisLimits,
        axis_number: Union[int, str] = -1,
        moves_robot: bool = False,
    ) -> "ExternalRotationalAxis":
        """Create a rotational axis whose attachment plane is its axis plane."""
        return cls(name, axis_plane.copy(), axis_plane, axis_limits, axis_number, moves_robot)

    def _motion(self, value: float) -> Transformation:
        return Rotation.from_axis_and_angle(
            self.axis_plane.zaxis, math.radians(value), point=self.axis_plane.point
        )
