"""
Geometry utilities for armkin.

Frame helpers on top of compas.geometry. Every plane in armkin is a
:class:`compas.geometry.Frame`; this module adds the few plane operations the
kinematics needs (plane-to-plane mapping, plane parameters, frames built from
a normal) plus the closed axis interval and the straight axis curve used by
linear external axes.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

from compas.geometry import Frame, Point, Rotation, Transformation, Translation, Vector

from armkin.core.exceptions import InvalidInputError


def world_xy() -> Frame:
    """Return a new world XY frame."""
    return Frame.worldXY()


def perpendicular_vector(vector: Vector) -> Vector:
    """
    Return a vector perpendicular to ``vector``.

    The component with the largest magnitude is swapped with the second
    largest one and negated, which gives the conventional plane axes for the
    world directions: a Z normal yields X = (1, 0, 0), an X normal yields
    X = (0, 1, 0) and a Y normal yields X = (0, 0, 1).
    """
    x, y, z = vector
    ax, ay, az = abs(x), abs(y), abs(z)

    if ay > ax:
        if az > ay:
            i, j, k, a, b = 2, 1, 0, z, -y
        elif az >= ax:
            i, j, k, a, b = 1, 2, 0, y, -z
        else:
            i, j, k, a, b = 1, 0, 2, y, -x
    elif az > ax:
        i, j, k, a, b = 2, 0, 1, z, -x
    elif az > ay:
        i, j, k, a, b = 0, 2, 1, x, -z
    else:
        i, j, k, a, b = 0, 1, 2, x, -y

    components = [0.0, 0.0, 0.0]
    components[i] = b
    components[j] = a
    components[k] = 0.0
    return Vector(*components)


def frame_from_normal(
    point: Point | Sequence[float], normal: Vector | Sequence[float]
) -> Frame:
    """
    Create a frame through ``point`` whose Z-axis is ``normal``.

    Args:
        point: Frame origin.
        normal: Direction of the Z-axis, does not need to be unitized.

    Returns:
        Frame with X-axis from :func:`perpendicular_vector` and Y = Z x X.
    """
    zaxis = Vector(*normal).unitized()
    xaxis = perpendicular_vector(zaxis).unitized()
    yaxis = zaxis.cross(xaxis)
    return Frame(Point(*point), xaxis, yaxis)


def plane_to_plane(frame_from: Frame, frame_to: Frame) -> Transformation:
    """Transformation that maps ``frame_from`` onto ``frame_to``."""
    return Transformation.from_frame_to_frame(frame_from, frame_to)


def local_coordinates(
    frame: Frame, point: Point | Sequence[float]
) -> tuple[float, float, float]:
    """Coordinates of ``point`` along the X, Y and Z axes of ``frame``."""
    offset = Vector.from_start_end(frame.point, point)
    return (
        offset.dot(frame.xaxis),
        offset.dot(frame.yaxis),
        offset.dot(frame.zaxis),
    )


def plane_parameters(frame: Frame, point: Point | Sequence[float]) -> tuple[float, float]:
    """Parameters (u, v) of the projection of ``point`` onto the XY plane of ``frame``."""
    u, v, _ = local_coordinates(frame, point)
    return u, v


def point_at(frame: Frame, u: float, v: float, w: float = 0.0) -> Point:
    """Point at local coordinates (u, v, w) of ``frame``."""
    return frame.point + frame.xaxis * u + frame.yaxis * v + frame.zaxis * w


def rotate_frame(
    frame: Frame,
    angle: float,
    axis: Vector | Sequence[float] | None = None,
    point: Point | Sequence[float] | None = None,
) -> Frame:
    """
    Rotate a frame about an axis.

    Args:
        frame: Frame to rotate. It is not modified.
        angle: Rotation angle in radians.
        axis: Rotation axis, defaults to the Z-axis of ``frame``.
        point: Point on the rotation axis, defaults to the origin of ``frame``.

    Returns:
        The rotated copy.
    """
    axis = frame.zaxis if axis is None else axis
    point = frame.point if point is None else point
    return frame.transformed(Rotation.from_axis_and_angle(axis, angle, point=point))


def translate_frame(frame: Frame, vector: Vector | Sequence[float]) -> Frame:
    """Return a copy of ``frame`` moved by ``vector``."""
    return frame.transformed(Translation.from_vector(vector))


def is_valid_frame(frame: Frame | None) -> bool:
    """A frame is valid when all components are finite and its axes are not degenerate."""
    if frame is None:
        return False
    values = [*frame.point, *frame.xaxis, *frame.yaxis]
    if not all(math.isfinite(value) for value in values):
        return False
    return frame.xaxis.length > 1e-12 and frame.yaxis.length > 1e-12


def frames_close(
    frame_a: Frame, frame_b: Frame, tolerance: float = 1e-6, angle_tolerance: float = 1e-4
) -> bool:
    """Compare two frames by origin distance and axis deviation."""
    if frame_a.point.distance_to_point(frame_b.point) > tolerance:
        return False
    for axis_a, axis_b in ((frame_a.xaxis, frame_b.xaxis), (frame_a.yaxis, frame_b.yaxis)):
        if (axis_a - axis_b).length > angle_tolerance:
            return False
    return True


@dataclass(frozen=True)
class AxisLimits:
    """
    Closed interval of allowed axis values.

    Values are degrees for rotational axes and millimeters for linear axes.

    Attributes:
        lower: Minimum allowed value.
        upper: Maximum allowed value.
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lower) and math.isfinite(self.upper)):
            raise InvalidInputError(
                "Axis limits must be finite",
                details={"lower": self.lower, "upper": self.upper},
            )
        if self.lower > self.upper:
            raise InvalidInputError(
                "Axis limits minimum is larger than the maximum",
                details={"lower": self.lower, "upper": self.upper},
            )

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "AxisLimits":
        """Create limits from a ``[lower, upper]`` pair."""
        if len(values) != 2:
            raise InvalidInputError(
                "Axis limits need exactly two values",
                details={"values": list(values)},
            )
        return cls(float(values[0]), float(values[1]))

    @property
    def length(self) -> float:
        return self.upper - self.lower

    def includes(self, value: float) -> bool:
        """Check whether ``value`` lies inside the closed interval."""
        return self.lower <= value <= self.upper

    def clamp(self, value: float) -> float:
        """Clamp ``value`` to the nearest bound."""
        return min(max(value, self.lower), self.upper)

    def to_list(self) -> list[float]:
        return [self.lower, self.upper]

    def __iter__(self) -> Iterator[float]:
        yield self.lower
        yield self.upper


@dataclass(frozen=True)
class AxisCurve:
    """
    Straight curve along which a linear axis moves its attachment plane.

    The curve is parameterised by the axis value: ``point_at(t)`` is the
    attachment origin moved ``t`` millimeters along ``direction``.
    """

    origin: Point
    direction: Vector
    domain: AxisLimits

    @property
    def start(self) -> Point:
        return self.point_at(self.domain.lower)

    @property
    def end(self) -> Point:
        return self.point_at(self.domain.upper)

    def point_at(self, parameter: float) -> Point:
        return self.origin + self.direction * parameter

    def closest_parameter(self, point: Point | Sequence[float]) -> float:
        """Parameter of the point on the curve closest to ``point``."""
        parameter = Vector.from_start_end(self.origin, point).dot(self.direction)
        return self.domain.clamp(parameter)

    def closest_point(self, point: Point | Sequence[float]) -> Point:
        return self.point_at(self.closest_parameter(point))
