"""
Kinematic parameters of ABB 6-axis robots.

ABB product specifications describe the arm geometry with eight distances
(a1, a2, a3, b, c1, c2, c3, c4). This module converts between those
parameters and the joint axis planes used by :class:`RobotModel`.
"""

import math
from dataclasses import dataclass, fields
from typing import Optional, Sequence

from compas.geometry import Frame

from armkin.core.exceptions import InvalidInputError
from armkin.core.geometry import frame_from_normal, plane_to_plane, rotate_frame, world_xy

X = (1.0, 0.0, 0.0)
Y = (0.0, 1.0, 0.0)
Z = (0.0, 0.0, 1.0)


def flange_frame(point: Sequence[float]) -> Frame:
    """
    Mounting frame of an ABB flange at ``point``.

    The Z-axis points along the world X-axis and the X-axis points down.
    """
    return rotate_frame(frame_from_normal(point, X), -0.5 * math.pi)


@dataclass(frozen=True)
class RobotKinematicParameters:
    """
    Arm geometry as listed in an ABB product specification, in millimeters.

    Attributes:
        a1: Offset along X from axis 1 to axis 2
        a2: Offset along Z from axis 3 to the axis 4 line, negative when
            axis 4 lies above axis 3
        a3: Offset along Z from axis 5 to the flange, negative when the
            flange lies above axis 5
        b: Lateral offset of the wrist, measured along -Y
        c1: Height of axis 2 above the base
        c2: Lower arm length, from axis 2 to axis 3
        c3: Upper arm length along X, from axis 3 to axis 5
        c4: Distance from axis 5 to the flange

    Raises:
        InvalidInputError: If a parameter is not a finite number.
    """

    a1: float
    a2: float
    a3: float
    b: float
    c1: float
    c2: float
    c3: float
    c4: float

    def __post_init__(self) -> None:
        for item in fields(self):
            value = float(getattr(self, item.name))
            if not math.isfinite(value):
                raise InvalidInputError(
                    f"Kinematic parameter {item.name} must be finite",
                    details={item.name: value},
                )
            object.__setattr__(self, item.name, value)

    @classmethod
    def from_axis_planes(
        cls, axis_planes: Sequence[Frame], base_plane: Optional[Frame] = None
    ) -> "RobotKinematicParameters":
        """
        Derive the parameters from six joint axis planes.

        Args:
            axis_planes: Joint axis planes, in the coordinates of ``base_plane``
            base_plane: Robot placement, world XY when None

        Raises:
            InvalidInputError: If there are not exactly six planes.
        """
        if len(axis_planes) != 6:
            raise InvalidInputError(
                "Kinematic parameters need exactly six axis planes",
                details={"planes": len(axis_planes)},
            )
        points = [plane.point for plane in axis_planes]
        if base_plane is not None:
            to_local = plane_to_plane(base_plane, world_xy())
            points = [point.transformed(to_local) for point in points]

        return cls(
            a1=points[1].x,
            a2=-(points[4].z - points[2].z),
            a3=-(points[5].z - points[4].z),
            b=points[0].y - points[5].y,
            c1=points[1].z,
            c2=points[2].z - points[1].z,
            c3=points[4].x - points[2].x,
            c4=points[5].x - points[4].x,
        )

    @property
    def flange_point(self) -> tuple[float, float, float]:
        """Flange center at the home position, robot-local."""
        return (
            self.a1 + self.c3 + self.c4,
            -self.b,
            self.c1 + self.c2 - self.a2 - self.a3,
        )

    @property
    def mounting_frame(self) -> Frame:
        """Flange plane at the home position, robot-local."""
        return flange_frame(self.flange_point)

    def get_axis_planes(self, base_plane: Optional[Frame] = None) -> tuple[Frame, ...]:
        """
        Joint axis planes at the home position.

        Args:
            base_plane: Robot placement; the planes are robot-local when None

        Returns:
            The six axis planes, their Z-axes along the joint rotation axes
        """
        wrist_height = self.c1 + self.c2 - self.a2
        planes = (
            frame_from_normal((0.0, 0.0, 0.0), Z),
            frame_from_normal((self.a1, 0.0, self.c1), Y),
            frame_from_normal((self.a1, 0.0, self.c1 + self.c2), Y),
            frame_from_normal((self.a1, -self.b, wrist_height), X),
            frame_from_normal((self.a1 + self.c3, -self.b, wrist_height), Y),
            frame_from_normal(self.flange_point, X),
        )
        if base_plane is None:
            return planes
        to_world = plane_to_plane(world_xy(), base_plane)
        return tuple(plane.transformed(to_world) for plane in planes)

    def to_dict(self) -> dict[str, float]:
        return {item.name: getattr(self, item.name) for item in fields(self)}
