"""
Path generation for robot programs.

This module approximates the path a robot follows through a sequence of
actions. Joint movements are interpolated in joint space and posed with
forward kinematics; linear movements are interpolated in the work object
frame of the destination and solved with inverse kinematics per step.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from compas.geometry import Frame, Point, Vector
from scipy.interpolate import make_interp_spline

from armkin.core.exceptions import Diagnostic, DiagnosticKind, InvalidInputError
from armkin.core.geometry import plane_to_plane, world_xy
from armkin.core.logging import get_logger
from armkin.core.robot import RobotModel, RobotTool
from armkin.motion.actions import (
    Action,
    AutoAxisConfig,
    ExternalJointPosition,
    JointTarget,
    Movement,
    OverrideRobotTool,
    RobotJointPosition,
    RobotTarget,
)
from armkin.motion.external_axes import UNDEFINED_AXIS_VALUE, is_undefined
from armkin.motion.forward_kinematics import ForwardKinematics
from armkin.motion.inverse_kinematics import InverseKinematics, InverseKinematicsResult

logger = get_logger(__name__)

# Minimum distance (mm) between two consecutive path points
POINT_TOLERANCE = 1e-9


class PathCurve:
    """
    Interpolating curve through the TCP points of one path segment.

    The curve has degree ``min(3, n - 1)`` for ``n`` points and is
    parameterised by normalised chord length, so ``point_at(0)`` is the
    first and ``point_at(1)`` the last point.
    """

    def __init__(self, points: Sequence[Point]):
        if len(points) < 2:
            raise InvalidInputError(
                "A path curve needs at least two points", details={"points": len(points)}
            )
        self.points = tuple(Point(*point) for point in points)
        self.degree = min(3, len(self.points) - 1)

        coordinates = np.array([list(point) for point in self.points], dtype=float)
        chords = np.linalg.norm(np.diff(coordinates, axis=0), axis=1)
        parameters = np.concatenate(([0.0], np.cumsum(chords)))
        parameters /= parameters[-1]
        self._spline = make_interp_spline(parameters, coordinates, k=self.degree)

    @classmethod
    def from_points(cls, points: Sequence[Point]) -> Optional["PathCurve"]:
        """Create a curve, or return None when there are fewer than two points."""
        if len(points) < 2:
            return None
        return cls(points)

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    def point_at(self, t: float) -> Point:
        """Point at normalised parameter ``t`` (0 to 1)."""
        t = min(max(t, 0.0), 1.0)
        return Point(*self._spline(t).tolist())

    def sample(self, count: int = 50) -> List[Point]:
        """Evenly spaced samples in parameter space, both ends included."""
        count = max(count, 2)
        values = self._spline(np.linspace(0.0, 1.0, count))
        return [Point(*row) for row in values.tolist()]

    def length(self, samples: int = 200) -> float:
        """Approximate curve length from a polyline of ``samples`` points."""
        values = self._spline(np.linspace(0.0, 1.0, max(samples, 2)))
        return float(np.linalg.norm(np.diff(values, axis=0), axis=1).sum())

    def __repr__(self) -> str:
        return f"PathCurve(points={len(self.points)}, degree={self.degree})"


@dataclass(frozen=True)
class PathResult:
    """
    Outcome of a path calculation.

    The lists ``planes``, ``robot_joint_positions`` and
    ``external_joint_positions`` are aligned: one entry per interpolation
    step plus the final state.

    Attributes:
        planes: TCP plane per step in world coordinates, None where the
            axis values could not be posed
        paths: One curve per segment with at least two distinct points
        robot_joint_positions: Internal axis values per step
        external_joint_positions: External axis values per step
        diagnostics: Collected diagnostics, without duplicates
    """

    planes: Tuple[Optional[Frame], ...] = ()
    paths: Tuple[PathCurve, ...] = ()
    robot_joint_positions: Tuple[RobotJointPosition, ...] = ()
    external_joint_positions: Tuple[ExternalJointPosition, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def error_text(self) -> List[str]:
        return [diagnostic.message for diagnostic in self.diagnostics]

    def __len__(self) -> int:
        return len(self.robot_joint_positions)


def _interpolate_external(
    start: ExternalJointPosition, end: ExternalJointPosition, t: float
) -> ExternalJointPosition:
    """Interpolate slot by slot; an undefined slot keeps the defined side."""
    values = []
    for a, b in zip(start, end):
        if is_undefined(a):
            values.append(b)
        elif is_undefined(b):
            values.append(a)
        elif t >= 1.0:
            values.append(b)
        else:
            values.append(a + (b - a) * t)
    return ExternalJointPosition(values)


def _interpolate_plane(start: Frame, end: Frame, t: float) -> Frame:
    """Interpolate origin and axes as plain vectors."""
    origin = start.point + Vector.from_start_end(start.point, end.point) * t
    xaxis = start.xaxis + (end.xaxis - start.xaxis) * t
    yaxis = start.yaxis + (end.yaxis - start.yaxis) * t
    if xaxis.cross(yaxis).length < 1e-9:
        reference = start if t < 0.5 else end
        xaxis, yaxis = reference.xaxis, reference.yaxis
    return Frame(origin, xaxis, yaxis)


class _PathState:
    """Mutable bookkeeping of a single :meth:`PathGenerator.calculate` call."""

    def __init__(self, robot: RobotModel, interpolations: int):
        self.interpolations = interpolations
        self.tool = robot.tool
        self.auto_axis_config = False
        self.robot_joint_position = RobotJointPosition(0, 0, 0, 0, 0, 0)
        values = [UNDEFINED_AXIS_VALUE] * len(ExternalJointPosition())
        for axis in robot.external_axes:
            values[axis.axis_number] = axis.axis_limits.lower
        self.external_joint_position = ExternalJointPosition(values)
        self.last_tool: Optional[RobotTool] = None

        self.planes: List[Optional[Frame]] = []
        self.paths: List[PathCurve] = []
        self.robot_joint_positions: List[RobotJointPosition] = []
        self.external_joint_positions: List[ExternalJointPosition] = []
        self.diagnostics: List[Diagnostic] = []

    def add_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            if diagnostic not in self.diagnostics:
                self.diagnostics.append(diagnostic)

    def add_diagnostic(self, kind: DiagnosticKind, message: str) -> None:
        self.add_diagnostics([Diagnostic(kind, message)])

    def add_step(
        self,
        plane: Optional[Frame],
        robot_joint_position: RobotJointPosition,
        external_joint_position: ExternalJointPosition,
    ) -> None:
        self.planes.append(plane)
        self.robot_joint_positions.append(robot_joint_position)
        self.external_joint_positions.append(external_joint_position)

    def add_path(self, points: List[Point]) -> None:
        curve = PathCurve.from_points(points)
        if curve is not None:
            self.paths.append(curve)


def _add_point(points: List[Point], point: Point) -> None:
    if not points or points[-1].distance_to_point(point) > POINT_TOLERANCE:
        points.append(Point(*point))


def _location(movement: Movement) -> str:
    return f"Movement {movement.target.name}\\{movement.work_object.name}"


def _tcp_plane(
    state: _PathState,
    fk: ForwardKinematics,
    robot_joint_position: RobotJointPosition,
    external_joint_position: ExternalJointPosition,
) -> Optional[Frame]:
    """Posed TCP plane, or None with the FK diagnostics recorded when posing fails."""
    posed = fk.calculate(robot_joint_position, external_joint_position)
    if not posed.is_valid:
        state.add_diagnostics(posed.diagnostics)
        return None
    return posed.tcp_plane


class PathGenerator:
    """
    Approximates the path of a robot through a list of actions.

    Movements are processed in order. The first movement only defines the
    start state; every following movement adds ``interpolations`` steps
    and one path curve. The final state of the last movement is appended
    once, so a program with ``n`` movements yields
    ``interpolations * (n - 1) + 1`` steps.

    Movements that are not valid are reported as diagnostics and skipped.
    Axis values that cannot be posed leave a None plane for their step.

    Example:
        >>> generator = PathGenerator(robot)
        >>> result = generator.calculate(actions, interpolations=5)
        >>> result.robot_joint_positions[-1]
    """

    def __init__(self, robot: RobotModel):
        """
        Initialize the path generator.

        Args:
            robot: Robot model to generate the path for
        """
        self.robot = robot

    def calculate(self, actions: Sequence[Action], interpolations: int = 5) -> PathResult:
        """
        Calculate the path through ``actions``.

        Args:
            actions: Movements, tool overrides and auto axis configuration
                instructions
            interpolations: Number of steps between two movements

        Returns:
            PathResult with the aligned planes and joint positions

        Raises:
            InvalidInputError: If ``interpolations`` is below 1 or an action
                is of an unknown type.
        """
        if isinstance(interpolations, bool) or not isinstance(interpolations, int) or interpolations < 1:
            raise InvalidInputError(
                "The number of interpolations must be at least 1",
                details={"interpolations": interpolations},
            )

        state = _PathState(self.robot, interpolations)
        solvers: Dict[int, Tuple[RobotTool, ForwardKinematics, InverseKinematics]] = {}
        movement_count = 0

        for action in actions:
            if isinstance(action, OverrideRobotTool):
                state.tool = action.robot_tool
            elif isinstance(action, AutoAxisConfig):
                state.auto_axis_config = action.is_active
            elif isinstance(action, Movement):
                if not action.is_valid:
                    state.add_diagnostic(
                        DiagnosticKind.INVALID_INPUT, f"{_location(action)}: The movement is not valid."
                    )
                    continue
                tool = action.resolve_tool(state.tool)
                movement = action.with_robot_tool(tool)
                fk, ik = self._solvers(solvers, tool)
                if movement_count == 0:
                    result = self._solve(ik, movement, state, state.robot_joint_position)
                    self._finish_movement(state, result)
                elif movement.movement_type.is_linear and isinstance(movement.target, RobotTarget):
                    self._linear_movement(state, movement, fk, ik)
                else:
                    self._joint_movement(state, movement, fk, ik)
                state.last_tool = tool
                movement_count += 1
            else:
                raise InvalidInputError(
                    f"Unknown action type: {type(action).__name__}",
                    details={"allowed": ["Movement", "OverrideRobotTool", "AutoAxisConfig"]},
                )

        if movement_count > 0:
            fk, _ = self._solvers(solvers, state.last_tool)
            final = fk.calculate(state.robot_joint_position, state.external_joint_position)
            state.add_diagnostics(final.diagnostics)
            state.add_step(
                final.tcp_plane, state.robot_joint_position, state.external_joint_position
            )

        logger.debug(
            "path_generated",
            robot=self.robot.name,
            movements=movement_count,
            steps=len(state.robot_joint_positions),
            curves=len(state.paths),
            diagnostics=len(state.diagnostics),
        )

        return PathResult(
            planes=tuple(state.planes),
            paths=tuple(state.paths),
            robot_joint_positions=tuple(state.robot_joint_positions),
            external_joint_positions=tuple(state.external_joint_positions),
            diagnostics=tuple(state.diagnostics),
        )

    def _solvers(
        self, cache: Dict[int, Tuple[RobotTool, ForwardKinematics, InverseKinematics]], tool: RobotTool
    ) -> Tuple[ForwardKinematics, InverseKinematics]:
        """Solvers for the robot with ``tool`` mounted."""
        entry = cache.get(id(tool))
        if entry is None:
            robot = self.robot.with_tool(tool)
            entry = (tool, ForwardKinematics(robot), InverseKinematics(robot))
            cache[id(tool)] = entry
        return entry[1], entry[2]

    def _solve(
        self,
        ik: InverseKinematics,
        movement: Movement,
        state: _PathState,
        previous: RobotJointPosition,
    ) -> InverseKinematicsResult:
        result = ik.calculate(movement)
        if state.auto_axis_config and isinstance(movement.target, RobotTarget):
            result = ik.closest_robot_joint_position(result, previous)
        return result

    def _finish_movement(self, state: _PathState, result: InverseKinematicsResult) -> None:
        state.add_diagnostics(result.diagnostics)
        state.robot_joint_position = result.robot_joint_position
        state.external_joint_position = _interpolate_external(
            state.external_joint_position, result.external_joint_position, 1.0
        )

    def _joint_movement(
        self,
        state: _PathState,
        movement: Movement,
        fk: ForwardKinematics,
        ik: InverseKinematics,
    ) -> None:
        """Interpolate the axis values linearly towards the movement."""
        result = self._solve(ik, movement, state, state.robot_joint_position)
        start_robot = state.robot_joint_position
        start_external = state.external_joint_position
        towards_robot = result.robot_joint_position
        towards_external = _interpolate_external(
            start_external, result.external_joint_position, 1.0
        )

        points: List[Point] = []
        for step in range(state.interpolations):
            t = step / state.interpolations
            robot_joint_position = start_robot + (towards_robot - start_robot) * t
            external_joint_position = _interpolate_external(start_external, towards_external, t)
            plane = _tcp_plane(state, fk, robot_joint_position, external_joint_position)
            state.add_step(plane, robot_joint_position, external_joint_position)
            if plane is not None:
                _add_point(points, plane.point)

        if isinstance(movement.target, RobotTarget):
            end_plane = movement.posed_global_target_plane(ik.robot)
        else:
            end_plane = _tcp_plane(state, fk, towards_robot, towards_external)
        if end_plane is not None:
            _add_point(points, end_plane.point)
        state.add_path(points)

        self._finish_movement(state, result)

    def _linear_movement(
        self,
        state: _PathState,
        movement: Movement,
        fk: ForwardKinematics,
        ik: InverseKinematics,
    ) -> None:
        """Interpolate the target plane in the work object frame of the movement."""
        target = movement.target
        destination = ik.calculate(movement)
        start_robot = state.robot_joint_position
        start_external = state.external_joint_position
        towards_external = _interpolate_external(
            start_external, destination.external_joint_position, 1.0
        )

        start_plane = _tcp_plane(state, fk, start_robot, start_external)
        if start_plane is None:
            self._joint_movement(state, movement, fk, ik)
            return
        axis = movement.work_object_axis(ik.robot)
        if axis is not None:
            value = start_external.value_or(axis.axis_number, 0.0)
            start_plane = start_plane.transformed(axis.transformation(-value))
        start_plane = start_plane.transformed(
            plane_to_plane(movement.work_object.global_plane, world_xy())
        )

        points: List[Point] = []
        previous = start_robot
        for step in range(state.interpolations):
            t = step / state.interpolations
            sub_target = RobotTarget(
                target.name,
                _interpolate_plane(start_plane, target.plane, t),
                target.axis_config,
                _interpolate_external(start_external, towards_external, t),
            )
            sub_movement = movement.with_target(sub_target)
            result = self._solve(ik, sub_movement, state, previous)
            state.add_diagnostics(result.diagnostics)
            if result.robot_joint_position[4] * previous[4] < 0:
                state.add_diagnostic(
                    DiagnosticKind.SINGULARITY,
                    f"{_location(movement)}: The robot is near a wrist singularity.",
                )

            plane = sub_movement.posed_global_target_plane(ik.robot)
            state.add_step(plane, result.robot_joint_position, result.external_joint_position)
            _add_point(points, plane.point)
            previous = result.robot_joint_position

        _add_point(points, movement.posed_global_target_plane(ik.robot).point)
        state.add_path(points)

        result = destination
        if state.auto_axis_config:
            result = ik.closest_robot_joint_position(destination, previous)
        self._finish_movement(state, result)
