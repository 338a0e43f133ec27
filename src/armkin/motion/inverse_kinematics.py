"""
Closed-form inverse kinematics for 6-axis robots with a spherical wrist.

The solver computes all eight joint solutions of an anthropomorphic arm
(front/back reach, elbow up/down, wrist flip/no flip) analytically and
selects one by the axis configuration of the target. External axis values
are derived for the axis that carries the robot and copied from the target
for all other axes.

Problems are reported as diagnostics on the result instead of exceptions, so
that a path over many targets can be generated and inspected as a whole.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from compas.geometry import Frame, Point, Rotation, Vector

from armkin.core.exceptions import Diagnostic, DiagnosticKind, UnreachableTargetError
from armkin.core.geometry import (
    plane_parameters,
    plane_to_plane,
    point_at,
    rotate_frame,
    world_xy,
)
from armkin.core.logging import get_logger, log_diagnostics
from armkin.core.robot import RobotModel, RobotTool
from armkin.motion.actions import (
    ExternalJointPosition,
    JointTarget,
    Movement,
    RobotJointPosition,
    RobotTarget,
)
from armkin.motion.external_axes import (
    AXIS_LOGIC,
    UNDEFINED_AXIS_VALUE,
    ExternalLinearAxis,
    is_undefined,
)

logger = get_logger(__name__)

# Tolerance (mm^2) on the squared elbow circle radius before a target counts as out of reach
REACH_TOLERANCE = 1e-6


def _wrap_upper(angle: float) -> float:
    """Map an angle in (-pi, 2pi] to (-pi, pi]."""
    if angle > math.pi:
        angle -= 2.0 * math.pi
    return angle


def _wrap(angle: float) -> float:
    """Map an angle to [-pi, pi)."""
    while angle >= math.pi:
        angle -= 2.0 * math.pi
    while angle < -math.pi:
        angle += 2.0 * math.pi
    return angle


def _to_controller_degrees(radians: Sequence[float]) -> RobotJointPosition:
    """Convert solver angles to the joint sign and offset conventions of the controller."""
    degrees = [value * 180.0 / math.pi for value in radians]
    degrees[0] = -degrees[0]
    degrees[1] += 90.0
    degrees[2] -= 90.0
    degrees[3] = -degrees[3]
    degrees[5] = -180.0 - degrees[5] if degrees[5] <= 0 else 180.0 - degrees[5]
    return RobotJointPosition(degrees)


def _joint_distance(a: RobotJointPosition, b: RobotJointPosition) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


@dataclass(frozen=True)
class InverseKinematicsResult:
    """
    Outcome of an inverse kinematics calculation.

    Attributes:
        movement: The movement that was solved
        robot_joint_position: Selected internal axis values in degrees
        external_joint_position: External axis values
        robot_joint_positions: All eight candidate solutions, empty for
            joint targets
        reachable: Per candidate, whether the arm can reach the wrist center
        selected_solution: Index of the selected candidate, None for joint targets
        internal_axis_in_limits: Limit flag per internal axis of the selection
        external_axis_in_limits: Limit flag per external axis slot
        diagnostics: Limit violations, reach problems and unsupported setups
    """

    movement: Movement
    robot_joint_position: RobotJointPosition
    external_joint_position: ExternalJointPosition
    robot_joint_positions: Tuple[RobotJointPosition, ...] = ()
    reachable: Tuple[bool, ...] = ()
    selected_solution: Optional[int] = None
    internal_axis_in_limits: Tuple[bool, ...] = ()
    external_axis_in_limits: Tuple[bool, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def in_limits(self) -> bool:
        return all(self.internal_axis_in_limits) and all(self.external_axis_in_limits)

    @property
    def is_reachable(self) -> bool:
        if self.selected_solution is None:
            return True
        return self.reachable[self.selected_solution]

    @property
    def error_text(self) -> List[str]:
        return [diagnostic.message for diagnostic in self.diagnostics]


class InverseKinematics:
    """
    Analytic inverse kinematics solver.

    The arm constants (arm lengths, wrist offset) are derived from the robot
    once; every call to :meth:`calculate` solves from scratch.

    Example:
        >>> ik = InverseKinematics(robot)
        >>> result = ik.calculate(Movement(RobotTarget("p10", plane)))
        >>> result.robot_joint_position
    """

    def __init__(self, robot: RobotModel):
        """
        Initialize the solver.

        Args:
            robot: Robot model to solve for
        """
        self.robot = robot

        planes = robot.internal_axis_planes
        self._shoulder = planes[1].point.copy()
        self._wrist_offset = planes[5].point.x - planes[4].point.x
        self._lower_arm_length = planes[1].point.distance_to_point(planes[2].point)
        self._upper_arm_length = planes[2].point.distance_to_point(planes[4].point)
        self._axis4_offset_angle = math.atan2(
            planes[4].point.z - planes[2].point.z,
            planes[4].point.x - planes[2].point.x,
        )

    @property
    def wrist_offset(self) -> float:
        return self._wrist_offset

    @property
    def lower_arm_length(self) -> float:
        return self._lower_arm_length

    @property
    def upper_arm_length(self) -> float:
        return self._upper_arm_length

    @property
    def axis4_offset_angle(self) -> float:
        return self._axis4_offset_angle

    def calculate(
        self,
        movement: Union[Movement, RobotTarget, JointTarget],
        strict: bool = False,
    ) -> InverseKinematicsResult:
        """
        Solve the inverse kinematics of a movement.

        Args:
            movement: Movement to solve; a bare target is solved in the
                default work object
            strict: Raise instead of reporting when the selected solution
                is out of reach

        Returns:
            InverseKinematicsResult with the selected and all candidate solutions

        Raises:
            UnreachableTargetError: If ``strict`` is set and the target is out of reach.
            ConfigurationError: If the work object axis is not attached to the robot.
        """
        if not isinstance(movement, Movement):
            movement = Movement(movement)

        target = movement.target
        if isinstance(target, JointTarget):
            return self._build_result(
                movement,
                target.robot_joint_position,
                target.external_joint_position,
                diagnostics=target.check_axis_limits(self.robot),
            )

        diagnostics: List[Diagnostic] = []
        tool = movement.resolve_tool(self.robot.tool)
        target_plane = movement.posed_global_target_plane(self.robot)
        position_plane = self._position_plane(target, target_plane, diagnostics)
        end_plane = self._end_plane(target_plane, position_plane, tool)

        solutions, reachable = self._solve(end_plane)
        external = self._external_joint_position(target, position_plane)

        selected = target.axis_config
        if not reachable[selected]:
            message = (
                f"Movement {target.name}\\{movement.work_object.name}: "
                "The target is out of reach."
            )
            if strict:
                raise UnreachableTargetError(
                    message,
                    target=target.name,
                    details={"axis_config": selected, "point": list(target_plane.point)},
                )
            diagnostics.append(Diagnostic(DiagnosticKind.UNREACHABLE, message))

        result = self._build_result(
            movement,
            solutions[selected],
            external,
            solutions=solutions,
            reachable=reachable,
            selected=selected,
            diagnostics=diagnostics,
        )
        logger.debug(
            "inverse_kinematics",
            robot=self.robot.name,
            target=target.name,
            axis_config=selected,
            joints=result.robot_joint_position.to_list(),
        )
        return result

    def closest_robot_joint_position(
        self, result: InverseKinematicsResult, previous: RobotJointPosition
    ) -> InverseKinematicsResult:
        """
        Select the candidate closest to a previous joint position.

        Every reachable candidate is considered with axis 1, 4 and 6 turned
        by full rotations towards ``previous``, as long as the turned values
        stay within the axis limits. The current selection is kept unless a
        candidate is strictly closer.

        Args:
            result: Result of :meth:`calculate`
            previous: Joint position to stay close to

        Returns:
            A new result with the closest candidate selected
        """
        if result.selected_solution is None:
            return result

        best_index = result.selected_solution
        best = result.robot_joint_position
        best_distance = _joint_distance(previous, best)

        for index, (candidate, reachable) in enumerate(
            zip(result.robot_joint_positions, result.reachable)
        ):
            if not reachable:
                continue
            turned = self._turn_towards(candidate, previous)
            if not self._within_limits(turned):
                continue
            distance = _joint_distance(previous, turned)
            if distance < best_distance - 1e-9:
                best_index, best, best_distance = index, turned, distance

        diagnostics = [
            diagnostic
            for diagnostic in result.diagnostics
            if diagnostic.kind
            in (DiagnosticKind.UNSUPPORTED_CONFIGURATION, DiagnosticKind.INVALID_INPUT)
        ]
        if not result.reachable[best_index]:
            diagnostics.append(
                next(
                    diagnostic
                    for diagnostic in result.diagnostics
                    if diagnostic.kind == DiagnosticKind.UNREACHABLE
                )
            )
        return self._build_result(
            result.movement,
            best,
            result.external_joint_position,
            solutions=result.robot_joint_positions,
            reachable=result.reachable,
            selected=best_index,
            diagnostics=diagnostics,
        )

    def _turn_towards(
        self, candidate: RobotJointPosition, previous: RobotJointPosition
    ) -> RobotJointPosition:
        """
        Turn axis 1, 4 and 6 independently to the value closest to ``previous``.

        Only turns that keep an axis within its limits are taken; an axis
        without such a turn keeps its value.
        """
        for index in (0, 3, 5):
            value = candidate[index]
            limits = self.robot.internal_axis_limits[index]
            options = [
                value + turns * 360.0
                for turns in range(
                    math.ceil((limits.lower - value) / 360.0),
                    math.floor((limits.upper - value) / 360.0) + 1,
                )
            ]
            if not options:
                continue
            best = min(options, key=lambda option: (abs(previous[index] - option), option != value))
            if best != value:
                candidate = candidate.with_value(index, best)
        return candidate

    def _within_limits(self, position: RobotJointPosition) -> bool:
        return all(
            self.robot.internal_axis_in_limits(index, value)
            for index, value in enumerate(position)
        )

    def _position_plane(
        self, target: RobotTarget, target_plane: Frame, diagnostics: List[Diagnostic]
    ) -> Frame:
        """Robot placement for the target, driven by the axis that carries the robot."""
        axis = self.robot.robot_moving_axis
        if axis is None:
            return self.robot.base_plane.copy()

        value = target.external_joint_position[axis.axis_number]
        if is_undefined(value):
            if isinstance(axis, ExternalLinearAxis):
                plane = self.robot.base_plane.copy()
                plane.point = axis.axis_curve.closest_point(target_plane.point)
                return plane
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.UNSUPPORTED_CONFIGURATION,
                    f"External Axis {axis.axis_logic} ({axis.name}): the value of a "
                    "rotational axis that moves the robot cannot be solved automatically.",
                )
            )
        plane, _ = axis.pose(value)
        return plane

    def _end_plane(self, target_plane: Frame, position_plane: Frame, tool: RobotTool) -> Frame:
        """Flange plane for the target in robot-local space, with X and Y swapped."""
        flange = rotate_frame(tool.attachment_plane, math.pi)
        flange = flange.transformed(plane_to_plane(tool.tool_plane, target_plane))
        end_plane = Frame(flange.point, flange.yaxis, flange.xaxis)
        return end_plane.transformed(plane_to_plane(position_plane, world_xy()))

    def _solve(self, end_plane: Frame) -> Tuple[Tuple[RobotJointPosition, ...], Tuple[bool, ...]]:
        """Compute the eight candidate solutions for a robot-local end plane."""
        wrist = point_at(end_plane, 0.0, 0.0, self._wrist_offset)
        theta1 = _wrap_upper(-math.atan2(wrist.y, wrist.x))

        solutions = []
        reachable = []
        for base_angle in (theta1, _wrap_upper(theta1 + math.pi)):
            rotation = Rotation.from_axis_and_angle([0, 0, 1], -base_angle)
            shoulder = self._shoulder.transformed(rotation)
            direction = Vector(1, 0, 0).transformed(rotation)
            elbow_plane = Frame(shoulder, direction, [0, 0, 1])

            wrist_u, wrist_v = plane_parameters(elbow_plane, wrist)
            elbows, in_reach = self._elbow_positions(wrist_u, wrist_v)

            for elbow_u, elbow_v in elbows:
                theta2 = math.atan2(elbow_v, elbow_u)
                theta3 = (
                    math.pi
                    - theta2
                    + math.atan2(wrist_v - elbow_v, wrist_u - elbow_u)
                    - self._axis4_offset_angle
                )
                for flip in (False, True):
                    theta4, theta5, theta6 = self._wrist_angles(
                        elbow_plane, theta2 + theta3, wrist, end_plane, flip
                    )
                    radians = (base_angle, -theta2, _wrap(-theta3 + math.pi), theta4, theta5, theta6)
                    solutions.append(_to_controller_degrees(radians))
                    reachable.append(in_reach)

        return tuple(solutions), tuple(reachable)

    def _elbow_positions(
        self, wrist_u: float, wrist_v: float
    ) -> Tuple[List[Tuple[float, float]], bool]:
        """
        Intersect the lower arm circle around the shoulder with the upper arm
        circle around the wrist, in elbow plane coordinates.

        The first point is the elbow up position. Without an intersection both
        points collapse onto the closest approach along the shoulder-wrist
        line, so the values stay finite, and the target is flagged out of reach.
        """
        lower = self._lower_arm_length
        upper = self._upper_arm_length
        distance = math.hypot(wrist_u, wrist_v)

        if distance < 1e-9:
            # wrist center on the shoulder axis
            return [(lower, 0.0), (lower, 0.0)], abs(lower - upper) < 1e-9

        ux, uy = wrist_u / distance, wrist_v / distance
        along = (distance * distance + lower * lower - upper * upper) / (2.0 * distance)
        height_squared = lower * lower - along * along

        in_reach = height_squared >= -REACH_TOLERANCE
        if height_squared > 0.0:
            height = math.sqrt(height_squared)
        else:
            height = 0.0
            along = min(max(along, -lower), lower)

        base_u, base_v = along * ux, along * uy
        normal_u, normal_v = -uy, ux
        elbow_up = (base_u + height * normal_u, base_v + height * normal_v)
        elbow_down = (base_u - height * normal_u, base_v - height * normal_v)
        return [elbow_up, elbow_down], in_reach

    def _wrist_angles(
        self,
        elbow_plane: Frame,
        elbow_angle: float,
        wrist: Point,
        end_plane: Frame,
        flip: bool,
    ) -> Tuple[float, float, float]:
        """Angles of axis 4, 5 and 6 for one elbow position and wrist flip."""
        forearm = rotate_frame(elbow_plane, elbow_angle)

        plane4 = Frame(wrist, forearm.zaxis, forearm.yaxis * -1)
        u, v = plane_parameters(plane4, end_plane.point)
        theta4 = math.atan2(v, u)
        if flip:
            theta4 = _wrap_upper(theta4 + math.pi)

        plane5 = rotate_frame(plane4, theta4)
        plane5 = Frame(wrist, plane5.zaxis * -1, plane5.xaxis)
        u, v = plane_parameters(plane5, end_plane.point)
        theta5 = math.atan2(v, u)

        plane6 = rotate_frame(plane5, theta5)
        plane6 = Frame(wrist, plane6.yaxis * -1, plane6.zaxis)
        u, v = plane_parameters(plane6, point_at(end_plane, 0.0, -1.0))
        theta6 = math.atan2(v, u)

        return _wrap(theta4 + 0.5 * math.pi), theta5, theta6

    def _external_joint_position(
        self, target: RobotTarget, position_plane: Frame
    ) -> ExternalJointPosition:
        values = [UNDEFINED_AXIS_VALUE] * len(target.external_joint_position)
        for axis in self.robot.external_axes:
            value = target.external_joint_position[axis.axis_number]
            if axis.moves_robot and isinstance(axis, ExternalLinearAxis):
                values[axis.axis_number] = self._linear_axis_value(axis, position_plane)
            else:
                values[axis.axis_number] = axis.resolve_value(value)
        return ExternalJointPosition(values)

    def _linear_axis_value(self, axis: ExternalLinearAxis, position_plane: Frame) -> float:
        """Signed distance from the nominal robot placement to the position plane."""
        base = self.robot.base_plane.point
        offset = Vector.from_start_end(base, position_plane.point)
        distance = offset.length
        if offset.dot(axis.axis_curve.direction) < 0:
            distance = -distance
        return distance

    def _build_result(
        self,
        movement: Movement,
        robot_joint_position: RobotJointPosition,
        external_joint_position: ExternalJointPosition,
        solutions: Tuple[RobotJointPosition, ...] = (),
        reachable: Tuple[bool, ...] = (),
        selected: Optional[int] = None,
        diagnostics: Optional[List[Diagnostic]] = None,
    ) -> InverseKinematicsResult:
        diagnostics = list(diagnostics or [])
        location = f"Movement {movement.target.name}\\{movement.work_object.name}"

        internal_flags = []
        for index, value in enumerate(robot_joint_position):
            in_limits = self.robot.internal_axis_in_limits(index, value)
            internal_flags.append(in_limits)
            if not in_limits and selected is not None:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"{location}: Internal Axis Value {index + 1} is not in Range.",
                    )
                )

        external_flags = []
        for index, limits in enumerate(self.robot.external_axis_limits):
            value = external_joint_position[index]
            in_limits = limits is None or (not is_undefined(value) and limits.includes(value))
            external_flags.append(in_limits)
            if not in_limits and selected is not None:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"{location}: External Axis Value {AXIS_LOGIC[index]} is not in Range.",
                    )
                )

        if diagnostics:
            log_diagnostics(logger, diagnostics, robot=self.robot.name)

        return InverseKinematicsResult(
            movement=movement,
            robot_joint_position=robot_joint_position,
            external_joint_position=external_joint_position,
            robot_joint_positions=tuple(solutions),
            reachable=tuple(reachable),
            selected_solution=selected,
            internal_axis_in_limits=tuple(internal_flags),
            external_axis_in_limits=tuple(external_flags),
            diagnostics=tuple(diagnostics),
        )
