"""
Forward kinematics for 6-axis robots with external axes.

Poses the serial chain of joint axis planes for given axis values and
returns the resulting tool center point plane. Axis values outside their
limits are reported as diagnostics; the pose is computed regardless.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from compas.geometry import Frame, Rotation, Transformation

from armkin.core.exceptions import Diagnostic, DiagnosticKind
from armkin.core.geometry import plane_to_plane, world_xy
from armkin.core.logging import get_logger, log_diagnostics
from armkin.core.robot import RobotModel
from armkin.motion.actions import ExternalJointPosition, RobotJointPosition
from armkin.motion.external_axes import is_undefined

logger = get_logger(__name__)


@dataclass(frozen=True)
class ForwardKinematicsResult:
    """
    Outcome of a forward kinematics calculation.

    Attributes:
        robot_joint_position: Internal axis values used
        external_joint_position: External axis values used
        tcp_plane: Posed tool center point plane in world coordinates,
            None when the input was not valid
        position_plane: Robot placement after posing the external axis that
            carries the robot
        posed_internal_axis_planes: Joint axis planes in world coordinates,
            each rotated by its own and all preceding joints
        posed_external_axis_planes: Posed attachment plane per axis slot,
            None for unused slots
        internal_axis_in_limits: Limit flag per internal axis
        external_axis_in_limits: Limit flag per external axis slot
        diagnostics: Limit violations and input problems
    """

    robot_joint_position: RobotJointPosition
    external_joint_position: ExternalJointPosition
    tcp_plane: Optional[Frame]
    position_plane: Frame
    posed_internal_axis_planes: Tuple[Frame, ...] = ()
    posed_external_axis_planes: Tuple[Optional[Frame], ...] = ()
    internal_axis_in_limits: Tuple[bool, ...] = ()
    external_axis_in_limits: Tuple[bool, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return self.tcp_plane is not None

    @property
    def in_limits(self) -> bool:
        return all(self.internal_axis_in_limits) and all(self.external_axis_in_limits)

    @property
    def error_text(self) -> List[str]:
        return [diagnostic.message for diagnostic in self.diagnostics]


class ForwardKinematics:
    """
    Forward kinematics solver.

    The solver keeps no state between calls; it only references the robot.

    Example:
        >>> fk = ForwardKinematics(robot)
        >>> result = fk.calculate(RobotJointPosition(0, 0, 0, 0, 30, 0))
        >>> result.tcp_plane.point
    """

    def __init__(self, robot: RobotModel):
        """
        Initialize forward kinematics.

        Args:
            robot: Robot model to pose
        """
        self.robot = robot

    def calculate(
        self,
        robot_joint_position: RobotJointPosition,
        external_joint_position: Optional[ExternalJointPosition] = None,
    ) -> ForwardKinematicsResult:
        """
        Calculate the posed TCP plane.

        Args:
            robot_joint_position: Internal axis values in degrees
            external_joint_position: External axis values, all undefined by default

        Returns:
            ForwardKinematicsResult with the posed planes and limit flags
        """
        if not isinstance(robot_joint_position, RobotJointPosition):
            robot_joint_position = RobotJointPosition(robot_joint_position)
        if external_joint_position is None:
            external_joint_position = ExternalJointPosition()
        elif not isinstance(external_joint_position, ExternalJointPosition):
            external_joint_position = ExternalJointPosition(external_joint_position)

        internal_in_limits, diagnostics = self._check_internal_limits(robot_joint_position)
        external_in_limits, external_diagnostics = self._check_external_limits(
            external_joint_position
        )
        diagnostics.extend(external_diagnostics)

        position_plane, posed_external = self._pose_external_axes(external_joint_position)

        if not robot_joint_position.is_valid:
            diagnostics.append(
                Diagnostic(DiagnosticKind.INVALID_INPUT, "Robot joint position is not valid.")
            )
            log_diagnostics(logger, diagnostics, robot=self.robot.name)
            return ForwardKinematicsResult(
                robot_joint_position=robot_joint_position,
                external_joint_position=external_joint_position,
                tcp_plane=None,
                position_plane=position_plane,
                posed_external_axis_planes=posed_external,
                internal_axis_in_limits=internal_in_limits,
                external_axis_in_limits=external_in_limits,
                diagnostics=tuple(diagnostics),
            )

        to_world = plane_to_plane(world_xy(), position_plane)
        chain, posed_internal = self._pose_chain(robot_joint_position, to_world)
        tcp_plane = self.robot.tool_plane.transformed(to_world * chain)

        if diagnostics:
            log_diagnostics(logger, diagnostics, robot=self.robot.name)
        logger.debug(
            "forward_kinematics",
            robot=self.robot.name,
            joints=robot_joint_position.to_list(),
            tcp=list(tcp_plane.point),
        )

        return ForwardKinematicsResult(
            robot_joint_position=robot_joint_position,
            external_joint_position=external_joint_position,
            tcp_plane=tcp_plane,
            position_plane=position_plane,
            posed_internal_axis_planes=posed_internal,
            posed_external_axis_planes=posed_external,
            internal_axis_in_limits=internal_in_limits,
            external_axis_in_limits=external_in_limits,
            diagnostics=tuple(diagnostics),
        )

    def _pose_chain(
        self, robot_joint_position: RobotJointPosition, to_world: Transformation
    ) -> Tuple[Transformation, Tuple[Frame, ...]]:
        """Compose the joint rotations in robot-local space."""
        chain = Transformation()
        posed = []
        for plane, angle in zip(
            self.robot.internal_axis_planes, robot_joint_position.to_radians()
        ):
            axis_plane = plane.transformed(chain)
            rotation = Rotation.from_axis_and_angle(
                axis_plane.zaxis, angle, point=axis_plane.point
            )
            chain = rotation * chain
            posed.append(plane.transformed(to_world * chain))
        return chain, tuple(posed)

    def _pose_external_axes(
        self, external_joint_position: ExternalJointPosition
    ) -> Tuple[Frame, Tuple[Optional[Frame], ...]]:
        position_plane = self.robot.base_plane.copy()
        posed: List[Optional[Frame]] = [None] * len(external_joint_position)
        for axis in self.robot.external_axes:
            plane, _ = axis.pose(external_joint_position[axis.axis_number])
            posed[axis.axis_number] = plane
            if axis.moves_robot:
                position_plane = plane
        return position_plane, tuple(posed)

    def _check_internal_limits(
        self, robot_joint_position: RobotJointPosition
    ) -> Tuple[Tuple[bool, ...], List[Diagnostic]]:
        flags = []
        diagnostics = []
        for index, value in enumerate(robot_joint_position):
            in_limits = self.robot.internal_axis_in_limits(index, value)
            flags.append(in_limits)
            if not in_limits:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"Internal Axis Value {index + 1} is not in Range.",
                    )
                )
        return tuple(flags), diagnostics

    def _check_external_limits(
        self, external_joint_position: ExternalJointPosition
    ) -> Tuple[Tuple[bool, ...], List[Diagnostic]]:
        flags = []
        diagnostics = []
        for index, limits in enumerate(self.robot.external_axis_limits):
            value = external_joint_position[index]
            if limits is None:
                flags.append(True)
            elif is_undefined(value):
                flags.append(False)
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.INVALID_INPUT,
                        f"External Axis Value {index + 1} is not defined.",
                    )
                )
            elif not (math.isfinite(value) and limits.includes(value)):
                flags.append(False)
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.LIMIT_VIOLATION,
                        f"External Axis Value {index + 1} is not in Range.",
                    )
                )
            else:
                flags.append(True)
        return tuple(flags), diagnostics
