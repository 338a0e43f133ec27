"""
Configuration management for armkin.

Handles loading, validation, and access to robot and tool configurations,
and loads motion programs from YAML files.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

import yaml
from compas.geometry import Frame, Point
from pydantic import BaseModel, Field, ValidationError, model_validator

from armkin.core.exceptions import ArmkinError, ConfigurationError
from armkin.core.geometry import AxisLimits, frame_from_normal, rotate_frame, world_xy
from armkin.core.kinematic_parameters import RobotKinematicParameters, flange_frame
from armkin.core.presets import get_robot_preset, place_robot, robot_from_parameters
from armkin.core.robot import LoadData, RobotModel, RobotTool
from armkin.motion.actions import (
    Action,
    AutoAxisConfig,
    ExternalJointPosition,
    JointTarget,
    Movement,
    MovementType,
    OverrideRobotTool,
    RobotTarget,
    WorkObject,
)
from armkin.motion.external_axes import (
    UNDEFINED_AXIS_VALUE,
    ExternalAxis,
    ExternalLinearAxis,
    ExternalRotationalAxis,
)

Vector3 = Annotated[list[float], Field(min_length=3, max_length=3)]
QuaternionValues = Annotated[list[float], Field(min_length=4, max_length=4)]
SixValues = Annotated[list[float], Field(min_length=6, max_length=6)]


class FrameConfig(BaseModel):
    """
    Plane given by its origin and either X/Y axes or a normal.

    ``rotation`` turns the plane about its own Z-axis, in degrees.
    """

    point: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    xaxis: Optional[Vector3] = None
    yaxis: Optional[Vector3] = None
    normal: Optional[Vector3] = None
    rotation: float = 0.0

    @model_validator(mode="after")
    def _check_axes(self) -> "FrameConfig":
        if (self.xaxis is None) != (self.yaxis is None):
            raise ValueError("xaxis and yaxis must be given together")
        if self.xaxis is not None and self.normal is not None:
            raise ValueError("give either xaxis/yaxis or normal, not both")
        return self

    def to_frame(self) -> Frame:
        if self.xaxis is not None:
            frame = Frame(Point(*self.point), self.xaxis, self.yaxis)
        elif self.normal is not None:
            frame = frame_from_normal(self.point, self.normal)
        else:
            frame = Frame(Point(*self.point), [1, 0, 0], [0, 1, 0])
        if self.rotation:
            frame = rotate_frame(frame, math.radians(self.rotation))
        return frame


class LoadConfig(BaseModel):
    """Tool load data."""

    name: str = "load0"
    mass: float = 0.001
    cog: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.001])
    axes_of_moment: QuaternionValues = Field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    inertia: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.0])

    def to_load_data(self) -> LoadData:
        return LoadData(
            name=self.name,
            mass=self.mass,
            center_of_gravity=tuple(self.cog),
            axes_of_moment=tuple(self.axes_of_moment),
            inertial_moments=tuple(self.inertia),
        )


class ToolConfig(BaseModel):
    """Tool configuration model."""

    name: str
    attachment_plane: Optional[FrameConfig] = None
    tool_plane: Optional[FrameConfig] = None
    tcp: Optional[Vector3] = None
    quaternion: Optional[QuaternionValues] = None
    load: LoadConfig = Field(default_factory=LoadConfig)

    @model_validator(mode="after")
    def _check_tcp(self) -> "ToolConfig":
        if self.tool_plane is not None and (self.tcp is not None or self.quaternion is not None):
            raise ValueError("give either tool_plane or tcp/quaternion, not both")
        return self

    def to_tool(self) -> RobotTool:
        attachment_plane = (
            self.attachment_plane.to_frame() if self.attachment_plane else world_xy()
        )
        load_data = self.load.to_load_data()
        if self.tool_plane is not None:
            return RobotTool(
                name=self.name,
                attachment_plane=attachment_plane,
                tool_plane=self.tool_plane.to_frame(),
                load_data=load_data,
            )
        return RobotTool.from_quaternion(
            self.name,
            self.tcp or [0.0, 0.0, 0.0],
            self.quaternion or [1.0, 0.0, 0.0, 0.0],
            attachment_plane=attachment_plane,
            load_data=load_data,
        )


class ExternalAxisConfig(BaseModel):
    """External axis configuration model."""

    name: str
    type: Literal["linear", "rotational"]
    limits: list[float] = Field(min_length=2, max_length=2)
    attachment_plane: Optional[FrameConfig] = None
    axis_plane: Optional[FrameConfig] = None
    direction: Optional[Vector3] = None
    axis_number: Union[int, str] = -1
    moves_robot: Optional[bool] = None

    @model_validator(mode="after")
    def _check_geometry(self) -> "ExternalAxisConfig":
        if self.type == "linear" and self.axis_plane is None and self.direction is None:
            raise ValueError(f"linear axis {self.name} needs an axis_plane or a direction")
        if self.type == "rotational" and self.axis_plane is None:
            raise ValueError(f"rotational axis {self.name} needs an axis_plane")
        return self

    def to_axis(self) -> ExternalAxis:
        limits = AxisLimits.from_sequence(self.limits)
        attachment_plane = self.attachment_plane.to_frame() if self.attachment_plane else None

        if self.type == "linear":
            moves_robot = True if self.moves_robot is None else self.moves_robot
            if attachment_plane is None:
                attachment_plane = world_xy()
            if self.axis_plane is not None:
                return ExternalLinearAxis(
                    self.name,
                    attachment_plane,
                    self.axis_plane.to_frame(),
                    limits,
                    self.axis_number,
                    moves_robot,
                )
            return ExternalLinearAxis.from_direction(
                self.name, attachment_plane, self.direction, limits, self.axis_number, moves_robot
            )

        moves_robot = False if self.moves_robot is None else self.moves_robot
        axis_plane = self.axis_plane.to_frame()
        return ExternalRotationalAxis(
            self.name,
            attachment_plane if attachment_plane is not None else axis_plane,
            axis_plane,
            limits,
            self.axis_number,
            moves_robot,
        )


class KinematicsConfig(BaseModel):
    """Arm geometry from an ABB product specification, in millimeters."""

    a1: float
    a2: float
    a3: float = 0.0
    b: float = 0.0
    c1: float
    c2: float
    c3: float
    c4: float

    def to_parameters(self) -> RobotKinematicParameters:
        return RobotKinematicParameters(**self.model_dump())


class RobotConfig(BaseModel):
    """Robot configuration model."""

    name: str
    manufacturer: str = "ABB"
    preset: Optional[str] = None
    axis_planes: Optional[Annotated[list[FrameConfig], Field(min_length=6, max_length=6)]] = None
    kinematics: Optional[KinematicsConfig] = None
    axis_limits: Optional[Annotated[list[list[float]], Field(min_length=6, max_length=6)]] = None
    mounting_frame: Optional[FrameConfig] = None
    base_plane: Optional[FrameConfig] = None
    tool: Union[str, ToolConfig, None] = None
    external_axes: list[ExternalAxisConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_kinematics(self) -> "RobotConfig":
        given = [
            value for value in (self.preset, self.axis_planes, self.kinematics) if value is not None
        ]
        if len(given) != 1:
            raise ValueError("a robot needs exactly one of preset, axis_planes, kinematics")
        if self.preset is None and self.axis_limits is None:
            raise ValueError("a robot without a preset needs axis_limits")
        return self


class MoveConfig(BaseModel):
    """A move instruction of a program."""

    target: str
    type: Literal["joint", "linear", "joint_zone", "linear_zone"] = "joint"
    plane: Optional[FrameConfig] = None
    joints: Optional[SixValues] = None
    external: list[Optional[float]] = Field(default_factory=list, max_length=6)
    axis_config: int = Field(default=0, ge=0, le=7)
    work_object: Optional[str] = None
    tool: Optional[str] = None

    @model_validator(mode="after")
    def _check_target(self) -> "MoveConfig":
        if (self.plane is None) == (self.joints is None):
            raise ValueError(f"move {self.target} needs either a plane or joints")
        return self

    def external_joint_position(self) -> ExternalJointPosition:
        values = [UNDEFINED_AXIS_VALUE if value is None else value for value in self.external]
        return ExternalJointPosition(values)


class WorkObjectConfig(BaseModel):
    """A work object of a program."""

    name: str
    plane: FrameConfig = Field(default_factory=FrameConfig)
    user_frame: FrameConfig = Field(default_factory=FrameConfig)
    external_axis: Optional[str] = None


class ActionConfig(BaseModel):
    """One program action; exactly one of the fields is set."""

    move: Optional[MoveConfig] = None
    override_tool: Optional[str] = None
    auto_axis_config: Optional[bool] = None

    @model_validator(mode="after")
    def _check_single(self) -> "ActionConfig":
        fields = (self.move, self.override_tool, self.auto_axis_config)
        given = [value for value in fields if value is not None]
        if len(given) != 1:
            raise ValueError("an action needs exactly one of move, override_tool, auto_axis_config")
        return self


class ProgramConfig(BaseModel):
    """Motion program model."""

    name: str = "program"
    tools: list[ToolConfig] = Field(default_factory=list)
    work_objects: list[WorkObjectConfig] = Field(default_factory=list)
    actions: list[ActionConfig] = Field(default_factory=list)


def _read_yaml(path: Path) -> Any:
    with open(path) as f:
        return yaml.safe_load(f)


@dataclass
class ConfigManager:
    """
    Central configuration manager for armkin.

    Loads and validates robot and tool configurations from the ``robots``
    and ``tools`` subdirectories of the configuration directory.

    Example:
        >>> config = ConfigManager(config_dir=Path("config"))
        >>> robot = config.build_robot("irb4600_track")
        >>> tool = config.get_tool("welding_torch")
    """

    config_dir: Path
    _robots: dict[str, RobotConfig] = field(default_factory=dict, init=False)
    _tools: dict[str, ToolConfig] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        """Initialize configuration manager."""
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load all configurations from disk."""
        self._load_robots()
        self._load_tools()
        self._loaded = True

    def _load_robots(self) -> None:
        """Load robot configurations."""
        robots_dir = self.config_dir / "robots"
        if not robots_dir.exists():
            return

        for config_file in sorted(robots_dir.glob("*.yaml")):
            try:
                data = _read_yaml(config_file)
                if data and "robot" in data:
                    self._robots[config_file.stem] = RobotConfig(**data["robot"])
            except (yaml.YAMLError, ValidationError) as e:
                raise ConfigurationError(
                    f"Failed to load robot config: {config_file}",
                    details={"error": str(e)},
                )

    def _load_tools(self) -> None:
        """Load tool configurations."""
        tools_dir = self.config_dir / "tools"
        if not tools_dir.exists():
            return

        for config_file in sorted(tools_dir.glob("*.yaml")):
            try:
                data = _read_yaml(config_file)
                if data and "tool" in data:
                    self._tools[config_file.stem] = ToolConfig(**data["tool"])
            except (yaml.YAMLError, ValidationError) as e:
                raise ConfigurationError(
                    f"Failed to load tool config: {config_file}",
                    details={"error": str(e)},
                )

    def get_robot(self, name: str) -> RobotConfig:
        """
        Get robot configuration by name.

        Args:
            name: Robot configuration name (without .yaml extension)

        Returns:
            RobotConfig instance

        Raises:
            ConfigurationError: If robot not found
        """
        if not self._loaded:
            self.load()

        if name not in self._robots:
            available = list(self._robots.keys())
            raise ConfigurationError(
                f"Robot configuration not found: {name}",
                details={"available": available},
            )
        return self._robots[name]

    def get_tool_config(self, name: str) -> ToolConfig:
        """
        Get tool configuration by name.

        Raises:
            ConfigurationError: If tool not found
        """
        if not self._loaded:
            self.load()

        if name not in self._tools:
            available = list(self._tools.keys())
            raise ConfigurationError(
                f"Tool configuration not found: {name}",
                details={"available": available},
            )
        return self._tools[name]

    def get_tool(self, name: str) -> RobotTool:
        """Build the tool of a tool configuration."""
        return self.get_tool_config(name).to_tool()

    def list_robots(self) -> list[str]:
        """List available robot configurations."""
        if not self._loaded:
            self.load()
        return list(self._robots.keys())

    def list_tools(self) -> list[str]:
        """List available tool configurations."""
        if not self._loaded:
            self.load()
        return list(self._tools.keys())

    def build_robot(self, name: str) -> RobotModel:
        """
        Build the robot model of a robot configuration.

        Args:
            name: Robot configuration name (without .yaml extension)

        Returns:
            RobotModel with tool and external axes attached

        Raises:
            ConfigurationError: If the robot, its tool or its preset is
                unknown, or the configuration does not form a valid robot.
        """
        robot_config = self.get_robot(name)

        tool = None
        if isinstance(robot_config.tool, str):
            tool = self.get_tool(robot_config.tool)
        elif robot_config.tool is not None:
            tool = robot_config.tool.to_tool()

        try:
            external_axes = [axis.to_axis() for axis in robot_config.external_axes]
            base_plane = robot_config.base_plane.to_frame() if robot_config.base_plane else None

            if robot_config.preset is not None:
                robot = get_robot_preset(
                    robot_config.preset,
                    base_plane=base_plane,
                    tool=tool,
                    external_axes=external_axes,
                )
            else:
                axis_limits = tuple(
                    AxisLimits.from_sequence(limits) for limits in robot_config.axis_limits
                )
                if robot_config.kinematics is not None:
                    robot = robot_from_parameters(
                        robot_config.name,
                        robot_config.kinematics.to_parameters(),
                        axis_limits,
                        tool=tool,
                    )
                else:
                    axis_planes = [plane.to_frame() for plane in robot_config.axis_planes]
                    robot = RobotModel(
                        name=robot_config.name,
                        internal_axis_planes=tuple(axis_planes),
                        internal_axis_limits=axis_limits,
                        mounting_frame=flange_frame(axis_planes[-1].point),
                        tool=tool or RobotTool(),
                    )
                if robot_config.mounting_frame is not None:
                    robot = robot.with_mounting_frame(robot_config.mounting_frame.to_frame())
                robot = place_robot(robot, base_plane, external_axes)
        except ConfigurationError:
            raise
        except ArmkinError as e:
            raise ConfigurationError(
                f"Invalid robot configuration: {name}",
                details={"error": str(e)},
            )
        return robot


def load_program(
    path: Union[str, Path],
    robot: Optional[RobotModel] = None,
    config: Optional[ConfigManager] = None,
) -> list[Action]:
    """
    Load a motion program from a YAML file.

    Tools are looked up in the ``tools`` section of the program first and in
    ``config`` second. A work object that is moved by an external axis
    refers to the axis by name; the axis is taken from ``robot``.

    Args:
        path: Program file
        robot: Robot that provides the external axes of the work objects
        config: Configuration manager that provides the tools

    Returns:
        The program actions, in order

    Raises:
        ConfigurationError: If the file cannot be read or validated, or
            refers to an unknown tool, work object or external axis.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Program file not found: {path}")

    try:
        data = _read_yaml(path)
        program = ProgramConfig(**(data or {}).get("program", {}))
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(
            f"Failed to load program: {path}",
            details={"error": str(e)},
        )

    tools = {tool.name: tool.to_tool() for tool in program.tools}

    def resolve_tool(name: str) -> RobotTool:
        if name in tools:
            return tools[name]
        if config is None:
            raise ConfigurationError(
                f"Tool not found: {name}",
                details={"available": list(tools.keys())},
            )
        return config.get_tool(name)

    work_objects = {"wobj0": WorkObject()}
    for item in program.work_objects:
        external_axis = None
        if item.external_axis is not None:
            external_axis = robot.get_external_axis(item.external_axis) if robot else None
            if external_axis is None:
                raise ConfigurationError(
                    f"Work object {item.name}: external axis not found: {item.external_axis}"
                )
        try:
            work_objects[item.name] = WorkObject(
                name=item.name,
                plane=item.plane.to_frame(),
                user_frame=item.user_frame.to_frame(),
                external_axis=external_axis,
            )
        except ArmkinError as e:
            raise ConfigurationError(
                f"Invalid work object: {item.name}", details={"error": str(e)}
            )

    actions: list[Action] = []
    for item in program.actions:
        if item.override_tool is not None:
            actions.append(OverrideRobotTool(resolve_tool(item.override_tool)))
        elif item.auto_axis_config is not None:
            actions.append(AutoAxisConfig(item.auto_axis_config))
        else:
            move = item.move
            work_object_name = move.work_object or "wobj0"
            if work_object_name not in work_objects:
                raise ConfigurationError(
                    f"Move {move.target}: work object not found: {work_object_name}",
                    details={"available": list(work_objects.keys())},
                )
            if move.joints is not None:
                target = JointTarget(move.target, move.joints, move.external_joint_position())
            else:
                target = RobotTarget(
                    move.target,
                    move.plane.to_frame(),
                    move.axis_config,
                    move.external_joint_position(),
                )
            actions.append(
                Movement(
                    target,
                    MovementType(move.type),
                    work_objects[work_object_name],
                    resolve_tool(move.tool) if move.tool else None,
                )
            )
    return actions
