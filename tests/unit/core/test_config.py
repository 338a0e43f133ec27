"""
Tests for configuration management and program loading.
"""

import pytest
from pydantic import ValidationError

from armkin.core.config import (
    ActionConfig,
    ConfigManager,
    ExternalAxisConfig,
    FrameConfig,
    KinematicsConfig,
    MoveConfig,
    RobotConfig,
    ToolConfig,
    load_program,
)
from armkin.core.exceptions import ConfigurationError
from armkin.core.geometry import frames_close
from armkin.core.presets import RobotPreset, get_robot_preset
from armkin.motion.actions import (
    AutoAxisConfig,
    JointTarget,
    Movement,
    MovementType,
    OverrideRobotTool,
    RobotTarget,
)
from armkin.motion.external_axes import ExternalLinearAxis, ExternalRotationalAxis


class TestFrameConfig:
    """Tests for FrameConfig."""

    def test_default_is_world_xy(self):
        """Test that an empty frame is world XY."""
        frame = FrameConfig().to_frame()
        assert list(frame.point) == pytest.approx([0, 0, 0])
        assert list(frame.xaxis) == pytest.approx([1, 0, 0])

    def test_normal(self):
        """Test a frame given by its normal."""
        frame = FrameConfig(point=[0, 0, 400], normal=[0, 1, 0]).to_frame()
        assert list(frame.zaxis) == pytest.approx([0, 1, 0])

    def test_rotation(self):
        """Test that the rotation turns the frame about its Z-axis."""
        frame = FrameConfig(rotation=90).to_frame()
        assert list(frame.xaxis) == pytest.approx([0, 1, 0], abs=1e-12)

    def test_xaxis_requires_yaxis(self):
        """Test that a lone X-axis is rejected."""
        with pytest.raises(ValidationError):
            FrameConfig(xaxis=[1, 0, 0])

    def test_axes_and_normal_rejected(self):
        """Test that axes and a normal cannot be combined."""
        with pytest.raises(ValidationError):
            FrameConfig(xaxis=[1, 0, 0], yaxis=[0, 1, 0], normal=[0, 0, 1])

    def test_point_needs_three_values(self):
        """Test the point length check."""
        with pytest.raises(ValidationError):
            FrameConfig(point=[1, 2])


class TestToolConfig:
    """Tests for ToolConfig."""

    def test_tcp_and_quaternion(self):
        """Test a tool from its TCP offset."""
        tool = ToolConfig(name="torch", tcp=[0, 0, 100]).to_tool()
        assert tool.name == "torch"
        assert list(tool.position) == pytest.approx([0, 0, 100])

    def test_tool_plane(self):
        """Test a tool from its TCP plane."""
        tool = ToolConfig(name="offset", tool_plane={"point": [10, 0, 50]}).to_tool()
        assert list(tool.position) == pytest.approx([10, 0, 50])

    def test_tool_plane_and_tcp_rejected(self):
        """Test that a TCP plane and offset cannot be combined."""
        with pytest.raises(ValidationError):
            ToolConfig(name="bad", tool_plane={"point": [0, 0, 1]}, tcp=[0, 0, 1])

    def test_load(self):
        """Test the load data conversion."""
        tool = ToolConfig(name="heavy", load={"mass": 12.0, "cog": [0, 0, 80]}).to_tool()
        assert tool.load_data.mass == 12.0
        assert tool.load_data.center_of_gravity == (0, 0, 80)


class TestExternalAxisConfig:
    """Tests for ExternalAxisConfig."""

    def test_linear_defaults_to_moving_robot(self):
        """Test that a linear axis carries the robot by default."""
        axis = ExternalAxisConfig(
            name="track", type="linear", limits=[0, 4000], direction=[1, 0, 0]
        ).to_axis()
        assert isinstance(axis, ExternalLinearAxis)
        assert axis.moves_robot
        assert list(axis.axis_plane.zaxis) == pytest.approx([1, 0, 0])

    def test_rotational_defaults_to_fixed_robot(self):
        """Test that a rotational axis moves a work object by default."""
        axis = ExternalAxisConfig(
            name="turntable",
            type="rotational",
            limits=[-180, 180],
            axis_plane={"point": [1500, 0, 0]},
            axis_number="B",
        ).to_axis()
        assert isinstance(axis, ExternalRotationalAxis)
        assert not axis.moves_robot
        assert axis.axis_number == 1
        assert frames_close(axis.attachment_plane, axis.axis_plane)

    def test_rotational_requires_axis_plane(self):
        """Test that a rotational axis needs its axis plane."""
        with pytest.raises(ValidationError):
            ExternalAxisConfig(name="table", type="rotational", limits=[-180, 180])

    def test_unknown_type_rejected(self):
        """Test the axis type check."""
        with pytest.raises(ValidationError):
            ExternalAxisConfig(name="x", type="spherical", limits=[0, 1], direction=[1, 0, 0])


class TestRobotConfig:
    """Tests for RobotConfig validation."""

    LIMITS = [[-180, 180]] * 6
    KINEMATICS = {"a1": 50, "a2": -40, "c1": 544, "c2": 425, "c3": 425, "c4": 90}

    def test_kinematics_defaults(self):
        """Test that the wrist offsets default to zero."""
        parameters = KinematicsConfig(**self.KINEMATICS).to_parameters()
        assert parameters.a3 == 0.0
        assert parameters.b == 0.0
        assert parameters.c1 == 544.0

    def test_kinematics_needs_limits(self):
        """Test that a robot given by kinematics needs axis limits."""
        with pytest.raises(ValidationError):
            RobotConfig(name="arm", kinematics=self.KINEMATICS)

    def test_preset_and_kinematics_rejected(self):
        """Test that only one kind of robot geometry is accepted."""
        with pytest.raises(ValidationError):
            RobotConfig(
                name="arm",
                preset="IRB1300_11_09",
                kinematics=self.KINEMATICS,
                axis_limits=self.LIMITS,
            )

    def test_preset_without_limits(self):
        """Test that a preset brings its own limits."""
        robot_config = RobotConfig(name="arm", preset="IRB1300_11_09")
        assert robot_config.axis_limits is None


class TestMoveConfig:
    """Tests for MoveConfig and ActionConfig."""

    def test_needs_plane_or_joints(self):
        """Test that a move needs exactly one kind of target."""
        with pytest.raises(ValidationError):
            MoveConfig(target="p10")
        with pytest.raises(ValidationError):
            MoveConfig(target="p10", plane={}, joints=[0, 0, 0, 0, 0, 0])

    def test_axis_config_range(self):
        """Test the axis configuration bounds."""
        with pytest.raises(ValidationError):
            MoveConfig(target="p10", plane={}, axis_config=8)

    def test_external_values(self):
        """Test that missing external values stay undefined."""
        move = MoveConfig(target="p10", plane={}, external=[None, 90])
        position = move.external_joint_position()
        assert not position.is_defined(0)
        assert position[1] == 90

    def test_action_needs_one_field(self):
        """Test that an action holds exactly one instruction."""
        with pytest.raises(ValidationError):
            ActionConfig()
        with pytest.raises(ValidationError):
            ActionConfig(override_tool="torch", auto_axis_config=True)


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_missing_directory(self, temp_dir):
        """Test that a missing configuration directory is rejected."""
        with pytest.raises(ConfigurationError):
            ConfigManager(temp_dir / "missing")

    def test_list_configurations(self, sample_config_dir):
        """Test listing robots and tools."""
        config = ConfigManager(sample_config_dir)
        assert config.list_robots() == ["compact", "irb4600_track"]
        assert config.list_tools() == ["torch"]

    def test_get_robot(self, sample_config_dir):
        """Test reading a robot configuration."""
        robot_config = ConfigManager(sample_config_dir).get_robot("irb4600_track")
        assert robot_config.preset == "IRB4600_40_255"
        assert robot_config.external_axes[0].name == "track"

    def test_get_robot_not_found(self, sample_config_dir):
        """Test that an unknown robot lists the available ones."""
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(sample_config_dir).get_robot("missing")
        assert "compact" in exc_info.value.details["available"]

    def test_get_tool(self, sample_config_dir):
        """Test building a configured tool."""
        tool = ConfigManager(sample_config_dir).get_tool("torch")
        assert list(tool.position) == pytest.approx([0, 0, 100])
        assert tool.load_data.mass == 2.5

    def test_build_preset_robot(self, sample_config_dir):
        """Test a preset robot with tool and track."""
        robot = ConfigManager(sample_config_dir).build_robot("irb4600_track")
        assert robot.name == "IRB4600-40/2.55"
        assert robot.tool.name == "torch"
        assert robot.robot_moving_axis.name == "track"
        assert robot.robot_moving_axis.axis_number == 0
        assert list(robot.tool_plane.point) == pytest.approx([1680, 0, 1765])

    def test_build_custom_robot(self, sample_config_dir, compact_robot):
        """Test that a custom robot matches its Python definition."""
        robot = ConfigManager(sample_config_dir).build_robot("compact")
        assert robot.name == "compact"
        for built, expected in zip(robot.internal_axis_planes, compact_robot.internal_axis_planes):
            assert frames_close(built, expected)
        assert frames_close(robot.mounting_frame, compact_robot.mounting_frame)
        assert robot.internal_axis_limits == compact_robot.internal_axis_limits

    def test_build_robot_from_kinematics(self, sample_config_dir):
        """Test that a robot given by its dimensions matches the preset."""
        (sample_config_dir / "robots" / "irb1300.yaml").write_text(
            "robot:\n"
            "  name: irb1300\n"
            "  kinematics: {a1: 50, a2: -40, c1: 544, c2: 425, c3: 425, c4: 90}\n"
            "  axis_limits: [[-180, 180], [-100, 130], [-210, 65],"
            " [-230, 230], [-130, 130], [-400, 400]]\n"
            "  base_plane: {point: [0, 0, 750]}\n"
        )
        robot = ConfigManager(sample_config_dir).build_robot("irb1300")
        preset = get_robot_preset(RobotPreset.IRB1300_11_09)
        assert robot.name == "irb1300"
        for built, expected in zip(robot.internal_axis_planes, preset.internal_axis_planes):
            assert frames_close(built, expected)
        assert frames_close(robot.mounting_frame, preset.mounting_frame)
        assert robot.internal_axis_limits == preset.internal_axis_limits
        assert list(robot.base_plane.point) == pytest.approx([0, 0, 750])

    def test_mounting_frame_override(self, sample_config_dir):
        """Test that an explicit mounting frame replaces the flange frame."""
        (sample_config_dir / "robots" / "offset.yaml").write_text(
            "robot:\n"
            "  name: offset\n"
            "  kinematics: {a1: 50, a2: -40, c1: 544, c2: 425, c3: 425, c4: 90}\n"
            "  axis_limits: [[-180, 180], [-100, 130], [-210, 65],"
            " [-230, 230], [-130, 130], [-400, 400]]\n"
            "  mounting_frame: {point: [600, 0, 1009], normal: [1, 0, 0]}\n"
        )
        robot = ConfigManager(sample_config_dir).build_robot("offset")
        assert list(robot.mounting_frame.point) == pytest.approx([600, 0, 1009])
        assert list(robot.mounting_frame.zaxis) == pytest.approx([1, 0, 0])

    def test_invalid_yaml(self, sample_config_dir):
        """Test that unparsable YAML is reported as a configuration error."""
        (sample_config_dir / "robots" / "broken.yaml").write_text("robot: [unclosed")
        with pytest.raises(ConfigurationError):
            ConfigManager(sample_config_dir).list_robots()

    def test_invalid_robot(self, sample_config_dir):
        """Test that a robot without kinematics is rejected."""
        (sample_config_dir / "robots" / "empty.yaml").write_text("robot:\n  name: empty\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(sample_config_dir).load()

    def test_unknown_tool(self, sample_config_dir):
        """Test that a robot referring to a missing tool cannot be built."""
        (sample_config_dir / "robots" / "gripper.yaml").write_text(
            "robot:\n  name: gripper\n  preset: IRB1300_11_09\n  tool: gripper\n"
        )
        with pytest.raises(ConfigurationError):
            ConfigManager(sample_config_dir).build_robot("gripper")

    def test_unknown_preset(self, sample_config_dir):
        """Test that an unknown preset cannot be built."""
        (sample_config_dir / "robots" / "kuka.yaml").write_text(
            "robot:\n  name: kuka\n  preset: KR210\n"
        )
        with pytest.raises(ConfigurationError):
            ConfigManager(sample_config_dir).build_robot("kuka")

    def test_two_moving_axes(self, sample_config_dir):
        """Test that kinematic errors surface as configuration errors."""
        (sample_config_dir / "robots" / "double.yaml").write_text(
            "robot:\n"
            "  name: double\n"
            "  preset: IRB1300_11_09\n"
            "  external_axes:\n"
            "    - {name: x, type: linear, direction: [1, 0, 0], limits: [0, 100]}\n"
            "    - {name: y, type: linear, direction: [0, 1, 0], limits: [0, 100]}\n"
        )
        with pytest.raises(ConfigurationError):
            ConfigManager(sample_config_dir).build_robot("double")


class TestLoadProgram:
    """Tests for load_program."""

    def test_actions(self, sample_config_dir):
        """Test the actions of the demo program."""
        config = ConfigManager(sample_config_dir)
        actions = load_program(sample_config_dir / "programs" / "demo.yaml", config=config)

        assert len(actions) == 5
        assert isinstance(actions[0], AutoAxisConfig)
        assert actions[0].is_active
        assert isinstance(actions[1], Movement)
        assert isinstance(actions[1].target, JointTarget)
        assert actions[1].target.robot_joint_position[4] == 30
        assert isinstance(actions[2].target, RobotTarget)
        assert actions[2].movement_type is MovementType.LINEAR
        assert actions[2].work_object.name == "table"
        assert isinstance(actions[3], OverrideRobotTool)
        assert actions[3].robot_tool.name == "torch"
        assert actions[4].work_object.name == "wobj0"

    def test_work_object_target_plane(self, sample_config_dir):
        """Test that the work object maps the target into the world."""
        config = ConfigManager(sample_config_dir)
        actions = load_program(sample_config_dir / "programs" / "demo.yaml", config=config)
        plane = actions[2].global_target_plane()
        assert list(plane.point) == pytest.approx([500, 100, 800])
        assert list(plane.xaxis) == pytest.approx([1, 0, 0], abs=1e-12)
        assert list(plane.yaxis) == pytest.approx([0, 1, 0], abs=1e-12)

    def test_tool_needs_config(self, sample_config_dir):
        """Test that a tool outside the program needs a configuration manager."""
        with pytest.raises(ConfigurationError):
            load_program(sample_config_dir / "programs" / "demo.yaml")

    def test_program_tools(self, temp_dir):
        """Test tools defined in the program itself."""
        path = temp_dir / "program.yaml"
        path.write_text(
            "program:\n"
            "  tools:\n"
            "    - {name: pen, tcp: [0, 0, 150]}\n"
            "  actions:\n"
            "    - move: {target: p1, joints: [0, 0, 0, 0, 0, 0], tool: pen}\n"
        )
        actions = load_program(path)
        assert actions[0].robot_tool.name == "pen"
        assert list(actions[0].robot_tool.position) == pytest.approx([0, 0, 150])

    def test_unknown_work_object(self, temp_dir):
        """Test that moves must refer to known work objects."""
        path = temp_dir / "program.yaml"
        path.write_text(
            "program:\n"
            "  actions:\n"
            "    - move: {target: p1, plane: {}, work_object: table}\n"
        )
        with pytest.raises(ConfigurationError):
            load_program(path)

    def test_work_object_axis(self, temp_dir, irb4600_on_track):
        """Test that work object axes are taken from the robot."""
        path = temp_dir / "program.yaml"
        path.write_text(
            "program:\n"
            "  work_objects:\n"
            "    - {name: table, external_axis: turntable}\n"
            "  actions:\n"
            "    - move: {target: p1, plane: {}, work_object: table, external: [null, 45]}\n"
        )
        actions = load_program(path, robot=irb4600_on_track)
        assert actions[0].work_object.external_axis.name == "turntable"
        assert actions[0].target.external_joint_position[1] == 45

        with pytest.raises(ConfigurationError):
            load_program(path)

    def test_missing_file(self, temp_dir):
        """Test that a missing program file is reported."""
        with pytest.raises(ConfigurationError):
            load_program(temp_dir / "missing.yaml")

    def test_invalid_program(self, temp_dir):
        """Test that invalid actions are reported as configuration errors."""
        path = temp_dir / "program.yaml"
        path.write_text("program:\n  actions:\n    - {}\n")
        with pytest.raises(ConfigurationError):
            load_program(path)
