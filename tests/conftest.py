"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest
from compas.geometry import Frame

from armkin.core.geometry import AxisLimits, frame_from_normal, world_xy
from armkin.core.kinematic_parameters import flange_frame
from armkin.core.presets import RobotPreset, get_robot_preset
from armkin.core.robot import RobotModel, RobotTool
from armkin.motion.external_axes import ExternalLinearAxis, ExternalRotationalAxis

X = (1, 0, 0)
Y = (0, 1, 0)
Z = (0, 0, 1)


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def compact_robot():
    """
    Small arm with 400 mm arms, able to reach (500, 0, 700) with a
    vertical tool.
    """
    planes = (
        frame_from_normal((0, 0, 0), Z),
        frame_from_normal((0, 0, 400), Y),
        frame_from_normal((0, 0, 800), Y),
        frame_from_normal((200, 0, 800), X),
        frame_from_normal((400, 0, 800), Y),
        frame_from_normal((450, 0, 800), X),
    )
    limits = (
        AxisLimits(-180, 180),
        AxisLimits(-90, 150),
        AxisLimits(-180, 75),
        AxisLimits(-400, 400),
        AxisLimits(-120, 125),
        AxisLimits(-400, 400),
    )
    return RobotModel(
        name="compact",
        internal_axis_planes=planes,
        internal_axis_limits=limits,
        mounting_frame=flange_frame((450, 0, 800)),
    )


@pytest.fixture
def irb4600():
    """IRB4600 at the world origin with tool0."""
    return get_robot_preset(RobotPreset.IRB4600_40_255)


@pytest.fixture
def torch_tool():
    """Straight tool with the TCP 100 mm in front of the flange."""
    return RobotTool.from_quaternion("torch", (0, 0, 100), (1, 0, 0, 0))


@pytest.fixture
def track():
    """Linear track along world X that carries the robot."""
    return ExternalLinearAxis.from_direction(
        "track", world_xy(), (1, 0, 0), AxisLimits(0, 4000), axis_number=0
    )


@pytest.fixture
def turntable():
    """Turntable at (1500, 0, 0) that moves a work object."""
    plane = Frame((1500, 0, 0), (1, 0, 0), (0, 1, 0))
    return ExternalRotationalAxis.from_axis_plane(
        "turntable", plane, AxisLimits(-180, 180), axis_number="B"
    )


@pytest.fixture
def irb4600_on_track(track, turntable):
    """IRB4600 on a linear track, next to a turntable."""
    return get_robot_preset(RobotPreset.IRB4600_40_255, external_axes=[track, turntable])


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a sample configuration directory structure."""
    config_dir = temp_dir / "config"
    (config_dir / "robots").mkdir(parents=True)
    (config_dir / "tools").mkdir(parents=True)
    (config_dir / "programs").mkdir(parents=True)

    robot_config = """
robot:
  name: "IRB4600 on track"
  manufacturer: "ABB"
  preset: IRB4600_40_255
  tool: torch
  external_axes:
    - name: track
      type: linear
      direction: [1, 0, 0]
      limits: [0, 4000]
      axis_number: A
"""
    (config_dir / "robots" / "irb4600_track.yaml").write_text(robot_config)

    custom_config = """
robot:
  name: compact
  manufacturer: "Test Manufacturer"
  axis_planes:
    - {point: [0, 0, 0], normal: [0, 0, 1]}
    - {point: [0, 0, 400], normal: [0, 1, 0]}
    - {point: [0, 0, 800], normal: [0, 1, 0]}
    - {point: [200, 0, 800], normal: [1, 0, 0]}
    - {point: [400, 0, 800], normal: [0, 1, 0]}
    - {point: [450, 0, 800], normal: [1, 0, 0]}
  axis_limits:
    - [-180, 180]
    - [-90, 150]
    - [-180, 75]
    - [-400, 400]
    - [-120, 125]
    - [-400, 400]
"""
    (config_dir / "robots" / "compact.yaml").write_text(custom_config)

    tool_config = """
tool:
  name: torch
  tcp: [0, 0, 100]
  quaternion: [1, 0, 0, 0]
  load:
    mass: 2.5
    cog: [0, 0, 50]
"""
    (config_dir / "tools" / "torch.yaml").write_text(tool_config)

    program = """
program:
  name: demo
  work_objects:
    - name: table
      user_frame: {point: [0, 0, 100], xaxis: [0, 1, 0], yaxis: [-1, 0, 0]}
  actions:
    - auto_axis_config: true
    - move:
        target: home
        joints: [0, 0, 0, 0, 30, 0]
    - move:
        target: p10
        type: linear
        plane: {point: [100, -500, 700], xaxis: [0, -1, 0], yaxis: [1, 0, 0]}
        work_object: table
    - override_tool: torch
    - move:
        target: p20
        type: joint
        plane: {point: [500, 100, 800], xaxis: [1, 0, 0], yaxis: [0, 1, 0]}
        axis_config: 0
"""
    (config_dir / "programs" / "demo.yaml").write_text(program)

    return config_dir
