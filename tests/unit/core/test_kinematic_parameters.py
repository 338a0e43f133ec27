"""
Tests for the ABB kinematic parameters.
"""

import math

import pytest
from compas.geometry import Frame

from armkin.core.exceptions import InvalidInputError
from armkin.core.geometry import frames_close
from armkin.core.kinematic_parameters import RobotKinematicParameters, flange_frame
from armkin.core.presets import RobotPreset, get_robot_preset


@pytest.fixture
def irb4600_parameters():
    return RobotKinematicParameters(
        a1=175, a2=-175, a3=0, b=0, c1=495, c2=1095, c3=1270, c4=135
    )


class TestRobotKinematicParameters:
    """Tests for RobotKinematicParameters."""

    def test_axis_planes(self, irb4600_parameters):
        """Test the joint planes at the home position."""
        planes = irb4600_parameters.get_axis_planes()
        assert len(planes) == 6
        assert list(planes[0].zaxis) == pytest.approx([0, 0, 1])
        assert list(planes[1].point) == pytest.approx([175, 0, 495])
        assert list(planes[2].point) == pytest.approx([175, 0, 1590])
        assert list(planes[3].point) == pytest.approx([175, 0, 1765])
        assert list(planes[3].zaxis) == pytest.approx([1, 0, 0])
        assert list(planes[4].point) == pytest.approx([1445, 0, 1765])
        assert list(planes[4].zaxis) == pytest.approx([0, 1, 0])
        assert list(planes[5].point) == pytest.approx([1580, 0, 1765])

    def test_mounting_frame(self, irb4600_parameters):
        """Test that the flange sits on the last axis plane."""
        expected = flange_frame((1580, 0, 1765))
        assert frames_close(irb4600_parameters.mounting_frame, expected)

    def test_wrist_offset(self):
        """Test the lateral and vertical wrist offsets."""
        parameters = RobotKinematicParameters(
            a1=100, a2=-50, a3=20, b=30, c1=400, c2=500, c3=600, c4=80
        )
        planes = parameters.get_axis_planes()
        assert list(planes[3].point) == pytest.approx([100, -30, 950])
        assert list(planes[5].point) == pytest.approx([780, -30, 930])

    def test_round_trip(self, irb4600_parameters):
        """Test that the parameters are recovered from their planes."""
        planes = irb4600_parameters.get_axis_planes()
        recovered = RobotKinematicParameters.from_axis_planes(planes)
        assert recovered.to_dict() == pytest.approx(irb4600_parameters.to_dict())

    def test_round_trip_with_base_plane(self):
        """Test the round trip through a rotated and lifted base plane."""
        parameters = RobotKinematicParameters(
            a1=100, a2=-50, a3=20, b=30, c1=400, c2=500, c3=600, c4=80
        )
        base = Frame((1000, -200, 300), (0, 1, 0), (-1, 0, 0))
        planes = parameters.get_axis_planes(base)
        assert list(planes[1].point) == pytest.approx([1000, -100, 700])
        recovered = RobotKinematicParameters.from_axis_planes(planes, base)
        assert recovered.to_dict() == pytest.approx(parameters.to_dict())

    def test_values_are_floats(self):
        """Test that integer parameters are stored as floats."""
        parameters = RobotKinematicParameters(1, 2, 3, 4, 5, 6, 7, 8)
        assert isinstance(parameters.c4, float)
        assert parameters.to_dict()["b"] == 4.0

    def test_not_finite(self):
        """Test that a non-finite parameter is rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            RobotKinematicParameters(
                a1=math.nan, a2=0, a3=0, b=0, c1=400, c2=400, c3=400, c4=50
            )
        assert "a1" in exc_info.value.details

    def test_wrong_plane_count(self, irb4600_parameters):
        """Test that exactly six planes are required."""
        planes = irb4600_parameters.get_axis_planes()[:5]
        with pytest.raises(InvalidInputError):
            RobotKinematicParameters.from_axis_planes(planes)


class TestRobotParameters:
    """Tests for the parameters of robot models."""

    @pytest.mark.parametrize("preset", list(RobotPreset))
    def test_preset_round_trip(self, preset):
        """Test that a preset robot reports the parameters it was built from."""
        robot = get_robot_preset(preset)
        assert robot.kinematic_parameters.to_dict() == pytest.approx(
            preset.kinematic_parameters.to_dict()
        )

    def test_placed_robot(self):
        """Test that placing a robot does not change its parameters."""
        base = Frame((500, 500, 0), (0, 1, 0), (-1, 0, 0))
        robot = get_robot_preset(RobotPreset.IRB6700_235_265, base_plane=base)
        assert robot.kinematic_parameters.c3 == pytest.approx(1182.5)
        assert robot.kinematic_parameters.a2 == pytest.approx(-200)

    def test_compact_robot(self, compact_robot):
        """Test the parameters of a robot given by its planes."""
        parameters = compact_robot.kinematic_parameters
        assert parameters.to_dict() == pytest.approx(
            {"a1": 0, "a2": 0, "a3": 0, "b": 0, "c1": 400, "c2": 400, "c3": 400, "c4": 50}
        )
