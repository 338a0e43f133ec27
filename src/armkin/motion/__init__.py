"""Motion: external axes, program actions, kinematics and path generation."""
