"""Core definitions: geometry, robot model, configuration and logging."""
