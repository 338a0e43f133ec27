"""
Command-line interface for armkin.

Provides commands to inspect configurations and to run forward kinematics,
inverse kinematics and path generation for preset or configured robots.
"""

from pathlib import Path
from typing import Sequence

import click
from compas.geometry import Frame
from rich.console import Console
from rich.table import Table

from armkin import __version__
from armkin.core.config import ConfigManager, load_program
from armkin.core.exceptions import ArmkinError, ConfigurationError, Diagnostic
from armkin.core.logging import configure_logging, verbosity_level
from armkin.core.presets import RobotPreset, get_robot_preset
from armkin.core.robot import RobotModel
from armkin.motion.actions import ExternalJointPosition, RobotTarget
from armkin.motion.external_axes import AXIS_LOGIC, is_undefined
from armkin.motion.forward_kinematics import ForwardKinematics
from armkin.motion.inverse_kinematics import InverseKinematics
from armkin.motion.planner import PathGenerator

console = Console()


def _format(values: Sequence[float], digits: int = 3) -> str:
    return ", ".join(f"{value:.{digits}f}" for value in values)


def _external_position(values: Sequence[float]) -> ExternalJointPosition:
    return ExternalJointPosition(list(values))


def _load_robot(ctx: click.Context, name: str) -> RobotModel:
    """Build a preset robot, or a robot from the configuration directory."""
    try:
        return get_robot_preset(RobotPreset.from_name(name))
    except ConfigurationError:
        pass
    config_mgr = ConfigManager(ctx.obj["config_dir"])
    return config_mgr.build_robot(name)


def _print_diagnostics(diagnostics: Sequence[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        console.print(f"[yellow]⚠[/yellow] {diagnostic.message}")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default="config",
    help="Configuration directory",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_dir: Path, verbose: bool) -> None:
    """armkin - Kinematics for 6-axis robots with external axes."""
    configure_logging(level=verbosity_level(verbose))
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


# =============================================================================
# Configuration Commands
# =============================================================================


@main.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("list-robots")
@click.pass_context
def config_list_robots(ctx: click.Context) -> None:
    """List robot presets and robot configurations."""
    table = Table(title="Available Robots")
    table.add_column("Name", style="cyan")
    table.add_column("Robot")
    table.add_column("Manufacturer")
    table.add_column("Source")

    for preset in RobotPreset:
        table.add_row(preset.name, preset.value, "ABB", "preset")

    if Path(ctx.obj["config_dir"]).exists():
        try:
            config_mgr = ConfigManager(ctx.obj["config_dir"])
            for name in config_mgr.list_robots():
                robot = config_mgr.get_robot(name)
                table.add_row(name, robot.preset or robot.name, robot.manufacturer, "config")
        except ArmkinError as e:
            console.print(f"[red]✗[/red] Failed to list robots: {e}")
            raise SystemExit(1)

    console.print(table)


@config.command("list-tools")
@click.pass_context
def config_list_tools(ctx: click.Context) -> None:
    """List available tool configurations."""
    try:
        config_mgr = ConfigManager(ctx.obj["config_dir"])
        tools = config_mgr.list_tools()

        if not tools:
            console.print("[yellow]No tool configurations found.[/yellow]")
            return

        table = Table(title="Available Tools")
        table.add_column("Name", style="cyan")
        table.add_column("Tool")
        table.add_column("TCP")
        table.add_column("Mass (kg)")

        for name in tools:
            tool = config_mgr.get_tool(name)
            table.add_row(name, tool.name, _format(tool.position, 1), f"{tool.load_data.mass:g}")

        console.print(table)

    except ArmkinError as e:
        console.print(f"[red]✗[/red] Failed to list tools: {e}")
        raise SystemExit(1)


# =============================================================================
# Kinematics Commands
# =============================================================================


@main.command("fk", context_settings={"ignore_unknown_options": True})
@click.argument("robot")
@click.argument("joints", nargs=6, type=float)
@click.option(
    "--external", "-e", multiple=True, type=float, help="External axis value (A, B, ...)"
)
@click.pass_context
def fk_command(
    ctx: click.Context, robot: str, joints: tuple[float, ...], external: tuple[float, ...]
) -> None:
    """Pose the TCP for six joint values in degrees."""
    try:
        model = _load_robot(ctx, robot)
        result = ForwardKinematics(model).calculate(joints, _external_position(external))
    except ArmkinError as e:
        console.print(f"[red]✗[/red] Forward kinematics failed: {e}")
        raise SystemExit(1)

    table = Table(title=f"Forward Kinematics: {model.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Joints", _format(result.robot_joint_position))
    if result.tcp_plane is not None:
        table.add_row("TCP point", _format(result.tcp_plane.point))
        table.add_row("TCP X-axis", _format(result.tcp_plane.xaxis, 6))
        table.add_row("TCP Y-axis", _format(result.tcp_plane.yaxis, 6))
    table.add_row("In limits", "✓" if result.in_limits else "✗")
    console.print(table)
    _print_diagnostics(result.diagnostics)


@main.command("ik")
@click.argument("robot")
@click.option("--point", "-p", nargs=3, type=float, required=True, help="Target origin")
@click.option("--xaxis", nargs=3, type=float, default=(1.0, 0.0, 0.0), help="Target X-axis")
@click.option("--yaxis", nargs=3, type=float, default=(0.0, 1.0, 0.0), help="Target Y-axis")
@click.option("--config", "-c", "axis_config", type=click.IntRange(0, 7), default=0)
@click.option("--external", "-e", multiple=True, type=float, help="External axis value")
@click.option("--all", "show_all", is_flag=True, help="Show all eight solutions")
@click.pass_context
def ik_command(
    ctx: click.Context,
    robot: str,
    point: tuple[float, float, float],
    xaxis: tuple[float, float, float],
    yaxis: tuple[float, float, float],
    axis_config: int,
    external: tuple[float, ...],
    show_all: bool,
) -> None:
    """Solve the joint values for a target plane."""
    try:
        model = _load_robot(ctx, robot)
        target = RobotTarget(
            "target", Frame(point, xaxis, yaxis), axis_config, _external_position(external)
        )
        result = InverseKinematics(model).calculate(target)
    except ArmkinError as e:
        console.print(f"[red]✗[/red] Inverse kinematics failed: {e}")
        raise SystemExit(1)

    table = Table(title=f"Inverse Kinematics: {model.name}")
    table.add_column("Config", style="cyan")
    for index in range(6):
        table.add_column(f"J{index + 1}", justify="right")
    table.add_column("Reachable")

    indices = range(len(result.robot_joint_positions)) if show_all else [axis_config]
    for index in indices:
        joints = result.robot_joint_positions[index]
        marker = "*" if index == result.selected_solution else ""
        table.add_row(
            f"{index}{marker}",
            *(f"{value:.3f}" for value in joints),
            "✓" if result.reachable[index] else "✗",
        )
    console.print(table)

    defined = [
        f"{AXIS_LOGIC[index]}={value:.3f}"
        for index, value in enumerate(result.external_joint_position)
        if not is_undefined(value)
    ]
    if defined:
        console.print(f"External axes: {', '.join(defined)}")
    _print_diagnostics(result.diagnostics)


@main.command("path")
@click.argument("robot")
@click.argument("program", type=click.Path(exists=True, path_type=Path))
@click.option("--interpolations", "-k", type=click.IntRange(min=1), default=5)
@click.pass_context
def path_command(ctx: click.Context, robot: str, program: Path, interpolations: int) -> None:
    """Generate the path of a YAML program."""
    try:
        model = _load_robot(ctx, robot)
        config_dir = Path(ctx.obj["config_dir"])
        config_mgr = ConfigManager(config_dir) if config_dir.exists() else None
        actions = load_program(program, robot=model, config=config_mgr)
        result = PathGenerator(model).calculate(actions, interpolations)
    except ArmkinError as e:
        console.print(f"[red]✗[/red] Path generation failed: {e}")
        raise SystemExit(1)

    table = Table(title=f"Path: {program.stem} ({model.name})")
    table.add_column("Step", style="cyan")
    for index in range(6):
        table.add_column(f"J{index + 1}", justify="right")
    table.add_column("External")
    table.add_column("TCP")

    for step, (joints, external_values, plane) in enumerate(
        zip(result.robot_joint_positions, result.external_joint_positions, result.planes)
    ):
        defined = [value for value in external_values if not is_undefined(value)]
        table.add_row(
            str(step),
            *(f"{value:.3f}" for value in joints),
            _format(defined, 1) or "-",
            _format(plane.point, 1) if plane is not None else "-",
        )

    console.print(table)
    console.print(f"[green]✓[/green] {len(result)} steps, {len(result.paths)} path curves")
    _print_diagnostics(result.diagnostics)


if __name__ == "__main__":
    main()
