"""CLI entry point for pourover.

Uses Click to expose the ``pourover`` command group.  ``brew`` plays a recipe
in the terminal on a real-time clock; the other commands inspect or rescale
a recipe file without running a timer.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Callable, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler

import pourover
from pourover.core.clock import RealtimeClock
from pourover.core.collaborators import (
    HapticStrength,
    LifecycleChange,
    LifecycleEvent,
    ProgressSink,
)
from pourover.core.cues import CueKind
from pourover.core.manager import TimerManager
from pourover.core.recipe import (
    Recipe,
    RecipeError,
    load_recipe,
    recipe_to_dict,
    with_coffee,
    with_ratio,
    with_water,
)
from pourover.core.settings import Settings
from pourover.core.stages import expand
from pourover.core.state import InvalidStateError, Lifecycle
from pourover.core.water import water_at

T = TypeVar("T")

logger = logging.getLogger(__name__)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _format_seconds(seconds: float) -> str:
    """Format *seconds* as ``M:SS``."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def _setup_logging(verbose: bool) -> None:
    level = _LEVELS.get(os.environ.get("LOG_LEVEL", "").upper())
    if level is None:
        level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting engine errors to a CLI error.

    On ``RecipeError`` or ``InvalidStateError`` the message is printed to
    stderr and the process exits with code 1.
    """
    try:
        return action()
    except (RecipeError, InvalidStateError) as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _scaled(recipe: Recipe, coffee: float | None, water: float | None, ratio: float | None) -> Recipe:
    if coffee is not None:
        recipe = with_coffee(recipe, coffee)
    if water is not None:
        recipe = with_water(recipe, water)
    if ratio is not None:
        recipe = with_ratio(recipe, ratio)
    return recipe


def _scale_options(func: Callable[..., None]) -> Callable[..., None]:
    func = click.option("--ratio", type=float, help="Brew ratio, e.g. 15 for 1:15.")(func)
    func = click.option("--water", type=float, help="Total water in grams.")(func)
    func = click.option("--coffee", type=float, help="Coffee dose in grams.")(func)
    return func


_recipe_argument = click.argument(
    "recipe_path",
    metavar="RECIPE",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


# -- terminal collaborators --------------------------------------------------


class TerminalAudio:
    """Rings the terminal bell; output failures are logged and ignored."""

    def play(self, kind: CueKind) -> None:
        try:
            click.echo("\a", nl=False)
        except OSError as exc:
            logger.warning("Could not play %s cue: %s", kind.value, exc)


class TerminalHaptics:
    def pulse(self, strength: HapticStrength) -> None:
        logger.debug("Haptic pulse: %s", strength.value)


class TerminalProgress(ProgressSink):
    """Prints one line per second while brewing."""

    def __init__(self) -> None:
        self.manager: TimerManager | None = None

    def on_countdown_change(self, remaining: int | None) -> None:
        if remaining is not None:
            click.echo(f"Starting in {remaining}...")

    def on_stage_change(self, stage_index: int, is_waiting: bool) -> None:
        manager = self.manager
        if manager is None:
            return
        sub = manager.timeline[stage_index]
        if is_waiting:
            click.echo(f"-- Wait until {_format_seconds(sub.end_time)} ({sub.label})")
        else:
            click.echo(f"-- Pour to {sub.target_water} by {_format_seconds(sub.end_time)}: {sub.label}")
            if sub.detail:
                click.echo(f"   {sub.detail}")

    def on_tick(self, elapsed_seconds: int) -> None:
        manager = self.manager
        if manager is None or manager.lifecycle is not Lifecycle.RUNNING:
            return
        click.echo(
            f"{_format_seconds(elapsed_seconds)} / {_format_seconds(manager.total_duration)}"
            f"  {round(manager.current_water)}g"
        )

    def on_complete(self, total_seconds: int) -> None:
        click.echo(f"Brew complete in {_format_seconds(total_seconds)}")


# -- commands ----------------------------------------------------------------


@click.group()
@click.version_option(version=pourover.__version__, prog_name="pourover")
@click.option("-v", "--verbose", is_flag=True, help="Log timer transitions and cues.")
def cli(verbose: bool) -> None:
    """pourover: a pour-over brewing timer."""
    _setup_logging(verbose)


@cli.command(name="expand")
@_recipe_argument
def expand_command(recipe_path: Path) -> None:
    """Show the pour and wait schedule for RECIPE."""
    recipe = _run(lambda: load_recipe(recipe_path))
    timeline = _run(lambda: expand(recipe.stages))
    for sub in timeline:
        click.echo(
            f"{sub.kind.value:<4}  {_format_seconds(sub.start_time)}-{_format_seconds(sub.end_time)}"
            f"  {sub.target_water:>6}  {sub.label}"
        )


@cli.command()
@_recipe_argument
@click.argument("seconds", type=click.IntRange(min=0))
def water(recipe_path: Path, seconds: int) -> None:
    """Show how much water should be poured SECONDS into RECIPE."""
    recipe = _run(lambda: load_recipe(recipe_path))
    timeline = _run(lambda: expand(recipe.stages))
    click.echo(f"{round(water_at(timeline, seconds))}g")


@cli.command()
@_recipe_argument
@_scale_options
def scale(recipe_path: Path, coffee: float | None, water: float | None, ratio: float | None) -> None:
    """Print RECIPE as JSON with a new dose, total water, or ratio."""
    recipe = _run(lambda: load_recipe(recipe_path))
    try:
        recipe = _scaled(recipe, coffee, water, ratio)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    click.echo(json.dumps(recipe_to_dict(recipe), indent=2, ensure_ascii=False))


@cli.command()
@_recipe_argument
@_scale_options
@click.option("--no-sound", is_flag=True, help="Do not ring the terminal bell on cues.")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding settings.json.",
)
def brew(
    recipe_path: Path,
    coffee: float | None,
    water: float | None,
    ratio: float | None,
    no_sound: bool,
    config_dir: Path | None,
) -> None:
    """Brew RECIPE with a live countdown, cues, and water readout."""
    recipe = _run(lambda: load_recipe(recipe_path))
    try:
        recipe = _scaled(recipe, coffee, water, ratio)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    settings = Settings.load(config_dir)
    if no_sound:
        settings.notification_sound = False

    clock = RealtimeClock()
    sink = TerminalProgress()
    manager = _run(
        lambda: TimerManager(
            recipe,
            clock,
            settings=settings,
            audio=TerminalAudio(),
            haptics=TerminalHaptics(),
            sink=sink,
        )
    )
    sink.manager = manager

    def _announce(change: LifecycleChange) -> None:
        if change.event is LifecycleEvent.RUNNING:
            click.echo("Go!")

    manager.subscribe(_announce)
    click.echo(f"Brewing {recipe.name or recipe_path.name}: {_format_seconds(manager.total_duration)}")
    manager.start()
    try:
        clock.run_until(lambda: manager.lifecycle is Lifecycle.COMPLETED and clock.pending == 0)
    except KeyboardInterrupt:
        manager.reset()
        click.echo("Brew abandoned", err=True)
        sys.exit(1)
