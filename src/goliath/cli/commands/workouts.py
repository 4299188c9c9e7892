"""Workout commands: log, lagging."""

from typing import Annotated, Optional

import typer

from ...core.models import WorkoutData
from ...io.profile_store import ConflictError
from ...io.serializers import ValidationError, parse_sets_string, parse_timestamp
from .. import views
from ..app import CatalogOption, DataDirOption, UserOption, app, get_session


@app.command("log")
def log_workout(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id from the catalog")],
    sets: Annotated[
        Optional[str],
        typer.Option("--sets", "-s", help="Sets: 10@135,8@155 | 3x10@135 | 12,10,8"),
    ] = None,
    duration: Annotated[
        Optional[float],
        typer.Option("--duration", "-t", help="Duration in minutes"),
    ] = None,
    distance: Annotated[
        Optional[float],
        typer.Option("--distance", help="Distance (for pace records)"),
    ] = None,
    at: Annotated[
        Optional[str],
        typer.Option("--at", help="Workout time (ISO, default: now)"),
    ] = None,
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """
    Log a workout and show the XP it earned.

    Examples:

      goliath log barbell_bench_press --sets 10@135,8@155

      goliath log treadmill_run --duration 30 --distance 5
    """
    if sets is None and duration is None:
        views.print_error("Give --sets and/or --duration")
        raise typer.Exit(1)

    try:
        session = get_session(user, data_dir, catalog)
        workout = WorkoutData(
            sets=parse_sets_string(sets) if sets else [],
            duration=duration,
            distance=distance,
            timestamp=parse_timestamp(at) if at else None,
        )
        result = session.log_workout(exercise_id, workout)
    except (FileNotFoundError, ValidationError, ValueError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_log_result(result)


@app.command()
def lagging(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Show muscles that need attention, highest priority first."""
    try:
        session = get_session(user, data_dir, catalog)
        muscles = session.lagging_muscles()
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_lagging(muscles)
