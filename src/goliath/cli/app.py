"""Shared Typer app object, shared option types, and session utility."""

import logging
import random
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.catalog import equipment_options, load_catalog
from ..core.config import get_data_dir
from ..io.log_store import WorkoutLogStore, get_default_log_path
from ..io.profile_store import JsonProfileRepository
from ..session import TrainerSession
from . import views

DEFAULT_USER = "local"

# Equipment assumed per category when --equipment is not given
BODYWEIGHT_EQUIPMENT: tuple[str, ...] = ("body weight",)

UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="Profile id (default: local)"),
]
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Data directory (default: $GOLIATH_HOME or ~/.goliath)"),
]
CatalogOption = Annotated[
    Optional[Path],
    typer.Option("--catalog", help="Exercise catalog YAML/JSON file"),
]
CategoryOption = Annotated[
    str,
    typer.Option("--category", "-c", help="bodyweight, gym, cardio or all"),
]
EquipmentOption = Annotated[
    Optional[str],
    typer.Option("--equipment", "-q", help="Comma-separated equipment you have"),
]
InstantOption = Annotated[
    bool,
    typer.Option("--instant", help="Skip the pause before new suggestions are shown"),
]

app = typer.Typer(
    name="goliath",
    help="Muscle scores, personal bests and lagging-muscle workout suggestions.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Goliath training engine. Log workouts, inspect scores, get suggestions.
    """
    logger = logging.getLogger("goliath")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=views.err_console, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _pacing(instant: bool):
    if instant:
        return lambda seconds: None

    def pause(seconds: float) -> None:
        with views.console.status("Finding exercises for your lagging muscles..."):
            time.sleep(seconds)

    return pause


def get_session(
    user: str = DEFAULT_USER,
    data_dir: Path | None = None,
    catalog_path: Path | None = None,
    instant: bool = False,
    seed: int | None = None,
) -> TrainerSession:
    """Build a TrainerSession on the JSON repository under the data directory."""
    base = data_dir if data_dir is not None else get_data_dir()
    repository = JsonProfileRepository(base / "profiles")
    log_store = WorkoutLogStore(get_default_log_path(user, base))
    return TrainerSession(
        repository,
        user,
        load_catalog(catalog_path),
        log_store=log_store,
        rng=random.Random(seed),
        pacing=_pacing(instant),
    )


def resolve_equipment(session: TrainerSession, category: str, equipment: str | None) -> list[str]:
    """Selected equipment list for a category."""
    if equipment:
        return [e.strip().lower() for e in equipment.split(",") if e.strip()]
    if category == "bodyweight":
        return list(BODYWEIGHT_EQUIPMENT)
    return equipment_options(session.catalog)


def normalize_category(category: str) -> str | None:
    category = category.strip().lower()
    if category not in ("bodyweight", "gym", "cardio", "all"):
        views.print_error(f"Unknown category '{category}'. Use bodyweight, gym, cardio or all")
        raise typer.Exit(1)
    return None if category == "all" else category
