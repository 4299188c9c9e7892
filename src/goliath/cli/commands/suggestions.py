"""Suggestion commands: suggest, refresh, hide, unhide, pin."""

from typing import Annotated, Optional

import typer

from ...io.profile_store import ConflictError
from ...io.serializers import ValidationError
from .. import views
from ..app import (
    CatalogOption,
    CategoryOption,
    DataDirOption,
    EquipmentOption,
    InstantOption,
    UserOption,
    app,
    get_session,
    normalize_category,
    resolve_equipment,
)

SeedOption = Annotated[
    Optional[int],
    typer.Option("--seed", help="Random seed for reproducible picks"),
]


@app.command()
def suggest(
    category: CategoryOption = "all",
    equipment: EquipmentOption = None,
    instant: InstantOption = False,
    seed: SeedOption = None,
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """
    Show up to three exercises for your lagging muscles.

    Suggestions are kept for 24 hours per category; use 'refresh' for new ones.
    """
    cat = normalize_category(category)
    try:
        session = get_session(user, data_dir, catalog, instant=instant, seed=seed)
        suggestions = session.suggestions(cat, resolve_equipment(session, category, equipment))
    except (ValidationError, FileNotFoundError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_suggestions(suggestions)


@app.command()
def refresh(
    suggestion_id: Annotated[
        Optional[str],
        typer.Argument(help="Swap only this suggestion (same muscle, other exercise)"),
    ] = None,
    category: CategoryOption = "all",
    equipment: EquipmentOption = None,
    instant: InstantOption = False,
    seed: SeedOption = None,
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Discard current suggestions and pick new ones (uses the daily refresh quota)."""
    cat = normalize_category(category)
    try:
        session = get_session(user, data_dir, catalog, instant=instant, seed=seed)
        selected = resolve_equipment(session, category, equipment)
        if suggestion_id:
            decision, suggestions = session.refresh_one(suggestion_id, cat, selected)
        else:
            decision, suggestions = session.refresh(cat, selected)
    except (ValidationError, FileNotFoundError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not decision.allowed:
        views.print_warning("Daily refresh limit reached. Upgrade to premium for unlimited refreshes.")
        views.print_suggestions(suggestions)
        raise typer.Exit(1)

    views.print_suggestions(suggestions)
    views.print_info(views.format_quota("refreshes", decision))


@app.command()
def hide(
    suggestion_id: Annotated[str, typer.Argument(help="Suggestion id, e.g. push_up-chest")],
    category: CategoryOption = "all",
    equipment: EquipmentOption = None,
    seed: SeedOption = None,
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Never suggest this exercise for this muscle again (uses the daily hide quota)."""
    cat = normalize_category(category)
    try:
        session = get_session(user, data_dir, catalog, instant=True, seed=seed)
        decision, suggestions = session.hide(
            suggestion_id, cat, resolve_equipment(session, category, equipment)
        )
    except (ValidationError, FileNotFoundError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not decision.allowed:
        views.print_warning("Daily hide limit reached. Upgrade to premium for unlimited hides.")
        raise typer.Exit(1)

    views.print_success(f"Hidden {suggestion_id}")
    views.print_suggestions(suggestions)
    views.print_info(views.format_quota("hides", decision))


@app.command()
def unhide(
    suggestion_id: Annotated[str, typer.Argument(help="Previously hidden suggestion id")],
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Allow a hidden suggestion to be suggested again."""
    try:
        removed = get_session(user, data_dir, catalog).unhide(suggestion_id)
    except (ValidationError, FileNotFoundError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if removed:
        views.print_success(f"{suggestion_id} can be suggested again")
    else:
        views.print_warning(f"{suggestion_id} was not hidden")


@app.command()
def pin(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id from the catalog")],
    favorite: Annotated[
        bool,
        typer.Option("--favorite", help="Mark as favorite instead of pinning"),
    ] = False,
    remove: Annotated[
        bool,
        typer.Option("--remove", help="Remove the pin/favorite"),
    ] = False,
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Prefer an exercise when it fits a lagging muscle."""
    kind = "favorite" if favorite else "pinned"
    try:
        get_session(user, data_dir, catalog).set_preference(exercise_id, kind, enabled=not remove)
    except (ValidationError, FileNotFoundError, ConflictError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    verb = "Removed" if remove else "Saved"
    views.print_success(f"{verb} {kind} {exercise_id}")
