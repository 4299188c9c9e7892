"""Profile commands: init, scores, bests, level, quota, tier."""

from typing import Annotated

import typer

from ...core.models import TIERS
from ...io.profile_store import ConflictError
from ...io.serializers import ValidationError
from .. import views
from ..app import CatalogOption, DataDirOption, UserOption, app, get_session


@app.command()
def init(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """
    Create a profile (and an empty workout log) if they do not exist yet.

    Existing profiles are left untouched; legacy profiles get repaired.
    """
    try:
        session = get_session(user, data_dir, catalog)
        existed = session.repository.exists(user)
        profile = session.profile()
        if session.log_store is not None:
            session.log_store.init()
    except (ValidationError, FileNotFoundError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if existed:
        views.print_info(f"Profile '{user}' already exists ({profile.tier} tier, {profile.total_xp} XP).")
    else:
        views.print_success(f"Created profile '{user}' ({profile.tier} tier).")
    views.console.print(f"Catalog: {len(session.catalog)} exercises")


@app.command()
def scores(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Show today / 3-day / 7-day muscle scores (decayed as of now)."""
    try:
        profile = get_session(user, data_dir, catalog).profile()
    except (ValidationError, FileNotFoundError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_muscle_scores(profile.muscle_scores)


@app.command()
def bests(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Show personal bests per exercise for every horizon."""
    try:
        records = get_session(user, data_dir, catalog).personal_bests()
    except (ValidationError, FileNotFoundError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_bests(records)


@app.command()
def level(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Show level, progress and workout streaks."""
    try:
        session = get_session(user, data_dir, catalog)
        profile = session.profile()
        info = session.level()
        streak = session.streaks()
    except (ValidationError, FileNotFoundError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_level(info, profile.total_xp, streak)


@app.command()
def quota(
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Show today's remaining hides and refreshes."""
    try:
        session = get_session(user, data_dir, catalog)
        status = session.quota_status()
        tier = session.profile().tier
    except (ValidationError, FileNotFoundError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_quota(status, tier)


@app.command()
def tier(
    new_tier: Annotated[str, typer.Argument(help="basic, premium or admin")],
    user: UserOption = "local",
    data_dir: DataDirOption = None,
    catalog: CatalogOption = None,
) -> None:
    """Set the subscription tier (controls daily quotas)."""
    if new_tier not in TIERS:
        views.print_error(f"Tier must be one of: {', '.join(TIERS)}")
        raise typer.Exit(1)

    try:
        profile = get_session(user, data_dir, catalog).set_tier(new_tier)
    except (ValidationError, FileNotFoundError, ConflictError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Profile '{user}' is now on the {profile.tier} tier.")
