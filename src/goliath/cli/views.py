"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of scores, suggestions and quotas.
"""

from datetime import datetime
from typing import Mapping, Sequence

from rich.console import Console
from rich.table import Table

from ..core.leveling import LevelInfo, StreakInfo
from ..core.models import HORIZONS, ExerciseBests, LaggingMuscle, MuscleScore, WorkoutSuggestion
from ..core.muscle_scores import raw_weighted_score, weighted_score
from ..core.quota import QuotaDecision
from ..core.scoring import LogResult

console = Console()
err_console = Console(stderr=True)

_TYPE_STYLE = {
    "neverTrained": "bold red",
    "underTrained": "yellow",
    "neglected": "magenta",
}


def _fmt_date(dt: datetime | None) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt is not None else "-"


def _fmt_value(value: float) -> str:
    return f"{value:g}" if value != int(value) else str(int(value))


def print_log_result(result: LogResult) -> None:
    """Print the XP breakdown of a logged workout."""
    console.print(f"[bold green]+{result.total_xp_awarded} XP[/bold green] for {result.log.exercise_id}")
    console.print(f"  exercise score : {result.score}")
    if result.personal_best_bonus:
        console.print(f"  personal best  : [cyan]+{result.personal_best_bonus}[/cyan]")
    if result.lagging_bonus:
        console.print(f"  lagging muscle : [magenta]+{result.lagging_bonus}[/magenta]")
    console.print(f"  total XP       : {result.profile.total_xp}")


def print_muscle_scores(scores: Mapping[str, MuscleScore]) -> None:
    """
    Print muscle scores with their composite values.

    Args:
        scores: Decayed muscle scores
    """
    if not scores:
        console.print("[dim]No muscle scores yet.[/dim]")
        return

    table = Table(title="Muscle Scores")
    table.add_column("Muscle", style="cyan")
    table.add_column("Today", justify="right")
    table.add_column("3 days", justify="right")
    table.add_column("7 days", justify="right")
    table.add_column("Weighted", justify="right", style="bold")
    table.add_column("Composite", justify="right")
    table.add_column("Last trained", style="dim")

    for name in sorted(scores):
        s = scores[name]
        table.add_row(
            name,
            str(s.today),
            str(s.three_day),
            str(s.seven_day),
            str(raw_weighted_score(s)),
            f"{weighted_score(s) * 100:.0f}%",
            _fmt_date(s.last_updated),
        )
    console.print(table)


def print_lagging(lagging: Sequence[LaggingMuscle]) -> None:
    if not lagging:
        console.print("[green]No lagging muscles. Nice balance![/green]")
        return

    table = Table(title="Lagging Muscles")
    table.add_column("Muscle", style="cyan")
    table.add_column("Type")
    table.add_column("Reps", justify="right")
    table.add_column("Days since", justify="right")
    table.add_column("Bonus", justify="right", style="bold green")
    table.add_column("Priority", justify="right", style="dim")

    for m in lagging:
        style = _TYPE_STYLE.get(m.lagging_type, "")
        table.add_row(
            m.muscle,
            f"[{style}]{m.lagging_type}[/{style}]" if style else m.lagging_type,
            str(m.reps),
            str(m.days_since_trained),
            f"+{m.bonus}",
            str(m.priority),
        )
    console.print(table)


def print_suggestions(suggestions: Sequence[WorkoutSuggestion], title: str = "Suggested Workouts") -> None:
    """Print suggestions with their ids (used by hide/unhide)."""
    if not suggestions:
        console.print("[dim]No suggestions: nothing lagging matches your equipment.[/dim]")
        return

    table = Table(title=title)
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Exercise", style="bold")
    table.add_column("Muscle", style="cyan")
    table.add_column("Equipment")
    table.add_column("Bonus", justify="right", style="green")
    table.add_column("Why")
    table.add_column("Id", style="dim")

    for i, s in enumerate(suggestions, 1):
        table.add_row(
            str(i),
            s.exercise.name or s.exercise.id,
            s.lagging_muscle.muscle,
            s.exercise.equipment or "-",
            f"+{s.bonus}",
            s.reason,
            s.id,
        )
    console.print(table)


def format_quota(kind: str, decision: QuotaDecision) -> str:
    if decision.unlimited:
        return f"{kind}: unlimited"
    return f"{kind}: {decision.remaining}/{decision.limit} left today"


def print_quota(status: Mapping[str, QuotaDecision], tier: str) -> None:
    console.print(f"Tier: [bold]{tier}[/bold]")
    for kind, decision in status.items():
        style = "green" if decision.allowed else "red"
        console.print(f"  [{style}]{format_quota(kind, decision)}[/{style}]")


def print_bests(bests: Mapping[str, ExerciseBests]) -> None:
    """Print personal bests per exercise and horizon."""
    if not bests:
        console.print("[dim]No personal bests yet.[/dim]")
        return

    table = Table(title="Personal Bests")
    table.add_column("Exercise", style="cyan")
    for horizon in HORIZONS:
        table.add_column(horizon, justify="right")

    for exercise_id in sorted(bests):
        row = [exercise_id]
        for horizon in HORIZONS:
            pb = bests[exercise_id].get(horizon)
            row.append(f"{_fmt_value(pb.value)} {pb.unit}" if pb is not None else "-")
        table.add_row(*row)
    console.print(table)


def print_level(info: LevelInfo, total_xp: int, streak: StreakInfo) -> None:
    console.print(f"[bold cyan]Level {info.level}[/bold cyan] - {info.title}")
    console.print(f"  XP       : {total_xp} ({info.progress:.2f}% to level {info.level + 1})")
    console.print(f"  next     : {info.xp_to_next} XP to go ({info.next_level_xp} total)")
    console.print(f"  streaks  : {streak.daily_streak} day(s), {streak.weekly_streak} week(s)")
    bonus = streak.daily_bonus + streak.weekly_bonus
    if bonus:
        console.print(f"  bonus    : [green]+{bonus}[/green] (informational, not added to XP)")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
