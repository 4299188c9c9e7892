"""
CLI entry point using Typer.

Provides commands for the training engine:
- init: Create a profile and workout log
- log: Log a workout and award XP
- scores / bests / level: Inspect progress
- lagging: Show muscles that need attention
- suggest / refresh / hide / unhide / pin: Workout suggestions
- quota / tier: Daily limits and subscription tier
"""

from .app import app
from .commands import profile, suggestions, workouts  # noqa: F401  (registers commands)


if __name__ == "__main__":
    app()
