"""
Configuration constants for the training-score and suggestion engine.

All adjustable parameters are centralized here for easy tuning.  Every
constant can be overridden from the bundled ``tuning.yaml`` or from the
user file ``~/.goliath/tuning.yaml`` (see get_tuning()).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

# =============================================================================
# MUSCLE SCORE WINDOWS & DECAY
# =============================================================================

DECAY_TODAY_DAYS: Final[int] = 1  # calendar days before "today" is zeroed
DECAY_3DAY_DAYS: Final[int] = 3  # calendar days before "3day" is zeroed
DECAY_7DAY_DAYS: Final[int] = 7  # calendar days before "7day" is zeroed

# =============================================================================
# COMPOSITE (WEIGHTED) SCORE
# =============================================================================

COMPOSITE_CAP_TODAY: Final[float] = 60.0  # 60 reps today = 100%
COMPOSITE_CAP_3DAY: Final[float] = 120.0
COMPOSITE_CAP_7DAY: Final[float] = 500.0

WEIGHT_TODAY: Final[float] = 1.0
WEIGHT_3DAY: Final[float] = 0.5
WEIGHT_7DAY: Final[float] = 0.1

# =============================================================================
# EXERCISE XP
# =============================================================================

XP_PER_WEIGHTED_REP: Final[float] = 0.1  # multiplied by weight
XP_PER_BODYWEIGHT_REP: Final[float] = 1.0
XP_PER_MINUTE: Final[float] = 2.0

# =============================================================================
# PERSONAL BESTS
# =============================================================================

PB_HORIZON_DAYS: Final[dict[str, int | None]] = {
    "current": 30,
    "quarter": 90,
    "year": 365,
    "allTime": None,
}

PB_BONUS: Final[dict[str, int]] = {
    "current": 50,
    "quarter": 150,
    "year": 200,
    "allTime": 300,
}

EPLEY_DIVISOR: Final[float] = 30.0

# =============================================================================
# LAGGING MUSCLES
# =============================================================================

LAGGING_BONUS: Final[dict[str, int]] = {
    "neverTrained": 100,
    "underTrained": 50,
    "neglected": 25,
}

LAGGING_BASE_PRIORITY: Final[dict[str, int]] = {
    "neverTrained": 1000,
    "underTrained": 500,
    "neglected": 100,
}

UNDER_TRAINED_THRESHOLD: Final[int] = 100  # lifetime-equivalent reps
NEGLECTED_DAYS: Final[int] = 14

# =============================================================================
# SUGGESTIONS
# =============================================================================

MAX_SUGGESTIONS: Final[int] = 3
SUGGESTION_TTL_HOURS: Final[int] = 24
REGENERATION_DELAY_SECONDS: Final[float] = 0.8  # UX pacing before commit

CATEGORY_BUCKETS: Final[dict[str, str]] = {
    "bodyweight": "bodyweightOnly",
    "gym": "gymEquipment",
    "cardio": "cardioOnly",
}
DEFAULT_BUCKET: Final[str] = "allExercises"
ALL_BUCKETS: Final[tuple[str, ...]] = (
    "allExercises",
    "bodyweightOnly",
    "gymEquipment",
    "cardioOnly",
)

# =============================================================================
# QUOTAS (None = unlimited)
# =============================================================================

QUOTA_LIMITS: Final[dict[str, dict[str, int | None]]] = {
    "basic": {"hide": 1, "refresh": 3},
    "premium": {"hide": None, "refresh": None},
    "admin": {"hide": None, "refresh": None},
}

SUBSCRIPTION_FEATURES: Final[dict[str, list[str]]] = {
    "basic": ["basic_logging", "basic_tracking"],
    "premium": ["basic_logging", "basic_tracking", "equipment_selection", "unlimited_quota"],
    "admin": ["all_features"],
}

CAS_RETRIES: Final[int] = 5

# Cross-process lock file around profile writes
LOCK_TIMEOUT_SECONDS: Final[float] = 5.0
LOCK_POLL_SECONDS: Final[float] = 0.01
STALE_LOCK_SECONDS: Final[float] = 30.0

# =============================================================================
# LEVELING & STREAKS
# =============================================================================

LEVEL_BASE_XP: Final[int] = 1000
LEVEL_SCALING: Final[float] = 1.15

LEVEL_TITLES: Final[dict[int, str]] = {
    1: "Pixel Sprite",
    5: "Arcade Warrior",
    10: "Retro Champion",
    15: "8-Bit Hero",
    20: "Console Master",
    25: "Digital Legend",
    30: "Virtual Champion",
    35: "Cyber Warrior",
    40: "Neon Knight",
    50: "Quantum Hero",
    75: "Binary Overlord",
    100: "Digital Deity",
}

DAILY_STREAK_BONUS: Final[dict[int, int]] = {7: 50, 14: 100, 30: 200, 60: 500, 90: 1000}
WEEKLY_STREAK_BONUS: Final[dict[int, int]] = {4: 100, 8: 250, 12: 500}


def get_data_dir() -> Path:
    """Return the data directory (``$GOLIATH_HOME`` or ``~/.goliath``)."""
    override = os.environ.get("GOLIATH_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".goliath"


# =============================================================================
# RESOLVED TUNING
# =============================================================================

@dataclass(frozen=True)
class Tuning:
    """Resolved tunables: the defaults above overlaid with YAML values."""

    decay_today_days: int = DECAY_TODAY_DAYS
    decay_3day_days: int = DECAY_3DAY_DAYS
    decay_7day_days: int = DECAY_7DAY_DAYS

    composite_caps: tuple[float, float, float] = (
        COMPOSITE_CAP_TODAY,
        COMPOSITE_CAP_3DAY,
        COMPOSITE_CAP_7DAY,
    )
    composite_weights: tuple[float, float, float] = (WEIGHT_TODAY, WEIGHT_3DAY, WEIGHT_7DAY)

    xp_per_weighted_rep: float = XP_PER_WEIGHTED_REP
    xp_per_bodyweight_rep: float = XP_PER_BODYWEIGHT_REP
    xp_per_minute: float = XP_PER_MINUTE

    pb_horizon_days: dict[str, int | None] = field(default_factory=lambda: dict(PB_HORIZON_DAYS))
    pb_bonus: dict[str, int] = field(default_factory=lambda: dict(PB_BONUS))

    lagging_bonus: dict[str, int] = field(default_factory=lambda: dict(LAGGING_BONUS))
    lagging_base_priority: dict[str, int] = field(
        default_factory=lambda: dict(LAGGING_BASE_PRIORITY)
    )
    under_trained_threshold: int = UNDER_TRAINED_THRESHOLD
    neglected_days: int = NEGLECTED_DAYS

    max_suggestions: int = MAX_SUGGESTIONS
    suggestion_ttl_hours: int = SUGGESTION_TTL_HOURS
    regeneration_delay_seconds: float = REGENERATION_DELAY_SECONDS

    quota_limits: dict[str, dict[str, int | None]] = field(
        default_factory=lambda: {k: dict(v) for k, v in QUOTA_LIMITS.items()}
    )

    level_base_xp: int = LEVEL_BASE_XP
    level_scaling: float = LEVEL_SCALING


def tuning_from_dict(raw: dict) -> Tuning:
    """
    Build a Tuning from a (possibly partial) config dict.

    Unknown sections and keys are ignored; missing keys keep their defaults.
    """
    defaults = Tuning()
    decay = raw.get("decay", {}) or {}
    composite = raw.get("composite", {}) or {}
    xp = raw.get("xp", {}) or {}
    bests = raw.get("personal_bests", {}) or {}
    lagging = raw.get("lagging", {}) or {}
    suggestions = raw.get("suggestions", {}) or {}
    quotas = raw.get("quotas", {}) or {}
    leveling = raw.get("leveling", {}) or {}

    caps = composite.get("caps", {}) or {}
    weights = composite.get("weights", {}) or {}

    quota_limits = {k: dict(v) for k, v in defaults.quota_limits.items()}
    for tier, limits in quotas.items():
        quota_limits.setdefault(tier, {}).update(limits or {})

    return Tuning(
        decay_today_days=int(decay.get("today_days", defaults.decay_today_days)),
        decay_3day_days=int(decay.get("3day_days", defaults.decay_3day_days)),
        decay_7day_days=int(decay.get("7day_days", defaults.decay_7day_days)),
        composite_caps=(
            float(caps.get("today", defaults.composite_caps[0])),
            float(caps.get("3day", defaults.composite_caps[1])),
            float(caps.get("7day", defaults.composite_caps[2])),
        ),
        composite_weights=(
            float(weights.get("today", defaults.composite_weights[0])),
            float(weights.get("3day", defaults.composite_weights[1])),
            float(weights.get("7day", defaults.composite_weights[2])),
        ),
        xp_per_weighted_rep=float(xp.get("per_weighted_rep", defaults.xp_per_weighted_rep)),
        xp_per_bodyweight_rep=float(xp.get("per_bodyweight_rep", defaults.xp_per_bodyweight_rep)),
        xp_per_minute=float(xp.get("per_minute", defaults.xp_per_minute)),
        pb_horizon_days={**defaults.pb_horizon_days, **(bests.get("horizon_days") or {})},
        pb_bonus={**defaults.pb_bonus, **(bests.get("bonus") or {})},
        lagging_bonus={**defaults.lagging_bonus, **(lagging.get("bonus") or {})},
        lagging_base_priority={
            **defaults.lagging_base_priority,
            **(lagging.get("base_priority") or {}),
        },
        under_trained_threshold=int(
            lagging.get("under_trained_threshold", defaults.under_trained_threshold)
        ),
        neglected_days=int(lagging.get("neglected_days", defaults.neglected_days)),
        max_suggestions=int(suggestions.get("max_suggestions", defaults.max_suggestions)),
        suggestion_ttl_hours=int(suggestions.get("ttl_hours", defaults.suggestion_ttl_hours)),
        regeneration_delay_seconds=float(
            suggestions.get("regeneration_delay_seconds", defaults.regeneration_delay_seconds)
        ),
        quota_limits=quota_limits,
        level_base_xp=int(leveling.get("base_xp", defaults.level_base_xp)),
        level_scaling=float(leveling.get("scaling", defaults.level_scaling)),
    )


_TUNING: Tuning | None = None


def get_tuning(reload: bool = False) -> Tuning:
    """
    Return the process-wide Tuning, loading YAML overrides on first use.

    Args:
        reload: Force re-reading the YAML sources

    Returns:
        Resolved Tuning
    """
    global _TUNING
    if _TUNING is None or reload:
        from .engine.config_loader import load_model_config

        _TUNING = tuning_from_dict(load_model_config())
    return _TUNING
