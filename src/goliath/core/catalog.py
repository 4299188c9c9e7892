"""
Exercise catalog loading and muscle-name parsing.

The catalog is read-only reference data owned by an external library.  It is
loaded from a YAML or JSON file holding either a list of exercises or a
mapping with an ``exercises`` list.  The bundled ``src/goliath/catalog.yaml``
is used when no file is given; ``~/.goliath/catalog.yaml`` overrides it.

Usage:
    from goliath.core.catalog import load_catalog
    catalog = load_catalog()          # list[ExerciseDetails]
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Iterable, Sequence

from .engine.config_loader import get_bundled_yaml_path, get_user_yaml_path, load_yaml
from .models import ExerciseDetails

_REQUIRED_FIELDS: frozenset[str] = frozenset({"id", "target"})


def split_muscles(value: str | Iterable[str] | None) -> list[str]:
    """
    Split a muscle field into normalized names.

    Accepts a comma-separated string or a list of such strings.  Names are
    trimmed and lowercased; blanks are dropped.
    """
    if not value:
        return []
    parts = [value] if isinstance(value, str) else list(value)
    names: list[str] = []
    for part in parts:
        if not part:
            continue
        for name in str(part).split(","):
            name = name.strip().lower()
            if name:
                names.append(name)
    return names


def parse_muscles(exercise: ExerciseDetails) -> list[str]:
    """Return the target then secondary muscles of an exercise, de-duplicated."""
    seen: dict[str, None] = {}
    for name in split_muscles(exercise.target) + split_muscles(exercise.secondary_muscles):
        seen.setdefault(name, None)
    return list(seen)


def split_equipment(equipment: str | None) -> list[str]:
    """Comma-separated equipment tokens, trimmed and lowercased."""
    return split_muscles(equipment)


def exercise_from_dict(d: dict) -> ExerciseDetails:
    """Convert a raw dict (YAML/JSON) to ExerciseDetails.

    Accepts both ``secondaryMuscles`` and ``secondary_muscles`` keys.
    Raises ValueError if a required field is absent.
    """
    missing = _REQUIRED_FIELDS - set(d)
    if missing:
        raise ValueError(f"Exercise missing fields: {sorted(missing)}")

    secondary = d.get("secondaryMuscles", d.get("secondary_muscles", ()))
    if isinstance(secondary, list):
        secondary = tuple(str(s) for s in secondary)
    elif secondary is None:
        secondary = ()

    return ExerciseDetails(
        id=str(d["id"]),
        name=str(d.get("name", d["id"])),
        target=str(d.get("target") or ""),
        secondary_muscles=secondary,
        category=str(d.get("category") or ""),
        equipment=str(d.get("equipment") or ""),
        difficulty=str(d.get("difficulty") or ""),
    )


def exercise_to_dict(exercise: ExerciseDetails) -> dict:
    """Convert ExerciseDetails to a JSON-compatible dict."""
    secondary = exercise.secondary_muscles
    return {
        "id": exercise.id,
        "name": exercise.name,
        "target": exercise.target,
        "secondaryMuscles": list(secondary) if not isinstance(secondary, str) else secondary,
        "category": exercise.category,
        "equipment": exercise.equipment,
        "difficulty": exercise.difficulty,
    }


def _read_catalog_file(path: Path) -> list[dict]:
    if path.suffix.lower() == ".json":
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    else:
        data = load_yaml(path)
    if isinstance(data, dict):
        data = data.get("exercises", [])
    return data if isinstance(data, list) else []


def catalog_from_dicts(rows: Iterable[dict]) -> list[ExerciseDetails]:
    """Build a catalog, skipping (with a warning) malformed entries."""
    catalog: list[ExerciseDetails] = []
    for row in rows:
        try:
            catalog.append(exercise_from_dict(row))
        except (ValueError, TypeError) as exc:
            warnings.warn(f"goliath: skipping catalog entry {row!r}: {exc}", stacklevel=2)
    return catalog


def load_catalog(path: str | Path | None = None) -> list[ExerciseDetails]:
    """
    Load the exercise catalog.

    Args:
        path: Explicit YAML/JSON file; defaults to the user catalog if present,
              else the bundled one

    Returns:
        List of ExerciseDetails (empty if nothing could be loaded)

    Raises:
        FileNotFoundError: If an explicit path does not exist
    """
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Catalog not found: {p}")
        return catalog_from_dicts(_read_catalog_file(p))

    source = get_user_yaml_path("catalog.yaml") or get_bundled_yaml_path("catalog.yaml")
    if source is None:
        return []
    return catalog_from_dicts(_read_catalog_file(source))


def find_exercise(catalog: Sequence[ExerciseDetails], exercise_id: str) -> ExerciseDetails | None:
    """Return the catalog entry with the given id, or None."""
    for exercise in catalog:
        if exercise.id == exercise_id:
            return exercise
    return None


def equipment_options(catalog: Sequence[ExerciseDetails]) -> list[str]:
    """Sorted unique equipment tokens appearing in the catalog."""
    tokens: set[str] = set()
    for exercise in catalog:
        tokens.update(split_equipment(exercise.equipment))
    return sorted(tokens)
