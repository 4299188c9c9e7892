"""
JSONL-based storage for logged workouts.

One file per user, one workout log per line, kept in chronological order.
"""

import json
import re
from pathlib import Path

from ..core.config import get_data_dir
from ..core.models import WorkoutLog
from .serializers import ValidationError, dict_to_workout_log, workout_log_to_json_line


class WorkoutLogStore:
    """
    Manages a user's workout logs stored in JSONL format.

    Lines are appended in timestamp order; an out-of-order log triggers a
    full rewrite so the file stays sorted.
    """

    def __init__(self, log_path: str | Path):
        """
        Initialize the log store.

        Args:
            log_path: Path to the JSONL log file
        """
        self.log_path = Path(log_path)

    def exists(self) -> bool:
        """Check if the log file exists."""
        return self.log_path.exists()

    def init(self) -> None:
        """Create an empty log file (and parent directories) if missing."""
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.log_path.exists():
            self.log_path.touch()

    def load_logs(self) -> list[WorkoutLog]:
        """
        Load all workout logs, sorted by timestamp.

        A missing file means no logs yet.

        Raises:
            ValidationError: If a line cannot be parsed
        """
        if not self.log_path.exists():
            return []

        logs: list[WorkoutLog] = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    logs.append(dict_to_workout_log(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.log_path}: {e}"
                    ) from e

        logs.sort(key=lambda log: log.timestamp)
        return logs

    def append(self, log: WorkoutLog) -> None:
        """Append a log, keeping the file in chronological order."""
        self.init()
        logs = self.load_logs()
        if logs and log.timestamp < logs[-1].timestamp:
            logs.append(log)
            logs.sort(key=lambda entry: entry.timestamp)
            self._write_logs(logs)
            return
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(workout_log_to_json_line(log) + "\n")

    def _write_logs(self, logs: list[WorkoutLog]) -> None:
        with open(self.log_path, "w", encoding="utf-8") as f:
            for log in logs:
                f.write(workout_log_to_json_line(log) + "\n")


def get_default_log_path(user_id: str, base_dir: str | Path | None = None) -> Path:
    """
    Log file for a user: <base dir>/logs/<user_id>.jsonl.

    The user id is reduced to safe filename characters, so the path never
    leaves the logs directory.
    """
    base = Path(base_dir) if base_dir is not None else get_data_dir()
    safe = re.sub(r"[^A-Za-z0-9_.@-]", "_", user_id)
    return base / "logs" / f"{safe}.jsonl"
