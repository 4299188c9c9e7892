"""
Profile repositories: the persistence boundary of the engine.

A repository owns one profile document per user and offers

* get(user_id, now)         - load, self-heal, and decay-on-read
* save(user_id, partial)    - last-write-wins merge of some fields
* compare_and_save(profile) - write iff the stored version still matches
* update(user_id, fn)       - optimistic read-modify-write with retries

Quota check-then-increment goes through update(), so two sessions racing on
the same profile cannot both spend the last hide of the day.

Reads and writes of one document are serialized by a per-instance lock.
JsonProfileRepository also holds a lock file next to the document, so
separate processes (or repository instances) cannot both pass the version
check before either writes.
"""

import json
import logging
import os
import re
import threading
import time
from contextlib import contextmanager, nullcontext
from dataclasses import fields, replace
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Callable, ContextManager, Iterator, Protocol, TypeVar

from ..core.config import (
    CAS_RETRIES,
    LOCK_POLL_SECONDS,
    LOCK_TIMEOUT_SECONDS,
    STALE_LOCK_SECONDS,
    get_data_dir,
)
from ..core.models import UserProfile
from ..core.muscle_scores import decay_muscle_scores, needs_decay
from .serializers import (
    ValidationError,
    default_subscription,
    dict_to_user_profile,
    user_profile_to_dict,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_PROFILE_FIELDS = {f.name for f in fields(UserProfile)} - {"user_id", "version"}


class ConflictError(Exception):
    """Raised when a compare-and-swap write loses against another writer."""

    pass


class ProfileNotFoundError(KeyError):
    """Raised for an unknown user when the repository does not auto-create."""

    pass


class ProfileRepository(Protocol):
    def get(self, user_id: str, now: datetime | None = None) -> UserProfile: ...

    def save(self, user_id: str, partial: dict[str, Any]) -> UserProfile: ...

    def compare_and_save(self, profile: UserProfile) -> UserProfile: ...

    def update(
        self,
        user_id: str,
        fn: Callable[[UserProfile], tuple[T, UserProfile]],
        now: datetime | None = None,
        retries: int = CAS_RETRIES,
    ) -> tuple[T, UserProfile]: ...


class BaseProfileRepository:
    """
    Shared repository logic; subclasses provide raw document storage.

    Subclasses implement _read(user_id) -> dict | None and
    _write(user_id, document).  Both are called with self._lock held; every
    write also happens inside _document_lock(user_id), which subclasses may
    override to guard against other processes.
    """

    def __init__(self, auto_create: bool = True):
        self.auto_create = auto_create
        self._lock = threading.RLock()

    # -- storage hooks -----------------------------------------------------

    def _read(self, user_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def _write(self, user_id: str, document: dict[str, Any]) -> None:
        raise NotImplementedError

    def _document_lock(self, user_id: str) -> ContextManager[None]:
        return nullcontext()

    # -- helpers -------------------------------------------------------------

    def _load_locked(self, user_id: str) -> UserProfile:
        data = self._read(user_id)
        if data is None:
            if not self.auto_create:
                raise ProfileNotFoundError(user_id)
            profile = UserProfile(user_id=user_id, subscription=default_subscription())
            self._write(user_id, user_profile_to_dict(profile))
            LOGGER.info("created profile for %s", user_id)
            return profile

        profile = dict_to_user_profile(data, user_id=user_id)
        if profile.subscription is None:
            profile = replace(
                profile,
                subscription=default_subscription(),
                version=profile.version + 1,
            )
            self._write(user_id, user_profile_to_dict(profile))
            LOGGER.info("repaired profile %s: added default subscription", user_id)
        return profile

    # -- public API ----------------------------------------------------------

    def exists(self, user_id: str) -> bool:
        with self._lock:
            return self._read(user_id) is not None

    def get(self, user_id: str, now: datetime | None = None) -> UserProfile:
        """
        Load a profile snapshot with muscle scores decayed as of ``now``.

        The decayed values are not written back; the next save persists them.
        """
        with self._lock, self._document_lock(user_id):
            profile = self._load_locked(user_id)
        if not needs_decay(profile.muscle_scores, now):
            return profile
        return replace(profile, muscle_scores=decay_muscle_scores(profile.muscle_scores, now))

    def save(self, user_id: str, partial: dict[str, Any]) -> UserProfile:
        """
        Merge the given fields into the stored profile (last write wins).

        Raises:
            ValueError: If ``partial`` names an unknown field
        """
        unknown = set(partial) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
        with self._lock, self._document_lock(user_id):
            current = self._load_locked(user_id)
            updated = replace(current, **partial, version=current.version + 1)
            self._write(user_id, user_profile_to_dict(updated))
            return updated

    def compare_and_save(self, profile: UserProfile) -> UserProfile:
        """
        Write a full profile iff nobody wrote since it was read.

        Raises:
            ConflictError: If the stored version differs from profile.version
        """
        with self._lock, self._document_lock(profile.user_id):
            stored = self._load_locked(profile.user_id)
            if stored.version != profile.version:
                raise ConflictError(
                    f"profile {profile.user_id} changed "
                    f"(expected v{profile.version}, found v{stored.version})"
                )
            updated = replace(profile, version=profile.version + 1)
            self._write(profile.user_id, user_profile_to_dict(updated))
            return updated

    def update(
        self,
        user_id: str,
        fn: Callable[[UserProfile], tuple[T, UserProfile]],
        now: datetime | None = None,
        retries: int = CAS_RETRIES,
    ) -> tuple[T, UserProfile]:
        """
        Optimistic read-modify-write.

        ``fn`` receives a fresh snapshot and returns (result, new_profile).
        If it returns the snapshot itself nothing is written.

        Raises:
            ConflictError: If every attempt lost against a concurrent writer
        """
        for attempt in range(retries + 1):
            snapshot = self.get(user_id, now)
            result, new_profile = fn(snapshot)
            if new_profile is snapshot:
                return result, snapshot
            try:
                return result, self.compare_and_save(new_profile)
            except ConflictError:
                LOGGER.debug("CAS conflict on %s (attempt %d)", user_id, attempt + 1)
        raise ConflictError(f"gave up updating {user_id} after {retries + 1} attempts")


class InMemoryProfileRepository(BaseProfileRepository):
    """Thread-safe dict-backed repository (tests, embedding)."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None, auto_create: bool = True):
        super().__init__(auto_create=auto_create)
        self._documents: dict[str, dict[str, Any]] = {
            k: json.loads(json.dumps(v)) for k, v in (documents or {}).items()
        }

    def _read(self, user_id: str) -> dict[str, Any] | None:
        doc = self._documents.get(user_id)
        return json.loads(json.dumps(doc)) if doc is not None else None

    def _write(self, user_id: str, document: dict[str, Any]) -> None:
        self._documents[user_id] = json.loads(json.dumps(document))

    def raw(self, user_id: str) -> dict[str, Any] | None:
        """Stored document (copy), for inspection."""
        with self._lock:
            return self._read(user_id)


class JsonProfileRepository(BaseProfileRepository):
    """
    One ``<user_id>.json`` document per user under a directory.

    Writes go to a temporary file that replaces the target atomically.
    Each read-check-write holds ``<user_id>.json.lock``, created with
    O_CREAT | O_EXCL; a lock older than ``stale_lock_seconds`` is assumed
    to belong to a crashed process and is removed.
    """

    def __init__(
        self,
        directory: str | Path | None = None,
        auto_create: bool = True,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
        stale_lock_seconds: float = STALE_LOCK_SECONDS,
    ):
        super().__init__(auto_create=auto_create)
        self.directory = Path(directory) if directory is not None else get_data_dir() / "profiles"
        self.lock_timeout = lock_timeout
        self.stale_lock_seconds = stale_lock_seconds

    def path_for(self, user_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.@-]", "_", user_id)
        return self.directory / f"{safe}.json"

    def lock_path_for(self, user_id: str) -> Path:
        path = self.path_for(user_id)
        return path.with_name(path.name + ".lock")

    @contextmanager
    def _document_lock(self, user_id: str) -> Iterator[None]:
        lock_path = self.lock_path_for(user_id)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                break
            except FileExistsError:
                try:
                    age = time.time() - lock_path.stat().st_mtime
                except FileNotFoundError:
                    continue
                if age > self.stale_lock_seconds:
                    LOGGER.warning("removing stale lock %s (%.0fs old)", lock_path, age)
                    lock_path.unlink(missing_ok=True)
                    continue
                if time.monotonic() >= deadline:
                    raise ConflictError(f"profile {user_id} is locked by another writer")
                time.sleep(LOCK_POLL_SECONDS)

        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        try:
            yield
        finally:
            lock_path.unlink(missing_ok=True)

    def _read(self, user_id: str) -> dict[str, Any] | None:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Corrupt profile file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Corrupt profile file {path}: not an object")
        return data

    def _write(self, user_id: str, document: dict[str, Any]) -> None:
        path = self.path_for(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(document, indent=2, sort_keys=True) + "\n"
        with NamedTemporaryFile("w", dir=path.parent, delete=False, encoding="utf-8") as tmp:
            tmp.write(payload)
            temp_path = Path(tmp.name)
        temp_path.replace(path)
