"""
Optimistic write tracking.

A caller shows a new value immediately and persists it afterwards.  The
write moves through

    idle -> optimistic -> confirmed
                       -> rolled_back

and ``value`` always reflects what the caller should display: the
optimistic value while the write is in flight, the persisted value once
confirmed, and the last confirmed value after a rollback.
"""

import logging
from typing import Callable, Generic, Literal, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

WriteState = Literal["idle", "optimistic", "confirmed", "rolled_back"]


class PendingWriteError(RuntimeError):
    """Raised on an invalid state transition."""

    pass


class PendingWrite(Generic[T]):
    def __init__(self, confirmed: T):
        self.state: WriteState = "idle"
        self.confirmed: T = confirmed
        self.optimistic: T | None = None
        self.error: Exception | None = None

    @property
    def value(self) -> T:
        if self.state == "optimistic" and self.optimistic is not None:
            return self.optimistic
        return self.confirmed

    @property
    def in_flight(self) -> bool:
        return self.state == "optimistic"

    def begin(self, value: T) -> None:
        if self.in_flight:
            raise PendingWriteError("a write is already pending")
        self.state = "optimistic"
        self.optimistic = value
        self.error = None

    def confirm(self, persisted: T | None = None) -> T:
        """Accept the write; ``persisted`` replaces the optimistic value if given."""
        if self.state != "optimistic":
            raise PendingWriteError(f"cannot confirm from state {self.state!r}")
        self.confirmed = persisted if persisted is not None else self.optimistic  # type: ignore[assignment]
        self.optimistic = None
        self.state = "confirmed"
        return self.confirmed

    def rollback(self, error: Exception) -> T:
        """Discard the optimistic value and go back to the last confirmed one."""
        if self.state != "optimistic":
            raise PendingWriteError(f"cannot roll back from state {self.state!r}")
        LOGGER.warning("rolled back optimistic write: %s", error)
        self.optimistic = None
        self.error = error
        self.state = "rolled_back"
        return self.confirmed

    def run(self, value: T, persist: Callable[[T], T]) -> T:
        """
        begin(value), call persist(value), then confirm or roll back.

        Errors from ``persist`` are re-raised after the rollback.
        """
        self.begin(value)
        try:
            persisted = persist(value)
        except Exception as e:
            self.rollback(e)
            raise
        return self.confirm(persisted)
