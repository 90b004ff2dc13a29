"""Per-user session context passed to every workflow."""

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Set

from .exceptions import ConflictError, ValidationError

DEFAULT_APP_ID = 'expense-tracker-prod'


@dataclass
class EditSession:
    """An expense opened for editing and its description at that moment."""

    expense_id: str
    original_description: str


@dataclass
class SessionContext:
    """
    Identity and workflow state of one authenticated session.

    Every storage key is namespaced by ``owner_id`` so that a session can
    only ever see its own user's documents. The in-flight guards are scoped
    to this object; two sessions for the same user do not coordinate.
    """

    user_id: str
    app_id: str = field(default_factory=lambda: os.environ.get('APP_ID', DEFAULT_APP_ID))
    active_edit: Optional[EditSession] = None
    _in_flight: Set[str] = field(default_factory=set, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        if not self.user_id:
            raise ValidationError("User ID is required")
        if not self.app_id:
            self.app_id = DEFAULT_APP_ID

    @property
    def owner_id(self) -> str:
        return f"{self.app_id}#{self.user_id}"

    @property
    def expenses_topic(self) -> str:
        return f"{self.owner_id}/expenses"

    @property
    def history_topic(self) -> str:
        return f"{self.owner_id}/history"

    def is_running(self, workflow: str) -> bool:
        with self._lock:
            return workflow in self._in_flight

    @contextmanager
    def workflow(self, name: str) -> Iterator[None]:
        """
        Hold the guard for a named workflow while the block runs.

        Raises:
            ConflictError: If the same workflow is already running
        """
        with self._lock:
            if name in self._in_flight:
                raise ConflictError(f"A {name} is already in progress")
            self._in_flight.add(name)

        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(name)
