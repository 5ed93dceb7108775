"""Form state for the service modal and stale-fetch protection.

These objects hold the state a client application keeps per form or per
list view. Nothing here is global: each form or view owns its instance.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class ModalState(str, enum.Enum):
    CLOSED = "closed"
    OPEN_CREATE = "open_create"
    OPEN_EDIT = "open_edit"
    SUBMITTING = "submitting"


class ModalTransitionError(RuntimeError):
    """Raised when an action is not allowed in the current state."""


@dataclass(slots=True)
class SubmitOutcome:
    accepted: bool
    succeeded: bool = False
    error: str | None = None


@dataclass
class ServiceModal:
    """Closed -> Open(create|edit) -> Submitting -> Closed.

    A failed save returns to the open state it came from with the entered
    values untouched and the error kept for display.
    """

    state: ModalState = ModalState.CLOSED
    values: dict[str, Any] = field(default_factory=dict)
    editing_id: str | None = None
    error: str | None = None
    _return_state: ModalState | None = field(default=None, repr=False)

    @property
    def is_open(self) -> bool:
        return self.state in {ModalState.OPEN_CREATE, ModalState.OPEN_EDIT}

    @property
    def is_submitting(self) -> bool:
        return self.state is ModalState.SUBMITTING

    def open_create(self, defaults: dict[str, Any] | None = None) -> None:
        if self.state is not ModalState.CLOSED:
            raise ModalTransitionError(f"Cannot open a new form while {self.state.value}.")
        self.state = ModalState.OPEN_CREATE
        self.values = dict(defaults or {})
        self.editing_id = None
        self.error = None

    def open_edit(self, service_id: str, values: dict[str, Any]) -> None:
        if self.state is not ModalState.CLOSED:
            raise ModalTransitionError(f"Cannot open an edit form while {self.state.value}.")
        self.state = ModalState.OPEN_EDIT
        self.values = dict(values)
        self.editing_id = service_id
        self.error = None

    def update(self, **changes: Any) -> None:
        if not self.is_open:
            raise ModalTransitionError("Form values can only change while the form is open.")
        self.values.update(changes)

    def _reset(self) -> None:
        self.state = ModalState.CLOSED
        self.values = {}
        self.editing_id = None
        self.error = None
        self._return_state = None

    def close(self) -> None:
        if self.is_submitting:
            raise ModalTransitionError("Cannot close the form while a save is in flight.")
        self._reset()

    def begin_submit(self) -> bool:
        """Enter ``SUBMITTING``; ``False`` when already submitting or closed."""

        if not self.is_open:
            return False
        self._return_state = self.state
        self.state = ModalState.SUBMITTING
        self.error = None
        return True

    def finish_submit(self, *, error: str | None = None) -> None:
        if not self.is_submitting:
            raise ModalTransitionError("No save is in flight.")
        if error is None:
            self._reset()
            return
        self.state = self._return_state or ModalState.OPEN_CREATE
        self._return_state = None
        self.error = error

    def submit(self, save: Callable[[str | None, dict[str, Any]], Any]) -> SubmitOutcome:
        """Run ``save(editing_id, values)`` guarded by the submitting state.

        Exceptions from ``save`` are reported as a failed outcome; the user
        can correct the input and retry.
        """

        if not self.begin_submit():
            return SubmitOutcome(accepted=False)
        try:
            save(self.editing_id, dict(self.values))
        except Exception as exc:
            logger.warning("Service save failed: %s", exc)
            self.finish_submit(error=str(exc) or exc.__class__.__name__)
            return SubmitOutcome(accepted=True, succeeded=False, error=self.error)
        self.finish_submit()
        return SubmitOutcome(accepted=True, succeeded=True)


@dataclass
class FetchGeneration:
    """Generation counter so only the latest started fetch gets applied.

    ``begin()`` hands out a token; ``is_current(token)`` is checked when the
    response arrives and older tokens are dropped.
    """

    current: int = 0

    def begin(self) -> int:
        self.current += 1
        return self.current

    def is_current(self, token: int) -> bool:
        return token == self.current

    def apply_if_current(self, token: int, apply: Callable[[], None]) -> bool:
        if not self.is_current(token):
            logger.debug("Dropping stale fetch result (token=%s, current=%s)", token, self.current)
            return False
        apply()
        return True
