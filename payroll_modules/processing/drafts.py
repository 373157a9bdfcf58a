"""
Debounced draft auto-save (``payroll_modules.processing.drafts``).

Responsibility
--------------
During batch payroll processing the user edits amounts for many
employees.  ``DraftAutoSaver`` coalesces rapid edits so each employee's
values are written once per quiet window rather than once per keystroke.

Architecture position
---------------------
**Modules layer** -- time comes from the injected ``Clock``; writes go to
a ``DraftWriter`` (``PayrollDraftService`` in production).  The caller
drives ``flush_due()`` from its event loop or timer.

Invariants enforced
-------------------
* One pending draft per employee; a new edit replaces the values and
  resets that employee's deadline only.
* ``flush_due()`` writes each due employee exactly once.
* Storage is last-write-wins.

Failure modes
-------------
* ``PersistenceError`` from the writer is logged and the draft dropped;
  the next edit for that employee schedules a fresh write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol
from uuid import UUID

from payroll_kernel.domain.clock import Clock
from payroll_kernel.exceptions import PersistenceError
from payroll_kernel.logging_config import get_logger
from payroll_modules.processing.models import PayrollDraft
from payroll_modules.structures.config import SalaryConfig

logger = get_logger("modules.processing.drafts")


class DraftWriter(Protocol):
    def save_draft(self, draft: PayrollDraft) -> Any: ...


@dataclass(frozen=True)
class _Pending:
    draft: PayrollDraft
    deadline: datetime


class DraftAutoSaver:
    """Per-employee debounce in front of a ``DraftWriter``."""

    def __init__(self, writer: DraftWriter, clock: Clock, window_seconds: float = 1.0):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._writer = writer
        self._clock = clock
        self._window = timedelta(seconds=window_seconds)
        self._pending: dict[UUID, _Pending] = {}

    @classmethod
    def from_config(cls, writer: DraftWriter, clock: Clock, config: SalaryConfig) -> DraftAutoSaver:
        return cls(writer, clock, window_seconds=config.autosave_debounce_seconds)

    @property
    def pending_employees(self) -> tuple[UUID, ...]:
        return tuple(self._pending)

    def record_edit(self, draft: PayrollDraft) -> None:
        """Schedule ``draft`` for writing once the window passes without edits."""
        deadline = self._clock.now() + self._window
        self._pending[draft.employee_id] = _Pending(draft=draft, deadline=deadline)
        logger.debug(
            "draft_edit_recorded",
            extra={"employee_id": str(draft.employee_id), "deadline": deadline},
        )

    def cancel(self, employee_id: UUID) -> bool:
        return self._pending.pop(employee_id, None) is not None

    def flush_due(self) -> list[PayrollDraft]:
        """Write every draft whose deadline has passed; return the ones written."""
        now = self._clock.now()
        due = [eid for eid, p in self._pending.items() if p.deadline <= now]
        return self._flush(due)

    def flush_all(self) -> list[PayrollDraft]:
        return self._flush(list(self._pending))

    def _flush(self, employee_ids: list[UUID]) -> list[PayrollDraft]:
        written = []
        for employee_id in employee_ids:
            pending = self._pending.pop(employee_id)
            try:
                self._writer.save_draft(pending.draft)
            except PersistenceError as exc:
                logger.warning(
                    "draft_autosave_failed",
                    extra={"employee_id": str(employee_id), "detail": exc.detail},
                )
                continue
            written.append(pending.draft)
        if written:
            logger.info("drafts_autosaved", extra={"count": len(written)})
        return written
