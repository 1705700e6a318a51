"""
Best-effort side effects -- the second phase of a two-phase write.

Responsibility:
    Runs an operation whose failure must not undo or block the primary
    write that preceded it (audit delivery, ledger posting triggered by
    an invoice being sent or paid).  Every attempt produces a
    ``SideEffectOutcome``; outcomes are logged and counted so operators
    can see drift, e.g. invoices with no ledger entry.

Architecture position:
    Kernel > Services -- infrastructure used by the audit log wrapper
    and by ``ledger_modules.integrations``.

Invariants enforced:
    - The primary write is never rolled back by a side-effect failure:
      when a session is given, the side effect runs inside a SAVEPOINT
      and only that savepoint is rolled back.
    - Failures are never silent: each one is logged at ERROR with the
      exception and counted in ``SideEffectTelemetry``.
    - Log lines written while the operation runs carry
      ``side_effect=<kind>`` through ``LogContext``.

Failure modes:
    - None propagate.  ``BaseException`` subclasses that are not
      ``Exception`` (KeyboardInterrupt, SystemExit) are not caught.
"""

import threading
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from ledger_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.side_effects")


class SideEffectStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SideEffectOutcome:
    """Result of one best-effort attempt."""

    kind: str
    status: SideEffectStatus
    result: Any = None
    reason: str | None = None
    error_type: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == SideEffectStatus.SUCCEEDED


class SideEffectTelemetry:
    """
    In-process counters keyed by (kind, status).

    Exporters (Prometheus, StatsD, ...) read ``snapshot()``; this class
    only counts.
    """

    def __init__(self) -> None:
        self._counts: Counter[tuple[str, SideEffectStatus]] = Counter()
        self._last_failure: dict[str, SideEffectOutcome] = {}
        self._lock = threading.Lock()

    def record(self, outcome: SideEffectOutcome) -> None:
        with self._lock:
            self._counts[(outcome.kind, outcome.status)] += 1
            if outcome.status == SideEffectStatus.FAILED:
                self._last_failure[outcome.kind] = outcome

    def count(self, kind: str, status: SideEffectStatus) -> int:
        with self._lock:
            return self._counts[(kind, status)]

    def last_failure(self, kind: str) -> SideEffectOutcome | None:
        with self._lock:
            return self._last_failure.get(kind)

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            out: dict[str, dict[str, int]] = {}
            for (kind, status), n in self._counts.items():
                out.setdefault(kind, {})[status.value] = n
            return out


def skipped(
    kind: str,
    reason: str,
    telemetry: SideEffectTelemetry | None = None,
    context: dict[str, Any] | None = None,
) -> SideEffectOutcome:
    """Record a deliberate skip (precondition not met, nothing attempted)."""
    outcome = SideEffectOutcome(kind=kind, status=SideEffectStatus.SKIPPED, reason=reason)
    logger.warning(
        "side_effect_skipped",
        extra={"side_effect": kind, "reason": reason, **(context or {})},
    )
    if telemetry is not None:
        telemetry.record(outcome)
    return outcome


def run_best_effort(
    kind: str,
    operation: Callable[[], Any],
    *,
    session: Session | None = None,
    telemetry: SideEffectTelemetry | None = None,
    context: dict[str, Any] | None = None,
) -> SideEffectOutcome:
    """
    Run ``operation`` and turn any ``Exception`` into a FAILED outcome.

    Args:
        kind: Stable name for logs and counters (``"audit"``,
            ``"ledger.invoice"``).
        operation: Zero-argument callable doing the side effect.
        session: When given, the operation runs in a SAVEPOINT of this
            session so its partial writes roll back alone.
        telemetry: Counter sink.
        context: Extra structured log fields.
    """
    fields = {"side_effect": kind, **(context or {})}
    try:
        with LogContext.bind(side_effect=kind):
            if session is not None:
                with session.begin_nested():
                    result = operation()
            else:
                result = operation()
    except Exception as exc:
        outcome = SideEffectOutcome(
            kind=kind,
            status=SideEffectStatus.FAILED,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        logger.error("side_effect_failed", extra=fields, exc_info=True)
    else:
        outcome = SideEffectOutcome(kind=kind, status=SideEffectStatus.SUCCEEDED, result=result)
        logger.debug("side_effect_succeeded", extra=fields)

    if telemetry is not None:
        telemetry.record(outcome)
    return outcome
