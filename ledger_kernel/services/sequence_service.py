"""
SequenceService -- atomic counter allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers per named sequence.  Journal
    entry numbers use one sequence per tenant per fiscal year
    (``journal_entry:{tenant_id}:{year}``), rendered as ``JE-{year}-0001``.

Architecture position:
    Kernel > Services -- infrastructure.  Called by JournalService.

Invariants enforced:
    - Allocation is a single read-modify-write on a row held with
      ``SELECT ... FOR UPDATE``.  Reading ``max(entry_number) + 1`` is
      never used: two concurrent callers would both see the same max.
    - The increment is only visible once the caller's transaction
      commits; a rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first-use insert of the counter row,
      handled by rolling back a savepoint and re-reading with the lock.

Audit relevance:
    Allocation is logged at DEBUG with sequence_name and value.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One row per named sequence holding its last issued value."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


def journal_sequence_name(tenant_id: str, year: int) -> str:
    return f"journal_entry:{tenant_id}:{year}"


def format_entry_number(year: int, value: int) -> str:
    """``JE-2026-0001``; widens past 9999 instead of wrapping."""
    return f"JE-{year}-{value:04d}"


class SequenceService:
    """
    Transactional sequence numbers.

    Contract:
        ``next_value(name)`` returns a value strictly greater than any
        value previously committed for ``name``.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT guarantee gap-free numbering across rolled-back
          transactions on databases without row locks (SQLite serializes
          writers instead).
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the counter row, increment it, return the new value.

        Preconditions:
            - The caller is inside an active transaction.
        Postconditions:
            - Returns an integer > 0.
            - The counter row stays locked until the transaction ends.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                # Another transaction created the row first
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def next_entry_number(self, tenant_id: str, year: int) -> tuple[int, str]:
        """
        Allocate the next journal entry number for a tenant's fiscal year.

        Returns ``(value, entry_number)``.  Order by the integer: the
        rendered number widens past 9999 and stops sorting as text.
        """
        value = self.next_value(journal_sequence_name(tenant_id, year))
        return value, format_entry_number(year, value)
