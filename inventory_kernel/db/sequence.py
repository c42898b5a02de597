"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Hands out the next value of a named sequence (one name per reference
    number key, e.g. ``PI-20240315``).  The counter row is read with
    ``SELECT ... FOR UPDATE`` so concurrent allocations for the same name
    serialize on the database, across processes.

Architecture position:
    Kernel > DB.  Called by SqlDocumentRepository inside the transaction
    that stores the submitted document.

Invariants enforced:
    - The locked counter row is the only source of the next value; the
      highest stored reference number is never consulted.
    - The increment is visible only once the caller's transaction commits.
      A rolled-back submit returns its value.

Failure modes:
    - IntegrityError on a concurrent first use of a name, handled by a
      savepoint rollback and a locked re-read.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.sequence")


class SequenceCounter(Base):
    """Current value of one named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, default=0)


class SequenceService:
    """
    Transactional sequence numbers.

    Does not commit; the caller owns the transaction.

    Usage:
        with session_factory() as session:
            value = SequenceService(session).next_value("SA-20240315")
            ...
            session.commit()
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked(self, name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """Lock the counter for ``name`` (creating it on first use) and increment it."""
        counter = self._locked(name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug("sequence_allocated", extra={"sequence_name": name, "value": 1})
                return 1
            except IntegrityError:
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
                savepoint.rollback()
                self._session.expire_all()
                counter = self._locked(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value
