"""Persistent per-day acknowledgment state for medication reminders.

One row per (calendar date, medication). Rows are created lazily on the first
due-check of a day and updated by the scheduler (new message) and by the
acknowledgment handler (taken). Rows are never deleted here.

Backed by SQLite through SQLAlchemy. The unique constraint on
``(date, medication_name)`` serializes concurrent creation; status updates
are single-row ``UPDATE`` statements.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


class StoreError(Exception):
    """Error reading or writing reminder state."""


class RecordNotFoundError(StoreError):
    """No reminder row exists for the given id."""


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class ReminderRow(Base):
    __tablename__ = "reminders"
    __table_args__ = (
        sa.UniqueConstraint("date", "medication_name", name="uq_reminders_date_med"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    medication_name: Mapped[str] = mapped_column(sa.String, nullable=False)
    acknowledged: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    last_reminder_time: Mapped[datetime.datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    message_id: Mapped[str] = mapped_column(sa.String, default="")


@dataclass(frozen=True)
class ReminderRecord:
    """Snapshot of one reminder row, detached from the database session."""

    id: int
    date: str
    medication_name: str
    acknowledged: bool = False
    message_id: str = ""
    last_reminder_time: datetime.datetime | None = None

    @classmethod
    def from_row(cls, row: ReminderRow) -> ReminderRecord:
        sent_at = row.last_reminder_time
        # SQLite drops the offset; values are always written in UTC.
        if sent_at is not None and sent_at.tzinfo is None:
            sent_at = sent_at.replace(tzinfo=datetime.UTC)
        return cls(
            id=row.id,
            date=row.date,
            medication_name=row.medication_name,
            acknowledged=bool(row.acknowledged),
            message_id=row.message_id or "",
            last_reminder_time=sent_at,
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ReminderStore:
    """SQLite-backed reminder state.

    Args:
        db_path: SQLite database file path.
        tz: Timezone that defines the calendar day.
        clock: Callable returning the current aware datetime (for testing).
        timeout_s: Upper bound on waiting for a database lock.

    Raises:
        StoreError: If the database cannot be opened or the schema created.
    """

    def __init__(
        self,
        db_path: str,
        *,
        tz: datetime.tzinfo = datetime.UTC,
        clock: Callable[[], datetime.datetime] | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.db_path = db_path
        self.tz = tz
        self._clock = clock or (lambda: datetime.datetime.now(datetime.UTC))
        self._closed = False
        self._engine = sa.create_engine(
            f"sqlite:///{db_path}",
            connect_args={"timeout": timeout_s, "check_same_thread": False},
        )
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        try:
            with self._engine.connect() as conn:
                conn.execute(sa.text("SELECT 1"))
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            self._engine.dispose()
            raise StoreError(f"failed to initialize database {db_path}: {exc}") from exc
        logger.info("Reminder store opened at %s", db_path)

    def close(self) -> None:
        """Dispose of the connection pool. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._engine.dispose()

    def now(self) -> datetime.datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def today(self) -> str:
        """Today's date (YYYY-MM-DD) in the store's timezone."""
        return self.now().astimezone(self.tz).date().isoformat()

    def get_today_reminder(self, medication_name: str) -> ReminderRecord:
        """Get or create today's reminder row for a medication.

        A concurrent creator winning the unique constraint is not an error:
        the row it created is re-read and returned.

        Raises:
            StoreError: On any database failure.
        """
        today = self.today()
        try:
            with self._sessions() as session:
                row = self._select(session, today, medication_name)
                if row is not None:
                    return ReminderRecord.from_row(row)

                row = ReminderRow(
                    date=today,
                    medication_name=medication_name,
                    acknowledged=False,
                    message_id="",
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.debug(
                        "Reminder for %s on %s created concurrently, re-reading",
                        medication_name,
                        today,
                    )
                    row = self._select(session, today, medication_name)
                    if row is None:
                        raise StoreError(
                            f"reminder for {medication_name} on {today} vanished "
                            "after a unique-constraint conflict"
                        ) from None
                else:
                    logger.info("Created reminder for %s on %s", medication_name, today)
                return ReminderRecord.from_row(row)
        except SQLAlchemyError as exc:
            raise StoreError(
                f"failed to get reminder for {medication_name}: {exc}"
            ) from exc

    def update_reminder_status(
        self,
        record_id: int,
        acknowledged: bool,
        message_id: str,
    ) -> bool:
        """Record a new message reference and, optionally, the acknowledgment.

        With ``acknowledged`` True the row changes only if it is not
        acknowledged yet, so of two concurrent acknowledgments exactly one
        flips it. With ``acknowledged`` False the message reference and the
        last-reminder time are always set and an acknowledged row stays
        acknowledged.

        The write and the read of the previous state share one transaction.

        Returns:
            True if the row was already acknowledged before this call.

        Raises:
            RecordNotFoundError: If no row has this id.
            StoreError: On any other database failure.
        """
        values = {
            "message_id": message_id,
            "last_reminder_time": self.now().astimezone(datetime.UTC),
        }
        stmt = sa.update(ReminderRow).where(ReminderRow.id == record_id)
        if acknowledged:
            stmt = stmt.where(ReminderRow.acknowledged == sa.false()).values(
                acknowledged=sa.true(), **values
            )
        else:
            stmt = stmt.values(**values)
        stmt = stmt.execution_options(synchronize_session=False)

        try:
            with self._sessions() as session:
                updated = session.execute(stmt).rowcount
                if acknowledged and updated:
                    was_acknowledged: bool | None = False
                else:
                    was_acknowledged = session.scalar(
                        sa.select(ReminderRow.acknowledged).where(
                            ReminderRow.id == record_id
                        )
                    )
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to update reminder {record_id}: {exc}") from exc
        if was_acknowledged is None:
            raise RecordNotFoundError(f"reminder {record_id} does not exist")
        return bool(was_acknowledged)

    @staticmethod
    def _select(session: Session, date: str, medication_name: str) -> ReminderRow | None:
        return session.scalars(
            sa.select(ReminderRow).where(
                ReminderRow.date == date,
                ReminderRow.medication_name == medication_name,
            )
        ).first()
