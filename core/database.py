"""Database operations for appointments.

Table: appointments. Appointments are only ever inserted here; there is
no update or delete path.
"""

from contextlib import contextmanager
from typing import Iterator

from psycopg2.extras import RealDictCursor

from clients.postgres_client import PostgresClient
from core.models import Appointment, AppointmentCreate

_APPOINTMENT_COLUMNS = "id, user_id, name, appointment_date, duration_minutes, notes"

_SELECT_BY_USER = f"""SELECT {_APPOINTMENT_COLUMNS} FROM appointments
    WHERE user_id = %s
    ORDER BY id"""

_INSERT_APPOINTMENT = f"""INSERT INTO appointments (user_id, name, appointment_date, duration_minutes, notes)
    VALUES (%s, %s, %s, %s, %s)
    RETURNING {_APPOINTMENT_COLUMNS}"""

# Namespace for pg_advisory_xact_lock(int, int) so schedule locks never
# collide with other advisory locks
_SCHEDULE_LOCK_NAMESPACE = 7301


def _insert_params(data: AppointmentCreate) -> tuple:
    return (
        data.user_id,
        data.name,
        data.appointment_date,
        data.duration_minutes,
        data.notes,
    )


class ScheduleTransaction:
    """A user's schedule, read and written inside one locked transaction."""

    def __init__(self, cursor: RealDictCursor, user_id: int):
        self._cur = cursor
        self.user_id = user_id

    def get_appointments(self) -> list[Appointment]:
        self._cur.execute(_SELECT_BY_USER, (self.user_id,))
        return [Appointment.model_validate(dict(row)) for row in self._cur.fetchall()]

    def save_appointment(self, data: AppointmentCreate) -> Appointment:
        if data.user_id != self.user_id:
            raise ValueError("Appointment owner does not match locked schedule")
        self._cur.execute(_INSERT_APPOINTMENT, _insert_params(data))
        return Appointment.model_validate(dict(self._cur.fetchone()))


class AppointmentDatabase:
    """Database operations for appointments."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_appointments_by_user_id(self, user_id: int) -> list[Appointment]:
        """All appointments owned by user, in storage order."""
        rows = self._db.execute(_SELECT_BY_USER, (user_id,))
        return [Appointment.model_validate(row) for row in rows]

    def save_appointment(self, data: AppointmentCreate) -> Appointment:
        """Insert an appointment."""
        rows = self._db.execute_returning(_INSERT_APPOINTMENT, _insert_params(data))
        return Appointment.model_validate(rows[0])

    @contextmanager
    def schedule_lock(self, user_id: int) -> Iterator[ScheduleTransaction]:
        """
        Serialize schedule changes for one user.

        Holds a transaction-scoped advisory lock keyed by user_id until the
        block exits, so a check-then-insert inside the block cannot race
        another one for the same user.
        """
        with self._db.transaction() as cur:
            cur.execute(
                "SELECT pg_advisory_xact_lock(%s, %s)",
                (_SCHEDULE_LOCK_NAMESPACE, user_id),
            )
            yield ScheduleTransaction(cur, user_id)
