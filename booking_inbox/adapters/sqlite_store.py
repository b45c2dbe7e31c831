"""
SQLite adapter for RecordStore.

Use ":memory:" for tests, a file path for production.  Datetimes are kept
twice: ISO text (with offset) for reading back, epoch seconds (``*_ts``)
for range queries.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from booking_inbox.domain.segments import ServiceType, segments_from_json, segments_to_json
from booking_inbox.domain.store import (
    Booking,
    BookingStatus,
    Client,
    DuplicateMessageError,
    Message,
    Pet,
    RecordStore,
    RecordStoreError,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS clients (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    phone       TEXT NOT NULL UNIQUE,
    name        TEXT,
    trusted     INTEGER NOT NULL DEFAULT 0,
    is_private  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS bookings (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    source      TEXT NOT NULL DEFAULT 'SMS',
    client_name TEXT,
    client_phone TEXT,
    rover_relay TEXT,
    client_email TEXT,
    dogs_count  INTEGER NOT NULL DEFAULT 1,
    service_type TEXT NOT NULL DEFAULT 'Unspecified',
    start_at    TEXT NOT NULL,
    start_ts    REAL NOT NULL,
    end_at      TEXT NOT NULL,
    end_ts      REAL NOT NULL,
    status      TEXT NOT NULL DEFAULT 'PENDING',
    notes       TEXT NOT NULL DEFAULT '',
    client_id   INTEGER REFERENCES clients(id),
    created_at  TEXT NOT NULL,
    created_ts  REAL NOT NULL,
    updated_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS bookings_phone ON bookings(client_phone);
CREATE INDEX IF NOT EXISTS bookings_relay ON bookings(rover_relay);

CREATE TABLE IF NOT EXISTS messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    eid         TEXT NOT NULL UNIQUE,
    platform    TEXT NOT NULL,
    thread_id   TEXT NOT NULL,
    sender      TEXT NOT NULL,
    direction   TEXT NOT NULL DEFAULT 'in',
    channel     TEXT NOT NULL DEFAULT 'SMS',
    body        TEXT NOT NULL,
    received_at TEXT NOT NULL,
    received_ts REAL NOT NULL,
    is_read     INTEGER NOT NULL DEFAULT 0,
    is_booking_candidate INTEGER NOT NULL DEFAULT 0,
    keywords_json TEXT NOT NULL DEFAULT '[]',
    dates_json  TEXT NOT NULL DEFAULT '[]',
    classify_label TEXT,
    classify_score REAL,
    extracted_json TEXT,
    booking_id  INTEGER REFERENCES bookings(id)
);

CREATE TABLE IF NOT EXISTS pets (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    booking_id  INTEGER NOT NULL REFERENCES bookings(id),
    client_id   INTEGER REFERENCES clients(id),
    age_months  INTEGER,
    weight_lbs  REAL
);
"""

_MESSAGE_FIELDS = {
    "platform", "thread_id", "sender", "direction", "channel", "body", "received_at",
    "is_read", "is_booking_candidate", "keywords", "segments", "classify_label",
    "classify_score", "extracted_json", "booking_id",
}
_BOOKING_FIELDS = {
    "source", "client_name", "client_phone", "rover_relay", "client_email", "dogs_count",
    "service_type", "start_at", "end_at", "status", "notes", "client_id", "created_at",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


@contextmanager
def _guard():
    """Translate sqlite3 failures into the port's errors."""
    try:
        yield
    except sqlite3.Error as exc:
        raise RecordStoreError(str(exc)) from exc


def _columns(patch: dict, allowed: set[str], kind: str) -> dict:
    """Map dataclass field names onto column values."""
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"unknown {kind} fields: {sorted(unknown)}")
    cols = {}
    for key, value in patch.items():
        if key == "keywords":
            cols["keywords_json"] = json.dumps(list(value), ensure_ascii=False)
        elif key == "segments":
            cols["dates_json"] = segments_to_json(value)
        elif key in ("received_at", "start_at", "end_at", "created_at"):
            cols[key] = value.isoformat()
            cols[key.replace("_at", "_ts")] = value.timestamp()
        elif key in ("is_read", "is_booking_candidate"):
            cols[key] = int(bool(value))
        elif key in ("service_type", "status"):
            cols[key] = getattr(value, "value", value)
        else:
            cols[key] = value
    return cols


class SqliteRecordStore(RecordStore):

    def __init__(self, db_path: str = "booking_inbox.db"):
        # the web app calls in from a worker thread
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        self._conn.close()

    def _insert(self, table: str, cols: dict) -> int:
        names = ", ".join(cols)
        marks = ", ".join("?" for _ in cols)
        cur = self._conn.execute(
            f"INSERT INTO {table} ({names}) VALUES ({marks})", tuple(cols.values())
        )
        self._conn.commit()
        assert cur.lastrowid is not None
        return cur.lastrowid

    def _update(self, table: str, row_id: int, cols: dict) -> None:
        assignments = ", ".join(f"{c} = ?" for c in cols)
        cur = self._conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?", (*cols.values(), row_id)
        )
        self._conn.commit()
        if cur.rowcount == 0:
            raise KeyError(row_id)

    # -- messages ------------------------------------------------------------

    async def find_message_by_eid(self, eid: str) -> Message | None:
        with _guard():
            row = self._conn.execute("SELECT * FROM messages WHERE eid = ?", (eid,)).fetchone()
        return self._row_to_message(row) if row else None

    async def create_message(self, message: Message) -> Message:
        cols = {"eid": message.eid}
        cols.update(_columns(
            {f: getattr(message, f) for f in _MESSAGE_FIELDS}, _MESSAGE_FIELDS, "Message"
        ))
        try:
            message_id = self._insert("messages", cols)
        except sqlite3.IntegrityError as exc:
            if "messages.eid" in str(exc):
                raise DuplicateMessageError(message.eid) from exc
            raise RecordStoreError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise RecordStoreError(str(exc)) from exc
        return await self.get_message(message_id)

    async def get_message(self, message_id: int) -> Message | None:
        with _guard():
            row = self._conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        return self._row_to_message(row) if row else None

    async def update_message(self, message_id: int, **patch) -> Message:
        cols = _columns(patch, _MESSAGE_FIELDS, "Message")
        if cols:
            with _guard():
                self._update("messages", message_id, cols)
        message = await self.get_message(message_id)
        if message is None:
            raise KeyError(message_id)
        return message

    async def list_inbound_messages(
        self, since: datetime, only_unlinked: bool = False, limit: int = 5000
    ) -> list[Message]:
        sql = "SELECT * FROM messages WHERE direction = 'in' AND received_ts >= ?"
        if only_unlinked:
            sql += " AND booking_id IS NULL"
        sql += " ORDER BY received_ts, id LIMIT ?"
        with _guard():
            rows = self._conn.execute(sql, (since.timestamp(), limit)).fetchall()
        return [self._row_to_message(r) for r in rows]

    async def mark_read_for_bookings(self, booking_ids: list[int]) -> int:
        if not booking_ids:
            return 0
        marks = ", ".join("?" for _ in booking_ids)
        with _guard():
            cur = self._conn.execute(
                f"UPDATE messages SET is_read = 1 WHERE direction = 'in' AND is_read = 0"
                f" AND booking_id IN ({marks})",
                tuple(booking_ids),
            )
            self._conn.commit()
        return cur.rowcount

    @staticmethod
    def _row_to_message(row) -> Message:
        return Message(
            id=row["id"],
            eid=row["eid"],
            platform=row["platform"],
            thread_id=row["thread_id"],
            sender=row["sender"],
            direction=row["direction"],
            channel=row["channel"],
            body=row["body"],
            received_at=_parse_dt(row["received_at"]),
            is_read=bool(row["is_read"]),
            is_booking_candidate=bool(row["is_booking_candidate"]),
            keywords=json.loads(row["keywords_json"] or "[]"),
            segments=segments_from_json(row["dates_json"]),
            classify_label=row["classify_label"],
            classify_score=row["classify_score"],
            extracted_json=row["extracted_json"],
            booking_id=row["booking_id"],
        )

    # -- bookings ------------------------------------------------------------

    async def find_recent_booking_for_sender(
        self,
        sender: str,
        since: datetime,
        near: datetime | None = None,
        window: timedelta | None = None,
        exclude_ids: tuple[int, ...] = (),
    ) -> Booking | None:
        sql = "SELECT * FROM bookings WHERE (client_phone = ? OR rover_relay = ?) AND created_ts >= ?"
        params: list = [sender, sender, since.timestamp()]
        if near is not None and window is not None:
            sql += " AND start_ts BETWEEN ? AND ?"
            params += [(near - window).timestamp(), (near + window).timestamp()]
        if exclude_ids:
            sql += f" AND id NOT IN ({', '.join('?' for _ in exclude_ids)})"
            params += list(exclude_ids)
        sql += " ORDER BY created_ts DESC, id DESC LIMIT 1"
        with _guard():
            row = self._conn.execute(sql, params).fetchone()
        return self._row_to_booking(row) if row else None

    async def get_booking(self, booking_id: int) -> Booking | None:
        with _guard():
            row = self._conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return self._row_to_booking(row) if row else None

    async def create_booking(self, booking: Booking) -> Booking:
        now = _now()
        values = {f: getattr(booking, f) for f in _BOOKING_FIELDS}
        values["created_at"] = booking.created_at or now
        cols = _columns(values, _BOOKING_FIELDS, "Booking")
        cols["updated_at"] = now.isoformat()
        with _guard():
            booking_id = self._insert("bookings", cols)
        return await self.get_booking(booking_id)

    async def update_booking(self, booking_id: int, **patch) -> Booking:
        cols = _columns(patch, _BOOKING_FIELDS | {"updated_at"}, "Booking")
        cols["updated_at"] = _now().isoformat()
        with _guard():
            self._update("bookings", booking_id, cols)
        return await self.get_booking(booking_id)

    async def list_bookings(self, statuses: tuple[BookingStatus, ...] = ()) -> list[Booking]:
        sql = "SELECT * FROM bookings"
        params: list = []
        if statuses:
            sql += f" WHERE status IN ({', '.join('?' for _ in statuses)})"
            params = [s.value for s in statuses]
        sql += " ORDER BY created_ts, id"
        with _guard():
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_booking(r) for r in rows]

    async def dogs_in_window(
        self, start: datetime, end: datetime, exclude_id: int | None = None
    ) -> int:
        with _guard():
            row = self._conn.execute(
                "SELECT COALESCE(SUM(MAX(dogs_count, 1)), 0) AS dogs FROM bookings"
                " WHERE status = 'CONFIRMED' AND start_ts <= ? AND end_ts >= ? AND id IS NOT ?",
                (end.timestamp(), start.timestamp(), exclude_id),
            ).fetchone()
        return int(row["dogs"])

    async def bookings_ended_before(
        self, before: datetime, statuses: tuple[BookingStatus, ...]
    ) -> list[Booking]:
        marks = ", ".join("?" for _ in statuses)
        with _guard():
            rows = self._conn.execute(
                f"SELECT * FROM bookings WHERE end_ts < ? AND status IN ({marks}) ORDER BY id",
                (before.timestamp(), *[s.value for s in statuses]),
            ).fetchall()
        return [self._row_to_booking(r) for r in rows]

    @staticmethod
    def _row_to_booking(row) -> Booking:
        return Booking(
            id=row["id"],
            source=row["source"],
            client_name=row["client_name"],
            client_phone=row["client_phone"],
            rover_relay=row["rover_relay"],
            client_email=row["client_email"],
            dogs_count=row["dogs_count"],
            service_type=ServiceType(row["service_type"]),
            start_at=_parse_dt(row["start_at"]),
            end_at=_parse_dt(row["end_at"]),
            status=BookingStatus(row["status"]),
            notes=row["notes"],
            client_id=row["client_id"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )

    # -- clients & pets ------------------------------------------------------

    async def find_client(self, phone: str) -> Client | None:
        with _guard():
            row = self._conn.execute("SELECT * FROM clients WHERE phone = ?", (phone,)).fetchone()
        return self._row_to_client(row) if row else None

    async def ensure_client(
        self, phone: str, name: str | None = None, mark_private: bool = False
    ) -> Client:
        client = await self.find_client(phone)
        with _guard():
            if client is None:
                self._insert("clients", {"phone": phone, "name": name, "is_private": int(mark_private)})
            else:
                patch = {}
                if name and not client.name:
                    patch["name"] = name
                if mark_private and not client.is_private:
                    patch["is_private"] = 1
                if patch:
                    self._update("clients", client.id, patch)
        return await self.find_client(phone)

    async def set_client_trusted(self, client_id: int, trusted: bool) -> None:
        with _guard():
            self._update("clients", client_id, {"trusted": int(trusted)})

    @staticmethod
    def _row_to_client(row) -> Client:
        return Client(
            id=row["id"],
            phone=row["phone"],
            name=row["name"],
            trusted=bool(row["trusted"]),
            is_private=bool(row["is_private"]),
        )

    async def link_pet_to_booking(
        self,
        booking_id: int,
        name: str,
        client_id: int | None = None,
        age_months: int | None = None,
        weight_lbs: float | None = None,
    ) -> Pet:
        with _guard():
            row = self._conn.execute(
                "SELECT * FROM pets WHERE booking_id = ? AND lower(name) = lower(?)",
                (booking_id, name),
            ).fetchone()
            if row is None:
                pet_id = self._insert("pets", {
                    "name": name, "booking_id": booking_id, "client_id": client_id,
                    "age_months": age_months, "weight_lbs": weight_lbs,
                })
            else:
                pet_id = row["id"]
                self._conn.execute(
                    "UPDATE pets SET age_months = COALESCE(age_months, ?),"
                    " weight_lbs = COALESCE(weight_lbs, ?) WHERE id = ?",
                    (age_months, weight_lbs, pet_id),
                )
                self._conn.commit()
            row = self._conn.execute("SELECT * FROM pets WHERE id = ?", (pet_id,)).fetchone()
        return self._row_to_pet(row)

    async def pets_for_booking(self, booking_id: int) -> list[Pet]:
        with _guard():
            rows = self._conn.execute(
                "SELECT * FROM pets WHERE booking_id = ? ORDER BY id", (booking_id,)
            ).fetchall()
        return [self._row_to_pet(r) for r in rows]

    @staticmethod
    def _row_to_pet(row) -> Pet:
        return Pet(
            id=row["id"],
            name=row["name"],
            booking_id=row["booking_id"],
            client_id=row["client_id"],
            age_months=row["age_months"],
            weight_lbs=row["weight_lbs"],
        )
