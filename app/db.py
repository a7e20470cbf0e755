"""
SQLite database layer using aiosqlite.

Stores courts, bookings, facility policies and rule rows, households,
strikes, the action log and court blackouts. Tables are created
automatically on first connect.

The one correctness-critical write is confirm_booking: it re-checks the
court and its split-court relatives for overlapping confirmed bookings and
inserts in the same BEGIN IMMEDIATE transaction, so two racing requests can
never both confirm the same slots.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from uuid import uuid4

import aiosqlite

from app.config import DB_PATH
from app.errors import InvalidCourtTopology, SlotTaken
from app.models import (
    ActionLog,
    Blackout,
    Booking,
    BookingStatus,
    Court,
    FacilityPolicy,
    FacilityRuleConfig,
    PrimeTimeWindow,
    StrikeRecord,
)

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")
    await _db.execute("PRAGMA busy_timeout=5000")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    _write_lock = asyncio.Lock()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db, _write_lock
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


async def ping() -> bool:
    """True when the connection is open and answers a trivial query."""
    if _db is None:
        return False
    try:
        async with _db.execute("SELECT 1") as cur:
            await cur.fetchone()
    except aiosqlite.Error:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


def _lock() -> asyncio.Lock:
    # The shared connection carries one transaction at a time
    assert _write_lock is not None, "Database not initialized, call init_db() first"
    return _write_lock


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS courts (
    id              TEXT PRIMARY KEY,
    facility_id     TEXT NOT NULL,
    name            TEXT NOT NULL DEFAULT '',
    type            TEXT NOT NULL DEFAULT 'tennis',
    status          TEXT NOT NULL DEFAULT 'available',
    parent_court_id TEXT,
    prime_time_json TEXT NOT NULL DEFAULT '[]',  -- JSON array of windows
    FOREIGN KEY (parent_court_id) REFERENCES courts(id)
);

CREATE INDEX IF NOT EXISTS idx_courts_facility ON courts(facility_id);
CREATE INDEX IF NOT EXISTS idx_courts_parent ON courts(parent_court_id);

CREATE TABLE IF NOT EXISTS bookings (
    id               TEXT PRIMARY KEY,
    court_id         TEXT NOT NULL,
    facility_id      TEXT NOT NULL,
    user_id          TEXT NOT NULL,
    booking_date     TEXT NOT NULL,      -- ISO date
    start_slot_index INTEGER NOT NULL,
    slot_count       INTEGER NOT NULL,
    status           TEXT NOT NULL,
    is_prime_time    INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT,
    canceled_at      TEXT,
    FOREIGN KEY (court_id) REFERENCES courts(id)
);

CREATE INDEX IF NOT EXISTS idx_bookings_court_date ON bookings(court_id, booking_date);
CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id, facility_id);

CREATE TABLE IF NOT EXISTS facility_policies (
    facility_id     TEXT PRIMARY KEY,
    policy_json     TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS facility_rule_configs (
    facility_id     TEXT NOT NULL,
    rule_code       TEXT NOT NULL,
    enabled         INTEGER NOT NULL DEFAULT 1,
    config_json     TEXT NOT NULL DEFAULT '{}',
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (facility_id, rule_code)
);

CREATE TABLE IF NOT EXISTS households (
    id                  TEXT PRIMARY KEY,
    facility_id         TEXT NOT NULL,
    normalized_address  TEXT NOT NULL,
    created_at          TEXT NOT NULL,
    UNIQUE (facility_id, normalized_address)
);

CREATE TABLE IF NOT EXISTS household_members (
    household_id    TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    joined_at       TEXT NOT NULL,
    PRIMARY KEY (household_id, user_id),
    FOREIGN KEY (household_id) REFERENCES households(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_members_user ON household_members(user_id);

CREATE TABLE IF NOT EXISTS strikes (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    facility_id     TEXT NOT NULL,
    timestamp       TEXT NOT NULL,
    kind            TEXT NOT NULL,
    booking_id      TEXT
);

CREATE INDEX IF NOT EXISTS idx_strikes_user ON strikes(user_id, facility_id);

CREATE TABLE IF NOT EXISTS action_log (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    facility_id     TEXT NOT NULL,
    timestamp       TEXT NOT NULL,
    action_type     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_actions_user ON action_log(user_id, facility_id);

CREATE TABLE IF NOT EXISTS court_blackouts (
    id              TEXT PRIMARY KEY,
    facility_id     TEXT NOT NULL,
    court_id        TEXT,               -- NULL blocks every court
    blackout_type   TEXT NOT NULL,
    title           TEXT NOT NULL DEFAULT '',
    starts_at       TEXT NOT NULL,      -- facility-local ISO datetime
    ends_at         TEXT NOT NULL,
    recurrence      TEXT,
    visible         INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_blackouts_facility ON court_blackouts(facility_id);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(dt: datetime | date | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_court(row: aiosqlite.Row, child_ids: list[str]) -> Court:
    """Convert a database row to a Court model."""
    return Court(
        id=row["id"],
        facility_id=row["facility_id"],
        name=row["name"],
        type=row["type"],
        status=row["status"],
        parent_court_id=row["parent_court_id"],
        child_court_ids=child_ids,
        prime_time_windows=[
            PrimeTimeWindow.model_validate(w) for w in json.loads(row["prime_time_json"])
        ],
    )


def _row_to_booking(row: aiosqlite.Row) -> Booking:
    """Convert a database row to a Booking model."""
    return Booking(
        id=row["id"],
        court_id=row["court_id"],
        facility_id=row["facility_id"],
        user_id=row["user_id"],
        booking_date=row["booking_date"],
        start_slot_index=row["start_slot_index"],
        slot_count=row["slot_count"],
        status=row["status"],
        is_prime_time=bool(row["is_prime_time"]),
        created_at=row["created_at"],
        canceled_at=row["canceled_at"],
    )


# ══════════════════════════════════════════════════════════════════════════
#                    COURT REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def _child_ids(court_id: str) -> list[str]:
    db = get_db()
    async with db.execute(
        "SELECT id FROM courts WHERE parent_court_id = ? ORDER BY id", (court_id,)
    ) as cur:
        rows = await cur.fetchall()
    return [r["id"] for r in rows]


async def get_court(court_id: str) -> Court | None:
    """Fetch a court with its children resolved."""
    db = get_db()
    async with db.execute("SELECT * FROM courts WHERE id = ?", (court_id,)) as cur:
        row = await cur.fetchone()
    if row is None:
        return None
    return _row_to_court(row, await _child_ids(court_id))


async def list_courts(facility_id: str) -> list[Court]:
    db = get_db()
    async with db.execute(
        "SELECT * FROM courts WHERE facility_id = ? ORDER BY id", (facility_id,)
    ) as cur:
        rows = await cur.fetchall()
    children: dict[str, list[str]] = {}
    for r in rows:
        if r["parent_court_id"]:
            children.setdefault(r["parent_court_id"], []).append(r["id"])
    return [_row_to_court(r, children.get(r["id"], [])) for r in rows]


async def upsert_court(court: Court) -> Court:
    """
    Insert or replace a court.

    Children are derived from other courts' parent_court_id, so only the
    parent link is stored. Splits are one level deep: a parent must be a
    top-level court of the same facility, and a court with children cannot
    become a sub-court.
    """
    if court.parent_court_id is not None:
        if court.parent_court_id == court.id:
            raise InvalidCourtTopology("a court cannot be its own parent", court_id=court.id)
        parent = await get_court(court.parent_court_id)
        if parent is None or parent.facility_id != court.facility_id:
            raise InvalidCourtTopology(
                f"parent court {court.parent_court_id} does not exist at this facility",
                court_id=court.id,
            )
        if parent.parent_court_id is not None:
            raise InvalidCourtTopology(
                f"court {parent.id} is already a sub-court", court_id=court.id,
            )
        if await _child_ids(court.id):
            raise InvalidCourtTopology(
                f"court {court.id} has sub-courts and cannot be split from another court",
                court_id=court.id,
            )

    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO courts (id, facility_id, name, type, status, parent_court_id, prime_time_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                facility_id = excluded.facility_id,
                name = excluded.name,
                type = excluded.type,
                status = excluded.status,
                parent_court_id = excluded.parent_court_id,
                prime_time_json = excluded.prime_time_json
            """,
            (
                court.id, court.facility_id, court.name,
                court.type.value, court.status.value, court.parent_court_id,
                json.dumps([w.model_dump(mode="json") for w in court.prime_time_windows]),
            ),
        )
        await db.commit()
    return await get_court(court.id)  # type: ignore[return-value]


# ══════════════════════════════════════════════════════════════════════════
#                    BOOKING REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_booking(booking_id: str) -> Booking | None:
    db = get_db()
    async with db.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_booking(row) if row else None


async def list_bookings_for_court(
    court_id: str,
    booking_date: date,
    *,
    statuses: list[BookingStatus] | None = None,
) -> list[Booking]:
    """Bookings on one court for one date, optionally filtered by status."""
    db = get_db()
    sql = "SELECT * FROM bookings WHERE court_id = ? AND booking_date = ?"
    params: list = [court_id, booking_date.isoformat()]
    if statuses:
        sql += f" AND status IN ({', '.join('?' for _ in statuses)})"
        params.extend(s.value for s in statuses)
    sql += " ORDER BY start_slot_index, id"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_booking(r) for r in rows]


async def list_user_bookings(user_id: str, facility_id: str) -> list[Booking]:
    db = get_db()
    async with db.execute(
        """
        SELECT * FROM bookings
        WHERE user_id = ? AND facility_id = ?
        ORDER BY booking_date, start_slot_index
        """,
        (user_id, facility_id),
    ) as cur:
        rows = await cur.fetchall()
    return [_row_to_booking(r) for r in rows]


async def list_household_bookings(household_id: str, facility_id: str) -> list[Booking]:
    """Bookings of every member of a household."""
    db = get_db()
    async with db.execute(
        """
        SELECT b.* FROM bookings b
        JOIN household_members m ON m.user_id = b.user_id
        WHERE m.household_id = ? AND b.facility_id = ?
        ORDER BY b.booking_date, b.start_slot_index
        """,
        (household_id, facility_id),
    ) as cur:
        rows = await cur.fetchall()
    return [_row_to_booking(r) for r in rows]


async def confirm_booking(booking: Booking) -> Booking:
    """
    Authoritative check-then-insert.

    Raises SlotTaken (citing the earliest-starting blocker) if any confirmed
    booking on the court, its parent, or its children overlaps the range.
    """
    db = get_db()
    async with _lock():
        await db.execute("BEGIN IMMEDIATE")
        try:
            court = await get_court(booking.court_id)
            if court is None:
                raise InvalidCourtTopology(
                    f"court {booking.court_id} does not exist", court_id=booking.court_id,
                )
            court_ids = [court.id, *court.child_court_ids]
            if court.parent_court_id:
                court_ids.append(court.parent_court_id)

            async with db.execute(
                f"""
                SELECT id FROM bookings
                WHERE court_id IN ({', '.join('?' for _ in court_ids)})
                  AND booking_date = ?
                  AND status = ?
                  AND start_slot_index < ?
                  AND start_slot_index + slot_count > ?
                ORDER BY start_slot_index, id
                LIMIT 1
                """,
                (
                    *court_ids,
                    booking.booking_date.isoformat(),
                    BookingStatus.CONFIRMED.value,
                    booking.end_slot_index,
                    booking.start_slot_index,
                ),
            ) as cur:
                blocking = await cur.fetchone()
            if blocking is not None:
                raise SlotTaken(
                    f"court {booking.court_id} is already booked for the requested slots",
                    blocking_booking_id=blocking["id"],
                )

            await db.execute(
                """
                INSERT INTO bookings (
                    id, court_id, facility_id, user_id, booking_date,
                    start_slot_index, slot_count, status, is_prime_time,
                    created_at, canceled_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    booking.id, booking.court_id, booking.facility_id, booking.user_id,
                    booking.booking_date.isoformat(),
                    booking.start_slot_index, booking.slot_count,
                    booking.status.value, int(booking.is_prime_time),
                    _iso(booking.created_at) or _now_iso(), _iso(booking.canceled_at),
                ),
            )
            await db.commit()
        except BaseException:
            await db.rollback()
            raise
    return await get_booking(booking.id)  # type: ignore[return-value]


async def set_booking_status(
    booking_id: str,
    status: BookingStatus,
    canceled_at: datetime | None = None,
) -> Booking | None:
    db = get_db()
    async with _lock():
        await db.execute(
            "UPDATE bookings SET status = ?, canceled_at = COALESCE(?, canceled_at) WHERE id = ?",
            (status.value, _iso(canceled_at), booking_id),
        )
        await db.commit()
    return await get_booking(booking_id)


# ══════════════════════════════════════════════════════════════════════════
#                    FACILITY POLICY & RULE REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_facility_policy(facility_id: str) -> FacilityPolicy | None:
    db = get_db()
    async with db.execute(
        "SELECT policy_json FROM facility_policies WHERE facility_id = ?", (facility_id,)
    ) as cur:
        row = await cur.fetchone()
    if row is None:
        return None
    return FacilityPolicy.model_validate_json(row["policy_json"])


async def save_facility_policy(policy: FacilityPolicy) -> FacilityPolicy:
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO facility_policies (facility_id, policy_json, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(facility_id) DO UPDATE SET
                policy_json = excluded.policy_json,
                updated_at = excluded.updated_at
            """,
            (policy.facility_id, policy.model_dump_json(), _now_iso()),
        )
        await db.commit()
    return policy


async def list_rule_configs(facility_id: str) -> list[FacilityRuleConfig]:
    db = get_db()
    async with db.execute(
        "SELECT * FROM facility_rule_configs WHERE facility_id = ? ORDER BY rule_code",
        (facility_id,),
    ) as cur:
        rows = await cur.fetchall()
    return [
        FacilityRuleConfig(
            facility_id=r["facility_id"],
            rule_code=r["rule_code"],
            enabled=bool(r["enabled"]),
            config=json.loads(r["config_json"]),
        )
        for r in rows
    ]


async def upsert_rule_config(rule: FacilityRuleConfig) -> FacilityRuleConfig:
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO facility_rule_configs (facility_id, rule_code, enabled, config_json, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(facility_id, rule_code) DO UPDATE SET
                enabled = excluded.enabled,
                config_json = excluded.config_json,
                updated_at = excluded.updated_at
            """,
            (
                rule.facility_id, rule.rule_code.upper(), int(rule.enabled),
                json.dumps(rule.config), _now_iso(),
            ),
        )
        await db.commit()
    return rule


# ══════════════════════════════════════════════════════════════════════════
#                    HOUSEHOLD REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def find_household(facility_id: str, normalized_address: str) -> str | None:
    db = get_db()
    async with db.execute(
        "SELECT id FROM households WHERE facility_id = ? AND normalized_address = ?",
        (facility_id, normalized_address),
    ) as cur:
        row = await cur.fetchone()
    return row["id"] if row else None


async def household_for_user(user_id: str, facility_id: str) -> str | None:
    db = get_db()
    async with db.execute(
        """
        SELECT h.id FROM households h
        JOIN household_members m ON m.household_id = h.id
        WHERE m.user_id = ? AND h.facility_id = ?
        """,
        (user_id, facility_id),
    ) as cur:
        row = await cur.fetchone()
    return row["id"] if row else None


async def list_household_members(household_id: str) -> list[str]:
    db = get_db()
    async with db.execute(
        "SELECT user_id FROM household_members WHERE household_id = ? ORDER BY joined_at",
        (household_id,),
    ) as cur:
        rows = await cur.fetchall()
    return [r["user_id"] for r in rows]


async def join_household(facility_id: str, user_id: str, normalized_address: str) -> str:
    """
    Move the account into the household at *normalized_address*.

    The household is created on first use; any previous membership at the
    same facility is dropped.
    """
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT OR IGNORE INTO households (id, facility_id, normalized_address, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (str(uuid4()), facility_id, normalized_address, _now_iso()),
        )
        async with db.execute(
            "SELECT id FROM households WHERE facility_id = ? AND normalized_address = ?",
            (facility_id, normalized_address),
        ) as cur:
            household_id = (await cur.fetchone())["id"]
        await db.execute(
            """
            DELETE FROM household_members
            WHERE user_id = ? AND household_id != ?
              AND household_id IN (SELECT id FROM households WHERE facility_id = ?)
            """,
            (user_id, household_id, facility_id),
        )
        await db.execute(
            """
            INSERT OR IGNORE INTO household_members (household_id, user_id, joined_at)
            VALUES (?, ?, ?)
            """,
            (household_id, user_id, _now_iso()),
        )
        await db.commit()
    return household_id


# ══════════════════════════════════════════════════════════════════════════
#                    STRIKE & ACTION LOGS
# ══════════════════════════════════════════════════════════════════════════


async def add_strike(record: StrikeRecord) -> None:
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO strikes (user_id, facility_id, timestamp, kind, booking_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.user_id, record.facility_id, record.timestamp.isoformat(),
                record.kind.value, record.booking_id,
            ),
        )
        await db.commit()


async def list_strikes(user_id: str, facility_id: str) -> list[StrikeRecord]:
    db = get_db()
    async with db.execute(
        "SELECT * FROM strikes WHERE user_id = ? AND facility_id = ? ORDER BY id",
        (user_id, facility_id),
    ) as cur:
        rows = await cur.fetchall()
    return [
        StrikeRecord(
            user_id=r["user_id"],
            facility_id=r["facility_id"],
            timestamp=r["timestamp"],
            kind=r["kind"],
            booking_id=r["booking_id"],
        )
        for r in rows
    ]


async def add_action(action: ActionLog) -> None:
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO action_log (user_id, facility_id, timestamp, action_type)
            VALUES (?, ?, ?, ?)
            """,
            (
                action.user_id, action.facility_id, action.timestamp.isoformat(),
                action.action_type.value,
            ),
        )
        await db.commit()


async def list_actions(user_id: str, facility_id: str, *, limit: int = 1000) -> list[ActionLog]:
    """The account's most recent actions, newest last."""
    db = get_db()
    async with db.execute(
        """
        SELECT * FROM action_log
        WHERE user_id = ? AND facility_id = ?
        ORDER BY id DESC LIMIT ?
        """,
        (user_id, facility_id, limit),
    ) as cur:
        rows = await cur.fetchall()
    return [
        ActionLog(
            user_id=r["user_id"],
            facility_id=r["facility_id"],
            timestamp=r["timestamp"],
            action_type=r["action_type"],
        )
        for r in reversed(rows)
    ]


# ══════════════════════════════════════════════════════════════════════════
#                    COURT BLACKOUTS
# ══════════════════════════════════════════════════════════════════════════


def _row_to_blackout(row: aiosqlite.Row) -> Blackout:
    return Blackout(
        id=row["id"],
        facility_id=row["facility_id"],
        court_id=row["court_id"],
        blackout_type=row["blackout_type"],
        title=row["title"],
        starts_at=row["starts_at"],
        ends_at=row["ends_at"],
        recurrence=row["recurrence"],
        visible=bool(row["visible"]),
    )


async def add_blackout(blackout: Blackout) -> Blackout:
    """Store a blackout, assigning it an id."""
    saved = blackout.model_copy(update={"id": blackout.id or str(uuid4())})
    db = get_db()
    async with _lock():
        await db.execute(
            """
            INSERT INTO court_blackouts
                (id, facility_id, court_id, blackout_type, title,
                 starts_at, ends_at, recurrence, visible)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                saved.id, saved.facility_id, saved.court_id, saved.blackout_type.value,
                saved.title, saved.starts_at.isoformat(), saved.ends_at.isoformat(),
                saved.recurrence.value if saved.recurrence else None, int(saved.visible),
            ),
        )
        await db.commit()
    logger.info("Blackout %s added for facility %s", saved.id, saved.facility_id)
    return saved


async def list_blackouts(facility_id: str, booking_date: date | None = None) -> list[Blackout]:
    """
    Blackouts at a facility. With *booking_date*, only those whose range
    includes that date plus every recurring one.
    """
    db = get_db()
    if booking_date is None:
        query = "SELECT * FROM court_blackouts WHERE facility_id = ? ORDER BY starts_at, id"
        params: tuple = (facility_id,)
    else:
        query = """
            SELECT * FROM court_blackouts
            WHERE facility_id = ?
              AND (
                (date(starts_at) <= ? AND date(ends_at) >= ?)
                OR recurrence IS NOT NULL
              )
            ORDER BY starts_at, id
        """
        day = booking_date.isoformat()
        params = (facility_id, day, day)
    async with db.execute(query, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_blackout(r) for r in rows]


async def delete_blackout(facility_id: str, blackout_id: str) -> bool:
    """Remove a blackout; False when it does not exist at the facility."""
    db = get_db()
    async with _lock():
        cur = await db.execute(
            "DELETE FROM court_blackouts WHERE id = ? AND facility_id = ?",
            (blackout_id, facility_id),
        )
        await db.commit()
    return cur.rowcount > 0
