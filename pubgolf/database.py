"""
Backend store for the pub golf scoreboard.

A thin table store over SQLite: select, insert and upsert against the
four named collections, plus row-change subscriptions so views can
reload when another writer touches a table.
"""

import asyncio
import inspect
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import aiosqlite

from .errors import StoreError
from .logger import get_logger

logger = get_logger(__name__)

TABLES: Dict[str, Sequence[str]] = {
    "teams": ("id", "name", "user_id", "created_at"),
    "players": ("id", "team_id", "name", "player_order"),
    "scores": ("player_id", "hole_number", "score", "updated_at"),
    "penalties": ("id", "team_id", "points", "reason", "created_at", "created_by"),
}

EVENTS = ("INSERT", "UPDATE", "DELETE")
ALL_EVENTS = "*"

Record = Dict[str, Any]
ChangeCallback = Callable[[], Any]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Subscription:
    """Handle for a row-change subscription on one table."""

    def __init__(
        self,
        manager: "DatabaseManager",
        table: str,
        callback: ChangeCallback,
        events: Iterable[str],
    ) -> None:
        self._manager = manager
        self.table = table
        self.callback = callback
        self.events = frozenset(events)
        self.active = True

    def matches(self, table: str, event: str) -> bool:
        return self.active and table == self.table and event in self.events

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if self.active:
            self.active = False
            self._manager._remove_subscription(self)


class DatabaseManager:
    """Manages table reads, writes and change notifications."""

    def __init__(
        self,
        db_path: str,
    ) -> None:
        self.db_path = db_path
        self._subscriptions: List[Subscription] = []
        self._pending: Set[asyncio.Future] = set()

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Open a connection with dict-like rows and foreign keys enforced.

        Any sqlite failure inside the block is re-raised as StoreError,
        including integers too wide for an SQLite INTEGER column.
        Uncommitted writes are rolled back when the connection closes.
        """
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys=ON")
                yield db
        except (aiosqlite.Error, OverflowError) as e:
            logger.error("Store error on %s: %s", self.db_path, e)
            raise StoreError(str(e)) from e

    async def init_db(self) -> None:
        """
        Initialize the SQLite database with schema and indexes.

        Creates tables and the unique constraints the views rely on.
        """
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")

            await db.execute("""
                CREATE TABLE IF NOT EXISTS teams (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    user_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    id TEXT PRIMARY KEY,
                    team_id TEXT NOT NULL REFERENCES teams(id),
                    name TEXT NOT NULL,
                    player_order INTEGER NOT NULL
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS scores (
                    player_id TEXT NOT NULL REFERENCES players(id),
                    hole_number INTEGER NOT NULL,
                    score INTEGER NOT NULL CHECK (score >= 0),
                    updated_at TEXT
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS penalties (
                    id TEXT PRIMARY KEY,
                    team_id TEXT NOT NULL REFERENCES teams(id),
                    points INTEGER NOT NULL,
                    reason TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    created_by TEXT
                )
            """)

            await db.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_team_user
                ON teams(user_id)
            """)
            await db.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_player_order
                ON players(team_id, player_order)
            """)
            await db.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_player_hole
                ON scores(player_id, hole_number)
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_penalties_team
                ON penalties(team_id, created_at DESC)
            """)

            await db.commit()

    def _columns(self, table: str, names: Iterable[str]) -> List[str]:
        """
        Check table and column names against the known schema.

        @param table: Table name
        @param names: Column names to check
        @return: The column names as a list
        """
        if table not in TABLES:
            raise StoreError(f"Unknown table: {table}")
        columns = list(names)
        unknown = [c for c in columns if c not in TABLES[table]]
        if unknown:
            raise StoreError(f"Unknown column(s) for {table}: {', '.join(unknown)}")
        return columns

    def _fill_defaults(self, table: str, record: Mapping[str, Any]) -> Record:
        self._columns(table, [])
        row = dict(record)
        columns = TABLES[table]
        if "id" in columns and not row.get("id"):
            row["id"] = str(uuid.uuid4())
        if "created_at" in columns and not row.get("created_at"):
            row["created_at"] = _now()
        if "updated_at" in columns:
            row["updated_at"] = _now()
        return row

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        """
        Read records from a table.

        @param table: Table name
        @param filters: Column -> value equality filters; a list or tuple value means IN
        @param order_by: Column names, prefix with "-" for descending
        @param columns: Columns to return (default all)
        @return: Ordered list of records as dictionaries
        """
        selected = self._columns(table, columns or TABLES[table])
        clauses = []
        params: List[Any] = []

        for column, value in (filters or {}).items():
            self._columns(table, [column])
            if isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    return []
                clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
            else:
                clauses.append(f"{column} = ?")
                params.append(value)

        sql = f"SELECT {', '.join(selected)} FROM {table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)

        if order_by:
            terms = []
            for term in order_by:
                descending = term.startswith("-")
                column = term.lstrip("-")
                self._columns(table, [column])
                terms.append(f"{column} {'DESC' if descending else 'ASC'}")
            sql += " ORDER BY " + ", ".join(terms)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def insert(
        self,
        table: str,
        records: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> Union[Record, List[Record]]:
        """
        Insert one record or a batch of records.

        Missing ids and creation timestamps are generated. A batch is
        written in a single transaction.

        @param table: Table name
        @param records: A single record or a list of records
        @return: The created record, or the list of created records
        """
        single = isinstance(records, Mapping)
        batch = [records] if single else list(records)
        rows = [self._fill_defaults(table, record) for record in batch]

        async with self._connect() as db:
            await self._insert_rows(db, table, rows)
            await db.commit()

        logger.info("Inserted %d row(s) into %s", len(rows), table)
        if rows:
            self._notify(table, "INSERT")
        return rows[0] if single else rows

    async def insert_with_children(
        self,
        table: str,
        record: Mapping[str, Any],
        child_table: str,
        children: Sequence[Mapping[str, Any]],
        link_column: str,
    ) -> Tuple[Record, List[Record]]:
        """
        Insert a parent record and its child records in one transaction.

        Each child gets the parent's id in link_column. If any row fails,
        nothing is written.

        @param table: Parent table name
        @param record: Parent record
        @param child_table: Child table name
        @param children: Child records, without the link column
        @param link_column: Child column that references the parent id
        @return: Tuple of (created parent, list of created children)
        """
        self._columns(child_table, [link_column])
        parent = self._fill_defaults(table, record)
        rows = [
            self._fill_defaults(child_table, {**child, link_column: parent["id"]})
            for child in children
        ]

        async with self._connect() as db:
            await self._insert_rows(db, table, [parent])
            await self._insert_rows(db, child_table, rows)
            await db.commit()

        logger.info("Inserted 1 row into %s with %d row(s) into %s",
                    table, len(rows), child_table)
        self._notify(table, "INSERT")
        if rows:
            self._notify(child_table, "INSERT")
        return parent, rows

    async def _insert_rows(
        self,
        db: aiosqlite.Connection,
        table: str,
        rows: Sequence[Record],
    ) -> None:
        for row in rows:
            columns = self._columns(table, row.keys())
            await db.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                [row[c] for c in columns],
            )

    async def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        on_conflict: Sequence[str],
    ) -> Record:
        """
        Insert a record, or overwrite the row that shares its conflict key.

        @param table: Table name
        @param record: Record to write
        @param on_conflict: Columns of the unique constraint to resolve against
        @return: The written record
        """
        row = self._fill_defaults(table, record)
        columns = self._columns(table, row.keys())
        keys = self._columns(table, on_conflict)
        updates = [c for c in columns if c not in keys]

        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT 1 FROM {table} WHERE "
                + " AND ".join(f"{k} = ?" for k in keys),
                [row[k] for k in keys],
            )
            existed = await cursor.fetchone() is not None

            await db.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)}) "
                f"ON CONFLICT({', '.join(keys)}) DO UPDATE SET "
                + ", ".join(f"{c} = excluded.{c}" for c in updates),
                [row[c] for c in columns],
            )
            await db.commit()

        self._notify(table, "UPDATE" if existed else "INSERT")
        return row

    async def count(self, table: str) -> int:
        """
        Count rows in a table.

        @param table: Table name
        @return: Number of rows
        """
        self._columns(table, [])
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
            (total,) = await cursor.fetchone()
            return total

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        events: Union[str, Iterable[str]] = ALL_EVENTS,
    ) -> Subscription:
        """
        Call back whenever a matching row change is committed.

        The callback takes no arguments; it is told that something changed,
        not what. Coroutine callbacks are scheduled on the running loop.

        @param table: Table to watch
        @param callback: Zero-argument callable or coroutine function
        @param events: "*" or any of INSERT, UPDATE, DELETE
        @return: Subscription handle; call unsubscribe() to stop
        """
        self._columns(table, [])
        if events == ALL_EVENTS:
            mask = EVENTS
        else:
            mask = (events,) if isinstance(events, str) else tuple(events)
            unknown = [e for e in mask if e not in EVENTS]
            if unknown:
                raise StoreError(f"Unknown event(s): {', '.join(unknown)}")

        subscription = Subscription(self, table, callback, mask)
        self._subscriptions.append(subscription)
        logger.info("Subscribed to %s changes (%s)", table, ", ".join(mask))
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.info("Unsubscribed from %s changes", subscription.table)

    def _notify(self, table: str, event: str) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.matches(table, event):
                continue
            try:
                result = subscription.callback()
            except Exception:
                # A broken subscriber must not fail the write that triggered it
                logger.exception("Change callback for %s failed", table)
                continue
            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._pending.add(future)
                future.add_done_callback(self._pending.discard)

    async def log_summary(self) -> None:
        """
        Log row counts for every table.

        Used at startup in place of dumping the whole scoreboard.
        """
        counts = {table: await self.count(table) for table in TABLES}
        logger.info(
            "Store %s: %s",
            self.db_path,
            ", ".join(f"{table}={n}" for table, n in counts.items()),
        )
