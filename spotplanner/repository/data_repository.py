"""Repository layer responsible for all database access."""

from __future__ import annotations

import random
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence
from uuid import uuid4

from spotplanner.domain.models import (
    Episode,
    EpisodeInventory,
    InventoryDay,
    PlacementCounts,
    PlacementType,
    RateCard,
    ReservationHold,
    ShowMetadata,
)
from spotplanner.utils.config import Settings, get_settings
from spotplanner.utils.logger import get_logger


logger = get_logger(__name__)

_PLACEMENT_COLUMN_PREFIX = {
    PlacementType.PRE_ROLL: "pre_roll",
    PlacementType.MID_ROLL: "mid_roll",
    PlacementType.POST_ROLL: "post_roll",
}


class RepositoryError(Exception):
    """Raised when a storage lookup fails."""


def _to_utc_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@contextmanager
def _row_mapping(table: str) -> Iterator[None]:
    """Report stored values that do not map onto domain types as lookup failures."""
    try:
        yield
    except (ValueError, TypeError, KeyError, IndexError) as exc:
        raise RepositoryError(f"Malformed {table} row: {exc}") from exc


def _counts_from_row(row: sqlite3.Row, prefix: str) -> PlacementCounts:
    return PlacementCounts(
        total=int(row[f"{prefix}_slots"] or 0),
        available=int(row[f"{prefix}_available"] or 0),
        reserved=int(row[f"{prefix}_reserved"] or 0),
        booked=int(row[f"{prefix}_booked"] or 0),
    )


class InventorySnapshot:
    """Read-only inventory view bound to one connection and one read transaction.

    Every lookup of an allocation run goes through the same snapshot so the
    capacity recomputation sees consistent counters, holds and spots.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        try:
            return self._connection.execute(query, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Inventory lookup failed: {exc}") from exc

    def _fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        try:
            return self._connection.execute(query, tuple(params)).fetchone()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Inventory lookup failed: {exc}") from exc

    def get_episode(self, show_id: str, air_date: date) -> Optional[Episode]:
        """Return the single episode considered for placement on a show/date."""
        row = self._fetch_one(
            """
            SELECT id, show_id, air_date, status
            FROM Episodes
            WHERE show_id = ?
              AND air_date = ?
              AND status != 'cancelled'
            ORDER BY id ASC
            LIMIT 1;
            """,
            (show_id, air_date.isoformat()),
        )
        if row is None:
            return None
        with _row_mapping("Episodes"):
            return Episode(
                episode_id=str(row["id"]),
                show_id=str(row["show_id"]),
                air_date=date.fromisoformat(str(row["air_date"])),
                status=str(row["status"]),
            )

    def get_episode_inventory(self, episode_id: str) -> Optional[EpisodeInventory]:
        row = self._fetch_one(
            "SELECT * FROM EpisodeInventory WHERE episode_id = ?;",
            (episode_id,),
        )
        if row is None:
            return None
        with _row_mapping("EpisodeInventory"):
            return EpisodeInventory(
                episode_id=str(row["episode_id"]),
                pre_roll=_counts_from_row(row, "pre_roll"),
                mid_roll=_counts_from_row(row, "mid_roll"),
                post_roll=_counts_from_row(row, "post_roll"),
            )

    def list_active_holds(
        self,
        episode_id: str,
        placement_type: PlacementType,
        now: datetime,
        statuses: Sequence[str],
    ) -> list[ReservationHold]:
        """Return non-expired holds covering one episode placement, oldest first.

        Expiry is checked on parsed timestamps; stored expiries mix
        `YYYY-MM-DD HH:MM:SS` and ISO `T`-separated text.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        placeholders = ",".join("?" for _ in statuses)
        rows = self._fetch_all(
            f"""
            SELECT
                r.id,
                r.status,
                r.campaign_id,
                r.advertiser_id,
                r.advertiser_name,
                r.expires_at
            FROM ReservationItems AS ri
            INNER JOIN Reservations AS r ON r.id = ri.reservation_id
            WHERE ri.episode_id = ?
              AND ri.placement_type = ?
              AND r.status IN ({placeholders})
            ORDER BY r.created_at ASC, r.id ASC;
            """,
            (episode_id, placement_type.value, *statuses),
        )
        with _row_mapping("Reservations"):
            holds = [
                ReservationHold(
                    reservation_id=str(row["id"]),
                    status=str(row["status"]),
                    campaign_id=row["campaign_id"],
                    advertiser_id=row["advertiser_id"],
                    advertiser_name=row["advertiser_name"],
                    expires_at=_parse_timestamp(row["expires_at"]),
                )
                for row in rows
            ]
        return [hold for hold in holds if hold.expires_at is None or hold.expires_at > now]

    def count_scheduled_spots(
        self,
        show_id: str,
        air_date: date,
        placement_type: Optional[PlacementType] = None,
    ) -> int:
        if placement_type is None:
            row = self._fetch_one(
                """
                SELECT COUNT(*) AS count
                FROM ScheduledSpots
                WHERE show_id = ? AND air_date = ?;
                """,
                (show_id, air_date.isoformat()),
            )
        else:
            row = self._fetch_one(
                """
                SELECT COUNT(*) AS count
                FROM ScheduledSpots
                WHERE show_id = ? AND air_date = ? AND placement_type = ?;
                """,
                (show_id, air_date.isoformat(), placement_type.value),
            )
        if row is None:
            return 0
        with _row_mapping("ScheduledSpots"):
            return int(row["count"])

    def get_rate_card(self, show_id: str, on_date: date) -> Optional[RateCard]:
        """Return the most recent rate card effective at or before `on_date`."""
        row = self._fetch_one(
            """
            SELECT show_id, effective_date, pre_roll_rate, mid_roll_rate, post_roll_rate
            FROM ShowRateCards
            WHERE show_id = ? AND effective_date <= ?
            ORDER BY effective_date DESC, id DESC
            LIMIT 1;
            """,
            (show_id, on_date.isoformat()),
        )
        if row is None:
            return None
        with _row_mapping("ShowRateCards"):
            return RateCard(
                show_id=str(row["show_id"]),
                effective_date=date.fromisoformat(str(row["effective_date"])),
                pre_roll_rate=row["pre_roll_rate"],
                mid_roll_rate=row["mid_roll_rate"],
                post_roll_rate=row["post_roll_rate"],
            )

    def list_shows(self, show_ids: Sequence[str]) -> list[ShowMetadata]:
        if not show_ids:
            return []
        placeholders = ",".join("?" for _ in show_ids)
        rows = self._fetch_all(
            f"SELECT id, name FROM Shows WHERE id IN ({placeholders}) ORDER BY id ASC;",
            tuple(show_ids),
        )
        return [ShowMetadata(show_id=str(row["id"]), name=str(row["name"])) for row in rows]

    def list_inventory_window(
        self,
        show_id: str,
        start_date: date,
        end_date: date,
        placement_type: Optional[PlacementType] = None,
    ) -> list[InventoryDay]:
        """Return stored counters per date and placement pool for one show."""
        rows = self._fetch_all(
            """
            SELECT e.id AS episode_id, e.air_date, ei.*
            FROM Episodes AS e
            INNER JOIN EpisodeInventory AS ei ON ei.episode_id = e.id
            WHERE e.show_id = ?
              AND e.air_date >= ?
              AND e.air_date <= ?
              AND e.status != 'cancelled'
            ORDER BY e.air_date ASC, e.id ASC;
            """,
            (show_id, start_date.isoformat(), end_date.isoformat()),
        )
        placements = [placement_type] if placement_type is not None else list(PlacementType)
        days: list[InventoryDay] = []
        with _row_mapping("EpisodeInventory"):
            for row in rows:
                for placement in placements:
                    days.append(
                        InventoryDay(
                            air_date=date.fromisoformat(str(row["air_date"])),
                            episode_id=str(row["episode_id"]),
                            placement_type=placement,
                            counts=_counts_from_row(row, _PLACEMENT_COLUMN_PREFIX[placement]),
                        )
                    )
        return days


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def read_snapshot(self) -> Iterator[InventorySnapshot]:
        """Yield a snapshot whose reads all run inside one transaction."""
        try:
            connection = sqlite3.connect(self._db_path, isolation_level=None)
            connection.row_factory = sqlite3.Row
            connection.execute("BEGIN;")
        except sqlite3.Error as exc:
            raise RepositoryError(f"Unable to open inventory snapshot: {exc}") from exc
        try:
            yield InventorySnapshot(connection)
        finally:
            try:
                connection.execute("ROLLBACK;")
            except sqlite3.Error:
                logger.debug("Snapshot rollback skipped; no open transaction")
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("PRAGMA journal_mode = WAL;")

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Shows (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Episodes (
                        id TEXT PRIMARY KEY,
                        show_id TEXT NOT NULL,
                        air_date TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'scheduled',
                        FOREIGN KEY (show_id) REFERENCES Shows(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS EpisodeInventory (
                        episode_id TEXT PRIMARY KEY,
                        pre_roll_slots INTEGER NOT NULL DEFAULT 0,
                        pre_roll_available INTEGER NOT NULL DEFAULT 0,
                        pre_roll_reserved INTEGER NOT NULL DEFAULT 0,
                        pre_roll_booked INTEGER NOT NULL DEFAULT 0,
                        mid_roll_slots INTEGER NOT NULL DEFAULT 0,
                        mid_roll_available INTEGER NOT NULL DEFAULT 0,
                        mid_roll_reserved INTEGER NOT NULL DEFAULT 0,
                        mid_roll_booked INTEGER NOT NULL DEFAULT 0,
                        post_roll_slots INTEGER NOT NULL DEFAULT 0,
                        post_roll_available INTEGER NOT NULL DEFAULT 0,
                        post_roll_reserved INTEGER NOT NULL DEFAULT 0,
                        post_roll_booked INTEGER NOT NULL DEFAULT 0,
                        FOREIGN KEY (episode_id) REFERENCES Episodes(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Reservations (
                        id TEXT PRIMARY KEY,
                        campaign_id TEXT,
                        advertiser_id TEXT NOT NULL,
                        advertiser_name TEXT,
                        status TEXT NOT NULL DEFAULT 'held',
                        expires_at TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ReservationItems (
                        id TEXT PRIMARY KEY,
                        reservation_id TEXT NOT NULL,
                        show_id TEXT NOT NULL,
                        episode_id TEXT NOT NULL,
                        air_date TEXT NOT NULL,
                        placement_type TEXT NOT NULL,
                        FOREIGN KEY (reservation_id) REFERENCES Reservations(id),
                        FOREIGN KEY (episode_id) REFERENCES Episodes(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ScheduledSpots (
                        id TEXT PRIMARY KEY,
                        show_id TEXT NOT NULL,
                        air_date TEXT NOT NULL,
                        placement_type TEXT NOT NULL,
                        rate REAL,
                        campaign_id TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (show_id) REFERENCES Shows(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ShowRateCards (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        show_id TEXT NOT NULL,
                        effective_date TEXT NOT NULL,
                        pre_roll_rate REAL,
                        mid_roll_rate REAL,
                        post_roll_rate REAL,
                        FOREIGN KEY (show_id) REFERENCES Shows(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_episodes_show_date
                    ON Episodes(show_id, air_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_reservation_items_episode_placement
                    ON ReservationItems(episode_id, placement_type);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_scheduled_spots_show_date
                    ON ScheduledSpots(show_id, air_date, placement_type);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_rate_cards_show_effective
                    ON ShowRateCards(show_id, effective_date);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_synthetic_data(self, start_date: Optional[date] = None) -> None:
        """Seed deterministic demo inventory only when tables are empty."""
        rng = random.Random(self._settings.synthetic_random_seed)
        first_day = start_date or datetime.now(timezone.utc).date()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Shows;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Synthetic data already present; skipping seed")
                    return

                slot_totals = {
                    PlacementType.PRE_ROLL: self._settings.synthetic_pre_roll_slots,
                    PlacementType.MID_ROLL: self._settings.synthetic_mid_roll_slots,
                    PlacementType.POST_ROLL: self._settings.synthetic_post_roll_slots,
                }
                episode_count = 0
                for index, name in enumerate(self._settings.synthetic_show_names, start=1):
                    show_id = f"show-{index:03d}"
                    self._insert_show(cursor, show_id, name)
                    base_rate = self._settings.synthetic_base_rate * (1 + 0.25 * (index - 1))
                    self._insert_rate_card(
                        cursor,
                        show_id=show_id,
                        effective_date=first_day - timedelta(days=365),
                        pre_roll_rate=round(base_rate, 2),
                        mid_roll_rate=round(base_rate * 1.4, 2),
                        post_roll_rate=round(base_rate * 0.7, 2),
                    )
                    for offset in range(self._settings.synthetic_seed_days):
                        air_date = first_day + timedelta(days=offset)
                        episode_id = f"{show_id}-ep-{air_date.isoformat()}"
                        counters: dict[PlacementType, tuple[int, int]] = {}
                        for placement, total in slot_totals.items():
                            booked = sum(
                                1
                                for _ in range(total)
                                if rng.random() < self._settings.synthetic_booked_probability
                            )
                            reserved = 0
                            if booked < total and rng.random() < self._settings.synthetic_hold_probability:
                                reserved = 1
                            counters[placement] = (booked, reserved)
                        self._insert_episode(
                            cursor,
                            episode_id=episode_id,
                            show_id=show_id,
                            air_date=air_date,
                            slots=slot_totals,
                            booked={p: c[0] for p, c in counters.items()},
                            reserved={p: c[1] for p, c in counters.items()},
                        )
                        for placement, (_, reserved) in counters.items():
                            if reserved:
                                self._insert_reservation(
                                    cursor,
                                    advertiser_id=f"adv-{rng.randint(1, 5):03d}",
                                    advertiser_name=None,
                                    campaign_id=None,
                                    status="held",
                                    expires_at=datetime.now(timezone.utc) + timedelta(hours=48),
                                    items=[(show_id, episode_id, air_date, placement)],
                                )
                        if rng.random() < self._settings.synthetic_scheduled_probability:
                            self._insert_scheduled_spot(
                                cursor,
                                show_id=show_id,
                                air_date=air_date,
                                placement_type=PlacementType.MID_ROLL,
                                rate=round(base_rate * 1.4, 2),
                                campaign_id=None,
                            )
                        episode_count += 1
                conn.commit()
            logger.info("Synthetic seed completed with %s episodes", episode_count)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Synthetic data seeding failed: {exc}") from exc

    @staticmethod
    def _insert_show(cursor: sqlite3.Cursor, show_id: str, name: str) -> None:
        cursor.execute("INSERT INTO Shows (id, name) VALUES (?, ?);", (show_id, name))

    @staticmethod
    def _insert_rate_card(
        cursor: sqlite3.Cursor,
        *,
        show_id: str,
        effective_date: date,
        pre_roll_rate: Optional[float],
        mid_roll_rate: Optional[float],
        post_roll_rate: Optional[float],
    ) -> None:
        cursor.execute(
            """
            INSERT INTO ShowRateCards (
                show_id, effective_date, pre_roll_rate, mid_roll_rate, post_roll_rate
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            (show_id, effective_date.isoformat(), pre_roll_rate, mid_roll_rate, post_roll_rate),
        )

    @staticmethod
    def _insert_episode(
        cursor: sqlite3.Cursor,
        *,
        episode_id: str,
        show_id: str,
        air_date: date,
        slots: dict[PlacementType, int],
        booked: dict[PlacementType, int],
        reserved: dict[PlacementType, int],
        available: Optional[dict[PlacementType, int]] = None,
        status: str = "scheduled",
    ) -> None:
        cursor.execute(
            "INSERT INTO Episodes (id, show_id, air_date, status) VALUES (?, ?, ?, ?);",
            (episode_id, show_id, air_date.isoformat(), status),
        )
        values: list[int] = []
        for placement in PlacementType:
            total = slots.get(placement, 0)
            booked_count = booked.get(placement, 0)
            reserved_count = reserved.get(placement, 0)
            if available is not None and placement in available:
                available_count = available[placement]
            else:
                available_count = max(0, total - booked_count - reserved_count)
            values.extend([total, available_count, reserved_count, booked_count])
        cursor.execute(
            """
            INSERT INTO EpisodeInventory (
                episode_id,
                pre_roll_slots, pre_roll_available, pre_roll_reserved, pre_roll_booked,
                mid_roll_slots, mid_roll_available, mid_roll_reserved, mid_roll_booked,
                post_roll_slots, post_roll_available, post_roll_reserved, post_roll_booked
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (episode_id, *values),
        )

    @staticmethod
    def _insert_reservation(
        cursor: sqlite3.Cursor,
        *,
        advertiser_id: str,
        advertiser_name: Optional[str],
        campaign_id: Optional[str],
        status: str,
        expires_at: Optional[datetime],
        items: Iterable[tuple[str, str, date, PlacementType]],
    ) -> str:
        reservation_id = str(uuid4())
        cursor.execute(
            """
            INSERT INTO Reservations (
                id, campaign_id, advertiser_id, advertiser_name, status, expires_at
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                reservation_id,
                campaign_id,
                advertiser_id,
                advertiser_name,
                status,
                _to_utc_text(expires_at) if expires_at is not None else None,
            ),
        )
        cursor.executemany(
            """
            INSERT INTO ReservationItems (
                id, reservation_id, show_id, episode_id, air_date, placement_type
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    str(uuid4()),
                    reservation_id,
                    show_id,
                    episode_id,
                    air_date.isoformat(),
                    placement.value,
                )
                for show_id, episode_id, air_date, placement in items
            ],
        )
        return reservation_id

    @staticmethod
    def _insert_scheduled_spot(
        cursor: sqlite3.Cursor,
        *,
        show_id: str,
        air_date: date,
        placement_type: PlacementType,
        rate: Optional[float],
        campaign_id: Optional[str],
    ) -> str:
        spot_id = str(uuid4())
        cursor.execute(
            """
            INSERT INTO ScheduledSpots (id, show_id, air_date, placement_type, rate, campaign_id)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (spot_id, show_id, air_date.isoformat(), placement_type.value, rate, campaign_id),
        )
        return spot_id

    def create_show(self, show_id: str, name: str) -> None:
        with self._connect() as conn:
            self._insert_show(conn.cursor(), show_id, name)
            conn.commit()

    def create_rate_card(
        self,
        show_id: str,
        effective_date: date,
        pre_roll_rate: Optional[float] = None,
        mid_roll_rate: Optional[float] = None,
        post_roll_rate: Optional[float] = None,
    ) -> None:
        with self._connect() as conn:
            self._insert_rate_card(
                conn.cursor(),
                show_id=show_id,
                effective_date=effective_date,
                pre_roll_rate=pre_roll_rate,
                mid_roll_rate=mid_roll_rate,
                post_roll_rate=post_roll_rate,
            )
            conn.commit()

    def create_episode(
        self,
        show_id: str,
        air_date: date,
        slots: dict[PlacementType, int],
        booked: Optional[dict[PlacementType, int]] = None,
        reserved: Optional[dict[PlacementType, int]] = None,
        available: Optional[dict[PlacementType, int]] = None,
        status: str = "scheduled",
        episode_id: Optional[str] = None,
    ) -> str:
        """Insert an episode with its inventory row and return the episode id.

        `available` defaults to total - booked - reserved; pass it explicitly
        to model a drifted cache.
        """
        resolved_id = episode_id or f"{show_id}-ep-{air_date.isoformat()}"
        with self._connect() as conn:
            self._insert_episode(
                conn.cursor(),
                episode_id=resolved_id,
                show_id=show_id,
                air_date=air_date,
                slots=slots,
                booked=booked or {},
                reserved=reserved or {},
                available=available,
                status=status,
            )
            conn.commit()
        return resolved_id

    def create_reservation(
        self,
        advertiser_id: str,
        items: Iterable[tuple[str, str, date, PlacementType]],
        campaign_id: Optional[str] = None,
        advertiser_name: Optional[str] = None,
        status: str = "held",
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Insert a reservation; items are (show_id, episode_id, air_date, placement)."""
        with self._connect() as conn:
            reservation_id = self._insert_reservation(
                conn.cursor(),
                advertiser_id=advertiser_id,
                advertiser_name=advertiser_name,
                campaign_id=campaign_id,
                status=status,
                expires_at=expires_at,
                items=list(items),
            )
            conn.commit()
        return reservation_id

    def create_scheduled_spot(
        self,
        show_id: str,
        air_date: date,
        placement_type: PlacementType,
        rate: Optional[float] = None,
        campaign_id: Optional[str] = None,
    ) -> str:
        with self._connect() as conn:
            spot_id = self._insert_scheduled_spot(
                conn.cursor(),
                show_id=show_id,
                air_date=air_date,
                placement_type=placement_type,
                rate=rate,
                campaign_id=campaign_id,
            )
            conn.commit()
        return spot_id

    def count_shows(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Shows;")
            return int(cursor.fetchone()["count"])

    def list_show_ids(self) -> list[str]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id FROM Shows ORDER BY id ASC;")
            return [str(row["id"]) for row in cursor.fetchall()]
