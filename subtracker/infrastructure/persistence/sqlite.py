import sqlite3
import threading
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from ...domain.errors import ConstraintViolation, DuplicateKey, NotFoundError, StoreFailure
from ...domain.models import CostFilter, Subscription, SubscriptionFilter
from ...domain.ports.persistence import SubscriptionRepository

_COLUMNS = "id, service_name, price, user_id, start_date, end_date, created_at, updated_at"


class SQLiteSubscriptionRepository(SubscriptionRepository):
    """SQLite-backed implementation of the subscription repository."""

    def __init__(self, path: Union[Path, str]) -> None:
        if str(path) != ":memory:":
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._lock, self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id TEXT PRIMARY KEY,
                    service_name TEXT NOT NULL
                        CHECK (length(service_name) BETWEEN 1 AND 255),
                    price INTEGER NOT NULL CHECK (price > 0),
                    user_id TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CONSTRAINT valid_date_range
                        CHECK (end_date IS NULL OR end_date >= start_date)
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_user_id
                    ON subscriptions(user_id);
                CREATE INDEX IF NOT EXISTS idx_subscriptions_service_name
                    ON subscriptions(service_name);
                CREATE INDEX IF NOT EXISTS idx_subscriptions_date_range
                    ON subscriptions(start_date, end_date);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # SubscriptionRepository API ---------------------------------------------
    def create(self, subscription: Subscription) -> None:
        params = (
            str(subscription.id),
            subscription.service_name,
            subscription.price,
            str(subscription.user_id),
            self._format_date(subscription.start_date),
            self._format_date(subscription.end_date),
            self._format_timestamp(subscription.created_at),
            self._format_timestamp(subscription.updated_at),
        )
        self._execute(
            f"INSERT INTO subscriptions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            params,
            action="create",
        )

    def get_by_id(self, subscription_id: uuid.UUID) -> Subscription:
        try:
            with self._lock:
                cur = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM subscriptions WHERE id = ?",
                    (str(subscription_id),),
                )
                row = cur.fetchone()
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreFailure(f"failed to get subscription: {exc}") from exc
        if not row:
            raise NotFoundError(subscription_id)
        return self._row_to_subscription(row)

    def update(self, subscription: Subscription) -> None:
        # id, user_id and created_at are never rewritten.
        params = (
            subscription.service_name,
            subscription.price,
            self._format_date(subscription.start_date),
            self._format_date(subscription.end_date),
            self._format_timestamp(subscription.updated_at),
            str(subscription.id),
        )
        affected = self._execute(
            """
            UPDATE subscriptions
            SET service_name = ?, price = ?, start_date = ?, end_date = ?, updated_at = ?
            WHERE id = ?
            """,
            params,
            action="update",
        )
        if affected == 0:
            raise NotFoundError(subscription.id)

    def delete(self, subscription_id: uuid.UUID) -> None:
        affected = self._execute(
            "DELETE FROM subscriptions WHERE id = ?",
            (str(subscription_id),),
            action="delete",
        )
        if affected == 0:
            raise NotFoundError(subscription_id)

    def list(self, filters: SubscriptionFilter) -> List[Subscription]:
        query = f"SELECT {_COLUMNS} FROM subscriptions WHERE 1=1"
        params: List[Any] = []
        if filters.user_id is not None:
            query += " AND user_id = ?"
            params.append(str(filters.user_id))
        if filters.service_name is not None:
            query += " AND service_name = ?"
            params.append(filters.service_name)
        query += " ORDER BY created_at DESC"
        if filters.limit > 0:
            query += " LIMIT ?"
            params.append(filters.limit)
        if filters.offset > 0:
            if filters.limit <= 0:
                # SQLite only accepts OFFSET after a LIMIT clause.
                query += " LIMIT -1"
            query += " OFFSET ?"
            params.append(filters.offset)
        try:
            with self._lock:
                cur = self._conn.execute(query, params)
                rows = cur.fetchall()
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreFailure(f"failed to list subscriptions: {exc}") from exc
        return [self._row_to_subscription(row) for row in rows]

    def calculate_cost(self, filters: CostFilter) -> int:
        query = """
            SELECT COALESCE(SUM(price), 0) AS total_cost
            FROM subscriptions
            WHERE start_date <= ?
              AND (end_date IS NULL OR end_date >= ?)
        """
        params: List[Any] = [
            self._format_date(filters.end_period),
            self._format_date(filters.start_period),
        ]
        if filters.user_id is not None:
            query += " AND user_id = ?"
            params.append(str(filters.user_id))
        if filters.service_name is not None:
            query += " AND service_name = ?"
            params.append(filters.service_name)
        try:
            with self._lock:
                cur = self._conn.execute(query, params)
                row = cur.fetchone()
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreFailure(f"failed to calculate cost: {exc}") from exc
        return int(row["total_cost"]) if row else 0

    # Helpers ----------------------------------------------------------------
    def _execute(self, statement: str, params: Any, *, action: str) -> int:
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(statement, params)
                return cur.rowcount
        except sqlite3.IntegrityError as exc:
            message = str(exc)
            if "UNIQUE" in message or "PRIMARY KEY" in message:
                raise DuplicateKey(f"failed to {action} subscription: {message}") from exc
            raise ConstraintViolation(f"failed to {action} subscription: {message}") from exc
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreFailure(f"failed to {action} subscription: {exc}") from exc

    @staticmethod
    def _format_date(value: Optional[date]) -> Optional[str]:
        return value.isoformat() if value is not None else None

    @staticmethod
    def _format_timestamp(value: datetime) -> str:
        return value.isoformat(timespec="microseconds")

    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> Subscription:
        end_date = row["end_date"]
        return Subscription(
            id=uuid.UUID(row["id"]),
            service_name=row["service_name"],
            price=int(row["price"]),
            user_id=uuid.UUID(row["user_id"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(end_date) if end_date else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
