from typing import Optional
from database.db_manager import DatabaseManager
from models.notification import PendingNotification
from utils.date_helpers import format_datetime, parse_datetime


class NotificationDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> PendingNotification:
        return PendingNotification(
            id=row["id"],
            title=row["title"],
            body=row["body"],
            fire_at=parse_datetime(row["fire_at"]),
            category=row["category"],
            repeats=row["repeats"],
            delivered=bool(row["delivered"]),
        )

    def upsert(self, n: PendingNotification) -> None:
        """Insert, replacing any request with the same id."""
        conn = self._db.get_connection()
        conn.execute(
            """INSERT OR REPLACE INTO pending_notifications
               (id, title, body, fire_at, category, repeats, delivered)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (n.id, n.title, n.body, format_datetime(n.fire_at),
             n.category, n.repeats, 1 if n.delivered else 0),
        )
        conn.commit()

    def get_by_id(self, notification_id: str) -> Optional[PendingNotification]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM pending_notifications WHERE id = ?", (notification_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_pending(self) -> list[PendingNotification]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM pending_notifications WHERE delivered = 0 ORDER BY fire_at, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_delivered(self) -> list[PendingNotification]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM pending_notifications WHERE delivered = 1 ORDER BY fire_at, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_due(self, as_of: str) -> list[PendingNotification]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM pending_notifications
               WHERE delivered = 0 AND fire_at <= ?
               ORDER BY fire_at, id""",
            (as_of,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def mark_delivered(self, notification_id: str) -> None:
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE pending_notifications SET delivered = 1 WHERE id = ?", (notification_id,)
        )
        conn.commit()

    def delete(self, notification_id: str) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM pending_notifications WHERE id = ?", (notification_id,))
        conn.commit()

    def delete_by_prefix(self, prefix: str) -> int:
        """Remove every request whose id starts with prefix. Returns rows removed."""
        conn = self._db.get_connection()
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        cursor = conn.execute(
            "DELETE FROM pending_notifications WHERE id LIKE ? ESCAPE '\\'",
            (escaped + "%",),
        )
        conn.commit()
        return cursor.rowcount

    def delete_delivered(self) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM pending_notifications WHERE delivered = 1")
        conn.commit()

    def delete_all(self) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM pending_notifications")
        conn.commit()
