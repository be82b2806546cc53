import logging
import os
import sqlite3
from utils.constants import DB_FILE, DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def initialize(self):
        """Create schema and seed defaults."""
        conn = self.get_connection()
        self._create_schema(conn)
        self._migrate_schema(conn)
        self.seed_default_categories()
        conn.commit()

    def _migrate_schema(self, conn: sqlite3.Connection):
        """Idempotent ALTER TABLE for columns added after initial release."""
        cols = {row[1] for row in conn.execute("PRAGMA table_info(transactions)").fetchall()}
        if "source_template_id" not in cols:
            conn.execute("ALTER TABLE transactions ADD COLUMN source_template_id TEXT")

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS categories (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                name        TEXT    NOT NULL UNIQUE,
                icon        TEXT    NOT NULL DEFAULT '📦',
                color_hex   TEXT    NOT NULL DEFAULT '#888888',
                is_default  INTEGER NOT NULL DEFAULT 0,
                created_at  TEXT    NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at  TEXT    NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                type               TEXT NOT NULL CHECK(type IN ('expense','income')),
                amount             TEXT NOT NULL,
                category_id        INTEGER NOT NULL REFERENCES categories(id) ON DELETE RESTRICT,
                note               TEXT,
                date               TEXT NOT NULL,
                source_template_id TEXT,
                created_at         TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
                updated_at         TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
            );

            CREATE INDEX IF NOT EXISTS idx_transactions_date        ON transactions(date);
            CREATE INDEX IF NOT EXISTS idx_transactions_category_id ON transactions(category_id);

            CREATE TABLE IF NOT EXISTS app_settings (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS pending_notifications (
                id        TEXT PRIMARY KEY,
                title     TEXT NOT NULL,
                body      TEXT NOT NULL,
                fire_at   TEXT NOT NULL,
                category  TEXT NOT NULL DEFAULT '',
                repeats   TEXT NOT NULL DEFAULT '',
                delivered INTEGER NOT NULL DEFAULT 0
            );
        """)

    def seed_default_categories(self):
        """Insert the default category set when the table is empty."""
        conn = self.get_connection()
        count = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
        if count:
            return
        for cat in DEFAULT_CATEGORIES:
            conn.execute(
                """INSERT OR IGNORE INTO categories(name, icon, color_hex, is_default)
                   VALUES (?, ?, ?, 1)""",
                (cat["name"], cat["icon"], cat["color_hex"]),
            )
        conn.commit()

    def get_setting(self, key: str, default: str = "") -> str:
        conn = self.get_connection()
        row = conn.execute(
            "SELECT value FROM app_settings WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str):
        conn = self.get_connection()
        conn.execute(
            "INSERT OR REPLACE INTO app_settings(key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()

    def set_settings(self, values: dict[str, str]):
        """Write several keys in one commit."""
        conn = self.get_connection()
        try:
            conn.executemany(
                "INSERT OR REPLACE INTO app_settings(key, value) VALUES (?, ?)",
                list(values.items()),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    def delete_setting(self, key: str):
        conn = self.get_connection()
        conn.execute("DELETE FROM app_settings WHERE key = ?", (key,))
        conn.commit()

    def get_setting_keys(self) -> list[str]:
        conn = self.get_connection()
        rows = conn.execute("SELECT key FROM app_settings ORDER BY key").fetchall()
        return [r["key"] for r in rows]

    @staticmethod
    def open(db_folder: str | None = None) -> "DatabaseManager":
        """Startup factory: opens (creating if needed) the app database.

        db_folder: if provided, the DB file is stored in that directory instead of CWD.
        """
        if db_folder:
            os.makedirs(db_folder, exist_ok=True)
            path = os.path.join(db_folder, DB_FILE)
        else:
            path = DB_FILE
        db = DatabaseManager(path)
        db.initialize()
        logger.debug("Opened database at %s", path)
        return db

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
