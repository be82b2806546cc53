from typing import Optional
from database.db_manager import DatabaseManager
from models.category import Category


class CategoryDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db
        self._all_cache: list | None = None

    def _invalidate_cache(self):
        self._all_cache = None

    def _row_to_model(self, row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            icon=row["icon"],
            color_hex=row["color_hex"],
            is_default=bool(row["is_default"]),
        )

    def get_all(self) -> list[Category]:
        if self._all_cache is None:
            conn = self._db.get_connection()
            rows = conn.execute(
                "SELECT * FROM categories ORDER BY name"
            ).fetchall()
            self._all_cache = [self._row_to_model(r) for r in rows]
        return self._all_cache

    def get_by_id(self, category_id: int) -> Optional[Category]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_name(self, name: str) -> Optional[Category]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM categories WHERE name = ? COLLATE NOCASE", (name,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self, name: str, icon: str = "📦", color_hex: str = "#888888", is_default: bool = False
    ) -> Category:
        conn = self._db.get_connection()
        cursor = conn.execute(
            "INSERT INTO categories(name, icon, color_hex, is_default) VALUES (?, ?, ?, ?)",
            (name, icon, color_hex, 1 if is_default else 0),
        )
        conn.commit()
        self._invalidate_cache()
        return self.get_by_id(cursor.lastrowid)

    def update(self, category_id: int, name: str, icon: str, color_hex: str) -> Category:
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE categories
               SET name=?, icon=?, color_hex=?, updated_at=datetime('now', 'localtime')
               WHERE id=?""",
            (name, icon, color_hex, category_id),
        )
        conn.commit()
        self._invalidate_cache()
        return self.get_by_id(category_id)

    def delete(self, category_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
        conn.commit()
        self._invalidate_cache()

    def delete_all(self):
        """Remove every category, then restore the default set."""
        conn = self._db.get_connection()
        conn.execute("DELETE FROM categories")
        conn.commit()
        self._invalidate_cache()
        self._db.seed_default_categories()
