from database.category_dao import CategoryDAO
from database.recurring_template_dao import RecurringTemplateDAO
from database.transaction_dao import TransactionDAO
from models.category import Category
from utils.constants import DEFAULT_CATEGORY_NAME


class CategoryService:
    def __init__(
        self, category_dao: CategoryDAO, tx_dao: TransactionDAO, template_dao: RecurringTemplateDAO
    ):
        self._dao = category_dao
        self._tx_dao = tx_dao
        self._template_dao = template_dao

    def get_all(self) -> list[Category]:
        return self._dao.get_all()

    def get_by_id(self, category_id: int) -> Category | None:
        return self._dao.get_by_id(category_id)

    def name_for(self, category_id: int) -> str:
        cat = self._dao.get_by_id(category_id)
        return cat.name if cat else "Unknown"

    def resolve(self, ref: str | int | None = None) -> Category:
        """Find a category by id or name.

        With no reference, use "Other", then the first category, creating
        "Other" when the table is empty. An unknown reference raises ValueError.
        """
        if ref is not None and str(ref).strip():
            text = str(ref).strip()
            cat = self._dao.get_by_id(int(text)) if text.isdigit() else None
            cat = cat or self._dao.get_by_name(text)
            if cat is None:
                raise ValueError(f"Unknown category: {text}")
            return cat

        cat = self._dao.get_by_name(DEFAULT_CATEGORY_NAME)
        if cat:
            return cat
        categories = self._dao.get_all()
        if categories:
            return categories[0]
        return self._dao.create(DEFAULT_CATEGORY_NAME, "📦", is_default=True)

    def create(self, name: str, icon: str = "📦", color_hex: str = "#888888") -> Category:
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        existing = [c.name.lower() for c in self._dao.get_all()]
        if name.lower() in existing:
            raise ValueError(f"A category named '{name}' already exists.")
        return self._dao.create(name, icon, color_hex)

    def update(self, category_id: int, name: str, icon: str, color_hex: str) -> Category:
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        existing = [c for c in self._dao.get_all() if c.id != category_id]
        if any(c.name.lower() == name.lower() for c in existing):
            raise ValueError(f"A category named '{name}' already exists.")
        return self._dao.update(category_id, name, icon, color_hex)

    def delete(self, category_id: int):
        cat = self._dao.get_by_id(category_id)
        if cat is None:
            return
        if cat.is_default:
            raise ValueError("Default categories cannot be deleted.")
        if self._tx_dao.count_for_category(category_id):
            raise ValueError(f"Category '{cat.name}' still has transactions.")
        if any(t.category_id == category_id for t in self._template_dao.load_all()):
            raise ValueError(f"Category '{cat.name}' is used by a recurring template.")
        self._dao.delete(category_id)

    def reset(self):
        """Drop every category and restore the defaults. Transactions must be gone first."""
        self._dao.delete_all()
