"""Expense category and keyword rule domain service."""

from typing import Optional, Sequence

from bankrecon.database.base import Database
from bankrecon.domain.entities import CategoryRule, ExpenseCategory
from bankrecon.domain.errors import NotFoundError, ValidationError
from bankrecon.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_RULE_PRIORITY = 5


def resolve_category(memo: Optional[str], rules: Sequence[CategoryRule]) -> Optional[int]:
    """Return the category of the first rule whose keyword occurs in the memo.

    Rules are expected highest priority first, as returned by the store.
    """
    upper = (memo or "").upper()
    for rule in rules:
        if rule.keyword and rule.keyword.upper() in upper:
            return rule.category_id
    return None


class CategoryRuleService:
    """Service for managing expense categories and their keyword rules."""

    def __init__(self, db: Database):
        """Initialize category rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str) -> int:
        """Create an expense category.

        Args:
            name: Category name

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a category with the same name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        return self.db.create_expense_category(name)

    def get_or_create_category(self, name: str) -> int:
        """Return the ID of the named category, creating it if absent."""
        existing = self.db.get_expense_category_by_name(name)
        if existing is not None:
            return existing.id
        category_id = self.create_category(name)
        logger.info("expense_category_created", category_id=category_id, name=name)
        return category_id

    def list_categories(self) -> list[ExpenseCategory]:
        """List expense categories ordered by name."""
        return self.db.list_expense_categories()

    def add_rule(
        self, keyword: str, category_name: str, priority: int = DEFAULT_RULE_PRIORITY
    ) -> int:
        """Add a keyword rule.

        Args:
            keyword: Text to look for in transaction memos (stored uppercase)
            category_name: Category assigned when the keyword matches; created if absent
            priority: Higher priorities are tried first

        Returns:
            Rule ID

        Raises:
            ValidationError: If the keyword is empty
        """
        keyword = (keyword or "").strip().upper()
        if not keyword:
            raise ValidationError("Rule keyword is required")
        category_id = self.get_or_create_category(category_name)
        return self.db.create_category_rule(
            keyword=keyword, category_id=category_id, priority=priority
        )

    def list_rules(self) -> list[CategoryRule]:
        """List rules, highest priority first."""
        return self.db.list_category_rules()

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        if self.db.get_category_rule(rule_id) is None:
            raise NotFoundError(f"Category rule {rule_id} not found")
        self.db.delete_category_rule(rule_id)

    def resolve_category(self, memo: Optional[str]) -> Optional[int]:
        """Return the category ID the stored rules assign to a memo, if any."""
        return resolve_category(memo, self.list_rules())
