"""Rule-table categorizer for transaction descriptions."""

from finance_ledger.models.category import RuleTable
from finance_ledger.models.transaction import TransactionType
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


def categorize(description: str, direction: TransactionType, table: RuleTable) -> str:
    """Map a description and direction to a category label.

    Rules restricted to the direction are tried first, then shared rules,
    each group top-to-bottom. The first rule with a keyword contained in the
    lower-cased description wins.

    Args:
        description: Transaction description text.
        direction: Debit or credit.
        table: Dialect rule table.

    Returns:
        Category label; the table's default for the direction when nothing matches.
    """
    description_lower = description.lower()
    for rule in table.ordered_for(direction):
        keyword = rule.matches(description_lower)
        if keyword is not None:
            logger.debug(f"Matched '{keyword}' -> {rule.category}: {description[:50]}")
            return rule.category
    return table.default_for(direction)


class Categorizer:
    """Categorizes descriptions with one dialect's rule table."""

    def __init__(self, table: RuleTable):
        """Initialize categorizer.

        Args:
            table: Ordered rule table to evaluate.
        """
        self.table = table

    def category_for(self, description: str, direction: TransactionType) -> str:
        return categorize(description, direction, self.table)

