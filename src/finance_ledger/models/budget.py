"""Budget tables: named allocation ceilings per category."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Mapping

from finance_ledger.utils.decimal_utils import ZERO, safe_decimal, sum_amounts
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BudgetCategory:
    """A named category with an allocated monetary ceiling for a period."""

    name: str
    allocation: Decimal


@dataclass
class BudgetTable:
    """Ordered set of BudgetCategory entries, unique by name.

    Editing the table never touches transactions; spend is always computed
    from the ledger on demand.
    """

    categories: list[BudgetCategory] = field(default_factory=list)

    def __post_init__(self) -> None:
        names = [c.name for c in self.categories]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate budget categories: {', '.join(sorted(duplicates))}")

    def __iter__(self) -> Iterator[BudgetCategory]:
        return iter(list(self.categories))

    def __len__(self) -> int:
        return len(self.categories)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.categories)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.categories]

    @property
    def total(self) -> Decimal:
        """Sum of all allocations."""
        return sum_amounts(c.allocation for c in self.categories)

    def allocation_for(self, name: str) -> Decimal:
        """Allocation for a category, zero when the table has no such entry."""
        for category in self.categories:
            if category.name == name:
                return category.allocation
        return ZERO

    def update(self, name: str, allocation: Decimal) -> bool:
        """Replace the allocation of an existing category.

        Returns:
            True if the category existed and was updated.
        """
        for i, category in enumerate(self.categories):
            if category.name == name:
                self.categories[i] = BudgetCategory(name=name, allocation=allocation)
                logger.debug(f"Budget '{name}' updated to {allocation}")
                return True
        logger.debug(f"Budget '{name}' not found, update ignored")
        return False

    def add(self, category: BudgetCategory) -> bool:
        """Append a category unless one with the same name exists.

        Returns:
            True if the category was added.
        """
        if category.name in self:
            return False
        self.categories.append(category)
        return True

    def remove(self, name: str) -> bool:
        """Remove a category by name.

        Returns:
            True if something was removed.
        """
        before = len(self.categories)
        self.categories = [c for c in self.categories if c.name != name]
        return len(self.categories) != before

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> "BudgetTable":
        """Build a table from a YAML mapping of category name to allocation."""
        if not data:
            return cls()
        return cls(
            categories=[
                BudgetCategory(name=str(name), allocation=safe_decimal(amount))
                for name, amount in data.items()
            ]
        )

    def to_dict(self) -> dict[str, str]:
        return {c.name: str(c.allocation) for c in self.categories}
