"""Categorization rule tables."""

from dataclasses import dataclass, field
from typing import Optional

from finance_ledger.models.transaction import TransactionType

DEFAULT_CATEGORY = "Misc"


@dataclass(frozen=True)
class CategoryRule:
    """Keyword rule assigning a category.

    Matching is a case-insensitive substring test against the description.

    Attributes:
        category: Category to assign when any keyword matches.
        keywords: Keywords tried against the lower-cased description.
        direction: Restrict the rule to debits or credits; None applies to both.
    """

    category: str
    keywords: tuple[str, ...]
    direction: Optional[TransactionType] = None

    def matches(self, description_lower: str) -> Optional[str]:
        """Return the first keyword found in the description, or None."""
        for keyword in self.keywords:
            if keyword.lower() in description_lower:
                return keyword
        return None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "CategoryRule":
        """Create a rule from a dictionary (e.g., from YAML config).

        Expected keys: category, keywords (list or single string), optional direction.
        """
        if "category" not in data:
            raise ValueError("Rule is missing 'category'")
        raw_keywords = data.get("keywords", [])
        if isinstance(raw_keywords, str):
            raw_keywords = [raw_keywords]
        keywords = tuple(str(k).lower() for k in raw_keywords)  # type: ignore[union-attr]
        if not keywords:
            raise ValueError(f"Rule for '{data['category']}' has no keywords")

        direction = None
        if data.get("direction"):
            direction = TransactionType.from_value(str(data["direction"]))

        return cls(category=str(data["category"]), keywords=keywords, direction=direction)


@dataclass(frozen=True)
class RuleTable:
    """Ordered rule table for one dialect.

    Rules restricted to a direction are evaluated before unrestricted (shared)
    rules; within each group declaration order decides. Unmatched
    descriptions get the direction-specific default if one is set, otherwise
    `default`.

    Attributes:
        rules: Rules in declaration order.
        default: Category for unmatched descriptions.
        direction_defaults: Per-direction overrides of `default`.
    """

    rules: tuple[CategoryRule, ...] = ()
    default: str = DEFAULT_CATEGORY
    direction_defaults: dict[TransactionType, str] = field(default_factory=dict)

    def default_for(self, direction: TransactionType) -> str:
        return self.direction_defaults.get(direction, self.default)

    def ordered_for(self, direction: TransactionType) -> list[CategoryRule]:
        """Rules that apply to a direction, in evaluation order."""
        specific = [r for r in self.rules if r.direction is direction]
        shared = [r for r in self.rules if r.direction is None]
        return specific + shared

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "RuleTable":
        """Create a rule table from a dictionary (e.g., from YAML config)."""
        rules = tuple(
            CategoryRule.from_dict(rule_data)
            for rule_data in data.get("rules", []) or []  # type: ignore[union-attr]
        )
        direction_defaults: dict[TransactionType, str] = {}
        for key, value in dict(data.get("direction_defaults", {}) or {}).items():  # type: ignore[call-overload]
            direction_defaults[TransactionType.from_value(str(key))] = str(value)

        return cls(
            rules=rules,
            default=str(data.get("default", DEFAULT_CATEGORY)),
            direction_defaults=direction_defaults,
        )
