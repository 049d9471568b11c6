"""
Categorization Rule Data Model
==============================

Keyword-to-category mapping used to auto-tag bank debits.
"""

from dataclasses import dataclass

from .expense import ExpenseCategory


@dataclass
class CategorizationRule:
    """Case-insensitive keyword rule; lower position is checked first."""

    id: str
    keyword: str
    category: ExpenseCategory
    position: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "CategorizationRule":
        return cls(
            id=data.get("id", ""),
            keyword=data.get("keyword", ""),
            category=ExpenseCategory(data.get("category")),
            position=int(data.get("position") or 0),
        )

    def matches(self, description: str) -> bool:
        """Check whether the keyword appears anywhere in the description."""
        keyword = (self.keyword or "").strip().lower()
        if not keyword:
            return False
        return keyword in (description or "").lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "keyword": self.keyword,
            "category": self.category.value,
            "position": self.position,
        }
