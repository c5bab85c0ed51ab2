from dataclasses import asdict, dataclass, field
from typing import Any

DIFFERENCE_TYPES = frozenset({"missing", "different", "additional"})
IMPORTANCE_LEVELS = frozenset({"high", "medium", "low"})


@dataclass(frozen=True)
class KeyDifference:
    """One clause-level difference between the standard and the compared document."""

    section: str
    type: str
    importance: str
    explanation: str
    standard_text: str | None = None
    compared_text: str | None = None


@dataclass(frozen=True)
class ComparisonResult:
    """Output of a comparison: summary, differences and a 0-100 similarity score."""

    summary: str
    score: float
    differences: list[KeyDifference] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
