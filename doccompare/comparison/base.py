from abc import ABC, abstractmethod

from doccompare.comparison.models import ComparisonResult


class BaseComparator(ABC):
    """Contract for all comparison adapters."""

    @abstractmethod
    def compare(self, text1: str, text2: str) -> ComparisonResult:
        """Compare two extracted document texts.

        Args:
            text1: Text of the first (reference) document.
            text2: Text of the second document.

        Returns:
            ComparisonResult with summary, key differences and similarity score.

        Raises:
            ComparisonError: on any failure.
        """
