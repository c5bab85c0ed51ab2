from doccompare.comparison.base import BaseComparator
from doccompare.comparison.comparator import Comparator
from doccompare.comparison.factory import ComparatorFactory

__all__ = ["BaseComparator", "Comparator", "ComparatorFactory"]
