import re

from doccompare.comparison.base import BaseComparator
from doccompare.comparison.models import ComparisonResult, KeyDifference

_WORD_RE = re.compile(r"\S+")
_MIN_WORD_LENGTH = 4
_SAMPLE_SIZE = 10


def word_set(text: str) -> set[str]:
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) >= _MIN_WORD_LENGTH}


def interpret(score: float) -> str:
    if score > 80:
        return "Very Similar"
    if score > 60:
        return "Similar"
    if score > 40:
        return "Somewhat Similar"
    if score > 20:
        return "Different"
    return "Very Different"


class SimilarityComparator(BaseComparator):
    """Offline comparator scoring word overlap (Jaccard index over words of 4+ chars)."""

    def compare(self, text1: str, text2: str) -> ComparisonResult:
        words1 = word_set(text1)
        words2 = word_set(text2)
        union = words1 | words2
        common = words1 & words2
        score = round(len(common) / len(union) * 100, 2) if union else 0.0

        differences = []
        only_first = sorted(words1 - words2)
        only_second = sorted(words2 - words1)
        if only_first:
            differences.append(
                KeyDifference(
                    section="vocabulary",
                    type="missing",
                    importance="low",
                    explanation=f"{len(only_first)} words appear only in the first document",
                    standard_text=", ".join(only_first[:_SAMPLE_SIZE]),
                )
            )
        if only_second:
            differences.append(
                KeyDifference(
                    section="vocabulary",
                    type="additional",
                    importance="low",
                    explanation=f"{len(only_second)} words appear only in the second document",
                    compared_text=", ".join(only_second[:_SAMPLE_SIZE]),
                )
            )
        summary = (
            f"{interpret(score)}: {len(common)} shared words out of {len(union)} distinct"
        )
        return ComparisonResult(summary=summary, score=score, differences=differences)
