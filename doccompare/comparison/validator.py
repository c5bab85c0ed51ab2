"""Validates raw parsed comparison JSON against domain invariants."""

from typing import Any

from doccompare.comparison.exceptions import ComparisonValidationError
from doccompare.comparison.models import (
    DIFFERENCE_TYPES,
    IMPORTANCE_LEVELS,
    ComparisonResult,
    KeyDifference,
)

_MAX_DIFFERENCES = 200


def validate_and_build(data: dict[str, Any]) -> ComparisonResult:
    """Validate raw parsed JSON and build a ComparisonResult.

    Raises:
        ComparisonValidationError: on any validation failure.
    """
    for name in ("summary", "score", "differences"):
        if name not in data:
            raise ComparisonValidationError(f"Missing required top-level field: {name}")
    summary = data["summary"]
    if not isinstance(summary, str) or not summary.strip():
        raise ComparisonValidationError("'summary' must be a non-empty string")
    score = _build_score(data["score"])
    differences = _build_differences(data["differences"])
    return ComparisonResult(summary=summary.strip(), score=score, differences=differences)


def _build_score(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ComparisonValidationError("'score' must be a number")
    if not 0 <= raw <= 100:
        raise ComparisonValidationError(f"'score' must be between 0 and 100, got {raw}")
    return round(float(raw), 2)


def _build_differences(raw: Any) -> list[KeyDifference]:
    if not isinstance(raw, list):
        raise ComparisonValidationError("'differences' must be a list")
    if len(raw) > _MAX_DIFFERENCES:
        raise ComparisonValidationError(
            f"Too many differences: {len(raw)} (max {_MAX_DIFFERENCES})"
        )
    return [_build_difference(item, i) for i, item in enumerate(raw)]


def _build_difference(raw: Any, index: int) -> KeyDifference:
    if not isinstance(raw, dict):
        raise ComparisonValidationError(f"Difference at index {index} must be an object")
    for name in ("section", "explanation"):
        value = raw.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ComparisonValidationError(
                f"Difference at index {index}: '{name}' must be a non-empty string"
            )
    kind = raw.get("type")
    if kind not in DIFFERENCE_TYPES:
        raise ComparisonValidationError(
            f"Difference at index {index}: 'type' must be one of "
            f"{sorted(DIFFERENCE_TYPES)}, got {kind!r}"
        )
    importance = raw.get("importance")
    if importance not in IMPORTANCE_LEVELS:
        raise ComparisonValidationError(
            f"Difference at index {index}: 'importance' must be one of "
            f"{sorted(IMPORTANCE_LEVELS)}, got {importance!r}"
        )
    excerpts = {}
    for name in ("standard_text", "compared_text"):
        value = raw.get(name)
        if value is not None and not isinstance(value, str):
            raise ComparisonValidationError(
                f"Difference at index {index}: '{name}' must be a string or null"
            )
        excerpts[name] = value
    return KeyDifference(
        section=raw["section"],
        type=kind,
        importance=importance,
        explanation=raw["explanation"],
        **excerpts,
    )
