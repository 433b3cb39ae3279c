"""Extract a numeric score from free-text model feedback."""

import re
from typing import Optional

# First line of the expected feedback format: "**Yekun bal: 82/100**"
PRIMARY_SCORE_PATTERN = re.compile(r'^\s*\*\*Yekun bal:\s*(\d+)', re.IGNORECASE)

# Looser "<word>: <n>" fallback, first match anywhere wins.
FALLBACK_SCORE_PATTERN = re.compile(r'(?:bal|score|qiymət)[\s:]*(\d+)', re.IGNORECASE)


def clamp_score(value: int, max_score: int) -> int:
    """Clamp a score into [0, max_score]."""
    return max(0, min(max_score, value))


def extract_score(text: str, max_score: int) -> Optional[int]:
    """
    Find the score in model feedback.

    Args:
        text: Raw feedback returned by the model
        max_score: Task maximum; found scores are clamped to [0, max_score]

    Returns:
        Clamped score, or None when no score marker was found
    """
    if not text:
        return None

    match = PRIMARY_SCORE_PATTERN.match(text) or FALLBACK_SCORE_PATTERN.search(text)
    if not match:
        return None
    return clamp_score(int(match.group(1)), max_score)
