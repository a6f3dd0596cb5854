import re
from enum import Enum


class Intent(str, Enum):
    BACKGROUND_REMOVAL = "background_removal"
    GRAYSCALE = "grayscale"
    WARM_TONE = "warm_tone"
    WATERCOLOR = "watercolor"
    NONE = "none"


_BACKGROUND_REMOVAL_RE = re.compile(
    r"remove\s+(the\s+)?background|background\s+removal|transparent\s+background", re.IGNORECASE
)

# Checked in order; the first match wins.
_LOCAL_FILTER_PATTERNS: list[tuple[Intent, re.Pattern[str]]] = [
    (Intent.GRAYSCALE, re.compile(r"black\s*and\s*white|grayscale|greyscale|mono(chrome)?", re.IGNORECASE)),
    (Intent.WARM_TONE, re.compile(r"warm|sunset|golden\s+hour", re.IGNORECASE)),
    (Intent.WATERCOLOR, re.compile(r"water\s*color|watercolor", re.IGNORECASE)),
]


def is_background_removal(prompt: str | None) -> bool:
    return bool(prompt) and _BACKGROUND_REMOVAL_RE.search(prompt) is not None


def classify(prompt: str | None) -> Intent:
    if not prompt:
        return Intent.NONE
    if is_background_removal(prompt):
        return Intent.BACKGROUND_REMOVAL
    for intent, pattern in _LOCAL_FILTER_PATTERNS:
        if pattern.search(prompt):
            return intent
    return Intent.NONE
