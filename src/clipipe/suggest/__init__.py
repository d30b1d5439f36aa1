"""Typo suggestions and suggestion-tool registration."""

from clipipe.suggest.registration import (
    FeatureRegistration,
    clear_sentinels,
    list_sentinels,
    register_with_suggest_tool,
)
from clipipe.suggest.typo import TypoCorrection, levenshtein

__all__ = [
    "FeatureRegistration",
    "TypoCorrection",
    "clear_sentinels",
    "levenshtein",
    "list_sentinels",
    "register_with_suggest_tool",
]
