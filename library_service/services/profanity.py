"""Whole-word profanity detection for book titles."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

from library_service.config import get_settings

DEFAULT_PROFANITY_WORDS = [
    "damn",
    "hell",
    "ass",
    "bastard",
    "bitch",
    "crap",
    "shit",
    "fuck",
    "piss",
]


def get_profanity_words() -> list[str]:
    """Default list plus any PROFANITY_WORDS_CUSTOM additions, de-duplicated."""
    words = DEFAULT_PROFANITY_WORDS + get_settings().profanity_custom_list
    return list(dict.fromkeys(words))


class ProfanityFilter:
    def __init__(self, words: list[str]) -> None:
        self.words = words
        alternation = "|".join(re.escape(w) for w in words)
        self._pattern = re.compile(rf"\b({alternation})\b", re.IGNORECASE) if words else None

    def contains_profanity(self, text: Any) -> bool:
        if not text or not isinstance(text, str) or self._pattern is None:
            return False
        return self._pattern.search(text) is not None

    def clean_text(self, text: Any) -> Any:
        if not text or not isinstance(text, str) or self._pattern is None:
            return text
        return self._pattern.sub(lambda m: "*" * len(m.group(0)), text)


@lru_cache()
def get_profanity_filter() -> ProfanityFilter:
    return ProfanityFilter(get_profanity_words())


def contains_profanity(text: Any) -> bool:
    return get_profanity_filter().contains_profanity(text)


def clean_text(text: Any) -> Any:
    return get_profanity_filter().clean_text(text)
