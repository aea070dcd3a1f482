"""Search keywords stored on index entries for prefix and phrase lookup."""

import re
from typing import Iterable, List, Optional

_PUNCTUATION = re.compile(r"[^\w\s]")
MIN_WORD_LENGTH = 3
MIN_PREFIX_LENGTH = 3


def generate_search_keywords(text: str) -> List[str]:
    """
    Words, adjacent word pairs and word prefixes of ``text``.

    Words shorter than three characters are dropped. Prefixes start at
    three characters and are only produced for words longer than that.
    Order of first appearance is kept and duplicates are removed.

    Example:
        >>> generate_search_keywords("Robe Sandro")
        ['robe', 'sandro', 'robe sandro', 'rob', 'san', 'sand', 'sandr']
    """
    if not text:
        return []

    words = [
        word
        for word in _PUNCTUATION.sub(" ", text.lower()).split()
        if len(word) >= MIN_WORD_LENGTH
    ]

    keywords = dict.fromkeys(words)
    for first, second in zip(words, words[1:]):
        keywords[f"{first} {second}"] = None
    for word in words:
        if len(word) > MIN_PREFIX_LENGTH:
            for end in range(MIN_PREFIX_LENGTH, len(word) + 1):
                keywords[word[:end]] = None

    return list(keywords)


def search_text(parts: Iterable[Optional[str]]) -> str:
    """Join the non-empty text fields an item is searchable by."""
    return " ".join(part for part in parts if part)
