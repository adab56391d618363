"""Text processing utilities for page content analysis."""

import re
from collections import Counter

from bs4 import BeautifulSoup, Comment

# Elements whose text never renders as page copy.
NON_VISIBLE_TAGS = ("script", "style", "noscript", "svg", "iframe", "template", "meta", "link")

STOPWORDS = frozenset({
    "the", "and", "to", "of", "in", "a", "is", "for", "on", "by", "with", "it", "this", "that",
    "at", "from", "as", "an", "be", "are", "or", "your", "we", "you", "our", "their",
})

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    """Count whitespace-separated words in text.

    Args:
        text: Input text.

    Returns:
        Word count.
    """
    return len(text.split())


def visible_text(html: str) -> str:
    """Extract the visible body text of an HTML document.

    The markup is parsed afresh so callers holding a shared soup never see
    it modified.  Falls back to the whole document when there is no body.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(list(NON_VISIBLE_TAGS)):
        tag.decompose()
    for comment in soup.find_all(string=lambda t: isinstance(t, Comment)):
        comment.extract()
    root = soup.body or soup
    text = root.get_text(separator=" ")
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str, stopwords: frozenset[str] = STOPWORDS) -> list[str]:
    """Case-fold *text*, split on non-alphanumerics and drop stopwords."""
    return [w for w in _TOKEN_SPLIT.split(text.lower()) if w and w not in stopwords]


def top_terms(tokens: list[str], limit: int = 5) -> list[tuple[str, int]]:
    """Most frequent single words, ties kept in first-seen order."""
    counts = Counter(tokens)
    return sorted(counts.items(), key=lambda item: -item[1])[:limit]


def top_phrases(tokens: list[str], limit: int = 5) -> list[tuple[str, int]]:
    """Most frequent adjacent two-word phrases, ties kept in first-seen order."""
    counts = Counter(f"{a} {b}" for a, b in zip(tokens, tokens[1:]))
    return sorted(counts.items(), key=lambda item: -item[1])[:limit]
