"""Slug, excerpt and reading-time derivation for post content."""

import math
import re
import unicodedata
from dataclasses import dataclass

WORDS_PER_MINUTE = 200
EXCERPT_MAX_LENGTH = 160
ELLIPSIS = "..."

# Characters dropped outright (no separator left in their place)
_REMOVED_RE = re.compile(r"[*+~.()'\"!:@]")
_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")
_MARKDOWN_MARKER_RE = re.compile(r"[#*`]")
_CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")


@dataclass(frozen=True)
class ContentStats:
    reading_time: int
    excerpt: str


def create_slug(title: str) -> str:
    """Turn a post title into a URL-safe slug.

    Total and deterministic. Titles with no letters or digits produce an
    empty string, which callers must reject.
    """
    value = _REMOVED_RE.sub("", title)
    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii").lower()
    return _SEPARATOR_RE.sub("-", value).strip("-")


def _count_words(content: str) -> int:
    # CJK text has no spaces; count each ideograph as a word
    cjk = len(_CJK_RE.findall(content))
    latin = len(_CJK_RE.sub(" ", content).split())
    return cjk + latin


def estimate_reading_time(content: str) -> int:
    """Minutes to read ``content`` at 200 words per minute, never below 1."""
    return max(1, math.ceil(_count_words(content) / WORDS_PER_MINUTE))


def make_excerpt(content: str) -> str:
    """First non-empty line of ``content`` with Markdown markers stripped."""
    cleaned = _MARKDOWN_MARKER_RE.sub("", content)
    for line in cleaned.splitlines():
        line = line.strip()
        if not line:
            continue
        if len(line) > EXCERPT_MAX_LENGTH:
            cut = EXCERPT_MAX_LENGTH - len(ELLIPSIS)
            return line[:cut].rstrip() + ELLIPSIS
        return line
    return ""


def process_content(content: str) -> ContentStats:
    return ContentStats(
        reading_time=estimate_reading_time(content),
        excerpt=make_excerpt(content),
    )
