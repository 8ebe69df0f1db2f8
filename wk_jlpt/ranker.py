"""Custom study order for JLPT vocabulary.

Order:
1. words WaniKani does not teach, by increasing level (highest level among
   their kanji; words with a kanji WaniKani lacks come last in this group);
2. words WaniKani teaches, by decreasing subject level.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping

from .models import JLPTEntry, RankedEntry, Subject
from .normalize import contains_katakana, kanji_in


LOGGER = logging.getLogger(__name__)


def derived_level(slug: str, kanji_levels: Mapping[str, int], max_known_level: int) -> int:
    """Highest WaniKani level among the slug's kanji; unknown kanji → max + 1."""
    level = 0
    for char in kanji_in(slug):
        known = kanji_levels.get(char)
        if known is None:
            return max_known_level + 1
        level = max(level, known)
    return level


def rank_entry(
    entry: JLPTEntry,
    vocab_by_chars: Mapping[str, Subject],
    kanji_levels: Mapping[str, int],
    max_known_level: int,
) -> RankedEntry:
    slug = entry.normalized_slug
    subject = vocab_by_chars.get(slug)
    if subject is not None:
        return RankedEntry(entry=entry, level=subject.level, present_in_service=True)
    return RankedEntry(
        entry=entry,
        level=derived_level(slug, kanji_levels, max_known_level),
        present_in_service=False,
        contains_katakana=contains_katakana(slug),
    )


def sort_key(item: RankedEntry) -> tuple[int, int]:
    if item.present_in_service:
        return 1, -item.level
    return 0, item.level


def rank(
    entries: Iterable[JLPTEntry],
    vocab_by_chars: Mapping[str, Subject],
    kanji_levels: Mapping[str, int],
    max_known_level: int | None = None,
) -> list[RankedEntry]:
    if max_known_level is None:
        max_known_level = max(kanji_levels.values(), default=0)
    ranked = [rank_entry(e, vocab_by_chars, kanji_levels, max_known_level) for e in entries]
    # sorted() is stable; ties keep list order.
    ranked = sorted(ranked, key=sort_key)
    present = sum(1 for r in ranked if r.present_in_service)
    LOGGER.info("Ranked vocabulary: %d entries (%d taught by WaniKani)", len(ranked), present)
    return ranked


def format_rows(ranked: Iterable[RankedEntry]) -> Iterator[str]:
    for item in ranked:
        yield f"{item.slug},{item.level}"
