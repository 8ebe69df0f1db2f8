"""Cross-reference WaniKani state with the JLPT word lists."""

from __future__ import annotations

from collections import Counter
import logging
from typing import Iterable

from .indexing import index_by, index_where
from .models import Assignment, JLPTEntry, ReconciledItem, Subject
from .normalize import honorific_variants, kanji_in, normalize_subject_characters


LOGGER = logging.getLogger(__name__)


def _lesson_index(assignments: Iterable[Assignment]) -> dict[int, Assignment]:
    return index_where(
        assignments,
        key=lambda a: a.subject_id,
        keep=lambda a: a.available_for_lessons,
    )


def is_jlpt_match(subject: Subject, jlpt_slugs: set[str] | frozenset[str]) -> bool:
    if subject.is_kana_only:
        return True
    form = normalize_subject_characters(subject.characters or "")
    return any(variant in jlpt_slugs for variant in honorific_variants(form))


def select_promotable(
    assignments: Iterable[Assignment],
    subjects: Iterable[Subject],
    jlpt_slugs: set[str] | frozenset[str],
) -> list[ReconciledItem]:
    """Vocabulary waiting in lessons that also appears in the JLPT lists.

    Subject order is kept so callers can cap the result.
    """
    lessons = _lesson_index(assignments)
    out: list[ReconciledItem] = []
    for subject in subjects:
        assignment = lessons.get(subject.id)
        if assignment is None or not subject.is_vocabulary:
            continue
        if is_jlpt_match(subject, jlpt_slugs):
            out.append(ReconciledItem(assignment=assignment, subject=subject))
    LOGGER.info("Promotable vocabulary: %d of %d lesson items", len(out), len(lessons))
    return out


def learned_characters(started_assignments: Iterable[Assignment], subjects: Iterable[Subject]) -> set[str]:
    """Characters of every subject with a started assignment."""
    started = index_where(started_assignments, key=lambda a: a.subject_id, keep=lambda a: a.started)
    return {s.characters for s in subjects if s.id in started and s.characters}


def select_comprehensible(
    started_assignments: Iterable[Assignment],
    kanji_subjects: Iterable[Subject],
    vocab_subjects: Iterable[Subject],
    entries: Iterable[JLPTEntry],
) -> list[JLPTEntry]:
    """JLPT words WaniKani does not teach whose kanji have all been started."""
    learned = learned_characters(started_assignments, kanji_subjects)
    known_vocab = index_by((s for s in vocab_subjects if s.characters), key=lambda s: s.characters)

    out: list[JLPTEntry] = []
    for entry in entries:
        if entry.normalized_slug in known_vocab:
            continue
        if all(char in learned for char in kanji_in(entry.normalized_slug)):
            out.append(entry)
    LOGGER.info("Comprehensible vocabulary: %d (learned kanji=%d)", len(out), len(learned))
    return out


def _contains(haystacks: Iterable[str], needle: str) -> bool:
    needle = needle.casefold()
    return any(needle in h.casefold() for h in haystacks)


def select_matching(
    assignments: Iterable[Assignment],
    subjects: Iterable[Subject],
    char_query: str | None = None,
    meaning_query: str | None = None,
    reading_query: str | None = None,
) -> list[ReconciledItem]:
    """Lesson-ready vocabulary matching every query that was given."""
    lessons = _lesson_index(assignments)
    out: list[ReconciledItem] = []
    for subject in subjects:
        assignment = lessons.get(subject.id)
        if assignment is None or not subject.is_vocabulary:
            continue
        if char_query and char_query not in (subject.characters or ""):
            continue
        if meaning_query and not _contains(subject.meaning_texts(), meaning_query):
            continue
        if reading_query and not _contains(subject.reading_texts(), reading_query):
            continue
        out.append(ReconciledItem(assignment=assignment, subject=subject))
    return out


def count_by_srs_stage(assignments: Iterable[Assignment]) -> dict[int, int]:
    counts = Counter(a.srs_stage for a in assignments)
    return dict(sorted(counts.items()))
