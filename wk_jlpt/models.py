"""Typed views over WaniKani API records and JLPT word list rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

VOCAB_TYPES = ("vocabulary", "kana_vocabulary")


@dataclass(frozen=True)
class Subject:
    id: int
    type: str
    characters: str | None
    level: int
    slug: str = ""
    document_url: str = ""
    meanings: list[dict[str, Any]] = field(default_factory=list)
    auxiliary_meanings: list[dict[str, Any]] = field(default_factory=list)
    readings: list[dict[str, Any]] = field(default_factory=list)
    meaning_mnemonic: str = ""
    meaning_hint: str | None = None
    reading_mnemonic: str | None = None
    reading_hint: str | None = None
    component_subject_ids: list[int] = field(default_factory=list)
    amalgamation_subject_ids: list[int] = field(default_factory=list)
    visually_similar_subject_ids: list[int] = field(default_factory=list)

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Subject":
        data = record.get("data", {})
        return cls(
            id=int(record["id"]),
            type=str(record.get("object", "")),
            characters=data.get("characters"),
            level=int(data.get("level", 0)),
            slug=data.get("slug", "") or "",
            document_url=data.get("document_url", "") or "",
            meanings=list(data.get("meanings", []) or []),
            auxiliary_meanings=list(data.get("auxiliary_meanings", []) or []),
            readings=list(data.get("readings", []) or []),
            meaning_mnemonic=data.get("meaning_mnemonic", "") or "",
            meaning_hint=data.get("meaning_hint"),
            reading_mnemonic=data.get("reading_mnemonic"),
            reading_hint=data.get("reading_hint"),
            component_subject_ids=list(data.get("component_subject_ids", []) or []),
            amalgamation_subject_ids=list(data.get("amalgamation_subject_ids", []) or []),
            visually_similar_subject_ids=list(data.get("visually_similar_subject_ids", []) or []),
        )

    @property
    def is_vocabulary(self) -> bool:
        return self.type in VOCAB_TYPES

    @property
    def is_kana_only(self) -> bool:
        return self.type == "kana_vocabulary"

    def meaning_texts(self) -> list[str]:
        return [str(m.get("meaning", "")) for m in self.meanings + self.auxiliary_meanings]

    def reading_texts(self) -> list[str]:
        if self.is_kana_only:
            return [self.characters or ""]
        return [str(r.get("reading", "")) for r in self.readings]

    def describe(self) -> str:
        meanings = ", ".join(m for m in self.meaning_texts()[:3] if m)
        readings = ", ".join(r for r in self.reading_texts() if r)
        return f"{self.characters} [{readings}] {meanings} (Level {self.level})"


@dataclass(frozen=True)
class Assignment:
    id: int
    subject_id: int
    subject_type: str
    srs_stage: int
    unlocked_at: str | None = None
    started_at: str | None = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Assignment":
        data = record.get("data", {})
        return cls(
            id=int(record["id"]),
            subject_id=int(data["subject_id"]),
            subject_type=str(data.get("subject_type", "")),
            srs_stage=int(data.get("srs_stage", 0) or 0),
            unlocked_at=data.get("unlocked_at"),
            started_at=data.get("started_at"),
        )

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None

    @property
    def started(self) -> bool:
        return self.started_at is not None

    @property
    def available_for_lessons(self) -> bool:
        # Same condition the API applies for immediately_available_for_lessons.
        return self.unlocked and not self.started


@dataclass(frozen=True)
class StudyMaterial:
    id: int
    subject_id: int
    subject_type: str
    meaning_note: str | None = None
    reading_note: str | None = None
    meaning_synonyms: list[str] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "StudyMaterial":
        data = record.get("data", {})
        return cls(
            id=int(record["id"]),
            subject_id=int(data["subject_id"]),
            subject_type=str(data.get("subject_type", "")),
            meaning_note=data.get("meaning_note"),
            reading_note=data.get("reading_note"),
            meaning_synonyms=list(data.get("meaning_synonyms", []) or []),
            created_at=data.get("created_at"),
            updated_at=record.get("data_updated_at"),
        )


@dataclass(frozen=True)
class JLPTEntry:
    """One row of a JLPT word list.

    `slug` is the identifier stored in the list; `normalized_slug` is the
    surface form used to match against WaniKani subjects.
    """

    slug: str
    normalized_slug: str
    reading: str
    tier: int
    japanese: list[dict[str, Any]] = field(default_factory=list)
    senses: list[dict[str, Any]] = field(default_factory=list)

    def forms(self) -> list[str]:
        out = []
        for form in self.japanese:
            word = form.get("word")
            reading = form.get("reading", "")
            out.append(f"{word} ({reading})" if word else str(reading))
        return out


@dataclass(frozen=True)
class ReconciledItem:
    assignment: Assignment
    subject: Subject


@dataclass(frozen=True)
class RankedEntry:
    entry: JLPTEntry
    level: int
    present_in_service: bool
    contains_katakana: bool = False

    @property
    def slug(self) -> str:
        return self.entry.normalized_slug
