"""Radical study-material export and import.

The export joins each radical with its user notes and, when a kanji with
the same character exists, that kanji. The same YAML document can be edited
and fed back through `sync_radical_materials`.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol, TextIO

import yaml

from .indexing import index_by
from .models import StudyMaterial, Subject


LOGGER = logging.getLogger(__name__)

SYNCED_FIELDS = ("meaning_note", "reading_note", "meaning_synonyms")


def empty_study_material() -> dict[str, Any]:
    return {
        "updated_at": None,
        "created_at": None,
        "meaning_note": "",
        "reading_note": "",
        "meaning_synonyms": [],
    }


def _material_doc(sm: StudyMaterial) -> dict[str, Any]:
    return {
        "updated_at": sm.updated_at,
        "created_at": sm.created_at,
        "meaning_note": sm.meaning_note,
        "reading_note": sm.reading_note,
        "meaning_synonyms": list(sm.meaning_synonyms),
    }


def _chars_for(ids: Iterable[int], kanji_by_id: dict[int, Subject]) -> str:
    return "".join(kanji_by_id[i].characters or "" for i in ids if i in kanji_by_id)


def build_radical_export(
    radicals: Iterable[Subject],
    kanji: Iterable[Subject],
    study_materials: Iterable[StudyMaterial],
) -> list[dict[str, Any]]:
    kanji = list(kanji)
    kanji_by_id = index_by(kanji, key=lambda k: k.id)
    kanji_by_char = index_by((k for k in kanji if k.characters), key=lambda k: k.characters)
    sm_by_subject = index_by(study_materials, key=lambda sm: sm.subject_id)

    docs: list[dict[str, Any]] = []
    for r in radicals:
        sm = sm_by_subject.get(r.id)
        doc: dict[str, Any] = {
            "radical_subject": {
                "id": r.id,
                "level": r.level,
                "slug": r.slug,
                "document_url": r.document_url,
                "characters": r.characters,
                "meanings": r.meanings,
                "auxiliary_meanings": r.auxiliary_meanings,
                "amalgamation_subject_ids": _chars_for(r.amalgamation_subject_ids, kanji_by_id),
                "meaning_mnemonic": r.meaning_mnemonic,
            },
            "study_material": _material_doc(sm) if sm else empty_study_material(),
        }
        k = kanji_by_char.get(r.characters) if r.characters else None
        if k is not None:
            doc["kanji_subject"] = {
                "id": k.id,
                "level": k.level,
                "slug": k.slug,
                "document_url": k.document_url,
                "meanings": k.meanings,
                "auxiliary_meanings": k.auxiliary_meanings,
                "readings": k.readings,
                "component_subject_ids": k.component_subject_ids,
                "visually_similar": _chars_for(k.visually_similar_subject_ids, kanji_by_id),
                "meaning_mnemonic": k.meaning_mnemonic,
                "meaning_hint": k.meaning_hint,
                "reading_mnemonic": k.reading_mnemonic,
                "reading_hint": k.reading_hint,
            }
        docs.append(doc)
    LOGGER.info("Built radical export: %d radicals, %d with notes", len(docs), len(sm_by_subject))
    return docs


def dump_export(docs: list[dict[str, Any]], stream: TextIO) -> None:
    yaml.safe_dump(docs, stream, allow_unicode=True, sort_keys=False)


def load_export(path: str | Path) -> list[dict[str, Any]]:
    loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or []
    if not isinstance(loaded, list):
        raise ValueError(f"Expected a list of radical documents in {path}")
    return loaded


class MaterialWriter(Protocol):
    def create_study_material(self, subject_id: int, fields: dict[str, Any]) -> object: ...

    def update_study_material(self, study_material_id: int, fields: dict[str, Any]) -> object: ...


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    unchanged: int = 0


def _wanted_fields(doc: dict[str, Any]) -> dict[str, Any]:
    sm = doc.get("study_material") or {}
    return {
        "meaning_note": sm.get("meaning_note") or "",
        "reading_note": sm.get("reading_note") or "",
        "meaning_synonyms": list(sm.get("meaning_synonyms") or []),
    }


def _current_fields(sm: StudyMaterial | None) -> dict[str, Any]:
    if sm is None:
        return {"meaning_note": "", "reading_note": "", "meaning_synonyms": []}
    return {
        "meaning_note": sm.meaning_note or "",
        "reading_note": sm.reading_note or "",
        "meaning_synonyms": list(sm.meaning_synonyms),
    }


def sync_radical_materials(
    client: MaterialWriter,
    docs: Iterable[dict[str, Any]],
    existing: Iterable[StudyMaterial],
    dry_run: bool = False,
) -> SyncResult:
    """Push edited notes/synonyms back, one request per changed radical."""
    by_subject = index_by(existing, key=lambda sm: sm.subject_id)
    result = SyncResult()
    for doc in docs:
        subject_id = int(doc["radical_subject"]["id"])
        wanted = _wanted_fields(doc)
        current_sm = by_subject.get(subject_id)
        if wanted == _current_fields(current_sm):
            result.unchanged += 1
            continue

        label = doc["radical_subject"].get("slug") or subject_id
        if current_sm is None:
            LOGGER.info("Create study material radical=%s%s", label, " (dry run)" if dry_run else "")
            if not dry_run:
                client.create_study_material(subject_id, wanted)
            result.created += 1
        else:
            LOGGER.info("Update study material radical=%s%s", label, " (dry run)" if dry_run else "")
            if not dry_run:
                client.update_study_material(current_sm.id, wanted)
            result.updated += 1
    return result
