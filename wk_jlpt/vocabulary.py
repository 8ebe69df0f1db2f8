"""JLPT word lists and the kanji level table.

Tier files follow the source dataset's convention: n5 is the easiest list
and is always loaded, harder lists are added as `max_level` goes down.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import JLPTEntry
from .normalize import normalize_slug


LOGGER = logging.getLogger(__name__)

TIER_FILE_PATTERN = "jlpt-n{tier}.json"
TIERS = (5, 4, 3)


def tier_files(max_level: int) -> list[int]:
    """Tiers to load for `max_level`, easiest first."""
    return [tier for tier in TIERS if tier == 5 or max_level <= tier]


def entry_from_raw(raw: dict[str, Any], tier: int) -> JLPTEntry:
    return JLPTEntry(
        slug=str(raw["slug"]),
        normalized_slug=normalize_slug(raw),
        reading=str(raw["japanese"][0].get("reading", "")),
        tier=tier,
        japanese=list(raw.get("japanese", [])),
        senses=list(raw.get("senses", [])),
    )


def load_tier(tier: int, data_dir: str | Path) -> list[JLPTEntry]:
    path = Path(data_dir) / TIER_FILE_PATTERN.format(tier=tier)
    rows = json.loads(path.read_text(encoding="utf-8"))
    entries = [entry_from_raw(raw, tier) for raw in rows]
    LOGGER.info("Loaded JLPT N%d list path=%s count=%d", tier, path, len(entries))
    return entries


def load_tiers(max_level: int, data_dir: str | Path) -> list[JLPTEntry]:
    entries: list[JLPTEntry] = []
    for tier in tier_files(max_level):
        entries.extend(load_tier(tier, data_dir))
    return entries


def load_kanji_levels(path: str | Path) -> tuple[dict[str, int], int]:
    """Read `{char: {"wk_level": n, ...}}` and return (levels, max level)."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    levels: dict[str, int] = {}
    for char, meta in payload.items():
        level = meta.get("wk_level") if isinstance(meta, dict) else None
        if level is None:
            continue
        levels[char] = int(level)
    max_level = max(levels.values(), default=0)
    LOGGER.info("Loaded kanji levels path=%s count=%d max_level=%d", path, len(levels), max_level)
    return levels, max_level
