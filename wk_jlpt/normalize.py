"""Surface-form normalization rules.

Two rule chains live here:

- slug rules turn a raw JLPT list row into the form WaniKani would show
  (reading for kana-only words, disambiguation suffix stripped otherwise);
- subject rules strip WaniKani decorations (〜 prefix, counters, する, に)
  so a vocabulary subject can be looked up in the JLPT slug set.

Each rule is a named precondition/effect pair so it can be exercised on
its own.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Callable, Iterable

KANA_ONLY_TAG = "Usually written using kana alone"
HONORIFIC_PREFIX = "お"

RE_KANJI = re.compile(r"[\u3400-\u4DBF\u4E00-\u9FFF\U00020000-\U0003134F]")
RE_KATAKANA = re.compile(
    r"[\u30A1-\u30FA\u30FD-\u30FF\u31F0-\u31FF\u32D0-\u32FE\u3300-\u3357\uFF66-\uFF6F\uFF71-\uFF9D]"
)
RE_DISAMBIG = re.compile(r"-[0-9]\Z")
RE_KANJI_NUM = re.compile(r"^第?[一二三四五六七八九十]+")
WAVE_DASHES = ("〜", "～", "~")


@dataclass(frozen=True)
class TextRule:
    name: str
    applies: Callable[[str], bool]
    effect: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.effect(text) if self.applies(text) else text


@dataclass(frozen=True)
class EntryRule:
    """Maps a raw JLPT row to its normalized slug when `applies` holds."""

    name: str
    applies: Callable[[dict[str, Any]], bool]
    effect: Callable[[dict[str, Any]], str]


def _reading(raw: dict[str, Any]) -> str:
    return str(raw["japanese"][0].get("reading", ""))


def _has_kana_only_tag(raw: dict[str, Any]) -> bool:
    senses = raw.get("senses") or [{}]
    return KANA_ONLY_TAG in (senses[0].get("tags") or [])


def _is_kana_only_form(raw: dict[str, Any]) -> bool:
    forms = raw.get("japanese") or []
    return len(forms) == 1 and forms[0].get("word") is None


SLUG_RULES: tuple[EntryRule, ...] = (
    EntryRule("kana_only_tag", _has_kana_only_tag, _reading),
    EntryRule("kana_only_form", _is_kana_only_form, _reading),
    EntryRule(
        "disambiguation_suffix",
        lambda raw: RE_DISAMBIG.search(str(raw["slug"])) is not None,
        lambda raw: str(raw["slug"])[:-2],
    ),
)


def normalize_slug(raw: dict[str, Any], rules: Iterable[EntryRule] = SLUG_RULES) -> str:
    """First matching rule decides; otherwise the stored slug is kept."""
    for rule in rules:
        if rule.applies(raw):
            return rule.effect(raw)
    return str(raw["slug"])


def _strip_counter(text: str) -> str:
    m = RE_KANJI_NUM.match(text)
    return text[m.end():] if m else text


SUBJECT_RULES: tuple[TextRule, ...] = (
    TextRule("wave_dash_prefix", lambda t: t.startswith(WAVE_DASHES), lambda t: t[1:]),
    TextRule("counter_prefix", lambda t: RE_KANJI_NUM.match(t) is not None, _strip_counter),
    TextRule("suru_suffix", lambda t: t.endswith("する"), lambda t: t[:-2]),
    TextRule("ni_suffix", lambda t: t.endswith("に"), lambda t: t[:-1]),
)


def normalize_subject_characters(text: str, rules: Iterable[TextRule] = SUBJECT_RULES) -> str:
    """Apply every subject rule in order."""
    for rule in rules:
        text = rule(text)
    return text


def honorific_variants(form: str) -> tuple[str, str]:
    """The form plus its お-toggled counterpart."""
    if form.startswith(HONORIFIC_PREFIX):
        return form, form[len(HONORIFIC_PREFIX):]
    return form, HONORIFIC_PREFIX + form


def kanji_in(text: str) -> list[str]:
    return RE_KANJI.findall(text)


def contains_katakana(text: str) -> bool:
    return RE_KATAKANA.search(text) is not None
