"""Tests for the custom study order."""
from wk_jlpt.models import JLPTEntry, RankedEntry
from wk_jlpt.ranker import derived_level, format_rows, rank, sort_key


def entry(slug):
    return JLPTEntry(slug=slug, normalized_slug=slug, reading="", tier=5)


def test_sort_key_order():
    a = RankedEntry(entry("A"), level=3, present_in_service=False)
    b = RankedEntry(entry("B"), level=1, present_in_service=False)
    c = RankedEntry(entry("C"), level=10, present_in_service=True)
    d = RankedEntry(entry("D"), level=2, present_in_service=True)
    ordered = sorted([a, b, c, d], key=sort_key)
    # New words by increasing level, then taught words by decreasing level.
    assert [r.slug for r in ordered] == ["B", "A", "C", "D"]


def test_rank_uses_subject_level_when_present(make_subject):
    vocab = {"食事": make_subject(1, "食事", level=7)}
    ranked = rank([entry("食事")], vocab, {"食": 2, "事": 3})
    assert ranked[0].present_in_service
    assert ranked[0].level == 7


def test_rank_derives_level_from_kanji():
    ranked = rank([entry("食事")], {}, {"食": 2, "事": 9})
    assert not ranked[0].present_in_service
    assert ranked[0].level == 9


def test_unknown_kanji_sorts_after_known():
    levels = {"食": 2, "橋": 60}
    ranked = rank([entry("鬱"), entry("橋"), entry("食")], {}, levels)
    assert [r.slug for r in ranked] == ["食", "橋", "鬱"]
    assert ranked[-1].level == 61


def test_explicit_max_known_level():
    assert derived_level("鬱", {"食": 2}, 60) == 61
    assert derived_level("食べる", {"食": 2}, 60) == 2
    assert derived_level("あそこ", {}, 60) == 0


def test_kana_words_lead_new_words():
    ranked = rank([entry("食"), entry("テレビ"), entry("あそこ")], {}, {"食": 1})
    assert [r.slug for r in ranked] == ["テレビ", "あそこ", "食"]
    assert ranked[0].contains_katakana
    assert not ranked[1].contains_katakana


def test_full_ordering(make_subject):
    vocab = {
        "大人": make_subject(1, "大人", level=3),
        "人口": make_subject(2, "人口", level=12),
    }
    levels = {"山": 1, "川": 5, "人": 1, "大": 1, "口": 2}
    entries = [entry("大人"), entry("川"), entry("人口"), entry("山"), entry("鬱")]
    ranked = rank(entries, vocab, levels)
    assert [r.slug for r in ranked] == ["山", "川", "鬱", "人口", "大人"]


def test_ties_keep_input_order():
    ranked = rank([entry("川"), entry("山"), entry("口")], {}, {"山": 1, "川": 1, "口": 1})
    assert [r.slug for r in ranked] == ["川", "山", "口"]


def test_format_rows():
    ranked = rank([entry("山"), entry("鬱")], {}, {"山": 1})
    assert list(format_rows(ranked)) == ["山,1", "鬱,2"]
