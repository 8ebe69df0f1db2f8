"""Core module exports for wk_jlpt."""

from .actions import PromotionResult, promote_to_review, review_matches
from .client import ClientConfig, Collection, WaniKaniClient
from .errors import ConfigError
from .materials import build_radical_export, dump_export, load_export, sync_radical_materials
from .ranker import format_rows, rank
from .reconcile import count_by_srs_stage, select_comprehensible, select_matching, select_promotable
from .vocabulary import load_kanji_levels, load_tiers

__all__ = [
    "ClientConfig",
    "Collection",
    "ConfigError",
    "PromotionResult",
    "WaniKaniClient",
    "build_radical_export",
    "count_by_srs_stage",
    "dump_export",
    "format_rows",
    "load_export",
    "load_kanji_levels",
    "load_tiers",
    "promote_to_review",
    "rank",
    "review_matches",
    "select_comprehensible",
    "select_matching",
    "select_promotable",
    "sync_radical_materials",
]
