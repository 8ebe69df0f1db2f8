from __future__ import annotations

import argparse
from copy import deepcopy
from datetime import datetime
import logging
import os
from pathlib import Path
import sys
from typing import Any, Callable, TextIO

import click
from dotenv import find_dotenv, load_dotenv
import requests
import yaml

from wk_jlpt.actions import promote_to_review, review_matches
from wk_jlpt.client import ClientConfig, WaniKaniClient
from wk_jlpt.errors import ConfigError
from wk_jlpt.indexing import index_by
from wk_jlpt.materials import build_radical_export, dump_export, load_export, sync_radical_materials
from wk_jlpt.models import VOCAB_TYPES, ReconciledItem
from wk_jlpt.ranker import format_rows, rank
from wk_jlpt.reconcile import count_by_srs_stage, select_comprehensible, select_matching, select_promotable
from wk_jlpt.vocabulary import load_kanji_levels, load_tiers


LOGGER = logging.getLogger("wk_jlpt")

TOKEN_ENV = "WANIKANI_API_KEY"

DEFAULT_CONFIG: dict[str, Any] = {
    "api": {
        "base_url": "https://api.wanikani.com/v2",
        "revision": "20170710",
        "timeout_sec": 20,
        "page_size": None,
    },
    "jlpt": {
        "data_dir": ".",
        "kanji_file": "kanji.json",
        "max_level": 3,
    },
    "move": {
        "default_number": 100,
    },
    "paths": {
        "logs_dir": "logs",
    },
}


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = deepcopy(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_update(out[k], v)
        else:
            out[k] = v
    return out


def _cfg_get(cfg: dict[str, Any], path: str, default: Any) -> Any:
    cur: Any = cfg
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def load_config(config_path: str | Path) -> dict[str, Any]:
    """Load YAML config and merge with defaults.

    A missing file, a file that fails to parse or a file that is not a
    mapping yields the defaults.
    """

    cfg_path = Path(config_path)
    if not cfg_path.exists():
        LOGGER.debug("Config not found: %s. Using defaults.", cfg_path)
        return deepcopy(DEFAULT_CONFIG)

    try:
        loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        LOGGER.warning("Failed to parse config (%s). Using defaults.", exc)
        return deepcopy(DEFAULT_CONFIG)
    if not isinstance(loaded, dict):
        LOGGER.warning("Config format invalid. Using defaults.")
        return deepcopy(DEFAULT_CONFIG)
    return _deep_update(DEFAULT_CONFIG, loaded)


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive")
    return number


def build_client(cfg: dict[str, Any], token: str | None) -> WaniKaniClient:
    if not token:
        raise ConfigError(f"Please set {TOKEN_ENV} in your environment or .env file")
    page_size = _cfg_get(cfg, "api.page_size", None)
    config = ClientConfig(
        token=token,
        base_url=str(_cfg_get(cfg, "api.base_url", "https://api.wanikani.com/v2")),
        revision=str(_cfg_get(cfg, "api.revision", "20170710")),
        timeout_sec=float(_cfg_get(cfg, "api.timeout_sec", 20)),
        page_size=int(page_size) if page_size is not None else None,
    )
    return WaniKaniClient(config)


def _jlpt_dir(cfg: dict[str, Any]) -> Path:
    return Path(_cfg_get(cfg, "jlpt.data_dir", "."))


def _jlpt_level(cfg: dict[str, Any], override: int | None) -> int:
    if override is not None:
        return _positive_int(override, "--jlpt")
    return _positive_int(_cfg_get(cfg, "jlpt.max_level", 3), "jlpt.max_level")


def step_move(client: WaniKaniClient, cfg: dict[str, Any], number: int, jlpt_level: int, out: TextIO) -> None:
    """Move lesson vocabulary that appears in the JLPT lists into reviews."""

    assignments = client.get_assignments(unlocked=True, immediately_available_for_lessons=True)
    subjects = client.get_subjects(types=VOCAB_TYPES)
    slugs = {e.normalized_slug for e in load_tiers(jlpt_level, _jlpt_dir(cfg))}

    candidates = select_promotable(assignments, subjects, slugs)
    result = promote_to_review(client, candidates, number)

    for item in result.moved:
        print(f"Moved {item.subject.characters} (Level {item.subject.level}) to review", file=out)
    print(f"Total vocabulary moved to review: {result.moved_count}", file=out)
    if result.remaining:
        print(f"Not moved: {result.remaining}", file=out)


def step_show(client: WaniKaniClient, cfg: dict[str, Any], jlpt_level: int, out: TextIO) -> None:
    """Print JLPT vocabulary readable with the kanji already started."""

    started = client.get_assignments(started=True)
    kanji = client.get_subjects(types=["kanji"])
    vocab = client.get_subjects(types=VOCAB_TYPES)
    entries = load_tiers(jlpt_level, _jlpt_dir(cfg))

    for entry in select_comprehensible(started, kanji, vocab, entries):
        print("; ".join(entry.forms()), file=out)


def step_vocab_list(client: WaniKaniClient, cfg: dict[str, Any], jlpt_level: int, out: TextIO) -> None:
    """Print the custom study order as `slug,level` rows."""

    data_dir = _jlpt_dir(cfg)
    kanji_levels, max_level = load_kanji_levels(data_dir / str(_cfg_get(cfg, "jlpt.kanji_file", "kanji.json")))
    vocab = client.get_subjects(types=VOCAB_TYPES)
    vocab_by_chars = index_by((s for s in vocab if s.characters), key=lambda s: s.characters)
    entries = load_tiers(jlpt_level, data_dir)

    for row in format_rows(rank(entries, vocab_by_chars, kanji_levels, max_level)):
        print(row, file=out)


def step_stats(client: WaniKaniClient, out: TextIO) -> None:
    """Print started assignment counts per SRS stage."""

    for stage, count in count_by_srs_stage(client.get_assignments(started=True)).items():
        print(f"{stage}: {count}", file=out)


def _confirm_item(item: ReconciledItem) -> bool:
    click.echo(item.subject.describe())
    return click.confirm("Add to reviews?", default=False)


def step_select(
    client: WaniKaniClient,
    char_query: str | None,
    meaning_query: str | None,
    reading_query: str | None,
    confirm: Callable[[ReconciledItem], bool],
    out: TextIO,
) -> None:
    """Offer matching lesson vocabulary for review one item at a time."""

    assignments = client.get_assignments(unlocked=True, immediately_available_for_lessons=True)
    subjects = client.get_subjects(types=VOCAB_TYPES)
    matches = select_matching(assignments, subjects, char_query, meaning_query, reading_query)
    LOGGER.info("Matching lesson items: %d", len(matches))

    started = review_matches(client, matches, confirm)
    print(f"Total vocabulary moved to review: {len(started)}", file=out)


def fetch_radicals_export(client: WaniKaniClient) -> list[dict[str, Any]]:
    materials = client.get_study_materials(subject_types=["radical"])
    kanji = client.get_subjects(types=["kanji"])
    radicals = client.get_subjects(types=["radical"])
    return build_radical_export(radicals, kanji, materials)


def step_radicals_export(client: WaniKaniClient, output: str | Path | None, out: TextIO) -> None:
    """Dump radicals with notes and their same-character kanji as YAML.

    Everything is fetched before `output` is opened, so a failed fetch
    leaves an existing export untouched.
    """

    docs = fetch_radicals_export(client)
    if not output:
        dump_export(docs, out)
        return
    with open(output, "w", encoding="utf-8") as f:
        dump_export(docs, f)
    LOGGER.info("Radical export written path=%s", output)


def step_radicals_sync(client: WaniKaniClient, file: str | Path, dry_run: bool, out: TextIO) -> None:
    """Push notes/synonyms edited in an exported YAML file back to WaniKani."""

    docs = load_export(file)
    existing = client.get_study_materials(subject_types=["radical"])
    result = sync_radical_materials(client, docs, existing, dry_run=dry_run)
    print(
        f"Created: {result.created} Updated: {result.updated} Unchanged: {result.unchanged}"
        + (" (dry run)" if dry_run else ""),
        file=out,
    )


def run_command(
    args: argparse.Namespace, cfg: dict[str, Any], token: str | None, out: TextIO | None = None
) -> None:
    """Validate arguments, build the client, then run one subcommand."""

    out = out or sys.stdout
    if args.command == "move":
        number = _positive_int(
            args.number if args.number is not None else _cfg_get(cfg, "move.default_number", 100),
            "Number of items",
        )
        jlpt_level = _jlpt_level(cfg, args.jlpt)
        client = build_client(cfg, token)
        step_move(client, cfg, number, jlpt_level, out)
    elif args.command == "show":
        jlpt_level = _jlpt_level(cfg, args.jlpt)
        step_show(build_client(cfg, token), cfg, jlpt_level, out)
    elif args.command == "vocab-list":
        jlpt_level = _jlpt_level(cfg, args.jlpt)
        step_vocab_list(build_client(cfg, token), cfg, jlpt_level, out)
    elif args.command == "stats":
        step_stats(build_client(cfg, token), out)
    elif args.command == "select":
        confirm = (lambda item: True) if args.yes else _confirm_item
        step_select(build_client(cfg, token), args.char_query, args.meaning_query, args.reading_query, confirm, out)
    elif args.command == "radicals-export":
        step_radicals_export(build_client(cfg, token), args.output, out)
    elif args.command == "radicals-sync":
        if not Path(args.file).exists():
            raise ConfigError(f"File not found: {args.file}")
        step_radicals_sync(build_client(cfg, token), args.file, args.dry_run, out)
    else:
        raise ConfigError(f"Unknown command: {args.command}")


def _setup_logging(cfg: dict[str, Any], verbose: bool) -> None:
    for h in list(logging.getLogger().handlers):
        logging.getLogger().removeHandler(h)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    logs_dir = _cfg_get(cfg, "paths.logs_dir", "logs")
    if logs_dir:
        log_dir = Path(logs_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"wk_jlpt_{datetime.now().strftime('%Y%m%d')}.log"
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=fmt, handlers=handlers)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="wanikani", description="WaniKani helper for JLPT vocabulary")
    p.add_argument("--config", default="config.yaml", help="Config file path")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True, metavar="<cmd>")

    move = sub.add_parser("move", help="Move JLPT vocabulary to review")
    move.add_argument("-n", "--number", type=int, default=None, help="Number of items to move to review")
    move.add_argument("-j", "--jlpt", type=int, default=None, help="Hardest JLPT level to include (5, 4 or 3)")

    show = sub.add_parser("show", help="Show comprehensible vocabulary")
    show.add_argument("-j", "--jlpt", type=int, default=None, help="Hardest JLPT level to include (5, 4 or 3)")

    vocab_list = sub.add_parser("vocab-list", help="Show custom vocabulary list")
    vocab_list.add_argument("-j", "--jlpt", type=int, default=None, help="Hardest JLPT level to include (5, 4 or 3)")

    sub.add_parser("stats", help="Count started assignments per SRS stage")

    select = sub.add_parser("select", help="Search lesson items and optionally move them to review")
    select.add_argument("-c", "--char-query", dest="char_query", default=None, help="Searches characters for this")
    select.add_argument("-m", "--meaning-query", dest="meaning_query", default=None, help="Searches meanings for this")
    select.add_argument("-r", "--reading-query", dest="reading_query", default=None, help="Searches readings for this")
    select.add_argument("--yes", action="store_true", help="Move every match without asking")

    export = sub.add_parser("radicals-export", help="Export user-specific study materials for radicals")
    export.add_argument("-o", "--output", default="", help="Write YAML here instead of stdout")

    sync = sub.add_parser("radicals-sync", help="Import user-specific study materials for radicals from a YAML file")
    sync.add_argument("-f", "--file", required=True, help="The file from which to import the radical study materials")
    sync.add_argument("--dry-run", action="store_true", help="Report changes without sending them")

    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    cfg = load_config(args.config)
    _setup_logging(cfg, args.verbose)
    load_dotenv(find_dotenv(usecwd=True))

    LOGGER.info("[STEP] %s start", args.command)
    try:
        run_command(args, cfg, os.environ.get(TOKEN_ENV))
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    except click.Abort:
        LOGGER.error("[STEP] %s aborted", args.command)
        return 1
    except requests.RequestException as exc:
        resp = getattr(exc, "response", None)
        LOGGER.error("[STEP] %s failed: %s", args.command, resp.text if resp is not None else exc)
        return 1
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("[STEP] %s failed: %s", args.command, exc)
        return 1
    LOGGER.info("[STEP] %s success", args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
