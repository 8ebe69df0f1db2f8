"""Side-effecting steps: move lesson items into reviews."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Protocol, Sequence

from .models import ReconciledItem


LOGGER = logging.getLogger(__name__)


class AssignmentStarter(Protocol):
    def start_assignment(self, assignment_id: int) -> object: ...


@dataclass(frozen=True)
class PromotionResult:
    moved: list[ReconciledItem]
    remaining: int

    @property
    def moved_count(self) -> int:
        return len(self.moved)


def promote_to_review(client: AssignmentStarter, candidates: Sequence[ReconciledItem], limit: int) -> PromotionResult:
    """Start the first `limit` candidates, one request at a time.

    A failing request propagates; items already started stay started.
    """
    to_move = min(limit, len(candidates))
    moved: list[ReconciledItem] = []
    for item in candidates[:to_move]:
        client.start_assignment(item.assignment.id)
        moved.append(item)
        LOGGER.info("Moved %s (Level %d) to review", item.subject.characters, item.subject.level)
    return PromotionResult(moved=moved, remaining=len(candidates) - to_move)


def review_matches(
    client: AssignmentStarter,
    items: Sequence[ReconciledItem],
    confirm: Callable[[ReconciledItem], bool],
) -> list[ReconciledItem]:
    """Ask about each item and start the ones that are confirmed."""
    started: list[ReconciledItem] = []
    for item in items:
        if not confirm(item):
            continue
        client.start_assignment(item.assignment.id)
        started.append(item)
        LOGGER.info("Moved %s (Level %d) to review", item.subject.characters, item.subject.level)
    return started
