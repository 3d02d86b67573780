"""Counting pull events per normalized image identity."""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from zim.image_ref import normalize_image_reference
from zim.log_extractor import PullEvent


@dataclass(frozen=True)
class PullCount:
    """Number of pulls observed for one normalized image"""
    identity: str
    count: int


class PullEventAggregator:
    """Folds pull events into per-image counts.

    One aggregator is created per run. Identities keep the order in which
    they were first seen, which the report uses to break ties.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self.skipped = 0

    def add(self, event: PullEvent) -> bool:
        """Count one event. Returns False when the event names no image."""
        identity = normalize_image_reference(event.image_ref)
        if not identity:
            self.skipped += 1
            return False
        self._counts[identity] = self._counts.get(identity, 0) + 1
        return True

    def add_all(self, events: Iterable[PullEvent]) -> "PullEventAggregator":
        for event in events:
            self.add(event)
        return self

    def counts(self) -> Dict[str, int]:
        """Identity -> pull count, in first-discovery order."""
        return dict(self._counts)

    def pull_counts(self) -> List[PullCount]:
        return [PullCount(identity=identity, count=count) for identity, count in self._counts.items()]

    @property
    def total(self) -> int:
        return sum(self._counts.values())


def aggregate(events: Iterable[PullEvent]) -> Dict[str, int]:
    """Count normalized identities across events, dropping events without an image."""
    return PullEventAggregator().add_all(events).counts()
