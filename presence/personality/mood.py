"""Mood engine: discrete mood from a rolling interaction log.

The log lives in the key-value store (newest first, capped at
``MAX_HISTORY``) and is re-read on every call, so two faces sharing one store
agree on the mood.  Scoring is recency weighted over the newest
``SCORE_WINDOW`` records; failures cost more than successes earn.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Final, Iterable

from presence.devices.protocol import PresenceState
from presence.store.kv_store import MOOD_HISTORY_KEY, KeyValueStore

log = logging.getLogger(__name__)

MAX_HISTORY: Final[int] = 50
SCORE_WINDOW: Final[int] = 10

POSITIVE_WEIGHT: Final[float] = 2.0
NEGATIVE_WEIGHT: Final[float] = -3.0
NEUTRAL_WEIGHT: Final[float] = 0.5

HAPPY_THRESHOLD: Final[float] = 3.0
ANGRY_THRESHOLD: Final[float] = -2.0

POSITIVE_SENTIMENTS: Final[frozenset[str]] = frozenset({"positive", "success"})
NEGATIVE_SENTIMENTS: Final[frozenset[str]] = frozenset({"negative", "error"})


class Mood(str, Enum):
    HAPPY = "happy"
    ANGRY = "angry"
    NEUTRAL = "neutral"


MOOD_COLORS: Final[dict[Mood, tuple[int, int, int]]] = {
    Mood.HAPPY: (34, 197, 94),
    Mood.ANGRY: (239, 68, 68),
    Mood.NEUTRAL: (234, 179, 8),
}

KIND_STATE_CHANGE = "state_change"
KIND_MANUAL = "manual"


@dataclass(slots=True, frozen=True)
class InteractionRecord:
    timestamp_ms: int
    kind: str
    sentiment: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp_ms,
            "type": self.kind,
            "sentiment": self.sentiment,
        }

    @classmethod
    def from_dict(cls, d: dict) -> InteractionRecord:
        return cls(
            timestamp_ms=int(d.get("timestamp", 0)),
            kind=str(d.get("type", "")),
            sentiment=str(d.get("sentiment", "neutral")),
        )


def sentiment_weight(sentiment: str) -> float:
    if sentiment in POSITIVE_SENTIMENTS:
        return POSITIVE_WEIGHT
    if sentiment in NEGATIVE_SENTIMENTS:
        return NEGATIVE_WEIGHT
    return NEUTRAL_WEIGHT


def compute_score(records: Iterable[InteractionRecord]) -> float:
    """Recency-weighted score.  ``records`` are newest first."""
    score = 0.0
    for i, rec in enumerate(records):
        if i >= SCORE_WINDOW:
            break
        weight = (SCORE_WINDOW - i) / SCORE_WINDOW
        score += sentiment_weight(rec.sentiment) * weight
    return score


def mood_from_score(score: float) -> Mood:
    if score > HAPPY_THRESHOLD:
        return Mood.HAPPY
    if score < ANGRY_THRESHOLD:
        return Mood.ANGRY
    return Mood.NEUTRAL


def compute_mood(records: list[InteractionRecord]) -> Mood:
    if not records:
        return Mood.NEUTRAL
    return mood_from_score(compute_score(records))


class MoodEngine:
    """Records interactions and exposes the derived mood."""

    def __init__(
        self,
        store: KeyValueStore,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self._store = store
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._mood = compute_mood(self.history())

    @property
    def mood(self) -> Mood:
        return self.refresh()

    @property
    def halo_color(self) -> tuple[int, int, int]:
        return MOOD_COLORS[self.refresh()]

    def history(self) -> list[InteractionRecord]:
        """Persisted log, newest first.  Unreadable entries are skipped."""
        try:
            raw: Any = self._store.get(MOOD_HISTORY_KEY, [])
        except Exception as e:
            log.warning("mood: failed to read history: %s", e)
            return []
        if not isinstance(raw, list):
            return []
        records: list[InteractionRecord] = []
        for item in raw:
            if isinstance(item, dict):
                try:
                    records.append(InteractionRecord.from_dict(item))
                except (TypeError, ValueError):
                    continue
        return records

    def refresh(self) -> Mood:
        """Recompute from the store (picks up writes from other instances)."""
        return self._update(self.history())

    def record(self, kind: str, sentiment: str = "neutral") -> Mood:
        entry = InteractionRecord(
            timestamp_ms=self._clock_ms(), kind=kind, sentiment=sentiment
        )
        history = [entry, *self.history()][:MAX_HISTORY]
        try:
            self._store.set(MOOD_HISTORY_KEY, [r.to_dict() for r in history])
        except Exception as e:
            log.warning("mood: failed to record interaction: %s", e)
            return self.refresh()
        return self._update(history)

    def _update(self, history: list[InteractionRecord]) -> Mood:
        prev = self._mood
        self._mood = compute_mood(history)
        if self._mood != prev:
            log.info("mood: %s -> %s", prev.value, self._mood.value)
        return self._mood

    def observe_state(self, state: PresenceState, prev: PresenceState) -> None:
        """Gateway state listener: errors sour the mood, replies lift it."""
        if state == prev:
            return
        if state == PresenceState.ERROR:
            self.record(KIND_STATE_CHANGE, "negative")
        elif state == PresenceState.SPEAKING:
            self.record(KIND_STATE_CHANGE, "positive")

    def set_happy(self) -> Mood:
        return self.record(KIND_MANUAL, "positive")

    def set_angry(self) -> Mood:
        return self.record(KIND_MANUAL, "negative")

    def set_neutral(self) -> Mood:
        return self.record(KIND_MANUAL, "neutral")
