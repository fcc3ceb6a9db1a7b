"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    utterances: int
    prompts: Dict[str, int]
    submissions: Dict[str, int]


class MetricsCollector:
    """Thread-safe counter storage for dialogue metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._utterances = 0
        self._prompts: Counter[str] = Counter()
        self._submissions: Counter[str] = Counter()

    def record_utterance(self) -> None:
        with self._lock:
            self._utterances += 1

    def record_prompt(self, step: str) -> None:
        with self._lock:
            self._prompts[step] += 1

    def record_submission(self, outcome: str) -> None:
        with self._lock:
            self._submissions[outcome] += 1

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                utterances=self._utterances,
                prompts=dict(self._prompts),
                submissions=dict(self._submissions),
            )
