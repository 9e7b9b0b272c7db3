from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable


@dataclass
class FraudSnapshot:
    matches: Dict[str, Dict[str, int]]
    claims: Dict[str, int]
    rejections: Dict[str, int]
    signals: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "matches": {key: dict(value) for key, value in self.matches.items()},
            "claims": dict(self.claims),
            "rejections": dict(self.rejections),
            "signals": dict(self.signals),
        }


class FraudObservabilityStore:
    """Count resolver and claim-guard decisions for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._match_types: Dict[str, int] = defaultdict(int)
        self._alert_levels: Dict[str, int] = defaultdict(int)
        self._claims: Dict[str, int] = defaultdict(int)
        self._rejections: Dict[str, int] = defaultdict(int)
        self._signals: Dict[str, int] = defaultdict(int)

    def record_match(self, match_type: str | None, alert_level: str) -> None:
        with self._lock:
            self._match_types[match_type or "none"] += 1
            self._alert_levels[alert_level] += 1

    def record_rejection(self, reason: str) -> None:
        with self._lock:
            self._claims["rejected"] += 1
            self._rejections[reason] += 1

    def record_acceptance(self, *, flagged: bool, signals: Iterable[str]) -> None:
        with self._lock:
            self._claims["accepted"] += 1
            if flagged:
                self._claims["flagged"] += 1
            for signal in signals:
                self._signals[signal] += 1

    def snapshot(self) -> FraudSnapshot:
        with self._lock:
            matches = {
                "by_type": dict(self._match_types),
                "by_alert_level": dict(self._alert_levels),
            }
            claims = dict(self._claims)
            rejections = dict(self._rejections)
            signals = dict(self._signals)
        return FraudSnapshot(matches=matches, claims=claims, rejections=rejections, signals=signals)

    def reset(self) -> None:
        with self._lock:
            self._match_types.clear()
            self._alert_levels.clear()
            self._claims.clear()
            self._rejections.clear()
            self._signals.clear()


_STORE = FraudObservabilityStore()


def get_fraud_store() -> FraudObservabilityStore:
    return _STORE


__all__ = ["get_fraud_store", "FraudObservabilityStore", "FraudSnapshot"]
