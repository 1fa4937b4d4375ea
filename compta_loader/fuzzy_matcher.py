"""
Fuzzy Suggestion Layer.

Reference lookups are exact.  When one misses, this layer uses
``rapidfuzz`` to find the closest known name so the error message can say
"did you mean ...?".  Suggestions are confidence-gated:

* Candidates **below** ``threshold`` are rejected outright.
* If two candidates are within ``ambiguity_delta`` of each other no
  suggestion is made: pointing at one of them would be a guess.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from rapidfuzz import fuzz, process

from compta_loader.logging_setup import get_logger

logger = get_logger("fuzzy_matcher")


@dataclass(frozen=True)
class Suggestion:
    """A single candidate returned by the matcher."""

    name: str
    score: float  # 0–100


class FuzzyMatcher:
    """Suggest the closest of a fixed set of names.

    Comparison happens on lower-cased strings; the suggestion is returned
    with its original spelling.

    Parameters
    ----------
    names:
        Known names (employees as "Lastname Firstname", providers, ...).
    threshold:
        Minimum ``token_sort_ratio`` score to accept a candidate.
    ambiguity_delta:
        Minimum lead the best candidate needs over the runner-up.
    """

    def __init__(
        self,
        names: Iterable[str],
        threshold: float = 80.0,
        ambiguity_delta: float = 2.0,
    ) -> None:
        self._threshold = threshold
        self._ambiguity_delta = ambiguity_delta

        # lower → original spelling
        self._targets: dict[str, str] = {}
        for name in names:
            self._targets.setdefault(name.lower(), name)
        self._target_keys: list[str] = list(self._targets.keys())

    def __len__(self) -> int:
        return len(self._target_keys)

    def suggest(self, query: str) -> Optional[Suggestion]:
        """Return the best known name for *query*, or ``None``."""
        if not query or not self._target_keys:
            return None

        # token_sort_ratio copes with "Firstname Lastname" vs "Lastname Firstname".
        results = process.extract(
            query.lower(),
            self._target_keys,
            scorer=fuzz.token_sort_ratio,
            limit=2,
        )
        if not results:
            return None

        best_key, best_score, _ = results[0]
        if best_score < self._threshold:
            logger.debug(
                "Best suggestion for %r is %r (%.1f), below threshold %.1f",
                query, best_key, best_score, self._threshold,
            )
            return None

        if len(results) > 1:
            runner_key, runner_score, _ = results[1]
            if best_score - runner_score < self._ambiguity_delta:
                logger.debug(
                    "No suggestion for %r: %r (%.1f) and %r (%.1f) are too close",
                    query, best_key, best_score, runner_key, runner_score,
                )
                return None

        return Suggestion(name=self._targets[best_key], score=best_score)

    def suggest_name(self, query: str) -> Optional[str]:
        suggestion = self.suggest(query)
        return suggestion.name if suggestion else None
